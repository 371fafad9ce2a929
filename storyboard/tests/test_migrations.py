import sqlite3
from pathlib import Path

from alembic import command
from alembic.config import Config

import storyboard

SCRIPT_LOCATION = Path(storyboard.__file__).resolve().parent / 'alembic'


def _config(db_path) -> Config:
    cfg = Config()
    cfg.set_main_option('script_location', str(SCRIPT_LOCATION))
    cfg.set_main_option('sqlalchemy.url', f'sqlite:///{db_path}')
    return cfg


def _tables(db_path):
    conn = sqlite3.connect(db_path)
    try:
        rows = conn.execute("SELECT name FROM sqlite_master WHERE type='table'").fetchall()
    finally:
        conn.close()
    return {r[0] for r in rows}


def test_upgrade_and_downgrade(tmp_path):
    db_path = tmp_path / 'migrated.db'
    cfg = _config(db_path)
    command.upgrade(cfg, 'head')
    assert {'user', 'story', 'session_tokens', 'alembic_version'} <= _tables(db_path)

    command.downgrade(cfg, 'base')
    assert not {'user', 'story', 'session_tokens'} & _tables(db_path)
