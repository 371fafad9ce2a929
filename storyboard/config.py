import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError, NoSuchModuleError

from .errors import ConfigError


def normalize_database_url(url: str) -> str:
    """Point bare sqlite/postgres URLs at the async drivers."""
    url = url.strip()
    if url.startswith('sqlite:') and not url.startswith('sqlite+'):
        rest = url[len('sqlite:'):]
        if rest.startswith('//'):
            return 'sqlite+aiosqlite:' + rest
        # sqlite:stories.db
        return 'sqlite+aiosqlite:///' + rest
    if url.startswith('postgresql://'):
        return url.replace('postgresql://', 'postgresql+asyncpg://', 1)
    if url.startswith('postgres://'):
        return url.replace('postgres://', 'postgresql+asyncpg://', 1)
    return url


def _int(env: dict, name: str, default: Optional[int]) -> Optional[int]:
    raw = env.get(name)
    if raw is None or raw.strip() == '':
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f'{name} must be an integer, got {raw!r}')


def _bool(env: dict, name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None or raw.strip() == '':
        return default
    return raw.strip().lower() in {'1', 'true', 'yes', 'on'}


@dataclass
class Settings:
    database_url: str
    host: str = '127.0.0.1'
    port: int = 3000
    pool_size: int = 5
    max_overflow: int = 10
    enforce_foreign_keys: bool = True
    session_ttl_minutes: int = 60 * 24 * 7
    session_cookie_secure: bool = False
    shutdown_timeout: int = 30
    log_level: str = 'INFO'
    metrics_port: Optional[int] = None

    @classmethod
    def from_env(cls, env: Optional[dict] = None, dotenv: bool = True) -> 'Settings':
        """Read settings once at startup. A missing DATABASE_URL is fatal."""
        if env is None:
            if dotenv:
                load_dotenv()
            env = dict(os.environ)
        db_url = (env.get('DATABASE_URL') or '').strip()
        if not db_url:
            raise ConfigError('DATABASE_URL is not set')
        database_url = normalize_database_url(db_url)
        try:
            make_url(database_url).get_dialect()
        except (ArgumentError, NoSuchModuleError, ImportError) as e:
            raise ConfigError(f'DATABASE_URL is invalid: {e}') from e
        return cls(
            database_url=database_url,
            host=env.get('HOST', '127.0.0.1'),
            port=_int(env, 'PORT', 3000),
            pool_size=_int(env, 'DB_POOL_SIZE', 5),
            max_overflow=_int(env, 'DB_MAX_OVERFLOW', 10),
            enforce_foreign_keys=_bool(env, 'DB_ENFORCE_FOREIGN_KEYS', True),
            session_ttl_minutes=_int(env, 'SESSION_TTL_MINUTES', 60 * 24 * 7),
            session_cookie_secure=_bool(env, 'SESSION_COOKIE_SECURE', False),
            shutdown_timeout=_int(env, 'SHUTDOWN_TIMEOUT_SECONDS', 30),
            log_level=env.get('LOG_LEVEL', 'INFO'),
            metrics_port=_int(env, 'METRICS_PORT', None),
        )
