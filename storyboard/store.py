"""
Pooled access to the relational store.

One ``Store`` exists per process. It is created by the lifecycle manager
and handed to the services explicitly.
"""
import logging

from sqlalchemy import event, text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError, InvalidRequestError, NoSuchModuleError, SQLAlchemyError
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker

from .errors import ConfigError, StoreError
from .models import Base

logger = logging.getLogger(__name__)


def _is_memory_sqlite(url) -> bool:
    return url.get_backend_name() == 'sqlite' and url.database in (None, '', ':memory:')


class Store:
    def __init__(self, database_url: str, pool_size: int = 5, max_overflow: int = 10,
                 enforce_foreign_keys: bool = True, echo: bool = False):
        try:
            url = make_url(database_url)
        except ArgumentError as e:
            raise ConfigError(f'invalid database url: {e}') from e
        engine_kwargs = {'future': True, 'echo': echo, 'pool_pre_ping': True}
        # in-memory sqlite runs on a single static connection
        if not _is_memory_sqlite(url):
            engine_kwargs.update(pool_size=pool_size, max_overflow=max_overflow)
        self.url = url
        try:
            self.engine = create_async_engine(url, **engine_kwargs)
        except (ArgumentError, NoSuchModuleError, InvalidRequestError, ImportError) as e:
            raise ConfigError(f'cannot use database url {url!r}: {e}') from e
        self.session_factory = sessionmaker(self.engine, class_=AsyncSession, expire_on_commit=False)
        if url.get_backend_name() == 'sqlite' and enforce_foreign_keys:
            event.listen(self.engine.sync_engine, 'connect', _enable_sqlite_foreign_keys)

    def session(self) -> AsyncSession:
        """Lend a session for one unit of work; use it as ``async with``."""
        return self.session_factory()

    async def ping(self) -> None:
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text('SELECT 1'))
        except (SQLAlchemyError, OSError) as e:
            raise StoreError(f'database unreachable: {e}') from e

    async def create_all(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        await self.engine.dispose()
        logger.info({'msg': 'store_closed', 'backend': self.url.get_backend_name()})


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute('PRAGMA foreign_keys=ON')
    cursor.close()
