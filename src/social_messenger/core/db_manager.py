from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator
import logging

from social_messenger.config import Config
from .database import Base


class BaseDatabaseManager:
    def __init__(self, config: Config):
        self.config = config
        self.engine: AsyncEngine | None = None
        self.session_factory: async_sessionmaker[AsyncSession] | None = None
        self._logger = logging.getLogger(__name__)

    async def initialize(self):
        raise NotImplementedError()

    def _make_session_factory(self):
        self.session_factory = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        One session per operation: commit on success, rollback on any error
        """
        if not self.engine:
            await self.initialize()

        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
            finally:
                await session.close()

    async def create_tables(self):
        if not self.engine:
            await self.initialize()

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_tables(self):
        if not self.engine:
            await self.initialize()

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def close(self):
        if self.engine:
            await self.engine.dispose()
            self.engine = None
            self.session_factory = None


class SqliteDatabaseManager(BaseDatabaseManager):
    async def initialize(self):
        path = Path(self.config.db.path)
        path.parent.mkdir(parents=True, exist_ok=True)

        self.engine = create_async_engine(
            url=f"sqlite+aiosqlite:///{path}",
            echo=self.config.db.echo,
        )

        @event.listens_for(self.engine.sync_engine, "connect")
        def _on_connect(dbapi_connection, connection_record):
            # the driver's own deferred BEGIN is disabled, see _on_begin
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        @event.listens_for(self.engine.sync_engine, "begin")
        def _on_begin(conn):
            # take the write lock up front so existence checks and the writes
            # that depend on them see the same database state
            conn.exec_driver_sql("BEGIN IMMEDIATE")

        self._make_session_factory()
        self._logger.debug("SQLite engine initialized at %s", path)


class PostgresDatabaseManager(BaseDatabaseManager):
    async def initialize(self):
        db = self.config.db
        self.engine = create_async_engine(
            url=f"postgresql+asyncpg://{db.user}:{db.password}@{db.host}:{db.port}/{db.name}",
            pool_size=30,
            max_overflow=20,
            pool_pre_ping=True,
            pool_timeout=60,
            pool_recycle=-1,
            echo=db.echo,
        )
        self._make_session_factory()
        self._logger.debug("PostgreSQL engine initialized for %s:%s/%s", db.host, db.port, db.name)


def create_db_manager(config: Config) -> BaseDatabaseManager:
    if config.db.driver == "postgres":
        return PostgresDatabaseManager(config)
    if config.db.driver == "sqlite":
        return SqliteDatabaseManager(config)
    raise ValueError(f"Unsupported database driver: {config.db.driver}")
