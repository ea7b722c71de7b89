import logging
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

# Base class for SQLAlchemy models
Base = declarative_base()


class Database:
    """Owns the engine and session factory for one process.

    Call ``open()`` at startup and ``close()`` at shutdown.
    """

    def __init__(self, url: str):
        self.url = url
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise RuntimeError("Database is not open")
        return self._engine

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    def open(self) -> "Database":
        if self._engine is not None:
            raise RuntimeError("Database is already open")

        if self.url.startswith("sqlite"):
            connect_args = {"check_same_thread": False}
            if ":memory:" in self.url or self.url.rstrip("/") == "sqlite:":
                # A single shared connection, otherwise every session sees its own empty database
                engine = create_engine(self.url, connect_args=connect_args, poolclass=StaticPool)
            else:
                engine = create_engine(self.url, connect_args=connect_args)
        else:
            engine = create_engine(self.url, pool_pre_ping=True)

        # Import models so their tables are registered on Base
        from . import models  # noqa: F401

        Base.metadata.create_all(bind=engine)
        self._engine = engine
        self._session_factory = sessionmaker(
            bind=engine, autoflush=False, expire_on_commit=False
        )
        logger.info(f"Opened database {engine.url.render_as_string(hide_password=True)}")
        return self

    def close(self) -> None:
        if self._engine is None:
            return
        self._engine.dispose()
        self._engine = None
        self._session_factory = None
        logger.info("Closed database")

    def session(self) -> Session:
        if self._session_factory is None:
            raise RuntimeError("Database is not open")
        return self._session_factory()
