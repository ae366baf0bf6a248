# src/storage/database.py
# Engine and session management for the relational backend
# =========================================================

"""
Owns the SQLAlchemy engine and session factory used by ``SqlRecordStore``.

Any SQLAlchemy URL works; SQLite is the default and gets foreign keys
switched on so that deleting a publication cascades to its articles.
"""

from contextlib import contextmanager
from pathlib import Path
from typing import Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from config.settings import STORAGE_CONFIG
from src.utils.logger import get_logger

from .models import create_all_tables


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):  # pragma: no cover - driver hook
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class DatabaseManager:
    """Engine, schema and session lifecycle for one database URL."""

    def __init__(self, database_url: Optional[str] = None, *, echo: bool = False):
        self.database_url = database_url or STORAGE_CONFIG["database_url"]
        self.logger = get_logger().create_module_logger("storage.database")
        self.engine: Engine = self._create_engine(self.database_url, echo)
        self.SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            bind=self.engine,
            expire_on_commit=False,
        )
        create_all_tables(self.engine)
        self.logger.info(
            {
                "event": "database.ready",
                "details": {"backend": self.engine.dialect.name},
            }
        )

    @staticmethod
    def _create_engine(database_url: str, echo: bool) -> Engine:
        if database_url.startswith("sqlite"):
            path = database_url.split("sqlite:///", 1)[-1]
            if path and path != ":memory:" and "sqlite:///" in database_url:
                Path(path).parent.mkdir(parents=True, exist_ok=True)
            engine = create_engine(
                database_url,
                echo=echo,
                connect_args={"check_same_thread": False, "timeout": 20},
                pool_pre_ping=True,
            )
            event.listen(engine, "connect", _enable_sqlite_foreign_keys)
            return engine
        return create_engine(
            database_url,
            echo=echo,
            pool_size=5,
            max_overflow=10,
            pool_pre_ping=True,
        )

    @contextmanager
    def get_session(self):
        """
        Transactional session scope.

        Usage:
            with db_manager.get_session() as session:
                session.query(Publication).all()
        """
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception as exc:
            session.rollback()
            self.logger.error(
                {"event": "database.session.failed", "details": {"error": str(exc)}}
            )
            raise
        finally:
            session.close()

    def dispose(self) -> None:
        self.engine.dispose()


__all__ = ["DatabaseManager"]
