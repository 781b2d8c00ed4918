"""
Database configuration and session management.

The engine is owned by an explicitly constructed ``Database`` handle. The
API factory and the scheduler runner each build one and hand it to the
components that need storage; nothing in the package creates an engine at
import time.

Usage:
    database = Database(settings.DATABASE_URL)
    database.init()

    with database.session_scope() as db:
        db.add(row)
"""
import logging
import threading
from contextlib import contextmanager
from typing import Generator, Iterator, Optional

from fastapi import Request
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import QueuePool, StaticPool
from tenacity import retry, stop_after_attempt, wait_exponential, before_sleep_log

from app.core.logging import get_logger

logger = get_logger(__name__)


class Database:
    """
    Storage handle owning one engine and its session factory.

    ``init()`` is safe to call from several threads at start-up: the first
    caller builds the engine, later callers reuse it.
    """

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        self.echo = echo
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None
        self._init_lock = threading.Lock()

    def init(self) -> "Database":
        """Create the engine and session factory once."""
        if self._engine is not None:
            return self

        with self._init_lock:
            if self._engine is None:
                engine = create_engine(self.url, **self._engine_options())
                self._session_factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
                self._engine = engine
                logger.info(f"Database engine initialized ({engine.url.get_backend_name()})")
        return self

    def _engine_options(self) -> dict:
        if self.url.startswith("sqlite"):
            options = {
                "connect_args": {"check_same_thread": False},
                "echo": self.echo,
            }
            if ":memory:" in self.url or self.url in ("sqlite://", "sqlite+pysqlite://"):
                # One shared connection so every session sees the same in-memory data
                options["poolclass"] = StaticPool
            return options

        return {
            "poolclass": QueuePool,
            "pool_size": 10,
            "max_overflow": 20,
            "pool_pre_ping": True,  # Verify connections before using
            "echo": self.echo,
        }

    @property
    def initialized(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise RuntimeError("Database.init() has not been called")
        return self._engine

    def session(self) -> Session:
        """Open a new session. The caller is responsible for closing it."""
        if self._session_factory is None:
            raise RuntimeError("Database.init() has not been called")
        return self._session_factory()

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """Session that commits on success and rolls back on error."""
        session = self.session()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def create_all(self) -> None:
        """Create missing tables."""
        from app.models import Base
        # checkfirst=True will only create tables that don't exist
        Base.metadata.create_all(bind=self.engine, checkfirst=True)

    @retry(
        stop=stop_after_attempt(5),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    def ping(self) -> None:
        """Check connectivity, retrying while the database comes up."""
        with self.engine.connect() as connection:
            connection.execute(text("SELECT 1"))

    def dispose(self) -> None:
        if self._engine is not None:
            self._engine.dispose()


def get_db(request: Request) -> Generator[Session, None, None]:
    """
    Dependency that provides a database session from the app's handle.

    Usage in FastAPI:
    ```python
    @router.get("/endpoint")
    def endpoint(db: Session = Depends(get_db)):
        # Use db here
        pass
    ```
    """
    database: Database = request.app.state.database
    db = database.session()
    try:
        yield db
    finally:
        db.close()
