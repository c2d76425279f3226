# DEPENDENCIES
import sys
from pathlib import Path
from typing import Optional
from typing import Iterator
from sqlalchemy import create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool
from contextlib import contextmanager
from sqlalchemy.orm import sessionmaker
from sqlalchemy.orm import declarative_base

# Add parent directory to path for imports
sys.path.append(str(Path(__file__).parent.parent))

from utils.logger import log_info
from utils.logger import log_error
from config.settings import settings


# Base class
Base = declarative_base()


class DatabaseManager:
    """
    Engine and session factory for the rule, feedback, weights and analysis tables
    """
    def __init__(self, database_url: Optional[str] = None, echo: Optional[bool] = None):
        self.database_url = database_url or settings.DATABASE_URL
        echo              = settings.DATABASE_ECHO if (echo is None) else echo
        engine_kwargs     = {"echo": echo}

        if self.database_url.startswith("sqlite"):
            engine_kwargs["connect_args"] = {"check_same_thread": False}

            # In-memory databases live in one connection, shared across threads
            if (":memory:" in self.database_url) or (self.database_url in ("sqlite://", "sqlite:///")):
                engine_kwargs["poolclass"] = StaticPool

        else:
            engine_kwargs["pool_pre_ping"] = True

        self.engine        = create_engine(self.database_url, **engine_kwargs)
        self.SessionLocal  = sessionmaker(autocommit = False, autoflush = False, bind = self.engine, expire_on_commit = False)

        log_info("DatabaseManager initialized", database_url = self._safe_url())


    def _safe_url(self) -> str:
        # Hide credentials in logs
        return self.engine.url.render_as_string(hide_password = True)


    def init_db(self):
        """
        Initialize database - create all tables
        """
        # Register the models on Base before create_all
        from database import models  # noqa: F401

        Base.metadata.create_all(bind = self.engine)
        log_info("Database initialized successfully", tables = sorted(Base.metadata.tables.keys()))


    def drop_db(self):
        """
        Drop all tables - use with caution!
        """
        Base.metadata.drop_all(bind = self.engine)
        log_info("All tables dropped")


    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """
        Transactional scope: commit on success, roll back and re-raise on error
        """
        session = self.SessionLocal()

        try:
            yield session
            session.commit()

        except Exception as e:
            session.rollback()
            log_error(e, context = {"component" : "DatabaseManager", "operation" : "session_scope"})
            raise

        finally:
            session.close()


    def get_db(self) -> Iterator[Session]:
        """
        Session dependency for FastAPI routes
        """
        session = self.SessionLocal()

        try:
            yield session

        finally:
            session.close()


    def dispose(self):
        self.engine.dispose()
