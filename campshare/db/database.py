from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool
import logging

# Get logger
logger = logging.getLogger(__name__)

Base = declarative_base()


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ignores ON DELETE CASCADE unless this is set per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """
    Owns the engine and session factory for one database URL.

    Built once per process and handed to the API, so nothing reaches for a module-level client.
    """

    def __init__(self, url, echo=False):
        self.url = url
        engine_kwargs = {"echo": echo}
        is_sqlite = url.startswith("sqlite")

        if is_sqlite:
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if url in ("sqlite://", "sqlite:///:memory:"):
                # In-memory databases only live as long as their single connection
                engine_kwargs["poolclass"] = StaticPool

        self.engine = create_engine(url, **engine_kwargs)
        if is_sqlite:
            event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)

        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    def create_tables(self):
        # Import here so every table is registered on Base.metadata
        from campshare.db import models  # noqa: F401

        try:
            Base.metadata.create_all(bind=self.engine)
            logger.info("Database tables created (if they didn't exist previously).")
        except Exception as e:
            logger.error(f"Error creating database tables: {e}")
            raise

    def session(self):
        return self.SessionLocal()

    def dispose(self):
        self.engine.dispose()
