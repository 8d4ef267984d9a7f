import logging

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base

from ragstore import config

logger = logging.getLogger(__name__)

Base = declarative_base()


def create_db_engine(database_url: str = config.DATABASE_URL, echo: bool = False) -> Engine:
    """
    Build an engine for the content store.

    SQLite gets check_same_thread disabled (ingestion writes from worker
    threads), a busy timeout, and PRAGMA foreign_keys=ON so ON DELETE CASCADE
    is enforced.
    """
    connect_args = {}
    is_sqlite = database_url.startswith("sqlite")
    if is_sqlite:
        connect_args = {
            "check_same_thread": False,
            "timeout": config.STORE_TIMEOUT_SECONDS,
        }
    else:
        connect_args = {"connect_timeout": int(config.STORE_TIMEOUT_SECONDS)}

    engine = create_engine(database_url, connect_args=connect_args, echo=echo)

    if is_sqlite:
        @event.listens_for(engine, "connect")
        def _set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def create_session_factory(engine: Engine) -> sessionmaker:
    # Objects returned by the store outlive their session
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def init_db(engine: Engine) -> None:
    """Create all tables. Call once at startup."""
    # Import models so Base.metadata knows about them
    from ragstore.content import models  # noqa: F401
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables ready")


def ping(engine: Engine) -> bool:
    """Return True if the database answers a trivial query."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database connection error: {e}")
        return False
