from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from locallibrary.config import DATABASE_URL
from locallibrary.log import get_logger
from locallibrary.store import RecordStore


logger = get_logger("database")

engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False} if "sqlite" in DATABASE_URL else {},
)

# Records leave the session they were loaded in, so commits must not expire them
SessionLocal = sessionmaker(
    autocommit=False, autoflush=False, expire_on_commit=False, bind=engine
)
Base = declarative_base()

store = RecordStore(SessionLocal)


def init_db():
    """
    Create the catalog tables on application startup.

    Importing models registers every table on Base.metadata before
    create_all() runs.
    """
    from locallibrary import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info("Record store ready at %s", engine.url.render_as_string(hide_password=True))


def dispose_db():
    """Release pooled connections on application shutdown."""
    engine.dispose()
    logger.info("Record store connections released")


def get_store():
    """
    Dependency providing the process-wide record store.

    Each store call opens and closes its own session, so unlike a
    per-request session there is nothing to clean up here.
    """
    return store
