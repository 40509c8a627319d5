# notes_backend/db.py
import logging
import re

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from .config import settings

logger = logging.getLogger("notes.db")


def _mask(url: str) -> str:
    return re.sub(r"://([^:]+):([^@]+)@", r"://\1:***@", url)


def _engine_kwargs(url: str) -> dict:
    if url.startswith("sqlite"):
        # sessions cross the server's worker threads
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}


engine = create_engine(settings.DATABASE_URL, echo=False, future=True, **_engine_kwargs(settings.DATABASE_URL))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)
Base = declarative_base()


def init_db() -> None:
    """Create the chat tables if missing (dev). In prod, use Alembic."""
    from . import models  # noqa: F401  (registers tables on Base)

    logger.info(f"[db] Using DATABASE_URL={_mask(settings.DATABASE_URL)}")
    Base.metadata.create_all(bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
