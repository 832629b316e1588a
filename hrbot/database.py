from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from hrbot.config import settings


def _connect_args(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


engine = create_engine(settings.database_url, connect_args=_connect_args(settings.database_url), pool_pre_ping=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def init_db(bind=None) -> None:
    """Create tables that do not exist yet."""
    from hrbot import models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
