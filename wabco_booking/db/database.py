import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from wabco_booking.config import settings

logger = logging.getLogger(__name__)


def build_engine(url: str, echo: bool = False) -> Engine:
    """Create an engine, applying pool settings only where the dialect pools."""
    if url.startswith("sqlite"):
        return create_engine(
            url,
            echo=echo,
            connect_args={"check_same_thread": False},
        )
    db = settings.database
    return create_engine(
        url,
        echo=echo,
        pool_pre_ping=True,
        pool_size=db.pool_size,
        max_overflow=db.max_overflow,
        pool_recycle=db.pool_recycle,
    )


engine = build_engine(settings.database.url, echo=settings.database.echo)
logger.info("Database engine created for dialect '%s'", engine.dialect.name)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind: Engine = engine) -> None:
    """Create all tables. Safe to call repeatedly."""
    from wabco_booking.db import models  # noqa: F401  registers mappers

    Base.metadata.create_all(bind=bind)
    logger.info("Database schema ensured")
