"""Database configuration and connection setup"""
import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import QueuePool

from app.config.settings import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)


def build_engine(database_url: str):
    """Create an engine for the configured backend (PostgreSQL in production, SQLite in tests)"""
    if database_url.startswith("sqlite"):
        # SQLite connections are shared between the request thread pool workers
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False, "timeout": 15},
            echo=settings.DB_ECHO,
        )

    return create_engine(
        database_url,
        poolclass=QueuePool,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_pre_ping=True,
        echo=settings.DB_ECHO,
    )


# Create database engine with connection pooling
engine = build_engine(settings.DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """Database dependency for FastAPI"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables(bind=None):
    """Create all booking engine tables that do not exist yet"""
    from app.models.base import Base
    import app.models  # noqa: F401  registers every mapped class on Base

    target = bind or engine
    logger.info("Creating booking engine tables...")
    Base.metadata.create_all(bind=target)
    logger.info("Database tables created successfully")


if __name__ == "__main__":
    create_tables()
