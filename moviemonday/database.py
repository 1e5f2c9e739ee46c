from fastapi import Request
from sqlalchemy import create_engine, event, pool
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
import logging

from moviemonday.config import Settings

logger = logging.getLogger(__name__)

Base = declarative_base()


def build_engine(settings: Settings) -> Engine:
    """
    Create the SQLAlchemy engine for the configured database.

    SQLite gets a single-file engine usable from FastAPI's worker threads;
    every other backend uses a QueuePool sized from settings.
    """
    if settings.is_sqlite:
        engine = create_engine(
            settings.DATABASE_URL,
            connect_args={"check_same_thread": False},
            echo=settings.DB_ECHO,
        )
    else:
        engine = create_engine(
            settings.DATABASE_URL,
            poolclass=pool.QueuePool,
            pool_size=settings.DB_POOL_SIZE,  # Connections kept open
            max_overflow=settings.DB_MAX_OVERFLOW,  # Extra connections beyond pool_size
            pool_timeout=settings.DB_POOL_TIMEOUT,
            pool_recycle=settings.DB_POOL_RECYCLE,
            pool_pre_ping=True,
            echo=settings.DB_ECHO,
        )

    @event.listens_for(engine, "connect")
    def receive_connect(dbapi_conn, connection_record):
        """Log when a new connection is created"""
        logger.debug("Database connection established")

    return engine


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


# Dependency for FastAPI routes
def get_db(request: Request):
    """
    Database session dependency for FastAPI.
    Opens a session from the app's session factory and always closes it.

    Usage:
        @router.get("/endpoint")
        def endpoint(db: Session = Depends(get_db)):
            # Use db here
    """
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
