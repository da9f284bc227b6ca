"""
Database connection and setup
SQLAlchemy engine for the cache table and rate limit counters
"""
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from app.models import Base
from config.settings import settings


def build_engine(database_url: str) -> Engine:
    """
    Create an engine for the given URL.

    SQLite needs check_same_thread disabled because FastAPI sync endpoints,
    the bulk worker pool and background writes all share the pool.
    """
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False, "timeout": 30}
    return create_engine(database_url, connect_args=connect_args, echo=False)


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


engine = build_engine(settings.database_url)

# Session factory
SessionLocal = build_session_factory(engine)


def init_db(bind: Engine = engine) -> None:
    """
    Initialize database - create all tables
    Safe to call multiple times (won't recreate existing tables)
    """
    Base.metadata.create_all(bind=bind)
