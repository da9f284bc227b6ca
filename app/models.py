"""
Database models for the gateway
SQLAlchemy ORM models for the response cache and the rate limit counters
"""
from sqlalchemy import Column, Integer, String, DateTime, JSON, Index
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class CacheEntry(Base):
    """
    One cached upstream response, keyed by its canonical cache key.
    Rows past expires_at are logically absent but are not deleted here.
    """
    __tablename__ = "tmdb_cache"

    key = Column(String, primary_key=True)
    payload = Column(JSON, nullable=False)
    expires_at = Column(DateTime, nullable=False, index=True)
    hit_count = Column(Integer, nullable=False, default=0)

    def __repr__(self):
        return f"<CacheEntry(key='{self.key}', expires_at={self.expires_at}, hits={self.hit_count})>"


class RateWindowState(Base):
    """
    Per (user, endpoint) state row.
    Also the lock row that serializes concurrent checks for the same pair.
    """
    __tablename__ = "rate_limit_state"

    user_id = Column(String, primary_key=True)
    endpoint = Column(String, primary_key=True)
    last_request_at = Column(DateTime, nullable=True)

    def __repr__(self):
        return f"<RateWindowState(user_id='{self.user_id}', endpoint='{self.endpoint}')>"


class RateLimitEvent(Base):
    """One accepted request; minute/hour window counts are derived from these."""
    __tablename__ = "rate_limit_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String, nullable=False)
    endpoint = Column(String, nullable=False)
    created_at = Column(DateTime, nullable=False)

    __table_args__ = (
        Index("ix_rate_limit_events_window", "user_id", "endpoint", "created_at"),
    )


class UsageRecord(Base):
    """Cost attributed to a user after a gated call succeeded."""
    __tablename__ = "ai_usage"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String, nullable=False, index=True)
    endpoint = Column(String, nullable=False)
    cost_units = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False)
