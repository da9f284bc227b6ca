"""
SQL backing store for the rate limiter.

check() is a single transaction: it locks the (user, endpoint) state row
first, then counts, decides and records. Two near-simultaneous requests for
the same pair are serialized on that lock, so they can never both pass
against a counter the other has not yet updated.
"""
import logging
import math
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from app.cache.store import upsert_statement
from app.models import RateLimitEvent, RateWindowState, UsageRecord
from app.utils.helpers import utcnow

logger = logging.getLogger("ratelimit.backend")

MINUTE = timedelta(minutes=1)
HOUR = timedelta(hours=1)


class RateLimitBackendError(Exception):
    """The backing store could not answer a check or record call."""


def _wait_until(moment: datetime, now: datetime) -> int:
    """Whole seconds from now until moment, at least 1."""
    return max(1, math.ceil((moment - now).total_seconds()))


class SqlRateLimitBackend:
    """
    Atomic check-and-record on the rate_limit_* tables.

    Returns the same shape as the storage-side contract:
        {"allowed", "reason", "wait_seconds", "requests_remaining"}
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        now_fn: Optional[Callable[[], datetime]] = None,
    ):
        self._session_factory = session_factory
        self._now = now_fn or utcnow

    def check(
        self,
        user_id: str,
        endpoint: str,
        max_per_minute: int,
        max_per_hour: int,
        min_interval_seconds: int,
    ) -> Dict[str, Any]:
        """
        Decide and, when allowed, record one request in the same transaction.

        Raises:
            RateLimitBackendError: storage unavailable or schema mismatch
        """
        now = self._now()
        try:
            with self._session_factory() as session:
                # Write lock first: SQLite takes the database write lock on
                # this INSERT, PostgreSQL takes the row lock on FOR UPDATE.
                session.execute(
                    upsert_statement(
                        session,
                        RateWindowState,
                        values={"user_id": user_id, "endpoint": endpoint, "last_request_at": None},
                        index_elements=["user_id", "endpoint"],
                        update_columns=[],
                    )
                )
                state = session.execute(
                    select(RateWindowState)
                    .where(
                        RateWindowState.user_id == user_id,
                        RateWindowState.endpoint == endpoint,
                    )
                    .with_for_update()
                ).scalar_one()

                events = (
                    RateLimitEvent.user_id == user_id,
                    RateLimitEvent.endpoint == endpoint,
                )
                session.execute(
                    delete(RateLimitEvent).where(*events, RateLimitEvent.created_at <= now - HOUR)
                )

                minute_count, oldest_in_minute = session.execute(
                    select(func.count(), func.min(RateLimitEvent.created_at))
                    .where(*events, RateLimitEvent.created_at > now - MINUTE)
                ).one()
                hour_count, oldest_in_hour = session.execute(
                    select(func.count(), func.min(RateLimitEvent.created_at))
                    .where(*events, RateLimitEvent.created_at > now - HOUR)
                ).one()

                decision = self._decide(
                    now,
                    state.last_request_at,
                    minute_count,
                    oldest_in_minute,
                    hour_count,
                    oldest_in_hour,
                    max_per_minute,
                    max_per_hour,
                    min_interval_seconds,
                )

                if decision["allowed"]:
                    session.add(RateLimitEvent(user_id=user_id, endpoint=endpoint, created_at=now))
                    state.last_request_at = now
                session.commit()
        except SQLAlchemyError as e:
            raise RateLimitBackendError(str(e)) from e

        return decision

    @staticmethod
    def _decide(
        now: datetime,
        last_request_at: Optional[datetime],
        minute_count: int,
        oldest_in_minute: Optional[datetime],
        hour_count: int,
        oldest_in_hour: Optional[datetime],
        max_per_minute: int,
        max_per_hour: int,
        min_interval_seconds: int,
    ) -> Dict[str, Any]:
        # Most specific reason first: interval, then minute cap, then hour cap
        if last_request_at is not None and min_interval_seconds > 0:
            next_allowed = last_request_at + timedelta(seconds=min_interval_seconds)
            if now < next_allowed:
                return {
                    "allowed": False,
                    "reason": "too_fast",
                    "wait_seconds": _wait_until(next_allowed, now),
                    "requests_remaining": 0,
                }

        if minute_count >= max_per_minute:
            return {
                "allowed": False,
                "reason": "minute_limit",
                "wait_seconds": _wait_until(oldest_in_minute + MINUTE, now) if oldest_in_minute else 60,
                "requests_remaining": 0,
            }

        if hour_count >= max_per_hour:
            return {
                "allowed": False,
                "reason": "hour_limit",
                "wait_seconds": _wait_until(oldest_in_hour + HOUR, now) if oldest_in_hour else 3600,
                "requests_remaining": 0,
            }

        remaining = min(max_per_minute - minute_count - 1, max_per_hour - hour_count - 1)
        return {
            "allowed": True,
            "reason": None,
            "wait_seconds": 0,
            "requests_remaining": max(0, remaining),
        }

    def record(self, user_id: str, endpoint: str, cost_units: int = 0) -> None:
        """
        Attribute cost to a user after the gated call succeeded.

        Raises:
            RateLimitBackendError: storage unavailable
        """
        try:
            with self._session_factory() as session:
                session.add(
                    UsageRecord(
                        user_id=user_id,
                        endpoint=endpoint,
                        cost_units=cost_units,
                        created_at=self._now(),
                    )
                )
                session.commit()
        except SQLAlchemyError as e:
            raise RateLimitBackendError(str(e)) from e

    def usage_total(self, user_id: str, endpoint: Optional[str] = None) -> int:
        """Sum of recorded cost units for a user (optionally one endpoint)."""
        query = select(func.coalesce(func.sum(UsageRecord.cost_units), 0)).where(
            UsageRecord.user_id == user_id
        )
        if endpoint:
            query = query.where(UsageRecord.endpoint == endpoint)
        try:
            with self._session_factory() as session:
                return int(session.scalar(query) or 0)
        except SQLAlchemyError as e:
            raise RateLimitBackendError(str(e)) from e
