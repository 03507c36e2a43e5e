"""Sliding-window rate limiter backed by the database."""
from datetime import datetime, timedelta
from typing import Callable, Optional

from flask import current_app
from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError

from qr_checkin import db
from qr_checkin.models.settings import RateLimitEntry
from qr_checkin.utils.helpers import utcnow


class RateLimiter:
    """Count admitted calls per (identifier, endpoint) over a trailing window.

    Counting and logging are two statements, so concurrent callers can both
    see ``count < limit`` and both be admitted. The overshoot is bounded by
    the number of concurrent callers and is acceptable for abuse throttling.

    If the store is unreachable the limiter fails open: the call is admitted,
    the error is logged and handed to ``on_failure``.
    """

    def __init__(
        self,
        clock: Callable[[], datetime] = utcnow,
        on_failure: Optional[Callable[[Exception], None]] = None
    ):
        self._clock = clock
        self._on_failure = on_failure

    def allow(self, identifier: str, endpoint: str, limit: int, window_seconds: float) -> bool:
        now = self._clock()
        window_start = now - timedelta(seconds=window_seconds)

        try:
            count = db.session.scalar(
                select(func.count(RateLimitEntry.id)).where(
                    RateLimitEntry.identifier == identifier,
                    RateLimitEntry.endpoint == endpoint,
                    RateLimitEntry.created_at > window_start
                )
            )
            if count >= limit:
                return False

            db.session.add(RateLimitEntry(
                identifier=identifier,
                endpoint=endpoint,
                created_at=now
            ))
            db.session.commit()
            return True

        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.exception(
                'Rate limiter store unavailable for %s, admitting request', endpoint
            )
            if self._on_failure is not None:
                self._on_failure(e)
            return True

    def purge(self, older_than_seconds: float) -> int:
        """Delete entries that can no longer fall inside a window."""
        cutoff = self._clock() - timedelta(seconds=older_than_seconds)
        result = db.session.execute(
            delete(RateLimitEntry).where(RateLimitEntry.created_at <= cutoff)
        )
        db.session.commit()
        return result.rowcount
