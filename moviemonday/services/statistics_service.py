"""
Site-wide counters: totalMovieMondays, totalMealsShared, totalCocktailsConsumed.

Counters move incrementally inside the transaction of the write that causes
them. ``recalculate`` rebuilds them from the source tables and is a repair
tool, not part of normal request handling.
"""
from typing import Any, Dict
import json
import logging

from fastapi import HTTPException, status
from sqlalchemy import func, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from moviemonday.models.movie_monday import MovieMonday, MovieMondayEventDetails
from moviemonday.models.statistic import (
    Statistic,
    STATISTIC_KEYS,
    TOTAL_COCKTAILS_CONSUMED,
    TOTAL_MEALS_SHARED,
    TOTAL_MOVIE_MONDAYS,
)
from moviemonday.utils.dates import utcnow

logger = logging.getLogger(__name__)


def count_entries(value: Any) -> int:
    """
    How many items a meals/cocktails field holds.

    Lists count their length. Older rows may hold a string: a JSON array
    counts its length, any other non-empty value counts as one.
    """
    if not value:
        return 0
    if isinstance(value, list):
        return len(value)
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
        except ValueError:
            return 1 if value.strip() else 0
        if isinstance(parsed, list):
            return len(parsed)
        return 1 if parsed else 0
    return 1


class StatisticsService:

    @staticmethod
    def ensure_keys(db: Session) -> None:
        """Create any missing counter rows at zero."""
        existing = {key for (key,) in db.query(Statistic.key).all()}
        for key in STATISTIC_KEYS:
            if key not in existing:
                db.add(Statistic(key=key, value=0))
        db.commit()

    @staticmethod
    def increment(db: Session, key: str, amount: int = 1) -> None:
        """
        Add ``amount`` (may be negative) to a counter.
        Does not commit; the caller's transaction carries the change.
        """
        if amount == 0:
            return
        result = db.execute(
            update(Statistic)
            .where(Statistic.key == key)
            .values(value=Statistic.value + amount, last_updated=utcnow())
        )
        if result.rowcount == 0:
            db.add(Statistic(key=key, value=max(amount, 0)))
            db.flush()

    @staticmethod
    def get_statistics(db: Session) -> Dict[str, int]:
        values = {key: value for key, value in db.query(Statistic.key, Statistic.value).all()}
        return {
            "total_movie_mondays": values.get(TOTAL_MOVIE_MONDAYS, 0),
            "total_meals_shared": values.get(TOTAL_MEALS_SHARED, 0),
            "total_cocktails_consumed": values.get(TOTAL_COCKTAILS_CONSUMED, 0),
        }

    @classmethod
    def recalculate(cls, db: Session) -> Dict[str, int]:
        """
        Recompute every counter from MovieMondays and event details and write
        them back in one transaction, one upsert per key.
        """
        try:
            totals = {
                TOTAL_MOVIE_MONDAYS: db.query(func.count(MovieMonday.id)).scalar() or 0,
                TOTAL_MEALS_SHARED: 0,
                TOTAL_COCKTAILS_CONSUMED: 0,
            }
            for meals, cocktails in db.query(
                MovieMondayEventDetails.meals, MovieMondayEventDetails.cocktails
            ).yield_per(500):
                totals[TOTAL_MEALS_SHARED] += count_entries(meals)
                totals[TOTAL_COCKTAILS_CONSUMED] += count_entries(cocktails)

            now = utcnow()
            for key, value in totals.items():
                row = db.get(Statistic, key)
                if row is None:
                    db.add(Statistic(key=key, value=value, last_updated=now))
                else:
                    row.value = value
                    row.last_updated = now
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Statistics recalculation failed")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to recalculate statistics",
            )

        logger.info(f"Statistics recalculated: {totals}")
        return cls.get_statistics(db)
