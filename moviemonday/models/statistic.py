from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from moviemonday.database import Base

TOTAL_MOVIE_MONDAYS = "totalMovieMondays"
TOTAL_MEALS_SHARED = "totalMealsShared"
TOTAL_COCKTAILS_CONSUMED = "totalCocktailsConsumed"

STATISTIC_KEYS = (TOTAL_MOVIE_MONDAYS, TOTAL_MEALS_SHARED, TOTAL_COCKTAILS_CONSUMED)


class Statistic(Base):
    """Site-wide key/value counter."""
    __tablename__ = "statistics"

    key = Column(String(50), primary_key=True)
    value = Column(Integer, default=0, nullable=False)
    last_updated = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Statistic(key={self.key}, value={self.value})>"
