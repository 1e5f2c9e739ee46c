from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from moviemonday.database import get_db
from moviemonday.utils.dependencies import get_current_user
from moviemonday.models.user import User
from moviemonday.schemas.statistics import StatisticsResponse
from moviemonday.services.statistics_service import StatisticsService

router = APIRouter(prefix="/api/statistics", tags=["Statistics"])


@router.get("", response_model=StatisticsResponse)
def get_statistics(db: Session = Depends(get_db)):
    """Site-wide totals: movie mondays, meals shared, cocktails consumed"""
    return StatisticsService.get_statistics(db)


@router.post("/recalculate", response_model=StatisticsResponse)
def recalculate_statistics(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Rebuild every counter from the source tables

    Repair tool; counters are normally kept current as data changes.
    """
    return StatisticsService.recalculate(db)
