"""
Rebuild the site statistics from movie mondays and event details

Run this script after importing data or if the counters drift:
    python -m moviemonday.migrations.recalculate_statistics
"""
from typing import Optional

from moviemonday.config import Settings
from moviemonday.database import build_engine, build_session_factory
from moviemonday.services.statistics_service import StatisticsService
import moviemonday.models  # noqa: F401


def recalculate(settings: Optional[Settings] = None) -> dict:
    settings = settings or Settings()
    engine = build_engine(settings)
    db = build_session_factory(engine)()

    print("Recalculating statistics...")
    try:
        totals = StatisticsService.recalculate(db)
        for key, value in totals.items():
            print(f"   - {key}: {value}")
        print("✅ Statistics updated")
        return totals
    except Exception as e:
        print(f"❌ Error recalculating statistics: {e}")
        raise
    finally:
        db.close()
        engine.dispose()


if __name__ == "__main__":
    recalculate()
