"""
Migration script to create all database tables

Run this script to create all database tables:
    python -m moviemonday.migrations.create_all_tables
"""
from typing import Optional

from moviemonday.config import Settings
from moviemonday.database import Base, build_engine, build_session_factory
from moviemonday.services.statistics_service import StatisticsService
import moviemonday.models  # noqa: F401  registers every table on Base.metadata


def create_tables(settings: Optional[Settings] = None):
    """Create all database tables and seed the statistics counters"""
    settings = settings or Settings()
    engine = build_engine(settings)

    print("=" * 60)
    print("Creating all database tables...")
    print("=" * 60)

    try:
        Base.metadata.create_all(bind=engine)

        db = build_session_factory(engine)()
        try:
            StatisticsService.ensure_keys(db)
        finally:
            db.close()

        print("\n✅ All tables created successfully!")
        print("\nTables created:")
        for table in Base.metadata.sorted_tables:
            print(f"   - {table.name}")
        print("=" * 60)

    except Exception as e:
        print(f"\n❌ Error creating tables: {e}")
        import traceback
        traceback.print_exc()
        raise
    finally:
        engine.dispose()


if __name__ == "__main__":
    create_tables()
