"""
Movie Monday lifecycle.

A MovieMonday belongs to one group and one date. Its picker adds up to three
candidate movies (pending -> in-progress on the third) and then picks the
winner (-> completed). Winner selection runs as a single transaction with the
MovieMonday row locked so concurrent picks serialise.
"""
from collections import defaultdict
from typing import Dict, List, Optional
import logging

from fastapi import Depends, HTTPException, status
from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, joinedload, selectinload

from moviemonday.config import Settings, get_settings
from moviemonday.models.group import Group, group_members
from moviemonday.models.movie_monday import (
    MAX_SELECTIONS,
    STATUS_COMPLETED,
    STATUS_IN_PROGRESS,
    STATUS_PENDING,
    MovieCast,
    MovieCrew,
    MovieMonday,
    MovieMondayEventDetails,
    MovieMondayLike,
    MovieSelection,
)
from moviemonday.models.statistic import TOTAL_COCKTAILS_CONSUMED, TOTAL_MEALS_SHARED, TOTAL_MOVIE_MONDAYS
from moviemonday.models.user import User
from moviemonday.models.watchlist import WatchLater, WatchlistCategory, WatchlistItem
from moviemonday.schemas.movie_monday import (
    AddMovieRequest,
    EventDetailsUpdate,
    MovieMondayCreate,
    MovieMondayVisibility,
    UpdatePickerRequest,
    WatchLaterCreate,
)
from moviemonday.services.statistics_service import StatisticsService, count_entries
from moviemonday.services.tmdb_service import TMDBService, get_tmdb_service
from moviemonday.utils.dates import parse_day, utcnow
from moviemonday.utils.slugs import slugify, unique_slug

logger = logging.getLogger(__name__)

OPEN_STATUSES = (STATUS_PENDING, STATUS_IN_PROGRESS)


def _detail_options():
    return (
        joinedload(MovieMonday.picker),
        joinedload(MovieMonday.event_details),
        selectinload(MovieMonday.selections).selectinload(MovieSelection.cast),
        selectinload(MovieMonday.selections).selectinload(MovieSelection.crew),
    )


class MovieMondayService:

    def __init__(self, settings: Settings, tmdb: TMDBService):
        self.settings = settings
        self.tmdb = tmdb

    # ------------------------------------------------------------------ #
    # Lookups
    # ------------------------------------------------------------------ #
    @staticmethod
    def _get_for_member(db: Session, user: User, movie_monday_id: int) -> MovieMonday:
        movie_monday = db.query(MovieMonday).filter(MovieMonday.id == movie_monday_id).first()
        if not movie_monday or not user.is_in_group(movie_monday.group_id):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Movie Monday not found or you do not have access to it",
            )
        return movie_monday

    @staticmethod
    def _lock(db: Session, movie_monday_id: int) -> MovieMonday:
        """Re-read the row with SELECT ... FOR UPDATE for the rest of the transaction."""
        return (
            db.query(MovieMonday)
            .filter(MovieMonday.id == movie_monday_id)
            .with_for_update()
            .populate_existing()
            .one()
        )

    @staticmethod
    def get_detail(db: Session, movie_monday_id: int) -> MovieMonday:
        return (
            db.query(MovieMonday)
            .options(*_detail_options())
            .filter(MovieMonday.id == movie_monday_id)
            .populate_existing()
            .one()
        )

    @staticmethod
    def _group_scope(user: User, group_id: Optional[int]) -> List[int]:
        if group_id is None:
            return user.group_ids
        if not user.is_in_group(group_id):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You are not a member of this group",
            )
        return [group_id]

    # ------------------------------------------------------------------ #
    # Create / candidates / winner
    # ------------------------------------------------------------------ #
    @classmethod
    def create(cls, db: Session, user: User, data: MovieMondayCreate) -> MovieMonday:
        if not data.date or not data.group_id:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Date and groupId are required")
        try:
            day = parse_day(data.date)
        except ValueError:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid date, expected YYYY-MM-DD")

        if not user.is_in_group(data.group_id):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You are not a member of this group")

        conflict = HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="MovieMonday already exists for this date and group",
        )
        existing = db.query(MovieMonday.id).filter(
            MovieMonday.group_id == data.group_id,
            MovieMonday.date == day,
        ).first()
        if existing:
            raise conflict

        movie_monday = MovieMonday(
            date=day,
            group_id=data.group_id,
            picker_user_id=user.id,
            status=STATUS_PENDING,
        )
        db.add(movie_monday)
        try:
            db.flush()
            StatisticsService.increment(db, TOTAL_MOVIE_MONDAYS)
            db.commit()
        except IntegrityError:
            # Lost the race against a concurrent create for the same (group, date)
            db.rollback()
            raise conflict

        logger.info(f"User {user.id} created MovieMonday {movie_monday.id} for group {data.group_id} on {day}")
        return cls.get_detail(db, movie_monday.id)

    def add_movie(self, db: Session, user: User, data: AddMovieRequest) -> MovieMonday:
        if not data.movie_monday_id or not data.tmdb_movie_id or not data.title:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="movieMondayId, tmdbMovieId and title are required",
            )

        movie_monday = self._get_for_member(db, user, data.movie_monday_id)
        if movie_monday.picker_user_id != user.id:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only the assigned picker can add movies")

        # Fetched before taking the row lock; a TMDB failure never blocks the insert
        metadata = self.tmdb.get_selection_metadata(data.tmdb_movie_id)

        try:
            movie_monday = self._lock(db, movie_monday.id)
            selections = db.query(MovieSelection).filter(
                MovieSelection.movie_monday_id == movie_monday.id
            ).all()
            if len(selections) >= MAX_SELECTIONS:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Already has maximum number of movies",
                )
            if any(s.tmdb_movie_id == data.tmdb_movie_id for s in selections):
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="This movie is already a candidate",
                )

            selection = MovieSelection(
                movie_monday_id=movie_monday.id,
                tmdb_movie_id=data.tmdb_movie_id,
                title=data.title,
                poster_path=data.poster_path,
                is_winner=False,
                genres=(metadata or {}).get("genres", []),
                release_year=(metadata or {}).get("release_year"),
            )
            if metadata:
                selection.cast = [MovieCast(**member) for member in metadata["cast"]]
                selection.crew = [MovieCrew(**member) for member in metadata["crew"]]
            db.add(selection)

            if len(selections) + 1 == MAX_SELECTIONS and movie_monday.status == STATUS_PENDING:
                movie_monday.status = STATUS_IN_PROGRESS
            db.commit()
        except HTTPException:
            db.rollback()
            raise
        except IntegrityError:
            db.rollback()
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="This movie is already a candidate")

        return self.get_detail(db, movie_monday.id)

    @classmethod
    def remove_movie(cls, db: Session, user: User, movie_monday_id: int, selection_id: int) -> dict:
        movie_monday = cls._get_for_member(db, user, movie_monday_id)
        selection = db.query(MovieSelection).filter(
            MovieSelection.id == selection_id,
            MovieSelection.movie_monday_id == movie_monday.id,
        ).first()
        if not selection:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Movie selection not found")

        was_winner = selection.is_winner
        db.delete(selection)
        db.flush()
        remaining = db.query(MovieSelection).filter(MovieSelection.movie_monday_id == movie_monday.id).count()
        # A completed evening stays completed while its winner is still a candidate
        if was_winner or remaining == 0:
            movie_monday.status = STATUS_PENDING
        elif movie_monday.status == STATUS_IN_PROGRESS and remaining < MAX_SELECTIONS:
            movie_monday.status = STATUS_PENDING
        db.commit()

        return {
            "message": "Movie selection removed successfully",
            "movie_monday_id": movie_monday.id,
            "removed_movie_id": selection_id,
        }

    @classmethod
    def set_winner(cls, db: Session, user: User, movie_monday_id: int, selection_id: int) -> MovieMonday:
        """
        Clear every sibling's winner flag, flag the chosen selection, complete
        the MovieMonday and mark the movie watched on the group's watchlists.
        All of it commits together or not at all.
        """
        try:
            movie_monday = db.query(MovieMonday).filter(
                MovieMonday.id == movie_monday_id
            ).with_for_update().populate_existing().first()
            if not movie_monday or not user.is_in_group(movie_monday.group_id):
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail="Movie Monday not found or you do not have access to it",
                )
            if movie_monday.picker_user_id != user.id:
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail="Only the assigned picker can select the winner",
                )

            selection = db.query(MovieSelection).filter(
                MovieSelection.id == selection_id,
                MovieSelection.movie_monday_id == movie_monday.id,
            ).first()
            if not selection:
                raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Movie selection not found")

            db.execute(
                update(MovieSelection)
                .where(MovieSelection.movie_monday_id == movie_monday.id)
                .values(is_winner=False)
                .execution_options(synchronize_session=False)
            )
            db.execute(
                update(MovieSelection)
                .where(MovieSelection.id == selection.id)
                .values(is_winner=True)
                .execution_options(synchronize_session=False)
            )
            movie_monday.status = STATUS_COMPLETED

            cls._mark_group_watchlists(db, movie_monday.group_id, selection.tmdb_movie_id)
            db.commit()
        except HTTPException:
            db.rollback()
            raise
        except SQLAlchemyError:
            db.rollback()
            logger.exception(f"Failed to set winner for MovieMonday {movie_monday_id}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to update winner",
            )

        logger.info(f"MovieMonday {movie_monday_id} completed with selection {selection_id}")
        return cls.get_detail(db, movie_monday_id)

    @staticmethod
    def _mark_group_watchlists(db: Session, group_id: int, tmdb_movie_id: int) -> None:
        member_ids = select(group_members.c.user_id).where(
            group_members.c.group_id == group_id
        )
        now = utcnow()
        db.execute(
            update(WatchlistItem)
            .where(
                WatchlistItem.tmdb_movie_id == tmdb_movie_id,
                WatchlistItem.category_id.in_(
                    select(WatchlistCategory.id).where(WatchlistCategory.user_id.in_(member_ids))
                ),
            )
            .values(watched=True, is_winner=True, watched_date=now)
            .execution_options(synchronize_session=False)
        )
        db.execute(
            update(WatchLater)
            .where(WatchLater.tmdb_movie_id == tmdb_movie_id, WatchLater.user_id.in_(member_ids))
            .values(watched=True, is_winner=True)
            .execution_options(synchronize_session=False)
        )

    @classmethod
    def update_picker(cls, db: Session, user: User, data: UpdatePickerRequest) -> MovieMonday:
        movie_monday = cls._get_for_member(db, user, data.movie_monday_id)
        group = db.query(Group).options(selectinload(Group.members)).filter(
            Group.id == movie_monday.group_id
        ).one()
        if not any(member.id == data.picker_user_id for member in group.members):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="The new picker must be a member of the group",
            )
        movie_monday.picker_user_id = data.picker_user_id
        db.commit()
        return cls.get_detail(db, movie_monday.id)

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #
    @classmethod
    def get_by_date(cls, db: Session, user: User, date_str: str, group_id: Optional[int] = None):
        not_created = {"date": date_str, "status": "not_created", "selections": []}
        try:
            day = parse_day(date_str)
        except ValueError:
            logger.warning(f"Invalid date requested: {date_str}")
            return not_created

        group_ids = cls._group_scope(user, group_id)
        if not group_ids:
            return not_created

        movie_monday = (
            db.query(MovieMonday)
            .options(*_detail_options())
            .filter(MovieMonday.group_id.in_(group_ids), MovieMonday.date == day)
            .order_by(MovieMonday.group_id)
            .first()
        )
        return movie_monday or not_created

    @staticmethod
    def list_all(db: Session, user: User) -> List[MovieMonday]:
        if not user.group_ids:
            return []
        return (
            db.query(MovieMonday)
            .options(*_detail_options())
            .filter(MovieMonday.group_id.in_(user.group_ids))
            .order_by(MovieMonday.date.desc())
            .all()
        )

    @staticmethod
    def list_available(db: Session, user: User) -> List[MovieMonday]:
        if not user.group_ids:
            return []
        return (
            db.query(MovieMonday)
            .options(joinedload(MovieMonday.picker), selectinload(MovieMonday.selections))
            .filter(
                MovieMonday.group_id.in_(user.group_ids),
                MovieMonday.status.in_(OPEN_STATUSES),
            )
            .order_by(MovieMonday.date)
            .all()
        )

    @staticmethod
    def list_for_dates(db: Session, user: User, dates: List[str]) -> List[MovieMonday]:
        days = set()
        for value in dates:
            try:
                days.add(parse_day(value))
            except ValueError:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Invalid date: {value}",
                )
        if not days or not user.group_ids:
            return []
        return (
            db.query(MovieMonday)
            .options(*_detail_options())
            .filter(MovieMonday.group_id.in_(user.group_ids), MovieMonday.date.in_(days))
            .order_by(MovieMonday.date)
            .all()
        )

    # ------------------------------------------------------------------ #
    # Event details
    # ------------------------------------------------------------------ #
    @classmethod
    def save_event_details(cls, db: Session, user: User, movie_monday_id: int, data: EventDetailsUpdate):
        movie_monday = cls._get_for_member(db, user, movie_monday_id)
        details = movie_monday.event_details

        old_meals = count_entries(details.meals) if details else 0
        old_cocktails = count_entries(details.cocktails) if details else 0

        if details is None:
            details = MovieMondayEventDetails(movie_monday_id=movie_monday.id, notes=data.notes or "")
            db.add(details)
        elif data.notes:
            details.notes = data.notes
        details.meals = data.meals
        details.cocktails = data.cocktails
        details.desserts = data.desserts

        StatisticsService.increment(db, TOTAL_MEALS_SHARED, len(data.meals) - old_meals)
        StatisticsService.increment(db, TOTAL_COCKTAILS_CONSUMED, len(data.cocktails) - old_cocktails)
        db.commit()
        db.refresh(details)
        return details

    @staticmethod
    def distinct_values(db: Session, user: User, field: str) -> List[str]:
        """Sorted unique meals/cocktails/desserts across the caller's groups."""
        if not user.group_ids:
            return []
        column = getattr(MovieMondayEventDetails, field)
        rows = (
            db.query(column)
            .join(MovieMonday, MovieMonday.id == MovieMondayEventDetails.movie_monday_id)
            .filter(MovieMonday.group_id.in_(user.group_ids))
            .all()
        )

        values = set()
        for (value,) in rows:
            if not value:
                continue
            if isinstance(value, str):
                # Legacy rows hold a comma separated string
                value = value.split(",")
            for entry in value:
                if isinstance(entry, str) and entry.strip():
                    values.add(entry.strip())
        return sorted(values)

    # ------------------------------------------------------------------ #
    # Analytics
    # ------------------------------------------------------------------ #
    @staticmethod
    def analytics(db: Session, user: User) -> dict:
        movie_mondays = []
        if user.group_ids:
            movie_mondays = (
                db.query(MovieMonday)
                .options(
                    joinedload(MovieMonday.picker),
                    selectinload(MovieMonday.selections).selectinload(MovieSelection.cast),
                    selectinload(MovieMonday.selections).selectinload(MovieSelection.crew),
                )
                .filter(MovieMonday.group_id.in_(user.group_ids))
                .all()
            )

        def rate(wins: int, total: int) -> float:
            return (wins / total) * 100 if total > 0 else 0

        total_movies = 0
        genres: Dict[str, dict] = defaultdict(lambda: {"count": 0, "wins": 0})
        actors: Dict[str, dict] = {}
        directors: Dict[str, dict] = {}
        months: Dict[str, dict] = defaultdict(lambda: {"count": 0, "winners": 0})
        win_rates: Dict[str, dict] = {}
        pickers: Dict[str, dict] = {}

        for movie_monday in movie_mondays:
            month = movie_monday.date.strftime("%Y-%m")
            months[month]["count"] += len(movie_monday.selections)

            for movie in movie_monday.selections:
                total_movies += 1
                win = 1 if movie.is_winner else 0
                months[month]["winners"] += win

                for genre in movie.genres or []:
                    genres[genre]["count"] += 1
                    genres[genre]["wins"] += win

                for actor in movie.cast:
                    entry = actors.setdefault(actor.name, {"id": actor.actor_id, "count": 0, "wins": 0})
                    entry["count"] += 1
                    entry["wins"] += win

                for person in movie.crew:
                    if person.job != "Director":
                        continue
                    entry = directors.setdefault(person.name, {"id": person.person_id, "count": 0, "wins": 0})
                    entry["count"] += 1
                    entry["wins"] += win

                entry = win_rates.setdefault(movie.title, {"id": movie.tmdb_movie_id, "selections": 0, "wins": 0})
                entry["selections"] += 1
                entry["wins"] += win

            if movie_monday.picker and movie_monday.selections:
                entry = pickers.setdefault(
                    movie_monday.picker.username, {"id": movie_monday.picker.id, "picks": 0, "wins": 0}
                )
                entry["picks"] += len(movie_monday.selections)
                entry["wins"] += sum(1 for movie in movie_monday.selections if movie.is_winner)

        def ranked(source: Dict[str, dict]) -> List[dict]:
            rows = [
                {
                    "name": name,
                    "id": data.get("id"),
                    "count": data["count"],
                    "wins": data["wins"],
                    "win_rate": rate(data["wins"], data["count"]),
                }
                for name, data in source.items()
            ]
            return sorted(rows, key=lambda row: row["count"], reverse=True)

        return {
            "total_movies": total_movies,
            "genres": ranked(genres),
            "actors": ranked(actors),
            "directors": ranked(directors),
            "monthly_movies": [
                {"name": month, "value": data["count"], "winners": data["winners"]}
                for month, data in sorted(months.items())
            ],
            "win_rates": [
                {
                    "name": title,
                    "id": data["id"],
                    "selections": data["selections"],
                    "wins": data["wins"],
                    "win_rate": rate(data["wins"], data["selections"]),
                    "loss_rate": 100 - rate(data["wins"], data["selections"]) if data["selections"] else 0,
                }
                for title, data in win_rates.items()
            ],
            "pickers": sorted(
                (
                    {
                        "name": name,
                        "id": data["id"],
                        "selections": data["picks"],
                        "wins": data["wins"],
                        "success_rate": rate(data["wins"], data["picks"]),
                    }
                    for name, data in pickers.items()
                ),
                key=lambda row: row["success_rate"],
                reverse=True,
            ),
        }

    # ------------------------------------------------------------------ #
    # Public pages and likes
    # ------------------------------------------------------------------ #
    @classmethod
    def update_visibility(cls, db: Session, user: User, movie_monday_id: int, data: MovieMondayVisibility):
        movie_monday = cls._get_for_member(db, user, movie_monday_id)
        movie_monday.is_public = data.is_public
        if data.week_theme is not None:
            movie_monday.week_theme = data.week_theme or None
        if data.is_public and not movie_monday.slug:
            group = db.get(Group, movie_monday.group_id)
            base = f"{slugify(group.name, 'group')}-{movie_monday.date.isoformat()}"
            movie_monday.slug = unique_slug(db, MovieMonday, base, exclude_id=movie_monday.id)

        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="That public address was just taken, please try again",
            )
        return cls.get_detail(db, movie_monday.id)

    @staticmethod
    def get_public(db: Session, slug: str, viewer: Optional[User] = None) -> dict:
        movie_monday = (
            db.query(MovieMonday)
            .options(*_detail_options(), joinedload(MovieMonday.group))
            .filter(MovieMonday.slug == slug, MovieMonday.is_public.is_(True))
            .first()
        )
        if not movie_monday:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Public Movie Monday not found")

        user_has_liked = False
        if viewer is not None:
            user_has_liked = db.query(MovieMondayLike.id).filter(
                MovieMondayLike.movie_monday_id == movie_monday.id,
                MovieMondayLike.user_id == viewer.id,
            ).first() is not None

        return {
            "id": movie_monday.id,
            "date": movie_monday.date,
            "status": movie_monday.status,
            "slug": movie_monday.slug,
            "week_theme": movie_monday.week_theme,
            "likes_count": movie_monday.likes_count,
            "group_name": movie_monday.group.name,
            "group_slug": movie_monday.group.slug if movie_monday.group.is_public else None,
            "picker": movie_monday.picker,
            "selections": movie_monday.selections,
            "event_details": movie_monday.event_details,
            "user_has_liked": user_has_liked,
        }

    @staticmethod
    def toggle_like(db: Session, user: User, movie_monday_id: int) -> dict:
        movie_monday = db.query(MovieMonday).filter(
            MovieMonday.id == movie_monday_id,
            MovieMonday.is_public.is_(True),
        ).first()
        if not movie_monday:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Public Movie Monday not found")

        like = db.query(MovieMondayLike).filter(
            MovieMondayLike.movie_monday_id == movie_monday.id,
            MovieMondayLike.user_id == user.id,
        ).first()

        counter = MovieMonday.likes_count
        try:
            if like:
                removed = db.execute(
                    delete(MovieMondayLike)
                    .where(MovieMondayLike.id == like.id)
                    .execution_options(synchronize_session=False)
                ).rowcount
                delta, liked = -removed, False
            else:
                db.add(MovieMondayLike(movie_monday_id=movie_monday.id, user_id=user.id))
                db.flush()
                delta, liked = 1, True
            if delta:
                db.execute(
                    update(MovieMonday)
                    .where(MovieMonday.id == movie_monday.id)
                    .values(likes_count=counter + delta)
                    .execution_options(synchronize_session=False)
                )
            db.commit()
        except IntegrityError:
            # A concurrent request already inserted this like
            db.rollback()
            liked = True

        db.refresh(movie_monday)
        return {"liked": liked, "likes_count": movie_monday.likes_count}

    # ------------------------------------------------------------------ #
    # Legacy watch later list
    # ------------------------------------------------------------------ #
    @staticmethod
    def list_watch_later(db: Session, user: User) -> List[WatchLater]:
        return (
            db.query(WatchLater)
            .filter(WatchLater.user_id == user.id)
            .order_by(WatchLater.created_at.desc(), WatchLater.id.desc())
            .all()
        )

    @staticmethod
    def add_watch_later(db: Session, user: User, data: WatchLaterCreate):
        """Returns (row, created)."""
        if not data.tmdb_movie_id or not data.title:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing required fields")

        existing = db.query(WatchLater).filter(
            WatchLater.user_id == user.id,
            WatchLater.tmdb_movie_id == data.tmdb_movie_id,
        ).first()
        if existing:
            return existing, False

        entry = WatchLater(
            user_id=user.id,
            tmdb_movie_id=data.tmdb_movie_id,
            title=data.title,
            poster_path=data.poster_path,
            watched=False,
            is_winner=False,
        )
        db.add(entry)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            existing = db.query(WatchLater).filter(
                WatchLater.user_id == user.id,
                WatchLater.tmdb_movie_id == data.tmdb_movie_id,
            ).one()
            return existing, False
        db.refresh(entry)
        return entry, True

    @staticmethod
    def watch_later_status(db: Session, user: User, tmdb_movie_id: int) -> dict:
        entry = db.query(WatchLater).filter(
            WatchLater.user_id == user.id,
            WatchLater.tmdb_movie_id == tmdb_movie_id,
        ).first()
        if not entry:
            return {"is_in_watch_later": False}
        return {
            "is_in_watch_later": True,
            "id": entry.id,
            "watched": entry.watched,
            "is_winner": entry.is_winner,
        }

    @staticmethod
    def remove_watch_later(db: Session, user: User, entry_id: int) -> None:
        entry = db.query(WatchLater).filter(
            WatchLater.id == entry_id,
            WatchLater.user_id == user.id,
        ).first()
        if not entry:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Item not found in your watchlist")
        db.delete(entry)
        db.commit()


def get_movie_monday_service(
    settings: Settings = Depends(get_settings),
    tmdb: TMDBService = Depends(get_tmdb_service),
) -> MovieMondayService:
    return MovieMondayService(settings, tmdb)
