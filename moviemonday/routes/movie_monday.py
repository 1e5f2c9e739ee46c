from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session
from typing import List, Optional, Union

from moviemonday.database import get_db
from moviemonday.utils.dependencies import get_current_user, get_optional_user
from moviemonday.models.user import User
from moviemonday.schemas.base import MessageResponse
from moviemonday.schemas.movie_monday import (
    MovieMondayCreate,
    AddMovieRequest,
    SetWinnerRequest,
    UpdatePickerRequest,
    DatesRequest,
    EventDetailsUpdate,
    EventDetailsResponse,
    MovieMondayVisibility,
    MovieMondayResponse,
    NotCreatedResponse,
    PublicMovieMondayResponse,
    LikeToggleResponse,
    RemoveMovieResponse,
    WatchLaterCreate,
    WatchLaterResponse,
    WatchLaterStatus,
    AnalyticsResponse,
)
from moviemonday.services.movie_monday_service import MovieMondayService, get_movie_monday_service

router = APIRouter(prefix="/api/movie-monday", tags=["Movie Monday"])


# ==================== LIFECYCLE ====================

@router.post("/create", response_model=MovieMondayResponse, status_code=status.HTTP_201_CREATED)
def create_movie_monday(
    data: MovieMondayCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Schedule a Movie Monday for a group

    - **date**: YYYY-MM-DD (required)
    - **groupId**: Group the caller belongs to (required)

    The caller becomes the picker.
    """
    return MovieMondayService.create(db, current_user, data)


@router.post("/add-movie", response_model=MovieMondayResponse)
def add_movie(
    data: AddMovieRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    service: MovieMondayService = Depends(get_movie_monday_service)
):
    """
    Add a candidate movie (picker only, at most three)

    - **movieMondayId**, **tmdbMovieId**, **title** (required)
    - **posterPath** (optional)
    """
    return service.add_movie(db, current_user, data)


@router.put("/update-picker", response_model=MovieMondayResponse)
def update_picker(
    data: UpdatePickerRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Hand the picker role to another group member"""
    return MovieMondayService.update_picker(db, current_user, data)


@router.post("/dates", response_model=List[MovieMondayResponse])
def get_for_dates(
    data: DatesRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get the caller's Movie Mondays on any of the given dates"""
    return MovieMondayService.list_for_dates(db, current_user, data.dates)


# ==================== COLLECTIONS ====================

@router.get("/all", response_model=List[MovieMondayResponse])
def list_all(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get every Movie Monday across the caller's groups, newest first"""
    return MovieMondayService.list_all(db, current_user)


@router.get("/available", response_model=List[MovieMondayResponse])
def list_available(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get pending and in-progress Movie Mondays"""
    return MovieMondayService.list_available(db, current_user)


@router.get("/analytics", response_model=AnalyticsResponse)
def get_analytics(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Genre, actor, director, month, win-rate and picker aggregates"""
    return MovieMondayService.analytics(db, current_user)


@router.get("/cocktails", response_model=List[str])
def list_cocktails(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return MovieMondayService.distinct_values(db, current_user, "cocktails")


@router.get("/meals", response_model=List[str])
def list_meals(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return MovieMondayService.distinct_values(db, current_user, "meals")


@router.get("/desserts", response_model=List[str])
def list_desserts(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return MovieMondayService.distinct_values(db, current_user, "desserts")


# ==================== WATCH LATER ====================

@router.get("/watch-later", response_model=List[WatchLaterResponse])
def list_watch_later(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get the caller's watch later list"""
    return MovieMondayService.list_watch_later(db, current_user)


@router.post("/watch-later", response_model=WatchLaterResponse, status_code=status.HTTP_201_CREATED)
def add_watch_later(
    data: WatchLaterCreate,
    response: Response,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Add a movie to watch later; an existing entry is returned with 200"""
    entry, created = MovieMondayService.add_watch_later(db, current_user, data)
    if not created:
        response.status_code = status.HTTP_200_OK
    return entry


@router.get("/watch-later/status/{tmdb_movie_id}", response_model=WatchLaterStatus)
def watch_later_status(
    tmdb_movie_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return MovieMondayService.watch_later_status(db, current_user, tmdb_movie_id)


@router.delete("/watch-later/{entry_id}", response_model=MessageResponse)
def remove_watch_later(
    entry_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    MovieMondayService.remove_watch_later(db, current_user, entry_id)
    return {"message": "Removed from watchlist"}


# ==================== PUBLIC PAGES ====================

@router.get("/public/{slug}", response_model=PublicMovieMondayResponse)
def get_public_movie_monday(
    slug: str,
    viewer: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db)
):
    """Get a public Movie Monday page; signed-in viewers see whether they liked it"""
    return MovieMondayService.get_public(db, slug, viewer)


@router.patch("/{movie_monday_id}/visibility", response_model=MovieMondayResponse)
def update_visibility(
    movie_monday_id: int,
    data: MovieMondayVisibility,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Publish or hide a Movie Monday (members only)"""
    return MovieMondayService.update_visibility(db, current_user, movie_monday_id, data)


@router.post("/{movie_monday_id}/like", response_model=LikeToggleResponse)
def toggle_like(
    movie_monday_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Like or unlike a public Movie Monday"""
    return MovieMondayService.toggle_like(db, current_user, movie_monday_id)


# ==================== SINGLE MOVIE MONDAY ====================

@router.post("/{movie_monday_id}/set-winner", response_model=MovieMondayResponse)
def set_winner(
    movie_monday_id: int,
    data: SetWinnerRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Pick the winning selection (picker only)

    - **movieSelectionId**: One of this Movie Monday's selections (required)
    """
    return MovieMondayService.set_winner(db, current_user, movie_monday_id, data.movie_selection_id)


@router.delete("/{movie_monday_id}/movies/{selection_id}", response_model=RemoveMovieResponse)
def remove_movie(
    movie_monday_id: int,
    selection_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Remove a candidate movie"""
    return MovieMondayService.remove_movie(db, current_user, movie_monday_id, selection_id)


@router.post("/{movie_monday_id}/event-details", response_model=EventDetailsResponse)
def save_event_details(
    movie_monday_id: int,
    data: EventDetailsUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Save meals, cocktails, desserts and notes for the night

    Site statistics move by the difference from the previous save.
    """
    return MovieMondayService.save_event_details(db, current_user, movie_monday_id, data)


@router.get("/{date}", response_model=Union[MovieMondayResponse, NotCreatedResponse])
def get_by_date(
    date: str,
    group_id: Optional[int] = Query(None, alias="groupId"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Get the Movie Monday for a date (YYYY-MM-DD, time part ignored)

    - **groupId**: Restrict to one of the caller's groups (optional)

    Returns a `not_created` placeholder when nothing is scheduled.
    """
    return MovieMondayService.get_by_date(db, current_user, date, group_id)
