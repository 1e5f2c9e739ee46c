from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session
from typing import List, Optional

from moviemonday.database import get_db
from moviemonday.utils.dependencies import get_current_user, get_optional_user
from moviemonday.models.user import User
from moviemonday.schemas.base import MessageResponse
from moviemonday.schemas.watchlist import (
    CategoryCreate,
    CategoryUpdate,
    CategoryResponse,
    CategoryDetailResponse,
    PublicCategoryResponse,
    PublicCategoryPage,
    FeaturedWatchlists,
    UserPublicWatchlists,
    ItemCreate,
    ItemUpdate,
    WatchlistItemResponse,
    ReorderRequest,
    LikeToggleResponse,
    QuickAddRequest,
    QuickAddResponse,
    MultiAddRequest,
    MultiAddResponse,
    CopyMovieRequest,
    MovieWatchlistStatus,
    CheckMovieResponse,
)
from moviemonday.services.watchlist_service import WatchlistService

router = APIRouter(prefix="/api/watchlists", tags=["Watchlists"])


# ==================== CATEGORIES ====================

@router.get("/categories", response_model=List[CategoryResponse])
def list_categories(
    include_items: bool = Query(False, description="Include up to four preview items"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Get the caller's watchlists

    - **include_items**: Add preview items to each watchlist (default false)
    """
    return WatchlistService.list_categories(db, current_user, include_items)


@router.post("/categories", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
def create_category(
    data: CategoryCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Create a watchlist

    - **name**: Unique among the caller's watchlists (required)
    - **description**, **isPublic**, **coverImagePath** (optional)
    """
    return WatchlistService.create_category(db, current_user, data)


@router.get("/categories/{identifier}", response_model=CategoryDetailResponse)
def get_category(
    identifier: str,
    viewer: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db)
):
    """Get a watchlist with its movies by id or slug"""
    return WatchlistService.get_category(db, identifier, viewer)


@router.put("/categories/{category_id}", response_model=CategoryResponse)
def update_category(
    category_id: int,
    data: CategoryUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Update a watchlist; renaming also changes its slug"""
    return WatchlistService.update_category(db, current_user, category_id, data)


@router.delete("/categories/{category_id}", response_model=MessageResponse)
def delete_category(
    category_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Delete a watchlist (not the caller's last one)"""
    WatchlistService.delete_category(db, current_user, category_id)
    return {"message": "Watchlist category deleted successfully"}


# ==================== ITEMS ====================

@router.post(
    "/categories/{category_id}/movies",
    response_model=WatchlistItemResponse,
    status_code=status.HTTP_201_CREATED
)
def add_item(
    category_id: int,
    data: ItemCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Add a movie at the end of a watchlist"""
    return WatchlistService.add_item(db, current_user, category_id, data)


@router.put("/categories/{category_id}/movies/{item_id}", response_model=WatchlistItemResponse)
def update_item(
    category_id: int,
    item_id: int,
    data: ItemUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Update note, rating, watched state or position of a movie"""
    return WatchlistService.update_item(db, current_user, category_id, item_id, data)


@router.delete("/categories/{category_id}/movies/{item_id}", response_model=MessageResponse)
def remove_item(
    category_id: int,
    item_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    WatchlistService.remove_item(db, current_user, category_id, item_id)
    return {"message": "Movie removed from watchlist successfully"}


@router.post("/categories/{category_id}/reorder", response_model=MessageResponse)
def reorder_items(
    category_id: int,
    data: ReorderRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Reorder movies

    - **items**: List of `{id, sortOrder}`; every id must belong to this watchlist
    """
    WatchlistService.reorder(db, current_user, category_id, data)
    return {"message": "Watchlist order updated successfully"}


# ==================== LIKES & DISCOVERY ====================

@router.post("/categories/{category_id}/like", response_model=LikeToggleResponse)
def toggle_like(
    category_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Like or unlike a public watchlist"""
    return WatchlistService.toggle_like(db, current_user, category_id)


@router.get("/likes", response_model=List[PublicCategoryResponse])
def liked_categories(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get the watchlists the caller has liked"""
    return WatchlistService.liked_categories(db, current_user)


@router.get("/public", response_model=PublicCategoryPage)
def list_public(
    sort: str = Query("popular", pattern="^(popular|latest)$"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db)
):
    """
    Browse public watchlists

    - **sort**: popular (likes) or latest
    - **limit** / **offset**: pagination
    """
    return WatchlistService.list_public(db, sort, limit, offset)


@router.get("/featured", response_model=FeaturedWatchlists)
def featured(db: Session = Depends(get_db)):
    """Most liked, newest and largest public watchlists"""
    return WatchlistService.featured(db)


@router.get("/user/{user_id}/public", response_model=UserPublicWatchlists)
def user_public(user_id: int, db: Session = Depends(get_db)):
    """Get one user's public watchlists"""
    return WatchlistService.user_public(db, user_id)


# ==================== SHORTCUTS ====================

@router.post("/quick-add", response_model=QuickAddResponse, status_code=status.HTTP_201_CREATED)
def quick_add(
    data: QuickAddRequest,
    response: Response,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Add a movie to "My Watchlist"; repeating returns the existing item with 200"""
    item, already_exists = WatchlistService.quick_add(db, current_user, data)
    if already_exists:
        response.status_code = status.HTTP_200_OK
        message = "Movie already in watchlist"
    else:
        message = 'Added to "My Watchlist"'
    return {"message": message, "already_exists": already_exists, "watchlist_item": item}


@router.get("/default", response_model=CategoryResponse)
def get_default(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get the caller's "My Watchlist" with its movie count"""
    return WatchlistService.default_summary(db, current_user)


@router.post("/add-to-watchlists", response_model=MultiAddResponse, status_code=status.HTTP_201_CREATED)
def add_to_watchlists(
    data: MultiAddRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Add one movie to several watchlists at once

    - **tmdbMovieId**, **title** (required), **posterPath** (optional)
    - **categoryIds**: all must belong to the caller
    """
    return WatchlistService.add_to_many(db, current_user, data)


@router.post("/copy-movie", response_model=WatchlistItemResponse, status_code=status.HTTP_201_CREATED)
def copy_movie(
    data: CopyMovieRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Copy a movie with its note and rating into another watchlist"""
    return WatchlistService.copy_movie(db, current_user, data)


@router.get("/status/{tmdb_movie_id}", response_model=MovieWatchlistStatus)
def movie_status(
    tmdb_movie_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Which of the caller's watchlists contain a movie"""
    return WatchlistService.movie_status(db, current_user, tmdb_movie_id)


@router.get("/check-movie/{tmdb_movie_id}", response_model=CheckMovieResponse)
def check_movie(
    tmdb_movie_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return WatchlistService.check_movie(db, current_user, tmdb_movie_id)
