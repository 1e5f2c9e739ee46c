from pydantic import Field, field_validator
from datetime import datetime
from typing import List, Optional

from moviemonday.schemas.base import CamelModel, UserBrief
from moviemonday.schemas.validation import SafeStringMixin


# Category schemas
class CategoryCreate(CamelModel, SafeStringMixin):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    is_public: bool = False
    cover_image_path: Optional[str] = Field(None, max_length=255)

    @field_validator('name')
    @classmethod
    def clean_name(cls, v):
        v = cls.validate_no_script(v.strip())
        if not v:
            raise ValueError("Category name is required")
        return v

    @field_validator('description')
    @classmethod
    def clean_description(cls, v):
        return cls.clean_text(v)


class CategoryUpdate(CamelModel, SafeStringMixin):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    is_public: Optional[bool] = None
    cover_image_path: Optional[str] = Field(None, max_length=255)

    @field_validator('name')
    @classmethod
    def clean_name(cls, v):
        if v is None:
            return v
        return cls.validate_no_script(v.strip()) or None

    @field_validator('description')
    @classmethod
    def clean_description(cls, v):
        return cls.clean_text(v)


class ItemPreview(CamelModel):
    id: int
    tmdb_movie_id: int
    title: str
    poster_path: Optional[str] = None


class WatchlistItemResponse(CamelModel):
    id: int
    category_id: int
    tmdb_movie_id: int
    title: str
    poster_path: Optional[str] = None
    sort_order: int
    added_at: Optional[datetime] = None
    user_note: Optional[str] = None
    user_rating: Optional[float] = None
    watched: bool = False
    watched_date: Optional[datetime] = None
    is_winner: bool = False


class CategoryResponse(CamelModel):
    id: int
    user_id: int
    name: str
    description: Optional[str] = None
    is_public: bool
    slug: Optional[str] = None
    likes_count: int = 0
    cover_image_path: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    movies_count: int = 0
    items: Optional[List[ItemPreview]] = None


class PublicCategoryResponse(CategoryResponse):
    owner: Optional[UserBrief] = None


class CategoryDetailResponse(CategoryResponse):
    items: List[WatchlistItemResponse] = []
    user_has_liked: bool = False
    owner: Optional[UserBrief] = None


class PublicCategoryPage(CamelModel):
    categories: List[PublicCategoryResponse]
    total: int
    offset: int
    limit: int


class FeaturedWatchlists(CamelModel):
    most_liked: List[PublicCategoryResponse]
    newest: List[PublicCategoryResponse]
    most_populated: List[PublicCategoryResponse]


class UserPublicWatchlists(CamelModel):
    username: Optional[str] = None
    watchlists: List[CategoryResponse]


# Item schemas
class ItemCreate(CamelModel, SafeStringMixin):
    tmdb_movie_id: int
    title: str = Field(..., min_length=1, max_length=255)
    poster_path: Optional[str] = Field(None, max_length=255)
    user_note: Optional[str] = Field(None, max_length=2000)
    user_rating: Optional[float] = Field(None, ge=0, le=10)

    @field_validator('user_note')
    @classmethod
    def clean_note(cls, v):
        return cls.clean_text(v)


class ItemUpdate(CamelModel, SafeStringMixin):
    user_note: Optional[str] = Field(None, max_length=2000)
    user_rating: Optional[float] = Field(None, ge=0, le=10)
    watched: Optional[bool] = None
    watched_date: Optional[datetime] = None
    sort_order: Optional[int] = None

    @field_validator('user_note')
    @classmethod
    def clean_note(cls, v):
        return cls.clean_text(v)

    @field_validator('watched', 'sort_order')
    @classmethod
    def not_null(cls, v):
        # Only runs for values present in the body; omitted fields keep their default
        if v is None:
            raise ValueError('Value cannot be null')
        return v


class ReorderEntry(CamelModel):
    id: int
    sort_order: int


class ReorderRequest(CamelModel):
    items: List[ReorderEntry] = Field(..., min_length=1)


class LikeToggleResponse(CamelModel):
    liked: bool
    likes_count: int


class QuickAddRequest(CamelModel):
    tmdb_movie_id: Optional[int] = None
    title: Optional[str] = Field(None, max_length=255)
    poster_path: Optional[str] = Field(None, max_length=255)


class QuickAddResponse(CamelModel):
    message: str
    already_exists: bool
    watchlist_item: WatchlistItemResponse


class MultiAddRequest(CamelModel):
    tmdb_movie_id: int
    title: str = Field(..., min_length=1, max_length=255)
    poster_path: Optional[str] = Field(None, max_length=255)
    category_ids: List[int] = Field(..., min_length=1)


class MultiAddResponse(CamelModel):
    message: str
    added_to: List[int]
    already_in: List[int]
    items: List[WatchlistItemResponse]


class CopyMovieRequest(CamelModel):
    source_item_id: int
    target_category_id: int


class StatusEntry(CamelModel):
    watchlist_id: int
    watchlist_name: str
    item_id: int
    is_default: bool


class MovieWatchlistStatus(CamelModel):
    in_watchlist: bool
    in_default_watchlist: bool = False
    watchlists: List[StatusEntry] = []


class CheckEntry(CamelModel):
    id: int
    name: str
    watchlist_item_id: int


class CheckMovieResponse(CamelModel):
    is_in_watchlist: bool
    categories: List[CheckEntry] = []
