import datetime as dt
from datetime import datetime
from pydantic import Field, field_validator
from typing import List, Optional

from moviemonday.schemas.base import CamelModel, UserBrief
from moviemonday.schemas.validation import SafeStringMixin, clean_string_list


# Required fields are checked by the service so a missing one is a 400, not a 422
class MovieMondayCreate(CamelModel):
    date: Optional[str] = None
    group_id: Optional[int] = None


class AddMovieRequest(CamelModel):
    movie_monday_id: Optional[int] = None
    tmdb_movie_id: Optional[int] = None
    title: Optional[str] = Field(None, max_length=255)
    poster_path: Optional[str] = Field(None, max_length=255)


class SetWinnerRequest(CamelModel):
    movie_selection_id: int


class UpdatePickerRequest(CamelModel):
    movie_monday_id: int
    picker_user_id: int


class DatesRequest(CamelModel):
    dates: List[str] = Field(..., max_length=366)


class EventDetailsUpdate(CamelModel, SafeStringMixin):
    meals: List[str] = []
    cocktails: List[str] = []
    desserts: List[str] = []
    notes: Optional[str] = Field(None, max_length=5000)

    @field_validator('meals', 'cocktails', 'desserts', mode='before')
    @classmethod
    def clean_lists(cls, v):
        if v is None:
            return []
        if not isinstance(v, list):
            raise ValueError("Expected a list of strings")
        return clean_string_list(v)

    @field_validator('notes')
    @classmethod
    def clean_notes(cls, v):
        return cls.clean_text(v)


class MovieMondayVisibility(CamelModel, SafeStringMixin):
    is_public: bool
    week_theme: Optional[str] = Field(None, max_length=255)

    @field_validator('week_theme')
    @classmethod
    def clean_theme(cls, v):
        return cls.clean_text(v)


class CastMember(CamelModel):
    actor_id: int
    name: str
    character: Optional[str] = None
    profile_path: Optional[str] = None
    order: Optional[int] = None


class CrewMember(CamelModel):
    person_id: int
    name: str
    job: str
    department: Optional[str] = None
    profile_path: Optional[str] = None


class MovieSelectionResponse(CamelModel):
    id: int
    tmdb_movie_id: int
    title: str
    poster_path: Optional[str] = None
    is_winner: bool
    genres: List[str] = []
    release_year: Optional[int] = None
    cast: List[CastMember] = []
    crew: List[CrewMember] = []

    @field_validator('genres', mode='before')
    @classmethod
    def default_genres(cls, v):
        return v or []


class EventDetailsResponse(CamelModel):
    meals: List[str] = []
    cocktails: List[str] = []
    desserts: List[str] = []
    notes: Optional[str] = None

    @field_validator('meals', 'cocktails', 'desserts', mode='before')
    @classmethod
    def tolerate_legacy_strings(cls, v):
        # Older rows stored comma separated strings
        if isinstance(v, str):
            return [part.strip() for part in v.split(',') if part.strip()]
        return v or []


class MovieMondayResponse(CamelModel):
    id: int
    date: dt.date
    status: str
    group_id: int
    picker_user_id: int
    picker: Optional[UserBrief] = None
    is_public: bool = False
    slug: Optional[str] = None
    week_theme: Optional[str] = None
    likes_count: int = 0
    selections: List[MovieSelectionResponse] = []
    event_details: Optional[EventDetailsResponse] = None


class NotCreatedResponse(CamelModel):
    date: str
    status: str = "not_created"
    selections: List[MovieSelectionResponse] = []


class PublicMovieMondayResponse(CamelModel):
    id: int
    date: dt.date
    status: str
    slug: str
    week_theme: Optional[str] = None
    likes_count: int = 0
    group_name: str
    group_slug: Optional[str] = None
    picker: Optional[UserBrief] = None
    selections: List[MovieSelectionResponse] = []
    event_details: Optional[EventDetailsResponse] = None
    user_has_liked: bool = False


class RemoveMovieResponse(CamelModel):
    message: str
    movie_monday_id: int
    removed_movie_id: int


class LikeToggleResponse(CamelModel):
    liked: bool
    likes_count: int


class WatchLaterCreate(CamelModel):
    tmdb_movie_id: Optional[int] = None
    title: Optional[str] = Field(None, max_length=255)
    poster_path: Optional[str] = Field(None, max_length=255)


class WatchLaterResponse(CamelModel):
    id: int
    tmdb_movie_id: int
    title: str
    poster_path: Optional[str] = None
    watched: bool
    is_winner: bool
    created_at: Optional[datetime] = None


class WatchLaterStatus(CamelModel):
    is_in_watch_later: bool
    id: Optional[int] = None
    watched: Optional[bool] = None
    is_winner: Optional[bool] = None


# Analytics
class RankedStat(CamelModel):
    name: str
    id: Optional[int] = None
    count: int
    wins: int
    win_rate: float


class MonthStat(CamelModel):
    name: str
    value: int
    winners: int


class WinRateStat(CamelModel):
    name: str
    id: int
    selections: int
    wins: int
    win_rate: float
    loss_rate: float


class PickerStat(CamelModel):
    name: str
    id: int
    selections: int
    wins: int
    success_rate: float


class AnalyticsResponse(CamelModel):
    total_movies: int
    genres: List[RankedStat]
    actors: List[RankedStat]
    directors: List[RankedStat]
    monthly_movies: List[MonthStat]
    win_rates: List[WinRateStat]
    pickers: List[PickerStat]
