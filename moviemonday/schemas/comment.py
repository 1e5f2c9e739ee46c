"""
Comment schemas.

A comment thread hangs off one of three kinds of content. Inside the
application the target is a tagged union keyed by ``kind``; storage keeps
the flat (content_type, content_id) pair.
"""
from pydantic import Field, TypeAdapter, ValidationError, field_validator
from datetime import datetime
from typing import Annotated, List, Literal, Optional, Tuple, Union

from moviemonday.schemas.base import CamelModel, UserBrief
from moviemonday.schemas.validation import SafeStringMixin


class MovieTarget(CamelModel):
    kind: Literal["movie"] = "movie"
    tmdb_movie_id: int = Field(..., gt=0)

    @property
    def storage_key(self) -> Tuple[str, int]:
        return self.kind, self.tmdb_movie_id


class WatchlistTarget(CamelModel):
    kind: Literal["watchlist"] = "watchlist"
    category_id: int = Field(..., gt=0)

    @property
    def storage_key(self) -> Tuple[str, int]:
        return self.kind, self.category_id


class MovieMondayTarget(CamelModel):
    kind: Literal["moviemonday"] = "moviemonday"
    movie_monday_id: int = Field(..., gt=0)

    @property
    def storage_key(self) -> Tuple[str, int]:
        return self.kind, self.movie_monday_id


ContentTarget = Annotated[
    Union[MovieTarget, WatchlistTarget, MovieMondayTarget],
    Field(discriminator="kind"),
]

_ID_FIELDS = {
    "movie": "tmdb_movie_id",
    "watchlist": "category_id",
    "moviemonday": "movie_monday_id",
}
_target_adapter = TypeAdapter(ContentTarget)


def target_from_path(content_type: str, content_id: int):
    """
    Build the typed target for a ``/content/{type}/{id}`` path.
    Raises ValueError for unknown content types or ids.
    """
    id_field = _ID_FIELDS.get(content_type)
    if id_field is None:
        raise ValueError(f"Unknown content type: {content_type}")
    try:
        return _target_adapter.validate_python({"kind": content_type, id_field: content_id})
    except ValidationError as exc:
        raise ValueError(str(exc)) from exc


# Requests
class CommentCreate(CamelModel, SafeStringMixin):
    content: str
    parent_comment_id: Optional[int] = None

    @field_validator('content')
    @classmethod
    def clean_content(cls, v):
        return cls.clean_text(v)


class CommentUpdate(CamelModel, SafeStringMixin):
    content: str

    @field_validator('content')
    @classmethod
    def clean_content(cls, v):
        return cls.clean_text(v)


class VoteRequest(CamelModel):
    vote_type: Literal["upvote", "downvote"]


class ReportRequest(CamelModel, SafeStringMixin):
    reason: Literal["spam", "harassment", "inappropriate", "other"]
    description: Optional[str] = Field(None, max_length=500)

    @field_validator('description')
    @classmethod
    def clean_description(cls, v):
        return cls.clean_text(v)


# Responses
class CommentResponse(CamelModel):
    id: int
    comment_section_id: int
    user_id: int
    parent_comment_id: Optional[int] = None
    content: str
    upvotes: int
    downvotes: int
    vote_score: int
    reply_count: int
    depth: int
    is_deleted: bool
    is_edited: bool
    edited_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    author: Optional[UserBrief] = None
    user_vote: Optional[str] = None


class CommentThread(CommentResponse):
    replies: List[CommentResponse] = []
    has_more_replies: bool = False


class CommentPage(CamelModel):
    comments: List[CommentThread]
    total_comments: int
    has_more: bool
    current_page: int
    total_pages: int
    sort: str


class ReplyPage(CamelModel):
    replies: List[CommentResponse]
    total_replies: int
    has_more: bool
    current_page: int
    total_pages: int


class VoteResponse(CamelModel):
    message: str
    upvotes: int
    downvotes: int
    vote_score: int
    user_vote: Optional[str] = None
