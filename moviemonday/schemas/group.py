from pydantic import EmailStr, Field, field_validator
import datetime as dt
from datetime import datetime
from typing import List, Optional

from moviemonday.schemas.base import CamelModel, UserBrief
from moviemonday.schemas.validation import SafeStringMixin


class GroupCreate(CamelModel, SafeStringMixin):
    name: str = Field(..., min_length=1, max_length=100)

    @field_validator('name')
    @classmethod
    def clean_name(cls, v):
        v = cls.validate_no_script(v.strip())
        if not v:
            raise ValueError("Group name is required")
        return v


class GroupMember(CamelModel):
    id: int
    username: str
    email: str


class GroupResponse(CamelModel):
    id: int
    name: str
    created_by_id: int
    is_public: bool
    slug: Optional[str] = None
    description: Optional[str] = None
    cover_image_path: Optional[str] = None
    created_at: Optional[datetime] = None
    members: List[GroupMember] = []


class GroupVisibilityUpdate(CamelModel, SafeStringMixin):
    is_public: bool
    description: Optional[str] = Field(None, max_length=1000)
    cover_image_path: Optional[str] = Field(None, max_length=255)

    @field_validator('description')
    @classmethod
    def clean_description(cls, v):
        return cls.clean_text(v)


class InviteLinkResponse(CamelModel):
    invite_token: str
    invite_link: str
    expires_at: datetime


class InvitePreview(CamelModel):
    group_id: int
    group_name: str
    member_count: int
    already_member: bool


class JoinGroupResponse(CamelModel):
    message: str
    group: GroupResponse


class GroupInviteCreate(CamelModel):
    invited_user_email: EmailStr


class GroupBrief(CamelModel):
    id: int
    name: str


class GroupInviteResponse(CamelModel):
    id: int
    group_id: int
    invited_by_id: int
    invited_user_id: int
    status: str
    expires_at: datetime
    created_at: Optional[datetime] = None
    group: Optional[GroupBrief] = None
    invited_by: Optional[UserBrief] = None


class PublicWinner(CamelModel):
    tmdb_movie_id: int
    title: str
    poster_path: Optional[str] = None


class PublicMovieMondaySummary(CamelModel):
    id: int
    date: dt.date
    status: str
    slug: Optional[str] = None
    week_theme: Optional[str] = None
    likes_count: int = 0
    winner: Optional[PublicWinner] = None


class PublicGroupResponse(CamelModel):
    id: int
    name: str
    slug: str
    description: Optional[str] = None
    cover_image_path: Optional[str] = None
    created_at: Optional[datetime] = None
    members: List[UserBrief] = []
    movie_mondays: List[PublicMovieMondaySummary] = []
