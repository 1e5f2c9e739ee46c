"""
Import all models to ensure they are registered with SQLAlchemy
"""
from moviemonday.models.user import User
from moviemonday.models.group import Group, GroupInvite, group_members
from moviemonday.models.movie_monday import (
    MovieMonday,
    MovieSelection,
    MovieCast,
    MovieCrew,
    MovieMondayEventDetails,
    MovieMondayLike,
)
from moviemonday.models.watchlist import WatchLater, WatchlistCategory, WatchlistItem, WatchlistLike
from moviemonday.models.comment import CommentSection, Comment, CommentVote, CommentReport
from moviemonday.models.statistic import Statistic

__all__ = [
    "User",
    "Group",
    "GroupInvite",
    "group_members",
    "MovieMonday",
    "MovieSelection",
    "MovieCast",
    "MovieCrew",
    "MovieMondayEventDetails",
    "MovieMondayLike",
    "WatchLater",
    "WatchlistCategory",
    "WatchlistItem",
    "WatchlistLike",
    "CommentSection",
    "Comment",
    "CommentVote",
    "CommentReport",
    "Statistic",
]
