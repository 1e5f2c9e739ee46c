"""
Threaded comments with voting and reports.

Every thread hangs off a CommentSection identified by (content_type,
content_id). Sections are created lazily on the first comment. Counters on
sections and comments (total_comments, reply_count, upvotes, downvotes,
vote_score) move with SQL-side increments in the same transaction as the
row that changes them.
"""
from datetime import timedelta
from math import ceil
from typing import Dict, Iterable, Optional, Union
import logging

from fastapi import Depends, HTTPException, status
from sqlalchemy import delete, func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from moviemonday.config import Settings, get_settings
from moviemonday.models.comment import (
    DELETED_PLACEHOLDER,
    Comment,
    CommentReport,
    CommentSection,
    CommentVote,
)
from moviemonday.models.movie_monday import MovieMonday
from moviemonday.models.user import User
from moviemonday.models.watchlist import WatchlistCategory
from moviemonday.schemas.comment import (
    CommentCreate,
    CommentUpdate,
    MovieMondayTarget,
    MovieTarget,
    ReportRequest,
    WatchlistTarget,
)
from moviemonday.schemas.validation import validate_pagination
from moviemonday.utils.dates import ensure_aware, utcnow

logger = logging.getLogger(__name__)

MIN_LENGTH = 10
MAX_LENGTH = 1000
REPLY_PREVIEW = 3
SORT_ORDERS = ("top", "new", "controversial")

Target = Union[MovieTarget, WatchlistTarget, MovieMondayTarget]


def _order_for(sort: str):
    if sort == "new":
        return (Comment.created_at.desc(), Comment.id.desc())
    if sort == "controversial":
        return (
            (Comment.upvotes + Comment.downvotes).desc(),
            func.abs(Comment.upvotes - Comment.downvotes).asc(),
            Comment.id.desc(),
        )
    return (Comment.vote_score.desc(), Comment.created_at.desc(), Comment.id.desc())


def _serialize(comment: Comment, user_votes: Dict[int, str]) -> dict:
    return {
        "id": comment.id,
        "comment_section_id": comment.comment_section_id,
        "user_id": comment.user_id,
        "parent_comment_id": comment.parent_comment_id,
        "content": comment.content,
        "upvotes": comment.upvotes,
        "downvotes": comment.downvotes,
        "vote_score": comment.vote_score,
        "reply_count": comment.reply_count,
        "depth": comment.depth,
        "is_deleted": comment.is_deleted,
        "is_edited": comment.is_edited,
        "edited_at": comment.edited_at,
        "created_at": comment.created_at,
        "author": comment.author,
        "user_vote": user_votes.get(comment.id),
    }


class CommentService:

    def __init__(self, settings: Settings):
        self.settings = settings

    # ------------------------------------------------------------------ #
    # Targets and sections
    # ------------------------------------------------------------------ #
    @staticmethod
    def _check_target(db: Session, target: Target, viewer: Optional[User]) -> None:
        """Watchlist and movie monday targets must exist; private watchlists are owner-only."""
        if isinstance(target, WatchlistTarget):
            category = db.get(WatchlistCategory, target.category_id)
            if category is None:
                raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Watchlist not found")
            if not category.is_public and (viewer is None or viewer.id != category.user_id):
                raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="This watchlist is private")
        elif isinstance(target, MovieMondayTarget):
            if db.get(MovieMonday, target.movie_monday_id) is None:
                raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Movie Monday not found")

    @staticmethod
    def _find_section(db: Session, target: Target) -> Optional[CommentSection]:
        content_type, content_id = target.storage_key
        return db.query(CommentSection).filter(
            CommentSection.content_type == content_type,
            CommentSection.content_id == content_id,
        ).first()

    @classmethod
    def _get_or_create_section(cls, db: Session, target: Target) -> CommentSection:
        section = cls._find_section(db, target)
        if section:
            return section

        content_type, content_id = target.storage_key
        section = CommentSection(content_type=content_type, content_id=content_id, total_comments=0)
        db.add(section)
        try:
            db.commit()
        except IntegrityError:
            # Another request created it first
            db.rollback()
            section = cls._find_section(db, target)
        return section

    @staticmethod
    def _get_comment(db: Session, comment_id: int, include_deleted: bool = False) -> Comment:
        query = db.query(Comment).filter(Comment.id == comment_id)
        if not include_deleted:
            query = query.filter(Comment.is_deleted.is_(False))
        comment = query.first()
        if not comment:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Comment not found")
        return comment

    @staticmethod
    def _votes_by(db: Session, viewer: Optional[User], comment_ids: Iterable[int]) -> Dict[int, str]:
        ids = list(comment_ids)
        if viewer is None or not ids:
            return {}
        rows = db.query(CommentVote.comment_id, CommentVote.vote_type).filter(
            CommentVote.user_id == viewer.id,
            CommentVote.comment_id.in_(ids),
        )
        return dict(rows)

    @staticmethod
    def _validate_length(content: Optional[str]) -> str:
        content = (content or "").strip()
        if len(content) < MIN_LENGTH:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Comment must be at least {MIN_LENGTH} characters long",
            )
        if len(content) > MAX_LENGTH:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Comment cannot exceed {MAX_LENGTH} characters",
            )
        return content

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #
    def list_comments(
        self,
        db: Session,
        target: Target,
        viewer: Optional[User],
        page: int = 1,
        limit: int = 20,
        sort: str = "top",
    ) -> dict:
        """Top-level comments for a target, each with its first few replies."""
        self._check_target(db, target, viewer)
        page, limit = validate_pagination(page, limit)
        if sort not in SORT_ORDERS:
            sort = "top"

        section = self._find_section(db, target)
        if section is None:
            return {
                "comments": [],
                "total_comments": 0,
                "has_more": False,
                "current_page": 1,
                "total_pages": 0,
                "sort": sort,
            }

        visible = db.query(Comment).filter(
            Comment.comment_section_id == section.id,
            Comment.parent_comment_id.is_(None),
            Comment.is_deleted.is_(False),
            Comment.is_hidden.is_(False),
        )
        count = visible.count()
        comments = (
            visible.options(joinedload(Comment.author))
            .order_by(*_order_for(sort))
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )

        replies_by_parent = {}
        for comment in comments:
            replies_by_parent[comment.id] = (
                db.query(Comment)
                .options(joinedload(Comment.author))
                .filter(
                    Comment.parent_comment_id == comment.id,
                    Comment.is_deleted.is_(False),
                    Comment.is_hidden.is_(False),
                )
                .order_by(Comment.vote_score.desc(), Comment.created_at.asc(), Comment.id.asc())
                .limit(REPLY_PREVIEW)
                .all()
            )

        all_ids = [c.id for c in comments] + [r.id for rs in replies_by_parent.values() for r in rs]
        user_votes = self._votes_by(db, viewer, all_ids)

        threads = []
        for comment in comments:
            data = _serialize(comment, user_votes)
            data["replies"] = [_serialize(reply, user_votes) for reply in replies_by_parent[comment.id]]
            data["has_more_replies"] = comment.reply_count > REPLY_PREVIEW
            threads.append(data)

        total_pages = ceil(count / limit)
        return {
            "comments": threads,
            "total_comments": section.total_comments,
            "has_more": page < total_pages,
            "current_page": page,
            "total_pages": total_pages,
            "sort": sort,
        }

    def list_replies(self, db: Session, comment_id: int, viewer: Optional[User], page: int = 1, limit: int = 10) -> dict:
        page, limit = validate_pagination(page, limit)
        visible = db.query(Comment).filter(
            Comment.parent_comment_id == comment_id,
            Comment.is_deleted.is_(False),
            Comment.is_hidden.is_(False),
        )
        count = visible.count()
        replies = (
            visible.options(joinedload(Comment.author))
            .order_by(Comment.vote_score.desc(), Comment.created_at.asc(), Comment.id.asc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        user_votes = self._votes_by(db, viewer, (r.id for r in replies))

        total_pages = ceil(count / limit)
        return {
            "replies": [_serialize(reply, user_votes) for reply in replies],
            "total_replies": count,
            "has_more": page < total_pages,
            "current_page": page,
            "total_pages": total_pages,
        }

    # ------------------------------------------------------------------ #
    # Writes
    # ------------------------------------------------------------------ #
    def create_comment(self, db: Session, user: User, target: Target, data: CommentCreate) -> dict:
        """Post a top-level comment or a reply."""
        content = self._validate_length(data.content)
        self._check_target(db, target, user)

        min_age = timedelta(hours=self.settings.COMMENT_MIN_ACCOUNT_AGE_HOURS)
        if user.created_at is not None and utcnow() - ensure_aware(user.created_at) < min_age:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Account must be at least {self.settings.COMMENT_MIN_ACCOUNT_AGE_HOURS} hours old to comment",
            )

        section = self._get_or_create_section(db, target)

        depth = 0
        parent = None
        if data.parent_comment_id:
            parent = db.query(Comment).filter(
                Comment.id == data.parent_comment_id,
                Comment.comment_section_id == section.id,
                Comment.is_deleted.is_(False),
            ).first()
            if not parent:
                raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Parent comment not found")
            depth = parent.depth + 1
            if depth > self.settings.COMMENT_MAX_DEPTH:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Maximum reply depth exceeded")

        comment = Comment(
            comment_section_id=section.id,
            user_id=user.id,
            parent_comment_id=parent.id if parent else None,
            content=content,
            depth=depth,
        )
        db.add(comment)
        db.execute(
            update(CommentSection)
            .where(CommentSection.id == section.id)
            .values(total_comments=CommentSection.total_comments + 1)
            .execution_options(synchronize_session=False)
        )
        if parent is not None:
            db.execute(
                update(Comment)
                .where(Comment.id == parent.id)
                .values(reply_count=Comment.reply_count + 1)
                .execution_options(synchronize_session=False)
            )
        db.commit()
        db.refresh(comment)

        logger.info(f"User {user.id} commented on {section.content_type}:{section.content_id}")
        return _serialize(comment, {})

    def update_comment(self, db: Session, user: User, comment_id: int, data: CommentUpdate) -> dict:
        content = self._validate_length(data.content)
        comment = self._get_comment(db, comment_id)
        if comment.user_id != user.id:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Can only edit your own comments")

        window = timedelta(hours=self.settings.COMMENT_EDIT_WINDOW_HOURS)
        if comment.created_at is not None and utcnow() - ensure_aware(comment.created_at) > window:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Comments can only be edited within {self.settings.COMMENT_EDIT_WINDOW_HOURS} hours of posting",
            )

        comment.content = content
        comment.is_edited = True
        comment.edited_at = utcnow()
        db.commit()
        db.refresh(comment)
        return _serialize(comment, self._votes_by(db, user, [comment.id]))

    @classmethod
    def delete_comment(cls, db: Session, user: User, comment_id: int) -> None:
        """Soft delete: the row stays so replies keep their parent."""
        comment = cls._get_comment(db, comment_id)
        if comment.user_id != user.id:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Can only delete your own comments")

        comment.is_deleted = True
        comment.content = DELETED_PLACEHOLDER
        db.execute(
            update(CommentSection)
            .where(CommentSection.id == comment.comment_section_id, CommentSection.total_comments > 0)
            .values(total_comments=CommentSection.total_comments - 1)
            .execution_options(synchronize_session=False)
        )
        db.commit()

    @classmethod
    def _apply_vote_delta(cls, db: Session, comment: Comment, upvotes: int, downvotes: int) -> None:
        db.execute(
            update(Comment)
            .where(Comment.id == comment.id)
            .values(
                upvotes=Comment.upvotes + upvotes,
                downvotes=Comment.downvotes + downvotes,
                vote_score=Comment.vote_score + (upvotes - downvotes),
            )
            .execution_options(synchronize_session=False)
        )

    @staticmethod
    def _delete_vote(db: Session, vote: CommentVote) -> bool:
        """Delete the vote row; False when a concurrent request already removed or changed it"""
        return db.execute(
            delete(CommentVote)
            .where(CommentVote.id == vote.id, CommentVote.vote_type == vote.vote_type)
            .execution_options(synchronize_session=False)
        ).rowcount == 1

    @classmethod
    def vote(cls, db: Session, user: User, comment_id: int, vote_type: str) -> dict:
        """
        Same vote twice removes it, the opposite vote flips it.
        vote_score stays upvotes - downvotes.
        """
        comment = cls._get_comment(db, comment_id)
        if comment.user_id == user.id:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot vote on your own comment")

        existing = db.query(CommentVote).filter(
            CommentVote.comment_id == comment.id,
            CommentVote.user_id == user.id,
        ).first()

        delta = {"upvote": 0, "downvote": 0}
        try:
            if existing is None:
                db.add(CommentVote(comment_id=comment.id, user_id=user.id, vote_type=vote_type))
                db.flush()
                delta[vote_type] += 1
                message, user_vote = "Vote added", vote_type
            elif existing.vote_type == vote_type:
                if cls._delete_vote(db, existing):
                    delta[vote_type] -= 1
                message, user_vote = "Vote removed", None
            else:
                # Only the request that actually flips the stored row moves the counters
                flipped = db.execute(
                    update(CommentVote)
                    .where(CommentVote.id == existing.id, CommentVote.vote_type == existing.vote_type)
                    .values(vote_type=vote_type)
                    .execution_options(synchronize_session=False)
                ).rowcount
                if flipped:
                    delta[existing.vote_type] -= 1
                    delta[vote_type] += 1
                message, user_vote = "Vote changed", vote_type

            cls._apply_vote_delta(db, comment, delta["upvote"], delta["downvote"])
            db.commit()
        except IntegrityError:
            db.rollback()
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Vote already recorded")

        db.refresh(comment)
        return {
            "message": message,
            "upvotes": comment.upvotes,
            "downvotes": comment.downvotes,
            "vote_score": comment.vote_score,
            "user_vote": user_vote,
        }

    @classmethod
    def remove_vote(cls, db: Session, user: User, comment_id: int) -> dict:
        existing = db.query(CommentVote).filter(
            CommentVote.comment_id == comment_id,
            CommentVote.user_id == user.id,
        ).first()
        if not existing:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Vote not found")
        comment = cls._get_comment(db, comment_id, include_deleted=True)

        if cls._delete_vote(db, existing):
            up = -1 if existing.vote_type == "upvote" else 0
            down = -1 if existing.vote_type == "downvote" else 0
            cls._apply_vote_delta(db, comment, up, down)
        db.commit()

        db.refresh(comment)
        return {
            "message": "Vote removed",
            "upvotes": comment.upvotes,
            "downvotes": comment.downvotes,
            "vote_score": comment.vote_score,
            "user_vote": None,
        }

    @classmethod
    def report(cls, db: Session, user: User, comment_id: int, data: ReportRequest) -> None:
        comment = cls._get_comment(db, comment_id)
        duplicate = HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You have already reported this comment",
        )
        if db.query(CommentReport.id).filter(
            CommentReport.comment_id == comment.id,
            CommentReport.reported_by_user_id == user.id,
        ).first():
            raise duplicate

        db.add(CommentReport(
            comment_id=comment.id,
            reported_by_user_id=user.id,
            reason=data.reason,
            description=data.description or None,
        ))
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise duplicate
        logger.info(f"Comment {comment.id} reported by user {user.id} for {data.reason}")


def get_comment_service(settings: Settings = Depends(get_settings)) -> CommentService:
    return CommentService(settings)
