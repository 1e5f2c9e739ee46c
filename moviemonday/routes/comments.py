from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from typing import Optional

from moviemonday.database import get_db
from moviemonday.utils.dependencies import get_current_user, get_optional_user, rate_limit
from moviemonday.models.user import User
from moviemonday.schemas.base import MessageResponse
from moviemonday.schemas.comment import (
    CommentCreate,
    CommentUpdate,
    CommentResponse,
    CommentPage,
    ReplyPage,
    VoteRequest,
    VoteResponse,
    ReportRequest,
    target_from_path,
)
from moviemonday.services.comment_service import CommentService, get_comment_service

router = APIRouter(prefix="/api/comments", tags=["Comments"])


def _target(content_type: str, content_id: int):
    try:
        return target_from_path(content_type, content_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Valid content type and id are required"
        )


# ==================== THREADS ====================

@router.get("/content/{content_type}/{content_id}", response_model=CommentPage)
def list_comments(
    content_type: str,
    content_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    sort: str = Query("top", pattern="^(top|new|controversial)$"),
    viewer: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
    comment_service: CommentService = Depends(get_comment_service)
):
    """
    Get comments for a movie, watchlist or movie monday

    - **content_type**: movie | watchlist | moviemonday
    - **sort**: top, new or controversial
    - **page** / **limit**: pagination of top-level comments
    """
    target = _target(content_type, content_id)
    return comment_service.list_comments(db, target, viewer, page, limit, sort)


@router.post(
    "/content/{content_type}/{content_id}",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit("comment"))]
)
def create_comment(
    content_type: str,
    content_id: int,
    data: CommentCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    comment_service: CommentService = Depends(get_comment_service)
):
    """
    Post a comment or a reply

    - **content**: 10 to 1000 characters (required)
    - **parentCommentId**: Comment being replied to (optional)
    """
    target = _target(content_type, content_id)
    return comment_service.create_comment(db, current_user, target, data)


@router.get("/{comment_id}/replies", response_model=ReplyPage)
def list_replies(
    comment_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    viewer: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
    comment_service: CommentService = Depends(get_comment_service)
):
    """Get replies to a comment, best first"""
    return comment_service.list_replies(db, comment_id, viewer, page, limit)


@router.put("/{comment_id}", response_model=CommentResponse)
def update_comment(
    comment_id: int,
    data: CommentUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    comment_service: CommentService = Depends(get_comment_service)
):
    """Edit your own comment within 24 hours of posting"""
    return comment_service.update_comment(db, current_user, comment_id, data)


@router.delete("/{comment_id}", response_model=MessageResponse)
def delete_comment(
    comment_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Delete your own comment; replies stay in place"""
    CommentService.delete_comment(db, current_user, comment_id)
    return {"message": "Comment deleted successfully"}


# ==================== VOTES & REPORTS ====================

@router.post(
    "/{comment_id}/vote",
    response_model=VoteResponse,
    dependencies=[Depends(rate_limit("vote"))]
)
def vote(
    comment_id: int,
    data: VoteRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Vote on a comment

    - **voteType**: upvote | downvote. Repeating a vote removes it; the opposite vote flips it.
    """
    return CommentService.vote(db, current_user, comment_id, data.vote_type)


@router.delete("/{comment_id}/vote", response_model=VoteResponse)
def remove_vote(
    comment_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return CommentService.remove_vote(db, current_user, comment_id)


@router.post("/{comment_id}/report", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
def report_comment(
    comment_id: int,
    data: ReportRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Report a comment, once per user

    - **reason**: spam | harassment | inappropriate | other
    - **description**: optional details
    """
    CommentService.report(db, current_user, comment_id, data)
    return {"message": "Comment reported successfully"}
