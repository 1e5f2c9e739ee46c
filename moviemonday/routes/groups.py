from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List, Optional

from moviemonday.database import get_db
from moviemonday.utils.dependencies import get_current_user
from moviemonday.models.user import User
from moviemonday.schemas.base import MessageResponse
from moviemonday.schemas.group import (
    GroupCreate,
    GroupResponse,
    GroupVisibilityUpdate,
    InviteLinkResponse,
    InvitePreview,
    JoinGroupResponse,
    GroupInviteCreate,
    GroupInviteResponse,
    PublicGroupResponse,
)
from moviemonday.services.group_service import GroupService, get_group_service

router = APIRouter(prefix="/api", tags=["Groups"])


# ==================== GROUPS ====================

@router.get("/users/group", response_model=Optional[GroupResponse])
def get_user_group(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get the caller's first group with its members, or null"""
    return GroupService.get_primary_group(db, current_user)


@router.get("/groups", response_model=List[GroupResponse])
def list_groups(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get every group the caller belongs to"""
    return GroupService.list_groups(db, current_user)


@router.post("/groups", response_model=GroupResponse, status_code=status.HTTP_201_CREATED)
def create_group(
    group_data: GroupCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Create a group

    - **name**: Group name (required)

    The creator becomes the owner and first member.
    """
    return GroupService.create_group(db, current_user, group_data)


@router.post("/groups/{group_id}/leave", response_model=MessageResponse)
def leave_group(
    group_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Leave a group (the owner cannot leave)"""
    GroupService.leave_group(db, current_user, group_id)
    return {"message": "Successfully left the group"}


@router.delete("/groups/{group_id}/members/{user_id}", response_model=MessageResponse)
def remove_member(
    group_id: int,
    user_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Remove a member (owner only)"""
    GroupService.remove_member(db, current_user, group_id, user_id)
    return {"message": "Member removed successfully"}


# ==================== INVITE LINKS ====================

@router.post("/groups/{group_id}/invite-link", response_model=InviteLinkResponse)
@router.get("/groups/{group_id}/invite-link", response_model=InviteLinkResponse)
def create_invite_link(
    group_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    group_service: GroupService = Depends(get_group_service)
):
    """Generate a signed invite link, valid for 7 days"""
    return group_service.create_invite_link(db, current_user, group_id)


@router.get("/groups/join/{token}", response_model=InvitePreview)
def preview_invite(
    token: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    group_service: GroupService = Depends(get_group_service)
):
    """Show which group an invite link points to"""
    return group_service.preview_invite(db, current_user, token)


@router.post("/groups/join/{token}", response_model=JoinGroupResponse)
def join_group(
    token: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    group_service: GroupService = Depends(get_group_service)
):
    """Join a group through an invite link"""
    group = group_service.join_group(db, current_user, token)
    return {"message": "Successfully joined the group", "group": group}


# ==================== DIRECT INVITES ====================

@router.get("/groups/invites", response_model=List[GroupInviteResponse])
def list_invites(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get the caller's pending, unexpired invites"""
    return GroupService.list_pending_invites(db, current_user)


@router.post("/groups/invites/{invite_id}/accept", response_model=GroupInviteResponse)
def accept_invite(
    invite_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Accept an invite and join its group"""
    return GroupService.respond_to_invite(db, current_user, invite_id, accept=True)


@router.post("/groups/invites/{invite_id}/reject", response_model=GroupInviteResponse)
def reject_invite(
    invite_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Decline an invite"""
    return GroupService.respond_to_invite(db, current_user, invite_id, accept=False)


@router.post("/groups/{group_id}/invites", response_model=GroupInviteResponse, status_code=status.HTTP_201_CREATED)
def invite_user(
    group_id: int,
    invite_data: GroupInviteCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    group_service: GroupService = Depends(get_group_service)
):
    """
    Invite a registered user by email

    - **invitedUserEmail**: Email of an existing account (required)
    """
    return group_service.invite_user(db, current_user, group_id, invite_data.invited_user_email)


# ==================== PUBLIC PAGES ====================

@router.patch("/groups/{group_id}/visibility", response_model=GroupResponse)
def update_visibility(
    group_id: int,
    visibility: GroupVisibilityUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Publish or hide a group page (owner only)"""
    return GroupService.update_visibility(db, current_user, group_id, visibility)


@router.get("/groups/public/{slug}", response_model=PublicGroupResponse)
def get_public_group(slug: str, db: Session = Depends(get_db)):
    """Get a public group page by slug"""
    return GroupService.get_public_group(db, slug)
