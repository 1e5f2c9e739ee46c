from datetime import timedelta, datetime, timezone
from typing import List, Optional
import logging

from fastapi import Depends, HTTPException, status
from jose import ExpiredSignatureError, JWTError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from moviemonday.config import Settings, get_settings
from moviemonday.models.group import Group, GroupInvite
from moviemonday.models.movie_monday import MovieMonday
from moviemonday.models.user import User
from moviemonday.schemas.group import GroupCreate, GroupVisibilityUpdate
from moviemonday.utils.dates import is_expired, utcnow
from moviemonday.utils.security import GROUP_INVITE_TOKEN_TYPE, create_invite_token, decode_token
from moviemonday.utils.slugs import slugify, unique_slug

logger = logging.getLogger(__name__)

INVITE_PENDING = "pending"
INVITE_ACCEPTED = "accepted"
INVITE_REJECTED = "rejected"


class GroupService:
    """Groups, membership, invites and public group pages."""

    def __init__(self, settings: Settings):
        self.settings = settings

    # ------------------------------------------------------------------ #
    # Lookups
    # ------------------------------------------------------------------ #
    @staticmethod
    def _get_group(db: Session, group_id: int) -> Group:
        group = (
            db.query(Group)
            .options(selectinload(Group.members))
            .filter(Group.id == group_id)
            .first()
        )
        if not group:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Group not found")
        return group

    @staticmethod
    def _require_member(user: User, group: Group) -> None:
        if not user.is_in_group(group.id):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You are not a member of this group",
            )

    @staticmethod
    def get_primary_group(db: Session, user: User) -> Optional[Group]:
        """The caller's first group (lowest id) with its members."""
        if not user.group_ids:
            return None
        return (
            db.query(Group)
            .options(selectinload(Group.members))
            .filter(Group.id.in_(user.group_ids))
            .order_by(Group.id)
            .first()
        )

    @staticmethod
    def list_groups(db: Session, user: User) -> List[Group]:
        if not user.group_ids:
            return []
        return (
            db.query(Group)
            .options(selectinload(Group.members))
            .filter(Group.id.in_(user.group_ids))
            .order_by(Group.id)
            .all()
        )

    # ------------------------------------------------------------------ #
    # Membership
    # ------------------------------------------------------------------ #
    @staticmethod
    def create_group(db: Session, user: User, data: GroupCreate) -> Group:
        group = Group(name=data.name, created_by_id=user.id)
        group.members.append(user)
        db.add(group)
        db.commit()
        db.refresh(group)
        logger.info(f"User {user.id} created group {group.id}")
        return group

    @classmethod
    def leave_group(cls, db: Session, user: User, group_id: int) -> None:
        group = cls._get_group(db, group_id)
        if user not in group.members:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="You are not a member of this group",
            )
        if group.created_by_id == user.id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Group owner cannot leave the group",
            )
        group.members.remove(user)
        db.commit()
        logger.info(f"User {user.id} left group {group.id}")

    @classmethod
    def remove_member(cls, db: Session, user: User, group_id: int, member_id: int) -> None:
        group = cls._get_group(db, group_id)
        if group.created_by_id != user.id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only the group owner can remove members",
            )
        if member_id == user.id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="You cannot remove yourself from the group",
            )

        member = next((m for m in group.members if m.id == member_id), None)
        if member is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="User is not a member of this group",
            )
        group.members.remove(member)
        db.commit()
        logger.info(f"User {user.id} removed user {member_id} from group {group.id}")

    # ------------------------------------------------------------------ #
    # Invite links (signed tokens)
    # ------------------------------------------------------------------ #
    def create_invite_link(self, db: Session, user: User, group_id: int) -> dict:
        group = self._get_group(db, group_id)
        self._require_member(user, group)

        token = create_invite_token(self.settings, group.id, group.name)
        return {
            "invite_token": token,
            "invite_link": f"{self.settings.FRONTEND_URL.rstrip('/')}/groups/join/{token}",
            "expires_at": datetime.now(timezone.utc) + timedelta(days=self.settings.INVITE_TOKEN_EXPIRE_DAYS),
        }

    def _decode_invite(self, token: str) -> dict:
        try:
            payload = decode_token(self.settings, token)
        except ExpiredSignatureError:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invite link has expired")
        except JWTError:
            logger.warning("Rejected malformed invite token")
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid invite link")

        if payload.get("type") != GROUP_INVITE_TOKEN_TYPE or payload.get("group_id") is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid invite link")
        return payload

    def preview_invite(self, db: Session, user: User, token: str) -> dict:
        payload = self._decode_invite(token)
        group = self._get_group(db, payload["group_id"])
        return {
            "group_id": group.id,
            "group_name": group.name,
            "member_count": len(group.members),
            "already_member": user in group.members,
        }

    def join_group(self, db: Session, user: User, token: str) -> Group:
        payload = self._decode_invite(token)
        group = self._get_group(db, payload["group_id"])
        if user in group.members:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="You are already a member of this group",
            )

        group.members.append(user)
        # A direct invite for the same group is now settled
        db.query(GroupInvite).filter(
            GroupInvite.group_id == group.id,
            GroupInvite.invited_user_id == user.id,
            GroupInvite.status == INVITE_PENDING,
        ).update({"status": INVITE_ACCEPTED}, synchronize_session=False)
        db.commit()
        db.refresh(group)
        logger.info(f"User {user.id} joined group {group.id} via invite link")
        return group

    # ------------------------------------------------------------------ #
    # Direct invites
    # ------------------------------------------------------------------ #
    def invite_user(self, db: Session, user: User, group_id: int, email: str) -> GroupInvite:
        group = self._get_group(db, group_id)
        self._require_member(user, group)

        invited = db.query(User).filter(User.email == email.lower()).first()
        if not invited:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
        if invited in group.members:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="User is already a member of this group",
            )

        pending = db.query(GroupInvite).filter(
            GroupInvite.group_id == group.id,
            GroupInvite.invited_user_id == invited.id,
            GroupInvite.status == INVITE_PENDING,
        ).all()
        if any(not is_expired(invite.expires_at) for invite in pending):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="An invite is already pending for this user",
            )

        invite = GroupInvite(
            group_id=group.id,
            invited_by_id=user.id,
            invited_user_id=invited.id,
            status=INVITE_PENDING,
            expires_at=utcnow() + timedelta(days=self.settings.GROUP_INVITE_EXPIRE_DAYS),
        )
        db.add(invite)
        db.commit()
        db.refresh(invite)
        return invite

    @staticmethod
    def list_pending_invites(db: Session, user: User) -> List[GroupInvite]:
        invites = (
            db.query(GroupInvite)
            .options(selectinload(GroupInvite.group), selectinload(GroupInvite.invited_by))
            .filter(
                GroupInvite.invited_user_id == user.id,
                GroupInvite.status == INVITE_PENDING,
            )
            .order_by(GroupInvite.created_at.desc(), GroupInvite.id.desc())
            .all()
        )
        return [invite for invite in invites if not is_expired(invite.expires_at)]

    @classmethod
    def respond_to_invite(cls, db: Session, user: User, invite_id: int, accept: bool) -> GroupInvite:
        invite = db.query(GroupInvite).filter(
            GroupInvite.id == invite_id,
            GroupInvite.invited_user_id == user.id,
        ).first()
        if not invite:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invite not found")
        if invite.status != INVITE_PENDING:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invite has already been responded to",
            )
        if is_expired(invite.expires_at):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invite has expired")

        if accept:
            group = cls._get_group(db, invite.group_id)
            if user not in group.members:
                group.members.append(user)
            invite.status = INVITE_ACCEPTED
        else:
            invite.status = INVITE_REJECTED
        db.commit()
        db.refresh(invite)
        return invite

    # ------------------------------------------------------------------ #
    # Public pages
    # ------------------------------------------------------------------ #
    @classmethod
    def update_visibility(cls, db: Session, user: User, group_id: int, data: GroupVisibilityUpdate) -> Group:
        group = cls._get_group(db, group_id)
        if group.created_by_id != user.id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only the group owner can change visibility",
            )

        group.is_public = data.is_public
        if data.description is not None:
            group.description = data.description
        if data.cover_image_path is not None:
            group.cover_image_path = data.cover_image_path
        if data.is_public and not group.slug:
            group.slug = unique_slug(db, Group, slugify(group.name, "group"), exclude_id=group.id)

        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="That public address was just taken, please try again",
            )
        db.refresh(group)
        return group

    @staticmethod
    def get_public_group(db: Session, slug: str) -> dict:
        group = (
            db.query(Group)
            .options(selectinload(Group.members))
            .filter(Group.slug == slug, Group.is_public.is_(True))
            .first()
        )
        if not group:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Public group not found")

        movie_mondays = (
            db.query(MovieMonday)
            .options(selectinload(MovieMonday.selections))
            .filter(MovieMonday.group_id == group.id, MovieMonday.is_public.is_(True))
            .order_by(MovieMonday.date.desc())
            .all()
        )

        return {
            "id": group.id,
            "name": group.name,
            "slug": group.slug,
            "description": group.description,
            "cover_image_path": group.cover_image_path,
            "created_at": group.created_at,
            "members": group.members,
            "movie_mondays": [
                {
                    "id": mm.id,
                    "date": mm.date,
                    "status": mm.status,
                    "slug": mm.slug,
                    "week_theme": mm.week_theme,
                    "likes_count": mm.likes_count,
                    "winner": mm.winner,
                }
                for mm in movie_mondays
            ],
        }


def get_group_service(settings: Settings = Depends(get_settings)) -> GroupService:
    return GroupService(settings)
