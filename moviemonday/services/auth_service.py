from datetime import timedelta
from typing import Tuple
import logging

from fastapi import Depends, HTTPException, status
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from moviemonday.config import Settings, get_settings
from moviemonday.models.user import User
from moviemonday.models.watchlist import WatchlistCategory, DEFAULT_CATEGORY_NAME
from moviemonday.schemas.auth import UserRegister, UserLogin
from moviemonday.services.email_service import EmailService, get_email_service
from moviemonday.utils.dates import is_expired, utcnow
from moviemonday.utils.slugs import category_slug
from moviemonday.utils.security import (
    create_access_token,
    generate_url_token,
    hash_password,
    hash_token,
    verify_password,
)

logger = logging.getLogger(__name__)


class AuthService:
    """Registration, email verification, login and password reset."""

    def __init__(self, settings: Settings, email_service: EmailService):
        self.settings = settings
        self.email_service = email_service

    def register_user(self, db: Session, user_data: UserRegister) -> User:
        email = user_data.email.lower()
        existing_user = db.query(User).filter(
            or_(User.username == user_data.username, User.email == email)
        ).first()
        if existing_user:
            detail = (
                "Username already taken"
                if existing_user.username == user_data.username
                else "Email already registered"
            )
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail)

        token = generate_url_token()
        new_user = User(
            username=user_data.username,
            email=email,
            password_hash=hash_password(user_data.password),
            is_verified=False,
            verification_token=token,
            verification_token_expires=utcnow() + timedelta(hours=self.settings.VERIFICATION_TOKEN_TTL_HOURS),
        )
        db.add(new_user)
        db.flush()

        # Every account starts with its default watchlist
        db.add(WatchlistCategory(
            user_id=new_user.id,
            name=DEFAULT_CATEGORY_NAME,
            description="Your default watchlist for saved movies",
            is_public=False,
            slug=category_slug(db, WatchlistCategory, DEFAULT_CATEGORY_NAME, new_user.id),
        ))

        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Username or email already registered")
        db.refresh(new_user)

        # The account exists either way; the user can ask for a new link
        try:
            self.email_service.send_verification_email(new_user.email, new_user.username, token)
        except HTTPException as exc:
            logger.warning(f"Verification email to user {new_user.id} not sent: {exc.detail}")

        return new_user

    def verify_email(self, db: Session, token: str) -> str:
        user = db.query(User).filter(User.verification_token == token).first()
        if not user:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid or expired verification token",
            )
        if user.is_verified:
            return "Email already verified"
        if is_expired(user.verification_token_expires):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid or expired verification token",
            )

        user.is_verified = True
        db.commit()
        logger.info(f"User {user.id} verified their email")
        return "Email verified successfully"

    def resend_verification(self, db: Session, email: str) -> None:
        user = db.query(User).filter(User.email == email.lower()).first()
        # Do not reveal whether an email exists
        if not user or user.is_verified:
            return

        token = generate_url_token()
        user.verification_token = token
        user.verification_token_expires = utcnow() + timedelta(hours=self.settings.VERIFICATION_TOKEN_TTL_HOURS)
        db.commit()

        try:
            self.email_service.send_verification_email(user.email, user.username, token)
        except HTTPException as exc:
            logger.warning(f"Verification email to user {user.id} not sent: {exc.detail}")

    def login_user(self, db: Session, credentials: UserLogin) -> Tuple[str, User]:
        identifier = credentials.username.strip()
        user = db.query(User).filter(
            or_(User.username == identifier, User.email == identifier.lower())
        ).first()

        if not user:
            logger.warning(f"Login failed: no user matching {identifier}")
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

        if not verify_password(credentials.password, str(user.password_hash)):
            logger.warning(f"Login failed: incorrect password for user {user.id}")
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

        if not user.is_verified:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={
                    "message": "Please verify your email before logging in",
                    "needsVerification": True,
                },
            )

        access_token = create_access_token(
            self.settings,
            data={"sub": user.username, "user_id": user.id},
            expires_delta=timedelta(minutes=self.settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        )
        return access_token, user

    def request_password_reset(self, db: Session, email: str) -> None:
        user = db.query(User).filter(User.email == email.lower()).first()
        if not user:
            # Do not reveal whether an email exists
            return

        raw_token = generate_url_token(48)
        user.password_reset_token = hash_token(raw_token)
        user.password_reset_expires = utcnow() + timedelta(minutes=self.settings.RESET_TOKEN_TTL_MINUTES)

        try:
            self.email_service.send_password_reset_email(user.email, raw_token)
        except Exception:
            db.rollback()
            raise
        else:
            db.commit()

    def reset_password(self, db: Session, token: str, new_password: str) -> None:
        user = db.query(User).filter(User.password_reset_token == hash_token(token)).first()
        if user is None or is_expired(user.password_reset_expires):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid or expired reset token.",
            )

        user.password_hash = hash_password(new_password)
        user.password_reset_token = None
        user.password_reset_expires = None
        db.commit()
        logger.info(f"User {user.id} reset their password")


def get_auth_service(
    settings: Settings = Depends(get_settings),
    email_service: EmailService = Depends(get_email_service),
) -> AuthService:
    return AuthService(settings, email_service)
