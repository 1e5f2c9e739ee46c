from typing import Optional
import logging

from fastapi import Depends, HTTPException, Request, Response, status
from jose import ExpiredSignatureError, JWTError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from moviemonday.config import Settings, get_settings
from moviemonday.database import get_db
from moviemonday.models.user import User
from moviemonday.utils.security import ACCESS_TOKEN_TYPE, decode_token

logger = logging.getLogger(__name__)

TOKEN_COOKIE = "token"

RATE_LIMIT_MESSAGES = {
    "auth": "Too many requests, please try again later",
    "comment": "Please wait a moment before posting another comment",
    "vote": "Too many votes, please slow down",
}


def _extract_token(request: Request) -> Optional[str]:
    """Bearer header first, then the ``token`` cookie."""
    authorization = request.headers.get("Authorization")
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization[7:].strip()
        if token:
            return token
    return request.cookies.get(TOKEN_COOKIE) or None


def _authenticate(request: Request, db: Session, settings: Settings) -> User:
    token = _extract_token(request)
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="No token provided")

    try:
        payload = decode_token(settings, token)
    except ExpiredSignatureError:
        logger.warning("Rejected expired token")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token expired")
    except JWTError:
        logger.warning("Rejected token with invalid signature")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token signature is invalid")

    if payload.get("type") != ACCESS_TOKEN_TYPE or payload.get("user_id") is None:
        logger.warning("Rejected token of type %s", payload.get("type"))
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token signature is invalid")

    try:
        user = (
            db.query(User)
            .options(selectinload(User.groups))
            .filter(User.id == payload["user_id"])
            .first()
        )
    except SQLAlchemyError:
        logger.exception("Failed to load authenticated user")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Authentication failed",
        )

    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    return user


# Dependency to get the current authenticated user
def get_current_user(
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> User:
    user = _authenticate(request, db, settings)
    response.headers["Access-Control-Allow-Credentials"] = "true"
    return user


# Same lookup, but anonymous callers get None instead of a 401
def get_optional_user(
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> Optional[User]:
    try:
        return _authenticate(request, db, settings)
    except HTTPException:
        return None


def client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def rate_limit(bucket: str):
    """
    Build a dependency that enforces the ``<BUCKET>_RATE_LIMIT`` /
    ``<BUCKET>_RATE_WINDOW_SECONDS`` settings for one endpoint family.
    Keyed by ``user:<id>`` when a valid token is present, else ``ip:<addr>``.
    """
    limit_attr = f"{bucket.upper()}_RATE_LIMIT"
    window_attr = f"{bucket.upper()}_RATE_WINDOW_SECONDS"

    def dependency(
        request: Request,
        settings: Settings = Depends(get_settings),
        user: Optional[User] = Depends(get_optional_user),
    ) -> None:
        key = f"user:{user.id}" if user else f"ip:{client_ip(request)}"
        limiter = request.app.state.rate_limiter
        if not limiter.is_allowed(bucket, key, getattr(settings, limit_attr), getattr(settings, window_attr)):
            logger.warning("Rate limit hit for %s on %s", key, bucket)
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail=RATE_LIMIT_MESSAGES.get(bucket, "Too many requests"),
            )

    return dependency
