from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session
from moviemonday.config import Settings, get_settings
from moviemonday.database import get_db
from moviemonday.schemas.auth import (
    UserRegister,
    UserLogin,
    UserResponse,
    RegisterResponse,
    LoginResponse,
    EmailRequest,
    ResetPasswordRequest,
)
from moviemonday.schemas.base import MessageResponse
from moviemonday.services.auth_service import AuthService, get_auth_service
from moviemonday.utils.dependencies import TOKEN_COOKIE, get_current_user, rate_limit
from moviemonday.models.user import User

# Define router
router = APIRouter(prefix="/auth", tags=["Authentication"])

# Register a new user
@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit("auth"))],
)
def register(
    user_data: UserRegister,
    db: Session = Depends(get_db),
    auth_service: AuthService = Depends(get_auth_service),
):
    """Register a new user and send the verification email"""
    user = auth_service.register_user(db, user_data)
    return {
        "message": "Registration successful. Please check your email to verify your account.",
        "user": user,
    }


@router.get("/verify-email/{token}", response_model=MessageResponse)
def verify_email(
    token: str,
    db: Session = Depends(get_db),
    auth_service: AuthService = Depends(get_auth_service),
):
    """Confirm an email address from the link sent at registration"""
    return {"message": auth_service.verify_email(db, token)}


@router.post(
    "/resend-verification",
    response_model=MessageResponse,
    dependencies=[Depends(rate_limit("auth"))],
)
def resend_verification(
    payload: EmailRequest,
    db: Session = Depends(get_db),
    auth_service: AuthService = Depends(get_auth_service),
):
    """Send a fresh verification link"""
    auth_service.resend_verification(db, payload.email)
    return {"message": "If an unverified account exists for that email, a new verification link was sent."}

# Login endpoint
@router.post("/login", response_model=LoginResponse, dependencies=[Depends(rate_limit("auth"))])
def login(
    credentials: UserLogin,
    response: Response,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    auth_service: AuthService = Depends(get_auth_service),
):
    """Login with username or email; the token is returned and set as a cookie"""
    token, user = auth_service.login_user(db, credentials)
    response.set_cookie(
        key=TOKEN_COOKIE,
        value=token,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="lax",
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )
    return {"token": token, "user": user}


@router.post("/logout", response_model=MessageResponse)
def logout(response: Response):
    """Clear the auth cookie"""
    response.delete_cookie(TOKEN_COOKIE)
    return {"message": "Logged out successfully"}

# Get current authenticated user
@router.get("/me", response_model=UserResponse)
def get_me(current_user: User = Depends(get_current_user)):
    """Get current authenticated user"""
    return current_user


@router.post(
    "/forgot-password",
    response_model=MessageResponse,
    dependencies=[Depends(rate_limit("auth"))],
)
def forgot_password(
    payload: EmailRequest,
    db: Session = Depends(get_db),
    auth_service: AuthService = Depends(get_auth_service),
):
    """Request a password reset link."""
    auth_service.request_password_reset(db, payload.email)
    return {"message": "If an account exists for that email, we sent reset instructions."}


@router.post(
    "/reset-password/{token}",
    response_model=MessageResponse,
    dependencies=[Depends(rate_limit("auth"))],
)
def reset_password(
    token: str,
    payload: ResetPasswordRequest,
    db: Session = Depends(get_db),
    auth_service: AuthService = Depends(get_auth_service),
):
    """Complete password reset with a valid token."""
    auth_service.reset_password(db, token, payload.password)
    return {"message": "Password reset successful. You can now log in with your new password."}
