from pydantic import EmailStr, Field, field_validator
from datetime import datetime
from typing import Optional

from moviemonday.schemas.base import CamelModel


def ensure_password_length(password: str) -> str:
    """bcrypt only looks at the first 72 bytes."""
    if len(password.encode("utf-8")) > 72:
        raise ValueError('Password cannot be longer than 72 bytes')
    return password


# Schema for user registration
class UserRegister(CamelModel):
    username: str = Field(..., min_length=3, max_length=30, pattern=r'^[a-zA-Z0-9_]+$')
    email: EmailStr
    password: str = Field(..., min_length=6)

    @field_validator('password')
    @classmethod
    def validate_password(cls, v):
        return ensure_password_length(v)


# Schema for user login; ``username`` also accepts an email address
class UserLogin(CamelModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


# Schema for user response
class UserResponse(CamelModel):
    id: int
    username: str
    email: str
    is_verified: bool
    created_at: Optional[datetime] = None


class RegisterResponse(CamelModel):
    message: str
    user: UserResponse


class LoginResponse(CamelModel):
    token: str
    user: UserResponse


class EmailRequest(CamelModel):
    email: EmailStr


class ResetPasswordRequest(CamelModel):
    password: str = Field(..., min_length=6)

    @field_validator('password')
    @classmethod
    def validate_new_password(cls, v):
        return ensure_password_length(v)
