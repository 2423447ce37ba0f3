"""Request and response models for accounts and authentication."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class RegisterRequest(BaseModel):
    """Registration request model."""

    username: str = Field(..., min_length=3, max_length=255, description="Username")
    password: str = Field(..., min_length=6, max_length=72, description="Password")
    fullname: str = Field(..., min_length=2, max_length=255, description="Full name")
    email: EmailStr = Field(..., description="Email address")
    tel: str = Field(..., min_length=10, max_length=20, description="Phone number")


class LoginRequest(BaseModel):
    """Login request model."""

    username: str = Field(..., min_length=1, description="Username")
    password: str = Field(..., min_length=1, description="Password")


class UserResponse(BaseModel):
    """Public view of an account."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    fullname: str
    email: str
    tel: str
    created_at: datetime
    updated_at: datetime


class LoginResult(BaseModel):
    """Token plus the authenticated account."""

    token: str
    user: UserResponse


class TokenClaims(BaseModel):
    """Identity extracted from a verified access token."""

    user_id: int
    username: str | None = None
    email: str | None = None
