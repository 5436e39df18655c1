"""Account and authentication schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class Credentials(BaseModel):
    """Email and password sent to sign up or sign in."""
    email: str = Field(..., min_length=3, description="Account email")
    password: str = Field(..., description="Account password")


class SignUpRequest(Credentials):
    confirm_password: Optional[str] = Field(None, description="Repeat of the password, checked when sent")


class UserPublic(BaseModel):
    """Identity issued by the auth provider."""
    id: str
    email: str
    created_at: datetime


class AuthResponse(BaseModel):
    user: UserPublic
    token: str
