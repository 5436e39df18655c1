"""Sign-up, sign-in and sign-out routes."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import get_auth_provider, get_current_user, get_token
from schemas.auth import AuthResponse, Credentials, SignUpRequest, UserPublic
from services.auth_service import (
    AuthProvider,
    EmailAlreadyInUseError,
    InvalidCredentialsError,
    PasswordMismatchError,
    WeakPasswordError,
)
from utils.logger import setup_logger

logger = setup_logger(__name__)

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


@router.post("/signup", response_model=AuthResponse, status_code=201)
async def sign_up(payload: SignUpRequest, auth: AuthProvider = Depends(get_auth_provider)):
    """Create an account and sign it in."""
    try:
        user, token = await auth.sign_up(payload.email, payload.password, payload.confirm_password)
    except (EmailAlreadyInUseError, WeakPasswordError, PasswordMismatchError) as e:
        logger.info(f"Sign-up rejected: {e.message}")
        raise HTTPException(status_code=400, detail=e.message)
    return AuthResponse(user=user, token=token)


@router.post("/signin", response_model=AuthResponse)
async def sign_in(payload: Credentials, auth: AuthProvider = Depends(get_auth_provider)):
    """Exchange email and password for a session token."""
    try:
        user, token = await auth.sign_in(payload.email, payload.password)
    except InvalidCredentialsError as e:
        raise HTTPException(status_code=401, detail=e.message)
    return AuthResponse(user=user, token=token)


@router.post("/signout", status_code=204)
async def sign_out(
    token: Optional[str] = Depends(get_token),
    auth: AuthProvider = Depends(get_auth_provider),
):
    """Revoke the bearer token."""
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")
    await auth.sign_out(token)


@router.get("/me", response_model=UserPublic)
async def me(user: UserPublic = Depends(get_current_user)):
    return user
