"""User settings routes."""

from fastapi import APIRouter, Depends

from api.dependencies import get_app_session
from schemas.user_settings import UserSettings, UserSettingsUpdate
from services.app_data import AppDataSession

router = APIRouter(prefix="/api/v1/settings", tags=["settings"])


@router.get("", response_model=UserSettings)
async def get_settings(session: AppDataSession = Depends(get_app_session)):
    return session.state.settings


@router.patch("", response_model=UserSettings)
async def update_settings(payload: UserSettingsUpdate, session: AppDataSession = Depends(get_app_session)):
    """Change settings; each changed field is saved in the background."""
    session.update_settings(**payload.model_dump(exclude_none=True))
    return session.state.settings
