"""WebSocket message schemas."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field


class WebSocketResponse(BaseModel):
    """Message pushed to a connected client."""
    type: str = Field(..., description="Message type, always app_data for data pushes")
    content: Any = Field(..., description="Response content")
    user_id: Optional[str] = Field(None, description="Signed-in user the data belongs to")
    timestamp: datetime = Field(default_factory=datetime.now)
