from pydantic import BaseModel, field_validator
from typing import Optional
from datetime import datetime

from canvasnotes.core.timeutil import as_utc


DEFAULT_CANVAS_TITLE = "Untitled Canvas"


class CanvasBase(BaseModel):
    title: str
    is_public: bool = False


class CanvasRecord(CanvasBase):
    id: str
    user_id: str
    created_at: datetime
    updated_at: datetime

    @field_validator("created_at", "updated_at")
    @classmethod
    def _utc(cls, value: datetime) -> datetime:
        return as_utc(value)

    class Config:
        from_attributes = True


def resolve_canvas_title(title: Optional[str]) -> str:
    """Trim a requested title, substituting the default when blank."""
    trimmed = (title or "").strip()
    return trimmed or DEFAULT_CANVAS_TITLE
