from pydantic import BaseModel, ConfigDict, field_validator
from typing import Optional, Dict, Any, Union
from datetime import datetime
import math

from canvasnotes.core.timeutil import as_utc
from canvasnotes.models.block import BlockType, DEFAULT_BLOCK_WIDTH, DEFAULT_BLOCK_HEIGHT


class Position(BaseModel):
    x: float
    y: float


class Size(BaseModel):
    width: float = DEFAULT_BLOCK_WIDTH
    height: float = DEFAULT_BLOCK_HEIGHT


def coerce_position(raw: Any) -> Optional[Position]:
    """
    Build a Position from a wire value.

    Only real finite numbers are accepted for x and y; booleans and numeric
    strings are rejected. Returns None when the value is not a valid position.
    """
    if isinstance(raw, Position):
        return raw
    if not isinstance(raw, dict):
        return None
    coords = []
    for key in ("x", "y"):
        value = raw.get(key)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        try:
            value = float(value)
        except OverflowError:
            return None
        if not math.isfinite(value):
            return None
        coords.append(value)
    return Position(x=coords[0], y=coords[1])


# Block content. The sibling `type` field selects the variant; unrecognized
# types, or recognized types whose payload does not fit, fall back to
# OpaqueContent so the stored JSON round-trips unchanged.

class TextContent(BaseModel):
    model_config = ConfigDict(extra="allow")

    text: str

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump()


class LinkContent(BaseModel):
    model_config = ConfigDict(extra="allow")

    url: str

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump()


class OpaqueContent(BaseModel):
    data: Any = None

    def to_json(self) -> Any:
        return self.data


BlockContent = Union[TextContent, LinkContent, OpaqueContent]


def parse_block_content(block_type: str, raw: Any) -> BlockContent:
    if isinstance(raw, dict):
        if block_type == BlockType.TEXT.value and isinstance(raw.get("text"), str):
            return TextContent(**raw)
        if block_type == BlockType.LINK.value and isinstance(raw.get("url"), str):
            return LinkContent(**raw)
    return OpaqueContent(data=raw)


def content_label(block_type: str, raw: Any) -> str:
    """Display label for a block: its text, its url, or its type."""
    content = parse_block_content(block_type, raw)
    if isinstance(content, TextContent):
        return content.text
    if isinstance(content, LinkContent):
        return content.url

    # Other types are labelled by shape: a styled block holding {"text": ...} shows the text
    data = content.data
    if isinstance(data, dict):
        if isinstance(data.get("text"), str):
            return data["text"]
        if isinstance(data.get("url"), str):
            return data["url"]
    return block_type


class BlockRecord(BaseModel):
    id: str
    canvas_id: str
    user_id: str
    type: str
    content: Any = {}
    position: Position
    size: Size = Size()
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @field_validator("created_at", "updated_at")
    @classmethod
    def _utc(cls, value: datetime) -> datetime:
        return as_utc(value)

    @property
    def typed_content(self) -> BlockContent:
        return parse_block_content(self.type, self.content)

    @classmethod
    def from_row(cls, row) -> "BlockRecord":
        return cls(
            id=row.id,
            canvas_id=row.canvas_id,
            user_id=row.user_id,
            type=row.block_type,
            content=row.content if row.content is not None else {},
            position=Position(x=row.position_x, y=row.position_y),
            size=Size(width=row.width, height=row.height),
            notes=row.notes,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )


class ConnectionBase(BaseModel):
    canvas_id: str
    source_block_id: str
    target_block_id: str
    source_handle: Optional[str] = None
    target_handle: Optional[str] = None


class ConnectionRecord(ConnectionBase):
    id: str
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def _utc(cls, value: datetime) -> datetime:
        return as_utc(value)

    class Config:
        from_attributes = True
