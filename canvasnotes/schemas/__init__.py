from canvasnotes.schemas.canvas import CanvasRecord, DEFAULT_CANVAS_TITLE, resolve_canvas_title
from canvasnotes.schemas.block import (
    Position, Size, coerce_position,
    TextContent, LinkContent, OpaqueContent, BlockContent,
    parse_block_content, content_label,
    BlockRecord, ConnectionRecord,
)

__all__ = [
    "CanvasRecord", "DEFAULT_CANVAS_TITLE", "resolve_canvas_title",
    "Position", "Size", "coerce_position",
    "TextContent", "LinkContent", "OpaqueContent", "BlockContent",
    "parse_block_content", "content_label",
    "BlockRecord", "ConnectionRecord",
]
