from canvasnotes.models.canvas import Canvas
from canvasnotes.models.block import (
    Block,
    BlockType,
    Connection,
    DEFAULT_BLOCK_WIDTH,
    DEFAULT_BLOCK_HEIGHT,
)

__all__ = [
    "Canvas",
    "Block",
    "BlockType",
    "Connection",
    "DEFAULT_BLOCK_WIDTH",
    "DEFAULT_BLOCK_HEIGHT",
]
