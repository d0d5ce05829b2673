"""
Persistence collaborator contract.

Every call is scoped to the caller. Reads return only rows the caller may
see (own canvases and public canvases); writes return the changed row, or
None / False when no row matched. "No row" covers both a missing id and a
row the caller may not touch; implementations never tell the two apart.

Access policy shared by every implementation:

- canvas: readable by its owner or anyone when public; writable by its owner
- block: readable with its canvas; writable by its creator; insertable only
  into a canvas the caller owns
- connection: readable with its canvas; insertable and deletable only in a
  canvas the caller owns; both endpoints must be blocks of that canvas
"""

from abc import ABC, abstractmethod
from typing import Any, List, Optional

from canvasnotes.schemas.block import BlockRecord, ConnectionRecord, Position, Size
from canvasnotes.schemas.canvas import CanvasRecord


class GraphStore(ABC):

    # Canvases

    @abstractmethod
    async def list_canvases(self, caller_id: str) -> List[CanvasRecord]:
        """Canvases owned by the caller, in insertion order."""

    @abstractmethod
    async def get_canvas(self, caller_id: str, canvas_id: str) -> Optional[CanvasRecord]:
        ...

    @abstractmethod
    async def create_canvas(self, caller_id: str, title: str) -> CanvasRecord:
        ...

    @abstractmethod
    async def update_canvas_title(self, caller_id: str, canvas_id: str, title: str) -> Optional[CanvasRecord]:
        ...

    # Blocks

    @abstractmethod
    async def count_blocks(self, caller_id: str, canvas_id: str) -> int:
        ...

    @abstractmethod
    async def list_blocks(self, caller_id: str, canvas_id: str) -> List[BlockRecord]:
        ...

    @abstractmethod
    async def get_block(self, caller_id: str, block_id: str) -> Optional[BlockRecord]:
        ...

    @abstractmethod
    async def create_block(
        self,
        caller_id: str,
        canvas_id: str,
        block_type: str,
        position: Position,
        content: Any,
        size: Size,
    ) -> BlockRecord:
        """
        Insert a block.

        Raises:
            RowLevelSecurityViolation: canvas missing or not owned by the caller
        """

    @abstractmethod
    async def update_block(self, caller_id: str, block_id: str, **changes: Any) -> Optional[BlockRecord]:
        """
        Apply a partial update. Accepted keys: position, content, notes.
        """

    @abstractmethod
    async def delete_block(self, caller_id: str, block_id: str) -> bool:
        """Delete a caller-owned block and the connections touching it."""

    # Connections

    @abstractmethod
    async def list_connections(self, caller_id: str, canvas_id: str) -> List[ConnectionRecord]:
        ...

    @abstractmethod
    async def create_connection(
        self,
        caller_id: str,
        canvas_id: str,
        source_block_id: str,
        target_block_id: str,
        source_handle: Optional[str] = None,
        target_handle: Optional[str] = None,
    ) -> ConnectionRecord:
        """
        Insert a connection.

        Raises:
            RowLevelSecurityViolation: canvas missing or not owned by the caller
            ForeignKeyViolation: source or target is not a block of the canvas
        """

    @abstractmethod
    async def delete_connection(self, caller_id: str, connection_id: str) -> bool:
        ...
