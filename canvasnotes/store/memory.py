"""
In-memory graph store.

Holds canvases, blocks and connections in dicts owned by the instance, so
each test or process builds its own. Applies the same access policy as the
SQL store.
"""

import copy
import logging
import uuid
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from canvasnotes.core.errors import ForeignKeyViolation, RowLevelSecurityViolation
from canvasnotes.core.timeutil import as_utc, utcnow
from canvasnotes.schemas.block import BlockRecord, ConnectionRecord, Position, Size
from canvasnotes.schemas.canvas import CanvasRecord
from canvasnotes.store.base import GraphStore

logger = logging.getLogger(__name__)


class InMemoryGraphStore(GraphStore):

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._clock = clock or utcnow
        self._canvases: Dict[str, CanvasRecord] = {}
        self._blocks: Dict[str, BlockRecord] = {}
        self._connections: Dict[str, ConnectionRecord] = {}

    def _now(self) -> datetime:
        return as_utc(self._clock())

    def _new_id(self) -> str:
        return str(uuid.uuid4())

    def _can_read_canvas(self, caller_id: str, canvas_id: str) -> bool:
        canvas = self._canvases.get(canvas_id)
        return canvas is not None and (canvas.user_id == caller_id or canvas.is_public)

    def _owns_canvas(self, caller_id: str, canvas_id: str) -> bool:
        canvas = self._canvases.get(canvas_id)
        return canvas is not None and canvas.user_id == caller_id

    # Records are copied on the way out so callers cannot mutate stored state.

    # Canvases

    async def list_canvases(self, caller_id: str) -> List[CanvasRecord]:
        logger.debug(f"Listing canvases for user {caller_id}")
        return [c.model_copy() for c in self._canvases.values() if c.user_id == caller_id]

    async def get_canvas(self, caller_id: str, canvas_id: str) -> Optional[CanvasRecord]:
        if not self._can_read_canvas(caller_id, canvas_id):
            return None
        return self._canvases[canvas_id].model_copy()

    async def create_canvas(self, caller_id: str, title: str) -> CanvasRecord:
        now = self._now()
        canvas = CanvasRecord(
            id=self._new_id(),
            user_id=caller_id,
            title=title,
            is_public=False,
            created_at=now,
            updated_at=now,
        )
        self._canvases[canvas.id] = canvas
        logger.debug(f"Created canvas {canvas.id} for user {caller_id}")
        return canvas.model_copy()

    async def update_canvas_title(self, caller_id: str, canvas_id: str, title: str) -> Optional[CanvasRecord]:
        if not self._owns_canvas(caller_id, canvas_id):
            return None
        canvas = self._canvases[canvas_id].model_copy(update={"title": title, "updated_at": self._now()})
        self._canvases[canvas_id] = canvas
        return canvas.model_copy()

    # Blocks

    async def count_blocks(self, caller_id: str, canvas_id: str) -> int:
        if not self._can_read_canvas(caller_id, canvas_id):
            return 0
        return sum(1 for b in self._blocks.values() if b.canvas_id == canvas_id)

    async def list_blocks(self, caller_id: str, canvas_id: str) -> List[BlockRecord]:
        if not self._can_read_canvas(caller_id, canvas_id):
            return []
        return [b.model_copy(deep=True) for b in self._blocks.values() if b.canvas_id == canvas_id]

    async def get_block(self, caller_id: str, block_id: str) -> Optional[BlockRecord]:
        block = self._blocks.get(block_id)
        if block is None or not self._can_read_canvas(caller_id, block.canvas_id):
            return None
        return block.model_copy(deep=True)

    async def create_block(
        self,
        caller_id: str,
        canvas_id: str,
        block_type: str,
        position: Position,
        content: Any,
        size: Size,
    ) -> BlockRecord:
        if not self._owns_canvas(caller_id, canvas_id):
            raise RowLevelSecurityViolation(
                f"new row violates row-level security policy for table \"blocks\" (canvas {canvas_id})"
            )
        now = self._now()
        block = BlockRecord(
            id=self._new_id(),
            canvas_id=canvas_id,
            user_id=caller_id,
            type=block_type,
            content=copy.deepcopy(content),
            position=position,
            size=size,
            notes=None,
            created_at=now,
            updated_at=now,
        )
        self._blocks[block.id] = block
        logger.debug(f"Created block {block.id} on canvas {canvas_id}")
        return block.model_copy(deep=True)

    async def update_block(self, caller_id: str, block_id: str, **changes: Any) -> Optional[BlockRecord]:
        block = self._blocks.get(block_id)
        if block is None or block.user_id != caller_id:
            return None
        update = {}
        if "position" in changes:
            update["position"] = changes["position"]
        if "content" in changes:
            update["content"] = copy.deepcopy(changes["content"])
        if "notes" in changes:
            update["notes"] = changes["notes"]
        update["updated_at"] = self._now()
        block = block.model_copy(update=update)
        self._blocks[block_id] = block
        return block.model_copy(deep=True)

    async def delete_block(self, caller_id: str, block_id: str) -> bool:
        block = self._blocks.get(block_id)
        if block is None or block.user_id != caller_id:
            return False
        del self._blocks[block_id]
        for connection_id in [
            c.id for c in self._connections.values()
            if block_id in (c.source_block_id, c.target_block_id)
        ]:
            del self._connections[connection_id]
        return True

    # Connections

    async def list_connections(self, caller_id: str, canvas_id: str) -> List[ConnectionRecord]:
        if not self._can_read_canvas(caller_id, canvas_id):
            return []
        return [c.model_copy() for c in self._connections.values() if c.canvas_id == canvas_id]

    async def create_connection(
        self,
        caller_id: str,
        canvas_id: str,
        source_block_id: str,
        target_block_id: str,
        source_handle: Optional[str] = None,
        target_handle: Optional[str] = None,
    ) -> ConnectionRecord:
        if not self._owns_canvas(caller_id, canvas_id):
            raise RowLevelSecurityViolation(
                f"new row violates row-level security policy for table \"connections\" (canvas {canvas_id})"
            )
        for block_id in (source_block_id, target_block_id):
            block = self._blocks.get(block_id)
            if block is None or block.canvas_id != canvas_id:
                raise ForeignKeyViolation(
                    f"insert on table \"connections\" violates foreign key constraint (block {block_id})"
                )
        connection = ConnectionRecord(
            id=self._new_id(),
            canvas_id=canvas_id,
            source_block_id=source_block_id,
            target_block_id=target_block_id,
            source_handle=source_handle,
            target_handle=target_handle,
            created_at=self._now(),
        )
        self._connections[connection.id] = connection
        return connection.model_copy()

    async def delete_connection(self, caller_id: str, connection_id: str) -> bool:
        connection = self._connections.get(connection_id)
        if connection is None or not self._owns_canvas(caller_id, connection.canvas_id):
            return False
        del self._connections[connection_id]
        return True
