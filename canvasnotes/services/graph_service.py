"""
Graph data service.

Validates requests at the boundary and forwards them to the persistence
collaborator, which owns authorization. Every operation first requires a
caller identity; "no row" results from the store are reported as
NotFoundOrForbidden so that existence is not leaked to other users.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, List, Optional, TypeVar

from canvasnotes.core.config import settings
from canvasnotes.core.errors import (
    GraphError,
    Unauthenticated,
    BadInput,
    NotFound,
    NotFoundOrForbidden,
    Internal,
    StoreError,
    ForeignKeyViolation,
    RowLevelSecurityViolation,
)
from canvasnotes.core.timeutil import as_utc, utcnow
from canvasnotes.models.block import DEFAULT_BLOCK_WIDTH, DEFAULT_BLOCK_HEIGHT
from canvasnotes.schemas.block import BlockRecord, ConnectionRecord, Size, coerce_position
from canvasnotes.schemas.canvas import CanvasRecord, resolve_canvas_title
from canvasnotes.store.base import GraphStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

UNDO_DISABLED = "disabled"
UNDO_GRACE_WINDOW = "grace_window"


class GraphDataService:
    """Canvas, block and connection operations for one persistence backend."""

    def __init__(
        self,
        store: GraphStore,
        undo_policy: Optional[str] = None,
        undo_grace_period_seconds: Optional[float] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.undo_policy = undo_policy or settings.UNDO_POLICY
        if self.undo_policy not in (UNDO_DISABLED, UNDO_GRACE_WINDOW):
            raise ValueError(f"Unknown undo policy: {self.undo_policy}")
        if undo_grace_period_seconds is None:
            undo_grace_period_seconds = settings.UNDO_GRACE_PERIOD_SECONDS
        self.undo_grace_period = timedelta(seconds=undo_grace_period_seconds)
        self._clock = clock or utcnow

    @staticmethod
    def _require_caller(caller_id: Optional[str]) -> str:
        if not caller_id:
            logger.error("User ID not found in request context")
            raise Unauthenticated("User is not authenticated")
        return caller_id

    async def _persist(self, action: str, call: Awaitable[T]) -> T:
        """Await a store call, wrapping unexpected failures as Internal."""
        try:
            return await call
        except (GraphError, StoreError):
            raise
        except Exception as e:
            logger.error(f"Error trying to {action}: {e}")
            raise Internal(f"Failed to {action}: {e}") from e

    def is_within_undo_grace_period(self, created_at: datetime) -> bool:
        return as_utc(self._clock()) - as_utc(created_at) <= self.undo_grace_period

    # Canvases

    async def create_canvas(self, caller_id: Optional[str], title: Optional[str] = None) -> CanvasRecord:
        user_id = self._require_caller(caller_id)
        logger.info(f"Creating canvas for user {user_id}")
        return await self._persist(
            "create canvas",
            self.store.create_canvas(user_id, resolve_canvas_title(title)),
        )

    async def get_canvas(self, caller_id: Optional[str], canvas_id: str) -> CanvasRecord:
        user_id = self._require_caller(caller_id)
        canvas = await self._persist("fetch canvas", self.store.get_canvas(user_id, canvas_id))
        if not canvas:
            logger.info(f"Canvas {canvas_id} not found or user {user_id} lacks access")
            raise NotFound("Canvas not found", canvasId=canvas_id)
        return canvas

    async def list_canvases(self, caller_id: Optional[str]) -> List[CanvasRecord]:
        user_id = self._require_caller(caller_id)
        return await self._persist("list canvases", self.store.list_canvases(user_id))

    async def count_blocks(self, caller_id: Optional[str], canvas_id: str) -> int:
        user_id = self._require_caller(caller_id)
        return await self._persist("count blocks", self.store.count_blocks(user_id, canvas_id))

    async def update_canvas_title(self, caller_id: Optional[str], canvas_id: str, title: Optional[str]) -> CanvasRecord:
        user_id = self._require_caller(caller_id)

        trimmed = (title or "").strip()
        if not trimmed:
            raise BadInput("Canvas title cannot be empty.", argumentName="title")

        canvas = await self._persist(
            "update canvas",
            self.store.update_canvas_title(user_id, canvas_id, trimmed),
        )
        if not canvas:
            logger.info(f"Update failed: canvas {canvas_id} not found or user {user_id} lacks permission")
            raise NotFoundOrForbidden("Canvas not found or update forbidden", canvasId=canvas_id)
        return canvas

    # Blocks

    async def list_blocks(self, caller_id: Optional[str], canvas_id: str) -> List[BlockRecord]:
        user_id = self._require_caller(caller_id)
        return await self._persist("list blocks", self.store.list_blocks(user_id, canvas_id))

    async def create_block(
        self,
        caller_id: Optional[str],
        canvas_id: str,
        block_type: Optional[str],
        position: Any,
        content: Any = None,
    ) -> BlockRecord:
        user_id = self._require_caller(caller_id)

        parsed_position = coerce_position(position)
        if not block_type or not block_type.strip() or parsed_position is None:
            raise BadInput("Invalid input: type and position (with x, y) are required.")

        logger.info(f"Creating {block_type} block on canvas {canvas_id} for user {user_id}")
        try:
            return await self._persist(
                "create block",
                self.store.create_block(
                    user_id,
                    canvas_id,
                    block_type,
                    parsed_position,
                    content if content is not None else {},
                    Size(width=DEFAULT_BLOCK_WIDTH, height=DEFAULT_BLOCK_HEIGHT),
                ),
            )
        except RowLevelSecurityViolation:
            logger.info(f"Create block refused: canvas {canvas_id} not found or not owned by user {user_id}")
            raise NotFoundOrForbidden("Canvas not found or insert forbidden", canvasId=canvas_id)
        except StoreError as e:
            raise Internal(f"Failed to create block: {e}") from e

    async def _update_block(self, user_id: str, block_id: str, what: str, **changes: Any) -> BlockRecord:
        block = await self._persist(
            f"update block {what}",
            self.store.update_block(user_id, block_id, **changes),
        )
        if not block:
            logger.info(f"Update {what} failed: block {block_id} not found or user {user_id} lacks permission")
            raise NotFoundOrForbidden("Block not found or update forbidden", blockId=block_id)
        return block

    async def update_block_position(self, caller_id: Optional[str], block_id: str, position: Any) -> BlockRecord:
        user_id = self._require_caller(caller_id)
        parsed = coerce_position(position)
        if parsed is None:
            raise BadInput("Invalid input: position requires numeric x and y.", argumentName="position")
        return await self._update_block(user_id, block_id, "position", position=parsed)

    async def update_block_content(self, caller_id: Optional[str], block_id: str, content: Any) -> BlockRecord:
        user_id = self._require_caller(caller_id)
        if content is None:
            raise BadInput("Content cannot be null or undefined.", argumentName="content")
        return await self._update_block(user_id, block_id, "content", content=content)

    async def update_block_notes(self, caller_id: Optional[str], block_id: str, notes: Optional[str]) -> BlockRecord:
        user_id = self._require_caller(caller_id)
        # Empty string is allowed and clears the notes
        if notes is None:
            raise BadInput("Notes cannot be null.", argumentName="notes")
        return await self._update_block(user_id, block_id, "notes", notes=notes)

    async def undo_block_creation(self, caller_id: Optional[str], block_id: str) -> bool:
        """
        Undo a block creation.

        With the "disabled" policy this never deletes and always returns False.
        With "grace_window" an owned block created within the grace period is
        deleted (with its connections) and True is returned. A block that is
        missing, not owned, or too old returns False in every case.
        """
        user_id = self._require_caller(caller_id)

        block = await self._persist("fetch block", self.store.get_block(user_id, block_id))
        if not block or block.user_id != user_id:
            logger.warning(f"Undo attempt: block {block_id} not found or not owned by user {user_id}")
            return False

        if self.undo_policy == UNDO_DISABLED:
            logger.info(f"Undo attempt for block {block_id} by user {user_id}: block deletion is disabled")
            return False

        if not self.is_within_undo_grace_period(block.created_at):
            logger.info(f"Undo attempt: block {block_id} is outside the grace period")
            return False

        deleted = await self._persist("delete block", self.store.delete_block(user_id, block_id))
        logger.info(f"Undo block creation {block_id}: deleted={deleted}")
        return deleted

    # Connections

    async def list_connections(self, caller_id: Optional[str], canvas_id: str) -> List[ConnectionRecord]:
        user_id = self._require_caller(caller_id)
        return await self._persist("list connections", self.store.list_connections(user_id, canvas_id))

    async def create_connection(
        self,
        caller_id: Optional[str],
        canvas_id: str,
        source_block_id: str,
        target_block_id: str,
        source_handle: Optional[str] = None,
        target_handle: Optional[str] = None,
    ) -> ConnectionRecord:
        user_id = self._require_caller(caller_id)
        logger.info(f"Creating connection {source_block_id} -> {target_block_id} for user {user_id}")

        try:
            return await self._persist(
                "create connection",
                self.store.create_connection(
                    user_id,
                    canvas_id,
                    source_block_id,
                    target_block_id,
                    source_handle,
                    target_handle,
                ),
            )
        except ForeignKeyViolation as e:
            logger.warning(f"Error creating connection: {e}")
            raise BadInput("Failed to create connection: Source or target block not found.")
        except RowLevelSecurityViolation:
            raise NotFoundOrForbidden("Canvas not found or insert forbidden", canvasId=canvas_id)
        except StoreError as e:
            raise Internal(f"Failed to create connection: {e}") from e

    async def delete_connection(self, caller_id: Optional[str], connection_id: str) -> bool:
        user_id = self._require_caller(caller_id)
        logger.info(f"Deleting connection {connection_id} for user {user_id}")

        deleted = await self._persist("delete connection", self.store.delete_connection(user_id, connection_id))
        if not deleted:
            logger.warning(f"Delete connection {connection_id} failed (not found or forbidden)")
            raise NotFoundOrForbidden("Connection not found or delete forbidden.", connectionId=connection_id)
        return True
