"""
SQLAlchemy graph store.

Row-level authorization is expressed as caller-scoped WHERE clauses: a
write that matches no row (missing, or owned by someone else) is reported
as None / False, never as a distinct forbidden signal.
"""

import asyncio
import functools
import logging
from typing import Any, List, Optional

from sqlalchemy import select, delete, func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from canvasnotes.core.errors import ForeignKeyViolation, RowLevelSecurityViolation
from canvasnotes.models.block import Block, Connection
from canvasnotes.models.canvas import Canvas
from canvasnotes.schemas.block import BlockRecord, ConnectionRecord, Position, Size
from canvasnotes.schemas.canvas import CanvasRecord
from canvasnotes.store.base import GraphStore

logger = logging.getLogger(__name__)


def _visible_to(caller_id: str):
    return or_(Canvas.user_id == caller_id, Canvas.is_public == True)  # noqa: E712


def _serialized(method):
    """Run one store call at a time; an AsyncSession rejects concurrent operations."""
    @functools.wraps(method)
    async def wrapper(self, *args, **kwargs):
        async with self._lock:
            return await method(self, *args, **kwargs)
    return wrapper


class SqlGraphStore(GraphStore):

    def __init__(self, session: AsyncSession):
        self.session = session
        self._lock = asyncio.Lock()

    async def _owned_canvas(self, caller_id: str, canvas_id: str) -> Optional[Canvas]:
        result = await self.session.execute(
            select(Canvas).where(Canvas.id == canvas_id, Canvas.user_id == caller_id)
        )
        return result.scalar_one_or_none()

    # Canvases

    @_serialized
    async def list_canvases(self, caller_id: str) -> List[CanvasRecord]:
        result = await self.session.execute(
            select(Canvas)
            .where(Canvas.user_id == caller_id)
            .order_by(Canvas.created_at)
        )
        return [CanvasRecord.model_validate(c) for c in result.scalars().all()]

    @_serialized
    async def get_canvas(self, caller_id: str, canvas_id: str) -> Optional[CanvasRecord]:
        result = await self.session.execute(
            select(Canvas).where(Canvas.id == canvas_id, _visible_to(caller_id))
        )
        canvas = result.scalar_one_or_none()
        return CanvasRecord.model_validate(canvas) if canvas else None

    @_serialized
    async def create_canvas(self, caller_id: str, title: str) -> CanvasRecord:
        canvas = Canvas(user_id=caller_id, title=title, is_public=False)
        self.session.add(canvas)
        await self.session.commit()
        await self.session.refresh(canvas)
        logger.debug(f"Created canvas {canvas.id} for user {caller_id}")
        return CanvasRecord.model_validate(canvas)

    @_serialized
    async def update_canvas_title(self, caller_id: str, canvas_id: str, title: str) -> Optional[CanvasRecord]:
        canvas = await self._owned_canvas(caller_id, canvas_id)
        if not canvas:
            return None

        canvas.title = title
        await self.session.commit()
        await self.session.refresh(canvas)
        return CanvasRecord.model_validate(canvas)

    # Blocks

    @_serialized
    async def count_blocks(self, caller_id: str, canvas_id: str) -> int:
        result = await self.session.execute(
            select(func.count(Block.id))
            .join(Canvas, Block.canvas_id == Canvas.id)
            .where(Block.canvas_id == canvas_id, _visible_to(caller_id))
        )
        return result.scalar_one()

    @_serialized
    async def list_blocks(self, caller_id: str, canvas_id: str) -> List[BlockRecord]:
        result = await self.session.execute(
            select(Block)
            .join(Canvas, Block.canvas_id == Canvas.id)
            .where(Block.canvas_id == canvas_id, _visible_to(caller_id))
            .order_by(Block.created_at)
        )
        return [BlockRecord.from_row(b) for b in result.scalars().all()]

    @_serialized
    async def get_block(self, caller_id: str, block_id: str) -> Optional[BlockRecord]:
        result = await self.session.execute(
            select(Block)
            .join(Canvas, Block.canvas_id == Canvas.id)
            .where(Block.id == block_id, _visible_to(caller_id))
        )
        block = result.scalar_one_or_none()
        return BlockRecord.from_row(block) if block else None

    @_serialized
    async def create_block(
        self,
        caller_id: str,
        canvas_id: str,
        block_type: str,
        position: Position,
        content: Any,
        size: Size,
    ) -> BlockRecord:
        if not await self._owned_canvas(caller_id, canvas_id):
            raise RowLevelSecurityViolation(
                f"new row violates row-level security policy for table \"blocks\" (canvas {canvas_id})"
            )

        block = Block(
            canvas_id=canvas_id,
            user_id=caller_id,
            block_type=block_type,
            content=content,
            position_x=position.x,
            position_y=position.y,
            width=size.width,
            height=size.height,
        )
        self.session.add(block)
        await self.session.commit()
        await self.session.refresh(block)
        logger.debug(f"Created block {block.id} on canvas {canvas_id}")
        return BlockRecord.from_row(block)

    @_serialized
    async def update_block(self, caller_id: str, block_id: str, **changes: Any) -> Optional[BlockRecord]:
        result = await self.session.execute(
            select(Block).where(Block.id == block_id, Block.user_id == caller_id)
        )
        block = result.scalar_one_or_none()
        if not block:
            return None

        if "position" in changes:
            block.position_x = changes["position"].x
            block.position_y = changes["position"].y
        if "content" in changes:
            block.content = changes["content"]
        if "notes" in changes:
            block.notes = changes["notes"]

        await self.session.commit()
        await self.session.refresh(block)
        return BlockRecord.from_row(block)

    @_serialized
    async def delete_block(self, caller_id: str, block_id: str) -> bool:
        result = await self.session.execute(
            select(Block.id).where(Block.id == block_id, Block.user_id == caller_id)
        )
        if result.scalar_one_or_none() is None:
            return False

        await self.session.execute(
            delete(Connection).where(
                or_(Connection.source_block_id == block_id, Connection.target_block_id == block_id)
            ).execution_options(synchronize_session=False)
        )
        await self.session.execute(
            delete(Block).where(Block.id == block_id).execution_options(synchronize_session=False)
        )
        await self.session.commit()
        return True

    # Connections

    @_serialized
    async def list_connections(self, caller_id: str, canvas_id: str) -> List[ConnectionRecord]:
        result = await self.session.execute(
            select(Connection)
            .join(Canvas, Connection.canvas_id == Canvas.id)
            .where(Connection.canvas_id == canvas_id, _visible_to(caller_id))
            .order_by(Connection.created_at)
        )
        return [ConnectionRecord.model_validate(c) for c in result.scalars().all()]

    @_serialized
    async def create_connection(
        self,
        caller_id: str,
        canvas_id: str,
        source_block_id: str,
        target_block_id: str,
        source_handle: Optional[str] = None,
        target_handle: Optional[str] = None,
    ) -> ConnectionRecord:
        if not await self._owned_canvas(caller_id, canvas_id):
            raise RowLevelSecurityViolation(
                f"new row violates row-level security policy for table \"connections\" (canvas {canvas_id})"
            )

        # Endpoints must be blocks of this canvas
        result = await self.session.execute(
            select(Block.id).where(
                Block.id.in_([source_block_id, target_block_id]),
                Block.canvas_id == canvas_id,
            )
        )
        found = set(result.scalars().all())
        missing = [b for b in (source_block_id, target_block_id) if b not in found]
        if missing:
            raise ForeignKeyViolation(
                f"insert on table \"connections\" violates foreign key constraint (block {missing[0]})"
            )

        connection = Connection(
            canvas_id=canvas_id,
            source_block_id=source_block_id,
            target_block_id=target_block_id,
            source_handle=source_handle,
            target_handle=target_handle,
        )
        self.session.add(connection)
        try:
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            raise ForeignKeyViolation(str(e.orig)) from e
        await self.session.refresh(connection)
        return ConnectionRecord.model_validate(connection)

    @_serialized
    async def delete_connection(self, caller_id: str, connection_id: str) -> bool:
        owned_canvases = select(Canvas.id).where(Canvas.user_id == caller_id)
        result = await self.session.execute(
            delete(Connection).where(
                Connection.id == connection_id,
                Connection.canvas_id.in_(owned_canvases),
            ).execution_options(synchronize_session=False)
        )
        await self.session.commit()
        return result.rowcount > 0
