from datetime import datetime
from typing import List, Optional

import strawberry
from strawberry.scalars import JSON
from strawberry.types import Info

from canvasnotes.api.graphql.errors import graphql_errors
from canvasnotes.schemas.block import BlockRecord, ConnectionRecord
from canvasnotes.schemas.canvas import CanvasRecord


@strawberry.type(name="Block", description="A positioned content unit on a canvas")
class BlockObject:
    id: strawberry.ID
    canvas_id: strawberry.ID
    type: str = strawberry.field(description="e.g. 'text', 'link'")
    content: JSON = strawberry.field(description="Shape depends on type: {text} or {url}, otherwise free-form")
    position: JSON = strawberry.field(description="{ x: number, y: number }")
    size: JSON = strawberry.field(description="{ width: number, height: number }")
    notes: Optional[str]
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_record(cls, record: BlockRecord) -> "BlockObject":
        return cls(
            id=strawberry.ID(record.id),
            canvas_id=strawberry.ID(record.canvas_id),
            type=record.type,
            content=record.content,
            position=record.position.model_dump(),
            size=record.size.model_dump(),
            notes=record.notes,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )


@strawberry.type(name="Connection", description="A directed edge between two blocks")
class ConnectionObject:
    id: strawberry.ID
    canvas_id: strawberry.ID
    source_block_id: strawberry.ID
    target_block_id: strawberry.ID
    source_handle: Optional[str]
    target_handle: Optional[str]
    created_at: datetime

    @classmethod
    def from_record(cls, record: ConnectionRecord) -> "ConnectionObject":
        return cls(
            id=strawberry.ID(record.id),
            canvas_id=strawberry.ID(record.canvas_id),
            source_block_id=strawberry.ID(record.source_block_id),
            target_block_id=strawberry.ID(record.target_block_id),
            source_handle=record.source_handle,
            target_handle=record.target_handle,
            created_at=record.created_at,
        )


@strawberry.type(name="Canvas")
class CanvasObject:
    id: strawberry.ID
    title: str
    is_public: bool
    created_at: datetime
    updated_at: datetime

    @strawberry.field(description="Blocks associated with this canvas")
    async def blocks(self, info: Info) -> List[BlockObject]:
        ctx = info.context
        with graphql_errors():
            records = await ctx.service.list_blocks(ctx.user_id, str(self.id))
        return [BlockObject.from_record(r) for r in records]

    @strawberry.field(description="Connections between the blocks of this canvas")
    async def connections(self, info: Info) -> List[ConnectionObject]:
        ctx = info.context
        with graphql_errors():
            records = await ctx.service.list_connections(ctx.user_id, str(self.id))
        return [ConnectionObject.from_record(r) for r in records]

    @strawberry.field(description="Number of blocks on this canvas")
    async def block_count(self, info: Info) -> int:
        ctx = info.context
        with graphql_errors():
            return await ctx.service.count_blocks(ctx.user_id, str(self.id))

    @classmethod
    def from_record(cls, record: CanvasRecord) -> "CanvasObject":
        return cls(
            id=strawberry.ID(record.id),
            title=record.title,
            is_public=record.is_public,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )
