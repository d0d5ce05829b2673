"""
GraphQL schema and router.

Resolvers stay thin: they read the caller from the request context, call the
graph data service and map records to GraphQL objects. Service errors are
re-raised as GraphQL errors with a machine-readable ``extensions.code``.
"""

import logging
from typing import List, Optional

import strawberry
from fastapi import Depends
from strawberry.fastapi import BaseContext, GraphQLRouter
from strawberry.scalars import JSON
from strawberry.types import Info

from canvasnotes.api.deps import get_current_user_id, get_graph_service
from canvasnotes.api.graphql.errors import graphql_errors
from canvasnotes.api.graphql.types import BlockObject, CanvasObject, ConnectionObject
from canvasnotes.services.graph_service import GraphDataService

logger = logging.getLogger(__name__)


class GraphContext(BaseContext):
    def __init__(self, service: GraphDataService, user_id: Optional[str]):
        super().__init__()
        self.service = service
        self.user_id = user_id


async def get_context(
    service: GraphDataService = Depends(get_graph_service),
    user_id: Optional[str] = Depends(get_current_user_id),
) -> GraphContext:
    return GraphContext(service=service, user_id=user_id)


@strawberry.type
class Query:

    @strawberry.field(description="Health probe")
    def hello(self) -> str:
        return "Hello from the canvas notes backend!"

    @strawberry.field(description="Canvases owned by the current user")
    async def my_canvases(self, info: Info) -> List[CanvasObject]:
        ctx: GraphContext = info.context
        with graphql_errors():
            records = await ctx.service.list_canvases(ctx.user_id)
        return [CanvasObject.from_record(r) for r in records]

    @strawberry.field(description="A canvas by id, if the current user may see it")
    async def canvas(self, info: Info, id: strawberry.ID) -> Optional[CanvasObject]:
        ctx: GraphContext = info.context
        with graphql_errors():
            record = await ctx.service.get_canvas(ctx.user_id, str(id))
        return CanvasObject.from_record(record)


@strawberry.type
class Mutation:

    @strawberry.mutation(description="Creates a new canvas")
    async def create_canvas(self, info: Info, title: Optional[str] = None) -> CanvasObject:
        ctx: GraphContext = info.context
        with graphql_errors():
            record = await ctx.service.create_canvas(ctx.user_id, title)
        return CanvasObject.from_record(record)

    @strawberry.mutation(description="Updates the title of an existing canvas")
    async def update_canvas_title(self, info: Info, id: strawberry.ID, title: str) -> CanvasObject:
        ctx: GraphContext = info.context
        with graphql_errors():
            record = await ctx.service.update_canvas_title(ctx.user_id, str(id), title)
        return CanvasObject.from_record(record)

    @strawberry.mutation(description="Creates a new block within a canvas")
    async def create_block(
        self,
        info: Info,
        canvas_id: strawberry.ID,
        type: str,
        position: JSON,
        content: Optional[JSON] = None,
    ) -> BlockObject:
        ctx: GraphContext = info.context
        with graphql_errors():
            record = await ctx.service.create_block(ctx.user_id, str(canvas_id), type, position, content)
        return BlockObject.from_record(record)

    @strawberry.mutation(description="Undoes a block creation; subject to the server's undo policy")
    async def undo_block_creation(self, info: Info, block_id: strawberry.ID) -> bool:
        ctx: GraphContext = info.context
        with graphql_errors():
            return await ctx.service.undo_block_creation(ctx.user_id, str(block_id))

    @strawberry.mutation(description="Updates the position of a block on the canvas")
    async def update_block_position(self, info: Info, block_id: strawberry.ID, position: JSON) -> BlockObject:
        ctx: GraphContext = info.context
        with graphql_errors():
            record = await ctx.service.update_block_position(ctx.user_id, str(block_id), position)
        return BlockObject.from_record(record)

    # content and notes are nullable here so that null is rejected by the
    # service with BAD_USER_INPUT instead of a bare validation error
    @strawberry.mutation(description="Updates the content of a block")
    async def update_block_content(
        self, info: Info, block_id: strawberry.ID, content: Optional[JSON] = None
    ) -> BlockObject:
        ctx: GraphContext = info.context
        with graphql_errors():
            record = await ctx.service.update_block_content(ctx.user_id, str(block_id), content)
        return BlockObject.from_record(record)

    @strawberry.mutation(description="Updates the notes of a block")
    async def update_block_notes(
        self, info: Info, block_id: strawberry.ID, notes: Optional[str] = None
    ) -> BlockObject:
        ctx: GraphContext = info.context
        with graphql_errors():
            record = await ctx.service.update_block_notes(ctx.user_id, str(block_id), notes)
        return BlockObject.from_record(record)

    @strawberry.mutation(description="Connects two blocks of the same canvas")
    async def create_connection(
        self,
        info: Info,
        canvas_id: strawberry.ID,
        source_block_id: strawberry.ID,
        target_block_id: strawberry.ID,
        source_handle: Optional[str] = None,
        target_handle: Optional[str] = None,
    ) -> ConnectionObject:
        ctx: GraphContext = info.context
        with graphql_errors():
            record = await ctx.service.create_connection(
                ctx.user_id,
                str(canvas_id),
                str(source_block_id),
                str(target_block_id),
                source_handle,
                target_handle,
            )
        return ConnectionObject.from_record(record)

    @strawberry.mutation(description="Deletes a connection")
    async def delete_connection(self, info: Info, connection_id: strawberry.ID) -> bool:
        ctx: GraphContext = info.context
        with graphql_errors():
            return await ctx.service.delete_connection(ctx.user_id, str(connection_id))


schema = strawberry.Schema(query=Query, mutation=Mutation)

graphql_router = GraphQLRouter(schema, context_getter=get_context)
