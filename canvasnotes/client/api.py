"""
GraphQL API client.

Thin async wrapper over the canvas GraphQL endpoint. Results are returned as
plain dicts in the wire (camelCase) shape; GraphQL errors are raised as
CanvasApiError carrying the server's extensions.code.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from canvasnotes.core.config import settings

logger = logging.getLogger(__name__)


BLOCK_FIELDS = """
    id
    canvasId
    type
    content
    position
    size
    notes
    createdAt
    updatedAt
"""

CONNECTION_FIELDS = """
    id
    canvasId
    sourceBlockId
    targetBlockId
    sourceHandle
    targetHandle
    createdAt
"""

GET_MY_CANVASES_QUERY = """
query GetMyCanvases {
  myCanvases {
    id
    title
    isPublic
    createdAt
    updatedAt
    blockCount
  }
}
"""

GET_CANVAS_BY_ID_QUERY = f"""
query GetCanvasById($id: ID!) {{
  canvas(id: $id) {{
    id
    title
    isPublic
    createdAt
    updatedAt
    blocks {{ {BLOCK_FIELDS} }}
    connections {{ {CONNECTION_FIELDS} }}
  }}
}}
"""

CREATE_CANVAS_MUTATION = """
mutation CreateCanvas($title: String) {
  createCanvas(title: $title) { id title isPublic createdAt updatedAt }
}
"""

UPDATE_CANVAS_TITLE_MUTATION = """
mutation UpdateCanvasTitle($id: ID!, $title: String!) {
  updateCanvasTitle(id: $id, title: $title) { id title updatedAt }
}
"""

CREATE_BLOCK_MUTATION = f"""
mutation CreateBlock($canvasId: ID!, $type: String!, $position: JSON!, $content: JSON) {{
  createBlock(canvasId: $canvasId, type: $type, position: $position, content: $content) {{ {BLOCK_FIELDS} }}
}}
"""

UNDO_BLOCK_CREATION_MUTATION = """
mutation UndoBlockCreation($blockId: ID!) {
  undoBlockCreation(blockId: $blockId)
}
"""

UPDATE_BLOCK_POSITION_MUTATION = """
mutation UpdateBlockPosition($blockId: ID!, $position: JSON!) {
  updateBlockPosition(blockId: $blockId, position: $position) { id position updatedAt }
}
"""

UPDATE_BLOCK_CONTENT_MUTATION = """
mutation UpdateBlockContent($blockId: ID!, $content: JSON!) {
  updateBlockContent(blockId: $blockId, content: $content) { id content updatedAt }
}
"""

UPDATE_BLOCK_NOTES_MUTATION = """
mutation UpdateBlockNotes($blockId: ID!, $notes: String!) {
  updateBlockNotes(blockId: $blockId, notes: $notes) { id notes updatedAt }
}
"""

CREATE_CONNECTION_MUTATION = f"""
mutation CreateConnection(
  $canvasId: ID!, $sourceBlockId: ID!, $targetBlockId: ID!, $sourceHandle: String, $targetHandle: String
) {{
  createConnection(
    canvasId: $canvasId
    sourceBlockId: $sourceBlockId
    targetBlockId: $targetBlockId
    sourceHandle: $sourceHandle
    targetHandle: $targetHandle
  ) {{ {CONNECTION_FIELDS} }}
}}
"""

DELETE_CONNECTION_MUTATION = """
mutation DeleteConnection($connectionId: ID!) {
  deleteConnection(connectionId: $connectionId)
}
"""


class CanvasApiError(Exception):
    """A GraphQL request failed."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code


class CanvasApi:
    """Async client for the canvas GraphQL endpoint."""

    def __init__(
        self,
        endpoint: Optional[str] = None,
        access_token: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Args:
            endpoint: GraphQL URL, defaults to GRAPHQL_ENDPOINT
            access_token: Bearer token from the auth provider
            client: Pre-built HTTP client (tests pass one bound to the ASGI app)
        """
        self.endpoint = endpoint or settings.GRAPHQL_ENDPOINT
        self.access_token = access_token
        self._client = client
        self._owns_client = client is None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=30.0)
            self._owns_client = True
        return self._client

    async def close(self):
        """Close the HTTP client if this instance created it."""
        if self._owns_client and self._client and not self._client.is_closed:
            await self._client.aclose()

    async def execute(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        client = await self._get_client()
        headers = {"Content-Type": "application/json"}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"

        try:
            response = await client.post(
                self.endpoint,
                json={"query": query, "variables": variables or {}},
                headers=headers,
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"GraphQL request failed: {e}")
            raise CanvasApiError(f"Request failed: {e}") from e

        try:
            body = response.json()
        except ValueError as e:
            logger.error(f"GraphQL response was not JSON: {e}")
            raise CanvasApiError("Invalid response from server") from e
        if not isinstance(body, dict):
            raise CanvasApiError("Invalid response from server")

        errors = body.get("errors")
        if errors:
            first = errors[0]
            code = (first.get("extensions") or {}).get("code")
            raise CanvasApiError(first.get("message", "Unknown error"), code=code)
        return body.get("data") or {}

    @staticmethod
    def _field(data: Dict[str, Any], name: str) -> Any:
        """Return a non-null root field, raising when the server left it out."""
        value = data.get(name)
        if value is None:
            raise CanvasApiError(f"Missing {name} in response")
        return value

    # Canvases

    async def get_my_canvases(self) -> List[Dict[str, Any]]:
        data = await self.execute(GET_MY_CANVASES_QUERY)
        return self._field(data, "myCanvases")

    async def get_canvas(self, canvas_id: str) -> Optional[Dict[str, Any]]:
        data = await self.execute(GET_CANVAS_BY_ID_QUERY, {"id": canvas_id})
        return data.get("canvas")

    async def create_canvas(self, title: Optional[str] = None) -> Dict[str, Any]:
        data = await self.execute(CREATE_CANVAS_MUTATION, {"title": title})
        return self._field(data, "createCanvas")

    async def update_canvas_title(self, canvas_id: str, title: str) -> Dict[str, Any]:
        data = await self.execute(UPDATE_CANVAS_TITLE_MUTATION, {"id": canvas_id, "title": title})
        return self._field(data, "updateCanvasTitle")

    # Blocks

    async def create_block(
        self,
        canvas_id: str,
        block_type: str,
        position: Dict[str, float],
        content: Optional[Any] = None,
    ) -> Dict[str, Any]:
        data = await self.execute(
            CREATE_BLOCK_MUTATION,
            {"canvasId": canvas_id, "type": block_type, "position": position, "content": content},
        )
        return self._field(data, "createBlock")

    async def undo_block_creation(self, block_id: str) -> bool:
        data = await self.execute(UNDO_BLOCK_CREATION_MUTATION, {"blockId": block_id})
        return bool(self._field(data, "undoBlockCreation"))

    async def update_block_position(self, block_id: str, position: Dict[str, float]) -> Dict[str, Any]:
        data = await self.execute(UPDATE_BLOCK_POSITION_MUTATION, {"blockId": block_id, "position": position})
        return self._field(data, "updateBlockPosition")

    async def update_block_content(self, block_id: str, content: Any) -> Dict[str, Any]:
        data = await self.execute(UPDATE_BLOCK_CONTENT_MUTATION, {"blockId": block_id, "content": content})
        return self._field(data, "updateBlockContent")

    async def update_block_notes(self, block_id: str, notes: str) -> Dict[str, Any]:
        data = await self.execute(UPDATE_BLOCK_NOTES_MUTATION, {"blockId": block_id, "notes": notes})
        return self._field(data, "updateBlockNotes")

    # Connections

    async def create_connection(
        self,
        canvas_id: str,
        source_block_id: str,
        target_block_id: str,
        source_handle: Optional[str] = None,
        target_handle: Optional[str] = None,
    ) -> Dict[str, Any]:
        data = await self.execute(
            CREATE_CONNECTION_MUTATION,
            {
                "canvasId": canvas_id,
                "sourceBlockId": source_block_id,
                "targetBlockId": target_block_id,
                "sourceHandle": source_handle,
                "targetHandle": target_handle,
            },
        )
        return self._field(data, "createConnection")

    async def delete_connection(self, connection_id: str) -> bool:
        data = await self.execute(DELETE_CONNECTION_MUTATION, {"connectionId": connection_id})
        return bool(self._field(data, "deleteConnection"))
