"""
Graph client state.

Holds the local projection of one open canvas (flow nodes and edges plus the
cached canvas payload) and reconciles it with the server:

- drag: the node moves locally; on drag stop a position update is sent only
  when the node moved at least NODE_DRAG_THRESHOLD pixels on either axis.
  Failure is reported, the local position is kept.
- connect: the edge is added under a provisional id before the request; on
  failure the whole canvas is fetched again.
- delete edge: the edge is removed before the request and put back on
  failure; the canvas is fetched again either way.
- create block: the node appears once the server returns the block, then an
  undo affordance stays open for UNDO_AFFORDANCE_SECONDS.
- content, notes, title and position results are patched into the cache.

Every request runs as a task owned by this object; close() cancels them.
"""

import asyncio
import enum
import logging
import uuid
from typing import Any, Callable, Coroutine, Dict, List, Optional, Set

from canvasnotes.client.api import CanvasApi, CanvasApiError
from canvasnotes.client.constants import NODE_DRAG_THRESHOLD, UNDO_AFFORDANCE_SECONDS
from canvasnotes.client.mapping import (
    FlowEdge,
    FlowNode,
    FlowPosition,
    map_block_to_node,
    map_connection_to_edge,
)

logger = logging.getLogger(__name__)

PROVISIONAL_EDGE_PREFIX = "pending-"


def _upsert(items: List[Dict[str, Any]], item: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Copy of items with item replacing the entry of the same id, or appended."""
    replaced = [item if existing["id"] == item["id"] else existing for existing in items]
    if all(existing["id"] != item["id"] for existing in items):
        replaced.append(item)
    return replaced


class MutationStatus(str, enum.Enum):
    IDLE = "idle"
    PENDING = "pending"
    APPLIED = "applied"
    ROLLED_BACK = "rolled_back"


class MutationState:
    """Lifecycle of one request: idle -> pending -> applied | rolled_back."""

    def __init__(self, name: str, target_id: Optional[str] = None):
        self.name = name
        self.target_id = target_id
        self.status = MutationStatus.IDLE
        self.error: Optional[str] = None

    def start(self) -> None:
        self.status = MutationStatus.PENDING

    def applied(self) -> None:
        self.status = MutationStatus.APPLIED

    def rolled_back(self, error: Optional[str] = None) -> None:
        self.status = MutationStatus.ROLLED_BACK
        self.error = error

    def __repr__(self) -> str:
        return f"<MutationState {self.name} {self.target_id} {self.status.value}>"


class CanvasGraphState:
    """Local nodes and edges for one canvas, kept in step with the API."""

    def __init__(
        self,
        api: CanvasApi,
        canvas_id: str,
        notify: Optional[Callable[[str], None]] = None,
        undo_affordance_seconds: float = UNDO_AFFORDANCE_SECONDS,
        drag_threshold: float = NODE_DRAG_THRESHOLD,
    ):
        self.api = api
        self.canvas_id = canvas_id
        self.notify = notify or (lambda message: logger.warning(message))
        self.undo_affordance_seconds = undo_affordance_seconds
        self.drag_threshold = drag_threshold

        self.canvas: Optional[Dict[str, Any]] = None
        self.nodes: List[FlowNode] = []
        self.edges: List[FlowEdge] = []
        self.mutations: List[MutationState] = []

        self.undo_block_id: Optional[str] = None
        self._undo_handle: Optional[asyncio.TimerHandle] = None
        self._drag_starts: Dict[str, FlowPosition] = {}
        self._tasks: Set[asyncio.Task] = set()
        self._closed = False

    # ============ Loading ============

    async def load(self) -> None:
        """Fetch the canvas and rebuild nodes and edges from it."""
        canvas = await self.api.get_canvas(self.canvas_id)
        if canvas is None:
            raise CanvasApiError(f"Canvas {self.canvas_id} not found", code="NOT_FOUND")
        self.canvas = canvas
        self._rebuild()

    async def refetch(self) -> None:
        """Full reconciliation with the server; failures are reported, not raised."""
        try:
            await self.load()
        except CanvasApiError as e:
            logger.error(f"Failed to refetch canvas {self.canvas_id}: {e}")
            self.notify("Failed to reload canvas.")

    def _rebuild(self) -> None:
        blocks = self.canvas.get("blocks") or []
        connections = self.canvas.get("connections") or []
        self.nodes = [map_block_to_node(b) for b in blocks]
        self.edges = [map_connection_to_edge(c) for c in connections]

    def get_node(self, node_id: str) -> Optional[FlowNode]:
        return next((n for n in self.nodes if n.id == node_id), None)

    # ============ Task management ============

    def _spawn(self, coro: Coroutine) -> asyncio.Task:
        if self._closed:
            coro.close()
            raise RuntimeError("Canvas view is closed")
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _begin(self, name: str, target_id: Optional[str] = None) -> MutationState:
        mutation = MutationState(name, target_id)
        mutation.start()
        self.mutations.append(mutation)
        return mutation

    @property
    def pending(self) -> List[MutationState]:
        return [m for m in self.mutations if m.status == MutationStatus.PENDING]

    async def settle(self) -> None:
        """Wait until every request started so far (and any it started) finishes."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def close(self) -> None:
        """Leave the canvas: cancel in-flight requests and the undo timer."""
        self._closed = True
        for task in list(self._tasks):
            task.cancel()
        self._clear_undo()

    # ============ Cache patches ============

    def _patch_block(self, block_id: str, updated: Dict[str, Any], *fields: str) -> None:
        if not self.canvas:
            return
        blocks = self.canvas.get("blocks") or []
        for index, block in enumerate(blocks):
            if block["id"] != block_id:
                continue
            patched = dict(block)
            for field in fields + ("updatedAt",):
                if field in updated:
                    patched[field] = updated[field]
            blocks[index] = patched

            # Keep the on-screen position; only the display data is refreshed
            for i, node in enumerate(self.nodes):
                if node.id == block_id:
                    fresh = map_block_to_node(patched)
                    self.nodes[i] = fresh.model_copy(update={"position": node.position})
            return

    # ============ Drag ============

    def drag_start(self, node_id: str) -> None:
        node = self.get_node(node_id)
        if node:
            self._drag_starts[node_id] = node.position.model_copy()

    def drag(self, node_id: str, x: float, y: float) -> None:
        node = self.get_node(node_id)
        if node:
            node.position = FlowPosition(x=x, y=y)

    def drag_stop(self, node_id: str) -> Optional[asyncio.Task]:
        node = self.get_node(node_id)
        start = self._drag_starts.pop(node_id, None)
        if not node:
            return None

        position = {"x": node.position.x, "y": node.position.y}
        if start is None:
            # No recorded start; send the position anyway
            return self._spawn(self._update_position(node_id, position))

        dx = abs(node.position.x - start.x)
        dy = abs(node.position.y - start.y)
        if dx >= self.drag_threshold or dy >= self.drag_threshold:
            logger.debug(f"Updating position for {node_id} after drag")
            return self._spawn(self._update_position(node_id, position))

        logger.debug(f"Skipping position update for {node_id}, movement too small ({dx:.2f}, {dy:.2f})")
        return None

    async def _update_position(self, block_id: str, position: Dict[str, float]) -> None:
        mutation = self._begin("updateBlockPosition", block_id)
        try:
            updated = await self.api.update_block_position(block_id, position)
        except CanvasApiError as e:
            logger.error(f"Error updating position for block {block_id}: {e}")
            mutation.rolled_back(str(e))
            self.notify(f"Failed to save block position for {block_id}.")
            return
        self._patch_block(block_id, updated, "position")
        mutation.applied()

    # ============ Connections ============

    def connect(
        self,
        source: Optional[str],
        target: Optional[str],
        source_handle: Optional[str] = None,
        target_handle: Optional[str] = None,
    ) -> Optional[asyncio.Task]:
        if not source or not target:
            logger.warning(f"Connection attempt missing required data: {source} -> {target}")
            return None

        provisional = FlowEdge(
            id=f"{PROVISIONAL_EDGE_PREFIX}{uuid.uuid4()}",
            source=source,
            target=target,
            source_handle=source_handle,
            target_handle=target_handle,
        )
        self.edges.append(provisional)
        return self._spawn(self._create_connection(provisional))

    async def _create_connection(self, provisional: FlowEdge) -> None:
        mutation = self._begin("createConnection", provisional.id)
        try:
            connection = await self.api.create_connection(
                self.canvas_id,
                provisional.source,
                provisional.target,
                provisional.source_handle,
                provisional.target_handle,
            )
        except CanvasApiError as e:
            logger.error(f"Failed to create connection: {e}")
            mutation.rolled_back(str(e))
            self.notify("Failed to create connection.")
            await self.refetch()
            return

        edge = map_connection_to_edge(connection)
        # A refetch may have dropped the provisional edge or already brought in the saved one
        if any(e.id == provisional.id for e in self.edges):
            self.edges = [edge if e.id == provisional.id else e for e in self.edges if e.id != edge.id]
        elif all(e.id != edge.id for e in self.edges):
            self.edges.append(edge)
        if self.canvas is not None:
            self.canvas["connections"] = _upsert(self.canvas.get("connections") or [], connection)
        mutation.target_id = edge.id
        mutation.applied()

    def delete_edges(self, edge_ids: List[str]) -> List[asyncio.Task]:
        tasks = []
        for edge_id in edge_ids:
            index = next((i for i, e in enumerate(self.edges) if e.id == edge_id), None)
            if index is None:
                continue
            removed = self.edges.pop(index)
            tasks.append(self._spawn(self._delete_connection(removed, index)))
        return tasks

    async def _delete_connection(self, removed: FlowEdge, index: int) -> None:
        mutation = self._begin("deleteConnection", removed.id)
        try:
            deleted = await self.api.delete_connection(removed.id)
            if deleted and self.canvas is not None:
                self.canvas["connections"] = [
                    c for c in (self.canvas.get("connections") or []) if c["id"] != removed.id
                ]
            mutation.applied()
        except CanvasApiError as e:
            logger.error(f"Failed to delete connection {removed.id}: {e}")
            if all(edge.id != removed.id for edge in self.edges):
                self.edges.insert(min(index, len(self.edges)), removed)
            mutation.rolled_back(str(e))
            self.notify(f"Failed to delete connection {removed.id}.")
        # Reconcile on success and failure alike
        await self.refetch()

    # ============ Blocks ============

    def create_block(self, block_type: str, position: Dict[str, float], content: Optional[Any] = None) -> asyncio.Task:
        return self._spawn(self._create_block(block_type, position, content))

    async def _create_block(self, block_type: str, position: Dict[str, float], content: Optional[Any]) -> None:
        mutation = self._begin("createBlock")
        try:
            block = await self.api.create_block(self.canvas_id, block_type, position, content)
        except CanvasApiError as e:
            logger.error(f"Error creating block: {e}")
            mutation.rolled_back(str(e))
            self.notify("Failed to create block")
            return

        if self.canvas is not None:
            self.canvas["blocks"] = _upsert(self.canvas.get("blocks") or [], block)
        node = map_block_to_node(block)
        if all(n.id != node.id for n in self.nodes):
            self.nodes.append(node)
        mutation.target_id = block["id"]
        mutation.applied()
        self._show_undo(block["id"])

    def _show_undo(self, block_id: str) -> None:
        # A newer block supersedes the previous undo affordance
        self._clear_undo()
        self.undo_block_id = block_id
        self._undo_handle = asyncio.get_running_loop().call_later(
            self.undo_affordance_seconds, self._expire_undo, block_id
        )

    def _expire_undo(self, block_id: str) -> None:
        if self.undo_block_id == block_id:
            logger.debug(f"Undo timeout expired for {block_id}")
            self.undo_block_id = None
            self._undo_handle = None

    def _clear_undo(self) -> None:
        if self._undo_handle is not None:
            self._undo_handle.cancel()
            self._undo_handle = None
        self.undo_block_id = None

    def undo_block_creation(self, block_id: Optional[str] = None) -> Optional[asyncio.Task]:
        block_id = block_id or self.undo_block_id
        if not block_id:
            return None
        return self._spawn(self._undo_block_creation(block_id))

    async def _undo_block_creation(self, block_id: str) -> None:
        mutation = self._begin("undoBlockCreation", block_id)
        try:
            success = await self.api.undo_block_creation(block_id)
        except CanvasApiError as e:
            logger.error(f"Error undoing block creation for {block_id}: {e}")
            mutation.rolled_back(str(e))
            self.notify("Failed to undo block.")
            self._undo_failed(block_id)
            return

        if not success:
            mutation.rolled_back("undo refused")
            self.notify("Undo period expired or failed.")
            self._undo_failed(block_id)
            return

        mutation.applied()
        if self.undo_block_id == block_id:
            self._clear_undo()
        await self.refetch()

    def _undo_failed(self, block_id: str) -> None:
        logger.warning(f"Failed to undo block {block_id} (likely expired)")
        if self.undo_block_id == block_id:
            self._clear_undo()

    def update_block_content(self, block_id: str, content: Any) -> asyncio.Task:
        return self._spawn(self._update_block(block_id, "content", self.api.update_block_content, content))

    def update_block_notes(self, block_id: str, notes: str) -> asyncio.Task:
        return self._spawn(self._update_block(block_id, "notes", self.api.update_block_notes, notes))

    async def _update_block(self, block_id: str, field: str, send: Callable, value: Any) -> None:
        mutation = self._begin(f"updateBlock{field.capitalize()}", block_id)
        try:
            updated = await send(block_id, value)
        except CanvasApiError as e:
            logger.error(f"Error updating {field} for block {block_id}: {e}")
            mutation.rolled_back(str(e))
            self.notify(f"Failed to save block {field} for {block_id}.")
            return
        self._patch_block(block_id, updated, field)
        mutation.applied()

    # ============ Canvas ============

    def update_canvas_title(self, title: str) -> asyncio.Task:
        return self._spawn(self._update_canvas_title(title))

    async def _update_canvas_title(self, title: str) -> None:
        mutation = self._begin("updateCanvasTitle", self.canvas_id)
        try:
            updated = await self.api.update_canvas_title(self.canvas_id, title)
        except CanvasApiError as e:
            logger.error(f"Error updating canvas title: {e}")
            mutation.rolled_back(str(e))
            self.notify("Failed to save canvas title. Please try again or refresh the page.")
            return
        if self.canvas is not None:
            self.canvas["title"] = updated["title"]
            if "updatedAt" in updated:
                self.canvas["updatedAt"] = updated["updatedAt"]
        mutation.applied()
