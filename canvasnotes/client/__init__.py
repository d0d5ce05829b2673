from canvasnotes.client.api import CanvasApi, CanvasApiError
from canvasnotes.client.mapping import FlowEdge, FlowNode, map_block_to_node, map_connection_to_edge
from canvasnotes.client.state import CanvasGraphState, MutationState, MutationStatus

__all__ = [
    "CanvasApi",
    "CanvasApiError",
    "CanvasGraphState",
    "FlowEdge",
    "FlowNode",
    "MutationState",
    "MutationStatus",
    "map_block_to_node",
    "map_connection_to_edge",
]
