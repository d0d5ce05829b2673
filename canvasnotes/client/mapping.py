from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from canvasnotes.client.constants import LINK_BLOCK_NODE, STYLED_BLOCK_NODE, TEXT_BLOCK_NODE
from canvasnotes.schemas.block import content_label


class FlowPosition(BaseModel):
    x: float
    y: float


class FlowNode(BaseModel):
    """A rendered block: node type, position and display data."""
    id: str
    type: str
    position: FlowPosition
    data: Dict[str, Any] = Field(default_factory=dict)

    @property
    def label(self) -> str:
        return self.data.get("label", "")


class FlowEdge(BaseModel):
    id: str
    source: str
    target: str
    source_handle: Optional[str] = None
    target_handle: Optional[str] = None


def node_type_for(block_type: str) -> str:
    if block_type == "text":
        return TEXT_BLOCK_NODE
    if block_type == "link":
        return LINK_BLOCK_NODE
    return STYLED_BLOCK_NODE


def map_block_to_node(block: Dict[str, Any]) -> FlowNode:
    """Map a wire block to a flow node; the raw block is kept on the node data."""
    return FlowNode(
        id=block["id"],
        type=node_type_for(block["type"]),
        position=FlowPosition(**block["position"]),
        data={
            "label": content_label(block["type"], block.get("content")),
            "notes": block.get("notes"),
            "rawBlock": block,
        },
    )


def map_connection_to_edge(connection: Dict[str, Any]) -> FlowEdge:
    return FlowEdge(
        id=connection["id"],
        source=connection["sourceBlockId"],
        target=connection["targetBlockId"],
        source_handle=connection.get("sourceHandle"),
        target_handle=connection.get("targetHandle"),
    )
