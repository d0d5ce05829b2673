from sqlalchemy import Column, String, DateTime, ForeignKey, Float, JSON, Text
from sqlalchemy.orm import relationship
import enum
import uuid

from canvasnotes.core.database import Base
from canvasnotes.core.timeutil import utcnow


DEFAULT_BLOCK_WIDTH = 200.0
DEFAULT_BLOCK_HEIGHT = 100.0


class BlockType(str, enum.Enum):
    """Block types with a recognized content shape. Any other string is allowed."""
    TEXT = "text"
    LINK = "link"


class Block(Base):
    __tablename__ = "blocks"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # Parent canvas, fixed at creation
    canvas_id = Column(String(36), ForeignKey("canvases.id", ondelete="CASCADE"), nullable=False, index=True)

    # Creator
    user_id = Column(String(255), nullable=False, index=True)

    block_type = Column("type", String(50), nullable=False)

    # Content (shape depends on type)
    # text: {"text": "..."}
    # link: {"url": "..."}
    # anything else: free-form mapping
    content = Column(JSON, default=dict, nullable=False)

    # Position on canvas
    position_x = Column(Float, default=0.0, nullable=False)
    position_y = Column(Float, default=0.0, nullable=False)

    # Size
    width = Column(Float, default=DEFAULT_BLOCK_WIDTH, nullable=False)
    height = Column(Float, default=DEFAULT_BLOCK_HEIGHT, nullable=False)

    notes = Column(Text, nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    canvas = relationship("Canvas", back_populates="blocks")

    # Connections (as source)
    outgoing_connections = relationship(
        "Connection",
        foreign_keys="Connection.source_block_id",
        back_populates="source_block",
        cascade="all, delete-orphan"
    )

    # Connections (as target)
    incoming_connections = relationship(
        "Connection",
        foreign_keys="Connection.target_block_id",
        back_populates="target_block",
        cascade="all, delete-orphan"
    )


class Connection(Base):
    __tablename__ = "connections"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    canvas_id = Column(String(36), ForeignKey("canvases.id", ondelete="CASCADE"), nullable=False, index=True)

    # Connected blocks
    source_block_id = Column(String(36), ForeignKey("blocks.id", ondelete="CASCADE"), nullable=False)
    target_block_id = Column(String(36), ForeignKey("blocks.id", ondelete="CASCADE"), nullable=False)

    # Attachment points on the block outline
    source_handle = Column(String(100), nullable=True)
    target_handle = Column(String(100), nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)

    # Relationships
    canvas = relationship("Canvas", back_populates="connections")
    source_block = relationship(
        "Block",
        foreign_keys=[source_block_id],
        back_populates="outgoing_connections"
    )
    target_block = relationship(
        "Block",
        foreign_keys=[target_block_id],
        back_populates="incoming_connections"
    )
