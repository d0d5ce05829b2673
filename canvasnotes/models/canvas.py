import uuid
from sqlalchemy import Column, String, DateTime, Boolean
from sqlalchemy.orm import relationship

from canvasnotes.core.database import Base
from canvasnotes.core.timeutil import utcnow


class Canvas(Base):
    """
    Canvas represents a workspace containing blocks and connections.

    Canvases are owned by a single user and are never deleted. A public
    canvas can be read by anyone; only the owner can change it.
    """
    __tablename__ = "canvases"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # Owner - the `sub` of the provider-issued access token
    user_id = Column(String(255), nullable=False, index=True)

    title = Column(String(255), nullable=False)
    is_public = Column(Boolean, default=False, nullable=False)

    # Timestamps
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    blocks = relationship("Block", back_populates="canvas", cascade="all, delete-orphan")
    connections = relationship("Connection", back_populates="canvas", cascade="all, delete-orphan")
