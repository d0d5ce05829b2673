"""
Error kinds raised by the graph data service.

Each error carries a machine-readable ``code`` that the GraphQL layer exposes
as ``extensions.code``, plus optional identifying extensions (canvasId,
blockId, argumentName, ...).
"""

from typing import Any, Dict


class GraphError(Exception):
    """Base exception for graph data service errors."""

    code = "INTERNAL_SERVER_ERROR"

    def __init__(self, message: str, **extensions: Any):
        super().__init__(message)
        self.message = message
        self.extensions: Dict[str, Any] = {k: v for k, v in extensions.items() if v is not None}

    def to_extensions(self) -> Dict[str, Any]:
        return {"code": self.code, **self.extensions}


class Unauthenticated(GraphError):
    """No caller identity, or the bearer credential was invalid."""
    code = "UNAUTHENTICATED"


class BadInput(GraphError):
    """Malformed or missing required input."""
    code = "BAD_USER_INPUT"


class NotFound(GraphError):
    """Entity is not visible to the caller (read path)."""
    code = "NOT_FOUND"


class NotFoundOrForbidden(GraphError):
    """
    Entity is absent or the caller may not change it.

    The two causes are deliberately reported the same way so that callers
    without rights cannot probe for existence.
    """
    code = "NOT_FOUND_OR_FORBIDDEN"


class Internal(GraphError):
    """Persistence or unexpected failure. The message is for operators only."""
    code = "INTERNAL_SERVER_ERROR"


class StoreError(Exception):
    """Base exception raised by persistence collaborators."""
    pass


class ForeignKeyViolation(StoreError):
    """A referenced row does not exist."""
    pass


class RowLevelSecurityViolation(StoreError):
    """The caller is not allowed to write the row."""
    pass

