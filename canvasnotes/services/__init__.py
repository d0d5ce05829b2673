"""
Service layer for canvas graph operations.
"""

from canvasnotes.services.graph_service import GraphDataService

__all__ = ["GraphDataService"]
