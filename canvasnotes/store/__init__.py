from canvasnotes.store.base import GraphStore
from canvasnotes.store.memory import InMemoryGraphStore
from canvasnotes.store.sql import SqlGraphStore

__all__ = ["GraphStore", "InMemoryGraphStore", "SqlGraphStore"]
