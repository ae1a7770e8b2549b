"""
Local cache module - in-memory storage for drafts and locks
"""
from .memory_store import MemoryStore, DraftStore, LockManager

__all__ = ["MemoryStore", "DraftStore", "LockManager"]
