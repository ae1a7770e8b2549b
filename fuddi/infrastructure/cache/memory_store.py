"""
Local Memory Store
Thread-safe in-memory cache with TTL support for order drafts and submit locks
"""

import threading
import time
from typing import Any, Dict, List, Optional
import logging

from ...config import settings
from ...domain.order_draft import OrderDraft

logger = logging.getLogger(__name__)


class MemoryStore:
    """
    Thread-safe in-memory key-value store with TTL support
    """

    def __init__(self):
        self._data: Dict[str, Any] = {}
        self._expiry: Dict[str, float] = {}  # key -> timestamp when it expires
        self._lock = threading.RLock()
        self._cleanup_interval = 60  # seconds between cleanup runs
        self._last_cleanup = time.time()

    def _maybe_cleanup(self):
        """Lazy cleanup - run periodically, not on every operation"""
        now = time.time()
        if now - self._last_cleanup > self._cleanup_interval:
            self._cleanup_expired()
            self._last_cleanup = now

    def _cleanup_expired(self):
        now = time.time()
        expired_keys = [key for key, expiry in self._expiry.items() if expiry <= now]
        for key in expired_keys:
            self._data.pop(key, None)
            self._expiry.pop(key, None)
        if expired_keys:
            logger.debug(f"🧹 Expired {len(expired_keys)} cache keys")

    def _is_expired(self, key: str) -> bool:
        if key not in self._expiry:
            return False
        return self._expiry[key] <= time.time()

    def get(self, key: str) -> Optional[Any]:
        """Get value by key, returns None if expired or not found"""
        with self._lock:
            self._maybe_cleanup()
            if key not in self._data or self._is_expired(key):
                return None
            return self._data.get(key)

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """
        Set key-value pair with optional TTL (in seconds)

        Args:
            key: Cache key
            value: Value to store
            ttl: Time-to-live in seconds (None = no expiry)
        """
        with self._lock:
            self._data[key] = value
            if ttl is not None:
                self._expiry[key] = time.time() + ttl
            elif key in self._expiry:
                del self._expiry[key]
            return True

    def set_if_absent(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """Atomic set-if-not-exists; False when a live value is already there"""
        with self._lock:
            if key in self._data and not self._is_expired(key):
                return False
            return self.set(key, value, ttl=ttl)

    def delete(self, key: str) -> bool:
        """Delete a key, returns True if existed"""
        with self._lock:
            existed = key in self._data
            self._data.pop(key, None)
            self._expiry.pop(key, None)
            return existed

    def exists(self, key: str) -> bool:
        with self._lock:
            if key not in self._data:
                return False
            if self._is_expired(key):
                self.delete(key)
                return False
            return True

    def keys(self, prefix: str = "") -> List[str]:
        """Live keys starting with prefix"""
        with self._lock:
            self._maybe_cleanup()
            return [k for k in self._data.keys() if k.startswith(prefix) and not self._is_expired(k)]

    def expire(self, key: str, seconds: int) -> bool:
        """Set expiry on existing key"""
        with self._lock:
            if key not in self._data:
                return False
            self._expiry[key] = time.time() + seconds
            return True

    def clear(self):
        with self._lock:
            self._data.clear()
            self._expiry.clear()


class DraftStore:
    """
    Order drafts kept per dashboard session
    A draft lives until submitted, discarded, or idle past its TTL
    """

    def __init__(self, store: Optional[MemoryStore] = None, ttl: Optional[int] = None):
        self._store = store or _global_store
        self._ttl = ttl or settings.draft_ttl_seconds

    def _key(self, draft_id: str) -> str:
        return f"draft:{draft_id}"

    def create(self, business_id: str) -> OrderDraft:
        draft = OrderDraft(business_id=business_id)
        self.save(draft)
        logger.info(f"📝 Draft {draft.id} opened for business {business_id}")
        return draft

    def get(self, draft_id: str) -> Optional[OrderDraft]:
        draft = self._store.get(self._key(draft_id))
        if draft is not None:
            # Sliding TTL: any access keeps an active draft alive
            self._store.expire(self._key(draft_id), self._ttl)
        return draft

    def save(self, draft: OrderDraft) -> bool:
        return self._store.set(self._key(draft.id), draft, ttl=self._ttl)

    def delete(self, draft_id: str) -> bool:
        return self._store.delete(self._key(draft_id))

    def all(self) -> List[OrderDraft]:
        drafts = [self._store.get(key) for key in self._store.keys("draft:")]
        return [draft for draft in drafts if draft is not None]

    def list_for_business(self, business_id: str) -> List[OrderDraft]:
        return [draft for draft in self.all() if draft.business_id == business_id]


class LockManager:
    """
    Simple lock manager for single-instance deployments
    """

    def __init__(self, store: Optional[MemoryStore] = None):
        self._store = store or _global_store
        self._default_ttl = 30  # seconds

    def _key(self, name: str) -> str:
        return f"lock:{name}"

    def acquire(self, name: str, ttl: Optional[int] = None) -> bool:
        """Acquire lock, returns True if successful"""
        return self._store.set_if_absent(self._key(name), time.time(), ttl=ttl or self._default_ttl)

    def release(self, name: str) -> bool:
        return self._store.delete(self._key(name))

    def is_locked(self, name: str) -> bool:
        return self._store.exists(self._key(name))


# Global store instance
_global_store = MemoryStore()


def get_store() -> MemoryStore:
    """Get global memory store instance"""
    return _global_store


def get_draft_store() -> DraftStore:
    """Get draft store instance"""
    return DraftStore(_global_store)


def get_lock_manager() -> LockManager:
    """Get lock manager instance"""
    return LockManager(_global_store)
