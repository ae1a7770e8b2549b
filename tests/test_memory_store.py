import time

from fuddi.infrastructure.cache.memory_store import DraftStore, LockManager, MemoryStore


def test_ttl_expiry(monkeypatch):
    store = MemoryStore()
    clock = [1000.0]
    monkeypatch.setattr(time, "time", lambda: clock[0])

    store.set("a", 1, ttl=10)
    store.set("b", 2)
    assert store.get("a") == 1

    clock[0] += 11
    assert store.get("a") is None
    assert store.exists("a") is False
    assert store.get("b") == 2
    assert store.keys() == ["b"]


def test_set_if_absent():
    store = MemoryStore()
    assert store.set_if_absent("k", "first") is True
    assert store.set_if_absent("k", "second") is False
    assert store.get("k") == "first"

    store.delete("k")
    assert store.set_if_absent("k", "third") is True


def test_draft_store_scopes_by_business():
    drafts = DraftStore(MemoryStore(), ttl=60)
    first = drafts.create("biz-1")
    drafts.create("biz-2")

    assert drafts.get(first.id) is first
    assert [d.id for d in drafts.list_for_business("biz-1")] == [first.id]
    assert len(drafts.all()) == 2

    assert drafts.delete(first.id) is True
    assert drafts.get(first.id) is None


def test_draft_ttl_slides_on_access(monkeypatch):
    clock = [0.0]
    monkeypatch.setattr(time, "time", lambda: clock[0])
    drafts = DraftStore(MemoryStore(), ttl=60)
    draft = drafts.create("biz-1")

    clock[0] = 50
    assert drafts.get(draft.id) is draft
    clock[0] = 100
    assert drafts.get(draft.id) is draft
    clock[0] = 200
    assert drafts.get(draft.id) is None


def test_lock_manager():
    locks = LockManager(MemoryStore())
    assert locks.acquire("submit:d-1") is True
    assert locks.acquire("submit:d-1") is False
    assert locks.is_locked("submit:d-1")

    locks.release("submit:d-1")
    assert not locks.is_locked("submit:d-1")
    assert locks.acquire("submit:d-1") is True
