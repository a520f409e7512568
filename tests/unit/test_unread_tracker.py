from __future__ import annotations

import pytest

from chat_client.application.dto.events import UnreadCount, UnreadSnapshotEvent
from chat_client.services.block_list import BlockList
from chat_client.services.unread_tracker import UnreadTracker
from tests.conftest import FakeChatApi, FakeScheduler


@pytest.fixture
def api():
    return FakeChatApi()


@pytest.fixture
def changes():
    return []


@pytest.fixture
def tracker(api, changes):
    return UnreadTracker(BlockList(), api, FakeScheduler(), on_change=lambda: changes.append(1))


def _snapshot(*counts: tuple[int, int], total: int | None = None) -> UnreadSnapshotEvent:
    return UnreadSnapshotEvent(
        unread_counts=[UnreadCount(peer_id=p, username=f"user{p}", count=c) for p, c in counts],
        total_unread_count=total,
    )


def test_increment_accumulates_and_keeps_total(tracker, changes):
    tracker.increment(7, "alice")
    tracker.increment(7, "")
    entry = tracker.increment(8, "bob")

    assert entry.count == 1
    assert tracker.count_for(7) == 2
    assert tracker.entries()[0].username == "alice"
    assert tracker.total == 3
    assert len(changes) == 3


def test_mark_read_is_idempotent(tracker, changes):
    tracker.increment(7, "alice")
    tracker.increment(7, "alice")
    changes.clear()

    assert tracker.mark_read(7) == 2
    assert tracker.mark_read(7) == 0

    assert tracker.total == 0
    assert tracker.count_for(7) == 0
    assert len(changes) == 1


def test_reconcile_skips_blocked_and_empty_counts(api):
    block_list = BlockList([9])
    tracker = UnreadTracker(block_list, api, FakeScheduler())

    tracker.reconcile(_snapshot((7, 2), (8, 0), (9, 5), total=7))

    assert {e.peer_id for e in tracker.entries()} == {7}
    assert tracker.total == 2


def test_reconcile_without_counts_is_ignored(tracker, changes):
    tracker.increment(7, "alice")
    changes.clear()

    tracker.reconcile(UnreadSnapshotEvent(total_unread_count=0))

    assert tracker.total == 1
    assert changes == []


def test_clear_only_notifies_when_entry_existed(tracker, changes):
    tracker.clear(7)
    assert changes == []

    tracker.increment(7, "alice")
    tracker.clear(7)
    assert tracker.total == 0
    assert len(changes) == 2


def test_reset_is_silent(tracker, changes):
    tracker.increment(7, "alice")
    changes.clear()

    tracker.reset()

    assert tracker.total == 0
    assert tracker.entries() == []
    assert changes == []


@pytest.mark.asyncio
async def test_refresh_loads_server_snapshot(tracker, api):
    api.unread = [UnreadCount(peer_id=7, username="alice", count=3)]

    await tracker.refresh()

    assert tracker.count_for(7) == 3
    assert tracker.total == 3


@pytest.mark.asyncio
async def test_refresh_failure_keeps_state(tracker, api):
    tracker.increment(7, "alice")
    api.failing.add("fetch_unread_counts")

    await tracker.refresh()

    assert tracker.total == 1


@pytest.mark.asyncio
async def test_confirm_read_failure_keeps_local_state(tracker, api):
    tracker.increment(7, "alice")
    tracker.mark_read(7)
    api.failing.add("mark_read")

    await tracker.confirm_read(7)

    assert api.mark_read_calls == [7]
    assert tracker.total == 0


@pytest.mark.asyncio
async def test_confirm_read_refreshes_when_server_total_differs(tracker, api):
    api.unread = [
        UnreadCount(peer_id=7, username="alice", count=1),
        UnreadCount(peer_id=8, username="bob", count=4),
    ]
    tracker.increment(7, "alice")
    tracker.mark_read(7)

    await tracker.confirm_read(7)

    assert tracker.count_for(8) == 4
    assert tracker.total == 4
