from __future__ import annotations

import pytest

from chat_client.services.badge_scheduler import BadgeScheduler
from tests.conftest import FakeScheduler


@pytest.fixture
def runs():
    return []


@pytest.fixture
def badges(scheduler: FakeScheduler, runs):
    return BadgeScheduler(lambda: runs.append(scheduler.now_ms), scheduler, scheduler)


def test_first_trigger_runs_immediately(badges, runs):
    assert badges.trigger() is True
    assert len(runs) == 1
    assert badges.pending is False


def test_burst_collapses_into_one_trailing_run(badges, scheduler: FakeScheduler, runs):
    start = scheduler.now_ms
    badges.trigger()

    for _ in range(10):
        assert badges.trigger() is False
        scheduler.advance(10)
    assert badges.pending is True

    scheduler.advance(2000)

    assert len(runs) == 2
    assert runs[1] - start >= 1000
    assert badges.pending is False


def test_trailing_run_waits_for_coalesce_window(badges, scheduler: FakeScheduler, runs):
    badges.trigger()
    scheduler.advance(1500)

    assert badges.trigger() is True
    scheduler.advance(900)
    assert badges.trigger() is False

    scheduler.advance(199)
    assert len(runs) == 2
    scheduler.advance(1)
    assert len(runs) == 3


def test_recompute_failure_does_not_wedge(scheduler: FakeScheduler):
    calls = []

    def recompute():
        calls.append(1)
        raise RuntimeError("boom")

    badges = BadgeScheduler(recompute, scheduler, scheduler)
    badges.trigger()
    scheduler.advance(1000)

    assert badges.trigger() is True
    assert len(calls) == 2


def test_periodic_tick_until_stopped(badges, scheduler: FakeScheduler, runs):
    badges.start()
    badges.start()
    assert badges.running

    scheduler.advance(5000)
    scheduler.advance(5000)
    assert len(runs) == 2

    badges.stop()
    scheduler.advance(20_000)
    assert len(runs) == 2
    assert not badges.running
    assert scheduler.active_timers == 0


def test_trigger_from_inside_recompute_is_deferred(scheduler: FakeScheduler):
    runs = []
    depth = []
    active = []
    nested = []

    def recompute():
        active.append(1)
        depth.append(len(active))
        runs.append(scheduler.now_ms)
        if len(runs) < 4:
            nested.append(badges.trigger())
        active.pop()

    badges = BadgeScheduler(recompute, scheduler, scheduler)

    assert badges.trigger() is True
    assert badges.pending is True
    assert len(runs) == 1

    scheduler.advance(10_000)

    assert max(depth) == 1
    assert nested == [False, False, False]
    assert len(runs) == 4
    assert all(later - earlier >= 1000 for earlier, later in zip(runs, runs[1:]))
    assert badges.pending is False
