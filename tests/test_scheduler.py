"""Unit tests for auth/scheduler.py -- CleanupScheduler.

The loop is driven with asyncio.run() and a tiny interval so the tests run in
milliseconds without a pytest asyncio plugin.

Covers:
- warm-up: nothing is swept before the first full interval
- subsequent ticks call TokenService.sweep()
- stop() ends the loop; a scheduler cannot be started twice
- a failing sweep is logged and does not end the loop
- ticks stay on a fixed grid; overruns skip missed ticks
"""

import asyncio
from unittest.mock import MagicMock

import pytest

from auth.scheduler import CleanupScheduler
from auth.service import TokenService


def _mock_service() -> MagicMock:
    service = MagicMock(spec=TokenService)
    service.sweep.return_value = 0
    service.revocations = MagicMock()
    service.revocations.__len__.return_value = 0
    return service


def test_first_tick_is_warm_up() -> None:
    service = _mock_service()

    async def scenario() -> None:
        scheduler = CleanupScheduler(service, interval_seconds=10)
        scheduler.start()
        await asyncio.sleep(0.01)
        await scheduler.stop()

    asyncio.run(scenario())
    service.sweep.assert_not_called()


def test_sweeps_every_interval() -> None:
    service = _mock_service()

    async def scenario() -> CleanupScheduler:
        scheduler = CleanupScheduler(service, interval_seconds=0.01)
        scheduler.start()
        await asyncio.sleep(0.1)
        await scheduler.stop()
        return scheduler

    scheduler = asyncio.run(scenario())
    assert service.sweep.call_count >= 2
    assert scheduler.sweeps == service.sweep.call_count
    assert not scheduler.running


def test_sweep_failure_does_not_stop_loop() -> None:
    service = _mock_service()
    calls = []

    def flaky_sweep() -> int:
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("boom")
        return 0

    service.sweep.side_effect = flaky_sweep

    async def scenario() -> None:
        scheduler = CleanupScheduler(service, interval_seconds=0.01)
        scheduler.start()
        await asyncio.sleep(0.1)
        assert scheduler.running
        await scheduler.stop()

    asyncio.run(scenario())
    assert service.sweep.call_count >= 2


def test_cannot_start_twice() -> None:
    service = _mock_service()

    async def scenario() -> None:
        scheduler = CleanupScheduler(service, interval_seconds=10)
        scheduler.start()
        with pytest.raises(RuntimeError):
            scheduler.start()
        await scheduler.stop()
        with pytest.raises(RuntimeError):
            scheduler.start()

    asyncio.run(scenario())


def test_stop_is_idempotent_and_safe_before_start() -> None:
    service = _mock_service()

    async def scenario() -> None:
        scheduler = CleanupScheduler(service, interval_seconds=10)
        await scheduler.stop()
        scheduler.start()
        assert scheduler.running
        await scheduler.stop()
        await scheduler.stop()
        assert not scheduler.running

    asyncio.run(scenario())


def test_sweeps_real_service(service: TokenService, clock) -> None:
    """Wired to a real TokenService, a tick prunes naturally expired revocations."""
    token = service.issue_for_subject("a@x.com")
    service.revoke(token)
    clock.advance(3601)

    async def scenario() -> None:
        scheduler = CleanupScheduler(service, interval_seconds=0.01)
        scheduler.start()
        await asyncio.sleep(0.05)
        await scheduler.stop()

    asyncio.run(scenario())
    assert len(service.revocations) == 0


def test_ticks_stay_on_fixed_grid() -> None:
    scheduler = CleanupScheduler(_mock_service(), interval_seconds=10)
    # A sweep that ends 3s after its tick does not move the next one.
    assert scheduler.next_deadline(started=100.0, previous=110.0, now=113.0) == 120.0
    assert scheduler.next_deadline(started=100.0, previous=100.0, now=100.0) == 110.0


def test_overrun_skips_missed_ticks() -> None:
    scheduler = CleanupScheduler(_mock_service(), interval_seconds=10)
    # A 25s sweep started at the 110 tick: 120 and 130 are skipped.
    assert scheduler.next_deadline(started=100.0, previous=110.0, now=135.0) == 140.0


@pytest.mark.parametrize("interval", [0, -1])
def test_rejects_non_positive_interval(interval: float) -> None:
    with pytest.raises(ValueError):
        CleanupScheduler(_mock_service(), interval_seconds=interval)
