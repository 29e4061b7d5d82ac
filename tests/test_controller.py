"""Tests for the DashboardController fetch loop."""

import asyncio

import pytest
from conftest import FakeFetcher

from sysdash.controller import DashboardController
from sysdash.fetcher import HttpStatusError, NetworkError, ParseError
from sysdash.models import Snapshot


def test_controller_creation():
    """Test a new controller is idle and projects an empty view model."""
    controller = DashboardController(FakeFetcher(), interval_ms=1000)

    assert controller.state.snapshot is None
    assert controller.state.interval_ms == 1000
    assert controller.poller.interval == 1.0
    assert not controller.poller.is_running
    assert controller.view_model.cpu_percent == 0


def test_controller_coerces_bad_interval():
    controller = DashboardController(FakeFetcher(), interval_ms=0)

    assert controller.state.interval_ms == 5000


@pytest.mark.asyncio
async def test_fetch_cycle_success(sample_snapshot):
    """Test one fetch cycle stores the snapshot and notifies listeners."""
    seen = []
    controller = DashboardController(FakeFetcher(sample_snapshot), auto_refresh=False)
    controller.add_listener(seen.append)

    await controller.fetch_cycle()

    assert controller.state.snapshot is sample_snapshot
    assert not controller.state.loading
    assert controller.view_model.cpu_percent == 45.67
    # loading, then loaded
    assert [s.loading for s in seen] == [True, False]


@pytest.mark.asyncio
async def test_http_500_keeps_previous_snapshot(sample_snapshot):
    """Test a failing cycle keeps the last good snapshot and reports the status."""
    errors = []
    fetcher = FakeFetcher(sample_snapshot, HttpStatusError(500, "Internal Server Error"))
    controller = DashboardController(fetcher, auto_refresh=False)
    controller.add_error_listener(errors.append)

    await controller.fetch_cycle()
    await controller.fetch_cycle()

    assert controller.state.snapshot is sample_snapshot
    assert "500" in controller.state.error
    assert not controller.state.loading
    assert errors == ["HTTP 500 Internal Server Error"]


@pytest.mark.asyncio
async def test_next_success_clears_error(sample_snapshot):
    fetcher = FakeFetcher(NetworkError("connection refused"), sample_snapshot)
    controller = DashboardController(fetcher, auto_refresh=False)

    await controller.fetch_cycle()
    assert controller.state.error == "connection refused"

    await controller.fetch_cycle()
    assert controller.state.error is None
    assert controller.state.snapshot is sample_snapshot


@pytest.mark.asyncio
async def test_unexpected_error_is_reported():
    """Test errors outside the fetch taxonomy still end the cycle cleanly."""
    controller = DashboardController(FakeFetcher(RuntimeError("bug")), auto_refresh=False)

    await controller.fetch_cycle()

    assert controller.state.error == "bug"
    assert not controller.state.loading


@pytest.mark.asyncio
async def test_parse_error_keeps_timer_running():
    """Test invalid JSON sets an error and the timer keeps firing."""
    fetcher = FakeFetcher(ParseError("Invalid JSON: Expecting value"))
    controller = DashboardController(fetcher, interval_ms=50)

    controller.start()
    try:
        await asyncio.sleep(0.35)
        assert controller.poller.is_running
        assert controller.state.error == "Invalid JSON: Expecting value"
        # immediate fetch plus several ticks
        assert fetcher.calls >= 4
    finally:
        controller.close()


@pytest.mark.asyncio
async def test_start_without_auto_refresh_fetches_once(sample_snapshot):
    fetcher = FakeFetcher(sample_snapshot)
    controller = DashboardController(fetcher, interval_ms=50, auto_refresh=False)

    controller.start()
    try:
        await asyncio.sleep(0.25)
        assert fetcher.calls == 1
        assert not controller.poller.is_running
        assert controller.state.snapshot is sample_snapshot
    finally:
        controller.close()


@pytest.mark.asyncio
async def test_toggle_auto_refresh_off_stops_fetching(sample_snapshot):
    """Test turning auto-refresh off stops fetches until it is turned on again."""
    fetcher = FakeFetcher(sample_snapshot)
    controller = DashboardController(fetcher, interval_ms=50)

    controller.start()
    try:
        await asyncio.sleep(0.15)
        assert controller.toggle_auto_refresh() is False
        assert not controller.poller.is_running
        await asyncio.sleep(0.05)
        calls_when_off = fetcher.calls

        await asyncio.sleep(0.25)
        assert fetcher.calls == calls_when_off

        assert controller.toggle_auto_refresh() is True
        assert controller.poller.is_running
        await asyncio.sleep(0.2)
        assert fetcher.calls > calls_when_off
    finally:
        controller.close()


@pytest.mark.asyncio
async def test_set_interval_reschedules(sample_snapshot):
    """Test a new interval takes effect from the next tick."""
    fetcher = FakeFetcher(sample_snapshot)
    controller = DashboardController(fetcher, interval_ms=10_000)

    controller.start()
    try:
        await asyncio.sleep(0.05)
        assert fetcher.calls == 1

        assert controller.set_interval("50") == 50
        assert controller.poller.interval == 0.05
        assert controller.poller.is_running
        await asyncio.sleep(0.3)
        assert fetcher.calls >= 3
    finally:
        controller.close()


@pytest.mark.asyncio
async def test_set_interval_while_disabled_does_not_start_timer():
    controller = DashboardController(FakeFetcher(), interval_ms=1000, auto_refresh=False)

    controller.set_interval(200)

    assert controller.state.interval_ms == 200
    assert not controller.poller.is_running


@pytest.mark.asyncio
async def test_stale_response_is_discarded():
    """Test a slow earlier response cannot overwrite a newer one."""
    old = Snapshot.from_json({"info": {"hostname": "old"}})
    new = Snapshot.from_json({"info": {"hostname": "new"}})
    fetcher = FakeFetcher(old, new, delays={1: 0.2})
    controller = DashboardController(fetcher, auto_refresh=False)

    await asyncio.gather(controller.fetch_cycle(), controller.fetch_cycle())

    assert controller.state.snapshot is new
    assert controller.view_model.info.hostname == "new"
    assert not controller.state.loading


@pytest.mark.asyncio
async def test_responses_land_when_latency_exceeds_interval():
    """Test a server slower than the refresh interval still updates the view."""
    first = Snapshot.from_json({"info": {"hostname": "first"}})
    second = Snapshot.from_json({"info": {"hostname": "second"}})
    fetcher = FakeFetcher(first, second, delays={1: 0.1, 2: 0.3})
    controller = DashboardController(fetcher, auto_refresh=False)

    cycles = asyncio.gather(controller.fetch_cycle(), controller.fetch_cycle())
    await asyncio.sleep(0.2)

    assert controller.state.snapshot is first
    assert controller.state.loading

    await cycles

    assert controller.state.snapshot is second
    assert not controller.state.loading


@pytest.mark.asyncio
async def test_failing_listener_does_not_break_cycles(sample_snapshot):
    """Test an exception in one listener is logged and later cycles still apply."""
    seen = []
    errors = []

    def broken(_):
        raise RuntimeError("render failed")

    fetcher = FakeFetcher(sample_snapshot, NetworkError("connection refused"), sample_snapshot)
    controller = DashboardController(fetcher, auto_refresh=False)
    controller.add_listener(broken)
    controller.add_listener(seen.append)
    controller.add_error_listener(broken)
    controller.add_error_listener(errors.append)

    await controller.fetch_cycle()
    assert controller.state.snapshot is sample_snapshot
    assert not controller.state.loading

    await controller.fetch_cycle()
    assert controller.state.error == "connection refused"
    assert errors == ["connection refused"]

    await controller.fetch_cycle()
    assert controller.state.error is None
    assert not controller.state.loading
    assert seen[-1] is controller.state
    assert fetcher.calls == 3


@pytest.mark.asyncio
async def test_manual_refresh(sample_snapshot):
    fetcher = FakeFetcher(sample_snapshot)
    controller = DashboardController(fetcher, auto_refresh=False)

    controller.refresh()
    await asyncio.sleep(0.1)

    assert fetcher.calls == 1
    assert controller.state.snapshot is sample_snapshot


@pytest.mark.asyncio
async def test_close_cancels_timer_and_pending_cycles(sample_snapshot):
    """Test nothing updates state after close."""
    seen = []
    fetcher = FakeFetcher(sample_snapshot, delays={1: 0.2})
    controller = DashboardController(fetcher, interval_ms=50)
    controller.add_listener(seen.append)

    controller.start()
    await asyncio.sleep(0.02)
    controller.close()
    updates_at_close = len(seen)
    await asyncio.sleep(0.3)

    assert controller.is_closed
    assert not controller.poller.is_running
    assert controller.state.snapshot is None
    assert len(seen) == updates_at_close
    assert fetcher.calls == 1

    controller.refresh()
    await asyncio.sleep(0.05)
    assert fetcher.calls == 1


@pytest.mark.asyncio
async def test_view_model_is_cached(sample_snapshot):
    controller = DashboardController(FakeFetcher(sample_snapshot), auto_refresh=False)

    await controller.fetch_cycle()

    assert controller.view_model is controller.view_model
