"""Dashboard controller: owns the poll state, the fetcher and the timer."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Protocol

from sysdash.fetcher import FetchError
from sysdash.models import Snapshot
from sysdash.poller import Poller
from sysdash.projector import ViewModel, project
from sysdash.state import (
    DEFAULT_INTERVAL_MS,
    PollState,
    coerce_interval,
    on_fetch_error,
    on_fetch_start,
    on_fetch_success,
    on_set_interval,
    on_toggle_auto_refresh,
)

logger = logging.getLogger(__name__)


class SnapshotSource(Protocol):
    def fetch(self) -> Snapshot: ...


StateListener = Callable[[PollState], None]
ErrorListener = Callable[[str], None]


class DashboardController:
    """
    Runs fetch cycles and keeps PollState current.

    All state changes happen on the event loop. The blocking HTTP call runs in
    a worker thread via ``asyncio.to_thread``; its result is applied through
    the reducers in ``sysdash.state``, which drop responses older than the
    last one applied.
    """

    def __init__(
        self,
        fetcher: SnapshotSource,
        interval_ms: int = DEFAULT_INTERVAL_MS,
        auto_refresh: bool = True,
    ) -> None:
        self._fetcher = fetcher
        self._state = PollState(auto_refresh=auto_refresh, interval_ms=coerce_interval(interval_ms))
        self._poller = Poller(self.refresh, interval=self._state.interval_ms / 1000)
        self._pending: set[asyncio.Task[None]] = set()
        self._listeners: list[StateListener] = []
        self._error_listeners: list[ErrorListener] = []
        self._view_model = project(None)
        self._projected: Snapshot | None = None
        self._closed = False

    @property
    def state(self) -> PollState:
        return self._state

    @property
    def view_model(self) -> ViewModel:
        """ViewModel for the current snapshot, re-derived only when it changes."""
        if self._state.snapshot is not self._projected:
            self._projected = self._state.snapshot
            self._view_model = project(self._projected)
        return self._view_model

    @property
    def poller(self) -> Poller:
        return self._poller

    @property
    def is_closed(self) -> bool:
        return self._closed

    def add_listener(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    def add_error_listener(self, listener: ErrorListener) -> None:
        self._error_listeners.append(listener)

    def _set_state(self, state: PollState) -> None:
        if state is self._state:
            return
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("state listener failed")

    def start(self) -> None:
        """Fetch once immediately, then start the timer if auto-refresh is on."""
        self.refresh()
        if self._state.auto_refresh:
            self._poller.start()

    def refresh(self) -> None:
        """Schedule a fetch cycle on the running event loop."""
        if self._closed:
            return
        task = asyncio.get_running_loop().create_task(self.fetch_cycle())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def fetch_cycle(self) -> None:
        """Run one fetch cycle and apply its outcome."""
        if self._closed:
            return
        self._set_state(on_fetch_start(self._state))
        seq = self._state.request_seq
        try:
            snapshot = await asyncio.to_thread(self._fetcher.fetch)
        except FetchError as e:
            if self._closed:
                return
            self._apply_error(str(e), seq)
            return
        except Exception as e:
            logger.exception("unexpected error in fetch cycle %d", seq)
            if not self._closed:
                self._apply_error(str(e) or e.__class__.__name__, seq)
            return
        if self._closed:
            return
        self._set_state(on_fetch_success(self._state, snapshot, seq))

    def _apply_error(self, message: str, seq: int) -> None:
        state = on_fetch_error(self._state, message, seq)
        if state is self._state:
            logger.debug("dropping stale error from fetch cycle %d", seq)
            return
        self._set_state(state)
        for listener in list(self._error_listeners):
            try:
                listener(state.error or message)
            except Exception:
                logger.exception("error listener failed")

    def toggle_auto_refresh(self) -> bool:
        """Flip auto-refresh. Turning it on fetches immediately and restarts the timer."""
        self._set_state(on_toggle_auto_refresh(self._state))
        if self._state.auto_refresh:
            self.start()
        else:
            self._poller.stop()
        return self._state.auto_refresh

    def set_interval(self, value: object) -> int:
        """Set the refresh interval (ms); a running timer is rescheduled."""
        self._set_state(on_set_interval(self._state, value))
        self._poller.interval = self._state.interval_ms / 1000
        return self._state.interval_ms

    def close(self) -> None:
        """Stop the timer and cancel fetch cycles still in flight."""
        self._closed = True
        self._poller.stop()
        for task in list(self._pending):
            task.cancel()
        self._pending.clear()
