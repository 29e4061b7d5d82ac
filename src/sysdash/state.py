"""Poll state and the pure transitions that update it."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any

from sysdash.models import Snapshot

DEFAULT_INTERVAL_MS = 5000


@dataclass(slots=True, frozen=True)
class PollState:
    """State of the dashboard's fetch loop.

    ``request_seq`` is the sequence number of the latest fetch cycle started and
    ``applied_seq`` that of the latest cycle whose result was applied. A result
    older than ``applied_seq`` is stale and gets dropped. One that is older than
    ``request_seq`` but still the newest to land is applied, and ``loading``
    stays on until the latest cycle answers.
    """

    snapshot: Snapshot | None = None
    loading: bool = False
    error: str | None = None
    auto_refresh: bool = True
    interval_ms: int = DEFAULT_INTERVAL_MS
    request_seq: int = 0
    applied_seq: int = 0

    @property
    def has_data(self) -> bool:
        return self.snapshot is not None


def coerce_interval(value: Any) -> int:
    """Coerce user input to a refresh interval in milliseconds.

    Empty, zero, negative or non-numeric input falls back to the default.
    """
    if isinstance(value, bool):
        return DEFAULT_INTERVAL_MS
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return DEFAULT_INTERVAL_MS
        try:
            value = float(value)
        except ValueError:
            return DEFAULT_INTERVAL_MS
    if not isinstance(value, (int, float)) or value != value:  # NaN
        return DEFAULT_INTERVAL_MS
    if value <= 0 or value == float("inf"):
        return DEFAULT_INTERVAL_MS
    return max(1, int(value))


def on_fetch_start(state: PollState) -> PollState:
    return replace(state, loading=True, error=None, request_seq=state.request_seq + 1)


def on_fetch_success(state: PollState, snapshot: Snapshot, seq: int) -> PollState:
    if seq <= state.applied_seq:
        return state
    return replace(
        state,
        snapshot=snapshot,
        error=None,
        loading=seq < state.request_seq,
        applied_seq=seq,
    )


def on_fetch_error(state: PollState, message: str, seq: int) -> PollState:
    """Record a failed fetch cycle. The last good snapshot is kept."""
    if seq <= state.applied_seq:
        return state
    return replace(
        state,
        error=message or "Failed to load",
        loading=seq < state.request_seq,
        applied_seq=seq,
    )


def on_toggle_auto_refresh(state: PollState) -> PollState:
    return replace(state, auto_refresh=not state.auto_refresh)


def on_set_interval(state: PollState, value: Any) -> PollState:
    return replace(state, interval_ms=coerce_interval(value))
