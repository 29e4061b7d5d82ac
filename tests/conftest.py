"""Shared fixtures for sysdash tests."""

import threading
import time
from typing import Any

import pytest

from sysdash.models import Snapshot

SAMPLE_PAYLOAD: dict[str, Any] = {
    "cpu": {
        "usage": {"total": 0.4567, "perCore": [0.1, 0.9]},
        "cores": 2,
        "frequencyMHz": 2400,
        "loadAverage": {"1m": 0.5, "5m": 1.2, "15m": 0.8},
    },
    "memory": {
        "ram": {
            "totalMB": 16000,
            "usedMB": 8000,
            "freeMB": 6000,
            "cachedMB": 2000,
            "usagePercent": 50,
        }
    },
    "disk": {
        "partitions": [
            {
                "mount": "/",
                "filesystem": "ext4",
                "usedGB": 20,
                "freeGB": 30,
                "totalGB": 50,
                "usagePercent": 40,
            },
            {
                "mount": "/boot",
                "filesystem": "vfat",
                "usedGB": 0.1,
                "freeGB": 0.4,
                "totalGB": 0.5,
                "usagePercent": "n/a",
            },
        ]
    },
    "network": {
        "interfaces": [
            {"name": "eth0", "ipv4": "10.0.0.2", "rxBytes": 2048, "txBytes": 1024, "errors": 0},
            {"name": "lo", "ipv4": "127.0.0.1", "rxBytes": 512, "txBytes": 512, "errors": 0},
        ],
        "connections": [
            {
                "protocol": "tcp",
                "localAddress": "10.0.0.2:22",
                "remoteAddress": "10.0.0.9:51234",
                "state": "ESTABLISHED",
                "pid": 812,
                "process": "sshd",
            }
        ],
    },
    "processes": {
        "total": 212,
        "top": [
            {"pid": 1, "user": "root", "name": "init", "cpuPercent": 0.5, "memPercent": 0.12346, "threads": 1},
            {"pid": 812, "user": "root", "name": "sshd", "cpuPercent": "?", "memPercent": 1, "threads": 3},
        ],
    },
    "info": {
        "hostname": "box",
        "uptimeSeconds": 93784,
        "os": {"name": "Ubuntu", "version": "24.04", "kernel": "6.8.0", "architecture": "x86_64"},
        "users": [{"username": "alice", "tty": "pts/0", "loginTime": "2026-10-18T08:00:00Z"}],
    },
}


class FakeFetcher:
    """Snapshot source that replays a list of outcomes.

    Each outcome is a Snapshot to return or an exception to raise; the last
    outcome repeats once the list is exhausted. ``delays`` optionally maps a
    call number (1-based) to seconds to block before answering.
    """

    def __init__(self, *outcomes: Any, delays: dict[int, float] | None = None) -> None:
        self._outcomes = list(outcomes) or [Snapshot()]
        self._delays = delays or {}
        self._lock = threading.Lock()
        self.calls = 0

    def fetch(self) -> Snapshot:
        with self._lock:
            self.calls += 1
            call = self.calls
            outcome = self._outcomes[min(call, len(self._outcomes)) - 1]
        delay = self._delays.get(call)
        if delay:
            time.sleep(delay)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


@pytest.fixture
def sample_payload() -> dict[str, Any]:
    return SAMPLE_PAYLOAD


@pytest.fixture
def sample_snapshot() -> Snapshot:
    return Snapshot.from_json(SAMPLE_PAYLOAD)
