"""Derive render-ready view models from a metrics snapshot.

Everything here is pure: ``project`` takes a Snapshot (or a decoded JSON
payload, or None) and returns plain dataclasses that any renderer can draw.
No field access can fail the whole render; missing data projects to empty
series, zero, or None.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from sysdash.models import (
    Connection,
    LoggedUser,
    NetworkInterface,
    Scalar,
    Snapshot,
)

PLACEHOLDER = "-"


@dataclass(slots=True, frozen=True)
class SeriesPoint:
    """A labelled value in a bar, line or pie series."""

    label: str
    value: Scalar


@dataclass(slots=True, frozen=True)
class DiskSlice:
    label: Scalar
    used: Scalar
    free: Scalar


@dataclass(slots=True, frozen=True)
class NetIoPoint:
    label: Scalar
    rx: Scalar
    tx: Scalar


@dataclass(slots=True, frozen=True)
class DiskRow:
    mount: Scalar
    filesystem: Scalar
    used_gb: Scalar
    free_gb: Scalar
    total_gb: Scalar
    usage_percent: Scalar  # "12.34" when numeric, else as received


@dataclass(slots=True, frozen=True)
class ProcessRow:
    pid: Scalar
    user: Scalar
    name: Scalar
    cpu_percent: Scalar  # "1.2345" when numeric, else as received
    mem_percent: Scalar
    threads: Scalar


@dataclass(slots=True, frozen=True)
class InfoView:
    hostname: Scalar = None
    uptime_seconds: Scalar = None
    os_name: Scalar = None
    os_version: Scalar = None
    kernel: Scalar = None
    architecture: Scalar = None
    users: tuple[LoggedUser, ...] = ()


@dataclass(slots=True, frozen=True)
class ViewModel:
    """All derived series and rows for one snapshot."""

    cpu_percent: float
    cpu_cores: Scalar
    cpu_frequency_mhz: Scalar
    cpu_per_core: tuple[SeriesPoint, ...]
    load_average: tuple[SeriesPoint, ...]
    ram_usage_percent: Scalar
    ram_total_mb: Scalar
    ram_used_mb: Scalar
    memory_pie: tuple[SeriesPoint, ...]
    disk_partitions: tuple[DiskRow, ...]
    disk_pie: tuple[DiskSlice, ...]
    interfaces: tuple[NetworkInterface, ...]
    network_io: tuple[NetIoPoint, ...]
    processes: tuple[ProcessRow, ...]
    process_total: Scalar
    connections: tuple[Connection, ...]
    info: InfoView
    raw_json: str


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def format_fixed(value: Scalar, digits: int) -> Scalar:
    """Format numeric values to a fixed number of decimals, pass anything else through."""
    if _is_number(value):
        return f"{value:.{digits}f}"
    return value


def placeholder(value: Any) -> str:
    """Render a card value, showing a dash for missing data."""
    if value is None:
        return PLACEHOLDER
    return str(value)


def cpu_percent(snapshot: Snapshot) -> float:
    total = snapshot.cpu.total if snapshot.cpu else None
    if not total:
        return 0
    return round(total * 100, 2)


def cpu_per_core(snapshot: Snapshot) -> tuple[SeriesPoint, ...]:
    if snapshot.cpu is None:
        return ()
    return tuple(
        SeriesPoint(label=f"core {index}", value=ratio * 100 if ratio is not None else None)
        for index, ratio in enumerate(snapshot.cpu.per_core)
    )


def load_average(snapshot: Snapshot) -> tuple[SeriesPoint, ...]:
    """Three ordered points (1m, 5m, 15m); a missing value stays None, never 0."""
    load = snapshot.cpu.load_average if snapshot.cpu else None
    if load is None:
        return ()
    return (
        SeriesPoint("1m", load.one),
        SeriesPoint("5m", load.five),
        SeriesPoint("15m", load.fifteen),
    )


def memory_pie(snapshot: Snapshot) -> tuple[SeriesPoint, ...]:
    ram = snapshot.ram
    if ram is None:
        return ()
    return (
        SeriesPoint("used", ram.used_mb),
        SeriesPoint("free", ram.free_mb),
        SeriesPoint("cached", ram.cached_mb or 0),
    )


def disk_partitions(snapshot: Snapshot) -> tuple[DiskRow, ...]:
    return tuple(
        DiskRow(
            mount=p.mount,
            filesystem=p.filesystem,
            used_gb=p.used_gb,
            free_gb=p.free_gb,
            total_gb=p.total_gb,
            usage_percent=format_fixed(p.usage_percent, 2),
        )
        for p in snapshot.partitions
    )


def disk_pie(snapshot: Snapshot) -> tuple[DiskSlice, ...]:
    return tuple(DiskSlice(p.mount, p.used_gb, p.free_gb) for p in snapshot.partitions)


def network_io(snapshot: Snapshot) -> tuple[NetIoPoint, ...]:
    return tuple(NetIoPoint(i.name, i.rx_bytes, i.tx_bytes) for i in snapshot.interfaces)


def process_rows(snapshot: Snapshot) -> tuple[ProcessRow, ...]:
    return tuple(
        ProcessRow(
            pid=p.pid,
            user=p.user,
            name=p.name,
            cpu_percent=format_fixed(p.cpu_percent, 4),
            mem_percent=format_fixed(p.mem_percent, 4),
            threads=p.threads,
        )
        for p in snapshot.processes
    )


def info_view(snapshot: Snapshot) -> InfoView:
    info = snapshot.info
    if info is None:
        return InfoView()
    os_info = info.os
    return InfoView(
        hostname=info.hostname,
        uptime_seconds=info.uptime_seconds,
        os_name=os_info.name if os_info else None,
        os_version=os_info.version if os_info else None,
        kernel=os_info.kernel if os_info else None,
        architecture=os_info.architecture if os_info else None,
        users=info.users,
    )


def raw_json(snapshot: Snapshot) -> str:
    try:
        return json.dumps(snapshot.raw, indent=2)
    except (TypeError, ValueError):
        return repr(snapshot.raw)


def project(snapshot: Snapshot | Mapping[str, Any] | None) -> ViewModel:
    """Project a snapshot into a ViewModel.

    Args:
        snapshot: A parsed Snapshot, a decoded JSON payload, or None when
            nothing has been fetched yet.

    Returns:
        The derived ViewModel. Never raises for absent or malformed fields.
    """
    if snapshot is None:
        snapshot = Snapshot()
    elif not isinstance(snapshot, Snapshot):
        snapshot = Snapshot.from_json(snapshot)

    cpu = snapshot.cpu
    ram = snapshot.ram
    return ViewModel(
        cpu_percent=cpu_percent(snapshot),
        cpu_cores=cpu.cores if cpu else None,
        cpu_frequency_mhz=cpu.frequency_mhz if cpu else None,
        cpu_per_core=cpu_per_core(snapshot),
        load_average=load_average(snapshot),
        ram_usage_percent=ram.usage_percent if ram else None,
        ram_total_mb=ram.total_mb if ram else None,
        ram_used_mb=ram.used_mb if ram else None,
        memory_pie=memory_pie(snapshot),
        disk_partitions=disk_partitions(snapshot),
        disk_pie=disk_pie(snapshot),
        interfaces=snapshot.interfaces,
        network_io=network_io(snapshot),
        processes=process_rows(snapshot),
        process_total=snapshot.process_total,
        connections=snapshot.connections,
        info=info_view(snapshot),
        raw_json=raw_json(snapshot),
    )
