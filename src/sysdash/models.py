"""Data models for sysdash.

The metrics server owns the payload shape, so every field here is optional and
``Snapshot.from_json`` never raises, whatever it is handed.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

# Display value passed through from the server as received.
Scalar = str | int | float | None


def _mapping(value: Any) -> Mapping[str, Any] | None:
    return value if isinstance(value, Mapping) else None


def _items(value: Any) -> list[Mapping[str, Any]]:
    """Return the object items of a JSON list, skipping anything else."""
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, Mapping)]


def _number(value: Any) -> float | None:
    """Return value if it is a finite real number, else None."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value


def _scalar(value: Any) -> Scalar:
    if value is None or isinstance(value, (str, int, float)):
        return value
    return str(value)


@dataclass(slots=True, frozen=True)
class LoadAverage:
    """1, 5 and 15 minute load averages."""

    one: float | None = None
    five: float | None = None
    fifteen: float | None = None

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> LoadAverage:
        return cls(
            one=_number(data.get("1m")),
            five=_number(data.get("5m")),
            fifteen=_number(data.get("15m")),
        )


@dataclass(slots=True, frozen=True)
class CpuStats:
    """CPU usage as reported by the server (ratios in [0, 1])."""

    total: float | None = None
    per_core: tuple[float | None, ...] = ()
    cores: Scalar = None
    frequency_mhz: Scalar = None
    load_average: LoadAverage | None = None

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> CpuStats:
        usage = _mapping(data.get("usage")) or {}
        per_core = usage.get("perCore")
        load = _mapping(data.get("loadAverage"))
        return cls(
            total=_number(usage.get("total")),
            per_core=tuple(_number(v) for v in per_core) if isinstance(per_core, list) else (),
            cores=_scalar(data.get("cores")),
            frequency_mhz=_scalar(data.get("frequencyMHz")),
            load_average=LoadAverage.from_json(load) if load is not None else None,
        )


@dataclass(slots=True, frozen=True)
class RamStats:
    """RAM figures in megabytes."""

    total_mb: Scalar = None
    used_mb: Scalar = None
    free_mb: Scalar = None
    cached_mb: Scalar = None
    usage_percent: Scalar = None

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> RamStats:
        return cls(
            total_mb=_scalar(data.get("totalMB")),
            used_mb=_scalar(data.get("usedMB")),
            free_mb=_scalar(data.get("freeMB")),
            cached_mb=_scalar(data.get("cachedMB")),
            usage_percent=_scalar(data.get("usagePercent")),
        )


@dataclass(slots=True, frozen=True)
class Partition:
    """A mounted disk partition, sizes in gigabytes."""

    mount: Scalar = None
    filesystem: Scalar = None
    used_gb: Scalar = None
    free_gb: Scalar = None
    total_gb: Scalar = None
    usage_percent: Scalar = None

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> Partition:
        return cls(
            mount=_scalar(data.get("mount")),
            filesystem=_scalar(data.get("filesystem")),
            used_gb=_scalar(data.get("usedGB")),
            free_gb=_scalar(data.get("freeGB")),
            total_gb=_scalar(data.get("totalGB")),
            usage_percent=_scalar(data.get("usagePercent")),
        )


@dataclass(slots=True, frozen=True)
class NetworkInterface:
    name: Scalar = None
    ipv4: Scalar = None
    rx_bytes: Scalar = None
    tx_bytes: Scalar = None
    errors: Scalar = None

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> NetworkInterface:
        return cls(
            name=_scalar(data.get("name")),
            ipv4=_scalar(data.get("ipv4")),
            rx_bytes=_scalar(data.get("rxBytes")),
            tx_bytes=_scalar(data.get("txBytes")),
            errors=_scalar(data.get("errors")),
        )


@dataclass(slots=True, frozen=True)
class Connection:
    protocol: Scalar = None
    local_address: Scalar = None
    remote_address: Scalar = None
    state: Scalar = None
    pid: Scalar = None
    process: Scalar = None

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> Connection:
        return cls(
            protocol=_scalar(data.get("protocol")),
            local_address=_scalar(data.get("localAddress")),
            remote_address=_scalar(data.get("remoteAddress")),
            state=_scalar(data.get("state")),
            pid=_scalar(data.get("pid")),
            process=_scalar(data.get("process")),
        )


@dataclass(slots=True, frozen=True)
class ProcessEntry:
    """One of the top processes reported by the server."""

    pid: Scalar = None
    user: Scalar = None
    name: Scalar = None
    cpu_percent: Scalar = None
    mem_percent: Scalar = None
    threads: Scalar = None

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> ProcessEntry:
        return cls(
            pid=_scalar(data.get("pid")),
            user=_scalar(data.get("user")),
            name=_scalar(data.get("name")),
            cpu_percent=_scalar(data.get("cpuPercent")),
            mem_percent=_scalar(data.get("memPercent")),
            threads=_scalar(data.get("threads")),
        )


@dataclass(slots=True, frozen=True)
class LoggedUser:
    username: Scalar = None
    tty: Scalar = None
    login_time: Scalar = None

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> LoggedUser:
        return cls(
            username=_scalar(data.get("username")),
            tty=_scalar(data.get("tty")),
            login_time=_scalar(data.get("loginTime")),
        )


@dataclass(slots=True, frozen=True)
class OsInfo:
    name: Scalar = None
    version: Scalar = None
    kernel: Scalar = None
    architecture: Scalar = None

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> OsInfo:
        return cls(
            name=_scalar(data.get("name")),
            version=_scalar(data.get("version")),
            kernel=_scalar(data.get("kernel")),
            architecture=_scalar(data.get("architecture")),
        )


@dataclass(slots=True, frozen=True)
class SystemInfo:
    hostname: Scalar = None
    uptime_seconds: Scalar = None
    os: OsInfo | None = None
    users: tuple[LoggedUser, ...] = ()

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> SystemInfo:
        os_data = _mapping(data.get("os"))
        return cls(
            hostname=_scalar(data.get("hostname")),
            uptime_seconds=_scalar(data.get("uptimeSeconds")),
            os=OsInfo.from_json(os_data) if os_data is not None else None,
            users=tuple(LoggedUser.from_json(u) for u in _items(data.get("users"))),
        )


@dataclass(slots=True, frozen=True)
class Snapshot:
    """Immutable snapshot of one metrics payload."""

    cpu: CpuStats | None = None
    ram: RamStats | None = None
    partitions: tuple[Partition, ...] = ()
    interfaces: tuple[NetworkInterface, ...] = ()
    connections: tuple[Connection, ...] = ()
    process_total: Scalar = None
    processes: tuple[ProcessEntry, ...] = ()
    info: SystemInfo | None = None
    raw: Any = field(default=None, compare=False, repr=False)

    @classmethod
    def from_json(cls, payload: Any) -> Snapshot:
        """Build a Snapshot from a decoded JSON payload.

        Absent or malformed substructures become None or empty tuples.
        """
        data = _mapping(payload)
        if data is None:
            return cls(raw=payload)

        cpu = _mapping(data.get("cpu"))
        memory = _mapping(data.get("memory")) or {}
        ram = _mapping(memory.get("ram"))
        disk = _mapping(data.get("disk")) or {}
        network = _mapping(data.get("network")) or {}
        processes = _mapping(data.get("processes")) or {}
        info = _mapping(data.get("info"))

        return cls(
            cpu=CpuStats.from_json(cpu) if cpu is not None else None,
            ram=RamStats.from_json(ram) if ram is not None else None,
            partitions=tuple(Partition.from_json(p) for p in _items(disk.get("partitions"))),
            interfaces=tuple(
                NetworkInterface.from_json(i) for i in _items(network.get("interfaces"))
            ),
            connections=tuple(
                Connection.from_json(c) for c in _items(network.get("connections"))
            ),
            process_total=_scalar(processes.get("total")),
            processes=tuple(ProcessEntry.from_json(p) for p in _items(processes.get("top"))),
            info=SystemInfo.from_json(info) if info is not None else None,
            raw=payload,
        )
