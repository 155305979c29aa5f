"""Miner statistics reports: the legacy stat line, the detailed report and its HTML page."""

from __future__ import annotations

import socket
import time
from dataclasses import dataclass, field
from typing import Any, Protocol

from minerkit.commondata import format_hashes, format_memory, to_hex_int

__all__ = [
    "SolutionStats",
    "SensorReadings",
    "DeviceInfo",
    "MinerTelemetry",
    "Telemetry",
    "MinerBackend",
    "miner_stat1",
    "miner_stat_detail_per_miner",
    "miner_stat_detail",
    "render_http_stat_detail",
]

_U32 = (1 << 32) - 1
_U64 = (1 << 64) - 1

_ROW0_COLOR = "#f8f8f8"
_ROW1_COLOR = "#ffffff"
_HDR0_COLOR = "#e8e8e8"
_HDR1_COLOR = "#f0f0f0"
_ROWRED_COLOR = "#f46542"


@dataclass
class SolutionStats:
    """Counts of found solutions and when the last one was seen (monotonic seconds)."""

    accepted: int = 0
    rejected: int = 0
    failed: int = 0
    tstamp: float = field(default_factory=time.monotonic)


@dataclass
class SensorReadings:
    """Hardware monitor readings of one device."""

    temp_c: int = 0
    fan_p: int = 0
    power_w: float = 0.0


@dataclass
class DeviceInfo:
    """Description of a physical mining device.

    ``device_type`` is one of ``"gpu"``, ``"accelerator"``, ``"cpu"``;
    ``subscription`` one of ``"none"``, ``"cuda"``, ``"opencl"``, ``"cpu"``.
    """

    unique_id: str = ""
    name: str = ""
    device_type: str = "gpu"
    subscription: str = "none"
    cl_detected: bool = False
    cl_name: str = ""
    cu_name: str = ""
    total_memory: int = 0


@dataclass
class MinerTelemetry:
    """A snapshot of one miner (or of the whole farm)."""

    hashrate: float = 0.0
    sensors: SensorReadings = field(default_factory=SensorReadings)
    solutions: SolutionStats = field(default_factory=SolutionStats)
    device: DeviceInfo = field(default_factory=DeviceInfo)
    paused: bool = False
    pause_reason: str = ""


@dataclass
class Telemetry:
    """A snapshot of the farm: totals and one entry per miner, by index."""

    start: float = field(default_factory=time.monotonic)
    farm: MinerTelemetry = field(default_factory=MinerTelemetry)
    miners: list[MinerTelemetry] = field(default_factory=list)


class _Connection(Protocol):
    host: str
    port: int


class MinerBackend(Protocol):
    """What the reports and the API need from the running farm and pool manager.

    ``str(active_connection)`` gives the connection URI.
    """

    active_connection: _Connection
    connected: bool
    connection_switches: int
    current_epoch: int
    epoch_changes: int
    current_difficulty: float
    nonce_scrambler: int
    segment_width: int
    tstart: int
    tstop: int

    def telemetry(self) -> Telemetry:
        """Current telemetry snapshot."""

    def shuffle(self) -> None:
        """Give the nonce scrambler a new range."""

    def restart_async(self) -> None:
        """Restart mining without blocking."""

    def reboot(self, args: list[str]) -> bool:
        """Reboot the miner process with ``args``; report success."""

    def connections_json(self) -> Any:
        """The configured pool connections."""

    def add_connection(self, uri: str) -> None:
        """Add a pool connection; raise on a bad URI."""

    def set_active_connection(self, target: int | str) -> None:
        """Switch to a connection by index or URI; raise when impossible."""

    def remove_connection(self, index: int) -> None:
        """Remove a connection by index; raise when impossible."""

    def scrambler_json(self) -> Any:
        """Nonce scrambler information."""

    def pause_miner(self, index: int, pause: bool) -> bool:
        """Pause or resume a miner because of an API request; False if no such miner."""


def _now(now: float | None) -> float:
    return time.monotonic() if now is None else now


def miner_stat1(backend: MinerBackend, version: str, now: float | None = None) -> list[str]:
    """The nine-field legacy statistics reply."""
    t = backend.telemetry()
    connection = backend.active_connection
    running_minutes = int((_now(now) - t.start) // 60)

    farm = t.farm
    total_eth = f"{farm.hashrate / 1000.0:.0f};{farm.solutions.accepted};{farm.solutions.rejected}"
    detailed_eth = ";".join(f"{m.hashrate / 1000.0:.0f}" for m in t.miners)
    detailed_dcr = ";".join("off" for _ in t.miners)
    temp_and_fans = ";".join(f"{m.sensors.temp_c};{m.sensors.fan_p}" for m in t.miners)

    return [
        version,
        str(running_minutes),
        total_eth,
        detailed_eth,
        "0;0;0",
        detailed_dcr,
        temp_and_fans,
        f"{connection.host}:{connection.port}",
        f"{farm.solutions.failed};0;0;0",
    ]


def miner_stat_detail_per_miner(
    backend: MinerBackend, telemetry: Telemetry, index: int, now: float | None = None
) -> dict[str, Any]:
    """Detailed report entry of the miner at ``index``."""
    current = _now(now)
    miner = telemetry.miners[index]
    device = miner.device

    if device.device_type == "gpu":
        kind = "GPU"
    elif device.device_type == "accelerator":
        kind = "ACCELERATOR"
    else:
        kind = "CPU"
    name = device.cl_name if device.cl_detected else device.cu_name

    hardware = {
        "pci": device.unique_id,
        "type": kind,
        "name": f"{name} {format_memory(float(device.total_memory))}",
        "sensors": [miner.sensors.temp_c, miner.sensors.fan_p, miner.sensors.power_w],
    }

    width = backend.segment_width
    start_nonce = (backend.nonce_scrambler + (index << width)) & _U64
    end_nonce = (start_nonce + (1 << width)) & _U64

    mining = {
        "shares": [
            miner.solutions.accepted,
            miner.solutions.rejected,
            miner.solutions.failed,
            int(current - miner.solutions.tstamp),
        ],
        "paused": miner.paused,
        "pause_reason": miner.pause_reason if miner.paused else None,
        "segment": [to_hex_int(start_nonce, 16, True), to_hex_int(end_nonce, 16, True)],
        "hashrate": to_hex_int(int(miner.hashrate) & _U32, 8, True),
    }

    return {
        "_index": index,
        "_mode": "CUDA" if device.subscription == "cuda" else "OpenCL",
        "hardware": hardware,
        "mining": mining,
    }


def _local_host_name() -> str | None:
    try:
        return socket.gethostname()
    except OSError:
        return None


def miner_stat_detail(
    backend: MinerBackend,
    version: str,
    host_name: str | None = None,
    now: float | None = None,
) -> dict[str, Any]:
    """Totals and per-device details; ``host_name`` defaults to this machine's name."""
    current = _now(now)
    t = backend.telemetry()

    host = {
        "version": version,
        "runtime": int(current - t.start),
        "name": host_name if host_name is not None else _local_host_name(),
    }

    connection = {
        "uri": str(backend.active_connection),
        "connected": backend.connected,
        "switches": backend.connection_switches,
    }

    farm = t.farm
    mining = {
        "hashrate": to_hex_int(int(farm.hashrate) & _U32, 8, True),
        "epoch": backend.current_epoch,
        "epoch_changes": backend.epoch_changes,
        "difficulty": backend.current_difficulty,
        "shares": [
            farm.solutions.accepted,
            farm.solutions.rejected,
            farm.solutions.failed,
            int(current - farm.solutions.tstamp),
        ],
    }

    monitors = None
    if backend.tstop:
        monitors = {"temperatures": [backend.tstart, backend.tstop]}

    devices = [
        miner_stat_detail_per_miner(backend, t, index, current) for index in range(len(t.miners))
    ]

    return {
        "devices": devices,
        "monitors": monitors,
        "connection": connection,
        "host": host,
        "mining": mining,
    }


def _as_string(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def render_http_stat_detail(detail: dict[str, Any]) -> str:
    """An HTML page showing a detailed report."""
    runtime = int(detail["host"]["runtime"])
    hours = runtime // 3600
    minutes = (runtime - hours * 3600) // 60

    parts = [
        "<!doctype html>",
        "<html lang=en>",
        "<head>",
        "<meta charset=utf-8>",
        '<meta http-equiv="refresh" content="30">',
        f"<title>{_as_string(detail['host']['name'])}</title>",
        "<style>",
        'body{font-family:-apple-system,BlinkMacSystemFont,"Segoe UI",Roboto,',
        '"Helvetica Neue",Helvetica,Arial,sans-serif;font-size:16px;line-height:1.5;',
        "text-align:center;}",
        "table,td,th{border:1px inset #000;}",
        "table{border-spacing:0;}",
        "td,th{padding:3px;}",
        f"tbody tr:nth-child(even){{background-color:{_ROW0_COLOR};}}",
        f"tbody tr:nth-child(odd){{background-color:{_ROW1_COLOR};}}",
        ".mx-auto{margin-left:auto;margin-right:auto;}",
        f".bg-header1{{background-color:{_HDR1_COLOR};}}",
        f".bg-header0{{background-color:{_HDR0_COLOR};}}",
        f".bg-red{{color:{_ROWRED_COLOR};}}",
        ".right{text-align: right;}",
        "</style>",
        "<meta http-equiv=refresh content=30>",
        "</head>",
        "<body>",
        "<table class=mx-auto>",
        "<thead>",
        "<tr class=bg-header1>",
        f"<th colspan=9>{_as_string(detail['host']['version'])} - {hours}:{minutes:02d}",
        f"<br>Pool: {_as_string(detail['connection']['uri'])}</th>",
        "</tr>",
        "<tr class=bg-header0>",
        "<th>PCI</th>",
        "<th>Device</th>",
        "<th>Mode</th>",
        "<th>Paused</th>",
        "<th class=right>Hash Rate</th>",
        "<th class=right>Solutions</th>",
        "<th class=right>Temp.</th>",
        "<th class=right>Fan %</th>",
        "<th class=right>Power</th>",
        "</tr>",
        "</thead><tbody>",
    ]

    total_hashrate = 0.0
    total_power = 0.0
    total_solutions = 0

    for device in detail["devices"]:
        mining = device["mining"]
        hardware = device["hardware"]
        hashrate = float(int(mining["hashrate"], 16))
        power = float(hardware["sensors"][2])
        shares = mining["shares"]
        total_hashrate += hashrate
        total_power += power
        total_solutions += int(shares[0])

        paused = bool(mining["paused"])
        parts.append('<tr class="bg-red">' if paused else "<tr>")
        parts.append(f"<td>{_as_string(hardware['pci'])}</td>")
        parts.append(f"<td>{_as_string(hardware['name'])}</td>")
        parts.append(f"<td>{_as_string(device['_mode'])}</td>")
        parts.append(f"<td>{_as_string(mining['pause_reason']) if paused else 'No'}</td>")
        parts.append(f"<td class=right>{format_hashes(hashrate)}</td>")
        solutions = f"A{_as_string(shares[0])}:R{_as_string(shares[1])}:F{_as_string(shares[2])}"
        parts.append(f"<td class=right>{solutions}</td>")
        parts.append(f"<td class=right>{_as_string(hardware['sensors'][0])}</td>")
        parts.append(f"<td class=right>{_as_string(hardware['sensors'][1])}</td>")
        parts.append(f"<td class=right>{power:.2f}</td>")
        parts.append("</tr>")

    parts.append("</tbody>")
    parts.append(
        "<tfoot><tr class=bg-header0><td colspan=4 class=right>Total</td><td class=right>"
        f"{format_hashes(total_hashrate)}</td><td class=right>{total_solutions}"
        f"</td><td colspan=3 class=right>{total_power:.2f}</td></tfoot>"
    )
    parts.append("</table></body></html>")
    return "".join(parts)