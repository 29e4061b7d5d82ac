"""sysdash - Main Textual application."""

from __future__ import annotations

import argparse
import logging
import math
from pathlib import Path
from typing import Any

from rich.text import Text
from textual.app import App, ComposeResult
from textual.containers import Container, Grid, Horizontal, VerticalScroll
from textual.css.query import NoMatches
from textual.logging import TextualHandler
from textual.widgets import Button, DataTable, Footer, Header, Input, Static

from sysdash.config import dump_default_config, load_config
from sysdash.controller import DashboardController, SnapshotSource
from sysdash.fetcher import MetricsFetcher
from sysdash.projector import ViewModel, placeholder
from sysdash.state import PollState

logger = logging.getLogger(__name__)

BAR_WIDTH = 20


def _as_float(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        number = float(value)
    except OverflowError:
        return None
    # json.loads accepts NaN and Infinity
    return number if math.isfinite(number) else None


def format_bytes(size: Any) -> str:
    """Format bytes as human-readable string."""
    value = _as_float(size)
    if value is None:
        return placeholder(size)
    for unit in ["B", "K", "M", "G", "T"]:
        if abs(value) < 1024:
            return f"{value:.1f}{unit}" if unit != "B" else f"{int(value)}{unit}"
        value = value / 1024
    return f"{value:.1f}P"


def format_uptime(seconds: Any) -> str:
    """Format an uptime in seconds as 'D days, HH:MM:SS'."""
    uptime = _as_float(seconds)
    if uptime is None:
        return placeholder(seconds)
    days = int(uptime // 86400)
    hours = int((uptime % 86400) // 3600)
    minutes = int((uptime % 3600) // 60)
    secs = int(uptime % 60)
    if days > 0:
        return f"{days} days, {hours:02d}:{minutes:02d}:{secs:02d}"
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def _bar(percent: float, color: str) -> Text:
    bar_len = min(max(int(percent / (100 / BAR_WIDTH)), 0), BAR_WIDTH)
    return Text.assemble(
        "[",
        ("█" * bar_len, color),
        ("░" * (BAR_WIDTH - bar_len), "dim"),
        "]",
    )


def _share(value: Any, total: float) -> float:
    number = _as_float(value)
    if number is None or total <= 0:
        return 0.0
    return number / total * 100


def raw_pane_text(state: PollState, vm: ViewModel) -> str:
    """Raw JSON preview, or a loading marker until the first snapshot lands."""
    if state.loading and not state.has_data:
        return "Loading..."
    return vm.raw_json


class Card(Static):
    """Bordered panel whose content is rebuilt from the view model."""

    DEFAULT_CSS = """
    Card {
        height: auto;
        min-height: 8;
        padding: 0 1;
        border: round $primary;
    }
    """

    CARD_TITLE = ""

    def __init__(self, *args, **kwargs) -> None:
        """Initialize the Card."""
        super().__init__(*args, **kwargs)
        self.border_title = self.CARD_TITLE
        self.rendered_text = ""

    def update_view(self, vm: ViewModel) -> None:
        """Re-render from a view model."""
        content = self.build(vm)
        self.rendered_text = content.plain
        self.update(content)

    @staticmethod
    def build(vm: ViewModel) -> Text:
        raise NotImplementedError


class CpuCard(Card):
    CARD_TITLE = "CPU"

    @staticmethod
    def build(vm: ViewModel) -> Text:
        text = Text()
        text.append(f"{vm.cpu_percent}%", style="bold")
        text.append("  Total usage\n", style="dim")
        text.append(
            f"Cores: {placeholder(vm.cpu_cores)}  "
            f"Freq: {placeholder(vm.cpu_frequency_mhz)} MHz\n\n"
        )
        for point in vm.cpu_per_core:
            value = _as_float(point.value)
            text.append(f"{point.label:<8} ")
            text.append_text(_bar(value or 0.0, "green"))
            text.append(f" {value:5.1f}%\n" if value is not None else "     -\n")
        loads = "  ".join(
            f"{p.label} {p.value:.2f}" if _as_float(p.value) is not None else f"{p.label} -"
            for p in vm.load_average
        )
        text.append(f"\nLoad avg  {loads or '-'}")
        return text


class MemoryCard(Card):
    CARD_TITLE = "Memory"

    @staticmethod
    def build(vm: ViewModel) -> Text:
        text = Text()
        text.append(f"{placeholder(vm.ram_usage_percent)}%", style="bold")
        text.append("  RAM usage\n", style="dim")
        text.append(
            f"Total: {placeholder(vm.ram_total_mb)} MB  "
            f"Used: {placeholder(vm.ram_used_mb)} MB\n\n"
        )
        total = sum(_as_float(p.value) or 0.0 for p in vm.memory_pie)
        for point in vm.memory_pie:
            text.append(f"{point.label:<7} ")
            text.append_text(_bar(_share(point.value, total), "cyan"))
            text.append(f" {placeholder(point.value)} MB\n")
        return text


class DiskCard(Card):
    CARD_TITLE = "Disk"

    @staticmethod
    def build(vm: ViewModel) -> Text:
        text = Text()
        for row in vm.disk_partitions:
            text.append(f"{placeholder(row.mount)} ({placeholder(row.filesystem)})", style="bold")
            text.append(f"  {placeholder(row.usage_percent)}%\n")
            text.append(
                f"  {placeholder(row.used_gb)} GB used / {placeholder(row.total_gb)} GB total\n",
                style="dim",
            )
        total = sum(_as_float(s.used) or 0.0 for s in vm.disk_pie)
        if vm.disk_pie:
            text.append("\n")
        for disk_slice in vm.disk_pie:
            text.append(f"{placeholder(disk_slice.label):<10} ")
            text.append_text(_bar(_share(disk_slice.used, total), "yellow"))
            text.append(f" {placeholder(disk_slice.used)} GB\n")
        if not vm.disk_partitions:
            text.append("No partitions")
        return text


class NetworkIoChart(Card):
    CARD_TITLE = "Network I/O"

    @staticmethod
    def build(vm: ViewModel) -> Text:
        text = Text()
        peak = max(
            (_as_float(v) or 0.0 for point in vm.network_io for v in (point.rx, point.tx)),
            default=0.0,
        )
        for point in vm.network_io:
            text.append(f"{placeholder(point.label)}\n", style="bold")
            text.append("  RX ")
            text.append_text(_bar(_share(point.rx, peak), "green"))
            text.append(f" {format_bytes(point.rx)}\n")
            text.append("  TX ")
            text.append_text(_bar(_share(point.tx, peak), "magenta"))
            text.append(f" {format_bytes(point.tx)}\n")
        if not vm.network_io:
            text.append("No interfaces")
        return text


class SystemInfoCard(Card):
    CARD_TITLE = "System Info"

    @staticmethod
    def build(vm: ViewModel) -> Text:
        info = vm.info
        os_label = " ".join(str(v) for v in (info.os_name, info.os_version) if v is not None)
        uptime = placeholder(info.uptime_seconds)
        if _as_float(info.uptime_seconds) is not None:
            uptime = f"{uptime} ({format_uptime(info.uptime_seconds)})"
        text = Text()
        for label, value in (
            ("Hostname", placeholder(info.hostname)),
            ("Uptime (s)", uptime),
            ("OS", os_label or "-"),
            ("Kernel", placeholder(info.kernel)),
            ("Arch", placeholder(info.architecture)),
        ):
            text.append(f"{label:<11}")
            text.append(f"{value}\n", style="bold")
        text.append("\nLogged users\n", style="bold underline")
        for user in info.users:
            text.append(
                f"{placeholder(user.username)} - {placeholder(user.tty)} - "
                f"{placeholder(user.login_time)}\n"
            )
        return text


class RowsTable(Container):
    """Bordered DataTable that is refilled from view-model rows."""

    DEFAULT_CSS = """
    RowsTable {
        height: 16;
        border: round $primary;
    }

    RowsTable > DataTable {
        height: 1fr;
    }

    #process-total {
        height: 1;
        padding: 0 1;
    }
    """

    TABLE_TITLE = ""
    COLUMNS: tuple[str, ...] = ()

    def __init__(self, *args, **kwargs) -> None:
        """Initialize RowsTable."""
        super().__init__(*args, **kwargs)
        self.border_title = self.TABLE_TITLE

    def compose(self) -> ComposeResult:
        yield DataTable(zebra_stripes=True)

    def on_mount(self) -> None:
        """Initialize the data table when mounted."""
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.add_columns(*self.COLUMNS)

    @property
    def row_count(self) -> int:
        return self.query_one(DataTable).row_count

    def update_rows(self, rows: list[tuple[Any, ...]]) -> None:
        """Replace the table contents, keeping the server's order."""
        table = self.query_one(DataTable)
        table.clear()
        for row in rows:
            table.add_row(*(placeholder(cell) for cell in row))


class InterfaceTable(RowsTable):
    TABLE_TITLE = "Network Interfaces"
    COLUMNS = ("Name", "IPv4", "RX Bytes", "TX Bytes", "Errors")

    def update_view(self, vm: ViewModel) -> None:
        self.update_rows(
            [(i.name, i.ipv4, i.rx_bytes, i.tx_bytes, i.errors) for i in vm.interfaces]
        )


class ProcessTable(RowsTable):
    TABLE_TITLE = "Top Processes"
    COLUMNS = ("PID", "User", "Name", "CPU %", "MEM %", "Threads")

    def compose(self) -> ComposeResult:
        yield from super().compose()
        yield Static(id="process-total")

    def update_view(self, vm: ViewModel) -> None:
        self.update_rows(
            [(p.pid, p.user, p.name, p.cpu_percent, p.mem_percent, p.threads) for p in vm.processes]
        )
        self.query_one("#process-total", Static).update(
            Text(f"Totals: {placeholder(vm.process_total)}")
        )


class ConnectionTable(RowsTable):
    TABLE_TITLE = "Network Connections"
    COLUMNS = ("Proto", "Local", "Remote", "State", "PID", "Process")

    def update_view(self, vm: ViewModel) -> None:
        self.update_rows(
            [
                (c.protocol, c.local_address, c.remote_address, c.state, c.pid, c.process)
                for c in vm.connections
            ]
        )


class SysdashApp(App):
    """Main sysdash application."""

    TITLE = "sysdash"
    SUB_TITLE = "System Monitor"
    AUTO_FOCUS = None

    CSS = """
    #controls {
        height: auto;
        padding: 0 1;
    }

    #interval-input {
        width: 16;
    }

    #error-banner {
        color: $error;
        padding: 0 1;
        display: none;
    }

    .cards {
        grid-size: 3;
        grid-gutter: 1;
        height: auto;
    }

    .pair {
        grid-size: 2;
        grid-gutter: 1;
        height: auto;
    }

    .stack {
        height: auto;
    }

    #raw-json {
        height: 20;
        border: round $primary;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("r", "refresh", "Refresh"),
        ("a", "toggle_auto", "Auto refresh"),
    ]

    def __init__(
        self,
        fetcher: SnapshotSource | None = None,
        api_url: str | None = None,
        interval_ms: int = 5000,
        auto_refresh: bool = True,
        timeout: float = 10.0,
    ) -> None:
        """Initialize the SysdashApp.

        Args:
            fetcher: Snapshot source; defaults to an HTTP fetcher for api_url.
            api_url: Metrics endpoint URL, used when no fetcher is given.
            interval_ms: Auto-refresh interval in milliseconds.
            auto_refresh: Whether the timer starts enabled.
            timeout: HTTP timeout in seconds.
        """
        super().__init__()
        if fetcher is None:
            fetcher = MetricsFetcher(api_url or load_config()["api_url"], timeout=timeout)
        self._controller = DashboardController(
            fetcher, interval_ms=interval_ms, auto_refresh=auto_refresh
        )

    @property
    def controller(self) -> DashboardController:
        return self._controller

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        state = self._controller.state
        yield Header()
        yield Horizontal(
            Input(value=str(state.interval_ms), placeholder="interval ms", id="interval-input"),
            Button(self._toggle_label(state), id="toggle-auto"),
            Button("Refresh", id="refresh", variant="primary"),
            id="controls",
        )
        yield Static(id="error-banner")
        with VerticalScroll():
            yield Grid(
                CpuCard(id="cpu-card"),
                MemoryCard(id="memory-card"),
                DiskCard(id="disk-card"),
                classes="cards",
            )
            with Grid(classes="pair"):
                with Container(classes="stack"):
                    yield InterfaceTable(id="interfaces")
                    yield NetworkIoChart(id="network-io")
                yield ProcessTable(id="processes")
            yield Grid(
                ConnectionTable(id="connections"),
                SystemInfoCard(id="system-info"),
                classes="pair",
            )
            with VerticalScroll(id="raw-json") as raw:
                raw.border_title = "Raw API (preview)"
                yield Static(id="raw-json-body")
        yield Footer()

    def on_mount(self) -> None:
        """Wire the controller to the widgets and start polling."""
        self._controller.add_listener(self._on_state)
        self._controller.add_error_listener(self._on_fetch_error)
        self._render_state(self._controller.state)
        self._controller.start()

    def on_unmount(self) -> None:
        self._controller.close()

    @staticmethod
    def _toggle_label(state: PollState) -> str:
        return "Stop Auto" if state.auto_refresh else "Start Auto"

    def _on_state(self, state: PollState) -> None:
        try:
            self._render_state(state)
        except NoMatches:
            pass  # Widgets not mounted yet or already torn down

    def _render_state(self, state: PollState) -> None:
        """Push the latest view model and poll state into the widgets."""
        vm = self._controller.view_model
        for card in self.query(Card):
            card.update_view(vm)
        self.query_one(InterfaceTable).update_view(vm)
        self.query_one(ProcessTable).update_view(vm)
        self.query_one(ConnectionTable).update_view(vm)

        self.query_one("#raw-json-body", Static).update(
            Text(raw_pane_text(state, vm))
        )
        banner = self.query_one("#error-banner", Static)
        banner.update(Text(f"Error: {state.error}" if state.error else ""))
        banner.display = state.error is not None
        self.query_one("#toggle-auto", Button).label = self._toggle_label(state)

    def _on_fetch_error(self, message: str) -> None:
        self.notify(message, title="Error", severity="error")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "refresh":
            self.action_refresh()
        elif event.button.id == "toggle-auto":
            self.action_toggle_auto()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        """Apply a new refresh interval when Enter is pressed in the interval field."""
        if event.input.id != "interval-input":
            return
        interval = self._controller.set_interval(event.value)
        event.input.value = str(interval)

    def action_refresh(self) -> None:
        """Handle refresh action - fetch now."""
        self._controller.refresh()

    def action_toggle_auto(self) -> None:
        """Handle toggle action - start or stop auto-refresh."""
        enabled = self._controller.toggle_auto_refresh()
        self.notify(f"Auto refresh: {'on' if enabled else 'off'}")

    async def action_quit(self) -> None:
        """Handle quit action with graceful cleanup."""
        self._controller.close()
        self.exit()


def _configure_logging(level: str, log_file: Path | None) -> None:
    handler: logging.Handler
    if log_file is not None:
        handler = logging.FileHandler(log_file, encoding="utf-8")
    else:
        handler = TextualHandler()
    logging.basicConfig(
        level=level.upper(),
        handlers=[handler],
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sysdash",
        description="Terminal dashboard for a system-metrics HTTP API.",
    )
    parser.add_argument("--url", help="metrics endpoint URL")
    parser.add_argument("--interval", type=int, help="auto-refresh interval in milliseconds")
    parser.add_argument("--timeout", type=float, help="HTTP timeout in seconds")
    parser.add_argument(
        "--no-auto-refresh",
        action="store_true",
        help="start with auto-refresh disabled",
    )
    parser.add_argument("--config", type=Path, help="path to a TOML config file")
    parser.add_argument(
        "--print-config",
        action="store_true",
        help="print the default configuration and exit",
    )
    parser.add_argument("--log-file", type=Path, help="write logs to this file")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="log level (default: WARNING)",
    )
    return parser


def resolve_settings(args: argparse.Namespace) -> dict[str, Any]:
    """Merge command-line options over the loaded configuration."""
    config = load_config(args.config)
    if args.url:
        config["api_url"] = args.url
    if args.interval is not None:
        config["interval_ms"] = args.interval
    if args.timeout is not None:
        config["timeout"] = args.timeout
    if args.no_auto_refresh:
        config["auto_refresh"] = False
    return config


def main(argv: list[str] | None = None) -> None:
    """Entry point for sysdash application."""
    args = build_parser().parse_args(argv)
    if args.print_config:
        print(dump_default_config(), end="")
        return

    _configure_logging(args.log_level, args.log_file)
    settings = resolve_settings(args)
    logger.info("polling %s every %s ms", settings["api_url"], settings["interval_ms"])
    app = SysdashApp(
        api_url=settings["api_url"],
        interval_ms=settings["interval_ms"],
        auto_refresh=settings["auto_refresh"],
        timeout=settings["timeout"],
    )
    app.run()


if __name__ == "__main__":
    main()
