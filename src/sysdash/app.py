"""sysdash - terminal dashboard."""

from textual.app import App, ComposeResult
from textual.containers import Container, Horizontal
from textual.widgets import DataTable, Footer, Static

from sysdash.config import Config
from sysdash.models import NetworkInterfaceReading, Snapshot
from sysdash.monitor import SystemMonitor


def format_bytes(size: int) -> str:
    """Format bytes as human-readable string."""
    for unit in ["B", "K", "M", "G", "T"]:
        if size < 1024:
            return f"{size:5.1f}{unit}" if unit != "B" else f"{size:5d}{unit}"
        size = size / 1024
    return f"{size:.1f}P"


def format_uptime(seconds: int) -> str:
    days, rest = divmod(int(seconds), 86400)
    hours, rest = divmod(rest, 3600)
    minutes, secs = divmod(rest, 60)
    if days > 0:
        return f"{days} days, {hours:02d}:{minutes:02d}:{secs:02d}"
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def _bar(percent: float, color: str) -> str:
    bar_len = min(int(percent / 5), 20)  # Cap at 20 chars
    return f"[{color}]█[/{color}]" * bar_len + "[dim]░[/dim]" * (20 - bar_len)


class HeaderStats(Static):
    """Header widget showing CPU, memory, disk and GPU statistics."""

    DEFAULT_CSS = """
    HeaderStats {
        height: auto;
        min-height: 5;
        padding: 1;
        background: $surface;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        """Initialize HeaderStats."""
        super().__init__(*args, **kwargs)
        self._snapshot: Snapshot | None = None

    def compose(self) -> ComposeResult:
        """Compose the header stats layout."""
        yield Horizontal(
            Static(self._get_cpu_info(), id="cpu-info"),
            Static(self._get_host_info(), id="host-info"),
        )

    def update_stats(self, snapshot: Snapshot) -> None:
        """Update the statistics from a snapshot."""
        self._snapshot = snapshot
        try:
            self.query_one("#cpu-info", Static).update(self._get_cpu_info())
            self.query_one("#host-info", Static).update(self._get_host_info())
        except Exception:
            pass  # Widget not mounted yet

    def _get_cpu_info(self) -> str:
        if self._snapshot is None or not self._snapshot.cpu_percent:
            return "Loading CPU info..."
        lines = [self._snapshot.identity.cpu_model or "CPU"]
        for i, usage in enumerate(self._snapshot.cpu_percent):
            # Use escaped brackets for the bar container
            lines.append(f"CPU{i:<2} \\[{_bar(usage, 'green')}] {usage:5.1f}%")
        return "\n".join(lines)

    def _get_host_info(self) -> str:
        if self._snapshot is None:
            return "Loading host info..."
        snap = self._snapshot
        mem, disk = snap.memory, snap.disk
        gb = 1024**3

        if snap.gpu is None:
            gpu_line = "GPU: none detected"
        else:
            gpu = snap.gpu
            gpu_line = (
                f"GPU: {gpu.name} {gpu.used_percent:.0f}% "
                f"{gpu.memory_used / gb:.1f}G/{gpu.memory_total / gb:.1f}G {gpu.temperature:.0f}°C"
            )

        return (
            f"{snap.identity.hostname} ({snap.identity.os}/{snap.identity.arch})\n"
            f"Mem\\[{_bar(mem.used_percent, 'cyan')}] {mem.used / gb:.1f}G/{mem.total / gb:.1f}G\n"
            f"Dsk\\[{_bar(disk.used_percent, 'yellow')}] {disk.used / gb:.1f}G/{disk.total / gb:.1f}G {disk.path}\n"
            f"{gpu_line}\n"
            f"Uptime: {format_uptime(snap.uptime)}"
        )


class NetworkTable(Container):
    """Container for the network interface table."""

    DEFAULT_CSS = """
    NetworkTable {
        height: 1fr;
        border: solid $primary;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        """Initialize NetworkTable."""
        super().__init__(*args, **kwargs)
        self._current_names: set[str] = set()

    def compose(self) -> ComposeResult:
        yield DataTable(id="network-table")

    def on_mount(self) -> None:
        table = self.query_one("#network-table", DataTable)
        table.cursor_type = "row"
        table.add_column("Interface", key="name", width=20)
        table.add_column("Sent", key="sent", width=10)
        table.add_column("Received", key="recv", width=10)

    def update_interfaces(self, interfaces: tuple[NetworkInterfaceReading, ...]) -> None:
        """
        Update the table with new interface counters.

        Existing rows are updated in place; vanished interfaces are removed.
        """
        table = self.query_one("#network-table", DataTable)
        new_names = {iface.name for iface in interfaces}

        for name in self._current_names - new_names:
            try:
                table.remove_row(name)
            except Exception:
                pass  # Row may not exist

        for iface in interfaces:
            try:
                if iface.name in self._current_names:
                    table.update_cell(iface.name, "sent", format_bytes(iface.bytes_sent))
                    table.update_cell(iface.name, "recv", format_bytes(iface.bytes_recv))
                else:
                    table.add_row(
                        iface.name,
                        format_bytes(iface.bytes_sent),
                        format_bytes(iface.bytes_recv),
                        key=iface.name,
                    )
            except Exception:
                pass  # Row changed underneath us

        self._current_names = new_names


class SysdashApp(App):
    """Terminal dashboard reading the latest snapshot on a fixed cadence."""

    TITLE = "sysdash"
    SUB_TITLE = "Host Resource Dashboard"

    CSS = """
    Screen {
        layout: vertical;
    }

    #header-stats {
        dock: top;
        height: auto;
        min-height: 6;
    }

    Horizontal {
        height: auto;
    }

    #cpu-info {
        width: 1fr;
        padding-right: 2;
    }

    #host-info {
        width: 1fr;
        padding-left: 2;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
    ]

    def __init__(self, config: Config | None = None, monitor: SystemMonitor | None = None) -> None:
        """
        Initialize the SysdashApp.

        Args:
            config: Settings; defaults to the environment.
            monitor: Collector to display. Built from ``config`` when omitted.
        """
        super().__init__()
        self._config = config if config is not None else Config.from_env()
        self._monitor = monitor if monitor is not None else SystemMonitor.from_config(self._config)
        self._last_snapshot: Snapshot | None = None

    def compose(self) -> ComposeResult:
        yield HeaderStats(id="header-stats")
        yield NetworkTable()
        yield Footer()

    def on_mount(self) -> None:
        """Start the collector and re-read the cache on the configured interval."""
        self._monitor.start()
        self.set_interval(self._monitor.poll_rate, self._check_for_updates)

    def _check_for_updates(self) -> None:
        snapshot = self._monitor.cache.read()
        if snapshot is None or snapshot is self._last_snapshot:
            return
        self._last_snapshot = snapshot
        self._update_ui(snapshot)

    def _update_ui(self, snapshot: Snapshot) -> None:
        try:
            self.query_one("#header-stats", HeaderStats).update_stats(snapshot)
            self.query_one(NetworkTable).update_interfaces(snapshot.network)
        except Exception:
            pass  # Screen is shutting down

    def action_quit(self) -> None:
        """Handle quit action with graceful cleanup."""
        self._monitor.stop()
        self.exit()

