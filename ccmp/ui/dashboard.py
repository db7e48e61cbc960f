import threading
import time
from datetime import datetime
from typing import Optional
from rich.console import Console, Group
from rich.live import Live
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from ccmp.domain.models import CompressionJob, CompressionResult
from ccmp.ui.state import UIState

class Dashboard:
    """Renders the live progress view and the per-codec report lines."""

    def __init__(self, state: UIState, console: Optional[Console] = None, refresh_interval: float = 0.2):
        self.state = state
        self.console = console or Console()
        self.refresh_interval = refresh_interval
        self._live: Optional[Live] = None
        self._refresh_thread: Optional[threading.Thread] = None
        self._stop_refresh = threading.Event()
        self._ui_lock = threading.Lock()
        self._printed = 0

    def format_size(self, size: int) -> str:
        """Format size in bytes to human readable"""
        if size == 0:
            return "0B"
        for unit in ['B', 'KB', 'MB', 'GB']:
            if size < 1024.0:
                return f"{size:.1f}{unit}"
            size /= 1024.0
        return f"{size:.1f}TB"

    def format_time(self, seconds: float) -> str:
        """Format seconds to human readable time"""
        if seconds < 60:
            return f"{seconds:.2f}s"
        elif seconds < 3600:
            return f"{int(seconds / 60):02d}m {int(seconds % 60):02d}s"
        else:
            return f"{int(seconds / 3600)}h {int((seconds % 3600) / 60):02d}m"

    def format_result_line(self, result: CompressionResult) -> str:
        """One report line; carries all five figures of a finished job."""
        color = "green" if result.reduction_percentage > 0 else "yellow"
        return (
            f"[bold]{result.codec}[/]: {result.original_size} bytes -> {result.compressed_size} bytes "
            f"([{color}]{result.reduction_percentage:.1f}%[/] {result.throughput} bytes/s)"
        )

    def format_failure_line(self, job: CompressionJob) -> str:
        stage = job.failed_stage or "unknown"
        return f"[bold red]{job.codec}[/]: FAILED at {stage} stage: {escape(job.error_message or 'unknown error')}"

    def _generate_status_panel(self) -> Panel:
        with self.state._lock:
            if self.state.shutdown_requested:
                status, color = "INTERRUPTED", "bright_red"
            elif self.state.finished:
                status, color = "FINISHED", "cyan"
            else:
                status, color = "ACTIVE", "green"
            elapsed = 0.0
            if self.state.start_time:
                elapsed = (datetime.now() - self.state.start_time).total_seconds()
            name = self.state.input_path.name if self.state.input_path else "-"
            lines = [
                f"[dim]Status:[/] [bold {color}]{status}[/]",
                f"[dim]Input:[/] {name} ({self.format_size(self.state.input_size)})",
                (
                    f"[dim]Codecs:[/] {len(self.state.codecs)} | "
                    f"[dim]Done:[/] {self.state.completed_count} | "
                    f"[dim]Failed:[/] {self.state.failed_count} | "
                    f"[dim]Elapsed:[/] {self.format_time(elapsed)}"
                ),
            ]
        return Panel("\n".join(lines), title="COMPRESSION RACE", border_style="cyan")

    def _generate_processing_panel(self) -> Panel:
        with self.state._lock:
            if not self.state.active_jobs:
                return Panel("No codecs running", title="CURRENTLY COMPRESSING", border_style="yellow")

            table = Table(show_header=True, box=None, padding=(0, 1))
            table.add_column("Codec", style="yellow", width=10)
            table.add_column("Read", justify="right")
            table.add_column("%", justify="right", style="cyan")
            table.add_column("Written", justify="right")
            table.add_column("Speed", justify="right", style="green")

            for job in self.state.active_jobs:
                progress = self.state.progress.get(job.codec)
                read = progress.bytes_read if progress else 0
                written = progress.bytes_written if progress else 0
                speed = progress.throughput if progress else 0
                total = job.source_file.size_bytes
                pct = (read / total * 100) if total > 0 else 100.0
                table.add_row(
                    job.codec,
                    self.format_size(read),
                    f"{pct:.0f}%",
                    self.format_size(written),
                    f"{self.format_size(speed)}/s"
                )

        return Panel(table, title="CURRENTLY COMPRESSING", border_style="yellow")

    def create_summary_table(self) -> Table:
        """Final comparison, smallest output first."""
        table = Table(title="Codec comparison")
        table.add_column("Codec", style="bold")
        table.add_column("Original", justify="right")
        table.add_column("Compressed", justify="right")
        table.add_column("Reduction", justify="right")
        table.add_column("Throughput", justify="right")
        table.add_column("Time", justify="right")
        table.add_column("Output")

        with self.state._lock:
            results = sorted(self.state.results, key=lambda r: r.compressed_size)
            failed = list(self.state.failed_jobs)
            best = self.state.best_result
        if best is not None:
            table.caption = f"Smallest output: {best.codec} ({best.compressed_size} bytes)"

        for result in results:
            table.add_row(
                result.codec,
                str(result.original_size),
                str(result.compressed_size),
                f"{result.reduction_percentage:.1f}%",
                f"{result.throughput} B/s",
                self.format_time(result.duration_seconds),
                str(result.output_path.name)
            )
        for job in failed:
            table.add_row(job.codec, str(job.source_file.size_bytes), "-", "-", "-", "-", f"[red]{job.status.value}[/]")
        return table

    def create_display(self) -> Group:
        return Group(
            self._generate_status_panel(),
            self._generate_processing_panel()
        )

    def _print_finished(self):
        """Prints report lines for jobs that finished since the last call."""
        with self.state._lock:
            pending = self.state.finished_log[self._printed:]
            self._printed += len(pending)
        for entry in pending:
            if isinstance(entry, CompressionResult):
                line = self.format_result_line(entry)
            else:
                line = self.format_failure_line(entry)
            if self._live:
                self._live.console.print(line)
            else:
                self.console.print(line)

    def _refresh_loop(self):
        """Background thread to update Live display."""
        while not self._stop_refresh.is_set():
            if self._live:
                with self._ui_lock:
                    self._print_finished()
                    self._live.update(self.create_display())
            time.sleep(self.refresh_interval)

    def start(self):
        """Starts the Live display and refresh thread."""
        self._live = Live(self.create_display(), console=self.console, refresh_per_second=10, transient=True)
        self._live.start()
        self._stop_refresh.clear()
        self._refresh_thread = threading.Thread(target=self._refresh_loop, daemon=True)
        self._refresh_thread.start()
        return self

    def stop(self):
        """Stops the Live display, flushes pending report lines and prints the comparison."""
        self._stop_refresh.set()
        if self._refresh_thread:
            self._refresh_thread.join(timeout=1.0)
        if self._live:
            with self._ui_lock:
                self._print_finished()
                self._live.stop()
            self._live = None
        else:
            self._print_finished()
        if self.state.results or self.state.failed_jobs:
            self.console.print(self.create_summary_table())

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
