"""Per-component progress reporting"""

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Dict, Optional

from rich import box
from rich.console import Console, Group
from rich.live import Live
from rich.spinner import Spinner
from rich.table import Table
from rich.text import Text

from ..constants import (
    EMOJI_CACHED,
    EMOJI_ERROR,
    EMOJI_SUCCESS,
    STATUS_REFRESH_PER_SECOND,
)
from ..models.result import PipelinePhase

logger = logging.getLogger(__name__)


class StatusReporter:
    """Sink for component lifecycle events

    Reporters are purely presentational: they never raise into the
    pipeline and never influence ordering. This base class discards
    every event.
    """

    def start(self, name: str, phase: PipelinePhase, message: Optional[str] = None) -> None:
        self.update(name, phase, message)

    def update(self, name: str, phase: PipelinePhase, message: Optional[str] = None) -> None:
        pass

    def succeed(self, name: str, message: Optional[str] = None, cached: bool = False) -> None:
        pass

    def fail(self, name: str, message: Optional[str] = None) -> None:
        pass

    def log(self, name: str, line: str) -> None:
        """Forward one line of build output"""
        pass

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()


class PlainStatusReporter(StatusReporter):
    """One printed line per event, for non-interactive output"""

    def __init__(self, console: Console = None):
        self.console = console or Console()
        self._lock = threading.Lock()

    def _emit(self, text: str) -> None:
        with self._lock:
            self.console.print(text, markup=False, highlight=False, soft_wrap=True)

    def update(self, name: str, phase: PipelinePhase, message: Optional[str] = None) -> None:
        suffix = f": {message}" if message else ""
        self._emit(f"[{name}] {phase.value}{suffix}")

    def succeed(self, name: str, message: Optional[str] = None, cached: bool = False) -> None:
        symbol = EMOJI_CACHED if cached else EMOJI_SUCCESS
        suffix = f": {message}" if message else ""
        self._emit(f"[{name}] {symbol} {PipelinePhase.SUCCEEDED.value}{suffix}")

    def fail(self, name: str, message: Optional[str] = None) -> None:
        suffix = f": {message}" if message else ""
        self._emit(f"[{name}] {EMOJI_ERROR} {PipelinePhase.FAILED.value}{suffix}")

    def log(self, name: str, line: str) -> None:
        self._emit(f"[{name}] {line}")


@dataclass
class _Row:
    phase: PipelinePhase
    message: Optional[str] = None
    cached: bool = False
    started: float = field(default_factory=time.monotonic)
    finished: Optional[float] = None


class LiveStatusReporter(StatusReporter):
    """Redrawing multi-line table keyed by component name"""

    def __init__(self, console: Console = None, title: str = "Components"):
        self.console = console or Console()
        self.title = title
        self._rows: Dict[str, _Row] = {}
        self._spinners: Dict[str, Spinner] = {}
        self._lock = threading.Lock()
        self._live: Optional[Live] = None

    def __enter__(self):
        self._live = Live(
            self,
            console=self.console,
            refresh_per_second=STATUS_REFRESH_PER_SECOND,
            transient=False,
        )
        self._live.__enter__()
        return self

    def close(self) -> None:
        if self._live:
            self._live.__exit__(None, None, None)
            self._live = None

    def __exit__(self, *args):
        self.close()

    def __rich__(self) -> Group:
        """Rendered by Live on every refresh tick"""
        return Group(self._create_table())

    def _set(self, name: str, row: _Row) -> None:
        with self._lock:
            previous = self._rows.get(name)
            if previous and not row.finished:
                row.started = previous.started
            self._rows[name] = row

    def start(self, name: str, phase: PipelinePhase, message: Optional[str] = None) -> None:
        self._set(name, _Row(phase=phase, message=message))

    def update(self, name: str, phase: PipelinePhase, message: Optional[str] = None) -> None:
        self._set(name, _Row(phase=phase, message=message))

    def succeed(self, name: str, message: Optional[str] = None, cached: bool = False) -> None:
        started = self._rows[name].started if name in self._rows else time.monotonic()
        self._set(name, _Row(
            phase=PipelinePhase.SUCCEEDED,
            message=message,
            cached=cached,
            started=started,
            finished=time.monotonic(),
        ))

    def fail(self, name: str, message: Optional[str] = None) -> None:
        started = self._rows[name].started if name in self._rows else time.monotonic()
        self._set(name, _Row(
            phase=PipelinePhase.FAILED,
            message=message,
            started=started,
            finished=time.monotonic(),
        ))

    def log(self, name: str, line: str) -> None:
        text = Text(f"[{name}] ", style="dim")
        text.append(line)
        if self._live:
            self._live.console.print(text)
        else:
            self.console.print(text)

    def _create_table(self) -> Table:
        table = Table(title=self.title, box=box.SIMPLE, show_header=True)
        table.add_column("", width=2)
        table.add_column("Component", style="cyan")
        table.add_column("Phase")
        table.add_column("Message", overflow="fold")
        table.add_column("Time", justify="right", style="dim")

        with self._lock:
            rows = list(self._rows.items())

        now = time.monotonic()
        for name, row in rows:
            if row.phase == PipelinePhase.SUCCEEDED:
                icon = Text(EMOJI_CACHED if row.cached else EMOJI_SUCCESS, style="green")
                phase = Text(row.phase.value, style="green")
            elif row.phase == PipelinePhase.FAILED:
                icon = Text(EMOJI_ERROR, style="red")
                phase = Text(row.phase.value, style="red")
            else:
                icon = self._spinners.setdefault(name, Spinner("dots"))
                phase = Text(row.phase.value, style="yellow")

            elapsed = (row.finished or now) - row.started
            table.add_row(icon, name, phase, row.message or "", f"{elapsed:.1f}s")

        return table


def create_status_reporter(console: Console = None) -> StatusReporter:
    """
    Pick a reporter for the output stream

    Args:
        console: Console to render to

    Returns:
        LiveStatusReporter for terminals, PlainStatusReporter otherwise
    """
    console = console or Console()
    if console.is_terminal and not console.is_dumb_terminal:
        return LiveStatusReporter(console)
    return PlainStatusReporter(console)
