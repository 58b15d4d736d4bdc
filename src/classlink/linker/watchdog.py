"""
Failure Watchdog

Detects resolution stalls: if no pending class has resolved for a full window,
a snapshot of the linker state is logged and handed to listeners. The watchdog
only reports; it never fails, cancels or drops a pending definition.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from ..shared.errors import Diagnostic, Label, format_diagnostic
from ..runtime.scheduling import Scheduler, TimerHandle
from .definition import ClassDefinition

logger = logging.getLogger(__name__)

STALL_ERROR_CODE = "L0100"

# Tolerance when comparing the virtual clock against the deadline
_CLOCK_EPSILON = 1e-9


@dataclass
class PendingState:
    """Why one pending class has not resolved yet."""
    unresolved_classes: Tuple[str, ...] = ()
    unresolved_files: Tuple[str, ...] = ()


@dataclass
class StallReport:
    """
    Snapshot taken when resolution stalls.

    - resolved: every class materialized so far
    - pending: class name -> what it is still waiting for
    - definitions: every known class definition
    - quiet_for: seconds since the last progress (or since arming)
    """
    resolved: List[str]
    pending: Dict[str, PendingState]
    definitions: List[ClassDefinition] = field(default_factory=list)
    quiet_for: float = 0.0

    @property
    def pending_names(self) -> List[str]:
        return list(self.pending)

    def to_diagnostic(self) -> Diagnostic:
        count = len(self.pending)
        labels = []
        for name, state in self.pending.items():
            details = []
            if state.unresolved_classes:
                details.append(f"unresolved classes: {', '.join(state.unresolved_classes)}")
            if state.unresolved_files:
                details.append(f"unresolved files: {', '.join(state.unresolved_files)}")
            labels.append(Label(subject=name, details=details))

        known = ", ".join(str(d) for d in self.definitions) or "<none>"
        return Diagnostic(
            message=(
                f"FAILURE TO LOAD CLASSES: {count} class definition{'s' if count != 1 else ''} "
                f"pending after {self.quiet_for:.1f}s without progress"
            ),
            code=STALL_ERROR_CODE,
            labels=labels,
            note=f"resolved: {', '.join(self.resolved) or '<none>'}; class definitions: {known}",
            help="check that every required class file exists and defines its class",
        )

    def format(self, color: Optional[bool] = None) -> str:
        return format_diagnostic(self.to_diagnostic(), color=color)


class FailureWatchdog:
    """
    Deadline timer over resolver progress.

    arm() starts the deadline, reset() pushes it one window into the future,
    disarm() stops watching. When the deadline passes with classes pending, one
    report is emitted and the deadline is rearmed for the next quiet window.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        window: float,
        snapshot: Callable[[float], StallReport],
        has_pending: Callable[[], bool],
    ):
        self.scheduler = scheduler
        self.window = window
        self._snapshot = snapshot
        self._has_pending = has_pending
        self.deadline: Optional[float] = None
        self._quiet_since: Optional[float] = None
        self._timer: Optional[TimerHandle] = None
        self._listeners: List[Callable[[StallReport], None]] = []
        self.reports: List[StallReport] = []

    @property
    def armed(self) -> bool:
        return self.deadline is not None

    @property
    def last_report(self) -> Optional[StallReport]:
        return self.reports[-1] if self.reports else None

    def add_listener(self, listener: Callable[[StallReport], None]) -> None:
        """Call ``listener(report)`` after each emitted stall report."""
        self._listeners.append(listener)

    def arm(self) -> None:
        if self.armed:
            return
        now = self.scheduler.time()
        self.deadline = now + self.window
        self._quiet_since = now
        self._schedule(self.window)

    def reset(self) -> None:
        """Progress was made: the deadline moves one window past now."""
        if not self.armed:
            self.arm()
            return
        now = self.scheduler.time()
        self.deadline = now + self.window
        self._quiet_since = now

    def disarm(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self.deadline = None
        self._quiet_since = None

    def _schedule(self, delay: float) -> None:
        if self._timer is None:
            self._timer = self.scheduler.call_later(delay, self._check)

    def _check(self) -> None:
        self._timer = None
        if self.deadline is None:
            return

        now = self.scheduler.time()
        if now + _CLOCK_EPSILON < self.deadline:
            # Progress moved the deadline since this check was scheduled
            self._schedule(self.deadline - now)
            return

        if not self._has_pending():
            self.disarm()
            return

        quiet_for = now - self._quiet_since if self._quiet_since is not None else self.window
        report = self._snapshot(quiet_for)
        self.reports.append(report)
        logger.error(report.format(color=False))
        for listener in self._listeners:
            listener(report)

        # Rearm for the next quiet window rather than reporting every check
        self.deadline = now + self.window
        self._schedule(self.window)
