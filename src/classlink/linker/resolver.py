"""
Dependency Resolver

Periodic pass ("tick") over pending definitions. Each tick takes a snapshot of
the pending set, materializes every definition whose requirements are now met,
then reschedules itself while anything is still pending.

Direct two-class cycles (A requires B, B requires A) are broken by ignoring
the edge back to the class being checked. Longer cycles are left alone; they
stay pending and show up in the watchdog's stall report.
"""

import logging
from typing import Optional, Tuple

from ..runtime.scheduling import Scheduler, TimerHandle
from .definition import ClassDefinition
from .registry import DefinitionRegistry
from .watchdog import FailureWatchdog, PendingState, StallReport

logger = logging.getLogger(__name__)


class DependencyResolver:
    """
    Timer-driven resolver over a DefinitionRegistry.

    - schedule(): start ticking if not already
    - tick(): one pass; returns how many classes were materialized
    - unresolved_classes() / unresolved_files(): what a definition still waits for
    """

    def __init__(
        self,
        registry: DefinitionRegistry,
        scheduler: Scheduler,
        tick_interval: float,
        watchdog: Optional[FailureWatchdog] = None,
    ):
        self.registry = registry
        self.scheduler = scheduler
        self.tick_interval = tick_interval
        self.watchdog = watchdog
        self._timer: Optional[TimerHandle] = None
        self.ticks = 0

    @property
    def running(self) -> bool:
        return self._timer is not None

    def schedule(self) -> None:
        if self._timer is None:
            self._timer = self.scheduler.call_later(self.tick_interval, self._on_timer)

    def stop(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_timer(self) -> None:
        self._timer = None
        self.tick()

    # ------------------------------------------------------------------
    # Requirement checks
    # ------------------------------------------------------------------

    def unresolved_classes(self, definition: ClassDefinition) -> Tuple[str, ...]:
        """Required classes not yet resolved, minus direct back-edges (A <-> B)."""
        registry = self.registry
        unresolved = []
        for dep in definition.requires:
            if dep in registry.resolved:
                continue
            dep_definition = registry.get(dep)
            if dep_definition is not None and definition.name in dep_definition.requires:
                # Check for A => B => A; such a reference can be ignored
                continue
            unresolved.append(dep)
        return tuple(unresolved)

    def unresolved_files(self, definition: ClassDefinition) -> Tuple[str, ...]:
        loaded = self.registry.loaded_files
        return tuple(path for path in definition.includes if path not in loaded)

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def tick(self) -> int:
        """
        One resolution pass over a snapshot of the pending definitions.

        Definitions submitted while the pass runs (from factories or hooks) are
        not in the snapshot and get checked on the next tick.
        """
        self.ticks += 1
        registry = self.registry
        snapshot = list(registry.pending.values())
        processed = 0

        try:
            for definition in snapshot:
                if not registry.is_pending(definition.name):
                    continue
                if self.unresolved_classes(definition) or self.unresolved_files(definition):
                    continue
                try:
                    registry.resolve(definition)
                except Exception:
                    logger.exception(f"Failed to initialize {definition.name}")
                if registry.is_resolved(definition.name):
                    processed += 1
        finally:
            self._after_tick(processed)

        if processed:
            logger.debug(f"Tick {self.ticks}: resolved {processed}, {len(registry.pending)} pending")
        return processed

    def _after_tick(self, processed: int) -> None:
        registry = self.registry
        if processed and self.watchdog is not None:
            # Something was processed, reset the fail timer
            self.watchdog.reset()

        if registry.pending:
            # There are classes waiting for their dependencies, do this again
            self.schedule()
        else:
            self.stop()
            if self.watchdog is not None:
                self.watchdog.disarm()

    def snapshot(self, quiet_for: float = 0.0) -> StallReport:
        """Current linker state as a StallReport."""
        registry = self.registry
        pending = {
            name: PendingState(
                unresolved_classes=self.unresolved_classes(definition),
                unresolved_files=self.unresolved_files(definition),
            )
            for name, definition in registry.pending.items()
        }
        return StallReport(
            resolved=sorted(registry.resolved),
            pending=pending,
            definitions=list(registry.definitions.values()),
            quiet_for=quiet_for,
        )
