"""
Loader

Constructible owner of one linker: file loader, registry, resolver,
materializer and watchdog share its scheduler and config. Nothing is global,
so independent loaders (one per test, one per embedded app) never interfere.

Typical use on an asyncio loop:

    loader = Loader.from_directory("game/")
    loader.define({"class": "App.Game", "requires": ["App.engine.Timer"],
                   "factory": make_game})
    loader.when_resolved("App.Game", lambda game: game.setup())
"""

import logging
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Union

from .linker.definition import ClassDefinition, Factory, Value
from .linker.materializer import Namespace, NamespaceMaterializer
from .linker.path_resolver import PathResolver
from .linker.registry import DefinitionRegistry
from .linker.resolver import DependencyResolver
from .linker.watchdog import FailureWatchdog, StallReport
from .runtime.fetchers import SourceFileFetcher
from .runtime.file_loader import Fetcher, FileLoader, LoadCallback
from .runtime.scheduling import EventLoopScheduler, Scheduler, TimerHandle
from .utils.config import LoaderConfig

logger = logging.getLogger(__name__)


class Loader:
    """
    Dependency-driven class loader.

    Args:
        fetcher: ``fetcher(url, done)`` that fetches and injects one file
        scheduler: timer source; defaults to the running asyncio loop
        config: timings and base URL
        namespace: root namespace to install classes into
    """

    def __init__(
        self,
        fetcher: Fetcher,
        scheduler: Optional[Scheduler] = None,
        config: Optional[LoaderConfig] = None,
        namespace: Optional[Namespace] = None,
        path_resolver: Optional[PathResolver] = None,
    ):
        self.config = config or LoaderConfig()
        self.scheduler = scheduler if scheduler is not None else EventLoopScheduler()

        self.file_loader = FileLoader(fetcher, self.scheduler, self.config)
        self.materializer = NamespaceMaterializer(namespace)
        self.registry = DefinitionRegistry(
            self.file_loader,
            self.materializer,
            path_resolver=path_resolver,
            on_pending=self._on_pending,
        )
        self.watchdog = FailureWatchdog(
            self.scheduler,
            self.config.watchdog_window,
            snapshot=self._snapshot,
            has_pending=lambda: bool(self.registry.pending),
        )
        self.resolver = DependencyResolver(
            self.registry,
            self.scheduler,
            self.config.tick_interval,
            watchdog=self.watchdog,
        )
        self._poll_timers: Dict[int, TimerHandle] = {}
        self._poll_ids = 0

    @classmethod
    def from_directory(
        cls,
        root: Union[Path, str],
        scheduler: Optional[Scheduler] = None,
        config: Optional[LoaderConfig] = None,
        namespace: Optional[Namespace] = None,
    ) -> "Loader":
        """Loader whose files are Python sources under ``root``, run with this loader's API in scope."""
        fetcher = SourceFileFetcher(root)
        loader = cls(fetcher, scheduler=scheduler, config=config, namespace=namespace)
        fetcher.bindings = loader.bindings
        return loader

    @property
    def namespace(self) -> Namespace:
        return self.materializer.root

    def bindings(self) -> Dict[str, Any]:
        """Names injected into every source file this loader executes."""
        return {
            "define": self.define,
            "factory": self.factory,
            "provides": self.provides,
            "namespace": self.namespace,
            "loader": self,
        }

    # ------------------------------------------------------------------
    # Definitions
    # ------------------------------------------------------------------

    def define(self, manifest: Mapping[str, Any]) -> bool:
        """
        Submit a class from its manifest. Returns True if it resolved at once.

        Raises:
            DefinitionError: missing or duplicate 'class', or a malformed manifest
        """
        return self.submit(ClassDefinition.from_manifest(manifest))

    def submit(self, definition: ClassDefinition) -> bool:
        return self.registry.submit(definition)

    def factory(
        self,
        name: str,
        requires: Optional[Iterable[str]] = None,
        includes: Optional[Iterable[str]] = None,
        depends: Optional[Iterable[str]] = None,
    ) -> Callable[[Callable[[], Any]], Callable[[], Any]]:
        """Decorator: the decorated function is called once to build the class value."""

        def decorator(fn: Callable[[], Any]) -> Callable[[], Any]:
            self.submit(ClassDefinition.create(name, requires, includes, depends, Factory(fn)))
            return fn

        return decorator

    def provides(
        self,
        name: str,
        requires: Optional[Iterable[str]] = None,
        includes: Optional[Iterable[str]] = None,
        depends: Optional[Iterable[str]] = None,
    ) -> Callable[[Any], Any]:
        """Decorator: the decorated object itself is installed as the class value."""

        def decorator(obj: Any) -> Any:
            self.submit(ClassDefinition.create(name, requires, includes, depends, Value(obj)))
            return obj

        return decorator

    def _on_pending(self) -> None:
        self.resolver.schedule()
        self.watchdog.arm()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def is_resolved(self, name: str) -> bool:
        return self.registry.is_resolved(name)

    def resolved_classes(self) -> List[str]:
        return sorted(self.registry.resolved)

    def pending_classes(self) -> List[str]:
        return self.registry.pending_names()

    def lookup(self, name: str) -> Any:
        """
        Installed value of a resolved class.

        Raises:
            KeyError: the class has not resolved
        """
        if not self.registry.is_resolved(name):
            raise KeyError(f"Class '{name}' is not resolved")
        return self.namespace.lookup(name)

    def _snapshot(self, quiet_for: float) -> StallReport:
        return self.resolver.snapshot(quiet_for)

    def stall_report(self) -> StallReport:
        """On-demand snapshot of resolved, pending and known definitions."""
        return self.resolver.snapshot()

    def on_stall(self, listener: Callable[[StallReport], None]) -> None:
        self.watchdog.add_listener(listener)

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    def include(self, path: str) -> None:
        """Load a file now without waiting on it."""
        self.file_loader.load(path)

    def load_script(self, path: str, callback: Optional[LoadCallback] = None) -> None:
        """Load a file through the sequential queue."""
        self.file_loader.enqueue(path, callback)

    def enqueue_callback(self, action: Callable[[], None]) -> None:
        self.file_loader.enqueue_callback(action)

    def pause_queue(self) -> None:
        self.file_loader.pause()

    def resume_queue(self) -> None:
        self.file_loader.resume()

    @property
    def progress(self) -> float:
        return self.file_loader.progress

    # ------------------------------------------------------------------
    # Driving
    # ------------------------------------------------------------------

    def tick(self) -> int:
        """Run one resolver pass now. Returns how many classes resolved."""
        return self.resolver.tick()

    def when_resolved(self, name: str, callback: Callable[[Any], None]) -> None:
        """
        Call ``callback(value)`` once ``name`` has resolved.

        Runs immediately if it already has; otherwise the loader polls every
        ``ready_poll_interval`` seconds.
        """
        if self.registry.is_resolved(name):
            callback(self.lookup(name))
            return

        self._poll_ids += 1
        poll_id = self._poll_ids
        logger.debug(f"Waiting for {name} to resolve")

        def poll() -> None:
            self._poll_timers.pop(poll_id, None)
            if self.registry.is_resolved(name):
                callback(self.lookup(name))
            else:
                self._poll_timers[poll_id] = self.scheduler.call_later(self.config.ready_poll_interval, poll)

        self._poll_timers[poll_id] = self.scheduler.call_later(self.config.ready_poll_interval, poll)

    def close(self) -> None:
        """Cancel every timer this loader owns. Pending definitions stay pending."""
        self.resolver.stop()
        self.watchdog.disarm()
        self.file_loader.close()
        for timer in self._poll_timers.values():
            timer.cancel()
        self._poll_timers.clear()
