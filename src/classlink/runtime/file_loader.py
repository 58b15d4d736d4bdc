"""
File Loader

Fetches and injects source files through a host-supplied fetcher and reports a
status per path. Two entry points:

- load(): immediate, out-of-band load; concurrent requests for one file share
  a single fetch
- enqueue(): sequential FIFO, each entry starts only after the previous one
  completed; the queue can be paused and resumed

Every file is fetched at most once per cache lifetime. Completion arrives from
the fetcher's callback; nothing here blocks.
"""

import logging
import re
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Deque, Dict, List, Optional

from typing_extensions import TypeAlias

from ..utils.config import LoaderConfig
from .scheduling import Scheduler, TimerHandle

logger = logging.getLogger(__name__)


class LoadStatus(Enum):
    """Outcome of a fetch. There is no partial or retry status."""
    LOADED = "loaded"
    NOT_FOUND = "not_found"


LoadCallback: TypeAlias = Callable[[str, LoadStatus], None]
Fetcher: TypeAlias = Callable[[str, Callable[[LoadStatus], None]], None]

_SANITIZE = re.compile(r"[/.]")


def cache_key(url: str) -> str:
    """Cache key for a URL: path separators and dots replaced by underscores."""
    return _SANITIZE.sub("_", url)


@dataclass
class _LoadRecord:
    path: str
    url: str
    status: Optional[LoadStatus] = None
    callbacks: List[LoadCallback] = field(default_factory=list)


@dataclass
class _QueueEntry:
    path: Optional[str] = None
    callback: Optional[LoadCallback] = None
    action: Optional[Callable[[], None]] = None

    def __repr__(self) -> str:
        if self.action is not None:
            return f"_QueueEntry(action={getattr(self.action, '__name__', self.action)!r})"
        return f"_QueueEntry(path={self.path!r})"


class FileLoader:
    """
    Immediate and sequential file loading over a callback-style fetcher.

    The fetcher is called as ``fetcher(url, done)`` and must eventually call
    ``done(LoadStatus)`` exactly once. It may call ``done`` synchronously.
    """

    def __init__(self, fetcher: Fetcher, scheduler: Scheduler, config: Optional[LoaderConfig] = None):
        self.fetcher = fetcher
        self.scheduler = scheduler
        self.config = config or LoaderConfig()
        self._records: Dict[str, _LoadRecord] = {}

        # Sequential queue state
        self._queue: Deque[_QueueEntry] = deque()
        self._pump_timer: Optional[TimerHandle] = None
        self._ready_for_next = True
        self.paused = False
        self._pause_reps = 0

        # Progress bookkeeping
        self.requested = 0
        self.processed = 0

    # ------------------------------------------------------------------
    # Immediate loads
    # ------------------------------------------------------------------

    def url_for(self, path: str) -> str:
        return f"{self.config.base_url}{path}"

    def load(self, path: str, callback: Optional[LoadCallback] = None) -> None:
        """
        Load ``path`` now, calling ``callback(path, status)`` once it completes.

        Already completed: the callback runs immediately with the cached status.
        In flight: the callback joins the ones waiting on that fetch.
        """
        url = self.url_for(path)
        key = cache_key(url)
        record = self._records.get(key)

        if record is not None:
            if record.status is not None:
                if callback is not None:
                    callback(path, record.status)
            elif callback is not None:
                record.callbacks.append(callback)
            return

        record = _LoadRecord(path=path, url=url)
        if callback is not None:
            record.callbacks.append(callback)
        self._records[key] = record
        self.requested += 1

        logger.debug(f"Loading '{url}'")
        try:
            self.fetcher(url, lambda status: self._complete(key, status))
        except Exception:
            logger.exception(f"Fetcher raised while loading '{url}'")
            self._complete(key, LoadStatus.NOT_FOUND)

    def _complete(self, key: str, status: LoadStatus) -> None:
        record = self._records.get(key)
        if record is None or record.status is not None:
            # Cache cleared mid-flight, or the fetcher reported twice
            logger.debug(f"Ignoring late completion for key {key!r}")
            return

        record.status = status
        if status is LoadStatus.LOADED:
            self.processed += 1
            logger.debug(f"Loaded '{record.url}'")
        else:
            logger.error(f"File not found: {record.url}")

        callbacks, record.callbacks = record.callbacks, []
        for callback in callbacks:
            callback(record.path, status)

    def status(self, path: str) -> Optional[LoadStatus]:
        """Completed status for ``path``, or None if unknown or still in flight."""
        record = self._records.get(cache_key(self.url_for(path)))
        return record.status if record is not None else None

    def is_loaded(self, path: str) -> bool:
        return self.status(path) is LoadStatus.LOADED

    def in_flight(self, path: str) -> bool:
        record = self._records.get(cache_key(self.url_for(path)))
        return record is not None and record.status is None

    @property
    def progress(self) -> float:
        """Ratio of successfully loaded files to requested files, clamped to [0, 1]."""
        if self.requested == 0:
            return 0.0
        return min(self.processed / self.requested, 1.0)

    def loaded_scripts(self) -> List[str]:
        """URLs of every file requested so far, in request order."""
        return [record.url for record in self._records.values()]

    def clear_cache(self) -> None:
        """
        Forget every request so files can be fetched again.

        Re-running a file that defines classes will trip duplicate-definition
        errors; use with care.
        """
        logger.debug(f"Clearing script cache ({len(self._records)} entries)")
        self._records.clear()
        # An in-flight queued load will never report back now
        self._ready_for_next = True

    # ------------------------------------------------------------------
    # Sequential queue
    # ------------------------------------------------------------------

    def enqueue(self, path: str, callback: Optional[LoadCallback] = None) -> None:
        """Append ``path`` to the sequential queue."""
        self._queue.append(_QueueEntry(path=path, callback=callback))
        self._run_queue()

    def enqueue_callback(self, action: Callable[[], None]) -> None:
        """Append a function that runs, in order, once the queue reaches it."""
        self._queue.append(_QueueEntry(action=action))
        self._run_queue()

    def pause(self) -> None:
        self.paused = True

    def resume(self) -> None:
        self.paused = False
        self._pause_reps = 0
        if self._queue:
            self._run_queue()

    @property
    def queued(self) -> int:
        return len(self._queue)

    def _run_queue(self) -> None:
        if self._pump_timer is None:
            self._pump_timer = self.scheduler.call_later(self.config.queue_pump_interval, self._pump)

    def _pump(self) -> None:
        self._pump_timer = None

        if self.paused:
            self._pause_reps += 1
            if self._pause_reps >= self.config.queue_pause_limit:
                logger.warning(
                    f"Script queue was paused for {self._pause_reps} ticks and not resumed -- restarting..."
                )
                self._pause_reps = 0
                self.paused = False
            self._run_queue()
            return

        self._pause_reps = 0

        if not self._queue:
            return

        self._process_next()
        self._run_queue()

    def _process_next(self) -> None:
        if not self._ready_for_next:
            return

        entry = self._queue.popleft()
        if entry.action is not None:
            entry.action()
            return

        self._ready_for_next = False
        self.load(entry.path, lambda path, status: self._queued_done(entry, path, status))

    def _queued_done(self, entry: _QueueEntry, path: str, status: LoadStatus) -> None:
        self._ready_for_next = True
        if entry.callback is not None:
            entry.callback(path, status)

    def close(self) -> None:
        """Stop the queue pump. Pending entries stay queued."""
        if self._pump_timer is not None:
            self._pump_timer.cancel()
            self._pump_timer = None
