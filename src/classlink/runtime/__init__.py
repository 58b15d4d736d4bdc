"""Runtime: timers, file loading and source fetching."""

from .scheduling import Scheduler, EventLoopScheduler, ManualScheduler
from .file_loader import FileLoader, LoadStatus, Fetcher, cache_key
from .fetchers import SourceFileFetcher, coroutine_fetcher

__all__ = [
    'Scheduler',
    'EventLoopScheduler',
    'ManualScheduler',
    'FileLoader',
    'LoadStatus',
    'Fetcher',
    'cache_key',
    'SourceFileFetcher',
    'coroutine_fetcher',
]
