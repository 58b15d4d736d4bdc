"""
Source Fetchers

Fetch-and-inject implementations for the FileLoader. A fetcher is called as
``fetcher(url, done)`` and reports through ``done(LoadStatus)``.

- coroutine_fetcher(): runs an ``async def fetch(url) -> LoadStatus`` as a task
  on the event loop and reports its result
- SourceFileFetcher: reads Python source under a root directory (or from an
  in-memory overlay) and executes it with the loader's API injected
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Union

from ..utils.io_utils import read_source_file, url_to_file
from .file_loader import Fetcher, LoadStatus

logger = logging.getLogger(__name__)

# Strong references to running fetch tasks (the loop only keeps weak ones)
_running_tasks: Set["asyncio.Task[None]"] = set()


def coroutine_fetcher(
    fetch: Callable[[str], Awaitable[LoadStatus]],
    loop: Optional[asyncio.AbstractEventLoop] = None,
) -> Fetcher:
    """
    Adapt a coroutine fetch function to the callback fetcher interface.

    An exception raised by ``fetch`` is logged with its traceback and reported
    as NOT_FOUND, so waiting callbacks are never left hanging.
    """

    def fetcher(url: str, done: Callable[[LoadStatus], None]) -> None:
        async def run() -> None:
            try:
                status = await fetch(url)
            except Exception:
                logger.exception(f"Failed to fetch and inject '{url}'")
                status = LoadStatus.NOT_FOUND
            done(status)

        target = loop if loop is not None else asyncio.get_running_loop()
        task = target.create_task(run())
        _running_tasks.add(task)
        task.add_done_callback(_running_tasks.discard)

    return fetcher


class SourceFileFetcher:
    """
    Fetches Python source files and executes them.

    Each file runs in a fresh globals dict seeded with ``bindings()`` (the
    owning Loader supplies ``define``, ``factory``, ``provides``,
    ``namespace`` and ``loader``). Files are read off the event loop;
    execution happens on the loop thread.

    Args:
        root: directory URLs are resolved against
        bindings: callable returning names to inject into every executed file
        source_overlay: optional in-memory sources (url -> source); consulted
            before the filesystem
    """

    def __init__(
        self,
        root: Union[Path, str],
        bindings: Optional[Callable[[], Dict[str, Any]]] = None,
        source_overlay: Optional[Dict[str, str]] = None,
    ):
        self.root = Path(root)
        self.bindings = bindings
        self.source_overlay = source_overlay or {}
        self.executed: List[str] = []

    def __call__(self, url: str, done: Callable[[LoadStatus], None]) -> None:
        coroutine_fetcher(self.fetch)(url, done)

    async def fetch(self, url: str) -> LoadStatus:
        if url in self.source_overlay:
            self.inject(self.source_overlay[url], f"<overlay:{url}>")
            return LoadStatus.LOADED

        path = url_to_file(self.root, url)
        if not path.is_file():
            return LoadStatus.NOT_FOUND

        loop = asyncio.get_running_loop()
        try:
            source = await loop.run_in_executor(None, read_source_file, path)
        except OSError as e:
            logger.error(f"Could not read {path}: {e}")
            return LoadStatus.NOT_FOUND

        self.inject(source, str(path))
        return LoadStatus.LOADED

    def inject(self, source: str, filename: str) -> None:
        """Execute ``source`` with the bindings in scope."""
        env: Dict[str, Any] = {"__name__": f"classlink.sources.{Path(filename).stem}", "__file__": filename}
        if self.bindings is not None:
            env.update(self.bindings())
        code = compile(source, filename, "exec")
        exec(code, env)
        self.executed.append(filename)
        logger.debug(f"Injected {filename}")
