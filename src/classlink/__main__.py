"""CLI entry point: `classlink ROOT ENTRY` or `python -m classlink ROOT ENTRY`."""

import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional


def _entry_url(entry: str) -> str:
    return entry if entry.startswith("/") else "/" + entry


async def _run(root: Path, entry: str, wait: List[str], timeout: float, config) -> int:
    from .loader import Loader
    from .runtime.file_loader import LoadStatus

    loader = Loader.from_directory(root, config=config)
    statuses = {}
    loader.load_script(_entry_url(entry), lambda path, status: statuses.setdefault(path, status))

    def finished() -> bool:
        if not statuses:
            return False
        if wait:
            return all(loader.is_resolved(name) for name in wait)
        return not loader.pending_classes()

    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    try:
        while True:
            if LoadStatus.NOT_FOUND in statuses.values():
                sys.stderr.write(f"classlink: error: could not load entry file: {entry}\n")
                return 1
            if finished():
                break
            if loop.time() >= deadline:
                report = loader.stall_report()
                sys.stderr.write(report.format() + "\n")
                return 1
            await asyncio.sleep(loader.config.ready_poll_interval)
    finally:
        loader.close()

    for name in loader.resolved_classes():
        sys.stdout.write(name + "\n")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    import argparse
    from .shared.errors import ConfigError
    from .utils.config import LoaderConfig

    parser = argparse.ArgumentParser(prog="classlink", description="Load a class tree from a directory of Python sources.")
    parser.add_argument("root", type=Path, help="Directory class files are resolved against")
    parser.add_argument("entry", help="Entry file, relative to ROOT (e.g. /main.py)")
    parser.add_argument("--wait", action="append", default=[], metavar="CLASS", help="Class that must resolve (repeatable)")
    parser.add_argument("--timeout", type=float, default=30.0, help="Seconds to wait before giving up (default: 30)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log loader activity")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING, format="%(levelname)s %(name)s: %(message)s")

    root = args.root.resolve()
    if not root.is_dir():
        sys.stderr.write(f"classlink: error: not a directory: {root}\n")
        return 1

    try:
        config = LoaderConfig.from_env()
    except ConfigError as e:
        sys.stderr.write(f"classlink: error: {e}\n")
        return 1

    return asyncio.run(_run(root, args.entry, args.wait, args.timeout, config))


if __name__ == "__main__":
    sys.exit(main())
