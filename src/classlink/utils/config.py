"""
Configuration constants to replace magic numbers throughout classlink
"""

import os
from dataclasses import dataclass, fields, replace
from typing import Callable, Dict, Mapping, Optional

from ..shared.errors import ConfigError

# Resolver configuration constants
DEFAULT_TICK_INTERVAL = 0.1  # Seconds between resolver passes over pending definitions

# Sequential queue constants
DEFAULT_QUEUE_PUMP_INTERVAL = 0.01  # Seconds between queue pump ticks
DEFAULT_QUEUE_PAUSE_LIMIT = 500  # Paused pump ticks before the queue force-resumes (~5s)

# Watchdog constants
DEFAULT_WATCHDOG_WINDOW = 10.0  # Quiet period before a stall report is emitted

# Readiness polling (when_resolved)
DEFAULT_READY_POLL_INTERVAL = 0.1

# Path translation constants
NAMESPACE_SEPARATOR = "."
PATH_SEPARATOR = "/"
ENGINE_PACKAGE_MARKER = "engine"
SOURCE_FILE_EXTENSION = ".py"

# File encoding constants
DEFAULT_FILE_ENCODING = "utf-8"

# Environment variable prefix for LoaderConfig.from_env()
ENV_PREFIX = "CLASSLINK_"


@dataclass(frozen=True)
class LoaderConfig:
    """
    Per-loader timing and path settings.

    Every field defaults to the module constant of the same meaning, so a bare
    ``LoaderConfig()`` reproduces the stock engine timings.
    """
    tick_interval: float = DEFAULT_TICK_INTERVAL
    queue_pump_interval: float = DEFAULT_QUEUE_PUMP_INTERVAL
    queue_pause_limit: int = DEFAULT_QUEUE_PAUSE_LIMIT
    watchdog_window: float = DEFAULT_WATCHDOG_WINDOW
    ready_poll_interval: float = DEFAULT_READY_POLL_INTERVAL
    base_url: str = ""

    def __post_init__(self):
        for name in ("tick_interval", "queue_pump_interval", "watchdog_window", "ready_poll_interval"):
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name} must be positive, got {getattr(self, name)!r}")
        if self.queue_pause_limit < 1:
            raise ConfigError(f"queue_pause_limit must be at least 1, got {self.queue_pause_limit!r}")

    def with_overrides(self, **overrides) -> "LoaderConfig":
        """Return a copy with the given fields replaced."""
        known = {f.name for f in fields(self)}
        unknown = sorted(set(overrides) - known)
        if unknown:
            raise ConfigError(f"Unknown loader setting(s): {', '.join(unknown)}")
        return replace(self, **overrides)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "LoaderConfig":
        """
        Build a config from ``CLASSLINK_*`` environment variables.

        Recognized: CLASSLINK_TICK_INTERVAL, CLASSLINK_QUEUE_PUMP_INTERVAL,
        CLASSLINK_QUEUE_PAUSE_LIMIT, CLASSLINK_WATCHDOG_WINDOW, CLASSLINK_BASE_URL.
        """
        env = os.environ if environ is None else environ
        parsers: Dict[str, Callable[[str], object]] = {
            "tick_interval": float,
            "queue_pump_interval": float,
            "queue_pause_limit": int,
            "watchdog_window": float,
            "base_url": str,
        }
        overrides = {}
        for name, parse in parsers.items():
            raw = env.get(ENV_PREFIX + name.upper())
            if raw is None or raw == "":
                continue
            try:
                overrides[name] = parse(raw)
            except ValueError:
                raise ConfigError(f"Invalid value for {ENV_PREFIX}{name.upper()}: {raw!r}") from None
        return cls(**overrides)
