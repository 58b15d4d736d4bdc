"""
Class Path Translation

Maps a dotted class name to the file that is expected to define it. Other
tooling (build scripts, file layouts) depends on this exact mapping:

    App.math.Point2D        -> /math/point2d.py
    App.engine.Timer        -> /timer.py
    App.objects.ui.Button   -> /objects/ui/button.py

This module is stateless and can be shared/reused.
"""

import logging
from typing import Optional

from ..utils.config import (
    ENGINE_PACKAGE_MARKER,
    NAMESPACE_SEPARATOR,
    PATH_SEPARATOR,
    SOURCE_FILE_EXTENSION,
)

logger = logging.getLogger(__name__)


def class_to_path(
    class_name: str,
    engine_marker: str = ENGINE_PACKAGE_MARKER,
    extension: str = SOURCE_FILE_EXTENSION,
) -> str:
    """
    Translate a dotted class name to its backing file path.

    Steps: split on '.', drop the namespace root, drop a following engine
    package marker, lower-case, join with '/', prefix '/', append extension.

    Examples:
        class_to_path('R.math.Point2')    -> '/math/point2.py'
        class_to_path('R.engine.Events')  -> '/events.py'
    """
    segments = class_name.split(NAMESPACE_SEPARATOR)

    # Shift off the namespace
    segments = segments[1:]

    # Classes in the engine package live at the root
    if segments and segments[0] == engine_marker:
        segments = segments[1:]

    return PATH_SEPARATOR + PATH_SEPARATOR.join(segments).lower() + extension


class PathResolver:
    """
    Class-name to file-path translation bound to a marker and extension.

    Stateless apart from its settings.
    """

    def __init__(self, engine_marker: Optional[str] = None, extension: Optional[str] = None):
        self.engine_marker = engine_marker if engine_marker is not None else ENGINE_PACKAGE_MARKER
        self.extension = extension if extension is not None else SOURCE_FILE_EXTENSION

    def resolve(self, class_name: str) -> str:
        path = class_to_path(class_name, self.engine_marker, self.extension)
        logger.debug(f"PathResolver: {class_name} -> {path}")
        return path
