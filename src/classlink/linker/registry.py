"""
Definition Registry

Holds every submitted class definition plus the linker's shared state:
pending definitions, resolved classes and loaded files. Submission triggers
loads for whatever a definition is missing; it never waits for them.
"""

import logging
from dataclasses import replace
from typing import Any, Callable, Dict, List, Optional, Set

from ..runtime.file_loader import FileLoader, LoadStatus
from ..shared.errors import DefinitionError
from .definition import ClassDefinition
from .materializer import NamespaceMaterializer
from .path_resolver import PathResolver

logger = logging.getLogger(__name__)


class DefinitionRegistry:
    """
    Registry of class definitions and the sets they resolve against.

    State:
    - definitions: name -> ClassDefinition, every submission ever accepted
    - pending: name -> ClassDefinition awaiting resolution (submission order)
    - resolved: names already materialized (only grows)
    - loaded_files: include paths whose fetch succeeded (only grows)

    ``on_pending`` is called after a definition is queued, so the owner can
    start the resolver tick and arm the watchdog.
    """

    def __init__(
        self,
        file_loader: FileLoader,
        materializer: NamespaceMaterializer,
        path_resolver: Optional[PathResolver] = None,
        on_pending: Optional[Callable[[], None]] = None,
    ):
        self.file_loader = file_loader
        self.materializer = materializer
        self.path_resolver = path_resolver or PathResolver()
        self.on_pending = on_pending

        self.definitions: Dict[str, ClassDefinition] = {}
        self.pending: Dict[str, ClassDefinition] = {}
        self.resolved: Set[str] = set()
        self.loaded_files: Set[str] = set()

        # Include paths and class names a load was already requested for
        self._requested: Set[str] = set()
        # Backing file path -> class name being fetched from it
        self._class_files: Dict[str, str] = {}

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def is_known(self, name: str) -> bool:
        return name in self.definitions

    def is_resolved(self, name: str) -> bool:
        return name in self.resolved

    def is_pending(self, name: str) -> bool:
        return name in self.pending

    def get(self, name: str) -> Optional[ClassDefinition]:
        return self.definitions.get(name)

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def submit(self, definition: ClassDefinition) -> bool:
        """
        Register a definition and start loading what it needs.

        Returns True if the class materialized during this call.

        Raises:
            DefinitionError: no name, or the name already has a definition
        """
        name = definition.name
        if not name:
            raise DefinitionError("Missing 'class' key in class definition!")
        if name in self.definitions:
            raise DefinitionError(f"Class '{name}' is already defined!", class_name=name)

        if name in definition.requires:
            logger.warning(f"Class references itself: {name}")
            definition = replace(definition, requires=tuple(dep for dep in definition.requires if dep != name))

        logger.debug(f"Process definition for {definition}")
        self.definitions[name] = definition

        self.pending[name] = definition

        if definition.is_ready_on_submit:
            try:
                self.resolve(definition)
            except Exception:
                # Still pending; the resolver retries it
                self._notify_pending()
                raise
            return True

        # Load the includes ASAP
        for path in definition.includes:
            if path in self.loaded_files or path in self._requested:
                continue
            self._requested.add(path)
            self.file_loader.load(path, self._include_loaded)

        # Fetch the files of classes nobody has defined yet
        for dep in definition.requires:
            if dep in self.resolved or dep in self.definitions or dep in self._requested:
                continue
            self._requested.add(dep)
            path = self.path_resolver.resolve(dep)
            self._class_files[path] = dep
            logger.debug(f"Loading {path} for {dep}")
            self.file_loader.load(path, self._class_loaded)

        self._notify_pending()
        return False

    def _notify_pending(self) -> None:
        if self.on_pending is not None:
            self.on_pending()

    def _include_loaded(self, path: str, status: LoadStatus) -> None:
        if status is LoadStatus.LOADED:
            self.loaded_files.add(path)

    def _class_loaded(self, path: str, status: LoadStatus) -> None:
        class_name = self._class_files.get(path, path)
        if status is not LoadStatus.LOADED:
            logger.error(f"{class_name} failed to load!")
            return
        if class_name not in self.definitions:
            logger.warning(f"{path} loaded but did not define {class_name}")
        else:
            logger.debug(f"Initializing {class_name}")

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def resolve(self, definition: ClassDefinition) -> Any:
        """
        Materialize a definition whose requirements are met.

        The class leaves ``pending`` and joins ``resolved`` once its value is
        installed and before its on_resolved hook runs, so a hook that submits
        more definitions sees a consistent state. A factory that raises leaves
        the class pending. Calling this twice for one class is a no-op.
        """
        name = definition.name
        if name in self.resolved:
            return self.materializer.root.lookup(name)

        value = self.materializer.install(definition)
        self.pending.pop(name, None)
        self.resolved.add(name)
        self.materializer.run_hook(definition, value)
        logger.debug(f"{name} initialized")
        return value

    def pending_names(self) -> List[str]:
        return list(self.pending)
