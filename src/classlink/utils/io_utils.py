"""
Centralized file I/O utilities.

- Single place for encoding and URL-to-file mapping
- Use Path.read_text() consistently (no raw open/read)
"""

from pathlib import Path
from typing import Union

from .config import DEFAULT_FILE_ENCODING, PATH_SEPARATOR


def read_source_file(path: Union[Path, str]) -> str:
    """Read source file with standard encoding."""
    p = Path(path) if not isinstance(path, Path) else path
    return p.read_text(encoding=DEFAULT_FILE_ENCODING)


def url_to_file(root: Union[Path, str], url: str) -> Path:
    """Map a loader URL ('/math/point.py') to a file under root."""
    root_path = Path(root) if not isinstance(root, Path) else root
    relative = url.lstrip(PATH_SEPARATOR)
    return root_path.joinpath(*[part for part in relative.split(PATH_SEPARATOR) if part])
