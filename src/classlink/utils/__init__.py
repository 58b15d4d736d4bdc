"""
classlink utilities package
"""

from .config import LoaderConfig
from .io_utils import read_source_file, url_to_file

__all__ = ["LoaderConfig", "read_source_file", "url_to_file"]
