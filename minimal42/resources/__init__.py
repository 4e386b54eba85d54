"""
Host-side collaborators used by the executor.
"""

from minimal42.resources.file import FileManager
from minimal42.resources.pkg import PackageManager
from minimal42.resources.source import SourceFetcher

__all__ = ["FileManager", "PackageManager", "SourceFetcher"]
