"""
Source fetcher - resolve source URIs to local paths.

Supported forms:
- /abs/path or relative/path
- file:///abs/path
- module:///<module>/<path>, relative to the files root
"""

from pathlib import Path
from typing import Optional, Union
from urllib.parse import unquote, urlparse

from minimal42.errors import UnsupportedSource


class SourceFetcher:
    """
    Resolves source URIs used by `source` and `source_dir`.

    Example:
        fetcher = SourceFetcher(files_root="./files")
        fetcher.resolve("module:///shorewall/spec")   # files/shorewall/spec
    """

    def __init__(self, files_root: Optional[Union[str, Path]] = None):
        self.files_root = Path(files_root) if files_root else None

    def resolve(self, uri: str) -> Path:
        """
        Map a URI to an existing local path.

        Raises:
            UnsupportedSource: unknown scheme, or module:// without a files root
            FileNotFoundError: the resolved path doesn't exist
        """
        parsed = urlparse(uri)

        if parsed.scheme in ("", "file"):
            path = Path(unquote(parsed.path) if parsed.scheme else uri)
        elif parsed.scheme == "module":
            if self.files_root is None:
                raise UnsupportedSource(uri)
            relative = unquote(f"{parsed.netloc}{parsed.path}").lstrip("/")
            path = self.files_root / relative
        else:
            raise UnsupportedSource(uri)

        if not path.exists():
            raise FileNotFoundError(f"Source not found: {uri} ({path})")
        return path
