"""
Local transport - run commands on the local machine.
"""

import shutil
import subprocess
from pathlib import Path
from typing import List, Tuple

from minimal42.transport.base import Transport


class LocalTransport(Transport):
    """
    Transport for the machine minimal42 runs on.

    Uses subprocess for commands and pathlib for files.
    """

    def run_command(self, args: list) -> Tuple[str, int]:
        try:
            result = subprocess.run(
                args,
                capture_output=True,
                text=True,
            )
        except FileNotFoundError:
            return f"command not found: {args[0]}", 127
        return result.stdout + result.stderr, result.returncode

    def write_file(self, path: str, content: bytes) -> None:
        Path(path).write_bytes(content)

    def read_file(self, path: str) -> bytes:
        return Path(path).read_bytes()

    def file_exists(self, path: str) -> bool:
        # Dangling symlinks count as existing
        p = Path(path)
        return p.exists() or p.is_symlink()

    def is_directory(self, path: str) -> bool:
        return Path(path).is_dir()

    def list_tree(self, path: str) -> List[str]:
        root = Path(path)
        return sorted(str(p.relative_to(root)) for p in root.rglob("*"))

    def copy_file(self, src_path: str, dest_path: str) -> None:
        shutil.copyfile(src_path, dest_path)

    def close(self) -> None:
        pass
