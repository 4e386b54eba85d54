"""
File manager - inspect and converge files and directories on the host.
"""

from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from minimal42.errors import ApplyError
from minimal42.transport import NullTransport, Transport


class FileManager:
    """
    File operations the executor needs, on top of a transport.

    Example:
        files = FileManager(LocalTransport())
        files.check("/etc/shorewall/shorewall.conf")
        files.write("/etc/shorewall/shorewall.conf", "STARTUP_ENABLED=Yes\\n")
    """

    def __init__(self, transport: Optional[Transport] = None):
        self.transport = transport or NullTransport()

    def check(self, path: str, read_content: bool = True) -> Dict[str, Any]:
        """Return the current state of a path."""
        state: Dict[str, Any] = {
            "exists": False,
            "type": None,
            "content": None,
            "mode": None,
            "owner": None,
            "group": None,
        }

        if not self.transport.file_exists(path):
            return state

        state["exists"] = True

        output, code = self.transport.run_command(["stat", "-c", "%F|%a|%U|%G", path])
        if code == 0:
            parts = output.strip().split("|")
            if len(parts) == 4:
                file_type, mode_octal, owner, group = parts
                if "directory" in file_type:
                    state["type"] = "directory"
                elif "symbolic link" in file_type:
                    state["type"] = "symlink"
                else:
                    state["type"] = "file"
                try:
                    state["mode"] = int(mode_octal, 8)
                except ValueError:
                    pass
                state["owner"] = owner
                state["group"] = group
        else:
            state["type"] = "directory" if self.transport.is_directory(path) else "file"

        if state["type"] == "file" and read_content:
            try:
                state["content"] = self.transport.read_file(path).decode("utf-8")
            except UnicodeDecodeError:
                state["content"] = None

        return state

    def write(self, path: str, content: str) -> None:
        """Write text content, creating parent directories."""
        self._run(["mkdir", "-p", str(Path(path).parent)])
        self.transport.write_file(path, content.encode("utf-8"))

    def copy(self, src: Path, path: str) -> None:
        """Copy a local file to `path`, creating parent directories."""
        self._run(["mkdir", "-p", str(Path(path).parent)])
        self.transport.copy_file(str(src), path)

    def make_directory(self, path: str) -> None:
        self._run(["mkdir", "-p", path])

    def delete(self, path: str) -> None:
        self._run(["rm", "-rf", path])

    def set_metadata(
        self,
        path: str,
        mode: Optional[int] = None,
        owner: Optional[str] = None,
        group: Optional[str] = None,
    ) -> None:
        """Set owner, group and mode where given."""
        if owner is not None and group is not None:
            self._run(["chown", f"{owner}:{group}", path])
        elif owner is not None:
            self._run(["chown", owner, path])
        elif group is not None:
            self._run(["chgrp", group, path])

        if mode is not None:
            self._run(["chmod", oct(mode)[2:], path])

    def diff_tree(
        self,
        src: Path,
        path: str,
        purge: bool = False,
        keep: Iterable[str] = (),
    ) -> Dict[str, list]:
        """
        Compare a local source directory with a directory on the host.

        Paths in `keep` belong to other resources: they are neither
        copied over nor purged.

        Returns:
            {"copy": [...], "purge": [...]} with paths relative to the
            directories
        """
        keep = [str(Path(k)) for k in keep]

        to_copy = []
        src_entries = set()
        for entry in sorted(src.rglob("*")):
            relative = str(entry.relative_to(src))
            src_entries.add(relative)
            target = str(Path(path) / relative)
            if entry.is_dir() or target in keep:
                continue
            if not self.transport.file_exists(target) or self.transport.is_directory(target):
                to_copy.append(relative)
            elif self.transport.read_file(target) != entry.read_bytes():
                to_copy.append(relative)

        to_purge = []
        if purge and self.transport.is_directory(path):
            for relative in self.transport.list_tree(path):
                if relative in src_entries:
                    continue
                if _is_kept(str(Path(path) / relative), keep):
                    continue
                # Children of a purged directory go with it
                if any(relative.startswith(p + "/") for p in to_purge):
                    continue
                to_purge.append(relative)

        return {"copy": to_copy, "purge": to_purge}

    def mirror(
        self,
        src: Path,
        path: str,
        purge: bool = False,
        force: bool = False,
        keep: Iterable[str] = (),
    ) -> None:
        """
        Make the directory at `path` match the local directory `src`.

        Args:
            src: Local source directory
            path: Directory on the host
            purge: Remove entries that are not in src
            force: Replace files that are in the way of directories and
                the other way round
            keep: Host paths owned by other resources, left alone

        Raises:
            ApplyError: something is in the way and force is off
        """
        keep = [str(Path(k)) for k in keep]

        if self.transport.file_exists(path) and not self.transport.is_directory(path):
            if not force:
                raise ApplyError(f"{path} exists and is not a directory")
            self.delete(path)
        self.make_directory(path)

        for entry in sorted(src.rglob("*")):
            target = str(Path(path) / entry.relative_to(src))
            if target in keep:
                continue
            if entry.is_dir():
                if self.transport.file_exists(target) and not self.transport.is_directory(target):
                    if not force:
                        raise ApplyError(f"{target} exists and is not a directory")
                    self.delete(target)
                self.make_directory(target)
            else:
                if self.transport.is_directory(target):
                    if not force:
                        raise ApplyError(f"{target} is a directory")
                    self.delete(target)
                self.transport.copy_file(str(entry), target)

        if purge:
            for relative in self.diff_tree(src, path, purge=True, keep=keep)["purge"]:
                self.delete(str(Path(path) / relative))

    def _run(self, cmd: list) -> None:
        output, code = self.transport.run_command(cmd)
        if code != 0:
            raise ApplyError(f"{' '.join(cmd)} failed: {output.strip()}")


def _is_kept(target: str, keep: Iterable[str]) -> bool:
    """True if target is a kept path or a directory holding one."""
    return any(k == target or k.startswith(target + "/") for k in keep)
