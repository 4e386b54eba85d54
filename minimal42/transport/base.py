"""
Base transport interface.

Collaborators reach the host only through a Transport, so tests can swap
in their own implementation.
"""

from abc import ABC, abstractmethod
from typing import List, Tuple


class Transport(ABC):
    """
    Runs commands and file operations on the managed host.

    Implementations:
    - LocalTransport: the machine minimal42 runs on
    - NullTransport: placeholder that refuses every call
    """

    @abstractmethod
    def run_command(self, args: list) -> Tuple[str, int]:
        """
        Run a command from a list of arguments (no shell).

        Returns:
            Tuple of (output, exit_code)

        Example:
            output, code = transport.run_command(["dpkg-query", "-W", "shorewall"])
        """
        pass

    @abstractmethod
    def write_file(self, path: str, content: bytes) -> None:
        pass

    @abstractmethod
    def read_file(self, path: str) -> bytes:
        """
        Raises:
            FileNotFoundError: if the file doesn't exist
        """
        pass

    @abstractmethod
    def file_exists(self, path: str) -> bool:
        pass

    @abstractmethod
    def is_directory(self, path: str) -> bool:
        pass

    @abstractmethod
    def list_tree(self, path: str) -> List[str]:
        """
        List everything below a directory.

        Returns:
            Paths relative to `path`, parents before children
        """
        pass

    @abstractmethod
    def copy_file(self, src_path: str, dest_path: str) -> None:
        """
        Copy a local file onto the host.

        Raises:
            FileNotFoundError: if the source doesn't exist
        """
        pass

    @abstractmethod
    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class NullTransport(Transport):
    """
    Null Object implementation of Transport.

    Used when a collaborator is built without a transport; every call
    raises an error that says so.
    """

    def _raise_error(self, method_name: str) -> None:
        raise RuntimeError(
            f"Cannot call {method_name}: no transport configured. "
            f"Pass a transport to the Executor, e.g. Executor(transport=LocalTransport())"
        )

    def run_command(self, args: list) -> Tuple[str, int]:
        self._raise_error("run_command()")
        return ("", 1)

    def write_file(self, path: str, content: bytes) -> None:
        self._raise_error("write_file()")

    def read_file(self, path: str) -> bytes:
        self._raise_error("read_file()")
        return b""

    def file_exists(self, path: str) -> bool:
        self._raise_error("file_exists()")
        return False

    def is_directory(self, path: str) -> bool:
        self._raise_error("is_directory()")
        return False

    def list_tree(self, path: str) -> List[str]:
        self._raise_error("list_tree()")
        return []

    def copy_file(self, src_path: str, dest_path: str) -> None:
        self._raise_error("copy_file()")

    def close(self) -> None:
        pass
