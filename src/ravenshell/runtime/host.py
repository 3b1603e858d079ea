"""
Host collaborators: the filesystem and the OS environment.

The evaluator never touches `os` directly. It goes through a `FileSystem`
and an `Environment`, so tests and embedders can substitute their own.
`LocalFileSystem` is the real implementation.
"""

import getpass
import os
import shutil
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, TextIO


@dataclass(frozen=True)
class FileStat:
    is_directory: bool


class FileSystem(ABC):
    """Operations the shell commands and redirections need from the host."""

    @abstractmethod
    def list_directory(self, path: str) -> List[str]:
        """Entry names of a directory, in no particular order."""

    @abstractmethod
    def create_directory(self, path: str, recursive: bool = True) -> None:
        ...

    @abstractmethod
    def remove_file(self, path: str) -> None:
        ...

    @abstractmethod
    def remove_directory_recursive(self, path: str) -> None:
        ...

    @abstractmethod
    def remove_empty_directory(self, path: str) -> None:
        ...

    @abstractmethod
    def create_empty_file(self, path: str) -> None:
        """Create `path` or truncate it to zero length."""

    @abstractmethod
    def read_file(self, path: str) -> bytes:
        ...

    @abstractmethod
    def open_for_write(self, path: str, append: bool = False) -> TextIO:
        ...

    @abstractmethod
    def open_for_read(self, path: str) -> TextIO:
        ...

    @abstractmethod
    def stat(self, path: str) -> Optional[FileStat]:
        """Stat `path`, or None when nothing exists there."""

    @abstractmethod
    def current_user(self) -> str:
        ...

    @abstractmethod
    def home_directory(self) -> str:
        ...

    @abstractmethod
    def current_working_directory(self) -> str:
        ...


class LocalFileSystem(FileSystem):
    """FileSystem backed by the local disk via `os` and `shutil`."""

    def list_directory(self, path: str) -> List[str]:
        return os.listdir(path)

    def create_directory(self, path: str, recursive: bool = True) -> None:
        if recursive:
            os.makedirs(path, exist_ok=True)
        else:
            os.mkdir(path)

    def remove_file(self, path: str) -> None:
        os.remove(path)

    def remove_directory_recursive(self, path: str) -> None:
        shutil.rmtree(path)

    def remove_empty_directory(self, path: str) -> None:
        os.rmdir(path)

    def create_empty_file(self, path: str) -> None:
        with open(path, "w", encoding="utf-8"):
            pass

    def read_file(self, path: str) -> bytes:
        with open(path, "rb") as f:
            return f.read()

    def open_for_write(self, path: str, append: bool = False) -> TextIO:
        return open(path, "a" if append else "w", encoding="utf-8")

    def open_for_read(self, path: str) -> TextIO:
        return open(path, "r", encoding="utf-8")

    def stat(self, path: str) -> Optional[FileStat]:
        if not os.path.lexists(path):
            return None
        return FileStat(is_directory=os.path.isdir(path))

    def current_user(self) -> str:
        return getpass.getuser()

    def home_directory(self) -> str:
        return os.path.expanduser("~")

    def current_working_directory(self) -> str:
        return os.getcwd()


class Environment:
    """
    Environment variable view: a local overlay consulted before the OS.

    Assignments only ever touch the overlay; the process environment is
    read, never written.
    """

    def __init__(self, overlay: Optional[Dict[str, str]] = None,
                 base: Optional[Mapping[str, str]] = None):
        self.overlay: Dict[str, str] = dict(overlay or {})
        self.base: Mapping[str, str] = os.environ if base is None else base

    def get(self, name: str) -> Optional[str]:
        if name in self.overlay:
            return self.overlay[name]
        return self.base.get(name)

    def set(self, name: str, value: str) -> None:
        self.overlay[name] = value

    def __contains__(self, name: str) -> bool:
        return self.get(name) is not None


def resolve_path(path: str, cwd: str, home: str) -> str:
    """
    Resolve a shell path to an absolute, cleaned path.

    - empty string -> cwd
    - `~` -> home
    - `~/rest` -> home/rest
    - absolute -> cleaned as-is
    - anything else -> joined onto cwd and cleaned
    """
    if path == "":
        return cwd
    if path == "~":
        return home
    if path.startswith("~/"):
        return os.path.normpath(os.path.join(home, path[2:]))
    if os.path.isabs(path):
        return os.path.normpath(path)
    return os.path.normpath(os.path.join(cwd, path))


def os_error_message(exc: OSError) -> str:
    """Short description of an OSError, without the errno prefix."""
    reason = exc.strerror or str(exc)
    if exc.filename:
        return f"{exc.filename}: {reason.lower()}"
    return reason.lower()
