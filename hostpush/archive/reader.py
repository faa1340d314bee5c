"""In-memory access to uploaded project archives."""

from __future__ import annotations

import io
import threading
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List, Optional


class ArchiveError(RuntimeError):
    """Raised when an archive cannot be opened or read."""


@dataclass(frozen=True)
class ArchiveEntry:
    """Metadata for one archive member."""

    path: str
    size: int
    is_dir: bool


class ArchiveReader:
    """Lists and reads zip members without extracting anything to disk."""

    def __init__(self, data: bytes, *, name: str = "archive.zip") -> None:
        self.name = name
        try:
            self._zip = zipfile.ZipFile(io.BytesIO(data))
        except zipfile.BadZipFile as exc:
            raise ArchiveError(f"{name} is not a valid zip archive") from exc
        # Windows tools may write backslash separators; paths are exposed with "/".
        self._members: Dict[str, zipfile.ZipInfo] = {
            _normalize(info.filename): info for info in self._zip.infolist()
        }
        # ZipFile shares one file handle between readers.
        self._lock = threading.Lock()

    @classmethod
    def from_path(cls, path: Path) -> "ArchiveReader":
        path = Path(path).expanduser()
        if not path.exists():
            raise FileNotFoundError(f"Archive not found: {path}")
        return cls(path.read_bytes(), name=path.name)

    def entries(self) -> List[ArchiveEntry]:
        """Return every member in archive order, directories included."""
        return [
            ArchiveEntry(path=path, size=info.file_size, is_dir=info.is_dir() or path.endswith("/"))
            for path, info in self._members.items()
        ]

    def paths(self) -> List[str]:
        return [entry.path for entry in self.entries()]

    def files(self) -> Iterator[ArchiveEntry]:
        for entry in self.entries():
            if not entry.is_dir:
                yield entry

    def read(self, path: str) -> bytes:
        info = self._members.get(_normalize(path))
        if info is None:
            raise ArchiveError(f"{path} is not present in {self.name}")
        with self._lock:
            try:
                return self._zip.read(info)
            except (zipfile.BadZipFile, OSError) as exc:
                raise ArchiveError(f"Failed to read {path} from {self.name}: {exc}") from exc

    def read_text(self, path: str) -> Optional[str]:
        """Return a member decoded as UTF-8, or None when it is absent."""
        try:
            return self.read(path).decode("utf-8")
        except ArchiveError:
            return None
        except UnicodeDecodeError:
            return None

    def close(self) -> None:
        self._zip.close()

    def __enter__(self) -> "ArchiveReader":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def _normalize(name: str) -> str:
    return name.replace("\\", "/")
