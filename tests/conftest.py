from __future__ import annotations

import io
import zipfile
from pathlib import Path
from typing import Callable, Mapping, Union

import pytest

from hostpush.archive import ArchiveReader
from tests._fixtures.fake_github import FakeGitHub

Content = Union[str, bytes]
ArchiveFactory = Callable[[Mapping[str, Content]], bytes]


def build_zip(files: Mapping[str, Content]) -> bytes:
    """Return zip bytes holding ``files``; names ending in ``/`` become directories."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for name, content in files.items():
            if name.endswith("/"):
                archive.writestr(zipfile.ZipInfo(name), b"")
                continue
            data = content.encode("utf-8") if isinstance(content, str) else content
            archive.writestr(name, data)
    return buffer.getvalue()


@pytest.fixture
def make_archive() -> ArchiveFactory:
    """Build an in-memory project zip from ``path -> content``."""
    return build_zip


@pytest.fixture
def make_reader() -> Callable[[Mapping[str, Content]], ArchiveReader]:
    return lambda files: ArchiveReader(build_zip(files), name="test.zip")


@pytest.fixture
def archive_file(tmp_path: Path) -> Callable[[Mapping[str, Content]], Path]:
    """Write a project zip into tmp_path and return its path."""

    def _write(files: Mapping[str, Content], name: str = "project.zip") -> Path:
        target = tmp_path / name
        target.write_bytes(build_zip(files))
        return target

    return _write


@pytest.fixture
def fake_github() -> FakeGitHub:
    return FakeGitHub()


@pytest.fixture(autouse=True)
def _isolate_tokens(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.delenv("HOSTPUSH_GITHUB_TOKEN", raising=False)
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
