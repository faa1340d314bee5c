"""Per-file repository path decisions for archive contents."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

from ..archive import ArchiveEntry, ArchiveReader
from ..logging import get_logger
from ..models import PendingFile, ProjectConfig, SkipRecord
from ..synth.hosting import HOSTING_DESCRIPTOR
from .ignore import is_ignored, is_system_noise
from .root import detect_wrapper_root, strip_wrapper_root

SIZE_CEILING = 25 * 1024 * 1024
MANIFEST_FILENAME = "package.json"

ORIGIN_GENERATED = "generated"
ORIGIN_ARCHIVE = "archive"
ORIGIN_PLACEHOLDER = "placeholder"

REASON_SUPERSEDED = "superseded by generated config"
REASON_DUPLICATE = "duplicate path in archive"
REASON_TOO_LARGE = ">25MB - exceeds API limit"

logger = get_logger("layout")


class LayoutError(RuntimeError):
    """Raised when layout decisions are requested in an invalid order."""


class PathRegistry:
    """Destination paths already claimed for the commit, with who claimed them."""

    def __init__(self) -> None:
        self._owners: Dict[str, str] = {}
        self._lock = threading.Lock()
        self._generated_sealed = False

    def register_generated(self, files: Iterable[PendingFile]) -> None:
        """Claim every synthesized path. Must happen before any archive decision."""
        with self._lock:
            if self._generated_sealed:
                raise LayoutError("Generated files have already been registered")
            for pending in files:
                if pending.path in self._owners:
                    raise LayoutError(f"Generated file {pending.path} registered twice")
                self._owners[pending.path] = ORIGIN_GENERATED
            self._generated_sealed = True

    @property
    def generated_sealed(self) -> bool:
        return self._generated_sealed

    def claim(self, path: str, origin: str) -> Optional[str]:
        """Claim ``path``; return None on success or the origin that already owns it."""
        with self._lock:
            owner = self._owners.get(path)
            if owner is not None:
                return owner
            self._owners[path] = origin
            return None

    def owner(self, path: str) -> Optional[str]:
        with self._lock:
            return self._owners.get(path)

    def has_prefix(self, prefix: str) -> bool:
        with self._lock:
            return any(path.startswith(prefix) for path in self._owners)

    def paths(self) -> List[str]:
        with self._lock:
            return list(self._owners)

    def __contains__(self, path: object) -> bool:
        with self._lock:
            return path in self._owners

    def __len__(self) -> int:
        with self._lock:
            return len(self._owners)


@dataclass
class LayoutDecision:
    """Outcome of :meth:`LayoutStrategist.decide_path`."""

    path: Optional[str]
    skip: Optional[SkipRecord] = None

    @property
    def accepted(self) -> bool:
        return self.path is not None


@dataclass
class ArchivePlan:
    """Archive-derived files accepted for upload and the ones left out."""

    files: List[PendingFile] = field(default_factory=list)
    skipped: List[SkipRecord] = field(default_factory=list)
    wrapper_root: str = ""
    has_manifest: bool = False


def has_manifest_file(paths: Iterable[str]) -> bool:
    """True when a package.json exists outside dependency caches and macOS metadata."""
    for path in paths:
        segments = path.split("/")
        if segments[-1] != MANIFEST_FILENAME:
            continue
        if "node_modules" in segments or "__MACOSX" in segments:
            continue
        return True
    return False


class LayoutStrategist:
    """Maps archive paths onto repository paths.

    Source projects (a manifest file is present) keep their structure because a
    build step produces the publish directory later. Static-asset archives have no
    build step, so their content is moved under the publish directory.
    """

    def __init__(
        self,
        config: ProjectConfig,
        registry: PathRegistry,
        *,
        wrapper_root: str = "",
        has_manifest: bool = False,
        size_ceiling: int = SIZE_CEILING,
    ) -> None:
        self.config = config
        self.registry = registry
        self.wrapper_root = wrapper_root
        self.has_manifest = has_manifest
        self.size_ceiling = size_ceiling

    def relocate(self, path: str) -> str:
        if self.has_manifest:
            return path
        prefix = self.config.publish_prefix
        if path.startswith(".") or path == HOSTING_DESCRIPTOR or path.startswith(prefix):
            return path
        return f"{prefix}{path}"

    def decide_path(self, raw_path: str, size: int = 0) -> LayoutDecision:
        """Return the final repository path for ``raw_path``, or a drop decision."""
        if not self.registry.generated_sealed:
            raise LayoutError("Generated config must be registered before archive files")

        path = strip_wrapper_root(raw_path, self.wrapper_root)
        if not path:
            return LayoutDecision(path=None)
        if is_ignored(path):
            logger.debug("Ignoring %s", path)
            return LayoutDecision(path=None)

        final_path = self.relocate(path)

        if size > self.size_ceiling:
            return LayoutDecision(path=None, skip=SkipRecord(final_path, REASON_TOO_LARGE))

        owner = self.registry.claim(final_path, ORIGIN_ARCHIVE)
        if owner == ORIGIN_GENERATED:
            return LayoutDecision(path=None, skip=SkipRecord(final_path, REASON_SUPERSEDED))
        if owner is not None:
            return LayoutDecision(path=None, skip=SkipRecord(final_path, REASON_DUPLICATE))
        return LayoutDecision(path=final_path)


def plan_archive(
    reader: ArchiveReader,
    config: ProjectConfig,
    registry: PathRegistry,
    *,
    max_workers: int = 4,
) -> ArchivePlan:
    """Decide a repository path for every archive file and read the accepted ones."""
    entries = reader.entries()
    all_paths = [entry.path for entry in entries]
    wrapper_root = detect_wrapper_root(all_paths)
    manifest = has_manifest_file(all_paths)
    if wrapper_root:
        logger.info("Stripping wrapper folder %s", wrapper_root.rstrip("/"))
    if manifest:
        logger.info("Source project detected (%s); keeping folder structure", MANIFEST_FILENAME)
    else:
        logger.info("Static assets detected; moving files into '%s'", config.publish_root)

    strategist = LayoutStrategist(
        config,
        registry,
        wrapper_root=wrapper_root,
        has_manifest=manifest,
    )

    plan = ArchivePlan(wrapper_root=wrapper_root, has_manifest=manifest)
    accepted: List[tuple[ArchiveEntry, str]] = []
    # Decisions run in archive order so the first of two colliding files wins.
    for entry in entries:
        if entry.is_dir or is_system_noise(entry.path):
            continue
        decision = strategist.decide_path(entry.path, entry.size)
        if decision.skip is not None:
            logger.warning("Skipping %s", decision.skip)
            plan.skipped.append(decision.skip)
        if decision.path is not None:
            accepted.append((entry, decision.path))

    plan.files = _read_accepted(reader, accepted, max_workers=max_workers)
    return plan


def _read_accepted(
    reader: ArchiveReader,
    accepted: Sequence[tuple[ArchiveEntry, str]],
    *,
    max_workers: int,
) -> List[PendingFile]:
    def _load(item: tuple[ArchiveEntry, str]) -> PendingFile:
        entry, final_path = item
        return PendingFile(path=final_path, content=reader.read(entry.path))

    if not accepted:
        return []
    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as executor:
        return list(executor.map(_load, accepted))


__all__ = [
    "ArchivePlan",
    "HOSTING_DESCRIPTOR",
    "LayoutDecision",
    "LayoutError",
    "LayoutStrategist",
    "MANIFEST_FILENAME",
    "ORIGIN_ARCHIVE",
    "ORIGIN_GENERATED",
    "ORIGIN_PLACEHOLDER",
    "PathRegistry",
    "REASON_DUPLICATE",
    "REASON_SUPERSEDED",
    "REASON_TOO_LARGE",
    "SIZE_CEILING",
    "has_manifest_file",
    "plan_archive",
]
