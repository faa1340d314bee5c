"""Framework presets and project detection from package.json."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Mapping, Optional

from .archive import ArchiveReader
from .layout.ignore import is_ignored
from .logging import get_logger
from .models import Framework, ProjectConfig

logger = get_logger("frameworks")

_UNSAFE_PROJECT_CHARS = re.compile(r"[^a-z0-9-]")


@dataclass(frozen=True)
class FrameworkPreset:
    """Default publish directory and routing mode for a framework."""

    framework: Framework
    label: str
    public_dir: str
    is_spa: bool


FRAMEWORK_PRESETS: Dict[Framework, FrameworkPreset] = {
    preset.framework: preset
    for preset in (
        FrameworkPreset(Framework.GOOGLE_AI, "Google AI / ZIP", "dist", True),
        FrameworkPreset(Framework.VITE, "Vite", "dist", True),
        FrameworkPreset(Framework.CRA, "Create React App", "build", True),
        FrameworkPreset(Framework.NEXTJS, "Next.js (Static)", "out", False),
        FrameworkPreset(Framework.ANGULAR, "Angular", "dist/app", True),
        FrameworkPreset(Framework.MANUAL, "Manual / Custom", "", True),
    )
}

# Checked in order; the first dependency present wins.
_DEPENDENCY_MARKERS: tuple[tuple[str, Framework], ...] = (
    ("vite", Framework.VITE),
    ("react-scripts", Framework.CRA),
    ("next", Framework.NEXTJS),
    ("@angular/core", Framework.ANGULAR),
)


def apply_preset(config: ProjectConfig, framework: Framework) -> ProjectConfig:
    """Return a copy of ``config`` switched to ``framework``'s defaults."""
    preset = FRAMEWORK_PRESETS[framework]
    return replace(
        config,
        framework=framework,
        public_dir=preset.public_dir or config.public_dir,
        is_spa=config.is_spa if framework is Framework.MANUAL else preset.is_spa,
    )


def detect_framework(package_json: Mapping[str, Any], *, from_archive: bool) -> Optional[Framework]:
    """Guess the framework from declared dependencies."""
    deps: Dict[str, Any] = {}
    for key in ("dependencies", "devDependencies"):
        value = package_json.get(key)
        if isinstance(value, dict):
            deps.update(value)

    for marker, framework in _DEPENDENCY_MARKERS:
        if marker in deps:
            if framework is Framework.VITE and from_archive:
                return Framework.GOOGLE_AI
            return framework
    if from_archive:
        return Framework.GOOGLE_AI
    return None


def sanitize_project_id(name: str) -> str:
    return _UNSAFE_PROJECT_CHARS.sub("-", name.lower())


def archive_structure(paths: List[str]) -> List[str]:
    """Sorted archive listing without hidden or ignored paths."""
    return sorted(path for path in paths if "/." not in path and not is_ignored(path))


def find_package_json(reader: ArchiveReader) -> Optional[str]:
    """Return package.json text from the archive root or one wrapper folder down."""
    paths = reader.paths()
    if "package.json" in paths:
        return reader.read_text("package.json")
    for path in paths:
        parts = path.split("/")
        if len(parts) == 2 and parts[1] == "package.json" and not is_ignored(parts[0]):
            return reader.read_text(path)
    return None


def inspect_archive(reader: ArchiveReader, base: ProjectConfig | None = None) -> ProjectConfig:
    """Derive a ProjectConfig from an archive's contents."""
    config = replace(base) if base is not None else ProjectConfig()
    config.detected_structure = archive_structure(reader.paths())

    package_text = find_package_json(reader)
    package_data: Dict[str, Any] = {}
    if package_text is not None:
        try:
            loaded = json.loads(package_text)
        except json.JSONDecodeError:
            logger.warning("package.json in %s is not valid JSON; ignoring it", reader.name)
        else:
            if isinstance(loaded, dict):
                package_data = loaded

    name = package_data.get("name")
    if isinstance(name, str) and name:
        config.project_id = sanitize_project_id(name)

    framework = (
        detect_framework(package_data, from_archive=True) if package_data else Framework.GOOGLE_AI
    )
    if framework is not None:
        config = apply_preset(config, framework)
    logger.debug(
        "Inspected %s: framework=%s public_dir=%s spa=%s",
        reader.name,
        config.framework.value,
        config.public_dir,
        config.is_spa,
    )
    return config


def inspect_package_json(text: str, base: ProjectConfig | None = None) -> ProjectConfig:
    """Derive a ProjectConfig from a standalone package.json upload."""
    config = replace(base) if base is not None else ProjectConfig()
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValueError(f"package.json is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError("package.json must contain an object")

    framework = detect_framework(data, from_archive=False)
    if framework is None:
        raise ValueError("Could not recognise the framework from package.json")
    config = apply_preset(config, framework)

    name = data.get("name")
    if isinstance(name, str) and name:
        cleaned = sanitize_project_id(name)
        # Scaffold defaults are not real project ids.
        if cleaned and cleaned not in {"vite-project", "my-app"}:
            config.project_id = cleaned
    return config


__all__ = [
    "FRAMEWORK_PRESETS",
    "FrameworkPreset",
    "apply_preset",
    "archive_structure",
    "detect_framework",
    "find_package_json",
    "inspect_archive",
    "inspect_package_json",
    "sanitize_project_id",
]
