"""Paths that must never leave the developer's machine."""

from __future__ import annotations

IGNORED_PATTERNS: tuple[str, ...] = (
    "node_modules",
    ".git",
    ".ds_store",
    "__macosx",
    ".env",
    ".env.local",
    ".env.production",
    "coverage",
    "npm-debug.log",
    "yarn-debug.log",
    "yarn-error.log",
    ".idea",
    ".vscode",
)


def is_ignored(path: str) -> bool:
    """Return True when any ignore pattern matches a whole segment of ``path``."""
    lowered = path.lower()
    for pattern in IGNORED_PATTERNS:
        if (
            lowered == pattern
            or lowered.startswith(f"{pattern}/")
            or f"/{pattern}/" in lowered
            or lowered.endswith(f"/{pattern}")
        ):
            return True
    return False


def is_system_noise(path: str) -> bool:
    """Archive metadata written by macOS that is always skipped silently."""
    segments = path.split("/")
    return "__MACOSX" in segments or ".DS_Store" in segments


__all__ = ["IGNORED_PATTERNS", "is_ignored", "is_system_noise"]
