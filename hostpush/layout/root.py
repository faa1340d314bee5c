"""Detection of the single wrapper folder common in exported archives."""

from __future__ import annotations

from typing import Iterable

from .ignore import is_system_noise


def _visible(paths: Iterable[str]) -> list[str]:
    return [path for path in paths if path and not is_system_noise(path)]


def detect_wrapper_root(paths: Iterable[str]) -> str:
    """Return ``"<segment>/"`` when one top-level folder holds every path, else ``""``."""
    visible = _visible(paths)
    roots = {path.split("/", 1)[0] for path in visible}
    if len(roots) != 1:
        return ""
    candidate = f"{roots.pop()}/"
    if all(path.startswith(candidate) for path in visible):
        return candidate
    return ""


def strip_wrapper_root(path: str, root: str) -> str:
    if root and path.startswith(root):
        return path[len(root):]
    return path


__all__ = ["detect_wrapper_root", "strip_wrapper_root"]
