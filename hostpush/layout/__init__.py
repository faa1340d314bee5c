"""Archive path filtering and placement."""

from .ignore import IGNORED_PATTERNS, is_ignored, is_system_noise
from .root import detect_wrapper_root, strip_wrapper_root
from .strategist import (
    ArchivePlan,
    LayoutDecision,
    LayoutError,
    LayoutStrategist,
    PathRegistry,
    has_manifest_file,
    plan_archive,
)

__all__ = [
    "ArchivePlan",
    "IGNORED_PATTERNS",
    "LayoutDecision",
    "LayoutError",
    "LayoutStrategist",
    "PathRegistry",
    "detect_wrapper_root",
    "has_manifest_file",
    "is_ignored",
    "is_system_noise",
    "plan_archive",
    "strip_wrapper_root",
]
