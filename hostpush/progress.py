"""Progress events and terminal reports produced by a push."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol

from .logging import get_logger
from .models import SkipRecord


class PushState(str, Enum):
    """Phases of the commit pipeline."""

    IDLE = "idle"
    RESOLVING_HEAD = "resolving_head"
    BOOTSTRAPPING = "bootstrapping"
    STAGING_FILES = "staging_files"
    CREATING_TREE = "creating_tree"
    CREATING_COMMIT = "creating_commit"
    UPDATING_REF = "updating_ref"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class PushStatus(str, Enum):
    IDLE = "idle"
    SUCCESS = "success"
    ERROR = "error"


@dataclass
class ProgressEvent:
    """One status update emitted while a push runs."""

    phase: PushState
    status: str
    current: Optional[int] = None
    total: Optional[int] = None

    @property
    def percent(self) -> Optional[int]:
        if self.current is None or not self.total:
            return None
        return int(self.current * 100 / self.total)


@dataclass
class PushResult:
    """Terminal report for one push."""

    status: PushStatus
    phase: PushState
    message: str
    files: int = 0
    skipped: List[SkipRecord] = field(default_factory=list)
    commit_sha: Optional[str] = None
    secrets_url: Optional[str] = None
    bootstrapped: bool = False
    last_status: Optional[str] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None
    error_detail: Optional[str] = None
    hints: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status is PushStatus.SUCCESS

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "phase": self.phase.value,
            "message": self.message,
            "files": self.files,
            "skipped": [str(record) for record in self.skipped],
            "commit_sha": self.commit_sha,
            "secrets_url": self.secrets_url,
            "bootstrapped": self.bootstrapped,
            "last_status": self.last_status,
            "error": self.error,
            "error_kind": self.error_kind,
            "error_detail": self.error_detail,
            "hints": list(self.hints),
        }


class ProgressReporter(Protocol):
    """Receives progress from the pipeline; implemented by the CLI and tests."""

    def update(self, event: ProgressEvent) -> None: ...

    def finish(self, result: PushResult) -> None: ...


class LoggingReporter:
    """Reporter that writes progress lines to the hostpush logger."""

    def __init__(self) -> None:
        self.logger = get_logger("progress")
        self.last_event: Optional[ProgressEvent] = None

    def update(self, event: ProgressEvent) -> None:
        self.last_event = event
        if event.percent is not None:
            self.logger.info("%s (%d/%d, %d%%)", event.status, event.current, event.total, event.percent)
        else:
            self.logger.info("%s", event.status)

    def finish(self, result: PushResult) -> None:
        if result.ok:
            self.logger.info("%s", result.message)
        else:
            self.logger.error("%s", result.message)


__all__ = [
    "LoggingReporter",
    "ProgressEvent",
    "ProgressReporter",
    "PushResult",
    "PushState",
    "PushStatus",
]
