"""Core data models shared across hostpush components."""

from __future__ import annotations

import base64
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

REGULAR_FILE_MODE = "100644"
BLOB_KIND = "blob"


class Framework(str, Enum):
    """Frontend toolchains with a known publish directory."""

    GOOGLE_AI = "GoogleAI"
    VITE = "Vite"
    CRA = "CRA"
    NEXTJS = "NextJS"
    ANGULAR = "Angular"
    MANUAL = "Manual"


@dataclass
class ProjectConfig:
    """Hosting settings for the project being pushed."""

    project_id: str = ""
    public_dir: str = "dist"
    is_spa: bool = True
    include_ci_workflow: bool = False
    framework: Framework = Framework.GOOGLE_AI
    detected_structure: Optional[List[str]] = None

    @property
    def publish_root(self) -> str:
        return self.public_dir.strip().strip("/")

    @property
    def publish_prefix(self) -> str:
        return f"{self.publish_root}/"


@dataclass
class PendingFile:
    """A file staged for upload as a blob."""

    path: str
    content: bytes
    mode: str = REGULAR_FILE_MODE
    kind: str = BLOB_KIND

    @classmethod
    def from_text(cls, path: str, text: str) -> "PendingFile":
        return cls(path=path, content=text.encode("utf-8"))

    def encoded(self) -> str:
        """Return the content as base64 text for the blob API."""
        return base64.b64encode(self.content).decode("ascii")

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass
class SkipRecord:
    """A file excluded from the push, with the reason shown to the user."""

    path: str
    reason: str

    def __str__(self) -> str:
        return f"{self.path} ({self.reason})"


@dataclass(frozen=True)
class RemoteRepoRef:
    """Destination repository selected for one push."""

    full_name: str
    default_branch: str = "main"
    html_url: str = ""

    def __post_init__(self) -> None:
        if not self.html_url:
            object.__setattr__(self, "html_url", f"https://github.com/{self.full_name}")

    @property
    def secrets_url(self) -> str:
        return f"{self.html_url}/settings/secrets/actions"

    @property
    def actions_settings_url(self) -> str:
        return f"{self.html_url}/settings/actions"

    @property
    def branch_settings_url(self) -> str:
        return f"{self.html_url}/settings/branches"


@dataclass
class TreeEntry:
    """One path in a tree-create request."""

    path: str
    mode: str
    kind: str
    sha: str

    def as_payload(self) -> dict[str, str]:
        return {"path": self.path, "mode": self.mode, "type": self.kind, "sha": self.sha}


@dataclass
class CommitPlan:
    """Object ids resolved while a push is running. Never persisted."""

    parent_commit_sha: Optional[str] = None
    base_tree_sha: Optional[str] = None
    tree_entries: List[TreeEntry] = field(default_factory=list)
    new_tree_sha: Optional[str] = None
    new_commit_sha: Optional[str] = None
    bootstrapped: bool = False
