"""GitHub API access and the single-commit push pipeline."""

from .client import GitHubClient, RemoteAPIError
from .pipeline import BootstrapError, CommitPipeline, NonFastForwardError, PushError

__all__ = [
    "BootstrapError",
    "CommitPipeline",
    "GitHubClient",
    "NonFastForwardError",
    "PushError",
    "RemoteAPIError",
]
