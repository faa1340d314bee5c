"""Configuration loading for hostpush (.hostpush.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .models import Framework, ProjectConfig

CONFIG_FILENAME = ".hostpush.yml"
DEFAULT_COMMIT_MESSAGE = "chore: upload project files via hostpush"
DEFAULT_API_URL = "https://api.github.com"


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class GitHubConfig:
    """Destination repository and API settings."""

    repo: Optional[str] = None
    branch: Optional[str] = None
    api_url: str = DEFAULT_API_URL
    request_timeout: Optional[float] = None
    commit_message: str = DEFAULT_COMMIT_MESSAGE


@dataclass
class PushConfig:
    """Tuning for the blob upload phase."""

    batch_size: int = 5


@dataclass
class HostPushConfig:
    """Represents the settings defined in .hostpush.yml."""

    root: Path
    project: ProjectConfig = field(default_factory=ProjectConfig)
    github: GitHubConfig = field(default_factory=GitHubConfig)
    push: PushConfig = field(default_factory=PushConfig)
    loaded: bool = False


def load_config(config_path: Path) -> HostPushConfig:
    """Load configuration from disk."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return HostPushConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    project_data = _as_dict(data.get("project"))
    project = ProjectConfig()
    if project_data:
        project.project_id = _as_str(project_data.get("id")) or ""
        public_dir = _as_str(project_data.get("public_dir"))
        if public_dir:
            project.public_dir = public_dir
        spa = _as_bool(project_data.get("spa"))
        if spa is not None:
            project.is_spa = spa
        project.include_ci_workflow = _as_bool(project_data.get("ci_workflow")) or False
        framework = _as_str(project_data.get("framework"))
        if framework:
            project.framework = _as_framework(framework)

    github_data = _as_dict(data.get("github"))
    github = GitHubConfig()
    if github_data:
        github.repo = _as_str(github_data.get("repo"))
        github.branch = _as_str(github_data.get("branch"))
        github.api_url = _as_str(github_data.get("api_url")) or DEFAULT_API_URL
        github.request_timeout = _as_float(github_data.get("request_timeout"))
        github.commit_message = (
            _as_str(github_data.get("commit_message")) or DEFAULT_COMMIT_MESSAGE
        )

    push_data = _as_dict(data.get("push"))
    push = PushConfig()
    if push_data:
        batch_size = _as_int(push_data.get("batch_size"))
        if batch_size is not None:
            if batch_size < 1:
                raise ConfigError("push.batch_size must be a positive integer")
            push.batch_size = batch_size

    return HostPushConfig(root=root, project=project, github=github, push=push, loaded=True)


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.name != CONFIG_FILENAME:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _as_framework(value: str) -> Framework:
    for member in Framework:
        if member.value.lower() == value.lower():
            return member
    raise ConfigError(f"Unknown framework '{value}'")


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return None
    return str(value) if isinstance(value, (str, int, float)) else None


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None
