"""Coordinates inspect, bundle, and push flows."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional

from .archive import ArchiveReader
from .config import ConfigError, HostPushConfig, load_config
from .credentials import TokenStore, resolve_token
from .frameworks import inspect_archive, inspect_package_json
from .git.client import GitHubClient
from .git.pipeline import CommitPipeline
from .layout.strategist import ORIGIN_PLACEHOLDER, PathRegistry, plan_archive
from .logging import get_logger
from .models import PendingFile, ProjectConfig, RemoteRepoRef, SkipRecord
from .progress import ProgressEvent, ProgressReporter, PushResult, PushState
from .synth.bundle import build_config_bundle, bundle_filename
from .synth.hosting import placeholder_files, synthesize

ClientFactory = Callable[[str, HostPushConfig], GitHubClient]


class PushInProgressError(RuntimeError):
    """Raised when a second push starts while one is still running."""


@dataclass
class StagedFiles:
    """Every file of one push in upload order: generated, archive, placeholders."""

    files: List[PendingFile] = field(default_factory=list)
    skipped: List[SkipRecord] = field(default_factory=list)
    generated: int = 0
    from_archive: int = 0
    placeholders: int = 0
    has_manifest: bool = False
    wrapper_root: str = ""

    @property
    def paths(self) -> List[str]:
        return [pending.path for pending in self.files]


def _default_client_factory(token: str, settings: HostPushConfig) -> GitHubClient:
    return GitHubClient(
        token,
        api_url=settings.github.api_url,
        request_timeout=settings.github.request_timeout,
    )


class Orchestrator:
    """Entry point shared by the CLI and the service mode."""

    def __init__(
        self,
        client_factory: ClientFactory | None = None,
        token_store: TokenStore | None = None,
    ) -> None:
        self.client_factory = client_factory or _default_client_factory
        self.token_store = token_store or TokenStore()
        self.logger = get_logger("orchestrator")
        self._push_lock = threading.Lock()

    @property
    def is_pushing(self) -> bool:
        return self._push_lock.locked()

    def load_settings(self, path: str | Path = ".") -> HostPushConfig:
        return load_config(Path(path))

    def run_inspect(self, archive_path: str | Path, base: ProjectConfig | None = None) -> ProjectConfig:
        """Derive hosting settings from a project zip or a bare package.json."""
        path = Path(archive_path).expanduser()
        if path.suffix.lower() == ".json":
            if not path.exists():
                raise FileNotFoundError(f"File not found: {path}")
            try:
                return inspect_package_json(path.read_text(encoding="utf-8"), base)
            except ValueError as exc:
                raise ConfigError(str(exc)) from exc
        with ArchiveReader.from_path(path) as reader:
            return inspect_archive(reader, base)

    def run_bundle(self, project: ProjectConfig, output_dir: str | Path = ".") -> Path:
        """Write the config bundle zip into ``output_dir`` and return its path."""
        _require_publish_dir(project)
        target_dir = Path(output_dir).expanduser()
        target_dir.mkdir(parents=True, exist_ok=True)
        target = target_dir / bundle_filename(project)
        target.write_bytes(build_config_bundle(project))
        self.logger.info("Config bundle written to %s", target)
        return target

    def list_repos(self, settings: HostPushConfig, *, token: str | None = None) -> List[RemoteRepoRef]:
        client = self._client(settings, token)
        return client.list_repos()

    def stage_files(
        self,
        project: ProjectConfig,
        reader: ArchiveReader | None = None,
        *,
        branch: str = "main",
    ) -> StagedFiles:
        """Collect generated config, archive files, and placeholders in upload order."""
        _require_publish_dir(project)
        registry = PathRegistry()
        generated = synthesize(project, branch=branch)
        registry.register_generated(generated)

        staged = StagedFiles(files=list(generated), generated=len(generated))
        if reader is not None:
            plan = plan_archive(reader, project, registry)
            staged.files.extend(plan.files)
            staged.skipped.extend(plan.skipped)
            staged.from_archive = len(plan.files)
            staged.has_manifest = plan.has_manifest
            staged.wrapper_root = plan.wrapper_root

        placeholders = placeholder_files(project, staged.paths)
        for pending in placeholders:
            registry.claim(pending.path, ORIGIN_PLACEHOLDER)
        if placeholders:
            self.logger.info("Adding placeholder files under %s", project.publish_prefix)
        staged.files.extend(placeholders)
        staged.placeholders = len(placeholders)
        return staged

    def run_push(
        self,
        project: ProjectConfig,
        *,
        repo: str | RemoteRepoRef,
        archive_path: str | Path | None = None,
        archive_bytes: bytes | None = None,
        settings: HostPushConfig | None = None,
        token: str | None = None,
        message: str | None = None,
        reporter: ProgressReporter | None = None,
    ) -> PushResult:
        """Push generated config plus archive contents to ``repo`` in one commit."""
        if not self._push_lock.acquire(blocking=False):
            raise PushInProgressError("A push is already running")
        try:
            settings = settings or HostPushConfig(root=Path.cwd())
            client = self._client(settings, token)
            remote = self._resolve_repo(client, repo, settings)
            self.logger.info("Pushing to %s (branch %s)", remote.full_name, remote.default_branch)

            reader = _open_archive(archive_path, archive_bytes)
            try:
                if reader is not None and reporter is not None:
                    reporter.update(
                        ProgressEvent(phase=PushState.IDLE, status="Extracting and processing archive files...")
                    )
                staged = self.stage_files(project, reader, branch=remote.default_branch)
            finally:
                if reader is not None:
                    reader.close()

            pipeline = CommitPipeline(client, reporter, batch_size=settings.push.batch_size)
            return pipeline.run(
                remote,
                staged.files,
                message=message or settings.github.commit_message,
                include_ci_workflow=project.include_ci_workflow,
                skipped=staged.skipped,
            )
        finally:
            self._push_lock.release()

    # ------------------------------------------------------------------
    # Helpers

    def _client(self, settings: HostPushConfig, token: str | None) -> GitHubClient:
        resolved = resolve_token(token, store=self.token_store)
        return self.client_factory(resolved, settings)

    @staticmethod
    def _resolve_repo(
        client: GitHubClient, repo: str | RemoteRepoRef, settings: HostPushConfig
    ) -> RemoteRepoRef:
        if isinstance(repo, RemoteRepoRef):
            return repo
        if settings.github.branch:
            return RemoteRepoRef(full_name=repo, default_branch=settings.github.branch)
        return client.get_repo(repo)


def _require_publish_dir(project: ProjectConfig) -> None:
    if not project.publish_root:
        raise ConfigError("The publish directory must not be empty")


def _open_archive(path: str | Path | None, data: bytes | None) -> Optional[ArchiveReader]:
    if data is not None:
        return ArchiveReader(data)
    if path is not None:
        return ArchiveReader.from_path(Path(path))
    return None


__all__ = ["Orchestrator", "PushInProgressError", "StagedFiles"]
