"""Single-commit push of staged files through the Git Database API."""

from __future__ import annotations

import base64
import json
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from typing import Iterable, List, Optional, Sequence

from ..logging import get_logger
from ..models import CommitPlan, PendingFile, RemoteRepoRef, SkipRecord, TreeEntry
from ..progress import (
    ProgressEvent,
    ProgressReporter,
    PushResult,
    PushState,
    PushStatus,
)
from .client import GitHubClient, RemoteAPIError, commit_tree_sha, extract_json_payload

DEFAULT_BATCH_SIZE = 5
BOOTSTRAP_PATH = "README.md"
BOOTSTRAP_MESSAGE = "Initial commit by hostpush"
BOOTSTRAP_CONTENT = "# My hostpush Project\nDeployed via hostpush\n"
WORKFLOW_NOTE = "Includes Firebase Hosting Workflow."


class PushError(RuntimeError):
    """A push failure raised inside the pipeline."""


class BootstrapError(PushError):
    """The empty repository could not be given an initial commit."""


class NonFastForwardError(PushError):
    """The branch moved on the remote while the push was running."""


def commit_message(summary: str, file_count: int, *, include_ci_workflow: bool) -> str:
    message = f"{summary}\n\nUploaded {file_count} files."
    if include_ci_workflow:
        message += f"\n{WORKFLOW_NOTE}"
    return message


class CommitPipeline:
    """Pushes a set of files as exactly one commit on the default branch.

    Phases run strictly in order: resolve the branch head (bootstrapping an
    empty repository first), upload every file as a blob, create one tree on
    top of the head's tree, create one commit, then fast-forward the branch.
    Any remote failure ends the run in the ``failed`` state. Nothing is retried.
    """

    def __init__(
        self,
        client: GitHubClient,
        reporter: ProgressReporter | None = None,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.client = client
        self.reporter = reporter
        self.batch_size = batch_size
        self.logger = get_logger("git.pipeline")
        self.state = PushState.IDLE
        self.last_status: Optional[str] = None

    def run(
        self,
        repo: RemoteRepoRef,
        files: Sequence[PendingFile],
        *,
        message: str,
        include_ci_workflow: bool = False,
        skipped: Iterable[SkipRecord] = (),
    ) -> PushResult:
        """Push ``files`` and return the terminal report."""
        skipped_records = list(skipped)
        branch = repo.default_branch or "main"
        plan = CommitPlan()
        self.state = PushState.IDLE
        self.last_status = None

        try:
            if not files:
                raise PushError("There are no files to push")
            self._resolve_head(repo, branch, plan)
            self._stage_files(repo, files, plan)
            self._create_tree(repo, plan)
            self._create_commit(
                repo,
                plan,
                commit_message(message, len(files), include_ci_workflow=include_ci_workflow),
            )
            self._update_ref(repo, branch, plan)
        except (RemoteAPIError, PushError) as exc:
            result = self._failure(repo, exc, plan, skipped_records)
            self._finish(result)
            return result

        self.state = PushState.SUCCEEDED
        result = PushResult(
            status=PushStatus.SUCCESS,
            phase=PushState.SUCCEEDED,
            message=f"Pushed {len(files)} files to {repo.full_name}@{branch} in 1 commit.",
            files=len(files),
            skipped=skipped_records,
            commit_sha=plan.new_commit_sha,
            secrets_url=repo.secrets_url,
            bootstrapped=plan.bootstrapped,
            last_status=self.last_status,
        )
        self._finish(result)
        return result

    # ------------------------------------------------------------------
    # Phases

    def _resolve_head(self, repo: RemoteRepoRef, branch: str, plan: CommitPlan) -> None:
        self._enter(PushState.RESOLVING_HEAD, "Checking repository state...")
        try:
            self._read_head(repo, branch, plan)
        except RemoteAPIError as exc:
            self.logger.info("Branch %s has no head (%s); bootstrapping", branch, exc)
            self._bootstrap(repo, branch, plan)

    def _read_head(self, repo: RemoteRepoRef, branch: str, plan: CommitPlan) -> None:
        plan.parent_commit_sha = self.client.get_ref(repo, branch)
        commit = self.client.get_commit(repo, plan.parent_commit_sha)
        plan.base_tree_sha = commit_tree_sha(commit)
        self.logger.debug(
            "Head of %s is %s (tree %s)", branch, plan.parent_commit_sha, plan.base_tree_sha
        )

    def _bootstrap(self, repo: RemoteRepoRef, branch: str, plan: CommitPlan) -> None:
        self._enter(PushState.BOOTSTRAPPING, "Repository is empty. Creating an initial commit...")
        try:
            self.client.put_content(
                repo,
                BOOTSTRAP_PATH,
                message=BOOTSTRAP_MESSAGE,
                content_b64=base64.b64encode(BOOTSTRAP_CONTENT.encode("utf-8")).decode("ascii"),
            )
            self._enter(PushState.RESOLVING_HEAD, "Re-reading repository state...")
            self._read_head(repo, branch, plan)
        except RemoteAPIError as exc:
            raise BootstrapError(f"Failed to initialise the empty repository: {exc}") from exc
        plan.bootstrapped = True

    def _stage_files(
        self, repo: RemoteRepoRef, files: Sequence[PendingFile], plan: CommitPlan
    ) -> None:
        total = len(files)
        self._enter(PushState.STAGING_FILES, f"Uploading {total} file blobs...", current=0, total=total)
        entries: List[TreeEntry] = []
        with ThreadPoolExecutor(max_workers=self.batch_size) as executor:
            for start in range(0, total, self.batch_size):
                batch = files[start:start + self.batch_size]
                futures = [executor.submit(self._upload_blob, repo, pending) for pending in batch]
                wait(futures, return_when=FIRST_EXCEPTION)
                # result() re-raises the first failure in batch order.
                for pending, future in zip(batch, futures):
                    entries.append(
                        TreeEntry(
                            path=pending.path,
                            mode=pending.mode,
                            kind=pending.kind,
                            sha=future.result(),
                        )
                    )
                self._emit(
                    f"Uploaded {len(entries)} of {total} files",
                    current=len(entries),
                    total=total,
                )
        plan.tree_entries = entries

    def _upload_blob(self, repo: RemoteRepoRef, pending: PendingFile) -> str:
        sha = self.client.create_blob(repo, pending.encoded())
        self.logger.debug("Blob %s -> %s", pending.path, sha)
        return sha

    def _create_tree(self, repo: RemoteRepoRef, plan: CommitPlan) -> None:
        self._enter(PushState.CREATING_TREE, "Creating git tree...")
        plan.new_tree_sha = self.client.create_tree(
            repo, plan.tree_entries, base_tree=plan.base_tree_sha
        )

    def _create_commit(self, repo: RemoteRepoRef, plan: CommitPlan, message: str) -> None:
        self._enter(PushState.CREATING_COMMIT, "Creating commit...")
        parents = [plan.parent_commit_sha] if plan.parent_commit_sha else []
        assert plan.new_tree_sha is not None
        plan.new_commit_sha = self.client.create_commit(
            repo, message=message, tree=plan.new_tree_sha, parents=parents
        )

    def _update_ref(self, repo: RemoteRepoRef, branch: str, plan: CommitPlan) -> None:
        self._enter(PushState.UPDATING_REF, f"Updating {branch} (pushing)...")
        assert plan.new_commit_sha is not None
        try:
            self.client.update_ref(repo, branch, plan.new_commit_sha, force=False)
        except RemoteAPIError as exc:
            if exc.kind == "conflict":
                raise NonFastForwardError(
                    f"{branch} changed on the remote during the push (not a fast forward): {exc}"
                ) from exc
            raise

    # ------------------------------------------------------------------
    # Reporting

    def _enter(
        self,
        state: PushState,
        status: str,
        *,
        current: Optional[int] = None,
        total: Optional[int] = None,
    ) -> None:
        self.state = state
        self.logger.info("%s", status)
        self._emit(status, current=current, total=total)

    def _emit(self, status: str, *, current: Optional[int] = None, total: Optional[int] = None) -> None:
        self.last_status = status
        if self.reporter is not None:
            self.reporter.update(
                ProgressEvent(phase=self.state, status=status, current=current, total=total)
            )

    def _finish(self, result: PushResult) -> None:
        if self.reporter is not None:
            self.reporter.finish(result)

    def _failure(
        self,
        repo: RemoteRepoRef,
        exc: Exception,
        plan: CommitPlan,
        skipped: List[SkipRecord],
    ) -> PushResult:
        failed_phase = self.state
        self.state = PushState.FAILED
        error = str(exc)
        kind = _error_kind(exc)
        self.logger.error("Push failed during %s: %s", failed_phase.value, error)
        return PushResult(
            status=PushStatus.ERROR,
            phase=failed_phase,
            message=f"Error: {_shorten(error)}",
            files=0,
            skipped=skipped,
            bootstrapped=plan.bootstrapped,
            last_status=self.last_status,
            error=error,
            error_kind=kind,
            error_detail=_error_detail(exc),
            hints=_hints(repo, kind),
        )


def _root_remote_error(exc: BaseException) -> Optional[RemoteAPIError]:
    current: Optional[BaseException] = exc
    while current is not None:
        if isinstance(current, RemoteAPIError):
            return current
        current = current.__cause__
    return None


def _error_kind(exc: Exception) -> str:
    if isinstance(exc, NonFastForwardError):
        return "conflict"
    remote = _root_remote_error(exc)
    if remote is not None:
        return remote.kind
    if isinstance(exc, BootstrapError):
        return "bootstrap"
    return "unknown"


def _error_detail(exc: Exception) -> Optional[str]:
    remote = _root_remote_error(exc)
    payload = remote.payload if remote is not None else extract_json_payload(str(exc))
    if payload is None:
        return None
    return json.dumps(payload, indent=2)


def _hints(repo: RemoteRepoRef, kind: str) -> List[str]:
    if kind in ("permission", "auth"):
        return [
            "Check that the token has the 'repo' and 'workflow' scopes.",
            f"Allow read and write workflow permissions: {repo.actions_settings_url}",
            f"Check branch protection rules: {repo.branch_settings_url}",
        ]
    if kind == "conflict":
        return ["The branch changed on GitHub while pushing. Review the new commits and push again."]
    if kind == "rate_limit":
        return ["GitHub rate limit reached. Wait a few minutes before pushing again."]
    return []


def _shorten(text: str, limit: int = 100) -> str:
    return text if len(text) <= limit else f"{text[:limit]}..."


__all__ = [
    "BootstrapError",
    "CommitPipeline",
    "NonFastForwardError",
    "PushError",
    "commit_message",
]
