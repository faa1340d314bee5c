"""Minimal client for the GitHub Git Database REST API."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional
from urllib.error import HTTPError, URLError
from urllib.parse import quote, urlparse
from urllib.request import Request, urlopen

from ..logging import get_logger
from ..models import RemoteRepoRef, TreeEntry

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_TIMEOUT = 30.0

_JSON_BLOCK = re.compile(r"(\{.*\})", re.DOTALL)

logger = get_logger("git.client")


class RemoteAPIError(RuntimeError):
    """A failed call to the remote repository API."""

    def __init__(self, message: str, *, status: int | None = None, body: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.body = body
        self.payload = extract_json_payload(body) if body else extract_json_payload(message)

    @property
    def kind(self) -> str:
        """Coarse category used for hints. Status codes win over message text."""
        status = self.status
        if status is not None:
            if status == 401:
                return "auth"
            if status == 403:
                if self._mentions_rate_limit():
                    return "rate_limit"
                return "permission"
            if status == 404:
                return "not_found"
            if status == 409:
                return "conflict"
            if status == 422:
                return self._unprocessable_kind()
            if status == 429:
                return "rate_limit"
            return "unknown"

        text = str(self).lower()
        if "rate limit" in text:
            return "rate_limit"
        if "403" in text or "forbidden" in text:
            return "permission"
        if "401" in text or "bad credentials" in text:
            return "auth"
        if "protected branch" in text:
            return "permission"
        if "fast forward" in text:
            return "conflict"
        if "timed out" in text or "connection" in text:
            return "network"
        return "unknown"

    def _unprocessable_kind(self) -> str:
        # GitHub answers 422 for rejected ref updates and for invalid payloads alike.
        text = self._remote_message()
        if "fast forward" in text:
            return "conflict"
        if "protected branch" in text:
            return "permission"
        return "validation"

    def _mentions_rate_limit(self) -> bool:
        return "rate limit" in self._remote_message()

    def _remote_message(self) -> str:
        message = ""
        if isinstance(self.payload, dict):
            message = str(self.payload.get("message", ""))
        return (message or self.body or str(self)).lower()


def extract_json_payload(text: str) -> Optional[Dict[str, Any]]:
    """Return the first JSON object embedded in ``text``, if any."""
    match = _JSON_BLOCK.search(text or "")
    if not match:
        return None
    try:
        loaded = json.loads(match.group(1))
    except json.JSONDecodeError:
        return None
    return loaded if isinstance(loaded, dict) else None


@dataclass
class ApiRequest:
    """One HTTP call issued by :class:`GitHubClient`."""

    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[Dict[str, Any]] = None
    timeout: float = DEFAULT_TIMEOUT


Transport = Callable[[ApiRequest], Any]


def urllib_transport(request: ApiRequest) -> Any:
    """Send ``request`` with urllib and return the decoded JSON response."""
    data = json.dumps(request.body).encode("utf-8") if request.body is not None else None
    http_request = Request(request.url, data=data, headers=request.headers, method=request.method)
    try:
        with urlopen(http_request, timeout=request.timeout) as response:  # type: ignore[arg-type]
            raw = response.read()
    except HTTPError as exc:
        detail = exc.read().decode("utf-8", errors="ignore") if hasattr(exc, "read") else ""
        raise RemoteAPIError(
            f"GitHub API Error ({exc.code}): {detail.strip() or exc.reason}",
            status=exc.code,
            body=detail,
        ) from exc
    except URLError as exc:
        raise RemoteAPIError(f"GitHub API request failed: {exc.reason}") from exc
    except TimeoutError as exc:
        raise RemoteAPIError("GitHub API request timed out") from exc

    if not raw:
        return {}
    try:
        return json.loads(raw.decode("utf-8"))
    except json.JSONDecodeError as exc:
        raise RemoteAPIError("GitHub API returned invalid JSON") from exc


class GitHubClient:
    """Authenticated access to one GitHub API host.

    The token is attached only to URLs on ``api_url``'s host.
    """

    def __init__(
        self,
        token: str,
        *,
        api_url: str = DEFAULT_API_URL,
        request_timeout: Optional[float] = DEFAULT_TIMEOUT,
        transport: Transport | None = None,
    ) -> None:
        if not token:
            raise ValueError("A GitHub token is required")
        self._token = token
        self.api_url = api_url.rstrip("/")
        self._host = urlparse(self.api_url).netloc
        if not self._host:
            raise ValueError(f"Invalid API URL: {api_url}")
        self.request_timeout = request_timeout or DEFAULT_TIMEOUT
        self._transport = transport or urllib_transport

    def __repr__(self) -> str:
        return f"GitHubClient(api_url={self.api_url!r})"

    # ------------------------------------------------------------------
    # Account

    def list_repos(self) -> List[RemoteRepoRef]:
        data = self._call("GET", "/user/repos?sort=updated&per_page=100&type=all")
        if not isinstance(data, list):
            return []
        return [_repo_from_payload(item) for item in data if isinstance(item, dict)]

    def get_repo(self, full_name: str) -> RemoteRepoRef:
        data = self._call("GET", f"/repos/{full_name}")
        return _repo_from_payload(data)

    # ------------------------------------------------------------------
    # Git database

    def get_ref(self, repo: RemoteRepoRef, branch: str) -> str:
        data = self._repo_call(repo, "GET", f"/git/ref/heads/{quote(branch)}")
        return _sha(data, "object", "sha")

    def update_ref(self, repo: RemoteRepoRef, branch: str, sha: str, *, force: bool = False) -> str:
        data = self._repo_call(
            repo,
            "PATCH",
            f"/git/refs/heads/{quote(branch)}",
            {"sha": sha, "force": force},
        )
        return _sha(data, "object", "sha")

    def get_commit(self, repo: RemoteRepoRef, sha: str) -> Dict[str, Any]:
        return self._repo_call(repo, "GET", f"/git/commits/{sha}")

    def create_commit(
        self, repo: RemoteRepoRef, *, message: str, tree: str, parents: List[str]
    ) -> str:
        data = self._repo_call(
            repo,
            "POST",
            "/git/commits",
            {"message": message, "tree": tree, "parents": parents},
        )
        return _sha(data, "sha")

    def create_tree(
        self, repo: RemoteRepoRef, entries: List[TreeEntry], *, base_tree: str | None
    ) -> str:
        body: Dict[str, Any] = {"tree": [entry.as_payload() for entry in entries]}
        if base_tree:
            body["base_tree"] = base_tree
        data = self._repo_call(repo, "POST", "/git/trees", body)
        return _sha(data, "sha")

    def create_blob(self, repo: RemoteRepoRef, content_b64: str) -> str:
        data = self._repo_call(
            repo,
            "POST",
            "/git/blobs",
            {"content": content_b64, "encoding": "base64"},
        )
        return _sha(data, "sha")

    def put_content(
        self, repo: RemoteRepoRef, path: str, *, message: str, content_b64: str
    ) -> Dict[str, Any]:
        return self._repo_call(
            repo,
            "PUT",
            f"/contents/{quote(path)}",
            {"message": message, "content": content_b64},
        )

    # ------------------------------------------------------------------
    # Helpers

    def _repo_call(
        self,
        repo: RemoteRepoRef,
        method: str,
        endpoint: str,
        body: Optional[Dict[str, Any]] = None,
    ) -> Any:
        return self._call(method, f"/repos/{repo.full_name}{endpoint}", body)

    def _call(self, method: str, path: str, body: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self.api_url}{path}"
        if urlparse(url).netloc != self._host:
            raise RemoteAPIError(f"Refusing to send credentials to {url}")
        headers = {
            "Authorization": f"token {self._token}",
            "Accept": "application/vnd.github.v3+json",
            "Content-Type": "application/json",
        }
        logger.debug("%s %s", method, path)
        return self._transport(
            ApiRequest(
                method=method,
                url=url,
                headers=headers,
                body=body,
                timeout=self.request_timeout,
            )
        )


def _sha(data: Any, *keys: str) -> str:
    value = data
    for key in keys:
        value = value.get(key) if isinstance(value, dict) else None
    if not isinstance(value, str) or not value:
        raise RemoteAPIError(f"GitHub API response is missing {'.'.join(keys)}")
    return value


def commit_tree_sha(commit: Dict[str, Any]) -> str:
    return _sha(commit, "tree", "sha")


def _repo_from_payload(data: Any) -> RemoteRepoRef:
    if not isinstance(data, dict) or not isinstance(data.get("full_name"), str):
        raise RemoteAPIError("GitHub API returned an unexpected repository payload")
    return RemoteRepoRef(
        full_name=data["full_name"],
        default_branch=data.get("default_branch") or "main",
        html_url=data.get("html_url") or "",
    )


__all__ = [
    "ApiRequest",
    "GitHubClient",
    "RemoteAPIError",
    "Transport",
    "commit_tree_sha",
    "extract_json_payload",
    "urllib_transport",
]
