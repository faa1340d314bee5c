"""Tests for the FastAPI service mode."""

from __future__ import annotations

import base64
import io
import threading
import zipfile
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from hostpush.config import GitHubConfig, HostPushConfig
from hostpush.credentials import TokenStore
from hostpush.orchestrator import Orchestrator
from hostpush.service import app as app_module
from hostpush.service import create_app
from tests._fixtures.fake_github import FakeGitHub


@pytest.fixture
def fake() -> FakeGitHub:
    return FakeGitHub()


@pytest.fixture
def tokens() -> list[str]:
    return []


@pytest.fixture
def orchestrator(fake: FakeGitHub, tokens: list[str], tmp_path: Path) -> Orchestrator:
    def factory(token: str, settings: HostPushConfig):
        tokens.append(token)
        return fake.client(token)

    return Orchestrator(client_factory=factory, token_store=TokenStore(tmp_path / "token"))


@pytest.fixture
def client(orchestrator: Orchestrator, tmp_path: Path) -> TestClient:
    app = create_app(lambda: orchestrator, settings_factory=lambda: HostPushConfig(root=tmp_path))
    return TestClient(app)


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def test_health_endpoint(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_inspect_endpoint(client: TestClient, make_archive) -> None:
    archive = make_archive({"app/package.json": '{"name": "Storefront", "dependencies": {"@angular/core": "17"}}'})

    response = client.post("/inspect", json={"archive_base64": _b64(archive)})

    assert response.status_code == 200
    data = response.json()
    assert data["framework"] == "Angular"
    assert data["public_dir"] == "dist/app"
    assert data["project_id"] == "storefront"
    assert data["detected_structure"] == ["app/package.json"]


def test_inspect_rejects_bad_archives(client: TestClient) -> None:
    assert client.post("/inspect", json={"archive_base64": "%%%"}).status_code == 400
    assert client.post("/inspect", json={"archive_base64": _b64(b"not a zip")}).status_code == 400


def test_bundle_endpoint_returns_zip(client: TestClient) -> None:
    response = client.post("/bundle", json={"project_id": "demo", "include_ci_workflow": True})

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/zip"
    assert 'filename="firebase_config_demo.zip"' in response.headers["content-disposition"]
    with zipfile.ZipFile(io.BytesIO(response.content)) as archive:
        assert "GITHUB_SETUP_GUIDE.md" in archive.namelist()


def test_bundle_rejects_empty_publish_dir(client: TestClient) -> None:
    response = client.post("/bundle", json={"public_dir": ""})

    assert response.status_code == 400


def test_push_endpoint_uses_header_token(
    client: TestClient, fake: FakeGitHub, tokens: list[str], make_archive
) -> None:
    response = client.post(
        "/push",
        json={
            "repo": "octo/site",
            "project": {"project_id": "demo"},
            "archive_base64": _b64(make_archive({"index.html": "hi", ".env": "SECRET=1"})),
            "message": "deploy: api",
        },
        headers={"X-GitHub-Token": "ghp_from_header"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "success"
    assert data["phase"] == "succeeded"
    assert data["files"] == 4
    assert data["commit_sha"] == fake.head()
    assert tokens == ["ghp_from_header"]
    assert ".env" not in fake.head_files()
    assert "dist/.env" not in fake.head_files()


def test_push_endpoint_reports_failures(client: TestClient, fake: FakeGitHub) -> None:
    fake.fail("PATCH", "/git/refs/heads/main", 422, "Update is not a fast forward")

    response = client.post(
        "/push",
        json={"repo": "octo/site", "branch": "main"},
        headers={"X-GitHub-Token": "ghp_x"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "error"
    assert data["phase"] == "updating_ref"
    assert data["error_kind"] == "conflict"


def test_push_requires_token(client: TestClient) -> None:
    response = client.post("/push", json={"repo": "octo/site"})

    assert response.status_code == 401


def test_push_rejected_while_another_runs(client: TestClient, orchestrator: Orchestrator) -> None:
    orchestrator._push_lock.acquire()
    try:
        response = client.post("/push", json={"repo": "octo/site"}, headers={"X-GitHub-Token": "t"})
    finally:
        orchestrator._push_lock.release()

    assert response.status_code == 409


def test_push_branch_does_not_leak_into_shared_settings(
    orchestrator: Orchestrator, fake: FakeGitHub, tmp_path: Path
) -> None:
    shared = HostPushConfig(root=tmp_path, github=GitHubConfig())
    client = TestClient(create_app(lambda: orchestrator, settings_factory=lambda: shared))

    first = client.post(
        "/push",
        json={"repo": "octo/site", "branch": "main"},
        headers={"X-GitHub-Token": "t"},
    )
    second = client.post("/push", json={"repo": "octo/site"}, headers={"X-GitHub-Token": "t"})

    assert first.status_code == 200
    assert second.status_code == 200
    assert shared.github.branch is None
    assert fake.count("GET", "/repos/octo/site") == fake.count("GET", "/repos/octo/site/") + 1


def test_inspect_and_bundle_run_off_the_event_loop(client: TestClient, make_archive, monkeypatch) -> None:
    threads: dict[str, str] = {}
    original_inspect = app_module.inspect_archive
    original_bundle = app_module.build_config_bundle

    def recording_inspect(reader):
        threads["inspect"] = threading.current_thread().name
        return original_inspect(reader)

    def recording_bundle(config):
        threads["bundle"] = threading.current_thread().name
        return original_bundle(config)

    monkeypatch.setattr(app_module, "inspect_archive", recording_inspect)
    monkeypatch.setattr(app_module, "build_config_bundle", recording_bundle)

    assert client.post("/inspect", json={"archive_base64": _b64(make_archive({"index.html": "hi"}))}).status_code == 200
    assert client.post("/bundle", json={"project_id": "demo"}).status_code == 200

    assert threads["inspect"].startswith("asyncio")
    assert threads["bundle"].startswith("asyncio")
