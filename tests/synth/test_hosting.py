"""Tests for generated hosting configuration."""

from __future__ import annotations

import json

import yaml

from hostpush.models import ProjectConfig
from hostpush.synth.hosting import (
    GITIGNORE_FILE,
    HOSTING_DESCRIPTOR,
    PROJECT_ALIAS_FILE,
    WORKFLOW_FILE,
    placeholder_files,
    secret_name,
    synthesize,
)


def _by_path(config: ProjectConfig) -> dict[str, str]:
    return {pending.path: pending.content.decode("utf-8") for pending in synthesize(config)}


def test_synthesize_orders_generated_files() -> None:
    config = ProjectConfig(project_id="demo-app", include_ci_workflow=True)

    paths = [pending.path for pending in synthesize(config)]

    assert paths == [HOSTING_DESCRIPTOR, PROJECT_ALIAS_FILE, GITIGNORE_FILE, WORKFLOW_FILE]


def test_minimal_config_only_writes_descriptor_and_gitignore() -> None:
    paths = [pending.path for pending in synthesize(ProjectConfig())]

    assert paths == [HOSTING_DESCRIPTOR, GITIGNORE_FILE]


def test_descriptor_includes_spa_rewrite_only_for_spas() -> None:
    spa = json.loads(_by_path(ProjectConfig(public_dir="build"))[HOSTING_DESCRIPTOR])
    static = json.loads(_by_path(ProjectConfig(public_dir="out", is_spa=False))[HOSTING_DESCRIPTOR])

    assert spa["hosting"]["public"] == "build"
    assert spa["hosting"]["rewrites"] == [{"source": "**", "destination": "/index.html"}]
    assert "firebase.json" in spa["hosting"]["ignore"]
    assert static["hosting"]["rewrites"] == []


def test_project_alias_binds_default() -> None:
    alias = json.loads(_by_path(ProjectConfig(project_id="demo"))[PROJECT_ALIAS_FILE])

    assert alias == {"projects": {"default": "demo"}}


def test_gitignore_lists_publish_dir_and_secrets() -> None:
    content = _by_path(ProjectConfig(public_dir="/public/"))[GITIGNORE_FILE]

    lines = content.splitlines()
    assert "public/" in lines
    assert "node_modules/" in lines
    assert ".env" in lines


def test_secret_name_is_environment_safe() -> None:
    assert secret_name("my-app.v2") == "FIREBASE_SERVICE_ACCOUNT_MY_APP_V2"
    assert secret_name("") == "FIREBASE_SERVICE_ACCOUNT_MY_PROJECT"


def test_workflow_triggers_on_branch_and_uses_secret() -> None:
    config = ProjectConfig(project_id="demo-app", include_ci_workflow=True)
    files = {pending.path: pending for pending in synthesize(config, branch="trunk")}

    workflow = yaml.safe_load(files[WORKFLOW_FILE].content.decode("utf-8"))

    assert workflow["on"]["push"]["branches"] == ["trunk"]
    steps = workflow["jobs"]["build_and_deploy"]["steps"]
    assert [step.get("run") for step in steps[1:3]] == ["npm ci", "npm run build"]
    deploy = steps[-1]["with"]
    assert deploy["firebaseServiceAccount"] == "${{ secrets.FIREBASE_SERVICE_ACCOUNT_DEMO_APP }}"
    assert deploy["projectId"] == "demo-app"
    assert deploy["channelId"] == "live"


def test_synthesize_is_deterministic() -> None:
    config = ProjectConfig(project_id="demo", include_ci_workflow=True)

    assert synthesize(config) == synthesize(config)


def test_placeholders_added_when_publish_dir_is_missing() -> None:
    config = ProjectConfig(project_id="demo", public_dir="dist")

    placeholders = placeholder_files(config, ["firebase.json", "src/main.ts", "distribution.txt"])

    assert [pending.path for pending in placeholders] == ["dist/README.md", "dist/index.html"]
    html = placeholders[1].content.decode("utf-8")
    assert "<strong>demo</strong>" in html
    assert "dist/" in html


def test_placeholders_skipped_when_publish_dir_has_files() -> None:
    config = ProjectConfig(public_dir="dist")

    assert placeholder_files(config, ["firebase.json", "dist/index.html"]) == []
