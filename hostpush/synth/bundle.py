"""Downloadable zip of the hosting config for developers who deploy locally."""

from __future__ import annotations

import io
import zipfile
from typing import List

from ..models import PendingFile, ProjectConfig
from .hosting import (
    HOSTING_DESCRIPTOR,
    PROJECT_ALIAS_FILE,
    WORKFLOW_FILE,
    dump_json,
    hosting_descriptor,
    project_alias,
    secret_name,
    workflow_content,
)

SETUP_GUIDE_FILE = "GITHUB_SETUP_GUIDE.md"
WINDOWS_SCRIPT_FILE = "deploy_windows.bat"
UNIX_SCRIPT_FILE = "deploy_mac_linux.sh"
BUNDLE_BRANCHES = ("main", "master")


def _deploy_command(config: ProjectConfig) -> str:
    command = "firebase deploy --only hosting"
    if config.project_id:
        command += f" --project {config.project_id}"
    return command


def windows_script(config: ProjectConfig) -> str:
    return "\r\n".join(
        [
            "@echo off",
            "",
            "echo [hostpush] Starting Deployment...",
            "where npm >nul 2>nul",
            "if %errorlevel% neq 0 ( echo Error: Node.js required. & pause & exit /b )",
            "",
            "echo 1. Installing dependencies...",
            "call npm install",
            "",
            "echo 2. Building project...",
            "call npm run build",
            "",
            "echo 3. Deploying to Firebase...",
            f"call {_deploy_command(config)}",
            "",
            "echo Done!",
            "pause",
            "",
        ]
    )


def unix_script(config: ProjectConfig) -> str:
    return "\n".join(
        [
            "#!/bin/bash",
            "set -e",
            'echo "[hostpush] Starting Deployment..."',
            "npm install",
            "npm run build",
            _deploy_command(config),
            'echo "Done!"',
            "",
        ]
    )


def setup_guide(config: ProjectConfig) -> str:
    name = secret_name(config.project_id)
    return (
        "# GitHub Setup\n\n"
        f"Create a repository secret named `{name}` containing your Firebase "
        "service account JSON (Settings -> Secrets and variables -> Actions).\n"
    )


def bundle_files(config: ProjectConfig) -> List[PendingFile]:
    """Files placed in the bundle, in archive order."""
    files = [PendingFile.from_text(HOSTING_DESCRIPTOR, dump_json(hosting_descriptor(config)))]
    if config.project_id:
        files.append(
            PendingFile.from_text(PROJECT_ALIAS_FILE, dump_json(project_alias(config.project_id)))
        )
    if config.include_ci_workflow:
        files.append(
            PendingFile.from_text(WORKFLOW_FILE, workflow_content(config, list(BUNDLE_BRANCHES)))
        )
        files.append(PendingFile.from_text(SETUP_GUIDE_FILE, setup_guide(config)))
    files.append(PendingFile.from_text(WINDOWS_SCRIPT_FILE, windows_script(config)))
    files.append(PendingFile.from_text(UNIX_SCRIPT_FILE, unix_script(config)))
    return files


def build_config_bundle(config: ProjectConfig) -> bytes:
    """Return the config bundle as zip bytes."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for pending in bundle_files(config):
            info = zipfile.ZipInfo(pending.path)
            info.compress_type = zipfile.ZIP_DEFLATED
            if pending.path == UNIX_SCRIPT_FILE:
                info.external_attr = 0o755 << 16
            else:
                info.external_attr = 0o644 << 16
            archive.writestr(info, pending.content)
    return buffer.getvalue()


def bundle_filename(config: ProjectConfig) -> str:
    return f"firebase_config_{config.project_id or 'bundle'}.zip"


__all__ = ["build_config_bundle", "bundle_filename", "bundle_files"]
