"""Firebase Hosting configuration files generated from a ProjectConfig."""

from __future__ import annotations

import json
import re
from typing import Any, Dict, Iterable, List, Sequence

import yaml

from ..models import PendingFile, ProjectConfig

HOSTING_DESCRIPTOR = "firebase.json"
PROJECT_ALIAS_FILE = ".firebaserc"
GITIGNORE_FILE = ".gitignore"
WORKFLOW_FILE = ".github/workflows/firebase-hosting-merge.yml"

HOSTING_IGNORE = ["firebase.json", "**/.*", "**/node_modules/**"]
SPA_REWRITE = {"source": "**", "destination": "/index.html"}
SECRET_PREFIX = "FIREBASE_SERVICE_ACCOUNT_"
DEFAULT_SECRET_BASE = "MY_PROJECT"
DEFAULT_WORKFLOW_PROJECT_ID = "my-project-id"

_SECRET_UNSAFE = re.compile(r"[^A-Z0-9_]")

_GITIGNORE_TEMPLATE = """# Logs
logs
*.log
npm-debug.log*
yarn-debug.log*

# Runtime data
pids
*.pid
*.seed
*.pid.lock

# Dependencies
node_modules/

# Build outputs
{public_dir}/
dist/
build/
out/

# Firebase cache
.firebase/
firebase-debug.log

# Environment
.env
.env.local
.env.production

# IDE
.vscode/
.idea/
.DS_Store
"""

_PLACEHOLDER_README = """# Build Output Directory: {public_dir}

This directory is reserved for build artifacts (HTML/CSS/JS).
This file will be replaced automatically by your build script (npm run build).

*Generated by hostpush*
"""

_PLACEHOLDER_HTML = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>hostpush Deployment</title>
    <style>
        body {{ margin: 0; font-family: 'Segoe UI', system-ui, sans-serif; background: #0F172A; color: #fff; height: 100vh; display: flex; flex-direction: column; align-items: center; justify-content: center; text-align: center; }}
        .container {{ padding: 2rem; max-width: 600px; }}
        h1 {{ font-size: 2.5rem; margin-bottom: 0.5rem; }}
        p {{ color: #94A3B8; font-size: 1.1rem; line-height: 1.6; }}
        .status {{ display: inline-block; padding: 0.5rem 1rem; border: 1px solid rgba(255,255,255,0.1); border-radius: 50px; color: #60A5FA; }}
    </style>
</head>
<body>
    <div class="container">
        <h1>Deployment Ready!</h1>
        <p>Firebase Hosting for <strong>{project}</strong> is configured. This placeholder page is served until your build output replaces it.</p>
        <div class="status">Waiting for build output in {public_dir}/ (npm run build)...</div>
    </div>
</body>
</html>
"""


def secret_name(project_id: str) -> str:
    """Return the repository secret holding the Firebase service account."""
    base = _SECRET_UNSAFE.sub("_", project_id.upper()) if project_id else DEFAULT_SECRET_BASE
    return f"{SECRET_PREFIX}{base}"


def hosting_descriptor(config: ProjectConfig) -> Dict[str, Any]:
    return {
        "hosting": {
            "public": config.public_dir,
            "ignore": list(HOSTING_IGNORE),
            "rewrites": [dict(SPA_REWRITE)] if config.is_spa else [],
        }
    }


def project_alias(project_id: str) -> Dict[str, Any]:
    return {"projects": {"default": project_id}}


def gitignore_content(config: ProjectConfig) -> str:
    return _GITIGNORE_TEMPLATE.format(public_dir=config.publish_root)


def workflow_content(config: ProjectConfig, branches: Sequence[str]) -> str:
    """Render the GitHub Actions workflow that builds and deploys on push."""
    document = {
        "name": "Deploy to Firebase Hosting on merge",
        "on": {"push": {"branches": list(branches)}},
        "jobs": {
            "build_and_deploy": {
                "runs-on": "ubuntu-latest",
                "steps": [
                    {"uses": "actions/checkout@v4"},
                    {"name": "Install Dependencies", "run": "npm ci"},
                    {"name": "Build", "run": "npm run build"},
                    {
                        "uses": "FirebaseExtended/action-hosting-deploy@v0",
                        "with": {
                            "repoToken": "${{ secrets.GITHUB_TOKEN }}",
                            "firebaseServiceAccount": f"${{{{ secrets.{secret_name(config.project_id)} }}}}",
                            "channelId": "live",
                            "projectId": config.project_id or DEFAULT_WORKFLOW_PROJECT_ID,
                        },
                    },
                ],
            }
        },
    }
    return yaml.safe_dump(document, sort_keys=False, default_flow_style=False)


def dump_json(document: Dict[str, Any]) -> str:
    return json.dumps(document, indent=2)


def synthesize(config: ProjectConfig, *, branch: str = "main") -> List[PendingFile]:
    """Return the generated config files in their fixed order."""
    files = [PendingFile.from_text(HOSTING_DESCRIPTOR, dump_json(hosting_descriptor(config)))]
    if config.project_id:
        files.append(
            PendingFile.from_text(PROJECT_ALIAS_FILE, dump_json(project_alias(config.project_id)))
        )
    files.append(PendingFile.from_text(GITIGNORE_FILE, gitignore_content(config)))
    if config.include_ci_workflow:
        files.append(PendingFile.from_text(WORKFLOW_FILE, workflow_content(config, [branch])))
    return files


def placeholder_files(config: ProjectConfig, staged_paths: Iterable[str]) -> List[PendingFile]:
    """Placeholders that make the publish directory exist before the first build."""
    prefix = config.publish_prefix
    if any(path.startswith(prefix) for path in staged_paths):
        return []
    public_dir = config.publish_root
    project = config.project_id or "your project"
    return [
        PendingFile.from_text(f"{prefix}README.md", _PLACEHOLDER_README.format(public_dir=public_dir)),
        PendingFile.from_text(
            f"{prefix}index.html",
            _PLACEHOLDER_HTML.format(public_dir=public_dir, project=project),
        ),
    ]


__all__ = [
    "GITIGNORE_FILE",
    "HOSTING_DESCRIPTOR",
    "PROJECT_ALIAS_FILE",
    "WORKFLOW_FILE",
    "gitignore_content",
    "hosting_descriptor",
    "placeholder_files",
    "project_alias",
    "secret_name",
    "synthesize",
    "workflow_content",
]
