"""Tests for the ignore policy."""

from __future__ import annotations

import pytest

from hostpush.layout.ignore import IGNORED_PATTERNS, is_ignored, is_system_noise


@pytest.mark.parametrize(
    "path",
    [
        "node_modules/react/index.js",
        "app/node_modules/lodash/lodash.js",
        ".git/config",
        "src/.git/HEAD",
        ".env",
        "config/.env.local",
        ".ENV.PRODUCTION",
        "Coverage/lcov.info",
        "logs/npm-debug.log",
        "yarn-error.log",
        ".vscode/settings.json",
        "project/.idea",
        "site/.DS_Store",
    ],
)
def test_ignored_segments_are_dropped(path: str) -> None:
    assert is_ignored(path)


@pytest.mark.parametrize(
    "path",
    [
        "index.html",
        "src/environment.ts",
        ".envrc",
        "docs/coverage-report.md",
        "assets/gitlab.svg",
        "node_modules_backup.txt",
    ],
)
def test_partial_segment_matches_are_kept(path: str) -> None:
    assert not is_ignored(path)


def test_every_pattern_matches_as_bare_path() -> None:
    for pattern in IGNORED_PATTERNS:
        assert is_ignored(pattern)
        assert is_ignored(pattern.upper())


def test_system_noise_detection() -> None:
    assert is_system_noise("__MACOSX/site/._index.html")
    assert is_system_noise("site/.DS_Store")
    assert not is_system_noise("site/index.html")


@pytest.mark.parametrize("path", ["docs/__MACOSX-notes.md", "img.DS_Store.png", "__MACOSX_backup/a.txt"])
def test_system_noise_requires_whole_segments(path: str) -> None:
    assert not is_system_noise(path)
