"""Tests for per-file layout decisions."""

from __future__ import annotations

import pytest

from hostpush.layout.strategist import (
    ORIGIN_ARCHIVE,
    ORIGIN_GENERATED,
    REASON_DUPLICATE,
    REASON_SUPERSEDED,
    REASON_TOO_LARGE,
    LayoutError,
    LayoutStrategist,
    PathRegistry,
    has_manifest_file,
    plan_archive,
)
from hostpush.models import PendingFile, ProjectConfig
from hostpush.synth.hosting import synthesize


def _sealed_registry(config: ProjectConfig) -> PathRegistry:
    registry = PathRegistry()
    registry.register_generated(synthesize(config))
    return registry


def test_static_files_move_under_publish_dir() -> None:
    config = ProjectConfig(public_dir="dist")
    strategist = LayoutStrategist(config, _sealed_registry(config))

    assert strategist.decide_path("index.html").path == "dist/index.html"
    assert strategist.decide_path("css/app.css").path == "dist/css/app.css"
    assert strategist.decide_path("dist/already.js").path == "dist/already.js"
    assert strategist.decide_path(".nvmrc").path == ".nvmrc"


def test_source_projects_keep_their_structure() -> None:
    config = ProjectConfig(public_dir="dist")
    strategist = LayoutStrategist(config, _sealed_registry(config), has_manifest=True)

    assert strategist.decide_path("src/app.js").path == "src/app.js"
    assert strategist.decide_path("package.json").path == "package.json"
    assert strategist.decide_path("README.md").path == "README.md"


def test_wrapper_root_is_stripped_before_relocation() -> None:
    config = ProjectConfig(public_dir="public")
    strategist = LayoutStrategist(config, _sealed_registry(config), wrapper_root="site/")

    assert strategist.decide_path("site/index.html").path == "public/index.html"
    decision = strategist.decide_path("site/")
    assert decision.path is None
    assert decision.skip is None


def test_ignored_paths_are_dropped_silently() -> None:
    config = ProjectConfig()
    strategist = LayoutStrategist(config, _sealed_registry(config), has_manifest=True)

    for path in ("node_modules/a/index.js", ".env", ".git/config", "config/.env.local"):
        decision = strategist.decide_path(path)
        assert decision.path is None
        assert decision.skip is None


def test_generated_config_wins_over_archive_copy() -> None:
    config = ProjectConfig(project_id="demo")
    registry = _sealed_registry(config)
    strategist = LayoutStrategist(config, registry)

    decision = strategist.decide_path("firebase.json")
    assert decision.path is None
    assert decision.skip is not None
    assert decision.skip.reason == REASON_SUPERSEDED
    assert registry.owner("firebase.json") == ORIGIN_GENERATED

    rc = strategist.decide_path(".firebaserc")
    assert rc.skip is not None and rc.skip.reason == REASON_SUPERSEDED


def test_second_archive_file_for_same_path_is_a_duplicate() -> None:
    config = ProjectConfig(public_dir="dist")
    registry = _sealed_registry(config)
    strategist = LayoutStrategist(config, registry)

    first = strategist.decide_path("index.html")
    second = strategist.decide_path("dist/index.html")

    assert first.path == "dist/index.html"
    assert second.skip is not None
    assert second.skip.reason == REASON_DUPLICATE
    assert registry.owner("dist/index.html") == ORIGIN_ARCHIVE


def test_oversized_files_are_skipped_without_claiming() -> None:
    config = ProjectConfig()
    registry = _sealed_registry(config)
    strategist = LayoutStrategist(config, registry, size_ceiling=10)

    decision = strategist.decide_path("video.mp4", size=11)

    assert decision.path is None
    assert decision.skip is not None
    assert decision.skip.path == "dist/video.mp4"
    assert decision.skip.reason == REASON_TOO_LARGE
    assert "dist/video.mp4" not in registry
    assert strategist.decide_path("video.mp4", size=10).path == "dist/video.mp4"


def test_decisions_require_generated_files_first() -> None:
    strategist = LayoutStrategist(ProjectConfig(), PathRegistry())

    with pytest.raises(LayoutError):
        strategist.decide_path("index.html")


def test_generated_files_can_only_be_registered_once() -> None:
    registry = PathRegistry()
    registry.register_generated([PendingFile.from_text("firebase.json", "{}")])

    with pytest.raises(LayoutError):
        registry.register_generated([PendingFile.from_text(".gitignore", "")])


def test_duplicate_generated_path_is_rejected() -> None:
    registry = PathRegistry()
    files = [PendingFile.from_text("firebase.json", "{}"), PendingFile.from_text("firebase.json", "{}")]

    with pytest.raises(LayoutError):
        registry.register_generated(files)


def test_manifest_detection_ignores_dependency_caches() -> None:
    assert has_manifest_file(["app/package.json"])
    assert not has_manifest_file(["node_modules/react/package.json", "index.html"])
    assert not has_manifest_file(["__MACOSX/app/package.json"])
    assert not has_manifest_file(["package.json.bak"])


def test_plan_archive_reads_accepted_files_in_order(make_reader) -> None:
    reader = make_reader(
        {
            "site/": b"",
            "site/index.html": "<h1>home</h1>",
            "site/firebase.json": "{}",
            "site/.env": "SECRET=1",
            "site/css/app.css": "body {}",
            "__MACOSX/site/._index.html": b"\x00",
        }
    )
    config = ProjectConfig(public_dir="dist")

    plan = plan_archive(reader, config, _sealed_registry(config))

    assert plan.wrapper_root == "site/"
    assert plan.has_manifest is False
    assert [pending.path for pending in plan.files] == ["dist/index.html", "dist/css/app.css"]
    assert plan.files[0].content == b"<h1>home</h1>"
    assert [(record.path, record.reason) for record in plan.skipped] == [
        ("firebase.json", REASON_SUPERSEDED)
    ]


def test_plan_archive_keeps_source_layout(make_reader) -> None:
    reader = make_reader(
        {
            "package.json": '{"name": "demo"}',
            "src/main.tsx": "render()",
            "node_modules/react/package.json": "{}",
            ".gitignore": "dist/",
        }
    )
    config = ProjectConfig(public_dir="dist")

    plan = plan_archive(reader, config, _sealed_registry(config))

    assert plan.has_manifest is True
    assert [pending.path for pending in plan.files] == ["package.json", "src/main.tsx"]
    assert [record.path for record in plan.skipped] == [".gitignore"]


def test_plan_archive_accepts_windows_separators(make_reader) -> None:
    reader = make_reader({"site\\index.html": "<h1>home</h1>", "site\\js\\app.js": "run()"})
    config = ProjectConfig(public_dir="dist")

    plan = plan_archive(reader, config, _sealed_registry(config))

    assert plan.wrapper_root == "site/"
    assert [(pending.path, pending.content) for pending in plan.files] == [
        ("dist/index.html", b"<h1>home</h1>"),
        ("dist/js/app.js", b"run()"),
    ]


def test_plan_archive_keeps_files_that_only_resemble_macos_metadata(make_reader) -> None:
    reader = make_reader(
        {
            "docs/__MACOSX-notes.md": "notes",
            "img.DS_Store.png": b"\x89PNG",
            "__MACOSX/docs/._notes.md": b"\x00",
            "docs/.DS_Store": b"\x00",
        }
    )
    config = ProjectConfig(public_dir="dist")

    plan = plan_archive(reader, config, _sealed_registry(config))

    assert [pending.path for pending in plan.files] == ["dist/docs/__MACOSX-notes.md", "dist/img.DS_Store.png"]
    assert plan.skipped == []
