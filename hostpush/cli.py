"""CLI entrypoints for hostpush commands."""

from __future__ import annotations

import argparse
import sys
from dataclasses import replace
from pathlib import Path

from .archive import ArchiveError
from .config import ConfigError, HostPushConfig
from .credentials import CredentialError
from .frameworks import apply_preset
from .git.client import RemoteAPIError
from .logging import configure_logging
from .models import Framework, ProjectConfig
from .orchestrator import Orchestrator
from .progress import LoggingReporter, PushResult


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _add_config_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        default=".",
        help="Directory containing .hostpush.yml (defaults to current directory).",
    )


def _add_project_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--project-id", help="Firebase project id.")
    parser.add_argument("--public-dir", help="Publish directory served by Firebase Hosting.")
    parser.add_argument(
        "--framework",
        choices=[member.value for member in Framework],
        help="Apply the framework's default publish directory and routing mode.",
    )
    spa = parser.add_mutually_exclusive_group()
    spa.add_argument("--spa", dest="spa", action="store_true", default=None, help="Rewrite every path to /index.html.")
    spa.add_argument("--no-spa", dest="spa", action="store_false", help="Serve files as-is without rewrites.")
    parser.add_argument(
        "--ci-workflow",
        action="store_true",
        default=None,
        help="Include a GitHub Actions workflow that deploys on push.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hostpush",
        description="Configure Firebase Hosting and push a project to GitHub in one commit.",
    )
    _add_verbose_option(parser)
    parser.add_argument(
        "--log-file",
        type=Path,
        help="Also write debug logs to this file.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    inspect_parser = subparsers.add_parser(
        "inspect",
        help="Detect framework and hosting settings from a project archive.",
    )
    _add_verbose_option(inspect_parser, suppress_default=True)
    inspect_parser.add_argument("archive", help="Path to the project zip or a package.json file.")

    bundle_parser = subparsers.add_parser(
        "bundle",
        help="Write a zip with firebase.json, .firebaserc, and deploy scripts.",
    )
    _add_verbose_option(bundle_parser, suppress_default=True)
    _add_config_option(bundle_parser)
    _add_project_options(bundle_parser)
    bundle_parser.add_argument(
        "--output",
        default=".",
        help="Directory to write the bundle into (defaults to current directory).",
    )

    repos_parser = subparsers.add_parser("repos", help="List repositories the token can access.")
    _add_verbose_option(repos_parser, suppress_default=True)
    _add_config_option(repos_parser)
    repos_parser.add_argument("--token", help="GitHub token (defaults to the stored token).")

    push_parser = subparsers.add_parser(
        "push",
        help="Push generated config and project files to GitHub as one commit.",
    )
    _add_verbose_option(push_parser, suppress_default=True)
    _add_config_option(push_parser)
    _add_project_options(push_parser)
    push_parser.add_argument(
        "archive",
        nargs="?",
        help="Project zip to include (omit to push only the generated config).",
    )
    push_parser.add_argument("--repo", help="Destination repository as OWNER/NAME.")
    push_parser.add_argument("--branch", help="Branch to push to (defaults to the repository default).")
    push_parser.add_argument("--message", help="Commit summary line.")
    push_parser.add_argument("--token", help="GitHub token (defaults to the stored token).")

    login_parser = subparsers.add_parser("login", help="Store a GitHub token on this machine.")
    _add_verbose_option(login_parser, suppress_default=True)
    login_parser.add_argument("--token", required=True, help="GitHub personal access token.")

    logout_parser = subparsers.add_parser("logout", help="Remove the stored GitHub token.")
    _add_verbose_option(logout_parser, suppress_default=True)

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP service.")
    _add_verbose_option(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default="127.0.0.1", help="Interface to bind.")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to listen on.")

    return parser


def _apply_overrides(project: ProjectConfig, args: argparse.Namespace) -> ProjectConfig:
    framework = getattr(args, "framework", None)
    if framework:
        project = apply_preset(project, Framework(framework))
    if getattr(args, "project_id", None) is not None:
        project = replace(project, project_id=args.project_id)
    if getattr(args, "public_dir", None):
        project = replace(project, public_dir=args.public_dir)
    if getattr(args, "spa", None) is not None:
        project = replace(project, is_spa=args.spa)
    if getattr(args, "ci_workflow", None):
        project = replace(project, include_ci_workflow=True)
    return project


def _print_result(result: PushResult) -> None:
    if result.skipped:
        print(f"Skipped {len(result.skipped)} file(s):")
        for record in result.skipped[:5]:
            print(f"  - {record}")
        if len(result.skipped) > 5:
            print(f"  ... and {len(result.skipped) - 5} more")
    if result.ok:
        print(result.message)
        print(f"Add the deploy secret at {result.secrets_url}")
        return
    if result.last_status:
        print(f"Last step: {result.last_status}", file=sys.stderr)
    print(result.message, file=sys.stderr)
    if result.error_detail:
        print(result.error_detail, file=sys.stderr)
    for hint in result.hints:
        print(f"hint: {hint}", file=sys.stderr)


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for hostpush commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose), log_file=args.log_file)

    orchestrator = Orchestrator()

    try:
        if args.command == "inspect":
            project = orchestrator.run_inspect(args.archive)
            print(f"Framework: {project.framework.value}")
            print(f"Project id: {project.project_id or '-'}")
            print(f"Publish directory: {project.public_dir}")
            print(f"Single page app: {'yes' if project.is_spa else 'no'}")
            print(f"Total files: {len(project.detected_structure or [])}")
        elif args.command == "bundle":
            settings = orchestrator.load_settings(args.config)
            project = _apply_overrides(settings.project, args)
            target = orchestrator.run_bundle(project, args.output)
            print(f"Config bundle written to {_relativize(target)}")
        elif args.command == "repos":
            settings = orchestrator.load_settings(args.config)
            for repo in orchestrator.list_repos(settings, token=args.token):
                print(f"{repo.full_name}\t{repo.default_branch}\t{repo.html_url}")
        elif args.command == "push":
            settings = orchestrator.load_settings(args.config)
            _run_push(parser, orchestrator, settings, args)
        elif args.command == "login":
            orchestrator.token_store.save(args.token)
            print(f"Token stored at {orchestrator.token_store.path}")
        elif args.command == "logout":
            removed = orchestrator.token_store.clear()
            print("Token removed" if removed else "No stored token")
        elif args.command == "serve":
            from .service import run_service

            run_service(host=args.host, port=args.port)
        else:  # pragma: no cover - argparse enforces choices
            parser.exit(1, "Unknown command\n")
    except (FileNotFoundError, ArchiveError, ConfigError, CredentialError) as exc:
        parser.exit(1, f"{exc}\n")
    except RemoteAPIError as exc:
        parser.exit(1, f"hostpush {args.command} failed: {exc}\nRun with --verbose for more details.\n")


def _run_push(
    parser: argparse.ArgumentParser,
    orchestrator: Orchestrator,
    settings: HostPushConfig,
    args: argparse.Namespace,
) -> None:
    repo = args.repo or settings.github.repo
    if not repo:
        parser.exit(1, "No destination repository. Pass --repo OWNER/NAME or set github.repo.\n")
    if args.branch:
        settings.github.branch = args.branch

    project = settings.project
    if args.archive and not settings.loaded:
        project = orchestrator.run_inspect(args.archive, project)
    project = _apply_overrides(project, args)

    result = orchestrator.run_push(
        project,
        repo=repo,
        archive_path=args.archive,
        settings=settings,
        token=args.token,
        message=args.message,
        reporter=LoggingReporter(),
    )
    _print_result(result)
    if not result.ok:
        parser.exit(1)


def _relativize(path: Path) -> str:
    try:
        return str(path.relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
