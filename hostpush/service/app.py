"""FastAPI application entrypoint for hostpush service mode."""

from __future__ import annotations

import asyncio
import base64
import binascii
from dataclasses import replace
from typing import Any, Callable, List, Optional

from fastapi import Depends, FastAPI, Header
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field

from ..archive import ArchiveError, ArchiveReader
from ..config import ConfigError, HostPushConfig
from ..credentials import CredentialError
from ..frameworks import inspect_archive
from ..git.client import RemoteAPIError
from ..models import Framework, ProjectConfig
from ..orchestrator import Orchestrator, PushInProgressError
from ..progress import PushResult
from ..synth.bundle import build_config_bundle, bundle_filename


class ProjectModel(BaseModel):
    project_id: str = ""
    public_dir: str = "dist"
    is_spa: bool = True
    include_ci_workflow: bool = False
    framework: Framework = Framework.GOOGLE_AI
    detected_structure: Optional[List[str]] = None

    def to_config(self) -> ProjectConfig:
        return ProjectConfig(
            project_id=self.project_id,
            public_dir=self.public_dir,
            is_spa=self.is_spa,
            include_ci_workflow=self.include_ci_workflow,
            framework=self.framework,
            detected_structure=self.detected_structure,
        )

    @classmethod
    def from_config(cls, config: ProjectConfig) -> "ProjectModel":
        return cls(
            project_id=config.project_id,
            public_dir=config.public_dir,
            is_spa=config.is_spa,
            include_ci_workflow=config.include_ci_workflow,
            framework=config.framework,
            detected_structure=config.detected_structure,
        )


class InspectRequest(BaseModel):
    archive_base64: str


class PushRequest(BaseModel):
    repo: str
    project: ProjectModel = Field(default_factory=ProjectModel)
    archive_base64: Optional[str] = None
    branch: Optional[str] = None
    message: Optional[str] = None


class PushResponse(BaseModel):
    status: str
    phase: str
    message: str
    files: int
    skipped: List[str] = Field(default_factory=list)
    commit_sha: Optional[str] = None
    secrets_url: Optional[str] = None
    bootstrapped: bool = False
    last_status: Optional[str] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None
    error_detail: Optional[str] = None
    hints: List[str] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: PushResult) -> "PushResponse":
        return cls(**result.to_dict())


class HealthResponse(BaseModel):
    status: str


def _default_orchestrator() -> Orchestrator:
    return Orchestrator()


def _decode_archive(value: str) -> bytes:
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ArchiveError("archive_base64 is not valid base64") from exc


def create_app(
    orchestrator_factory: Callable[[], Orchestrator] = _default_orchestrator,
    settings_factory: Callable[[], HostPushConfig] | None = None,
) -> FastAPI:
    """Create the FastAPI application exposing hostpush operations."""

    app = FastAPI(title="hostpush Service", version="0.1.0")
    # One orchestrator per app so its push guard covers every request.
    orchestrator = orchestrator_factory()

    async def get_orchestrator() -> Orchestrator:
        return orchestrator

    def _settings() -> HostPushConfig:
        if settings_factory is not None:
            return settings_factory()
        return orchestrator.load_settings(".")

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/inspect", response_model=ProjectModel)
    async def inspect(payload: InspectRequest) -> ProjectModel:
        def _run_inspect() -> ProjectConfig:
            with ArchiveReader(_decode_archive(payload.archive_base64)) as reader:
                return inspect_archive(reader)

        loop = asyncio.get_running_loop()
        config = await loop.run_in_executor(None, _run_inspect)
        return ProjectModel.from_config(config)

    @app.post("/bundle")
    async def bundle(payload: ProjectModel) -> Response:
        config = payload.to_config()
        if not config.publish_root:
            raise ConfigError("The publish directory must not be empty")
        loop = asyncio.get_running_loop()
        content = await loop.run_in_executor(None, build_config_bundle, config)
        return Response(
            content=content,
            media_type="application/zip",
            headers={"Content-Disposition": f'attachment; filename="{bundle_filename(config)}"'},
        )

    @app.post("/push", response_model=PushResponse)
    async def push(
        payload: PushRequest,
        orchestrator: Orchestrator = Depends(get_orchestrator),
        x_github_token: Optional[str] = Header(default=None),
    ) -> PushResponse:
        settings = _settings()
        if payload.branch:
            # Never mutate the settings returned by the factory.
            settings = replace(settings, github=replace(settings.github, branch=payload.branch))

        def _run_push() -> PushResult:
            archive = _decode_archive(payload.archive_base64) if payload.archive_base64 else None
            return orchestrator.run_push(
                payload.project.to_config(),
                repo=payload.repo,
                archive_bytes=archive,
                settings=settings,
                token=x_github_token,
                message=payload.message,
            )

        loop = asyncio.get_running_loop()
        result = await loop.run_in_executor(None, _run_push)
        return PushResponse.from_result(result)

    @app.exception_handler(PushInProgressError)
    async def push_in_progress_handler(_: Any, exc: PushInProgressError) -> JSONResponse:
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    @app.exception_handler(CredentialError)
    async def credential_error_handler(_: Any, exc: CredentialError) -> JSONResponse:
        return JSONResponse(status_code=401, content={"detail": str(exc)})

    @app.exception_handler(ArchiveError)
    async def archive_error_handler(_: Any, exc: ArchiveError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(ConfigError)
    async def config_error_handler(_: Any, exc: ConfigError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(RemoteAPIError)
    async def remote_error_handler(_: Any, exc: RemoteAPIError) -> JSONResponse:  # pragma: no cover - simple mapping
        return JSONResponse(status_code=502, content={"detail": str(exc), "kind": exc.kind})

    return app


def run_service(host: str = "127.0.0.1", port: int = 8000) -> None:  # pragma: no cover - integration path
    import uvicorn

    app = create_app()
    uvicorn.run(app, host=host, port=port)
