"""HTTP server that opens editors on request."""

from __future__ import annotations

import shlex
import time
from datetime import datetime, timezone
from typing import Awaitable, Callable

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import ValidationError

from . import __version__
from .api import (
    ApiError,
    EditorInfo,
    EditorsResponse,
    ErrorCode,
    HealthResponse,
    OpenRequest,
    OpenResponse,
)
from .config import ServerConfig
from .editor import (
    EditorExecutionError,
    EditorManager,
    EditorNotFoundError,
    NoDefaultEditorError,
    TemplateError,
    TemplateVars,
    execute_detached,
)
from .net import ip_allowed, parse_allowed, parse_ip

_CallNext = Callable[[Request], Awaitable[Response]]


def client_ip(request: Request) -> str:
    """The originating client address.

    ``X-Forwarded-For`` (first hop) wins over ``X-Real-IP``, which wins
    over the socket peer.
    """
    forwarded = request.headers.get("x-forwarded-for", "")
    if forwarded:
        return forwarded.split(",", 1)[0].strip()
    real_ip = request.headers.get("x-real-ip", "")
    if real_ip:
        return real_ip.strip()
    if request.client is not None:
        return request.client.host
    else:
        return ""


def _error_json(err: ApiError) -> JSONResponse:
    return JSONResponse(
        status_code=err.status_code,
        content=err.to_response().model_dump(mode="json"),
    )


def create_app(
    config: ServerConfig,
    manager: EditorManager | None = None,
) -> FastAPI:
    """Build the rcode-server application for *config*."""
    editors = manager if manager is not None else EditorManager(config.editors)
    started_at = datetime.now(timezone.utc)
    started = time.monotonic()
    allowed_addresses, allowed_networks = parse_allowed(
        config.server.allowed_ips
    )
    whitelist_enabled = bool(config.server.allowed_ips)

    app = FastAPI(title="rcode-server", docs_url=None, redoc_url=None)
    app.state.editors = editors
    app.state.config = config

    @app.exception_handler(ApiError)
    async def handle_api_error(request: Request, exc: ApiError) -> JSONResponse:
        return _error_json(exc)

    # Middleware added last runs first: recovery wraps logging, which
    # wraps the IP whitelist.
    @app.middleware("http")
    async def ip_whitelist(request: Request, call_next: _CallNext) -> Response:
        if not whitelist_enabled:
            return await call_next(request)
        address = client_ip(request)
        ip = parse_ip(address)
        if ip is None:
            logger.warning(f"Could not parse client IP {address!r}")
            return _error_json(
                ApiError(ErrorCode.UNAUTHORIZED, "unauthorized request")
            )
        if not ip_allowed(ip, allowed_addresses, allowed_networks):
            logger.warning(f"Access denied by IP whitelist: {address}")
            return _error_json(
                ApiError(ErrorCode.UNAUTHORIZED, "unauthorized request")
            )
        return await call_next(request)

    @app.middleware("http")
    async def log_requests(request: Request, call_next: _CallNext) -> Response:
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000
        logger.info(
            f"{request.method} {request.url.path} from {client_ip(request)}"
            f" -> {response.status_code} ({duration_ms:.1f} ms)"
        )
        return response

    @app.middleware("http")
    async def recover(request: Request, call_next: _CallNext) -> Response:
        try:
            return await call_next(request)
        except Exception:
            logger.exception(
                f"Unhandled error in {request.method} {request.url.path}"
            )
            return _error_json(
                ApiError(ErrorCode.INTERNAL_ERROR, "internal server error")
            )

    @app.get("/health")
    def health() -> HealthResponse:
        return HealthResponse(
            status="healthy",
            version=__version__,
            uptime=int(time.monotonic() - started),
            started_at=started_at,
        )

    @app.get("/editors")
    def list_editors() -> EditorsResponse:
        editors.refresh_availability()
        return EditorsResponse(
            editors=[
                EditorInfo(
                    name=e.name,
                    command=e.command,
                    available=e.available,
                    default=e.default,
                )
                for e in editors.list_editors()
            ],
            default_editor=editors.default_name,
        )

    @app.post("/open-editor")
    async def open_editor(request: Request) -> OpenResponse:
        try:
            payload = await request.json()
        except ValueError as e:
            raise ApiError(
                ErrorCode.INVALID_REQUEST,
                "invalid request format",
                details=f"Invalid JSON: {e}",
            ) from e
        try:
            req = OpenRequest.model_validate(payload)
        except ValidationError as e:
            raise ApiError(
                ErrorCode.INVALID_REQUEST,
                "invalid request format",
                details=str(e),
            ) from e
        req.validate_request()

        logger.info(
            f"Open editor request: path={req.path} editor={req.editor or '-'}"
            f" user={req.user} host={req.host}"
        )
        try:
            editor = editors.get_editor(req.editor)
        except EditorNotFoundError as e:
            raise ApiError(ErrorCode.EDITOR_NOT_FOUND, str(e)) from e
        except NoDefaultEditorError as e:
            raise ApiError(ErrorCode.NO_DEFAULT_EDITOR, str(e)) from e

        try:
            argv = editor.template.render_argv(
                TemplateVars(user=req.user, host=req.host, path=req.path)
            )
        except TemplateError as e:
            logger.error(f"Failed to render command for {editor.name}: {e}")
            raise ApiError(
                ErrorCode.INTERNAL_ERROR, "failed to render editor command",
                details=str(e),
            ) from e

        command = shlex.join(argv)
        try:
            pid = execute_detached(argv)
        except EditorExecutionError as e:
            logger.error(f"Failed to execute {command!r}: {e}")
            raise ApiError(
                ErrorCode.EDITOR_EXECUTION_ERROR,
                "failed to execute editor command",
                details=str(e),
            ) from e

        logger.info(f"Started {editor.name} (pid {pid}): {command}")
        return OpenResponse(
            success=True,
            message=f"Opened {req.path} in {editor.name}",
            editor=editor.name,
            command=command,
        )

    return app


def run_server(config: ServerConfig) -> None:
    """Serve the application until interrupted."""
    app = create_app(config)
    logger.info(
        f"Starting rcode-server {__version__} on"
        f" {config.server.host}:{config.server.port}"
    )
    if config.server.allowed_ips:
        logger.info(f"Allowed IPs: {', '.join(config.server.allowed_ips)}")
    uvicorn.run(
        app,
        host=config.server.host,
        port=config.server.port,
        log_config=None,
        access_log=False,
    )
