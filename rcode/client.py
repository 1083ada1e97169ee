"""HTTP client for rcode-server with primary/fallback failover."""

from __future__ import annotations

import time
from typing import Any, Callable, TypeVar
from urllib.parse import urlsplit

import httpx
from loguru import logger
from pydantic import BaseModel, ValidationError

from . import __version__
from .api import (
    EditorsResponse,
    ErrorCode,
    ErrorResponse,
    HealthResponse,
    OpenRequest,
    OpenResponse,
)
from .config import ClientConfig
from .editor import Template, TemplateError, TemplateVars
from .net import parse_ip

_M = TypeVar("_M", bound=BaseModel)


class ClientError(Exception):
    """Raised when no configured server could serve a request."""

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode | None = None,
        failures: list[tuple[str, str]] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        # (host, reason) for every host that was tried.
        self.failures = failures or []


class _HostFailure(Exception):
    def __init__(self, reason: str, *, retry: bool, code: ErrorCode | None = None):
        super().__init__(reason)
        self.retry = retry
        self.code = code


def server_url(host: str, port: int) -> str:
    """Base URL for *host*, adding *port* when the host has none.

    Bare IPv6 literals are bracketed.
    """
    if "://" in host:
        return host.rstrip("/")
    ip = parse_ip(host)
    if ip is not None and ip.version == 6:
        return f"http://[{ip}]:{port}"
    try:
        has_port = urlsplit(f"//{host}").port is not None
    except ValueError:
        has_port = False
    if has_port:
        return f"http://{host}"
    else:
        return f"http://{host}:{port}"


def _error_reason(response: httpx.Response) -> tuple[str, ErrorCode | None]:
    try:
        err = ErrorResponse.model_validate(response.json())
    except (ValueError, ValidationError):
        return f"server returned status {response.status_code}", None
    if err.details:
        return f"server error: {err.error}: {err.details}", err.code
    else:
        return f"server error: {err.error}", err.code


class RcodeClient:
    """Talks to rcode-server on the resolved primary, then fallback, host.

    Each host gets ``network.retry-attempts`` tries for connection
    failures and 5xx responses; a 4xx response moves straight on to
    the next host.
    """

    def __init__(
        self,
        config: ClientConfig,
        primary: str,
        fallback: str = "",
        *,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._config = config
        self._hosts = [h for h in dict.fromkeys([primary, fallback]) if h]
        self._sleep = sleep
        self._http = httpx.Client(
            timeout=config.network.timeout,
            transport=transport,
            headers={"User-Agent": f"rcode/{__version__}"},
        )

    @property
    def hosts(self) -> list[str]:
        return list(self._hosts)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> RcodeClient:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    # ── Requests ──────────────────────────────────────────────

    def open_editor(
        self,
        path: str,
        *,
        editor: str = "",
        user: str,
        host: str,
    ) -> OpenResponse:
        """Ask the server to open *path*; empty *editor* uses the default."""
        request = OpenRequest(
            path=path,
            editor=editor or self._config.default_editor,
            user=user,
            host=host,
        )
        response = self._call(
            "POST",
            "/open-editor",
            OpenResponse,
            json=request.model_dump(),
        )
        logger.info(
            f"Editor opened: {response.editor} ({response.command})"
        )
        return response

    def list_editors(self) -> EditorsResponse:
        return self._call("GET", "/editors", EditorsResponse)

    def check_health(self) -> tuple[str, HealthResponse]:
        """Return the first host reporting healthy and its answer."""
        failures: list[tuple[str, str]] = []
        for host in self._require_hosts():
            try:
                health = self._request(host, "GET", "/health", HealthResponse)
            except _HostFailure as e:
                failures.append((host, str(e)))
                continue
            if health.is_healthy:
                return host, health
            failures.append((host, f"status {health.status}"))
        raise ClientError("no healthy hosts found", failures=failures)

    def manual_command(
        self,
        path: str,
        *,
        editor: str = "",
        user: str,
        host: str,
    ) -> str:
        """The command to run by hand on the editor machine.

        The template comes from the server when reachable, otherwise
        from ``fallback-editors``. Returns ``""`` for unknown editors.
        """
        name = editor or self._config.default_editor
        command = ""
        try:
            info = self.list_editors().find(name)
        except ClientError as e:
            logger.debug(f"Cannot fetch editors from server: {e}")
        else:
            if info is not None:
                command = info.command
        if not command:
            command = self._config.fallback_editors.get(name, "")
        if not command:
            return ""
        try:
            return Template(command).render_with_defaults(
                TemplateVars(user=user, host=host, path=path)
            )
        except TemplateError as e:
            logger.debug(f"Cannot render {name} template: {e}")
            return ""

    # ── Transport ─────────────────────────────────────────────

    def _require_hosts(self) -> list[str]:
        if not self._hosts:
            raise ClientError("no server host configured")
        return self._hosts

    def _call(
        self,
        method: str,
        path: str,
        model: type[_M],
        **kwargs: Any,
    ) -> _M:
        failures: list[tuple[str, str]] = []
        code: ErrorCode | None = None
        for index, host in enumerate(self._require_hosts()):
            label = "primary" if index == 0 else "fallback"
            logger.debug(f"Connecting to {label} host {host}")
            try:
                return self._request(host, method, path, model, **kwargs)
            except _HostFailure as e:
                logger.warning(f"Failed to reach {label} host {host}: {e}")
                failures.append((host, str(e)))
                code = e.code or code
        raise ClientError(
            "failed to connect to any configured host",
            code=code,
            failures=failures,
        )

    def _request(
        self,
        host: str,
        method: str,
        path: str,
        model: type[_M],
        **kwargs: Any,
    ) -> _M:
        url = server_url(host, self._config.network.port) + path
        attempts = max(self._config.network.retry_attempts, 1)
        failure = _HostFailure("no attempt made", retry=False)
        for attempt in range(attempts):
            if attempt > 0:
                logger.debug(f"Retrying {url} ({attempt + 1}/{attempts})")
                self._sleep(self._config.network.retry_delay)
            try:
                response = self._http.request(method, url, **kwargs)
            except httpx.TimeoutException as e:
                failure = _HostFailure(
                    f"request timed out: {e}", retry=True, code=ErrorCode.TIMEOUT
                )
                continue
            except httpx.TransportError as e:
                failure = _HostFailure(
                    f"request failed: {e}",
                    retry=True,
                    code=ErrorCode.CONNECTION_FAILED,
                )
                continue

            if response.status_code == 200:
                try:
                    return model.model_validate(response.json())
                except (ValueError, ValidationError) as e:
                    failure = _HostFailure(
                        f"failed to decode response: {e}", retry=False
                    )
                    break
            reason, code = _error_reason(response)
            failure = _HostFailure(
                reason, retry=response.status_code >= 500, code=code
            )
            if not failure.retry:
                break
        raise failure
