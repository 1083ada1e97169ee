"""Wire types exchanged between rcode and rcode-server."""

from __future__ import annotations

import enum
import time
from datetime import datetime
from typing import List

from pydantic import BaseModel, Field


def _now() -> int:
    return int(time.time())


class ErrorCode(str, enum.Enum):
    """Error codes for programmatic handling."""

    INVALID_REQUEST = "INVALID_REQUEST"
    INVALID_PATH = "INVALID_PATH"
    MISSING_USER = "MISSING_USER"
    MISSING_HOST = "MISSING_HOST"
    EDITOR_NOT_FOUND = "EDITOR_NOT_FOUND"
    NO_DEFAULT_EDITOR = "NO_DEFAULT_EDITOR"
    EDITOR_EXECUTION_ERROR = "EDITOR_EXECUTION_ERROR"
    CONNECTION_FAILED = "CONNECTION_FAILED"
    TIMEOUT = "TIMEOUT"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    UNAUTHORIZED = "UNAUTHORIZED"
    NOT_IMPLEMENTED = "NOT_IMPLEMENTED"


_STATUS_BY_CODE: dict[ErrorCode, int] = {
    ErrorCode.INVALID_REQUEST: 400,
    ErrorCode.INVALID_PATH: 400,
    ErrorCode.MISSING_USER: 400,
    ErrorCode.MISSING_HOST: 400,
    ErrorCode.EDITOR_NOT_FOUND: 404,
    ErrorCode.NO_DEFAULT_EDITOR: 404,
    ErrorCode.EDITOR_EXECUTION_ERROR: 500,
    ErrorCode.CONNECTION_FAILED: 502,
    ErrorCode.TIMEOUT: 504,
    ErrorCode.INTERNAL_ERROR: 500,
    ErrorCode.UNAUTHORIZED: 403,
    ErrorCode.NOT_IMPLEMENTED: 501,
}


class ApiError(Exception):
    """An error that maps onto an :class:`ErrorResponse`."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: str = "",
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details

    @property
    def status_code(self) -> int:
        return _STATUS_BY_CODE.get(self.code, 500)

    @property
    def is_client_error(self) -> bool:
        return 400 <= self.status_code < 500

    def to_response(self) -> ErrorResponse:
        return ErrorResponse(
            error=self.message,
            code=self.code,
            details=self.details,
        )

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        else:
            return self.message


class OpenRequest(BaseModel):
    """Ask the server to open *path* on *host* as *user*.

    An empty ``editor`` selects the server's default editor.
    """

    path: str = ""
    editor: str = ""
    user: str = ""
    host: str = ""
    timestamp: int = Field(default_factory=_now)

    def validate_request(self) -> None:
        if not self.path:
            raise ApiError(ErrorCode.INVALID_PATH, "invalid path specified")
        if not self.user:
            raise ApiError(ErrorCode.MISSING_USER, "user is required")
        if not self.host:
            raise ApiError(ErrorCode.MISSING_HOST, "host is required")


class OpenResponse(BaseModel):
    success: bool
    message: str = ""
    editor: str = ""
    command: str = ""
    timestamp: int = Field(default_factory=_now)


class EditorInfo(BaseModel):
    name: str
    command: str
    available: bool
    default: bool


class EditorsResponse(BaseModel):
    editors: List[EditorInfo] = Field(default_factory=list)
    default_editor: str = ""
    timestamp: int = Field(default_factory=_now)

    def find(self, name: str) -> EditorInfo | None:
        return next((e for e in self.editors if e.name == name), None)


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime: int
    started_at: datetime
    timestamp: int = Field(default_factory=_now)

    @property
    def is_healthy(self) -> bool:
        return self.status == "healthy"


class ErrorResponse(BaseModel):
    error: str
    code: ErrorCode = ErrorCode.INTERNAL_ERROR
    details: str = ""
    timestamp: int = Field(default_factory=_now)
