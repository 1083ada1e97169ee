"""Host categories, the source protocol, and resolution results."""

from __future__ import annotations

import enum
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict


class HostCategory(str, enum.Enum):
    """What a resolved host value is used for."""

    # rcode client -> rcode-server HTTP connection
    SERVER_CONNECTION = "server-connection"
    # editor on the server machine -> back to this machine over SSH
    EDITOR_TARGET = "editor-target"


@runtime_checkable
class HostSource(Protocol):
    """A priority-ranked provider of candidate host values.

    ``resolve`` returns an empty string when the source has nothing
    to say about the requested category.  Implementations never
    raise: every failure degrades to an empty answer.
    """

    def identifier(self) -> str:
        """Name used in logs and diagnostics."""
        ...

    def priority(self) -> int:
        """Lower values are consulted first."""
        ...

    def resolve(self, category: HostCategory) -> str:
        """Return a candidate host for *category*, or ``""``."""
        ...


class ResolvedHosts(BaseModel):
    """Outcome of resolving both host categories."""

    model_config = ConfigDict(frozen=True)
    server: str = ""
    server_fallback: str = ""
    editor_target: str = ""
    source_name: str = ""


class SourceAnswer(BaseModel):
    """What one source answered for each category."""

    model_config = ConfigDict(frozen=True)
    name: str
    priority: int
    server_connection: str = ""
    editor_target: str = ""
