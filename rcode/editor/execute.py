"""Start rendered editor commands without waiting for them."""

from __future__ import annotations

import subprocess
from typing import Sequence

from loguru import logger


class EditorExecutionError(RuntimeError):
    """Raised when an editor command cannot be started."""


def execute_detached(argv: Sequence[str]) -> int:
    """Start *argv* in its own session and return its pid.

    GUI editors outlive the request, so the child is detached from
    the server's stdio and process group and never waited on.
    """
    if not argv or not argv[0].strip():
        raise EditorExecutionError("empty command")
    try:
        proc = subprocess.Popen(
            list(argv),
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True,
        )
    except OSError as e:
        raise EditorExecutionError(
            f"failed to start {argv[0]}: {e}"
        ) from e
    logger.debug(f"Started {argv[0]} (pid {proc.pid})")
    return proc.pid
