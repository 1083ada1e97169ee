"""Registry of configured editors and their availability."""

from __future__ import annotations

import shutil
import threading
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Iterable

from loguru import logger

from .template import Template, TemplateError, executable_of

if TYPE_CHECKING:
    from ..config import EditorConfig


class EditorError(Exception):
    """Base class for editor lookup errors."""


class NoEditorsError(EditorError):
    """No editors configured."""


class EditorNotFoundError(EditorError):
    """The requested editor is not configured."""


class NoDefaultEditorError(EditorError):
    """No default editor could be determined."""


@dataclass(frozen=True)
class Editor:
    """A configured editor with its parsed command template."""

    name: str
    command: str
    template: Template
    default: bool = False
    available: bool = True

    @classmethod
    def from_config(cls, cfg: EditorConfig) -> Editor:
        if not cfg.name:
            raise TemplateError("editor name is required")
        return cls(
            name=cfg.name,
            command=cfg.command,
            template=Template(cfg.command),
            default=cfg.default,
            available=cfg.available,
        )

    @property
    def executable(self) -> str:
        return executable_of(self.command)


def _on_path(editor: Editor) -> bool:
    executable = editor.executable
    return bool(executable) and shutil.which(executable) is not None


class EditorManager:
    """Editors known to the server, safe to share across requests.

    Availability is probed on construction and cached until
    :meth:`refresh_availability` is called.
    """

    def __init__(self, configs: Iterable[EditorConfig]) -> None:
        self._lock = threading.RLock()
        self._editors: dict[str, Editor] = {}
        self._availability: dict[str, bool] = {}
        self._default_name = ""

        for cfg in configs:
            try:
                editor = Editor.from_config(cfg)
            except TemplateError as e:
                logger.warning(
                    f"Skipping invalid editor configuration {cfg.name!r}: {e}"
                )
                continue
            self._editors[editor.name] = editor
            if editor.default and not self._default_name:
                self._default_name = editor.name

        if not self._editors:
            raise NoEditorsError("no editors configured")
        if not self._default_name:
            self._default_name = next(iter(self._editors))

        self.refresh_availability()

    @property
    def default_name(self) -> str:
        with self._lock:
            return self._default_name

    def __len__(self) -> int:
        with self._lock:
            return len(self._editors)

    def get_editor(self, name: str = "") -> Editor:
        """Look up an editor by name; empty name means the default."""
        with self._lock:
            if not name:
                return self._get_default()
            editor = self._editors.get(name)
            if editor is None:
                raise EditorNotFoundError(f"editor not found: {name}")
            return editor

    def get_default(self) -> Editor:
        with self._lock:
            return self._get_default()

    def _get_default(self) -> Editor:
        if self._default_name in self._editors:
            return self._editors[self._default_name]
        for name, editor in self._editors.items():
            if self._availability.get(name):
                return editor
        for editor in self._editors.values():
            return editor
        raise NoDefaultEditorError("no default editor available")

    def list_editors(self) -> list[Editor]:
        """Editors in configuration order, with current availability."""
        with self._lock:
            return [
                replace(
                    e,
                    available=self._availability.get(e.name, False),
                    default=e.name == self._default_name,
                )
                for e in self._editors.values()
            ]

    def is_available(self, name: str) -> bool:
        with self._lock:
            if name in self._availability:
                return self._availability[name]
            editor = self._editors.get(name)
            if editor is None:
                return False
            available = _on_path(editor)
            self._availability[name] = available
            return available

    def refresh_availability(self) -> None:
        with self._lock:
            for name, editor in self._editors.items():
                available = _on_path(editor)
                self._availability[name] = available
                state = "available" if available else "not available"
                logger.debug(f"Editor {name} {state}")

    def set_default(self, name: str) -> None:
        with self._lock:
            if name not in self._editors:
                raise EditorNotFoundError(f"editor not found: {name}")
            self._default_name = name
        logger.info(f"Default editor changed to {name}")

    def add_editor(self, cfg: EditorConfig) -> Editor:
        editor = Editor.from_config(cfg)
        with self._lock:
            self._editors[editor.name] = editor
            self._availability[editor.name] = _on_path(editor)
        logger.info(f"Editor {editor.name} added")
        return editor

    def remove_editor(self, name: str) -> None:
        with self._lock:
            if name not in self._editors:
                raise EditorNotFoundError(f"editor not found: {name}")
            del self._editors[name]
            self._availability.pop(name, None)
            if self._default_name == name:
                self._default_name = next(iter(self._editors), "")
        logger.info(f"Editor {name} removed")
