"""Editor command templates with ``{user}``, ``{host}`` and ``{path}``."""

from __future__ import annotations

import re
import shlex
from dataclasses import dataclass

PLACEHOLDERS = ("{user}", "{host}", "{path}")
REQUIRED_PLACEHOLDER = "{path}"

_PLACEHOLDER_RE = re.compile(r"\{(?:user|host|path)\}")


class TemplateError(ValueError):
    """Raised when a command template is unusable."""


class InvalidTemplateError(TemplateError):
    """Malformed or unknown placeholder, or empty command."""


class MissingPlaceholderError(TemplateError):
    """A required placeholder is absent."""


class RenderError(TemplateError):
    """A placeholder used by the template has no value."""


def validate_command_template(command: str) -> None:
    """Check placeholders of an editor command template.

    Unclosed, nested and unknown placeholders are rejected before the
    presence of ``{path}`` is checked.
    """
    if not command:
        raise InvalidTemplateError("command cannot be empty")

    start = 0
    while True:
        idx = command.find("{", start)
        if idx == -1:
            break
        end = command.find("}", idx + 1)
        if end == -1 or "{" in command[idx + 1 : end]:
            raise InvalidTemplateError(
                f"unclosed placeholder at position {idx}"
            )
        placeholder = command[idx : end + 1]
        if placeholder not in PLACEHOLDERS:
            raise InvalidTemplateError(f"unknown placeholder {placeholder}")
        start = end + 1

    if REQUIRED_PLACEHOLDER not in command:
        raise MissingPlaceholderError(
            f"missing required placeholder {REQUIRED_PLACEHOLDER}"
        )
    _split_template(command)


@dataclass(frozen=True)
class TemplateVars:
    """Values substituted into a command template."""

    user: str = ""
    host: str = ""
    path: str = ""


class Template:
    """A validated command template.

    The template is split into argv words once; placeholders are
    substituted inside each word, so a value containing spaces or
    quotes always stays a single argument.
    """

    def __init__(self, command: str) -> None:
        validate_command_template(command)
        self._raw = command
        self._words = _split_template(command)

    @property
    def raw(self) -> str:
        return self._raw

    @property
    def placeholders(self) -> list[str]:
        """Placeholders the template uses, in canonical order."""
        return [p for p in PLACEHOLDERS if p in self._raw]

    def requires_user(self) -> bool:
        return "{user}" in self._raw

    def requires_host(self) -> bool:
        return "{host}" in self._raw

    def requires_path(self) -> bool:
        return "{path}" in self._raw

    def render_argv(self, values: TemplateVars) -> list[str]:
        """Substitute *values*; every used placeholder needs a value."""
        for name in ("path", "user", "host"):
            if f"{{{name}}}" in self._raw and not getattr(values, name):
                raise RenderError(f"{name} is required for this template")
        return self._substitute(values.user, values.host, values.path)

    def render(self, values: TemplateVars) -> str:
        """Like :meth:`render_argv`, joined into a shell-quoted line."""
        return shlex.join(self.render_argv(values))

    def render_with_defaults(self, values: TemplateVars) -> str:
        """Substitute *values*, filling gaps with placeholders' defaults."""
        return shlex.join(
            self._substitute(
                values.user or "user",
                values.host or "localhost",
                values.path or ".",
            )
        )

    def _substitute(self, user: str, host: str, path: str) -> list[str]:
        # One pass per word, so substituted text is never re-scanned.
        values = {"{user}": user, "{host}": host, "{path}": path}
        return [
            _PLACEHOLDER_RE.sub(lambda m: values[m.group(0)], word)
            for word in self._words
        ]

    def __str__(self) -> str:
        return self._raw

    def __repr__(self) -> str:
        return f"Template({self._raw!r})"


def _split_template(command: str) -> list[str]:
    try:
        return shlex.split(command)
    except ValueError as e:
        raise InvalidTemplateError(f"cannot parse command: {e}") from e


def executable_of(command: str) -> str:
    """Return the program a template runs, or ``""`` if templated."""
    parts = command.split()
    if not parts or "{" in parts[0]:
        return ""
    else:
        return parts[0]
