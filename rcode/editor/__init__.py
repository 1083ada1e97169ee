"""Editor command templates, registry and execution."""

from .execute import EditorExecutionError, execute_detached
from .manager import (
    Editor,
    EditorError,
    EditorManager,
    EditorNotFoundError,
    NoDefaultEditorError,
    NoEditorsError,
)
from .template import (
    InvalidTemplateError,
    MissingPlaceholderError,
    RenderError,
    Template,
    TemplateError,
    TemplateVars,
    validate_command_template,
)

__all__ = [
    "Editor",
    "EditorError",
    "EditorExecutionError",
    "EditorManager",
    "EditorNotFoundError",
    "InvalidTemplateError",
    "MissingPlaceholderError",
    "NoDefaultEditorError",
    "NoEditorsError",
    "RenderError",
    "Template",
    "TemplateError",
    "TemplateVars",
    "execute_detached",
    "validate_command_template",
]
