"""Tests for rcode.editor.execute."""

from __future__ import annotations

import subprocess
from unittest.mock import MagicMock, patch

import pytest

from rcode.editor import EditorExecutionError, execute_detached


class TestExecuteDetached:
    @patch("rcode.editor.execute.subprocess.Popen")
    def test_detached_start(self, mock_popen: MagicMock) -> None:
        mock_popen.return_value.pid = 4242
        assert execute_detached(["zed", "ssh://a@b//src"]) == 4242
        args, kwargs = mock_popen.call_args
        assert args[0] == ["zed", "ssh://a@b//src"]
        assert kwargs["start_new_session"] is True
        assert kwargs["stdin"] is subprocess.DEVNULL
        assert kwargs["stdout"] is subprocess.DEVNULL
        assert kwargs["stderr"] is subprocess.DEVNULL
        mock_popen.return_value.wait.assert_not_called()

    @patch("rcode.editor.execute.subprocess.Popen")
    def test_arguments_passed_verbatim(self, mock_popen: MagicMock) -> None:
        execute_detached(["code", "/home/u/it's my project"])
        assert mock_popen.call_args.args[0] == [
            "code",
            "/home/u/it's my project",
        ]

    @pytest.mark.parametrize("argv", [[], ["  "]])
    def test_empty_command(self, argv: list[str]) -> None:
        with pytest.raises(EditorExecutionError, match="empty"):
            execute_detached(argv)

    @patch("rcode.editor.execute.subprocess.Popen")
    def test_missing_executable(self, mock_popen: MagicMock) -> None:
        mock_popen.side_effect = FileNotFoundError("nope")
        with pytest.raises(EditorExecutionError, match="failed to start"):
            execute_detached(["nope", "/src"])
