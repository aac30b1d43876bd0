#!/usr/bin/env python3
"""
Unit tests for the subprocess console.
"""

import pytest

from gpucrate.core.console import Console
from gpucrate.core.errors import EngineCommandError


@pytest.mark.integration
class TestConsole:

    def test_sh_captures_output(self):
        assert Console().sh(["echo", "test"]) == "test"

    def test_sh_merges_stderr(self):
        assert Console().sh(["sh", "-c", "echo out; echo err >&2"]) == "out\nerr"

    def test_sh_failure_raises_with_status_and_output(self):
        with pytest.raises(EngineCommandError) as exc_info:
            Console().sh(["sh", "-c", "echo no such container >&2; exit 125"])

        assert exc_info.value.returncode == 125
        assert exc_info.value.output == "no such container"
        assert "exit code 125" in exc_info.value.message

    def test_sh_can_fail(self):
        assert Console().sh(["sh", "-c", "echo partial; exit 1"], canFail=True) == "partial"

    def test_sh_secret_hides_command(self):
        with pytest.raises(EngineCommandError) as exc_info:
            Console().sh(["sh", "-c", "exit 2"], secret=True)

        assert "<secret>" in exc_info.value.message

    def test_sh_timeout(self):
        with pytest.raises(EngineCommandError) as exc_info:
            Console().sh(["sleep", "5"], timeout=0.2)

        assert exc_info.value.returncode == -1

    def test_missing_binary(self):
        with pytest.raises(EngineCommandError) as exc_info:
            Console().sh(["gpucrate-no-such-binary"])

        assert exc_info.value.returncode == 127

    def test_verbose_echo(self, capsys):
        Console(shellVerbose=True).sh(["echo", "hello world"])

        assert "> echo 'hello world'" in capsys.readouterr().out

    def test_live_output(self, capsys):
        output = Console(live_output=True).sh(["echo", "streamed"], prefix="| ")

        assert output == "streamed"
        assert "| streamed" in capsys.readouterr().out

    def test_attach_returns_exit_status(self):
        assert Console().attach(["sh", "-c", "exit 3"]) == 3
        assert Console().attach(["true"]) == 0
