#!/usr/bin/env python3
"""Module to run console commands.

This module provides a class to run engine and host tool commands, either
capturing their output or attached to the invoking terminal.
"""
# built-in modules
import shlex
import subprocess
import typing
# user-defined modules
from gpucrate.core.errors import EngineCommandError


class Console:
    """Class to run console commands.

    Attributes:
        shellVerbose (bool): The shell verbose flag.
        live_output (bool): The live output flag.
    """
    def __init__(
            self,
            shellVerbose: bool=False,
            live_output: bool=False
        ) -> None:
        """Constructor of the Console class.

        Args:
            shellVerbose (bool): Echo each command before running it.
            live_output (bool): Stream captured output while it is produced.
        """
        self.shellVerbose = shellVerbose
        self.live_output = live_output

    def _echo(self, command: typing.Sequence[str], secret: bool) -> None:
        if self.shellVerbose and not secret:
            print("> " + shlex.join(command), flush=True)

    def sh(
            self,
            command: typing.Sequence[str],
            canFail: bool=False,
            timeout: int=60,
            secret: bool=False,
            prefix: str="",
            env: typing.Optional[typing.Dict[str, str]]=None
        ) -> str:
        """Run a command and capture its output.

        Args:
            command (list): The argument vector.
            canFail (bool): Return the output instead of raising on failure.
            timeout (int): The timeout in seconds.
            secret (bool): Hide the command from echo and error messages.
            prefix (str): The prefix of streamed output lines.
            env (dict): The environment variables.

        Returns:
            str: The combined stdout/stderr of the command, stripped.

        Raises:
            EngineCommandError: If the command fails and canFail is False, or
                if it times out.
        """
        self._echo(command, secret)

        try:
            proc = subprocess.Popen(
                list(command),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                universal_newlines=False,
                bufsize=0,
                env=env,
            )
        except FileNotFoundError as exc:
            raise EngineCommandError(
                f"Command not found: {command[0]}", returncode=127, cause=exc
            ) from exc

        try:
            if not self.live_output:
                raw_outs, _ = proc.communicate(timeout=timeout)
                outs = raw_outs.decode('utf-8', errors='replace')
            else:
                lines = []
                for raw_line in iter(proc.stdout.readline, b''):
                    line = raw_line.decode('utf-8', errors='replace')
                    print(prefix + line, end="")
                    lines.append(line)
                outs = "".join(lines)
                proc.stdout.close()
                proc.wait(timeout=timeout)
        except subprocess.TimeoutExpired as exc:
            proc.kill()
            proc.wait()
            raise EngineCommandError(
                "Console script timeout", returncode=-1, cause=exc
            ) from exc

        if proc.returncode != 0 and not canFail:
            shown = "<secret>" if secret else shlex.join(command)
            raise EngineCommandError(
                f"Subprocess '{shown}' failed with exit code {proc.returncode}",
                returncode=proc.returncode,
                output=outs.strip(),
            )

        return outs.strip()

    def spawn(self, command: typing.Sequence[str]) -> subprocess.Popen:
        """Start a command attached to the current terminal and return immediately."""
        self._echo(command, False)
        try:
            return subprocess.Popen(list(command))
        except FileNotFoundError as exc:
            raise EngineCommandError(
                f"Command not found: {command[0]}", returncode=127, cause=exc
            ) from exc

    @staticmethod
    def wait(proc: subprocess.Popen) -> int:
        """Wait for an attached child and return its exit status verbatim.

        A terminal interrupt reaches the child through the shared process
        group; the child is given the chance to shut down before the
        interrupt is re-raised.
        """
        try:
            return proc.wait()
        except KeyboardInterrupt:
            proc.wait()
            raise

    def attach(self, command: typing.Sequence[str]) -> int:
        """Run a command attached to the current terminal.

        Returns:
            int: The exit status of the command.
        """
        return self.wait(self.spawn(command))
