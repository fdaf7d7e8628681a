"""Rendering and execution of native packaging tool invocations."""

from __future__ import annotations

import os
import shlex
import subprocess
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from .errors import ExternalToolFailure

Option = tuple[str, str | None]


@dataclass(frozen=True, slots=True)
class Command:
    """A tool invocation whose options keep exactly the caller's order.

    ``launcher`` prefixes the program (``fakeroot`` for example) and
    ``subcommand`` follows it (``hdiutil convert image.dmg``). Options with a
    ``None`` value render as bare flags.
    """

    program: str
    options: tuple[Option, ...] = ()
    arguments: tuple[str, ...] = ()
    launcher: tuple[str, ...] = ()
    subcommand: tuple[str, ...] = ()

    def argv(self) -> list[str]:
        argv = [*self.launcher, self.program, *self.subcommand]
        for flag, value in self.options:
            argv.append(flag)
            if value is not None:
                argv.append(value)
        argv.extend(self.arguments)
        return argv

    def render(self) -> str:
        head = " ".join(shlex.quote(part) for part in (*self.launcher, self.program, *self.subcommand))
        lines = [head]
        for flag, value in self.options:
            if value is None:
                lines.append(shlex.quote(flag))
            else:
                lines.append(f"{shlex.quote(flag)} {shlex.quote(value)}")
        lines.extend(shlex.quote(argument) for argument in self.arguments)
        return " \\\n  ".join(lines)

    def __str__(self) -> str:
        return shlex.join(self.argv())


@dataclass(frozen=True, slots=True)
class CommandResult:
    command: Command
    exit_code: int
    output: str


class Executor(Protocol):
    def run(
        self,
        command: Command,
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        """Run *command* and return its result, raising on failure."""


@dataclass(slots=True)
class ShellExecutor:
    """Runs commands as child processes with stdout and stderr combined."""

    def run(
        self,
        command: Command,
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        process_env = None
        if env is not None:
            process_env = {**os.environ, **env}
        try:
            result = subprocess.run(
                command.argv(),
                cwd=str(cwd) if cwd is not None else None,
                env=process_env,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                encoding="utf-8",
                errors="replace",
                timeout=timeout,
                check=False,
            )
        except FileNotFoundError as exc:
            raise ExternalToolFailure(
                command.program,
                127,
                str(exc),
                command=str(command),
            ) from exc
        except subprocess.TimeoutExpired as exc:
            output = exc.output
            if isinstance(output, bytes):
                output = output.decode("utf-8", errors="replace")
            raise ExternalToolFailure(
                command.program,
                -1,
                f"Timed out after {timeout} seconds.\n{output or ''}",
                command=str(command),
            ) from exc

        if result.returncode != 0:
            raise ExternalToolFailure(
                command.program,
                result.returncode,
                result.stdout or "",
                command=str(command),
            )
        return CommandResult(command=command, exit_code=0, output=result.stdout or "")


@dataclass(slots=True)
class DryRunExecutor:
    """Records commands without running them.

    Every call succeeds with empty output. ``cwds`` holds the working
    directory passed with each recorded command.
    """

    commands: list[Command] = field(default_factory=list)
    cwds: list[Path | None] = field(default_factory=list)

    def run(
        self,
        command: Command,
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        self.commands.append(command)
        self.cwds.append(cwd)
        return CommandResult(command=command, exit_code=0, output="")

    def programs(self) -> list[str]:
        return [command.program for command in self.commands]
