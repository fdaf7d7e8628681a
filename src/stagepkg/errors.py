"""Typed packaging error model with stable, machine-readable error codes."""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum
from typing import ClassVar


class ErrorCode(StrEnum):
    """Stable error identifiers used across packagers."""

    VALIDATION = "E_VALIDATION"
    MISSING_CONFIGURATION = "E_MISSING_CONFIGURATION"
    PATH_RESOLUTION = "E_PATH_RESOLUTION"
    EXTERNAL_TOOL = "E_EXTERNAL_TOOL"
    DOCUMENT = "E_DOCUMENT"


class StagepkgError(Exception):
    """Packaging failure with a stable ``code``, an optional ``hint`` and
    string ``context`` for log records.

    Subclasses list the typed attributes worth serializing in ``exposed``.
    """

    exposed: ClassVar[tuple[str, ...]] = ()

    code: str
    hint: str | None
    context: Mapping[str, str]

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code.value
        self.hint = hint
        self.context = dict(context or {})

    @property
    def summary(self) -> str:
        return str(self.args[0]) if self.args else ""

    def __str__(self) -> str:
        lines = [self.summary]
        if self.hint:
            lines.append(f"Hint: {self.hint}")
        lines.extend(f"  {key}: {value}" for key, value in self.context.items() if value)
        return "\n".join(lines)

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "code": self.code,
            "message": str(self),
            "context": dict(self.context),
        }
        if self.hint is not None:
            payload["hint"] = self.hint
        for name in self.exposed:
            payload[name] = getattr(self, name)
        return payload


class ValidationError(StagepkgError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.VALIDATION, hint=hint, context=context)


class MissingRequiredConfiguration(StagepkgError):
    """A required key or project field is unset and has no safe fallback."""

    exposed = ("key", "example")

    def __init__(
        self,
        key: str,
        example: str,
        *,
        context: Mapping[str, str] | None = None,
    ) -> None:
        self.key = key
        self.example = example
        super().__init__(
            f"Missing required configuration value `{key}`.",
            code=ErrorCode.MISSING_CONFIGURATION,
            hint=f"Set it explicitly, for example: {key} = {example}",
            context={"key": key, **dict(context or {})},
        )


class PathResolutionError(StagepkgError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.PATH_RESOLUTION, hint=hint, context=context)


class ExternalToolFailure(StagepkgError):
    """A native packaging tool exited with a non-zero status."""

    exposed = ("program", "exit_code")

    def __init__(
        self,
        program: str,
        exit_code: int,
        output: str,
        *,
        command: str | None = None,
    ) -> None:
        self.program = program
        self.exit_code = exit_code
        self.output = output
        super().__init__(
            f"`{program}` failed with exit code {exit_code}.",
            code=ErrorCode.EXTERNAL_TOOL,
            hint="Inspect the captured tool output below.",
            context={
                "program": program,
                "exit_code": str(exit_code),
                "command": command or "",
                "output": output[-4000:] if output else "",
            },
        )


class DocumentGenerationError(StagepkgError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.DOCUMENT, hint=hint, context=context)


__all__ = [
    "DocumentGenerationError",
    "ErrorCode",
    "ExternalToolFailure",
    "MissingRequiredConfiguration",
    "PathResolutionError",
    "StagepkgError",
    "ValidationError",
]
