"""Shared lifecycle for platform packagers.

Every packager runs the same pipeline from :meth:`Packager.build`::

    validate -> resolve_paths -> stage -> generate_documents -> assemble

Paths are pure properties derived from the injected :class:`Config`, so the
commands a packager would run can be inspected without touching the
filesystem. :meth:`Packager.resolve_paths` is the only step that creates
directories.
"""

from __future__ import annotations

import os
import shutil
from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import ClassVar

from stagepkg.config import Config
from stagepkg.documents import DOCUMENT_MODE, write_document
from stagepkg.errors import (
    DocumentGenerationError,
    MissingRequiredConfiguration,
    PathResolutionError,
    StagepkgError,
)
from stagepkg.observability import StructuredLogger
from stagepkg.project import ProjectMetadata
from stagepkg.shell import Command, CommandResult, Executor, ShellExecutor

# (project attribute, example value) pairs every format needs.
BASE_REQUIRED_FIELDS: tuple[tuple[str, str], ...] = (
    ("name", "'myproject'"),
    ("build_version", "'1.2.3'"),
    ("maintainer", "'Example Corp <ops@example.com>'"),
    ("install_dir", "'/opt/myproject'"),
)


@dataclass(frozen=True, slots=True)
class PackagerPaths:
    staging_dir: Path
    temp_dir: Path
    output_dir: Path


@dataclass(frozen=True, slots=True)
class PackageResult:
    format: str
    name: str
    path: Path
    intermediates: tuple[Path, ...] = ()


@dataclass(slots=True)
class Packager(ABC):
    """Base contract implemented once per package format."""

    id: ClassVar[str]
    extension: ClassVar[str]
    staging_subdir: ClassVar[str] = "staging"
    required_fields: ClassVar[tuple[tuple[str, str], ...]] = ()

    project: ProjectMetadata
    config: Config
    executor: Executor = field(default_factory=ShellExecutor)
    logger: StructuredLogger = field(default_factory=StructuredLogger)
    documents: dict[str, Path] = field(init=False, default_factory=dict)

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    @property
    def temp_dir(self) -> Path:
        return Path(self.config.package_tmp) / self.id

    @property
    def staging_dir(self) -> Path:
        return self.temp_dir / self.staging_subdir

    @property
    def output_dir(self) -> Path:
        return Path(self.config.package_dir)

    @property
    def package_path(self) -> Path:
        return self.output_dir / self.artifact_name()

    def resolve_paths(self) -> PackagerPaths:
        for key in ("package_tmp", "package_dir"):
            _ensure_usable_base(Path(getattr(self.config, key)), key=key, packager=self.id)
        for directory in (self.temp_dir, self.staging_dir, self.output_dir):
            try:
                directory.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise PathResolutionError(
                    "Unable to create packaging directory.",
                    hint=str(exc),
                    context={"packager": self.id, "path": str(directory)},
                ) from exc
        return PackagerPaths(
            staging_dir=self.staging_dir,
            temp_dir=self.temp_dir,
            output_dir=self.output_dir,
        )

    # ------------------------------------------------------------------
    # Validation and naming
    # ------------------------------------------------------------------

    def validation_errors(self) -> list[MissingRequiredConfiguration]:
        errors: list[MissingRequiredConfiguration] = []
        for name, example in (*BASE_REQUIRED_FIELDS, *self.required_fields):
            value = getattr(self.project, name)
            if _is_blank(value):
                errors.append(
                    MissingRequiredConfiguration(name, example, context={"packager": self.id})
                )
        return errors

    def validate(self) -> None:
        errors = self.validation_errors()
        if errors:
            raise errors[0]

    @abstractmethod
    def artifact_name(self) -> str:
        """Return the final artifact file name."""

    def artifact_names(self) -> tuple[str, ...]:
        """Every file name the packager produces, final artifact last."""
        return (self.artifact_name(),)

    # ------------------------------------------------------------------
    # Build pipeline
    # ------------------------------------------------------------------

    def build(self) -> PackageResult:
        self._log("package_start", phase="validate", message="Starting package build.")
        phase = "validate"
        try:
            self.validate()
            phase = "resolve"
            self.resolve_paths()
            phase = "stage"
            self.stage()
            self._log("stage_complete", phase=phase, message="Staged package contents.")
            phase = "generate"
            self.generate_documents()
            phase = "assemble"
            artifact = self.assemble()
        except OSError as exc:
            error = PathResolutionError(
                "Filesystem operation failed while packaging.",
                hint=str(exc),
                context={"packager": self.id, "phase": phase, "path": str(exc.filename or "")},
            )
            self._fail(error, phase=phase)
            raise error from exc
        except StagepkgError as exc:
            self._fail(exc, phase=phase)
            raise
        result = PackageResult(
            format=self.id,
            name=artifact.name,
            path=artifact,
            intermediates=self.intermediates(),
        )
        self._log(
            "package_complete",
            phase="assemble",
            message="Completed package build.",
            extra={"artifact": str(artifact)},
        )
        return result

    def stage(self) -> None:
        """Copy inputs into the staging directory."""

    def generate_documents(self) -> None:
        """Render and write metadata documents into the temp directory."""

    @abstractmethod
    def assemble(self) -> Path:
        """Run the native tool chain and return the artifact path."""

    def intermediates(self) -> tuple[Path, ...]:
        return ()

    def on_failure(self, error: StagepkgError) -> None:
        """Called once for every error that aborts :meth:`build`."""

    def _fail(self, error: StagepkgError, *, phase: str) -> None:
        self.on_failure(error)
        self._log(
            "package_failed",
            phase=phase,
            message=error.summary,
            level="error",
            extra={"code": error.code},
        )

    # ------------------------------------------------------------------
    # Helpers for subclasses
    # ------------------------------------------------------------------

    def execute(self, command: Command, *, cwd: Path | None = None, phase: str) -> CommandResult:
        self._log(
            "run_command",
            phase=phase,
            message=f"Running {command.program}.",
            extra={"command": command.render()},
        )
        return self.executor.run(command, cwd=cwd)

    def write_document(
        self, key: str, path: Path, content: str, *, mode: int = DOCUMENT_MODE
    ) -> Path:
        try:
            write_document(path, content, mode=mode)
        except OSError as exc:
            raise DocumentGenerationError(
                f"Unable to write {key} document.",
                hint=str(exc),
                context={"packager": self.id, "path": str(path)},
            ) from exc
        self.documents[key] = path
        self._log(
            "document_written",
            phase="generate",
            message=f"Wrote {key} document.",
            extra={"path": str(path)},
        )
        return path

    def copy_tree(self, source: Path, destination: Path) -> None:
        """Copy the optional tree *source* into *destination*, if it exists.

        Symlinks and modes are preserved.
        """
        if not source.is_dir():
            return
        with self._filesystem("copy", source):
            shutil.copytree(source, destination, symlinks=True, dirs_exist_ok=True)

    def require_install_tree(self) -> Path:
        install_dir = self.project.install_dir
        if not install_dir.is_dir():
            raise PathResolutionError(
                "Install directory does not exist.",
                hint="Build the project into `install_dir` before packaging it.",
                context={"packager": self.id, "path": str(install_dir)},
            )
        return install_dir

    def stage_install_tree(self, destination: Path) -> None:
        source = self.require_install_tree()
        with self._filesystem("copy", source):
            shutil.copytree(source, destination, symlinks=True, dirs_exist_ok=True)

    def reset_dir(self, directory: Path) -> Path:
        with self._filesystem("reset", directory):
            if directory.exists():
                shutil.rmtree(directory)
            directory.mkdir(parents=True)
        return directory

    def package_script(self, name: str) -> Path | None:
        script = self.project.package_scripts_path / name
        if script.is_file():
            return script
        return None

    def read_script(self, script: Path) -> str:
        with self._filesystem("read", script):
            return script.read_text(encoding="utf-8")

    def copy_script(self, script: Path, target: Path, *, mode: int = 0o755) -> Path:
        with self._filesystem("copy", script):
            shutil.copyfile(script, target)
            os.chmod(target, mode)
        return target

    @contextmanager
    def _filesystem(self, action: str, path: Path) -> Iterator[None]:
        try:
            yield
        except (OSError, UnicodeDecodeError) as exc:
            raise PathResolutionError(
                f"Unable to {action} `{path}`.",
                hint=str(exc),
                context={"packager": self.id, "path": str(path)},
            ) from exc

    def resource_path(self, *parts: str) -> Path:
        return self.project.files_path.joinpath(self.id, *parts)

    def _log(
        self,
        operation: str,
        *,
        phase: str | None,
        message: str,
        level: str = "info",
        extra: dict[str, object] | None = None,
    ) -> None:
        self.logger.log(
            operation=operation,
            packager=self.id,
            phase=phase,
            message=message,
            level=level,
            extra=extra,
        )


def _is_blank(value: object) -> bool:
    # Path("") normalizes to Path(".")
    if isinstance(value, Path):
        return value == Path("")
    return value is None or str(value) == ""


def _ensure_usable_base(path: Path, *, key: str, packager: str) -> None:
    if path.exists() and not path.is_dir():
        raise PathResolutionError(
            "Configured base path is not a directory.",
            hint=f"Point `{key}` at a writable directory.",
            context={"packager": packager, "key": key, "path": str(path)},
        )
    existing = path
    while not existing.exists():
        if existing.parent == existing:
            break
        existing = existing.parent
    if not os.access(existing, os.W_OK):
        raise PathResolutionError(
            "Configured base path is not writable.",
            hint=f"Grant write permission or point `{key}` elsewhere.",
            context={"packager": packager, "key": key, "path": str(path)},
        )


__all__ = ["BASE_REQUIRED_FIELDS", "PackageResult", "Packager", "PackagerPaths"]
