"""Read-only project metadata consumed by packagers."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Self

from .errors import MissingRequiredConfiguration, ValidationError

REQUIRED_PROJECT_FIELDS: dict[str, str] = {
    "name": "'myproject'",
    "build_version": "'1.2.3'",
    "build_iteration": "1",
    "maintainer": "'Example Corp <ops@example.com>'",
    "install_dir": "'/opt/myproject'",
}


@dataclass(frozen=True, slots=True)
class ProjectMetadata:
    name: str
    build_version: str
    build_iteration: int
    maintainer: str
    install_dir: Path
    files_path: Path
    package_scripts_path: Path
    friendly_name: str = ""
    description: str = ""
    homepage: str = ""
    license: str = "unknown"
    mac_pkg_identifier: str | None = None
    msi_upgrade_code: str | None = None
    runtime_dependencies: tuple[str, ...] = ()
    conflicts: tuple[str, ...] = ()
    replaces: tuple[str, ...] = ()
    config_files: tuple[str, ...] = ()

    @property
    def display_name(self) -> str:
        return self.friendly_name or self.name

    @property
    def summary(self) -> str:
        if self.description:
            return self.description.splitlines()[0]
        return f"The full stack of {self.name}"

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any], *, root: Path | None = None) -> Self:
        """Build metadata from a decoded project description.

        Relative ``files_path`` and ``package_scripts_path`` resolve against
        *root*; both default to ``files/`` and ``package-scripts/<name>/``.
        """
        for key, example in REQUIRED_PROJECT_FIELDS.items():
            value = values.get(key)
            if value is None or value == "":
                raise MissingRequiredConfiguration(key, example, context={"scope": "project"})

        base = root or Path.cwd()
        name = str(values["name"])
        try:
            iteration = int(values["build_iteration"])
        except (TypeError, ValueError) as exc:
            raise ValidationError(
                "Project build_iteration must be an integer.",
                context={"build_iteration": str(values["build_iteration"])},
            ) from exc

        return cls(
            name=name,
            build_version=str(values["build_version"]),
            build_iteration=iteration,
            maintainer=str(values["maintainer"]),
            install_dir=Path(values["install_dir"]),
            files_path=base / values.get("files_path", "files"),
            package_scripts_path=base / values.get("package_scripts_path", f"package-scripts/{name}"),
            friendly_name=str(values.get("friendly_name", "")),
            description=str(values.get("description", "")),
            homepage=str(values.get("homepage", "")),
            license=str(values.get("license", "unknown")),
            mac_pkg_identifier=values.get("mac_pkg_identifier"),
            msi_upgrade_code=values.get("msi_upgrade_code"),
            runtime_dependencies=_string_tuple(values, "runtime_dependencies"),
            conflicts=_string_tuple(values, "conflicts"),
            replaces=_string_tuple(values, "replaces"),
            config_files=_string_tuple(values, "config_files"),
        )


def load_project(path: str | Path) -> ProjectMetadata:
    project_path = Path(path)
    try:
        raw = project_path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ValidationError(
            "Project description does not exist.",
            context={"path": str(project_path)},
        ) from exc
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValidationError(
            "Invalid project JSON.",
            hint=str(exc),
            context={"path": str(project_path)},
        ) from exc
    if not isinstance(payload, dict):
        raise ValidationError(
            "Project description must be a JSON object.",
            context={"path": str(project_path)},
        )
    return ProjectMetadata.from_mapping(payload, root=project_path.parent)


def _string_tuple(values: Mapping[str, Any], key: str) -> tuple[str, ...]:
    raw = values.get(key, ())
    if isinstance(raw, str) or not isinstance(raw, (list, tuple)):
        raise ValidationError(
            f"Project `{key}` must be a list of strings.",
            context={"key": key},
        )
    return tuple(str(item) for item in raw)
