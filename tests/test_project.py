import json
from pathlib import Path

import pytest

from stagepkg.errors import MissingRequiredConfiguration, ValidationError
from stagepkg.project import ProjectMetadata, load_project


def test_load_project_resolves_paths_against_file(tmp_path: Path) -> None:
    path = tmp_path / "myproject.json"
    path.write_text(
        json.dumps(
            {
                "name": "myproject",
                "build_version": "23.4.2",
                "build_iteration": "4",
                "maintainer": "Example Corp <ops@example.com>",
                "install_dir": "/opt/myproject",
                "runtime_dependencies": ["zlib"],
            }
        ),
        encoding="utf-8",
    )

    project = load_project(path)

    assert project.build_iteration == 4
    assert project.install_dir == Path("/opt/myproject")
    assert project.files_path == tmp_path / "files"
    assert project.package_scripts_path == tmp_path / "package-scripts" / "myproject"
    assert project.runtime_dependencies == ("zlib",)
    assert project.mac_pkg_identifier is None


def test_display_name_and_summary_fallbacks() -> None:
    project = ProjectMetadata.from_mapping(_values(), root=Path("/src"))

    assert project.display_name == "myproject"
    assert project.summary == "The full stack of myproject"


def test_missing_field_raises_with_example() -> None:
    values = _values()
    del values["maintainer"]

    with pytest.raises(MissingRequiredConfiguration) as excinfo:
        ProjectMetadata.from_mapping(values)

    assert excinfo.value.key == "maintainer"
    assert excinfo.value.context["scope"] == "project"


def test_iteration_must_be_an_integer() -> None:
    values = {**_values(), "build_iteration": "four"}

    with pytest.raises(ValidationError):
        ProjectMetadata.from_mapping(values)


def test_list_fields_reject_bare_strings() -> None:
    values = {**_values(), "conflicts": "myproject-legacy"}

    with pytest.raises(ValidationError) as excinfo:
        ProjectMetadata.from_mapping(values)

    assert excinfo.value.context == {"key": "conflicts"}


def test_load_project_rejects_non_object(tmp_path: Path) -> None:
    path = tmp_path / "project.json"
    path.write_text("[]", encoding="utf-8")

    with pytest.raises(ValidationError):
        load_project(path)


def _values() -> dict[str, object]:
    return {
        "name": "myproject",
        "build_version": "1.0.0",
        "build_iteration": 1,
        "maintainer": "Example Corp <ops@example.com>",
        "install_dir": "/opt/myproject",
    }
