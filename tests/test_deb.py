import dataclasses
import stat

import pytest

from stagepkg.config import Config
from stagepkg.errors import ValidationError
from stagepkg.packagers.deb import DebPackager
from stagepkg.project import ProjectMetadata
from stagepkg.shell import DryRunExecutor


def test_artifact_name_uses_debian_conventions(project: ProjectMetadata, config: Config) -> None:
    project = dataclasses.replace(project, build_version="1.2.3-rc1")

    packager = DebPackager(project, config)

    assert packager.version == "1.2.3~rc1-4"
    assert packager.artifact_name() == "myproject_1.2.3~rc1-4_amd64.deb"


def test_maintainer_must_include_email(project: ProjectMetadata, config: Config) -> None:
    project = dataclasses.replace(project, maintainer="Joe's Software")

    with pytest.raises(ValidationError) as excinfo:
        DebPackager(project, config).validate()

    assert excinfo.value.context == {"maintainer": "Joe's Software"}


def test_build_stages_tree_and_control_documents(
    project: ProjectMetadata,
    config: Config,
    executor: DryRunExecutor,
) -> None:
    postinst = project.package_scripts_path / "postinst"
    postinst.write_text("#!/bin/sh\necho installed\n", encoding="utf-8")
    packager = DebPackager(project, config, executor=executor)

    result = packager.build()

    assert result.path == config.package_dir / "myproject_23.4.2-4_amd64.deb"
    assert (packager.install_root / "bin" / "myproject").is_file()
    assert packager.control_dir.is_dir()
    assert stat.S_IMODE((packager.control_dir / "postinst").stat().st_mode) == 0o755
    assert (packager.control_dir / "control").read_text(encoding="utf-8") == (
        "Package: myproject\n"
        "Version: 23.4.2-4\n"
        "License: Apache-2.0\n"
        "Vendor: Example Corp <ops@example.com>\n"
        "Architecture: amd64\n"
        "Maintainer: Example Corp <ops@example.com>\n"
        "Installed-Size: 1\n"
        "Section: misc\n"
        "Priority: extra\n"
        "Homepage: https://example.com/myproject\n"
        "Description: My project\n"
        " .\n"
        " Everything needed to run myproject.\n"
    )
    assert not (packager.control_dir / "conffiles").exists()


def test_md5sums_cover_payload_files_only(
    project: ProjectMetadata,
    config: Config,
    executor: DryRunExecutor,
) -> None:
    packager = DebPackager(project, config, executor=executor)
    packager.build()

    lines = (packager.control_dir / "md5sums").read_text(encoding="utf-8").splitlines()

    assert len(lines) == 3
    assert all("DEBIAN" not in line for line in lines)
    assert lines[0].endswith("opt/myproject/VERSION")
    digest, _, path = lines[0].partition("  ")
    assert len(digest) == 32
    assert not path.startswith("/")


def test_conffiles_list_configured_files(
    project: ProjectMetadata,
    config: Config,
    executor: DryRunExecutor,
) -> None:
    conf = str(project.install_dir / "etc" / "myproject.conf")
    project = dataclasses.replace(project, config_files=(conf,))
    packager = DebPackager(project, config, executor=executor)

    packager.build()

    assert (packager.control_dir / "conffiles").read_text(encoding="utf-8") == f"{conf}\n"
    assert set(packager.documents) == {"control", "conffiles", "md5sums"}


def test_dpkg_deb_command(project: ProjectMetadata, config: Config, executor: DryRunExecutor) -> None:
    packager = DebPackager(project, config, executor=executor)
    packager.build()

    assert executor.commands[0].argv() == [
        "fakeroot",
        "dpkg-deb",
        "-z9",
        "-Zgzip",
        "-D",
        "--build",
        str(packager.staging_dir),
        str(packager.package_path),
    ]
    assert executor.cwds == [packager.temp_dir]


def test_control_lists_relationships(project: ProjectMetadata, config: Config) -> None:
    project = dataclasses.replace(
        project,
        runtime_dependencies=("libc6 (>= 2.31)", "zlib1g"),
        conflicts=("myproject-legacy",),
    )

    text = DebPackager(project, config).render_control()

    assert "Depends: libc6 (>= 2.31), zlib1g\n" in text
    assert "Conflicts: myproject-legacy\n" in text
    assert "Replaces:" not in text
