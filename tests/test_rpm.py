import dataclasses

import pytest

from stagepkg.config import Config
from stagepkg.errors import ValidationError
from stagepkg.packagers.rpm import RpmPackager
from stagepkg.project import ProjectMetadata
from stagepkg.shell import DryRunExecutor


def test_artifact_name(project: ProjectMetadata, config: Config) -> None:
    project = dataclasses.replace(project, build_version="1.2.3-rc1")

    assert RpmPackager(project, config).artifact_name() == "myproject-1.2.3_rc1-4.x86_64.rpm"


def test_name_with_whitespace_is_rejected(project: ProjectMetadata, config: Config) -> None:
    project = dataclasses.replace(project, name="my project")

    with pytest.raises(ValidationError):
        RpmPackager(project, config).validate()


def test_spec_file_describes_staged_tree(
    project: ProjectMetadata,
    config: Config,
    executor: DryRunExecutor,
) -> None:
    conf = str(project.install_dir / "etc" / "myproject.conf")
    project = dataclasses.replace(project, config_files=(conf,), runtime_dependencies=("zlib",))
    (project.package_scripts_path / "postinst").write_text(
        "#!/bin/sh\necho installed\n", encoding="utf-8"
    )
    packager = RpmPackager(project, config, executor=executor)

    packager.build()

    spec = packager.spec_path.read_text(encoding="utf-8")
    install_dir = str(project.install_dir)
    assert "Name: myproject\n" in spec
    assert "Version: 23.4.2\n" in spec
    assert "Release: 4\n" in spec
    assert "BuildArch: x86_64\n" in spec
    assert "Summary: My project\n" in spec
    assert "Requires: zlib\n" in spec
    assert "\n%post\n#!/bin/sh\necho installed\n" in spec
    assert "%preun" not in spec
    files = spec.split("%files\n", 1)[1].splitlines()
    assert files[0] == "%defattr(-,root,root,-)"
    assert files[1] == f"%dir {install_dir}"
    assert f"{install_dir}/bin/myproject" in files
    assert f"%dir {install_dir}/bin" in files
    assert files[-1] == f"%config(noreplace) {conf}"
    assert files.count(conf) == 0


def test_rpmbuild_command_writes_directly_to_package_dir(
    project: ProjectMetadata,
    config: Config,
) -> None:
    packager = RpmPackager(project, config)

    assert packager.command().argv() == [
        "fakeroot",
        "rpmbuild",
        "-bb",
        "--buildroot",
        str(packager.staging_dir / "BUILD"),
        "--define",
        f"_topdir {packager.staging_dir}",
        "--define",
        f"_rpmdir {config.package_dir}",
        "--define",
        "_build_name_fmt myproject-23.4.2-4.x86_64.rpm",
        str(packager.staging_dir / "SPECS" / "myproject.spec"),
    ]


def test_signing_runs_after_build_when_configured(
    project: ProjectMetadata,
    config: Config,
    executor: DryRunExecutor,
) -> None:
    config.sign_rpm = True
    config.signing_identity = "Release Key <release@example.com>"
    packager = RpmPackager(project, config, executor=executor)

    packager.build()

    assert executor.programs() == ["rpmbuild", "rpmsign"]
    assert executor.commands[1].argv() == [
        "rpmsign",
        "--addsign",
        "--define",
        "_gpg_name Release Key <release@example.com>",
        str(packager.package_path),
    ]


def test_signing_needs_an_identity(project: ProjectMetadata, config: Config) -> None:
    config.sign_rpm = True

    assert RpmPackager(project, config).signing_command() is None
