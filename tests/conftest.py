"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from stagepkg.config import Config
from stagepkg.project import ProjectMetadata
from stagepkg.shell import DryRunExecutor


@pytest.fixture
def executor() -> DryRunExecutor:
    """Record tool invocations instead of running native packaging tools."""
    return DryRunExecutor()


@pytest.fixture
def install_dir(tmp_path: Path) -> Path:
    root = tmp_path / "opt" / "myproject"
    (root / "bin").mkdir(parents=True)
    (root / "etc").mkdir()
    tool = root / "bin" / "myproject"
    tool.write_text("#!/bin/sh\necho myproject\n", encoding="utf-8")
    tool.chmod(0o755)
    (root / "etc" / "myproject.conf").write_text("verbose = false\n", encoding="utf-8")
    (root / "VERSION").write_text("23.4.2\n", encoding="utf-8")
    return root


@pytest.fixture
def project(tmp_path: Path, install_dir: Path) -> ProjectMetadata:
    """A project whose install tree and package scripts exist on disk."""
    scripts = tmp_path / "package-scripts" / "myproject"
    scripts.mkdir(parents=True)
    return ProjectMetadata(
        name="myproject",
        build_version="23.4.2",
        build_iteration=4,
        maintainer="Example Corp <ops@example.com>",
        install_dir=install_dir,
        files_path=tmp_path / "files",
        package_scripts_path=scripts,
        friendly_name="Myproject",
        description="My project\n\nEverything needed to run myproject.",
        homepage="https://example.com/myproject",
        license="Apache-2.0",
        mac_pkg_identifier="com.mycorp.myproject",
        msi_upgrade_code="2CD7259C-776D-4DDB-A4C8-6E544E580AA1",
    )


@pytest.fixture
def config(tmp_path: Path) -> Config:
    return Config(base_dir=tmp_path / "omnibus", architecture="x86_64")


@pytest.fixture
def omnibus_project() -> ProjectMetadata:
    """Project metadata pointing at conventional paths that need not exist."""
    return ProjectMetadata(
        name="myproject",
        build_version="23.4.2",
        build_iteration=4,
        maintainer="Joe's Software",
        install_dir=Path("/opt/myproject"),
        files_path=Path("/omnibus/project/root/files"),
        package_scripts_path=Path("/omnibus/project/root/scripts"),
        friendly_name="Myproject",
        mac_pkg_identifier="com.mycorp.myproject",
    )


@pytest.fixture
def omnibus_config() -> Config:
    return Config(
        package_dir=Path("/home/someuser/omnibus-myproject/pkg"),
        package_tmp=Path("/var/cache/omnibus/pkg-tmp"),
        architecture="x86_64",
    )
