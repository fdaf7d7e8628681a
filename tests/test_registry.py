import pytest

from stagepkg import PACKAGERS, get_packager, packagers_for_platform
from stagepkg.config import Config
from stagepkg.errors import ValidationError
from stagepkg.observability import StructuredLogger
from stagepkg.packagers import DebPackager, MacPkgPackager, MakeselfPackager
from stagepkg.project import ProjectMetadata
from stagepkg.shell import DryRunExecutor, ShellExecutor


def test_registry_is_closed_over_known_formats() -> None:
    assert set(PACKAGERS) == {"mac_pkg", "mac_dmg", "deb", "rpm", "msi", "makeself", "solaris"}
    assert all(packager.id == key for key, packager in PACKAGERS.items())


def test_get_packager_injects_collaborators(
    omnibus_project: ProjectMetadata,
    omnibus_config: Config,
) -> None:
    executor = DryRunExecutor()
    logger = StructuredLogger()

    packager = get_packager("mac_pkg", omnibus_project, omnibus_config, executor=executor, logger=logger)

    assert isinstance(packager, MacPkgPackager)
    assert packager.executor is executor
    assert packager.logger is logger
    assert packager.project is omnibus_project


def test_get_packager_defaults_to_shell_executor(
    omnibus_project: ProjectMetadata,
    omnibus_config: Config,
) -> None:
    packager = get_packager("deb", omnibus_project, omnibus_config)

    assert isinstance(packager, DebPackager)
    assert isinstance(packager.executor, ShellExecutor)


def test_unknown_format_fails_immediately(
    omnibus_project: ProjectMetadata,
    omnibus_config: Config,
) -> None:
    with pytest.raises(ValidationError) as excinfo:
        get_packager("appimage", omnibus_project, omnibus_config)

    assert excinfo.value.context == {"format": "appimage"}
    assert excinfo.value.hint is not None
    assert "mac_pkg" in excinfo.value.hint


@pytest.mark.parametrize(
    ("family", "expected"),
    [
        ("mac_os_x", ("mac_pkg", "mac_dmg")),
        ("debian", ("deb",)),
        ("ubuntu", ("deb",)),
        ("rhel", ("rpm",)),
        ("fedora", ("rpm",)),
        ("windows", ("msi",)),
        ("solaris2", ("solaris",)),
        ("freebsd", ("makeself",)),
    ],
)
def test_packagers_for_platform(family: str, expected: tuple[str, ...]) -> None:
    assert packagers_for_platform(family, Config()) == expected


def test_mac_dmg_follows_build_dmg_toggle() -> None:
    assert packagers_for_platform("mac_os_x", Config(build_dmg=False)) == ("mac_pkg",)


def test_selected_formats_build_with_shared_logger(
    project: ProjectMetadata,
    config: Config,
) -> None:
    logger = StructuredLogger()
    executor = DryRunExecutor()

    results = [
        get_packager(name, project, config, executor=executor, logger=logger).build()
        for name in packagers_for_platform("freebsd", config)
    ]

    assert [result.format for result in results] == ["makeself"]
    assert isinstance(get_packager("makeself", project, config), MakeselfPackager)
    assert logger.records_for_packager("makeself")[0]["operation"] == "package_start"
