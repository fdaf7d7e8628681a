"""Packager registry and platform selection."""

from __future__ import annotations

from stagepkg.config import Config
from stagepkg.errors import ValidationError
from stagepkg.observability import StructuredLogger
from stagepkg.project import ProjectMetadata
from stagepkg.shell import Executor

from .base import Packager, PackagerPaths, PackageResult
from .deb import DebPackager
from .mac_dmg import MacDmgPackager
from .mac_pkg import MacPkgPackager, MacPkgState
from .makeself import MakeselfPackager
from .msi import MsiPackager
from .rpm import RpmPackager
from .solaris import SolarisPackager

PACKAGERS: dict[str, type[Packager]] = {
    packager.id: packager
    for packager in (
        MacPkgPackager,
        MacDmgPackager,
        DebPackager,
        RpmPackager,
        MsiPackager,
        MakeselfPackager,
        SolarisPackager,
    )
}

PLATFORM_FORMATS: dict[str, tuple[str, ...]] = {
    "mac_os_x": ("mac_pkg",),
    "debian": ("deb",),
    "ubuntu": ("deb",),
    "rhel": ("rpm",),
    "fedora": ("rpm",),
    "suse": ("rpm",),
    "amazon": ("rpm",),
    "windows": ("msi",),
    "solaris2": ("solaris",),
}


def get_packager(
    format: str,
    project: ProjectMetadata,
    config: Config,
    *,
    executor: Executor | None = None,
    logger: StructuredLogger | None = None,
) -> Packager:
    try:
        packager_cls = PACKAGERS[format]
    except KeyError:
        raise ValidationError(
            "Unsupported package format.",
            hint=f"Choose one of: {', '.join(sorted(PACKAGERS))}.",
            context={"format": format},
        ) from None
    packager = packager_cls(project, config)
    if executor is not None:
        packager.executor = executor
    if logger is not None:
        packager.logger = logger
    return packager


def packagers_for_platform(family: str, config: Config) -> tuple[str, ...]:
    """Formats to build, in order, for a host platform family."""
    formats = PLATFORM_FORMATS.get(family, ("makeself",))
    if family == "mac_os_x" and config.build_dmg:
        formats = (*formats, "mac_dmg")
    return formats


__all__ = [
    "DebPackager",
    "MacDmgPackager",
    "MacPkgPackager",
    "MacPkgState",
    "MakeselfPackager",
    "MsiPackager",
    "PACKAGERS",
    "PLATFORM_FORMATS",
    "PackageResult",
    "Packager",
    "PackagerPaths",
    "RpmPackager",
    "SolarisPackager",
    "get_packager",
    "packagers_for_platform",
]
