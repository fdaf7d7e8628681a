"""SVR4 datastream packages built with ``pkgmk`` and ``pkgtrans``."""

from __future__ import annotations

import os
import re
import stat
from dataclasses import dataclass
from pathlib import Path
from typing import ClassVar

from stagepkg.documents import ControlDocument, render_lines
from stagepkg.errors import ValidationError
from stagepkg.naming import solaris_architecture
from stagepkg.shell import Command

from .base import Packager

# SVR4 package abbreviations: a leading letter, at most 32 characters.
PKG_NAME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+-]{0,31}$")

SEARCH_PATH = "/sbin:/usr/sbin:/usr/bin:/usr/sadm/install/bin"


@dataclass(slots=True)
class SolarisPackager(Packager):
    id: ClassVar[str] = "solaris"
    extension: ClassVar[str] = "solaris"

    @property
    def pkginfo_path(self) -> Path:
        return self.temp_dir / "pkginfo"

    @property
    def prototype_path(self) -> Path:
        return self.temp_dir / "Prototype"

    @property
    def postinstall_path(self) -> Path:
        return self.temp_dir / "postinstall"

    @property
    def architecture(self) -> str:
        return solaris_architecture(self.config.architecture)

    def artifact_name(self) -> str:
        project = self.project
        return (
            f"{project.name}-{project.build_version}-{project.build_iteration}"
            f".{self.architecture}.{self.extension}"
        )

    def validate(self) -> None:
        super(SolarisPackager, self).validate()
        if not PKG_NAME_RE.match(self.project.name):
            raise ValidationError(
                "Solaris package names must start with a letter and use at most 32 "
                "letters, digits, '+' or '-'.",
                context={"name": self.project.name},
            )

    def stage(self) -> None:
        self.require_install_tree()
        self.reset_dir(self.staging_dir)
        self.postinstall_path.unlink(missing_ok=True)
        postinst = self.package_script("postinst")
        if postinst is not None:
            self.copy_script(postinst, self.postinstall_path)

    def generate_documents(self) -> None:
        self.write_document("pkginfo", self.pkginfo_path, self.render_pkginfo())
        self.write_document("prototype", self.prototype_path, self.render_prototype())

    def pkginfo(self) -> ControlDocument:
        project = self.project
        return ControlDocument(
            fields=(
                ("CLASSES", "none"),
                ("TZ", "UTC"),
                ("PATH", SEARCH_PATH),
                ("BASEDIR", "/"),
                ("PKG", project.name),
                ("NAME", project.display_name),
                ("ARCH", self.architecture),
                ("VERSION", f"{project.build_version}-{project.build_iteration}"),
                ("CATEGORY", "application"),
                ("DESC", project.summary),
                ("VENDOR", project.maintainer),
                ("EMAIL", project.maintainer),
            ),
            style="equals",
        )

    def render_pkginfo(self) -> str:
        return self.pkginfo().render()

    def render_prototype(self) -> str:
        lines = [f"i pkginfo={self.pkginfo_path}"]
        if self.postinstall_path.is_file():
            lines.append(f"i postinstall={self.postinstall_path}")
        lines.extend(self.prototype_entries())
        return render_lines(lines)

    def prototype_entries(self) -> list[str]:
        """One ``pkgproto`` line per installed path, parents first."""
        install_dir = self.require_install_tree()
        entries = [_prototype_entry(install_dir)]
        entries.extend(_prototype_entry(path) for path in sorted(install_dir.rglob("*")))
        return entries

    def commands(self) -> tuple[Command, Command]:
        return (
            Command(
                program="pkgmk",
                options=(
                    ("-o", None),
                    ("-r", "/"),
                    ("-d", str(self.staging_dir)),
                    ("-f", str(self.prototype_path)),
                ),
            ),
            Command(
                program="pkgtrans",
                options=(("-s", None),),
                arguments=(str(self.staging_dir), str(self.package_path), self.project.name),
            ),
        )

    def assemble(self) -> Path:
        for command in self.commands():
            self.execute(command, cwd=self.temp_dir, phase="assemble")
        return self.package_path


def _prototype_entry(path: Path) -> str:
    info = path.lstat()
    if stat.S_ISLNK(info.st_mode):
        return f"s none {path}={os.readlink(path)}"
    kind = "d" if stat.S_ISDIR(info.st_mode) else "f"
    return f"{kind} none {path} {stat.S_IMODE(info.st_mode):04o} root root"
