"""Debian binary archives built with ``dpkg-deb``."""

from __future__ import annotations

import hashlib
import math
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import ClassVar

from stagepkg.documents import ControlDocument, render_lines
from stagepkg.errors import ValidationError
from stagepkg.naming import debian_architecture, debian_name, debian_version
from stagepkg.shell import Command

from .base import Packager

MAINTAINER_RE = re.compile(r"^[^<>\n]+ <[^<>@\s]+@[^<>\s]+>$")

MAINTAINER_SCRIPTS = ("preinst", "postinst", "prerm", "postrm")


@dataclass(slots=True)
class DebPackager(Packager):
    id: ClassVar[str] = "deb"
    extension: ClassVar[str] = "deb"

    @property
    def control_dir(self) -> Path:
        return self.staging_dir / "DEBIAN"

    @property
    def install_root(self) -> Path:
        return self.staging_dir / self.project.install_dir.relative_to(self.project.install_dir.anchor)

    @property
    def package_name(self) -> str:
        return debian_name(self.project.name)

    @property
    def version(self) -> str:
        return f"{debian_version(self.project.build_version)}-{self.project.build_iteration}"

    @property
    def architecture(self) -> str:
        return debian_architecture(self.config.architecture)

    def artifact_name(self) -> str:
        return f"{self.package_name}_{self.version}_{self.architecture}.{self.extension}"

    def validate(self) -> None:
        super(DebPackager, self).validate()
        if not MAINTAINER_RE.match(self.project.maintainer):
            raise ValidationError(
                "Debian packages require a maintainer in 'Name <email>' form.",
                hint="For example: maintainer = 'Example Corp <ops@example.com>'.",
                context={"maintainer": self.project.maintainer},
            )

    def stage(self) -> None:
        self.reset_dir(self.staging_dir)
        self.stage_install_tree(self.install_root)
        self.control_dir.mkdir(mode=0o755)
        os.chmod(self.control_dir, 0o755)
        for name in MAINTAINER_SCRIPTS:
            script = self.package_script(name)
            if script is not None:
                self.copy_script(script, self.control_dir / name)

    def generate_documents(self) -> None:
        self.write_document("control", self.control_dir / "control", self.render_control())
        if self.project.config_files:
            self.write_document("conffiles", self.control_dir / "conffiles", self.render_conffiles())
        self.write_document("md5sums", self.control_dir / "md5sums", self.render_md5sums())

    def control(self) -> ControlDocument:
        project = self.project
        description = project.description.strip() or project.summary
        return ControlDocument(
            fields=(
                ("Package", self.package_name),
                ("Version", self.version),
                ("License", project.license),
                ("Vendor", project.maintainer),
                ("Architecture", self.architecture),
                ("Maintainer", project.maintainer),
                ("Installed-Size", str(self.installed_size())),
                ("Depends", ", ".join(project.runtime_dependencies) or None),
                ("Conflicts", ", ".join(project.conflicts) or None),
                ("Replaces", ", ".join(project.replaces) or None),
                ("Section", "misc"),
                ("Priority", "extra"),
                ("Homepage", project.homepage or None),
                ("Description", description),
            ),
        )

    def render_control(self) -> str:
        return self.control().render()

    def render_conffiles(self) -> str:
        return render_lines(self.project.config_files)

    def render_md5sums(self) -> str:
        lines = []
        for path in self._payload_files():
            digest = hashlib.md5(path.read_bytes(), usedforsecurity=False).hexdigest()
            lines.append(f"{digest}  {path.relative_to(self.staging_dir).as_posix()}")
        return render_lines(lines)

    def installed_size(self) -> int:
        """Payload size in KiB, rounded up."""
        total = sum(path.lstat().st_size for path in self._payload_files())
        return math.ceil(total / 1024)

    def command(self) -> Command:
        return Command(
            launcher=("fakeroot",),
            program="dpkg-deb",
            options=(
                ("-z9", None),
                ("-Zgzip", None),
                ("-D", None),
                ("--build", str(self.staging_dir)),
            ),
            arguments=(str(self.package_path),),
        )

    def assemble(self) -> Path:
        self.execute(self.command(), cwd=self.temp_dir, phase="assemble")
        return self.package_path

    def _payload_files(self) -> list[Path]:
        if not self.staging_dir.is_dir():
            return []
        return sorted(
            path
            for path in self.staging_dir.rglob("*")
            if path.is_file()
            and not path.is_symlink()
            and self.control_dir not in path.parents
        )
