"""Self-extracting shell archives built with ``makeself``.

This is the catch-all format for platforms without a native package
manager. The archive unpacks into a temporary directory and runs
``makeselfinst``, which copies the payload into the install directory.
"""

from __future__ import annotations

import shlex
from dataclasses import dataclass
from pathlib import Path
from typing import ClassVar

from stagepkg.documents import render_lines
from stagepkg.shell import Command

from .base import Packager

INSTALL_SCRIPT = "makeselfinst"
SCRIPT_MODE = 0o755


@dataclass(slots=True)
class MakeselfPackager(Packager):
    id: ClassVar[str] = "makeself"
    extension: ClassVar[str] = "sh"

    @property
    def install_script(self) -> Path:
        return self.staging_dir / INSTALL_SCRIPT

    def artifact_name(self) -> str:
        project = self.project
        return (
            f"{project.name}-{project.build_version}_{project.build_iteration}"
            f".{self.config.architecture}.{self.extension}"
        )

    def stage(self) -> None:
        self.reset_dir(self.staging_dir)
        self.stage_install_tree(self.staging_dir)
        postinst = self.package_script("postinst")
        if postinst is not None:
            self.copy_script(postinst, self.staging_dir / "postinst", mode=SCRIPT_MODE)

    def generate_documents(self) -> None:
        provided = self.package_script(INSTALL_SCRIPT)
        if provided is not None:
            content = self.read_script(provided)
        else:
            content = self.render_install_script()
        self.write_document("install_script", self.install_script, content, mode=SCRIPT_MODE)

    def render_install_script(self) -> str:
        install_dir = shlex.quote(str(self.project.install_dir))
        return render_lines(
            [
                "#!/bin/sh",
                "set -e",
                "",
                f"INSTALL_DIR={install_dir}",
                'mkdir -p "$INSTALL_DIR"',
                'cp -R . "$INSTALL_DIR"',
                f'rm -f "$INSTALL_DIR/{INSTALL_SCRIPT}" "$INSTALL_DIR/postinst"',
                "",
                "if [ -x ./postinst ]; then",
                "  ./postinst",
                "fi",
            ]
        )

    def command(self) -> Command:
        return Command(
            program="makeself",
            options=(("--gzip", None),),
            arguments=(
                str(self.staging_dir),
                str(self.package_path),
                self.project.display_name,
                f"./{INSTALL_SCRIPT}",
            ),
        )

    def assemble(self) -> Path:
        self.execute(self.command(), cwd=self.temp_dir, phase="assemble")
        return self.package_path
