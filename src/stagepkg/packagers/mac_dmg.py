"""Compressed macOS disk image wrapping the product package."""

from __future__ import annotations

import re
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import ClassVar

from stagepkg.documents import render_lines
from stagepkg.errors import ExternalToolFailure, StagepkgError, ValidationError
from stagepkg.shell import Command

from .base import Packager
from .mac_pkg import MacPkgPackager

BOUNDS_RE = re.compile(r"^\s*\d+\s*,\s*\d+\s*,\s*\d+\s*,\s*\d+\s*$")
POSITION_RE = re.compile(r"^\s*\d+\s*,\s*\d+\s*$")

# Writable scratch image size; hdiutil convert shrinks the final image.
WRITABLE_IMAGE_SIZE = "512000k"


@dataclass(slots=True)
class MacDmgPackager(Packager):
    id: ClassVar[str] = "mac_dmg"
    extension: ClassVar[str] = "dmg"

    @property
    def volume_name(self) -> str:
        return self.project.display_name

    @property
    def writable_dmg(self) -> Path:
        return self.temp_dir / f"{self.project.name}-writable.dmg"

    @property
    def mount_point(self) -> Path:
        return self.temp_dir / "mount"

    @property
    def layout_script_path(self) -> Path:
        return self.temp_dir / "create_dmg.osascript"

    @property
    def product_pkg(self) -> Path:
        return MacPkgPackager(self.project, self.config).package_path

    def artifact_name(self) -> str:
        project = self.project
        return f"{project.name}-{project.build_version}-{project.build_iteration}.{self.extension}"

    def intermediates(self) -> tuple[Path, ...]:
        return (self.writable_dmg,)

    def validate(self) -> None:
        super(MacDmgPackager, self).validate()
        if not BOUNDS_RE.match(self.config.dmg_window_bounds):
            raise ValidationError(
                "dmg_window_bounds must be four comma-separated integers.",
                hint="For example: '100, 100, 750, 600'.",
                context={"dmg_window_bounds": self.config.dmg_window_bounds},
            )
        if not POSITION_RE.match(self.config.dmg_pkg_position):
            raise ValidationError(
                "dmg_pkg_position must be two comma-separated integers.",
                hint="For example: '535, 50'.",
                context={"dmg_pkg_position": self.config.dmg_pkg_position},
            )

    def stage(self) -> None:
        product = self.product_pkg
        if not product.is_file():
            raise ValidationError(
                "The product package to wrap does not exist.",
                hint="Build the mac_pkg package before the mac_dmg package.",
                context={"path": str(product)},
            )
        self.reset_dir(self.staging_dir)
        with self._filesystem("copy", product):
            shutil.copy2(product, self.staging_dir / product.name)
            self.mount_point.mkdir(exist_ok=True)
        background = self.resource_path("Resources", "background.png")
        if background.is_file():
            support = self.staging_dir / ".support"
            with self._filesystem("copy", background):
                support.mkdir()
                shutil.copy2(background, support / "background.png")

    def generate_documents(self) -> None:
        self.write_document("layout", self.layout_script_path, self.render_layout_script())

    def render_layout_script(self) -> str:
        volume = _applescript_string(self.volume_name)
        pkg = _applescript_string(self.product_pkg.name)
        bounds = self.config.dmg_window_bounds.strip()
        position = self.config.dmg_pkg_position.strip()
        lines = [
            'tell application "Finder"',
            f"  tell disk {volume}",
            "    open",
            "    set current view of container window to icon view",
            "    set toolbar visible of container window to false",
            "    set statusbar visible of container window to false",
            f"    set the bounds of container window to {{{bounds}}}",
            "    set theViewOptions to the icon view options of container window",
            "    set arrangement of theViewOptions to not arranged",
            "    set icon size of theViewOptions to 72",
        ]
        if (self.staging_dir / ".support" / "background.png").is_file():
            lines.append('    set background picture of theViewOptions to file ".support:background.png"')
        lines.extend(
            [
                "    delay 5",
                f"    set position of item {pkg} of container window to {{{position}}}",
                "    update without registering applications",
                "    delay 5",
                "  end tell",
                "end tell",
            ]
        )
        return render_lines(lines)

    def commands(self) -> tuple[Command, ...]:
        return (
            Command(
                program="hdiutil",
                subcommand=("create",),
                options=(
                    ("-srcfolder", str(self.staging_dir)),
                    ("-volname", self.volume_name),
                    ("-fs", "HFS+"),
                    ("-fsargs", "-c c=64,a=16,e=16"),
                    ("-format", "UDRW"),
                    ("-size", WRITABLE_IMAGE_SIZE),
                    ("-ov", None),
                ),
                arguments=(str(self.writable_dmg),),
            ),
            Command(
                program="hdiutil",
                subcommand=("attach",),
                options=(
                    ("-readwrite", None),
                    ("-noverify", None),
                    ("-noautoopen", None),
                    ("-mountpoint", str(self.mount_point)),
                ),
                arguments=(str(self.writable_dmg),),
            ),
            Command(program="osascript", arguments=(str(self.layout_script_path),)),
            Command(program="hdiutil", subcommand=("detach",), arguments=(str(self.mount_point),)),
            Command(
                program="hdiutil",
                subcommand=("convert", str(self.writable_dmg)),
                options=(
                    ("-format", "UDZO"),
                    ("-imagekey", "zlib-level=9"),
                    ("-ov", None),
                    ("-o", str(self.package_path)),
                ),
            ),
        )

    def assemble(self) -> Path:
        create, attach, layout, detach, convert = self.commands()
        self.execute(create, cwd=self.temp_dir, phase="assemble")
        self.execute(attach, cwd=self.temp_dir, phase="assemble")
        try:
            self.execute(layout, cwd=self.temp_dir, phase="assemble")
        except StagepkgError:
            self._detach_after_failure(detach)
            raise
        self.execute(detach, cwd=self.temp_dir, phase="assemble")
        self.execute(convert, cwd=self.temp_dir, phase="assemble")
        return self.package_path

    def _detach_after_failure(self, detach: Command) -> None:
        try:
            self.execute(detach, cwd=self.temp_dir, phase="assemble")
        except ExternalToolFailure as exc:
            # the layout failure is the one that propagates
            self._log(
                "detach_failed",
                phase="assemble",
                message=f"Unable to detach {self.mount_point}.",
                level="warning",
                extra={"code": exc.code, "exit_code": exc.exit_code},
            )


def _applescript_string(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'
