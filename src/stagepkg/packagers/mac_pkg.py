"""macOS component and product installer packages.

Builds a component package with ``pkgbuild``, describes it in a productbuild
``Distribution`` document, then wraps both into the final product package
with ``productbuild``, optionally signing it.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import ClassVar

from stagepkg.documents import BlankLine, XmlComment, XmlElement, element, render_xml
from stagepkg.errors import StagepkgError
from stagepkg.naming import resolve_identifier
from stagepkg.shell import Command, Option

from .base import Packager

# (element, file name, extra attributes) for optional installer decorations,
# in the order they appear in the Distribution document.
DECORATIVE_RESOURCES: tuple[tuple[str, str, dict[str, str]], ...] = (
    ("background", "background.png", {"alignment": "bottomleft", "mime-type": "image/png"}),
    ("welcome", "welcome.html", {"mime-type": "text/html"}),
    ("license", "license.html", {"mime-type": "text/html"}),
)


class MacPkgState(StrEnum):
    CREATED = "created"
    VALIDATED = "validated"
    COMPONENT_BUILT = "component_built"
    DISTRIBUTION_GENERATED = "distribution_generated"
    PRODUCT_BUILT = "product_built"
    FAILED = "failed"


@dataclass(slots=True)
class MacPkgPackager(Packager):
    id: ClassVar[str] = "mac_pkg"
    extension: ClassVar[str] = "pkg"
    staging_subdir: ClassVar[str] = "Resources"

    state: MacPkgState = field(init=False, default=MacPkgState.CREATED)

    @property
    def identifier(self) -> str:
        return resolve_identifier(
            self.project.mac_pkg_identifier,
            maintainer=self.project.maintainer,
            name=self.project.name,
        )

    @property
    def resources_dir(self) -> Path:
        return self.staging_dir

    @property
    def distribution_path(self) -> Path:
        return self.temp_dir / "Distribution"

    def component_pkg(self) -> str:
        return f"{self.project.name}-core.{self.extension}"

    def artifact_name(self) -> str:
        project = self.project
        return f"{project.name}-{project.build_version}-{project.build_iteration}.{self.extension}"

    def artifact_names(self) -> tuple[str, ...]:
        return (self.component_pkg(), self.artifact_name())

    def intermediates(self) -> tuple[Path, ...]:
        return (self.temp_dir / self.component_pkg(),)

    def validate(self) -> None:
        with self._step(MacPkgState.VALIDATED):
            super(MacPkgPackager, self).validate()
            resolve_identifier(
                self.project.mac_pkg_identifier,
                maintainer=self.project.maintainer,
                name=self.project.name,
            )

    def stage(self) -> None:
        self.require_install_tree()
        self.reset_dir(self.resources_dir)
        self.copy_tree(self.resource_path("Resources"), self.resources_dir)

    def generate_documents(self) -> None:
        self.build_component_pkg()
        self.generate_distribution()

    def assemble(self) -> Path:
        return self.build_product_pkg()

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def component_command(self) -> Command:
        project = self.project
        return Command(
            program="pkgbuild",
            options=(
                ("--identifier", self.identifier),
                ("--version", project.build_version),
                ("--scripts", str(project.package_scripts_path)),
                ("--root", str(project.install_dir)),
                ("--install-location", str(project.install_dir)),
            ),
            arguments=(self.component_pkg(),),
        )

    def product_command(self) -> Command:
        options: list[Option] = [
            ("--distribution", str(self.distribution_path)),
            ("--resources", str(self.resources_dir)),
        ]
        if self.config.sign_pkg and self.config.signing_identity:
            options.append(("--sign", self.config.signing_identity))
        return Command(
            program="productbuild",
            options=tuple(options),
            arguments=(str(self.package_path),),
        )

    def build_component_pkg(self) -> Path:
        with self._step(MacPkgState.COMPONENT_BUILT):
            self.execute(self.component_command(), cwd=self.temp_dir, phase="component")
        return self.temp_dir / self.component_pkg()

    def distribution(self) -> XmlElement:
        identifier = self.identifier
        decorations = tuple(
            element(tag, {"file": filename, **attributes})
            for tag, filename, attributes in DECORATIVE_RESOURCES
            if (self.resources_dir / filename).is_file()
        )
        return element(
            "installer-gui-script",
            {"minSpecVersion": "1"},
            element("title", text=self.project.display_name),
            *decorations,
            BlankLine(),
            XmlComment("Generated by productbuild - - synthesize"),
            element("pkg-ref", {"id": identifier}),
            element("options", {"customize": "never", "require-scripts": "false"}),
            element(
                "choices-outline",
                None,
                element(
                    "line",
                    {"choice": "default"},
                    element("line", {"choice": identifier}),
                ),
            ),
            element("choice", {"id": "default"}),
            element(
                "choice",
                {"id": identifier, "visible": "false"},
                element("pkg-ref", {"id": identifier}),
            ),
            element(
                "pkg-ref",
                {
                    "id": identifier,
                    "version": self.project.build_version,
                    "onConclusion": "none",
                },
                text=self.component_pkg(),
            ),
        )

    def render_distribution(self) -> str:
        return render_xml(self.distribution())

    def generate_distribution(self) -> Path:
        with self._step(MacPkgState.DISTRIBUTION_GENERATED):
            return self.write_document(
                "distribution", self.distribution_path, self.render_distribution()
            )

    def build_product_pkg(self) -> Path:
        with self._step(MacPkgState.PRODUCT_BUILT):
            self.execute(self.product_command(), cwd=self.temp_dir, phase="product")
        return self.package_path

    @contextmanager
    def _step(self, reached: MacPkgState) -> Iterator[None]:
        try:
            yield
        except Exception:
            self.state = MacPkgState.FAILED
            raise
        self.state = reached

    def on_failure(self, error: StagepkgError) -> None:
        self.state = MacPkgState.FAILED
