"""Windows installers built with the WiX toolset (heat, candle, light)."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import ClassVar

from stagepkg.documents import (
    UTF8_DECLARATION,
    XmlElement,
    XmlProcessingInstruction,
    element,
    render_xml,
)
from stagepkg.errors import DocumentGenerationError, MissingRequiredConfiguration, ValidationError
from stagepkg.naming import windows_version
from stagepkg.shell import Command

from .base import Packager

GUID_RE = re.compile(
    r"^\{?[0-9A-Fa-f]{8}-[0-9A-Fa-f]{4}-[0-9A-Fa-f]{4}-[0-9A-Fa-f]{4}-[0-9A-Fa-f]{12}\}?$"
)

WIX_NAMESPACE = "http://schemas.microsoft.com/wix/2006/wi"
WIX_LOCALIZATION_NAMESPACE = "http://schemas.microsoft.com/wix/2006/localization"

HARVEST_GROUP = "ProjectDir"
INSTALL_DIRECTORY_ID = "PROJECTLOCATION"


@dataclass(slots=True)
class MsiPackager(Packager):
    id: ClassVar[str] = "msi"
    extension: ClassVar[str] = "msi"
    staging_subdir: ClassVar[str] = "Resources"
    required_fields: ClassVar[tuple[tuple[str, str], ...]] = (
        ("msi_upgrade_code", "'2CD7259C-776D-4DDB-A4C8-6E544E580AA1'"),
    )

    @property
    def upgrade_code(self) -> str:
        code = self.project.msi_upgrade_code
        if not code:
            raise MissingRequiredConfiguration(
                "msi_upgrade_code",
                "'2CD7259C-776D-4DDB-A4C8-6E544E580AA1'",
                context={"packager": self.id},
            )
        return code.strip("{}").upper()

    @property
    def source_path(self) -> Path:
        return self.temp_dir / "source.wxs"

    @property
    def parameters_path(self) -> Path:
        return self.temp_dir / "parameters.wxi"

    @property
    def localization_path(self) -> Path:
        return self.temp_dir / "localization-en-us.wxl"

    @property
    def license_rtf(self) -> Path:
        return self.staging_dir / "assets" / "LICENSE.rtf"

    def artifact_name(self) -> str:
        project = self.project
        return f"{project.name}-{project.build_version}-{project.build_iteration}.{self.extension}"

    def validate(self) -> None:
        super(MsiPackager, self).validate()
        if not GUID_RE.match(self.project.msi_upgrade_code or ""):
            raise ValidationError(
                "msi_upgrade_code must be a GUID.",
                hint="Generate one once with `uuidgen` and keep it stable across releases.",
                context={"msi_upgrade_code": self.project.msi_upgrade_code or ""},
            )
        # MSI versions are numeric; reject anything windows_version cannot map.
        windows_version(self.project.build_version)

    def stage(self) -> None:
        self.require_install_tree()
        self.reset_dir(self.staging_dir)
        self.copy_tree(self.resource_path("Resources"), self.staging_dir)

    def generate_documents(self) -> None:
        self.write_document("parameters", self.parameters_path, self.render_parameters())
        self.write_document("localization", self.localization_path, self.render_localization())
        self.write_document("source", self.source_path, self.render_source())

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def parameters(self) -> XmlElement:
        project = self.project
        values = (
            ("VersionNumber", windows_version(project.build_version)),
            ("DisplayVersionNumber", f"{project.build_version}-{project.build_iteration}"),
            ("UpgradeCode", self.upgrade_code),
            ("ProjectLocationDir", project.name),
        )
        definitions = []
        for name, value in values:
            if '"' in value:
                raise DocumentGenerationError(
                    "WiX preprocessor values cannot contain double quotes.",
                    context={"parameter": name, "value": value},
                )
            definitions.append(XmlProcessingInstruction("define", f'{name}="{value}" '))
        return element("Include", None, *definitions)

    def localization(self) -> XmlElement:
        project = self.project
        strings = (
            ("LANG", "1033"),
            ("ProductName", project.display_name),
            ("ManufacturerName", project.maintainer),
            ("FeatureMainName", project.display_name),
            ("PackageDescription", project.summary),
            (
                "DowngradeErrorMessage",
                f"A newer version of {project.display_name} is already installed.",
            ),
        )
        return element(
            "WixLocalization",
            {"Culture": "en-us", "xmlns": WIX_LOCALIZATION_NAMESPACE},
            *(element("String", {"Id": key}, text=value) for key, value in strings),
        )

    def source(self) -> XmlElement:
        variables = []
        if self.license_rtf.is_file():
            variables.append(
                element("WixVariable", {"Id": "WixUILicenseRtf", "Value": str(self.license_rtf)})
            )
        return element(
            "Wix",
            {"xmlns": WIX_NAMESPACE},
            XmlProcessingInstruction("include", f"{self.parameters_path.name} "),
            element(
                "Product",
                {
                    "Id": "*",
                    "Name": "!(loc.ProductName)",
                    "Language": "!(loc.LANG)",
                    "Version": "$(var.VersionNumber)",
                    "Manufacturer": "!(loc.ManufacturerName)",
                    "UpgradeCode": "$(var.UpgradeCode)",
                },
                element(
                    "Package",
                    {
                        "InstallerVersion": "200",
                        "Compressed": "yes",
                        "InstallScope": "perMachine",
                        "Description": "!(loc.PackageDescription)",
                    },
                ),
                element("MajorUpgrade", {"DowngradeErrorMessage": "!(loc.DowngradeErrorMessage)"}),
                element("Media", {"Id": "1", "Cabinet": "project.cab", "EmbedCab": "yes"}),
                element(
                    "Directory",
                    {"Id": "TARGETDIR", "Name": "SourceDir"},
                    element(
                        "Directory",
                        {"Id": "ProgramFilesFolder"},
                        element(
                            "Directory",
                            {"Id": INSTALL_DIRECTORY_ID, "Name": "$(var.ProjectLocationDir)"},
                        ),
                    ),
                ),
                element(
                    "Feature",
                    {"Id": "ProjectFeature", "Title": "!(loc.FeatureMainName)", "Level": "1"},
                    element("ComponentGroupRef", {"Id": HARVEST_GROUP}),
                ),
                element("Property", {"Id": "WIXUI_INSTALLDIR", "Value": INSTALL_DIRECTORY_ID}),
                element("UIRef", {"Id": "WixUI_InstallDir"}),
                *variables,
            ),
        )

    def render_parameters(self) -> str:
        return render_xml(self.parameters(), declaration=UTF8_DECLARATION)

    def render_localization(self) -> str:
        return render_xml(self.localization(), declaration=UTF8_DECLARATION)

    def render_source(self) -> str:
        return render_xml(self.source(), declaration=UTF8_DECLARATION)

    # ------------------------------------------------------------------
    # Tool chain
    # ------------------------------------------------------------------

    def commands(self) -> tuple[Command, ...]:
        install_dir = str(self.project.install_dir)
        commands = [
            Command(
                program="heat.exe",
                subcommand=("dir", install_dir),
                options=(
                    ("-nologo", None),
                    ("-srd", None),
                    ("-gg", None),
                    ("-cg", HARVEST_GROUP),
                    ("-dr", INSTALL_DIRECTORY_ID),
                    ("-var", "var.ProjectSourceDir"),
                    ("-out", "project-files.wxs"),
                ),
            ),
            Command(
                program="candle.exe",
                options=(
                    ("-nologo", None),
                    ("-ext", "WixUIExtension"),
                    (f"-dProjectSourceDir={install_dir}", None),
                ),
                arguments=("project-files.wxs", self.source_path.name),
            ),
            Command(
                program="light.exe",
                options=(
                    ("-nologo", None),
                    ("-ext", "WixUIExtension"),
                    ("-cultures:en-us", None),
                    ("-loc", self.localization_path.name),
                    ("-out", str(self.package_path)),
                ),
                arguments=("project-files.wixobj", self.source_path.with_suffix(".wixobj").name),
            ),
        ]
        signing = self.signing_command()
        if signing is not None:
            commands.append(signing)
        return tuple(commands)

    def signing_command(self) -> Command | None:
        if not (self.config.sign_msi and self.config.signing_identity):
            return None
        return Command(
            program="signtool.exe",
            subcommand=("sign",),
            options=(
                ("/n", self.config.signing_identity),
                ("/fd", "sha256"),
                ("/v", None),
            ),
            arguments=(str(self.package_path),),
        )

    def assemble(self) -> Path:
        for command in self.commands():
            self.execute(command, cwd=self.temp_dir, phase="assemble")
        return self.package_path
