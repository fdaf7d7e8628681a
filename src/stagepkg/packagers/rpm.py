"""RPM packages built with ``rpmbuild`` from a generated spec file."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import ClassVar

from stagepkg.documents import render_lines
from stagepkg.errors import ValidationError
from stagepkg.naming import rpm_architecture, rpm_version
from stagepkg.shell import Command

from .base import Packager

RPM_TREE = ("BUILD", "RPMS", "SRPMS", "SOURCES", "SPECS")

# Package script name -> spec scriptlet section.
SCRIPTLETS: tuple[tuple[str, str], ...] = (
    ("preinst", "%pre"),
    ("postinst", "%post"),
    ("prerm", "%preun"),
    ("postrm", "%postun"),
)

# rpmbuild runs these hooks around each stage; the payload is already built.
DISABLED_HOOKS = (
    "__spec_prep_post",
    "__spec_prep_pre",
    "__spec_build_post",
    "__spec_build_pre",
    "__spec_install_post",
    "__spec_install_pre",
    "__spec_clean_post",
    "__spec_clean_pre",
)


@dataclass(slots=True)
class RpmPackager(Packager):
    id: ClassVar[str] = "rpm"
    extension: ClassVar[str] = "rpm"

    @property
    def build_root(self) -> Path:
        return self.staging_dir / "BUILD"

    @property
    def install_root(self) -> Path:
        return self.build_root / self.project.install_dir.relative_to(self.project.install_dir.anchor)

    @property
    def spec_path(self) -> Path:
        return self.staging_dir / "SPECS" / f"{self.project.name}.spec"

    @property
    def version(self) -> str:
        return rpm_version(self.project.build_version)

    @property
    def architecture(self) -> str:
        return rpm_architecture(self.config.architecture)

    def artifact_name(self) -> str:
        project = self.project
        return (
            f"{project.name}-{self.version}-{project.build_iteration}"
            f".{self.architecture}.{self.extension}"
        )

    def validate(self) -> None:
        super(RpmPackager, self).validate()
        if any(char.isspace() for char in self.project.name):
            raise ValidationError(
                "RPM package names cannot contain whitespace.",
                context={"name": self.project.name},
            )

    def stage(self) -> None:
        self.reset_dir(self.staging_dir)
        for directory in RPM_TREE:
            (self.staging_dir / directory).mkdir()
        self.stage_install_tree(self.install_root)

    def generate_documents(self) -> None:
        self.write_document("spec", self.spec_path, self.render_spec())

    def render_spec(self) -> str:
        project = self.project
        lines = ["# Disable the rpmbuild stage hooks; the payload is prebuilt"]
        lines.extend(f"%define {hook} true" for hook in DISABLED_HOOKS)
        lines.extend(
            [
                "",
                "# Metadata",
                f"Name: {project.name}",
                f"Version: {self.version}",
                f"Release: {project.build_iteration}",
                f"Summary: {project.summary}",
                f"BuildArch: {self.architecture}",
                "AutoReqProv: no",
                "BuildRoot: %buildroot",
                "Prefix: /",
                "Group: default",
                f"License: {project.license}",
                f"Vendor: {project.maintainer}",
            ]
        )
        if project.homepage:
            lines.append(f"URL: {project.homepage}")
        lines.append(f"Packager: {project.maintainer}")
        lines.extend(f"Requires: {dependency}" for dependency in project.runtime_dependencies)
        lines.extend(f"Conflicts: {conflict}" for conflict in project.conflicts)
        lines.extend(f"Obsoletes: {replaced}" for replaced in project.replaces)
        lines.extend(["", "%description", project.description.strip() or project.summary])
        for section in ("%prep", "%build", "%install", "%clean"):
            lines.extend(["", section, "# noop"])
        for script_name, section in SCRIPTLETS:
            script = self.package_script(script_name)
            if script is not None:
                lines.extend(["", section, self.read_script(script).rstrip("\n")])
        lines.extend(["", "%files", "%defattr(-,root,root,-)"])
        lines.extend(self.files_section())
        return render_lines(lines)

    def files_section(self) -> list[str]:
        config_files = set(self.project.config_files)
        entries = [f"%dir {_spec_path(str(self.project.install_dir))}"]
        if self.install_root.is_dir():
            for path in sorted(self.install_root.rglob("*")):
                installed = "/" + path.relative_to(self.build_root).as_posix()
                if installed in config_files:
                    continue
                if path.is_dir() and not path.is_symlink():
                    entries.append(f"%dir {_spec_path(installed)}")
                else:
                    entries.append(_spec_path(installed))
        entries.extend(
            f"%config(noreplace) {_spec_path(config_file)}"
            for config_file in self.project.config_files
        )
        return entries

    def command(self) -> Command:
        return Command(
            launcher=("fakeroot",),
            program="rpmbuild",
            options=(
                ("-bb", None),
                ("--buildroot", str(self.build_root)),
                ("--define", f"_topdir {self.staging_dir}"),
                ("--define", f"_rpmdir {self.output_dir}"),
                ("--define", f"_build_name_fmt {self.artifact_name()}"),
            ),
            arguments=(str(self.spec_path),),
        )

    def signing_command(self) -> Command | None:
        if not (self.config.sign_rpm and self.config.signing_identity):
            return None
        return Command(
            program="rpmsign",
            options=(
                ("--addsign", None),
                ("--define", f"_gpg_name {self.config.signing_identity}"),
            ),
            arguments=(str(self.package_path),),
        )

    def assemble(self) -> Path:
        self.execute(self.command(), cwd=self.staging_dir, phase="assemble")
        signing = self.signing_command()
        if signing is not None:
            self.execute(signing, cwd=self.temp_dir, phase="sign")
        return self.package_path


def _spec_path(path: str) -> str:
    if any(char.isspace() for char in path):
        return f'"{path}"'
    return path
