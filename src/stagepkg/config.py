"""Explicit packaging configuration with typed fields and resolved defaults.

Every key is a dataclass field. Literal defaults live on the field itself;
defaults derived from other keys (mostly directories under ``base_dir``) are
``None`` on the field and filled in exactly once by ``__post_init__`` from
``DERIVED_DEFAULTS``. A value passed explicitly always wins. A fresh
``Config()`` is the reset state.

Keys that must be supplied by the user (credentials, endpoints) default to
``None`` and are checked up front with :meth:`Config.missing_required` rather
than failing halfway through a build.
"""

from __future__ import annotations

import json
import platform
import sys
import warnings
from collections.abc import Callable, Mapping
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Self

from .errors import MissingRequiredConfiguration, ValidationError


def _default_base_dir() -> Path:
    if sys.platform.startswith("win"):
        return Path("C:\\omnibus-ruby")
    return Path("/var/cache/omnibus")


@dataclass(slots=True)
class Config:
    # Directories
    base_dir: Path = None  # type: ignore[assignment]
    cache_dir: Path = None  # type: ignore[assignment]
    git_cache_dir: Path = None  # type: ignore[assignment]
    source_dir: Path = None  # type: ignore[assignment]
    build_dir: Path = None  # type: ignore[assignment]
    package_dir: Path = None  # type: ignore[assignment]
    package_tmp: Path = None  # type: ignore[assignment]
    project_dir: str = "config/projects"
    software_dir: str = "config/software"
    project_root: Path = None  # type: ignore[assignment]

    # DMG / PKG
    build_dmg: bool = True
    dmg_window_bounds: str = "100, 100, 750, 600"
    dmg_pkg_position: str = "535, 50"
    sign_pkg: bool = False
    signing_identity: str | None = None

    # RPM / MSI signing
    sign_rpm: bool = False
    sign_msi: bool = False

    # Target machine architecture, as reported by the build host
    architecture: str = None  # type: ignore[assignment]

    # S3 caching
    use_s3_caching: bool = False
    s3_bucket: str | None = None
    s3_access_key: str | None = None
    s3_secret_key: str | None = None

    # Artifactory publisher
    artifactory_endpoint: str | None = None
    artifactory_username: str | None = None
    artifactory_password: str | None = None
    artifactory_ssl_pem_file: str | None = None
    artifactory_ssl_verify: bool = True
    artifactory_proxy_username: str | None = None
    artifactory_proxy_password: str | None = None
    artifactory_proxy_address: str | None = None
    artifactory_proxy_port: str | None = None

    # S3 publisher
    publish_s3_access_key: str | None = None
    publish_s3_secret_key: str | None = None

    # Miscellaneous
    override_file: str | None = None
    software_gem: str = "omnibus-software"
    solaris_compiler: str | None = None

    # Build
    append_timestamp: bool = True
    build_retries: int = 3
    use_git_caching: bool = True

    def __post_init__(self) -> None:
        for key, factory in DERIVED_DEFAULTS.items():
            value = getattr(self, key)
            if value is None:
                setattr(self, key, factory(self))
            elif key in _PATH_KEYS:
                setattr(self, key, Path(value))

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> Self:
        known = {item.name for item in fields(cls)}
        kwargs: dict[str, Any] = {}
        for key, value in values.items():
            if key in DEPRECATED_ALIASES:
                target = DEPRECATED_ALIASES[key]
                warnings.warn(
                    f"Config.{key} is deprecated. Please use Config.{target} instead.",
                    DeprecationWarning,
                    stacklevel=2,
                )
                kwargs.setdefault(target, value)
                continue
            if key not in known:
                raise ValidationError(
                    "Unknown configuration key.",
                    hint="Check the key name against the Config fields.",
                    context={"key": key},
                )
            kwargs[key] = value
        return cls(**kwargs)

    @classmethod
    def load(cls, path: str | Path) -> Self:
        config_path = Path(path)
        try:
            raw = config_path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise ValidationError(
                "Configuration file does not exist.",
                context={"path": str(config_path)},
            ) from exc
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ValidationError(
                "Invalid configuration JSON.",
                hint=str(exc),
                context={"path": str(config_path)},
            ) from exc
        if not isinstance(payload, dict):
            raise ValidationError(
                "Configuration file must contain a JSON object.",
                context={"path": str(config_path)},
            )
        return cls.from_mapping(payload)

    def fetch(self, key: str) -> Any:
        warnings.warn(
            f"Config.fetch() is deprecated. Please use `Config.{key}` instead.",
            DeprecationWarning,
            stacklevel=2,
        )
        if key in DEPRECATED_ALIASES:
            key = DEPRECATED_ALIASES[key]
        if key not in {item.name for item in fields(self)}:
            return None
        return getattr(self, key)

    @property
    def install_path_cache_dir(self) -> Path:
        warnings.warn(
            "Config.install_path_cache_dir is deprecated. Please use Config.git_cache_dir instead.",
            DeprecationWarning,
            stacklevel=2,
        )
        return self.git_cache_dir

    def require(self, key: str) -> Any:
        value = getattr(self, key)
        if value is None or value == "":
            raise MissingRequiredConfiguration(key, REQUIRED_EXAMPLES.get(key, "'...'"))
        return value

    def missing_required(self, *keys: str) -> list[MissingRequiredConfiguration]:
        """Return one error per unset key, in the order given."""
        errors: list[MissingRequiredConfiguration] = []
        for key in keys:
            value = getattr(self, key)
            if value is None or value == "":
                errors.append(MissingRequiredConfiguration(key, REQUIRED_EXAMPLES.get(key, "'...'")))
        return errors

    def required_keys(self) -> tuple[str, ...]:
        """Keys that the enabled toggles make mandatory."""
        keys: list[str] = []
        if self.use_s3_caching:
            keys.extend(("s3_bucket", "s3_access_key", "s3_secret_key"))
        return tuple(keys)

    def validate_required(self, *extra_keys: str) -> None:
        errors = self.missing_required(*self.required_keys(), *extra_keys)
        if errors:
            raise errors[0]


DERIVED_DEFAULTS: dict[str, Callable[[Config], Any]] = {
    "base_dir": lambda config: _default_base_dir(),
    "cache_dir": lambda config: config.base_dir / "cache",
    "git_cache_dir": lambda config: config.cache_dir / "git_cache",
    "source_dir": lambda config: config.base_dir / "src",
    "build_dir": lambda config: config.base_dir / "build",
    "package_dir": lambda config: config.base_dir / "pkg",
    "package_tmp": lambda config: config.base_dir / "pkg-tmp",
    "project_root": lambda config: Path.cwd(),
    "architecture": lambda config: platform.machine() or "x86_64",
}

_PATH_KEYS = frozenset(
    {
        "base_dir",
        "cache_dir",
        "git_cache_dir",
        "source_dir",
        "build_dir",
        "package_dir",
        "package_tmp",
        "project_root",
    }
)

DEPRECATED_ALIASES: dict[str, str] = {
    "install_path_cache_dir": "git_cache_dir",
}

REQUIRED_EXAMPLES: dict[str, str] = {
    "s3_bucket": "'my_bucket'",
    "s3_access_key": "'ABCD1234'",
    "s3_secret_key": "'EFGH5678'",
    "artifactory_endpoint": "'https://...'",
    "artifactory_username": "'admin'",
    "artifactory_password": "'password'",
    "publish_s3_access_key": "'ABCD1234'",
    "publish_s3_secret_key": "'EFGH5678'",
    "signing_identity": "'Developer ID Installer: My Corp'",
}

__all__ = ["Config", "DEPRECATED_ALIASES", "DERIVED_DEFAULTS", "REQUIRED_EXAMPLES"]
