"""Deterministic identifier, version, and architecture naming rules."""

from __future__ import annotations

import re

from .errors import ValidationError

IDENTIFIER_RE = re.compile(r"^[a-z0-9]+(?:[._-][a-z0-9]+)*$")

# Placeholder namespace used when a project does not configure an identifier.
# The result is valid but not unique enough for production use.
FALLBACK_IDENTIFIER_PREFIX = "test"

DEBIAN_ARCHITECTURES: dict[str, str] = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "i386": "i386",
    "i686": "i386",
    "armv7l": "armhf",
    "ppc64le": "ppc64el",
    "s390x": "s390x",
}

RPM_ARCHITECTURES: dict[str, str] = {
    "amd64": "x86_64",
    "arm64": "aarch64",
    "i386": "i686",
}

SOLARIS_ARCHITECTURES: dict[str, str] = {
    "x86_64": "i386",
    "amd64": "i386",
    "i86pc": "i386",
    "sun4u": "sparc",
    "sun4v": "sparc",
}


def sanitize_token(value: str) -> str:
    """Lowercase *value* and drop every character outside ``[a-z0-9]``."""
    return re.sub(r"[^a-z0-9]", "", value.lower())


def fallback_identifier(maintainer: str, name: str, *, kind: str = "pkg") -> str:
    """Compose ``test.<maintainer>.<kind>.<name>`` from sanitized tokens.

    Empty sanitized tokens are replaced so the result always satisfies
    :data:`IDENTIFIER_RE`.
    """
    maintainer_token = sanitize_token(maintainer) or "unknown"
    name_token = sanitize_token(name) or "project"
    return f"{FALLBACK_IDENTIFIER_PREFIX}.{maintainer_token}.{kind}.{name_token}"


def resolve_identifier(
    configured: str | None,
    *,
    maintainer: str,
    name: str,
    kind: str = "pkg",
) -> str:
    if not configured:
        return fallback_identifier(maintainer, name, kind=kind)
    if not IDENTIFIER_RE.match(configured):
        raise ValidationError(
            "Package identifier must be lowercase alphanumeric tokens joined by '.', '-' or '_'.",
            hint="Use a reverse-domain identifier such as 'com.example.myproject'.",
            context={"identifier": configured},
        )
    return configured


def debian_version(version: str) -> str:
    """Debian upstream version: '-' is reserved for the revision separator."""
    safe = version.replace("-", "~")
    return re.sub(r"[^A-Za-z0-9.+~:]", "_", safe)


def debian_name(name: str) -> str:
    safe = name.lower().replace("_", "-")
    return re.sub(r"[^a-z0-9.+-]", "", safe)


def rpm_version(version: str) -> str:
    """RPM forbids '-' in Version; other separators collapse to '_'."""
    return re.sub(r"[^A-Za-z0-9._+~]", "_", version)


def windows_version(version: str) -> str:
    """MSI ProductVersion: at most three numeric fields, each below 65536."""
    match = re.match(r"^(\d+)(?:\.(\d+))?(?:\.(\d+))?", version)
    if match is None:
        raise ValidationError(
            "MSI packages require a version that starts with a number.",
            context={"version": version},
        )
    parts = [int(part) for part in match.groups() if part is not None]
    for part in parts:
        if part > 65535:
            raise ValidationError(
                "MSI version fields must be below 65536.",
                context={"version": version},
            )
    while len(parts) < 3:
        parts.append(0)
    return ".".join(str(part) for part in parts)


def debian_architecture(architecture: str) -> str:
    return DEBIAN_ARCHITECTURES.get(architecture, architecture)


def rpm_architecture(architecture: str) -> str:
    return RPM_ARCHITECTURES.get(architecture, architecture)


def solaris_architecture(architecture: str) -> str:
    return SOLARIS_ARCHITECTURES.get(architecture, architecture)
