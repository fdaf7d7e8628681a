"""In-memory metadata documents and their canonical serialized forms.

Documents are plain immutable trees. Rendering is a pure function of the tree,
so rebuilding a document from the same project metadata reproduces it byte for
byte. :func:`write_document` persists a rendered document readable and
writable by its owner only.
"""

from __future__ import annotations

import os
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Literal
from xml.sax.saxutils import escape

from .errors import DocumentGenerationError

XML_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_.:-]*$")
FIELD_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]*$")

PRODUCTBUILD_DECLARATION = '<?xml version="1.0" standalone="no"?>'
UTF8_DECLARATION = '<?xml version="1.0" encoding="utf-8"?>'

DOCUMENT_MODE = 0o600

_ATTRIBUTE_ENTITIES = {'"': "&quot;"}


@dataclass(frozen=True, slots=True)
class XmlElement:
    tag: str
    attributes: tuple[tuple[str, str], ...] = ()
    children: tuple[XmlNode, ...] = ()
    text: str | None = None


@dataclass(frozen=True, slots=True)
class XmlComment:
    text: str


@dataclass(frozen=True, slots=True)
class XmlProcessingInstruction:
    target: str
    data: str


@dataclass(frozen=True, slots=True)
class BlankLine:
    pass


XmlNode = XmlElement | XmlComment | XmlProcessingInstruction | BlankLine


def element(
    tag: str,
    attributes: Mapping[str, str] | None = None,
    *children: XmlNode,
    text: str | None = None,
) -> XmlElement:
    """Shorthand that keeps attribute insertion order."""
    return XmlElement(
        tag=tag,
        attributes=tuple((attributes or {}).items()),
        children=children,
        text=text,
    )


def render_xml(
    root: XmlElement,
    *,
    declaration: str | None = PRODUCTBUILD_DECLARATION,
    indent: str = "    ",
) -> str:
    lines: list[str] = []
    if declaration:
        lines.append(declaration)
    _render_node(root, depth=0, indent=indent, lines=lines)
    return "\n".join(lines) + "\n"


def _render_node(node: XmlNode, *, depth: int, indent: str, lines: list[str]) -> None:
    prefix = indent * depth
    if isinstance(node, BlankLine):
        lines.append("")
        return
    if isinstance(node, XmlComment):
        if "--" in node.text or node.text.endswith("-"):
            raise DocumentGenerationError(
                "XML comments cannot contain '--' or end with '-'.",
                context={"comment": node.text},
            )
        lines.append(f"{prefix}<!-- {node.text} -->")
        return
    if isinstance(node, XmlProcessingInstruction):
        _check_name(node.target, kind="processing instruction")
        if "?>" in node.data:
            raise DocumentGenerationError(
                "Processing instruction data cannot contain '?>'.",
                context={"target": node.target},
            )
        lines.append(f"{prefix}<?{node.target} {node.data}?>")
        return

    _check_name(node.tag, kind="element")
    if node.children and node.text is not None:
        raise DocumentGenerationError(
            "Mixed text and child elements are not supported.",
            context={"element": node.tag},
        )
    opening = node.tag + "".join(_attribute(name, value) for name, value in node.attributes)
    if node.children:
        lines.append(f"{prefix}<{opening}>")
        for child in node.children:
            _render_node(child, depth=depth + 1, indent=indent, lines=lines)
        lines.append(f"{prefix}</{node.tag}>")
    elif node.text is not None:
        lines.append(f"{prefix}<{opening}>{escape(node.text)}</{node.tag}>")
    else:
        lines.append(f"{prefix}<{opening}/>")


def _attribute(name: str, value: str) -> str:
    _check_name(name, kind="attribute")
    return f' {name}="{escape(value, _ATTRIBUTE_ENTITIES)}"'


def _check_name(name: str, *, kind: str) -> str:
    if not XML_NAME_RE.match(name):
        raise DocumentGenerationError(
            f"Invalid XML {kind} name.",
            context={"name": name},
        )
    return name


@dataclass(frozen=True, slots=True)
class ControlDocument:
    """Ordered ``key/value`` fields.

    ``style="colon"`` renders Debian control syntax (``Key: value`` with
    folded continuation lines). ``style="equals"`` renders SVR4 ``pkginfo``
    syntax (``KEY=value``, single line only). Fields whose value is ``None``
    are omitted.
    """

    fields: tuple[tuple[str, str | None], ...]
    style: Literal["colon", "equals"] = "colon"

    def render(self) -> str:
        lines: list[str] = []
        for name, value in self.fields:
            if value is None:
                continue
            if not FIELD_NAME_RE.match(name):
                raise DocumentGenerationError(
                    "Invalid control field name.",
                    context={"field": name},
                )
            if self.style == "equals":
                if "\n" in value:
                    raise DocumentGenerationError(
                        "pkginfo values must be a single line.",
                        context={"field": name},
                    )
                lines.append(f"{name}={value}")
                continue
            first, *rest = value.split("\n") if value else [""]
            lines.append(f"{name}: {first}".rstrip())
            for continuation in rest:
                lines.append(f" {continuation}" if continuation.strip() else " .")
        return "\n".join(lines) + "\n"


def render_lines(lines: Iterable[str]) -> str:
    return "".join(f"{line}\n" for line in lines)


def write_document(path: Path, content: str, *, mode: int = DOCUMENT_MODE) -> Path:
    """Create or truncate *path* and write *content* with permissions *mode*.

    The mode is applied to the open descriptor as well, so a pre-existing
    file with looser permissions is tightened.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)
    with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as handle:
        if hasattr(os, "fchmod"):
            os.fchmod(handle.fileno(), mode)
        handle.write(content)
    return path
