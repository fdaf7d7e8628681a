"""Structured build records for packaging runs."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


@dataclass(slots=True)
class StructuredLogger:
    """Collects one dict record per packaging event.

    Packagers log ``package_start``, ``run_command``, ``document_written``,
    ``package_complete`` and ``package_failed`` operations, plus warning
    records such as ``detach_failed``. Records can be
    shared across packagers and filtered afterwards.
    """

    records: list[dict[str, Any]] = field(default_factory=list)

    def log(
        self,
        *,
        operation: str,
        packager: str | None,
        phase: str | None,
        message: str,
        level: str = "info",
        extra: dict[str, Any] | None = None,
    ) -> None:
        record: dict[str, Any] = {
            "level": level,
            "operation": operation,
            "packager": packager,
            "phase": phase,
            "message": message,
        }
        if extra is not None:
            record["extra"] = extra
        self.records.append(record)

    def records_for_packager(self, packager: str) -> list[dict[str, Any]]:
        return [record for record in self.records if record.get("packager") == packager]

    def commands(self, packager: str | None = None) -> list[str]:
        """Rendered command lines, in execution order."""
        return [
            record["extra"]["command"]
            for record in self.records
            if record["operation"] == "run_command"
            and (packager is None or record.get("packager") == packager)
        ]

    def failures(self) -> list[dict[str, Any]]:
        return [record for record in self.records if record["level"] == "error"]

    def to_json_lines(self, path: str | Path) -> Path:
        output_path = Path(path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        lines = [json.dumps(record, sort_keys=True) for record in self.records]
        output_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return output_path
