"""Documentation-oriented export of error codes joined with component metadata."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, List, Tuple

from .component import Component
from .info import InfoAll
from .logging import get_logger
from .models import ErrorDetail

logger = get_logger("export")


@dataclass
class ExportRecord:
    """Public record for one error code; carries no file or position data."""

    name: str
    code: str
    severity: str
    short_description: str
    long_description: str
    probable_cause: str
    suggested_remediation: str

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


def _join(parts: List[str]) -> str:
    return " ".join(part.strip() for part in parts if part.strip())


def build_export(info: InfoAll, component: Component) -> Dict[str, Any]:
    """Return the export payload keyed by integer code.

    Placeholder and invalid codes are left out. When a code is used more than
    once, the first declaration in path order is exported.
    """
    details: Dict[Tuple[str, str], ErrorDetail] = {}
    for detail in info.details():
        if detail.resolved is not None and detail.resolved not in details:
            details[detail.resolved] = detail

    records: Dict[int, ExportRecord] = {}
    for decl in info.declarations():
        code = decl.code
        if code is None:
            continue
        if code in records:
            logger.error(
                "Code %d of %s (%s) is already used by %s; not exported twice",
                code,
                decl.name,
                decl.path,
                records[code].name,
            )
            continue
        detail = details.get(decl.key)
        if detail is None:
            records[code] = ExportRecord(decl.name, str(code), "", "", "", "", "")
            continue
        records[code] = ExportRecord(
            name=decl.name,
            code=str(code),
            severity=detail.severity or "",
            short_description=_join(detail.short_description),
            long_description=_join(detail.long_description),
            probable_cause=_join(detail.probable_cause),
            suggested_remediation=_join(detail.suggested_remediation),
        )

    return {
        "component_name": component.name,
        "component_type": component.type,
        "errors": {str(code): records[code].to_dict() for code in sorted(records)},
    }


def load_export(path: Path) -> Dict[str, Any]:
    """Read an export file written by :func:`build_export`."""
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict) or not isinstance(data.get("errors"), dict):
        raise ValueError(f"{path} is not an errorutil export")
    return data


__all__ = ["ExportRecord", "build_export", "load_export"]
