"""Analysis summary derived from one InfoAll snapshot."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .component import Component
from .info import InfoAll
from .logging import get_logger
from .models import (
    RULE_INVALID_CODE,
    RULE_MISSING_VALUE,
    RULE_NON_LITERAL_CODE,
    SEVERITY_ERROR,
    SEVERITY_INFO,
    Violation,
)
from .validation import has_errors

logger = get_logger("summary")


@dataclass
class AnalysisSummary:
    """Read-only counts and problem lists for CI and troubleshooting."""

    component: str
    files_scanned: int = 0
    declaration_count: int = 0
    detail_count: int = 0
    placeholder_count: int = 0
    min_code: Optional[int] = None
    max_code: Optional[int] = None
    next_code: Optional[int] = None
    int_codes: List[int] = field(default_factory=list)
    duplicate_names: Dict[str, List[str]] = field(default_factory=dict)
    duplicate_codes: Dict[str, List[str]] = field(default_factory=dict)
    duplicate_details: Dict[str, List[str]] = field(default_factory=dict)
    invalid_codes: List[str] = field(default_factory=list)
    non_literal_codes: List[str] = field(default_factory=list)
    orphans: List[str] = field(default_factory=list)
    violations: List[Violation] = field(default_factory=list)
    file_errors: List[Dict[str, str]] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return sum(1 for violation in self.violations if violation.severity == SEVERITY_ERROR)

    @property
    def has_violations(self) -> bool:
        return has_errors(self.violations)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "component": self.component,
            "files_scanned": self.files_scanned,
            "declaration_count": self.declaration_count,
            "detail_count": self.detail_count,
            "placeholder_count": self.placeholder_count,
            "min_code": self.min_code,
            "max_code": self.max_code,
            "next_code": self.next_code,
            "int_codes": list(self.int_codes),
            "duplicate_names": self.duplicate_names,
            "duplicate_codes": self.duplicate_codes,
            "duplicate_details": self.duplicate_details,
            "invalid_codes": list(self.invalid_codes),
            "non_literal_codes": list(self.non_literal_codes),
            "orphans": list(self.orphans),
            "violation_count": len(self.violations),
            "error_count": self.error_count,
            "has_violations": self.has_violations,
            "violations": [violation.to_dict() for violation in self.violations],
            "file_errors": list(self.file_errors),
        }


def summarize(
    info: InfoAll,
    violations: List[Violation],
    component: Optional[Component] = None,
) -> AnalysisSummary:
    """Build the summary for ``info``; ``component`` supplies the next code when known."""
    declarations = info.declarations()
    details = info.details()
    summary = AnalysisSummary(
        component=component.name if component is not None else info.component,
        files_scanned=info.files_scanned,
        declaration_count=len(declarations),
        detail_count=len(details),
        placeholder_count=sum(1 for decl in declarations if decl.is_placeholder),
        next_code=component.next_error_code if component is not None else None,
        violations=list(violations),
    )

    codes = sorted({decl.code for decl in declarations if decl.code is not None})
    summary.int_codes = codes
    if codes:
        summary.min_code = codes[0]
        summary.max_code = codes[-1]

    by_name: Dict[str, List[str]] = defaultdict(list)
    by_code: Dict[int, List[str]] = defaultdict(list)
    for decl in declarations:
        by_name[decl.name].append(f"{decl.path}:{decl.line}")
        if decl.code is not None:
            by_code[decl.code].append(decl.name)
    summary.duplicate_names = {name: paths for name, paths in sorted(by_name.items()) if len(paths) > 1}
    summary.duplicate_codes = {str(code): names for code, names in sorted(by_code.items()) if len(names) > 1}

    by_detail: Dict[str, List[str]] = defaultdict(list)
    for detail in details:
        if detail.resolved is not None:
            by_detail["/".join(detail.resolved)].append(f"{detail.path}:{detail.line}")
    summary.duplicate_details = {key: paths for key, paths in sorted(by_detail.items()) if len(paths) > 1}

    for violation in violations:
        if violation.rule in (RULE_INVALID_CODE, RULE_MISSING_VALUE) and violation.name:
            summary.invalid_codes.append(violation.name)
        elif violation.rule == RULE_NON_LITERAL_CODE and violation.name:
            summary.non_literal_codes.append(violation.name)
    referenced = {detail.resolved for detail in details if detail.resolved is not None}
    summary.orphans = [decl.name for decl in declarations if decl.key not in referenced]

    for issue in info.walk_issues:
        summary.file_errors.append({"path": issue.path, "error": issue.reason})
    for path, error in info.file_errors():
        summary.file_errors.append({"path": path, "error": error})

    if summary.next_code is not None and summary.max_code is not None and summary.next_code <= summary.max_code:
        logger.warning(
            "next_error_code %d is not above the highest code in use (%d)",
            summary.next_code,
            summary.max_code,
        )
    return summary


def log_summary(summary: AnalysisSummary) -> None:
    """Log violations by severity and a one-line overview."""
    for violation in summary.violations:
        location = f"{violation.path}:{violation.line}" if violation.line else violation.path
        if violation.severity == SEVERITY_INFO:
            logger.info("%s [%s] %s", location, violation.rule, violation.message)
        else:
            logger.error("%s [%s] %s", location, violation.rule, violation.message)
    for entry in summary.file_errors:
        logger.warning("%s: %s", entry["path"], entry["error"])
    logger.info(
        "%d file(s) scanned, %d declaration(s), %d detail record(s), %d placeholder(s), "
        "%d violation(s), %d file error(s)",
        summary.files_scanned,
        summary.declaration_count,
        summary.detail_count,
        summary.placeholder_count,
        summary.error_count,
        len(summary.file_errors),
    )


__all__ = ["AnalysisSummary", "log_summary", "summarize"]
