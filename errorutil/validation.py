"""Convention checks over one InfoAll snapshot."""

from __future__ import annotations

import posixpath
from collections import defaultdict
from typing import Dict, List, Set, Tuple

from .config import DEFAULT_ERROR_FILE
from .info import InfoAll
from .models import (
    RULE_DUPLICATE_CODE,
    RULE_DUPLICATE_DETAILS,
    RULE_DUPLICATE_NAME,
    RULE_INVALID_CODE,
    RULE_MISPLACED_DECLARATION,
    RULE_MISSING_VALUE,
    RULE_NON_LITERAL_CODE,
    RULE_ORPHANED_DECLARATION,
    RULE_UNRESOLVABLE_REFERENCE,
    RULE_VAR_DECLARATION,
    SEVERITY_ERROR,
    SEVERITY_INFO,
    VALUE_EXPRESSION,
    VALUE_MISSING,
    ErrorDeclaration,
    ErrorDetail,
    Violation,
)


def has_errors(violations: List[Violation]) -> bool:
    return any(violation.severity == SEVERITY_ERROR for violation in violations)


class ConventionValidator:
    """Collects every convention violation in a snapshot.

    Pure: it reads the snapshot and never touches source files. Nothing
    short-circuits, so a single run reports all problems.
    """

    def __init__(self, error_file: str = DEFAULT_ERROR_FILE) -> None:
        self.error_file = error_file

    def validate(self, info: InfoAll) -> List[Violation]:
        violations: List[Violation] = []
        for result in info.files():
            violations.extend(result.violations)

        declarations = info.declarations()
        details = info.details()
        violations.extend(self._check_values(declarations))
        violations.extend(self._check_placement(declarations))
        violations.extend(self._check_duplicate_names(declarations))
        violations.extend(self._check_duplicate_codes(declarations))
        violations.extend(self._check_references(details))
        violations.extend(self._check_duplicate_details(details))
        violations.extend(self._check_orphans(declarations, details))
        return sorted(violations, key=lambda violation: violation.sort_key)

    @staticmethod
    def _check_values(declarations: List[ErrorDeclaration]) -> List[Violation]:
        violations: List[Violation] = []
        for decl in declarations:
            if decl.value_kind == VALUE_MISSING:
                violations.append(
                    Violation(
                        rule=RULE_MISSING_VALUE,
                        message=f"{decl.name} has no value; initialise it with the placeholder code",
                        path=decl.path,
                        line=decl.line,
                        name=decl.name,
                    )
                )
            elif decl.value_kind == VALUE_EXPRESSION:
                violations.append(
                    Violation(
                        rule=RULE_NON_LITERAL_CODE,
                        message=f"{decl.name} is set from an expression ({decl.literal}); use a string literal",
                        path=decl.path,
                        line=decl.line,
                        name=decl.name,
                    )
                )
            elif not decl.is_placeholder and not decl.is_int:
                violations.append(
                    Violation(
                        rule=RULE_INVALID_CODE,
                        message=(
                            f"{decl.name} has value {decl.literal}, which is neither the placeholder "
                            f"nor a non-negative integer"
                        ),
                        path=decl.path,
                        line=decl.line,
                        name=decl.name,
                    )
                )
        return violations

    def _check_placement(self, declarations: List[ErrorDeclaration]) -> List[Violation]:
        violations: List[Violation] = []
        for decl in declarations:
            if decl.kind == "var":
                violations.append(
                    Violation(
                        rule=RULE_VAR_DECLARATION,
                        message=f"{decl.name} is a variable; prefer a constant",
                        path=decl.path,
                        line=decl.line,
                        name=decl.name,
                        severity=SEVERITY_INFO,
                    )
                )
            if posixpath.basename(decl.path) != self.error_file:
                violations.append(
                    Violation(
                        rule=RULE_MISPLACED_DECLARATION,
                        message=f"{decl.name} should be declared in {self.error_file}",
                        path=decl.path,
                        line=decl.line,
                        name=decl.name,
                        severity=SEVERITY_INFO,
                    )
                )
        return violations

    @staticmethod
    def _check_duplicate_names(declarations: List[ErrorDeclaration]) -> List[Violation]:
        by_name: Dict[str, List[ErrorDeclaration]] = defaultdict(list)
        for decl in declarations:
            by_name[decl.name].append(decl)
        violations: List[Violation] = []
        for name in sorted(by_name):
            group = by_name[name]
            if len(group) < 2:
                continue
            first = group[0]
            for decl in group[1:]:
                violations.append(
                    Violation(
                        rule=RULE_DUPLICATE_NAME,
                        message=f"{name} is also declared in {first.path}:{first.line}",
                        path=decl.path,
                        line=decl.line,
                        name=name,
                    )
                )
        return violations

    @staticmethod
    def _check_duplicate_codes(declarations: List[ErrorDeclaration]) -> List[Violation]:
        by_code: Dict[int, List[ErrorDeclaration]] = defaultdict(list)
        for decl in declarations:
            code = decl.code
            if code is not None:
                by_code[code].append(decl)
        violations: List[Violation] = []
        for code in sorted(by_code):
            group = by_code[code]
            if len(group) < 2:
                continue
            first = group[0]
            for decl in group[1:]:
                violations.append(
                    Violation(
                        rule=RULE_DUPLICATE_CODE,
                        message=f"{decl.name} reuses code {code} of {first.name} ({first.path}:{first.line})",
                        path=decl.path,
                        line=decl.line,
                        name=decl.name,
                    )
                )
        return violations

    @staticmethod
    def _check_references(details: List[ErrorDetail]) -> List[Violation]:
        violations: List[Violation] = []
        for detail in details:
            if detail.code_ref is None or detail.resolved is not None:
                continue
            if detail.qualifier is not None:
                message = (
                    f"Code reference {detail.qualifier}.{detail.code_ref} points into another package; "
                    f"declare the code in this package"
                )
            elif detail.ambiguous:
                message = (
                    f"Code reference {detail.code_ref} is ambiguous; it is declared in more than one "
                    f"file of this package"
                )
            else:
                message = f"Code reference {detail.code_ref} does not match any declaration in this package"
            violations.append(
                Violation(
                    rule=RULE_UNRESOLVABLE_REFERENCE,
                    message=message,
                    path=detail.path,
                    line=detail.line,
                    name=detail.code_ref,
                )
            )
        return violations

    @staticmethod
    def _check_duplicate_details(details: List[ErrorDetail]) -> List[Violation]:
        by_key: Dict[Tuple[str, str], List[ErrorDetail]] = defaultdict(list)
        for detail in details:
            if detail.resolved is not None:
                by_key[detail.resolved].append(detail)
        violations: List[Violation] = []
        for key in sorted(by_key):
            group = by_key[key]
            first = group[0]
            for detail in group[1:]:
                violations.append(
                    Violation(
                        rule=RULE_DUPLICATE_DETAILS,
                        message=f"{key[1]} already has details at {first.path}:{first.line}",
                        path=detail.path,
                        line=detail.line,
                        name=key[1],
                    )
                )
        return violations

    @staticmethod
    def _check_orphans(declarations: List[ErrorDeclaration], details: List[ErrorDetail]) -> List[Violation]:
        referenced: Set[Tuple[str, str]] = {detail.resolved for detail in details if detail.resolved is not None}
        return [
            Violation(
                rule=RULE_ORPHANED_DECLARATION,
                message=f"{decl.name} has no detail record",
                path=decl.path,
                line=decl.line,
                name=decl.name,
                severity=SEVERITY_INFO,
            )
            for decl in declarations
            if decl.key not in referenced
        ]


__all__ = ["ConventionValidator", "has_errors"]
