"""Core data models shared across errorutil components."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

PLACEHOLDER_CODE = "replace_me"
CODE_NAME_PATTERN = re.compile(r"^Err[A-Z].+Code$")
INT_CODE_PATTERN = re.compile(r"^(0|[1-9][0-9]*)$")

SEVERITY_ERROR = "error"
SEVERITY_INFO = "info"

# Value kinds of a declaration's initializer.
VALUE_STRING = "string"
VALUE_INT = "int"
VALUE_EXPRESSION = "expression"
VALUE_MISSING = "missing"

# Rule identifiers reported in violations.
RULE_CODE_LITERAL_ARGUMENT = "code-literal-argument"
RULE_CODE_EXPRESSION_ARGUMENT = "code-expression-argument"
RULE_MISSING_SEVERITY = "missing-severity"
RULE_MISSING_ARGUMENT = "missing-argument"
RULE_NON_LITERAL_LIST = "non-literal-list"
RULE_NON_LITERAL_ELEMENT = "non-literal-element"
RULE_STRING_CONCATENATION = "string-concatenation"
RULE_LOWERCASE_START = "lowercase-start"
RULE_DEPRECATED_CONSTRUCTOR = "deprecated-constructor"
RULE_VAR_DECLARATION = "var-declaration"
RULE_MISPLACED_DECLARATION = "misplaced-declaration"
RULE_UNRESOLVABLE_REFERENCE = "unresolvable-code-reference"
RULE_DUPLICATE_NAME = "duplicate-name"
RULE_DUPLICATE_CODE = "duplicate-code"
RULE_DUPLICATE_DETAILS = "duplicate-details"
RULE_INVALID_CODE = "invalid-code"
RULE_MISSING_VALUE = "missing-value"
RULE_NON_LITERAL_CODE = "non-literal-code"
RULE_ORPHANED_DECLARATION = "orphaned-declaration"


@dataclass(frozen=True)
class Span:
    """Half-open byte range ``[start, end)`` of a literal in the file."""

    start: int
    end: int


@dataclass
class ErrorDeclaration:
    """A package-level ``Err...Code`` constant or variable."""

    name: str
    package: str
    package_name: str
    path: str
    value: str
    literal: str
    span: Optional[Span]
    line: int
    column: int
    kind: str = "const"
    value_kind: str = VALUE_STRING

    @property
    def is_placeholder(self) -> bool:
        return self.value_kind == VALUE_STRING and self.value == PLACEHOLDER_CODE

    @property
    def is_int(self) -> bool:
        if self.value_kind not in (VALUE_STRING, VALUE_INT):
            return False
        return bool(INT_CODE_PATTERN.match(self.value))

    @property
    def code(self) -> Optional[int]:
        return int(self.value) if self.is_int else None

    @property
    def rewritable(self) -> bool:
        return self.span is not None and self.value_kind in (VALUE_STRING, VALUE_INT)

    @property
    def key(self) -> Tuple[str, str]:
        return (self.package, self.name)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "kind": self.kind,
            "value": self.value,
            "literal": self.literal,
            "value_kind": self.value_kind,
            "is_placeholder": self.is_placeholder,
            "is_int": self.is_int,
            "path": self.path,
            "line": self.line,
            "column": self.column,
            "span": [self.span.start, self.span.end] if self.span else None,
        }


@dataclass
class ErrorDetail:
    """Arguments of one detail-construction call such as ``errors.New``."""

    code_ref: Optional[str]
    package: str
    path: str
    line: int
    column: int
    qualifier: Optional[str] = None
    severity: Optional[str] = None
    short_description: List[str] = field(default_factory=list)
    long_description: List[str] = field(default_factory=list)
    probable_cause: List[str] = field(default_factory=list)
    suggested_remediation: List[str] = field(default_factory=list)
    constructor: str = "New"
    resolved: Optional[Tuple[str, str]] = None
    ambiguous: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code_ref": self.code_ref,
            "qualifier": self.qualifier,
            "constructor": self.constructor,
            "severity": self.severity,
            "short_description": list(self.short_description),
            "long_description": list(self.long_description),
            "probable_cause": list(self.probable_cause),
            "suggested_remediation": list(self.suggested_remediation),
            "path": self.path,
            "line": self.line,
            "column": self.column,
            "resolved": "/".join(self.resolved) if self.resolved else None,
            "ambiguous": self.ambiguous,
        }


@dataclass
class Violation:
    """A convention violation; data for the summary, never raised."""

    rule: str
    message: str
    path: str
    line: int = 0
    name: Optional[str] = None
    severity: str = SEVERITY_ERROR

    @property
    def sort_key(self) -> Tuple[str, int, str, str]:
        return (self.path, self.line, self.rule, self.name or "")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rule": self.rule,
            "severity": self.severity,
            "message": self.message,
            "path": self.path,
            "line": self.line,
            "name": self.name,
        }


@dataclass
class FileResult:
    """Everything extracted from a single source file."""

    path: str
    package: str
    package_name: str = ""
    declarations: List[ErrorDeclaration] = field(default_factory=list)
    details: List[ErrorDetail] = field(default_factory=list)
    violations: List[Violation] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def is_relevant(self) -> bool:
        return bool(self.declarations or self.details or self.violations or self.errors)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "package_name": self.package_name,
            "declarations": [decl.to_dict() for decl in self.declarations],
            "details": [detail.to_dict() for detail in self.details],
            "violations": [violation.to_dict() for violation in self.violations],
            "errors": list(self.errors),
        }
