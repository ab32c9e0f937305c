"""Tree-sitter powered extractor for Go error declarations."""

from __future__ import annotations

import ast
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, List, Optional, Set

from tree_sitter import Node, Parser
from tree_sitter_language_pack import get_language

from ..config import DEFAULT_DETAIL_IMPORT_PATH
from ..logging import get_logger
from ..models import (
    CODE_NAME_PATTERN,
    RULE_CODE_EXPRESSION_ARGUMENT,
    RULE_CODE_LITERAL_ARGUMENT,
    RULE_DEPRECATED_CONSTRUCTOR,
    RULE_LOWERCASE_START,
    RULE_MISSING_ARGUMENT,
    RULE_MISSING_SEVERITY,
    RULE_NON_LITERAL_ELEMENT,
    RULE_NON_LITERAL_LIST,
    RULE_STRING_CONCATENATION,
    VALUE_EXPRESSION,
    VALUE_INT,
    VALUE_MISSING,
    VALUE_STRING,
    ErrorDeclaration,
    ErrorDetail,
    FileResult,
    Span,
    Violation,
)
from .base import DeclarationMatcher

logger = get_logger("matchers.go")

_STRING_LITERALS = {"interpreted_string_literal", "raw_string_literal"}
_SPEC_TYPES = {"const_spec", "var_spec"}
_DETAIL_CONSTRUCTOR = "New"
_DEPRECATED_CONSTRUCTOR = "NewDefault"
_LIST_FIELDS = (
    ("short_description", "short description"),
    ("long_description", "long description"),
    ("probable_cause", "probable cause"),
    ("suggested_remediation", "suggested remediation"),
)


def _text(node: Node, source: bytes) -> str:
    return source[node.start_byte : node.end_byte].decode("utf-8", errors="replace")


def _named(node: Node) -> List[Node]:
    return [child for child in node.named_children if child.type != "comment"]


def _line(node: Node) -> int:
    return node.start_point[0] + 1


def _column(node: Node) -> int:
    return node.start_point[1] + 1


def _unwrap_parens(node: Node) -> Node:
    while node.type == "parenthesized_expression":
        inner = _named(node)
        if len(inner) != 1:
            break
        node = inner[0]
    return node


def _string_value(node: Node, source: bytes) -> str:
    text = _text(node, source)
    if node.type == "raw_string_literal":
        return text[1:-1].replace("\r", "")
    # Go interpreted strings share Python's escape syntax.
    try:
        value = ast.literal_eval(text)
    except (ValueError, SyntaxError):
        return text[1:-1]
    return value if isinstance(value, str) else text[1:-1]


def _first_error_line(root: Node) -> int:
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type == "ERROR" or node.is_missing:
            return _line(node)
        if node.has_error:
            stack.extend(reversed(node.children))
    return _line(root)


@dataclass
class _FileContext:
    path: str
    package: str
    package_name: str
    source: bytes
    aliases: Set[str] = field(default_factory=set)
    unqualified: bool = False
    violations: List[Violation] = field(default_factory=list)

    def flag(self, rule: str, message: str, node: Node, name: Optional[str] = None) -> None:
        self.violations.append(
            Violation(rule=rule, message=message, path=self.path, line=_line(node), name=name)
        )


class GoDeclarationMatcher(DeclarationMatcher):
    """Extracts ``Err...Code`` declarations and ``errors.New`` detail calls from Go files."""

    def __init__(self, detail_import_path: str = DEFAULT_DETAIL_IMPORT_PATH) -> None:
        self.detail_import_path = detail_import_path
        self._detail_package_name = detail_import_path.rstrip("/").rsplit("/", 1)[-1]
        self._language = get_language("go")
        # tree-sitter parsers are not safe to share between threads.
        self._local = threading.local()

    def supports(self, path: Path) -> bool:
        return path.suffix == ".go"

    def extract(self, source: bytes, *, path: str, package: str) -> FileResult:
        result = FileResult(path=path, package=package)
        try:
            source.decode("utf-8")
        except UnicodeDecodeError as exc:
            result.errors.append(f"read error: not valid UTF-8 ({exc.reason} at byte {exc.start})")
            return result

        tree = self._parser().parse(source)
        root = tree.root_node
        if root.has_error:
            line = _first_error_line(root)
            result.errors.append(f"syntax error near line {line}")
            logger.warning("Skipping %s: syntax error near line %d", path, line)
            return result

        ctx = _FileContext(
            path=path,
            package=package,
            package_name=self._package_name(root, source),
            source=source,
        )
        result.package_name = ctx.package_name
        self._collect_imports(root, ctx)

        for node in _named(root):
            if node.type in ("const_declaration", "var_declaration"):
                result.declarations.extend(self._declarations(node, ctx))

        for call in self._iter_calls(root):
            detail = self._detail(call, ctx)
            if detail is not None:
                result.details.append(detail)

        result.violations.extend(ctx.violations)
        return result

    # ------------------------------------------------------------------
    # Internal helpers

    def _parser(self) -> Parser:
        parser = getattr(self._local, "parser", None)
        if parser is None:
            parser = Parser(self._language)
            self._local.parser = parser
        return parser

    @staticmethod
    def _package_name(root: Node, source: bytes) -> str:
        for node in _named(root):
            if node.type == "package_clause":
                for child in _named(node):
                    if child.type == "package_identifier":
                        return _text(child, source)
        return ""

    def _collect_imports(self, root: Node, ctx: _FileContext) -> None:
        if ctx.package_name == self._detail_package_name:
            ctx.unqualified = True
        for node in _named(root):
            if node.type != "import_declaration":
                continue
            stack = [node]
            while stack:
                current = stack.pop()
                if current.type != "import_spec":
                    stack.extend(_named(current))
                    continue
                path_node = current.child_by_field_name("path")
                if path_node is None or _string_value(path_node, ctx.source) != self.detail_import_path:
                    continue
                name_node = current.child_by_field_name("name")
                if name_node is None:
                    ctx.aliases.add(self._detail_package_name)
                elif name_node.type == "dot":
                    ctx.unqualified = True
                elif name_node.type != "blank_identifier":
                    ctx.aliases.add(_text(name_node, ctx.source))

    def _declarations(self, decl: Node, ctx: _FileContext) -> Iterator[ErrorDeclaration]:
        kind = "const" if decl.type == "const_declaration" else "var"
        specs: List[Node] = []
        for child in _named(decl):
            if child.type in _SPEC_TYPES:
                specs.append(child)
            elif child.type == "var_spec_list":
                specs.extend(spec for spec in _named(child) if spec.type in _SPEC_TYPES)

        for spec in specs:
            type_node = spec.child_by_field_name("type")
            if type_node is not None and _text(type_node, ctx.source).strip() != "string":
                continue
            names = spec.children_by_field_name("name")
            value_node = spec.child_by_field_name("value")
            values = _named(value_node) if value_node is not None else []
            for index, name_node in enumerate(names):
                name = _text(name_node, ctx.source)
                if not CODE_NAME_PATTERN.match(name):
                    continue
                value = values[index] if index < len(values) else None
                yield self._declaration(name, name_node, value, kind, ctx)

    @staticmethod
    def _declaration(
        name: str, name_node: Node, value: Optional[Node], kind: str, ctx: _FileContext
    ) -> ErrorDeclaration:
        common = dict(
            name=name,
            package=ctx.package,
            package_name=ctx.package_name,
            path=ctx.path,
            kind=kind,
        )
        if value is None:
            return ErrorDeclaration(
                value="",
                literal="",
                span=None,
                line=_line(name_node),
                column=_column(name_node),
                value_kind=VALUE_MISSING,
                **common,
            )
        literal = _text(value, ctx.source)
        if value.type in _STRING_LITERALS:
            value_kind = VALUE_STRING
            decoded = _string_value(value, ctx.source)
        elif value.type == "int_literal":
            value_kind = VALUE_INT
            decoded = literal
        else:
            value_kind = VALUE_EXPRESSION
            decoded = literal
        return ErrorDeclaration(
            value=decoded,
            literal=literal,
            span=Span(value.start_byte, value.end_byte) if value_kind != VALUE_EXPRESSION else None,
            line=_line(value),
            column=_column(value),
            value_kind=value_kind,
            **common,
        )

    @staticmethod
    def _iter_calls(root: Node) -> Iterator[Node]:
        stack = [root]
        while stack:
            node = stack.pop()
            if node.type == "call_expression":
                yield node
            stack.extend(reversed(node.named_children))

    def _constructor(self, call: Node, ctx: _FileContext) -> Optional[str]:
        function = call.child_by_field_name("function")
        if function is None:
            return None
        if function.type == "selector_expression":
            operand = function.child_by_field_name("operand")
            field_node = function.child_by_field_name("field")
            if operand is None or field_node is None or operand.type != "identifier":
                return None
            if _text(operand, ctx.source) not in ctx.aliases:
                return None
            name = _text(field_node, ctx.source)
        elif function.type == "identifier" and ctx.unqualified:
            name = _text(function, ctx.source)
        else:
            return None
        if name in (_DETAIL_CONSTRUCTOR, _DEPRECATED_CONSTRUCTOR):
            return name
        return None

    def _detail(self, call: Node, ctx: _FileContext) -> Optional[ErrorDetail]:
        constructor = self._constructor(call, ctx)
        if constructor is None:
            return None
        arguments = call.child_by_field_name("arguments")
        args = _named(arguments) if arguments is not None else []
        detail = ErrorDetail(
            code_ref=None,
            package=ctx.package,
            path=ctx.path,
            line=_line(call),
            column=_column(call),
            constructor=constructor,
        )
        if not args:
            ctx.flag(RULE_MISSING_ARGUMENT, f"{constructor} call has no arguments", call)
            return detail

        self._code_argument(args[0], detail, ctx)
        label = detail.code_ref or _text(args[0], ctx.source)

        if constructor == _DEPRECATED_CONSTRUCTOR:
            ctx.flag(
                RULE_DEPRECATED_CONSTRUCTOR,
                f"{constructor} is deprecated, use {_DETAIL_CONSTRUCTOR} with severity and detail lists",
                call,
                name=detail.code_ref,
            )
            return detail

        if len(args) < 2:
            ctx.flag(RULE_MISSING_SEVERITY, f"Detail call for {label} has no severity argument", call, name=detail.code_ref)
            return detail
        detail.severity = self._severity(args[1], ctx)

        missing = [label_text for index, (_, label_text) in enumerate(_LIST_FIELDS) if index + 2 >= len(args)]
        if missing:
            ctx.flag(
                RULE_MISSING_ARGUMENT,
                f"Detail call for {label} is missing: {', '.join(missing)}",
                call,
                name=detail.code_ref,
            )
        for index, (attr, label_text) in enumerate(_LIST_FIELDS):
            position = index + 2
            if position >= len(args):
                break
            setattr(detail, attr, self._string_list(args[position], label_text, detail.code_ref, ctx))
        return detail

    @staticmethod
    def _code_argument(node: Node, detail: ErrorDetail, ctx: _FileContext) -> None:
        node = _unwrap_parens(node)
        if node.type == "identifier":
            detail.code_ref = _text(node, ctx.source)
        elif node.type == "selector_expression":
            operand = node.child_by_field_name("operand")
            field_node = node.child_by_field_name("field")
            if operand is not None and field_node is not None and operand.type == "identifier":
                detail.qualifier = _text(operand, ctx.source)
                detail.code_ref = _text(field_node, ctx.source)
            else:
                ctx.flag(
                    RULE_CODE_EXPRESSION_ARGUMENT,
                    f"Code argument {_text(node, ctx.source)} must be an error code constant",
                    node,
                )
        elif node.type in _STRING_LITERALS or node.type == "int_literal":
            ctx.flag(
                RULE_CODE_LITERAL_ARGUMENT,
                f"Code argument {_text(node, ctx.source)} is a literal; pass the error code constant instead",
                node,
            )
        else:
            ctx.flag(
                RULE_CODE_EXPRESSION_ARGUMENT,
                f"Code argument {_text(node, ctx.source)} must be an error code constant",
                node,
            )

    @staticmethod
    def _severity(node: Node, ctx: _FileContext) -> str:
        node = _unwrap_parens(node)
        if node.type == "selector_expression":
            field_node = node.child_by_field_name("field")
            if field_node is not None:
                return _text(field_node, ctx.source)
        return _text(node, ctx.source)

    def _string_list(self, node: Node, label: str, name: Optional[str], ctx: _FileContext) -> List[str]:
        node = _unwrap_parens(node)
        if node.type == "nil":
            return []
        type_node = node.child_by_field_name("type") if node.type == "composite_literal" else None
        if type_node is None or "".join(_text(type_node, ctx.source).split()) != "[]string":
            ctx.flag(
                RULE_NON_LITERAL_LIST,
                f"The {label} argument must be a []string{{...}} literal",
                node,
                name=name,
            )
            return []
        body = node.child_by_field_name("body")
        values: List[str] = []
        for element in _named(body) if body is not None else []:
            if element.type == "keyed_element":
                ctx.flag(RULE_NON_LITERAL_ELEMENT, f"Keyed element in {label}", element, name=name)
                continue
            if element.type in ("literal_element", "element"):
                inner = _named(element)
                if len(inner) != 1:
                    continue
                element = inner[0]
            element = _unwrap_parens(element)
            if element.type in _STRING_LITERALS:
                value = _string_value(element, ctx.source)
                if value and not value[0].isupper():
                    ctx.flag(
                        RULE_LOWERCASE_START,
                        f"Statement in {label} must start with an upper-case letter: {value[:40]!r}",
                        element,
                        name=name,
                    )
                values.append(value)
            elif element.type == "binary_expression" and self._is_concatenation(element, ctx):
                ctx.flag(
                    RULE_STRING_CONCATENATION,
                    f"Do not concatenate strings with '+' in {label}; add separate elements",
                    element,
                    name=name,
                )
            elif element.type in ("identifier", "selector_expression"):
                ctx.flag(
                    RULE_NON_LITERAL_ELEMENT,
                    f"Use string literals in {label}, not {_text(element, ctx.source)}",
                    element,
                    name=name,
                )
            # Call expressions and other expressions are allowed and ignored.
        return values

    @staticmethod
    def _is_concatenation(node: Node, ctx: _FileContext) -> bool:
        operator = node.child_by_field_name("operator")
        return operator is not None and _text(operator, ctx.source) == "+"


__all__ = ["GoDeclarationMatcher"]
