"""Tests for the tree-sitter Go declaration matcher."""

from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from errorutil.matchers import GoDeclarationMatcher
from errorutil.models import (
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
)


@pytest.fixture(scope="module")
def matcher() -> GoDeclarationMatcher:
    return GoDeclarationMatcher()


def _extract(matcher: GoDeclarationMatcher, content: str, path: str = "k8s/error.go"):
    source = textwrap.dedent(content).lstrip("\n").encode("utf-8")
    package = path.rsplit("/", 1)[0] if "/" in path else ""
    return source, matcher.extract(source, path=path, package=package)


def _rules(result) -> list[str]:
    return [violation.rule for violation in result.violations]


def test_extracts_placeholder_constants_with_exact_spans(matcher: GoDeclarationMatcher) -> None:
    source, result = _extract(
        matcher,
        """
        package k8s

        const (
        	ErrApplyManifestCode = "replace_me"
        	ErrGetPodsCode       = "1012"
        )
        """,
    )

    assert result.ok
    assert result.package_name == "k8s"
    names = [decl.name for decl in result.declarations]
    assert names == ["ErrApplyManifestCode", "ErrGetPodsCode"]

    placeholder, numbered = result.declarations
    assert placeholder.is_placeholder
    assert placeholder.value_kind == VALUE_STRING
    assert placeholder.kind == "const"
    assert placeholder.line == 4
    assert source[placeholder.span.start : placeholder.span.end] == b'"replace_me"'
    assert numbered.code == 1012
    assert source[numbered.span.start : numbered.span.end] == b'"1012"'


def test_ignores_names_outside_the_code_pattern(matcher: GoDeclarationMatcher) -> None:
    _, result = _extract(
        matcher,
        """
        package k8s

        const (
        	ErrCode            = "replace_me"
        	ErrApplyManifest   = "replace_me"
        	errApplyCode       = "replace_me"
        	ErrlowercaseCode   = "replace_me"
        	ErrTypedCode   int = 12
        	ErrValidCode       = "replace_me"
        )
        """,
    )

    assert [decl.name for decl in result.declarations] == ["ErrValidCode"]


def test_classifies_declaration_values(matcher: GoDeclarationMatcher) -> None:
    _, result = _extract(
        matcher,
        """
        package k8s

        const prefix = "10"

        const ErrIntCode = 42
        const ErrExprCode = prefix + "1"
        const ErrRawCode = `replace_me`

        var ErrVarCode = "replace_me"

        var ErrUnsetCode string
        """,
    )

    by_name = {decl.name: decl for decl in result.declarations}
    assert by_name["ErrIntCode"].value_kind == VALUE_INT
    assert by_name["ErrIntCode"].code == 42
    assert by_name["ErrExprCode"].value_kind == VALUE_EXPRESSION
    assert by_name["ErrExprCode"].span is None
    assert by_name["ErrRawCode"].is_placeholder
    assert by_name["ErrRawCode"].literal == "`replace_me`"
    assert by_name["ErrVarCode"].kind == "var"
    assert by_name["ErrUnsetCode"].value_kind == VALUE_MISSING
    assert by_name["ErrUnsetCode"].span is None


def test_ignores_function_local_declarations(matcher: GoDeclarationMatcher) -> None:
    _, result = _extract(
        matcher,
        """
        package k8s

        func helper() string {
        	const ErrLocalCode = "replace_me"
        	return ErrLocalCode
        }
        """,
    )

    assert result.declarations == []


def test_extracts_detail_record(matcher: GoDeclarationMatcher) -> None:
    _, result = _extract(
        matcher,
        """
        package k8s

        import (
        	"fmt"

        	"github.com/layer5io/meshkit/errors"
        )

        const ErrApplyManifestCode = "replace_me"

        func ErrApplyManifest(err error) error {
        	return errors.New(ErrApplyManifestCode, errors.Alert,
        		[]string{"Failed to apply manifest", "Check input"},
        		[]string{err.Error()},
        		[]string{"The manifest is \\"invalid\\""},
        		[]string{fmt.Sprintf("Run %s", "kubectl")},
        	)
        }
        """,
    )

    assert result.violations == []
    assert len(result.details) == 1
    detail = result.details[0]
    assert detail.code_ref == "ErrApplyManifestCode"
    assert detail.qualifier is None
    assert detail.severity == "Alert"
    assert detail.short_description == ["Failed to apply manifest", "Check input"]
    assert detail.long_description == []
    assert detail.probable_cause == ['The manifest is "invalid"']
    assert detail.suggested_remediation == []


def test_detects_aliased_import_and_ignores_stdlib_errors(matcher: GoDeclarationMatcher) -> None:
    _, result = _extract(
        matcher,
        """
        package k8s

        import (
        	"errors"

        	merrors "github.com/layer5io/meshkit/errors"
        )

        const ErrPodCode = "replace_me"

        var errPlain = errors.New("boom")

        func ErrPod(err error) error {
        	return merrors.New(ErrPodCode, merrors.Fatal, []string{"Pod failed"}, []string{"Pod failed"}, []string{"Unknown"}, []string{"Retry"})
        }
        """,
    )

    assert result.violations == []
    assert [detail.code_ref for detail in result.details] == ["ErrPodCode"]
    assert result.details[0].severity == "Fatal"


def test_unqualified_constructor_inside_errors_package(matcher: GoDeclarationMatcher) -> None:
    _, result = _extract(
        matcher,
        """
        package errors

        const ErrInternalCode = "replace_me"

        func ErrInternal() error {
        	return New(ErrInternalCode, Alert, []string{"Internal"}, []string{"Internal"}, []string{"Bug"}, []string{"Report it"})
        }
        """,
        path="errors/error.go",
    )

    assert [detail.code_ref for detail in result.details] == ["ErrInternalCode"]


def test_flags_literal_code_argument(matcher: GoDeclarationMatcher) -> None:
    _, result = _extract(
        matcher,
        """
        package k8s

        import "github.com/layer5io/meshkit/errors"

        func ErrLiteral() error {
        	return errors.New("1001", errors.Alert, []string{"A"}, []string{"B"}, []string{"C"}, []string{"D"})
        }
        """,
    )

    assert _rules(result) == [RULE_CODE_LITERAL_ARGUMENT]
    assert result.details[0].code_ref is None


def test_records_qualified_code_reference(matcher: GoDeclarationMatcher) -> None:
    _, result = _extract(
        matcher,
        """
        package k8s

        import (
        	"github.com/layer5io/meshkit/errors"
        	"github.com/layer5io/meshkit/utils"
        )

        func ErrRemote() error {
        	return errors.New(utils.ErrRemoteCode, errors.Alert, []string{"A"}, []string{"B"}, []string{"C"}, []string{"D"})
        }
        """,
    )

    detail = result.details[0]
    assert detail.qualifier == "utils"
    assert detail.code_ref == "ErrRemoteCode"


def test_flags_style_problems_in_detail_lists(matcher: GoDeclarationMatcher) -> None:
    _, result = _extract(
        matcher,
        """
        package k8s

        import "github.com/layer5io/meshkit/errors"

        const ErrStyleCode = "replace_me"

        var causes = []string{"Cause"}

        func ErrStyle(name string) error {
        	return errors.New(ErrStyleCode, errors.Alert,
        		[]string{"failed to start"},
        		[]string{"Failed for " + name},
        		causes,
        		[]string{remedyText},
        	)
        }
        """,
    )

    rules = _rules(result)
    assert RULE_LOWERCASE_START in rules
    assert RULE_STRING_CONCATENATION in rules
    assert RULE_NON_LITERAL_LIST in rules
    assert RULE_NON_LITERAL_ELEMENT in rules
    assert all(violation.name == "ErrStyleCode" for violation in result.violations)
    assert result.details[0].short_description == ["failed to start"]


def test_flags_missing_arguments(matcher: GoDeclarationMatcher) -> None:
    _, result = _extract(
        matcher,
        """
        package k8s

        import "github.com/layer5io/meshkit/errors"

        const ErrShortCode = "replace_me"
        const ErrShorterCode = "replace_me"

        func ErrShort() error {
        	return errors.New(ErrShortCode, errors.Alert, []string{"Short"})
        }

        func ErrShorter() error {
        	return errors.New(ErrShorterCode)
        }
        """,
    )

    rules = _rules(result)
    assert rules.count(RULE_MISSING_ARGUMENT) == 1
    assert rules.count(RULE_MISSING_SEVERITY) == 1
    missing = next(v for v in result.violations if v.rule == RULE_MISSING_ARGUMENT)
    assert "long description" in missing.message
    assert "suggested remediation" in missing.message


def test_flags_deprecated_constructor(matcher: GoDeclarationMatcher) -> None:
    _, result = _extract(
        matcher,
        """
        package k8s

        import "github.com/layer5io/meshkit/errors"

        const ErrOldCode = "replace_me"

        func ErrOld(err error) error {
        	return errors.NewDefault(ErrOldCode, "Old style")
        }
        """,
    )

    assert _rules(result) == [RULE_DEPRECATED_CONSTRUCTOR]
    assert result.details[0].constructor == "NewDefault"
    assert result.details[0].code_ref == "ErrOldCode"


def test_syntax_error_is_recorded_not_raised(matcher: GoDeclarationMatcher) -> None:
    _, result = _extract(
        matcher,
        """
        package k8s

        const ErrBrokenCode = "replace_me"

        func broken( {
        """,
    )

    assert not result.ok
    assert result.errors[0].startswith("syntax error near line")
    assert result.declarations == []


def test_invalid_utf8_is_a_read_error(matcher: GoDeclarationMatcher) -> None:
    result = matcher.extract(b"package k8s\n// \xff\xfe\n", path="k8s/error.go", package="k8s")

    assert not result.ok
    assert "not valid UTF-8" in result.errors[0]


def test_extract_file_uses_root_relative_paths(matcher: GoDeclarationMatcher, tmp_path: Path) -> None:
    path = tmp_path / "pkg" / "mesh" / "error.go"
    path.parent.mkdir(parents=True)
    path.write_text('package mesh\n\nconst ErrMeshCode = "replace_me"\n', encoding="utf-8")

    result = matcher.extract_file(tmp_path, path)

    assert result.path == "pkg/mesh/error.go"
    assert result.package == "pkg/mesh"
    assert result.declarations[0].package == "pkg/mesh"
    assert matcher.supports(path)
    assert not matcher.supports(tmp_path / "README.md")
