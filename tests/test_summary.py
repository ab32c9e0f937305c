"""Tests for errorutil.summary."""

from __future__ import annotations

from pathlib import Path

from errorutil.component import Component
from errorutil.summary import summarize
from errorutil.validation import ConventionValidator
from tests._fixtures.factories import make_declaration, make_detail, make_info


def test_summary_counts_codes_and_problems() -> None:
    info = make_info(
        [
            make_declaration("ErrApplyCode", "12", path="helm/error.go"),
            make_declaration("ErrPodCode", "12", path="k8s/error.go"),
            make_declaration("ErrNewCode", path="k8s/error.go", line=4),
            make_declaration("ErrBadCode", "oops", path="k8s/error.go", line=5),
            make_declaration("ErrLowCode", "3", path="mesh/error.go"),
        ],
        [make_detail("ErrApplyCode", path="helm/error.go"), make_detail("ErrPodCode")],
    )
    violations = ConventionValidator().validate(info)
    component = Component("meshkit", "library", 14, Path("component_info.json"))

    summary = summarize(info, violations, component)

    assert summary.component == "meshkit"
    assert summary.declaration_count == 5
    assert summary.detail_count == 2
    assert summary.placeholder_count == 1
    assert summary.int_codes == [3, 12]
    assert (summary.min_code, summary.max_code, summary.next_code) == (3, 12, 14)
    assert summary.duplicate_codes == {"12": ["ErrApplyCode", "ErrPodCode"]}
    assert summary.invalid_codes == ["ErrBadCode"]
    assert summary.orphans == ["ErrNewCode", "ErrBadCode", "ErrLowCode"]
    assert summary.has_violations

    payload = summary.to_dict()
    assert payload["error_count"] == summary.error_count
    assert payload["violations"][0]["rule"]


def test_summary_without_component_uses_snapshot_name() -> None:
    info = make_info([make_declaration("ErrApplyCode", "1")], [make_detail("ErrApplyCode")], component="repo")

    summary = summarize(info, [])

    assert summary.component == "repo"
    assert summary.next_code is None
    assert not summary.has_violations
    assert summary.file_errors == []
