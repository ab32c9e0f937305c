"""Tests for the Markdown error code reference."""

from __future__ import annotations

from pathlib import Path

from errorutil.reference import render_reference

EXPORT = {
    "component_name": "meshkit",
    "component_type": "library",
    "errors": {
        "10": {
            "name": "ErrApplyCode",
            "code": "10",
            "severity": "Alert",
            "short_description": "Failed to apply | patch",
            "long_description": "The apiserver refused the request",
            "probable_cause": "",
            "suggested_remediation": "Check credentials",
        },
        "9": {
            "name": "ErrPodCode",
            "code": "9",
            "severity": "",
            "short_description": "",
            "long_description": "",
            "probable_cause": "",
            "suggested_remediation": "",
        },
    },
}


def test_render_reference_lists_codes_in_numeric_order() -> None:
    markdown = render_reference(EXPORT)

    assert markdown.startswith("# Error code reference: meshkit")
    assert "2 error code(s)" in markdown
    assert markdown.index("| 9 |") < markdown.index("| 10 |")
    assert "Failed to apply \\| patch" in markdown
    assert "| 9 | `ErrPodCode` | - | - |" in markdown
    assert "## 10: ErrApplyCode" in markdown
    assert "**Suggested remediation:** Check credentials" in markdown
    assert "**Probable cause:**" not in markdown


def test_render_reference_prefers_custom_template(tmp_path: Path) -> None:
    (tmp_path / "error_reference.md.j2").write_text(
        "{% for error in errors %}{{ error.code }}={{ error.name }}\n{% endfor %}",
        encoding="utf-8",
    )

    markdown = render_reference(EXPORT, templates_dir=tmp_path)

    assert markdown == "9=ErrPodCode\n10=ErrApplyCode\n"
