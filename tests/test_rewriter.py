"""Tests for span-exact source rewriting."""

from __future__ import annotations

import os
import stat
from pathlib import Path

import pytest

from errorutil.assignment import Assignment
from errorutil.rewriter import SourceRewriter, StaleSpanError, apply_edits, write_atomic
from tests._fixtures.factories import make_declaration

SOURCE = """package k8s

// ErrApplyCode is "replace_me" until CI assigns it.
const (
\tErrApplyCode = "replace_me"
\tErrPodCode   = "replace_me" // keep this comment
)
"""


def _assignment(source: str, name: str, code: int, *, path: str = "k8s/error.go") -> Assignment:
    start = source.index('"replace_me"', source.index(f"\t{name} "))
    decl = make_declaration(name, path=path, start=len(source[:start].encode("utf-8")))
    return Assignment(decl, code)


def test_apply_edits_replaces_only_the_literal_spans() -> None:
    edits = [_assignment(SOURCE, "ErrPodCode", 8), _assignment(SOURCE, "ErrApplyCode", 7)]

    updated = apply_edits(SOURCE.encode("utf-8"), edits).decode("utf-8")

    assert updated == SOURCE.replace(
        '\tErrApplyCode = "replace_me"', '\tErrApplyCode = "7"'
    ).replace('\tErrPodCode   = "replace_me"', '\tErrPodCode   = "8"')
    assert '// ErrApplyCode is "replace_me" until CI assigns it.' in updated


def test_apply_edits_rejects_stale_spans() -> None:
    edit = _assignment(SOURCE, "ErrApplyCode", 7)
    changed = SOURCE.replace('ErrApplyCode = "replace_me"', 'ErrApplyCode = "1"')

    with pytest.raises(StaleSpanError):
        apply_edits(changed.encode("utf-8"), [edit])


def test_apply_edits_rejects_overlapping_spans() -> None:
    edit = _assignment(SOURCE, "ErrApplyCode", 7)

    with pytest.raises(StaleSpanError):
        apply_edits(SOURCE.encode("utf-8"), [edit, Assignment(edit.declaration, 8)])


def test_source_rewriter_writes_files_atomically(tmp_path: Path) -> None:
    target = tmp_path / "k8s" / "error.go"
    target.parent.mkdir()
    target.write_text(SOURCE, encoding="utf-8")
    os.chmod(target, 0o640)

    report = SourceRewriter(workers=2).apply(
        tmp_path,
        [_assignment(SOURCE, "ErrApplyCode", 7), _assignment(SOURCE, "ErrPodCode", 8)],
    )

    assert report.failed == []
    assert [entry.path for entry in report.written] == ["k8s/error.go"]
    assert sorted(a.code for a in report.committed) == [7, 8]
    assert 'ErrApplyCode = "7"' in target.read_text(encoding="utf-8")
    assert stat.S_IMODE(target.stat().st_mode) == 0o640
    assert [p.name for p in target.parent.iterdir()] == ["error.go"]


def test_source_rewriter_skips_unchanged_files(tmp_path: Path) -> None:
    source = 'package k8s\n\nconst ErrDoneCode = "5"\n'
    target = tmp_path / "k8s" / "error.go"
    target.parent.mkdir()
    target.write_text(source, encoding="utf-8")
    os.utime(target, (1_000_000, 1_000_000))
    decl = make_declaration("ErrDoneCode", "5", start=source.index('"5"'))

    report = SourceRewriter().apply(tmp_path, [Assignment(decl, 5)])

    assert report.written == []
    assert report.failed == []
    assert [a.code for a in report.committed] == [5]
    assert target.stat().st_mtime == 1_000_000


def test_source_rewriter_reports_failures_per_file(tmp_path: Path) -> None:
    good = tmp_path / "a" / "error.go"
    good.parent.mkdir()
    good.write_text(SOURCE, encoding="utf-8")
    stale = tmp_path / "b" / "error.go"
    stale.parent.mkdir()
    stale.write_text(SOURCE.replace("replace_me", "edited_now"), encoding="utf-8")

    report = SourceRewriter(workers=2).apply(
        tmp_path,
        [
            _assignment(SOURCE, "ErrApplyCode", 7, path="a/error.go"),
            _assignment(SOURCE, "ErrApplyCode", 8, path="b/error.go"),
            _assignment(SOURCE, "ErrPodCode", 9, path="missing/error.go"),
        ],
    )

    assert [entry.path for entry in report.written] == ["a/error.go"]
    assert sorted(entry.path for entry in report.failed) == ["b/error.go", "missing/error.go"]
    assert [a.code for a in report.committed] == [7]
    assert "edited_now" in stale.read_text(encoding="utf-8")


def test_write_atomic_creates_new_file(tmp_path: Path) -> None:
    target = tmp_path / "out.json"

    write_atomic(target, b"{}\n")

    assert target.read_bytes() == b"{}\n"
