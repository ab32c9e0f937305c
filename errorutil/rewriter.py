"""Span-exact, atomic source rewriting."""

from __future__ import annotations

import os
import stat
import tempfile
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

from .assignment import Assignment
from .logging import get_logger

logger = get_logger("rewriter")


class StaleSpanError(ValueError):
    """Raised when a file no longer holds the literal recorded at extraction time."""


@dataclass
class FileRewrite:
    """Outcome of rewriting one file."""

    path: str
    assignments: List[Assignment]
    written: bool = False
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class RewriteReport:
    files: List[FileRewrite] = field(default_factory=list)

    @property
    def failed(self) -> List[FileRewrite]:
        return [entry for entry in self.files if not entry.ok]

    @property
    def written(self) -> List[FileRewrite]:
        return [entry for entry in self.files if entry.written]

    @property
    def committed(self) -> List[Assignment]:
        """Assignments whose literal is now on disk."""
        return [assignment for entry in self.files if entry.ok for assignment in entry.assignments]


def apply_edits(source: bytes, assignments: Sequence[Assignment]) -> bytes:
    """Replace each assignment's literal span and nothing else.

    Raises :class:`StaleSpanError` when a span no longer contains the expected
    literal or two spans overlap.
    """
    ordered = sorted(
        assignments,
        key=lambda item: item.declaration.span.start if item.declaration.span is not None else -1,
    )
    updated = bytearray()
    cursor = 0
    for assignment in ordered:
        span = assignment.declaration.span
        if span is None:
            raise StaleSpanError(f"{assignment.declaration.name} has no literal to rewrite")
        if span.start < cursor:
            raise StaleSpanError(f"Overlapping literal spans at byte {span.start}")
        expected = assignment.old_literal.encode("utf-8")
        if source[span.start : span.end] != expected:
            raise StaleSpanError(
                f"{assignment.declaration.name}: expected {assignment.old_literal} at bytes "
                f"{span.start}-{span.end}; the file changed since it was analyzed"
            )
        updated += source[cursor : span.start]
        updated += assignment.new_literal.encode("utf-8")
        cursor = span.end
    updated += source[cursor:]
    return bytes(updated)


def write_atomic(path: Path, data: bytes) -> None:
    """Write ``data`` to a temp file beside ``path`` and rename it into place."""
    try:
        mode = stat.S_IMODE(path.stat().st_mode)
    except FileNotFoundError:
        mode = None
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        if mode is not None:
            os.chmod(tmp_path, mode)
        os.replace(tmp_path, path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except FileNotFoundError:
            pass
        raise


class SourceRewriter:
    """Applies assignments to files, one worker task per file."""

    def __init__(self, workers: int = 1) -> None:
        self.workers = max(1, workers)

    def apply(self, root: Path, assignments: Iterable[Assignment]) -> RewriteReport:
        grouped: Dict[str, List[Assignment]] = {}
        for assignment in assignments:
            grouped.setdefault(assignment.path, []).append(assignment)
        if not grouped:
            return RewriteReport()

        items = sorted(grouped.items())
        with ThreadPoolExecutor(max_workers=min(self.workers, len(items))) as pool:
            results = list(pool.map(lambda item: self._rewrite_file(root, item[0], item[1]), items))
        report = RewriteReport(files=results)
        for entry in report.failed:
            logger.error("Failed to rewrite %s: %s", entry.path, entry.error)
        return report

    @staticmethod
    def _rewrite_file(root: Path, rel_path: str, assignments: List[Assignment]) -> FileRewrite:
        entry = FileRewrite(path=rel_path, assignments=assignments)
        path = root / rel_path
        try:
            original = path.read_bytes()
            updated = apply_edits(original, assignments)
        except OSError as exc:
            entry.error = f"read error: {exc.strerror or exc}"
            return entry
        except StaleSpanError as exc:
            entry.error = str(exc)
            return entry

        if updated == original:
            logger.debug("No changes for %s", rel_path)
            return entry
        try:
            write_atomic(path, updated)
        except OSError as exc:
            entry.error = f"write error: {exc.strerror or exc}"
            return entry
        entry.written = True
        logger.info("Updated %d code(s) in %s", len(assignments), rel_path)
        return entry


__all__ = ["FileRewrite", "RewriteReport", "SourceRewriter", "StaleSpanError", "apply_edits", "write_atomic"]
