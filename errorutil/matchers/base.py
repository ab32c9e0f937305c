"""Grammar-neutral contract for declaration matchers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path

from ..models import FileResult


class DeclarationMatcher(ABC):
    """Turns one source file into error declarations and detail records.

    Validation, assignment and rewriting only see :class:`FileResult` data,
    so a matcher for another grammar can be swapped in without touching them.
    """

    @abstractmethod
    def supports(self, path: Path) -> bool:
        """Return True when this matcher understands the file."""

    @abstractmethod
    def extract(self, source: bytes, *, path: str, package: str) -> FileResult:
        """Extract declarations, details and style violations from ``source``.

        ``path`` is the root-relative file path and ``package`` the
        root-relative package directory. Unparseable input is reported in
        ``FileResult.errors`` rather than raised.
        """

    def extract_file(self, root: Path, file_path: Path) -> FileResult:
        """Read ``file_path`` and extract it, recording read failures."""
        rel_path = file_path.relative_to(root).as_posix()
        package = file_path.parent.relative_to(root).as_posix()
        if package == ".":
            package = ""
        try:
            source = file_path.read_bytes()
        except OSError as exc:
            return FileResult(path=rel_path, package=package, errors=[f"read error: {exc.strerror or exc}"])
        return self.extract(source, path=rel_path, package=package)
