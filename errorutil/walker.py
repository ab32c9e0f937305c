"""Source tree walking with directory skip rules."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Set

from .errors import RootDirectoryError
from .logging import get_logger

DEFAULT_SKIP_DIRS = frozenset({".git", "vendor", "node_modules"})

logger = get_logger("walker")


@dataclass
class WalkIssue:
    """A path that could not be visited; the walk continues past it."""

    path: str
    reason: str

    def to_dict(self) -> dict[str, str]:
        return {"path": self.path, "reason": self.reason}


def _normalise_skip(entry: str) -> str:
    cleaned = entry.strip().replace("\\", "/")
    while cleaned.startswith("./"):
        cleaned = cleaned[2:]
    return cleaned.strip("/")


class TreeWalker:
    """Yields candidate Go source files under a root directory.

    A directory is skipped when its name or its root-relative path appears in
    the skip set; skipped directories are never descended into.
    """

    def __init__(
        self,
        skip_dirs: Iterable[str] = (),
        *,
        suffix: str = ".go",
        include_tests: bool = False,
        use_default_skips: bool = True,
    ) -> None:
        skips: Set[str] = set(DEFAULT_SKIP_DIRS) if use_default_skips else set()
        skips.update(_normalise_skip(entry) for entry in skip_dirs if entry.strip())
        self.skip_dirs = frozenset(skips)
        self.suffix = suffix
        self.include_tests = include_tests

    def walk(self, root: Path | str, issues: Optional[List[WalkIssue]] = None) -> Iterator[Path]:
        """Return a lazy iterator of candidate files.

        Raises :class:`RootDirectoryError` immediately when the root itself is
        unusable. Per-path problems are appended to ``issues``.
        """
        root_path = Path(root).expanduser()
        if not root_path.exists():
            raise RootDirectoryError(f"Root directory not found: {root}")
        if not root_path.is_dir():
            raise RootDirectoryError(f"Root path is not a directory: {root}")
        try:
            with os.scandir(root_path):
                pass
        except OSError as exc:
            raise RootDirectoryError(f"Cannot read root directory {root}: {exc}") from exc
        return self._iter_files(root_path.resolve(), issues if issues is not None else [])

    def is_skipped(self, name: str, rel_path: str) -> bool:
        return name in self.skip_dirs or rel_path in self.skip_dirs

    def _iter_files(self, root: Path, issues: List[WalkIssue]) -> Iterator[Path]:
        visited: Set[str] = {os.path.realpath(root)}

        def _on_error(exc: OSError) -> None:
            path = exc.filename or str(root)
            issues.append(WalkIssue(path=str(path), reason=exc.strerror or str(exc)))
            logger.warning("Cannot read %s: %s", path, exc.strerror or exc)

        for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error, followlinks=True):
            current_dir = Path(dirpath)
            rel_dir = current_dir.relative_to(root).as_posix() if current_dir != root else ""

            kept: List[str] = []
            for name in sorted(dirnames):
                rel_path = f"{rel_dir}/{name}" if rel_dir else name
                if self.is_skipped(name, rel_path):
                    logger.debug("Skipping directory %s", rel_path)
                    continue
                real = os.path.realpath(current_dir / name)
                if real in visited:
                    current_real = os.path.realpath(current_dir)
                    if current_real == real or current_real.startswith(real + os.sep):
                        issues.append(WalkIssue(path=rel_path, reason="symlink cycle"))
                        logger.warning("Not following %s: symlink cycle", rel_path)
                    else:
                        logger.warning("Not following %s: %s is already walked", rel_path, real)
                    continue
                visited.add(real)
                kept.append(name)
            dirnames[:] = kept

            for filename in sorted(filenames):
                if not filename.endswith(self.suffix):
                    continue
                if not self.include_tests and filename.endswith(f"_test{self.suffix}"):
                    continue
                yield current_dir / filename


__all__ = ["DEFAULT_SKIP_DIRS", "TreeWalker", "WalkIssue"]
