"""Pipeline orchestration for the analyze and update flows."""

from __future__ import annotations

import json
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Optional, Sequence

from .assignment import Assignment, CodeAssignmentEngine
from .component import CodeCounter, Component, ComponentRegistry
from .config import DEFAULT_DETAIL_IMPORT_PATH, DEFAULT_ERROR_FILE, ErrorUtilConfig
from .errors import ArtifactWriteError, ComponentError, ComponentNotFoundError, RootDirectoryError
from .export import build_export
from .info import InfoAll
from .logging import get_logger
from .matchers import DeclarationMatcher, GoDeclarationMatcher
from .rewriter import RewriteReport, SourceRewriter, write_atomic
from .summary import AnalysisSummary, log_summary, summarize
from .validation import ConventionValidator
from .walker import TreeWalker, WalkIssue

APP_NAME = "errorutil"
ERRORS_ARTIFACT = f"{APP_NAME}_analyze_errors.json"
SUMMARY_ARTIFACT = f"{APP_NAME}_analyze_summary.json"
EXPORT_ARTIFACT = f"{APP_NAME}_errors_export.json"

EXIT_OK = 0
EXIT_PROCESS_ERROR = 1
EXIT_VIOLATIONS = 3


def default_workers() -> int:
    return min(8, os.cpu_count() or 1)


@dataclass
class RunSettings:
    """Effective settings for one run after merging config and CLI flags."""

    root: Path
    out_dir: Optional[Path] = None
    info_dir: Optional[Path] = None
    skip_dirs: List[str] = field(default_factory=list)
    workers: int = 1
    detail_import_path: str = DEFAULT_DETAIL_IMPORT_PATH
    error_file: str = DEFAULT_ERROR_FILE

    @classmethod
    def from_config(
        cls,
        config: ErrorUtilConfig,
        *,
        out_dir: Optional[Path] = None,
        info_dir: Optional[Path] = None,
        skip_dirs: Sequence[str] = (),
        workers: Optional[int] = None,
    ) -> "RunSettings":
        merged_skips = list(config.skip_dirs)
        merged_skips.extend(entry for entry in skip_dirs if entry not in merged_skips)
        return cls(
            root=config.root,
            out_dir=out_dir or config.out_dir,
            info_dir=info_dir or config.info_dir,
            skip_dirs=merged_skips,
            workers=workers or config.workers or default_workers(),
            detail_import_path=config.detail_import_path,
            error_file=config.error_file,
        )

    @property
    def output_dir(self) -> Path:
        return self.out_dir or self.root

    @property
    def component_dir(self) -> Path:
        return self.info_dir or self.root


@dataclass
class RunOutcome:
    """Result of a completed run."""

    info: InfoAll
    summary: AnalysisSummary
    component: Optional[Component]
    artifacts: List[Path] = field(default_factory=list)
    assignments: List[Assignment] = field(default_factory=list)
    rewrite: Optional[RewriteReport] = None

    @property
    def process_errors(self) -> List[str]:
        errors = [f"{entry['path']}: {entry['error']}" for entry in self.summary.file_errors]
        if self.rewrite is not None:
            errors.extend(f"{entry.path}: {entry.error}" for entry in self.rewrite.failed)
        return errors

    @property
    def exit_code(self) -> int:
        if self.process_errors:
            return EXIT_PROCESS_ERROR
        if self.summary.has_violations:
            return EXIT_VIOLATIONS
        return EXIT_OK


class Orchestrator:
    """Coordinates walk, validation, code assignment, rewriting and export."""

    def __init__(
        self,
        matcher: DeclarationMatcher | None = None,
        validator: ConventionValidator | None = None,
        engine: CodeAssignmentEngine | None = None,
    ) -> None:
        self._matcher = matcher
        self._validator = validator
        self.engine = engine or CodeAssignmentEngine()
        self.logger = get_logger("orchestrator")

    def analyze(self, settings: RunSettings, component_name: Optional[str] = None) -> InfoAll:
        """Walk the tree once and return a fresh snapshot; never writes."""
        root = settings.root.resolve()
        matcher = self._resolve_matcher(settings)
        issues: List[WalkIssue] = []
        walker = TreeWalker(settings.skip_dirs)
        files = [path for path in walker.walk(root, issues) if matcher.supports(path)]
        self.logger.debug("Walker found %d candidate file(s) under %s", len(files), root)

        workers = max(1, min(settings.workers, len(files) or 1))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            results = list(pool.map(lambda path: matcher.extract_file(root, path), files))
        return InfoAll.build(component_name or root.name, str(root), results, issues)

    def run(self, settings: RunSettings, *, update: bool = False, force: bool = False) -> RunOutcome:
        """Run analyze (or update) and write the three artifacts.

        Raises :class:`ComponentError` when metadata is needed and unusable,
        :class:`CounterPersistenceError` when rewritten sources and the counter
        disagree, and :class:`ArtifactWriteError` when an artifact cannot be
        written.
        """
        root = settings.root.resolve()
        if not root.is_dir():
            raise RootDirectoryError(f"Root directory not found: {settings.root}")
        registry = ComponentRegistry(settings.component_dir)
        component: Optional[Component] = None
        component_error: Optional[ComponentError] = None
        if update:
            component = registry.load()
        else:
            try:
                component = registry.load()
            except ComponentError as exc:
                component_error = exc
                self.logger.debug("Component metadata unavailable: %s", exc)

        mode = "update (force)" if force else "update" if update else "analyze"
        self.logger.info("Starting %s run for %s", mode, root)
        info = self.analyze(settings, component.name if component else None)

        assignments: List[Assignment] = []
        rewrite: Optional[RewriteReport] = None
        if update and component is not None:
            assignments, rewrite = self._assign_and_rewrite(settings, info, component, registry, force=force)
            # Report what is on disk now, not the pre-update snapshot.
            info = self.analyze(settings, component.name)

        violations = self._resolve_validator(settings).validate(info)
        summary = summarize(info, violations, component)
        log_summary(summary)

        out_dir = settings.output_dir
        artifacts = [
            self._write_json(out_dir / ERRORS_ARTIFACT, info.to_dict()),
            self._write_json(out_dir / SUMMARY_ARTIFACT, summary.to_dict()),
        ]
        if component is None:
            if component_error is not None:
                raise component_error
            raise ComponentNotFoundError(f"Component metadata not found: {registry.path}")
        artifacts.append(self._write_json(out_dir / EXPORT_ARTIFACT, build_export(info, component)))

        return RunOutcome(
            info=info,
            summary=summary,
            component=component,
            artifacts=artifacts,
            assignments=assignments,
            rewrite=rewrite,
        )

    # ------------------------------------------------------------------
    # Internal helpers

    def _assign_and_rewrite(
        self,
        settings: RunSettings,
        info: InfoAll,
        component: Component,
        registry: ComponentRegistry,
        *,
        force: bool,
    ) -> tuple[List[Assignment], RewriteReport]:
        counter = CodeCounter.for_component(component)
        assignments = self.engine.plan(info, counter, force=force)
        if not assignments:
            self.logger.info("No codes to assign")
            return assignments, RewriteReport()

        rewrite = SourceRewriter(settings.workers).apply(settings.root.resolve(), assignments)
        committed = rewrite.committed
        next_code = max(a.code for a in committed) + 1 if committed else counter.start
        if next_code < counter.next_code:
            self.logger.error(
                "%d of %d assignment(s) were not written; next_error_code advances only to %d",
                len(assignments) - len(committed),
                len(assignments),
                next_code,
            )
        registry.commit(component, next_code)
        return assignments, rewrite

    def _resolve_matcher(self, settings: RunSettings) -> DeclarationMatcher:
        if self._matcher is None:
            self._matcher = GoDeclarationMatcher(settings.detail_import_path)
        return self._matcher

    def _resolve_validator(self, settings: RunSettings) -> ConventionValidator:
        return self._validator or ConventionValidator(settings.error_file)

    def _write_json(self, path: Path, payload: Any) -> Path:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            write_atomic(path, (json.dumps(payload, indent=2) + "\n").encode("utf-8"))
        except OSError as exc:
            raise ArtifactWriteError(path, exc.strerror or str(exc)) from exc
        self.logger.debug("Wrote %s", path)
        return path


__all__ = [
    "APP_NAME",
    "ERRORS_ARTIFACT",
    "EXIT_OK",
    "EXIT_PROCESS_ERROR",
    "EXIT_VIOLATIONS",
    "EXPORT_ARTIFACT",
    "Orchestrator",
    "RunOutcome",
    "RunSettings",
    "SUMMARY_ARTIFACT",
]
