"""CLI entrypoints for errorutil commands."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from .config import load_config
from .errors import ConfigError, CounterPersistenceError, ErrorUtilError
from .export import load_export
from .logging import configure_logging, get_logger, log_exception
from .orchestrator import (
    APP_NAME,
    EXIT_OK,
    EXIT_PROCESS_ERROR,
    EXIT_VIOLATIONS,
    Orchestrator,
    RunSettings,
)
from .reference import render_reference

DOCUMENTATION = """
errorutil analyzes, verifies and updates MeshKit compatible errors in Go source trees.

A MeshKit compatible error consists of
- An error code declared as a constant or variable (preferably a constant) of type string.
  - Its name matches the regex "^Err[A-Z].+Code$", e.g. ErrApplyManifestCode.
  - The developer sets the initial value to the placeholder string "replace_me".
  - A CI workflow running 'errorutil update' replaces the placeholder with an integer.
- Error details created with errors.New(code, severity, sdescription, ldescription, probablecause, remedy)
  from MeshKit.
  - Pass the error code constant (or variable) as 'code', never a string literal.
  - 'severity' has its own type; see the MeshKit documentation.
  - The remaining parameters are string slices: short and long description, probable cause and
    suggested remediation.
  - Use string literals in these slices, not constants or variables.
  - Start every statement with an upper-case letter.
  - Call expressions are allowed but are left out of the exported documentation.
  - Do not concatenate strings with '+'; add another element to the slice instead.

Further conventions:
- Each package declares its errors in a file named error.go.
- Error codes are unique within a component and are never reused across components.
- Components have no predefined code ranges, and codes carry no meaning.

Output files (written to --out-dir, default: the root directory):
- errorutil_analyze_errors.json: every declaration and detail record found, per package and file
- errorutil_analyze_summary.json: counts, duplicates and violations, used for validation
- errorutil_errors_export.json: codes with their details, used for the error code reference

Components:
- A component has a name and a type, e.g. MeshKit has name 'meshkit' and type 'library'.
- The tool reads component_info.json from --info-dir (default: the root directory):
  {
    "name": "meshkit",
    "type": "library",
    "next_error_code": 1014
  }
- next_error_code is the next integer handed out by 'update'; the tool advances it.

Exit codes: 0 clean, 1 process error, 2 usage error, 3 convention violations present.
"""


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _add_tree_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-d",
        "--dir",
        default=".",
        help="Root directory of the source tree (defaults to current directory).",
    )
    parser.add_argument(
        "-o",
        "--out-dir",
        default=None,
        help="Directory for the JSON artifacts (defaults to the root directory).",
    )
    parser.add_argument(
        "-i",
        "--info-dir",
        default=None,
        help="Directory containing component_info.json (defaults to the root directory).",
    )
    parser.add_argument(
        "--skip-dirs",
        action="append",
        default=[],
        help="Directories to skip (comma-separated list, repeatable argument).",
    )
    parser.add_argument(
        "-j",
        "--workers",
        type=int,
        default=None,
        help="Number of files parsed in parallel.",
    )
    parser.add_argument(
        "--log-file",
        default=None,
        help="Also write debug logs to this file.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description="Analyze, verify and update MeshKit compatible error codes in Go source trees.",
    )
    _add_verbose_option(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze_parser = subparsers.add_parser(
        "analyze",
        help="Analyze a directory tree for error codes.",
    )
    _add_verbose_option(analyze_parser, suppress_default=True)
    _add_tree_options(analyze_parser)

    update_parser = subparsers.add_parser(
        "update",
        help="Replace placeholder error codes with integers and export them.",
    )
    _add_verbose_option(update_parser, suppress_default=True)
    _add_tree_options(update_parser)
    update_parser.add_argument(
        "--force",
        action="store_true",
        help="Update and re-sequence all error codes.",
    )

    doc_parser = subparsers.add_parser(
        "doc",
        help="Print the documentation.",
    )
    _add_verbose_option(doc_parser, suppress_default=True)

    reference_parser = subparsers.add_parser(
        "reference",
        help="Render a Markdown error code reference from an export file.",
    )
    _add_verbose_option(reference_parser, suppress_default=True)
    reference_parser.add_argument(
        "export",
        help=f"Path to {APP_NAME}_errors_export.json.",
    )
    reference_parser.add_argument(
        "-o",
        "--output",
        default=None,
        help="Write Markdown to this file instead of stdout.",
    )
    reference_parser.add_argument(
        "--templates-dir",
        default=None,
        help="Directory with a custom error_reference.md.j2 template.",
    )

    return parser


def _split_skip_dirs(values: Optional[List[str]]) -> List[str]:
    skip_dirs: List[str] = []
    for value in values or []:
        for part in value.split(","):
            part = part.strip()
            if part and part not in skip_dirs:
                skip_dirs.append(part)
    return skip_dirs


def _settings_from_args(args: argparse.Namespace) -> RunSettings:
    root = Path(args.dir).expanduser()
    config = load_config(root)
    return RunSettings.from_config(
        config,
        out_dir=Path(args.out_dir).expanduser().resolve() if args.out_dir else None,
        info_dir=Path(args.info_dir).expanduser().resolve() if args.info_dir else None,
        skip_dirs=_split_skip_dirs(args.skip_dirs),
        workers=args.workers,
    )


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for errorutil commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    log_file = getattr(args, "log_file", None)
    configure_logging(verbose=bool(args.verbose), log_file=Path(log_file) if log_file else None)
    logger = get_logger("cli")

    if args.command == "doc":
        print(DOCUMENTATION)
        return
    if args.command == "reference":
        _run_reference(parser, args)
        return

    if args.workers is not None and args.workers < 1:
        parser.error("--workers must be at least 1")

    update = args.command == "update"
    try:
        settings = _settings_from_args(args)
        outcome = Orchestrator().run(settings, update=update, force=bool(getattr(args, "force", False)))
    except ConfigError as exc:
        parser.exit(EXIT_PROCESS_ERROR, f"{APP_NAME}: invalid configuration: {exc}\n")
    except CounterPersistenceError as exc:
        parser.exit(EXIT_PROCESS_ERROR, f"{APP_NAME} {args.command}: inconsistent state: {exc}\n")
    except ErrorUtilError as exc:
        log_exception(logger, f"{args.command} failed", exc)
        parser.exit(EXIT_PROCESS_ERROR, f"{APP_NAME} {args.command} failed: {exc}\n")

    if update:
        written = len(outcome.rewrite.written) if outcome.rewrite else 0
        print(f"Assigned {len(outcome.assignments)} code(s) across {written} file(s)")
    for path in outcome.artifacts:
        print(f"Wrote {_relativize(path)}")

    status = outcome.exit_code
    if status == EXIT_PROCESS_ERROR:
        parser.exit(
            status,
            f"{len(outcome.process_errors)} file(s) could not be processed. Run with --verbose for more details.\n",
        )
    if status == EXIT_VIOLATIONS:
        parser.exit(status, f"{outcome.summary.error_count} convention violation(s) found.\n")
    if status != EXIT_OK:  # pragma: no cover - exhaustive above
        parser.exit(status)


def _run_reference(parser: argparse.ArgumentParser, args: argparse.Namespace) -> None:
    try:
        export = load_export(Path(args.export))
    except (OSError, ValueError) as exc:
        parser.exit(EXIT_PROCESS_ERROR, f"{APP_NAME} reference failed: {exc}\n")
    templates_dir = Path(args.templates_dir) if args.templates_dir else None
    markdown = render_reference(export, templates_dir=templates_dir)
    if args.output:
        output = Path(args.output)
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(markdown, encoding="utf-8")
        print(f"Reference written to {_relativize(output)}")
    else:
        sys.stdout.write(markdown)


def _relativize(path: Path) -> str:
    try:
        return str(path.resolve().relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
