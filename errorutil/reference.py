"""Markdown error code reference rendered from an export."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from jinja2 import Environment, FileSystemLoader

DEFAULT_TEMPLATE = "error_reference.md.j2"


def _cell(value: Any) -> str:
    text = str(value or "").replace("|", "\\|").replace("\n", " ").strip()
    return text or "-"


def _create_env(templates_dir: Path | None) -> Environment:
    directories = []
    if templates_dir:
        directories.append(str(templates_dir))
    directories.append(str(Path(__file__).with_name("templates")))
    env = Environment(
        loader=FileSystemLoader(directories),
        autoescape=False,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )
    env.filters["cell"] = _cell
    return env


def render_reference(
    export: Mapping[str, Any],
    *,
    templates_dir: Optional[Path] = None,
    template_name: str = DEFAULT_TEMPLATE,
) -> str:
    """Render ``export`` (as written by ``build_export``) to Markdown."""
    errors: Dict[str, Dict[str, Any]] = export.get("errors", {})
    ordered = [errors[code] for code in sorted(errors, key=_code_key)]
    template = _create_env(templates_dir).get_template(template_name)
    return template.render(
        component_name=export.get("component_name", ""),
        component_type=export.get("component_type", ""),
        errors=ordered,
    )


def _code_key(code: str) -> tuple[int, str]:
    return (int(code), code) if code.isdigit() else (-1, code)


__all__ = ["render_reference"]
