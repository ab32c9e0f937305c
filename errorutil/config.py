"""Configuration loading for errorutil (.errorutil.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from .errors import ConfigError

CONFIG_FILENAME = ".errorutil.yml"
DEFAULT_DETAIL_IMPORT_PATH = "github.com/layer5io/meshkit/errors"
DEFAULT_ERROR_FILE = "error.go"


@dataclass
class ErrorUtilConfig:
    """Settings read from .errorutil.yml; every key is optional."""

    root: Path
    skip_dirs: List[str] = field(default_factory=list)
    out_dir: Optional[Path] = None
    info_dir: Optional[Path] = None
    workers: Optional[int] = None
    detail_import_path: str = DEFAULT_DETAIL_IMPORT_PATH
    error_file: str = DEFAULT_ERROR_FILE


def load_config(config_path: Path) -> ErrorUtilConfig:
    """Load configuration from a root directory or an explicit file path."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return ErrorUtilConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    out_dir = _as_str(data.get("out_dir"))
    info_dir = _as_str(data.get("info_dir"))
    workers = _as_int(data.get("workers"))
    if workers is not None and workers < 1:
        raise ConfigError(f"workers must be a positive integer, got {workers}")

    return ErrorUtilConfig(
        root=root,
        skip_dirs=_as_str_list(data.get("skip_dirs")),
        out_dir=root / out_dir if out_dir else None,
        info_dir=root / info_dir if info_dir else None,
        workers=workers,
        detail_import_path=_as_str(data.get("detail_import_path")) or DEFAULT_DETAIL_IMPORT_PATH,
        error_file=_as_str(data.get("error_file")) or DEFAULT_ERROR_FILE,
    )


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_file():
        return config_path.resolve()
    return (config_path / CONFIG_FILENAME).resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(f"Failed to read {path.name}: {exc}") from exc
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float)) and not isinstance(value, bool) else None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            raise ConfigError(f"Expected an integer, got {value!r}") from None
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float))]
    return []


__all__ = ["CONFIG_FILENAME", "ErrorUtilConfig", "load_config"]
