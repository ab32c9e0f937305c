"""Component metadata store and the error code counter."""

from __future__ import annotations

import json
import os
import tempfile
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict

from .errors import ComponentError, ComponentNotFoundError, CounterPersistenceError
from .logging import get_logger

COMPONENT_FILENAME = "component_info.json"

logger = get_logger("component")


@dataclass
class Component:
    """A namespace within which error codes must be unique."""

    name: str
    type: str
    next_error_code: int
    path: Path
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = dict(self.extra)
        payload.update(
            {
                "name": self.name,
                "type": self.type,
                "next_error_code": self.next_error_code,
            }
        )
        return payload


class CodeCounter:
    """Single-owner handle on a component's next free error code.

    The engine receives the handle explicitly; nothing is persisted until the
    registry commits the value returned by :attr:`next_code`.
    """

    def __init__(self, start: int) -> None:
        if start < 0:
            raise ValueError(f"next error code must be non-negative, got {start}")
        self._start = start
        self._next = start
        self._lock = threading.Lock()

    @classmethod
    def for_component(cls, component: Component) -> "CodeCounter":
        return cls(component.next_error_code)

    @property
    def start(self) -> int:
        return self._start

    @property
    def next_code(self) -> int:
        return self._next

    @property
    def consumed(self) -> int:
        return self._next - self._start

    def take(self) -> int:
        with self._lock:
            code = self._next
            self._next += 1
            return code

    def advance_to(self, value: int) -> bool:
        """Move the next code up to ``value``; never moves it backwards."""
        with self._lock:
            if value <= self._next:
                return False
            self._next = value
            return True


class ComponentRegistry:
    """Loads and saves ``component_info.json`` in the info directory."""

    def __init__(self, info_dir: Path) -> None:
        self.path = Path(info_dir) / COMPONENT_FILENAME

    def load(self) -> Component:
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise ComponentNotFoundError(
                f"Component metadata not found: {self.path}"
            ) from None
        except (OSError, UnicodeDecodeError) as exc:
            raise ComponentError(f"Failed to read {self.path}: {exc}") from exc
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ComponentError(f"Failed to parse {self.path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ComponentError(f"{self.path} must contain a JSON object")

        name = data.get("name")
        comp_type = data.get("type")
        next_code = data.get("next_error_code")
        if not isinstance(name, str) or not name:
            raise ComponentError(f"{self.path}: 'name' must be a non-empty string")
        if not isinstance(comp_type, str) or not comp_type:
            raise ComponentError(f"{self.path}: 'type' must be a non-empty string")
        if isinstance(next_code, bool) or not isinstance(next_code, int) or next_code < 0:
            raise ComponentError(
                f"{self.path}: 'next_error_code' must be a non-negative integer"
            )
        extra = {
            key: value
            for key, value in data.items()
            if key not in {"name", "type", "next_error_code"}
        }
        return Component(
            name=name,
            type=comp_type,
            next_error_code=next_code,
            path=self.path,
            extra=extra,
        )

    def save(self, component: Component) -> None:
        payload = json.dumps(component.to_dict(), indent=2) + "\n"
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp", text=True
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
            os.replace(tmp_path, self.path)
        except BaseException:
            try:
                os.unlink(tmp_path)
            except FileNotFoundError:
                pass
            raise

    def commit(self, component: Component, next_code: int) -> bool:
        """Persist ``next_code`` if it advances the counter.

        Returns True when the file was rewritten. Raises
        :class:`CounterPersistenceError` when the write fails so the caller can
        report that source files and metadata disagree.
        """
        if next_code < component.next_error_code:
            raise ValueError(
                f"refusing to move next_error_code backwards "
                f"({component.next_error_code} -> {next_code})"
            )
        if next_code == component.next_error_code:
            return False
        previous = component.next_error_code
        component.next_error_code = next_code
        try:
            self.save(component)
        except OSError as exc:
            component.next_error_code = previous
            raise CounterPersistenceError(
                f"Source files were rewritten with codes up to {next_code - 1} "
                f"but {self.path} could not be updated ({exc}); "
                f"set next_error_code to {next_code} manually",
                committed_next=next_code,
                persisted_next=previous,
            ) from exc
        logger.info("Advanced next_error_code of %s from %d to %d", component.name, previous, next_code)
        return True


__all__ = ["COMPONENT_FILENAME", "CodeCounter", "Component", "ComponentRegistry"]
