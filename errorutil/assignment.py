"""Sequential code assignment for placeholder declarations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List

from .component import CodeCounter
from .info import InfoAll
from .logging import get_logger
from .models import VALUE_INT, ErrorDeclaration

logger = get_logger("assignment")


@dataclass(frozen=True)
class Assignment:
    """A planned replacement of one declaration's literal."""

    declaration: ErrorDeclaration
    code: int

    @property
    def path(self) -> str:
        return self.declaration.path

    @property
    def old_literal(self) -> str:
        return self.declaration.literal

    @property
    def new_literal(self) -> str:
        """Render the code with the quoting of the literal it replaces."""
        if self.declaration.value_kind == VALUE_INT:
            return str(self.code)
        quote = self.declaration.literal[:1] or '"'
        return f"{quote}{self.code}{quote}"


class CodeAssignmentEngine:
    """Allocates codes from a :class:`CodeCounter` in a reproducible order.

    Incremental mode only assigns placeholders. Force mode renumbers every
    declaration that has a rewritable literal. Candidates are ordered by file
    path, then by position in the file.
    """

    def candidates(self, info: InfoAll, *, force: bool = False) -> List[ErrorDeclaration]:
        declarations = [decl for decl in info.declarations() if decl.rewritable]
        if force:
            return declarations
        return [decl for decl in declarations if decl.is_placeholder]

    def plan(self, info: InfoAll, counter: CodeCounter, *, force: bool = False) -> List[Assignment]:
        """Assign codes to the candidates, in order.

        In incremental mode the counter is first raised above every integer
        code already in the tree, so a stale ``next_error_code`` cannot hand
        out a code that is in use.
        """
        candidates = self.candidates(info, force=force)
        if candidates and not force:
            self._raise_counter(info, counter)
        assignments: List[Assignment] = []
        for decl in candidates:
            code = counter.take()
            assignments.append(Assignment(declaration=decl, code=code))
            logger.debug("Assigning %d to %s (%s:%d)", code, decl.name, decl.path, decl.line)
        if assignments:
            mode = "force" if force else "incremental"
            logger.info(
                "Planned %d %s assignment(s), codes %d..%d",
                len(assignments),
                mode,
                assignments[0].code,
                assignments[-1].code,
            )
        return assignments

    @staticmethod
    def _raise_counter(info: InfoAll, counter: CodeCounter) -> None:
        codes = [decl.code for decl in info.declarations() if decl.code is not None]
        if not codes:
            return
        floor = max(codes) + 1
        previous = counter.next_code
        if counter.advance_to(floor):
            logger.warning(
                "next_error_code %d is not above the highest code in use (%d); starting at %d",
                previous,
                floor - 1,
                floor,
            )


__all__ = ["Assignment", "CodeAssignmentEngine"]
