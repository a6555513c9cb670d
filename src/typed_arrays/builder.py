"""Program state builder: replays statements into an array environment."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

from typed_arrays.diagnostics import Diagnostic, DiagnosticKind, DiagnosticSink
from typed_arrays.parsing.statement_parser import (
    Declare,
    Delete,
    Insert,
    MissingTerminator,
    Statement,
    Unparsed,
    Update,
)
from typed_arrays.types import ArrayEnvironment, TypedArray

logger = logging.getLogger(__name__)


@dataclass
class BuildResult:
    """Environment and diagnostics produced by replaying statements."""

    environment: ArrayEnvironment
    diagnostics: list[Diagnostic] = field(default_factory=list)


class ProgramStateBuilder:
    """Folds statements, in order, into an :class:`ArrayEnvironment`.

    Every problem is recovered locally: the offending statement is skipped
    (or truncated) and a diagnostic is recorded, and processing continues
    with the next statement. Nothing here raises for user input.
    """

    def apply(self, env: ArrayEnvironment, stmt: Statement) -> list[Diagnostic]:
        """Apply one statement to *env* in place and return its diagnostics."""
        if isinstance(stmt, Declare):
            return self._apply_declare(env, stmt)
        elif isinstance(stmt, Update):
            return self._apply_update(env, stmt)
        elif isinstance(stmt, Insert):
            return self._apply_insert(env, stmt)
        elif isinstance(stmt, Delete):
            return self._apply_delete(env, stmt)
        elif isinstance(stmt, MissingTerminator):
            return [
                Diagnostic(
                    DiagnosticKind.SYNTAX_HINT,
                    f"Missing ';' at end of statement: {stmt.text}",
                    stmt.line,
                )
            ]
        elif isinstance(stmt, Unparsed):
            return []
        raise TypeError(f"Unknown statement type: {type(stmt).__name__}")

    def build(
        self,
        statements: Iterable[Statement],
        sink: DiagnosticSink | None = None,
        start: ArrayEnvironment | None = None,
    ) -> BuildResult:
        """Replay *statements* from *start* (or an empty environment).

        *start* is copied, never mutated. Diagnostics are returned and, when
        a sink is given, emitted to it in order followed by one flush.
        """
        env = start.copy() if start is not None else ArrayEnvironment()
        diagnostics: list[Diagnostic] = []
        for stmt in statements:
            raised = self.apply(env, stmt)
            diagnostics.extend(raised)
            if sink is not None:
                for diag in raised:
                    sink.emit(diag)
        if sink is not None:
            sink.flush()
        return BuildResult(environment=env, diagnostics=diagnostics)

    # ---- Per-statement semantics ----

    def _apply_declare(self, env: ArrayEnvironment, stmt: Declare) -> list[Diagnostic]:
        size = stmt.declared_size
        values = list(stmt.values)
        kind_name = stmt.kind.value

        if size < 0:
            logger.debug("Rejected %s: negative size %d", stmt.name, size)
            return [
                Diagnostic(
                    DiagnosticKind.NEGATIVE_SIZE,
                    f"Array '{stmt.name}' has negative size {size}",
                    stmt.line,
                )
            ]

        diagnostics: list[Diagnostic] = []
        if size > 0 and len(values) > size:
            diagnostics.append(
                Diagnostic(
                    DiagnosticKind.TOO_MANY_INITIALIZERS,
                    f"Too many initializers for {kind_name} {stmt.name}[{size}]: "
                    f"got {len(values)}, keeping the first {size}",
                    stmt.line,
                )
            )
            values = values[:size]
        elif size > 0 and len(values) < size:
            logger.debug("Rejected %s: %d of %d initializers", stmt.name, len(values), size)
            return [
                Diagnostic(
                    DiagnosticKind.TOO_FEW_INITIALIZERS,
                    f"Too few initializers for {kind_name} {stmt.name}[{size}]: "
                    f"got {len(values)}, expected {size}",
                    stmt.line,
                )
            ]

        env.arrays[stmt.name] = TypedArray(
            kind=stmt.kind,
            values=[stmt.kind.coerce(v) for v in values],
        )
        return diagnostics

    def _apply_update(self, env: ArrayEnvironment, stmt: Update) -> list[Diagnostic]:
        arr = env.get(stmt.name)
        if arr is None:
            return []
        if not 0 <= stmt.index < len(arr):
            return [self._out_of_range(stmt.name, stmt.index, len(arr), stmt.line, "update")]
        arr.values[stmt.index] = arr.kind.coerce(stmt.value)
        return []

    def _apply_insert(self, env: ArrayEnvironment, stmt: Insert) -> list[Diagnostic]:
        arr = env.get(stmt.name)
        if arr is None:
            return []
        # Inserting at len(arr) appends
        if not 0 <= stmt.index <= len(arr):
            return [self._out_of_range(stmt.name, stmt.index, len(arr) + 1, stmt.line, "insert")]
        arr.values.insert(stmt.index, arr.kind.coerce(stmt.value))
        return []

    def _apply_delete(self, env: ArrayEnvironment, stmt: Delete) -> list[Diagnostic]:
        arr = env.get(stmt.name)
        if arr is None:
            return []
        if not 0 <= stmt.index < len(arr):
            return [self._out_of_range(stmt.name, stmt.index, len(arr), stmt.line, "delete")]
        del arr.values[stmt.index]
        return []

    @staticmethod
    def _out_of_range(name: str, index: int, limit: int, line: int, action: str) -> Diagnostic:
        if limit == 0:
            valid = "no valid index"
        else:
            valid = f"valid range is 0..{limit - 1}"
        return Diagnostic(
            DiagnosticKind.INDEX_OUT_OF_RANGE,
            f"Cannot {action} {name}[{index}]: {valid}",
            line,
        )


def build_environment(
    statements: Iterable[Statement],
    sink: DiagnosticSink | None = None,
) -> BuildResult:
    """Replay *statements* from an empty environment."""
    return ProgramStateBuilder().build(statements, sink)
