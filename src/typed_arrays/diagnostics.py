"""User-facing diagnostics and the sinks that receive them."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable

logger = logging.getLogger(__name__)


class DiagnosticKind(Enum):
    """The kinds of statement problems the builder reports."""

    NEGATIVE_SIZE = "negative-size"
    TOO_MANY_INITIALIZERS = "too-many-initializers"
    TOO_FEW_INITIALIZERS = "too-few-initializers"
    INDEX_OUT_OF_RANGE = "index-out-of-range"
    SYNTAX_HINT = "syntax-hint"


class Severity(Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


# Default severity per kind
SEVERITIES: dict[DiagnosticKind, Severity] = {
    DiagnosticKind.NEGATIVE_SIZE: Severity.ERROR,
    DiagnosticKind.TOO_MANY_INITIALIZERS: Severity.WARNING,
    DiagnosticKind.TOO_FEW_INITIALIZERS: Severity.ERROR,
    DiagnosticKind.INDEX_OUT_OF_RANGE: Severity.ERROR,
    DiagnosticKind.SYNTAX_HINT: Severity.INFO,
}


@dataclass(frozen=True)
class Diagnostic:
    """A non-fatal notice about a statement that could not be fully honored."""

    kind: DiagnosticKind
    message: str
    line: int | None = None

    @property
    def severity(self) -> Severity:
        return SEVERITIES[self.kind]

    def __str__(self) -> str:
        where = f"line {self.line + 1}: " if self.line is not None else ""
        return f"{self.severity.value}: {where}{self.message}"


class DiagnosticSink:
    """Receives diagnostics one at a time during a validation pass.

    ``flush`` is called once the pass is complete.
    """

    def emit(self, diagnostic: Diagnostic) -> None:
        raise NotImplementedError

    def flush(self) -> None:
        pass


class NullSink(DiagnosticSink):
    """Discards everything; used for silent recomputation."""

    def emit(self, diagnostic: Diagnostic) -> None:
        pass


class CollectingSink(DiagnosticSink):
    """Keeps every diagnostic in arrival order."""

    def __init__(self) -> None:
        self.diagnostics: list[Diagnostic] = []
        self.flushes = 0

    def emit(self, diagnostic: Diagnostic) -> None:
        self.diagnostics.append(diagnostic)

    def flush(self) -> None:
        self.flushes += 1

    def clear(self) -> None:
        self.diagnostics.clear()


class CallbackSink(DiagnosticSink):
    """Forwards each diagnostic to a callable, e.g. a notification popup."""

    def __init__(
        self,
        callback: Callable[[Diagnostic], None],
        on_flush: Callable[[], None] | None = None,
    ) -> None:
        self._callback = callback
        self._on_flush = on_flush

    def emit(self, diagnostic: Diagnostic) -> None:
        self._callback(diagnostic)

    def flush(self) -> None:
        if self._on_flush is not None:
            self._on_flush()


class CoalescingSink(DiagnosticSink):
    """Drops repeats of an identical diagnostic seen within *window* seconds.

    Typing produces the same complaint on every pass; this keeps a
    notification surface from being flooded with duplicates.
    """

    def __init__(
        self,
        inner: DiagnosticSink,
        window: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.inner = inner
        self.window = window
        self._clock = clock
        self._last_seen: dict[tuple[DiagnosticKind, str, int | None], float] = {}

    def emit(self, diagnostic: Diagnostic) -> None:
        key = (diagnostic.kind, diagnostic.message, diagnostic.line)
        now = self._clock()
        last = self._last_seen.get(key)
        self._last_seen[key] = now
        if last is not None and now - last < self.window:
            logger.debug("Coalesced repeated diagnostic: %s", diagnostic)
            return
        self.inner.emit(diagnostic)

    def flush(self) -> None:
        # Forget entries that have aged out
        now = self._clock()
        self._last_seen = {
            k: t for k, t in self._last_seen.items() if now - t < self.window
        }
        self.inner.flush()

    def reset(self) -> None:
        self._last_seen.clear()
