"""Execution timeline: live recomputation and step-by-step replay."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from typed_arrays.builder import ProgramStateBuilder
from typed_arrays.config import Settings
from typed_arrays.diagnostics import Diagnostic, DiagnosticKind, DiagnosticSink, NullSink
from typed_arrays.parsing.statement_parser import Statement, StatementParser
from typed_arrays.scheduling import AsyncioScheduler
from typed_arrays.sync import write_back
from typed_arrays.types import ArrayEnvironment, ArrayView, Scalar, is_finite

logger = logging.getLogger(__name__)


class Mode(Enum):
    LIVE = "live"
    STEP = "step"


@dataclass
class ExecutionState:
    """Cursor, snapshot stack and autoplay flag of a timeline."""

    mode: Mode = Mode.LIVE
    current_statement_index: int = 0
    history: list[ArrayEnvironment] = field(default_factory=lambda: [ArrayEnvironment()])
    is_playing: bool = False


class ExecutionTimeline:
    """Derives the displayed arrays from a text buffer.

    The text is the only durable state. In live mode the environment always
    reflects every statement; a debounced second pass over the same
    statements emits diagnostics to the sink once typing pauses. In step
    mode the environment reflects the first ``current_statement_index``
    statements and ``history`` holds one snapshot per executed statement.

    Any text change in step mode resets the step cursor to the start, since
    the snapshots no longer describe the new statement sequence.

    The scheduler must provide ``call_later(delay, callback)`` returning a
    handle with ``cancel()``; the default uses the running asyncio loop and
    holds timers until one is running, so a timeline can be built anywhere.
    """

    def __init__(
        self,
        text: str = "",
        *,
        settings: Settings | None = None,
        scheduler: Any = None,
        sink: DiagnosticSink | None = None,
        listener: Callable[[ExecutionTimeline], None] | None = None,
        parser: StatementParser | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self.scheduler = scheduler if scheduler is not None else AsyncioScheduler()
        self.sink = sink if sink is not None else NullSink()
        self.listener = listener
        self._parser = parser or StatementParser()
        self._builder = ProgramStateBuilder()

        self._text = text
        self._statements: list[Statement] = self._parser.parse_program(text)
        self._state = ExecutionState()
        self._environment = self._full_environment()
        self._override: str | None = None

        self._debounce_handle: Any = None
        self._debounce_generation = 0
        self._autoplay_handle: Any = None
        self._play_generation = 0

        if self._statements:
            self._schedule_diagnostics()

    # ---- Read-only views ----

    @property
    def text(self) -> str:
        return self._text

    @property
    def statements(self) -> list[Statement]:
        return list(self._statements)

    @property
    def total_statements(self) -> int:
        return len(self._statements)

    @property
    def mode(self) -> Mode:
        return self._state.mode

    @property
    def current_statement_index(self) -> int:
        return self._state.current_statement_index

    @property
    def is_playing(self) -> bool:
        return self._state.is_playing

    @property
    def environment(self) -> ArrayEnvironment:
        """The displayed environment; treat it as read-only."""
        return self._environment

    @property
    def state(self) -> ExecutionState:
        """A detached copy of the execution state."""
        return ExecutionState(
            mode=self._state.mode,
            current_statement_index=self._state.current_statement_index,
            history=[env.copy() for env in self._state.history],
            is_playing=self._state.is_playing,
        )

    @property
    def can_step_forward(self) -> bool:
        return (
            self._state.mode is Mode.STEP
            and self._state.current_statement_index < len(self._statements)
        )

    @property
    def can_step_back(self) -> bool:
        return self._state.mode is Mode.STEP and self._state.current_statement_index > 0

    @property
    def current_name(self) -> str | None:
        return self._environment.current_name(self._override)

    def current_view(self) -> ArrayView | None:
        """The array a renderer should display, or None if nothing is declared."""
        return self._environment.view(self._override)

    # ---- Text and mode ----

    def set_text(self, text: str) -> None:
        """Replace the text buffer and recompute everything derived from it."""
        if text == self._text:
            return
        self._text = text
        self._statements = self._parser.parse_program(text)
        self._cancel_debounce()
        if self._state.mode is Mode.STEP:
            logger.debug("Text changed in step mode; resetting to start")
            self._stop_autoplay()
            self._state = ExecutionState(mode=Mode.STEP)
            self._environment = ArrayEnvironment()
        else:
            self._environment = self._full_environment()
            self._schedule_diagnostics()
        self._notify()

    def set_mode(self, mode: Mode | str) -> None:
        """Switch between live and step mode, resetting the timeline."""
        if isinstance(mode, str):
            mode = Mode(mode)
        if mode is self._state.mode:
            return
        self._cancel_debounce()
        self._stop_autoplay()
        self._state = ExecutionState(mode=mode)
        if mode is Mode.LIVE:
            self._environment = self._full_environment()
            self._schedule_diagnostics()
        else:
            self._environment = ArrayEnvironment()
        logger.info("Switched to %s mode", mode.value)
        self._notify()

    def select_array(self, name: str | None) -> None:
        """Show *name* instead of the first declared array (None clears it)."""
        self._override = name
        self._notify()

    # ---- Step controls ----

    def step_forward(self) -> bool:
        """Execute one more statement; returns False at the end or in live mode."""
        if self._state.mode is not Mode.STEP:
            return False
        self._stop_autoplay()
        advanced = self._advance()
        self._notify()
        return advanced

    def step_back(self) -> bool:
        """Undo the last executed statement; returns False at the start."""
        if self._state.mode is not Mode.STEP:
            return False
        self._stop_autoplay()
        if self._state.current_statement_index == 0:
            self._notify()
            return False
        self._state.history.pop()
        self._state.current_statement_index -= 1
        prefix = self._statements[: self._state.current_statement_index]
        self._environment = self._builder.build(prefix).environment
        self._notify()
        return True

    def reset(self) -> None:
        """Return to the start: cursor 0, empty history, autoplay stopped."""
        self._cancel_debounce()
        self._stop_autoplay()
        self._state = ExecutionState(mode=self._state.mode)
        if self._state.mode is Mode.LIVE:
            self._environment = self._full_environment()
        else:
            self._environment = ArrayEnvironment()
        self._notify()

    def play(self) -> bool:
        """Start autoplay: one statement per ``autoplay_interval``."""
        if self._state.mode is not Mode.STEP or self._state.is_playing:
            return False
        if self._state.current_statement_index >= len(self._statements):
            return False
        self._state.is_playing = True
        self._play_generation += 1
        self._schedule_tick()
        self._notify()
        return True

    def pause(self) -> bool:
        if not self._state.is_playing:
            return False
        self._stop_autoplay()
        self._notify()
        return True

    def toggle_play(self) -> bool:
        """Play if paused, pause if playing; returns the new playing flag."""
        if self._state.is_playing:
            self.pause()
        else:
            self.play()
        return self._state.is_playing

    # ---- Diagnostics ----

    def validate(self) -> list[Diagnostic]:
        """Run a diagnostics pass over every statement, emitting to the sink."""
        return self._builder.build(self._statements, self.sink).diagnostics

    # ---- Renderer write-back ----

    def request_element_change(self, index: int, value: Scalar) -> bool:
        """Set element *index* of the current array by rewriting the text."""
        view = self.current_view()
        if view is None:
            return False
        if not is_finite(value):
            # inf and nan have no literal form
            logger.debug("Rejected non-finite value for %s[%d]: %r", view.name, index, value)
            return False
        if not 0 <= index < len(view.values):
            self.sink.emit(
                Diagnostic(
                    DiagnosticKind.INDEX_OUT_OF_RANGE,
                    f"Cannot update {view.name}[{index}]: array has {len(view.values)} elements",
                )
            )
            self.sink.flush()
            return False
        literal = view.kind.format_literal(value)
        self.set_text(write_back(self._text, view.name, index, literal, self._parser))
        return True

    def close(self) -> None:
        """Cancel every pending timer; the timeline stays readable."""
        self._cancel_debounce()
        self._stop_autoplay()

    # ---- Internals ----

    def _full_environment(self) -> ArrayEnvironment:
        return self._builder.build(self._statements).environment

    def _advance(self) -> bool:
        state = self._state
        if state.current_statement_index >= len(self._statements):
            return False
        stmt = self._statements[state.current_statement_index]
        env = state.history[-1].copy()
        raised = self._builder.apply(env, stmt)
        for diag in raised:
            self.sink.emit(diag)
        if raised:
            self.sink.flush()
        state.history.append(env)
        state.current_statement_index += 1
        self._environment = env
        logger.debug(
            "Executed statement %d/%d", state.current_statement_index, len(self._statements)
        )
        return True

    def _schedule_diagnostics(self) -> None:
        self._cancel_debounce()
        generation = self._debounce_generation
        self._debounce_handle = self.scheduler.call_later(
            self.settings.debounce_delay, lambda: self._on_debounce(generation)
        )

    def _on_debounce(self, generation: int) -> None:
        if generation != self._debounce_generation or self._state.mode is not Mode.LIVE:
            return
        self._debounce_handle = None
        self.validate()

    def _cancel_debounce(self) -> None:
        self._debounce_generation += 1
        if self._debounce_handle is not None:
            self._debounce_handle.cancel()
            self._debounce_handle = None

    def _schedule_tick(self) -> None:
        generation = self._play_generation
        self._autoplay_handle = self.scheduler.call_later(
            self.settings.autoplay_interval, lambda: self._on_tick(generation)
        )

    def _on_tick(self, generation: int) -> None:
        if generation != self._play_generation or not self._state.is_playing:
            return
        self._autoplay_handle = None
        self._advance()
        if self._state.current_statement_index >= len(self._statements):
            self._state.is_playing = False
            logger.debug("Autoplay reached the last statement")
        else:
            self._schedule_tick()
        self._notify()

    def _stop_autoplay(self) -> None:
        self._play_generation += 1
        if self._autoplay_handle is not None:
            self._autoplay_handle.cancel()
            self._autoplay_handle = None
        self._state.is_playing = False

    def _notify(self) -> None:
        if self.listener is not None:
            self.listener(self)
