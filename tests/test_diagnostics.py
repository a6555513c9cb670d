"""Tests for diagnostics and sinks."""

from typed_arrays.diagnostics import (
    CallbackSink,
    CoalescingSink,
    CollectingSink,
    Diagnostic,
    DiagnosticKind,
    NullSink,
    Severity,
)


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def _diag(message="Cannot update a[3]: valid range is 0..2", line=1):
    return Diagnostic(DiagnosticKind.INDEX_OUT_OF_RANGE, message, line)


class TestDiagnostic:
    def test_severity_by_kind(self):
        assert _diag().severity is Severity.ERROR
        assert Diagnostic(DiagnosticKind.TOO_MANY_INITIALIZERS, "x").severity is Severity.WARNING
        assert Diagnostic(DiagnosticKind.SYNTAX_HINT, "x").severity is Severity.INFO

    def test_str_uses_one_based_line(self):
        assert str(_diag(line=0)) == "error: line 1: Cannot update a[3]: valid range is 0..2"

    def test_str_without_line(self):
        assert str(Diagnostic(DiagnosticKind.SYNTAX_HINT, "hint")) == "info: hint"


class TestSinks:
    def test_null_sink(self):
        sink = NullSink()
        sink.emit(_diag())
        sink.flush()

    def test_collecting_sink(self):
        sink = CollectingSink()
        sink.emit(_diag())
        sink.flush()
        assert sink.diagnostics == [_diag()]
        assert sink.flushes == 1
        sink.clear()
        assert sink.diagnostics == []

    def test_callback_sink(self):
        seen = []
        flushed = []
        sink = CallbackSink(seen.append, lambda: flushed.append(True))
        sink.emit(_diag())
        sink.flush()
        assert seen == [_diag()]
        assert flushed == [True]


class TestCoalescingSink:
    """Tests for suppressing repeated diagnostics."""

    def test_repeat_within_window_dropped(self):
        clock = FakeClock()
        inner = CollectingSink()
        sink = CoalescingSink(inner, window=2.0, clock=clock)
        sink.emit(_diag())
        clock.now = 1.0
        sink.emit(_diag())
        assert inner.diagnostics == [_diag()]

    def test_repeat_after_window_passes(self):
        clock = FakeClock()
        inner = CollectingSink()
        sink = CoalescingSink(inner, window=2.0, clock=clock)
        sink.emit(_diag())
        clock.now = 2.5
        sink.emit(_diag())
        assert len(inner.diagnostics) == 2

    def test_continuous_repeats_stay_suppressed(self):
        clock = FakeClock()
        inner = CollectingSink()
        sink = CoalescingSink(inner, window=2.0, clock=clock)
        for t in (0.0, 1.5, 3.0, 4.5):
            clock.now = t
            sink.emit(_diag())
        assert len(inner.diagnostics) == 1

    def test_different_diagnostics_pass(self):
        inner = CollectingSink()
        sink = CoalescingSink(inner, window=2.0, clock=FakeClock())
        sink.emit(_diag())
        sink.emit(_diag(line=4))
        sink.emit(_diag(message="other"))
        assert len(inner.diagnostics) == 3

    def test_flush_forwarded_and_reset(self):
        clock = FakeClock()
        inner = CollectingSink()
        sink = CoalescingSink(inner, window=2.0, clock=clock)
        sink.emit(_diag())
        sink.flush()
        assert inner.flushes == 1
        sink.reset()
        sink.emit(_diag())
        assert len(inner.diagnostics) == 2
