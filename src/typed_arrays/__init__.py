"""Typed Arrays - live and step-by-step interpretation of a small array notation."""

from typed_arrays.builder import BuildResult, ProgramStateBuilder, build_environment
from typed_arrays.config import Settings
from typed_arrays.diagnostics import (
    CallbackSink,
    CoalescingSink,
    CollectingSink,
    Diagnostic,
    DiagnosticKind,
    DiagnosticSink,
    NullSink,
    Severity,
)
from typed_arrays.parsing import StatementParser, parse_program, recognize
from typed_arrays.scheduling import AsyncioScheduler, ManualScheduler
from typed_arrays.sync import write_back
from typed_arrays.timeline import ExecutionState, ExecutionTimeline, Mode
from typed_arrays.types import ArrayEnvironment, ArrayView, ElementKind, TypedArray

__all__ = [
    # Main API
    "ExecutionTimeline",
    "ExecutionState",
    "Mode",
    "Settings",
    # Recognition and replay
    "StatementParser",
    "parse_program",
    "recognize",
    "ProgramStateBuilder",
    "BuildResult",
    "build_environment",
    "write_back",
    # Values
    "ArrayEnvironment",
    "ArrayView",
    "ElementKind",
    "TypedArray",
    # Diagnostics
    "Diagnostic",
    "DiagnosticKind",
    "DiagnosticSink",
    "Severity",
    "NullSink",
    "CollectingSink",
    "CallbackSink",
    "CoalescingSink",
    # Timers
    "AsyncioScheduler",
    "ManualScheduler",
]

__version__ = "0.1.0"
