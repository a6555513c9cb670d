"""Interactive REPL and file runner for the array notation."""

from __future__ import annotations

import argparse
import logging
import readline  # noqa: F401 - enables line editing in input()
import sys
import time
from pathlib import Path
from typing import Any

from typed_arrays.config import Settings
from typed_arrays.diagnostics import (
    CallbackSink,
    CoalescingSink,
    CollectingSink,
    Diagnostic,
    Severity,
)
from typed_arrays.parsing.statement_parser import (
    MissingTerminator,
    Statement,
    StatementParser,
    Unparsed,
    Update,
)
from typed_arrays.scheduling import ManualScheduler
from typed_arrays.timeline import ExecutionTimeline, Mode
from typed_arrays.types import ArrayEnvironment, ArrayView, ElementKind, Scalar, is_finite

BAR_WIDTH = 40


def format_value(value: Any, kind: ElementKind | None = None) -> str:
    """Format a single element for display."""
    if kind is ElementKind.CHAR or (kind is None and isinstance(value, str)):
        return f"'{value}'" if value.isprintable() else repr(value)
    if isinstance(value, float):
        return f"{value:.6g}"
    return str(value)


def format_array(name: str, values: list[Scalar], kind: ElementKind) -> str:
    """Format an array as ``name: kind[n] = {...}``."""
    body = ", ".join(format_value(v, kind) for v in values)
    return f"{name}: {kind.value}[{len(values)}] = {{{body}}}"


def render_bars(view: ArrayView, width: int = BAR_WIDTH) -> list[str]:
    """Render the current array as horizontal text bars."""
    heights = view.chart_values
    if not heights:
        return ["(empty)"]
    peak = max(abs(h) for h in heights) or 1
    label_width = max(len(label) for label in view.labels)
    lines = []
    for i, (label, height) in enumerate(zip(view.labels, heights)):
        bar = "#" * int(round(abs(height) / peak * width))
        sign = "-" if height < 0 else ""
        lines.append(f"[{i}] {label.rjust(label_width)} |{sign}{bar}")
    return lines


def describe_statement(stmt: Statement) -> str:
    """One-line description of a recognised statement (for --verbose)."""
    if isinstance(stmt, Unparsed):
        return f"unparsed: {stmt.text}"
    if isinstance(stmt, MissingTerminator):
        return f"missing ';': {stmt.text}"
    return type(stmt).__name__.lower()


def print_environment(env: ArrayEnvironment, current: str | None = None) -> None:
    """Print every array, marking the current one."""
    if not len(env):
        print("(no arrays)")
        return
    for name in env.names():
        arr = env.get(name)
        marker = "*" if name == current else " "
        print(f"{marker} {format_array(name, arr.values, arr.kind)}")


def print_timeline(timeline: ExecutionTimeline, bars: bool = True) -> None:
    """Print the timeline position, the arrays and the current array's bars."""
    if timeline.mode is Mode.STEP:
        playing = " (playing)" if timeline.is_playing else ""
        print(
            f"step {timeline.current_statement_index}/{timeline.total_statements}{playing}"
        )
    print_environment(timeline.environment, timeline.current_name)
    view = timeline.current_view()
    if bars and view is not None:
        for line in render_bars(view):
            print(f"    {line}")


def _print_diagnostic(diagnostic: Diagnostic) -> None:
    print(str(diagnostic), file=sys.stderr)


def parse_literal(text: str, parser: StatementParser) -> Scalar | None:
    """Parse a literal such as ``5``, ``2.5`` or ``'c'``; None if invalid."""
    stmt = parser.parse(f"_[0] = {text.strip()};")
    if isinstance(stmt, Update) and is_finite(stmt.value):
        return stmt.value
    return None


def run_file(
    file_path: Path,
    settings: Settings | None = None,
    verbose: bool = False,
    step: bool = False,
) -> int:
    """Evaluate a program file and print the resulting arrays.

    Args:
        file_path: Path to the program text
        settings: Timing settings (only used for the timeline)
        verbose: If True, print how each line was recognised
        step: If True, print the arrays after every statement

    Returns:
        0 on success, 1 if the file is unreadable or an error diagnostic was raised
    """
    try:
        content = file_path.read_text()
    except OSError as e:
        print(f"Error reading file: {e}", file=sys.stderr)
        return 1
    return run_text(content, settings, verbose=verbose, step=step)


def run_text(
    content: str,
    settings: Settings | None = None,
    verbose: bool = False,
    step: bool = False,
) -> int:
    """Evaluate program text; see :func:`run_file`."""
    sink = CollectingSink()
    timeline = ExecutionTimeline(
        content, settings=settings, scheduler=ManualScheduler(), sink=sink
    )

    if verbose:
        for stmt in timeline.statements:
            print(f"{stmt.line + 1}: {describe_statement(stmt)}")

    if step:
        timeline.set_mode(Mode.STEP)
        while timeline.step_forward():
            print_timeline(timeline, bars=False)
            print()
        for diag in sink.diagnostics:
            _print_diagnostic(diag)
        diagnostics = list(sink.diagnostics)
        timeline.set_mode(Mode.LIVE)
    else:
        diagnostics = timeline.validate()
        for diag in diagnostics:
            _print_diagnostic(diag)
        print_timeline(timeline)

    timeline.close()
    if any(d.severity is Severity.ERROR for d in diagnostics):
        return 1
    return 0


def print_help() -> None:
    """Print help information."""
    print("""
Typed Arrays - array notation REPL

STATEMENTS (appended to the buffer; each ends with ';'):
  int a[3] = {1, 2, 3};        Declare an int array (size optional: a[])
  double d[2] = {1.5, 2.5};    Declare a double array
  char w[4] = "byte";          Declare a char array
  a[1] = 9;                    Update an element
  a.insert(1, 7);              Insert before index (index == length appends)
  a.remove(0);                 Remove an element (or a.delete(0);)

COMMANDS:
  show                         Print the arrays
  text                         Print the buffer with line numbers
  new                          Clear the buffer
  load <path>                  Replace the buffer with a file
  save <path>                  Write the buffer to a file
  use <name>                   Display a specific array
  set <index> <value>          Change an element of the displayed array
  mode live|step               Switch execution mode
  step | back | reset          Move through the statements (step mode)
  play                         Autoplay to the end (Ctrl-C pauses)
  help                         Show this message
  exit | quit                  Leave the REPL
""")


def run_repl(text: str = "", settings: Settings | None = None) -> int:
    """Run the interactive REPL."""
    settings = settings or Settings()
    scheduler = ManualScheduler()
    sink = CoalescingSink(
        CallbackSink(_print_diagnostic),
        settings.coalesce_window,
        clock=time.monotonic,
    )
    timeline = ExecutionTimeline(text, settings=settings, scheduler=scheduler, sink=sink)
    parser = StatementParser()

    print("Typed Arrays REPL")
    print("Type 'help' for commands, 'exit' to quit.\n")

    history_file = Path.home() / ".typed_arrays_history"
    try:
        readline.read_history_file(history_file)
    except (FileNotFoundError, OSError):
        pass

    def flush_diagnostics() -> None:
        # Let the debounced diagnostics pass run before the next prompt
        scheduler.advance(settings.debounce_delay)

    def autoplay() -> None:
        if not timeline.play():
            print("Nothing to play (switch to step mode, or reset).")
            return
        try:
            while timeline.is_playing:
                time.sleep(settings.autoplay_interval)
                scheduler.advance(settings.autoplay_interval)
                print_timeline(timeline, bars=False)
        except KeyboardInterrupt:
            timeline.pause()
            print("\nPaused.")

    try:
        while True:
            try:
                prompt = "step> " if timeline.mode is Mode.STEP else "live> "
                line = input(prompt).strip()
            except EOFError:
                print()
                break

            if not line:
                continue

            words = line.split(None, 1)
            command = words[0].lower()
            argument = words[1].strip() if len(words) > 1 else ""

            if command in ("exit", "quit"):
                break
            elif command == "help":
                print_help()
                continue
            elif command == "show":
                print_timeline(timeline)
            elif command == "text":
                for number, text_line in enumerate(timeline.text.split("\n"), start=1):
                    print(f"{number:4} | {text_line}")
            elif command == "new":
                timeline.set_text("")
                print("Buffer cleared.")
            elif command == "load":
                try:
                    timeline.set_text(Path(argument).read_text())
                except OSError as e:
                    print(f"Error: {e}")
                    continue
                flush_diagnostics()
                print_timeline(timeline)
            elif command == "save":
                try:
                    Path(argument).write_text(timeline.text)
                    print(f"Saved to {argument}")
                except OSError as e:
                    print(f"Error: {e}")
            elif command == "use":
                if argument not in timeline.environment:
                    print(f"No array named '{argument}'")
                    continue
                timeline.select_array(argument)
                print_timeline(timeline)
            elif command == "set":
                parts = argument.split(None, 1)
                if len(parts) != 2 or not parts[0].lstrip("-").isdigit():
                    print("Usage: set <index> <value>")
                    continue
                value = parse_literal(parts[1], parser)
                if value is None:
                    print(f"Invalid value: {parts[1]}")
                    continue
                if timeline.request_element_change(int(parts[0]), value):
                    flush_diagnostics()
                    print_timeline(timeline)
            elif command == "mode":
                try:
                    timeline.set_mode(argument.lower())
                except ValueError:
                    print("Usage: mode live|step")
                    continue
                flush_diagnostics()
                print_timeline(timeline)
            elif command in ("step", "next"):
                if not timeline.step_forward():
                    print("At the end." if timeline.mode is Mode.STEP else "Not in step mode.")
                print_timeline(timeline)
            elif command == "back":
                if not timeline.step_back():
                    print("At the start." if timeline.mode is Mode.STEP else "Not in step mode.")
                print_timeline(timeline)
            elif command == "reset":
                timeline.reset()
                print_timeline(timeline)
            elif command == "play":
                autoplay()
            else:
                # Anything else is program text appended to the buffer
                current = timeline.text
                joined = f"{current}\n{line}" if current else line
                timeline.set_text(joined)
                stmt = parser.parse(line)
                if isinstance(stmt, Unparsed):
                    print(f"Not a statement (kept in buffer): {line}")
                flush_diagnostics()
                print_timeline(timeline)

            print()

    finally:
        timeline.close()
        try:
            readline.set_history_length(1000)
            readline.write_history_file(history_file)
        except OSError:
            pass

    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    arg_parser = argparse.ArgumentParser(
        description="Interpret a small C-like array notation, live or step by step"
    )
    arg_parser.add_argument(
        "file",
        type=Path,
        nargs="?",
        default=None,
        help="Program file; evaluated and printed unless --interactive is given",
    )
    arg_parser.add_argument(
        "-c", "--command",
        type=str,
        help="Evaluate program text given on the command line and exit",
    )
    arg_parser.add_argument(
        "-i", "--interactive",
        action="store_true",
        help="Open the REPL (with the file loaded into the buffer, if given)",
    )
    arg_parser.add_argument(
        "-s", "--step",
        action="store_true",
        help="Print the arrays after every statement",
    )
    arg_parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Print how each line was recognised",
    )
    arg_parser.add_argument(
        "--debounce",
        type=float,
        default=None,
        help="Seconds of quiet before diagnostics are shown in the REPL",
    )
    arg_parser.add_argument(
        "--interval",
        type=float,
        default=None,
        help="Seconds between statements during autoplay",
    )
    arg_parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )

    args = arg_parser.parse_args(argv)
    logging.basicConfig(level=args.log_level, format="%(levelname)s %(name)s: %(message)s")

    try:
        settings = Settings.from_mapping(
            {"debounce_delay": args.debounce, "autoplay_interval": args.interval}
        )
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.command is not None:
        return run_text(args.command, settings, verbose=args.verbose, step=args.step)

    if args.file is not None and not args.file.exists():
        print(f"Error: File not found: {args.file}", file=sys.stderr)
        return 1

    if args.file is not None and not args.interactive:
        return run_file(args.file, settings, verbose=args.verbose, step=args.step)

    initial = args.file.read_text() if args.file is not None else ""
    return run_repl(initial, settings)


if __name__ == "__main__":
    sys.exit(main())
