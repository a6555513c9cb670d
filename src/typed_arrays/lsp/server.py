"""Array notation language server: diagnostics, hover, completion and step commands via pygls."""

from __future__ import annotations

import logging
from typing import Any

from lsprotocol import types
from pygls.lsp.server import LanguageServer

from typed_arrays import __version__
from typed_arrays.config import Settings
from typed_arrays.diagnostics import Diagnostic, DiagnosticSink, Severity
from typed_arrays.scheduling import AsyncioScheduler
from typed_arrays.sync import write_back
from typed_arrays.timeline import ExecutionTimeline
from typed_arrays.types import ArrayEnvironment, Scalar, is_finite

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Static data
# ---------------------------------------------------------------------------

KEYWORDS: dict[str, str] = {
    "int": "Integer array: `int name[size] = {1, 2, 3};`",
    "double": "Floating-point array: `double name[size] = {1.5, 2.5};`",
    "char": "Character array: `char name[size] = \"text\";`",
}

METHODS: dict[str, str] = {
    "insert": "Insert before an index: `name.insert(index, value);`",
    "remove": "Remove the element at an index: `name.remove(index);`",
    "delete": "Remove the element at an index: `name.delete(index);`",
}

SEVERITY_MAP: dict[Severity, types.DiagnosticSeverity] = {
    Severity.ERROR: types.DiagnosticSeverity.Error,
    Severity.WARNING: types.DiagnosticSeverity.Warning,
    Severity.INFO: types.DiagnosticSeverity.Information,
}

STATE_NOTIFICATION = "typedArrays/state"

# ---------------------------------------------------------------------------
# Helpers (module-level so they are easy to unit-test)
# ---------------------------------------------------------------------------


def to_lsp_diagnostic(diagnostic: Diagnostic, source: str) -> types.Diagnostic:
    """Convert a builder diagnostic into an LSP diagnostic spanning its line."""
    lines = source.split("\n")
    line = diagnostic.line if diagnostic.line is not None else 0
    line = min(max(line, 0), max(len(lines) - 1, 0))
    text = lines[line] if lines else ""
    start_char = len(text) - len(text.lstrip())
    return types.Diagnostic(
        range=types.Range(
            start=types.Position(line=line, character=start_char),
            end=types.Position(line=line, character=len(text.rstrip())),
        ),
        severity=SEVERITY_MAP[diagnostic.severity],
        code=diagnostic.kind.value,
        source="typed-arrays",
        message=diagnostic.message,
    )


def _word_at_position(line_text: str, character: int) -> str:
    """Return the identifier-like word surrounding *character*."""
    if character < 0 or character >= len(line_text):
        return ""
    ch = line_text[character]
    if not (ch.isalnum() or ch == "_"):
        return ""
    left = character
    while left > 0 and (line_text[left - 1].isalnum() or line_text[left - 1] == "_"):
        left -= 1
    right = character
    while right < len(line_text) and (line_text[right].isalnum() or line_text[right] == "_"):
        right += 1
    return line_text[left:right]


def hover_text(word: str, env: ArrayEnvironment) -> str | None:
    """Markdown hover for an array name, keyword or method; None otherwise."""
    arr = env.get(word)
    if arr is not None:
        body = ", ".join(repr(v) if isinstance(v, str) else str(v) for v in arr.values)
        return f"**{word}**: `{arr.kind.value}[{len(arr)}] = {{{body}}}`"
    if word in KEYWORDS:
        return f"**{word}** — {KEYWORDS[word]}"
    if word in METHODS:
        return f"**{word}** — {METHODS[word]}"
    return None


def completion_items(prefix: str, env: ArrayEnvironment) -> list[types.CompletionItem]:
    """Completions for the text before the cursor."""
    items: list[types.CompletionItem] = []
    if prefix.endswith("."):
        for name, desc in METHODS.items():
            items.append(
                types.CompletionItem(
                    label=name,
                    kind=types.CompletionItemKind.Method,
                    detail=desc,
                )
            )
        return items

    for name, desc in KEYWORDS.items():
        items.append(
            types.CompletionItem(
                label=name,
                kind=types.CompletionItemKind.Keyword,
                detail=desc,
            )
        )
    for name in env.names():
        arr = env.get(name)
        items.append(
            types.CompletionItem(
                label=name,
                kind=types.CompletionItemKind.Variable,
                detail=f"{arr.kind.value}[{len(arr)}]",
            )
        )
    return items


def state_payload(timeline: ExecutionTimeline) -> dict[str, Any]:
    """JSON-friendly snapshot of a timeline for the client's renderer."""
    view = timeline.current_view()
    return {
        "mode": timeline.mode.value,
        "currentStatementIndex": timeline.current_statement_index,
        "totalStatements": timeline.total_statements,
        "isPlaying": timeline.is_playing,
        "canStepForward": timeline.can_step_forward,
        "canStepBack": timeline.can_step_back,
        "arrayName": view.name if view else None,
        "elementKind": view.kind.value if view else None,
        "values": view.values if view else [],
        "chartValues": view.chart_values if view else [],
        "labels": view.labels if view else [],
        "arrays": timeline.environment.to_dict(),
    }


def _command_arguments(args: tuple[Any, ...]) -> list[Any]:
    """Normalise command arguments, which may arrive wrapped in one list."""
    if len(args) == 1 and isinstance(args[0], list):
        return list(args[0])
    return list(args)


# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------

server = LanguageServer("typed-arrays-language-server", __version__)
_settings = Settings()
_timelines: dict[str, ExecutionTimeline] = {}


class PublishingSink(DiagnosticSink):
    """Buffers a validation pass and publishes it when the pass is flushed."""

    def __init__(self, uri: str) -> None:
        self.uri = uri
        self._pending: list[Diagnostic] = []

    def emit(self, diagnostic: Diagnostic) -> None:
        self._pending.append(diagnostic)

    def flush(self) -> None:
        timeline = _timelines.get(self.uri)
        source = timeline.text if timeline is not None else ""
        diagnostics = [to_lsp_diagnostic(d, source) for d in self._pending]
        self._pending = []
        server.text_document_publish_diagnostics(
            types.PublishDiagnosticsParams(uri=self.uri, diagnostics=diagnostics)
        )


def _send_state(timeline: ExecutionTimeline, uri: str) -> None:
    server.protocol.notify(STATE_NOTIFICATION, {"uri": uri, **state_payload(timeline)})


@server.feature(types.INITIALIZE)
def initialize(params: types.InitializeParams) -> None:
    global _settings
    try:
        _settings = Settings.from_mapping(params.initialization_options)
    except (TypeError, ValueError) as exc:
        logger.warning("Ignoring invalid initialization options: %s", exc)
        _settings = Settings()


@server.feature(types.TEXT_DOCUMENT_DID_OPEN)
def did_open(params: types.DidOpenTextDocumentParams) -> None:
    uri = params.text_document.uri
    doc = server.workspace.get_text_document(uri)
    timeline = ExecutionTimeline(
        doc.source,
        settings=_settings,
        scheduler=AsyncioScheduler(),
        sink=PublishingSink(uri),
        listener=lambda t: _send_state(t, uri),
    )
    _timelines[uri] = timeline
    timeline.validate()
    _send_state(timeline, uri)


@server.feature(types.TEXT_DOCUMENT_DID_CHANGE)
def did_change(params: types.DidChangeTextDocumentParams) -> None:
    uri = params.text_document.uri
    timeline = _timelines.get(uri)
    if timeline is None:
        return
    doc = server.workspace.get_text_document(uri)
    timeline.set_text(doc.source)


@server.feature(types.TEXT_DOCUMENT_DID_CLOSE)
def did_close(params: types.DidCloseTextDocumentParams) -> None:
    uri = params.text_document.uri
    timeline = _timelines.pop(uri, None)
    if timeline is not None:
        timeline.close()
    server.text_document_publish_diagnostics(
        types.PublishDiagnosticsParams(uri=uri, diagnostics=[])
    )


@server.feature(
    types.TEXT_DOCUMENT_COMPLETION,
    types.CompletionOptions(trigger_characters=["."]),
)
def completions(params: types.CompletionParams) -> types.CompletionList:
    doc = server.workspace.get_text_document(params.text_document.uri)
    line_text = doc.lines[params.position.line] if params.position.line < len(doc.lines) else ""
    prefix = line_text[: params.position.character].rstrip()
    timeline = _timelines.get(params.text_document.uri)
    env = timeline.environment if timeline is not None else ArrayEnvironment()
    return types.CompletionList(is_incomplete=False, items=completion_items(prefix, env))


@server.feature(types.TEXT_DOCUMENT_HOVER)
def hover(params: types.HoverParams) -> types.Hover | None:
    doc = server.workspace.get_text_document(params.text_document.uri)
    if params.position.line >= len(doc.lines):
        return None
    word = _word_at_position(doc.lines[params.position.line], params.position.character)
    if not word:
        return None
    timeline = _timelines.get(params.text_document.uri)
    env = timeline.environment if timeline is not None else ArrayEnvironment()
    content = hover_text(word, env)
    if content is None:
        return None
    return types.Hover(
        contents=types.MarkupContent(
            kind=types.MarkupKind.Markdown,
            value=content,
        )
    )


# ---------------------------------------------------------------------------
# Commands: [uri, ...args]
# ---------------------------------------------------------------------------


def _timeline_for(args: list[Any]) -> ExecutionTimeline:
    if not args or args[0] not in _timelines:
        raise ValueError("Command requires the URI of an open document")
    return _timelines[args[0]]


@server.command("typedArrays.state")
def state_command(*args: Any) -> dict[str, Any]:
    return state_payload(_timeline_for(_command_arguments(args)))


@server.command("typedArrays.setMode")
def set_mode_command(*args: Any) -> dict[str, Any]:
    arguments = _command_arguments(args)
    timeline = _timeline_for(arguments)
    if len(arguments) < 2:
        raise ValueError("setMode requires a mode: 'live' or 'step'")
    timeline.set_mode(str(arguments[1]))
    return state_payload(timeline)


@server.command("typedArrays.stepForward")
def step_forward_command(*args: Any) -> dict[str, Any]:
    timeline = _timeline_for(_command_arguments(args))
    timeline.step_forward()
    return state_payload(timeline)


@server.command("typedArrays.stepBack")
def step_back_command(*args: Any) -> dict[str, Any]:
    timeline = _timeline_for(_command_arguments(args))
    timeline.step_back()
    return state_payload(timeline)


@server.command("typedArrays.reset")
def reset_command(*args: Any) -> dict[str, Any]:
    timeline = _timeline_for(_command_arguments(args))
    timeline.reset()
    return state_payload(timeline)


@server.command("typedArrays.play")
def play_command(*args: Any) -> dict[str, Any]:
    timeline = _timeline_for(_command_arguments(args))
    timeline.play()
    return state_payload(timeline)


@server.command("typedArrays.pause")
def pause_command(*args: Any) -> dict[str, Any]:
    timeline = _timeline_for(_command_arguments(args))
    timeline.pause()
    return state_payload(timeline)


@server.command("typedArrays.selectArray")
def select_array_command(*args: Any) -> dict[str, Any]:
    arguments = _command_arguments(args)
    timeline = _timeline_for(arguments)
    timeline.select_array(arguments[1] if len(arguments) > 1 else None)
    return state_payload(timeline)


@server.command("typedArrays.setElement")
def set_element_command(*args: Any) -> dict[str, Any]:
    """Write a renderer edit back into the document: [uri, index, value]."""
    arguments = _command_arguments(args)
    timeline = _timeline_for(arguments)
    if len(arguments) < 3:
        raise ValueError("setElement requires an index and a value")
    uri, index, value = arguments[0], int(arguments[1]), arguments[2]
    new_text = element_edit_text(timeline, index, value)
    if new_text is not None:
        doc = server.workspace.get_text_document(uri)
        edit = types.WorkspaceEdit(
            changes={
                uri: [
                    types.TextEdit(
                        range=types.Range(
                            start=types.Position(line=0, character=0),
                            end=types.Position(line=len(doc.lines), character=0),
                        ),
                        new_text=new_text,
                    )
                ]
            }
        )
        server.workspace_apply_edit(
            types.ApplyWorkspaceEditParams(edit=edit, label="Set array element")
        )
    return state_payload(timeline)


def element_edit_text(timeline: ExecutionTimeline, index: int, value: Scalar) -> str | None:
    """New document text with the current array's *index* set, or None if invalid."""
    view = timeline.current_view()
    if view is None or not 0 <= index < len(view.values):
        return None
    if isinstance(value, str) and len(value) != 1:
        return None
    if not is_finite(value):
        return None
    return write_back(timeline.text, view.name, index, view.kind.format_literal(value))


def main() -> None:
    server.start_io()


if __name__ == "__main__":
    main()
