"""Write element edits from a renderer back into statement text."""

from __future__ import annotations

import re

from typed_arrays.parsing.statement_parser import StatementParser, Update, split_lines

# The literal between '=' and the terminating ';' of an update line
_LITERAL_RE = re.compile(r"(\]\s*=\s*)('(?:[^'\\]|\\.)'|[^;']*?)(\s*;)")


def write_back(
    text: str,
    name: str,
    index: int,
    literal: str,
    parser: StatementParser | None = None,
) -> str:
    """Return *text* with ``name[index]`` set to *literal*.

    If update statements for that name and index already exist, the literal
    of the last one (the one that determines the shown value) is replaced in
    place. Otherwise a new update line is added after the last non-empty,
    non-comment line.
    """
    parser = parser or StatementParser()
    lines = text.split("\n")

    candidates = split_lines(text)
    for src in reversed(candidates):
        stmt = parser.parse(src.text, src.line)
        if isinstance(stmt, Update) and stmt.name == name and stmt.index == index:
            original = lines[src.line]
            lines[src.line] = _LITERAL_RE.sub(
                lambda m: m.group(1) + literal + m.group(3), original, count=1
            )
            return "\n".join(lines)

    new_line = f"{name}[{index}] = {literal};"
    if not candidates:
        if text.strip():
            return text.rstrip("\n") + "\n" + new_line
        return new_line
    insert_at = candidates[-1].line + 1
    lines.insert(insert_at, new_line)
    return "\n".join(lines)
