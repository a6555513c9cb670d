"""Parsing module for the array statement notation."""

from typed_arrays.parsing.statement_parser import (
    Declare,
    Delete,
    Insert,
    MissingTerminator,
    SourceLine,
    Statement,
    StatementParser,
    Unparsed,
    Update,
    parse_program,
    recognize,
    split_lines,
)

__all__ = [
    "Declare",
    "Delete",
    "Insert",
    "MissingTerminator",
    "SourceLine",
    "Statement",
    "StatementParser",
    "Unparsed",
    "Update",
    "parse_program",
    "recognize",
    "split_lines",
]
