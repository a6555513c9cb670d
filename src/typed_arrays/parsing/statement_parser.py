"""Parser for the array statement notation.

Each non-empty, non-comment line of a program is one candidate statement.
The grammar recognises exactly four shapes, each terminated by ``;``::

    int    name[size] = { 1, 2, 3 };
    double name[size] = { 1.5, 2.5 };
    char   name[size] = "text";          (or a braced list of literals)
    name[index] = literal;
    name.insert(index, literal);
    name.remove(index);                  (or name.delete(index);)

Anything else becomes :class:`Unparsed`, or :class:`MissingTerminator` when
adding the ``;`` would have produced an update, insert or delete.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

import ply.yacc as yacc

from typed_arrays.parsing.statement_lexer import StatementLexer
from typed_arrays.types import KIND_NAMES, ElementKind, Scalar

# Method names accepted for element removal
DELETE_METHODS = frozenset({"remove", "delete"})


@dataclass
class Declare:
    """An array declaration with its initializer values."""

    kind: ElementKind
    name: str
    declared_size: int
    values: list[Scalar] = field(default_factory=list)
    line: int = 0


@dataclass
class Update:
    """Assignment to a single element: ``name[index] = value;``."""

    name: str
    index: int
    value: Scalar
    line: int = 0


@dataclass
class Insert:
    """Element insertion: ``name.insert(index, value);``."""

    name: str
    index: int
    value: Scalar
    line: int = 0


@dataclass
class Delete:
    """Element removal: ``name.remove(index);`` or ``name.delete(index);``."""

    name: str
    index: int
    line: int = 0


@dataclass
class Unparsed:
    """A line that matches no statement shape."""

    text: str
    line: int = 0


@dataclass
class MissingTerminator:
    """An update, insert or delete that lacks its trailing ``;``."""

    text: str
    line: int = 0


Statement = Union[Declare, Update, Insert, Delete, Unparsed, MissingTerminator]

# Statements that change the environment when applied
MUTATING_STATEMENTS = (Declare, Update, Insert, Delete)


@dataclass
class SourceLine:
    """A trimmed candidate statement line and its 0-based line number."""

    text: str
    line: int


def split_lines(text: str) -> list[SourceLine]:
    """Split program text into candidate statement lines.

    Blank lines and lines starting with ``//`` are dropped.
    """
    lines = []
    for number, raw in enumerate(text.split("\n")):
        stripped = raw.strip()
        if not stripped or stripped.startswith("//"):
            continue
        lines.append(SourceLine(text=stripped, line=number))
    return lines


class StatementParser:
    """Parser for single statements of the array notation."""

    tokens = StatementLexer.tokens

    def __init__(self) -> None:
        self.lexer = StatementLexer()
        self.lexer.build(errorlog=yacc.NullLogger())
        self.parser: yacc.LRParser = None  # type: ignore

    def p_statement(self, p: yacc.YaccProduction) -> None:
        """statement : declaration
                     | update
                     | insert
                     | delete"""
        p[0] = p[1]

    def p_declaration(self, p: yacc.YaccProduction) -> None:
        """declaration : type_name IDENTIFIER LBRACKET size RBRACKET EQUALS initializer SEMICOLON"""
        kind = p[1]
        kind_tag, values = p[7]
        if kind_tag == "string" and kind is not ElementKind.CHAR:
            # Only char arrays take a string initializer
            p[0] = None
            return
        p[0] = Declare(
            kind=kind,
            name=p[2],
            declared_size=p[4],
            values=[kind.coerce(v) for v in values],
        )

    def p_type_name(self, p: yacc.YaccProduction) -> None:
        """type_name : INT
                     | DOUBLE
                     | CHAR"""
        p[0] = KIND_NAMES[p[1]]

    def p_size(self, p: yacc.YaccProduction) -> None:
        """size : signed_integer"""
        p[0] = p[1]

    def p_size_empty(self, p: yacc.YaccProduction) -> None:
        """size : """
        p[0] = 0

    def p_initializer_list(self, p: yacc.YaccProduction) -> None:
        """initializer : LBRACE literal_list RBRACE
                       | LBRACE literal_list COMMA RBRACE"""
        p[0] = ("list", p[2])

    def p_initializer_empty(self, p: yacc.YaccProduction) -> None:
        """initializer : LBRACE RBRACE"""
        p[0] = ("list", [])

    def p_initializer_string(self, p: yacc.YaccProduction) -> None:
        """initializer : STRING"""
        p[0] = ("string", list(p[1]))

    def p_literal_list_single(self, p: yacc.YaccProduction) -> None:
        """literal_list : literal"""
        p[0] = [p[1]]

    def p_literal_list_multiple(self, p: yacc.YaccProduction) -> None:
        """literal_list : literal_list COMMA literal"""
        p[0] = p[1] + [p[3]]

    def p_literal_number(self, p: yacc.YaccProduction) -> None:
        """literal : number"""
        p[0] = p[1]

    def p_literal_char(self, p: yacc.YaccProduction) -> None:
        """literal : CHAR_LITERAL"""
        p[0] = p[1]

    def p_number(self, p: yacc.YaccProduction) -> None:
        """number : INTEGER
                  | FLOAT"""
        p[0] = p[1]

    def p_number_negative(self, p: yacc.YaccProduction) -> None:
        """number : MINUS INTEGER
                  | MINUS FLOAT"""
        p[0] = -p[2]

    def p_signed_integer(self, p: yacc.YaccProduction) -> None:
        """signed_integer : INTEGER"""
        p[0] = p[1]

    def p_signed_integer_negative(self, p: yacc.YaccProduction) -> None:
        """signed_integer : MINUS INTEGER"""
        p[0] = -p[2]

    def p_update(self, p: yacc.YaccProduction) -> None:
        """update : IDENTIFIER LBRACKET signed_integer RBRACKET EQUALS literal SEMICOLON"""
        p[0] = Update(name=p[1], index=p[3], value=p[6])

    def p_insert(self, p: yacc.YaccProduction) -> None:
        """insert : IDENTIFIER DOT IDENTIFIER LPAREN signed_integer COMMA literal RPAREN SEMICOLON"""
        if p[3] != "insert":
            p[0] = None
            return
        p[0] = Insert(name=p[1], index=p[5], value=p[7])

    def p_delete(self, p: yacc.YaccProduction) -> None:
        """delete : IDENTIFIER DOT IDENTIFIER LPAREN signed_integer RPAREN SEMICOLON"""
        if p[3] not in DELETE_METHODS:
            p[0] = None
            return
        p[0] = Delete(name=p[1], index=p[5])

    def p_error(self, p: yacc.YaccProduction) -> None:
        if p:
            raise SyntaxError(f"Syntax error at '{p.value}' (position {p.lexpos})")
        else:
            raise SyntaxError("Syntax error at end of input")

    def build(self, **kwargs: Any) -> None:
        """Build the parser."""
        kwargs.setdefault("errorlog", yacc.NullLogger())
        self.parser = yacc.yacc(module=self, start="statement", **kwargs)

    def parse_strict(self, data: str) -> Statement | None:
        """Parse one statement, raising ``SyntaxError`` on malformed input.

        Returns None for well-formed lines that name an unknown method or pair
        a string initializer with a numeric array.
        """
        if self.parser is None:
            self.build(debug=False, write_tables=False)

        return self.parser.parse(data, lexer=self.lexer.lexer)

    def parse(self, data: str, line: int = 0) -> Statement:
        """Recognise one trimmed line; never raises."""
        try:
            stmt = self.parse_strict(data)
        except SyntaxError:
            stmt = None
        if stmt is None:
            if self._is_missing_terminator(data):
                return MissingTerminator(text=data, line=line)
            return Unparsed(text=data, line=line)
        stmt.line = line
        return stmt

    def parse_program(self, text: str) -> list[Statement]:
        """Recognise every candidate line of *text*, in order."""
        return [self.parse(src.text, src.line) for src in split_lines(text)]

    def _is_missing_terminator(self, data: str) -> bool:
        """Check if *data* would be an update, insert or delete with a ``;``."""
        if data.rstrip().endswith(";"):
            return False
        try:
            stmt = self.parse_strict(data.rstrip() + ";")
        except SyntaxError:
            return False
        return isinstance(stmt, (Update, Insert, Delete))


_default_parser: StatementParser | None = None


def recognize(line: str, line_number: int = 0) -> Statement:
    """Recognise a single line using a shared parser instance."""
    global _default_parser
    if _default_parser is None:
        _default_parser = StatementParser()
    return _default_parser.parse(line.strip(), line_number)


def parse_program(text: str) -> list[Statement]:
    """Recognise all statements in *text* using a shared parser instance."""
    global _default_parser
    if _default_parser is None:
        _default_parser = StatementParser()
    return _default_parser.parse_program(text)
