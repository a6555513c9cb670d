"""Lexer for the array statement notation."""

import ply.lex as lex

from typed_arrays.types import unescape


class StatementLexer:
    """Lexer for tokenizing one line of array notation."""

    # Reserved keywords
    reserved = {
        "int": "INT",
        "double": "DOUBLE",
        "char": "CHAR",
    }

    # Token list
    tokens = [
        "IDENTIFIER",
        "FLOAT",
        "INTEGER",
        "CHAR_LITERAL",
        "STRING",
        "LBRACKET",
        "RBRACKET",
        "LBRACE",
        "RBRACE",
        "LPAREN",
        "RPAREN",
        "EQUALS",
        "COMMA",
        "SEMICOLON",
        "DOT",
        "MINUS",
    ] + list(reserved.values())

    # Simple tokens
    t_LBRACKET = r"\["
    t_RBRACKET = r"\]"
    t_LBRACE = r"\{"
    t_RBRACE = r"\}"
    t_LPAREN = r"\("
    t_RPAREN = r"\)"
    t_EQUALS = r"="
    t_COMMA = r","
    t_SEMICOLON = r";"
    t_DOT = r"\."
    t_MINUS = r"-"

    # Ignored characters
    t_ignore = " \t\r"

    # Line comments
    t_ignore_COMMENT = r"//[^\n]*"

    def __init__(self) -> None:
        self.lexer: lex.LexToken = None  # type: ignore

    def t_FLOAT(self, t: lex.LexToken) -> lex.LexToken:
        r"(?:\d+\.\d*|\.\d+)(?:[eE][-+]?\d+)?|\d+[eE][-+]?\d+"
        t.value = float(t.value)
        return t

    def t_INTEGER(self, t: lex.LexToken) -> lex.LexToken:
        r"\d+"
        t.value = int(t.value)
        return t

    def t_CHAR_LITERAL(self, t: lex.LexToken) -> lex.LexToken:
        r"'(?:[^'\\\n]|\\.)'"
        t.value = unescape(t.value[1:-1])
        return t

    def t_STRING(self, t: lex.LexToken) -> lex.LexToken:
        r'"(?:[^"\\\n]|\\.)*"'
        t.value = unescape(t.value[1:-1])
        return t

    def t_IDENTIFIER(self, t: lex.LexToken) -> lex.LexToken:
        r"[a-zA-Z_][a-zA-Z0-9_]*"
        t.type = self.reserved.get(t.value, "IDENTIFIER")
        return t

    def t_NEWLINE(self, t: lex.LexToken) -> None:
        r"\n+"
        t.lexer.lineno += len(t.value)

    def t_error(self, t: lex.LexToken) -> None:
        raise SyntaxError(f"Illegal character '{t.value[0]}' at position {t.lexpos}")

    def build(self, **kwargs) -> None:  # type: ignore
        """Build the lexer."""
        self.lexer = lex.lex(module=self, **kwargs)

    def input(self, data: str) -> None:
        """Set the input string to tokenize."""
        self.lexer.input(data)

    def token(self) -> lex.LexToken | None:
        """Return the next token."""
        return self.lexer.token()

    def tokenize(self, data: str) -> list[lex.LexToken]:
        """Tokenize the input and return all tokens."""
        self.input(data)
        tokens = []
        while True:
            tok = self.token()
            if tok is None:
                break
            tokens.append(tok)
        return tokens
