"""Element kinds and array values for the typed_arrays library."""

from __future__ import annotations

import math
import sys
from dataclasses import dataclass, field
from enum import Enum
from typing import Union

# A single element or literal: integer, floating-point number, or one character
Scalar = Union[int, float, str]

# Highest valid Unicode code point
MAX_CODE_POINT = 0x10FFFF

# Largest finite double; out-of-range numbers are clamped to it
FLOAT_MAX = sys.float_info.max

# Escapes recognised inside character and string literals
ESCAPES: dict[str, str] = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "0": "\0",
    "\\": "\\",
    "'": "'",
    '"': '"',
}

_REVERSE_ESCAPES: dict[str, str] = {v: "\\" + k for k, v in ESCAPES.items()}


def unescape(text: str) -> str:
    """Resolve backslash escapes in a literal body."""
    out = []
    i = 0
    while i < len(text):
        ch = text[i]
        if ch == "\\" and i + 1 < len(text):
            nxt = text[i + 1]
            out.append(ESCAPES.get(nxt, nxt))
            i += 2
            continue
        out.append(ch)
        i += 1
    return "".join(out)


def is_finite(value: Scalar) -> bool:
    """False for infinite and NaN floats; ints and characters are always finite."""
    return not isinstance(value, float) or math.isfinite(value)


def _to_float(value: int | float) -> float:
    """Convert to a finite float: overflow and infinities clamp, NaN becomes 0.0."""
    try:
        result = float(value)
    except OverflowError:
        # An int beyond the double range
        return FLOAT_MAX if value > 0 else -FLOAT_MAX
    if math.isnan(result):
        return 0.0
    return min(max(result, -FLOAT_MAX), FLOAT_MAX)


class ElementKind(Enum):
    """The element type of an array, fixed at declaration."""

    INT = "int"
    DOUBLE = "double"
    CHAR = "char"

    def coerce(self, value: Scalar) -> Scalar:
        """Convert a literal of any surface form to this kind.

        Floats are truncated toward zero for int arrays, characters become
        their code point for numeric arrays, and numbers become the character
        with that code point (clamped to the Unicode range) for char arrays.
        Never raises: infinities and numbers beyond the double range clamp to
        the largest finite double, and NaN becomes zero.
        """
        if isinstance(value, str):
            if self is ElementKind.CHAR:
                return value
            if self is ElementKind.INT:
                return ord(value)
            return float(ord(value))
        if self is ElementKind.DOUBLE:
            return _to_float(value)
        if isinstance(value, float):
            value = int(_to_float(value))
        if self is ElementKind.INT:
            return value
        return chr(min(max(value, 0), MAX_CODE_POINT))

    def format_literal(self, value: Scalar) -> str:
        """Render a value as source text for this kind."""
        value = self.coerce(value)
        if self is ElementKind.INT:
            return str(value)
        if self is ElementKind.DOUBLE:
            text = repr(value)
            if "." not in text and "e" not in text:
                text += ".0"
            return text
        return "'" + _REVERSE_ESCAPES.get(value, value) + "'"


KIND_NAMES: dict[str, ElementKind] = {k.value: k for k in ElementKind}


@dataclass
class TypedArray:
    """An ordered sequence of elements that all share one kind."""

    kind: ElementKind
    values: list[Scalar] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.values)

    def copy(self) -> TypedArray:
        return TypedArray(kind=self.kind, values=list(self.values))


@dataclass
class ArrayView:
    """The current array as handed to a renderer."""

    name: str
    kind: ElementKind
    values: list[Scalar]

    @property
    def chart_values(self) -> list[float]:
        """Bar heights: numbers as-is, characters as their code point."""
        if self.kind is ElementKind.CHAR:
            return [ord(v) for v in self.values]  # type: ignore[arg-type]
        return list(self.values)  # type: ignore[arg-type]

    @property
    def labels(self) -> list[str]:
        """Per-bar labels, e.g. ``'a' (97)`` for characters."""
        if self.kind is ElementKind.CHAR:
            return [f"'{v}' ({ord(v)})" for v in self.values]  # type: ignore[arg-type]
        return [str(v) for v in self.values]


@dataclass
class ArrayEnvironment:
    """Mapping from array name to its current typed values.

    Keys keep the order of first declaration; a re-declaration replaces the
    array without moving the name.
    """

    arrays: dict[str, TypedArray] = field(default_factory=dict)

    def __contains__(self, name: object) -> bool:
        return name in self.arrays

    def __len__(self) -> int:
        return len(self.arrays)

    def get(self, name: str) -> TypedArray | None:
        return self.arrays.get(name)

    def names(self) -> list[str]:
        return list(self.arrays)

    def copy(self) -> ArrayEnvironment:
        """Return a deep copy safe to mutate independently."""
        return ArrayEnvironment({name: arr.copy() for name, arr in self.arrays.items()})

    def current_name(self, override: str | None = None) -> str | None:
        """Name of the array to display: the override if declared, else the first."""
        if override is not None and override in self.arrays:
            return override
        return next(iter(self.arrays), None)

    def view(self, name: str | None = None) -> ArrayView | None:
        """Build a renderer view of *name* (or the current array)."""
        name = self.current_name(name)
        if name is None:
            return None
        arr = self.arrays[name]
        return ArrayView(name=name, kind=arr.kind, values=list(arr.values))

    def to_dict(self) -> dict[str, list[Scalar]]:
        """Plain ``{name: values}`` mapping."""
        return {name: list(arr.values) for name, arr in self.arrays.items()}
