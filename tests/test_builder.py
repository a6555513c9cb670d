"""Tests for the program state builder."""

import pytest

from typed_arrays.builder import ProgramStateBuilder, build_environment
from typed_arrays.diagnostics import CollectingSink, DiagnosticKind, Severity
from typed_arrays.parsing import parse_program
from typed_arrays.types import FLOAT_MAX, MAX_CODE_POINT, ArrayEnvironment, ElementKind


def _build(text, sink=None):
    return build_environment(parse_program(text), sink)


def _kinds(result):
    return [d.kind for d in result.diagnostics]


class TestDeclarations:
    """Tests for declaration semantics and size policy."""

    def test_exact_size(self):
        """Declared size equal to initializer count keeps every value."""
        result = _build("int a[3] = {1, 2, 3};")
        assert result.environment.to_dict() == {"a": [1, 2, 3]}
        assert result.environment.get("a").kind is ElementKind.INT
        assert result.diagnostics == []

    def test_unsized_accepts_initializers(self):
        result = _build("double d[] = {1.5, 2.5, 3.5};")
        assert result.environment.to_dict() == {"d": [1.5, 2.5, 3.5]}
        assert result.diagnostics == []

    def test_zero_size_is_unsized(self):
        result = _build("int a[0] = {1, 2, 3};")
        assert result.environment.to_dict() == {"a": [1, 2, 3]}

    def test_too_many_initializers_truncates(self):
        result = _build("int a[2] = {1,2,3};")
        assert result.environment.to_dict() == {"a": [1, 2]}
        assert _kinds(result) == [DiagnosticKind.TOO_MANY_INITIALIZERS]
        assert result.diagnostics[0].severity is Severity.WARNING

    @pytest.mark.parametrize(
        "text",
        [
            "int a[4] = {1, 2};",
            "double a[4] = {1.5};",
            'char a[4] = "ab";',
        ],
    )
    def test_too_few_initializers_rejects(self, text):
        """Undersupplied declarations are rejected for every element kind."""
        result = _build(text)
        assert "a" not in result.environment
        assert _kinds(result) == [DiagnosticKind.TOO_FEW_INITIALIZERS]

    def test_too_few_keeps_prior_declaration(self):
        result = _build("int a[2] = {1, 2};\nint a[5] = {9};")
        assert result.environment.to_dict() == {"a": [1, 2]}

    def test_negative_size_rejected(self):
        result = _build("int a[-1] = {1};")
        assert len(result.environment) == 0
        assert _kinds(result) == [DiagnosticKind.NEGATIVE_SIZE]
        assert result.diagnostics[0].severity is Severity.ERROR

    def test_negative_size_keeps_prior_declaration(self):
        result = _build("int a[] = {7};\nint a[-3] = {1};")
        assert result.environment.to_dict() == {"a": [7]}

    def test_redeclaration_replaces(self):
        result = _build('int a[] = {1};\nchar a[] = "xy";')
        assert result.environment.to_dict() == {"a": ["x", "y"]}
        assert result.environment.get("a").kind is ElementKind.CHAR

    def test_first_declared_is_current(self):
        result = _build("int b[] = {1};\nint a[] = {2};\nint b[] = {3};")
        assert result.environment.names() == ["b", "a"]
        assert result.environment.current_name() == "b"


class TestUpdate:
    """Tests for element updates."""

    def test_update_in_range(self):
        result = _build("int a[3] = {1,2,3};\na[1] = 9;")
        assert result.environment.to_dict() == {"a": [1, 9, 3]}
        assert result.diagnostics == []

    def test_update_only_touches_target(self):
        result = _build("int a[] = {1, 2};\nint b[] = {3, 4};\nb[0] = 0;")
        assert result.environment.to_dict() == {"a": [1, 2], "b": [0, 4]}

    def test_update_char_array(self):
        result = _build("char w[4] = \"byte\";\nw[0] = 'j';")
        assert result.environment.to_dict() == {"w": ["j", "y", "t", "e"]}

    def test_update_coerces_to_int(self):
        result = _build("int a[] = {1, 2};\na[0] = 7.9;\na[1] = 'A';")
        assert result.environment.to_dict() == {"a": [7, 65]}
        assert all(isinstance(v, int) for v in result.environment.get("a").values)

    def test_update_coerces_to_double(self):
        result = _build("double d[] = {1.5};\nd[0] = 5;")
        value = result.environment.get("d").values[0]
        assert value == 5.0 and isinstance(value, float)

    def test_update_coerces_to_char(self):
        result = _build("char w[] = \"ab\";\nw[1] = 67;")
        assert result.environment.to_dict() == {"w": ["a", "C"]}

    @pytest.mark.parametrize("index", [-1, 3, 100])
    def test_update_out_of_range(self, index):
        result = _build(f"int a[3] = {{1,2,3}};\na[{index}] = 9;")
        assert result.environment.to_dict() == {"a": [1, 2, 3]}
        assert _kinds(result) == [DiagnosticKind.INDEX_OUT_OF_RANGE]

    def test_update_undeclared_is_silent(self):
        result = _build("a[5] = 2;")
        assert len(result.environment) == 0
        assert result.diagnostics == []


class TestInsertDelete:
    """Tests for insert and delete."""

    def test_insert_into_unsized(self):
        result = _build("int a[0] = {1,2,3};\na.insert(1, 7);")
        assert result.environment.to_dict() == {"a": [1, 7, 2, 3]}

    def test_insert_at_length_appends(self):
        result = _build("int a[] = {1, 2};\na.insert(2, 3);")
        assert result.environment.to_dict() == {"a": [1, 2, 3]}

    def test_insert_at_zero_prepends(self):
        result = _build("int a[] = {1, 2};\na.insert(0, 0);")
        assert result.environment.to_dict() == {"a": [0, 1, 2]}

    def test_insert_into_empty(self):
        result = _build("int a[] = {};\na.insert(0, 4);")
        assert result.environment.to_dict() == {"a": [4]}

    @pytest.mark.parametrize("index", [-1, 3])
    def test_insert_out_of_range(self, index):
        result = _build(f"int a[] = {{1, 2}};\na.insert({index}, 9);")
        assert result.environment.to_dict() == {"a": [1, 2]}
        assert _kinds(result) == [DiagnosticKind.INDEX_OUT_OF_RANGE]

    def test_insert_coerces(self):
        result = _build("char w[] = \"ac\";\nw.insert(1, 98);")
        assert result.environment.to_dict() == {"w": ["a", "b", "c"]}

    def test_delete_shifts_left(self):
        result = _build("int a[] = {1, 2, 3, 4};\na.remove(1);\na.delete(0);")
        assert result.environment.to_dict() == {"a": [3, 4]}

    @pytest.mark.parametrize("index", [-1, 2])
    def test_delete_out_of_range(self, index):
        result = _build(f"int a[] = {{1, 2}};\na.remove({index});")
        assert result.environment.to_dict() == {"a": [1, 2]}
        assert _kinds(result) == [DiagnosticKind.INDEX_OUT_OF_RANGE]

    def test_delete_from_empty(self):
        result = _build("int a[] = {};\na.remove(0);")
        assert _kinds(result) == [DiagnosticKind.INDEX_OUT_OF_RANGE]
        assert "no valid index" in result.diagnostics[0].message

    def test_insert_and_delete_undeclared_are_silent(self):
        result = _build("a.insert(0, 1);\na.remove(0);")
        assert len(result.environment) == 0
        assert result.diagnostics == []


class TestUnparsed:
    """Tests for lines that are not statements."""

    def test_unparsed_is_silent(self):
        result = _build("int a[] = {1};\nthis is not code\n#include <iostream>")
        assert result.environment.to_dict() == {"a": [1]}
        assert result.diagnostics == []

    def test_missing_terminator_hint(self):
        result = _build("int a[] = {1};\na[0] = 5")
        assert result.environment.to_dict() == {"a": [1]}
        assert _kinds(result) == [DiagnosticKind.SYNTAX_HINT]
        assert result.diagnostics[0].line == 1
        assert result.diagnostics[0].severity is Severity.INFO


class TestBuilderContract:
    """Tests for ordering, purity and sink behavior."""

    def test_errors_do_not_abort(self):
        text = "int a[-1] = {1};\nint b[2] = {1};\nint c[] = {1};\nc[4] = 2;\nc[0] = 3;"
        result = _build(text)
        assert result.environment.to_dict() == {"c": [3]}
        assert _kinds(result) == [
            DiagnosticKind.NEGATIVE_SIZE,
            DiagnosticKind.TOO_FEW_INITIALIZERS,
            DiagnosticKind.INDEX_OUT_OF_RANGE,
        ]
        assert [d.line for d in result.diagnostics] == [0, 1, 3]

    def test_deterministic(self):
        stmts = parse_program("int a[2] = {1,2,3};\na[5] = 1;\na.insert(0, 4);")
        first = build_environment(stmts)
        second = build_environment(stmts)
        assert first.environment == second.environment
        assert first.diagnostics == second.diagnostics

    def test_sink_receives_diagnostics_then_flush(self):
        sink = CollectingSink()
        result = _build("int a[2] = {1,2,3};\na[9] = 1;", sink)
        assert sink.diagnostics == result.diagnostics
        assert sink.flushes == 1

    def test_start_environment_not_mutated(self):
        start = _build("int a[] = {1, 2};").environment
        builder = ProgramStateBuilder()
        result = builder.build(parse_program("a[0] = 5;"), start=start)
        assert start.to_dict() == {"a": [1, 2]}
        assert result.environment.to_dict() == {"a": [5, 2]}

    def test_apply_mutates_in_place(self):
        env = ArrayEnvironment()
        builder = ProgramStateBuilder()
        for stmt in parse_program("int a[] = {1};\na.insert(1, 2);"):
            assert builder.apply(env, stmt) == []
        assert env.to_dict() == {"a": [1, 2]}


class TestNumericLimits:
    """Tests for literals beyond the double range."""

    def test_infinite_literal_in_int_declaration(self):
        result = _build("int a[] = {1e400, -1e400};")
        assert result.environment.to_dict() == {"a": [int(FLOAT_MAX), -int(FLOAT_MAX)]}
        assert result.diagnostics == []

    def test_huge_integer_in_double_declaration(self):
        result = _build("double d[] = {1" + "0" * 400 + "};")
        assert result.environment.to_dict() == {"d": [FLOAT_MAX]}

    def test_infinite_update_on_int_array(self):
        result = _build("int a[] = {1};\na[0] = 1e400;")
        assert result.environment.to_dict() == {"a": [int(FLOAT_MAX)]}

    def test_infinite_update_on_char_array(self):
        result = _build("char c[] = \"x\";\nc[0] = 1e400;\nc.insert(0, -1e400);")
        assert result.environment.to_dict() == {"c": ["\0", chr(MAX_CODE_POINT)]}

    def test_recognized_as_statements(self):
        stmts = parse_program("int a[] = {1e400};\na[0] = 1e999;")
        assert [type(s).__name__ for s in stmts] == ["Declare", "Update"]
