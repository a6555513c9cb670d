"""Tests for writing renderer edits back into statement text."""

from typed_arrays.sync import write_back


class TestWriteBack:
    """Tests for write_back."""

    def test_append_after_last_statement(self):
        text = "int a[2] = {1, 2};\n\n// notes\n"
        assert write_back(text, "a", 0, "5") == "int a[2] = {1, 2};\na[0] = 5;\n\n// notes\n"

    def test_replace_in_place(self):
        text = "int a[2] = {1, 2};\na[0] = 3;\nint b[] = {0};"
        assert write_back(text, "a", 0, "8") == "int a[2] = {1, 2};\na[0] = 8;\nint b[] = {0};"

    def test_replace_keeps_indentation_and_comment(self):
        text = "int a[] = {1};\n    a[0]=3; // first"
        assert write_back(text, "a", 0, "4") == "int a[] = {1};\n    a[0]=4; // first"

    def test_replaces_last_matching_update(self):
        text = "int a[] = {1};\na[0] = 2;\na[0] = 3;"
        assert write_back(text, "a", 0, "9") == "int a[] = {1};\na[0] = 2;\na[0] = 9;"

    def test_other_index_not_replaced(self):
        text = "int a[] = {1, 2};\na[1] = 2;"
        assert write_back(text, "a", 0, "7") == "int a[] = {1, 2};\na[1] = 2;\na[0] = 7;"

    def test_other_name_not_replaced(self):
        text = "int a[] = {1};\nint b[] = {1};\nb[0] = 2;"
        assert write_back(text, "a", 0, "7").endswith("b[0] = 2;\na[0] = 7;")

    def test_replace_char_literal_containing_semicolon(self):
        text = "char w[] = \"ab\";\nw[0] = ';';"
        assert write_back(text, "w", 0, "'x'") == "char w[] = \"ab\";\nw[0] = 'x';"

    def test_empty_text(self):
        assert write_back("", "a", 0, "1") == "a[0] = 1;"

    def test_comments_only(self):
        assert write_back("// hi\n", "a", 0, "1") == "// hi\na[0] = 1;"
