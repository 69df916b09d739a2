"""Tests for tool argument normalization."""

from __future__ import annotations

import json

import pytest

from stepwise.tools.arguments import normalize_arguments, split_top_level


class TestPassThrough:
    """Well-formed JSON containers are returned untouched."""

    @pytest.mark.parametrize("raw", ['{"path": "a.txt"}', '["a", 1]', "{}", "[]"])
    def test_valid_json_unchanged(self, raw: str) -> None:
        assert normalize_arguments(raw) == raw

    def test_whitespace_preserved_for_valid_json(self) -> None:
        raw = '  {"a": 1}  '
        assert normalize_arguments(raw) == raw


class TestEmptyAndNull:
    @pytest.mark.parametrize("raw", [None, "", "   ", "\n"])
    def test_empty_becomes_object(self, raw: str | None) -> None:
        assert normalize_arguments(raw) == "{}"

    def test_bare_null_becomes_object(self) -> None:
        assert normalize_arguments("null") == "{}"

    def test_trailing_null_stripped(self) -> None:
        assert json.loads(normalize_arguments('{"a": 1}null')) == {"a": 1}

    def test_leading_null_stripped(self) -> None:
        assert json.loads(normalize_arguments('null{"a": 1}')) == {"a": 1}

    def test_null_with_separator_stripped(self) -> None:
        assert json.loads(normalize_arguments('{"a": 1}, null')) == {"a": 1}

    def test_null_inside_values_untouched(self) -> None:
        assert normalize_arguments('{"a": null}') == '{"a": null}'


class TestDoubleEscaped:
    def test_quoted_escaped_object(self) -> None:
        raw = '"{\\"path\\": \\"/tmp/x\\"}"'
        assert json.loads(normalize_arguments(raw)) == {"path": "/tmp/x"}

    def test_unquoted_escaped_object(self) -> None:
        raw = '{\\"path\\": \\"/tmp/x\\"}'
        assert json.loads(normalize_arguments(raw)) == {"path": "/tmp/x"}


class TestPositional:
    def test_comma_separated_values_wrapped(self) -> None:
        assert normalize_arguments('"/a/b.txt", 1, 100') == '["/a/b.txt", 1, 100]'
        assert json.loads(normalize_arguments('"/a/b.txt", 1, 100')) == ["/a/b.txt", 1, 100]

    def test_single_quotes_converted(self) -> None:
        assert json.loads(normalize_arguments("'hello', 2")) == ["hello", 2]

    def test_commas_inside_quotes_kept(self) -> None:
        assert json.loads(normalize_arguments('"a, b", "c"')) == ["a, b", "c"]

    def test_nested_containers_kept_whole(self) -> None:
        assert json.loads(normalize_arguments('"x", {"k": [1, 2]}')) == ["x", {"k": [1, 2]}]

    def test_single_string_value(self) -> None:
        assert json.loads(normalize_arguments('"ls -la"')) == ["ls -la"]

    def test_bare_token_left_for_deserializer(self) -> None:
        normalized = normalize_arguments("ls -la")
        assert normalized == "[ls -la]"
        with pytest.raises(ValueError):
            json.loads(normalized)


class TestSplitTopLevel:
    def test_splits_and_trims(self) -> None:
        assert split_top_level(" a , b ,c ") == ["a", "b", "c"]

    def test_drops_empty_tokens(self) -> None:
        assert split_top_level("a,,b,") == ["a", "b"]

    def test_respects_escaped_quotes(self) -> None:
        assert split_top_level('"a \\" , b", c') == ['"a \\" , b"', "c"]

    def test_respects_brackets(self) -> None:
        assert split_top_level("[1, 2], {3: 4}") == ["[1, 2]", "{3: 4}"]
