"""
Unit tests for placeholder substitution.
"""

from promptvault.utils.variable_replacer import extract_placeholders, replace_variables


class TestReplaceVariables:
    """Test replace_variables()."""

    def test_replaces_known_placeholders(self):
        result = replace_variables("Hello {{name}}, welcome to {{place}}", {"name": "Ada", "place": "Berlin"})
        assert result == "Hello Ada, welcome to Berlin"

    def test_unknown_placeholders_are_kept(self):
        result = replace_variables("Hello {{name}} from {{city}}", {"name": "Ada"})
        assert result == "Hello Ada from {{city}}"

    def test_accepts_json_object_string(self):
        assert replace_variables("{{a}}-{{b}}", '{"a": "1", "b": "2"}') == "1-2"

    def test_unparsable_json_returns_content_unchanged(self):
        assert replace_variables("Hi {{name}}", "{not json") == "Hi {{name}}"

    def test_non_object_json_leaves_placeholders(self):
        assert replace_variables("Hi {{name}}", '["name"]') == "Hi {{name}}"

    def test_empty_variables_return_content(self):
        assert replace_variables("Hi {{name}}", None) == "Hi {{name}}"
        assert replace_variables("Hi {{name}}", {}) == "Hi {{name}}"
        assert replace_variables("Hi {{name}}", "") == "Hi {{name}}"

    def test_substitution_is_not_recursive(self):
        result = replace_variables("{{a}}", {"a": "{{b}}", "b": "deep"})
        assert result == "{{b}}"

    def test_repeated_placeholder_replaced_everywhere(self):
        assert replace_variables("{{x}} and {{x}}", {"x": "y"}) == "y and y"

    def test_non_word_tokens_are_ignored(self):
        content = "{{first name}} {{ name }} {{na-me}}"
        assert replace_variables(content, {"first name": "A", "name": "B", "na-me": "C"}) == content

    def test_non_string_values_are_stringified(self):
        assert replace_variables("n={{n}}", {"n": 3}) == "n=3"


class TestExtractPlaceholders:
    """Test extract_placeholders()."""

    def test_returns_names_in_order(self):
        assert extract_placeholders("{{b}} {{a}} {{b}}") == ["b", "a", "b"]

    def test_empty_content(self):
        assert extract_placeholders("") == []
        assert extract_placeholders(None) == []
