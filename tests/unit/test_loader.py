"""
Unit tests for the JSON rules loader.
"""

import json

import pytest

from autoresponder.errors import ConfigurationError
from autoresponder.rules import FileSource, MatchMode, Rule, load_rules, parse_rules


def write_rules(tmp_path, data) -> str:
    path = tmp_path / "rules.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return str(path)


class TestLoadRules:
    """Tests for load_rules()."""

    def test_static_and_file_rules(self, tmp_path):
        path = write_rules(tmp_path, {"rules": [
            {"trigger": "PING", "response": "PONG", "mode": "equals", "ignore_case": True},
            {"trigger": "motd", "response": "[content]", "file": "motd.txt", "encoding": "latin-1"},
        ]})

        rules = load_rules(path)

        assert rules[0] == Rule("PING", "PONG", ignore_case=True, mode=MatchMode.EQUALS)
        assert rules[1].file == FileSource("motd.txt", "latin-1")
        assert rules[1].mode is MatchMode.CONTAINS
        assert rules[1].ignore_case is False

    def test_response_file_not_opened_at_load(self, tmp_path):
        path = write_rules(tmp_path, [{"trigger": "a", "response": "[content]", "file": "missing.txt"}])
        rules = load_rules(path)
        assert rules[0].file.encoding == "utf-8"

    def test_order_preserved(self, tmp_path):
        path = write_rules(tmp_path, [
            {"trigger": str(i), "response": str(i)} for i in range(5)
        ])
        assert [r.trigger for r in load_rules(path)] == ["0", "1", "2", "3", "4"]

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_rules(tmp_path / "nope.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "rules.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            load_rules(path)


class TestParseRules:
    """Tests for parse_rules() validation."""

    @pytest.mark.parametrize("entry,fragment", [
        ({"response": "x"}, "missing 'trigger'"),
        ({"trigger": "x"}, "missing 'response'"),
        ({"trigger": 1, "response": "x"}, "'trigger' must be a string"),
        ({"trigger": "x", "response": "y", "mode": "regex"}, "Unknown match mode"),
        ({"trigger": "x", "response": "y", "ignore_case": "yes"}, "ignore_case"),
    ])
    def test_invalid_entries(self, entry, fragment):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_rules({"rules": [{"trigger": "ok", "response": "ok"}, entry]})
        assert "Rule #1" in str(exc_info.value)
        assert fragment in str(exc_info.value)

    def test_entry_must_be_object(self):
        with pytest.raises(ConfigurationError):
            parse_rules(["PING"])

    def test_document_shape(self):
        with pytest.raises(ConfigurationError):
            parse_rules({"responses": []})
        assert parse_rules({"rules": []}) == []
