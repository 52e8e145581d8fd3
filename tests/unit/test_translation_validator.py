import unittest

import pytest

from conftest import write_file, write_json
from src.placeholder_rules import DEFAULT_PLACEHOLDER_RULES, PlaceholderProcessor
from src.translation_validator import (
    check_encoding_and_mojibake,
    check_key_coverage,
    check_placeholder_parity,
    validate_page,
)


class TestTranslationValidator(unittest.TestCase):
    def setUp(self):
        self.processor = PlaceholderProcessor(DEFAULT_PLACEHOLDER_RULES)

    def test_check_key_coverage(self):
        base_keys = {'menu.one', 'menu.two', 'menu.three'}
        target_keys = {'menu.one', 'menu.three', 'menu.four'}

        missing, extra = check_key_coverage(base_keys, target_keys)

        self.assertEqual(missing, {'menu.two'})
        self.assertEqual(extra, {'menu.four'})

    def test_check_key_coverage_no_diff(self):
        missing, extra = check_key_coverage({'a', 'b'}, {'a', 'b'})

        self.assertEqual(missing, set())
        self.assertEqual(extra, set())

    def test_placeholder_parity_success(self):
        self.assertTrue(check_placeholder_parity(self.processor, "Hello {0}, welcome to {1}.", "Merhaba {0}, {1}."))

    def test_placeholder_parity_missing_placeholder(self):
        self.assertFalse(check_placeholder_parity(self.processor, "Hello {0}, welcome to {1}.", "Merhaba {1}."))

    def test_placeholder_parity_reordered_placeholders(self):
        # Only counts are compared, so reordering is allowed.
        self.assertTrue(check_placeholder_parity(self.processor, "First {0}, then {1}.", "Önce {1}, sonra {0}."))

    def test_placeholder_parity_ignores_named_placeholders(self):
        self.assertTrue(check_placeholder_parity(self.processor, "Hello {name}", "Merhaba"))


class TestEncodingChecks:
    def test_clean_utf8_file(self, tmp_path):
        path = write_file(tmp_path / "de.json", '{"a": "verfügbar", "b": "确认"}\n')
        assert check_encoding_and_mojibake(path) == []

    def test_latin1_file_is_rejected(self, tmp_path):
        path = tmp_path / "de.json"
        path.write_bytes('{"a": "verf\xfcgbar"}'.encode('latin-1'))

        errors = check_encoding_and_mojibake(str(path))

        assert len(errors) == 1
        assert "is not a valid UTF-8 file" in errors[0]

    def test_mojibake_and_replacement_character(self, tmp_path):
        path = write_file(tmp_path / "de.json", '{"a": "verfÃ¼gbar", "b": "broken \ufffd"}')

        errors = check_encoding_and_mojibake(path)

        assert len(errors) == 2
        assert "Potential mojibake detected" in errors[0]
        assert "near 'Ã¼'" in errors[0]
        assert "Unicode replacement character" in errors[1]


class TestValidatePage:
    def test_consistent_page(self, tmp_path):
        write_json(tmp_path / "i18n" / "en.json", {"a": {"b": "Pay {0}"}, "c": "OK"})
        write_json(tmp_path / "i18n" / "tr.json", {"a": {"b": "{0} öde"}, "c": "Tamam"})

        assert validate_page(str(tmp_path), "en", PlaceholderProcessor([])) == []

    def test_reports_missing_extra_and_placeholder_issues(self, tmp_path):
        write_json(tmp_path / "i18n" / "en.json", {"pay": "Pay {0} now", "ok": "OK"})
        write_json(tmp_path / "i18n" / "tr.json", {"pay": "Şimdi öde", "extra": "Fazla"})

        issues = validate_page(str(tmp_path), "en", PlaceholderProcessor([]))

        assert issues == [
            "[tr] Missing key 'ok'.",
            "[tr] Extra key 'extra' not present in en.json.",
            "[tr] Placeholder mismatch for key 'pay'.",
        ]

    def test_reports_schema_and_parse_errors(self, tmp_path):
        write_json(tmp_path / "i18n" / "en.json", {"ok": "OK"})
        write_json(tmp_path / "i18n" / "ar.json", {"ok": 1})
        write_file(tmp_path / "i18n" / "zh.json", "{broken")

        issues = validate_page(str(tmp_path), "en", PlaceholderProcessor([]))

        assert "[ar] Value at 'ok' must be a string or an object." in issues
        assert any(issue.startswith("[zh] Could not parse") for issue in issues)

    def test_missing_base_file(self, tmp_path):
        write_json(tmp_path / "i18n" / "tr.json", {})
        with pytest.raises(FileNotFoundError, match="en.json"):
            validate_page(str(tmp_path), "en", PlaceholderProcessor([]))


if __name__ == '__main__':
    unittest.main()
