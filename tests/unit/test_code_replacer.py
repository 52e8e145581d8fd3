import os
import stat
import unittest

from conftest import write_file
from src.code_replacer import (
    CodeReplacer,
    Replacement,
    ReplaceTask,
    convert_to_replace_tasks,
    replace_in_content,
)
from src.csv_matcher import MatchedTranslation


class TestReplaceInContent(unittest.TestCase):
    def test_keeps_quote_and_trailing_arguments(self):
        content, count = replace_in_content(
            "$t('zh_hello', {name})",
            [Replacement(source="zh_hello", target="greet_hello")]
        )
        self.assertEqual(content, "$t('greet_hello', {name})")
        self.assertEqual(count, 1)

    def test_all_quote_styles(self):
        content = "t('zh_a') + t(\"zh_a\") + t(`zh_a`)"
        new_content, count = replace_in_content(content, [Replacement("zh_a", "key_a")])
        self.assertEqual(new_content, "t('key_a') + t(\"key_a\") + t(`key_a`)")
        self.assertEqual(count, 3)

    def test_does_not_touch_longer_placeholders_or_other_calls(self):
        content = "t('zh_ab'); split('zh_a'); t('zh_a' + x); label = 'zh_a'"
        new_content, count = replace_in_content(content, [Replacement("zh_a", "key_a")])
        self.assertEqual(new_content, content)
        self.assertEqual(count, 0)

    def test_regex_metacharacters_are_literal(self):
        content = "t('zh_共(1)项?')"
        new_content, count = replace_in_content(content, [Replacement("zh_共(1)项?", "items_count")])
        self.assertEqual(new_content, "t('items_count')")
        self.assertEqual(count, 1)

    def test_backslash_in_target_is_literal(self):
        new_content, _ = replace_in_content("t('zh_a')", [Replacement("zh_a", r"a\1b")])
        self.assertEqual(new_content, r"t('a\1b')")

    def test_calls_inside_comments_are_skipped(self):
        content = "// t('zh_a')\n/* t('zh_a') */ t('zh_a')\nurl = 'http://x'; t('zh_a')"
        new_content, count = replace_in_content(content, [Replacement("zh_a", "key_a")])
        self.assertEqual(
            new_content,
            "// t('zh_a')\n/* t('zh_a') */ t('key_a')\nurl = 'http://x'; t('key_a')"
        )
        self.assertEqual(count, 2)


class TestCodeReplacer:
    def test_convert_to_replace_tasks_groups_by_file(self):
        def matched(placeholder, key, file_path):
            return MatchedTranslation(
                text=placeholder[3:], placeholder=placeholder, key=key, translations={},
                file_path=file_path, line=1, page_name="p",
            )

        tasks = convert_to_replace_tasks([
            matched("zh_a", "key_a", "a.vue"),
            matched("zh_a", "key_a", "a.vue"),
            matched("zh_b", "key_b", "a.vue"),
            matched("zh_a", "key_a", "b.vue"),
        ])

        assert [(t.file_path, [r.source for r in t.replacements]) for t in tasks] == [
            ("a.vue", ["zh_a", "zh_b"]),
            ("b.vue", ["zh_a"]),
        ]

    def test_replace_writes_only_changed_files(self, tmp_path):
        changed = write_file(tmp_path / "a.vue", "{{ $t('zh_确认') }}\n")
        unchanged = write_file(tmp_path / "b.vue", "{{ $t('vip_title') }}\n")
        before = os.stat(unchanged).st_mtime_ns

        result = CodeReplacer().replace([
            ReplaceTask(changed, [Replacement("zh_确认", "vip_confirm")]),
            ReplaceTask(unchanged, [Replacement("zh_确认", "vip_confirm")]),
        ])

        assert (result.files_updated, result.replacements) == (1, 1)
        with open(changed, "r", encoding="utf-8") as f:
            assert f.read() == "{{ $t('vip_confirm') }}\n"
        assert os.stat(unchanged).st_mtime_ns == before

    def test_missing_file_is_reported(self, tmp_path):
        missing = str(tmp_path / "gone.vue")
        result = CodeReplacer().replace([ReplaceTask(missing, [Replacement("zh_a", "a")])])
        assert list(result.failed_files) == [missing]
        assert result.files_updated == 0

    def test_dry_run(self, tmp_path):
        path = write_file(tmp_path / "a.ts", "t('zh_a')")
        result = CodeReplacer(dry_run=True).replace([ReplaceTask(path, [Replacement("zh_a", "key_a")])])
        assert result.replacements == 1
        with open(path, "r", encoding="utf-8") as f:
            assert f.read() == "t('zh_a')"

    def test_crlf_line_endings_are_kept(self, tmp_path):
        path = str(tmp_path / "a.ts")
        with open(path, "wb") as f:
            f.write(b"const a = 1\r\nconst b = t('zh_hello')\r\n")

        CodeReplacer().replace([ReplaceTask(path, [Replacement("zh_hello", "greet_hello")])])

        with open(path, "rb") as f:
            assert f.read() == b"const a = 1\r\nconst b = t('greet_hello')\r\n"

    def test_rewritten_file_keeps_permissions(self, tmp_path):
        path = write_file(tmp_path / "Home.vue", "{{ $t('zh_hello') }}\n")
        os.chmod(path, 0o644)

        CodeReplacer().replace([ReplaceTask(path, [Replacement("zh_hello", "greet_hello")])])

        assert stat.S_IMODE(os.stat(path).st_mode) == 0o644


if __name__ == '__main__':
    unittest.main()
