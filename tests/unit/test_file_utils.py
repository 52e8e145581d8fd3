import json
import os
import stat
import unittest
from unittest.mock import patch

import pytest

from conftest import write_file
from src.file_utils import (
    dump_json,
    list_page_dirs,
    read_json,
    read_text,
    scan_files,
    write_json_atomic,
    write_text_atomic,
)


class TestDumpJson(unittest.TestCase):
    def test_keeps_unicode_and_trailing_newline(self):
        self.assertEqual(dump_json({"a": "确认"}), '{\n  "a": "确认"\n}\n')

    def test_indent(self):
        self.assertEqual(dump_json({"a": "b"}, indent=4), '{\n    "a": "b"\n}\n')


class TestFileUtils:
    def test_scan_files(self, tmp_path):
        for name in ("b/x.vue", "a/y.ts", "a/types.d.ts", "node_modules/z.js", "dist/w.js", "a/readme.md"):
            write_file(tmp_path / name, "")
        assert scan_files(str(tmp_path), (".vue", ".ts", ".js")) == ["a/y.ts", "b/x.vue"]

    def test_scan_files_missing_root(self, tmp_path):
        assert scan_files(str(tmp_path / "missing"), (".ts",)) == []

    def test_list_page_dirs(self, tmp_path):
        for name in ("vip", "home", "dist"):
            os.makedirs(tmp_path / name)
        write_file(tmp_path / "main.ts", "")
        assert list_page_dirs(str(tmp_path)) == ["home", "vip"]

    def test_read_json_raises_on_invalid(self, tmp_path):
        path = write_file(tmp_path / "bad.json", "{")
        with pytest.raises(json.JSONDecodeError):
            read_json(path)

    def test_write_json_atomic(self, tmp_path):
        path = str(tmp_path / "i18n" / "en.json")
        write_json_atomic(path, {"k": "v"})
        assert read_json(path) == {"k": "v"}
        assert os.listdir(tmp_path / "i18n") == ["en.json"]

    def test_failed_replace_keeps_original_and_cleans_up(self, tmp_path):
        path = write_file(tmp_path / "en.json", '{"k": "old"}')
        with patch("src.file_utils.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(OSError):
                write_text_atomic(path, '{"k": "new"}')

        assert read_json(path) == {"k": "old"}
        assert os.listdir(tmp_path) == ["en.json"]

    def test_rewrite_keeps_file_mode(self, tmp_path):
        path = write_file(tmp_path / "Home.vue", "t('zh_hello')\n")
        os.chmod(path, 0o644)

        write_text_atomic(path, "t('greet_hello')\n")

        assert stat.S_IMODE(os.stat(path).st_mode) == 0o644

    def test_new_file_follows_umask(self, tmp_path):
        old_mask = os.umask(0o022)
        try:
            path = str(tmp_path / "i18n" / "tr.json")
            write_json_atomic(path, {"k": "v"})
        finally:
            os.umask(old_mask)

        assert stat.S_IMODE(os.stat(path).st_mode) == 0o644

    def test_newline_passthrough_keeps_crlf(self, tmp_path):
        path = str(tmp_path / "a.ts")
        with open(path, "wb") as f:
            f.write(b"a\r\nb\r\n")

        content = read_text(path, newline="")
        assert content == "a\r\nb\r\n"
        write_text_atomic(path, content.replace("b", "c"), newline="")

        with open(path, "rb") as f:
            assert f.read() == b"a\r\nc\r\n"


if __name__ == '__main__':
    unittest.main()
