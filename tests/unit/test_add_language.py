import os

import pytest

from conftest import read_json, write_file, write_json
from src.add_language import LanguageAdder
from src.csv_matcher import CSVMatcher
from src.json_updater import LENIENT, STRICT


def make_adder(page_project, mode=STRICT):
    return LanguageAdder(page_project["src_path"], CSVMatcher(page_project["csv_dir"]), mode=mode)


def target(page_project, page, lang="tr"):
    return os.path.join(page_project["src_path"], page, "i18n", f"{lang}.json")


class TestLanguageAdder:
    def test_invalid_mode(self, page_project):
        with pytest.raises(ValueError):
            make_adder(page_project, mode="loose")

    def test_complete_page_is_written(self, page_project):
        result = make_adder(page_project).process_page("home", "tr")

        assert result.written
        assert (result.total_keys, result.matched, result.missing) == (1, 1, 0)
        assert read_json(target(page_project, "home")) == {"home_banner": "Afiş"}

    def test_strict_blocks_incomplete_page(self, page_project):
        result = make_adder(page_project, STRICT).process_page("vip", "tr")

        assert result.blocked
        assert not result.written
        assert result.missing_keys == ["old.banner"]
        assert not os.path.exists(target(page_project, "vip"))

    def test_lenient_writes_matched_keys_only(self, page_project):
        result = make_adder(page_project, LENIENT).process_page("vip", "tr")

        assert result.written
        assert result.missing_keys == ["old.banner"]
        # No English fallback and no empty string for the missing key.
        assert read_json(target(page_project, "vip")) == {"vip_title": "VIP"}

    def test_lenient_with_nothing_matched_writes_nothing(self, page_project):
        write_json(os.path.join(page_project["src_path"], "new", "i18n", "en.json"), {"unknown": "X"})

        result = make_adder(page_project, LENIENT).process_page("new", "tr")

        assert not result.written
        assert not os.path.exists(target(page_project, "new"))

    def test_nested_keys_are_rebuilt(self, page_project, tmp_path):
        write_file(tmp_path / "translations" / "extra.csv", "key,Turkish\nold.banner,Eski\n")

        make_adder(page_project).process_page("vip", "tr")

        assert read_json(target(page_project, "vip")) == {"old": {"banner": "Eski"}, "vip_title": "VIP"}

    def test_missing_base_file_raises(self, page_project):
        os.makedirs(os.path.join(page_project["src_path"], "empty"))
        with pytest.raises(FileNotFoundError, match="en.json not found in empty"):
            make_adder(page_project).process_page("empty", "tr")

    def test_dry_run(self, page_project):
        result = make_adder(page_project).process_page("home", "tr", dry_run=True)
        assert not result.written
        assert not result.blocked
        assert not os.path.exists(target(page_project, "home"))

    def test_run_isolates_page_failures(self, page_project):
        os.makedirs(os.path.join(page_project["src_path"], "empty"))

        report = make_adder(page_project).run(["empty", "vip", "home"], "tr")

        assert list(report.failures) == ["empty"]
        assert report.blocked_pages == ["vip"]
        assert [r.page for r in report.results if r.written] == ["home"]

    def test_existing_lang_files(self, page_project):
        adder = make_adder(page_project)
        assert adder.existing_lang_files(["vip", "home"], "zh") == [
            target(page_project, "vip", "zh").replace(os.sep, "/")
        ]
