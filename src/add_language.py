"""
Creation of a new language file for each page from the CSV translations.

The base-language JSON of a page defines which keys the new language needs.
Untranslated keys are never filled with base-language text or empty strings:
in strict mode a page with gaps is not written at all, in lenient mode only
the translated keys are written and the gaps are reported.
"""
import json
import logging
import os
from dataclasses import dataclass, field
from typing import Dict, List

from src.csv_matcher import CSVMatcher
from src.file_utils import read_json, to_posix, write_json_atomic
from src.json_tree import get_all_keys, unflatten
from src.json_updater import LENIENT, RECONCILE_MODES, STRICT
from src.logging_config import LOGGER_NAME

logger = logging.getLogger(LOGGER_NAME)


@dataclass
class PageLangResult:
    page: str
    total_keys: int
    matched: int
    missing: int
    missing_keys: List[str]
    output_file: str
    written: bool = False
    blocked: bool = False


@dataclass
class AddLanguageReport:
    results: List[PageLangResult] = field(default_factory=list)
    failures: Dict[str, str] = field(default_factory=dict)

    @property
    def blocked_pages(self) -> List[str]:
        return [r.page for r in self.results if r.blocked]


class LanguageAdder:
    def __init__(
            self,
            src_path: str,
            matcher: CSVMatcher,
            base_language: str = 'en',
            mode: str = STRICT,
            json_indent: int = 2
    ):
        if mode not in RECONCILE_MODES:
            raise ValueError(f"Unknown reconcile mode '{mode}'. Expected one of: {', '.join(RECONCILE_MODES)}")
        self.src_path = src_path
        self.matcher = matcher
        self.base_language = base_language
        self.mode = mode
        self.json_indent = json_indent

    def target_file(self, page: str, lang_code: str) -> str:
        return os.path.join(self.src_path, page, 'i18n', f"{lang_code}.json")

    def existing_lang_files(self, pages: List[str], lang_code: str) -> List[str]:
        return [
            to_posix(self.target_file(page, lang_code))
            for page in pages
            if os.path.exists(self.target_file(page, lang_code))
        ]

    def process_page(self, page: str, lang_code: str, dry_run: bool = False) -> PageLangResult:
        """
        Build ``<page>/i18n/<lang_code>.json``.

        Raises:
            FileNotFoundError: If the page has no base language file.
            ValueError: If the base language file is not a JSON object.
        """
        base_file = os.path.join(self.src_path, page, 'i18n', f"{self.base_language}.json")
        target_file = self.target_file(page, lang_code)

        if not os.path.exists(base_file):
            raise FileNotFoundError(f"{self.base_language}.json not found in {page}")

        base_content = read_json(base_file)
        if not isinstance(base_content, dict):
            raise ValueError(f"'{base_file}' does not contain a JSON object.")

        keys = get_all_keys(base_content)
        match_result = self.matcher.match_new_lang(keys, lang_code)

        result = PageLangResult(
            page=page,
            total_keys=len(keys),
            matched=match_result.matched,
            missing=match_result.unmatched,
            missing_keys=match_result.unmatched_list,
            output_file=to_posix(os.path.relpath(target_file)),
        )

        if match_result.unmatched and self.mode == STRICT:
            logger.warning(
                "Page '%s': %d key(s) have no %s translation; file not written.",
                page, match_result.unmatched, lang_code
            )
            result.blocked = True
            return result

        if not match_result.matched_list and self.mode == LENIENT:
            logger.warning("Page '%s': no %s translations found; file not written.", page, lang_code)
            return result

        target_flat = {item.key: item.translation for item in match_result.matched_list}
        target_content = unflatten(target_flat)

        if dry_run:
            logger.info("[Dry Run] Would write '%s' (%d keys).", target_file, len(target_flat))
            return result

        write_json_atomic(target_file, target_content, self.json_indent)
        logger.info("Wrote '%s' (%d/%d keys).", target_file, len(target_flat), len(keys))
        result.written = True
        return result

    def run(self, pages: List[str], lang_code: str, dry_run: bool = False) -> AddLanguageReport:
        """Process every page; a failing page is recorded and the others continue."""
        report = AddLanguageReport()
        for index, page in enumerate(pages, 1):
            try:
                result = self.process_page(page, lang_code, dry_run)
            except (OSError, UnicodeDecodeError, json.JSONDecodeError, ValueError) as e:
                logger.error("[%d/%d] Failed to process %s: %s", index, len(pages), page, e)
                report.failures[page] = str(e)
                continue
            logger.info("[%d/%d] %s: %d/%d matched", index, len(pages), page, result.matched, result.total_keys)
            report.results.append(result)
        return report
