"""
Page inclusion filter.

An empty ``build_pages`` list selects no pages at all. Processing every page
requires an explicit catch-all pattern such as ``^.*$``, so a missing or empty
configuration can never trigger a project-wide rewrite.
"""
import logging
import re
from typing import Iterable, List, Pattern, Tuple, Union

from src.file_utils import list_page_dirs
from src.logging_config import LOGGER_NAME

logger = logging.getLogger(LOGGER_NAME)


class PageFilter:
    def __init__(self, build_pages: Iterable[Union[str, Pattern[str]]]):
        self.build_pages: List[Pattern[str]] = []
        for pattern in build_pages:
            if isinstance(pattern, str):
                try:
                    pattern = re.compile(pattern)
                except re.error as e:
                    raise ValueError(f"Invalid build_pages pattern '{pattern}': {e}") from e
            self.build_pages.append(pattern)

    @property
    def is_empty(self) -> bool:
        return not self.build_pages

    def should_process_page(self, page_name: str) -> bool:
        if self.is_empty:
            return False
        return any(pattern.search(page_name) for pattern in self.build_pages)

    def filter_pages(self, pages: Iterable[str]) -> Tuple[List[str], List[str]]:
        """Split ``pages`` into (filtered, skipped), preserving input order."""
        filtered: List[str] = []
        skipped: List[str] = []
        for page in pages:
            if self.should_process_page(page):
                filtered.append(page)
            else:
                skipped.append(page)
        return filtered, skipped

    def scan_and_filter_pages(self, src_path: str) -> Tuple[List[str], List[str], int]:
        """Discover page directories under ``src_path`` and filter them."""
        all_pages = list_page_dirs(src_path)
        filtered, skipped = self.filter_pages(all_pages)
        if self.is_empty and all_pages:
            logger.warning(
                "build_pages is empty: no pages will be processed. "
                "Add '^.*$' to build_pages to process every page."
            )
        return filtered, skipped, len(all_pages)
