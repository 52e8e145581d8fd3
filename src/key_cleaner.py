"""Detection and removal of translation keys that no source file references."""
import json
import logging
import os
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Set

from src.file_utils import read_json, read_text, scan_files, to_posix, write_json_atomic
from src.json_tree import flatten, remove_keys as remove_keys_from_tree
from src.logging_config import LOGGER_NAME
from src.page_filter import PageFilter
from src.source_scanner import (
    DEFAULT_SOURCE_EXTENSIONS,
    TRANSLATION_CALL_PREFIX,
    extract_page_name,
    strip_comments,
)

logger = logging.getLogger(LOGGER_NAME)

# The literal first argument of t(...) / $t(...), any quote style, may span lines.
USED_KEY_REGEX = re.compile(TRANSLATION_CALL_PREFIX + r'([`\'"])([\s\S]*?)\1')


@dataclass
class UsageInfo:
    key: str
    files: List[str] = field(default_factory=list)
    languages: List[str] = field(default_factory=list)


@dataclass
class UnusedKeyInfo:
    key: str
    defined_in: List[str]
    languages: List[str]
    page: Optional[str]


@dataclass
class RemoveResult:
    files_updated: int = 0
    keys_removed: int = 0
    affected_files: List[str] = field(default_factory=list)
    failed_files: Dict[str, str] = field(default_factory=dict)


def extract_lang(relative_json_path: str) -> str:
    """``vip/i18n/en.json`` -> ``en``"""
    return os.path.splitext(os.path.basename(relative_json_path))[0]


def is_i18n_json(relative_path: str) -> bool:
    parts = to_posix(relative_path).split('/')
    return len(parts) >= 2 and parts[-2] == 'i18n' and parts[-1].endswith('.json')


class KeyCleaner:
    """
    Compares keys defined in ``<page>/i18n/<lang>.json`` files with keys used in source.

    The cleaner does not check source-control state itself. Callers must run
    the git safety check before calling :meth:`remove_keys`.
    """

    def __init__(
            self,
            src_path: str,
            page_filter: PageFilter,
            placeholder_prefix: str = 'zh_',
            extensions: Sequence[str] = DEFAULT_SOURCE_EXTENSIONS,
            json_indent: int = 2
    ):
        self.src_path = src_path
        self.page_filter = page_filter
        self.placeholder_prefix = placeholder_prefix
        self.extensions = tuple(extensions)
        self.json_indent = json_indent

    def _page_selected(self, relative_path: str) -> bool:
        page = extract_page_name(relative_path)
        return page is not None and self.page_filter.should_process_page(page)

    def scan_used_keys(self) -> Set[str]:
        """Collect every resolved key passed to a translation call in source files."""
        used_keys: Set[str] = set()

        for relative_file in scan_files(self.src_path, self.extensions):
            # Files under i18n/ define messages; they do not use them.
            if 'i18n' in to_posix(relative_file).split('/')[:-1]:
                continue
            if not self._page_selected(relative_file):
                continue

            file_path = os.path.join(self.src_path, relative_file)
            try:
                content = strip_comments(read_text(file_path))
            except (OSError, UnicodeDecodeError) as e:
                logger.warning("Could not read '%s', skipping: %s", file_path, e)
                continue

            for match in USED_KEY_REGEX.finditer(content):
                key = match.group(2).strip()
                if key and not key.startswith(self.placeholder_prefix):
                    used_keys.add(key)

        return used_keys

    def scan_defined_keys(self) -> Dict[str, UsageInfo]:
        """Map each flat key to the JSON files and languages that define it."""
        defined_keys: Dict[str, UsageInfo] = {}

        json_files = [
            f for f in scan_files(self.src_path, ('.json',), exclude_suffixes=())
            if is_i18n_json(f) and self._page_selected(f)
        ]

        for relative_file in json_files:
            file_path = os.path.join(self.src_path, relative_file)
            try:
                content = read_json(file_path)
            except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
                logger.warning("Could not read translation file '%s', skipping: %s", file_path, e)
                continue
            if not isinstance(content, dict):
                logger.warning("Translation file '%s' is not a JSON object, skipping.", file_path)
                continue

            lang = extract_lang(relative_file)
            for key in flatten(content):
                info = defined_keys.setdefault(key, UsageInfo(key=key))
                info.files.append(relative_file)
                if lang not in info.languages:
                    info.languages.append(lang)

        return defined_keys

    def find_unused_keys(self) -> List[UnusedKeyInfo]:
        used_keys = self.scan_used_keys()
        defined_keys = self.scan_defined_keys()

        unused = [
            UnusedKeyInfo(
                key=key,
                defined_in=info.files,
                languages=sorted(info.languages),
                page=extract_page_name(info.files[0]),
            )
            for key, info in defined_keys.items()
            if key not in used_keys
        ]
        unused.sort(key=lambda item: (item.page or '', item.key))
        return unused

    def remove_keys(self, keys_to_remove: Sequence[str]) -> RemoveResult:
        """
        Delete ``keys_to_remove`` from every translation file that defines them.

        Each file is rewritten atomically. A file that fails is recorded in
        ``failed_files`` and the remaining files are still processed.
        """
        result = RemoveResult()
        if not keys_to_remove:
            return result

        defined_keys = self.scan_defined_keys()
        affected: Set[str] = set()
        removed: Set[str] = set()
        for key in keys_to_remove:
            info = defined_keys.get(key)
            if info:
                affected.update(info.files)
                removed.add(key)

        for relative_file in sorted(affected):
            file_path = os.path.join(self.src_path, relative_file)
            try:
                content = read_json(file_path)
                updated = remove_keys_from_tree(content, keys_to_remove)
                write_json_atomic(file_path, updated, self.json_indent)
            except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
                logger.error("Failed to remove keys from '%s': %s", file_path, e)
                result.failed_files[to_posix(os.path.relpath(file_path))] = str(e)
                continue

            logger.info("Removed unused keys from '%s'.", file_path)
            result.files_updated += 1
            result.affected_files.append(to_posix(os.path.relpath(file_path)))

        result.keys_removed = len(removed)
        return result
