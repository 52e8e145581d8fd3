"""
Scanner for marker-prefixed translation calls such as ``$t('zh_确认')``.

Comments are blanked out before matching. The comment stripper is a
character-level heuristic, not a tokenizer: it does not understand regex
literals or ``${}`` nesting inside template literals, so a ``//`` inside a
regex literal ends the line early.
"""
import logging
import os
import re
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from tqdm import tqdm

from src.file_utils import read_text, scan_files, to_posix
from src.logging_config import LOGGER_NAME
from src.page_filter import PageFilter

logger = logging.getLogger(LOGGER_NAME)

DEFAULT_SOURCE_EXTENSIONS = ('.vue', '.ts', '.js')
UNKNOWN_PAGE = 'unknown'

# ``t(`` or ``$t(``, also as a member call (``i18n.t(``), but not ``split(``.
TRANSLATION_CALL_PREFIX = r'(?<![\w$])\$?t\s*\(\s*'

_QUOTES = ("'", '"', '`')


@dataclass
class PlaceholderOccurrence:
    text: str
    placeholder: str
    file_path: str
    line: int
    column: int
    page_name: str
    suggested_key: str

    @property
    def identity(self) -> Tuple[str, str]:
        """Matching identity: the same text in the same page is one translation entry."""
        return self.page_name, self.text


@dataclass
class QuickScanResult:
    count: int = 0
    files: List[str] = field(default_factory=list)
    pages: Dict[str, int] = field(default_factory=dict)


def strip_comments(content: str) -> str:
    """
    Replace block and line comments with spaces.

    Newlines are kept and every other character maps to exactly one output
    character, so offsets into the result are valid offsets into ``content``.
    ``//`` and ``/*`` inside string literals are left alone. Single and double
    quoted strings end at a newline; template literals may span lines.
    """
    out: List[str] = []
    state: Optional[str] = None
    i = 0
    length = len(content)

    while i < length:
        char = content[i]
        nxt = content[i + 1] if i + 1 < length else ''

        if state is None:
            if char == '/' and nxt == '*':
                state = 'block'
                out.append('  ')
                i += 2
                continue
            if char == '/' and nxt == '/':
                state = 'line'
                out.append('  ')
                i += 2
                continue
            if char in _QUOTES:
                state = char
            out.append(char)
        elif state == 'block':
            if char == '*' and nxt == '/':
                state = None
                out.append('  ')
                i += 2
                continue
            out.append('\n' if char == '\n' else ' ')
        elif state == 'line':
            if char == '\n':
                state = None
                out.append('\n')
            else:
                out.append(' ')
        else:
            out.append(char)
            if char == '\\' and nxt:
                out.append(nxt)
                i += 2
                continue
            if char == state:
                state = None
            elif char == '\n' and state != '`':
                state = None
        i += 1

    return ''.join(out)


def get_position(content: str, index: int) -> Tuple[int, int]:
    """Return the 1-based (line, column) of character ``index``."""
    line = content.count('\n', 0, index) + 1
    line_start = content.rfind('\n', 0, index) + 1
    return line, index - line_start + 1


def extract_page_name(relative_path: str) -> Optional[str]:
    """First path segment below the source root, or None for files directly in it."""
    parts = to_posix(relative_path).split('/')
    if len(parts) < 2:
        return None
    return parts[0]


def generate_key(text: str, page_name: Optional[str]) -> str:
    """Suggest a key from the page name and a simplified form of the text."""
    prefix = f"{page_name}_" if page_name else 'com_'
    simplified = re.sub(r'[^\w\u4e00-\u9fa5]', '_', text[:20]).lower()
    return f"{prefix}{simplified}"


class PlaceholderScanner:
    """
    Finds translation calls whose literal argument starts with ``placeholder_prefix``.

    Every call to :meth:`iter_occurrences` or :meth:`scan` walks the file system
    again; nothing is cached between scans.
    """

    def __init__(
            self,
            src_path: str,
            page_filter: PageFilter,
            placeholder_prefix: str = 'zh_',
            extensions: Sequence[str] = DEFAULT_SOURCE_EXTENSIONS,
            include_unknown_pages: bool = False,
            show_progress: bool = False
    ):
        self.src_path = src_path
        self.page_filter = page_filter
        self.placeholder_prefix = placeholder_prefix
        self.extensions = tuple(extensions)
        self.include_unknown_pages = include_unknown_pages
        self.show_progress = show_progress

        escaped = re.escape(placeholder_prefix)
        self._call_regex = re.compile(
            TRANSLATION_CALL_PREFIX + r'([`\'"])' + escaped + r'([^`\'"]+)\1(?=\s*[,)])'
        )
        self._quick_regex = re.compile(TRANSLATION_CALL_PREFIX + r'[`\'"]' + escaped)

    def _selected_files(self) -> List[Tuple[str, Optional[str]]]:
        selected = []
        for relative_file in scan_files(self.src_path, self.extensions):
            page_name = extract_page_name(relative_file)
            if page_name is None:
                if not self.include_unknown_pages:
                    continue
            elif not self.page_filter.should_process_page(page_name):
                continue
            selected.append((relative_file, page_name))
        return selected

    def iter_occurrences(self) -> Iterator[PlaceholderOccurrence]:
        files = self._selected_files()
        for relative_file, page_name in tqdm(
                files, desc="Scanning sources", unit="file", disable=not self.show_progress
        ):
            file_path = os.path.join(self.src_path, relative_file)
            try:
                content = read_text(file_path)
            except (OSError, UnicodeDecodeError) as e:
                logger.warning("Could not read '%s', skipping: %s", file_path, e)
                continue
            yield from self.extract_occurrences(content, file_path, page_name)

    def scan(self) -> List[PlaceholderOccurrence]:
        return list(self.iter_occurrences())

    def extract_occurrences(
            self,
            content: str,
            file_path: str,
            page_name: Optional[str]
    ) -> List[PlaceholderOccurrence]:
        """Extract every placeholder call from ``content``, ignoring commented-out code."""
        stripped = strip_comments(content)
        results = []
        for match in self._call_regex.finditer(stripped):
            text = match.group(2)
            line, column = get_position(stripped, match.start())
            results.append(PlaceholderOccurrence(
                text=text,
                placeholder=f"{self.placeholder_prefix}{text}",
                file_path=to_posix(file_path),
                line=line,
                column=column,
                page_name=page_name or UNKNOWN_PAGE,
                suggested_key=generate_key(text, page_name),
            ))
        return results

    def quick_scan(self) -> QuickScanResult:
        """Count placeholder calls per file and per page without building occurrences."""
        result = QuickScanResult()
        for relative_file, page_name in self._selected_files():
            file_path = os.path.join(self.src_path, relative_file)
            try:
                content = strip_comments(read_text(file_path))
            except (OSError, UnicodeDecodeError) as e:
                logger.warning("Could not read '%s', skipping: %s", file_path, e)
                continue

            count = len(self._quick_regex.findall(content))
            if count:
                result.count += count
                result.files.append(relative_file)
                page = page_name or UNKNOWN_PAGE
                result.pages[page] = result.pages.get(page, 0) + count
        return result
