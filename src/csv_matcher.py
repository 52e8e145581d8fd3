"""
Matching of scanned placeholders and translation keys against translator CSV files.

Translators deliver spreadsheets exported as CSV with a ``key`` column, a
source-language column and one column per target language. Header names vary
between deliveries, so every language is looked up through a list of accepted
header variants.
"""
import csv
import logging
import os
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

from tqdm import tqdm

from src.file_utils import scan_files
from src.logging_config import LOGGER_NAME
from src.placeholder_rules import DEFAULT_PLACEHOLDER_RULES, PlaceholderProcessor, PlaceholderRule
from src.source_scanner import PlaceholderOccurrence

logger = logging.getLogger(LOGGER_NAME)

CSVRow = Dict[str, Optional[str]]

DEFAULT_LANGUAGE_COLUMNS: Dict[str, List[str]] = {
    'zh': ['中文（zh）', '中文', 'zh', 'Chinese'],
    'en': ['English(en)', 'English', 'en'],
    'ar': ['Arabic(ar)', 'Arabic', 'ar'],
    'tr': ['Turkish', 'turkish', '土耳其语', 'tr'],
    'hi': ['hindi', 'Hindi', '印地语', 'hi'],
    'pa': ['punjabi', 'Punjabi', '旁遮普语', 'pa'],
}

DEFAULT_KEY_COLUMNS = ['key']


@dataclass
class MatchedTranslation:
    text: str
    placeholder: str
    key: str
    translations: Dict[str, str]
    file_path: str
    line: int
    page_name: str
    has_named_placeholder: bool = False
    warnings: List[str] = field(default_factory=list)


@dataclass
class MatchStats:
    total: int
    matched_count: int
    unmatched_count: int
    match_rate: str
    named_placeholder_count: int = 0


@dataclass
class MatchResult:
    matched: List[MatchedTranslation]
    unmatched: List[PlaceholderOccurrence]
    stats: MatchStats


@dataclass
class NewLangMatch:
    key: str
    translation: str


@dataclass
class NewLangMatchResult:
    total: int
    matched: int
    unmatched: int
    match_rate: str
    matched_list: List[NewLangMatch]
    unmatched_list: List[str]


def format_match_rate(matched: int, total: int) -> str:
    """Percentage with one decimal, or ``"0"`` when there is nothing to match."""
    if total <= 0:
        return '0'
    return f"{matched / total * 100:.1f}"


def find_value(row: CSVRow, possible_names: Sequence[str]) -> Optional[str]:
    """Return the trimmed value of the first header variant present in ``row``."""
    for name in possible_names:
        value = row.get(name)
        if value is not None:
            return str(value).strip()
    return None


def parse_csv_file(file_path: str) -> List[CSVRow]:
    """
    Parse a CSV file with a header row into a list of dicts.

    Header names are trimmed. Blank lines are skipped. Short rows simply lack
    the trailing columns.

    Raises:
        csv.Error: If the file is not well-formed CSV.
        OSError, UnicodeDecodeError: If the file cannot be read as UTF-8.
    """
    # utf-8-sig drops the BOM that spreadsheet exports commonly prepend.
    with open(file_path, 'r', encoding='utf-8-sig', newline='') as f:
        reader = csv.reader(f, strict=True)
        header = next(reader, None)
        if header is None:
            return []
        headers = [h.strip() for h in header]

        rows: List[CSVRow] = []
        for values in reader:
            if not values:
                continue
            row: CSVRow = {}
            for index, name in enumerate(headers):
                if not name:
                    continue
                row[name] = values[index] if index < len(values) else None
            rows.append(row)
    return rows


def load_csv_rows(csv_dir: str, show_progress: bool = False) -> List[CSVRow]:
    """
    Load every ``*.csv`` file under ``csv_dir`` (recursively) in sorted path order.

    A file that cannot be parsed is logged and skipped.

    Raises:
        FileNotFoundError: If ``csv_dir`` does not exist.
    """
    if not os.path.isdir(csv_dir):
        raise FileNotFoundError(f"CSV directory '{csv_dir}' does not exist.")

    csv_files = scan_files(csv_dir, ('.csv',), exclude_suffixes=())
    logger.info("Loading %d CSV file(s) from '%s'", len(csv_files), csv_dir)

    rows: List[CSVRow] = []
    for relative_file in tqdm(csv_files, desc="Loading CSV", unit="file", disable=not show_progress):
        file_path = os.path.join(csv_dir, relative_file)
        try:
            rows.extend(parse_csv_file(file_path))
        except (csv.Error, OSError, UnicodeDecodeError) as e:
            logger.warning("Failed to parse CSV '%s', skipping: %s", os.path.basename(file_path), e)
    return rows


class CSVMatcher:
    """
    Joins placeholders and keys against CSV translation rows.

    CSV data is read once, on first use, and kept for the lifetime of the instance.
    """

    def __init__(
            self,
            csv_dir: str,
            placeholder_rules: Optional[List[PlaceholderRule]] = None,
            language_columns: Optional[Dict[str, List[str]]] = None,
            source_language: str = 'zh',
            key_columns: Optional[List[str]] = None,
            show_progress: bool = False
    ):
        self.csv_dir = csv_dir
        self.processor = PlaceholderProcessor(
            placeholder_rules if placeholder_rules is not None else DEFAULT_PLACEHOLDER_RULES
        )
        self.language_columns = language_columns or DEFAULT_LANGUAGE_COLUMNS
        self.source_language = source_language
        self.key_columns = key_columns or DEFAULT_KEY_COLUMNS
        self.show_progress = show_progress

        self._rows: Optional[List[CSVRow]] = None
        self._text_index: Optional[Dict[str, CSVRow]] = None
        self._key_index: Optional[Dict[str, CSVRow]] = None

    def get_column_names(self, lang: str) -> List[str]:
        return self.language_columns.get(lang, [lang])

    def _load_rows(self) -> List[CSVRow]:
        if self._rows is None:
            self._rows = load_csv_rows(self.csv_dir, self.show_progress)
        return self._rows

    def load_index(self) -> Dict[str, CSVRow]:
        """
        Index CSV rows by their trimmed source-language text.

        Rows with a blank source text are ignored. A later row with the same
        text replaces the earlier one.
        """
        if self._text_index is None:
            source_columns = self.get_column_names(self.source_language)
            index: Dict[str, CSVRow] = {}
            for row in self._load_rows():
                source_text = find_value(row, source_columns)
                if not source_text:
                    continue
                if source_text in index:
                    logger.debug("Duplicate CSV source text '%s'; the later row wins.", source_text)
                index[source_text] = row
            self._text_index = index
            logger.info("Loaded %d translation row(s) indexed by source text.", len(index))
        return self._text_index

    def load_key_index(self) -> Dict[str, CSVRow]:
        """Index CSV rows by their trimmed key column. A later row with the same key wins."""
        if self._key_index is None:
            index: Dict[str, CSVRow] = {}
            for row in self._load_rows():
                key = find_value(row, self.key_columns)
                if key:
                    index[key] = row
            self._key_index = index
        return self._key_index

    def match(self, occurrences: Iterable[PlaceholderOccurrence]) -> MatchResult:
        index = self.load_index()
        source_columns = self.get_column_names(self.source_language)

        matched: List[MatchedTranslation] = []
        unmatched: List[PlaceholderOccurrence] = []
        named_placeholder_count = 0

        for occurrence in occurrences:
            row = index.get(occurrence.text.strip())
            key = find_value(row, self.key_columns) if row else None
            if not key:
                unmatched.append(occurrence)
                continue

            translations: Dict[str, str] = {}
            warnings: List[str] = []
            has_named_placeholder = False

            for lang in self.language_columns:
                value = find_value(row, self.get_column_names(lang))
                if not value:
                    continue
                processed = self.processor.process(value)
                translations[lang] = processed.text
                has_named_placeholder = has_named_placeholder or processed.has_named_placeholder
                warnings.extend(processed.warnings)

            source_value = find_value(row, source_columns) or ''
            source_processed = self.processor.process(source_value).text
            for lang, translation in translations.items():
                if lang == self.source_language:
                    continue
                check = self.processor.validate(source_processed, translation)
                if not check['valid']:
                    warnings.append(f"[{lang}] {check['message']}")

            if has_named_placeholder:
                named_placeholder_count += 1

            matched.append(MatchedTranslation(
                text=occurrence.text,
                placeholder=occurrence.placeholder,
                key=key,
                translations=translations,
                file_path=occurrence.file_path,
                line=occurrence.line,
                page_name=occurrence.page_name,
                has_named_placeholder=has_named_placeholder,
                warnings=warnings,
            ))

        total = len(matched) + len(unmatched)
        stats = MatchStats(
            total=total,
            matched_count=len(matched),
            unmatched_count=len(unmatched),
            match_rate=format_match_rate(len(matched), total),
            named_placeholder_count=named_placeholder_count,
        )
        return MatchResult(matched=matched, unmatched=unmatched, stats=stats)

    def match_new_lang(self, keys: Iterable[str], target_lang: str) -> NewLangMatchResult:
        """
        Look up ``target_lang`` translations for existing keys.

        A key counts as matched only when its row exists and the target-language
        cell is not blank.
        """
        key_index = self.load_key_index()
        column_names = self.get_column_names(target_lang)

        matched_list: List[NewLangMatch] = []
        unmatched_list: List[str] = []

        for key in keys:
            row = key_index.get(key)
            value = find_value(row, column_names) if row else None
            if value:
                matched_list.append(NewLangMatch(key=key, translation=self.processor.process(value).text))
            else:
                unmatched_list.append(key)

        total = len(matched_list) + len(unmatched_list)
        return NewLangMatchResult(
            total=total,
            matched=len(matched_list),
            unmatched=len(unmatched_list),
            match_rate=format_match_rate(len(matched_list), total),
            matched_list=matched_list,
            unmatched_list=unmatched_list,
        )
