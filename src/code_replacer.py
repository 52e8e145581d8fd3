"""Rewrites placeholder translation calls in source files to their resolved keys."""
import logging
import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from src.csv_matcher import MatchedTranslation
from src.file_utils import read_text, write_text_atomic
from src.logging_config import LOGGER_NAME
from src.source_scanner import TRANSLATION_CALL_PREFIX, strip_comments

logger = logging.getLogger(LOGGER_NAME)


@dataclass
class Replacement:
    source: str
    target: str
    line: int = 0


@dataclass
class ReplaceTask:
    file_path: str
    replacements: List[Replacement] = field(default_factory=list)


@dataclass
class ReplaceResult:
    files_updated: int = 0
    replacements: int = 0
    failed_files: Dict[str, str] = field(default_factory=dict)


def build_call_pattern(placeholder: str) -> re.Pattern:
    """
    Match ``t(<q>placeholder<q>`` where ``<q>`` is one quote style used on both sides.

    The pattern stops right after the closing quote, so trailing arguments and
    the closing parenthesis are never touched.
    """
    return re.compile(
        '(' + TRANSLATION_CALL_PREFIX + r')([`\'"])' + re.escape(placeholder) + r'\2(?=\s*[,)])'
    )


def _substitute_outside_comments(pattern: re.Pattern, target: str, content: str):
    # strip_comments keeps offsets, so spans found in the masked text are valid in ``content``.
    masked = strip_comments(content)
    pieces = []
    last = 0
    count = 0
    for match in pattern.finditer(masked):
        quote = match.group(2)
        pieces.append(content[last:match.start()])
        pieces.append(f"{match.group(1)}{quote}{target}{quote}")
        last = match.end()
        count += 1
    pieces.append(content[last:])
    return "".join(pieces), count


def replace_in_content(content: str, replacements: Iterable[Replacement]):
    """
    Apply ``replacements`` to ``content``. Returns (new_content, substitution_count).

    Calls inside comments are left alone, the same way the scanner skips them.
    """
    count = 0
    for replacement in replacements:
        pattern = build_call_pattern(replacement.source)
        content, n = _substitute_outside_comments(pattern, replacement.target, content)
        count += n
    return content, count


def convert_to_replace_tasks(matched: Iterable[MatchedTranslation]) -> List[ReplaceTask]:
    """Group matched placeholders by file, one replacement per distinct placeholder."""
    grouped: Dict[str, ReplaceTask] = {}
    for item in matched:
        task = grouped.setdefault(item.file_path, ReplaceTask(file_path=item.file_path))
        if any(r.source == item.placeholder for r in task.replacements):
            continue
        task.replacements.append(Replacement(source=item.placeholder, target=item.key, line=item.line))
    return list(grouped.values())


class CodeReplacer:
    def __init__(self, dry_run: bool = False):
        self.dry_run = dry_run

    def replace(self, tasks: Iterable[ReplaceTask]) -> ReplaceResult:
        """
        Rewrite each task's file. A file is only written when at least one
        substitution happened; a failing file does not stop the others.
        """
        result = ReplaceResult()
        for task in tasks:
            try:
                count = self._replace_in_file(task)
            except (OSError, UnicodeDecodeError) as e:
                logger.error("Failed to rewrite '%s': %s", task.file_path, e)
                result.failed_files[task.file_path] = str(e)
                continue

            if count > 0:
                result.files_updated += 1
                result.replacements += count
        return result

    def _replace_in_file(self, task: ReplaceTask) -> int:
        content = read_text(task.file_path, newline='')
        new_content, count = replace_in_content(content, task.replacements)

        if count > 0:
            if self.dry_run:
                logger.info("[Dry Run] Would replace %d placeholder(s) in '%s'.", count, task.file_path)
            else:
                write_text_atomic(task.file_path, new_content, newline='')
                logger.info("Replaced %d placeholder(s) in '%s'.", count, task.file_path)
        return count
