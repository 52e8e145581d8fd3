"""
Merging of matched translations into existing per-page translation files.

Only languages that already have a ``<page>/i18n/<lang>.json`` file receive
updates; this module never creates a new language file. Two policies exist for
tasks that lack a value for an existing language:

* ``strict``: the whole batch is blocked and no file is written.
* ``lenient``: the gap is reported and the languages that do have values are written.
"""
import json
import logging
import os
from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from src.csv_matcher import MatchedTranslation
from src.file_utils import read_json, to_posix, write_json_atomic
from src.json_tree import diff_trees, flatten, unflatten, validate_translation_tree
from src.logging_config import LOGGER_NAME

logger = logging.getLogger(LOGGER_NAME)

STRICT = 'strict'
LENIENT = 'lenient'
RECONCILE_MODES = (STRICT, LENIENT)


@dataclass
class UpdateTask:
    page_path: str
    key: str
    translations: Dict[str, str]


@dataclass
class MissingTranslation:
    page: str
    key: str
    missing_langs: List[str]


@dataclass
class UpdateResult:
    files_updated: int = 0
    keys_added: int = 0
    blocked: bool = False
    missing: List[MissingTranslation] = field(default_factory=list)
    updated_pages: List[str] = field(default_factory=list)
    skipped_pages: List[str] = field(default_factory=list)
    failed_files: Dict[str, str] = field(default_factory=dict)


def existing_languages(page_path: str) -> List[str]:
    """Language codes that have a JSON file in ``<page_path>/i18n``."""
    i18n_dir = os.path.join(page_path, 'i18n')
    if not os.path.isdir(i18n_dir):
        return []
    return sorted(
        os.path.splitext(name)[0] for name in os.listdir(i18n_dir)
        if name.endswith('.json') and os.path.isfile(os.path.join(i18n_dir, name))
    )


def group_by_page(tasks: Iterable[UpdateTask]) -> Dict[str, List[UpdateTask]]:
    grouped: Dict[str, List[UpdateTask]] = {}
    for task in tasks:
        grouped.setdefault(task.page_path, []).append(task)
    return grouped


def find_missing_translations(tasks: Iterable[UpdateTask]) -> List[MissingTranslation]:
    """
    Report tasks that provide no non-blank value for a language the page already has.
    """
    missing: List[MissingTranslation] = []
    for page_path, page_tasks in group_by_page(tasks).items():
        langs = existing_languages(page_path)
        if not langs:
            continue
        for task in page_tasks:
            provided = {lang for lang, value in task.translations.items() if value and value.strip()}
            absent = [lang for lang in langs if lang not in provided]
            if absent:
                missing.append(MissingTranslation(
                    page=os.path.basename(os.path.normpath(page_path)),
                    key=task.key,
                    missing_langs=absent,
                ))
    return missing


def convert_to_update_tasks(matched: Iterable[MatchedTranslation], src_path: str) -> List[UpdateTask]:
    """One task per (page, key); repeated occurrences of the same text collapse."""
    tasks: Dict[tuple, UpdateTask] = {}
    for item in matched:
        identity = (item.page_name, item.key)
        if identity not in tasks:
            tasks[identity] = UpdateTask(
                page_path=os.path.join(src_path, item.page_name),
                key=item.key,
                translations=dict(item.translations),
            )
    return list(tasks.values())


class JSONUpdater:
    def __init__(self, mode: str = STRICT, json_indent: int = 2, dry_run: bool = False):
        if mode not in RECONCILE_MODES:
            raise ValueError(f"Unknown reconcile mode '{mode}'. Expected one of: {', '.join(RECONCILE_MODES)}")
        self.mode = mode
        self.json_indent = json_indent
        self.dry_run = dry_run

    def update(self, tasks: List[UpdateTask]) -> UpdateResult:
        result = UpdateResult()

        result.missing = find_missing_translations(tasks)
        if result.missing:
            for item in result.missing:
                logger.warning(
                    "Missing translation for key '%s' in page '%s': %s",
                    item.key, item.page, ', '.join(item.missing_langs)
                )
            if self.mode == STRICT:
                logger.error(
                    "Import blocked: %d key(s) lack translations for existing languages. No files were written.",
                    len(result.missing)
                )
                result.blocked = True
                return result

        for page_path, page_tasks in group_by_page(tasks).items():
            langs = existing_languages(page_path)
            if not langs:
                logger.warning("Page '%s' has no i18n language files; skipping.", page_path)
                result.skipped_pages.append(page_path)
                continue

            page_ok = True
            page_written = False
            for lang in langs:
                updates = {
                    task.key: task.translations[lang]
                    for task in page_tasks
                    if task.translations.get(lang) and task.translations[lang].strip()
                }
                if not updates:
                    continue

                file_path = os.path.join(page_path, 'i18n', f"{lang}.json")
                try:
                    self._update_lang_file(file_path, updates)
                except (OSError, UnicodeDecodeError, json.JSONDecodeError, ValueError) as e:
                    logger.error("Failed to update '%s': %s", file_path, e)
                    result.failed_files[to_posix(file_path)] = str(e)
                    page_ok = False
                    continue

                page_written = True
                result.files_updated += 1
                result.keys_added += len(updates)

            if page_ok and page_written:
                result.updated_pages.append(page_path)

        return result

    def _update_lang_file(self, file_path: str, updates: Dict[str, str]) -> None:
        existing = read_json(file_path)
        if not isinstance(existing, dict):
            raise ValueError(f"'{file_path}' does not contain a JSON object.")

        flat = flatten(existing)
        flat.update(updates)
        merged = unflatten(dict(sorted(flat.items())))

        for problem in validate_translation_tree(merged):
            logger.warning("%s: %s", file_path, problem)

        if self.dry_run:
            changes = diff_trees(existing, merged)
            logger.info(
                "[Dry Run] Would update '%s' (%d added, %d modified).",
                file_path, len(changes["added"]), len(changes["modified"])
            )
            return

        write_json_atomic(file_path, merged, self.json_indent)
        logger.info("Updated '%s' (+%d keys).", file_path, len(updates))
