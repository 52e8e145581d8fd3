"""Cross-language consistency checks for the per-page ``i18n/<lang>.json`` files."""
import json
import os
import re
from typing import Dict, List, Set, Tuple

from src.file_utils import read_json, read_text
from src.json_tree import flatten, get_all_keys, validate_translation_tree
from src.placeholder_rules import PlaceholderProcessor

# A UTF-8 lead byte decoded as cp1252/latin-1 shows up as 'Ã' followed by a high character.
MOJIBAKE_PATTERN = re.compile(r'Ã[\x80-\xff]')
REPLACEMENT_CHAR = '\ufffd'


def check_key_coverage(base_keys: Set[str], target_keys: Set[str]) -> Tuple[Set[str], Set[str]]:
    """Return (missing, extra): flat keys the language file lacks, and keys the base language never defined."""
    return base_keys - target_keys, target_keys - base_keys


def check_placeholder_parity(processor: PlaceholderProcessor, base_string: str, target_string: str) -> bool:
    """
    True when both strings carry the same number of ``{0}``-style placeholders.
    Named placeholders are not compared; the matcher flags them for manual review.
    """
    return bool(processor.validate(base_string, target_string)['valid'])


def check_encoding_and_mojibake(file_path: str) -> List[str]:
    """Problems with how a language file was encoded. An empty list means it reads back cleanly."""
    try:
        content = read_text(file_path)
    except UnicodeDecodeError:
        return [f"'{file_path}' is not a valid UTF-8 file."]
    except OSError as e:
        return [f"Could not read '{file_path}': {e}"]

    problems = []
    found = MOJIBAKE_PATTERN.search(content)
    if found:
        problems.append(f"Potential mojibake detected in '{file_path}' near '{found.group(0)}'.")
    if REPLACEMENT_CHAR in content:
        problems.append(
            f"'{file_path}' contains the Unicode replacement character U+FFFD; the text was decoded lossily at some point."
        )
    return problems


def validate_page(page_dir: str, base_language: str, processor: PlaceholderProcessor) -> List[str]:
    """
    Compares every language file of a page with the base language file.

    Args:
        page_dir: The page directory (containing ``i18n/``).
        base_language: Code of the reference language, e.g. ``en``.
        processor: Rule engine used for the placeholder count check.

    Returns:
        A list of issues. An empty list means the page is consistent.

    Raises:
        FileNotFoundError: If the page has no base language file.
    """
    i18n_dir = os.path.join(page_dir, 'i18n')
    base_path = os.path.join(i18n_dir, f"{base_language}.json")
    if not os.path.isfile(base_path):
        raise FileNotFoundError(f"{base_language}.json not found in '{page_dir}'")

    issues: List[str] = []
    trees: Dict[str, dict] = {}
    for name in sorted(os.listdir(i18n_dir)):
        if not name.endswith('.json'):
            continue
        lang = os.path.splitext(name)[0]
        path = os.path.join(i18n_dir, name)

        encoding_errors = check_encoding_and_mojibake(path)
        if encoding_errors:
            issues.extend(encoding_errors)
            continue
        try:
            tree = read_json(path)
        except (OSError, json.JSONDecodeError) as e:
            issues.append(f"[{lang}] Could not parse '{path}': {e}")
            continue

        schema_errors = validate_translation_tree(tree)
        issues.extend(f"[{lang}] {error}" for error in schema_errors)
        if isinstance(tree, dict):
            trees[lang] = tree

    base_tree = trees.get(base_language)
    if base_tree is None:
        return issues

    base_flat = flatten(base_tree)
    base_keys = set(get_all_keys(base_tree))
    for lang, tree in trees.items():
        if lang == base_language:
            continue
        target_flat = flatten(tree)
        missing, extra = check_key_coverage(base_keys, set(target_flat))
        for key in sorted(missing):
            issues.append(f"[{lang}] Missing key '{key}'.")
        for key in sorted(extra):
            issues.append(f"[{lang}] Extra key '{key}' not present in {base_language}.json.")
        for key in sorted(base_keys & set(target_flat)):
            base_value, target_value = base_flat[key], target_flat[key]
            if isinstance(base_value, str) and isinstance(target_value, str):
                if not check_placeholder_parity(processor, base_value, target_value):
                    issues.append(f"[{lang}] Placeholder mismatch for key '{key}'.")

    return issues
