"""
Conversion between nested translation trees and flat dot-path key maps.

A translation tree is the parsed content of one ``<page>/i18n/<lang>.json``
file: a mapping whose values are strings or further mappings. The flat form
maps ``"section.title"`` style paths to the leaf values.
"""
from typing import Any, Dict, Iterable, List

from jsonschema import Draft7Validator

FlatMap = Dict[str, Any]

# Leaves must be strings; nested objects recurse. Arrays and other scalars
# are reported as errors.
TRANSLATION_TREE_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "$ref": "#/definitions/node",
    "definitions": {
        "node": {
            "type": "object",
            "additionalProperties": {
                "anyOf": [
                    {"type": "string"},
                    {"$ref": "#/definitions/node"}
                ]
            }
        }
    }
}

_TREE_VALIDATOR = Draft7Validator(TRANSLATION_TREE_SCHEMA)


def flatten(tree: Dict[str, Any], prefix: str = '') -> FlatMap:
    """
    Flatten a nested tree into dot-joined key paths.

    Only mappings are descended into; every other value (including lists) is a leaf.

    >>> flatten({"a": {"b": "v1"}, "c": "v2"})
    {'a.b': 'v1', 'c': 'v2'}
    """
    result: FlatMap = {}
    for key, value in tree.items():
        full_key = f"{prefix}.{key}" if prefix else key
        if isinstance(value, dict):
            result.update(flatten(value, full_key))
        else:
            result[full_key] = value
    return result


def unflatten(flat: FlatMap) -> Dict[str, Any]:
    """
    Rebuild a nested tree from a flat key map.

    Keys are processed in sorted order. When a path runs through a segment that
    already holds a leaf, the leaf is replaced by a new mapping.

    >>> unflatten({"a.b": "v1", "c": "v2"})
    {'a': {'b': 'v1'}, 'c': 'v2'}
    """
    result: Dict[str, Any] = {}

    for full_key in sorted(flat):
        segments = full_key.split('.')
        current = result
        for segment in segments[:-1]:
            if not isinstance(current.get(segment), dict):
                current[segment] = {}
            current = current[segment]
        current[segments[-1]] = flat[full_key]

    return result


def get_all_keys(tree: Dict[str, Any]) -> List[str]:
    """Return every flat key path of ``tree`` in lexicographic order."""
    return sorted(flatten(tree))


def has_key(tree: Dict[str, Any], key: str) -> bool:
    current: Any = tree
    for segment in key.split('.'):
        if not isinstance(current, dict) or segment not in current:
            return False
        current = current[segment]
    return True


def remove_keys(tree: Dict[str, Any], keys_to_remove: Iterable[str]) -> Dict[str, Any]:
    """Return a copy of ``tree`` without the given flat keys. The input is not modified."""
    flat = flatten(tree)
    for key in keys_to_remove:
        flat.pop(key, None)
    return unflatten(flat)


def merge_trees(*trees: Dict[str, Any]) -> Dict[str, Any]:
    """Merge trees key by key; values from later trees win."""
    merged: FlatMap = {}
    for tree in trees:
        merged.update(flatten(tree))
    return unflatten(merged)


def diff_trees(old: Dict[str, Any], new: Dict[str, Any]) -> Dict[str, List[str]]:
    """
    Compare two trees by flat key.

    Returns:
        A dict with sorted ``added``, ``removed``, ``modified`` and ``unchanged`` key lists.
    """
    old_flat = flatten(old)
    new_flat = flatten(new)

    added, modified, unchanged = [], [], []
    for key, value in new_flat.items():
        if key not in old_flat:
            added.append(key)
        elif old_flat[key] != value:
            modified.append(key)
        else:
            unchanged.append(key)
    removed = [key for key in old_flat if key not in new_flat]

    return {
        "added": sorted(added),
        "removed": sorted(removed),
        "modified": sorted(modified),
        "unchanged": sorted(unchanged),
    }


def _deepest_error(error):
    # anyOf failures carry the real cause in their context; follow it to the innermost node.
    while error.validator == 'anyOf' and error.context:
        deepest = max(error.context, key=lambda e: len(e.absolute_path))
        if len(deepest.absolute_path) <= len(error.absolute_path):
            break
        error = deepest
    return error


def validate_translation_tree(tree: Any) -> List[str]:
    """
    Check that ``tree`` only contains nested objects and string leaves.

    Returns:
        A list of error messages. An empty list means the tree is valid.
    """
    errors = []
    for error in sorted(_TREE_VALIDATOR.iter_errors(tree), key=lambda e: [str(p) for p in e.absolute_path]):
        error = _deepest_error(error)
        location = '.'.join(str(part) for part in error.absolute_path) or '<root>'
        if error.validator == 'anyOf':
            errors.append(f"Value at '{location}' must be a string or an object.")
        else:
            errors.append(f"Value at '{location}': {error.message}")
    return errors
