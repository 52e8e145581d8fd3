"""File system helpers shared by the scanner, cleaner and writers."""
import json
import os
import shutil
import tempfile
from typing import Any, Dict, Iterable, List, Optional

DEFAULT_IGNORE_DIRS = ('node_modules', 'dist', '.git')
DEFAULT_EXCLUDE_SUFFIXES = ('.d.ts',)


def to_posix(path: str) -> str:
    return path.replace(os.sep, '/')


def scan_files(
        root: str,
        extensions: Iterable[str],
        ignore_dirs: Iterable[str] = DEFAULT_IGNORE_DIRS,
        exclude_suffixes: Iterable[str] = DEFAULT_EXCLUDE_SUFFIXES
) -> List[str]:
    """
    Recursively collect files under ``root`` with one of the given extensions.

    Args:
        root: Directory to walk.
        extensions: File extensions to include (e.g. ``.vue``).
        ignore_dirs: Directory names that are never descended into.
        exclude_suffixes: File name endings that are skipped even when the extension matches.

    Returns:
        Sorted list of POSIX-style paths relative to ``root``. Empty if ``root`` does not exist.
    """
    if not os.path.isdir(root):
        return []

    extensions = tuple(extensions)
    exclude_suffixes = tuple(exclude_suffixes)
    ignore = set(ignore_dirs)
    results = []

    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = [d for d in dirnames if d not in ignore]
        for filename in filenames:
            if not filename.endswith(extensions):
                continue
            if exclude_suffixes and filename.endswith(exclude_suffixes):
                continue
            rel_path = os.path.relpath(os.path.join(dirpath, filename), root)
            results.append(to_posix(rel_path))

    return sorted(results)


def list_page_dirs(src_path: str) -> List[str]:
    """Return the sorted names of first-level page directories under ``src_path``."""
    if not os.path.isdir(src_path):
        return []
    return sorted(
        entry for entry in os.listdir(src_path)
        if os.path.isdir(os.path.join(src_path, entry)) and entry not in DEFAULT_IGNORE_DIRS
    )


def read_text(file_path: str, newline: Optional[str] = None) -> str:
    """Read a UTF-8 file. Pass ``newline=''`` to keep CRLF line endings as they are."""
    with open(file_path, 'r', encoding='utf-8', newline=newline) as f:
        return f.read()


def read_json(file_path: str) -> Any:
    """
    Read a JSON file.

    Raises:
        OSError: If the file cannot be read.
        json.JSONDecodeError: If the content is not valid JSON.
    """
    with open(file_path, 'r', encoding='utf-8') as f:
        return json.load(f)


def _current_umask() -> int:
    mask = os.umask(0)
    os.umask(mask)
    return mask


def write_text_atomic(file_path: str, content: str, newline: Optional[str] = None) -> None:
    """
    Write ``content`` to ``file_path`` without ever leaving a truncated file behind.

    The data is written to a temporary file in the destination directory, flushed
    to disk and then moved over the target with ``os.replace``. The result keeps
    the permissions of the file it replaces; a new file gets ``0o666`` minus the umask.
    Pass ``newline=''`` to write line endings exactly as they appear in ``content``.
    """
    directory = os.path.dirname(os.path.abspath(file_path))
    os.makedirs(directory, exist_ok=True)

    temp_file_path: Optional[str] = None
    try:
        with tempfile.NamedTemporaryFile(
                mode='w', delete=False, dir=directory, prefix='.', suffix='.tmp',
                encoding='utf-8', newline=newline
        ) as temp_f:
            temp_file_path = temp_f.name
            temp_f.write(content)
            temp_f.flush()
            os.fsync(temp_f.fileno())
        if os.path.exists(file_path):
            shutil.copymode(file_path, temp_file_path)
        else:
            os.chmod(temp_file_path, 0o666 & ~_current_umask())
        os.replace(temp_file_path, file_path)
        temp_file_path = None
    finally:
        if temp_file_path and os.path.exists(temp_file_path):
            os.remove(temp_file_path)


def dump_json(data: Dict[str, Any], indent: int = 2) -> str:
    return json.dumps(data, ensure_ascii=False, indent=indent) + '\n'


def write_json_atomic(file_path: str, data: Dict[str, Any], indent: int = 2) -> None:
    write_text_atomic(file_path, dump_json(data, indent))
