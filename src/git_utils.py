"""Git working-tree checks run before destructive batch edits."""
import logging
import subprocess
from typing import List, Optional

from src.logging_config import LOGGER_NAME

logger = logging.getLogger(LOGGER_NAME)

MAX_LISTED_FILES = 10


def _run_git(args: List[str], cwd: Optional[str]) -> subprocess.CompletedProcess:
    return subprocess.run(
        ['git', *args],
        cwd=cwd,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        check=False
    )


def is_git_repo(cwd: Optional[str] = None) -> bool:
    try:
        return _run_git(['rev-parse', '--git-dir'], cwd).returncode == 0
    except FileNotFoundError:
        logger.warning("git executable not found.")
        return False


def is_working_tree_clean(cwd: Optional[str] = None) -> bool:
    """True when there are no unstaged and no staged changes."""
    unstaged = _run_git(['diff', '--quiet'], cwd)
    staged = _run_git(['diff', '--cached', '--quiet'], cwd)
    return unstaged.returncode == 0 and staged.returncode == 0


def get_uncommitted_files(cwd: Optional[str] = None) -> List[str]:
    """Unstaged, staged and untracked files, sorted and de-duplicated."""
    files = set()
    for args in (['diff', '--name-only'],
                 ['diff', '--cached', '--name-only'],
                 ['ls-files', '--others', '--exclude-standard']):
        result = _run_git(args, cwd)
        if result.returncode != 0:
            logger.error("Error running git %s: %s", ' '.join(args), result.stderr.strip())
            continue
        files.update(line.strip() for line in result.stdout.splitlines() if line.strip())
    return sorted(files)


def check_git_status(force: bool = False, cwd: Optional[str] = None) -> bool:
    """
    Decide whether a destructive operation may proceed.

    Returns:
        True to proceed, False when uncommitted changes must be committed or stashed first.
    """
    if force:
        logger.warning("Skipping git check (--force mode).")
        return True

    if not is_git_repo(cwd):
        logger.warning("Not in a git repository, skipping git check.")
        return True

    if not is_working_tree_clean(cwd):
        files = get_uncommitted_files(cwd)
        logger.error("You have uncommitted changes:")
        for path in files[:MAX_LISTED_FILES]:
            logger.error("  %s", path)
        if len(files) > MAX_LISTED_FILES:
            logger.error("  ... and %d more files", len(files) - MAX_LISTED_FILES)
        logger.error("Please commit or stash your changes first (git add . && git commit, or git stash).")
        return False

    logger.info("Working tree is clean. Safe to proceed with file modifications.")
    return True
