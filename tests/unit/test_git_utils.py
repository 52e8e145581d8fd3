import subprocess
import unittest
from unittest.mock import patch

from src.git_utils import (
    check_git_status,
    get_uncommitted_files,
    is_git_repo,
    is_working_tree_clean,
)


def completed(returncode=0, stdout="", stderr=""):
    return subprocess.CompletedProcess(args=["git"], returncode=returncode, stdout=stdout, stderr=stderr)


class TestGitUtils(unittest.TestCase):
    @patch("src.git_utils.subprocess.run")
    def test_is_git_repo(self, mock_run):
        mock_run.return_value = completed(0, ".git\n")
        self.assertTrue(is_git_repo("/repo"))
        args, kwargs = mock_run.call_args
        self.assertEqual(args[0], ["git", "rev-parse", "--git-dir"])
        self.assertEqual(kwargs["cwd"], "/repo")

    @patch("src.git_utils.subprocess.run", return_value=completed(128, "", "fatal: not a git repository"))
    def test_not_a_git_repo(self, _mock_run):
        self.assertFalse(is_git_repo())

    @patch("src.git_utils.subprocess.run", side_effect=FileNotFoundError("git"))
    def test_git_not_installed(self, _mock_run):
        self.assertFalse(is_git_repo())

    @patch("src.git_utils.subprocess.run")
    def test_is_working_tree_clean(self, mock_run):
        mock_run.side_effect = [completed(0), completed(0)]
        self.assertTrue(is_working_tree_clean())

        mock_run.side_effect = [completed(0), completed(1)]
        self.assertFalse(is_working_tree_clean())

    @patch("src.git_utils.subprocess.run")
    def test_get_uncommitted_files(self, mock_run):
        mock_run.side_effect = [
            completed(0, "src/a.vue\nsrc/b.ts\n"),
            completed(0, "src/a.vue\n"),
            completed(0, "new.json\n"),
        ]
        self.assertEqual(get_uncommitted_files(), ["new.json", "src/a.vue", "src/b.ts"])

    @patch("src.git_utils.subprocess.run")
    def test_force_skips_check(self, mock_run):
        self.assertTrue(check_git_status(force=True))
        mock_run.assert_not_called()

    @patch("src.git_utils.is_git_repo", return_value=False)
    def test_outside_repository_passes(self, _mock_repo):
        self.assertTrue(check_git_status())

    @patch("src.git_utils.get_uncommitted_files", return_value=[f"file{i}.ts" for i in range(12)])
    @patch("src.git_utils.is_working_tree_clean", return_value=False)
    @patch("src.git_utils.is_git_repo", return_value=True)
    def test_dirty_tree_blocks(self, _mock_repo, _mock_clean, _mock_files):
        with self.assertLogs("page_i18n", level="ERROR") as logs:
            self.assertFalse(check_git_status())
        self.assertTrue(any("and 2 more files" in line for line in logs.output))

    @patch("src.git_utils.is_working_tree_clean", return_value=True)
    @patch("src.git_utils.is_git_repo", return_value=True)
    def test_clean_tree_passes(self, _mock_repo, _mock_clean):
        self.assertTrue(check_git_status())


if __name__ == '__main__':
    unittest.main()
