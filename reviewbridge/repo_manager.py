import asyncio
import os
from typing import List

from git import GitCommandError, InvalidGitRepositoryError, NoSuchPathError, Repo

from reviewbridge.core.exceptions import RepositoryError
from reviewbridge.core.logging_config import get_logger
from reviewbridge.diff.parser import parse_diff
from reviewbridge.models.diff import DiffFile

logger = get_logger(__name__)


class GitRepository:
    """
    Working-tree access for one repository root.

    Args:
        root_path: A directory inside a git working tree.

    Raises:
        RepositoryError: If the path does not exist or is not inside a repository.
    """

    def __init__(self, root_path: str):
        self.root_path = os.path.abspath(root_path)
        try:
            self.repo = Repo(self.root_path, search_parent_directories=True)
        except (InvalidGitRepositoryError, NoSuchPathError) as e:
            raise RepositoryError(root_path, "not a git repository") from e
        if self.repo.bare:
            raise RepositoryError(root_path, "bare repositories have no working tree")
        # Raw UTF-8 paths instead of octal escapes in diff headers
        self.repo.git.set_persistent_git_options(c="core.quotePath=false")

    def diff_text(self, staged: bool) -> str:
        """
        Run ``git diff`` for one side of the review.

        Args:
            staged: True for index vs HEAD (``--cached``), False for worktree vs index

        Returns:
            The raw unified diff text

        Raises:
            RepositoryError: If git exits with an error
        """
        args = ["--no-color", "--no-ext-diff"]
        if staged:
            args.insert(0, "--cached")
        try:
            return self.repo.git.diff(*args)
        except GitCommandError as e:
            logger.error(f"git diff failed in {self.root_path}: {e}")
            raise RepositoryError(self.root_path, str(e.stderr or e).strip()) from e

    def get_diff(self) -> List[DiffFile]:
        """Staged entries followed by unstaged entries."""
        staged_text = self.diff_text(staged=True)
        unstaged_text = self.diff_text(staged=False)
        return parse_diff(staged_text, staged=True) + parse_diff(unstaged_text, staged=False)

    def stage(self, file_path: str) -> bool:
        try:
            self.repo.git.add("--", file_path)
        except GitCommandError as e:
            logger.warning(f"Could not stage {file_path} in {self.root_path}: {e}")
            return False
        logger.info(f"Staged {file_path}")
        return True

    def unstage(self, file_path: str) -> bool:
        try:
            self.repo.git.restore("--staged", "--", file_path)
        except GitCommandError as e:
            logger.warning(f"Could not unstage {file_path} in {self.root_path}: {e}")
            return False
        logger.info(f"Unstaged {file_path}")
        return True


async def fetch_diff(repository: GitRepository) -> List[DiffFile]:
    """Run ``GitRepository.get_diff`` off the event loop."""
    return await asyncio.to_thread(repository.get_diff)
