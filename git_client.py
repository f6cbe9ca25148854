"""Local git access: diffs and commit metadata for a commit range."""

import logging
import os
import subprocess

from diff_parser import CodeChange, parse_diff
from errors import DiffSourceError

logger = logging.getLogger(__name__)

GIT_TIMEOUT_SECONDS = 120


class GitRepository:
    """Thin wrapper around the git CLI for one working tree."""

    def __init__(self, repo_path: str | None = None):
        self.repo_path = repo_path or os.getcwd()

    def _git(self, *args: str) -> str:
        try:
            result = subprocess.run(
                ["git", *args],
                cwd=self.repo_path,
                capture_output=True,
                text=True,
                timeout=GIT_TIMEOUT_SECONDS,
            )
        except FileNotFoundError as e:
            raise DiffSourceError("git is not installed or not in PATH") from e
        except subprocess.TimeoutExpired as e:
            raise DiffSourceError(f"git {args[0]} timed out after {GIT_TIMEOUT_SECONDS}s") from e

        if result.returncode != 0:
            raise DiffSourceError(result.stderr.strip() or f"git {args[0]} exited with {result.returncode}")
        return result.stdout

    def get_diff(self, base_sha: str, head_sha: str) -> str:
        """Return the unified diff of ``base...head``."""
        try:
            return self._git("diff", f"{base_sha}...{head_sha}", "--no-color")
        except DiffSourceError as e:
            raise DiffSourceError(f"Failed to get git changes: {e}") from e

    def get_changes(self, base_sha: str, head_sha: str) -> list[CodeChange]:
        diff = self.get_diff(base_sha, head_sha)
        changes = parse_diff(diff)
        logger.debug("Parsed %d changed file(s) from %s...%s", len(changes), base_sha, head_sha)
        return changes

    def get_changed_files(self, base_sha: str, head_sha: str) -> list[str]:
        try:
            output = self._git("diff", f"{base_sha}...{head_sha}", "--name-only")
        except DiffSourceError as e:
            raise DiffSourceError(f"Failed to get changed files: {e}") from e
        return [line for line in output.split("\n") if line.strip()]

    def get_file_content(self, sha: str, file_path: str) -> str:
        """File contents at *sha*, or "" if it does not exist there."""
        try:
            return self._git("show", f"{sha}:{file_path}")
        except DiffSourceError:
            return ""

    def get_current_branch(self) -> str:
        branch = self._git("rev-parse", "--abbrev-ref", "HEAD").strip()
        # detached HEAD
        if not branch or branch == "HEAD":
            return "main"
        return branch

    def get_commit_info(self, sha: str) -> dict:
        try:
            output = self._git("log", "-1", "--format=%s%x00%an <%ae>%x00%aI", sha)
        except DiffSourceError as e:
            raise DiffSourceError(f"Commit {sha} not found") from e

        message, author, date = output.strip().split("\x00")
        return {"message": message, "author": author, "date": date}
