"""Decide which changed files are worth sending to the reviewer."""

import fnmatch
import os

# Build output, dependencies, lock files and other generated artifacts
DEFAULT_IGNORE_PATTERNS: tuple[str, ...] = (
    "node_modules/**",
    ".git/**",
    "dist/**",
    "build/**",
    "coverage/**",
    ".nyc_output/**",
    "vendor/**",
    "tmp/**",
    "temp/**",
    "*.min.js",
    "*.min.css",
    "*.map",
    "package-lock.json",
    "yarn.lock",
    "pnpm-lock.yaml",
    ".env*",
    "*.log",
    ".DS_Store",
    "Thumbs.db",
    "*.pyc",
    "__pycache__/**",
    ".pytest_cache/**",
    ".tox/**",
    "venv/**",
    "env/**",
    ".venv/**",
)

LANGUAGE_MAP: dict[str, str] = {
    ".js": "javascript",
    ".jsx": "javascript",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".py": "python",
    ".java": "java",
    ".cpp": "cpp",
    ".c": "c",
    ".h": "c",
    ".cs": "csharp",
    ".go": "go",
    ".rs": "rust",
    ".php": "php",
    ".rb": "ruby",
    ".swift": "swift",
    ".kt": "kotlin",
    ".scala": "scala",
    ".sql": "sql",
    ".sh": "bash",
    ".bash": "bash",
    ".json": "json",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".md": "markdown",
    ".mdx": "markdown",
}

REVIEWABLE_EXTENSIONS = frozenset(LANGUAGE_MAP)


def glob_match(path: str, pattern: str) -> bool:
    """
    Match *path* against a glob *pattern*.

    `*` and `**` both cross directory separators, and dotfiles are matched
    like any other file. `**/` additionally matches zero directories, so
    `src/**/*.ts` accepts `src/app.ts`.
    """
    if fnmatch.fnmatchcase(path, pattern):
        return True
    if "**/" in pattern:
        return fnmatch.fnmatchcase(path, pattern.replace("**/", ""))
    return False


class FileFilter:
    """Ignore / include / extension policy for changed files."""

    def __init__(self, ignore_patterns=(), include_patterns=()):
        self.ignore_patterns = [*DEFAULT_IGNORE_PATTERNS, *ignore_patterns]
        self.include_patterns = list(include_patterns)

    def should_review(self, file_path: str) -> bool:
        """Check if a file should be reviewed."""
        if self._is_ignored(file_path):
            return False

        if self.include_patterns:
            return self._is_included(file_path)

        return self._is_reviewable_file(file_path)

    def get_reviewable_files(self, files: list[str]) -> list[str]:
        return [f for f in files if self.should_review(f)]

    def _is_ignored(self, file_path: str) -> bool:
        return any(glob_match(file_path, p) for p in self.ignore_patterns)

    def _is_included(self, file_path: str) -> bool:
        return any(glob_match(file_path, p) for p in self.include_patterns)

    @staticmethod
    def _is_reviewable_file(file_path: str) -> bool:
        return os.path.splitext(file_path)[1].lower() in REVIEWABLE_EXTENSIONS

    @staticmethod
    def get_language(file_path: str) -> str:
        """Map a file extension to a language tag, "text" when unknown."""
        ext = os.path.splitext(file_path)[1].lower()
        return LANGUAGE_MAP.get(ext, "text")
