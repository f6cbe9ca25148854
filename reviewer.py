"""Review orchestration: diff -> filter -> AI provider -> validated result."""

import logging

from aggregator import build_result, create_empty_result, validate_comments
from config import ReviewConfig
from diff_parser import CodeChange, parse_diff
from errors import ConfigError, DiffSourceError, ReviewError
from file_filter import FileFilter
from models import ReviewComment, ReviewResult
from prompts import compose_prompt

logger = logging.getLogger(__name__)


def build_code_context(change: CodeChange) -> str:
    """Render a file's hunks as the code block sent to the provider."""
    context = f"File: {change.file}\n"
    context += f"Language: {FileFilter.get_language(change.file)}\n\n"

    for hunk in change.hunks:
        context += hunk.header + "\n"
        context += "\n".join(hunk.lines) + "\n\n"

    return context


def failed_review_comment(file_path: str, error: Exception) -> ReviewComment:
    """Stand-in comment for a file the provider could not review."""
    return ReviewComment(
        file=file_path,
        line=1,
        message=f"Failed to review file: {str(error) or type(error).__name__}",
        severity="warning",
        category="code-quality",
    )


class ReviewEngine:
    """
    Runs one review over a commit range.

    Args:
        config: Review settings
        diff_source: Object with ``get_diff(base, head) -> str``
            (``GitRepository`` or ``PullRequestDiffSource``)
        provider: A ``ReviewProvider``, or a zero-argument callable returning
            one. The callable is only invoked when there is something to review.
        coding_standards: Optional standards text appended to the prompt
        review_prompt: Optional replacement for the built-in instructions
    """

    def __init__(
        self,
        config: ReviewConfig,
        diff_source,
        provider,
        coding_standards: str | None = None,
        review_prompt: str | None = None,
    ):
        if provider is None:
            raise ConfigError("ReviewEngine requires a provider or provider factory")
        self.config = config
        self.diff_source = diff_source
        self.provider = provider
        self.coding_standards = coding_standards
        self.review_prompt = review_prompt
        self.file_filter = FileFilter(config.ignore_patterns, config.include_patterns)
        self.changes: list[CodeChange] = []

    def _get_provider(self):
        if callable(self.provider) and not hasattr(self.provider, "review"):
            self.provider = self.provider()
        return self.provider

    def filter_reviewable_changes(self, changes: list[CodeChange]) -> list[CodeChange]:
        return [c for c in changes if self.file_filter.should_review(c.file)]

    def get_changes(self, base_sha: str, head_sha: str) -> list[CodeChange]:
        return parse_diff(self.diff_source.get_diff(base_sha, head_sha))

    def review_file(self, provider, change: CodeChange, prompt: str) -> list[ReviewComment]:
        """Review one file. Provider and parse errors become a single warning."""
        code = build_code_context(change)
        try:
            candidates = provider.review(code, prompt, self.config)
            return validate_comments(candidates, change.file, self.config.severity_threshold)
        except Exception as e:
            logger.error("Failed to review %s: %s", change.file, e)
            return [failed_review_comment(change.file, e)]

    def review_changes(self, base_sha: str, head_sha: str) -> ReviewResult:
        """
        Review every reviewable file changed between two refs.

        Files are reviewed one at a time in diff order, so comments come
        out in file submission order.

        Raises:
            ReviewError: If the diff cannot be obtained
        """
        try:
            changes = self.get_changes(base_sha, head_sha)
        except DiffSourceError as e:
            raise ReviewError(f"Review failed: {e}") from e
        self.changes = changes

        reviewable = self.filter_reviewable_changes(changes)
        logger.info(
            "Files to review: %d (filtered from %d)",
            len(reviewable),
            len(changes),
        )

        if not reviewable:
            return create_empty_result()

        provider = self._get_provider()
        prompt = compose_prompt(self.review_prompt, self.coding_standards)

        all_comments: list[ReviewComment] = []
        for change in reviewable:
            logger.info("Reviewing %s...", change.file)
            comments = self.review_file(provider, change, prompt)
            logger.info("  Found %d issue(s) in %s", len(comments), change.file)
            all_comments.extend(comments)

        return build_result(
            all_comments,
            auto_approve=self.config.auto_approve,
            require_approval_for=self.config.require_approval_for,
        )
