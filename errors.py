"""Exception types shared across the review pipeline."""


class ReviewError(Exception):
    """Base class for every error raised by the reviewer."""


class ConfigError(ReviewError, ValueError):
    """Invalid or missing configuration (config file, API keys, provider name)."""


class DiffSourceError(ReviewError):
    """The diff for a commit range could not be obtained. Fatal for a run."""


class ProviderError(ReviewError):
    """An AI provider call failed for a single file."""


class ResponseParseError(ProviderError):
    """An AI provider answered with text that could not be turned into comments."""


class GitHubError(ReviewError, ValueError):
    """A GitHub API call failed."""
