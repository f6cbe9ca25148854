"""GitHub API client for PR operations."""

import functools
import logging
import re
from dataclasses import dataclass

import requests
from github import Auth, Github
from github.GithubException import GithubException

from config import validate_repo
from errors import DiffSourceError, GitHubError
from models import ReviewComment

logger = logging.getLogger(__name__)

# Marker identifying comments posted by this tool
COMMENT_MARKER = "🤖 **AI Review**"

SEVERITY_EMOJI: dict[str, str] = {
    "error": "🚨",
    "warning": "⚠️",
    "info": "ℹ️",
}

CATEGORY_EMOJI: dict[str, str] = {
    "code-quality": "🏗️",
    "security": "🔒",
    "performance": "⚡",
    "maintainability": "🧹",
    "style": "🎨",
    "testing": "🧪",
    "documentation": "📚",
}

_GITHUB_URL = re.compile(r"github\.com/([^/]+)/([^/]+?)(?:\.git)?(?:/pull/(\d+))?(?:[/?#]|$)")


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------
@dataclass
class PRInfo:
    """Pull Request coordinates and metadata."""

    owner: str
    repo: str
    pull_number: int
    head_sha: str
    base_sha: str
    title: str = ""
    author: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"


def _error_message(e: GithubException) -> str:
    data = e.data if isinstance(e.data, dict) else {}
    return data.get("message", str(e))


# ---------------------------------------------------------------------------
# Cached GitHub client
# ---------------------------------------------------------------------------
@functools.lru_cache(maxsize=4)
def get_github_client(token: str) -> Github:
    """Create or return a cached GitHub client for *token*."""
    if not token:
        raise GitHubError(
            "GitHub token is required.\n"
            "Get your token at: https://github.com/settings/tokens"
        )
    return Github(auth=Auth.Token(token))


# ---------------------------------------------------------------------------
# Read operations
# ---------------------------------------------------------------------------
def fetch_pr_info(repo: str, pr_number: int, token: str) -> PRInfo:
    """
    Fetch PR metadata from GitHub.

    Args:
        repo: Repository in "owner/repo" format
        pr_number: Pull request number
        token: GitHub token

    Returns:
        PRInfo with base/head SHAs

    Raises:
        GitHubError: If PR not found or access denied
    """
    repo = validate_repo(repo)
    client = get_github_client(token)

    try:
        pr = client.get_repo(repo).get_pull(pr_number)
        owner, name = repo.split("/")
        return PRInfo(
            owner=owner,
            repo=name,
            pull_number=pr.number,
            head_sha=pr.head.sha,
            base_sha=pr.base.sha,
            title=pr.title,
            author=pr.user.login,
        )
    except GithubException as e:
        if e.status == 404:
            raise GitHubError(f"PR #{pr_number} not found in {repo}") from e
        raise GitHubError(f"Failed to get PR info: {_error_message(e)}") from e


def fetch_raw_diff(repo: str, pr_number: int, token: str) -> str:
    """
    Fetch the raw unified diff for the entire PR.

    This uses the REST API directly because PyGithub doesn't expose
    the raw diff format.

    Raises:
        GitHubError: If PR not found or the request fails
    """
    repo = validate_repo(repo)

    url = f"https://api.github.com/repos/{repo}/pulls/{pr_number}"
    headers = {
        "Authorization": f"token {token}",
        "Accept": "application/vnd.github.v3.diff",
    }

    try:
        response = requests.get(url, headers=headers, timeout=30)
    except requests.RequestException as e:
        raise GitHubError(f"Failed to fetch diff for PR #{pr_number}: {e}") from e

    if response.status_code == 404:
        raise GitHubError(f"PR #{pr_number} not found in {repo}")
    try:
        response.raise_for_status()
    except requests.HTTPError as e:
        raise GitHubError(f"Failed to fetch diff for PR #{pr_number}: {e}") from e

    return response.text


class PullRequestDiffSource:
    """Diff source reading the PR diff from GitHub instead of a local clone."""

    def __init__(self, repo: str, pr_number: int, token: str):
        self.repo = repo
        self.pr_number = pr_number
        self.token = token

    def get_diff(self, base_sha: str, head_sha: str) -> str:
        # The PR diff already spans base...head
        try:
            return fetch_raw_diff(self.repo, self.pr_number, self.token)
        except GitHubError as e:
            raise DiffSourceError(str(e)) from e


def fetch_existing_review_comments(repo: str, pr_number: int, token: str) -> list[dict]:
    """Review comments on the PR previously posted by this tool."""
    repo = validate_repo(repo)
    client = get_github_client(token)

    try:
        pr = client.get_repo(repo).get_pull(pr_number)
        return [
            {
                "id": comment.id,
                "body": comment.body,
                "path": comment.path,
                "line": comment.line,
            }
            for comment in pr.get_review_comments()
            if COMMENT_MARKER in (comment.body or "")
        ]
    except GithubException as e:
        raise GitHubError(f"Failed to get existing comments: {_error_message(e)}") from e


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------
def format_comment(comment: ReviewComment) -> str:
    """Render a review comment as GitHub markdown."""
    body = (
        f"{COMMENT_MARKER} {SEVERITY_EMOJI[comment.severity]} "
        f"{CATEGORY_EMOJI.get(comment.category, '')}\n\n"
    )
    body += f"**{comment.severity.upper()}**: {comment.message}\n\n"

    if comment.suggestion:
        body += f"**Suggestion**:\n{comment.suggestion}\n\n"

    body += f"*Category: {comment.category}*"
    return body


def parse_github_url(url: str) -> dict | None:
    """
    Extract owner, repo and (optionally) the PR number from a GitHub URL.

    Returns:
        Dict with 'owner', 'repo' and 'pull_number' (None when the URL does
        not point at a pull request), or None for non-GitHub URLs
    """
    match = _GITHUB_URL.search(url)
    if not match:
        return None

    owner, repo, pull_number = match.groups()
    return {
        "owner": owner,
        "repo": repo,
        "pull_number": int(pull_number) if pull_number else None,
    }


# ---------------------------------------------------------------------------
# Write operations
# ---------------------------------------------------------------------------
def post_pr_comment(repo: str, pr_number: int, body: str, token: str) -> int:
    """
    Post a general comment on a PR (not attached to a specific line).

    Returns:
        Comment ID
    """
    repo = validate_repo(repo)
    client = get_github_client(token)

    try:
        pr = client.get_repo(repo).get_pull(pr_number)
        comment = pr.create_issue_comment(body)
        logger.info("Posted comment %d on PR #%d", comment.id, pr_number)
        return comment.id
    except GithubException as e:
        raise GitHubError(f"Failed to post comment: {_error_message(e)}") from e


def post_review_comments(
    repo: str,
    pr_number: int,
    head_sha: str,
    comments: list[ReviewComment],
    token: str,
) -> int | None:
    """
    Post inline comments as one COMMENT review on the head commit.

    Returns:
        Review ID, or None when there was nothing to post
    """
    if not comments:
        return None

    repo = validate_repo(repo)
    client = get_github_client(token)

    payload = [
        {
            "path": comment.file,
            "line": comment.line,
            "side": "RIGHT",
            "body": format_comment(comment),
        }
        for comment in comments
    ]

    try:
        repository = client.get_repo(repo)
        pr = repository.get_pull(pr_number)
        review = pr.create_review(
            commit=repository.get_commit(head_sha),
            event="COMMENT",
            comments=payload,
        )
    except GithubException as e:
        error_msg = _error_message(e)
        logger.error("Failed to add review comments: %s", error_msg)
        if isinstance(e.data, dict):
            for error in e.data.get("errors", []):
                logger.error("  - %s", error)
        raise GitHubError(f"Failed to add review comments: {error_msg}") from e

    logger.info(
        "Posted review %d on PR #%d with %d comments",
        review.id,
        pr_number,
        len(payload),
    )
    return review.id


def post_review_with_fallback(
    repo: str,
    pr_number: int,
    head_sha: str,
    comments: list[ReviewComment],
    token: str,
) -> dict:
    """
    Post inline comments, falling back to one general comment if GitHub
    rejects the review (e.g. a line outside the diff).

    Returns:
        Dict with 'review_id' and/or 'comment_id', plus 'fallback' boolean
    """
    result: dict = {"fallback": False}

    try:
        result["review_id"] = post_review_comments(repo, pr_number, head_sha, comments, token)
        return result
    except GitHubError as e:
        logger.warning("Review failed, falling back to general comment: %s", e)
        result["fallback"] = True

    body = "## Inline Comments\n\n"
    body += "_Could not post as inline comments. Listing here instead:_\n\n"
    for comment in comments:
        body += f"**{comment.file}** (line {comment.line}):\n"
        body += f"> {format_comment(comment)}\n\n"

    result["comment_id"] = post_pr_comment(repo, pr_number, body, token)
    return result


def approve_or_request_changes(
    repo: str,
    pr_number: int,
    head_sha: str,
    approved: bool,
    summary: str,
    token: str,
) -> int:
    """Submit an APPROVE or REQUEST_CHANGES review carrying the summary."""
    repo = validate_repo(repo)
    client = get_github_client(token)
    event = "APPROVE" if approved else "REQUEST_CHANGES"

    try:
        repository = client.get_repo(repo)
        pr = repository.get_pull(pr_number)
        review = pr.create_review(
            commit=repository.get_commit(head_sha),
            body=summary,
            event=event,
        )
    except GithubException as e:
        action = "approve" if approved else "request changes for"
        raise GitHubError(f"Failed to {action} PR: {_error_message(e)}") from e

    logger.info("Submitted %s review %d on PR #%d", event, review.id, pr_number)
    return review.id


def add_status_check(
    repo: str,
    sha: str,
    context: str,
    state: str,
    description: str,
    token: str,
    target_url: str | None = None,
) -> None:
    """Set a commit status (success, failure or pending) on *sha*."""
    repo = validate_repo(repo)
    client = get_github_client(token)

    kwargs = {"state": state, "context": context, "description": description}
    if target_url:
        kwargs["target_url"] = target_url

    try:
        client.get_repo(repo).get_commit(sha).create_status(**kwargs)
    except GithubException as e:
        raise GitHubError(f"Failed to add status check: {_error_message(e)}") from e


def delete_comment(repo: str, pr_number: int, comment_id: int, token: str) -> bool:
    """Delete one review comment. Failures are logged, not raised."""
    try:
        client = get_github_client(token)
        pr = client.get_repo(validate_repo(repo)).get_pull(pr_number)
        pr.get_review_comment(comment_id).delete()
        return True
    except (GithubException, ValueError) as e:
        logger.warning("Failed to delete comment %d: %s", comment_id, e)
        return False
