"""Unit tests for github_client."""

from unittest.mock import MagicMock, Mock, patch

import pytest
import requests
from github.GithubException import GithubException

from errors import DiffSourceError, GitHubError
from github_client import (
    COMMENT_MARKER,
    PullRequestDiffSource,
    add_status_check,
    approve_or_request_changes,
    delete_comment,
    fetch_existing_review_comments,
    fetch_pr_info,
    fetch_raw_diff,
    format_comment,
    get_github_client,
    parse_github_url,
    post_review_comments,
    post_review_with_fallback,
)
from models import ReviewComment

COMMENT = ReviewComment(
    file="src/app.py",
    line=12,
    message="Possible SQL injection",
    severity="error",
    category="security",
    suggestion="Use parameterized queries",
)


@pytest.fixture
def github():
    """Patch the cached client; yields (client, repository, pull request) mocks."""
    client = MagicMock()
    repository = client.get_repo.return_value
    pr = repository.get_pull.return_value
    with patch("github_client.get_github_client", return_value=client):
        yield client, repository, pr


class TestFormatComment:
    def test_with_suggestion(self):
        assert format_comment(COMMENT) == (
            f"{COMMENT_MARKER} 🚨 🔒\n\n"
            "**ERROR**: Possible SQL injection\n\n"
            "**Suggestion**:\nUse parameterized queries\n\n"
            "*Category: security*"
        )

    def test_without_suggestion(self):
        comment = COMMENT.model_copy(update={"suggestion": None, "severity": "info", "category": "style"})

        body = format_comment(comment)

        assert "**Suggestion**" not in body
        assert body.startswith(f"{COMMENT_MARKER} ℹ️ 🎨")
        assert body.endswith("*Category: style*")


class TestParseGithubUrl:
    def test_pull_request_url(self):
        assert parse_github_url("https://github.com/octocat/hello-world/pull/42") == {
            "owner": "octocat",
            "repo": "hello-world",
            "pull_number": 42,
        }

    def test_pull_request_url_with_suffix(self):
        parsed = parse_github_url("https://github.com/octocat/hello-world/pull/42/files")

        assert parsed["pull_number"] == 42

    def test_repo_url(self):
        assert parse_github_url("git@github.com:octocat/hello-world.git") is None
        assert parse_github_url("https://github.com/octocat/hello-world.git") == {
            "owner": "octocat",
            "repo": "hello-world",
            "pull_number": None,
        }

    def test_non_github(self):
        assert parse_github_url("https://gitlab.com/a/b/-/merge_requests/1") is None


def test_get_github_client_requires_token():
    with pytest.raises(GitHubError, match="GitHub token is required"):
        get_github_client("")


class TestFetchPrInfo:
    def test_success(self, github):
        _, _, pr = github
        pr.number = 7
        pr.head.sha = "head123"
        pr.base.sha = "base456"
        pr.title = "Add feature"
        pr.user.login = "octocat"

        info = fetch_pr_info("octocat/hello-world", 7, "tok")

        assert (info.owner, info.repo, info.pull_number) == ("octocat", "hello-world", 7)
        assert (info.head_sha, info.base_sha) == ("head123", "base456")
        assert info.full_name == "octocat/hello-world"

    def test_not_found(self, github):
        _, repository, _ = github
        repository.get_pull.side_effect = GithubException(404, {"message": "Not Found"})

        with pytest.raises(GitHubError, match="PR #9 not found in octocat/hello-world"):
            fetch_pr_info("octocat/hello-world", 9, "tok")

    def test_other_failure(self, github):
        _, repository, _ = github
        repository.get_pull.side_effect = GithubException(403, {"message": "Forbidden"})

        with pytest.raises(GitHubError, match="Failed to get PR info: Forbidden"):
            fetch_pr_info("octocat/hello-world", 9, "tok")

    def test_invalid_repo(self):
        with pytest.raises(ValueError, match="Invalid repo format"):
            fetch_pr_info("not-a-repo", 1, "tok")


class TestFetchRawDiff:
    @patch("github_client.requests.get")
    def test_success(self, mock_get):
        mock_get.return_value = Mock(status_code=200, text="diff --git a/x b/x\n")

        assert fetch_raw_diff("octocat/hello-world", 3, "tok") == "diff --git a/x b/x\n"
        args, kwargs = mock_get.call_args
        assert args[0] == "https://api.github.com/repos/octocat/hello-world/pulls/3"
        assert kwargs["headers"]["Accept"] == "application/vnd.github.v3.diff"
        assert kwargs["timeout"] == 30

    @patch("github_client.requests.get")
    def test_not_found(self, mock_get):
        mock_get.return_value = Mock(status_code=404)

        with pytest.raises(GitHubError, match="not found"):
            fetch_raw_diff("octocat/hello-world", 3, "tok")

    @patch("github_client.requests.get")
    def test_network_error(self, mock_get):
        mock_get.side_effect = requests.ConnectionError("down")

        with pytest.raises(GitHubError, match="Failed to fetch diff"):
            fetch_raw_diff("octocat/hello-world", 3, "tok")

    @patch("github_client.fetch_raw_diff")
    def test_diff_source_wraps_errors(self, mock_fetch):
        mock_fetch.side_effect = GitHubError("PR #3 not found in octocat/hello-world")

        with pytest.raises(DiffSourceError, match="PR #3 not found"):
            PullRequestDiffSource("octocat/hello-world", 3, "tok").get_diff("a", "b")


def test_fetch_existing_review_comments_filters_marker(github):
    _, _, pr = github
    pr.get_review_comments.return_value = [
        Mock(id=1, body=f"{COMMENT_MARKER} 🚨", path="a.py", line=3),
        Mock(id=2, body="human comment", path="a.py", line=4),
    ]

    comments = fetch_existing_review_comments("octocat/hello-world", 1, "tok")

    assert comments == [{"id": 1, "body": f"{COMMENT_MARKER} 🚨", "path": "a.py", "line": 3}]


class TestPostReviewComments:
    def test_posts_single_comment_review(self, github):
        _, repository, pr = github
        pr.create_review.return_value = Mock(id=99)

        review_id = post_review_comments("octocat/hello-world", 5, "head123", [COMMENT], "tok")

        assert review_id == 99
        repository.get_commit.assert_called_once_with("head123")
        kwargs = pr.create_review.call_args.kwargs
        assert kwargs["event"] == "COMMENT"
        assert kwargs["comments"] == [
            {"path": "src/app.py", "line": 12, "side": "RIGHT", "body": format_comment(COMMENT)}
        ]

    def test_no_comments_is_noop(self, github):
        _, _, pr = github

        assert post_review_comments("octocat/hello-world", 5, "head123", [], "tok") is None
        pr.create_review.assert_not_called()

    def test_failure_raises(self, github):
        _, _, pr = github
        pr.create_review.side_effect = GithubException(
            422, {"message": "Unprocessable", "errors": ["line must be part of the diff"]}
        )

        with pytest.raises(GitHubError, match="Failed to add review comments: Unprocessable"):
            post_review_comments("octocat/hello-world", 5, "head123", [COMMENT], "tok")


class TestPostReviewWithFallback:
    def test_inline_success(self, github):
        _, _, pr = github
        pr.create_review.return_value = Mock(id=10)

        result = post_review_with_fallback("octocat/hello-world", 5, "head123", [COMMENT], "tok")

        assert result == {"fallback": False, "review_id": 10}
        pr.create_issue_comment.assert_not_called()

    def test_falls_back_to_general_comment(self, github):
        _, _, pr = github
        pr.create_review.side_effect = GithubException(422, {"message": "Unprocessable"})
        pr.create_issue_comment.return_value = Mock(id=20)

        result = post_review_with_fallback("octocat/hello-world", 5, "head123", [COMMENT], "tok")

        assert result == {"fallback": True, "comment_id": 20}
        body = pr.create_issue_comment.call_args[0][0]
        assert "**src/app.py** (line 12):" in body
        assert "Possible SQL injection" in body


class TestDecisionAndStatus:
    @pytest.mark.parametrize("approved,event", [(True, "APPROVE"), (False, "REQUEST_CHANGES")])
    def test_approve_or_request_changes(self, github, approved, event):
        _, _, pr = github
        pr.create_review.return_value = Mock(id=3)

        review_id = approve_or_request_changes("octocat/hello-world", 5, "head123", approved, "summary", "tok")

        assert review_id == 3
        kwargs = pr.create_review.call_args.kwargs
        assert kwargs["event"] == event
        assert kwargs["body"] == "summary"

    def test_add_status_check(self, github):
        _, repository, _ = github

        add_status_check("octocat/hello-world", "head123", "ai-code-review", "success", "Score 90", "tok")

        repository.get_commit.assert_called_once_with("head123")
        repository.get_commit.return_value.create_status.assert_called_once_with(
            state="success", context="ai-code-review", description="Score 90"
        )

    def test_add_status_check_failure(self, github):
        _, repository, _ = github
        repository.get_commit.return_value.create_status.side_effect = GithubException(
            403, {"message": "Forbidden"}
        )

        with pytest.raises(GitHubError, match="Failed to add status check: Forbidden"):
            add_status_check("octocat/hello-world", "head123", "ctx", "failure", "d", "tok")


class TestDeleteComment:
    def test_success(self, github):
        _, _, pr = github

        assert delete_comment("octocat/hello-world", 5, 77, "tok") is True
        pr.get_review_comment.assert_called_once_with(77)
        pr.get_review_comment.return_value.delete.assert_called_once()

    def test_failure_is_logged_not_raised(self, github):
        _, _, pr = github
        pr.get_review_comment.side_effect = GithubException(404, {"message": "Not Found"})

        assert delete_comment("octocat/hello-world", 5, 77, "tok") is False
