"""Tests for the ai-review command line."""

import json
from unittest.mock import Mock, patch

import pytest

from errors import GitHubError
from main import build_parser, get_pr_from_env, main, post_to_github
from models import ReviewComment, ReviewResult
from providers import MockProvider

DIFF = "diff --git a/src/calc.py b/src/calc.py\n@@ -1,2 +1,4 @@\n def f():\n+    a = 1\n+    b = 2\n+    return a / 0\n"

ERROR_RESPONSE = (
    '[{"line": 4, "severity": "error", "category": "code-quality", "message": "Division by zero"}]'
)


@pytest.fixture
def repo(tmp_path, monkeypatch):
    """A directory with a mock-provider config and a patched git repository."""
    (tmp_path / ".ai-review.json").write_text(json.dumps({"aiProvider": "mock"}))
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)

    git = Mock()
    git.get_diff.return_value = DIFF
    git.get_current_branch.return_value = "main"
    with patch("main.GitRepository", return_value=git):
        yield tmp_path, git


class TestParser:
    def test_review_defaults(self):
        args = build_parser().parse_args(["review"])

        assert args.base is None
        assert args.head is None
        assert args.github is True

    def test_no_github_flag(self):
        args = build_parser().parse_args(["review", "--no-github", "-b", "main", "-H", "feature"])

        assert args.github is False
        assert (args.base, args.head) == ("main", "feature")

    def test_github_action_args(self):
        args = build_parser().parse_args(
            ["github-action", "--owner", "octocat", "--repo", "hello-world", "--pr", "42", "--remote-diff"]
        )

        assert (args.owner, args.repo, args.pr) == ("octocat", "hello-world", 42)
        assert args.remote_diff is True

    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestGetPrFromEnv:
    def test_pr_url(self):
        assert get_pr_from_env({"GITHUB_PR_URL": "https://github.com/octocat/hello-world/pull/42"}) == {
            "owner": "octocat",
            "repo": "hello-world",
            "pull_number": 42,
        }

    def test_ci_pull_request_fallback(self):
        pr = get_pr_from_env({"CI_PULL_REQUEST": "https://github.com/a/b/pull/1"})

        assert pr["pull_number"] == 1

    def test_missing_or_not_a_pr(self):
        assert get_pr_from_env({}) is None
        assert get_pr_from_env({"GITHUB_PR_URL": "https://github.com/octocat/hello-world"}) is None


class TestReviewCommand:
    def test_approved_exits_zero(self, repo):
        tmp_path, git = repo

        assert main(["review", "--repo-path", str(tmp_path), "-b", "main", "-H", "feature"]) == 0
        git.get_diff.assert_called_once_with("main", "feature")

    def test_base_defaults_to_current_branch(self, repo):
        tmp_path, git = repo

        main(["review", "--repo-path", str(tmp_path)])

        git.get_diff.assert_called_once_with("main", "HEAD")

    def test_blocking_comment_exits_one(self, repo, capsys):
        tmp_path, _ = repo

        with patch("main.create_provider", return_value=MockProvider(response=ERROR_RESPONSE)):
            exit_code = main(["review", "--repo-path", str(tmp_path)])

        assert exit_code == 1
        out = capsys.readouterr().out
        assert "Division by zero" in out
        assert "src/calc.py" in out

    def test_invalid_config_exits_one(self, repo):
        tmp_path, _ = repo
        (tmp_path / ".ai-review.json").write_text('{"severityThreshold": "extreme"}')

        assert main(["review", "--repo-path", str(tmp_path)]) == 1

    @patch("main.post_to_github")
    def test_posts_when_token_and_pr_present(self, mock_post, repo, monkeypatch):
        tmp_path, _ = repo
        monkeypatch.setenv("GITHUB_TOKEN", "tok")
        monkeypatch.setenv("GITHUB_PR_URL", "https://github.com/octocat/hello-world/pull/42")

        main(["review", "--repo-path", str(tmp_path)])

        mock_post.assert_called_once()
        assert mock_post.call_args[0][1]["pull_number"] == 42

    @patch("main.post_to_github")
    def test_no_github_skips_posting(self, mock_post, repo, monkeypatch):
        tmp_path, _ = repo
        monkeypatch.setenv("GITHUB_TOKEN", "tok")
        monkeypatch.setenv("GITHUB_PR_URL", "https://github.com/octocat/hello-world/pull/42")

        main(["review", "--no-github", "--repo-path", str(tmp_path)])

        mock_post.assert_not_called()


class TestInitCommand:
    def test_creates_all_files(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        assert main(["init"]) == 0

        config = json.loads((tmp_path / ".ai-review.json").read_text())
        assert config["aiProvider"] == "openai"
        assert (tmp_path / "coding-standards.md").exists()
        assert (tmp_path / "review-prompt.md").exists()

    def test_config_only(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        assert main(["init", "--config-only"]) == 0

        assert (tmp_path / ".ai-review.json").exists()
        assert not (tmp_path / "coding-standards.md").exists()


class TestGithubActionCommand:
    ARGS = ["github-action", "--owner", "octocat", "--repo", "hello-world", "--pr", "5"]

    def test_requires_token(self, monkeypatch):
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)

        assert main(self.ARGS) == 1

    @patch("main.run_github_action")
    def test_success(self, mock_run, tmp_path, monkeypatch):
        monkeypatch.setenv("GITHUB_TOKEN", "tok")
        mock_run.return_value = {"result": ReviewResult(score=90), "unmapped_comments": []}

        assert main([*self.ARGS, "--repo-path", str(tmp_path)]) == 0
        args, kwargs = mock_run.call_args
        assert args[:3] == ("octocat/hello-world", 5, "tok")
        assert kwargs["remote_diff"] is False

    @patch("main.run_github_action", return_value={"error": "PR #5 not found in octocat/hello-world"})
    def test_workflow_error_exits_one(self, _mock_run, tmp_path, monkeypatch):
        monkeypatch.setenv("GITHUB_TOKEN", "tok")

        assert main([*self.ARGS, "--repo-path", str(tmp_path)]) == 1


class TestPostToGithub:
    PR = {"owner": "octocat", "repo": "hello-world", "pull_number": 42}

    @patch("main.approve_or_request_changes")
    @patch("main.post_review_with_fallback")
    @patch("main.fetch_pr_info")
    def test_posts_comments_then_decision(self, mock_info, mock_comments, mock_decide):
        mock_info.return_value = Mock(head_sha="head123")
        result = ReviewResult(summary="All good", approved=True)

        post_to_github(result, self.PR, "tok")

        mock_comments.assert_called_once_with("octocat/hello-world", 42, "head123", [], "tok")
        mock_decide.assert_called_once_with("octocat/hello-world", 42, "head123", True, "All good", "tok")

    @patch("main.fetch_pr_info", side_effect=GitHubError("PR #42 not found in octocat/hello-world"))
    def test_failure_only_warns(self, _mock_info, capsys):
        post_to_github(ReviewResult(), self.PR, "tok")

        assert "Failed to post to GitHub" in capsys.readouterr().out

    @patch("main.approve_or_request_changes")
    @patch("github_client.post_pr_comment", return_value=8)
    @patch("github_client.post_review_comments", side_effect=GitHubError("Line could not be resolved"))
    @patch("main.fetch_pr_info")
    def test_rejected_inline_review_falls_back_and_still_decides(
        self, mock_info, mock_inline, mock_general, mock_decide
    ):
        mock_info.return_value = Mock(head_sha="head123")
        comment = ReviewComment(
            file="src/calc.py", line=999, message="Division by zero", severity="error", category="code-quality"
        )
        result = ReviewResult(comments=[comment], summary="Blocked", approved=False)

        post_to_github(result, self.PR, "tok")

        mock_inline.assert_called_once()
        mock_general.assert_called_once()
        assert "**src/calc.py** (line 999):" in mock_general.call_args[0][2]
        mock_decide.assert_called_once_with("octocat/hello-world", 42, "head123", False, "Blocked", "tok")

    @patch("main.approve_or_request_changes")
    @patch("main.post_review_with_fallback", side_effect=GitHubError("Failed to post comment: Forbidden"))
    @patch("main.fetch_pr_info")
    def test_comment_failure_still_submits_decision(self, mock_info, _mock_post, mock_decide, capsys):
        mock_info.return_value = Mock(head_sha="head123")

        post_to_github(ReviewResult(summary="s"), self.PR, "tok")

        mock_decide.assert_called_once()
        out = capsys.readouterr().out
        assert "Failed to post comments" in out
        assert "Posted review to GitHub" in out
