"""Command line entry point: ``ai-review review | init | github-action``."""

import argparse
import logging
import os
import sys
from pathlib import Path

from rich.console import Console
from rich.markup import escape

from agent import run_github_action
from config import (
    create_default_config,
    load_coding_standards,
    load_config,
    load_review_prompt,
    resolve_api_key,
)
from errors import ReviewError
from git_client import GitRepository
from github_client import (
    approve_or_request_changes,
    fetch_pr_info,
    parse_github_url,
    post_review_with_fallback,
)
from models import ReviewResult
from prompts import DEFAULT_CODING_STANDARDS, REVIEW_PROMPT_TEMPLATE
from providers import create_provider
from reviewer import ReviewEngine

__version__ = "1.0.0"

logger = logging.getLogger(__name__)
console = Console()

SEVERITY_STYLE: dict[str, str] = {
    "error": "red",
    "warning": "yellow",
    "info": "blue",
}


def print_result(result: ReviewResult) -> None:
    """Pretty print a review result."""
    console.print("\n[bold]📝 Review Results:[/bold]")
    console.print(result.summary, markup=False)

    if not result.comments:
        return

    console.print("\n[bold]💬 Comments:[/bold]")
    for comment in result.comments:
        style = SEVERITY_STYLE[comment.severity]
        console.print(f"\n[{style}]●[/{style}] [bold]{escape(comment.file)}[/bold]:{comment.line}", highlight=False)
        console.print(f"  {comment.message}", markup=False)
        if comment.suggestion:
            console.print("  [green]💡 Suggestion:[/green] ", end="")
            console.print(comment.suggestion, markup=False)


def get_pr_from_env(env=None) -> dict | None:
    """PR coordinates from GITHUB_PR_URL or CI_PULL_REQUEST, if set."""
    env = os.environ if env is None else env
    pr_url = env.get("GITHUB_PR_URL") or env.get("CI_PULL_REQUEST")
    if not pr_url:
        return None

    parsed = parse_github_url(pr_url)
    if not parsed or not parsed["pull_number"]:
        return None
    return parsed


def post_to_github(result: ReviewResult, pr: dict, token: str) -> None:
    """
    Post comments and the approval decision. Failures only warn.

    A rejected comment review does not stop the decision from being submitted.
    """
    repo = f"{pr['owner']}/{pr['repo']}"
    try:
        pr_info = fetch_pr_info(repo, pr["pull_number"], token)
    except ValueError as e:
        console.print(f"[yellow]⚠️ Failed to post to GitHub:[/yellow] {escape(str(e))}", highlight=False)
        return

    try:
        post_review_with_fallback(repo, pr["pull_number"], pr_info.head_sha, result.comments, token)
    except ValueError as e:
        console.print(f"[yellow]⚠️ Failed to post comments:[/yellow] {escape(str(e))}", highlight=False)

    try:
        approve_or_request_changes(
            repo,
            pr["pull_number"],
            pr_info.head_sha,
            result.approved,
            result.summary,
            token,
        )
    except ValueError as e:
        console.print(f"[yellow]⚠️ Failed to post review decision:[/yellow] {escape(str(e))}", highlight=False)
        return

    console.print("[green]✅ Posted review to GitHub[/green]")


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------
def cmd_review(args: argparse.Namespace) -> int:
    console.print("[blue]🤖 Starting AI code review...[/blue]")

    config = load_config(args.config, cwd=args.repo_path)
    git = GitRepository(args.repo_path)

    base_sha = args.base or git.get_current_branch()
    head_sha = args.head or "HEAD"
    console.print(f"[dim]Reviewing changes from {escape(base_sha)} to {escape(head_sha)}[/dim]", highlight=False)

    def provider_factory():
        api_key = None if config.ai_provider == "mock" else resolve_api_key(config.ai_provider)
        return create_provider(config, api_key)

    engine = ReviewEngine(
        config,
        git,
        provider_factory,
        coding_standards=load_coding_standards(config.coding_standards_path, args.repo_path),
        review_prompt=load_review_prompt(config.review_prompt_path, args.repo_path),
    )
    result = engine.review_changes(base_sha, head_sha)
    print_result(result)

    token = os.getenv("GITHUB_TOKEN")
    if args.github and token:
        pr = get_pr_from_env()
        if pr:
            post_to_github(result, pr, token)

    return 0 if result.approved else 1


def cmd_init(args: argparse.Namespace) -> int:
    console.print("[blue]🚀 Initializing AI code review...[/blue]")

    Path(".ai-review.json").write_text(create_default_config(), encoding="utf-8")
    console.print("[green]✅ Created .ai-review.json[/green]")

    if not args.config_only:
        Path("coding-standards.md").write_text(DEFAULT_CODING_STANDARDS, encoding="utf-8")
        console.print("[green]✅ Created coding-standards.md[/green]")

        Path("review-prompt.md").write_text(REVIEW_PROMPT_TEMPLATE, encoding="utf-8")
        console.print("[green]✅ Created review-prompt.md[/green]")

    console.print("\n[yellow]📋 Next steps:[/yellow]")
    console.print("1. Set your AI provider API key (OPENAI_API_KEY, ANTHROPIC_API_KEY or GEMINI_API_KEY)")
    console.print("2. Customize coding-standards.md for your project")
    console.print("3. Adjust review-prompt.md if needed")
    console.print("4. Run: ai-review review")
    return 0


def cmd_github_action(args: argparse.Namespace) -> int:
    console.print("[blue]🔄 Running in GitHub Actions mode...[/blue]")

    token = os.getenv("GITHUB_TOKEN")
    if not token:
        raise ReviewError("GITHUB_TOKEN environment variable is required")

    config = load_config(args.config, cwd=args.repo_path)
    final_state = run_github_action(
        f"{args.owner}/{args.repo}",
        args.pr,
        token,
        config,
        repo_path=args.repo_path,
        remote_diff=args.remote_diff,
    )

    error = final_state.get("error")
    if error:
        console.print(f"[red]❌ GitHub Action failed:[/red] {escape(error)}", highlight=False)
        return 1

    result = final_state["result"]
    console.print("[green]✅ GitHub review completed[/green]")
    console.print(
        f"Score: {result.score}/100, "
        f"Comments: {len(result.comments) + len(final_state.get('unmapped_comments', []))}, "
        f"Approved: {result.approved}"
    )
    return 0


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------
def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ai-review", description="AI-powered code review tool")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    review = subparsers.add_parser("review", help="Review code changes")
    review.add_argument("-b", "--base", help="Base commit SHA (default: current branch)")
    review.add_argument("-H", "--head", help="Head commit SHA (default: HEAD)")
    review.add_argument("-c", "--config", help="Path to config file")
    review.add_argument("--no-github", dest="github", action="store_false", help="Skip GitHub integration")
    review.add_argument("--repo-path", default=None, help="Repository to review (default: cwd)")
    review.set_defaults(func=cmd_review)

    init = subparsers.add_parser("init", help="Initialize AI review configuration")
    init.add_argument("--config-only", action="store_true", help="Only create config file")
    init.set_defaults(func=cmd_init)

    action = subparsers.add_parser("github-action", help="Run in GitHub Actions mode")
    action.add_argument("--owner", required=True, help="Repository owner")
    action.add_argument("--repo", required=True, help="Repository name")
    action.add_argument("--pr", required=True, type=int, help="Pull request number")
    action.add_argument("-c", "--config", help="Path to config file")
    action.add_argument("--repo-path", default=None, help="Local checkout (default: cwd)")
    action.add_argument(
        "--remote-diff",
        action="store_true",
        help="Fetch the PR diff from GitHub instead of the local checkout",
    )
    action.set_defaults(func=cmd_github_action)

    return parser


def main(argv=None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    try:
        return args.func(args)
    except (ReviewError, ValueError, OSError) as e:
        logger.debug("Command failed", exc_info=True)
        console.print(f"[red]❌ Review failed:[/red] {escape(str(e))}", highlight=False)
        return 1


if __name__ == "__main__":
    sys.exit(main())
