"""
GitHub Actions review workflow built on LangGraph.

The workflow fetches the PR, reviews base...head, reports a commit status,
posts inline comments, and finally approves or requests changes. Each node
records failures in ``error`` and the graph stops at the first one.
"""

import logging
from dataclasses import dataclass, field

from langgraph.graph import END, START, StateGraph

from config import (
    ReviewConfig,
    load_coding_standards,
    load_review_prompt,
    resolve_api_key,
)
from diff_parser import build_line_mapping, split_commentable
from git_client import GitRepository
from github_client import (
    PRInfo,
    PullRequestDiffSource,
    add_status_check,
    approve_or_request_changes,
    fetch_pr_info,
    format_comment,
    post_review_with_fallback,
)
from models import ReviewComment, ReviewResult
from providers import create_provider
from reviewer import ReviewEngine

logger = logging.getLogger(__name__)

STATUS_CONTEXT = "ai-code-review"


# =============================================================================
# STATE DEFINITION
# =============================================================================
@dataclass
class ReviewState:
    """
    State that flows through the review graph.

    Each node reads what it needs and returns updates to specific fields.
    """

    # Input (required)
    repo: str  # e.g., "octocat/hello-world"
    pr_number: int
    token: str
    config: ReviewConfig = field(default_factory=ReviewConfig)
    repo_path: str | None = None
    remote_diff: bool = False

    # Intermediate data (populated by nodes)
    pr_info: PRInfo | None = None
    result: ReviewResult | None = None
    unmapped_comments: list[ReviewComment] = field(default_factory=list)

    # Output
    status_posted: bool = False
    review_id: int | None = None
    decision_id: int | None = None
    error: str | None = None


# =============================================================================
# NODE FUNCTIONS
# =============================================================================
def fetch_pr_data(state: ReviewState) -> dict:
    """
    Node 1: Fetch PR coordinates from GitHub.

    Reads: repo, pr_number, token
    Updates: pr_info, error
    """
    logger.info("📥 Fetching PR #%d from %s...", state.pr_number, state.repo)

    try:
        pr_info = fetch_pr_info(state.repo, state.pr_number, state.token)
    except Exception as e:
        logger.error("Failed to fetch PR: %s", e)
        return {"error": str(e)}

    logger.info("   PR: %s by %s", pr_info.title, pr_info.author)
    return {"pr_info": pr_info}


def _diff_source(state: ReviewState):
    if state.remote_diff:
        return PullRequestDiffSource(state.repo, state.pr_number, state.token)
    return GitRepository(state.repo_path)


def run_review(state: ReviewState) -> dict:
    """
    Node 2: Review base...head and split comments by diff position.

    Reads: pr_info, config, repo_path, remote_diff
    Updates: result, unmapped_comments, error
    """
    pr_info = state.pr_info
    logger.info("🔍 Reviewing %s...%s", pr_info.base_sha[:7], pr_info.head_sha[:7])

    cfg = state.config
    diff_source = _diff_source(state)

    def provider_factory():
        api_key = None if cfg.ai_provider == "mock" else resolve_api_key(cfg.ai_provider)
        return create_provider(cfg, api_key)

    engine = ReviewEngine(
        cfg,
        diff_source,
        provider_factory,
        coding_standards=load_coding_standards(cfg.coding_standards_path, state.repo_path),
        review_prompt=load_review_prompt(cfg.review_prompt_path, state.repo_path),
    )

    try:
        result = engine.review_changes(pr_info.base_sha, pr_info.head_sha)
    except Exception as e:
        logger.error("Review failed: %s", e)
        return {"error": str(e)}

    mappings = build_line_mapping(engine.changes)
    inline, unmapped = split_commentable(result.comments, mappings)
    logger.info(
        "   Score %d/100, %d inline comment(s), %d outside the diff",
        result.score,
        len(inline),
        len(unmapped),
    )

    return {
        "result": result.model_copy(update={"comments": inline}),
        "unmapped_comments": unmapped,
    }


def post_status(state: ReviewState) -> dict:
    """
    Node 3: Report the review outcome as a commit status.

    Reads: pr_info, result
    Updates: status_posted, error
    """
    result = state.result
    try:
        add_status_check(
            state.repo,
            state.pr_info.head_sha,
            STATUS_CONTEXT,
            "success" if result.approved else "failure",
            f"AI Review Score: {result.score}/100",
            state.token,
        )
    except Exception as e:
        logger.error("Failed to post status: %s", e)
        return {"error": str(e)}

    return {"status_posted": True}


def post_comments(state: ReviewState) -> dict:
    """
    Node 4: Post inline comments as a COMMENT review.

    Reads: pr_info, result
    Updates: review_id, error
    """
    logger.info("📝 Posting %d comment(s)...", len(state.result.comments))

    try:
        posted = post_review_with_fallback(
            state.repo,
            state.pr_number,
            state.pr_info.head_sha,
            state.result.comments,
            state.token,
        )
    except Exception as e:
        logger.error("Failed to post comments: %s", e)
        return {"error": str(e)}

    return {"review_id": posted.get("review_id") or posted.get("comment_id")}


def format_decision_body(state: ReviewState) -> str:
    """Summary plus any comments that could not be placed inline."""
    body = state.result.summary

    if state.unmapped_comments:
        body += "\n\n### Comments outside the diff\n\n"
        for comment in state.unmapped_comments:
            body += f"**{comment.file}** (line {comment.line}):\n"
            body += f"{format_comment(comment)}\n\n"

    return body


def post_decision(state: ReviewState) -> dict:
    """
    Node 5: Approve or request changes.

    Reads: pr_info, result, unmapped_comments
    Updates: decision_id, error
    """
    try:
        decision_id = approve_or_request_changes(
            state.repo,
            state.pr_number,
            state.pr_info.head_sha,
            state.result.approved,
            format_decision_body(state),
            state.token,
        )
    except Exception as e:
        logger.error("Failed to submit review decision: %s", e)
        return {"error": str(e)}

    return {"decision_id": decision_id}


# =============================================================================
# DECISION FUNCTIONS (for conditional edges)
# =============================================================================
def _get(state, key):
    # LangGraph may pass state as dict or dataclass
    return state.get(key) if isinstance(state, dict) else getattr(state, key)


def continue_or_end(state: ReviewState) -> str:
    if _get(state, "error"):
        return "end"
    return "continue"


def should_post_comments(state: ReviewState) -> str:
    """
    Decide whether there are inline comments to post.

    Returns:
        "end" on error, "post_comments" if there are comments,
        "post_decision" otherwise
    """
    if _get(state, "error"):
        return "end"

    result = _get(state, "result")
    if result is not None and result.comments:
        logger.info("🔀 Decision: %d comment(s) → posting", len(result.comments))
        return "post_comments"

    logger.info("🔀 Decision: no inline comments")
    return "post_decision"


# =============================================================================
# GRAPH CONSTRUCTION
# =============================================================================
def build_review_graph() -> StateGraph:
    """Build the review workflow graph."""
    graph = StateGraph(ReviewState)

    graph.add_node("fetch_pr_data", fetch_pr_data)
    graph.add_node("run_review", run_review)
    graph.add_node("post_status", post_status)
    graph.add_node("post_comments", post_comments)
    graph.add_node("post_decision", post_decision)

    graph.add_edge(START, "fetch_pr_data")
    graph.add_conditional_edges(
        "fetch_pr_data",
        continue_or_end,
        {"continue": "run_review", "end": END},
    )
    graph.add_conditional_edges(
        "run_review",
        continue_or_end,
        {"continue": "post_status", "end": END},
    )
    graph.add_conditional_edges(
        "post_status",
        should_post_comments,
        {
            "post_comments": "post_comments",
            "post_decision": "post_decision",
            "end": END,
        },
    )
    graph.add_conditional_edges(
        "post_comments",
        continue_or_end,
        {"continue": "post_decision", "end": END},
    )
    graph.add_edge("post_decision", END)

    return graph


def create_agent():
    """Create and compile the review agent."""
    return build_review_graph().compile()


def run_github_action(
    repo: str,
    pr_number: int,
    token: str,
    config: ReviewConfig,
    repo_path: str | None = None,
    remote_diff: bool = False,
) -> dict:
    """Run the workflow end to end and return the final state as a dict."""
    agent = create_agent()
    initial_state = ReviewState(
        repo=repo,
        pr_number=pr_number,
        token=token,
        config=config,
        repo_path=repo_path,
        remote_diff=remote_diff,
    )

    logger.info("🤖 Running AI review on %s PR #%d", repo, pr_number)
    return agent.invoke(initial_state)
