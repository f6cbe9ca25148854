"""Validation, scoring and approval for review comments.

Everything here is a pure function of its inputs: the same comment list
and settings always give the same score, histogram and decision.
"""

import logging

from pydantic import ValidationError

from models import (
    CATEGORIES,
    SEVERITIES,
    SEVERITY_RANK,
    ReviewComment,
    ReviewResult,
    empty_categories,
)

logger = logging.getLogger(__name__)

THRESHOLD_RANK: dict[str, int] = {"low": 1, "medium": 2, "high": 3}

SEVERITY_WEIGHTS: dict[str, int] = {"error": -10, "warning": -5, "info": -1}

_SEVERITY_ALIASES: dict[str, str] = {
    "critical": "error",
    "high": "error",
    "medium": "warning",
    "warn": "warning",
    "low": "info",
}

_CATEGORY_ALIASES: dict[str, str] = {
    "quality": "code-quality",
    "docs": "documentation",
    "test": "testing",
    "tests": "testing",
}

NO_CHANGES_MESSAGE = "No reviewable changes found"


# ---------------------------------------------------------------------------
# Normalisation & validation
# ---------------------------------------------------------------------------
def normalize_severity(value) -> str | None:
    """Map a severity spelling to info/warning/error, or None if unknown."""
    if not isinstance(value, str):
        return None
    key = value.strip().lower()
    key = _SEVERITY_ALIASES.get(key, key)
    return key if key in SEVERITIES else None


def normalize_category(value) -> str | None:
    """Map a category spelling (any case, `_` or spaces) to a known category."""
    if not isinstance(value, str):
        return None
    key = "-".join(value.strip().lower().replace("_", " ").split())
    key = _CATEGORY_ALIASES.get(key, key)
    return key if key in CATEGORIES else None


def normalize_line(value) -> int:
    try:
        line = int(value)
    except (TypeError, ValueError):
        return 1
    return line if line >= 1 else 1


def validate_comment(candidate: dict, file_path: str) -> ReviewComment | None:
    """
    Build a ReviewComment from a provider candidate.

    Returns None when the message is empty or the severity/category is not
    recognisable. A missing file is stamped with *file_path*.
    """
    if not isinstance(candidate, dict):
        return None

    message = candidate.get("message")
    severity = normalize_severity(candidate.get("severity"))
    category = normalize_category(candidate.get("category"))
    if not isinstance(message, str) or not message.strip() or not severity or not category:
        return None

    suggestion = candidate.get("suggestion")
    if not isinstance(suggestion, str) or not suggestion.strip():
        suggestion = None

    try:
        return ReviewComment(
            file=str(candidate.get("file") or file_path),
            line=normalize_line(candidate.get("line")),
            message=message.strip(),
            severity=severity,
            category=category,
            suggestion=suggestion,
        )
    except ValidationError as e:
        logger.debug("Dropping invalid comment %r: %s", candidate, e)
        return None


def meets_severity_threshold(comment: ReviewComment, threshold: str) -> bool:
    return SEVERITY_RANK[comment.severity] >= THRESHOLD_RANK[threshold]


def validate_comments(candidates, file_path: str, threshold: str = "medium") -> list[ReviewComment]:
    """Validate provider candidates and keep those at or above *threshold*."""
    comments = []
    for candidate in candidates:
        comment = validate_comment(candidate, file_path)
        if comment is None:
            continue
        if meets_severity_threshold(comment, threshold):
            comments.append(comment)
    return comments


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------
def categorize_comments(comments: list[ReviewComment]) -> dict[str, int]:
    categories = empty_categories()
    for comment in comments:
        categories[comment.category] += 1
    return categories


def calculate_score(comments: list[ReviewComment]) -> int:
    """100 minus severity penalties, clamped to 0..100."""
    if not comments:
        return 100

    penalty = sum(SEVERITY_WEIGHTS[c.severity] for c in comments)
    return max(0, min(100, 100 + penalty))


def should_approve(
    comments: list[ReviewComment],
    auto_approve: bool = False,
    require_approval_for=("error",),
) -> bool:
    """Approve unless a comment has a blocking severity."""
    if auto_approve and not comments:
        return True

    blocking = [c for c in comments if c.severity in require_approval_for]
    return not blocking


def generate_summary(comments: list[ReviewComment], score: int) -> str:
    """Render the human-readable summary posted with the review."""
    if not comments:
        return "✅ No issues found. Code looks good!"

    error_count = sum(1 for c in comments if c.severity == "error")
    warning_count = sum(1 for c in comments if c.severity == "warning")
    info_count = sum(1 for c in comments if c.severity == "info")

    summary = f"🤖 AI Code Review Summary (Score: {score}/100)\n\n"

    if error_count:
        summary += f"🚨 {error_count} error(s) found\n"
    if warning_count:
        summary += f"⚠️ {warning_count} warning(s) found\n"
    if info_count:
        summary += f"ℹ️ {info_count} info item(s) found\n"

    # sorted() is stable, so ties keep CATEGORIES order
    ranked = sorted(
        ((category, count) for category, count in categorize_comments(comments).items() if count),
        key=lambda item: item[1],
        reverse=True,
    )
    top_categories = [category for category, _ in ranked[:3]]

    if top_categories:
        summary += f"\nMain areas of concern: {', '.join(top_categories)}"

    return summary


def build_result(
    comments: list[ReviewComment],
    auto_approve: bool = False,
    require_approval_for=("error",),
) -> ReviewResult:
    score = calculate_score(comments)
    return ReviewResult(
        comments=list(comments),
        summary=generate_summary(comments, score),
        approved=should_approve(comments, auto_approve, require_approval_for),
        score=score,
        categories=categorize_comments(comments),
    )


def create_empty_result(message: str = NO_CHANGES_MESSAGE) -> ReviewResult:
    return ReviewResult(
        comments=[],
        summary=message,
        approved=True,
        score=100,
        categories=empty_categories(),
    )
