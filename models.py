"""Data models for review comments and results."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

Severity = Literal["info", "warning", "error"]
Category = Literal[
    "code-quality",
    "security",
    "performance",
    "maintainability",
    "style",
    "testing",
    "documentation",
]

# Enumeration order matters: summary tie-breaks follow it.
SEVERITIES: tuple[str, ...] = ("info", "warning", "error")
CATEGORIES: tuple[str, ...] = (
    "code-quality",
    "security",
    "performance",
    "maintainability",
    "style",
    "testing",
    "documentation",
)

SEVERITY_RANK: dict[str, int] = {"info": 1, "warning": 2, "error": 3}


def empty_categories() -> dict[str, int]:
    """Return a category histogram with every category set to zero."""
    return {category: 0 for category in CATEGORIES}


class ReviewComment(BaseModel):
    """A single review comment attached to a file and line."""

    model_config = ConfigDict(frozen=True)

    file: str = Field(description="File path the comment refers to")
    line: int = Field(default=1, ge=1, description="1-based line number")
    message: str = Field(min_length=1, description="What the issue is")
    severity: Severity = Field(description="info, warning, error")
    category: Category = Field(description="Review category")
    suggestion: str | None = Field(
        default=None, description="Optional suggested improvement"
    )


class ReviewResult(BaseModel):
    """Terminal output of one review run."""

    model_config = ConfigDict(frozen=True)

    comments: list[ReviewComment] = Field(default_factory=list)
    summary: str = ""
    approved: bool = True
    score: int = Field(default=100, ge=0, le=100)
    categories: dict[str, int] = Field(default_factory=empty_categories)
