"""Shared configuration and utilities for the AI reviewer."""

import json
import logging
import os
import re
from pathlib import Path
from typing import Literal

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from errors import ConfigError

# ---------------------------------------------------------------------------
# Environment & logging (initialised once on first import)
# ---------------------------------------------------------------------------
load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
USE_MOCK: bool = os.getenv("USE_MOCK", "false").lower() == "true"

CONFIG_FILES: tuple[str, ...] = (
    ".ai-review.json",
    ".ai-review.yaml",
    ".ai-review.yml",
)

CODING_STANDARDS_PATHS: tuple[str, ...] = (
    "coding-standards.md",
    "CODING_STANDARDS.md",
    ".github/CODING_STANDARDS.md",
    "docs/coding-standards.md",
)

REVIEW_PROMPT_PATHS: tuple[str, ...] = (
    "review-prompt.md",
    "REVIEW_PROMPT.md",
    ".github/REVIEW_PROMPT.md",
    "prompts/review.md",
)

API_KEY_ENV: dict[str, str] = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "gemini": "GEMINI_API_KEY",
}

# Repo format: "owner/repo"
_REPO_PATTERN = re.compile(r"^[\w.-]+/[\w.-]+$")


# ---------------------------------------------------------------------------
# Review configuration
# ---------------------------------------------------------------------------
class ReviewConfig(BaseModel):
    """Settings for one review run. Files use camelCase keys."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    ai_provider: Literal["openai", "anthropic", "gemini", "mock"] = "openai"
    model: str | None = None
    max_tokens: int = Field(default=2000, gt=0)
    temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    coding_standards_path: str | None = None
    review_prompt_path: str | None = None
    ignore_patterns: list[str] = Field(default_factory=list)
    include_patterns: list[str] = Field(default_factory=list)
    severity_threshold: Literal["low", "medium", "high"] = "medium"
    auto_approve: bool = False
    require_approval_for: list[str] = Field(default_factory=lambda: ["error"])


def _read_config_file(path: Path) -> dict:
    try:
        content = path.read_text(encoding="utf-8")
        suffix = path.suffix.lower()
        if suffix == ".json":
            data = json.loads(content)
        elif suffix in (".yaml", ".yml"):
            data = yaml.safe_load(content)
        else:
            raise ConfigError(f"Unsupported config file type: {suffix or path.name}")
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to load config from {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Failed to load config from {path}: expected a mapping")
    return data


def load_config(config_path: str | None = None, cwd: str | Path | None = None) -> ReviewConfig:
    """
    Load the review configuration and merge it with defaults.

    An explicit *config_path* must exist. Otherwise the first of
    CONFIG_FILES found in *cwd* is used, and defaults apply when none is.

    Raises:
        ConfigError: If the file cannot be read or holds invalid values
    """
    base = Path(cwd) if cwd else Path.cwd()

    if config_path:
        path = Path(config_path)
        data = _read_config_file(path if path.is_absolute() else base / path)
    else:
        data = {}
        for name in CONFIG_FILES:
            candidate = base / name
            if candidate.is_file():
                logger.debug("Using config file %s", candidate)
                data = _read_config_file(candidate)
                break

    # null values fall back to defaults
    data = {key: value for key, value in data.items() if value is not None}

    try:
        return ReviewConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e


def create_default_config() -> str:
    """Return the JSON written by `ai-review init`."""
    return json.dumps(
        {
            "aiProvider": "openai",
            "model": "gpt-4o",
            "maxTokens": 2000,
            "temperature": 0.3,
            "codingStandardsPath": "coding-standards.md",
            "reviewPromptPath": "review-prompt.md",
            "ignorePatterns": [
                "node_modules/**",
                "dist/**",
                "build/**",
                "*.min.js",
                "*.min.css",
            ],
            "severityThreshold": "medium",
            "autoApprove": False,
            "requireApprovalFor": ["error"],
        },
        indent=2,
    )


# ---------------------------------------------------------------------------
# Coding standards / review prompt
# ---------------------------------------------------------------------------
def _load_text(explicit: str | None, defaults: tuple[str, ...], label: str, cwd: str | Path | None) -> str | None:
    base = Path(cwd) if cwd else Path.cwd()

    if explicit:
        path = Path(explicit)
        try:
            return (path if path.is_absolute() else base / path).read_text(encoding="utf-8")
        except OSError as e:
            logger.warning("Failed to load %s from %s: %s", label, explicit, e)
            return None

    for name in defaults:
        candidate = base / name
        if candidate.is_file():
            return candidate.read_text(encoding="utf-8")

    return None


def load_coding_standards(standards_path: str | None = None, cwd: str | Path | None = None) -> str | None:
    """Return coding standards text, or None when there is none."""
    return _load_text(standards_path, CODING_STANDARDS_PATHS, "coding standards", cwd)


def load_review_prompt(prompt_path: str | None = None, cwd: str | Path | None = None) -> str | None:
    """Return the custom review prompt, or None to use the built-in one."""
    return _load_text(prompt_path, REVIEW_PROMPT_PATHS, "review prompt", cwd)


# ---------------------------------------------------------------------------
# Secrets & validation helpers
# ---------------------------------------------------------------------------
def resolve_api_key(provider: str, env=None) -> str:
    """
    Look up the API key for *provider* in *env* (defaults to os.environ).

    Raises:
        ConfigError: If the provider is unknown or the key is not set
    """
    env = os.environ if env is None else env
    env_key = API_KEY_ENV.get(provider)
    if env_key is None:
        raise ConfigError(f"Unsupported AI provider: {provider}")

    api_key = env.get(env_key)
    if not api_key:
        raise ConfigError(
            f"{env_key} environment variable is required for {provider} provider"
        )
    return api_key


def validate_repo(repo: str) -> str:
    """Validate repository string matches 'owner/repo' format.

    Returns *repo* unchanged on success; raises ``ConfigError`` otherwise.
    """
    if not _REPO_PATTERN.match(repo):
        raise ConfigError(
            f"Invalid repo format: {repo!r}. Expected 'owner/repo' "
            f"(e.g. 'octocat/hello-world')."
        )
    return repo
