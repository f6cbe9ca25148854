"""Turn raw AI provider output into review comment candidates.

Model output is not guaranteed to follow the requested format, so parsing
is a fallback chain: fenced JSON, then bare JSON, then a line-oriented
scanner for ``Field: value`` style answers.
"""

import json
import logging
import re
from dataclasses import dataclass, field

from aggregator import normalize_severity

logger = logging.getLogger(__name__)

_FENCED_JSON = re.compile(r"```json[ \t]*\r?\n(.*?)\r?\n[ \t]*```", re.DOTALL)

# Text-format field prefixes -> comment keys
_TEXT_FIELDS: dict[str, str] = {
    "Line:": "line",
    "Severity:": "severity",
    "Category:": "category",
    "Message:": "message",
    "Suggestion:": "suggestion",
}

# Wrapper keys accepted when the model answers with an object
_LIST_KEYS = ("comments", "findings", "issues")


@dataclass
class ParsedResponse:
    """Outcome of parsing one provider response."""

    ok: bool
    comments: list[dict] = field(default_factory=list)
    source: str = ""  # fenced-json, raw-json or text
    error: str = ""


def _coerce_records(data) -> list[dict] | None:
    """Return comment records from decoded JSON, or None if the shape is unusable."""
    if isinstance(data, dict):
        for key in _LIST_KEYS:
            if isinstance(data.get(key), list):
                data = data[key]
                break
        else:
            if "message" in data:
                return [data]
            return None

    if not isinstance(data, list):
        return None

    return [item for item in data if isinstance(item, dict)]


def _from_json(payload: str, source: str) -> ParsedResponse:
    records = _coerce_records(json.loads(payload))
    if records is None:
        return ParsedResponse(
            ok=False,
            source=source,
            error="JSON response is not a list of comments",
        )
    return ParsedResponse(ok=True, comments=records, source=source)


def parse_text_response(text: str) -> list[dict]:
    """
    Scan ``File:`` / ``Line:`` / ``Severity:`` ... blocks into comment records.

    A new ``File:`` line starts a new record. Severity aliases (``critical``,
    ``high``, ``low`` ...) are normalized, and unknown severities become
    "warning". The last record is kept only if it has a file and a message.
    """
    comments: list[dict] = []
    current: dict = {}

    for line in text.split("\n"):
        if line.startswith("File:"):
            if current.get("file"):
                comments.append(current)
            current = {"file": line[len("File:"):].strip()}
            continue

        for prefix, key in _TEXT_FIELDS.items():
            if not line.startswith(prefix):
                continue
            value = line[len(prefix):].strip()
            if key == "line":
                try:
                    current["line"] = int(value)
                except ValueError:
                    current.pop("line", None)
            elif key == "severity":
                current["severity"] = normalize_severity(value) or "warning"
            else:
                current[key] = value
            break

    if current.get("file") and current.get("message"):
        comments.append(current)

    return comments


def parse_review_response(text: str) -> ParsedResponse:
    """
    Parse a provider response into comment candidates.

    Never raises: JSON that fails to decode falls through to the text
    scanner, and JSON with an unusable shape yields ``ok=False``.
    """
    try:
        match = _FENCED_JSON.search(text)
        if match:
            return _from_json(match.group(1), "fenced-json")

        stripped = text.strip()
        if stripped.startswith("[") or stripped.startswith("{"):
            return _from_json(stripped, "raw-json")
    except json.JSONDecodeError as e:
        logger.warning(
            "Failed to parse AI response as JSON (%s), falling back to text parsing",
            e,
        )

    return ParsedResponse(ok=True, comments=parse_text_response(text), source="text")
