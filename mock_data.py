"""Canned provider output for running without API calls."""

MOCK_RESPONSE = """```json
[
  {
    "line": 3,
    "message": "Division by len(numbers) raises ZeroDivisionError when the list is empty.",
    "severity": "warning",
    "category": "code-quality",
    "suggestion": "Return 0 (or raise a ValueError) when numbers is empty."
  }
]
```"""
