"""Prompt templates for code review."""

# =============================================================================
# SHARED FRAGMENTS
# =============================================================================

_FOCUS_AREAS = (
    "Focus on:\n"
    "- Code quality and best practices\n"
    "- Security vulnerabilities\n"
    "- Performance issues\n"
    "- Maintainability concerns\n"
    "- Style consistency\n"
    "- Testing needs\n"
    "- Documentation\n"
)

_OUTPUT_FORMAT = (
    "Return feedback as JSON array with this structure:\n"
    "[\n"
    "  {\n"
    '    "file": "path/to/file",\n'
    '    "line": 10,\n'
    '    "message": "Issue description",\n'
    '    "severity": "error|warning|info",\n'
    '    "category": "code-quality|security|performance|maintainability|'
    'style|testing|documentation",\n'
    '    "suggestion": "Optional improvement suggestion"\n'
    "  }\n"
    "]"
)

SYSTEM_PROMPT = (
    "You are an expert code reviewer. "
    "Provide detailed, constructive feedback."
)


# =============================================================================
# DEFAULT REVIEW PROMPT: used when no review-prompt file is found
# =============================================================================

REVIEW_PROMPT = (
    "You are an expert code reviewer. "
    "Review the provided code changes and identify issues.\n"
    "\n" + _FOCUS_AREAS + "\n" + _OUTPUT_FORMAT
)


def compose_prompt(review_prompt: str | None = None, coding_standards: str | None = None) -> str:
    """Combine the review instructions with optional coding standards."""
    prompt = review_prompt or REVIEW_PROMPT

    if coding_standards:
        prompt += f"\n\nCoding Standards to follow:\n{coding_standards}"

    return prompt


def build_review_prompt(code: str, base_prompt: str | None = None) -> str:
    """Append the code under review to the composed instructions."""
    prompt = base_prompt or REVIEW_PROMPT
    return f"{prompt}\n\nCode to review:\n```\n{code}\n```"


# =============================================================================
# SCAFFOLDING: files written by `ai-review init`
# =============================================================================

DEFAULT_CODING_STANDARDS = """# Coding Standards

## General Guidelines
- Write clean, readable, and maintainable code
- Follow consistent naming conventions
- Add meaningful comments and documentation
- Keep functions small and focused
- Handle errors appropriately

## Code Quality
- Avoid code duplication
- Use meaningful variable and function names
- Write comprehensive tests

## Security
- Validate all inputs
- Use parameterized queries for database operations
- Never commit secrets or sensitive data

## Performance
- Optimize for readability first, performance second
- Profile before optimizing
- Use appropriate data structures and algorithms

## Testing
- Write unit tests for all business logic
- Include integration tests for critical paths
- Use descriptive test names and clear assertions
"""

REVIEW_PROMPT_TEMPLATE = """# AI Code Review Prompt

You are an expert code reviewer. Please analyze the provided code changes and provide constructive feedback.

## Review Focus Areas

### 1. Code Quality
- Code structure and organization
- Readability and maintainability
- Code complexity and clarity

### 2. Security
- Input validation and sanitization
- Authentication and authorization
- Data exposure and privacy

### 3. Performance
- Algorithm efficiency
- Resource usage
- Potential bottlenecks

### 4. Maintainability
- Code duplication
- Error handling
- Documentation quality

### 5. Testing
- Test coverage
- Edge case handling

## Output Format

Provide feedback as a JSON array with this structure:
```json
[
  {
    "file": "path/to/file.js",
    "line": 42,
    "message": "Clear description of the issue",
    "severity": "error|warning|info",
    "category": "code-quality|security|performance|maintainability|style|testing|documentation",
    "suggestion": "Optional specific improvement suggestion"
  }
]
```

## Guidelines
- Be constructive and specific in your feedback
- Prioritize security and critical issues
- Suggest concrete improvements when possible
- Focus on meaningful issues, not nitpicks
"""
