"""Parser for unified diff format (output of `git diff`)."""

import re
from dataclasses import dataclass, field

_FILE_BOUNDARY = re.compile(r"^diff --git", re.MULTILINE)
_FILE_HEADER = re.compile(r"a/(.+) b/(.+)")
_HUNK_HEADER = re.compile(r"@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@")


@dataclass(frozen=True)
class Hunk:
    """One changed region of a file."""

    old_start: int
    old_lines: int
    new_start: int
    new_lines: int
    lines: tuple[str, ...] = ()  # raw diff lines, marker included

    @property
    def header(self) -> str:
        return (
            f"@@ -{self.old_start},{self.old_lines} "
            f"+{self.new_start},{self.new_lines} @@"
        )


@dataclass
class CodeChange:
    """Parsed diff for a single file."""

    file: str
    additions: list[str] = field(default_factory=list)
    deletions: list[str] = field(default_factory=list)
    context: list[str] = field(default_factory=list)
    hunks: list[Hunk] = field(default_factory=list)


@dataclass
class DiffLineMapping:
    """New-side line numbers of a file that can receive inline comments."""

    filename: str
    valid_lines: set[int] = field(default_factory=set)


def _parse_hunk_header(line: str) -> tuple[int, int, int, int] | None:
    match = _HUNK_HEADER.match(line)
    if not match:
        return None
    old_start, old_lines, new_start, new_lines = match.groups()
    return (
        int(old_start),
        int(old_lines or 1),
        int(new_start),
        int(new_lines or 1),
    )


def _parse_file_block(block: str) -> CodeChange | None:
    lines = block.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    if not lines:
        return None

    header = _FILE_HEADER.search(lines[0])
    if not header:
        return None

    change = CodeChange(file=header.group(2))

    # (old_start, old_lines, new_start, new_lines) of the open hunk
    current: tuple[int, int, int, int] | None = None
    current_lines: list[str] = []

    def close_hunk() -> None:
        if current is not None:
            change.hunks.append(Hunk(*current, lines=tuple(current_lines)))

    for line in lines[1:]:
        if line.startswith("@@"):
            close_hunk()
            current = _parse_hunk_header(line)
            current_lines = []
            continue

        if current is None:
            continue

        current_lines.append(line)
        if line.startswith("+") and not line.startswith("+++"):
            change.additions.append(line[1:])
        elif line.startswith("-") and not line.startswith("---"):
            change.deletions.append(line[1:])
        elif line.startswith(" "):
            change.context.append(line[1:])

    close_hunk()
    return change if change.hunks else None


def parse_diff(diff_text: str) -> list[CodeChange]:
    """
    Parse a unified diff into structured CodeChange objects.

    Files whose `diff --git` header has no `a/<path> b/<path>` pair are
    skipped, as are files without a single valid hunk.

    Args:
        diff_text: Raw unified diff string

    Returns:
        List of CodeChange objects, one per file, in diff order
    """
    blocks = _FILE_BOUNDARY.split(diff_text)[1:]
    changes = []
    for block in blocks:
        change = _parse_file_block(block)
        if change is not None:
            changes.append(change)
    return changes


def build_line_mapping(changes: list[CodeChange]) -> dict[str, DiffLineMapping]:
    """
    Collect the lines of each file that GitHub accepts inline comments on.

    Only added and context lines exist in the new version of the file, so
    only those are valid targets for a RIGHT-side review comment.
    """
    mappings = {}

    for change in changes:
        mapping = DiffLineMapping(filename=change.file)
        for hunk in change.hunks:
            line_no = hunk.new_start
            for line in hunk.lines:
                if line.startswith("+") or line.startswith(" "):
                    mapping.valid_lines.add(line_no)
                    line_no += 1
        mappings[change.file] = mapping

    return mappings


def find_nearest_valid_line(
    mapping: DiffLineMapping,
    target_line: int,
    max_distance: int = 5,
) -> int | None:
    """
    Find the nearest valid line in the diff to the target line.

    AI comments sometimes reference lines just outside the changed region.
    This finds the closest line we can actually comment on.

    Returns:
        Nearest valid line number, or None if none within range
    """
    if target_line in mapping.valid_lines:
        return target_line

    for distance in range(1, max_distance + 1):
        if target_line + distance in mapping.valid_lines:
            return target_line + distance
        if target_line - distance in mapping.valid_lines:
            return target_line - distance

    return None


def split_commentable(comments, mappings: dict[str, DiffLineMapping], max_distance: int = 5):
    """
    Split review comments into inline-postable and unmapped ones.

    Args:
        comments: ReviewComment objects
        mappings: Dict of filename -> DiffLineMapping
        max_distance: How far to search for the nearest valid line

    Returns:
        Tuple of (inline, unmapped). Inline comments have their line
        adjusted to a line present in the diff.
    """
    inline = []
    unmapped = []

    for comment in comments:
        mapping = mappings.get(comment.file)
        if mapping is None:
            unmapped.append(comment)
            continue

        valid_line = find_nearest_valid_line(mapping, comment.line, max_distance)
        if valid_line is None:
            unmapped.append(comment)
        elif valid_line != comment.line:
            inline.append(comment.model_copy(update={"line": valid_line}))
        else:
            inline.append(comment)

    return inline, unmapped
