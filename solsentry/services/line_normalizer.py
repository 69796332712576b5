"""
line_normalizer.py — Shared line helpers for every line-level rule.

All rules read a line through these helpers so comment stripping, terminator
lookup and keyword recognition stay identical across the engine.
"""

from __future__ import annotations
import re
import logging
from typing import Iterator, Optional

logger = logging.getLogger("solsentry.line_normalizer")


# ── Keyword vocabulary ────────────────────────────────────────────────────────

# Elementary value types. `uint`/`int`/`bytes` are covered by the \d* suffixes.
TYPE_NAMES = r"(?:uint\d*|int\d*|address|bool|string|bytes\d*)"

# A type keyword as a whole token, e.g. `uint256` but not `internal`.
TYPE_TOKEN_RE = re.compile(rf"^(?:{TYPE_NAMES}|mapping)$", re.IGNORECASE)

# Line (or parameter) begins with a declared type.
TYPE_PREFIX_RE = re.compile(rf"^(?:{TYPE_NAMES}\b|mapping\s*\()", re.IGNORECASE)

# Slot or parameter begins with a type or a data location keyword.
TYPED_SLOT_RE = re.compile(
    rf"^(?:{TYPE_NAMES}\b|mapping\s*\(|struct\s+\w+|enum\s+\w+|(?:calldata|memory|storage)\b)",
    re.IGNORECASE,
)

# Any type keyword anywhere on the line.
TYPE_ANYWHERE_RE = re.compile(
    rf"\b(?:{TYPE_NAMES}|mapping)\b|\bstruct\s+\w+|\benum\s+\w+", re.IGNORECASE
)

MODIFIER_KEYWORDS = frozenset({
    "public",
    "private",
    "internal",
    "external",
    "view",
    "pure",
    "payable",
    "constant",
    "immutable",
    "memory",
    "storage",
    "calldata",
})

IDENTIFIER_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
ARRAY_TOKEN_RE = re.compile(r"\[.*\]$")

_MAPPING_OPEN_RE = re.compile(r"\bmapping\s*\(", re.IGNORECASE)


# ── Comment handling ──────────────────────────────────────────────────────────

def strip_inline_comments(line: str) -> str:
    """
    Return the part of `line` before the first `//` or `/*` marker.
    Block comments opened on earlier lines are not tracked.
    """
    cut = len(line)
    for marker in ("//", "/*"):
        idx = line.find(marker)
        if idx != -1 and idx < cut:
            cut = idx
    return line[:cut]


def code_text(line: str) -> str:
    """Comment-stripped, whitespace-trimmed line."""
    return strip_inline_comments(line).strip()


def is_comment_or_blank(text: str) -> bool:
    t = text.strip()
    return t == "" or t.startswith("//") or t.startswith("/*")


def last_code_char_index(line: str) -> int:
    """Index of the last non-space/tab character of the comment-stripped line."""
    code_part = strip_inline_comments(line)
    for k in range(len(code_part) - 1, -1, -1):
        if code_part[k] not in (" ", "\t"):
            return k
    return max(0, len(code_part) - 1)


def ends_terminated(text: str) -> bool:
    """True when trimmed code ends in `;`, `{` or `}`."""
    return text.endswith((";", "{", "}"))


# ── Patterns ──────────────────────────────────────────────────────────────────

def compile_pattern(pattern: Optional[str]) -> Optional[re.Pattern]:
    """
    Compile a user supplied naming pattern. Returns None for an empty or
    malformed pattern; the caller then skips that naming check.
    """
    if not pattern:
        return None
    try:
        return re.compile(pattern)
    except (re.error, TypeError) as exc:
        logger.warning(f"[Normalizer] Ignoring invalid naming pattern {pattern!r}: {exc}")
        return None


def collapse_mappings(text: str) -> str:
    """
    Replace every `mapping(...)` segment (nested ones included) with the word
    `mapping` padded with spaces, so token offsets still point into `text`.
    """
    out = text
    pos = 0
    while True:
        m = _MAPPING_OPEN_RE.search(out, pos)
        if not m:
            return out
        depth = 0
        end = len(out)
        for k in range(m.end() - 1, len(out)):
            if out[k] == "(":
                depth += 1
            elif out[k] == ")":
                depth -= 1
                if depth == 0:
                    end = k + 1
                    break
        # Segment is at least "mapping(" long, so the padding never goes negative.
        out = out[: m.start()] + "mapping".ljust(end - m.start()) + out[end:]
        pos = m.start() + len("mapping")


def tokens_with_offsets(text: str) -> list[tuple[str, int]]:
    """Whitespace separated tokens of `text` with their start offsets."""
    return [(m.group(0), m.start()) for m in re.finditer(r"\S+", text)]


# ── Sliding window over the line array ────────────────────────────────────────

class LineWindow:
    """
    Bounded cursor over a document's lines, used for statement continuation:
    at most `lookback` lines backwards, forward until the next non-blank line.
    """

    def __init__(self, lines: list[str], lookback: int = 5):
        self.lines = lines
        self.lookback = lookback

    def next_code_line(self, index: int) -> Optional[str]:
        """First non-blank comment-stripped line after `index`, or None."""
        for k in range(index + 1, len(self.lines)):
            text = code_text(self.lines[k])
            if text:
                return text
        return None

    def previous_code_lines(self, index: int) -> Iterator[str]:
        """Comment-stripped non-blank lines before `index`, nearest first."""
        stop = max(0, index - self.lookback)
        for k in range(index - 1, stop - 1, -1):
            text = code_text(self.lines[k])
            if is_comment_or_blank(text):
                continue
            yield text
