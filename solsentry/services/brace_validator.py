"""
brace_validator.py — Whole-document `{` / `}` balance check.

Runs once, before any line rule. Comments and string literals are NOT
stripped for this pass: every brace character counts.
"""

from __future__ import annotations
import logging

from solsentry.models import FindingCode
from solsentry.services.session import AnalysisSession

logger = logging.getLogger("solsentry.brace_validator")

MSG_EXTRA_CLOSING = "Extra closing brace."
MSG_MISSING_CLOSING = "Missing closing brace."


def check_brace_balance(session: AnalysisSession) -> None:
    """
    MISSING_BRACES: stack-based pairing of braces.

    - Only the first unmatched `}` is reported.
    - If any `{` is left open, one finding at the most recent unclosed `{`.
    """
    stack: list[tuple[int, int]] = []
    extra_closing_reported = False

    for i, line in enumerate(session.lines):
        for j, ch in enumerate(line):
            if ch == "{":
                stack.append((i, j))
            elif ch == "}":
                if stack:
                    stack.pop()
                elif not extra_closing_reported:
                    session.push(i, j, j + 1, MSG_EXTRA_CLOSING, FindingCode.MISSING_BRACES)
                    extra_closing_reported = True

    if stack:
        line_idx, col = stack[-1]
        logger.debug(f"[Braces] {len(stack)} unclosed brace(s), innermost at L{line_idx}:{col}")
        session.push(line_idx, col, col + 1, MSG_MISSING_CLOSING, FindingCode.MISSING_BRACES)
