"""
security_rules.py — Single-line security pattern checks.

Each check looks at one comment-stripped line, reports the first match only
and highlights just the keyword (a leading `.` is skipped).
"""

from __future__ import annotations
import re

from solsentry.models import FindingCode
from solsentry.services.line_normalizer import strip_inline_comments
from solsentry.services.session import AnalysisSession

TX_ORIGIN_RE = re.compile(r"tx\.origin", re.IGNORECASE)
SELFDESTRUCT_RE = re.compile(r"(selfdestruct|suicide)\s*\(", re.IGNORECASE)
DELEGATECALL_RE = re.compile(r"\.delegatecall\s*\(", re.IGNORECASE)
CALL_VALUE_RE = re.compile(r"\.call\s*\{\s*value\s*:\s*", re.IGNORECASE)
LEGACY_CALL_VALUE_RE = re.compile(r"\.call\.value\s*\(", re.IGNORECASE)


def check_tx_origin(session: AnalysisSession, i: int) -> None:
    """TX_ORIGIN: origin-based authorization is spoofable through call chains."""
    m = TX_ORIGIN_RE.search(strip_inline_comments(session.lines[i]))
    if m:
        session.push(
            i, m.start(), m.end(),
            "Avoid using tx.origin for authorization. Use msg.sender instead.",
            FindingCode.TX_ORIGIN,
        )


def check_selfdestruct(session: AnalysisSession, i: int) -> None:
    """SELFDESTRUCT: `selfdestruct(` or the deprecated `suicide(`."""
    m = SELFDESTRUCT_RE.search(strip_inline_comments(session.lines[i]))
    if m:
        session.push(
            i, m.start(1), m.end(1),
            "selfdestruct can permanently remove contract code. "
            "Ensure this is intended and access controlled.",
            FindingCode.SELFDESTRUCT,
        )


def check_delegatecall(session: AnalysisSession, i: int) -> None:
    """DELEGATECALL: callee code runs against the caller's storage."""
    m = DELEGATECALL_RE.search(strip_inline_comments(session.lines[i]))
    if m:
        idx = m.start() + 1
        session.push(
            i, idx, idx + len("delegatecall"),
            "delegatecall can lead to unexpected context changes. Validate target and data.",
            FindingCode.DELEGATECALL,
        )


def check_low_level_call_value(session: AnalysisSession, i: int) -> None:
    """LOW_LEVEL_CALL_VALUE: `.call{value: ...}` or pre-0.6 `.call.value(`."""
    code = strip_inline_comments(session.lines[i])
    m = CALL_VALUE_RE.search(code) or LEGACY_CALL_VALUE_RE.search(code)
    if m:
        idx = m.start() + 1
        width = len("call.value") if "call.value" in m.group(0).lower() else len("call{value:")
        session.push(
            i, idx, min(idx + width, m.end()),
            "Low-level call with value can introduce reentrancy. "
            "Use Checks-Effects-Interactions and consider .transfer/.send limitations.",
            FindingCode.LOW_LEVEL_CALL_VALUE,
        )
