"""
naming_rules.py — Identifier naming checks for function, variable and
contract/interface/library declarations.

Each check pulls one identifier out of a declaration-shaped line and then:
  1. first character must be a letter or `_`         → "Invalid ... identifier."
  2. nothing but whitespace may follow the identifier → "Invalid ... identifier."
  3. the identifier must satisfy the configured pattern → "Invalid ... identifier 'X'."

A category whose pattern is empty or does not compile is skipped entirely.
"""

from __future__ import annotations
import re
import logging
from typing import Optional

from solsentry.models import FindingCode
from solsentry.services.line_normalizer import (
    ARRAY_TOKEN_RE,
    IDENTIFIER_RE,
    MODIFIER_KEYWORDS,
    TYPE_NAMES,
    TYPE_PREFIX_RE,
    code_text,
    collapse_mappings,
    strip_inline_comments,
    tokens_with_offsets,
)
from solsentry.services.session import AnalysisSession

logger = logging.getLogger("solsentry.naming_rules")

FUNCTION_DECL_RE = re.compile(r"\bfunction\b([^(]*)\(")
CONTRACT_DECL_RE = re.compile(r"\b(contract|interface|library)\b([^{]*)\{")
INHERITANCE_RE = re.compile(r"\s+is\b")
CONSTANT_RE = re.compile(r"\b(constant|immutable)\b", re.IGNORECASE)
NOT_A_VARIABLE_RE = re.compile(
    r"^\s*(function|contract|interface|library|event|modifier|enum|struct)\b", re.IGNORECASE
)
TYPE_CAST_RE = re.compile(rf"^{TYPE_NAMES}\s*\(", re.IGNORECASE)
VARIABLE_DELIMITERS_RE = re.compile(r"[;={,)]")
# Event parameter keyword sitting between the type and the name.
PARAMETER_KEYWORDS = frozenset({"indexed"})
IDENTIFIER_START_RE = re.compile(r"[A-Za-z_]")


def _validate_identifier(
    session: AnalysisSession,
    i: int,
    segment: str,
    segment_start: int,
    pattern: Optional[re.Pattern],
    code: FindingCode,
    label: str,
) -> None:
    """Run the three identifier checks over `segment` (text up to the delimiter)."""
    first = len(segment) - len(segment.lstrip())
    first_abs = segment_start + first
    if first >= len(segment) or not IDENTIFIER_START_RE.match(segment[first]):
        session.push(i, first_abs, first_abs + 1, f"Invalid {label} identifier.", code)
        return

    name = IDENTIFIER_RE.match(segment, first).group(0)
    name_end = first_abs + len(name)
    rest = segment[first + len(name):]
    if rest.strip():
        session.push(i, first_abs, name_end, f"Invalid {label} identifier.", code)
    elif pattern is not None and not pattern.search(name):
        session.push(i, first_abs, name_end, f"Invalid {label} identifier '{name}'.", code)


def check_function_naming(session: AnalysisSession, i: int) -> None:
    """FUNCTION_NAMING: the name between `function` and `(`."""
    if session.naming is None or session.naming.function is None:
        return
    code = strip_inline_comments(session.lines[i])
    m = FUNCTION_DECL_RE.search(code)
    if not m:
        return
    _validate_identifier(session, i, m.group(1), m.start(1), session.naming.function,
                         FindingCode.FUNCTION_NAMING, "function")


def check_variable_naming(session: AnalysisSession, i: int) -> None:
    """
    VARIABLE_NAMING: first identifier after the type and its modifiers on a
    typed declaration line. `constant`/`immutable` selects the constant pattern.
    """
    if session.naming is None:
        return
    decl = code_text(session.lines[i])
    if not TYPE_PREFIX_RE.match(decl) or NOT_A_VARIABLE_RE.match(decl):
        return
    if TYPE_CAST_RE.match(decl):
        return

    pattern = session.naming.constant if CONSTANT_RE.search(decl) else session.naming.variable
    if pattern is None:
        return

    code = strip_inline_comments(session.lines[i])
    tokens = tokens_with_offsets(collapse_mappings(code))
    for tok, offset in tokens[1:]:
        if tok.lower() in MODIFIER_KEYWORDS or tok.lower() in PARAMETER_KEYWORDS:
            continue
        if ARRAY_TOKEN_RE.search(tok):
            continue
        delimiter = VARIABLE_DELIMITERS_RE.search(code, offset)
        end = delimiter.start() if delimiter else len(code)
        if end == offset:
            # token is only punctuation, e.g. a stray `=`
            continue
        _validate_identifier(session, i, code[offset:end], offset, pattern,
                             FindingCode.VARIABLE_NAMING, "variable")
        return


def check_contract_naming(session: AnalysisSession, i: int) -> None:
    """CONTRACT_NAMING: `contract|interface|library Name [is Base, ...] {`."""
    if session.naming is None or session.naming.contract is None:
        return
    code = strip_inline_comments(session.lines[i])
    m = CONTRACT_DECL_RE.search(code)
    if not m:
        return
    segment = INHERITANCE_RE.split(m.group(2), maxsplit=1)[0]
    _validate_identifier(session, i, segment, m.start(2), session.naming.contract,
                         FindingCode.CONTRACT_NAMING, "contract/interface/library")
