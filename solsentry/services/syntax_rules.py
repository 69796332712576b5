"""
syntax_rules.py — Heuristic syntax checks for Solidity source lines.

There is no grammar here. Each check is a named predicate over one line,
sometimes widened by a bounded look at neighbouring lines through the
session's LineWindow (5 lines back, forward to the next non-blank line).

Checks:
  MISSING_SEMICOLON    declaration / statement / multi-line tail / dangling identifier
  MISSING_PARENTHESES  bare word followed by a single stray character
  WRONG_KEYWORD        `var` and `suicide(`
  MISSING_DATA_TYPE    untyped assignments, tuples, parameters, plus propagation
  MISSING_PAYABLE      function header in a document that transfers value
"""

from __future__ import annotations
import re
import logging

from solsentry.models import FindingCode
from solsentry.services.line_normalizer import (
    ARRAY_TOKEN_RE,
    IDENTIFIER_RE,
    MODIFIER_KEYWORDS,
    TYPE_ANYWHERE_RE,
    TYPE_PREFIX_RE,
    TYPE_TOKEN_RE,
    TYPED_SLOT_RE,
    code_text,
    collapse_mappings,
    ends_terminated,
    is_comment_or_blank,
    last_code_char_index,
    strip_inline_comments,
)
from solsentry.services.session import AnalysisSession

logger = logging.getLogger("solsentry.syntax_rules")

MSG_SEMICOLON_DECL = "Missing semicolon at end of declaration."
MSG_SEMICOLON_STMT = "Missing semicolon at end of statement."
MSG_PARENTHESES = "Missing parentheses for function call."
MSG_DATA_TYPE = "Missing data type declaration for variable."
MSG_PAYABLE = "Function that handles ETH should have 'payable' modifier."


# ── Patterns ──────────────────────────────────────────────────────────────────

ASSIGNMENT_START_RE = re.compile(r"^\s*\w+\s*=\s*[^=]")

STATEMENT_STARTERS = [
    ASSIGNMENT_START_RE,
    re.compile(r"^\s*(require|assert|revert)\s*\(", re.IGNORECASE),
    re.compile(r"^\s*(emit|return|break|continue)\b", re.IGNORECASE),
]

# Lines that may open a statement whose last physical line ends in `)`.
MULTILINE_STARTERS = [
    ASSIGNMENT_START_RE,
    re.compile(r"^\s*(require|assert|revert|emit|return)\b", re.IGNORECASE),
    re.compile(r"^\s*\([^)]*\)\s*="),   # (bool ok, ) = ...
    re.compile(r"^\s*\w+\.\w+\s*\("),   # target.delegatecall(
    re.compile(r"^\s*\w+\s*\("),        # helper(
]

# A following line starting with one of these begins a new construct.
NEW_CONSTRUCT_PREFIXES = (
    "require",
    "emit",
    "return",
    "}",
    "function",
    "contract",
    "modifier",
    "event",
    "struct",
    "enum",
)

MAPPING_RE = re.compile(r"\bmapping\s*\(", re.IGNORECASE)

SINGLE_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
NON_STATEMENT_WORD_RE = re.compile(
    r"^(?:function|modifier|event|struct|enum|contract|interface|library"
    r"|import|pragma|using|constructor|else|do|unchecked|assembly"
    r"|public|private|internal|external|view|pure|payable|virtual|override)\b",
    re.IGNORECASE,
)

MISSING_PARENS_RE = re.compile(r"^\s*\w+\s*[^\w(\s{;}]$")

WRONG_KEYWORDS = [
    (re.compile(r"\b(var\s+)", re.IGNORECASE), "Use specific data type instead of 'var'"),
    (re.compile(r"\b(suicide\s*\()", re.IGNORECASE), "'suicide' is deprecated, use 'selfdestruct'"),
]

FUNCTION_WORD_RE = re.compile(r"\bfunction\b", re.IGNORECASE)
UNTYPED_ASSIGN_RE = re.compile(r"(^\s*|[;{]\s*)([A-Za-z_][A-Za-z0-9_]*)\s*=(?!=)")
UNTYPED_ARRAY_DECL_RE = re.compile(r"(^\s*|[;{]\s*)(\[\s*\])\s*([A-Za-z_][A-Za-z0-9_]*)\s*(;|=)")
TUPLE_ASSIGN_RE = re.compile(r"\(([^()]*)\)\s*=(?!=)")
BARE_DECL_RE = re.compile(
    r"^\s*(?:(public|private|internal|external)\s+)?([A-Za-z_][A-Za-z0-9_]*)\s*;\s*$"
)
FUNCTION_PARAMS_RE = re.compile(r"\bfunction\b[^{(]*\(([^)]*)\)")
EMPTY_ARRAY_PARAM_RE = re.compile(
    r"^\s*(\[\s*\])\s*(?:memory|calldata|storage)?\s*[A-Za-z_][A-Za-z0-9_]*", re.IGNORECASE
)
EMPTY_ARRAY_IN_PARAMS_RE = re.compile(
    r"(\[\s*\])\s*(?:memory|calldata|storage)?\s*[A-Za-z_][A-Za-z0-9_]*", re.IGNORECASE
)
# `IERC20 token`, `Order memory order`: CapWords type followed by a name.
USER_TYPE_SLOT_RE = re.compile(r"^[A-Z][A-Za-z0-9_]*(?:\.[A-Za-z_]\w*)?(?:\[[^\]]*\])*\s+[A-Za-z_]")
LOCATED_DECL_RE = re.compile(
    r"\b[A-Za-z_]\w*(?:\[[^\]]*\])*\s+(?:memory|storage|calldata)\s+([A-Za-z_]\w*)"
)
TRAILING_ARRAY_RE = re.compile(r"(?:\[[^\]]*\])+$")
# `State public state;`, `IERC20 immutable token = ...`: contract/enum/struct typed.
USER_TYPED_DECL_RE = re.compile(
    r"^\s*[A-Z][A-Za-z0-9_]*(?:\.[A-Za-z_]\w*)?(?:\[[^\]]*\])*"
    r"(?:\s+(?:public|private|internal|external|constant|immutable|memory|storage|calldata))*"
    r"\s+([A-Za-z_]\w*)\s*(?:;|=(?!=))"
)

# Statement words that look like a bare `name;` declaration.
NON_DECLARATION_WORDS = frozenset({"_", "return", "break", "continue", "throw"})

FUNCTION_HEADER_RE = re.compile(
    r"\bfunction\s+\w+\s*\([^)]*\)\s*(?:(?:public|private|internal|external)\s*)?",
    re.IGNORECASE,
)
PAYABLE_RE = re.compile(r"\bpayable\b", re.IGNORECASE)
READ_ONLY_RE = re.compile(r"\b(?:view|pure)\b", re.IGNORECASE)


# ── Helpers ───────────────────────────────────────────────────────────────────

def _starts_with_type(text: str) -> bool:
    return bool(TYPED_SLOT_RE.match(text) or USER_TYPE_SLOT_RE.match(text))


def _continues_list(session: AnalysisSession, i: int, text: str) -> bool:
    """True for a line inside a multi-line parameter/argument list."""
    if text.endswith((",", "(")):
        return True
    following = session.window.next_code_line(i)
    return following is not None and following.startswith(")")


# ── MISSING_SEMICOLON ─────────────────────────────────────────────────────────

def check_declaration_terminator(session: AnalysisSession, i: int) -> None:
    """
    `uint public number` with no terminator: the line starts with a type,
    is not a function header and leaves an identifier unterminated.
    """
    line = session.lines[i]
    decl = code_text(line)
    if not TYPE_PREFIX_RE.match(decl):
        return
    if decl.startswith("function ") or " function " in decl:
        return
    if ends_terminated(decl) or _continues_list(session, i, decl):
        return
    # Parameter lists and casts carry parentheses; mappings are the exception.
    if "(" in decl and not MAPPING_RE.search(decl):
        return

    tokens = collapse_mappings(decl).split()
    for tok in tokens[1:]:
        if tok.lower() in MODIFIER_KEYWORDS:
            continue
        if TYPE_TOKEN_RE.match(tok) or ARRAY_TOKEN_RE.search(tok):
            continue
        if IDENTIFIER_RE.search(tok):
            idx = last_code_char_index(line)
            session.push(i, idx, idx + 1, MSG_SEMICOLON_DECL, FindingCode.MISSING_SEMICOLON)
            return


def check_statement_terminator(session: AnalysisSession, i: int) -> None:
    """Assignment, require/assert/revert, emit/return/break/continue without `;`."""
    line = session.lines[i]
    code = code_text(line)
    if is_comment_or_blank(code) or ends_terminated(code) or code.endswith((",", "(")):
        return
    if any(p.match(code) for p in STATEMENT_STARTERS):
        idx = last_code_char_index(line)
        session.push(i, idx, idx + 1, MSG_SEMICOLON_STMT, FindingCode.MISSING_SEMICOLON)


def check_multiline_tail(session: AnalysisSession, i: int) -> None:
    """
    Last physical line of a multi-line statement ends in `)` without `;`.

    The line is the tail only if the next non-blank line opens a new
    construct (or there is none). A starter is then searched for in the
    5 preceding lines, stopping at a terminated line or block delimiter.
    """
    line = session.lines[i]
    code = code_text(line)
    if is_comment_or_blank(code) or not code.endswith(")"):
        return

    following = session.window.next_code_line(i)
    if following is not None and not following.startswith(NEW_CONSTRUCT_PREFIXES):
        return

    for prev in session.window.previous_code_lines(i):
        if ends_terminated(prev):
            return
        if any(p.match(prev) for p in MULTILINE_STARTERS):
            idx = last_code_char_index(line)
            session.push(i, idx, idx + 1, MSG_SEMICOLON_STMT, FindingCode.MISSING_SEMICOLON)
            return


def check_dangling_identifier(session: AnalysisSession, i: int) -> None:
    """A line holding nothing but one identifier, e.g. a statement cut mid-edit."""
    line = session.lines[i]
    code = code_text(line)
    if not SINGLE_IDENTIFIER_RE.match(code):
        return
    if NON_STATEMENT_WORD_RE.match(code):
        return
    idx = last_code_char_index(line)
    session.push(i, idx, idx + 1, MSG_SEMICOLON_STMT, FindingCode.MISSING_SEMICOLON)


# ── MISSING_PARENTHESES ───────────────────────────────────────────────────────

def check_missing_parentheses(session: AnalysisSession, i: int) -> None:
    line = session.lines[i]
    trimmed = line.strip()
    if not MISSING_PARENS_RE.match(line):
        return
    if trimmed.endswith(","):
        return
    # Assignments and mapping/struct literals.
    if "=" in line or ":" in line:
        return
    # Closing line of a wrapped argument list, e.g. `    amount)`.
    previous = next(session.window.previous_code_lines(i), None)
    if previous is not None and previous.endswith((",", "(")):
        return
    idx = len(line) - 1
    session.push(i, idx, idx + 1, MSG_PARENTHESES, FindingCode.MISSING_PARENTHESES)


# ── WRONG_KEYWORD ─────────────────────────────────────────────────────────────

def check_wrong_keywords(session: AnalysisSession, i: int) -> None:
    code = strip_inline_comments(session.lines[i])
    for pattern, message in WRONG_KEYWORDS:
        m = pattern.search(code)
        if m:
            session.push(i, m.start(1), m.end(1), message, FindingCode.WRONG_KEYWORD)


# ── MISSING_DATA_TYPE ─────────────────────────────────────────────────────────

def record_typed_declarations(session: AnalysisSession, i: int) -> None:
    """
    Remember every identifier declared with a type on this line so a later
    plain assignment to it is not reported as untyped.
    """
    code = strip_inline_comments(session.lines[i])
    if FUNCTION_WORD_RE.search(code):
        return

    for m in LOCATED_DECL_RE.finditer(code):
        session.declared_identifiers.add(m.group(1))

    user_typed = USER_TYPED_DECL_RE.match(code)
    if user_typed:
        session.declared_identifiers.add(user_typed.group(1))

    if not TYPE_ANYWHERE_RE.search(code):
        return

    seen_type = False
    for raw in collapse_mappings(code).split():
        tok = raw[:-1] if raw[-1] in ",;{}()" else raw
        if not seen_type:
            if TYPE_TOKEN_RE.match(TRAILING_ARRAY_RE.sub("", tok)):
                seen_type = True
            continue
        if tok.lower() in MODIFIER_KEYWORDS:
            continue
        for part in re.split(r"[,;]+", tok):
            if IDENTIFIER_RE.fullmatch(part):
                session.declared_identifiers.add(part)


def check_untyped_assignment(session: AnalysisSession, i: int) -> None:
    """`name = ...` at statement start for a name never declared with a type."""
    code = strip_inline_comments(session.lines[i])
    for m in UNTYPED_ASSIGN_RE.finditer(code):
        name = m.group(2)
        if name in session.declared_identifiers:
            continue
        session.push(i, m.start(2), m.end(2), MSG_DATA_TYPE, FindingCode.MISSING_DATA_TYPE)
        session.mark_missing_type(name)


def check_untyped_array_declaration(session: AnalysisSession, i: int) -> None:
    """`[] name;` / `[] name = ...`, flagged at the brackets."""
    code = strip_inline_comments(session.lines[i])
    for m in UNTYPED_ARRAY_DECL_RE.finditer(code):
        session.push(i, m.start(2), m.end(2), MSG_DATA_TYPE, FindingCode.MISSING_DATA_TYPE)


def check_untyped_tuple_slots(session: AnalysisSession, i: int) -> None:
    """`(success, data) = ...`: every slot without a leading type."""
    code = strip_inline_comments(session.lines[i])
    m = TUPLE_ASSIGN_RE.search(code)
    if not m:
        return
    cursor = m.start(1)
    for raw in m.group(1).split(","):
        slot = raw.strip()
        if slot and not _starts_with_type(slot):
            ident = IDENTIFIER_RE.search(raw)
            if ident and ident.group(0) not in session.declared_identifiers:
                start = cursor + ident.start()
                session.push(i, start, start + len(ident.group(0)), MSG_DATA_TYPE,
                             FindingCode.MISSING_DATA_TYPE)
                session.mark_missing_type(ident.group(0))
        cursor += len(raw) + 1


def check_untyped_bare_declaration(session: AnalysisSession, i: int) -> None:
    """`number;` or `public number;` with no type keyword anywhere."""
    code = strip_inline_comments(session.lines[i])
    m = BARE_DECL_RE.match(code)
    if not m or TYPE_ANYWHERE_RE.search(code):
        return
    name = m.group(2)
    if name in NON_DECLARATION_WORDS:
        return
    session.push(i, m.start(2), m.end(2), MSG_DATA_TYPE, FindingCode.MISSING_DATA_TYPE)
    session.mark_missing_type(name)


def check_untyped_parameters(session: AnalysisSession, i: int) -> None:
    """Parameters of a single-line function header that do not start with a type."""
    code = strip_inline_comments(session.lines[i])
    m = FUNCTION_PARAMS_RE.search(code)
    if not m:
        return
    cursor = m.start(1)
    for raw in m.group(1).split(","):
        param = raw.strip()
        if param:
            empty_array = EMPTY_ARRAY_PARAM_RE.match(raw)
            if empty_array:
                session.push(i, cursor + empty_array.start(1), cursor + empty_array.end(1),
                             MSG_DATA_TYPE, FindingCode.MISSING_DATA_TYPE)
            elif not _starts_with_type(param):
                ident = IDENTIFIER_RE.search(raw)
                if ident:
                    start = cursor + ident.start()
                    session.push(i, start, start + len(ident.group(0)), MSG_DATA_TYPE,
                                 FindingCode.MISSING_DATA_TYPE)
                    session.mark_missing_type(ident.group(0))
        cursor += len(raw) + 1


def check_untyped_array_parameters(session: AnalysisSession, i: int) -> None:
    """
    Any `[] name` inside the parameter list whose brackets do not follow an
    element type (`string[]`, `bytes32[]`, `uint[][]` are fine).
    """
    code = strip_inline_comments(session.lines[i])
    m = FUNCTION_PARAMS_RE.search(code)
    if not m:
        return
    params = m.group(1)
    base = m.start(1)
    for arr in EMPTY_ARRAY_IN_PARAMS_RE.finditer(params):
        k = arr.start(1) - 1
        while k >= 0 and params[k].isspace():
            k -= 1
        if k >= 0 and re.match(r"[A-Za-z0-9_\]]", params[k]):
            continue
        session.push(i, base + arr.start(1), base + arr.end(1), MSG_DATA_TYPE,
                     FindingCode.MISSING_DATA_TYPE)


def check_type_less_uses(session: AnalysisSession, i: int) -> None:
    """Every later use of an identifier already flagged as untyped."""
    if not session.missing_type_identifiers:
        return
    code = strip_inline_comments(session.lines[i])
    for name in list(session.missing_type_identifiers):
        m = re.search(rf"\b{re.escape(name)}\b", code)
        if m:
            session.push(i, m.start(), m.end(), MSG_DATA_TYPE, FindingCode.MISSING_DATA_TYPE)


# ── MISSING_PAYABLE ───────────────────────────────────────────────────────────

def check_missing_payable(session: AnalysisSession, i: int) -> None:
    """
    Function header without `payable` in a document that moves value
    (`.transfer(`, `.send(`, `.call{value: ...}`) anywhere. Read-only
    (view/pure) functions cannot be payable and are left alone.
    """
    if not session.has_value_transfer:
        return
    code = strip_inline_comments(session.lines[i])
    m = FUNCTION_HEADER_RE.search(code)
    if not m or PAYABLE_RE.search(code):
        return
    # view/pure cannot be combined with payable, so those headers are never reported.
    if READ_ONLY_RE.search(code):
        return
    # Range covers the whole header match, trailing whitespace included.
    session.push(i, m.start(), m.end(), MSG_PAYABLE, FindingCode.MISSING_PAYABLE)
