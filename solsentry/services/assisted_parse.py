"""
Assisted parse — optional grammar-aware pass run before the heuristics.

A SyntaxTreeProvider turns source text into a concrete syntax tree or
raises. The tree-sitter provider loads the Solidity grammar from
`tree-sitter-language-pack` (install the `ast` extra). When the provider
cannot be loaded the engine carries on with heuristics only.

Nodes are expected to expose `type`, `start_byte`, `end_byte`,
`start_point` (row, column in bytes), `children`/`named_children` and
`child_by_field_name()`, as py-tree-sitter nodes do.
"""

import re
import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Iterator, Optional

from solsentry.models import FindingCode
from solsentry.services.session import AnalysisSession

logger = logging.getLogger("solsentry.assisted_parse")

FUNCTION_NODE_TYPES = {"function_definition", "function_declaration"}
RETURN_NODE_TYPE = "return_statement"
_RETURNS_RE = re.compile(r"\breturns\s*\(", re.IGNORECASE)

MSG_MISSING_RETURN = "Missing return statement in function with return type."


class AssistedParseUnavailable(RuntimeError):
    """The external parser is not installed or its grammar failed to load."""


class SyntaxTreeProvider(ABC):
    """Parses source into a concrete syntax tree, or raises."""

    name: str = "base"

    @abstractmethod
    def parse(self, source: str) -> Any:
        raise NotImplementedError


class TreeSitterSolidityProvider(SyntaxTreeProvider):
    """tree-sitter with the Solidity grammar, loaded on first use."""

    name = "tree-sitter-solidity"

    def __init__(self) -> None:
        self._parser = None
        self._lock = threading.Lock()

    def _load(self):
        if self._parser is not None:
            return self._parser
        try:
            from tree_sitter_language_pack import get_parser
        except ImportError as exc:
            raise AssistedParseUnavailable(
                "tree-sitter-language-pack is not installed (pip install solsentry[ast])"
            ) from exc
        try:
            self._parser = get_parser("solidity")
        except Exception as exc:
            raise AssistedParseUnavailable(f"Solidity grammar failed to load: {exc}") from exc
        return self._parser

    def parse(self, source: str) -> Any:
        # One parser object is shared by concurrent analyze() calls.
        with self._lock:
            return self._load().parse(source.encode("utf-8"))


# ── Tree helpers ──────────────────────────────────────────────────────────────

def _children(node: Any) -> list:
    return list(getattr(node, "named_children", None) or getattr(node, "children", None) or [])


def _walk(root: Any) -> Iterator[Any]:
    """Pre-order traversal without recursion."""
    stack = [root]
    while stack:
        node = stack.pop()
        if node is None:
            continue
        yield node
        stack.extend(reversed(_children(node)))


def _contains_return(node: Any) -> bool:
    return any(n.type == RETURN_NODE_TYPE for n in _walk(node))


def _function_body(node: Any) -> Optional[Any]:
    getter = getattr(node, "child_by_field_name", None)
    body = getter("body") if getter else None
    if body is not None:
        return body
    for child in _children(node):
        if child.type == "function_body":
            return child
    return None


def _char_column(source_bytes: bytes, row: int, byte_column: int) -> int:
    """tree-sitter columns are byte offsets; findings use character offsets."""
    lines = source_bytes.split(b"\n")
    if row >= len(lines):
        return byte_column
    return len(lines[row][:byte_column].decode("utf-8", errors="ignore"))


# ── Checks ────────────────────────────────────────────────────────────────────

def collect_missing_returns(tree: Any, session: AnalysisSession) -> int:
    """
    MISSING_RETURN: a function whose header declares `returns (` but whose
    body holds no return statement. Declarations without a body are skipped.
    Returns the number of findings added.
    """
    source_bytes = session.source.encode("utf-8")
    root = getattr(tree, "root_node", tree)
    added = 0
    for node in _walk(root):
        if node.type not in FUNCTION_NODE_TYPES:
            continue
        body = _function_body(node)
        if body is None:
            continue
        header = source_bytes[node.start_byte:body.start_byte].decode("utf-8", errors="ignore")
        if not _RETURNS_RE.search(header):
            continue
        if _contains_return(body):
            continue
        row, byte_col = node.start_point[0], node.start_point[1]
        col = _char_column(source_bytes, row, byte_col)
        if session.push(row, col, col + 1, MSG_MISSING_RETURN, FindingCode.MISSING_RETURN):
            added += 1
    return added


def run_assisted_parse(session: AnalysisSession, provider: SyntaxTreeProvider) -> bool:
    """
    Run the grammar-aware checks. Returns False when the tree could not be
    built, which callers treat the same as the feature being switched off.
    """
    try:
        tree = provider.parse(session.source)
    except AssistedParseUnavailable as exc:
        logger.debug(f"[AssistedParse] {provider.name} unavailable: {exc}")
        return False
    except Exception as exc:
        logger.warning(f"[AssistedParse] {provider.name} failed to parse: {exc}")
        return False

    try:
        if session.rules.missing_return:
            added = collect_missing_returns(tree, session)
            logger.debug(f"[AssistedParse] {added} missing return(s) found")
    except Exception as exc:
        logger.warning(f"[AssistedParse] tree walk failed: {exc}")
        return False
    return True
