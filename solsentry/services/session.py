"""
Analysis session — call-scoped state shared by every rule.

One AnalysisSession is built per analyze() call and dropped afterwards.
Nothing here is module-level, so concurrent calls never share state.
"""

import re
import logging
from typing import Dict, List, Optional, Set, Tuple

from solsentry.models import (
    AnalyzerRules,
    CODE_SEVERITY,
    Finding,
    FindingCode,
    NamingConfig,
    Position,
    Range,
)
from solsentry.services.line_normalizer import LineWindow, compile_pattern

logger = logging.getLogger("solsentry.session")

_LINE_SPLIT_RE = re.compile(r"\r?\n")
_VALUE_TRANSFER_RE = re.compile(r"\.transfer\(|\.send\(|\.call\{.*value", re.IGNORECASE)


class FindingSink:
    """Ordered finding collection with a global cap and (line, start, end, code) dedup."""

    def __init__(self, max_findings: int) -> None:
        self.max_findings = max(0, max_findings)
        self.findings: List[Finding] = []
        self._reported: Set[Tuple[int, int, int, str]] = set()

    @property
    def full(self) -> bool:
        return len(self.findings) >= self.max_findings

    def push(
        self,
        line: int,
        start: int,
        end: int,
        message: str,
        code: FindingCode,
    ) -> bool:
        """Append a finding. Returns False when capped or already reported."""
        if self.full:
            return False
        key = (line, start, end, code.value)
        if key in self._reported:
            return False
        self._reported.add(key)
        self.findings.append(Finding(
            message=message,
            code=code,
            severity=CODE_SEVERITY[code],
            range=Range(
                start=Position(line=line, character=start),
                end=Position(line=line, character=end),
            ),
        ))
        return True


class NamingPatterns:
    """Compiled naming patterns; a None entry disables that check."""

    def __init__(self, naming: Optional[NamingConfig]) -> None:
        naming = naming or NamingConfig()
        self.function = compile_pattern(naming.function_pattern)
        self.variable = compile_pattern(naming.variable_pattern)
        self.constant = compile_pattern(naming.constant_pattern)
        self.contract = compile_pattern(naming.contract_pattern)


class AnalysisSession:
    """Everything one analysis call needs: input, config, sink and rule state."""

    def __init__(
        self,
        source: str,
        rules: AnalyzerRules,
        max_findings: int,
        naming: Optional[NamingConfig] = None,
    ) -> None:
        self.source = source
        self.lines: List[str] = _LINE_SPLIT_RE.split(source)
        self.rules = rules
        self.naming = NamingPatterns(naming) if naming is not None else None
        self.sink = FindingSink(max_findings)
        self.window = LineWindow(self.lines)

        # Names seen in a typed declaration so far.
        self.declared_identifiers: Set[str] = set()
        # Names flagged as type-less; dict keeps first-flagged order.
        self.missing_type_identifiers: Dict[str, None] = {}

        self.has_value_transfer = bool(_VALUE_TRANSFER_RE.search(source))

    def push(self, line: int, start: int, end: int, message: str, code: FindingCode) -> bool:
        return self.sink.push(line, start, end, message, code)

    def mark_missing_type(self, name: str) -> None:
        self.missing_type_identifiers.setdefault(name, None)

    @property
    def findings(self) -> List[Finding]:
        return self.sink.findings
