"""
analyzer.py — Heuristic Solidity static analyzer.

Consumes raw source text plus a rule configuration and returns an ordered
list of findings, each anchored to a single-line character range.

Usage:
    from solsentry.services.analyzer import analyze

    findings = analyze(source, AnalyzerRules(), max_findings=100)
    # → [Finding(message=..., code=FindingCode.TX_ORIGIN, severity=..., range=...)]

Pass order:
    assisted parse (optional) → brace balance → per line, every enabled rule
    in RULES order. Findings share one sink: capped, deduplicated, stable.
"""

from __future__ import annotations
import logging
from collections import Counter
from typing import Callable, Optional

from solsentry.models import AnalyzeSummary, AnalyzerRules, Finding, NamingConfig
from solsentry.services.assisted_parse import (
    SyntaxTreeProvider,
    TreeSitterSolidityProvider,
    run_assisted_parse,
)
from solsentry.services.brace_validator import check_brace_balance
from solsentry.services.naming_rules import (
    check_contract_naming,
    check_function_naming,
    check_variable_naming,
)
from solsentry.services.security_rules import (
    check_delegatecall,
    check_low_level_call_value,
    check_selfdestruct,
    check_tx_origin,
)
from solsentry.services.session import AnalysisSession
from solsentry.services.syntax_rules import (
    check_dangling_identifier,
    check_declaration_terminator,
    check_missing_parentheses,
    check_missing_payable,
    check_multiline_tail,
    check_statement_terminator,
    check_type_less_uses,
    check_untyped_array_declaration,
    check_untyped_array_parameters,
    check_untyped_assignment,
    check_untyped_bare_declaration,
    check_untyped_parameters,
    check_untyped_tuple_slots,
    check_wrong_keywords,
    record_typed_declarations,
)

logger = logging.getLogger("solsentry.analyzer")

LineRule = Callable[[AnalysisSession, int], None]

DEFAULT_MAX_FINDINGS = 100


class SolidityAnalyzer:
    """
    Deterministic Solidity lint runner.

    Holds the ordered line-rule table and the optional tree provider.
    Zero shared state between calls: everything lives in AnalysisSession.
    """

    # (rule switch, check), executed in this order on every line.
    RULES: list[tuple[str, LineRule]] = [
        ("tx_origin",            check_tx_origin),
        ("selfdestruct",         check_selfdestruct),
        ("delegatecall",         check_delegatecall),
        ("low_level_call_value", check_low_level_call_value),
        ("missing_semicolon",    check_declaration_terminator),
        ("missing_semicolon",    check_statement_terminator),
        ("missing_semicolon",    check_multiline_tail),
        ("missing_semicolon",    check_dangling_identifier),
        ("missing_parentheses",  check_missing_parentheses),
        ("wrong_keywords",       check_wrong_keywords),
        ("missing_data_type",    record_typed_declarations),
        ("missing_data_type",    check_untyped_assignment),
        ("missing_data_type",    check_untyped_array_declaration),
        ("missing_data_type",    check_untyped_tuple_slots),
        ("missing_data_type",    check_untyped_bare_declaration),
        ("missing_data_type",    check_untyped_parameters),
        ("missing_data_type",    check_untyped_array_parameters),
        ("missing_data_type",    check_type_less_uses),
        ("missing_payable",      check_missing_payable),
        ("function_naming",      check_function_naming),
        ("variable_naming",      check_variable_naming),
        ("contract_naming",      check_contract_naming),
    ]

    def __init__(self, tree_provider: Optional[SyntaxTreeProvider] = None) -> None:
        self.tree_provider = tree_provider or TreeSitterSolidityProvider()

    def analyze(
        self,
        source: str,
        rules: Optional[AnalyzerRules] = None,
        max_findings: int = DEFAULT_MAX_FINDINGS,
        naming: Optional[NamingConfig] = None,
        use_assisted_parse: bool = False,
    ) -> list[Finding]:
        """
        Run every enabled rule over `source`.

        Args:
            source:             full document text
            rules:              rule switches; None enables everything
            max_findings:       global cap; negative or invalid means 0
            naming:             naming patterns; naming rules need this
            use_assisted_parse: try the grammar-aware pass first

        Returns:
            findings in rule/line execution order
        """
        session = AnalysisSession(
            source or "",
            rules or AnalyzerRules(),
            _coerce_cap(max_findings),
            naming,
        )

        if use_assisted_parse:
            run_assisted_parse(session, self.tree_provider)

        if session.rules.missing_braces:
            check_brace_balance(session)

        active = [(flag, fn) for flag, fn in self.RULES if getattr(session.rules, flag)]
        for i in range(len(session.lines)):
            if session.sink.full:
                break
            for flag, rule_fn in active:
                try:
                    rule_fn(session, i)
                except Exception as exc:
                    logger.warning(f"[Analyzer] Rule {rule_fn.__name__} raised on L{i}: {exc}")

        logger.debug(
            f"[Analyzer] {len(session.lines)} line(s) → {len(session.findings)} finding(s)"
        )
        return session.findings


def _coerce_cap(max_findings) -> int:
    try:
        return max(0, int(max_findings))
    except (TypeError, ValueError):
        return 0


def summarize(findings: list[Finding]) -> AnalyzeSummary:
    """Counts per severity and per code."""
    return AnalyzeSummary(
        total=len(findings),
        by_severity=dict(Counter(f.severity.value for f in findings)),
        by_code=dict(Counter(f.code.value for f in findings)),
    )


# ── Module-level singleton ────────────────────────────────────────────────────

_analyzer_instance: SolidityAnalyzer | None = None


def get_analyzer() -> SolidityAnalyzer:
    global _analyzer_instance
    if _analyzer_instance is None:
        _analyzer_instance = SolidityAnalyzer()
    return _analyzer_instance


def analyze(
    source: str,
    rules: Optional[AnalyzerRules] = None,
    max_findings: int = DEFAULT_MAX_FINDINGS,
    naming: Optional[NamingConfig] = None,
    use_assisted_parse: bool = False,
) -> list[Finding]:
    """Analyze `source` with the shared analyzer instance."""
    return get_analyzer().analyze(source, rules, max_findings, naming, use_assisted_parse)
