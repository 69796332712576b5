from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Optional, Dict, List
from enum import Enum


# ─── Service Protocol Models ─────────────────────────────────────────

class MCPRequest(BaseModel):
    request_id: str
    action: str
    payload: Dict[str, Any]
    context: Optional[Dict[str, Any]] = None


# ─── Findings ────────────────────────────────────────────────────────

class Severity(str, Enum):
    ERROR = "Error"
    WARNING = "Warning"
    INFORMATION = "Information"


class FindingCode(str, Enum):
    TX_ORIGIN = "TX_ORIGIN"
    SELFDESTRUCT = "SELFDESTRUCT"
    DELEGATECALL = "DELEGATECALL"
    LOW_LEVEL_CALL_VALUE = "LOW_LEVEL_CALL_VALUE"
    MISSING_SEMICOLON = "MISSING_SEMICOLON"
    MISSING_BRACES = "MISSING_BRACES"
    MISSING_PARENTHESES = "MISSING_PARENTHESES"
    MISSING_DATA_TYPE = "MISSING_DATA_TYPE"
    WRONG_KEYWORD = "WRONG_KEYWORD"
    MISSING_PAYABLE = "MISSING_PAYABLE"
    MISSING_RETURN = "MISSING_RETURN"
    FUNCTION_NAMING = "FUNCTION_NAMING"
    VARIABLE_NAMING = "VARIABLE_NAMING"
    CONTRACT_NAMING = "CONTRACT_NAMING"


# Fixed per code, never configurable.
CODE_SEVERITY: Dict[FindingCode, Severity] = {
    FindingCode.TX_ORIGIN: Severity.WARNING,
    FindingCode.SELFDESTRUCT: Severity.WARNING,
    FindingCode.DELEGATECALL: Severity.WARNING,
    FindingCode.LOW_LEVEL_CALL_VALUE: Severity.WARNING,
    FindingCode.MISSING_SEMICOLON: Severity.ERROR,
    FindingCode.MISSING_BRACES: Severity.ERROR,
    FindingCode.MISSING_PARENTHESES: Severity.ERROR,
    FindingCode.MISSING_DATA_TYPE: Severity.ERROR,
    FindingCode.WRONG_KEYWORD: Severity.WARNING,
    FindingCode.MISSING_PAYABLE: Severity.WARNING,
    FindingCode.MISSING_RETURN: Severity.ERROR,
    FindingCode.FUNCTION_NAMING: Severity.ERROR,
    FindingCode.VARIABLE_NAMING: Severity.ERROR,
    FindingCode.CONTRACT_NAMING: Severity.ERROR,
}


class Position(BaseModel):
    line: int
    character: int


class Range(BaseModel):
    start: Position
    end: Position


class Finding(BaseModel):
    message: str
    code: FindingCode
    severity: Severity
    range: Range

    @property
    def key(self) -> tuple:
        """Dedup key: (line, start, end, code)."""
        return (
            self.range.start.line,
            self.range.start.character,
            self.range.end.character,
            self.code.value,
        )

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


# ─── Analyzer Configuration ──────────────────────────────────────────

class AnalyzerRules(BaseModel):
    """One switch per rule. Accepts the editor setting names as aliases."""

    model_config = ConfigDict(populate_by_name=True)

    # Security
    tx_origin: bool = Field(True, alias="txOrigin")
    selfdestruct: bool = Field(True, alias="selfdestruct")
    delegatecall: bool = Field(True, alias="delegatecall")
    low_level_call_value: bool = Field(True, alias="lowLevelCallValue")

    # Syntax
    missing_semicolon: bool = Field(True, alias="missingSemicolon")
    missing_parentheses: bool = Field(True, alias="missingParentheses")
    missing_braces: bool = Field(True, alias="missingBraces")
    missing_return: bool = Field(True, alias="missingReturn")
    wrong_keywords: bool = Field(True, alias="wrongKeywords")
    missing_data_type: bool = Field(True, alias="missingDataType")
    missing_payable: bool = Field(True, alias="missingPayable")

    # Naming
    function_naming: bool = Field(True, alias="functionNaming")
    variable_naming: bool = Field(True, alias="variableNaming")
    contract_naming: bool = Field(True, alias="contractNaming")


# Which switch gates which code.
RULE_FLAG_FOR_CODE: Dict[FindingCode, str] = {
    FindingCode.TX_ORIGIN: "tx_origin",
    FindingCode.SELFDESTRUCT: "selfdestruct",
    FindingCode.DELEGATECALL: "delegatecall",
    FindingCode.LOW_LEVEL_CALL_VALUE: "low_level_call_value",
    FindingCode.MISSING_SEMICOLON: "missing_semicolon",
    FindingCode.MISSING_BRACES: "missing_braces",
    FindingCode.MISSING_PARENTHESES: "missing_parentheses",
    FindingCode.MISSING_DATA_TYPE: "missing_data_type",
    FindingCode.WRONG_KEYWORD: "wrong_keywords",
    FindingCode.MISSING_PAYABLE: "missing_payable",
    FindingCode.MISSING_RETURN: "missing_return",
    FindingCode.FUNCTION_NAMING: "function_naming",
    FindingCode.VARIABLE_NAMING: "variable_naming",
    FindingCode.CONTRACT_NAMING: "contract_naming",
}


class NamingConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    function_pattern: str = Field("", alias="functionPattern")
    variable_pattern: str = Field("", alias="variablePattern")
    constant_pattern: str = Field("", alias="constantPattern")
    contract_pattern: str = Field("", alias="contractPattern")


# ─── Analyze Request / Response ──────────────────────────────────────

class AnalyzeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    text: str
    rules: Optional[AnalyzerRules] = None
    max_problems: Optional[int] = Field(None, alias="maxProblems")
    naming: Optional[NamingConfig] = None
    use_ast: Optional[bool] = Field(None, alias="useAST")


class AnalyzeSummary(BaseModel):
    total: int = 0
    by_severity: Dict[str, int] = Field(default_factory=dict)
    by_code: Dict[str, int] = Field(default_factory=dict)


class AnalyzeResponse(BaseModel):
    findings: List[Finding] = Field(default_factory=list)
    summary: AnalyzeSummary = Field(default_factory=AnalyzeSummary)
