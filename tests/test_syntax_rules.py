import unittest

from solsentry.models import AnalyzerRules, FindingCode
from solsentry.services.analyzer import SolidityAnalyzer


def _only(*flags):
    return AnalyzerRules(**{name: name in flags for name in AnalyzerRules.model_fields})


def _spans(findings):
    return [(f.range.start.line, f.range.start.character, f.range.end.character)
            for f in findings]


class TestMissingSemicolon(unittest.TestCase):
    def setUp(self):
        self.analyzer = SolidityAnalyzer()
        self.rules = _only("missing_semicolon")

    def run_rules(self, source):
        return self.analyzer.analyze(source, self.rules)

    def test_declaration_without_semicolon(self):
        findings = self.run_rules("uint public number")
        self.assertEqual(_spans(findings), [(0, 17, 18)])
        self.assertEqual(findings[0].message, "Missing semicolon at end of declaration.")
        self.assertEqual(findings[0].code, FindingCode.MISSING_SEMICOLON)

    def test_terminated_declaration(self):
        self.assertEqual(self.run_rules("uint public number; "), [])

    def test_mapping_declaration(self):
        line = "mapping(address => uint) balances"
        self.assertEqual(_spans(self.run_rules(line)), [(0, len(line) - 1, len(line))])

    def test_assignment_statement(self):
        findings = self.run_rules("    x = 5")
        self.assertEqual(_spans(findings), [(0, 8, 9)])
        self.assertEqual(findings[0].message, "Missing semicolon at end of statement.")

    def test_require_statement(self):
        self.assertEqual(_spans(self.run_rules("require(a > b)")), [(0, 13, 14)])

    def test_trailing_comment_after_semicolon(self):
        self.assertEqual(self.run_rules("x = 5; // done"), [])

    def test_multiline_tail(self):
        source = "\n".join([
            "function f() public {",
            "    bool ok = target.call(",
            "        abi.encode(1)",
            "    )",
            "}",
        ])
        self.assertEqual(_spans(self.run_rules(source)), [(3, 4, 5)])

    def test_continued_expression_is_not_a_tail(self):
        source = "\n".join([
            "uint total = add(",
            "    a,",
            "    b)",
            "    + 1;",
        ])
        self.assertEqual(self.run_rules(source), [])

    def test_dangling_identifier(self):
        source = "function f() public {\n    logic\n}"
        self.assertEqual(_spans(self.run_rules(source)), [(1, 8, 9)])


def test_missing_parentheses():
    source = "function f() public {\n    counter.\n}"
    findings = SolidityAnalyzer().analyze(source, _only("missing_parentheses"))
    assert _spans(findings) == [(1, 11, 12)]
    assert findings[0].message == "Missing parentheses for function call."


def test_missing_parentheses_skips_wrapped_argument():
    source = "foo(a,\n    amount)"
    assert SolidityAnalyzer().analyze(source, _only("missing_parentheses")) == []


def test_missing_parentheses_skips_assignment():
    assert SolidityAnalyzer().analyze("    x = y.", _only("missing_parentheses")) == []


def test_wrong_keyword_var():
    findings = SolidityAnalyzer().analyze("var count = 1;", _only("wrong_keywords"))
    assert _spans(findings) == [(0, 0, 4)]
    assert findings[0].message == "Use specific data type instead of 'var'"


def test_wrong_keyword_suicide():
    findings = SolidityAnalyzer().analyze("suicide(owner);", _only("wrong_keywords"))
    assert _spans(findings) == [(0, 0, 8)]


# ── Missing data type ─────────────────────────────────────────────────────────

def _data_type(source):
    findings = SolidityAnalyzer().analyze(source, _only("missing_data_type"))
    assert all(f.code == FindingCode.MISSING_DATA_TYPE for f in findings)
    return _spans(findings)


def test_untyped_assignment_and_later_use():
    source = "\n".join([
        "pragma solidity ^0.8.0;",
        "contract Counter {",
        "    function bump() public {",
        "        x = 5;",
        "        y = x + 1;",
        "    }",
        "}",
    ])
    assert _data_type(source) == [(3, 8, 9), (4, 8, 9), (4, 12, 13)]


def test_typed_state_variable_assignment_is_clean():
    source = "\n".join([
        "contract C {",
        "    uint256 total;",
        "    function f() public {",
        "        total = 1;",
        "    }",
        "}",
    ])
    assert _data_type(source) == []


def test_declared_name_not_flagged_but_untyped_use_is():
    assert _data_type("uint y;\nx = 5;\ny = x + 1;") == [(1, 0, 1), (2, 4, 5)]


def test_untyped_tuple_slots():
    assert _data_type("(success, data) = target.call(payload);") == [(0, 1, 8), (0, 10, 14)]


def test_typed_tuple_slots():
    assert _data_type("(bool success, ) = target.call(payload);") == []


def test_untyped_array_declaration():
    assert _data_type("[] values;") == [(0, 0, 2)]


def test_bare_declaration():
    assert _data_type("public number;") == [(0, 7, 13)]


def test_statement_words_are_not_declarations():
    assert _data_type("_;\nreturn;") == []


def test_untyped_parameter():
    assert _data_type("function set(value, uint256 other) public {") == [(0, 13, 18)]


def test_untyped_array_parameter():
    assert _data_type("function f([] memory words) public {") == [(0, 11, 13)]


def test_typed_array_parameters():
    source = "function f(string[] memory words, bytes32[] calldata ids) public {"
    assert _data_type(source) == []


def test_user_defined_type_parameter():
    assert _data_type("function f(IERC20 token) external {") == []


# ── Missing payable ───────────────────────────────────────────────────────────

PAYABLE_SOURCE = "\n".join([
    "contract Vault {",
    "    function withdraw() public {",
    "        payable(msg.sender).transfer(1 ether);",
    "    }",
    "    function deposit() public payable {",
    "    }",
    "    function balance() public view returns (uint256) {",
    "    }",
    "}",
])


def test_missing_payable_on_value_moving_document():
    findings = SolidityAnalyzer().analyze(PAYABLE_SOURCE, _only("missing_payable"))
    assert _spans(findings) == [(1, 4, 31)]
    assert findings[0].code == FindingCode.MISSING_PAYABLE
    assert findings[0].message == "Function that handles ETH should have 'payable' modifier."


def test_missing_payable_needs_value_transfer():
    source = PAYABLE_SOURCE.replace(".transfer(1 ether)", ".approve()")
    assert SolidityAnalyzer().analyze(source, _only("missing_payable")) == []


def test_wrapped_function_header_keywords_are_not_statements():
    source = "\n".join([
        "function total()",
        "    public",
        "    view",
        "    virtual",
        "    override",
        "    returns (uint256)",
        "{",
        "    return 1;",
        "}",
    ])
    assert SolidityAnalyzer().analyze(source, _only("missing_semicolon")) == []


def test_user_typed_state_variables_are_declared():
    source = "\n".join([
        "pragma solidity ^0.8.0;",
        "contract Vault {",
        "    enum State { Open, Closed }",
        "    State public state;",
        "    IERC20 public token;",
        "    constructor(IERC20 _token) {",
        "        state = State.Open;",
        "        token = _token;",
        "    }",
        "    function close() external {",
        "        state = State.Closed;",
        "        token.transfer(msg.sender, 1);",
        "    }",
        "}",
    ])
    assert _data_type(source) == []


def test_user_typed_declaration_with_initializer():
    assert _data_type("Order.Kind immutable kind = Order.Kind.Buy;\nkind = Order.Kind.Sell;") == []
