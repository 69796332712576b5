from solsentry.config import DEFAULT_NAMING, Settings, load_settings


def test_defaults_without_environment():
    settings = load_settings({})
    assert settings.enable is True
    assert settings.max_problems == 100
    assert settings.use_ast is False
    assert settings.debounce_ms == 300
    assert all(getattr(settings.rules, name) for name in type(settings.rules).model_fields)
    assert settings.naming.function_pattern == DEFAULT_NAMING["function_pattern"]
    assert settings.naming.contract_pattern == DEFAULT_NAMING["contract_pattern"]


def test_environment_overrides():
    settings = load_settings({
        "SOLSENTRY_ENABLE": "false",
        "SOLSENTRY_MAX_PROBLEMS": "5",
        "SOLSENTRY_USE_AST": "yes",
        "SOLSENTRY_DEBOUNCE_MS": "50",
        "SOLSENTRY_RULE_TX_ORIGIN": "0",
        "SOLSENTRY_RULE_MISSING_PAYABLE": "off",
        "SOLSENTRY_FUNCTION_PATTERN": "^[a-z]+$",
    })
    assert settings.enable is False
    assert settings.max_problems == 5
    assert settings.use_ast is True
    assert settings.debounce_ms == 50
    assert settings.rules.tx_origin is False
    assert settings.rules.missing_payable is False
    assert settings.rules.selfdestruct is True
    assert settings.naming.function_pattern == "^[a-z]+$"


def test_malformed_values_fall_back_to_defaults():
    settings = load_settings({
        "SOLSENTRY_MAX_PROBLEMS": "lots",
        "SOLSENTRY_ENABLE": "maybe",
    })
    assert settings.max_problems == 100
    assert settings.enable is True


def test_settings_model_defaults_match_loader():
    assert Settings() == load_settings({})
