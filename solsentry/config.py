from dotenv import load_dotenv
from pydantic import BaseModel, Field
from typing import Mapping, Optional
import logging
import os

from solsentry.models import AnalyzerRules, NamingConfig

# Load environment variables explicitly
load_dotenv()

logger = logging.getLogger("solsentry.config")

ENV_PREFIX = "SOLSENTRY_"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}

# ─── Defaults (mirrors the editor extension settings) ───────────────────────
DEFAULT_MAX_PROBLEMS = 100
DEFAULT_DEBOUNCE_MS = 300
DEFAULT_NAMING = {
    "function_pattern": r"^[a-z_][a-zA-Z0-9_]*$",
    "variable_pattern": r"^[a-z_][a-zA-Z0-9_]*$",
    "constant_pattern": r"^[A-Z_][A-Z0-9_]*$",
    "contract_pattern": r"^[A-Z][a-zA-Z0-9]*$",
}


class Settings(BaseModel):
    enable: bool = True
    max_problems: int = DEFAULT_MAX_PROBLEMS
    use_ast: bool = False
    debounce_ms: int = DEFAULT_DEBOUNCE_MS
    rules: AnalyzerRules = Field(default_factory=AnalyzerRules)
    naming: NamingConfig = Field(default_factory=lambda: NamingConfig(**DEFAULT_NAMING))


def _env_bool(env: Mapping[str, str], key: str, default: bool) -> bool:
    raw = env.get(ENV_PREFIX + key)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    logger.warning(f"[Config] {ENV_PREFIX}{key}={raw!r} is not a boolean, using {default}")
    return default


def _env_int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(ENV_PREFIX + key)
    if raw is None:
        return default
    try:
        return int(raw.strip())
    except ValueError:
        logger.warning(f"[Config] {ENV_PREFIX}{key}={raw!r} is not an integer, using {default}")
        return default


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build Settings from SOLSENTRY_* environment variables.

        SOLSENTRY_ENABLE, SOLSENTRY_MAX_PROBLEMS, SOLSENTRY_USE_AST,
        SOLSENTRY_DEBOUNCE_MS, SOLSENTRY_RULE_<NAME> (e.g. RULE_TX_ORIGIN),
        SOLSENTRY_FUNCTION_PATTERN, SOLSENTRY_VARIABLE_PATTERN,
        SOLSENTRY_CONSTANT_PATTERN, SOLSENTRY_CONTRACT_PATTERN
    """
    env = os.environ if env is None else env

    rules = AnalyzerRules(**{
        name: _env_bool(env, f"RULE_{name.upper()}", True)
        for name in AnalyzerRules.model_fields
    })

    naming = NamingConfig(**{
        field: env.get(ENV_PREFIX + field.upper(), default)
        for field, default in DEFAULT_NAMING.items()
    })

    return Settings(
        enable=_env_bool(env, "ENABLE", True),
        max_problems=_env_int(env, "MAX_PROBLEMS", DEFAULT_MAX_PROBLEMS),
        use_ast=_env_bool(env, "USE_AST", False),
        debounce_ms=_env_int(env, "DEBOUNCE_MS", DEFAULT_DEBOUNCE_MS),
        rules=rules,
        naming=naming,
    )


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings
