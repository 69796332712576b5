from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool
from typing import Any, Dict, Optional
import logging

from .config import Settings, get_settings
from .models import (
    AnalyzeRequest,
    AnalyzeResponse,
    CODE_SEVERITY,
    MCPRequest,
    RULE_FLAG_FOR_CODE,
)
from .services.analyzer import analyze, summarize
from .utils.errors import error_response, success_response

logger = logging.getLogger("solsentry.router")


def run_analysis(req: AnalyzeRequest, settings: Optional[Settings] = None) -> AnalyzeResponse:
    """Analyze one document, request overrides taking precedence over settings."""
    settings = settings or get_settings()
    findings = analyze(
        req.text,
        rules=req.rules or settings.rules,
        max_findings=req.max_problems if req.max_problems is not None else settings.max_problems,
        naming=req.naming or settings.naming,
        use_assisted_parse=req.use_ast if req.use_ast is not None else settings.use_ast,
    )
    return AnalyzeResponse(findings=findings, summary=summarize(findings))


def describe_rules(settings: Optional[Settings] = None) -> list:
    settings = settings or get_settings()
    return [
        {
            "code": code.value,
            "severity": CODE_SEVERITY[code].value,
            "enabled": getattr(settings.rules, RULE_FLAG_FOR_CODE[code]),
        }
        for code in CODE_SEVERITY
    ]


async def route_request(raw_msg: dict, settings: Optional[Settings] = None) -> Dict[str, Any]:
    try:
        # Validate request structure
        req = MCPRequest(**raw_msg)

        logger.info(f"Routing request: {req.request_id} Action: {req.action}")

        if req.action == "analyze":
            try:
                payload = AnalyzeRequest(**req.payload)
            except ValidationError as e:
                return error_response(req.request_id, "INVALID_PAYLOAD", str(e))
            result = await run_in_threadpool(run_analysis, payload, settings)
            return success_response(req.request_id, result.model_dump(mode="json"))

        if req.action == "rules":
            return success_response(req.request_id, {"rules": describe_rules(settings)})

        # Default fallback for unknown actions
        return error_response(
            req.request_id,
            "UNKNOWN_ACTION",
            f"Unsupported action: {req.action}"
        )

    except Exception as e:
        logger.error(f"Routing error: {str(e)}")
        # If we can't parse the request_id, use "unknown" or try to retrieve it safely
        req_id = raw_msg.get("request_id", "unknown") if isinstance(raw_msg, dict) else "unknown"
        return error_response(
            req_id,
            "INTERNAL_ERROR",
            str(e)
        )
