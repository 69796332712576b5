import threading
from unittest.mock import patch

import pytest

from solsentry.config import Settings
from solsentry.models import AnalyzeResponse, AnalyzerRules
from solsentry.router import route_request


@pytest.mark.asyncio
async def test_route_analyze_action():
    request = {
        "request_id": "test-1",
        "action": "analyze",
        "payload": {"text": "require(tx.origin == owner);"}
    }
    response = await route_request(request, Settings())

    assert response["request_id"] == "test-1"
    assert response["type"] == "success"
    assert response["error"] is None
    findings = response["data"]["findings"]
    assert [f["code"] for f in findings] == ["TX_ORIGIN"]
    assert findings[0]["severity"] == "Warning"
    assert findings[0]["range"]["start"] == {"line": 0, "character": 8}
    assert response["data"]["summary"]["total"] == 1


@pytest.mark.asyncio
async def test_route_analyze_with_request_overrides():
    request = {
        "request_id": "test-2",
        "action": "analyze",
        "payload": {
            "text": "require(tx.origin == owner);",
            "rules": {"txOrigin": False},
        }
    }
    response = await route_request(request, Settings())
    assert response["type"] == "success"
    assert response["data"]["findings"] == []


@pytest.mark.asyncio
async def test_route_analyze_max_problems_zero():
    request = {
        "request_id": "test-3",
        "action": "analyze",
        "payload": {"text": "require(tx.origin == owner);", "maxProblems": 0}
    }
    response = await route_request(request, Settings())
    assert response["data"]["findings"] == []


@pytest.mark.asyncio
async def test_route_analyze_missing_text():
    request = {
        "request_id": "test-4",
        "action": "analyze",
        "payload": {}
    }
    response = await route_request(request, Settings())

    assert response["type"] == "error"
    assert response["data"] is None
    assert response["error"]["code"] == "INVALID_PAYLOAD"


@pytest.mark.asyncio
async def test_route_rules_action():
    settings = Settings(rules=AnalyzerRules(tx_origin=False))
    request = {"request_id": "test-5", "action": "rules", "payload": {}}
    response = await route_request(request, settings)

    rules = response["data"]["rules"]
    assert len(rules) == 14
    by_code = {r["code"]: r for r in rules}
    assert by_code["TX_ORIGIN"]["enabled"] is False
    assert by_code["TX_ORIGIN"]["severity"] == "Warning"
    assert by_code["MISSING_SEMICOLON"]["severity"] == "Error"


@pytest.mark.asyncio
async def test_route_unknown_action():
    request = {
        "request_id": "test-6",
        "action": "unknown_action",
        "payload": {}
    }
    response = await route_request(request, Settings())

    assert response["request_id"] == "test-6"
    assert response["type"] == "error"
    assert response["error"]["code"] == "UNKNOWN_ACTION"


@pytest.mark.asyncio
async def test_route_invalid_envelope():
    # action missing
    request = {
        "request_id": "test-7",
        "payload": {}
    }
    response = await route_request(request, Settings())

    assert response["type"] == "error"
    assert response["request_id"] == "test-7"
    assert response["error"]["code"] == "INTERNAL_ERROR"


@pytest.mark.asyncio
async def test_route_analyze_runs_in_worker_thread():
    seen = {}

    def fake_run_analysis(payload, settings):
        seen["thread"] = threading.current_thread()
        return AnalyzeResponse()

    request = {
        "request_id": "test-8",
        "action": "analyze",
        "payload": {"text": "contract A {}"}
    }
    with patch("solsentry.router.run_analysis", side_effect=fake_run_analysis):
        response = await route_request(request, Settings())

    assert response["type"] == "success"
    assert response["data"]["findings"] == []
    assert seen["thread"] is not threading.current_thread()
