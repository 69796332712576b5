import threading
from unittest.mock import patch

import pytest

from solsentry import __version__
from solsentry.config import Settings
from solsentry.models import AnalyzeRequest, AnalyzeResponse
from solsentry.server import (
    DIAGNOSTIC_SOURCE,
    analyze_document,
    diagnostics_message,
    health_check,
)


@pytest.mark.asyncio
async def test_health_check():
    assert await health_check() == {"status": "ok", "service": "solsentry", "version": __version__}


def test_diagnostics_message_carries_findings():
    with patch("solsentry.server.get_settings", return_value=Settings()):
        msg = diagnostics_message("file:///a.sol", "require(tx.origin == owner);")

    assert msg["type"] == "diagnostics"
    assert msg["uri"] == "file:///a.sol"
    assert msg["source"] == DIAGNOSTIC_SOURCE
    assert [f["code"] for f in msg["findings"]] == ["TX_ORIGIN"]


def test_diagnostics_message_when_disabled():
    with patch("solsentry.server.get_settings", return_value=Settings(enable=False)):
        msg = diagnostics_message("file:///a.sol", "require(tx.origin == owner);")

    assert msg["findings"] == []


@pytest.mark.asyncio
async def test_analyze_endpoint_runs_in_worker_thread():
    seen = {}

    def fake_run_analysis(req):
        seen["thread"] = threading.current_thread()
        return AnalyzeResponse()

    with patch("solsentry.server.run_analysis", side_effect=fake_run_analysis):
        result = await analyze_document(AnalyzeRequest(text="contract A {}"))

    assert result == AnalyzeResponse()
    assert seen["thread"] is not threading.current_thread()
