from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from starlette.concurrency import run_in_threadpool
from starlette.websockets import WebSocketState
from fastapi.middleware.cors import CORSMiddleware
import uvicorn
import os
import logging
import uuid

from . import __version__
from .config import get_settings
from .debounce import DocumentDebouncer
from .models import AnalyzeRequest, AnalyzeResponse
from .router import route_request, run_analysis

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("solsentry.server")

DIAGNOSTIC_SOURCE = "Solidity Static Analyzer"
DOCUMENT_EVENTS = {"open", "change", "save"}

app = FastAPI(title="Solsentry")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def health_check():
    return {"status": "ok", "service": "solsentry", "version": __version__}


@app.post("/analyze", response_model=AnalyzeResponse)
async def analyze_document(req: AnalyzeRequest) -> AnalyzeResponse:
    return await run_in_threadpool(run_analysis, req)


def diagnostics_message(uri: str, text: str) -> dict:
    settings = get_settings()
    findings = []
    if settings.enable:
        result = run_analysis(AnalyzeRequest(text=text), settings)
        findings = [f.to_dict() for f in result.findings]
    return {
        "type": "diagnostics",
        "uri": uri,
        "source": DIAGNOSTIC_SOURCE,
        "findings": findings,
    }


@app.websocket("/ws/analyze")
async def analyze_ws(ws: WebSocket):
    await ws.accept()
    logger.info("Client connected")
    debouncer = DocumentDebouncer(get_settings().debounce_ms)

    async def send(msg: dict):
        try:
            if ws.client_state == WebSocketState.CONNECTED:
                await ws.send_json(msg)
        except Exception as e:
            logger.error(f"Failed to send diagnostics: {e}")

    try:
        while True:
            msg = await ws.receive_json()
            event = msg.get("type")

            if event in DOCUMENT_EVENTS:
                uri = msg.get("uri") or f"untitled:{uuid.uuid4().hex[:8]}"
                text = msg.get("text", "")

                async def publish(uri=uri, text=text):
                    await send(await run_in_threadpool(diagnostics_message, uri, text))

                if event == "change":
                    debouncer.schedule(uri, publish)
                else:
                    debouncer.cancel(uri)
                    await publish()
            else:
                response = await route_request(msg)
                await ws.send_json(response)

    except WebSocketDisconnect:
        logger.info("Client disconnected")
    except Exception as e:
        logger.error(f"WebSocket fatal error: {e}")
        if ws.client_state == WebSocketState.CONNECTED:
            await ws.send_json({
                "type": "error",
                "error": {"code": "FATAL", "message": str(e)}
            })
    finally:
        debouncer.cancel_all()


if __name__ == "__main__":
    port = int(os.getenv("PORT", 3000))
    uvicorn.run("solsentry.server:app", host="0.0.0.0", port=port, reload=True)
