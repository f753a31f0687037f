"""
AutoFlow execution backend

FastAPI app implementing the run contract: accepts a workflow's resolved
steps, drives a Playwright browser through them, and answers with the
ordered log and a SUCCESS/FAILURE status.

Usage:
    autoflow serve-backend --port 8080
    # or
    python -m uvicorn autoflow.backend.server:app --host 127.0.0.1 --port 8080
"""

from typing import Optional

from fastapi import FastAPI

from autoflow.backend.actions import run_automation
from autoflow.core.contract import RUN_AUTOMATION_PATH, AutomationRequest, AutomationResponse
from autoflow.utils.config import get_settings

app = FastAPI(
    title="AutoFlow Execution Backend",
    description="Runs UI automation steps in a real browser",
    version="1.0.0",
)


@app.get("/health")
def health():
    return {"status": "ok"}


# Plain `def`: FastAPI runs it in a worker thread, which the sync Playwright API requires
@app.post(RUN_AUTOMATION_PATH, response_model=AutomationResponse)
def run_automation_endpoint(request: AutomationRequest) -> AutomationResponse:
    return run_automation(request, get_settings())


def serve(host: Optional[str] = None, port: Optional[int] = None) -> None:
    import uvicorn

    s = get_settings()
    uvicorn.run(app, host=host or s.BACKEND_HOST, port=port or s.BACKEND_PORT)
