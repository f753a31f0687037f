# autoflow/core/dispatcher.py
from __future__ import annotations

"""Remote dispatcher
--------------------
Client for the execution backend's single endpoint. One attempt per run:
anything short of a well-formed 2xx response raises DispatchError and the
engine decides what happens next.
"""

import asyncio
from typing import Optional

import requests
from pydantic import ValidationError

from autoflow.core.contract import RUN_AUTOMATION_PATH, AutomationRequest, AutomationResponse, build_request
from autoflow.core.directory import ElementDirectory
from autoflow.core.errors import DispatchError
from autoflow.core.models import Workflow
from autoflow.utils.logger import get_logger, log_with_context
from autoflow.utils.timing import Stopwatch


class RemoteDispatcher:
    def __init__(
        self,
        directory: ElementDirectory,
        base_url: str,
        timeout_s: float = 120.0,
        session: Optional[requests.Session] = None,
    ):
        self.directory = directory
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s
        self.session = session or requests.Session()
        self.log = get_logger(__name__)

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}{RUN_AUTOMATION_PATH}"

    def post(self, request: AutomationRequest) -> AutomationResponse:
        """Blocking POST of one run request."""
        log = log_with_context(self.log, workflow_id=request.workflow_id, endpoint=self.endpoint)
        body = request.model_dump(mode="json", by_alias=True)
        with Stopwatch() as sw:
            try:
                resp = self.session.post(self.endpoint, json=body, timeout=self.timeout_s)
            except requests.RequestException as e:
                log.warning(f"Dispatch failed after {sw.elapsed_ms()} ms: {e!r}")
                raise DispatchError(f"Network error: {e}") from e

        if not 200 <= resp.status_code < 300:
            log.warning(f"Backend answered HTTP {resp.status_code}")
            raise DispatchError(f"Server Error: {resp.status_code}", status_code=resp.status_code)

        try:
            result = AutomationResponse.model_validate(resp.json())
        except (ValueError, ValidationError) as e:
            # requests raises a ValueError subclass on a non-JSON body
            log.warning(f"Backend response was not a run result: {e}")
            raise DispatchError(f"Malformed backend response: {e}", status_code=resp.status_code) from e

        log.info(f"Backend reported {result.status} with {len(result.logs)} log line(s) in {sw.elapsed_ms()} ms")
        return result

    async def dispatch(self, workflow: Workflow) -> AutomationResponse:
        """Build the payload from `workflow` and send it without blocking the event loop."""
        request = build_request(workflow, self.directory)
        return await asyncio.to_thread(self.post, request)
