# autoflow/core/contract.py
from __future__ import annotations

"""Execution backend wire contract
----------------------------------
JSON bodies of `POST /api/run-automation`. Field names on the wire are
camelCase; Python code uses snake_case.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from autoflow.core.directory import ElementDirectory
from autoflow.core.models import LocatorType, RunStatus, Workflow

RUN_AUTOMATION_PATH = "/api/run-automation"


class StepPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    operation: str
    locator: str = ""
    # Kept as a plain string: an unknown scheme is the backend's error to report
    locator_type: str = Field(default=LocatorType.XPATH.value, alias="locatorType")
    value: str = ""


class AutomationRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    workflow_id: str = Field(..., alias="workflowId")
    steps: list[StepPayload] = Field(default_factory=list)


class AutomationResponse(BaseModel):
    status: Literal["SUCCESS", "FAILURE"]
    logs: list[str] = Field(default_factory=list)

    @property
    def run_status(self) -> RunStatus:
        return RunStatus(self.status)


def build_request(workflow: Workflow, directory: ElementDirectory) -> AutomationRequest:
    """
    Map each step to the wire shape, resolving its element into locator and
    locator type. Unresolved targets become an empty XPATH locator.
    """
    steps: list[StepPayload] = []
    for step in workflow.steps:
        element = directory.resolve(step.target_element_id)
        steps.append(
            StepPayload(
                operation=step.operation.value,
                locator=element.locator if element else "",
                locator_type=(element.locator_type.value if element else LocatorType.XPATH.value),
                value=step.value or "",
            )
        )
    return AutomationRequest(workflow_id=workflow.id, steps=steps)
