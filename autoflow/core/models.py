# autoflow/core/models.py
from __future__ import annotations

"""Workflow data model
----------------------
Pydantic models for elements, steps and workflows, plus the tagged step
updates used by the builder. Shapes are shared by the store, the directory
and the execution engine.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError, field_validator


def new_id() -> str:
    """Opaque identifier for elements, steps and workflows."""
    return uuid.uuid4().hex[:12]


# ---------- Core enums ----------


class OperationType(str, Enum):
    OPEN_URL = "OPEN_URL"
    CLICK = "CLICK"
    INPUT = "INPUT"
    WAIT = "WAIT"
    ASSERT_TEXT = "ASSERT_TEXT"
    CONFIRM_MODAL = "CONFIRM_MODAL"


# Operations that never act on a located element
ELEMENTLESS_OPERATIONS = frozenset({OperationType.OPEN_URL, OperationType.WAIT, OperationType.CONFIRM_MODAL})


class LocatorType(str, Enum):
    ID = "ID"
    CSS = "CSS"
    XPATH = "XPATH"


class RunStatus(str, Enum):
    NONE = "NONE"
    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"


# ---------- Element ----------


class Element(BaseModel):
    id: str = Field(default_factory=new_id)
    name: str
    locator: str = Field(..., description="e.g. //div[@id='btn'] or #btn")
    locator_type: LocatorType = Field(default=LocatorType.XPATH)
    description: Optional[str] = None

    @field_validator("name", "locator")
    @classmethod
    def _non_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("cannot be empty")
        return v


# ---------- Step / Workflow ----------


class Step(BaseModel):
    id: str = Field(default_factory=new_id)
    operation: OperationType = OperationType.CLICK
    target_element_id: Optional[str] = Field(default=None, description="Resolved lazily against the element directory")
    value: Optional[str] = Field(default=None, description="URL, wait ms, text to type or expected text")
    description: Optional[str] = None

    @property
    def targets_element(self) -> bool:
        return self.operation not in ELEMENTLESS_OPERATIONS


class Workflow(BaseModel):
    id: str = Field(default_factory=new_id)
    name: str = ""
    steps: list[Step] = Field(default_factory=list)
    last_run_status: RunStatus = RunStatus.NONE
    last_run_date: Optional[datetime] = None

    def step_index(self, step_id: str) -> Optional[int]:
        for idx, st in enumerate(self.steps):
            if st.id == step_id:
                return idx
        return None


# ---------- Step updates (discriminated union by 'field') ----------


class SetOperation(BaseModel):
    field: Literal["operation"] = "operation"
    operation: OperationType

    def apply(self, step: Step) -> Step:
        return step.model_copy(update={"operation": self.operation})


class SetTarget(BaseModel):
    field: Literal["target"] = "target"
    target_element_id: Optional[str] = None

    def apply(self, step: Step) -> Step:
        return step.model_copy(update={"target_element_id": self.target_element_id})


class SetValue(BaseModel):
    field: Literal["value"] = "value"
    value: Optional[str] = None

    def apply(self, step: Step) -> Step:
        return step.model_copy(update={"value": self.value})


class SetDescription(BaseModel):
    field: Literal["description"] = "description"
    description: Optional[str] = None

    def apply(self, step: Step) -> Step:
        return step.model_copy(update={"description": self.description})


StepUpdate = Annotated[
    Union[SetOperation, SetTarget, SetValue, SetDescription],
    Field(discriminator="field"),
]

_STEP_UPDATE = TypeAdapter(StepUpdate)


def parse_step_update(data: dict) -> SetOperation | SetTarget | SetValue | SetDescription:
    """Validate a raw mapping such as {"field": "value", "value": "admin"} into a step update."""
    return _STEP_UPDATE.validate_python(data)


# ---------- Helpers ----------


def describe_validation_error(ve: ValidationError, header: str) -> str:
    """Render a pydantic ValidationError as an indented, one-line-per-error listing."""
    lines = [header]
    for e in ve.errors():
        loc = ".".join(str(p) for p in e.get("loc", []))
        msg = e.get("msg", "invalid value")
        lines.append(f"  - {loc}: {msg}")
    return "\n".join(lines)


__all__ = [
    "new_id",
    "OperationType",
    "ELEMENTLESS_OPERATIONS",
    "LocatorType",
    "RunStatus",
    "Element",
    "Step",
    "Workflow",
    "SetOperation",
    "SetTarget",
    "SetValue",
    "SetDescription",
    "StepUpdate",
    "parse_step_update",
    "describe_validation_error",
]
