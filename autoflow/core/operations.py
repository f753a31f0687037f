# autoflow/core/operations.py
"""Operations catalog: display label and description per operation type."""

from __future__ import annotations

from dataclasses import dataclass

from autoflow.core.models import OperationType


@dataclass(frozen=True)
class OperationInfo:
    label: str
    description: str


OPERATIONS: dict[OperationType, OperationInfo] = {
    OperationType.OPEN_URL: OperationInfo(
        label="Open Webpage",
        description="Navigates the browser to a specific URL.",
    ),
    OperationType.CLICK: OperationInfo(
        label="Click Element",
        description="Simulates a mouse click on a specific UI element.",
    ),
    OperationType.INPUT: OperationInfo(
        label="Input Text",
        description="Types text into a target input field or text area.",
    ),
    OperationType.WAIT: OperationInfo(
        label="Wait",
        description="Pauses the execution for a specified amount of milliseconds.",
    ),
    OperationType.ASSERT_TEXT: OperationInfo(
        label="Assert Text",
        description="Verifies that an element contains specific text.",
    ),
    OperationType.CONFIRM_MODAL: OperationInfo(
        label="Confirm Modal",
        description="Automatically accepts/confirms a browser alert or popup.",
    ),
}


def label_for(operation: OperationType) -> str:
    return OPERATIONS[operation].label
