# autoflow/core/store.py
from __future__ import annotations

"""Workflow store
-----------------
Committed workflows in insertion order. `upsert` is the only way committed
state changes; drafts are deep copies handed out by `checkout`.
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional

from autoflow.core.models import OperationType, RunStatus, Step, Workflow
from autoflow.core.storage import read_records, write_records
from autoflow.utils.logger import get_logger

_KEY = "workflows"


def _default_workflows() -> list[Workflow]:
    return [
        Workflow(
            id="w1",
            name="Standard Login Flow",
            steps=[
                Step(id="s0", operation=OperationType.OPEN_URL, value="https://example.com/login"),
                Step(id="s1", operation=OperationType.INPUT, target_element_id="1", value="admin"),
                Step(id="s2", operation=OperationType.INPUT, target_element_id="2", value="secret"),
                Step(id="s3", operation=OperationType.CLICK, target_element_id="3"),
                Step(id="s4", operation=OperationType.ASSERT_TEXT, target_element_id="3", value="Welcome"),
            ],
            last_run_status=RunStatus.SUCCESS,
            last_run_date=datetime.now(timezone.utc),
        )
    ]


class WorkflowStore:
    def __init__(self, workflows: Optional[Iterable[Workflow]] = None, path: Optional[Path] = None):
        self._workflows: list[Workflow] = [w.model_copy(deep=True) for w in (workflows or [])]
        self.path = path
        self.log = get_logger(__name__)

    @classmethod
    def load(cls, path: Path) -> "WorkflowStore":
        """Open the store file, seeding the example login workflow if it does not exist yet."""
        records = read_records(path, _KEY, Workflow)
        if records is None:
            return cls(_default_workflows(), path=path)
        return cls(records, path=path)

    def flush(self) -> None:
        if self.path is not None:
            write_records(self.path, _KEY, self._workflows)

    def list(self) -> list[Workflow]:
        return [w.model_copy(deep=True) for w in self._workflows]

    def get(self, workflow_id: str) -> Optional[Workflow]:
        for w in self._workflows:
            if w.id == workflow_id:
                return w.model_copy(deep=True)
        return None

    def checkout(self, workflow_id: str) -> Optional[Workflow]:
        """Independent draft copy of a committed workflow."""
        return self.get(workflow_id)

    def upsert(self, workflow: Workflow) -> None:
        """Replace in place by id (keeping its position) or append when the id is new."""
        committed = workflow.model_copy(deep=True)
        for idx, w in enumerate(self._workflows):
            if w.id == workflow.id:
                self._workflows[idx] = committed
                self.log.debug(f"Updated workflow {workflow.id} at position {idx}")
                break
        else:
            self._workflows.append(committed)
            self.log.debug(f"Created workflow {workflow.id}")
        self.flush()

    def delete(self, workflow_id: str) -> bool:
        before = len(self._workflows)
        self._workflows = [w for w in self._workflows if w.id != workflow_id]
        removed = len(self._workflows) < before
        if removed:
            self.flush()
        return removed

    def __len__(self) -> int:
        return len(self._workflows)
