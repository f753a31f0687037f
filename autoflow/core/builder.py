# autoflow/core/builder.py
from __future__ import annotations

"""Workflow builder
-------------------
Application state for editing and running one workflow at a time: the
draft, the selected run mode, the drag tracker and the execution engine.
Every edit goes through this class and is refused while a run is in
flight.
"""

from typing import Optional

from autoflow.core.directory import ElementDirectory
from autoflow.core.engine import ExecutionEngine, RunResult
from autoflow.core.models import OperationType, RunStatus, Step, StepUpdate, Workflow
from autoflow.core.reorder import DragSession, reorder
from autoflow.core.runlog import ExecutionLog
from autoflow.core.store import WorkflowStore
from autoflow.utils.config import RunMode, Settings, get_settings
from autoflow.utils.logger import get_logger

NEW_WORKFLOW_NAME = "New Test Flow"


class WorkflowBuilder:
    def __init__(
        self,
        store: WorkflowStore,
        directory: ElementDirectory,
        *,
        engine: Optional[ExecutionEngine] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.store = store
        self.directory = directory
        self.engine = engine or ExecutionEngine(directory, settings=self.settings)
        self.mode: RunMode = self.settings.RUN_MODE
        self.draft: Optional[Workflow] = None
        self.drag = DragSession()
        self.log = get_logger(__name__)

        first = next(iter(store.list()), None)
        if first is not None:
            self.draft = store.checkout(first.id)

    # ---------------- State ----------------

    @property
    def locked(self) -> bool:
        return self.engine.machine.is_running

    @property
    def output(self) -> ExecutionLog:
        return self.engine.output

    def _editable(self, action: str) -> bool:
        if self.locked:
            self.log.debug(f"{action} ignored: run in progress")
            return False
        if self.draft is None:
            self.log.debug(f"{action} ignored: no workflow open")
            return False
        return True

    # ---------------- Selection ----------------

    def select(self, workflow_id: str) -> bool:
        """Open a draft copy of a committed workflow; the previous run's log is discarded."""
        if self.locked:
            return False
        wf = self.store.checkout(workflow_id)
        if wf is None:
            return False
        self.draft = wf
        self.drag.end()
        self.output.clear()
        return True

    def create_new(self, name: str = NEW_WORKFLOW_NAME) -> Optional[Workflow]:
        if self.locked:
            return None
        self.draft = Workflow(name=name, last_run_status=RunStatus.NONE)
        self.drag.end()
        self.output.clear()
        return self.draft

    def set_mode(self, mode: RunMode) -> bool:
        if self.locked:
            return False
        self.mode = mode
        return True

    # ---------------- Edits ----------------

    def rename(self, name: str) -> bool:
        if not self._editable("rename"):
            return False
        self.draft.name = name
        return True

    def add_step(self) -> Optional[Step]:
        """Append a CLICK step aimed at the directory's first element (if any)."""
        if not self._editable("add_step"):
            return None
        first = self.directory.first()
        step = Step(operation=OperationType.CLICK, target_element_id=first.id if first else None)
        self.draft.steps = [*self.draft.steps, step]
        return step

    def remove_step(self, step_id: str) -> bool:
        """Remove by id. An unknown id leaves the steps untouched."""
        if not self._editable("remove_step"):
            return False
        before = len(self.draft.steps)
        self.draft.steps = [s for s in self.draft.steps if s.id != step_id]
        return len(self.draft.steps) < before

    def update_step(self, step_id: str, update: StepUpdate) -> bool:
        if not self._editable("update_step"):
            return False
        idx = self.draft.step_index(step_id)
        if idx is None:
            return False
        steps = list(self.draft.steps)
        steps[idx] = update.apply(steps[idx])
        self.draft.steps = steps
        return True

    def move_step(self, from_index: int, to_index: int) -> bool:
        """Single remove-then-insert move (what one drag-over event does)."""
        if not self._editable("move_step"):
            return False
        self.draft.steps = reorder(self.draft.steps, from_index, to_index)
        return True

    # ---------------- Drag and drop ----------------

    def start_drag(self, index: int) -> bool:
        if not self._editable("start_drag"):
            return False
        self.drag.start(index)
        return True

    def drag_over(self, index: int) -> bool:
        if not self._editable("drag_over") or not self.drag.active:
            return False
        self.draft.steps = self.drag.over(self.draft.steps, index)
        return True

    def end_drag(self) -> None:
        self.drag.end()

    # ---------------- Persistence ----------------

    def save(self) -> bool:
        """Commit the draft: replaces the stored copy by id, or creates it if the id is unknown."""
        if self.locked or self.draft is None:
            return False
        self.store.upsert(self.draft)
        self.log.info(f"Saved workflow {self.draft.id} ({self.draft.name!r}, {len(self.draft.steps)} steps)")
        return True

    def delete_workflow(self, workflow_id: str) -> bool:
        """Remove from the store. An open draft of it stays open and is re-created on its next save."""
        return self.store.delete(workflow_id)

    # ---------------- Running ----------------

    async def run(self) -> Optional[RunResult]:
        """Run the draft in the selected mode. None when refused (no draft or already running)."""
        if self.draft is None or self.locked:
            return None
        self.drag.end()
        return await self.engine.run(self.draft, self.mode)
