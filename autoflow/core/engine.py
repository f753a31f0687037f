# autoflow/core/engine.py
from __future__ import annotations

"""Execution engine
-------------------
Run state machine plus the driver that picks a runner for the draft:
simulated, or remote with a one-shot fallback to simulation when the
backend cannot be used. Produces the execution log and writes the
outcome onto the draft (never onto the store).
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

from autoflow.core.directory import ElementDirectory
from autoflow.core.dispatcher import RemoteDispatcher
from autoflow.core.errors import DispatchError, InvalidTransition
from autoflow.core.models import RunStatus, Workflow
from autoflow.core.runlog import ExecutionLog
from autoflow.core.simulator import SimulatedRunner
from autoflow.utils.config import RunMode, Settings, Timings, get_settings
from autoflow.utils.logger import get_logger, log_with_context
from autoflow.utils.timing import async_sleep_ms


class RunState(str, Enum):
    IDLE = "IDLE"
    RUNNING_SIMULATED = "RUNNING_SIMULATED"
    RUNNING_REMOTE = "RUNNING_REMOTE"
    RUNNING_FALLBACK = "RUNNING_FALLBACK"
    DONE = "DONE"


RUNNING_STATES = frozenset({RunState.RUNNING_SIMULATED, RunState.RUNNING_REMOTE, RunState.RUNNING_FALLBACK})

_TRANSITIONS: dict[RunState, frozenset[RunState]] = {
    RunState.IDLE: frozenset({RunState.RUNNING_SIMULATED, RunState.RUNNING_REMOTE}),
    RunState.RUNNING_SIMULATED: frozenset({RunState.DONE}),
    RunState.RUNNING_REMOTE: frozenset({RunState.RUNNING_FALLBACK, RunState.DONE}),
    RunState.RUNNING_FALLBACK: frozenset({RunState.DONE}),
    RunState.DONE: frozenset({RunState.IDLE}),
}

StateListener = Callable[[RunState, RunState], None]


class RunStateMachine:
    """
    Single global run lock. Editing is allowed whenever no runner is active;
    DONE folds straight back into IDLE.
    """

    def __init__(self) -> None:
        self.state = RunState.IDLE
        self._listeners: list[StateListener] = []
        self.log = get_logger(__name__)

    @property
    def is_running(self) -> bool:
        return self.state in RUNNING_STATES

    @property
    def editable(self) -> bool:
        return not self.is_running

    def subscribe(self, listener: StateListener) -> None:
        """`listener(old, new)` is called after every transition."""
        self._listeners.append(listener)

    def transition(self, new: RunState) -> None:
        old = self.state
        if new not in _TRANSITIONS[old]:
            raise InvalidTransition(f"{old.value} -> {new.value}")
        self.state = new
        self.log.debug(f"Run state {old.value} -> {new.value}")
        for listener in list(self._listeners):
            listener(old, new)


@dataclass
class RunResult:
    workflow_id: str
    mode: RunMode
    status: RunStatus
    lines: list[str]
    fell_back: bool = False
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: Optional[datetime] = None

    @property
    def ok(self) -> bool:
        return self.status == RunStatus.SUCCESS

    def to_dict(self) -> dict:
        return {
            "workflow_id": self.workflow_id,
            "mode": self.mode.value,
            "status": self.status.value,
            "fell_back": self.fell_back,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "logs": self.lines,
        }


# Log lines of the remote path
CONTACTING_BACKEND = "--- CONTACTING EXECUTION BACKEND ---"
BACKEND_ACCEPTED = "✅ Backend received request."
BACKEND_LAUNCHING = "Browser launching on host machine..."
CONNECTION_FAILED = "❌ CONNECTION FAILED"


class ExecutionEngine:
    def __init__(
        self,
        directory: ElementDirectory,
        *,
        settings: Optional[Settings] = None,
        machine: Optional[RunStateMachine] = None,
        dispatcher: Optional[RemoteDispatcher] = None,
        timings: Optional[Timings] = None,
    ):
        self.settings = settings or get_settings()
        self.directory = directory
        self.machine = machine or RunStateMachine()
        self.timings = timings or Timings.from_settings(self.settings)
        self.dispatcher = dispatcher or RemoteDispatcher(
            directory,
            base_url=self.settings.BACKEND_URL,
            timeout_s=self.settings.REQUEST_TIMEOUT_S,
        )
        self.simulator = SimulatedRunner(directory, self.timings)
        self.output = ExecutionLog()
        self.log = get_logger(__name__)
        self._fell_back = False

    async def run(self, workflow: Workflow, mode: RunMode) -> Optional[RunResult]:
        """
        Execute `workflow` (the draft) in `mode`.
        Returns None without doing anything when a run is already in flight.
        """
        if self.machine.is_running:
            self.log.warning(f"Run of {workflow.id} ignored: a run is already in progress")
            return None

        run_log = log_with_context(self.log, workflow_id=workflow.id, mode=mode.value)
        self.output.clear()
        self._fell_back = False
        result = RunResult(workflow_id=workflow.id, mode=mode, status=RunStatus.PENDING, lines=[])
        workflow.last_run_status = RunStatus.PENDING

        self.machine.transition(RunState.RUNNING_REMOTE if mode == RunMode.REAL else RunState.RUNNING_SIMULATED)
        run_log.info(f"Running workflow {workflow.name!r} ({len(workflow.steps)} steps)")
        status = RunStatus.FAILURE
        try:
            if mode == RunMode.REAL:
                status = await self._run_remote(workflow)
            else:
                status = await self.simulator.run(workflow, self.output)
        except Exception as e:
            # A broken runner still has to release the lock
            run_log.exception("Run aborted")
            self.output.append(f"❌ Run aborted: {e}")
            status = RunStatus.FAILURE
        finally:
            # also reached on cancellation, which then propagates
            self.machine.transition(RunState.DONE)
            self.output.finish(status)
            workflow.last_run_status = status
            workflow.last_run_date = datetime.now(timezone.utc)
            self.machine.transition(RunState.IDLE)

        result.status = status
        result.lines = self.output.lines
        result.fell_back = self._fell_back
        result.finished_at = workflow.last_run_date
        run_log.info(f"Run finished: {status.value}{' (after fallback)' if self._fell_back else ''}")
        return result

    async def _run_remote(self, workflow: Workflow) -> RunStatus:
        self.output.append(CONTACTING_BACKEND, f"Sending payload to {self.dispatcher.endpoint} ...")
        try:
            response = await self.dispatcher.dispatch(workflow)
        except DispatchError as e:
            return await self._fall_back(workflow, e)

        self.output.append(BACKEND_ACCEPTED, BACKEND_LAUNCHING)
        self.output.extend(response.logs)
        self.output.append(f"Final Status: {response.status}")
        return response.run_status

    async def _fall_back(self, workflow: Workflow, error: DispatchError) -> RunStatus:
        self.machine.transition(RunState.RUNNING_FALLBACK)
        self._fell_back = True
        self.log.warning(f"Execution backend unavailable ({error}); falling back to simulation")
        grace_s = self.timings.fallback_grace_ms / 1000
        self.output.append(
            CONNECTION_FAILED,
            f"Could not connect to execution backend at {self.dispatcher.base_url}.",
            f"Reason: {error}",
            "1. Ensure the execution backend is running (autoflow serve-backend).",
            "2. Verify BACKEND_URL points at it and the port is reachable.",
            f"Falling back to Simulation Mode in {grace_s:g} seconds...",
        )
        await async_sleep_ms(self.timings.fallback_grace_ms)
        return await self.simulator.run(workflow, self.output)
