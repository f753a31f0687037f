# autoflow/core/simulator.py
from __future__ import annotations

"""Simulated runner
-------------------
Walks the steps in order without a browser. Each step waits a fixed delay
and then reports success; the simulation never fails.
"""

from autoflow.core.directory import ElementDirectory
from autoflow.core.models import OperationType, RunStatus, Step, Workflow
from autoflow.core.operations import label_for
from autoflow.core.runlog import ExecutionLog
from autoflow.utils.config import Timings
from autoflow.utils.logger import get_logger
from autoflow.utils.timing import async_sleep_ms

SIMULATION_BANNER = "--- STARTING SIMULATION MODE ---"
SIMULATION_INIT = "Initializing virtual environment..."
STEP_SUCCESS = "  -> Success"
SIMULATION_PASSED = "Simulation Finished: PASSED"
UNKNOWN_ELEMENT = "Unknown Element"


def describe_step(position: int, step: Step, directory: ElementDirectory) -> str:
    """
    One-line summary of a step, e.g.
    `[STEP 2] Input Text on "Login Username" with value: "admin"`.
    """
    line = f"[STEP {position}] {label_for(step.operation)}"
    if step.operation == OperationType.OPEN_URL:
        line += f" -> {step.value or ''}"
    elif step.targets_element:
        element = directory.resolve(step.target_element_id)
        line += f' on "{element.name if element else UNKNOWN_ELEMENT}"'
    if step.value and step.operation != OperationType.OPEN_URL:
        line += f' with value: "{step.value}"'
    return line


class SimulatedRunner:
    def __init__(self, directory: ElementDirectory, timings: Timings | None = None):
        self.directory = directory
        self.timings = timings or Timings()
        self.log = get_logger(__name__)

    async def run(self, workflow: Workflow, out: ExecutionLog) -> RunStatus:
        """Append the simulated trace of `workflow` to `out` and report SUCCESS."""
        out.append(SIMULATION_BANNER, SIMULATION_INIT)
        total = len(workflow.steps)
        for position, step in enumerate(workflow.steps, start=1):
            await async_sleep_ms(self.timings.step_delay_ms)
            out.append(describe_step(position, step, self.directory), STEP_SUCCESS)
            self.log.debug(f"Simulated step {position}/{total}: {step.operation.value}")
        await async_sleep_ms(self.timings.settle_delay_ms)
        out.append(SIMULATION_PASSED)
        return RunStatus.SUCCESS
