"""
Core package for AutoFlow.
Step/workflow model, reordering, run state machine and the execution engine.

Consumers should import submodules directly, e.g.:
  from autoflow.core.models import Workflow, Step
  from autoflow.core.builder import WorkflowBuilder
  from autoflow.core.engine import ExecutionEngine, RunState
"""

__all__: list[str] = []
