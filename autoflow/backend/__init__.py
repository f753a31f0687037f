"""
Reference execution backend (FastAPI + Playwright).

Import submodules directly, e.g.:
  from autoflow.backend.server import app
  from autoflow.backend.actions import run_automation
"""

__all__: list[str] = []
