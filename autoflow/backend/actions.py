# autoflow/backend/actions.py
from __future__ import annotations

"""Backend step actions
-----------------------
Maps run-request steps to Playwright operations and drives a whole request
through one browser session, producing the log lines and status returned
by `POST /api/run-automation`.
"""

from typing import Optional

from playwright.sync_api import Dialog, Locator, Page, sync_playwright

from autoflow.core.contract import AutomationRequest, AutomationResponse, StepPayload
from autoflow.core.models import LocatorType, OperationType
from autoflow.utils.config import Settings, get_settings
from autoflow.utils.logger import get_logger, log_with_context
from autoflow.utils.timing import measure, wait_for

__all__ = ["DialogGuard", "resolve_locator", "execute_step", "run_automation"]


# ------------- Internals -------------

def resolve_locator(page: Page, step: StepPayload) -> Locator:
    """
    Return a Locator for the step's locator/locator type.
    Uses Playwright's built-in selector engines (id=, css=, xpath=).
    """
    if not step.locator:
        raise ValueError(f"{step.operation} requires an element locator")
    if step.locator_type == LocatorType.ID.value:
        # "#username" and "username" name the same id
        return page.locator(f"id={step.locator.removeprefix('#')}")
    if step.locator_type == LocatorType.CSS.value:
        return page.locator(f"css={step.locator}")
    if step.locator_type == LocatorType.XPATH.value:
        return page.locator(f"xpath={step.locator}")
    raise ValueError(f"Unknown locator type: {step.locator_type}")


class DialogGuard:
    """
    Browser dialogs are events, so a CONFIRM_MODAL step cannot wait for them
    after the fact. The guard is armed before the step that raises the
    dialog; an armed guard accepts the next dialog, an unarmed one dismisses it.
    """

    def __init__(self, page: Page):
        self.armed = False
        self.accepted = 0
        page.on("dialog", self._on_dialog)

    def _on_dialog(self, dialog: Dialog) -> None:
        if self.armed:
            self.armed = False
            self.accepted += 1
            dialog.accept()
        else:
            dialog.dismiss()

    def arm(self) -> None:
        self.armed = True

    def consume(self) -> bool:
        if self.accepted:
            self.accepted -= 1
            return True
        return False


# ------------- Step executors -------------

@measure("open_url")
def _do_open_url(page: Page, step: StepPayload, settings: Settings):
    page.goto(step.value, wait_until="domcontentloaded", timeout=settings.PAGE_LOAD_TIMEOUT)


@measure("click")
def _do_click(page: Page, step: StepPayload, settings: Settings):
    resolve_locator(page, step).click(timeout=settings.IMPLICIT_WAIT_MS)


@measure("input")
def _do_input(page: Page, step: StepPayload, settings: Settings):
    # appends to whatever the field already holds
    resolve_locator(page, step).press_sequentially(step.value, timeout=settings.IMPLICIT_WAIT_MS)


@measure("wait (static)")
def _do_wait(page: Page, step: StepPayload, settings: Settings):
    try:
        ms = int(step.value)
    except ValueError:
        raise ValueError(f"WAIT needs a number of milliseconds, got {step.value!r}") from None
    page.wait_for_timeout(ms)


@measure("assert_text")
def _do_assert_text(page: Page, step: StepPayload, settings: Settings):
    text = resolve_locator(page, step).inner_text(timeout=settings.IMPLICIT_WAIT_MS) or ""
    if step.value not in text:
        raise AssertionError(f"Assertion Failed. Expected '{step.value}' but found '{text}'")


@measure("confirm_modal")
def _do_confirm_modal(page: Page, step: StepPayload, settings: Settings, dialogs: DialogGuard):
    if dialogs.consume():
        return
    dialogs.arm()

    def _accepted() -> bool:
        page.wait_for_timeout(50)  # lets Playwright deliver pending dialog events
        return dialogs.consume()

    try:
        wait_for(_accepted, timeout_ms=settings.IMPLICIT_WAIT_MS, interval_ms=1, description="browser dialog")
    except TimeoutError:
        dialogs.armed = False
        raise RuntimeError("No browser dialog appeared to confirm") from None


# ------------- Dispatcher -------------

def execute_step(page: Page, step: StepPayload, settings: Settings, dialogs: DialogGuard) -> None:
    """Execute one step on the page; raises on failure."""
    try:
        op = OperationType(step.operation)
    except ValueError:
        raise ValueError(f"Unsupported operation: {step.operation}") from None

    if op == OperationType.OPEN_URL:
        _do_open_url(page, step, settings)
    elif op == OperationType.CLICK:
        _do_click(page, step, settings)
    elif op == OperationType.INPUT:
        _do_input(page, step, settings)
    elif op == OperationType.WAIT:
        _do_wait(page, step, settings)
    elif op == OperationType.ASSERT_TEXT:
        _do_assert_text(page, step, settings)
    elif op == OperationType.CONFIRM_MODAL:
        _do_confirm_modal(page, step, settings, dialogs)


def _next_is_confirm(request: AutomationRequest, idx: int) -> bool:
    nxt = idx + 1
    return nxt < len(request.steps) and request.steps[nxt].operation == OperationType.CONFIRM_MODAL.value


def run_automation(request: AutomationRequest, settings: Optional[Settings] = None) -> AutomationResponse:
    """
    Run every step in a fresh browser. The first failing step stops the run
    with status FAILURE; the browser is always closed.
    """
    s = settings or get_settings()
    log = log_with_context(get_logger(__name__), workflow_id=request.workflow_id)
    logs: list[str] = []
    log.info(f"Run request for {request.workflow_id} ({len(request.steps)} steps)")

    status = "SUCCESS"
    try:
        with sync_playwright() as p:
            browser = None
            try:
                browser = getattr(p, s.BROWSER_TYPE.value).launch(**s.playwright_launch_kwargs())
                page = browser.new_page()
                dialogs = DialogGuard(page)
                logs.append("🚀 Browser Started")

                for idx, step in enumerate(request.steps):
                    logs.append(f"Step {idx + 1}: {step.operation}")
                    if _next_is_confirm(request, idx):
                        dialogs.arm()
                    try:
                        execute_step(page, step, s, dialogs)
                    except Exception as e:
                        logs.append(f"  ❌ Failed: {e}")
                        raise
                    logs.append("  ✅ Success")
            except Exception as e:
                log.warning(f"Run {request.workflow_id} failed: {e}")
                logs.append(f"❌ Execution Interrupted: {e}")
                status = "FAILURE"
            finally:
                if browser is not None:
                    logs.append("🏁 Closing Browser session.")
                    browser.close()
    except Exception as e:
        # Playwright itself could not start (driver missing, browser not installed)
        log.error(f"Browser runtime unavailable: {e}")
        logs.append(f"❌ Execution Interrupted: {e}")
        status = "FAILURE"

    log.info(f"Run {request.workflow_id} finished: {status}")
    return AutomationResponse(status=status, logs=logs)
