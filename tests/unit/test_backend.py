from contextlib import contextmanager
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from autoflow.backend import actions, server
from autoflow.backend.actions import DialogGuard, resolve_locator, run_automation
from autoflow.core.contract import AutomationRequest, AutomationResponse, StepPayload
from autoflow.utils.config import Settings


# ---------- Playwright fakes ----------

class FakeDialog:
    def __init__(self):
        self.result = None

    def accept(self):
        self.result = "accepted"

    def dismiss(self):
        self.result = "dismissed"


class FakeLocator:
    def __init__(self, page, selector):
        self.page = page
        self.selector = selector

    def click(self, timeout=None):
        self.page.calls.append(("click", self.selector))
        if self.selector in self.page.dialog_on_click:
            dialog = FakeDialog()
            self.page.dialogs.append(dialog)
            for handler in self.page.handlers.get("dialog", []):
                handler(dialog)

    def press_sequentially(self, text, timeout=None):
        self.page.calls.append(("type", self.selector, text))

    def inner_text(self, timeout=None):
        return self.page.texts.get(self.selector, "")


class FakePage:
    def __init__(self, texts=None, dialog_on_click=()):
        self.calls = []
        self.handlers = {}
        self.dialogs = []
        self.texts = texts or {}
        self.dialog_on_click = set(dialog_on_click)

    def on(self, event, handler):
        self.handlers.setdefault(event, []).append(handler)

    def locator(self, selector):
        return FakeLocator(self, selector)

    def goto(self, url, wait_until=None, timeout=None):
        self.calls.append(("goto", url))

    def wait_for_timeout(self, ms):
        self.calls.append(("wait", ms))


class FakeBrowser:
    def __init__(self, page):
        self.page = page
        self.closed = False

    def new_page(self):
        return self.page

    def close(self):
        self.closed = True


def install_fake_playwright(monkeypatch, page):
    browser = FakeBrowser(page)
    launched = {}

    def launch(**kwargs):
        launched.update(kwargs)
        return browser

    @contextmanager
    def fake_sync_playwright():
        yield SimpleNamespace(chromium=SimpleNamespace(launch=launch))

    monkeypatch.setattr(actions, "sync_playwright", fake_sync_playwright)
    return browser, launched


@pytest.fixture
def backend_settings(tmp_path):
    return Settings(DATA_DIR=tmp_path, IMPLICIT_WAIT_MS=0)


def request_of(*steps):
    return AutomationRequest(workflow_id="w1", steps=[StepPayload(**s) for s in steps])


# ---------- locators ----------

@pytest.mark.parametrize(
    "locator,locator_type,selector",
    [
        ("#username", "ID", "id=username"),
        ("username", "ID", "id=username"),
        ("a.logout", "CSS", "css=a.logout"),
        ('//button[@type="submit"]', "XPATH", 'xpath=//button[@type="submit"]'),
    ],
)
def test_resolve_locator(locator, locator_type, selector):
    loc = resolve_locator(FakePage(), StepPayload(operation="CLICK", locator=locator, locator_type=locator_type))
    assert loc.selector == selector


def test_resolve_locator_errors():
    with pytest.raises(ValueError, match="Unknown locator type: NAME"):
        resolve_locator(FakePage(), StepPayload(operation="CLICK", locator="x", locator_type="NAME"))
    with pytest.raises(ValueError, match="requires an element locator"):
        resolve_locator(FakePage(), StepPayload(operation="CLICK"))


def test_dialog_guard_accepts_only_when_armed():
    page = FakePage()
    guard = DialogGuard(page)
    first, second = FakeDialog(), FakeDialog()

    page.handlers["dialog"][0](first)
    assert first.result == "dismissed"
    assert guard.consume() is False

    guard.arm()
    page.handlers["dialog"][0](second)
    assert second.result == "accepted"
    assert guard.consume() is True
    assert guard.consume() is False


# ---------- run_automation ----------

def test_successful_run(monkeypatch, backend_settings):
    page = FakePage()
    browser, launched = install_fake_playwright(monkeypatch, page)

    resp = run_automation(
        request_of(
            {"operation": "OPEN_URL", "value": "https://x"},
            {"operation": "INPUT", "locator": "#username", "locatorType": "ID", "value": "admin"},
            {"operation": "CLICK", "locator": '//button[@type="submit"]', "locatorType": "XPATH"},
            {"operation": "WAIT", "value": "250"},
        ),
        backend_settings,
    )

    assert resp.status == "SUCCESS"
    assert resp.logs == [
        "🚀 Browser Started",
        "Step 1: OPEN_URL", "  ✅ Success",
        "Step 2: INPUT", "  ✅ Success",
        "Step 3: CLICK", "  ✅ Success",
        "Step 4: WAIT", "  ✅ Success",
        "🏁 Closing Browser session.",
    ]
    assert page.calls == [
        ("goto", "https://x"),
        ("type", "id=username", "admin"),
        ("click", 'xpath=//button[@type="submit"]'),
        ("wait", 250),
    ]
    assert browser.closed
    assert launched == {"headless": True}


def test_failing_step_stops_the_run(monkeypatch, backend_settings):
    page = FakePage(texts={"css=h1": "Please log in"})
    browser, _ = install_fake_playwright(monkeypatch, page)

    resp = run_automation(
        request_of(
            {"operation": "ASSERT_TEXT", "locator": "h1", "locatorType": "CSS", "value": "Welcome"},
            {"operation": "CLICK", "locator": "#never", "locatorType": "ID"},
        ),
        backend_settings,
    )

    msg = "Assertion Failed. Expected 'Welcome' but found 'Please log in'"
    assert resp.status == "FAILURE"
    assert resp.logs == [
        "🚀 Browser Started",
        "Step 1: ASSERT_TEXT",
        f"  ❌ Failed: {msg}",
        f"❌ Execution Interrupted: {msg}",
        "🏁 Closing Browser session.",
    ]
    assert browser.closed
    assert ("click", "id=never") not in page.calls


@pytest.mark.parametrize(
    "step,error",
    [
        ({"operation": "HOVER", "locator": "#a"}, "Unsupported operation: HOVER"),
        ({"operation": "WAIT", "value": "soon"}, "WAIT needs a number of milliseconds"),
        ({"operation": "CLICK", "locator": "#a", "locatorType": "NAME"}, "Unknown locator type: NAME"),
        ({"operation": "CONFIRM_MODAL"}, "No browser dialog appeared to confirm"),
    ],
)
def test_step_errors_become_failure(monkeypatch, backend_settings, step, error):
    install_fake_playwright(monkeypatch, FakePage())
    resp = run_automation(request_of(step), backend_settings)
    assert resp.status == "FAILURE"
    assert any(line.startswith("  ❌ Failed: ") and error in line for line in resp.logs)


def test_confirm_modal_accepts_dialog_raised_by_previous_step(monkeypatch, backend_settings):
    page = FakePage(dialog_on_click={"css=button.delete"})
    install_fake_playwright(monkeypatch, page)

    resp = run_automation(
        request_of(
            {"operation": "CLICK", "locator": "button.delete", "locatorType": "CSS"},
            {"operation": "CONFIRM_MODAL"},
        ),
        backend_settings,
    )

    assert resp.status == "SUCCESS", resp.logs
    assert [d.result for d in page.dialogs] == ["accepted"]


def test_unexpected_dialog_is_dismissed(monkeypatch, backend_settings):
    page = FakePage(dialog_on_click={"css=button.delete"})
    install_fake_playwright(monkeypatch, page)
    resp = run_automation(request_of({"operation": "CLICK", "locator": "button.delete", "locatorType": "CSS"}),
                          backend_settings)
    assert resp.status == "SUCCESS"
    assert [d.result for d in page.dialogs] == ["dismissed"]


def test_browser_runtime_missing(monkeypatch, backend_settings):
    @contextmanager
    def broken():
        raise RuntimeError("Executable doesn't exist")
        yield  # pragma: no cover

    monkeypatch.setattr(actions, "sync_playwright", broken)
    resp = run_automation(request_of({"operation": "OPEN_URL", "value": "https://x"}), backend_settings)
    assert resp.status == "FAILURE"
    assert resp.logs == ["❌ Execution Interrupted: Executable doesn't exist"]


# ---------- HTTP surface ----------

def test_endpoint_accepts_wire_payload(monkeypatch):
    seen = {}

    def fake_run(request, settings=None):
        seen["request"] = request
        return AutomationResponse(status="SUCCESS", logs=["🚀 Browser Started"])

    monkeypatch.setattr(server, "run_automation", fake_run)
    client = TestClient(server.app)

    r = client.post(
        "/api/run-automation",
        json={"workflowId": "w1", "steps": [{"operation": "CLICK", "locator": "#a", "locatorType": "ID", "value": ""}]},
    )

    assert r.status_code == 200
    assert r.json() == {"status": "SUCCESS", "logs": ["🚀 Browser Started"]}
    assert seen["request"].workflow_id == "w1"
    assert seen["request"].steps[0].locator_type == "ID"


def test_endpoint_rejects_bad_payload():
    r = TestClient(server.app).post("/api/run-automation", json={"steps": []})
    assert r.status_code == 422


def test_health():
    assert TestClient(server.app).get("/health").json() == {"status": "ok"}
