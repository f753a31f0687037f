from pathlib import Path

import pytest

from autoflow.core.directory import ElementDirectory
from autoflow.core.models import Element, LocatorType, OperationType, Step, Workflow
from autoflow.core.store import WorkflowStore
from autoflow.utils.config import Settings, get_settings


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        DATA_DIR=tmp_path / "data",
        STEP_DELAY_MS=0,
        SETTLE_DELAY_MS=0,
        FALLBACK_GRACE_MS=0,
        BACKEND_URL="http://backend.test:8080",
    )


@pytest.fixture
def env_settings(tmp_path: Path, monkeypatch):
    """Route get_settings() at a temp data dir with zero delays (for CLI tests)."""
    monkeypatch.setenv("DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("STEP_DELAY_MS", "0")
    monkeypatch.setenv("SETTLE_DELAY_MS", "0")
    monkeypatch.setenv("FALLBACK_GRACE_MS", "0")
    monkeypatch.setenv("BACKEND_URL", "http://backend.test:8080")
    monkeypatch.delenv("AUTOFLOW_USER", raising=False)
    monkeypatch.delenv("AUTOFLOW_PASSWORD", raising=False)
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()


@pytest.fixture
def directory() -> ElementDirectory:
    return ElementDirectory([
        Element(id="E1", name="Login Username", locator="#username", locator_type=LocatorType.ID),
        Element(id="E2", name="Submit Button", locator='//button[@type="submit"]', locator_type=LocatorType.XPATH),
    ])


@pytest.fixture
def login_workflow() -> Workflow:
    return Workflow(
        id="wf-login",
        name="Login",
        steps=[
            Step(id="s1", operation=OperationType.OPEN_URL, value="https://x"),
            Step(id="s2", operation=OperationType.INPUT, target_element_id="E1", value="admin"),
            Step(id="s3", operation=OperationType.CLICK, target_element_id="E2"),
        ],
    )


@pytest.fixture
def store(login_workflow: Workflow) -> WorkflowStore:
    return WorkflowStore([login_workflow])


class FakeResponse:
    def __init__(self, status_code: int = 200, payload=None, text_body: bool = False):
        self.status_code = status_code
        self._payload = payload
        self._text_body = text_body

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def json(self):
        if self._text_body:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self._payload


class FakeSession:
    """Stands in for requests.Session; records every POST."""

    def __init__(self, response: FakeResponse | None = None, error: Exception | None = None):
        self.response = response
        self.error = error
        self.calls: list[dict] = []

    def post(self, url, json=None, timeout=None):
        self.calls.append({"url": url, "json": json, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def fake_session_factory():
    return FakeSession


@pytest.fixture
def fake_response_factory():
    return FakeResponse
