from pathlib import Path

import pytest
import yaml

from autoflow.core.directory import ElementDirectory
from autoflow.core.errors import StoreError
from autoflow.core.models import LocatorType, OperationType, RunStatus, Step, Workflow
from autoflow.core.store import WorkflowStore


# ---------- WorkflowStore ----------

def test_checkout_is_an_independent_copy(store: WorkflowStore):
    draft = store.checkout("wf-login")
    draft.name = "Changed"
    draft.steps.pop()
    committed = store.get("wf-login")
    assert committed.name == "Login"
    assert len(committed.steps) == 3


def test_upsert_replaces_in_place_and_keeps_position():
    store = WorkflowStore([Workflow(id="a", name="A"), Workflow(id="b", name="B"), Workflow(id="c", name="C")])
    draft = store.checkout("b")
    draft.name = "B2"
    store.upsert(draft)
    assert [w.id for w in store.list()] == ["a", "b", "c"]
    assert store.get("b").name == "B2"


def test_upsert_is_idempotent(store: WorkflowStore):
    draft = store.checkout("wf-login")
    store.upsert(draft)
    store.upsert(draft)
    assert len(store) == 1
    assert store.get("wf-login") == draft


def test_upsert_unknown_id_appends(store: WorkflowStore):
    store.upsert(Workflow(id="new", name="New Test Flow"))
    assert [w.id for w in store.list()] == ["wf-login", "new"]


def test_upsert_stores_a_copy(store: WorkflowStore):
    draft = Workflow(id="x", name="X")
    store.upsert(draft)
    draft.name = "mutated after save"
    assert store.get("x").name == "X"


def test_delete(store: WorkflowStore):
    assert store.delete("wf-login") is True
    assert store.delete("wf-login") is False
    assert len(store) == 0


def test_load_seeds_example_workflow_when_file_missing(tmp_path: Path):
    store = WorkflowStore.load(tmp_path / "workflows.yaml")
    [wf] = store.list()
    assert wf.id == "w1"
    assert wf.name == "Standard Login Flow"
    assert wf.last_run_status == RunStatus.SUCCESS
    assert [s.id for s in wf.steps] == ["s0", "s1", "s2", "s3", "s4"]
    # nothing written until the first change
    assert not (tmp_path / "workflows.yaml").exists()


def test_store_round_trips_through_yaml(tmp_path: Path):
    path = tmp_path / "workflows.yaml"
    store = WorkflowStore.load(path)
    store.upsert(Workflow(
        id="w2",
        name="Checkout",
        steps=[Step(id="a", operation=OperationType.WAIT, value="250")],
    ))
    raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    assert [w["id"] for w in raw["workflows"]] == ["w1", "w2"]

    reloaded = WorkflowStore.load(path)
    assert reloaded.get("w2").steps[0].operation == OperationType.WAIT
    assert reloaded.get("w2").steps[0].value == "250"


def test_load_rejects_bad_yaml(tmp_path: Path):
    path = tmp_path / "workflows.yaml"
    path.write_text("workflows: [\n", encoding="utf-8")
    with pytest.raises(StoreError, match="YAML parse error"):
        WorkflowStore.load(path)


def test_load_rejects_invalid_entry(tmp_path: Path):
    path = tmp_path / "workflows.yaml"
    path.write_text(
        "workflows:\n  - id: w1\n    steps:\n      - operation: HOVER\n",
        encoding="utf-8",
    )
    with pytest.raises(StoreError) as exc:
        WorkflowStore.load(path)
    assert "Invalid workflows entry #1" in str(exc.value)


def test_empty_file_loads_as_empty_store(tmp_path: Path):
    path = tmp_path / "workflows.yaml"
    path.write_text("", encoding="utf-8")
    assert len(WorkflowStore.load(path)) == 0


# ---------- ElementDirectory ----------

def test_resolve(directory: ElementDirectory):
    assert directory.resolve("E1").name == "Login Username"
    assert directory.resolve("missing") is None
    assert directory.resolve(None) is None


def test_first_and_empty_directory(directory: ElementDirectory):
    assert directory.first().id == "E1"
    assert ElementDirectory().first() is None


def test_search_matches_name_or_locator_case_insensitively(directory: ElementDirectory):
    assert [e.id for e in directory.search("login")] == ["E1"]
    assert [e.id for e in directory.search("BUTTON")] == ["E2"]
    assert directory.search("nothing-like-this") == []


def test_add_and_remove_persist(tmp_path: Path):
    path = tmp_path / "elements.yaml"
    d = ElementDirectory.load(path)
    assert [e.id for e in d.list()] == ["1", "2", "3"]

    el = d.add("Logout Link", "a.logout", LocatorType.CSS)
    assert ElementDirectory.load(path).resolve(el.id).locator == "a.logout"

    assert d.remove("2") is True
    assert d.remove("2") is False
    assert [e.id for e in ElementDirectory.load(path).list()] == ["1", "3", el.id]
