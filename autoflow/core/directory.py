# autoflow/core/directory.py
from __future__ import annotations

"""Element directory
--------------------
Named page elements (name + locator + locator type). The execution engine
only reads it (`resolve`, `list`); editing happens through the CLI.
"""

from pathlib import Path
from typing import Iterable, Optional

from autoflow.core.models import Element, LocatorType
from autoflow.core.storage import read_records, write_records
from autoflow.utils.logger import get_logger

_KEY = "elements"

DEFAULT_ELEMENTS = (
    Element(id="1", name="Login Username", locator="#username", locator_type=LocatorType.ID,
            description="Main login input"),
    Element(id="2", name="Login Password", locator="#password", locator_type=LocatorType.ID,
            description="Main password input"),
    Element(id="3", name="Submit Button", locator='//button[@type="submit"]', locator_type=LocatorType.XPATH,
            description="Login form submit"),
)


class ElementDirectory:
    def __init__(self, elements: Optional[Iterable[Element]] = None, path: Optional[Path] = None):
        self._elements: list[Element] = [e.model_copy() for e in (elements or [])]
        self.path = path
        self.log = get_logger(__name__)

    @classmethod
    def load(cls, path: Path) -> "ElementDirectory":
        """Open the directory file, seeding the default login elements if it does not exist yet."""
        records = read_records(path, _KEY, Element)
        if records is None:
            return cls(DEFAULT_ELEMENTS, path=path)
        return cls(records, path=path)

    def flush(self) -> None:
        if self.path is not None:
            write_records(self.path, _KEY, self._elements)

    # ---- read side (used by the engine) ----

    def list(self) -> list[Element]:
        return list(self._elements)

    def resolve(self, element_id: Optional[str]) -> Optional[Element]:
        if element_id is None:
            return None
        for el in self._elements:
            if el.id == element_id:
                return el
        return None

    def first(self) -> Optional[Element]:
        return self._elements[0] if self._elements else None

    def search(self, term: str) -> list[Element]:
        """Case-insensitive substring match on name or locator."""
        t = term.lower()
        return [el for el in self._elements if t in el.name.lower() or t in el.locator.lower()]

    # ---- write side ----

    def add(
        self,
        name: str,
        locator: str,
        locator_type: LocatorType = LocatorType.XPATH,
        description: Optional[str] = None,
    ) -> Element:
        el = Element(name=name, locator=locator, locator_type=locator_type, description=description)
        self._elements.append(el)
        self.log.info(f"Added element {el.id} ({el.name!r}, {el.locator_type.value}={el.locator})")
        self.flush()
        return el

    def remove(self, element_id: str) -> bool:
        """Delete by id. Steps still pointing at it resolve to nothing from now on."""
        before = len(self._elements)
        self._elements = [el for el in self._elements if el.id != element_id]
        removed = len(self._elements) < before
        if removed:
            self.log.info(f"Removed element {element_id}")
            self.flush()
        return removed

    def __len__(self) -> int:
        return len(self._elements)
