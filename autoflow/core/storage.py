# autoflow/core/storage.py
from __future__ import annotations

"""YAML persistence helpers
---------------------------
Reads and writes a single YAML mapping holding one list of records, e.g.

    workflows:
      - id: w1
        name: Standard Login Flow
        steps: [...]

Used by the element directory and the workflow store.
"""

import os
import tempfile
from pathlib import Path
from typing import Iterable, Optional, Type, TypeVar

import yaml
from pydantic import BaseModel, ValidationError

from autoflow.core.errors import StoreError
from autoflow.core.models import describe_validation_error

M = TypeVar("M", bound=BaseModel)


def read_records(path: Path, key: str, model: Type[M]) -> Optional[list[M]]:
    """
    Load `key` from the YAML file at `path` as a list of `model`.
    Returns None when the file does not exist.
    """
    if not path.exists():
        return None
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as ye:
        raise StoreError(f"YAML parse error in {path}: {ye}") from ye
    if data is None:
        return []
    if not isinstance(data, dict):
        raise StoreError(f"{path} must define a mapping/object at the top level.")
    raw = data.get(key) or []
    if not isinstance(raw, list):
        raise StoreError(f"'{key}' in {path} must be a list.")

    out: list[M] = []
    for idx, item in enumerate(raw, start=1):
        try:
            out.append(model.model_validate(item))
        except ValidationError as ve:
            raise StoreError(describe_validation_error(ve, f"Invalid {key} entry #{idx} in '{path}':")) from ve
    return out


def write_records(path: Path, key: str, records: Iterable[BaseModel]) -> None:
    """Write records atomically (temp file + rename) so readers never see a partial file."""
    payload = {key: [r.model_dump(mode="json", exclude_none=True) for r in records]}
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=f".{path.name}.", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            yaml.safe_dump(payload, fh, sort_keys=False, allow_unicode=True)
        os.replace(tmp, path)
    except OSError as e:
        Path(tmp).unlink(missing_ok=True)
        raise StoreError(f"Could not write {path}: {e}") from e
