# autoflow/core/runlog.py
from __future__ import annotations

from typing import Callable, Optional

from autoflow.core.models import RunStatus

LineListener = Callable[[str], None]


class ExecutionLog:
    """
    Append-only lines of the current run plus its terminal status.
    Listeners see every line as it is appended, in order.
    """

    def __init__(self) -> None:
        self._lines: list[str] = []
        self.status: Optional[RunStatus] = None
        self._listeners: list[LineListener] = []

    @property
    def lines(self) -> list[str]:
        return list(self._lines)

    @property
    def finished(self) -> bool:
        return self.status is not None

    def subscribe(self, listener: LineListener) -> Callable[[], None]:
        """Register a line listener; returns a callable that unsubscribes it."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def append(self, *lines: str) -> None:
        for line in lines:
            self._lines.append(line)
            for listener in list(self._listeners):
                listener(line)

    def extend(self, lines: list[str]) -> None:
        self.append(*lines)

    def finish(self, status: RunStatus) -> None:
        self.status = status

    def clear(self) -> None:
        """Drop the previous run's lines and status. Listeners stay attached."""
        self._lines = []
        self.status = None

    def __len__(self) -> int:
        return len(self._lines)
