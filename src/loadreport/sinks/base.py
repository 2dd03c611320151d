from __future__ import annotations

from typing import Any, Mapping, Protocol


class Sink(Protocol):
    """
    Destination for reporting ticks.

    Each call runs on its own worker thread and the dispatcher waits for
    every sink before the next tick, so a sink may block but must not
    touch shared state other than its own fields. The event mapping is
    shared between sinks and must not be mutated.
    """

    def on_start(self) -> None:
        ...

    def on_event(self, raw_event: Mapping[str, Any]) -> None:
        ...

    def on_stop(self) -> None:
        ...
