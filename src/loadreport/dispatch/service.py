from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, List, Mapping

from loadreport.sinks.base import Sink

logger = logging.getLogger(__name__)


@dataclass
class SinkDispatcher:
    """
    Fans each lifecycle call out to every sink and waits for all of them.

    Every sink call runs in its own worker thread. The next call is not
    issued until the slowest sink returns, so no tick is dropped. A sink
    that raises is logged and does not affect the others.
    """

    sinks: List[Sink] = field(default_factory=list)

    def add_sink(self, sink: Sink) -> None:
        self.sinks.append(sink)

    async def start(self) -> List[Sink]:
        return await self._fan_out("on_start")

    async def publish(self, raw_event: Mapping[str, Any]) -> List[Sink]:
        return await self._fan_out("on_event", raw_event)

    async def stop(self) -> List[Sink]:
        return await self._fan_out("on_stop")

    async def _fan_out(self, phase: str, *args: Any) -> List[Sink]:
        sinks = list(self.sinks)
        results = await asyncio.gather(
            *(asyncio.to_thread(getattr(sink, phase), *args) for sink in sinks),
            return_exceptions=True,
        )
        failed: List[Sink] = []
        for sink, result in zip(sinks, results):
            if isinstance(result, BaseException):
                if isinstance(result, asyncio.CancelledError):
                    raise result
                logger.error(
                    "sink_call_failed",
                    extra={"sink": type(sink).__name__, "phase": phase},
                    exc_info=result,
                )
                failed.append(sink)
        return failed
