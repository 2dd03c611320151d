from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Tuple

from loadreport.stats import derivation


def _frozen(mapping: Mapping | None) -> Mapping:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True)
class StatsEntry:
    """Raw counters for one request group, or for the whole run."""

    method: str = ""
    name: str = ""
    num_requests: int = 0
    num_failures: int = 0
    response_times: Mapping[int, int] = field(default_factory=dict)
    total_response_time: int = 0
    total_content_length: int = 0
    min_response_time: int = 0
    max_response_time: int = 0
    num_reqs_per_sec: Mapping[int, int] = field(default_factory=dict)
    num_fail_per_sec: Mapping[int, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "response_times", _frozen(self.response_times))
        object.__setattr__(self, "num_reqs_per_sec", _frozen(self.num_reqs_per_sec))
        object.__setattr__(self, "num_fail_per_sec", _frozen(self.num_fail_per_sec))


@dataclass(frozen=True)
class StatsEntryOutput:
    entry: StatsEntry
    median_response_time: int
    avg_response_time: float
    avg_content_length: int
    current_rps: int
    current_fail_per_sec: int

    @staticmethod
    def from_entry(entry: StatsEntry) -> "StatsEntryOutput":
        num_requests = entry.num_requests
        return StatsEntryOutput(
            entry=entry,
            median_response_time=derivation.median_response_time(
                num_requests, entry.response_times
            ),
            avg_response_time=derivation.avg_response_time(
                num_requests, entry.total_response_time
            ),
            avg_content_length=derivation.avg_content_length(
                num_requests, entry.total_content_length
            ),
            current_rps=derivation.current_rps(num_requests, entry.num_reqs_per_sec),
            current_fail_per_sec=derivation.current_fail_per_sec(
                entry.num_failures, entry.num_fail_per_sec
            ),
        )

    @property
    def method(self) -> str:
        return self.entry.method

    @property
    def name(self) -> str:
        return self.entry.name

    @property
    def num_requests(self) -> int:
        return self.entry.num_requests

    @property
    def num_failures(self) -> int:
        return self.entry.num_failures

    @property
    def min_response_time(self) -> int:
        return self.entry.min_response_time

    @property
    def max_response_time(self) -> int:
        return self.entry.max_response_time


@dataclass(frozen=True)
class RunSnapshot:
    user_count: int
    stats_total: StatsEntryOutput
    stats: Tuple[StatsEntryOutput, ...]
    total_rps: int
    total_fail_ratio: float
    errors: Mapping[str, Mapping[str, Any]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "stats", tuple(self.stats))
        object.__setattr__(
            self,
            "errors",
            MappingProxyType({key: _frozen(value) for key, value in self.errors.items()}),
        )
