"""
Raw reporting event -> RunSnapshot.

The runner hands sinks a loosely typed mapping. Its shape is checked up
front against an explicit JSON Schema, then mapped field by field into
typed entries. Nothing partially decoded is ever returned.
"""

from __future__ import annotations

import json
import re
from typing import Any, Dict, Iterable, Mapping

import jsonschema
import jsonschema.validators

from loadreport.common.models import RunSnapshot, StatsEntry, StatsEntryOutput
from loadreport.stats.derivation import current_rps, total_fail_ratio

_BUCKET_KEY = re.compile(r"^-?[0-9]+$")

_COUNT = {"type": "integer", "minimum": 0}
_BUCKETS = {
    "type": "object",
    "propertyNames": {"pattern": _BUCKET_KEY.pattern},
    "additionalProperties": _COUNT,
}

STATS_ENTRY_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": [
        "num_requests",
        "num_failures",
        "response_times",
        "total_response_time",
        "total_content_length",
        "min_response_time",
        "max_response_time",
        "num_reqs_per_sec",
        "num_fail_per_sec",
    ],
    "properties": {
        "method": {"type": "string"},
        "name": {"type": "string"},
        "num_requests": _COUNT,
        "num_failures": _COUNT,
        "response_times": _BUCKETS,
        "total_response_time": _COUNT,
        "total_content_length": _COUNT,
        "min_response_time": {"type": "integer"},
        "max_response_time": {"type": "integer"},
        "num_reqs_per_sec": _BUCKETS,
        "num_fail_per_sec": _BUCKETS,
    },
}

EVENT_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["user_count", "stats_total", "stats"],
    "properties": {
        "user_count": _COUNT,
        "stats_total": STATS_ENTRY_SCHEMA,
        "stats": {"type": "array", "items": STATS_ENTRY_SCHEMA},
        "errors": {
            "type": "object",
            "additionalProperties": {"type": "object"},
        },
    },
}


def _is_object(checker: Any, instance: Any) -> bool:
    return isinstance(instance, Mapping)


def _is_array(checker: Any, instance: Any) -> bool:
    return isinstance(instance, (list, tuple))


# events are shared read-only, so mapping proxies and tuples are accepted
EventValidator = jsonschema.validators.extend(
    jsonschema.Draft202012Validator,
    type_checker=jsonschema.Draft202012Validator.TYPE_CHECKER.redefine_many(
        {"object": _is_object, "array": _is_array}
    ),
)

_EVENT_VALIDATOR = EventValidator(EVENT_SCHEMA)
_ENTRY_VALIDATOR = EventValidator(STATS_ENTRY_SCHEMA)

ROOT_FIELD = "<root>"


class SnapshotDecodeError(ValueError):
    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


def _format_path(path: Iterable[Any]) -> str:
    out = ""
    for part in path:
        if isinstance(part, int):
            out += f"[{part}]"
        elif out:
            out += f".{part}"
        else:
            out = str(part)
    return out


def _check(validator: Any, instance: Any, prefix: str = "") -> None:
    errors = list(validator.iter_errors(instance))
    if not errors:
        return
    # shallowest error first
    error = min(errors, key=lambda err: len(err.absolute_path))
    path = list(error.absolute_path)
    if error.validator == "required" and isinstance(error.instance, Mapping):
        missing = [key for key in error.validator_value if key not in error.instance]
        if missing:
            path.append(missing[0])
    field = _format_path(path)
    if prefix:
        field = f"{prefix}.{field}" if field and not field.startswith("[") else prefix + field
    raise SnapshotDecodeError(field or ROOT_FIELD, error.message)


def _buckets(raw: Mapping[Any, Any], field: str) -> Dict[int, int]:
    buckets: Dict[int, int] = {}
    for key, value in raw.items():
        if isinstance(key, bool) or not (
            isinstance(key, int) or (isinstance(key, str) and _BUCKET_KEY.fullmatch(key))
        ):
            raise SnapshotDecodeError(
                f"{field}.{key}", f"{key!r} is not an integer bucket key"
            )
        buckets[int(key)] = int(value)
    return buckets


def _map_entry(raw: Mapping[str, Any], field: str) -> StatsEntry:
    return StatsEntry(
        method=str(raw.get("method", "")),
        name=str(raw.get("name", "")),
        num_requests=int(raw["num_requests"]),
        num_failures=int(raw["num_failures"]),
        response_times=_buckets(raw["response_times"], f"{field}.response_times"),
        total_response_time=int(raw["total_response_time"]),
        total_content_length=int(raw["total_content_length"]),
        min_response_time=int(raw["min_response_time"]),
        max_response_time=int(raw["max_response_time"]),
        num_reqs_per_sec=_buckets(raw["num_reqs_per_sec"], f"{field}.num_reqs_per_sec"),
        num_fail_per_sec=_buckets(raw["num_fail_per_sec"], f"{field}.num_fail_per_sec"),
    )


def decode_entry(raw: Any, field: str = "") -> StatsEntryOutput:
    """Validate and map one group-shaped object, attaching its derived view."""
    _check(_ENTRY_VALIDATOR, raw, prefix=field)
    return StatsEntryOutput.from_entry(_map_entry(raw, field or ROOT_FIELD))


def decode(raw_event: Any) -> RunSnapshot:
    _check(_EVENT_VALIDATOR, raw_event)

    stats_total = decode_entry(raw_event["stats_total"], "stats_total")
    stats = [
        decode_entry(raw, f"stats[{index}]")
        for index, raw in enumerate(raw_event["stats"])
    ]
    total = stats_total.entry
    return RunSnapshot(
        user_count=int(raw_event["user_count"]),
        stats_total=stats_total,
        stats=tuple(stats),
        total_rps=current_rps(total.num_requests, total.num_reqs_per_sec),
        total_fail_ratio=total_fail_ratio(total.num_requests, total.num_failures),
        errors=raw_event.get("errors") or {},
    )


def decode_json(text: str) -> RunSnapshot:
    try:
        raw_event = json.loads(text)
    except json.JSONDecodeError as exc:
        raise SnapshotDecodeError(ROOT_FIELD, f"invalid JSON: {exc}") from exc
    return decode(raw_event)
