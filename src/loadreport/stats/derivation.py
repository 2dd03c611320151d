"""
Derived statistics for a single stats entry.

Every function is total: a run that has not observed any request yet
(first reporting tick) yields 0 / 0.0 instead of raising.
"""

from __future__ import annotations

from typing import Mapping


def _trunc_div(numerator: int, denominator: int) -> int:
    # Truncate toward zero; floor division differs for negative operands.
    quotient = abs(numerator) // abs(denominator)
    return quotient if (numerator >= 0) == (denominator >= 0) else -quotient


def median_response_time(num_requests: int, response_times: Mapping[int, int]) -> int:
    """
    Lower median of the response time histogram.

    Walks the buckets in ascending order until the order statistic at
    (num_requests - 1) / 2 is reached. Returns 0 for an empty histogram and
    also when the histogram holds fewer samples than num_requests.
    """
    if not response_times:
        return 0
    pos = _trunc_div(num_requests - 1, 2) if num_requests > 0 else 0
    for bucket in sorted(response_times):
        count = response_times[bucket]
        if pos < count:
            return bucket
        pos -= count
    return 0


def avg_response_time(num_requests: int, total_response_time: int) -> float:
    if num_requests == 0:
        return 0.0
    return total_response_time / num_requests


def avg_content_length(num_requests: int, total_content_length: int) -> int:
    if num_requests == 0:
        return 0
    return _trunc_div(total_content_length, num_requests)


def current_rps(num_requests: int, num_reqs_per_sec: Mapping[int, int]) -> int:
    # Average over the distinct seconds observed, not wall-clock elapsed time.
    seconds = len(num_reqs_per_sec)
    if seconds == 0:
        return 0
    return _trunc_div(num_requests, seconds)


def current_fail_per_sec(num_failures: int, num_fail_per_sec: Mapping[int, int]) -> int:
    seconds = len(num_fail_per_sec)
    if seconds == 0:
        return 0
    return _trunc_div(num_failures, seconds)


def total_fail_ratio(total_requests: int, total_failures: int) -> float:
    if total_requests == 0:
        return 0.0
    return total_failures / total_requests
