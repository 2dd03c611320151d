import io
import logging
import sys
from pathlib import Path

import pytest
from rich.console import Console

REPO_ROOT = Path(__file__).resolve().parents[1]
SRC = REPO_ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


def make_entry(
    method: str = "GET",
    name: str = "/",
    *,
    num_requests: int = 0,
    num_failures: int = 0,
    response_times=None,
    total_response_time: int = 0,
    total_content_length: int = 0,
    min_response_time: int = 0,
    max_response_time: int = 0,
    num_reqs_per_sec=None,
    num_fail_per_sec=None,
) -> dict:
    return {
        "method": method,
        "name": name,
        "num_requests": num_requests,
        "num_failures": num_failures,
        "response_times": response_times or {},
        "total_response_time": total_response_time,
        "total_content_length": total_content_length,
        "min_response_time": min_response_time,
        "max_response_time": max_response_time,
        "num_reqs_per_sec": num_reqs_per_sec or {},
        "num_fail_per_sec": num_fail_per_sec or {},
    }


def make_event(stats=None, *, user_count: int = 10, total=None) -> dict:
    stats = list(stats) if stats is not None else []
    if total is None:
        total = make_entry("", "")
        del total["method"]
        del total["name"]
    return {"user_count": user_count, "stats_total": total, "stats": stats}


@pytest.fixture
def sample_event() -> dict:
    get_root = make_entry(
        "GET",
        "/",
        num_requests=40,
        num_failures=4,
        response_times={100: 30, 200: 10},
        total_response_time=5000,
        total_content_length=4096,
        min_response_time=90,
        max_response_time=210,
        num_reqs_per_sec={1700000000: 10, 1700000001: 10, 1700000002: 10, 1700000003: 10},
        num_fail_per_sec={1700000000: 2, 1700000001: 2},
    )
    post_login = make_entry(
        "POST",
        "/login",
        num_requests=6,
        num_failures=0,
        response_times={100: 1, 200: 1, 300: 4},
        total_response_time=1500,
        total_content_length=600,
        min_response_time=100,
        max_response_time=300,
        num_reqs_per_sec={1700000000: 3, 1700000001: 3},
    )
    total = make_entry(
        "",
        "",
        num_requests=46,
        num_failures=4,
        response_times={100: 31, 200: 11, 300: 4},
        total_response_time=6500,
        total_content_length=4696,
        min_response_time=90,
        max_response_time=300,
        num_reqs_per_sec={1700000000: 13, 1700000001: 13, 1700000002: 10, 1700000003: 10},
        num_fail_per_sec={1700000000: 2, 1700000001: 2},
    )
    return make_event([get_root, post_login], user_count=25, total=total)


@pytest.fixture
def console_buffer():
    buffer = io.StringIO()
    console = Console(file=buffer, width=200, highlight=False, color_system=None)
    return console, buffer


@pytest.fixture(autouse=True)
def _reset_package_logger():
    yield
    logger = logging.getLogger("loadreport")
    for handler in logger.handlers:
        handler.close()
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
