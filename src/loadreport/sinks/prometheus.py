from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

import requests
from prometheus_client import CollectorRegistry, Gauge, push_to_gateway

from loadreport.common.models import RunSnapshot
from loadreport.stats.decoder import SnapshotDecodeError, decode

DEFAULT_NAMESPACE = "loadreport"
GATEWAY_URL_ENV = "PUSHGATEWAY_URL"

GROUP_LABELS = ("method", "name")

# (name, help) for gauges labelled by request group
GROUP_GAUGES: Tuple[Tuple[str, str], ...] = (
    ("num_requests", "The number of requests"),
    ("num_failures", "The number of failures"),
    ("median_response_time", "The median response time"),
    ("average_response_time", "The average response time"),
    ("min_response_time", "The min response time"),
    ("max_response_time", "The max response time"),
    ("average_content_length", "The average content length"),
    ("current_rps", "The current requests per second"),
    ("current_fail_per_sec", "The current failure number per second"),
)

RUN_GAUGES: Tuple[Tuple[str, str], ...] = (
    ("users", "The current number of users"),
    ("total_rps", "The requests per second in total"),
    ("fail_ratio", "The ratio of request failures in total"),
)


@dataclass(frozen=True)
class PushgatewayConfig:
    gateway_url: str
    job_name: str
    namespace: str = DEFAULT_NAMESPACE
    grouping_key: Dict[str, str] = field(default_factory=dict)
    timeout_sec: Optional[float] = None

    @staticmethod
    def from_settings(raw: dict) -> "PushgatewayConfig":
        section = raw.get("sinks", {}).get("prometheus", {}) or {}
        gateway_url = os.getenv(GATEWAY_URL_ENV) or str(section.get("gateway_url", ""))
        if not gateway_url:
            raise ValueError("sinks.prometheus.gateway_url is required")
        timeout = section.get("timeout_sec")
        return PushgatewayConfig(
            gateway_url=gateway_url,
            job_name=str(section.get("job_name", "loadtest")),
            namespace=str(section.get("namespace", DEFAULT_NAMESPACE)),
            grouping_key={
                str(k): str(v) for k, v in (section.get("grouping_key") or {}).items()
            },
            timeout_sec=float(timeout) if timeout is not None else None,
        )


def requests_handler(
    url: str,
    method: str,
    timeout: Optional[float],
    headers: List[Tuple[str, str]],
    data: bytes,
) -> Callable[[], None]:
    """push_to_gateway handler that sends through requests."""

    def handle() -> None:
        try:
            resp = requests.request(
                method, url, data=data, headers=dict(headers), timeout=timeout
            )
        except requests.RequestException as exc:
            raise OSError(f"error talking to pushgateway: {exc}") from exc
        if resp.status_code >= 300:
            raise OSError(
                f"error talking to pushgateway: {resp.status_code} "
                f"{getattr(resp, 'text', '')}"
            )

    return handle


class PrometheusPushSink:
    """
    Sets gauges from every tick and pushes them to a Pushgateway.

    Each push replaces the job's metrics with the current state. Failed
    decodes and failed pushes are logged and the tick is dropped; gauges
    keep the values of the latest decoded tick.
    """

    def __init__(
        self,
        config: PushgatewayConfig,
        registry: CollectorRegistry | None = None,
        logger: logging.Logger | None = None,
        handler: Callable[..., Callable[[], None]] = requests_handler,
    ) -> None:
        self.config = config
        self.registry = registry if registry is not None else CollectorRegistry()
        self._logger = logger or logging.getLogger(__name__)
        self._handler = handler
        self._lock = threading.Lock()
        self._group_gauges: Dict[str, Gauge] = {}
        self._run_gauges: Dict[str, Gauge] = {}

    @property
    def started(self) -> bool:
        return bool(self._group_gauges)

    def on_start(self) -> None:
        with self._lock:
            self._register()

    def _register(self) -> None:
        if self.started:
            return
        self._logger.info(
            "prometheus_register_collectors",
            extra={"namespace": self.config.namespace},
        )
        for name, doc in GROUP_GAUGES:
            self._group_gauges[name] = Gauge(
                name,
                doc,
                labelnames=GROUP_LABELS,
                namespace=self.config.namespace,
                registry=self.registry,
            )
        for name, doc in RUN_GAUGES:
            self._run_gauges[name] = Gauge(
                name, doc, namespace=self.config.namespace, registry=self.registry
            )

    def on_stop(self) -> None:
        pass

    def on_event(self, raw_event: Mapping[str, Any]) -> None:
        try:
            snapshot = decode(raw_event)
        except SnapshotDecodeError as exc:
            self._logger.warning(
                "prometheus_sink_decode_failed",
                extra={"field": exc.field, "error": exc.message},
            )
            return

        with self._lock:
            self._register()
            self._set_gauges(snapshot)
            self._push()

    def _set_gauges(self, snapshot: RunSnapshot) -> None:
        self._run_gauges["users"].set(snapshot.user_count)
        self._run_gauges["total_rps"].set(snapshot.total_rps)
        self._run_gauges["fail_ratio"].set(snapshot.total_fail_ratio)

        for stat in snapshot.stats:
            values = {
                "num_requests": stat.num_requests,
                "num_failures": stat.num_failures,
                "median_response_time": stat.median_response_time,
                "average_response_time": stat.avg_response_time,
                "min_response_time": stat.min_response_time,
                "max_response_time": stat.max_response_time,
                "average_content_length": stat.avg_content_length,
                "current_rps": stat.current_rps,
                "current_fail_per_sec": stat.current_fail_per_sec,
            }
            for name, value in values.items():
                self._group_gauges[name].labels(stat.method, stat.name).set(value)

    def _push(self) -> None:
        try:
            push_to_gateway(
                self.config.gateway_url,
                job=self.config.job_name,
                registry=self.registry,
                grouping_key=self.config.grouping_key or None,
                timeout=self.config.timeout_sec,
                handler=self._handler,
            )
        except OSError as exc:
            self._logger.warning(
                "prometheus_push_failed",
                extra={"gateway_url": self.config.gateway_url, "error": str(exc)},
            )
