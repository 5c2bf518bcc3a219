from __future__ import annotations

import json
import logging
import os
from typing import TYPE_CHECKING

from prometheus_client import CollectorRegistry, Gauge, push_to_gateway

if TYPE_CHECKING:
    from historian_reader.runtime.summary import ScanSummary

LOGGER = logging.getLogger(__name__)

JOB_NAME = "historian_scan"

# gauge name -> FileScanResult attribute
FILE_GAUGES: dict[str, str] = {
    "historian_scan_records": "records",
    "historian_scan_corrupt_records": "corrupt_records",
    "historian_scan_truncated_tails": "truncated_tails",
    "historian_scan_splits": "split_count",
    "historian_scan_bytes": "file_bytes",
}

FILE_LABELS = ("scan_id", "path", "status")


class PrometheusMetricsClient:
    """Pushes per-file scan gauges to a Prometheus Pushgateway.

    Expected environment:
    - PROMETHEUS_PUSHGATEWAY_URL: Pushgateway URL, e.g.
      http://pushgateway.monitoring.svc.cluster.local:9091

    Optional:
    - PROMETHEUS_PUSHGATEWAY_GROUPING_KEY_JSON: JSON object of string pairs
      added to the grouping key, e.g. {"scan_worker": "worker-3"}. Without
      it, pushes from parallel scan workers replace each other.

    Without a gateway URL every call is a no-op.
    """

    def __init__(self) -> None:
        self._pushgateway_url = os.environ.get("PROMETHEUS_PUSHGATEWAY_URL")
        self._grouping_key = self._load_grouping_key()
        self._registry = CollectorRegistry()
        self._gauges = {
            name: Gauge(
                name,
                documentation=f"Per-file {attr.replace('_', ' ')} of a historian scan",
                labelnames=FILE_LABELS,
                registry=self._registry,
            )
            for name, attr in FILE_GAUGES.items()
        }

    def is_enabled(self) -> bool:
        return self._pushgateway_url is not None

    @property
    def registry(self) -> CollectorRegistry:
        return self._registry

    @staticmethod
    def _load_grouping_key() -> dict[str, str]:
        raw = os.environ.get("PROMETHEUS_PUSHGATEWAY_GROUPING_KEY_JSON")
        if not raw:
            return {}

        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            LOGGER.warning("Invalid PROMETHEUS_PUSHGATEWAY_GROUPING_KEY_JSON; ignoring")
            return {}

        if not isinstance(data, dict):
            return {}

        return {k: v for k, v in data.items() if isinstance(k, str) and isinstance(v, str)}

    def observe_scan(self, summary: ScanSummary) -> None:
        """Set one sample per gauge and file of ``summary``."""
        for result in summary.files:
            labels = {
                "scan_id": summary.scan_id,
                "path": result.path,
                "status": "failed" if result.error is not None else "success",
            }
            for name, attr in FILE_GAUGES.items():
                self._gauges[name].labels(**labels).set(float(getattr(result, attr)))

    def push(self) -> None:
        if not self._pushgateway_url:
            return

        push_to_gateway(
            gateway=self._pushgateway_url,
            job=JOB_NAME,
            registry=self._registry,
            grouping_key=self._grouping_key,
        )

        LOGGER.info(
            "Prometheus metrics pushed",
            extra={"job": JOB_NAME, "grouping_key": self._grouping_key},
        )
