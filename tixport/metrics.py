"""Helpers for emitting structured operational metrics via logging."""

from __future__ import annotations

import logging

_metrics_logger = logging.getLogger("tixport.metrics")


def increment_coordinate_resolutions(source: str) -> None:
    """Emit a counter metric for each coordinate resolution by outcome."""

    _metrics_logger.info(
        "coordinate resolution completed",
        extra={
            "event_dataset": "tixport-api.metrics",
            "event_action": "coordinate_resolution",
            "metric_name": "coordinate_resolutions_total",
            "metric_type": "counter",
            "metric_value": 1,
            "location_source": source,
        },
    )


def observe_upstream_request(endpoint: str, status_code: int | None, duration_ns: int) -> None:
    """Emit a timing metric for a call to the ticketing provider."""

    _metrics_logger.info(
        "upstream request completed",
        extra={
            "event_dataset": "tixport-api.metrics",
            "event_action": "upstream_request",
            "metric_name": "upstream_request_duration_ns",
            "metric_type": "histogram",
            "metric_value": duration_ns,
            "upstream_endpoint": endpoint,
            "upstream_status_code": status_code,
        },
    )


__all__ = ["increment_coordinate_resolutions", "observe_upstream_request"]
