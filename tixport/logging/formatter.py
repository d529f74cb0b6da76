"""JSON log formatter emitting Elastic Common Schema field names."""

from __future__ import annotations

import logging
import os
import traceback
from datetime import datetime, timezone
from typing import Any

from pythonjsonlogger import jsonlogger

SERVICE_NAME = os.getenv("SERVICE_NAME", "tixport-api")

# ``extra`` keys used throughout the code base and their ECS names.
FIELD_MAP = {
    # access log
    "request_id": "http.request.id",
    "client_ip": "client.ip",
    "http_request_method": "http.request.method",
    "http_status_code": "http.response.status_code",
    "url_path": "url.path",
    "url_query": "url.query",
    "user_agent": "user_agent.original",
    "event_duration": "event.duration",
    "event_dataset": "event.dataset",
    "event_action": "event.action",
    # failures
    "error_type": "error.type",
    "error_message": "error.message",
    "error_stack": "error.stack",
    "validation_error_count": "validation.error.count",
    # ticketing provider
    "upstream_endpoint": "upstream.endpoint",
    "upstream_status_code": "upstream.response.status_code",
    "canonical_request": "upstream.canonical_request",
    # coordinate resolution and metrics
    "location_source": "geo.source",
    "metric_name": "metric.name",
    "metric_type": "metric.type",
    "metric_value": "metric.value",
}


class ECSJsonFormatter(jsonlogger.JsonFormatter):
    """Render records as one ECS aligned JSON object per line."""

    def __init__(self, *args: Any, service_name: str = SERVICE_NAME, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.service_name = service_name

    def add_fields(
        self, log_record: dict[str, Any], record: logging.LogRecord, message_dict: dict[str, Any]
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record.setdefault(
            "@timestamp",
            datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
        )
        log_record.setdefault("message", record.getMessage())
        log_record["log.level"] = record.levelname
        log_record["log.logger"] = record.name
        log_record["service.name"] = self.service_name

        for attr, ecs_name in FIELD_MAP.items():
            value = log_record.pop(attr, None)
            if value is None:
                value = getattr(record, attr, None)
            if value is not None:
                log_record[ecs_name] = value
        log_record.setdefault("event.dataset", f"{self.service_name}.app")

        if record.exc_info and "error.stack" not in log_record:
            log_record["error.stack"] = "".join(
                traceback.format_exception(*record.exc_info)
            ).strip()

        for key in [key for key, value in log_record.items() if value is None]:
            del log_record[key]
