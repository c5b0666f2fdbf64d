from __future__ import annotations

import json
import logging
import traceback
from datetime import datetime, timezone
from typing import Any

from .context import get_log_context

_MAX_FIELD_CHARS = 4000


def _clip(value: Any) -> Any:
    if isinstance(value, str) and len(value) > _MAX_FIELD_CHARS:
        return value[:_MAX_FIELD_CHARS] + "...[truncated]"
    return value


class JSONFormatter(logging.Formatter):
    """One JSON object per line.

    Bound context ids and the record's ``extra_fields`` dict are merged into
    the top level; long string fields (generated code, model output) are
    clipped.
    """

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        payload: dict[str, Any] = {
            "ts": created.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "msg": record.getMessage(),
            **get_log_context(),
        }

        fields = getattr(record, "extra_fields", None)
        if isinstance(fields, dict):
            payload.update({key: _clip(value) for key, value in fields.items()})

        if record.exc_info and record.exc_info[0] is not None:
            payload.update(self._exception_fields(record.exc_info))

        return json.dumps(payload, separators=(",", ":"), ensure_ascii=False, default=str)

    @staticmethod
    def _exception_fields(exc_info) -> dict[str, str]:
        exc_type, exc_value, exc_tb = exc_info
        return {
            "exc_type": exc_type.__name__,
            "exc_msg": str(exc_value),
            "stack": "".join(traceback.format_exception(exc_type, exc_value, exc_tb)),
        }
