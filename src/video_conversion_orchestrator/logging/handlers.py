"""JSON log formatting.

Every entry has a fixed shape so that a run can be followed across lines:
``timestamp``, ``level``, ``logger`` and ``message`` always, then the run
fields below when the record carries them, then ``exception``.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

# Record attributes promoted to top-level keys, in output order.
# operation/media_path come from OperationContextFilter; ffmpeg_pid and
# exit_code are passed by the engine via ``extra``.
RUN_FIELDS: tuple[str, ...] = ("operation", "media_path", "ffmpeg_pid", "exit_code")


class JSONFormatter(logging.Formatter):
    """Format log records as single-line JSON objects.

    Example output for an engine record::

        {"timestamp": "2024-05-01T10:00:00+00:00", "level": "INFO",
         "logger": "video_conversion_orchestrator.executor.engine",
         "message": "Started convert-mp4", "operation": "convert-mp4",
         "media_path": "/media/clip.mkv", "ffmpeg_pid": 4321}
    """

    def format(self, record: logging.LogRecord) -> str:
        record_time = datetime.fromtimestamp(record.created, tz=timezone.utc)
        entry: dict[str, Any] = {
            "timestamp": record_time.isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for field in RUN_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                entry[field] = value

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)
