"""Operation context for log records.

The conversion engine runs each operation inside operation_context(), so
every record emitted while ffmpeg runs (including from the engine's
helper threads, which run in a copied context) carries an ``op_tag`` such
as ``"[convert:clip.mkv] "``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from pathlib import Path

_operation_name: ContextVar[str | None] = ContextVar("operation_name", default=None)
_operation_path: ContextVar[str | None] = ContextVar("operation_path", default=None)


def get_operation_context() -> tuple[str | None, str | None]:
    """Return the current (operation name, media path)."""
    return _operation_name.get(), _operation_path.get()


@contextmanager
def operation_context(
    name: str, path: str | Path | None = None
) -> Iterator[None]:
    """Tag log records with an operation name and media path.

    Previous values are restored on exit, including on exceptions.
    """
    name_token = _operation_name.set(name)
    path_token = _operation_path.set(str(path) if path is not None else None)
    try:
        yield
    finally:
        _operation_path.reset(path_token)
        _operation_name.reset(name_token)


class OperationContextFilter(logging.Filter):
    """Inject operation context attributes into every log record.

    Adds ``operation``, ``media_path`` and ``op_tag``. The filter never
    drops records.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        name, path = get_operation_context()
        record.operation = name
        record.media_path = path
        if name and path:
            record.op_tag = f"[{name}:{Path(path).name}] "
        elif name:
            record.op_tag = f"[{name}] "
        else:
            record.op_tag = ""
        return True
