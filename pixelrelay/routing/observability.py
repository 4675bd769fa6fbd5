"""Observability sinks for terminal delivery failures and diagnostics.

The dispatcher reports three things:

* ``report_failure``: a task exhausted its retries (once per task);
* ``report_diagnostic``: something unexpected but non-fatal, e.g. a ready
  task whose destination is no longer registered;
* ``capture_exception``: an exception escaped a background drain.

Plug an error tracker in by implementing the protocol.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class ObservabilitySink(Protocol):
    """Receives failure reports and diagnostics from the dispatcher."""

    def report_failure(self, task_id: str, reason: str) -> None: ...

    def report_diagnostic(self, message: str, **data: Any) -> None: ...

    def capture_exception(self, exc: BaseException) -> None: ...


class LoggingObservabilitySink:
    """Default sink: routes everything to the standard ``logging`` module."""

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._log = log or logger

    def report_failure(self, task_id: str, reason: str) -> None:
        self._log.error("Delivery task %s failed permanently: %s", task_id, reason)

    def report_diagnostic(self, message: str, **data: Any) -> None:
        if data:
            details = ", ".join(f"{key}={value!r}" for key, value in sorted(data.items()))
            self._log.warning("%s (%s)", message, details)
        else:
            self._log.warning("%s", message)

    def capture_exception(self, exc: BaseException) -> None:
        self._log.exception("Unhandled delivery error", exc_info=exc)
