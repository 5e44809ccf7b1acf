# ingest/events.py
"""
Import-completed notifications.

The job runner publishes one ImportCompletedEvent per finished import; the
notification service (outside this package) subscribes a handler.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from ingest.contracts import JobStatus

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImportCompletedEvent:
    job_id: Optional[str]
    menu_id: str
    status: JobStatus
    summary: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "job_id": self.job_id,
            "menu_id": self.menu_id,
            "status": self.status.value,
            "summary": dict(self.summary),
        }


Handler = Callable[[ImportCompletedEvent], None]


class EventBus:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._handlers: List[Handler] = []

    def subscribe(self, handler: Handler) -> None:
        with self._lock:
            self._handlers.append(handler)

    def publish(self, event: ImportCompletedEvent) -> None:
        """A failing handler is logged; the import outcome is already final."""
        with self._lock:
            handlers = list(self._handlers)
        for handler in handlers:
            try:
                handler(event)
            except Exception:
                log.exception("import-completed handler %r failed for job %s", handler, event.job_id)
