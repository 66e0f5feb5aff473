"""In-process event publishing.

Collaborators (notifications, daily planning, dashboards) subscribe to the
events they care about; the attendance core never reaches into them.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Callable

logger = logging.getLogger(__name__)

DAY_STARTED = "attendance.day_started"
DAY_AUTO_CLOSED = "attendance.day_auto_closed"

Handler = Callable[[dict[str, Any]], None]


class EventBus:
    def __init__(self):
        self._handlers: dict[str, list[Handler]] = defaultdict(list)

    def subscribe(self, name: str, handler: Handler) -> None:
        self._handlers[name].append(handler)

    def publish(self, name: str, payload: dict[str, Any]) -> None:
        for handler in list(self._handlers.get(name, ())):
            try:
                handler(payload)
            except Exception:
                # A broken subscriber must not undo an attendance write.
                logger.exception("event handler failed for %s", name)
