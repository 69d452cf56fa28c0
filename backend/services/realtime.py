# backend/services/realtime.py
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

ALL_TABLES = "*"


@dataclass(frozen=True)
class ChangeEvent:
    table: str
    event: str  # INSERT, UPDATE or DELETE
    record: dict = field(default_factory=dict)
    ts: datetime = field(default_factory=datetime.now)


Listener = Callable[[ChangeEvent], None]


class ChangeFeed:
    """Row-level change notifications for the catalog tables.

    Writers publish after a successful commit; listeners run synchronously on
    the publishing thread and must hand work off (e.g. to an event loop)
    themselves.
    """

    def __init__(self):
        self._listeners: Dict[str, List[Listener]] = {}
        self._lock = threading.Lock()

    def subscribe(self, table: str, listener: Listener) -> Callable[[], None]:
        with self._lock:
            self._listeners.setdefault(table, []).append(listener)

        def _unsubscribe():
            with self._lock:
                listeners = self._listeners.get(table, [])
                if listener in listeners:
                    listeners.remove(listener)

        return _unsubscribe

    def publish(self, table: str, event: str, record: Optional[dict] = None) -> ChangeEvent:
        change = ChangeEvent(table=table, event=event, record=record or {})
        with self._lock:
            listeners = list(self._listeners.get(table, [])) + list(self._listeners.get(ALL_TABLES, []))
        for listener in listeners:
            try:
                listener(change)
            except Exception:
                # A broken listener must not undo a committed write
                logger.exception("Change listener failed for %s %s", table, event)
        return change

    def listener_count(self, table: str) -> int:
        with self._lock:
            return len(self._listeners.get(table, []))


change_feed = ChangeFeed()
