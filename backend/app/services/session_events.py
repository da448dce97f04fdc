"""
Process-wide session context.

Components that care about sign-in / sign-out register a listener and get
back an unsubscribe callable, instead of polling shared state.
"""
from __future__ import annotations
import logging
import threading
from dataclasses import dataclass
from typing import Callable, Literal, Optional

logger = logging.getLogger(__name__)

SessionEventKind = Literal["signed_in", "signed_out"]


@dataclass(frozen=True)
class SessionEvent:
    kind: SessionEventKind
    user_id: int
    email: Optional[str] = None


Listener = Callable[[SessionEvent], None]


class SessionEvents:
    def __init__(self) -> None:
        self._listeners: list[Listener] = []
        self._lock = threading.Lock()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def publish(self, kind: SessionEventKind, user) -> SessionEvent:
        event = SessionEvent(kind=kind, user_id=user.id, email=getattr(user, "email", None))
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event)
            except Exception as e:
                logger.error(f"Session listener {listener!r} failed on {kind}: {e}")
        return event

    def listener_count(self) -> int:
        with self._lock:
            return len(self._listeners)


session_events = SessionEvents()


def log_session_event(event: SessionEvent) -> None:
    logger.info(f"🔐 {event.kind}: user_id={event.user_id}")
