import logging
from typing import Any, Callable

from offline.domain.events import OfflineEvent


EventListener = Callable[[Any], None]


class EventRegistry:
    """
    Subscribers per event, in registration order.

    Registering the same listener twice has no additional effect. Emission
    iterates a snapshot, so listeners may subscribe or unsubscribe while an
    event is being delivered.
    """

    def __init__(self, logger: logging.Logger | None = None):
        self._listeners: dict[OfflineEvent, list[EventListener]] = {
            event: [] for event in OfflineEvent
        }
        self._logger = logger or logging.getLogger(__name__)

    def on(self, event: OfflineEvent | str, listener: EventListener) -> None:
        listeners = self._listeners[OfflineEvent(event)]
        if listener not in listeners:
            listeners.append(listener)

    def off(self, event: OfflineEvent | str, listener: EventListener) -> None:
        listeners = self._listeners[OfflineEvent(event)]
        if listener in listeners:
            listeners.remove(listener)

    def emit(self, event: OfflineEvent, payload: Any) -> None:
        for listener in list(self._listeners[event]):
            try:
                listener(payload)
            except Exception as e:
                self._logger.error(
                    f"Error in {event.value} event listener: {e}", exc_info=True
                )

    def listener_count(self, event: OfflineEvent | str) -> int:
        return len(self._listeners[OfflineEvent(event)])

    def clear(self) -> None:
        for listeners in self._listeners.values():
            listeners.clear()
