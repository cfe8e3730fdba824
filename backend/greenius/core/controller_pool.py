"""
Controller Pool - tracks the cancellable in-flight request of each
(session, message) pair so a response can be stopped later.
"""

import logging
from typing import Dict, Optional, Protocol, Union

logger = logging.getLogger(__name__)

MessageKey = Union[int, str]


class Cancellable(Protocol):
    def cancel(self) -> None: ...


class ControllerPool:
    """At most one controller per (session index, message key)."""

    def __init__(self):
        self._controllers: Dict[str, Cancellable] = {}

    @staticmethod
    def _key(session_index: int, message_key: MessageKey) -> str:
        return f"{session_index},{message_key}"

    def __len__(self) -> int:
        return len(self._controllers)

    def __contains__(self, key: tuple) -> bool:
        return self._key(*key) in self._controllers

    def add_controller(self, session_index: int, message_key: MessageKey, controller: Cancellable) -> None:
        """Register ``controller``; a superseded controller for the same key is cancelled."""
        key = self._key(session_index, message_key)
        previous = self._controllers.get(key)
        self._controllers[key] = controller
        if previous is not None and previous is not controller:
            logger.info(f"Cancelling superseded request {key}")
            previous.cancel()

    def remove(
        self,
        session_index: int,
        message_key: MessageKey,
        controller: Optional[Cancellable] = None,
    ) -> None:
        """
        Forget the controller for a key. With ``controller`` given, only that
        exact controller is removed, so a late terminal event of a superseded
        request cannot evict its replacement.
        """
        key = self._key(session_index, message_key)
        current = self._controllers.get(key)
        if current is None:
            return
        if controller is not None and current is not controller:
            return
        del self._controllers[key]

    def stop(self, session_index: int, message_key: MessageKey) -> bool:
        """Cancel and forget one request. Returns False if nothing was in flight."""
        controller = self._controllers.pop(self._key(session_index, message_key), None)
        if controller is None:
            return False
        controller.cancel()
        return True

    def stop_all(self) -> int:
        controllers = list(self._controllers.values())
        self._controllers.clear()
        for controller in controllers:
            controller.cancel()
        return len(controllers)
