"""
State Persistence - explicit save/load boundary for the chat store.

The state file holds ``{"version": ..., "state": <store snapshot>}``. Older
versions are migrated forward before the store is rebuilt.
"""

import json
import logging
from typing import Any, Dict

from ..core.chat_store import ChatStore
from .interface import StorageInterface

logger = logging.getLogger(__name__)

STATE_VERSION = 1.2


def migrate(state: Dict[str, Any], version: float) -> Dict[str, Any]:
    """Bring a persisted snapshot up to ``STATE_VERSION``."""
    sessions = state.get("sessions") or []

    if version == 1:
        for session in sessions:
            session["context"] = []

    if version < 1.2:
        for session in sessions:
            session["sendMemory"] = True

    return state


class StatePersistence:
    """Saves and restores a ``ChatStore`` through a storage backend."""

    def __init__(self, storage: StorageInterface, path: str = "chat-next-web-store.json"):
        self.storage = storage
        self.path = path

    async def save(self, store: ChatStore) -> bool:
        payload = {"version": STATE_VERSION, "state": store.snapshot()}
        return await self.storage.save(self.path, json.dumps(payload, ensure_ascii=False))

    async def load(self, **store_kwargs: Any) -> ChatStore:
        """
        Load the persisted store, or a fresh one when nothing usable is stored.

        Args:
            **store_kwargs: Passed to the ChatStore constructor (transport, system_prompt, ...)
        """
        raw = await self.storage.load(self.path)
        if raw is None:
            logger.info(f"No saved chat state at {self.path}, starting fresh")
            return ChatStore(**store_kwargs)

        try:
            payload = json.loads(raw.decode('utf-8'))
            version = float(payload.get("version", STATE_VERSION))
            state = migrate(payload.get("state") or {}, version)
            store = ChatStore.from_snapshot(state, **store_kwargs)
        except (ValueError, TypeError, KeyError, AttributeError) as e:
            logger.warning(f"Discarding unreadable chat state {self.path}: {e}")
            return ChatStore(**store_kwargs)

        logger.info(
            f"Loaded chat state v{version}: {len(store.sessions)} sessions",
            extra={"extra_fields": {"path": self.path, "version": version}}
        )
        return store

    async def clear(self) -> bool:
        return await self.storage.delete(self.path)
