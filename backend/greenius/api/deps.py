"""
Shared dependencies for the API routers.
The store and its persistence are created once in the app lifespan.
"""

import logging

from fastapi import Request

from ..core import ChatStore
from ..storage import StatePersistence

logger = logging.getLogger(__name__)


def get_store(request: Request) -> ChatStore:
    return request.app.state.chat_store


def get_persistence(request: Request) -> StatePersistence:
    return request.app.state.persistence


async def save_state(store: ChatStore, persistence: StatePersistence) -> None:
    if not await persistence.save(store):
        logger.warning("Chat state could not be saved")


async def summarize_and_save(store: ChatStore, persistence: StatePersistence) -> None:
    """Background job run after a completed response."""
    await store.summarize_session()
    await save_state(store, persistence)
