"""
Session API endpoints - create, select, reorder, delete and restore chats.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from ..core import ChatStore
from ..storage import StatePersistence
from .deps import get_persistence, get_store, save_state

router = APIRouter(prefix="/sessions", tags=["sessions"])


class MoveRequest(BaseModel):
    from_index: int = Field(..., ge=0)
    to_index: int = Field(..., ge=0)


def _summary(index, session):
    return {
        "index": index,
        "id": session.id,
        "topic": session.topic,
        "message_count": len(session.messages),
        "last_update": session.last_update,
    }


@router.get("")
async def list_sessions(store: ChatStore = Depends(get_store)):
    """List session summaries and the current session index."""
    store.current_session()
    return {
        "sessions": [_summary(i, s) for i, s in enumerate(store.sessions)],
        "current_session_index": store.current_session_index,
    }


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_session(
    store: ChatStore = Depends(get_store),
    persistence: StatePersistence = Depends(get_persistence),
):
    session = store.new_session()
    await save_state(store, persistence)
    return session.model_dump(by_alias=True, mode="json")


@router.get("/current")
async def get_current_session(store: ChatStore = Depends(get_store)):
    session = store.current_session()
    return {
        "index": store.current_session_index,
        "session": session.model_dump(by_alias=True, mode="json"),
    }


@router.post("/{index}/select")
async def select_session(
    index: int,
    store: ChatStore = Depends(get_store),
    persistence: StatePersistence = Depends(get_persistence),
):
    if not 0 <= index < len(store.sessions):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found")
    store.select_session(index)
    await save_state(store, persistence)
    return {"current_session_index": store.current_session_index}


@router.post("/move")
async def move_session(
    body: MoveRequest,
    store: ChatStore = Depends(get_store),
    persistence: StatePersistence = Depends(get_persistence),
):
    count = len(store.sessions)
    if body.from_index >= count or body.to_index >= count:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found")
    store.move_session(body.from_index, body.to_index)
    await save_state(store, persistence)
    return {"current_session_index": store.current_session_index}


@router.delete("/current")
async def delete_current_session(
    store: ChatStore = Depends(get_store),
    persistence: StatePersistence = Depends(get_persistence),
):
    """Delete the current session. It can be restored with /sessions/revert for a short while."""
    deleted = store.delete_session()
    await save_state(store, persistence)
    return {
        "deleted": deleted,
        "revertible": store.can_revert(),
        "revert_window_seconds": store.revert_window,
    }


@router.post("/revert")
async def revert_delete(
    store: ChatStore = Depends(get_store),
    persistence: StatePersistence = Depends(get_persistence),
):
    if not store.revert_delete():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Nothing to revert")
    await save_state(store, persistence)
    return {"current_session_index": store.current_session_index}


@router.post("/current/reset")
async def reset_current_session(
    store: ChatStore = Depends(get_store),
    persistence: StatePersistence = Depends(get_persistence),
):
    store.reset_session()
    await save_state(store, persistence)
    return store.current_session().model_dump(by_alias=True, mode="json")


@router.delete("")
async def clear_all_data(
    store: ChatStore = Depends(get_store),
    persistence: StatePersistence = Depends(get_persistence),
):
    """Drop every session, reset the config and delete the saved state."""
    store.clear_all_data()
    await persistence.clear()
    return {"status": "cleared"}
