"""
Chat API endpoints - submit user input, stream replies, stop generation.
"""

import json
import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field
from starlette.background import BackgroundTask

from ..core import ChatStore, ResponseState
from ..storage import StatePersistence
from .deps import get_persistence, get_store, save_state, summarize_and_save

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])


class UserInput(BaseModel):
    content: str = Field(..., min_length=1)


class StopRequest(BaseModel):
    session_index: int
    message_id: int


def _bot_message(store: ChatStore, chat_request):
    session = store.find_session(chat_request.session_id)
    message = session.find_message(chat_request.bot_message_id) if session else None
    return message.model_dump(by_alias=True, mode="json") if message else None


@router.post("/message")
async def send_message(
    body: UserInput,
    background_tasks: BackgroundTasks,
    stream: bool = Query(False, description="Enable streaming output"),
    store: ChatStore = Depends(get_store),
    persistence: StatePersistence = Depends(get_persistence),
):
    """
    Send user input to the current session.

    Args:
        body: The user's text
        stream: Enable Server-Sent Events streaming

    Returns:
        The final assistant message (stream=false) or a StreamingResponse (stream=true)
    """
    chat_request = store.on_user_input(body.content)
    await save_state(store, persistence)

    if not stream:
        state = await chat_request.wait()
        await save_state(store, persistence)
        if state == ResponseState.COMPLETED:
            background_tasks.add_task(summarize_and_save, store, persistence)
        return {
            "state": state.value,
            "session_index": chat_request.session_index,
            "message": _bot_message(store, chat_request),
        }

    async def event_generator():
        yield f"data: {json.dumps({'type': 'start', 'session_index': chat_request.session_index, 'message_id': chat_request.bot_message_id})}\n\n"
        async for event in chat_request.events():
            yield f"data: {json.dumps(event, ensure_ascii=False)}\n\n"
        await save_state(store, persistence)

    async def after_stream():
        if chat_request.state == ResponseState.COMPLETED:
            await summarize_and_save(store, persistence)

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",  # Disable nginx buffering
        },
        background=BackgroundTask(after_stream),
    )


@router.post("/stop")
async def stop_response(
    body: StopRequest,
    store: ChatStore = Depends(get_store),
    persistence: StatePersistence = Depends(get_persistence),
):
    """Stop generating one response."""
    if not store.stop_response(body.session_index, body.message_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No such response in flight")
    await save_state(store, persistence)
    return {"stopped": 1}


@router.post("/stop-all")
async def stop_all_responses(
    store: ChatStore = Depends(get_store),
    persistence: StatePersistence = Depends(get_persistence),
):
    stopped = store.stop_all()
    await save_state(store, persistence)
    return {"stopped": stopped}


@router.post("/summarize")
async def summarize_current_session(
    store: ChatStore = Depends(get_store),
    persistence: StatePersistence = Depends(get_persistence),
):
    """Run topic and memory summarization for the current session now."""
    await summarize_and_save(store, persistence)
    session = store.current_session()
    return {
        "topic": session.topic,
        "memory_prompt": session.memory_prompt,
        "last_summarize_index": session.last_summarize_index,
    }
