"""Core module - session store, context assembly and streaming response handling."""

from .chat_store import ChatStore
from .context import ContextAssembler
from .controller_pool import ControllerPool
from .stream_handler import ChatRequest, ResponseState

__all__ = ['ChatStore', 'ContextAssembler', 'ControllerPool', 'ChatRequest', 'ResponseState']
