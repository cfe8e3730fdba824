"""API module."""

from .chat import router as chat_router
from .config import router as config_router
from .sessions import router as sessions_router

__all__ = ['chat_router', 'config_router', 'sessions_router']
