"""Models module."""

from .chat import (
    ALL_MODELS,
    ROLES,
    ChatConfig,
    ChatSession,
    ChatStat,
    Message,
    ModelConfig,
    ModelConfigValidator,
    SubmitKey,
    Theme,
    bot_hello,
    create_empty_session,
    create_message,
    limit_model,
    limit_number,
)

__all__ = [
    'ALL_MODELS', 'ROLES', 'ChatConfig', 'ChatSession', 'ChatStat', 'Message',
    'ModelConfig', 'ModelConfigValidator', 'SubmitKey', 'Theme', 'bot_hello',
    'create_empty_session', 'create_message', 'limit_model', 'limit_number',
]
