"""LLM module - provides unified interface for LLM API providers."""

from .base import LLMProvider, LLMMessage, LLMResponse, LLMError
from .openai_provider import OpenAIProvider
from .volcengine_provider import VolcEngineProvider
from .factory import create_llm_provider
from .transport import ChatTransport, RequestOptions, StreamHandle

__all__ = [
    'LLMProvider',
    'LLMMessage',
    'LLMResponse',
    'LLMError',
    'OpenAIProvider',
    'VolcEngineProvider',
    'create_llm_provider',
    'ChatTransport',
    'RequestOptions',
    'StreamHandle',
]
