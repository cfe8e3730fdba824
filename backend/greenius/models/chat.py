"""
Chat Models - Messages, sessions and the global chat configuration.

Field aliases follow the persisted snapshot shape (``isError``,
``memoryPrompt``, ``lastSummarizeIndex``...), while Python code uses
snake_case attribute names.
"""

import math
import time
from datetime import datetime
from enum import Enum
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from ..prompts import BOT_HELLO_TEXT, DEFAULT_TOPIC

Role = Literal["system", "user", "assistant"]

ROLES: List[str] = ["system", "user", "assistant"]

_last_message_id = 0


def _next_message_id() -> int:
    """Millisecond timestamp, bumped so that ids never repeat."""
    global _last_message_id
    now = int(time.time() * 1000)
    _last_message_id = max(now, _last_message_id + 1)
    return _last_message_id


def _display_date() -> str:
    return datetime.now().strftime("%Y/%m/%d %H:%M:%S")


class SnapshotModel(BaseModel):
    """Base for models serialized with camelCase keys."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
        protected_namespaces=(),
    )


class Message(SnapshotModel):
    """One chat message. ``id`` is its identity for the whole lifetime."""
    id: int = Field(default_factory=_next_message_id)
    role: Role = "user"
    content: str = ""
    date: str = Field(default_factory=_display_date)
    streaming: bool = False
    is_error: bool = False


def create_message(**override: Any) -> Message:
    """Create a message with a fresh id and display date."""
    return Message(**override)


class SubmitKey(str, Enum):
    ENTER = "Enter"
    CTRL_ENTER = "Ctrl + Enter"
    SHIFT_ENTER = "Shift + Enter"
    ALT_ENTER = "Alt + Enter"
    META_ENTER = "Meta + Enter"


class Theme(str, Enum):
    AUTO = "auto"
    DARK = "dark"
    LIGHT = "light"


ENABLE_GPT4 = True

ALL_MODELS = [
    {"name": "gpt-4", "available": ENABLE_GPT4},
    {"name": "gpt-4-0314", "available": ENABLE_GPT4},
    {"name": "gpt-4-32k", "available": ENABLE_GPT4},
    {"name": "gpt-4-32k-0314", "available": ENABLE_GPT4},
    {"name": "gpt-3.5-turbo", "available": True},
    {"name": "gpt-3.5-turbo-0301", "available": True},
]

DEFAULT_MODEL = "gpt-3.5-turbo"


def limit_number(x: Any, min_value: float, max_value: float, default_value: float) -> float:
    """Clamp ``x`` into [min_value, max_value]; non-numbers and NaN give the default."""
    if isinstance(x, bool) or not isinstance(x, (int, float)) or math.isnan(x):
        return default_value
    return min(max_value, max(min_value, x))


def limit_model(name: Any) -> str:
    """Return ``name`` if it is a known, available model, else the default model."""
    if any(m["name"] == name and m["available"] for m in ALL_MODELS):
        return name
    return DEFAULT_MODEL


class ModelConfigValidator:
    """Sanitizers for the user-editable model parameters."""

    @staticmethod
    def model(x: Any) -> str:
        return limit_model(x)

    @staticmethod
    def max_tokens(x: Any) -> int:
        return int(limit_number(x, 0, 32000, 2000))

    @staticmethod
    def presence_penalty(x: Any) -> float:
        return limit_number(x, -2, 2, 0)

    @staticmethod
    def temperature(x: Any) -> float:
        return limit_number(x, 0, 2, 1)


class ModelConfig(BaseModel):
    """Parameters forwarded to the completion endpoint."""
    model_config = ConfigDict(validate_assignment=True, protected_namespaces=())

    model: str = DEFAULT_MODEL
    temperature: float = 0.7
    max_tokens: int = 4000
    presence_penalty: float = 0

    @field_validator("model", mode="before")
    @classmethod
    def _limit_model(cls, v: Any) -> str:
        return ModelConfigValidator.model(v)

    @field_validator("temperature", mode="before")
    @classmethod
    def _limit_temperature(cls, v: Any) -> float:
        return ModelConfigValidator.temperature(v)

    @field_validator("max_tokens", mode="before")
    @classmethod
    def _limit_max_tokens(cls, v: Any) -> int:
        return ModelConfigValidator.max_tokens(v)

    @field_validator("presence_penalty", mode="before")
    @classmethod
    def _limit_presence_penalty(cls, v: Any) -> float:
        return ModelConfigValidator.presence_penalty(v)


class ChatConfig(SnapshotModel):
    """Global chat settings shared by all sessions."""
    history_message_count: int = 4  # -1 means all
    compress_message_length_threshold: int = 1000
    send_bot_messages: bool = True
    submit_key: SubmitKey = SubmitKey.CTRL_ENTER
    avatar: str = "1f603"
    font_size: int = 14
    theme: Theme = Theme.AUTO
    tight_border: bool = False
    send_preview_bubble: bool = False
    disable_prompt_hint: bool = False
    model_settings: ModelConfig = Field(default_factory=ModelConfig, alias="modelConfig")


class ChatStat(SnapshotModel):
    token_count: int = 0
    word_count: int = 0
    char_count: int = 0


class ChatSession(SnapshotModel):
    """One independent conversation thread."""
    id: int = Field(default_factory=_next_message_id)
    topic: str = DEFAULT_TOPIC
    send_memory: bool = True
    memory_prompt: str = ""
    context: List[Message] = Field(default_factory=list)
    messages: List[Message] = Field(default_factory=list)
    stat: ChatStat = Field(default_factory=ChatStat)
    last_update: str = Field(default_factory=_display_date)
    last_summarize_index: int = 0

    def find_message(self, message_id: int) -> Optional[Message]:
        for message in self.messages:
            if message.id == message_id:
                return message
        return None


def create_empty_session() -> ChatSession:
    return ChatSession()


def bot_hello() -> Message:
    """Greeting shown in an empty session; never stored in it."""
    return create_message(role="assistant", content=BOT_HELLO_TEXT)
