"""
Volcano Engine (火山引擎) Ark provider.
The Ark API is OpenAI-compatible, so only the defaults differ.
"""

from .openai_provider import OpenAIProvider


class VolcEngineProvider(OpenAIProvider):
    """Provider for Volcano Engine Doubao / Ark chat completions."""

    provider_name = "volcengine"

    def __init__(
        self,
        api_key: str,
        model: str = "doubao-1-5-pro-256k-250115",
        base_url: str = "https://ark.cn-beijing.volces.com/api/v3",
        default_temperature: float = 0.7,
        default_max_tokens: int = 2048,
        timeout: float = 120.0,
    ):
        super().__init__(api_key, model, base_url, default_temperature, default_max_tokens, timeout)
