"""
OpenAI-compatible completion provider.
Talks to any ``/chat/completions`` endpoint that speaks the OpenAI wire format,
including Server-Sent Events streaming.
"""

import httpx
import json
import logging
import time
from typing import Optional, List, Dict, Any, AsyncGenerator

from ..core.logging_config import truncate_large_data
from .base import LLMProvider, LLMMessage, LLMResponse, LLMError

logger = logging.getLogger(__name__)


class OpenAIProvider(LLMProvider):
    """Provider for the OpenAI Chat Completions API and compatible servers."""

    provider_name = "openai"

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-3.5-turbo",
        base_url: str = "https://api.openai.com/v1",
        default_temperature: float = 0.7,
        default_max_tokens: int = 2048,
        timeout: float = 60.0,
    ):
        super().__init__(api_key, model, base_url, default_temperature, default_max_tokens)
        self.timeout = timeout

    def _get_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def _build_payload(
        self,
        messages: List[LLMMessage],
        temperature: Optional[float],
        max_tokens: Optional[int],
        stream: bool,
        **kwargs
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": kwargs.get("model") or self.model,
            "messages": self._format_messages(messages),
            "temperature": temperature if temperature is not None else self.default_temperature,
            "max_tokens": max_tokens or self.default_max_tokens,
            "stream": stream,
        }
        if kwargs.get("presence_penalty") is not None:
            payload["presence_penalty"] = kwargs["presence_penalty"]
        return payload

    def _log_start(self, kind: str, payload: Dict[str, Any], messages: List[LLMMessage]) -> None:
        if logger.isEnabledFor(logging.DEBUG):
            message_summary = f"{len(messages)} messages"
            if messages:
                message_summary += f", last: {truncate_large_data(messages[-1].content, 200)}"
            logger.debug(
                f"LLM API {kind} starting: provider={self.provider_name}, model={payload['model']}, "
                f"temperature={payload['temperature']}, {message_summary}"
            )

    def _log_failure(self, kind: str, payload: Dict[str, Any], start_time: float, error: Exception) -> None:
        duration_ms = (time.time() - start_time) * 1000
        logger.error(
            f"LLM API {kind} failed: {error}",
            exc_info=True,
            extra={"extra_fields": {
                "provider": self.provider_name,
                "model": payload.get("model"),
                "duration_ms": round(duration_ms, 2),
                "error": str(error),
            }}
        )

    @staticmethod
    def _to_llm_error(error: Exception) -> LLMError:
        if isinstance(error, httpx.HTTPStatusError):
            return LLMError(str(error), status_code=error.response.status_code)
        return LLMError(str(error))

    async def chat_completion(
        self,
        messages: List[LLMMessage],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        **kwargs
    ) -> LLMResponse:
        """Send a non-streaming request to the Chat Completions endpoint."""
        start_time = time.time()
        url = f"{self.base_url}/chat/completions"
        payload = self._build_payload(messages, temperature, max_tokens, stream=False, **kwargs)
        self._log_start("call", payload, messages)

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(url, json=payload, headers=self._get_headers())
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPError as e:
            self._log_failure("call", payload, start_time, e)
            raise self._to_llm_error(e) from e
        except ValueError as e:
            # 200 with a non-JSON body, e.g. a gateway error page
            self._log_failure("call", payload, start_time, e)
            raise LLMError(f"Invalid response body: {e}", status_code=resp.status_code) from e

        try:
            choices = data.get("choices") or [{}]
            content = (choices[0].get("message") or {}).get("content") or ""
            usage = data.get("usage") or {}
        except (AttributeError, KeyError, TypeError, IndexError) as e:
            self._log_failure("call", payload, start_time, e)
            raise LLMError(f"Unexpected response shape: {e}", status_code=resp.status_code) from e
        duration_ms = (time.time() - start_time) * 1000

        logger.info(
            "LLM API call completed",
            extra={"extra_fields": {
                "provider": self.provider_name,
                "model": data.get("model", payload["model"]),
                "prompt_tokens": usage.get("prompt_tokens", 0),
                "completion_tokens": usage.get("completion_tokens", 0),
                "total_tokens": usage.get("total_tokens", 0),
                "duration_ms": round(duration_ms, 2),
            }}
        )

        return LLMResponse(
            content=content,
            model=data.get("model", payload["model"]),
            usage=usage,
            raw=data,
        )

    async def chat_completion_stream(
        self,
        messages: List[LLMMessage],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        **kwargs
    ) -> AsyncGenerator[str, None]:
        """Stream text deltas from the Chat Completions endpoint."""
        start_time = time.time()
        url = f"{self.base_url}/chat/completions"
        payload = self._build_payload(messages, temperature, max_tokens, stream=True, **kwargs)
        self._log_start("stream", payload, messages)

        content_length = 0

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                async with client.stream('POST', url, json=payload, headers=self._get_headers()) as response:
                    if response.is_error:
                        await response.aread()
                    response.raise_for_status()

                    async for line in response.aiter_lines():
                        # SSE format: "data: {json}" or "data: [DONE]"
                        if not line.startswith("data: "):
                            continue

                        data_str = line[6:].strip()
                        if data_str == "[DONE]":
                            break

                        try:
                            chunk = json.loads(data_str)
                        except json.JSONDecodeError:
                            continue

                        choices = chunk.get("choices") or []
                        if not choices:
                            continue
                        delta = choices[0].get("delta", {}).get("content")
                        if delta:
                            content_length += len(delta)
                            yield delta
        except httpx.HTTPError as e:
            self._log_failure("stream", payload, start_time, e)
            raise self._to_llm_error(e) from e

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            "LLM API stream completed",
            extra={"extra_fields": {
                "provider": self.provider_name,
                "model": payload["model"],
                "duration_ms": round(duration_ms, 2),
                "content_length": content_length,
            }}
        )
