"""
OpenRouter chat completion backend.
"""

import asyncio
import json
from typing import Any, Dict, List, Optional

import aiohttp
from loguru import logger

from .base import (
    AIBackend,
    AIResponse,
    APIError,
    EmptyResponseError,
    InvalidModelError,
    MissingCredentialError,
    TransportError,
)


class OpenRouterBackend(AIBackend):
    """OpenAI compatible /chat/completions endpoint with bearer auth."""

    def __init__(
        self,
        api_url: str,
        model: str,
        api_key: Optional[str],
        timeout: float = 30,
        connect_timeout: float = 10,
        temperature: float = 0.1,
        top_p: float = 0.9,
        max_tokens: int = 400,
    ):
        super().__init__(api_url, model, timeout, connect_timeout)
        if not api_key or not api_key.strip():
            raise MissingCredentialError(
                "OPENROUTER_API_KEY is not set; export it or add it to your .env file"
            )
        self.api_key = api_key.strip()
        self.temperature = temperature
        self.top_p = top_p
        self.max_tokens = max_tokens

    def build_payload(self, messages: List[Dict[str, str]], model: str) -> Dict[str, Any]:
        return {
            "model": model,
            "messages": messages,
            "temperature": self.temperature,
            "top_p": self.top_p,
            "max_tokens": self.max_tokens,
        }

    @staticmethod
    def error_for_status(status: int, body: str, model: str) -> Exception:
        """Map an HTTP error status to the matching backend exception."""
        snippet = body.strip()[:300]
        if status >= 500 or status == 429:
            return TransportError(f"API returned {status}: {snippet}", status)
        if status == 400 and "model" in body.lower():
            return InvalidModelError(f"Model '{model}' was rejected by the API: {snippet}", model)
        if status in (401, 403):
            return APIError(f"API rejected the credentials ({status}): {snippet}", status)
        return APIError(f"API returned {status}: {snippet}", status)

    @staticmethod
    def parse_completion(data: Dict[str, Any], model: str) -> AIResponse:
        choices = data.get("choices") or []
        if not choices:
            raise EmptyResponseError("API response contained no choices")

        message = choices[0].get("message") or {}
        usage = data.get("usage") or {}
        return AIResponse(
            content=message.get("content") or "",
            model=data.get("model", model),
            tokens_used=usage.get("total_tokens"),
            backend_type="openrouter",
            raw_response=data,
        )

    async def call_api(self, messages: List[Dict[str, str]], model: Optional[str] = None) -> AIResponse:
        """Call the chat completions endpoint once."""
        model = model or self.model
        self._log_request(messages, model)

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        timeout = aiohttp.ClientTimeout(total=self.timeout, connect=self.connect_timeout)

        async with aiohttp.ClientSession(timeout=timeout) as session:
            try:
                async with session.post(
                    f"{self.api_url}/chat/completions",
                    json=self.build_payload(messages, model),
                    headers=headers,
                ) as response:
                    if response.status >= 400:
                        body = await response.text()
                        raise self.error_for_status(response.status, body, model)
                    text = await response.text()

            except aiohttp.ClientError as e:
                logger.error(f"OpenRouter API error: {e}")
                raise TransportError(f"Network error talking to {self.api_url}: {e}")
            except asyncio.TimeoutError:
                logger.error(f"OpenRouter API timeout after {self.timeout}s")
                raise TransportError(f"Request to {self.api_url} timed out after {self.timeout}s")

        try:
            data = json.loads(text)
        except ValueError as e:
            raise APIError(f"Failed to parse API response: {e}")
        return self.parse_completion(data, model)
