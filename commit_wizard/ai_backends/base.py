"""
Abstract base class for chat completion backends.
"""

import asyncio
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from loguru import logger


@dataclass
class AIResponse:
    """Structured AI response data."""

    content: str
    model: str
    tokens_used: Optional[int] = None
    response_time: Optional[float] = None
    backend_type: Optional[str] = None
    raw_response: Optional[Dict[str, Any]] = None


class AIBackend(ABC):
    """Abstract base class for AI backends."""

    def __init__(self, api_url: str, model: str, timeout: float = 30, connect_timeout: float = 10):
        """Initialize the AI backend."""
        self.api_url = api_url.rstrip('/')
        self.model = model
        self.timeout = timeout
        self.connect_timeout = connect_timeout
        self.backend_type = self.__class__.__name__.lower().replace('backend', '')

    @abstractmethod
    async def call_api(self, messages: List[Dict[str, str]], model: Optional[str] = None) -> AIResponse:
        """Send one chat completion request."""
        pass

    def _log_request(self, messages: List[Dict[str, str]], model: str) -> None:
        logger.debug(f"AI API request to {self.backend_type}")
        logger.debug(f"URL: {self.api_url}")
        logger.debug(f"Model: {model}")
        logger.debug(f"Prompt length: {sum(len(m['content']) for m in messages)} characters")
        logger.debug(f"Timeout: {self.connect_timeout}s connect, {self.timeout}s total")

    def _log_response(self, response: AIResponse) -> None:
        logger.debug(f"AI API response from {self.backend_type}")
        logger.debug(f"Response length: {len(response.content)} characters")
        if response.tokens_used:
            logger.debug(f"Tokens used: {response.tokens_used}")
        if response.response_time:
            logger.debug(f"Response time: {response.response_time:.2f}s")

    async def call_with_retry(
        self,
        messages: List[Dict[str, str]],
        model: Optional[str] = None,
        max_retries: int = 3,
    ) -> AIResponse:
        """Call the API, retrying transport failures with exponential backoff.

        Only TransportError is retried. Every other AIBackendError, and
        cancellation, propagates immediately.
        """
        attempts = max(1, max_retries)
        last_exception: Optional[TransportError] = None

        for attempt in range(attempts):
            try:
                logger.debug(f"AI API attempt {attempt + 1}/{attempts}")
                start_time = time.time()

                response = await self.call_api(messages, model)
                response.response_time = time.time() - start_time

                self._log_response(response)
                return response

            except TransportError as e:
                last_exception = e
                logger.warning(f"AI API attempt {attempt + 1} failed: {e}")

                if attempt < attempts - 1:
                    wait_time = 2 ** attempt  # Exponential backoff
                    logger.debug(f"Retrying in {wait_time} seconds...")
                    await asyncio.sleep(wait_time)

        logger.error(f"All {attempts} AI API attempts failed")
        raise last_exception


class AIBackendError(Exception):
    """Base exception for AI backend failures."""
    pass


class MissingCredentialError(AIBackendError):
    """No API key configured; raised before any network activity."""
    pass


class APIError(AIBackendError):
    """The API answered with an error that retrying will not fix."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class InvalidModelError(APIError):
    """The requested model was rejected; a caller may switch models."""

    def __init__(self, message: str, model: Optional[str] = None, status: Optional[int] = 400):
        super().__init__(message, status)
        self.model = model


class TransportError(AIBackendError):
    """Retryable failure: 5xx, 429, connection errors and timeouts."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class EmptyResponseError(AIBackendError):
    """The API returned no choices."""
    pass
