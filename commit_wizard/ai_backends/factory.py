"""
AI backend factory.
"""

from typing import Optional
from loguru import logger

from .base import AIBackend
from .openrouter import OpenRouterBackend
from ..config.settings import Settings


class BackendFactory:
    """Factory for creating AI backends from settings."""

    _backends = {
        "openrouter": OpenRouterBackend,
    }

    @classmethod
    def create_backend(
        cls,
        settings: Settings,
        backend_type: Optional[str] = None,
        model: Optional[str] = None,
    ) -> AIBackend:
        """Create a backend; raises MissingCredentialError without an API key."""
        backend_type = backend_type or "openrouter"
        if backend_type not in cls._backends:
            raise ValueError(f"Unknown backend type: {backend_type}")

        backend_class = cls._backends[backend_type]
        ai = settings.ai
        backend = backend_class(
            api_url=ai.api_url,
            model=model or settings.models.default,
            api_key=ai.api_key,
            timeout=ai.timeout,
            connect_timeout=ai.connect_timeout,
            temperature=ai.temperature,
            top_p=ai.top_p,
            max_tokens=ai.max_tokens,
        )
        logger.info(f"Initialized {backend.backend_type} backend at {backend.api_url}")
        return backend

    @classmethod
    def list_supported_backends(cls) -> list[str]:
        """List all supported backend types."""
        return list(cls._backends.keys())
