"""
LLM service factory

Builds provider services from the ``{provider, model}`` entries of the
extraction and matching configuration sections.
"""

import logging
import os
from enum import Enum
from typing import Any, Dict, Optional, Union

from ordex.errors import UnsupportedProviderError

from .base import BaseLLMService, DEFAULT_TIMEOUT

logger = logging.getLogger(__name__)


class ProviderKind(str, Enum):
    OPENAI = "openai"
    GEMINI = "gemini"
    ANTHROPIC = "anthropic"


API_KEY_ENV = {
    ProviderKind.OPENAI: "OPENAI_API_KEY",
    ProviderKind.GEMINI: "GEMINI_API_KEY",
    ProviderKind.ANTHROPIC: "ANTHROPIC_API_KEY",
}


def create_llm_service(kind: Union[str, ProviderKind], model: Optional[str] = None,
                       api_key: Optional[str] = None,
                       timeout: Optional[float] = DEFAULT_TIMEOUT) -> BaseLLMService:
    """
    Create an LLM service

    Args:
        kind: Provider kind (openai, gemini, anthropic)
        model: Model name; the service default is used when omitted
        api_key: API key; read from the provider's environment variable when omitted
        timeout: Per-call timeout in seconds

    Returns:
        Configured LLM service

    Raises:
        UnsupportedProviderError: If the provider kind is unknown
    """
    try:
        kind = ProviderKind(kind) if isinstance(kind, ProviderKind) else ProviderKind(str(kind).lower())
    except ValueError:
        raise UnsupportedProviderError(str(kind))

    api_key = api_key or os.getenv(API_KEY_ENV[kind])
    kwargs: Dict[str, Any] = {'api_key': api_key, 'timeout': timeout}
    if model:
        kwargs['model'] = model

    # SDK imports stay local so only configured providers need their package
    if kind == ProviderKind.OPENAI:
        from .openai_service import OpenAILLMService
        return OpenAILLMService(**kwargs)
    if kind == ProviderKind.GEMINI:
        from .gemini_service import GeminiLLMService
        return GeminiLLMService(**kwargs)

    from .claude_service import ClaudeLLMService
    return ClaudeLLMService(**kwargs)


def create_from_config(entry: Dict[str, Any], timeout: Optional[float] = DEFAULT_TIMEOUT) -> BaseLLMService:
    """Create a service from a ``{provider, model, api_key?}`` configuration entry"""
    return create_llm_service(
        entry.get('provider', ''),
        model=entry.get('model'),
        api_key=entry.get('api_key'),
        timeout=timeout,
    )
