"""
LLM provider services for order extraction and identifier matching.
"""

from .base import BaseLLMService, ProviderResponse
from .factory import ProviderKind, create_from_config, create_llm_service
from .prompt_manager import PromptManager, RenderedPrompt, get_prompt_manager

__all__ = [
    'BaseLLMService',
    'ProviderResponse',
    'ProviderKind',
    'create_from_config',
    'create_llm_service',
    'PromptManager',
    'RenderedPrompt',
    'get_prompt_manager',
]
