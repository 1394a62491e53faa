"""
OpenAI LLM Service

Chat completions for order structuring and image analysis with OpenAI models.
"""

import base64
import logging
from typing import Any, Dict, List, Optional

import openai
from openai import AsyncOpenAI

from .base import BaseLLMService, DEFAULT_TIMEOUT, ProviderResponse

logger = logging.getLogger(__name__)


class OpenAILLMService(BaseLLMService):
    """OpenAI LLM service"""

    provider_name = "openai"
    transport_errors = (openai.OpenAIError,)

    def __init__(self, api_key: Optional[str] = None, model: str = "gpt-4o",
                 timeout: Optional[float] = DEFAULT_TIMEOUT):
        """
        Initialize OpenAI LLM service

        Args:
            api_key: OpenAI API key (falls back to OPENAI_API_KEY)
            model: Model to use (default: gpt-4o)
            timeout: Per-call timeout in seconds
        """
        super().__init__(model=model, timeout=timeout, api_key=api_key)

    def _create_client(self) -> AsyncOpenAI:
        return AsyncOpenAI(api_key=self.api_key)

    async def _complete(self, prompt, system_prompt, json_mode, temperature, max_tokens,
                        image, image_media_type) -> ProviderResponse:
        messages: List[Dict[str, Any]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})

        if image is not None:
            encoded = base64.b64encode(image).decode("ascii")
            messages.append({
                "role": "user",
                "content": [
                    {"type": "text", "text": prompt},
                    {"type": "image_url",
                     "image_url": {"url": f"data:{image_media_type};base64,{encoded}"}},
                ],
            })
        else:
            messages.append({"role": "user", "content": prompt})

        request_kwargs: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
        }
        if max_tokens:
            request_kwargs["max_tokens"] = max_tokens
        if json_mode:
            request_kwargs["response_format"] = {"type": "json_object"}

        logger.info(f"🤖 Calling OpenAI {self.model}...")
        response = await self.client.chat.completions.create(**request_kwargs)

        usage = {}
        if getattr(response, "usage", None) is not None:
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }

        return ProviderResponse(
            content=response.choices[0].message.content or "",
            provider=self.provider_name,
            model=self.model,
            usage=usage,
        )
