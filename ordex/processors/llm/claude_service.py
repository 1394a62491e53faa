"""
Claude (Anthropic) LLM Service

Optional provider; any extraction or matching role can be pointed at it
through configuration.
"""

import base64
import logging
from typing import Any, Dict, List, Optional

import anthropic

from .base import BaseLLMService, DEFAULT_TIMEOUT, ProviderResponse

logger = logging.getLogger(__name__)


class ClaudeLLMService(BaseLLMService):
    """Claude (Anthropic) LLM service"""

    provider_name = "anthropic"
    transport_errors = (anthropic.AnthropicError,)

    def __init__(self, api_key: Optional[str] = None, model: str = "claude-3-haiku-20240307",
                 timeout: Optional[float] = DEFAULT_TIMEOUT):
        """
        Initialize Claude LLM service

        Args:
            api_key: Anthropic API key (falls back to ANTHROPIC_API_KEY)
            model: Model to use (default: claude-3-haiku-20240307)
            timeout: Per-call timeout in seconds
        """
        super().__init__(model=model, timeout=timeout, api_key=api_key)

    def _create_client(self) -> anthropic.AsyncAnthropic:
        return anthropic.AsyncAnthropic(api_key=self.api_key)

    async def _complete(self, prompt, system_prompt, json_mode, temperature, max_tokens,
                        image, image_media_type) -> ProviderResponse:
        content: List[Dict[str, Any]] = []
        if image is not None:
            content.append({
                "type": "image",
                "source": {
                    "type": "base64",
                    "media_type": image_media_type,
                    "data": base64.b64encode(image).decode("ascii"),
                },
            })
        text = prompt
        if json_mode:
            text = f"{prompt}\n\nRespond with a single JSON object and nothing else."
        content.append({"type": "text", "text": text})

        request_kwargs: Dict[str, Any] = {
            "model": self.model,
            "messages": [{"role": "user", "content": content}],
            "temperature": temperature,
            "max_tokens": max_tokens or 4096,
        }
        if system_prompt:
            request_kwargs["system"] = system_prompt

        logger.info(f"🤖 Calling Claude {self.model}...")
        response = await self.client.messages.create(**request_kwargs)

        text_blocks = [block.text for block in response.content if getattr(block, "type", "") == "text"]
        usage = {}
        if getattr(response, "usage", None) is not None:
            usage = {
                "prompt_tokens": response.usage.input_tokens,
                "completion_tokens": response.usage.output_tokens,
            }

        return ProviderResponse(
            content="".join(text_blocks),
            provider=self.provider_name,
            model=self.model,
            usage=usage,
        )
