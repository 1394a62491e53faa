"""
Gemini LLM Service

Primary text provider for order structuring and identifier matching.
"""

import logging
from typing import Any, List, Optional

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from .base import BaseLLMService, DEFAULT_TIMEOUT, ProviderResponse

logger = logging.getLogger(__name__)


class GeminiLLMService(BaseLLMService):
    """Google Gemini LLM service"""

    provider_name = "gemini"
    transport_errors = (genai_errors.APIError,)

    def __init__(self, api_key: Optional[str] = None, model: str = "gemini-2.0-flash",
                 timeout: Optional[float] = DEFAULT_TIMEOUT):
        """
        Initialize Gemini LLM service

        Args:
            api_key: Gemini API key (falls back to GEMINI_API_KEY / GOOGLE_API_KEY)
            model: Model to use (default: gemini-2.0-flash)
            timeout: Per-call timeout in seconds
        """
        super().__init__(model=model, timeout=timeout, api_key=api_key)

    def _create_client(self) -> genai.Client:
        return genai.Client(api_key=self.api_key) if self.api_key else genai.Client()

    async def _complete(self, prompt, system_prompt, json_mode, temperature, max_tokens,
                        image, image_media_type) -> ProviderResponse:
        config_kwargs = {"temperature": temperature}
        if max_tokens:
            config_kwargs["max_output_tokens"] = max_tokens
        if system_prompt:
            config_kwargs["system_instruction"] = system_prompt
        if json_mode:
            config_kwargs["response_mime_type"] = "application/json"

        contents: List[Any] = [prompt]
        if image is not None:
            contents = [types.Part.from_bytes(data=image, mime_type=image_media_type), prompt]

        logger.info(f"🤖 Calling Gemini {self.model}...")
        response = await self.client.aio.models.generate_content(
            model=self.model,
            contents=contents,
            config=types.GenerateContentConfig(**config_kwargs),
        )

        usage = {}
        metadata = getattr(response, "usage_metadata", None)
        if metadata is not None:
            usage = {
                "prompt_tokens": getattr(metadata, "prompt_token_count", None),
                "completion_tokens": getattr(metadata, "candidates_token_count", None),
                "total_tokens": getattr(metadata, "total_token_count", None),
            }

        return ProviderResponse(
            content=(getattr(response, "text", "") or ""),
            provider=self.provider_name,
            model=self.model,
            usage=usage,
        )
