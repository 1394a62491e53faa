"""
Base LLM Service

Common interface for the text/vision providers used by order extraction and
identifier matching. Concrete services only implement ``_complete``; timeouts
and SDK failures are translated here into ProviderTransportError so callers
never see provider-specific exception types.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple, Type

from ordex.errors import ProviderError, ProviderTransportError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60.0


@dataclass
class ProviderResponse:
    """Raw completion returned by a provider"""
    content: str
    provider: str
    model: str
    usage: Dict[str, Any] = field(default_factory=dict)


class BaseLLMService(ABC):
    """Abstract LLM service with timeout and error translation"""

    provider_name: str = "base"
    # SDK exception types treated as transport failures
    transport_errors: Tuple[Type[BaseException], ...] = ()

    def __init__(self, model: str, timeout: Optional[float] = DEFAULT_TIMEOUT, api_key: Optional[str] = None):
        self.model = model
        self.timeout = timeout
        self.api_key = api_key
        self._client: Any = None

    @property
    def client(self) -> Any:
        """SDK client, created on first use so unused providers need no credentials"""
        if self._client is None:
            try:
                self._client = self._create_client()
            except (ValueError,) + self.transport_errors as e:
                logger.warning(f"{self.provider_name} client unavailable: {e}")
                raise ProviderTransportError(self.provider_name, f"client unavailable: {e}") from e
        return self._client

    @client.setter
    def client(self, value: Any) -> None:
        self._client = value

    def _create_client(self) -> Any:
        raise NotImplementedError(f"{type(self).__name__} has no SDK client")

    async def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        json_mode: bool = False,
        temperature: float = 0.1,
        max_tokens: Optional[int] = None,
        image: Optional[bytes] = None,
        image_media_type: str = "image/png",
    ) -> ProviderResponse:
        """
        Generate a completion

        Args:
            prompt: User prompt
            system_prompt: Optional system prompt
            json_mode: Ask the provider for a JSON object response
            temperature: Sampling temperature
            max_tokens: Maximum tokens to generate
            image: Optional image bytes for vision requests
            image_media_type: Media type of ``image``

        Returns:
            ProviderResponse with the raw text content

        Raises:
            ProviderTransportError: On timeout, quota, auth or connection failure
        """
        try:
            coro = self._complete(
                prompt,
                system_prompt=system_prompt,
                json_mode=json_mode,
                temperature=temperature,
                max_tokens=max_tokens,
                image=image,
                image_media_type=image_media_type,
            )
            if self.timeout:
                response = await asyncio.wait_for(coro, timeout=self.timeout)
            else:
                response = await coro
        except asyncio.TimeoutError:
            logger.warning(f"{self.provider_name} call timed out after {self.timeout}s")
            raise ProviderTransportError(self.provider_name, f"timed out after {self.timeout}s")
        except ProviderError:
            raise
        except self.transport_errors as e:
            logger.warning(f"{self.provider_name} call failed: {e}")
            raise ProviderTransportError(self.provider_name, str(e)) from e

        if not response.content or not response.content.strip():
            raise ProviderTransportError(self.provider_name, "empty response")

        return response

    async def analyze_image(self, image: bytes, prompt: str, system_prompt: Optional[str] = None,
                            media_type: str = "image/png", max_tokens: Optional[int] = 4000,
                            temperature: float = 0.1) -> ProviderResponse:
        """Describe an image as free text (vision request)"""
        return await self.generate(
            prompt,
            system_prompt=system_prompt,
            temperature=temperature,
            max_tokens=max_tokens,
            image=image,
            image_media_type=media_type,
        )

    @abstractmethod
    async def _complete(
        self,
        prompt: str,
        system_prompt: Optional[str],
        json_mode: bool,
        temperature: float,
        max_tokens: Optional[int],
        image: Optional[bytes],
        image_media_type: str,
    ) -> ProviderResponse:
        """Perform the provider call"""
        pass
