"""
Extraction Orchestrator

Routes a classified item to the vision, text or web handler and turns the
content into a structured ExtractionResult.

All handlers end in the same text-structuring chain:

1. primary provider, retried on unparseable output up to ``max_retries``
2. fallback provider, once, in JSON mode
3. regex scan of the raw provider outputs, then of the source text

Provider-level failures are collected along the way; only when every step
comes up empty is a single AllProvidersExhaustedError raised.
"""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx

from ordex.errors import (
    AllProvidersExhaustedError,
    NotProcessableError,
    ProviderParseError,
    ProviderTransportError,
    UnsupportedProcessorError,
)
from ordex.models import Classification, ExtractionResult, ProcessorTag, ProviderInput
from ordex.processors.llm import BaseLLMService, PromptManager, get_prompt_manager

from .json_repair import parse_json_object
from .normalizer import OrderNormalizer
from .rasterizer import PdfRasterizer, RasterizationError
from .text_fallback import RegexOrderExtractor
from .validator import calculate_confidence
from .web_fetcher import WebPageFetcher

logger = logging.getLogger(__name__)

EXTRACTION_PROMPT = 'order_extraction'
VISION_PROMPT = 'vision_extraction'


@dataclass
class ExtractionConfig:
    """Extraction tuning"""
    max_retries: int = 2
    max_text_chars: int = 10000
    temperature: float = 0.1
    max_tokens: int = 4000

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ExtractionConfig':
        return cls(
            max_retries=int(data.get('max_retries', cls.max_retries)),
            max_text_chars=int(data.get('max_text_chars', cls.max_text_chars)),
            temperature=float(data.get('temperature', cls.temperature)),
            max_tokens=int(data.get('max_tokens', cls.max_tokens)),
        )


class ExtractionOrchestrator:
    """Turns classified content into structured order data"""

    def __init__(
        self,
        primary_service: BaseLLMService,
        fallback_service: Optional[BaseLLMService] = None,
        vision_service: Optional[BaseLLMService] = None,
        rasterizer: Optional[PdfRasterizer] = None,
        fetcher: Optional[WebPageFetcher] = None,
        prompt_manager: Optional[PromptManager] = None,
        config: Optional[ExtractionConfig] = None,
    ):
        """
        Args:
            primary_service: Text-structuring provider tried first
            fallback_service: Provider tried once after the primary gives up
            vision_service: Vision-capable provider for images and PDFs
            rasterizer: PDF first-page renderer
            fetcher: Page fetcher for URL content
            prompt_manager: Prompt source (defaults to the packaged prompts)
            config: Extraction tuning
        """
        self.primary_service = primary_service
        self.fallback_service = fallback_service
        self.vision_service = vision_service
        self.rasterizer = rasterizer or PdfRasterizer()
        self.fetcher = fetcher or WebPageFetcher()
        self.prompt_manager = prompt_manager or get_prompt_manager()
        self.config = config or ExtractionConfig()

        self.normalizer = OrderNormalizer()
        self.regex_extractor = RegexOrderExtractor()

        self._handlers: Dict[ProcessorTag, Callable[[Classification, ProviderInput], Awaitable[ExtractionResult]]] = {
            ProcessorTag.VISION: self._handle_vision,
            ProcessorTag.TEXT: self._handle_text,
            ProcessorTag.WEB: self._handle_web,
        }

    async def extract(self, classification: Classification, content: ProviderInput) -> ExtractionResult:
        """
        Extract order data from classified content

        Args:
            classification: Classification of the ingested item
            content: Provider input built from the channel payload

        Returns:
            ExtractionResult with recomputed confidence

        Raises:
            UnsupportedProcessorError: No handler for the primary processor tag
            NotProcessableError: Required content is missing
            AllProvidersExhaustedError: Every provider and the regex scan failed
        """
        primary = classification.primary
        if primary is None:
            raise NotProcessableError("classification has no primary content")

        handler = self._handlers.get(primary.processor)
        if handler is None:
            raise UnsupportedProcessorError(primary.processor.value)

        logger.info(f"⚙️ Extracting {primary.type.value} content with {primary.processor.value} handler")
        return await handler(classification, content)

    async def structure_text(self, text: str, source: Optional[str] = None) -> ExtractionResult:
        """
        Run the text-structuring chain over free text

        Args:
            text: Source text (email body, page text or vision analysis)
            source: Short label of where the text came from, for the prompt

        Returns:
            ExtractionResult
        """
        text = (text or '')[:self.config.max_text_chars]
        prompt = self.prompt_manager.render(EXTRACTION_PROMPT, content=text, source=source)

        attempts: Dict[str, int] = {}
        errors: List[Dict[str, Any]] = []
        raw_outputs: List[str] = []

        # Primary: retry on unparseable output, give up on transport failure
        primary_name = self.primary_service.provider_name
        for attempt in range(1, self.config.max_retries + 1):
            attempts[primary_name] = attempt
            result = await self._attempt(self.primary_service, primary_name, prompt.user, prompt.system,
                                         errors, raw_outputs)
            if result is not None:
                return result
            if errors and errors[-1]['kind'] == 'transport':
                logger.warning(f"{primary_name} unavailable, falling back")
                break
            if attempt < self.config.max_retries:
                logger.warning(f"{primary_name} returned invalid JSON on attempt {attempt}, retrying...")

        # Fallback: one JSON-mode attempt
        if self.fallback_service is not None:
            fallback_name = self.fallback_service.provider_name
            if fallback_name in attempts:
                fallback_name = f"{fallback_name} (fallback)"
            attempts[fallback_name] = 1
            result = await self._attempt(self.fallback_service, fallback_name, prompt.user, prompt.system,
                                         errors, raw_outputs)
            if result is not None:
                return result

        # Last resort: regex scan of whatever text is available
        for candidate in raw_outputs + [text]:
            scanned = self.regex_extractor.extract(candidate)
            if scanned.line_items:
                logger.warning("All providers failed, using regex fallback extraction")
                return scanned.model_copy(update={'confidence': calculate_confidence(scanned)})

        error = AllProvidersExhaustedError(attempts, errors)
        logger.error(f"❌ {error}")
        raise error

    async def _attempt(self, service: BaseLLMService, label: str, prompt: str, system_prompt: str,
                       errors: List[Dict[str, Any]], raw_outputs: List[str]) -> Optional[ExtractionResult]:
        try:
            response = await service.generate(
                prompt,
                system_prompt=system_prompt,
                json_mode=True,
                temperature=self.config.temperature,
                max_tokens=self.config.max_tokens,
            )
        except ProviderTransportError as e:
            errors.append({'provider': label, 'kind': 'transport', 'error': str(e)})
            return None

        raw_outputs.append(response.content)
        try:
            data = parse_json_object(response.content, provider=label)
        except ProviderParseError as e:
            errors.append({'provider': label, 'kind': 'parse', 'error': str(e)})
            return None

        result = self.normalizer.normalize(data, method=response.provider, raw_output=response.content)
        result = result.model_copy(update={'confidence': calculate_confidence(result)})
        logger.info(
            f"✅ {label} extracted {len(result.line_items)} line item(s), "
            f"confidence {result.confidence:.2f}"
        )
        return result

    async def _handle_text(self, classification: Classification, content: ProviderInput) -> ExtractionResult:
        if not content.text or not content.text.strip():
            raise NotProcessableError("no text content to extract from")
        return await self.structure_text(content.text, source=f"{classification.channel.value} message")

    async def _handle_web(self, classification: Classification, content: ProviderInput) -> ExtractionResult:
        url = content.url or classification.primary.url
        if not url:
            raise NotProcessableError("no URL to fetch")

        try:
            page = await self.fetcher.fetch(url)
        except httpx.HTTPError as e:
            raise AllProvidersExhaustedError({'web': 1}, [{'provider': 'web', 'kind': 'transport', 'error': str(e)}])

        if page.is_pdf or page.is_image:
            return await self._structure_image(page.content, page.media_type, is_pdf=page.is_pdf,
                                               filename=url)

        if not page.text:
            raise NotProcessableError(f"no readable text at {url}")
        return await self.structure_text(page.text, source=url)

    async def _handle_vision(self, classification: Classification, content: ProviderInput) -> ExtractionResult:
        primary = classification.primary
        media_type = (content.media_type or primary.media_type or '').lower()
        filename = content.filename or primary.filename or ''
        is_pdf = 'pdf' in media_type or filename.lower().endswith('.pdf')

        if content.file_path:
            if is_pdf:
                return await self._structure_image(None, 'application/pdf', is_pdf=True,
                                                   filename=filename, path=content.file_path)
            data = await asyncio.to_thread(Path(content.file_path).read_bytes)
            return await self._structure_image(data, media_type or 'image/png', is_pdf=False,
                                               filename=filename)

        url = content.url or primary.url
        if url:
            try:
                page = await self.fetcher.fetch(url)
            except httpx.HTTPError as e:
                raise AllProvidersExhaustedError({'web': 1}, [{'provider': 'web', 'kind': 'transport', 'error': str(e)}])
            if page.content is None:
                raise NotProcessableError(f"{url} did not return a PDF or image")
            return await self._structure_image(page.content, page.media_type, is_pdf=page.is_pdf,
                                               filename=url)

        raise NotProcessableError("no file or URL available for vision processing")

    async def _structure_image(self, data: Optional[bytes], media_type: str, is_pdf: bool,
                               filename: str = '', path: Optional[str] = None) -> ExtractionResult:
        if self.vision_service is None:
            raise UnsupportedProcessorError(ProcessorTag.VISION.value)

        if is_pdf:
            try:
                data = await self.rasterizer.first_page(path=path, data=data)
            except RasterizationError as e:
                raise NotProcessableError(str(e))
            media_type = 'image/png'

        vision_name = self.vision_service.provider_name
        vision_prompt = self.prompt_manager.render(VISION_PROMPT, filename=filename)
        try:
            response = await self.vision_service.analyze_image(
                data,
                vision_prompt.user,
                system_prompt=vision_prompt.system,
                media_type=media_type,
                max_tokens=self.config.max_tokens,
            )
        except ProviderTransportError as e:
            raise AllProvidersExhaustedError(
                {f"{vision_name} (vision)": 1},
                [{'provider': vision_name, 'kind': 'transport', 'error': str(e)}],
            )

        logger.info(f"👁️ Vision analysis returned {len(response.content)} chars")
        result = await self.structure_text(response.content, source='vision analysis of an order document')
        return result.model_copy(update={'method': f"vision+{result.method}"})
