"""
Order Intake Service

Facade wiring the classifier, extraction orchestrator, identifier resolver,
processing queue and stores together from configuration.
"""

import logging
from typing import Any, Dict, Optional, Union

from ordex.classification import ContentDetector
from ordex.config import OrdexConfig
from ordex.connectors import BaseNotifier, LoggingNotifier, WebhookConfig, WebhookNotifier
from ordex.db import Database
from ordex.jobs import ProcessingQueue, QueueConfig
from ordex.matching import IdentifierResolver, SQLRegistry
from ordex.models import CanonicalMatch, Classification, ExtractionResult, IngestedItem
from ordex.processors.llm import BaseLLMService, create_from_config, get_prompt_manager
from ordex.processors.order import (
    ExtractionConfig,
    ExtractionOrchestrator,
    PdfRasterizer,
    WebPageFetcher,
)
from ordex.stores import ProcessingLogStore, SQLOrderStore

logger = logging.getLogger(__name__)


class OrderIntakeService:
    """
    Entry point for order intake.

    Usage:
        service = OrderIntakeService.from_config()
        item_id = await service.submit({'channel': 'api', 'body': '...'})
        await service.queue.join()
    """

    def __init__(self, queue: ProcessingQueue, resolver: IdentifierResolver,
                 db: Optional[Database] = None, registry: Optional[SQLRegistry] = None):
        self.queue = queue
        self.resolver = resolver
        self.db = db
        self.registry = registry

    @classmethod
    def from_config(cls, config: Optional[OrdexConfig] = None, db: Optional[Database] = None,
                    notifier: Optional[BaseNotifier] = None) -> 'OrderIntakeService':
        """
        Build the service from configuration

        Args:
            config: Configuration instance (defaults to the singleton)
            db: Database (built from the ``database`` section when omitted)
            notifier: Notifier (webhook when configured, else logging)

        Returns:
            OrderIntakeService
        """
        config = config or OrdexConfig()
        db = db or Database(config=config)

        extraction = config.section('extraction')
        timeout = extraction.get('provider_timeout', 60.0)
        prompt_manager = get_prompt_manager()

        def provider(role: str) -> Optional[BaseLLMService]:
            settings = config.provider_settings(role)
            return create_from_config(settings, timeout=timeout) if settings else None

        extractor = ExtractionOrchestrator(
            primary_service=create_from_config(config.provider_settings('primary') or {}, timeout=timeout),
            fallback_service=provider('fallback'),
            vision_service=provider('vision'),
            rasterizer=PdfRasterizer(dpi=extraction.get('rasterizer', {}).get('dpi', 200)),
            fetcher=WebPageFetcher(timeout=extraction.get('fetcher', {}).get('timeout', 30.0),
                                   max_text_chars=extraction.get('max_text_chars', 10000)),
            prompt_manager=prompt_manager,
            config=ExtractionConfig.from_dict(extraction),
        )

        registry = SQLRegistry(db)
        resolver = IdentifierResolver(
            registry,
            matcher_service=provider('matching'),
            prompt_manager=prompt_manager,
            acceptance_threshold=float(config.get('matching.acceptance_threshold', 0.9)),
        )

        queue = ProcessingQueue(
            extractor=extractor,
            resolver=resolver,
            order_store=SQLOrderStore(db),
            notifier=notifier or cls._build_notifier(config),
            log_store=ProcessingLogStore(db),
            config=QueueConfig.from_dict(config.section('queue')),
        )
        return cls(queue=queue, resolver=resolver, db=db, registry=registry)

    @staticmethod
    def _build_notifier(config: OrdexConfig) -> BaseNotifier:
        notifications = config.section('notifications')
        if notifications.get('webhook_url'):
            return WebhookNotifier(WebhookConfig(
                url=notifications['webhook_url'],
                hmac_secret=notifications.get('webhook_secret'),
                timeout_seconds=float(notifications.get('timeout', 10.0)),
            ))
        return LoggingNotifier()

    def classify(self, item: Union[IngestedItem, Dict[str, Any]]) -> Classification:
        """Classify an ingested item"""
        return ContentDetector.detect(item)

    async def enqueue(self, item: IngestedItem, classification: Classification) -> str:
        """Queue a classified item; returns the queue item ID"""
        return await self.queue.enqueue(item, classification)

    async def submit(self, item: Union[IngestedItem, Dict[str, Any]]) -> str:
        """Classify and queue an item; returns the queue item ID"""
        if not isinstance(item, IngestedItem):
            item = IngestedItem.model_validate(item)
        return await self.enqueue(item, self.classify(item))

    def get_queue_status(self) -> Dict[str, Any]:
        """Queue status snapshot"""
        return self.queue.get_status()

    async def resolve_client(self, name: Optional[str], code_hint: Optional[str] = None) -> CanonicalMatch:
        return await self.resolver.resolve_client(name, code_hint)

    async def resolve_product(self, name: Optional[str], code_hint: Optional[str] = None) -> CanonicalMatch:
        return await self.resolver.resolve_product(name, code_hint)

    async def enrich_order(self, order: ExtractionResult) -> ExtractionResult:
        return await self.resolver.enrich_order(order)
