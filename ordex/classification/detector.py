"""
Content Detector

Inspects an ingested item (attachments, referenced URL, body text) and
produces a Classification with one descriptor per detected piece of content
and a primary descriptor that drives processing.
"""

import logging
import re
from pathlib import PurePosixPath
from typing import Any, Dict, List, Optional, Tuple, Union
from urllib.parse import urlparse

from pydantic import ValidationError as PydanticValidationError

from ordex.errors import ClassificationDegraded
from ordex.models import (
    Attachment,
    Channel,
    Classification,
    ContentDescriptor,
    ContentOrigin,
    ContentType,
    IngestedItem,
    ProcessorTag,
)

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = ('.jpg', '.jpeg', '.png', '.gif', '.bmp', '.webp')
DOCUMENT_EXTENSIONS = ('.doc', '.docx', '.txt', '.rtf')
SPREADSHEET_EXTENSIONS = ('.xls', '.xlsx', '.csv')
ECOMMERCE_SITES = ('amazon', 'ebay', 'mercadolibre', 'aliexpress', 'shopify')

# Keywords of the tabulated order format sent by customers
ORDER_TABLE_PATTERNS = [
    re.compile(r'DESCRIPCION\s+COMPRA', re.IGNORECASE),
    re.compile(r'UNIDAD/CANTIDAD', re.IGNORECASE),
    re.compile(r'TOTAL', re.IGNORECASE),
    re.compile(r'€'),
    re.compile(r'Kilogramo', re.IGNORECASE),
    re.compile(r'Litro', re.IGNORECASE),
    re.compile(r'OBSERVACIONES', re.IGNORECASE),
]

ORDER_PATTERNS = [
    re.compile(r'order', re.IGNORECASE),
    re.compile(r'pedido', re.IGNORECASE),
    re.compile(r'cantidad', re.IGNORECASE),
    re.compile(r'quantity', re.IGNORECASE),
    re.compile(r'precio', re.IGNORECASE),
    re.compile(r'price', re.IGNORECASE),
    re.compile(r'total', re.IGNORECASE),
    re.compile(r'[€$]'),
]

URL_PATTERN = re.compile(r'https?://[^\s<>"\']+')

PRIORITY_MAP: Dict[ContentType, int] = {
    ContentType.ORDER_TABLE: 1,
    ContentType.PDF: 2,
    ContentType.ORDER_TEXT: 3,
    ContentType.ECOMMERCE_URL: 4,
    ContentType.PDF_URL: 5,
    ContentType.IMAGE: 6,
    ContentType.DOCUMENT: 7,
    ContentType.WEB_URL: 8,
    ContentType.GENERAL_TEXT: 9,
    ContentType.UNKNOWN: 10,
}
LOWEST_PRIORITY = 10

UNPROCESSABLE_TYPES = {ContentType.UNKNOWN, ContentType.EMPTY_TEXT, ContentType.INVALID_URL}
MIN_CONFIDENCE = 0.3

# (type, confidence, processor, description)
Detection = Tuple[ContentType, float, ProcessorTag, str]


class ContentDetector:
    """
    Detects what an ingested item contains.

    Attachments are inspected first, then a referenced URL, then the body
    text. ``detect`` never raises: malformed input degrades to a
    low-confidence generic classification.

    Usage:
        classification = ContentDetector.detect(item)
        priority = ContentDetector.get_priority(classification)
        processable, reason = ContentDetector.is_processable(classification)
    """

    @classmethod
    def detect(cls, item: Union[IngestedItem, Dict[str, Any]]) -> Classification:
        """
        Classify an ingested item.

        Args:
            item: IngestedItem, or a raw payload dict in the same shape

        Returns:
            Classification with all descriptors and the primary one
        """
        try:
            if not isinstance(item, IngestedItem):
                item = cls._coerce_item(item)
            return cls._detect_item(item)
        except ClassificationDegraded as e:
            logger.warning(f"Content detection degraded: {e}")
        except Exception as e:
            logger.exception(f"Content detection failed: {e}")

        return cls._degraded_classification(item)

    @classmethod
    def get_priority(cls, classification: Classification) -> int:
        """Processing priority for a classification (lower = more urgent)"""
        primary_type = classification.primary_type
        if primary_type is None:
            return LOWEST_PRIORITY
        return PRIORITY_MAP.get(primary_type, LOWEST_PRIORITY)

    @classmethod
    def is_processable(cls, classification: Classification) -> Tuple[bool, str]:
        """
        Decide whether a classification is worth sending to extraction.

        Returns:
            Tuple of (processable, reason)
        """
        primary = classification.primary
        if primary is None:
            return False, 'No primary content detected'

        if primary.type == ContentType.EMPTY_TEXT:
            return False, "Content type 'empty_text' is not processable: the item is empty"

        if primary.type in UNPROCESSABLE_TYPES:
            return False, f"Content type '{primary.type.value}' is not processable"

        if primary.confidence < MIN_CONFIDENCE:
            return False, f"Content detection confidence too low ({primary.confidence:.2f})"

        return True, 'Content is processable'

    @classmethod
    def detect_file_type(cls, attachment: Attachment) -> Detection:
        """Detect file type and processing method from extension and media type"""
        extension = PurePosixPath(attachment.name.lower()).suffix
        media_type = attachment.media_type.lower()

        if extension == '.pdf' or 'pdf' in media_type:
            return (ContentType.PDF, 0.95, ProcessorTag.VISION,
                    'PDF document requiring rasterization and vision analysis')

        if extension in IMAGE_EXTENSIONS or media_type.startswith('image/'):
            return (ContentType.IMAGE, 0.9, ProcessorTag.VISION,
                    'Image file requiring vision analysis')

        if extension in DOCUMENT_EXTENSIONS or 'document' in media_type:
            return (ContentType.DOCUMENT, 0.85, ProcessorTag.DOCUMENT,
                    'Text document requiring content extraction')

        if extension in SPREADSHEET_EXTENSIONS or 'sheet' in media_type:
            return (ContentType.SPREADSHEET, 0.8, ProcessorTag.SPREADSHEET,
                    'Spreadsheet requiring data extraction')

        return (ContentType.UNKNOWN, 0.1, ProcessorTag.MANUAL_REVIEW,
                'Unknown file type requiring manual review')

    @classmethod
    def detect_url_content(cls, url: str) -> Detection:
        """Detect URL content type"""
        parsed = urlparse(url.strip())
        if parsed.scheme not in ('http', 'https') or not parsed.hostname:
            return (ContentType.INVALID_URL, 0.1, ProcessorTag.MANUAL_REVIEW, 'Invalid URL format')

        hostname = parsed.hostname.lower()
        path = parsed.path.lower()

        if any(site in hostname for site in ECOMMERCE_SITES):
            return (ContentType.ECOMMERCE_URL, 0.8, ProcessorTag.WEB,
                    'E-commerce URL requiring page retrieval')

        if path.endswith('.pdf'):
            return (ContentType.PDF_URL, 0.9, ProcessorTag.VISION,
                    'PDF URL requiring download and vision analysis')

        if path.endswith(IMAGE_EXTENSIONS):
            return (ContentType.IMAGE_URL, 0.85, ProcessorTag.VISION,
                    'Image URL requiring download and vision analysis')

        return (ContentType.WEB_URL, 0.6, ProcessorTag.WEB, 'Web URL requiring page retrieval')

    @classmethod
    def detect_text_content(cls, text: Optional[str]) -> Tuple[Detection, List[str]]:
        """
        Score body text by keyword density.

        Returns:
            Tuple of (detection, URLs found in the text)
        """
        if not text or not text.strip():
            return (ContentType.EMPTY_TEXT, 0.95, ProcessorTag.NONE, 'Empty or whitespace text'), []

        table_hits = sum(1 for pattern in ORDER_TABLE_PATTERNS if pattern.search(text))
        if table_hits >= 3:
            return (ContentType.ORDER_TABLE, 0.9, ProcessorTag.TEXT,
                    'Tabulated order format detected'), []

        order_hits = sum(1 for pattern in ORDER_PATTERNS if pattern.search(text))
        if order_hits >= 2:
            return (ContentType.ORDER_TEXT, 0.7, ProcessorTag.TEXT, 'Order-related text content'), []

        urls = URL_PATTERN.findall(text)
        if urls:
            return (ContentType.TEXT_WITH_URLS, 0.8, ProcessorTag.WEB,
                    'Text containing URLs for processing'), urls

        return (ContentType.GENERAL_TEXT, 0.5, ProcessorTag.TEXT, 'General text content'), []

    @classmethod
    def _detect_item(cls, item: IngestedItem) -> Classification:
        descriptors: List[ContentDescriptor] = []
        primary: Optional[ContentDescriptor] = None

        # Attachments first
        for index, attachment in enumerate(item.attachments):
            content_type, confidence, processor, description = cls.detect_file_type(attachment)
            descriptors.append(ContentDescriptor(
                type=content_type,
                confidence=confidence,
                processor=processor,
                origin=ContentOrigin.ATTACHMENT,
                description=description,
                index=index,
                filename=attachment.name or None,
                media_type=attachment.media_type or None,
                size=attachment.size,
            ))

        if descriptors:
            primary = next((d for d in descriptors if d.type == ContentType.PDF), descriptors[0])

        # Referenced URL
        if item.url and item.url.strip():
            content_type, confidence, processor, description = cls.detect_url_content(item.url)
            url_descriptor = ContentDescriptor(
                type=content_type,
                confidence=confidence,
                processor=processor,
                origin=ContentOrigin.URL,
                description=description,
                url=item.url.strip(),
            )
            descriptors.append(url_descriptor)
            if primary is None:
                primary = url_descriptor

        # Body text; an empty body only matters when nothing else was found
        has_body = bool(item.body and item.body.strip())
        if has_body or not descriptors:
            (content_type, confidence, processor, description), urls = cls.detect_text_content(item.body)
            body_descriptor = ContentDescriptor(
                type=content_type,
                confidence=confidence,
                processor=processor,
                origin=ContentOrigin.BODY,
                description=description,
                url=urls[0] if urls else None,
                urls=urls,
            )
            descriptors.append(body_descriptor)
            if primary is None:
                primary = body_descriptor

        logger.debug(
            f"Detected {len(descriptors)} content descriptor(s) on {item.channel.value} item, "
            f"primary={primary.type.value if primary else None}"
        )

        return Classification(descriptors=descriptors, primary=primary, channel=item.channel)

    @classmethod
    def _coerce_item(cls, payload: Any) -> IngestedItem:
        if not isinstance(payload, dict):
            raise ClassificationDegraded(f"unsupported input type {type(payload).__name__}")
        try:
            return IngestedItem.model_validate(payload)
        except PydanticValidationError as e:
            raise ClassificationDegraded(f"malformed ingested item: {e.error_count()} validation error(s)")

    @classmethod
    def _degraded_classification(cls, item: Any) -> Classification:
        channel = Channel.API
        if isinstance(item, IngestedItem):
            channel = item.channel
        elif isinstance(item, dict):
            try:
                channel = Channel(item.get('channel'))
            except ValueError:
                pass

        descriptor = ContentDescriptor(
            type=ContentType.GENERAL_TEXT,
            confidence=0.1,
            processor=ProcessorTag.TEXT,
            origin=ContentOrigin.BODY,
            description='Unrecognized input shape',
        )
        return Classification(descriptors=[descriptor], primary=descriptor, channel=channel, degraded=True)


def detect_content(item: Union[IngestedItem, Dict[str, Any]]) -> Classification:
    """Convenience wrapper around ContentDetector.detect"""
    return ContentDetector.detect(item)
