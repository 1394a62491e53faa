"""
Order Data Models with Pydantic Validation

Ingested items, content classifications, extraction results and canonical
matches shared by the classifier, the extraction orchestrator, the identifier
resolver and the processing queue.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Channel(str, Enum):
    """Ingestion channel an item arrived on"""
    MAILHOOK = "mailhook"
    OUTLOOK = "outlook"
    TELEGRAM = "telegram"
    API = "api"


class ContentType(str, Enum):
    """Content classification types"""
    # Attachments
    PDF = "pdf"
    IMAGE = "image"
    DOCUMENT = "document"
    SPREADSHEET = "spreadsheet"
    UNKNOWN = "unknown"

    # URLs
    ECOMMERCE_URL = "ecommerce_url"
    PDF_URL = "pdf_url"
    IMAGE_URL = "image_url"
    WEB_URL = "web_url"
    INVALID_URL = "invalid_url"

    # Body text
    ORDER_TABLE = "order_table"
    ORDER_TEXT = "order_text"
    TEXT_WITH_URLS = "text_with_urls"
    GENERAL_TEXT = "general_text"
    EMPTY_TEXT = "empty_text"


class ProcessorTag(str, Enum):
    """Target processor for a content descriptor"""
    VISION = "vision"
    TEXT = "text"
    WEB = "web"
    DOCUMENT = "document"
    SPREADSHEET = "spreadsheet"
    MANUAL_REVIEW = "manual_review"
    NONE = "none"


class ContentOrigin(str, Enum):
    """Part of the ingested item a descriptor was derived from"""
    ATTACHMENT = "attachment"
    URL = "url"
    BODY = "body"


class MatchStatus(str, Enum):
    """How a canonical code was resolved"""
    EXACT = "exact"
    ALIAS = "alias"
    AI = "ai"
    UNMATCHED = "unmatched"


class EntityKind(str, Enum):
    """Registry entity kinds"""
    CLIENT = "client"
    PRODUCT = "product"


class Attachment(BaseModel):
    """Attachment descriptor; the file itself lives at ``storage_path``"""
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    name: str = ""
    media_type: str = ""
    size: Optional[int] = Field(None, ge=0)
    storage_path: Optional[str] = None


class IngestedItem(BaseModel):
    """Raw item delivered by a transport channel. Immutable once created."""
    model_config = ConfigDict(frozen=True)

    channel: Channel = Channel.API
    body: Optional[str] = None
    subject: Optional[str] = None
    sender: Optional[str] = None
    attachments: List[Attachment] = Field(default_factory=list)
    url: Optional[str] = None
    chat_id: Optional[str] = None
    message_id: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    received_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator('chat_id', 'message_id', mode='before')
    @classmethod
    def coerce_identifier(cls, v: Any) -> Optional[str]:
        """Chat platforms hand out numeric ids"""
        if v is None:
            return None
        return str(v)


class ContentDescriptor(BaseModel):
    """One detected piece of content within an ingested item"""
    model_config = ConfigDict(frozen=True)

    type: ContentType
    confidence: float = Field(..., ge=0.0, le=1.0)
    processor: ProcessorTag
    origin: ContentOrigin
    description: str = ""

    # Origin-specific details
    index: Optional[int] = None
    filename: Optional[str] = None
    media_type: Optional[str] = None
    size: Optional[int] = None
    url: Optional[str] = None
    urls: List[str] = Field(default_factory=list)


class Classification(BaseModel):
    """Result of content detection for one ingested item"""
    model_config = ConfigDict(frozen=True)

    descriptors: List[ContentDescriptor] = Field(default_factory=list)
    primary: Optional[ContentDescriptor] = None
    channel: Channel = Channel.API
    degraded: bool = False
    detected_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def primary_type(self) -> Optional[ContentType]:
        return self.primary.type if self.primary else None


class CanonicalMatch(BaseModel):
    """Canonical code resolution for a free-text client or product name"""
    model_config = ConfigDict(frozen=True)

    code: Optional[str] = None
    status: MatchStatus = MatchStatus.UNMATCHED
    confidence: float = Field(0.0, ge=0.0, le=1.0)

    @classmethod
    def unmatched(cls) -> 'CanonicalMatch':
        return cls(code=None, status=MatchStatus.UNMATCHED, confidence=0.0)


class LineItem(BaseModel):
    """Order line item. Fields stay optional: validation reports gaps as warnings."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = None
    code: Optional[str] = None
    quantity: Optional[float] = None
    unit: Optional[str] = None
    unit_price: Optional[float] = None
    total: Optional[float] = None

    match: Optional[CanonicalMatch] = None

    @property
    def is_complete(self) -> bool:
        """Name, quantity and price all present"""
        return bool(self.name) and bool(self.quantity) and bool(self.unit_price)


class ExtractionResult(BaseModel):
    """Structured order data extracted from one ingested item"""

    order_number: Optional[str] = None
    customer: Optional[str] = None
    customer_code: Optional[str] = None
    date: Optional[str] = None
    line_items: List[LineItem] = Field(default_factory=list)
    order_total: Optional[float] = None
    note: Optional[str] = None

    confidence: float = Field(0.0, ge=0.0, le=1.0)
    method: str = "unknown"
    raw_output: Optional[str] = None

    customer_match: Optional[CanonicalMatch] = None

    def line_total_sum(self) -> float:
        return round(sum(item.total or 0.0 for item in self.line_items), 2)


class ValidationWarning(BaseModel):
    """Non-fatal structural problem found in an extraction result"""
    field: str
    message: str
    severity: str = "warning"
    code: Optional[str] = None


class ProviderInput(BaseModel):
    """Content handed to the extraction orchestrator for one queue attempt"""
    text: Optional[str] = None
    file_path: Optional[str] = None
    media_type: Optional[str] = None
    filename: Optional[str] = None
    url: Optional[str] = None
