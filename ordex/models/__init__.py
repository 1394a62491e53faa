from .order import (
    Attachment,
    CanonicalMatch,
    Channel,
    Classification,
    ContentDescriptor,
    ContentOrigin,
    ContentType,
    EntityKind,
    ExtractionResult,
    IngestedItem,
    LineItem,
    MatchStatus,
    ProcessorTag,
    ProviderInput,
    ValidationWarning,
)

__all__ = [
    'Attachment',
    'CanonicalMatch',
    'Channel',
    'Classification',
    'ContentDescriptor',
    'ContentOrigin',
    'ContentType',
    'EntityKind',
    'ExtractionResult',
    'IngestedItem',
    'LineItem',
    'MatchStatus',
    'ProcessorTag',
    'ProviderInput',
    'ValidationWarning',
]
