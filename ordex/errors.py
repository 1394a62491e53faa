"""
ORDEX exception hierarchy

Provider-level errors are raised by the LLM services and translated by the
extraction orchestrator. Only AllProvidersExhaustedError (or an unexpected
exception) reaches the processing queue, which decides retry vs. failure.
"""

from typing import Any, Dict, List, Optional


class OrdexError(Exception):
    """Base class for all ORDEX errors"""


class ClassificationDegraded(OrdexError):
    """Raised inside the classifier when an input cannot be inspected normally.

    Never escapes ``ContentDetector.detect``; it is logged and turned into a
    low-confidence generic classification.
    """


class NotProcessableError(OrdexError):
    """Terminal error: the item cannot be processed, retrying will not help"""

    def __init__(self, reason: str):
        super().__init__(f"Content not processable: {reason}")
        self.reason = reason


class UnsupportedProcessorError(NotProcessableError):
    """No handler exists for the classification's processor tag"""

    def __init__(self, processor: str):
        super().__init__(f"no handler for processor '{processor}'")
        self.processor = processor


class UnsupportedProviderError(OrdexError):
    """Configuration names a provider kind that has no service implementation"""

    def __init__(self, provider: str):
        super().__init__(f"Unsupported LLM provider: {provider}")
        self.provider = provider


class ProviderError(OrdexError):
    """Base class for errors raised while talking to an LLM provider"""

    def __init__(self, provider: str, message: str):
        super().__init__(f"[{provider}] {message}")
        self.provider = provider
        self.message = message


class ProviderTransportError(ProviderError):
    """Transport, quota, authentication or timeout failure of a provider call"""


class ProviderParseError(ProviderError):
    """Provider answered but its output could not be parsed as structured data"""

    def __init__(self, provider: str, message: str, raw_output: Optional[str] = None):
        super().__init__(provider, message)
        self.raw_output = raw_output


class AllProvidersExhaustedError(OrdexError):
    """Every provider in the fallback chain failed for one extraction attempt"""

    def __init__(self, attempts: Dict[str, int], errors: List[Dict[str, Any]]):
        self.attempts = dict(attempts)
        self.errors = list(errors)
        summary = ", ".join(
            f"{provider}: {count} attempt{'s' if count != 1 else ''}"
            for provider, count in self.attempts.items()
        ) or "no providers configured"
        super().__init__(f"All text processing providers failed ({summary})")


class RegistryUnavailableError(OrdexError):
    """Canonical registry lookup or insert failed at the storage layer"""


class PersistenceError(OrdexError):
    """Saving an extracted order failed"""
