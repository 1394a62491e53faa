"""
Order extraction: orchestration, repair, normalization and validation.
"""

from .extractor import ExtractionConfig, ExtractionOrchestrator
from .json_repair import clean_json_response, parse_json_object, repair_json
from .normalizer import OrderNormalizer, normalize_order_dict, to_number
from .rasterizer import PdfRasterizer, RasterizationError
from .text_fallback import RegexOrderExtractor
from .validator import OrderValidator, calculate_confidence
from .web_fetcher import FetchedPage, WebPageFetcher, html_to_text

__all__ = [
    'ExtractionConfig',
    'ExtractionOrchestrator',
    'clean_json_response',
    'parse_json_object',
    'repair_json',
    'OrderNormalizer',
    'normalize_order_dict',
    'to_number',
    'PdfRasterizer',
    'RasterizationError',
    'RegexOrderExtractor',
    'OrderValidator',
    'calculate_confidence',
    'FetchedPage',
    'WebPageFetcher',
    'html_to_text',
]
