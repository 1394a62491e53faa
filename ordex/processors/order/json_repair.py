"""
JSON response repair

LLM output may arrive wrapped in prose or code fences, or cut off mid-object
when the token limit is hit. These helpers recover the order JSON where that
is possible.
"""

import json
import logging
import re
from typing import Any, Dict, Optional

from ordex.errors import ProviderParseError

logger = logging.getLogger(__name__)

TRUNCATION_NOTE = "Data truncated - partial extraction"
TRUNCATION_TAIL = (
    '\n  ],\n  "order_total": null,\n  "note": "' + TRUNCATION_NOTE + '"\n}'
)

# Dangling, unterminated line item at the end of the text
DANGLING_ITEM_PATTERN = re.compile(r',?\s*\{\s*"product_[^}]*$')


def clean_json_response(content: str) -> str:
    """Remove markdown code fences and surrounding prose, keeping the outermost object"""
    content = (content or "").strip()

    if content.startswith('```json') or content.startswith('```JSON'):
        content = content[7:]
    elif content.startswith('```'):
        content = content[3:]
    if content.endswith('```'):
        content = content[:-3]
    content = content.strip()

    start = content.find('{')
    if start == -1:
        return content
    end = content.rfind('}')
    if end > start and count_unbalanced_braces(content[start:end + 1]) == 0:
        return content[start:end + 1]
    # Unbalanced: keep everything from the first brace for repair
    return content[start:]


def count_unbalanced_braces(text: str) -> int:
    """Open minus close braces, ignoring braces inside JSON strings"""
    depth = 0
    in_string = False
    escaped = False
    for char in text:
        if in_string:
            if escaped:
                escaped = False
            elif char == '\\':
                escaped = True
            elif char == '"':
                in_string = False
        elif char == '"':
            in_string = True
        elif char == '{':
            depth += 1
        elif char == '}':
            depth -= 1
    return depth


def _loads_object(text: str) -> Optional[Dict[str, Any]]:
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, ValueError):
        return None
    return data if isinstance(data, dict) else None


def repair_json(text: str) -> str:
    """
    Repair a possibly fenced or truncated JSON order response

    Valid object JSON is returned unchanged. A response cut off inside a line
    item has the partial item trimmed and a closing tail appended that marks
    the order as partially extracted.

    Args:
        text: Raw provider output

    Returns:
        JSON text (possibly still invalid if the output was not recoverable)
    """
    if _loads_object(text) is not None:
        return text

    cleaned = clean_json_response(text)
    if _loads_object(cleaned) is not None:
        return cleaned

    if '"product_' in cleaned and not cleaned.rstrip().endswith('}') \
            and count_unbalanced_braces(cleaned) > 0:
        trimmed = DANGLING_ITEM_PATTERN.sub('', cleaned.rstrip())
        repaired = trimmed.rstrip().rstrip(',') + TRUNCATION_TAIL
        logger.warning("🔧 Repaired truncated JSON response")
        return repaired

    return cleaned


def parse_json_object(text: str, provider: str = "unknown") -> Dict[str, Any]:
    """
    Parse provider output into a JSON object, repairing it once if needed

    Raises:
        ProviderParseError: If the output cannot be parsed into a JSON object
    """
    if not text or not text.strip():
        raise ProviderParseError(provider, "empty response", raw_output=text)

    data = _loads_object(repair_json(text))
    if data is None:
        raise ProviderParseError(provider, "response is not a valid JSON object", raw_output=text)
    return data
