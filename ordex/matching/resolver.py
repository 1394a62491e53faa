"""
Identifier Resolver

Maps free-text client and product names to canonical registry codes:

1. exact code lookup (upper-cased candidate code)
2. exact alias lookup (lower-cased, trimmed name)
3. AI-assisted match against the full code list, accepted only at or above
   the acceptance threshold and only for a known code; the name is then
   learned as an alias
4. unmatched

Registry outages degrade a tier to "no match"; resolution never raises.
"""

import logging
import math
from typing import List, Optional

from ordex.errors import ProviderError, RegistryUnavailableError
from ordex.models import CanonicalMatch, EntityKind, ExtractionResult, MatchStatus
from ordex.processors.llm import BaseLLMService, PromptManager, get_prompt_manager
from ordex.processors.order.json_repair import parse_json_object

from .registry import CanonicalRegistry

logger = logging.getLogger(__name__)

MATCHING_PROMPT = 'code_matching'


class IdentifierResolver:
    """Resolves free-text names to canonical codes"""

    def __init__(
        self,
        registry: CanonicalRegistry,
        matcher_service: Optional[BaseLLMService] = None,
        prompt_manager: Optional[PromptManager] = None,
        acceptance_threshold: float = 0.9,
    ):
        """
        Args:
            registry: Canonical registry
            matcher_service: Provider for the AI tier; the tier is skipped when None
            prompt_manager: Prompt source (defaults to the packaged prompts)
            acceptance_threshold: Minimum AI confidence to accept a match
        """
        self.registry = registry
        self.matcher_service = matcher_service
        self.prompt_manager = prompt_manager or get_prompt_manager()
        self.acceptance_threshold = acceptance_threshold

    async def resolve(self, kind: EntityKind, name: Optional[str],
                      code_hint: Optional[str] = None) -> CanonicalMatch:
        """
        Resolve a name (and optional candidate code) to a canonical code

        Args:
            kind: Client or product
            name: Free-text name
            code_hint: Candidate code (from the document or normalizer)

        Returns:
            CanonicalMatch; status ``unmatched`` when no tier hits
        """
        code = (code_hint or '').strip().upper()
        alias = (name or '').strip().lower()

        if code:
            try:
                canonical = await self.registry.find_by_code(kind, code)
                if canonical:
                    return CanonicalMatch(code=canonical, status=MatchStatus.EXACT, confidence=1.0)
            except RegistryUnavailableError as e:
                logger.warning(f"{kind.value} code lookup unavailable: {e}")

        if alias:
            try:
                canonical = await self.registry.find_by_alias(kind, alias)
                if canonical:
                    return CanonicalMatch(code=canonical, status=MatchStatus.ALIAS, confidence=1.0)
            except RegistryUnavailableError as e:
                logger.warning(f"{kind.value} alias lookup unavailable: {e}")

        if alias and self.matcher_service is not None:
            match = await self._ai_match(kind, name.strip(), code, alias)
            if match is not None:
                return match

        return CanonicalMatch.unmatched()

    async def resolve_client(self, name: Optional[str], code_hint: Optional[str] = None) -> CanonicalMatch:
        return await self.resolve(EntityKind.CLIENT, name, code_hint)

    async def resolve_product(self, name: Optional[str], code_hint: Optional[str] = None) -> CanonicalMatch:
        return await self.resolve(EntityKind.PRODUCT, name, code_hint)

    async def enrich_order(self, order: ExtractionResult) -> ExtractionResult:
        """
        Attach canonical matches to the customer and every line item

        Returns:
            New ExtractionResult; the input is left untouched
        """
        customer_match = await self.resolve_client(order.customer, order.customer_code)

        line_items = []
        for item in order.line_items:
            match = await self.resolve_product(item.name, item.code)
            line_items.append(item.model_copy(update={'match': match}))

        matched = sum(1 for item in line_items if item.match.status != MatchStatus.UNMATCHED)
        logger.info(
            f"🔗 Customer {customer_match.status.value}, "
            f"{matched}/{len(line_items)} product(s) matched"
        )
        return order.model_copy(update={'customer_match': customer_match, 'line_items': line_items})

    async def _ai_match(self, kind: EntityKind, name: str, code: str, alias: str) -> Optional[CanonicalMatch]:
        try:
            codes: List[str] = await self.registry.list_codes(kind)
        except RegistryUnavailableError as e:
            logger.warning(f"{kind.value} code list unavailable: {e}")
            return None
        if not codes:
            return None

        try:
            prompt = self.prompt_manager.render(MATCHING_PROMPT, kind=kind.value, name=name, code=code, codes=codes)
            response = await self.matcher_service.generate(
                prompt.user,
                system_prompt=prompt.system,
                json_mode=True,
                temperature=0.0,
                max_tokens=300,
            )
            data = parse_json_object(response.content, provider=self.matcher_service.provider_name)
        except ProviderError as e:
            logger.warning(f"AI {kind.value} match failed: {e}")
            return None

        matched_code = data.get('matched_code')
        try:
            confidence = float(data.get('confidence') or 0.0)
        except (TypeError, ValueError):
            confidence = 0.0
        if not math.isfinite(confidence):
            confidence = 0.0
        confidence = min(max(confidence, 0.0), 1.0)

        if not matched_code or matched_code not in codes or confidence < self.acceptance_threshold:
            logger.debug(f"AI {kind.value} match rejected: {matched_code} ({confidence:.2f})")
            return None

        try:
            await self.registry.add_alias(kind, alias, matched_code)
        except RegistryUnavailableError as e:
            logger.warning(f"Could not learn {kind.value} alias '{alias}': {e}")

        return CanonicalMatch(code=matched_code, status=MatchStatus.AI, confidence=confidence)
