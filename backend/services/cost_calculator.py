import logging
from dataclasses import dataclass, asdict
from typing import Callable, Iterable, Optional

from backend.config import Settings
from backend.services.model_registry import ModelRegistry
from backend.services.pricing import PricingResolver, PricingTable
from backend.services.tokenizer import Tokenizer

logger = logging.getLogger(__name__)


@dataclass
class CostResult:
    input_tokens: int
    output_tokens: int
    total_cost_usd: float
    priced: bool
    pricing_model_id: Optional[str] = None
    warning: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


class CostCalculator:
    """Tokenizes one exchange and prices it against the first matching candidate."""

    def __init__(
        self,
        resolver: PricingResolver,
        pricing_table: PricingTable,
        tokenizer_factory: Callable[[], Tokenizer] = Tokenizer,
    ):
        self._resolver = resolver
        self._pricing = pricing_table
        self._tokenizer_factory = tokenizer_factory

    @classmethod
    def from_settings(
        cls, settings: Settings, registry: ModelRegistry | None
    ) -> "CostCalculator":
        return cls(
            resolver=PricingResolver(registry, settings.pricing_aliases),
            pricing_table=PricingTable.from_settings(settings),
            tokenizer_factory=lambda: Tokenizer(settings.tokenizer_encoding),
        )

    def count_tokens(
        self,
        prior_messages: Iterable[dict],
        system_prompt: str,
        assistant_message: str,
    ) -> tuple[int, int]:
        """Return (input_tokens, output_tokens) for the exchange."""
        with self._tokenizer_factory() as tokenizer:
            input_tokens = tokenizer.count(system_prompt)
            for message in prior_messages:
                input_tokens += tokenizer.count(message.get("content") or "")
            output_tokens = tokenizer.count(assistant_message)
        return input_tokens, output_tokens

    def compute_cost(
        self,
        model_id: str,
        prior_messages: Iterable[dict],
        system_prompt: str,
        assistant_message: str,
    ) -> CostResult:
        input_tokens, output_tokens = self.count_tokens(
            prior_messages, system_prompt, assistant_message
        )

        candidates = self._resolver.candidates(model_id)
        pricing_model_id = None
        price = None
        for candidate in candidates:
            candidate_price = self._pricing.calc_price(candidate, input_tokens, output_tokens)
            if candidate_price is not None:
                pricing_model_id = candidate
                price = candidate_price
                break

        warning = None
        if price is None and candidates:
            warning = f'No price found for model "{model_id}". Tried: {", ".join(candidates)}'
            logger.warning(
                "Pricing lookup failed for %s (candidates: %s)", model_id, candidates
            )

        return CostResult(
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            total_cost_usd=price if price is not None else 0.0,
            priced=price is not None,
            pricing_model_id=pricing_model_id,
            warning=warning,
        )
