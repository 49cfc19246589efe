import logging

from backend.config import Settings
from backend.services.model_registry import ModelConfigError, ModelRegistry

logger = logging.getLogger(__name__)

# Public ids that use dotted or squashed version suffixes, mapped to the
# hyphenated keys the pricing table uses.
DEFAULT_ALIASES = {
    "claude-opus-4.5": "claude-opus-4-5",
    "claude-opus-45": "claude-opus-4-5",
    "claude-sonnet-4.5": "claude-sonnet-4-5",
    "claude-sonnet-45": "claude-sonnet-4-5",
}


class PricingTable:
    """Per-million-token rates keyed by pricing model id."""

    def __init__(self, prices: dict[str, dict]):
        self._prices = prices

    @classmethod
    def from_settings(cls, settings: Settings) -> "PricingTable":
        # settings.yaml groups models by provider; the lookup key is the model id
        prices = {}
        for provider, models in settings.pricing_config.items():
            for model_id, rates in (models or {}).items():
                if isinstance(rates, dict):
                    prices[model_id] = rates
        return cls(prices)

    def __contains__(self, model_ref: str) -> bool:
        return model_ref in self._prices

    def calc_price(
        self, model_ref: str, input_tokens: int, output_tokens: int
    ) -> float | None:
        """Return the USD price for the usage, or None when the model is unpriced."""
        rates = self._prices.get(model_ref)
        if not rates or ("input" not in rates and "output" not in rates):
            return None
        cost = (
            (input_tokens / 1_000_000) * float(rates.get("input", 0.0))
            + (output_tokens / 1_000_000) * float(rates.get("output", 0.0))
        )
        return round(cost, 8)


class PricingResolver:
    """Maps a public model id to the pricing-table keys worth trying, in order."""

    def __init__(self, registry: ModelRegistry | None, aliases: dict | None = None):
        self._registry = registry
        self._aliases = {**DEFAULT_ALIASES, **(aliases or {})}

    def candidates(self, public_model_id: str) -> list[str]:
        # dict keeps insertion order and drops repeats
        candidates: dict[str, None] = {}

        if self._registry is not None:
            try:
                config = self._registry.get(public_model_id)
                if config.model:
                    candidates[config.model] = None
            except ModelConfigError:
                logger.debug("No registry entry for %s; using id and alias only", public_model_id)

        candidates[public_model_id] = None

        alias = self._aliases.get(public_model_id.lower().strip())
        if alias:
            candidates[alias] = None

        return list(candidates)
