import json
import logging
import math
from dataclasses import dataclass, field

from backend.config import Settings

logger = logging.getLogger(__name__)

DEFAULT_MAX_LENGTH = 12000
DEFAULT_TOKEN_LIMIT = 4000


class ModelConfigError(ValueError):
    """Raised when the model registry is missing, malformed or lacks an entry."""


@dataclass
class LlmModelConfig:
    id: str
    name: str
    endpoint: str
    api_key: str | None = None
    provider: str | None = None  # "anthropic" or OpenAI-compatible when unset
    model: str | None = None  # Underlying provider model name
    max_length: int | float = DEFAULT_MAX_LENGTH
    token_limit: int | float = DEFAULT_TOKEN_LIMIT
    request: dict = field(default_factory=dict)

    def public(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "max_length": self.max_length,
            "token_limit": self.token_limit,
        }


def _require_string(value, field_name: str) -> str:
    if not isinstance(value, str) or value.strip() == "":
        raise ModelConfigError(f'Model registry: "{field_name}" must be a non-empty string')
    return value


def _number_or_default(value, default: int) -> int | float:
    # bool is an int subclass; reject it like any other non-number
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if isinstance(value, float) and not math.isfinite(value):
        return default
    return value


def _first_present(obj: dict, *keys):
    for key in keys:
        if key in obj:
            return obj[key]
    return None


def parse_model_configs(items) -> list[LlmModelConfig]:
    """Validate raw registry entries (from JSON or YAML) into model configs."""
    if not isinstance(items, list):
        raise ModelConfigError("Model registry must be a JSON array")

    configs = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise ModelConfigError(f"Model registry entry [{index}] must be an object")

        api_key = _first_present(item, "api_key", "apiKey")
        provider = item.get("provider")
        model = item.get("model")
        request = item.get("request")

        configs.append(
            LlmModelConfig(
                id=_require_string(item.get("id"), f"models[{index}].id"),
                name=_require_string(item.get("name"), f"models[{index}].name"),
                endpoint=_require_string(item.get("endpoint"), f"models[{index}].endpoint"),
                api_key=api_key if isinstance(api_key, str) else None,
                provider=provider if isinstance(provider, str) else None,
                model=model if isinstance(model, str) else None,
                max_length=_number_or_default(
                    _first_present(item, "max_length", "maxLength"), DEFAULT_MAX_LENGTH
                ),
                token_limit=_number_or_default(
                    _first_present(item, "token_limit", "tokenLimit"), DEFAULT_TOKEN_LIMIT
                ),
                request=request if isinstance(request, dict) else {},
            )
        )

    seen = set()
    for config in configs:
        if config.id in seen:
            raise ModelConfigError(f"Model registry contains duplicate model id: {config.id}")
        seen.add(config.id)

    if not configs:
        raise ModelConfigError("Model registry must contain at least one model")

    return configs


class ModelRegistry:
    """Server-side model configurations, loaded once and passed by reference."""

    def __init__(self, models: list[LlmModelConfig], default_model: str = ""):
        self._models = {m.id: m for m in models}
        self._order = [m.id for m in models]
        self._default_model = default_model

    @classmethod
    def from_settings(cls, settings: Settings) -> "ModelRegistry":
        raw_json = settings.llm_models_json.get_secret_value()
        if raw_json:
            try:
                items = json.loads(raw_json)
            except json.JSONDecodeError as exc:
                raise ModelConfigError("LLM_MODELS_JSON must be valid JSON") from exc
            source = "LLM_MODELS_JSON"
        elif settings.models_config:
            items = settings.models_config
            source = "settings.yaml"
        else:
            raise ModelConfigError("Missing model registry: set LLM_MODELS_JSON or models.available")

        models = parse_model_configs(items)
        logger.info("Loaded %d model(s) from %s", len(models), source)
        return cls(models, default_model=settings.default_model_id)

    def get(self, model_id: str) -> LlmModelConfig:
        found = self._models.get(model_id)
        if not found:
            raise ModelConfigError(f'No registered model matches selection "{model_id}"')
        return found

    def public_models(self) -> list[dict]:
        return [self._models[model_id].public() for model_id in self._order]

    def default_model_id(self) -> str:
        if self._default_model in self._models:
            return self._default_model
        return self._order[0]
