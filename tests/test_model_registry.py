import json

import pytest

from backend.config import Settings
from backend.services.model_registry import ModelConfigError, ModelRegistry


def _settings(models_json=None, yaml_config=None, **kwargs) -> Settings:
    if models_json is not None and not isinstance(models_json, str):
        models_json = json.dumps(models_json)
    return Settings(
        llm_models_json=models_json or "",
        yaml_config=yaml_config if yaml_config is not None else {"models": {}},
        **kwargs,
    )


VALID_ENTRY = {"id": "gpt-4o", "name": "GPT-4o", "endpoint": "https://example.test/v1"}


class TestModelRegistry:
    def test_loads_from_yaml(self, test_settings):
        registry = ModelRegistry.from_settings(test_settings)
        assert registry.get("team-opus").model == "claude-opus-4-5"
        assert [m["id"] for m in registry.public_models()] == [
            "gpt-4o", "claude-sonnet-4.5", "team-opus",
        ]

    def test_json_takes_precedence(self, test_settings):
        settings = _settings(
            [{
                "id": "only-json",
                "name": "Only JSON",
                "endpoint": "https://example.test/anthropic/v1/messages",
                "apiKey": "secret",
                "maxLength": 2000,
                "tokenLimit": 9000,
            }],
            yaml_config=test_settings.yaml_config,
        )
        registry = ModelRegistry.from_settings(settings)
        model = registry.get("only-json")
        assert model.api_key == "secret"
        assert model.max_length == 2000
        assert model.token_limit == 9000
        with pytest.raises(ModelConfigError):
            registry.get("gpt-4o")

    def test_public_models_hide_endpoint_and_key(self):
        registry = ModelRegistry.from_settings(_settings([{**VALID_ENTRY, "apiKey": "k"}]))
        assert registry.public_models() == [
            {"id": "gpt-4o", "name": "GPT-4o", "max_length": 12000, "token_limit": 4000}
        ]

    def test_non_numeric_limits_use_defaults(self):
        registry = ModelRegistry.from_settings(
            _settings([{**VALID_ENTRY, "maxLength": "big", "tokenLimit": True}])
        )
        model = registry.get("gpt-4o")
        assert model.max_length == 12000
        assert model.token_limit == 4000

    @pytest.mark.parametrize("raw_number", ["1e400", "-1e400", "NaN", "Infinity"])
    def test_non_finite_limits_use_defaults(self, raw_number):
        raw = (
            '[{"id": "a", "name": "A", "endpoint": "http://x", '
            f'"maxLength": {raw_number}, "tokenLimit": {raw_number}}}]'
        )
        model = ModelRegistry.from_settings(_settings(raw)).get("a")
        assert model.max_length == 12000
        assert model.token_limit == 4000

    def test_limits_kept_as_given(self):
        registry = ModelRegistry.from_settings(
            _settings([{**VALID_ENTRY, "maxLength": 12000.5, "tokenLimit": 10**30}])
        )
        model = registry.get("gpt-4o")
        assert model.max_length == 12000.5
        assert model.token_limit == 10**30
        assert registry.public_models()[0]["max_length"] == 12000.5

    def test_unknown_model_raises(self, test_settings):
        registry = ModelRegistry.from_settings(test_settings)
        with pytest.raises(ModelConfigError, match="No registered model"):
            registry.get("nonexistent-model")

    def test_missing_source(self):
        with pytest.raises(ModelConfigError, match="Missing model registry"):
            ModelRegistry.from_settings(_settings())

    @pytest.mark.parametrize(
        "raw, message",
        [
            ("{not json", "valid JSON"),
            ('{"id": "x"}', "JSON array"),
            ("[1]", "must be an object"),
            ("[]", "at least one model"),
        ],
    )
    def test_malformed_json(self, raw, message):
        with pytest.raises(ModelConfigError, match=message):
            ModelRegistry.from_settings(_settings(raw))

    @pytest.mark.parametrize("missing", ["id", "name", "endpoint"])
    def test_required_fields(self, missing):
        entry = {k: v for k, v in VALID_ENTRY.items() if k != missing}
        with pytest.raises(ModelConfigError, match=missing):
            ModelRegistry.from_settings(_settings([entry]))

    def test_blank_field_rejected(self):
        with pytest.raises(ModelConfigError):
            ModelRegistry.from_settings(_settings([{**VALID_ENTRY, "name": "   "}]))

    def test_duplicate_ids(self):
        with pytest.raises(ModelConfigError, match="duplicate model id: gpt-4o"):
            ModelRegistry.from_settings(_settings([VALID_ENTRY, VALID_ENTRY]))

    def test_default_model(self, test_settings):
        registry = ModelRegistry.from_settings(test_settings)
        assert registry.default_model_id() == "gpt-4o"

    def test_default_model_falls_back_to_first(self):
        settings = _settings(
            [VALID_ENTRY, {**VALID_ENTRY, "id": "second"}], default_model="not-registered"
        )
        assert ModelRegistry.from_settings(settings).default_model_id() == "gpt-4o"

    def test_default_model_from_env(self):
        settings = _settings([VALID_ENTRY, {**VALID_ENTRY, "id": "second"}], default_model="second")
        assert ModelRegistry.from_settings(settings).default_model_id() == "second"
