from pathlib import Path
from functools import lru_cache

import yaml
from pydantic_settings import BaseSettings, SettingsConfigDict

from pydantic import SecretStr


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Model registry (JSON array, takes precedence over settings.yaml)
    llm_models_json: SecretStr = SecretStr("")
    default_model: str = ""

    # Document store
    database_url: str = "./data/usage.db"

    # Server
    backend_port: int = 8000
    log_level: str = "INFO"

    # Tokenizer
    tokenizer_encoding: str = "cl100k_base"

    # Dashboard fetch windows
    dashboard_events_limit: int = 200
    dashboard_summaries_limit: int = 200
    dashboard_topics_limit: int = 500
    dashboard_chats_limit: int = 100

    # Deployment
    allowed_origins: str = ""

    # Loaded from YAML
    yaml_config: dict = {}

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        if not self.yaml_config:
            yaml_path = Path(__file__).parent.parent / "config" / "settings.yaml"
            if yaml_path.exists():
                with open(yaml_path, "r", encoding="utf-8") as f:
                    self.yaml_config = yaml.safe_load(f) or {}

    @property
    def models_config(self) -> list[dict]:
        return self.yaml_config.get("models", {}).get("available", [])

    @property
    def default_model_id(self) -> str:
        return self.default_model or self.yaml_config.get("models", {}).get("default", "")

    @property
    def pricing_config(self) -> dict:
        return self.yaml_config.get("pricing", {})

    @property
    def pricing_aliases(self) -> dict:
        return self.yaml_config.get("pricing_aliases", {})


@lru_cache
def get_settings() -> Settings:
    return Settings()
