import base64
import json
import tempfile
from pathlib import Path

import pytest
import pytest_asyncio

from backend.database import set_db_path, init_db

TEST_YAML_CONFIG = {
    "models": {
        "default": "gpt-4o",
        "available": [
            {
                "id": "gpt-4o",
                "name": "GPT-4o",
                "provider": "openai",
                "endpoint": "https://api.openai.com/v1/chat/completions",
            },
            {
                "id": "claude-sonnet-4.5",
                "name": "Claude Sonnet 4.5",
                "provider": "anthropic",
                "model": "claude-sonnet-4-5",
                "endpoint": "https://api.anthropic.com/v1/messages",
            },
            {
                "id": "team-opus",
                "name": "Team Opus",
                "provider": "anthropic",
                "model": "claude-opus-4-5",
                "endpoint": "https://api.anthropic.com/v1/messages",
            },
        ],
    },
    "pricing": {
        "openai": {
            "gpt-4o": {"input": 2.50, "output": 10.00},
            "gpt-4o-mini": {"input": 0.15, "output": 0.60},
        },
        "anthropic": {
            "claude-opus-4-5": {"input": 5.00, "output": 25.00},
            "claude-sonnet-4-5": {"input": 3.00, "output": 15.00},
            # Priced under the public id too, to check candidate order
            "team-opus": {"input": 100.00, "output": 100.00},
        },
    },
    "pricing_aliases": {},
}


class WordTokenizer:
    """Deterministic stand-in for the BPE tokenizer: one token per word."""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False

    def count(self, text: str) -> int:
        return len(text.split())


def principal_header(roles=("authenticated",), claims=None, user_id="user-1") -> str:
    payload = {
        "identityProvider": "aad",
        "userId": user_id,
        "userDetails": "someone@example.com",
        "userRoles": list(roles),
    }
    if claims is not None:
        payload["claims"] = claims
    return base64.b64encode(json.dumps(payload).encode("utf-8")).decode("ascii")


@pytest.fixture
def temp_db_path():
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        path = f.name
    yield path
    Path(path).unlink(missing_ok=True)


@pytest.fixture
def test_settings(temp_db_path):
    from backend.config import Settings
    return Settings(
        database_url=temp_db_path,
        yaml_config=TEST_YAML_CONFIG,
    )


@pytest_asyncio.fixture
async def initialized_db(temp_db_path):
    set_db_path(temp_db_path)
    await init_db()
    yield temp_db_path
