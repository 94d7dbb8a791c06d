"""Tests for API key lookup and model normalization."""

import pytest

from flowchat.core.config import settings
from flowchat.core.exceptions import MissingApiKeyError
from flowchat.engine.credentials import (
    CredentialResolver,
    RequestSecrets,
    infer_model,
    normalize_model,
)
from flowchat.repositories import FlowRepository

from .conftest import seed_flow

PROJECT = "11111111-2222-3333-4444-555555555555"


async def _resolver(db, variables=None, secrets=None):
    await seed_flow(db, nodes=[], variables=variables, secrets=secrets)
    flows = FlowRepository(db)
    return CredentialResolver(flows, RequestSecrets(lambda: flows.get_secrets(PROJECT)))


class TestApiKeyResolution:
    async def test_env_reference_reads_secret(self, db):
        resolver = await _resolver(db, secrets={"MY_KEY": "sk-from-secret", "OPENAI_API_KEY": "sk-other"})
        assert await resolver.resolve_api_key(PROJECT, "{{env.MY_KEY}}") == "sk-from-secret"

    async def test_flow_variable_by_name(self, db):
        resolver = await _resolver(db, variables={"OPENAI": "sk-from-variable"})
        assert await resolver.resolve_api_key(PROJECT, "FLOW: OPENAI") == "sk-from-variable"

    async def test_well_known_secret_names(self, db):
        resolver = await _resolver(db, secrets={"ANTHROPIC_API_KEY": "sk-ant-123"})
        assert await resolver.resolve_api_key(PROJECT, "") == "sk-ant-123"

    async def test_any_variable_that_looks_like_a_key(self, db):
        resolver = await _resolver(db, variables={"misc": "hello", "whatever": "sk-looks-right"})
        assert await resolver.resolve_api_key(PROJECT, "") == "sk-looks-right"

    async def test_raw_key_field(self, db):
        resolver = await _resolver(db)
        assert await resolver.resolve_api_key(PROJECT, "sk-raw-key") == "sk-raw-key"
        assert await resolver.resolve_api_key(PROJECT, "lov_" + "x" * 30) == "lov_" + "x" * 30
        assert await resolver.resolve_api_key(PROJECT, "short") == ""

    async def test_process_fallback(self, db, monkeypatch):
        monkeypatch.setattr(settings, "openai_api_key", "sk-process")
        resolver = await _resolver(db)
        assert await resolver.resolve_api_key(PROJECT, "{{env.UNSET}}") == "sk-process"

    async def test_missing_key_raises(self, db):
        resolver = await _resolver(db)
        with pytest.raises(MissingApiKeyError) as exc:
            await resolver.resolve(PROJECT, "", "gpt-4o")
        assert exc.value.status_code == 500
        assert exc.value.error_code == "NO_API_KEY"

    async def test_resolve_returns_key_and_model(self, db):
        resolver = await _resolver(db, secrets={"OPENAI_API_KEY": "sk-ant-abc"})
        credentials = await resolver.resolve(PROJECT, "", "{{env.MODEL}}")
        assert credentials.api_key == "sk-ant-abc"
        assert credentials.model == "claude-sonnet-4-20250514"


async def test_secrets_are_loaded_once():
    calls = []

    async def loader():
        calls.append(1)
        return {"A": "1"}

    secrets = RequestSecrets(loader)
    assert not secrets.loaded
    assert await secrets.get() == {"A": "1"}
    assert await secrets.get() == {"A": "1"}
    assert secrets.loaded
    assert len(calls) == 1


class TestModelNormalization:
    def test_plain_models_pass_through(self):
        assert normalize_model("gpt-4o-mini", "sk-123") == "gpt-4o-mini"
        assert normalize_model(None, "sk-123") == "gpt-4o"

    @pytest.mark.parametrize(
        "api_key, raw_model, expected",
        [
            ("sk-ant-1", "{{env.MODEL}}", "claude-sonnet-4-20250514"),
            ("lov_1", "{{env.MODEL}}", "google/gemini-2.5-flash"),
            ("sk-1", "MiniMax {{env.MODEL}}", "minimax-m2.5"),
            ("sk-1", "{{env.MODEL}}", "gpt-4o"),
        ],
    )
    def test_env_placeholder_model_is_inferred_from_key(self, api_key, raw_model, expected):
        assert normalize_model(raw_model, api_key) == expected
        assert infer_model(api_key, raw_model) == expected
