"""Shared test configuration and fixtures."""
import httpx
import pytest

from samuraicord.chat import AdapterConfig, ChatAdapter


@pytest.fixture
def adapter_config() -> AdapterConfig:
    return AdapterConfig(
        base_url="http://ollama.test",
        model="test-model",
        system_prompt="You are a samurai.",
        connect_timeout=1.0,
        overall_timeout=1.0,
    )


@pytest.fixture
def make_adapter(adapter_config):
    """Build a ChatAdapter whose HTTP traffic is answered by `handler`."""

    def make(handler, config: AdapterConfig = None) -> ChatAdapter:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return ChatAdapter(config or adapter_config, client=client)

    return make
