"""Tests for LLMProvider."""

from unittest.mock import AsyncMock, Mock, patch

import pytest

from intake.llm import LLMProvider

CLIENT = "intake.llm.llm_provider.anthropic.AsyncAnthropic"


def client_returning(*texts):
    client = Mock()
    response = Mock()
    response.content = [Mock(text=t) for t in texts]
    client.messages.create = AsyncMock(return_value=response)
    return client


@pytest.fixture(autouse=True)
def api_key(monkeypatch):
    monkeypatch.setenv("ANTHROPIC_API_KEY", "test_key")


class TestLLMProviderInit:
    """Tests for LLMProvider construction."""

    def test_key_from_environment(self):
        """Test that the key is read from the environment."""
        with patch(CLIENT) as factory:
            LLMProvider()
        assert factory.call_args.kwargs["api_key"] == "test_key"

    def test_missing_key(self, monkeypatch):
        """Test that a missing key is refused."""
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)

        with patch(CLIENT):
            with pytest.raises(ValueError):
                LLMProvider()


class TestLLMProviderComplete:
    """Tests for LLMProvider.complete()."""

    async def test_request_parameters(self):
        """Test the model, system prompt and token limit sent to the API."""
        client = client_returning("{}")
        with patch(CLIENT, return_value=client):
            provider = LLMProvider()
            await provider.complete(
                messages=[{"role": "user", "content": "Extract this"}],
                system="You extract fields",
                max_tokens=512,
            )

        kwargs = client.messages.create.call_args.kwargs
        assert kwargs["model"] == "claude-sonnet-4-5"
        assert kwargs["system"] == "You extract fields"
        assert kwargs["max_tokens"] == 512

    async def test_no_system_prompt_omitted(self):
        """Test that an absent system prompt is not sent."""
        client = client_returning("ok")
        with patch(CLIENT, return_value=client):
            provider = LLMProvider(model="claude-haiku-4-5")
            await provider.complete(messages=[{"role": "user", "content": "Hi"}])

        kwargs = client.messages.create.call_args.kwargs
        assert "system" not in kwargs
        assert kwargs["model"] == "claude-haiku-4-5"
        assert kwargs["max_tokens"] == 1024

    async def test_text_blocks_joined(self):
        """Test that multiple text blocks are concatenated."""
        with patch(CLIENT, return_value=client_returning('{"a": ', "1}")):
            provider = LLMProvider()
            assert await provider.complete(messages=[]) == '{"a": 1}'

    async def test_empty_content(self):
        """Test that a reply without text is an error."""
        with patch(CLIENT, return_value=client_returning()):
            provider = LLMProvider()
            with pytest.raises(RuntimeError, match="empty response"):
                await provider.complete(messages=[{"role": "user", "content": "Hi"}])

    async def test_api_errors_wrapped(self):
        """Test that API errors surface as RuntimeError."""
        client = Mock()
        client.messages.create = AsyncMock(side_effect=Exception("overloaded"))
        with patch(CLIENT, return_value=client):
            provider = LLMProvider()
            with pytest.raises(RuntimeError, match="overloaded"):
                await provider.complete(messages=[{"role": "user", "content": "Hi"}])
