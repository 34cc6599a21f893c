"""
Tests for OpenAI LLM provider.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from kbgraph.core.llm.openai import OpenAILLM
from kbgraph.utils.exceptions import JSONParseError, LLMError, ValidationError


@pytest.fixture
def openai_llm():
    """Create OpenAI LLM for testing."""
    return OpenAILLM(api_key="test-key", model="gpt-4o", timeout=120.0)


def chat_response(content: str | None, total_tokens: int = 30):
    response = MagicMock()
    response.choices = [MagicMock(message=MagicMock(content=content))]
    response.usage = MagicMock(total_tokens=total_tokens)
    return response


@pytest.mark.unit
@pytest.mark.asyncio
class TestOpenAILLM:
    """Test OpenAI LLM provider."""

    async def test_initialization(self, openai_llm):
        """Test provider initialization."""
        assert openai_llm.model == "gpt-4o"
        assert openai_llm.client is not None

    async def test_initialization_with_base_url(self):
        """Test initialization with custom base URL."""
        llm = OpenAILLM(api_key="test-key", base_url="https://custom.openai.com")
        assert llm.client is not None

    async def test_complete_simple(self, openai_llm):
        """Test simple completion."""
        with patch.object(
            openai_llm.client.chat.completions, "create", new_callable=AsyncMock
        ) as mock_create:
            mock_create.return_value = chat_response("test response")

            result = await openai_llm.complete("test prompt")

            assert result.content == "test response"
            assert result.tokens_used == 30
            assert result.provider == "openai"
            mock_create.assert_called_once()

    async def test_complete_with_system_prompt(self, openai_llm):
        """Test system prompt is sent before the user message."""
        with patch.object(
            openai_llm.client.chat.completions, "create", new_callable=AsyncMock
        ) as mock_create:
            mock_create.return_value = chat_response("ok")

            await openai_llm.complete("user prompt", system_prompt="be terse", temperature=0.5)

            kwargs = mock_create.call_args.kwargs
            assert kwargs["messages"] == [
                {"role": "system", "content": "be terse"},
                {"role": "user", "content": "user prompt"},
            ]
            assert kwargs["temperature"] == 0.5
            assert "response_format" not in kwargs

    async def test_json_mode(self, openai_llm):
        """Test JSON mode requests a json_object response."""
        with patch.object(
            openai_llm.client.chat.completions, "create", new_callable=AsyncMock
        ) as mock_create:
            mock_create.return_value = chat_response('{"answer": 42}')

            await openai_llm.complete("prompt", json_mode=True)

            assert mock_create.call_args.kwargs["response_format"] == {"type": "json_object"}

    async def test_complete_json_parses_fenced_output(self, openai_llm):
        """Test JSON completions strip markdown fences."""
        with patch.object(
            openai_llm.client.chat.completions, "create", new_callable=AsyncMock
        ) as mock_create:
            mock_create.return_value = chat_response('```json\n{"entities": []}\n```')

            completion = await openai_llm.complete_json("prompt")

            assert completion.data == {"entities": []}
            assert completion.tokens_used == 30
            assert completion.model == "gpt-4o"

    async def test_complete_json_invalid(self, openai_llm):
        """Test unparseable JSON raises JSONParseError."""
        with patch.object(
            openai_llm.client.chat.completions, "create", new_callable=AsyncMock
        ) as mock_create:
            mock_create.return_value = chat_response("not json at all")

            with pytest.raises(JSONParseError):
                await openai_llm.complete_json("prompt")

    async def test_empty_prompt_rejected(self, openai_llm):
        """Test empty prompts are rejected."""
        with pytest.raises(ValidationError):
            await openai_llm.complete("   ")

    async def test_empty_content(self, openai_llm):
        """Test empty completion content is an error."""
        with patch.object(
            openai_llm.client.chat.completions, "create", new_callable=AsyncMock
        ) as mock_create:
            mock_create.return_value = chat_response(None)

            with pytest.raises(LLMError, match="empty content"):
                await openai_llm.complete("prompt")

    async def test_api_error(self, openai_llm):
        """Test API errors are wrapped."""
        with patch.object(
            openai_llm.client.chat.completions, "create", new_callable=AsyncMock
        ) as mock_create:
            mock_create.side_effect = RuntimeError("API Error")

            with pytest.raises(LLMError, match="API Error"):
                await openai_llm.complete("prompt")

    async def test_timeout(self, openai_llm):
        """Test the completion deadline."""
        openai_llm.timeout = 0.01

        async def slow(**kwargs):
            await asyncio.sleep(1)

        with patch.object(openai_llm.client.chat.completions, "create", side_effect=slow):
            with pytest.raises(LLMError, match="timed out"):
                await openai_llm.complete("prompt")
