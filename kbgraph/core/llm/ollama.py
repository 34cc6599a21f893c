"""
Ollama LLM provider using native ollama-python SDK.
"""

import asyncio

import ollama

from kbgraph.core.llm.base import LLMProvider, LLMResponse
from kbgraph.utils.exceptions import LLMError, ValidationError
from kbgraph.utils.logger import get_logger

logger = get_logger(__name__)


class OllamaLLM(LLMProvider):
    """
    Ollama LLM provider for text generation.

    Uses native ollama-python SDK for chat completions
    with JSON mode for structured outputs.
    """

    def __init__(
        self,
        host: str = "http://localhost:11434",
        model: str = "llama3.1:8b",
        timeout: float = 120.0,
    ):
        """
        Initialize Ollama LLM provider.

        Args:
            host: Ollama server URL
            model: Model name for text generation (e.g., "llama3.1", "mistral")
            timeout: Request deadline in seconds
        """
        self.host = host
        self.model = model
        self.timeout = timeout

        self.client = ollama.AsyncClient(host=host)

    async def complete(
        self,
        prompt: str,
        system_prompt: str | None = None,
        json_mode: bool = False,
        max_tokens: int = 2000,
        temperature: float = 0.0,
        **kwargs,
    ) -> LLMResponse:
        if not prompt or not prompt.strip():
            raise ValidationError("Prompt cannot be empty")

        options = {
            "temperature": temperature,
            "num_predict": max_tokens,
            **kwargs.get("options", {}),
        }

        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        try:
            response = await asyncio.wait_for(
                self.client.chat(
                    model=self.model,
                    messages=messages,
                    format="json" if json_mode else None,
                    options=options,
                    **{k: v for k, v in kwargs.items() if k != "options"},
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise LLMError(
                f"Ollama completion timed out after {self.timeout}s",
                context={"model": self.model, "host": self.host},
            ) from e
        except Exception as e:
            logger.error(
                "Ollama API error",
                extra={"model": self.model, "host": self.host, "error": str(e)},
            )
            raise LLMError(f"Ollama API error: {e}") from e

        content = response["message"]["content"]
        if not content:
            raise LLMError("Ollama returned empty content", context={"model": self.model})

        tokens_used = (response.get("prompt_eval_count") or 0) + (response.get("eval_count") or 0)

        return LLMResponse(
            content=content,
            tokens_used=tokens_used,
            model=self.model,
            provider="ollama",
        )

    async def close(self):
        """Close client (Ollama SDK handles cleanup internally)."""
        pass
