"""
Factory for creating LLM providers.
"""

from kbgraph.config import LLMConfig
from kbgraph.core.llm.base import LLMProvider
from kbgraph.core.llm.ollama import OllamaLLM
from kbgraph.core.llm.openai import OpenAILLM
from kbgraph.utils.exceptions import ConfigurationError


class LLMFactory:
    """Factory for creating LLM providers from configuration."""

    @staticmethod
    def create(config: LLMConfig) -> LLMProvider:
        """
        Create LLM provider from configuration.

        Raises:
            ConfigurationError: If the provider is unsupported or an API key is missing
        """
        if config.provider == "ollama":
            return OllamaLLM(
                host=config.base_url,
                model=config.model,
                timeout=config.timeout,
            )
        elif config.provider == "openai":
            if not config.api_key:
                raise ConfigurationError("OpenAI API key is required")
            # The default base_url points at a local Ollama server
            default_url = LLMConfig.model_fields["base_url"].default
            base_url = None if config.base_url == default_url else config.base_url
            return OpenAILLM(
                api_key=config.api_key,
                model=config.model,
                base_url=base_url,
                timeout=config.timeout,
            )
        else:
            raise ConfigurationError(f"Unsupported LLM provider: {config.provider}")
