"""
Factory for creating embedder providers.
"""

from kbgraph.config import EmbedderConfig
from kbgraph.core.embeddings.base import Embedder
from kbgraph.core.embeddings.ollama import OllamaEmbedder
from kbgraph.core.embeddings.openai import OpenAIEmbedder
from kbgraph.models.embedding import EMBEDDING_MODELS
from kbgraph.utils.exceptions import ConfigurationError


class EmbedderFactory:
    """Factory for creating embedder providers from configuration."""

    @staticmethod
    def create(config: EmbedderConfig) -> Embedder:
        """
        Create embedder from configuration.

        Raises:
            ConfigurationError: If the provider is unsupported or an API key is missing
        """
        if config.provider == "ollama":
            return OllamaEmbedder(
                host=config.base_url,
                model=config.model,
                timeout=config.timeout,
                dimension=config.dimension,
            )
        elif config.provider == "openai":
            if not config.api_key:
                raise ConfigurationError("OpenAI API key is required")
            default_url = EmbedderConfig.model_fields["base_url"].default
            base_url = None if config.base_url == default_url else config.base_url
            return OpenAIEmbedder(
                api_key=config.api_key,
                model=config.model,
                base_url=base_url,
                timeout=config.timeout,
            )
        else:
            raise ConfigurationError(f"Unsupported embedder provider: {config.provider}")

    @staticmethod
    async def get_dimension(embedder: Embedder, config: EmbedderConfig | None = None) -> int:
        """
        Get embedding dimension with fallback logic.

        Priority:
        1. From config if provided
        2. From the model registry
        3. From actual embedding test
        """
        if config and config.dimension:
            return config.dimension

        if embedder.model in EMBEDDING_MODELS:
            return EMBEDDING_MODELS[embedder.model].dimensions

        return await embedder.get_dimension()
