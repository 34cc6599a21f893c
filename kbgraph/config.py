"""
Configuration for kbgraph.

Supports loading from:
1. Environment variables (highest priority)
2. YAML config file
3. Default values (fallback)
"""

import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field


class LLMConfig(BaseModel):
    """LLM provider configuration."""

    provider: str = "ollama"  # ollama, openai
    model: str = "llama3.1:8b"
    base_url: str = "http://localhost:11434"
    api_key: str | None = None
    temperature: float = 0.0
    max_tokens: int = 8192
    timeout: float = 120.0


class EmbedderConfig(BaseModel):
    """Embedder configuration."""

    provider: str = "ollama"  # ollama, openai
    model: str = "nomic-embed-text"
    base_url: str = "http://localhost:11434"
    api_key: str | None = None
    timeout: float = 120.0
    # Optional: embedding dimension for models missing from the registry
    dimension: int | None = None


class TokenizerConfig(BaseModel):
    """Token counting configuration."""

    provider: str = "approximate"  # approximate, tiktoken
    model: str = "cl100k_base"
    chars_per_token: float = 4.0


class ChunkingSettings(BaseModel):
    """Default chunking profile used by the ingestion pipeline."""

    profile: str = "default"  # default, marketing, technical, precise, contextual
    use_recommended: bool = True


class EmbeddingCacheConfig(BaseModel):
    """In-memory embedding cache configuration."""

    enabled: bool = True
    max_size: int = 10_000
    ttl_seconds: float = 24 * 60 * 60
    eviction_fraction: float = 0.1


class EmbeddingGenerationConfig(BaseModel):
    """Batch embedding generation configuration."""

    batch_size: int = 100
    max_retries: int = 3
    retry_delay: float = 1.0  # seconds, multiplied by the attempt number
    pipeline_batch_size: int = 50


class EntityExtractionConfig(BaseModel):
    """Entity extraction configuration."""

    min_confidence: float = 0.5
    max_entities: int = 100
    chunk_batch_size: int = 5
    max_tokens: int = 8192


class RelationshipExtractionConfig(BaseModel):
    """Relationship extraction configuration."""

    min_confidence: float = 0.6
    max_tokens: int = 4096


class GraphConfig(BaseModel):
    """Graph building and traversal defaults."""

    max_entities: int = 1000
    traversal_max_depth: int = 3
    traversal_limit: int = 100
    path_max_depth: int = 10
    all_paths_max_depth: int = 5
    max_paths: int = 10


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    log_to_file: bool = False
    log_dir: str = "logs"
    file_rotation: str = "10 MB"
    file_retention: str = "7 days"
    compression: str = "zip"
    serialize: bool = True


class QdrantConfig(BaseModel):
    """Qdrant vector index configuration (optional SQLite companion)."""

    enabled: bool = False
    url: str = "http://localhost:6333"
    collection_name: str = "knowledge_embeddings"
    use_grpc: bool = False
    hnsw_m: int = 16
    hnsw_ef_construct: int = 100
    on_disk: bool = False
    timeout: int = 30


class SQLiteConfig(BaseModel):
    """SQLite knowledge store configuration."""

    db_path: str = "data/kbgraph.db"
    timeout: float = 30.0


class Config(BaseModel):
    """Main configuration."""

    llm: LLMConfig = Field(default_factory=LLMConfig)
    embedder: EmbedderConfig = Field(default_factory=EmbedderConfig)
    tokenizer: TokenizerConfig = Field(default_factory=TokenizerConfig)
    chunking: ChunkingSettings = Field(default_factory=ChunkingSettings)
    embedding_cache: EmbeddingCacheConfig = Field(default_factory=EmbeddingCacheConfig)
    embedding_generation: EmbeddingGenerationConfig = Field(
        default_factory=EmbeddingGenerationConfig
    )
    entity_extraction: EntityExtractionConfig = Field(default_factory=EntityExtractionConfig)
    relationship_extraction: RelationshipExtractionConfig = Field(
        default_factory=RelationshipExtractionConfig
    )
    graph: GraphConfig = Field(default_factory=GraphConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    qdrant: QdrantConfig = Field(default_factory=QdrantConfig)
    sqlite: SQLiteConfig = Field(default_factory=SQLiteConfig)

    # Knowledge store backend
    store_backend: str = "sqlite"  # sqlite, memory

    @classmethod
    def from_env(cls, env_file: str | Path | None = None) -> "Config":
        """
        Load configuration from environment variables.

        Priority: .env file -> system environment variables -> defaults

        Args:
            env_file: Optional path to .env file (default: .env in project root)

        Returns:
            Config instance

        Environment variables:
            KBGRAPH_LLM_PROVIDER: LLM provider (ollama, openai)
            KBGRAPH_LLM_MODEL: LLM model name
            KBGRAPH_LLM_BASE_URL: LLM base URL
            KBGRAPH_LLM_API_KEY: LLM API key (for OpenAI)
            KBGRAPH_EMBEDDER_PROVIDER: Embedder provider
            KBGRAPH_EMBEDDER_MODEL: Embedder model name
            KBGRAPH_EMBEDDER_API_KEY: Embedder API key (for OpenAI)
            KBGRAPH_EMBEDDER_DIMENSION: Embedding dimension (optional)
            KBGRAPH_CACHE_MAX_SIZE: Embedding cache capacity
            KBGRAPH_CACHE_TTL_SECONDS: Embedding cache TTL
            KBGRAPH_EMBEDDING_MAX_RETRIES: Retries per embedding sub-batch
            KBGRAPH_EMBEDDING_RETRY_DELAY: Base retry delay in seconds
            KBGRAPH_ENTITY_MIN_CONFIDENCE: Entity confidence threshold
            KBGRAPH_RELATIONSHIP_MIN_CONFIDENCE: Relationship confidence threshold
            KBGRAPH_STORE_BACKEND: Knowledge store backend (sqlite, memory)
            KBGRAPH_SQLITE_PATH: SQLite database path
            KBGRAPH_QDRANT_ENABLED: Use Qdrant for similarity search
            KBGRAPH_QDRANT_URL: Qdrant URL
            KBGRAPH_QDRANT_COLLECTION: Qdrant collection name
        """
        # Load .env file if provided or exists
        if env_file:
            load_dotenv(env_file)
        elif Path(".env").exists():
            load_dotenv()

        def get_env(key: str, default: Any = None) -> Any:
            """Get environment variable with type conversion."""
            value = os.getenv(key)
            if value is None or value == "":
                return default
            # bool before int: bool is a subclass of int
            if isinstance(default, bool):
                return str(value).lower() in ("true", "1", "yes")
            if isinstance(default, int):
                return int(value)
            if isinstance(default, float):
                return float(value)
            return value

        dimension = get_env("KBGRAPH_EMBEDDER_DIMENSION")

        return cls(
            llm=LLMConfig(
                provider=get_env("KBGRAPH_LLM_PROVIDER", "ollama"),
                model=get_env("KBGRAPH_LLM_MODEL", "llama3.1:8b"),
                base_url=get_env("KBGRAPH_LLM_BASE_URL", "http://localhost:11434"),
                api_key=get_env("KBGRAPH_LLM_API_KEY"),
                temperature=get_env("KBGRAPH_LLM_TEMPERATURE", 0.0),
                max_tokens=get_env("KBGRAPH_LLM_MAX_TOKENS", 8192),
                timeout=get_env("KBGRAPH_LLM_TIMEOUT", 120.0),
            ),
            embedder=EmbedderConfig(
                provider=get_env("KBGRAPH_EMBEDDER_PROVIDER", "ollama"),
                model=get_env("KBGRAPH_EMBEDDER_MODEL", "nomic-embed-text"),
                base_url=get_env("KBGRAPH_EMBEDDER_BASE_URL", "http://localhost:11434"),
                api_key=get_env("KBGRAPH_EMBEDDER_API_KEY"),
                timeout=get_env("KBGRAPH_EMBEDDER_TIMEOUT", 120.0),
                dimension=int(dimension) if dimension else None,
            ),
            tokenizer=TokenizerConfig(
                provider=get_env("KBGRAPH_TOKENIZER_PROVIDER", "approximate"),
                model=get_env("KBGRAPH_TOKENIZER_MODEL", "cl100k_base"),
            ),
            chunking=ChunkingSettings(
                profile=get_env("KBGRAPH_CHUNKING_PROFILE", "default"),
                use_recommended=get_env("KBGRAPH_CHUNKING_USE_RECOMMENDED", True),
            ),
            embedding_cache=EmbeddingCacheConfig(
                enabled=get_env("KBGRAPH_CACHE_ENABLED", True),
                max_size=get_env("KBGRAPH_CACHE_MAX_SIZE", 10_000),
                ttl_seconds=get_env("KBGRAPH_CACHE_TTL_SECONDS", 86400.0),
            ),
            embedding_generation=EmbeddingGenerationConfig(
                batch_size=get_env("KBGRAPH_EMBEDDING_BATCH_SIZE", 100),
                max_retries=get_env("KBGRAPH_EMBEDDING_MAX_RETRIES", 3),
                retry_delay=get_env("KBGRAPH_EMBEDDING_RETRY_DELAY", 1.0),
            ),
            entity_extraction=EntityExtractionConfig(
                min_confidence=get_env("KBGRAPH_ENTITY_MIN_CONFIDENCE", 0.5),
                max_entities=get_env("KBGRAPH_ENTITY_MAX_ENTITIES", 100),
            ),
            relationship_extraction=RelationshipExtractionConfig(
                min_confidence=get_env("KBGRAPH_RELATIONSHIP_MIN_CONFIDENCE", 0.6),
            ),
            store_backend=get_env("KBGRAPH_STORE_BACKEND", "sqlite"),
            sqlite=SQLiteConfig(
                db_path=get_env("KBGRAPH_SQLITE_PATH", "data/kbgraph.db"),
                timeout=get_env("KBGRAPH_SQLITE_TIMEOUT", 30.0),
            ),
            qdrant=QdrantConfig(
                enabled=get_env("KBGRAPH_QDRANT_ENABLED", False),
                url=get_env("KBGRAPH_QDRANT_URL", "http://localhost:6333"),
                collection_name=get_env("KBGRAPH_QDRANT_COLLECTION", "knowledge_embeddings"),
                use_grpc=get_env("KBGRAPH_QDRANT_USE_GRPC", False),
            ),
            logging=LoggingConfig(
                level=get_env("KBGRAPH_LOG_LEVEL", "INFO"),
                log_to_file=get_env("KBGRAPH_LOG_TO_FILE", False),
                log_dir=get_env("KBGRAPH_LOG_DIR", "logs"),
                serialize=get_env("KBGRAPH_LOG_SERIALIZE", True),
            ),
        )

    @classmethod
    def from_yaml(cls, yaml_path: str | Path) -> "Config":
        """
        Load configuration from YAML file.

        Raises:
            FileNotFoundError: If YAML file doesn't exist
            yaml.YAMLError: If YAML is invalid
        """
        yaml_path = Path(yaml_path)
        if not yaml_path.exists():
            raise FileNotFoundError(f"Config file not found: {yaml_path}")

        with open(yaml_path) as f:
            data = yaml.safe_load(f) or {}

        return cls(**data)

    @classmethod
    def from_env_or_yaml(
        cls, yaml_path: str | Path | None = None, env_file: str | Path | None = None
    ) -> "Config":
        """
        Load configuration with priority: env vars > YAML > defaults.

        Only sections whose environment values differ from the defaults
        override the YAML file.
        """
        config_dict: dict[str, Any] = {}
        if yaml_path and Path(yaml_path).exists():
            with open(yaml_path) as f:
                config_dict = yaml.safe_load(f) or {}

        env_config = cls.from_env(env_file=env_file)
        default = cls()

        final_dict = {**config_dict}
        for section in cls.model_fields:
            env_value = getattr(env_config, section)
            if env_value != getattr(default, section):
                final_dict[section] = (
                    env_value.model_dump() if isinstance(env_value, BaseModel) else env_value
                )

        return cls(**final_dict) if final_dict else env_config


# Default config instance
default_config = Config()
