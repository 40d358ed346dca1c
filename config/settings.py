"""
Application settings and configuration.
"""
import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


@dataclass(frozen=True)
class DatabaseConfig:
    """Relational database connection parameters."""
    host: str = "localhost"
    port: int = 3306
    database: str = ""
    user: str = "root"
    password: str = ""
    ssl: bool = False

    @classmethod
    def from_env(cls) -> "DatabaseConfig":
        return cls(
            host=os.getenv("DB_HOST", "localhost"),
            port=int(os.getenv("DB_PORT", "3306")),
            database=os.getenv("DB_NAME", ""),
            user=os.getenv("DB_USER", "root"),
            password=os.getenv("DB_PASSWORD", ""),
            ssl=_env_bool("DB_SSL"),
        )


@dataclass(frozen=True)
class VectorStoreConfig:
    """Vector store configuration."""
    url: str = "http://localhost:19530"
    api_key: Optional[str] = None
    collection_name: str = "text2sql_schemas"
    dimension: int = 1536

    # Index configuration
    index_type: str = "IVF_FLAT"
    metric_type: str = "COSINE"
    nlist: int = 1024

    @classmethod
    def from_env(cls) -> "VectorStoreConfig":
        return cls(
            url=os.getenv("MILVUS_URL", "http://localhost:19530"),
            api_key=os.getenv("MILVUS_API_KEY") or None,
            collection_name=os.getenv("MILVUS_COLLECTION", "text2sql_schemas"),
            dimension=int(os.getenv("EMBEDDING_DIMENSION", "1536")),
            index_type=os.getenv("MILVUS_INDEX_TYPE", "IVF_FLAT"),
            metric_type=os.getenv("MILVUS_METRIC_TYPE", "COSINE"),
            nlist=int(os.getenv("MILVUS_NLIST", "1024")),
        )


@dataclass(frozen=True)
class GenerationConfig:
    """LLM completion and embedding configuration."""
    model: str = "gpt-4o-mini"
    embedding_model: str = "text-embedding-3-small"
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    max_tokens: int = 1000
    temperature: float = 0.1
    top_k: int = 5
    timeout: int = 30

    @classmethod
    def from_env(cls) -> "GenerationConfig":
        return cls(
            model=os.getenv("OPENAI_MODEL_NAME", "gpt-4o-mini"),
            embedding_model=os.getenv("EMBEDDING_MODEL", "text-embedding-3-small"),
            api_key=os.getenv("OPENAI_API_KEY") or None,
            base_url=os.getenv("OPENAI_BASE_URL") or None,
            max_tokens=int(os.getenv("LLM_MAX_TOKENS", "1000")),
            temperature=float(os.getenv("LLM_TEMPERATURE", "0.1")),
            top_k=int(os.getenv("RETRIEVAL_TOP_K", "5")),
            timeout=int(os.getenv("LLM_TIMEOUT", "30")),
        )


@dataclass(frozen=True)
class PipelineConfig:
    """Query pipeline gating and execution behaviour.

    ``max_retries`` is part of the public configuration but is not consumed
    by the pipeline itself; callers that want retries wrap ``ask_question``.
    """
    min_confidence: float = 0.7
    dry_run: bool = False
    max_retries: int = 3

    def __post_init__(self):
        if not 0.0 <= self.min_confidence <= 1.0:
            raise ValueError(f"min_confidence must be within [0, 1], got {self.min_confidence}")
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")

    @classmethod
    def from_env(cls) -> "PipelineConfig":
        return cls(
            min_confidence=float(os.getenv("MIN_CONFIDENCE", "0.7")),
            dry_run=_env_bool("DRY_RUN"),
            max_retries=int(os.getenv("MAX_RETRIES", "3")),
        )


@dataclass(frozen=True)
class Config:
    """Application configuration, one section per collaborator."""
    database_config: DatabaseConfig = field(default_factory=DatabaseConfig)
    vector_store_config: VectorStoreConfig = field(default_factory=VectorStoreConfig)
    generation_config: GenerationConfig = field(default_factory=GenerationConfig)
    pipeline_config: PipelineConfig = field(default_factory=PipelineConfig)

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> "Config":
        """Build a configuration from environment variables (and a .env file)."""
        load_dotenv(dotenv_path)
        return cls(
            database_config=DatabaseConfig.from_env(),
            vector_store_config=VectorStoreConfig.from_env(),
            generation_config=GenerationConfig.from_env(),
            pipeline_config=PipelineConfig.from_env(),
        )

