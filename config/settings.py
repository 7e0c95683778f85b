"""
Configuration settings for the team knowledge-base retrieval engine.

WHAT LIVES HERE:
- Azure OpenAI credentials and deployment names (embedding + chat)
- Chunking and retrieval thresholds used by search and question answering
- Runtime knobs: concurrency, per-call deadlines, embedding cache size, logging

Everything is read from environment variables (optionally from a .env file).
Missing Azure credentials are not an error: the service then runs on its
deterministic keyword heuristics instead of the AI models.

AZURE AI FOUNDRY CONCEPTS:
- Endpoint: The URL where your AI services are hosted
- API Key: Authentication to access your deployed models
- Deployment Name: The name you gave when deploying a model
  (This is different from the model name itself)
"""

import logging
import os
import sys
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)


@dataclass
class AzureOpenAIConfig:
    """Configuration for Azure OpenAI services."""
    endpoint: Optional[str] = None
    api_key: Optional[str] = None
    api_version: str = "2024-02-15-preview"
    chat_deployment: str = "gpt-4o"                  # For generating answers
    embedding_deployment: str = "text-embedding"     # For creating vectors

    @property
    def is_configured(self) -> bool:
        """True when both endpoint and key are present."""
        return bool(self.endpoint and self.api_key)


@dataclass
class ChunkingConfig:
    """
    Configuration for document chunking.

    Documents are split on sentence boundaries and grouped into
    non-overlapping windows of `sentences_per_chunk` sentences.
    """
    sentences_per_chunk: int = 5


@dataclass
class RetrievalConfig:
    """
    Configuration for search and answer retrieval.

    THRESHOLDS:
    - search_threshold: minimum whole-document similarity for search hits
    - answer_threshold: minimum chunk similarity for short chunks
    - long_chunk_threshold: stricter bar for chunks longer than
      long_chunk_chars (long text dilutes the semantic signal)
    """
    search_threshold: float = 0.6
    search_top_k: int = 10
    answer_threshold: float = 0.6
    long_chunk_threshold: float = 0.75
    long_chunk_chars: int = 200
    answer_top_k: int = 3


@dataclass
class RuntimeConfig:
    """Concurrency, deadlines, caching and logging."""
    max_concurrency: int = 4
    request_timeout_seconds: Optional[float] = 30.0
    scoring_timeout_seconds: Optional[float] = None
    embedding_cache_size: int = 2048
    log_level: str = "INFO"


@dataclass
class Settings:
    """Main settings container."""
    azure: AzureOpenAIConfig = field(default_factory=AzureOpenAIConfig)
    chunking: ChunkingConfig = field(default_factory=ChunkingConfig)
    retrieval: RetrievalConfig = field(default_factory=RetrievalConfig)
    runtime: RuntimeConfig = field(default_factory=RuntimeConfig)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


def _env_float(name: str, default: Optional[float]) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")


def load_settings() -> Settings:
    """
    Load settings from environment variables.

    OPTIONAL ENVIRONMENT VARIABLES:
    - AZURE_OPENAI_ENDPOINT / AZURE_OPENAI_API_KEY: enable the AI models
    - AZURE_OPENAI_API_VERSION, AZURE_OPENAI_CHAT_DEPLOYMENT,
      AZURE_OPENAI_EMBEDDING_DEPLOYMENT: override deployment details
    - TEAMKB_MAX_CONCURRENCY, TEAMKB_REQUEST_TIMEOUT, TEAMKB_SCORING_TIMEOUT,
      TEAMKB_EMBEDDING_CACHE_SIZE, TEAMKB_LOG_LEVEL: runtime tuning

    Raises:
        ValueError: if a numeric variable cannot be parsed
    """
    defaults = AzureOpenAIConfig()
    azure = AzureOpenAIConfig(
        endpoint=os.getenv("AZURE_OPENAI_ENDPOINT") or None,
        api_key=os.getenv("AZURE_OPENAI_API_KEY") or None,
        api_version=os.getenv("AZURE_OPENAI_API_VERSION", defaults.api_version),
        chat_deployment=os.getenv("AZURE_OPENAI_CHAT_DEPLOYMENT", defaults.chat_deployment),
        embedding_deployment=os.getenv(
            "AZURE_OPENAI_EMBEDDING_DEPLOYMENT", defaults.embedding_deployment
        ),
    )

    if not azure.is_configured:
        logger.warning(
            "AZURE_OPENAI_ENDPOINT / AZURE_OPENAI_API_KEY not set. "
            "AI features will use fallback methods."
        )

    runtime_defaults = RuntimeConfig()
    runtime = RuntimeConfig(
        max_concurrency=_env_int("TEAMKB_MAX_CONCURRENCY", runtime_defaults.max_concurrency),
        request_timeout_seconds=_env_float(
            "TEAMKB_REQUEST_TIMEOUT", runtime_defaults.request_timeout_seconds
        ),
        scoring_timeout_seconds=_env_float(
            "TEAMKB_SCORING_TIMEOUT", runtime_defaults.scoring_timeout_seconds
        ),
        embedding_cache_size=_env_int(
            "TEAMKB_EMBEDDING_CACHE_SIZE", runtime_defaults.embedding_cache_size
        ),
        log_level=os.getenv("TEAMKB_LOG_LEVEL", runtime_defaults.log_level).upper(),
    )

    return Settings(
        azure=azure,
        chunking=ChunkingConfig(),
        retrieval=RetrievalConfig(),
        runtime=runtime,
    )


def configure_logging(level: str = "INFO") -> None:
    """Install a single stdout handler with timestamped records."""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))
    root_logger.setLevel(level)
    root_logger.addHandler(handler)

    # The SDK logs every HTTP request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)


# Singleton pattern - load settings once and reuse
_settings = None

def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next get_settings() re-reads the environment."""
    global _settings
    _settings = None
