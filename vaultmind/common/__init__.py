"""
VaultMind Common Module

Shared infrastructure for the retriever: configuration, errors, embedding
providers, the LLM client and vault access.
"""

from .config import VaultMindConfig, load_config
from .embedding_service import (
    EmbeddingProvider,
    LocalEmbeddingProvider,
    LocalModelLoader,
    RemoteEmbeddingProvider,
)
from .errors import ConfigurationError, NotFoundError, ProviderError, VaultMindError
from .llm_client import LLMClient
from .vault import FileSystemVault

__all__ = [
    "VaultMindConfig",
    "load_config",
    "EmbeddingProvider",
    "LocalEmbeddingProvider",
    "LocalModelLoader",
    "RemoteEmbeddingProvider",
    "ConfigurationError",
    "NotFoundError",
    "ProviderError",
    "VaultMindError",
    "LLMClient",
    "FileSystemVault",
]
