"""
Configuration Management for VaultMind

Loads configuration from ~/.vaultmind/config.json and environment variables.
"""

import os
import json
import logging
from pathlib import Path
from dataclasses import dataclass, field

logger = logging.getLogger("vaultmind.common.config")

# Default config paths
CONFIG_DIR = Path.home() / ".vaultmind"
CONFIG_PATH = CONFIG_DIR / "config.json"
LOGS_DIR = CONFIG_DIR / "logs"

VALID_MODES = ("local", "remote")

DEFAULT_LOCAL_MODEL = "sentence-transformers/all-MiniLM-L6-v2"


@dataclass
class EmbeddingConfig:
    """Embedding model configuration"""
    local_model: str = DEFAULT_LOCAL_MODEL  # fastembed (on-device)
    openai_model: str = "text-embedding-3-small"
    google_model: str = "models/text-embedding-004"


@dataclass
class LLMConfig:
    """Remote LLM provider configuration"""
    provider: str = "openai"
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-20250514"
    google_api_key: str = ""
    google_model: str = "gemini-2.0-flash"
    max_tokens: int = 1000
    timeout: float = 60.0

    @property
    def api_key(self) -> str:
        """Credential for the selected provider ("" when not configured)"""
        return {
            "openai": self.openai_api_key,
            "anthropic": self.anthropic_api_key,
            "google": self.google_api_key,
        }.get(self.provider, "")

    @property
    def model(self) -> str:
        return {
            "openai": self.openai_model,
            "anthropic": self.anthropic_model,
            "google": self.google_model,
        }.get(self.provider, "")


@dataclass
class RetrieverConfig:
    """Retrieval tuning (defaults are the observed production values)"""
    max_context_documents: int = 5
    max_candidates: int = 30
    fingerprint_chars: int = 1000
    similarity_threshold: float = 0.3
    remote_context_chars: int = 2000


@dataclass
class SynthesisConfig:
    """Local answer phrasing"""
    openers_enabled: bool = True


@dataclass
class ServerConfig:
    host: str = "127.0.0.1"
    port: int = 8765


@dataclass
class VaultMindConfig:
    """Main VaultMind configuration"""
    mode: str = "local"  # "local" or "remote"
    embedding: EmbeddingConfig = field(default_factory=EmbeddingConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)
    retriever: RetrieverConfig = field(default_factory=RetrieverConfig)
    synthesis: SynthesisConfig = field(default_factory=SynthesisConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    _env_sourced_keys: set = field(default_factory=set, repr=False)


def _parse_embedding_config(data: dict) -> EmbeddingConfig:
    """Parse embedding section from config dict"""
    embedding_data = data.get("embedding", {})
    defaults = EmbeddingConfig()
    return EmbeddingConfig(
        local_model=embedding_data.get("local_model", defaults.local_model),
        openai_model=embedding_data.get("openai_model", defaults.openai_model),
        google_model=embedding_data.get("google_model", defaults.google_model),
    )


def _parse_llm_config(data: dict) -> LLMConfig:
    """Parse llm section from config dict"""
    llm_data = data.get("llm", {})
    defaults = LLMConfig()
    return LLMConfig(
        provider=llm_data.get("provider", defaults.provider),
        openai_api_key=llm_data.get("openai_api_key", ""),
        openai_model=llm_data.get("openai_model", defaults.openai_model),
        anthropic_api_key=llm_data.get("anthropic_api_key", ""),
        anthropic_model=llm_data.get("anthropic_model", defaults.anthropic_model),
        google_api_key=llm_data.get("google_api_key", ""),
        google_model=llm_data.get("google_model", defaults.google_model),
        max_tokens=llm_data.get("max_tokens", defaults.max_tokens),
        timeout=llm_data.get("timeout", defaults.timeout),
    )


def _parse_retriever_config(data: dict) -> RetrieverConfig:
    """Parse retriever section from config dict"""
    retriever_data = data.get("retriever", {})
    defaults = RetrieverConfig()
    return RetrieverConfig(
        max_context_documents=retriever_data.get("max_context_documents", defaults.max_context_documents),
        max_candidates=retriever_data.get("max_candidates", defaults.max_candidates),
        fingerprint_chars=retriever_data.get("fingerprint_chars", defaults.fingerprint_chars),
        similarity_threshold=retriever_data.get("similarity_threshold", defaults.similarity_threshold),
        remote_context_chars=retriever_data.get("remote_context_chars", defaults.remote_context_chars),
    )


def _parse_synthesis_config(data: dict) -> SynthesisConfig:
    synthesis_data = data.get("synthesis", {})
    return SynthesisConfig(
        openers_enabled=synthesis_data.get("openers_enabled", True),
    )


def _parse_server_config(data: dict) -> ServerConfig:
    server_data = data.get("server", {})
    defaults = ServerConfig()
    return ServerConfig(
        host=server_data.get("host", defaults.host),
        port=server_data.get("port", defaults.port),
    )


def load_config() -> VaultMindConfig:
    """
    Load configuration from file and environment variables.

    Priority (highest to lowest):
    1. Environment variables
    2. Config file (~/.vaultmind/config.json)
    3. Default values
    """
    config = VaultMindConfig()

    # Load from config file if exists
    if CONFIG_PATH.exists():
        try:
            with open(CONFIG_PATH) as f:
                data = json.load(f)

            config.mode = str(data.get("mode", "local")).lower()
            config.embedding = _parse_embedding_config(data)
            config.llm = _parse_llm_config(data)
            config.retriever = _parse_retriever_config(data)
            config.synthesis = _parse_synthesis_config(data)
            config.server = _parse_server_config(data)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning("Failed to load config file %s: %s", CONFIG_PATH, e)

    # Environment variable overrides
    if os.getenv("VAULTMIND_MODE"):
        config.mode = os.getenv("VAULTMIND_MODE").lower()
    if config.mode not in VALID_MODES:
        logger.warning("Unknown mode %r in config; using local", config.mode)
        config.mode = "local"
    if os.getenv("VAULTMIND_EMBEDDING_MODEL"):
        config.embedding.local_model = os.getenv("VAULTMIND_EMBEDDING_MODEL")
    if os.getenv("VAULTMIND_SIMILARITY_THRESHOLD"):
        config.retriever.similarity_threshold = float(os.getenv("VAULTMIND_SIMILARITY_THRESHOLD"))
    if os.getenv("VAULTMIND_PORT"):
        config.server.port = int(os.getenv("VAULTMIND_PORT"))

    # LLM env var overrides (track env-sourced keys so they are never saved)
    _env_llm_map = {
        "OPENAI_API_KEY": "openai_api_key",
        "OPENAI_MODEL": "openai_model",
        "ANTHROPIC_API_KEY": "anthropic_api_key",
        "ANTHROPIC_MODEL": "anthropic_model",
        "GOOGLE_API_KEY": "google_api_key",
        "GEMINI_API_KEY": "google_api_key",
        "GOOGLE_MODEL": "google_model",
        "VAULTMIND_LLM_PROVIDER": "provider",
    }
    for env_var, attr in _env_llm_map.items():
        val = os.getenv(env_var)
        if val:
            setattr(config.llm, attr, val)
            config._env_sourced_keys.add(attr)

    return config


def save_config(config: VaultMindConfig) -> None:
    """Save configuration to file.

    API key fields that were sourced from environment variables are written
    as empty strings so that secrets are not persisted to disk.
    """
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)

    env_sourced = getattr(config, "_env_sourced_keys", set())

    llm_section = {
        "provider": config.llm.provider,
        "openai_api_key": config.llm.openai_api_key,
        "openai_model": config.llm.openai_model,
        "anthropic_api_key": config.llm.anthropic_api_key,
        "anthropic_model": config.llm.anthropic_model,
        "google_api_key": config.llm.google_api_key,
        "google_model": config.llm.google_model,
        "max_tokens": config.llm.max_tokens,
        "timeout": config.llm.timeout,
    }
    for key in ("openai_api_key", "anthropic_api_key", "google_api_key"):
        if key in env_sourced:
            llm_section[key] = ""

    data = {
        "mode": config.mode,
        "embedding": {
            "local_model": config.embedding.local_model,
            "openai_model": config.embedding.openai_model,
            "google_model": config.embedding.google_model,
        },
        "llm": llm_section,
        "retriever": {
            "max_context_documents": config.retriever.max_context_documents,
            "max_candidates": config.retriever.max_candidates,
            "fingerprint_chars": config.retriever.fingerprint_chars,
            "similarity_threshold": config.retriever.similarity_threshold,
            "remote_context_chars": config.retriever.remote_context_chars,
        },
        "synthesis": {
            "openers_enabled": config.synthesis.openers_enabled,
        },
        "server": {
            "host": config.server.host,
            "port": config.server.port,
        },
    }

    with open(CONFIG_PATH, "w") as f:
        json.dump(data, f, indent=2)

    # Set secure permissions
    CONFIG_PATH.chmod(0o600)


def ensure_directories() -> None:
    """Ensure required directories exist"""
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    LOGS_DIR.mkdir(parents=True, exist_ok=True)
