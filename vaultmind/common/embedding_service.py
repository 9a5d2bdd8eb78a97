"""
Embedding Service

Two interchangeable embedding providers behind one contract:
- LocalEmbeddingProvider: on-device embedding generation using fastembed.
  The model is loaded lazily, once, and shared by every caller.
- RemoteEmbeddingProvider: the remote LLM provider's embedding endpoint.

Both return an empty vector on failure. Callers treat an empty vector as
"no signal" (never as zero similarity) and degrade to lexical ranking.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Optional

import numpy as np

from .config import DEFAULT_LOCAL_MODEL
from .errors import ProviderError
from .llm_client import LLMClient

logger = logging.getLogger("vaultmind.common.embedding_service")


class EmbeddingProvider(ABC):
    """Abstract interface for text -> embedding vector conversion."""

    @abstractmethod
    async def embed(self, text: str) -> List[float]:
        """
        Embed a single text.

        Returns:
            Embedding vector, or [] when no vector could be computed
        """
        ...


class LoadStatus(str, Enum):
    """Lifecycle of the on-device model"""
    UNLOADED = "unloaded"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class ModelLoadState:
    """Snapshot of the model load state machine"""
    status: LoadStatus = LoadStatus.UNLOADED
    progress: int = 0  # 0..100
    reason: Optional[str] = None

    @property
    def is_loading(self) -> bool:
        return self.status == LoadStatus.LOADING


def _create_fastembed_model(model_name: str) -> Any:
    from fastembed import TextEmbedding

    return TextEmbedding(model_name=model_name)


def _embed_with_model(model: Any, text: str) -> List[float]:
    """Run the model on one text and L2-normalize the pooled vector."""
    vector = np.asarray(next(iter(model.embed([text]))), dtype=np.float64)
    norm = float(np.linalg.norm(vector))
    if norm > 0:
        vector = vector / norm
    return vector.tolist()


ProgressListener = Callable[[ModelLoadState], None]


class LocalModelLoader:
    """
    Loads the on-device embedding model exactly once.

    The first caller starts the load; callers arriving while it is in
    progress await the same load. The outcome (ready or failed) is kept
    for the lifetime of the loader.
    """

    # Progress reported at each load stage
    PROGRESS_STARTED = 10
    PROGRESS_CONSTRUCTED = 80
    PROGRESS_READY = 100

    def __init__(
        self,
        model_name: str = DEFAULT_LOCAL_MODEL,
        model_factory: Optional[Callable[[str], Any]] = None,
    ):
        self.model_name = model_name
        self._model_factory = model_factory or _create_fastembed_model
        self._model = None
        self._state = ModelLoadState()
        self._load_task: Optional[asyncio.Future] = None
        self._listeners: List[ProgressListener] = []

    @property
    def state(self) -> ModelLoadState:
        return self._state

    @property
    def is_loading(self) -> bool:
        return self._state.is_loading

    @property
    def progress(self) -> int:
        return self._state.progress

    def add_listener(self, listener: ProgressListener) -> None:
        self._listeners.append(listener)

    def _set_state(self, status: LoadStatus, progress: int, reason: Optional[str] = None) -> None:
        self._state = ModelLoadState(status=status, progress=progress, reason=reason)
        for listener in self._listeners:
            try:
                listener(self._state)
            except Exception as e:
                logger.warning("Progress listener failed: %s", e)

    async def load(self) -> Any:
        """Return the loaded model, loading it on first use."""
        if self._model is not None:
            return self._model
        if self._state.status == LoadStatus.FAILED:
            raise ProviderError(f"Local model unavailable: {self._state.reason}", provider="local")

        if self._load_task is None:
            self._load_task = asyncio.ensure_future(self._load())
        return await asyncio.shield(self._load_task)

    async def _load(self) -> Any:
        self._set_state(LoadStatus.LOADING, self.PROGRESS_STARTED)
        logger.info("Loading local embedding model: %s", self.model_name)
        try:
            model = await asyncio.to_thread(self._model_factory, self.model_name)
            self._set_state(LoadStatus.LOADING, self.PROGRESS_CONSTRUCTED)
            # First inference initializes the runtime session
            await asyncio.to_thread(_embed_with_model, model, "warm up")
        except asyncio.CancelledError:
            logger.warning("Loading embedding model %s was cancelled", self.model_name)
            self._set_state(LoadStatus.FAILED, self._state.progress, reason="load cancelled")
            raise
        except Exception as e:
            logger.error("Failed to load embedding model %s: %s", self.model_name, e)
            self._set_state(LoadStatus.FAILED, self._state.progress, reason=str(e))
            raise ProviderError(f"Local model load failed: {e}", provider="local") from e

        self._model = model
        self._set_state(LoadStatus.READY, self.PROGRESS_READY)
        logger.info("Local embedding model ready: %s", self.model_name)
        return model


class LocalEmbeddingProvider(EmbeddingProvider):
    """
    On-device embeddings using fastembed.

    Avoids external API calls and keeps note content local.
    """

    def __init__(self, loader: LocalModelLoader):
        self._loader = loader

    @property
    def loader(self) -> LocalModelLoader:
        return self._loader

    async def embed(self, text: str) -> List[float]:
        if not text or not text.strip():
            return []

        try:
            model = await self._loader.load()
            return await asyncio.to_thread(_embed_with_model, model, text)
        except Exception as e:
            logger.warning("Local embedding failed: %s", e)
            return []


class RemoteEmbeddingProvider(EmbeddingProvider):
    """Embeddings from the remote LLM provider."""

    def __init__(self, client: LLMClient):
        self._client = client

    async def embed(self, text: str) -> List[float]:
        if not text or not text.strip():
            return []

        if not self._client.is_available:
            logger.warning("Remote embedding skipped: %s client unavailable", self._client.provider)
            return []

        if not self._client.supports_embeddings:
            logger.debug("%s has no embedding endpoint; using lexical ranking", self._client.provider)
            return []

        try:
            return await asyncio.to_thread(self._client.embed, text)
        except Exception as e:
            logger.warning("Remote embedding failed (%s): %s", self._client.provider, e)
            return []


# Module-level singleton getter
_loader_instance: Optional[LocalModelLoader] = None


def get_local_model_loader(model_name: str = DEFAULT_LOCAL_MODEL) -> LocalModelLoader:
    """
    Get the process-wide LocalModelLoader instance.

    Args:
        model_name: fastembed model name (only used on first call)

    Returns:
        LocalModelLoader instance
    """
    global _loader_instance

    if _loader_instance is None:
        _loader_instance = LocalModelLoader(model_name=model_name)

    return _loader_instance
