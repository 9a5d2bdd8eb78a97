"""
Query Engine

Public entry point of the retriever. Sequences one query end to end:

1. Check the provider mode can run (remote needs a credential)
2. Answer greetings directly (local mode)
3. List the vault's notes
4. Rank semantically, fall back to lexical ranking
5. Assemble grounding context
6. Synthesize an answer with the active strategy
7. Extract citations

The engine keeps no per-query state; the only shared state is the
provider mode (EngineSettings) and the local model loader.
"""

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Union

from ..common.config import LLMConfig, RetrieverConfig, VaultMindConfig
from ..common.embedding_service import (
    EmbeddingProvider,
    LocalEmbeddingProvider,
    LocalModelLoader,
    ModelLoadState,
    RemoteEmbeddingProvider,
    get_local_model_loader,
)
from ..common.errors import ConfigurationError
from ..common.llm_client import LLMClient, create_llm_client
from ..common.vault import DocumentTree, FileSystemVault
from .citations import extract_citations
from .context import ContextAssembler
from .query_processor import QueryProcessor
from .searcher import Searcher
from .synthesizer import (
    NOT_FOUND_MESSAGE,
    LocalSynthesizer,
    NoPhraseSource,
    PhraseSource,
    RandomPhraseSource,
    RemoteSynthesizer,
)

logger = logging.getLogger("vaultmind.retriever.engine")


class ProviderMode(str, Enum):
    """Active backend for embeddings and synthesis"""
    REMOTE = "remote"
    LOCAL = "local"


@dataclass(frozen=True)
class AnswerResult:
    """The only value returned across the engine boundary"""
    answer: str
    citations: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"answer": self.answer, "citations": list(self.citations)}


def nothing_found() -> AnswerResult:
    return AnswerResult(answer=NOT_FOUND_MESSAGE, citations=[])


class EngineSettings:
    """
    Provider mode and credential, owned by one QueryEngine.

    Mode switches are guarded by a lock so concurrent readers always see
    a whole value.
    """

    def __init__(
        self,
        mode: Union[ProviderMode, str] = ProviderMode.LOCAL,
        llm: Optional[LLMConfig] = None,
    ):
        self._lock = threading.Lock()
        self._mode = ProviderMode(mode)
        self.llm = llm or LLMConfig()

    def get_mode(self) -> ProviderMode:
        with self._lock:
            return self._mode

    def set_mode(self, mode: Union[ProviderMode, str]) -> ProviderMode:
        """Switch mode. Raises ValueError for an unknown mode."""
        new_mode = ProviderMode(mode)
        with self._lock:
            previous, self._mode = self._mode, new_mode
        if previous != new_mode:
            logger.info("Provider mode switched: %s -> %s", previous.value, new_mode.value)
        return new_mode

    def get_credential(self) -> Optional[str]:
        return self.llm.api_key or None


class QueryEngine:
    """
    Retrieval-and-synthesis engine over a note vault.

    Features:
    - Local (on-device) and remote provider modes
    - Semantic ranking with lexical fallback
    - Heuristic local answers or remote LLM answers, both cited
    """

    def __init__(
        self,
        settings: Optional[EngineSettings] = None,
        vault: Optional[DocumentTree] = None,
        model_loader: Optional[LocalModelLoader] = None,
        local_embedding: Optional[EmbeddingProvider] = None,
        llm_client: Optional[LLMClient] = None,
        retriever_config: Optional[RetrieverConfig] = None,
        processor: Optional[QueryProcessor] = None,
        local_synthesizer: Optional[LocalSynthesizer] = None,
        embedding_models: Optional[Dict[str, str]] = None,
    ):
        """
        Initialize the engine.

        Args:
            settings: Mode + credential holder
            vault: Document tree (defaults to the filesystem)
            model_loader: On-device model loader (defaults to the process-wide one)
            local_embedding: Embedding provider for local mode
            llm_client: Remote provider client (built from settings when omitted)
            retriever_config: Ranking caps and thresholds
            processor: Query parser
            local_synthesizer: Heuristic answer engine
            embedding_models: Remote embedding model per provider
        """
        self._settings = settings or EngineSettings()
        self._vault = vault or FileSystemVault()
        self._config = retriever_config or RetrieverConfig()
        self._loader = model_loader or get_local_model_loader()
        self._local_embedding = local_embedding or LocalEmbeddingProvider(self._loader)
        self._llm_client = llm_client
        self._processor = processor or QueryProcessor()
        self._local = local_synthesizer or LocalSynthesizer()
        self._assembler = ContextAssembler(self._vault)
        self._embedding_models = embedding_models or {}

    @classmethod
    def from_config(
        cls,
        config: VaultMindConfig,
        phrase_source: Optional[PhraseSource] = None,
        **kwargs,
    ) -> "QueryEngine":
        """Build an engine from loaded configuration."""
        if phrase_source is None:
            phrase_source = RandomPhraseSource() if config.synthesis.openers_enabled else NoPhraseSource()

        kwargs.setdefault("model_loader", get_local_model_loader(config.embedding.local_model))
        return cls(
            settings=EngineSettings(mode=config.mode, llm=config.llm),
            retriever_config=config.retriever,
            local_synthesizer=LocalSynthesizer(
                phrase_source=phrase_source,
                openers_enabled=config.synthesis.openers_enabled,
            ),
            embedding_models={
                "openai": config.embedding.openai_model,
                "google": config.embedding.google_model,
            },
            **kwargs,
        )

    # --- mode and model state ----------------------------------------------

    @property
    def settings(self) -> EngineSettings:
        return self._settings

    def get_mode(self) -> ProviderMode:
        return self._settings.get_mode()

    def set_mode(self, mode: Union[ProviderMode, str]) -> ProviderMode:
        return self._settings.set_mode(mode)

    def is_loading(self) -> bool:
        return self._loader.is_loading

    def load_progress(self) -> int:
        return self._loader.progress

    def load_state(self) -> ModelLoadState:
        return self._loader.state

    # --- query --------------------------------------------------------------

    async def query(
        self,
        corpus_root: str,
        text: str,
        max_context_documents: Optional[int] = None,
        history: Optional[Iterable[Any]] = None,
    ) -> AnswerResult:
        """
        Answer a question from the notes under corpus_root.

        Args:
            corpus_root: Vault directory
            text: User question
            max_context_documents: Notes passed to synthesis (default 5)
            history: Prior conversation turns

        Returns:
            AnswerResult with answer text and cited note paths

        Raises:
            ConfigurationError: remote mode without a credential
            ProviderError: remote completion failed
        """
        if max_context_documents is None:
            max_context_documents = self._config.max_context_documents
        if max_context_documents < 1:
            raise ValueError("max_context_documents must be at least 1")

        mode = self._settings.get_mode()
        if mode == ProviderMode.REMOTE and not self._settings.get_credential():
            raise ConfigurationError(
                f"Remote mode requires an API key for provider '{self._settings.llm.provider}'. "
                "Set it in the config file or environment, or switch to local mode."
            )

        parsed = self._processor.parse(text, history)

        if mode == ProviderMode.LOCAL and parsed.is_greeting:
            note_count = len(self._vault.list_text_files(corpus_root))
            return AnswerResult(answer=self._local.greet(note_count), citations=[])

        paths = self._vault.list_text_files(corpus_root)
        if not paths:
            logger.info("No notes found under %s", corpus_root)
            return nothing_found()

        ranked = await self._searcher(mode).rank(corpus_root, parsed, paths)
        if ranked.is_empty:
            return nothing_found()
        logger.debug("%d notes ranked by %s", len(ranked.candidates), ranked.strategy.value)

        context = self._assembler.assemble(corpus_root, ranked.candidates, max_context_documents)
        if context.is_empty:
            return nothing_found()

        if mode == ProviderMode.REMOTE:
            synthesized = await self._remote_synthesizer().synthesize(parsed, context)
        else:
            synthesized = self._local.synthesize(parsed, context)

        return AnswerResult(
            answer=synthesized.answer,
            citations=extract_citations(synthesized.answer),
        )

    # --- wiring -------------------------------------------------------------

    def _client(self) -> LLMClient:
        if self._llm_client is None:
            embedding_model = self._embedding_models.get(self._settings.llm.provider, "")
            self._llm_client = create_llm_client(self._settings.llm, embedding_model=embedding_model)
        return self._llm_client

    def _searcher(self, mode: ProviderMode) -> Searcher:
        if mode == ProviderMode.REMOTE:
            embedding = RemoteEmbeddingProvider(self._client())
        else:
            embedding = self._local_embedding

        return Searcher(
            self._vault,
            embedding,
            max_candidates=self._config.max_candidates,
            fingerprint_chars=self._config.fingerprint_chars,
            similarity_threshold=self._config.similarity_threshold,
        )

    def _remote_synthesizer(self) -> RemoteSynthesizer:
        return RemoteSynthesizer(
            self._client(),
            context_chars=self._config.remote_context_chars,
            max_tokens=self._settings.llm.max_tokens,
            timeout=self._settings.llm.timeout,
        )
