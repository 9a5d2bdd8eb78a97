"""
Searcher

Ranks vault notes against a query.

Semantic ranking embeds a fingerprint of each candidate (path plus the
start of its content) and keeps candidates above a cosine similarity
threshold. Only the first `max_candidates` notes are scanned, sequentially,
so latency and provider load stay bounded; notes beyond the cap are never
considered.

Lexical ranking scores note paths by keyword hits and is used when
semantic ranking produces nothing. Searcher.rank runs both in that order
and reports which one produced the result.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence

import numpy as np

from ..common.embedding_service import EmbeddingProvider
from ..common.vault import DocumentTree
from .query_processor import ParsedQuery, lexical_keywords

logger = logging.getLogger("vaultmind.retriever.searcher")

DEFAULT_MAX_CANDIDATES = 30
DEFAULT_FINGERPRINT_CHARS = 1000
DEFAULT_SIMILARITY_THRESHOLD = 0.3


class RankStrategy(str, Enum):
    """Which ranking produced a result"""
    SEMANTIC = "semantic"
    LEXICAL = "lexical"
    NONE = "none"  # neither matched


@dataclass
class DocumentCandidate:
    """A note considered for one query"""
    path: str
    content: Optional[str] = None  # read lazily
    vector: Optional[List[float]] = None
    score: Optional[float] = None

    @property
    def has_vector(self) -> bool:
        return bool(self.vector)


def cosine_similarity(vec1: Sequence[float], vec2: Sequence[float]) -> float:
    """
    Compute cosine similarity between two vectors.

    Returns 0.0 when either vector is empty or has zero length, or when
    the dimensions differ. Never raises.
    """
    v1 = np.asarray(vec1, dtype=np.float64)
    v2 = np.asarray(vec2, dtype=np.float64)

    if v1.size == 0 or v1.shape != v2.shape:
        return 0.0

    norm1 = float(np.linalg.norm(v1))
    norm2 = float(np.linalg.norm(v2))
    if norm1 == 0.0 or norm2 == 0.0:
        return 0.0

    return float(np.dot(v1, v2)) / (norm1 * norm2)


@dataclass
class RankResult:
    """Ranked candidates and the strategy that produced them"""
    candidates: List[DocumentCandidate] = field(default_factory=list)
    strategy: RankStrategy = RankStrategy.NONE

    @property
    def is_empty(self) -> bool:
        return not self.candidates


def lexical_rank(
    query: str,
    paths: Sequence[str],
    keywords: Optional[Sequence[str]] = None,
) -> List[DocumentCandidate]:
    """
    Rank note paths by keyword matches.

    Each keyword found in the path scores 10, plus 2 per occurrence.
    Zero-score paths are dropped; ties keep enumeration order.

    Args:
        query: Raw query text
        paths: Note paths in enumeration order
        keywords: Precomputed keywords (derived from query when omitted)
    """
    if keywords is None:
        keywords = lexical_keywords(query)
    if not keywords:
        return []

    scored = []
    for path in paths:
        path_lower = path.lower()
        score = 0
        for keyword in keywords:
            occurrences = path_lower.count(keyword)
            if occurrences:
                score += 10 + 2 * occurrences
        if score > 0:
            scored.append(DocumentCandidate(path=path, score=float(score)))

    scored.sort(key=lambda c: c.score, reverse=True)
    return scored


class Searcher:
    """
    Semantic search over a vault using an embedding provider.

    Features:
    - Bounded candidate scan
    - Similarity threshold
    - Stable ordering (ties keep enumeration order)
    """

    def __init__(
        self,
        vault: DocumentTree,
        embedding_provider: EmbeddingProvider,
        max_candidates: int = DEFAULT_MAX_CANDIDATES,
        fingerprint_chars: int = DEFAULT_FINGERPRINT_CHARS,
        similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
    ):
        """
        Initialize searcher.

        Args:
            vault: Document tree to read notes from
            embedding_provider: For embedding the query and fingerprints
            max_candidates: Notes scanned per query
            fingerprint_chars: Content characters included in each fingerprint
            similarity_threshold: Candidates must score strictly above this
        """
        self._vault = vault
        self._embedding = embedding_provider
        self.max_candidates = max_candidates
        self.fingerprint_chars = fingerprint_chars
        self.similarity_threshold = similarity_threshold

    async def rank(self, root: str, query: ParsedQuery, paths: Sequence[str]) -> RankResult:
        """
        Rank semantically, falling back to lexical ranking.

        Returns:
            RankResult tagged with the strategy that matched, or an empty
            result tagged NONE when neither did
        """
        candidates = await self.semantic_rank(root, query.retrieval_text, paths)
        if candidates:
            return RankResult(candidates=candidates, strategy=RankStrategy.SEMANTIC)

        candidates = lexical_rank(query.original, paths, keywords=query.keywords)
        if candidates:
            logger.debug("Lexical fallback matched %d notes", len(candidates))
            return RankResult(candidates=candidates, strategy=RankStrategy.LEXICAL)

        return RankResult()

    async def semantic_rank(
        self,
        root: str,
        query_text: str,
        paths: Sequence[str],
    ) -> Optional[List[DocumentCandidate]]:
        """
        Rank notes by embedding similarity to the query.

        Returns:
            Candidates above the threshold, most similar first, or None
            when there is no semantic match (no query vector, no candidate
            vectors, or nothing above the threshold)
        """
        query_vector = await self._embedding.embed(query_text)
        if not query_vector:
            logger.info("No query embedding; semantic ranking unavailable")
            return None

        candidates = []
        for path in paths[:self.max_candidates]:
            content = self._read(root, path)
            if content is None:
                continue

            candidate = DocumentCandidate(path=path, content=content)
            candidate.vector = await self._embedding.embed(self.fingerprint(path, content))
            if candidate.has_vector:
                candidate.score = cosine_similarity(query_vector, candidate.vector)
            candidates.append(candidate)

        if not any(c.has_vector for c in candidates):
            logger.info("No candidate embeddings; semantic ranking unavailable")
            return None

        matches = [
            c for c in candidates
            if c.score is not None and c.score > self.similarity_threshold
        ]
        if not matches:
            logger.info("No candidate above similarity threshold %.2f", self.similarity_threshold)
            return None

        # list.sort is stable: equal scores keep enumeration order
        matches.sort(key=lambda c: c.score, reverse=True)
        return matches

    def fingerprint(self, path: str, content: str) -> str:
        """Text embedded for a candidate: its path plus the start of its content"""
        return f"{path}\n{content[:self.fingerprint_chars]}"

    def _read(self, root: str, path: str) -> Optional[str]:
        try:
            return self._vault.read_text(root, path)
        except OSError as e:
            logger.warning("Skipping %s: %s", path, e)
            return None
