"""
Retriever - Vault Question Answering

Finds the notes relevant to a question and synthesizes a cited answer.

Key Components:
- QueryProcessor: Greeting detection, intent classification, retrieval text
- Searcher: Semantic ranking with a lexical fallback
- ContextAssembler: Labeled grounding context from the winning notes
- Synthesizer: Remote LLM answers or local heuristic answers
- QueryEngine: Public entry point

Pipeline:
1. Parse the question (greeting, intent, history)
2. Rank notes by embedding similarity, else by path keywords
3. Read the top notes into [File: path] blocks
4. Synthesize an answer citing [File: path]
5. Extract citations from the answer
"""

from .citations import extract_citations
from .context import AssembledContext, ContextAssembler
from .engine import AnswerResult, EngineSettings, ProviderMode, QueryEngine
from .query_processor import ConversationTurn, ParsedQuery, QueryIntent, QueryProcessor
from .searcher import (
    DocumentCandidate,
    RankResult,
    RankStrategy,
    Searcher,
    cosine_similarity,
    lexical_rank,
)
from .synthesizer import LocalSynthesizer, RemoteSynthesizer, SynthesizedAnswer

__all__ = [
    "extract_citations",
    "AssembledContext",
    "ContextAssembler",
    "AnswerResult",
    "EngineSettings",
    "ProviderMode",
    "QueryEngine",
    "ConversationTurn",
    "ParsedQuery",
    "QueryIntent",
    "QueryProcessor",
    "DocumentCandidate",
    "RankResult",
    "RankStrategy",
    "Searcher",
    "cosine_similarity",
    "lexical_rank",
    "LocalSynthesizer",
    "RemoteSynthesizer",
    "SynthesizedAnswer",
]
