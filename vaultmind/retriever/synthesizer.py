"""
Synthesizer

Turns grounding context into a cited answer. Two strategies:

- RemoteSynthesizer: one completion call to the remote LLM provider,
  instructed to cite notes inline as [File: name].
- LocalSynthesizer: no generative model. Restructures retrieved note text
  according to the query intent and cites every note it quotes.

Key principle: precision over recall. When nothing relevant was extracted,
the local strategy says so instead of dumping unrelated notes.
"""

import asyncio
import logging
import random
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Protocol, Sequence

from ..common.errors import ProviderError
from ..common.llm_client import LLMClient
from .context import AssembledContext, ContextDocument, file_marker
from .query_processor import ParsedQuery, QueryIntent

logger = logging.getLogger("vaultmind.retriever.synthesizer")

NOT_FOUND_MESSAGE = (
    "I couldn't find anything in your notes that answers that. "
    "Try rephrasing your question, or mention the note or topic you have in mind."
)

NO_RESPONSE_MESSAGE = "No response generated."


@dataclass
class SynthesizedAnswer:
    """Answer text plus how it was produced"""
    answer: str
    intent: Optional[QueryIntent] = None
    sources: List[str] = field(default_factory=list)

    @property
    def is_grounded(self) -> bool:
        return bool(self.sources)


# =============================================================================
# Remote strategy
# =============================================================================

SYSTEM_PROMPT = """You are a helpful AI assistant that answers questions based on the provided vault context.
Only use information from the notes below. If they do not contain the answer, say so.
Cite specific files when referencing information. Format citations as [File: filename.md] inline in your response."""

SYNTHESIS_PROMPT = """{language_instruction}

Context from vault:
{context}

User question: {query}

Please provide a helpful answer based on the context above. Include citations in the format [File: filename.md] when referencing specific files."""


class RemoteSynthesizer:
    """
    Synthesizes answers with the remote LLM provider.

    Provider failures are raised, never replaced by a local answer: a user
    who picked the remote provider should see that it failed.
    """

    def __init__(
        self,
        client: LLMClient,
        context_chars: int = 2000,
        max_tokens: int = 1000,
        timeout: float = 60.0,
    ):
        """
        Initialize synthesizer.

        Args:
            client: LLM client for the selected provider
            context_chars: Max characters of each note sent to the provider
            max_tokens: Completion budget
            timeout: Provider call timeout in seconds
        """
        self._client = client
        self._context_chars = context_chars
        self._max_tokens = max_tokens
        self._timeout = timeout

    def build_prompt(self, query: ParsedQuery, context: AssembledContext) -> str:
        if query.language and not query.language.is_english:
            language_instruction = (
                f"The user asked in {query.language.code}. "
                f"Respond in the same language ({query.language.code})."
            )
        else:
            language_instruction = "Respond in English."

        return SYNTHESIS_PROMPT.format(
            language_instruction=language_instruction,
            context=context.format(self._context_chars),
            query=query.original,
        ).strip()

    async def synthesize(self, query: ParsedQuery, context: AssembledContext) -> SynthesizedAnswer:
        if not self._client.is_available:
            raise ProviderError(
                f"{self._client.provider} client is not available", provider=self._client.provider
            )

        prompt = self.build_prompt(query, context)
        history = [(turn.role, turn.content) for turn in query.history]

        try:
            answer = await asyncio.to_thread(
                self._client.generate,
                prompt,
                system=SYSTEM_PROMPT,
                history=history,
                max_tokens=self._max_tokens,
                timeout=self._timeout,
            )
        except Exception as e:
            logger.error("%s completion failed: %s", self._client.provider, e)
            raise ProviderError(f"Failed to query AI: {e}", provider=self._client.provider) from e

        return SynthesizedAnswer(
            answer=answer or NO_RESPONSE_MESSAGE,
            intent=query.intent,
            sources=context.paths,
        )


# =============================================================================
# Phrase sources (conversational openers for the local strategy)
# =============================================================================

class PhraseSource(Protocol):
    """Chooses one phrase from a bank ("" means no phrase)."""

    def choose(self, phrases: Sequence[str]) -> str:
        ...


class RandomPhraseSource:
    """Random choice; pass a seed for reproducible phrasing."""

    def __init__(self, seed: Optional[int] = None):
        self._random = random.Random(seed)

    def choose(self, phrases: Sequence[str]) -> str:
        return self._random.choice(list(phrases)) if phrases else ""


class NoPhraseSource:
    """Never adds a phrase."""

    def choose(self, phrases: Sequence[str]) -> str:
        return ""


class FixedPhraseSource:
    """Always picks the phrase at `index` (wrapping)."""

    def __init__(self, index: int = 0):
        self._index = index

    def choose(self, phrases: Sequence[str]) -> str:
        return phrases[self._index % len(phrases)] if phrases else ""


OPENERS: Dict[QueryIntent, Sequence[str]] = {
    QueryIntent.SUMMARIZE: (
        "Here's an overview from your notes:",
        "Here's a summary of what I found:",
        "This is what your notes cover:",
    ),
    QueryIntent.ENUMERATE: (
        "Here's what I found:",
        "These are the items in your notes:",
        "Here's the list from your notes:",
    ),
    QueryIntent.CONTAINS: (
        "Here are the key points:",
        "This is what's in there:",
        "Here's what that note contains:",
    ),
    QueryIntent.GENERAL: (
        "Here's what I found in your notes:",
        "Your notes mention this:",
        "This looks relevant:",
    ),
}

FOLLOW_UP_CONNECTORS: Sequence[str] = (
    "Following up on that,",
    "Building on what we discussed,",
    "Picking up from before,",
)


# =============================================================================
# Local strategy
# =============================================================================

HEADER_RE = re.compile(r"^\s{0,3}#{1,6}\s+\S")
LIST_ITEM_RE = re.compile(r"^\s*(?:[-*+•]\s+(?:\[[ xX]\]\s+)?|\d+[.)]\s+)\S")

SHORT_HEADER_MAX_CHARS = 60
KEY_POINT_MAX_CHARS = 100


def is_header(line: str) -> bool:
    """Markdown heading, or a short capitalized line ending in a colon"""
    if HEADER_RE.match(line):
        return True
    stripped = line.strip()
    return (
        0 < len(stripped) <= SHORT_HEADER_MAX_CHARS
        and stripped[0].isupper()
        and stripped.endswith(":")
        and not LIST_ITEM_RE.match(line)
    )


def is_list_item(line: str) -> bool:
    return bool(LIST_ITEM_RE.match(line))


def header_title(line: str) -> str:
    return line.strip().lstrip("#").strip().rstrip(":").strip()


def content_lines(content: str) -> List[str]:
    """Non-blank lines, right-stripped"""
    return [line.rstrip() for line in content.splitlines() if line.strip()]


@dataclass
class Section:
    """A header and the lines under it (header is None before the first header)"""
    header: Optional[str]
    lines: List[str] = field(default_factory=list)


def split_sections(content: str) -> List[Section]:
    sections: List[Section] = []
    current: Optional[Section] = None

    for line in content_lines(content):
        if is_header(line):
            current = Section(header=header_title(line))
            sections.append(current)
        else:
            if current is None:
                current = Section(header=None)
                sections.append(current)
            current.lines.append(line)

    return sections


@dataclass
class Excerpt:
    """Lines quoted from one note"""
    path: str
    lines: List[str]
    heading: str = "From"

    def render(self) -> str:
        return "\n".join([f"{self.heading} {file_marker(self.path)}:"] + self.lines)


Strategy = Callable[[ParsedQuery, AssembledContext], List[Excerpt]]


class LocalSynthesizer:
    """
    Heuristic answer engine: extracts and restructures note text by intent.

    - summarize: sections (header + first lines) of the top notes
    - enumerate: bullet, numbered and checkbox lines
    - contains: headers, list items and short lines as key points
    - general: opening lines of notes sharing words with the question
    """

    def __init__(
        self,
        phrase_source: Optional[PhraseSource] = None,
        openers_enabled: bool = True,
        max_summary_files: int = 2,
        max_section_lines: int = 8,
        max_list_items: int = 10,
        max_key_points: int = 8,
        fallback_lines: int = 5,
        general_lines: int = 10,
        max_sources: int = 5,
    ):
        self._phrases = phrase_source or RandomPhraseSource()
        self._openers_enabled = openers_enabled
        self.max_summary_files = max_summary_files
        self.max_section_lines = max_section_lines
        self.max_list_items = max_list_items
        self.max_key_points = max_key_points
        self.fallback_lines = fallback_lines
        self.general_lines = general_lines
        self.max_sources = max_sources

        self._strategies: Dict[QueryIntent, Strategy] = {
            QueryIntent.SUMMARIZE: self._summarize,
            QueryIntent.ENUMERATE: self._enumerate,
            QueryIntent.CONTAINS: self._contains,
            QueryIntent.GENERAL: self._general,
        }

    def greet(self, note_count: int) -> str:
        """Canned welcome for greeting-only queries"""
        noun = "note" if note_count == 1 else "notes"
        return (
            f"Hi! I'm your vault assistant. I can search your {note_count} {noun} "
            "and answer questions about them. Try asking me to summarize a topic, "
            "list your todos, or tell you what a note contains."
        )

    def strategy_for(self, intent: QueryIntent) -> Strategy:
        return self._strategies.get(intent, self._general)

    def synthesize(self, query: ParsedQuery, context: AssembledContext) -> SynthesizedAnswer:
        if context.is_empty:
            return SynthesizedAnswer(answer=NOT_FOUND_MESSAGE, intent=query.intent)

        intent = query.intent
        excerpts = self.strategy_for(intent)(query, context)
        if not excerpts and intent != QueryIntent.GENERAL:
            logger.debug("No %s structure found; falling back to general", intent.value)
            intent = QueryIntent.GENERAL
            excerpts = self._general(query, context)

        if not excerpts:
            return SynthesizedAnswer(answer=NOT_FOUND_MESSAGE, intent=intent)

        sources = list(dict.fromkeys(e.path for e in excerpts))
        parts = []
        opener = self._opener(query, intent)
        if opener:
            parts.append(opener)
        parts.extend(e.render() for e in excerpts)
        parts.append("Sources: " + ", ".join(file_marker(p) for p in sources[:self.max_sources]))

        return SynthesizedAnswer(answer="\n\n".join(parts), intent=intent, sources=sources)

    def _opener(self, query: ParsedQuery, intent: QueryIntent) -> str:
        if not self._openers_enabled:
            return ""
        opener = self._phrases.choose(OPENERS.get(intent, ()))
        if query.history:
            connector = self._phrases.choose(FOLLOW_UP_CONNECTORS)
            if connector and opener:
                opener = f"{connector} {opener[0].lower()}{opener[1:]}"
            else:
                opener = connector or opener
        return opener

    # --- strategies ---------------------------------------------------------

    def _summarize(self, query: ParsedQuery, context: AssembledContext) -> List[Excerpt]:
        excerpts = []
        for doc in context.documents[:self.max_summary_files]:
            lines = []
            for section in split_sections(doc.content):
                if section.header:
                    lines.append(f"**{section.header}**")
                lines.extend(line.strip() for line in section.lines[:self.max_section_lines])
            if lines:
                excerpts.append(Excerpt(path=doc.path, lines=lines, heading="Summary of"))
        return excerpts

    def _enumerate(self, query: ParsedQuery, context: AssembledContext) -> List[Excerpt]:
        excerpts = []
        for doc in context.documents:
            items = [line.strip() for line in content_lines(doc.content) if is_list_item(line)]
            if items:
                excerpts.append(Excerpt(path=doc.path, lines=items[:self.max_list_items]))
        return excerpts

    def _contains(self, query: ParsedQuery, context: AssembledContext) -> List[Excerpt]:
        excerpts = []
        for doc in context.documents:
            lines = content_lines(doc.content)
            points = []
            for line in lines:
                if is_header(line):
                    points.append(f"- **{header_title(line)}**")
                elif is_list_item(line):
                    points.append(line.strip())
                elif len(line.strip()) < KEY_POINT_MAX_CHARS:
                    points.append(f"- {line.strip()}")
                if len(points) >= self.max_key_points:
                    break
            if not points:
                points = [line.strip() for line in lines[:self.fallback_lines]]
            if points:
                excerpts.append(Excerpt(path=doc.path, lines=points, heading="Key points in"))
        return excerpts

    def _general(self, query: ParsedQuery, context: AssembledContext) -> List[Excerpt]:
        if len(context.documents) == 1:
            doc = context.documents[0]
            lines = [doc.content.strip()] if doc.content.strip() else []
            return [Excerpt(path=doc.path, lines=lines)] if lines else []

        words = set(w for w in re.findall(r"\w+", query.cleaned) if len(w) > 3)
        scored = []
        for doc in context.documents:
            overlap = self._overlap(words, doc)
            if overlap > 0:
                scored.append((overlap, doc))

        # sort is stable: equal overlap keeps ranking order
        scored.sort(key=lambda item: item[0], reverse=True)
        excerpts = []
        for _, doc in scored:
            lines = content_lines(doc.content)[:self.general_lines]
            if lines:
                excerpts.append(Excerpt(path=doc.path, lines=lines))
        return excerpts

    @staticmethod
    def _overlap(words: set, doc: ContextDocument) -> int:
        content = doc.content.lower()
        return sum(1 for w in words if w in content)
