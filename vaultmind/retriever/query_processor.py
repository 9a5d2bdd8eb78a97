"""
Query Processor

Parses and analyzes user queries before retrieval:
- greeting detection (answered without touching the vault)
- intent classification via an ordered list of regex rules
- history-augmented retrieval text for follow-up questions
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from ..common.language import LanguageInfo, detect_language


class QueryIntent(str, Enum):
    """Types of query intent"""
    SUMMARIZE = "summarize"  # "Summarize my meeting notes"
    ENUMERATE = "enumerate"  # "List my todos"
    CONTAINS = "contains"  # "What is in projects.md?"
    GENERAL = "general"  # Catch-all


@dataclass(frozen=True)
class ConversationTurn:
    """One prior message in the conversation"""
    role: str  # "user" or "assistant"
    content: str


@dataclass(frozen=True)
class IntentRule:
    """An intent and the patterns that select it"""
    intent: QueryIntent
    patterns: Tuple[str, ...]

    def matches(self, text: str) -> bool:
        return any(re.search(p, text, re.IGNORECASE) for p in self.patterns)


# Evaluated top to bottom, first match wins. Anything unmatched is GENERAL.
INTENT_RULES: Tuple[IntentRule, ...] = (
    IntentRule(QueryIntent.SUMMARIZE, (
        r"\bsummar(y|ize|ise|izing|ising)\b",
        r"\boverview\b",
        r"\bwhat is\b(?! in(side)?\b)",
        r"\bwhat'?s\b(?! in(side)?\b)",
        r"\btell me about\b",
        r"\b(explain|describe)\b",
        r"\bgist\b",
    )),
    IntentRule(QueryIntent.ENUMERATE, (
        r"\blist\b",
        r"\bwhat are\b",
        r"\bwhich\b",
        r"\bshow me\b",
        r"\benumerate\b",
        r"\b(all|my) (todos?|tasks|items|ideas)\b",
    )),
    IntentRule(QueryIntent.CONTAINS, (
        r"\bwhat is in(side)?\b",
        r"\bwhat'?s in(side)?\b",
        r"\bwhat does .+ contain\b",
        r"\bcontents? of\b",
    )),
)

GREETINGS = frozenset({
    "hi", "hello", "hey", "hiya", "howdy", "yo", "sup", "hola",
    "greetings", "good morning", "good afternoon", "good evening",
    "hi there", "hello there", "hey there",
})

VALID_ROLES = ("user", "assistant")

# Characters stripped from the ends of lexical keywords
_KEYWORD_PUNCTUATION = "?!.,;:\"'()[]{}"


@dataclass
class ParsedQuery:
    """Parsed representation of a user query"""
    original: str
    cleaned: str
    intent: QueryIntent
    keywords: List[str] = field(default_factory=list)
    is_greeting: bool = False
    history: Tuple[ConversationTurn, ...] = ()
    retrieval_text: str = ""
    language: Optional[LanguageInfo] = None


class QueryProcessor:
    """
    Processes user queries for vault search.

    Responsibilities:
    1. Clean and normalize query text
    2. Detect greetings
    3. Detect query intent (summarize, enumerate, contains, general)
    4. Build the text used for semantic retrieval, folding in recent
       user turns so follow-ups ("and the second one?") keep their topic
    """

    def __init__(
        self,
        rules: Sequence[IntentRule] = INTENT_RULES,
        history_turns: int = 2,
        history_chars: int = 200,
    ):
        """
        Initialize query processor.

        Args:
            rules: Ordered intent rules (first match wins)
            history_turns: Prior user turns folded into the retrieval text
            history_chars: Max characters taken from each prior turn
        """
        self._rules = tuple(rules)
        self._history_turns = history_turns
        self._history_chars = history_chars

    def parse(self, query: str, history: Optional[Iterable[Any]] = None) -> ParsedQuery:
        """
        Parse a user query into structured form.

        Args:
            query: Raw user query string
            history: Prior turns as ConversationTurn, (role, content)
                tuples, or {"role", "content"} dicts

        Returns:
            ParsedQuery with intent and retrieval text
        """
        cleaned = self._clean_query(query)
        turns = normalize_history(history)

        return ParsedQuery(
            original=query,
            cleaned=cleaned,
            intent=self.classify_intent(cleaned),
            keywords=lexical_keywords(query),
            is_greeting=self.is_greeting(query),
            history=turns,
            retrieval_text=self._augment_for_retrieval(query.strip(), turns),
            language=detect_language(query),
        )

    def is_greeting(self, query: str) -> bool:
        """Check whether the whole query is just a greeting"""
        text = re.sub(r"[!.?,~\s]+$", "", query.strip().lower())
        text = re.sub(r"\s+", " ", text)
        return text in GREETINGS

    def classify_intent(self, query: str) -> QueryIntent:
        """Detect the primary intent of the query"""
        for rule in self._rules:
            if rule.matches(query):
                return rule.intent
        return QueryIntent.GENERAL

    def _clean_query(self, query: str) -> str:
        """Clean and normalize query text"""
        # Lowercase
        cleaned = query.lower().strip()

        # Remove extra whitespace
        cleaned = re.sub(r'\s+', ' ', cleaned)

        # Remove trailing punctuation (but keep question marks)
        cleaned = re.sub(r'[.!,;:]+$', '', cleaned)

        return cleaned

    def _augment_for_retrieval(self, query: str, history: Tuple[ConversationTurn, ...]) -> str:
        if not history or self._history_turns <= 0:
            return query

        prior = [t.content.strip()[:self._history_chars] for t in history if t.role == "user"]
        prior = [p for p in prior[-self._history_turns:] if p and p != query]
        if not prior:
            return query

        return " ".join(prior + [query])


def lexical_keywords(query: str) -> List[str]:
    """Distinct lowercased query words longer than 2 characters"""
    words = (w.strip(_KEYWORD_PUNCTUATION) for w in query.lower().split())
    return list(dict.fromkeys(w for w in words if len(w) > 2))


def normalize_history(history: Optional[Iterable[Any]]) -> Tuple[ConversationTurn, ...]:
    """Coerce caller-supplied history into ConversationTurns."""
    if not history:
        return ()

    turns: List[ConversationTurn] = []
    for item in history:
        if isinstance(item, ConversationTurn):
            turn = item
        elif isinstance(item, dict):
            turn = ConversationTurn(role=item.get("role", ""), content=item.get("content", ""))
        else:
            role, content = item
            turn = ConversationTurn(role=role, content=content)

        if turn.role not in VALID_ROLES:
            raise ValueError(f"Invalid conversation role: {turn.role!r}")
        turns.append(turn)

    return tuple(turns)
