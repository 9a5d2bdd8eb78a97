"""
Context Assembler

Reads the winning notes and builds the grounding context handed to the
synthesizer. Each note becomes a labeled block:

    [File: <path>]
    <content>

Blocks are joined with a fixed separator.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from ..common.vault import DocumentTree
from .searcher import DocumentCandidate

logger = logging.getLogger("vaultmind.retriever.context")

CONTEXT_SEPARATOR = "\n\n---\n\n"


def file_marker(path: str) -> str:
    """Inline citation marker for a note"""
    return f"[File: {path}]"


@dataclass(frozen=True)
class ContextDocument:
    """A note included in the grounding context"""
    path: str
    content: str

    def as_block(self, max_chars: Optional[int] = None) -> str:
        content = self.content if max_chars is None else self.content[:max_chars]
        return f"{file_marker(self.path)}\n{content}"


@dataclass
class AssembledContext:
    """Grounding context for one query"""
    documents: List[ContextDocument] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.documents

    @property
    def paths(self) -> List[str]:
        return [d.path for d in self.documents]

    def format(self, max_chars_per_document: Optional[int] = None) -> str:
        """
        Render the context as labeled blocks.

        Args:
            max_chars_per_document: Truncate each note to this many
                characters (None passes full text through)
        """
        return CONTEXT_SEPARATOR.join(
            d.as_block(max_chars_per_document) for d in self.documents
        )


class ContextAssembler:
    """Builds grounding context from ranked candidates."""

    def __init__(self, vault: DocumentTree):
        self._vault = vault

    def assemble(
        self,
        root: str,
        candidates: Sequence[DocumentCandidate],
        max_documents: int,
    ) -> AssembledContext:
        """
        Read the top `max_documents` candidates.

        Content already read during ranking is reused. Notes that fail to
        read are logged and left out.
        """
        documents = []
        for candidate in candidates[:max_documents]:
            content = candidate.content
            if content is None:
                try:
                    content = self._vault.read_text(root, candidate.path)
                except OSError as e:
                    logger.warning("Error reading %s: %s", candidate.path, e)
                    continue
            documents.append(ContextDocument(path=candidate.path, content=content))

        return AssembledContext(documents=documents)
