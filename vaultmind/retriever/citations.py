"""Citation extraction from synthesized answers."""

import re
from typing import List

CITATION_RE = re.compile(r"\[File: ([^\]]+)\]")


def extract_citations(answer: str) -> List[str]:
    """
    Return the distinct note names cited as [File: name] in the answer,
    in first-seen order. Unterminated markers are ignored.
    """
    if not answer:
        return []

    return list(dict.fromkeys(CITATION_RE.findall(answer)))
