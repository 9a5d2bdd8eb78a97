"""
VaultMind

Retrieval-and-synthesis engine for a personal note vault: finds the notes
relevant to a question and answers with inline [File: name] citations.

Philosophy:
- Local first: on-device embeddings and a heuristic answer engine by default
- Remote LLM providers only when explicitly selected
- Grounded answers: every quoted note is cited; "nothing relevant" is a valid answer

Usage:
    from vaultmind.common import load_config
    from vaultmind.retriever import QueryEngine

    engine = QueryEngine.from_config(load_config())
    result = await engine.query("~/notes", "list my todos")
"""

__version__ = "0.1.0"
