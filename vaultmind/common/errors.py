"""
Error taxonomy for the VaultMind query engine.

- ConfigurationError: a mode was selected without what it needs (fatal, never retried)
- ProviderError: an embedding or completion call failed
- NotFoundError: a single note could not be read (skipped, never aborts a query)

"Nothing relevant found" is not an error: it is a normal AnswerResult
with an empty citation list.
"""


class VaultMindError(Exception):
    """Base class for all VaultMind errors."""
    pass


class ConfigurationError(VaultMindError):
    """Provider mode selected without the required credential."""
    pass


class ProviderError(VaultMindError):
    """Embedding or completion provider call failed."""

    def __init__(self, message: str, provider: str = ""):
        super().__init__(message)
        self.provider = provider


class NotFoundError(VaultMindError, FileNotFoundError):
    """A note path does not exist inside the vault."""
    pass
