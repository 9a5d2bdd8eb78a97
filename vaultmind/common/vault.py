"""
Vault Access

Read-only view of a note vault on disk. Note CRUD (create, rename, move,
delete) belongs to the editor; the query engine only lists and reads notes.
"""

import logging
from pathlib import Path
from typing import List, Protocol

from .errors import NotFoundError

logger = logging.getLogger("vaultmind.common.vault")

NOTE_EXTENSION = ".md"


class DocumentTree(Protocol):
    """What the query engine needs from a document store."""

    def list_text_files(self, root: str) -> List[str]:
        ...

    def read_text(self, root: str, path: str) -> str:
        ...


def is_note(filename: str) -> bool:
    return filename.endswith(NOTE_EXTENSION)


class FileSystemVault:
    """
    Notes stored as Markdown files under a vault directory.

    Paths are vault-relative and '/'-separated. Hidden entries (names
    starting with '.', e.g. .git or .obsidian) are skipped, and symlinked
    directories are not descended into.
    """

    def __init__(self, encoding: str = "utf-8"):
        self._encoding = encoding

    def list_text_files(self, root: str) -> List[str]:
        """List every note under root: directories first, then files, alphabetically."""
        root_path = Path(root)
        if not root_path.is_dir():
            logger.warning("Vault directory does not exist: %s", root)
            return []

        files: List[str] = []
        self._walk(root_path, "", files)
        return files

    def _walk(self, directory: Path, prefix: str, files: List[str]) -> None:
        try:
            entries = [e for e in directory.iterdir() if not e.name.startswith(".")]
        except OSError as e:
            logger.warning("Skipping directory %s: %s", prefix or directory, e)
            return

        entries.sort(key=lambda e: (not e.is_dir(), e.name.lower()))

        for entry in entries:
            rel_path = f"{prefix}/{entry.name}" if prefix else entry.name
            if entry.is_dir():
                if entry.is_symlink():
                    logger.debug("Skipping symlinked directory %s", rel_path)
                    continue
                self._walk(entry, rel_path, files)
            elif is_note(entry.name):
                files.append(rel_path)

    def read_text(self, root: str, path: str) -> str:
        """
        Read a note.

        Raises:
            NotFoundError: path does not exist or escapes the vault
            OSError: the file exists but could not be read
        """
        root_path = Path(root).resolve()
        full_path = (root_path / path.lstrip("/")).resolve()

        if root_path != full_path and root_path not in full_path.parents:
            raise NotFoundError(f"{path} is outside the vault")
        if not full_path.is_file():
            raise NotFoundError(f"Note not found: {path}")

        return full_path.read_text(encoding=self._encoding, errors="replace")
