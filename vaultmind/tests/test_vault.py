"""Tests for FileSystemVault listing and reading."""

import logging
import os
import pytest

from vaultmind.common.errors import NotFoundError, VaultMindError
from vaultmind.common.vault import FileSystemVault, is_note


@pytest.fixture
def vault_dir(tmp_path):
    (tmp_path / "b.md").write_text("bee")
    (tmp_path / "A.md").write_text("ay")
    (tmp_path / "image.png").write_bytes(b"\x89PNG")
    (tmp_path / "projects").mkdir()
    (tmp_path / "projects" / "plan.md").write_text("plan")
    (tmp_path / ".obsidian").mkdir()
    (tmp_path / ".obsidian" / "workspace.md").write_text("hidden")
    (tmp_path / ".draft.md").write_text("hidden")
    return tmp_path


def test_is_note():
    assert is_note("a.md")
    assert not is_note("a.txt")


def test_lists_directories_first_then_files(vault_dir):
    files = FileSystemVault().list_text_files(str(vault_dir))
    assert files == ["projects/plan.md", "A.md", "b.md"]


def test_missing_root_returns_empty(tmp_path, caplog):
    with caplog.at_level(logging.WARNING, logger="vaultmind.common.vault"):
        files = FileSystemVault().list_text_files(str(tmp_path / "nope"))
    assert files == []
    assert "does not exist" in caplog.text


def test_read_text(vault_dir):
    assert FileSystemVault().read_text(str(vault_dir), "projects/plan.md") == "plan"


def test_read_missing_raises_not_found(vault_dir):
    with pytest.raises(NotFoundError):
        FileSystemVault().read_text(str(vault_dir), "ghost.md")


def test_read_outside_vault_rejected(vault_dir):
    with pytest.raises(NotFoundError, match="outside the vault"):
        FileSystemVault().read_text(str(vault_dir / "projects"), "../b.md")


def test_not_found_is_both_domain_and_os_error():
    err = NotFoundError("x")
    assert isinstance(err, VaultMindError)
    assert isinstance(err, FileNotFoundError)


def test_invalid_bytes_are_replaced(tmp_path):
    (tmp_path / "bad.md").write_bytes(b"ok \xff end")
    text = FileSystemVault().read_text(str(tmp_path), "bad.md")
    assert text.startswith("ok ")
    assert text.endswith(" end")


def test_symlinked_directory_loop_is_not_followed(tmp_path, caplog):
    (tmp_path / "todo.md").write_text("- buy milk")
    (tmp_path / "archive").mkdir()
    (tmp_path / "archive" / "old.md").write_text("old")
    os.symlink(tmp_path, tmp_path / "loop")
    os.symlink(tmp_path / "archive", tmp_path / "archive-link")

    with caplog.at_level(logging.DEBUG, logger="vaultmind.common.vault"):
        files = FileSystemVault().list_text_files(str(tmp_path))

    assert files == ["archive/old.md", "todo.md"]
    assert "Skipping symlinked directory loop" in caplog.text
