"""Pytest configuration and fixtures."""

import os
from pathlib import Path

import pytest

from vaultcanvas.config import VaultConfig
from vaultcanvas.views.loader import ViewLoader
from vaultcanvas.views.store import DocumentStore
from vaultcanvas.vault.source import VaultSource


def write(path: Path, text: str = "", mtime: float | None = None) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    if mtime is not None:
        os.utime(path, (mtime, mtime))
    return path


@pytest.fixture
def vault_path(tmp_path: Path) -> Path:
    """A small vault with nested folders, hidden entries and tagged notes."""
    vault = tmp_path / "vault"
    write(
        vault / "Projects" / "plan.md",
        "---\ntitle: Project Plan\ntags: [work, planning]\n---\n\nShip the canvas by Friday.\n",
        mtime=1_700_000_300,
    )
    write(vault / "Projects" / "diagram.png", "png", mtime=1_700_000_200)
    write(vault / "Projects" / "Archive" / "old.md", "# Old plan\n\nSuperseded.\n", mtime=1_600_000_000)
    write(
        vault / "Projects" / "Archive" / "deep" / "very-old.md",
        "# Very old\n\nAncient #work/legacy notes.\n",
        mtime=1_500_000_000,
    )
    write(vault / "Inbox.md", "# Inbox\n\nRemember the #idea about canvas layouts.\n", mtime=1_700_000_100)
    write(vault / "photo.jpg", "jpg")
    write(vault / ".hidden" / "secret.md", "# Secret\n\n#idea hidden\n")
    write(vault / ".dotfile.md", "# Dot\n")
    return vault


@pytest.fixture
def config() -> VaultConfig:
    return VaultConfig()


@pytest.fixture
def source(vault_path: Path, config: VaultConfig) -> VaultSource:
    return VaultSource(vault_path, config)


@pytest.fixture
def store(vault_path: Path, config: VaultConfig) -> DocumentStore:
    return DocumentStore(config.state_path(vault_path))


@pytest.fixture
def loader(source: VaultSource, store: DocumentStore) -> ViewLoader:
    return ViewLoader(source, store)
