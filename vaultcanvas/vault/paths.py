"""Path rules shared by everything that reads the vault."""

from pathlib import Path, PurePosixPath

from ..errors import HiddenPathError, VaultPathError
from ..ids import to_slash


def should_hide(name: str) -> bool:
    """Hidden entries (dotfiles, .git, the state dir) never appear in views."""
    return name.startswith(".")


def is_hidden_rel_path(rel: str) -> bool:
    return any(should_hide(part) for part in PurePosixPath(to_slash(rel)).parts)


def deny_hidden_rel_path(rel: str) -> None:
    """Raise HiddenPathError if any component of `rel` is hidden."""
    if is_hidden_rel_path(rel):
        raise HiddenPathError(f"Hidden paths are not accessible: {rel!r}")


def join_under(root: Path, rel: str) -> Path:
    """Join a vault-relative path to the root, refusing to escape it."""
    rel = to_slash(rel)
    if not rel:
        return root
    if ".." in PurePosixPath(rel).parts:
        raise VaultPathError(f"Path escapes the vault: {rel!r}")
    candidate = (root / rel).resolve()
    try:
        candidate.relative_to(root.resolve())
    except ValueError:
        raise VaultPathError(f"Path escapes the vault: {rel!r}") from None
    return root / rel


def rel_posix(path: Path, root: Path) -> str:
    """Vault-relative path with forward slashes."""
    return path.relative_to(root).as_posix()
