"""Exception taxonomy for vaultcanvas.

Everything raised on purpose derives from VaultCanvasError so that the CLI can
report it uniformly. Note that a truncated directory scan is not an error: it
is reported through `DirectorySummary.truncated`.
"""


class VaultCanvasError(Exception):
    """Base class for all vaultcanvas errors."""


class ConfigError(VaultCanvasError):
    """The configuration file is present but invalid."""


class SelectorError(VaultCanvasError):
    """A selector string or value could not be interpreted."""


class VaultPathError(VaultCanvasError):
    """A relative path escapes the vault root."""


class HiddenPathError(VaultPathError):
    """A relative path names a hidden file or directory."""


class FetchFailure(VaultCanvasError):
    """The entity source or summary scan could not complete.

    Callers keep the last good document instead of rebuilding from an empty
    entity list.
    """

    def __init__(self, message: str, selector: str | None = None):
        super().__init__(message)
        self.selector = selector


class StoreWriteError(VaultCanvasError):
    """A view document could not be persisted."""

    def __init__(self, message: str, path=None):
        super().__init__(message)
        self.path = path


class NodeNotFoundError(VaultCanvasError):
    """An edit referenced a node that is not in the document."""
