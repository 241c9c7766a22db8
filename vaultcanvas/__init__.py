"""vaultcanvas - spatial canvas views over a markdown vault."""

__version__ = "0.3.0"
