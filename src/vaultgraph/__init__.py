"""vaultgraph: path finding and hub detection for Markdown note vaults."""

__version__ = "0.1.0"
