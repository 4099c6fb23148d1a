"""HTTP API for vaultgraph."""
