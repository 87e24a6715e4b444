"""Client for the local language server RPC endpoint."""
