"""Infrastructure adapters: database, chain RPC and quote service."""
