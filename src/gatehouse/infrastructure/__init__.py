"""Infrastructure adapters: persistence, token stores, crypto and identity providers."""
