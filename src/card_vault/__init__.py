"""Card Vault Service: card ownership metadata with vault-held card payloads."""

__version__ = "0.1.0"
