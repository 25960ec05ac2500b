"""HTTP layer for Card Vault Service."""
