"""Secret name generation for vault entries."""

import secrets

DEFAULT_PREFIX = "creditcard-"


class SecretNameAllocator:
    """Generates opaque, collision-resistant vault secret names.

    Names have the form ``<prefix><32 hex chars>``: a fixed namespace prefix
    followed by 128 bits from the OS CSPRNG. Generation has no side effects.
    """

    SUFFIX_BYTES = 16

    def __init__(self, prefix: str = DEFAULT_PREFIX) -> None:
        if not prefix:
            raise ValueError("prefix cannot be empty")
        self.prefix = prefix

    def allocate(self) -> str:
        """Generate a new secret name."""
        return f"{self.prefix}{secrets.token_hex(self.SUFFIX_BYTES)}"
