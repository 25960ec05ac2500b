"""Exceptions for Card Vault Service.

Lower-layer errors (SQLAlchemy, botocore) are wrapped into these types at the
repository and vault seams, with the original exception chained as
``__cause__``. Nothing in this hierarchy carries card numbers.
"""


class CardVaultError(Exception):
    """Base exception for all card vault errors."""

    pass


class ValidationFailed(CardVaultError):
    """
    Raised when caller input is missing or malformed.

    Always recoverable by correcting the input. Raised before any metadata
    or vault call is made.
    """

    pass


class MetadataError(CardVaultError):
    """Base exception for relational store failures."""

    pass


class MetadataReadFailed(MetadataError):
    """Raised when a relational read (link listing, detection query) fails."""

    pass


class MetadataWriteFailed(MetadataError):
    """
    Raised when a relational insert or state transition fails.

    A failure on the second statement of a two-statement operation leaves the
    first statement committed (for example, a SecretEntry row with no CardLink).
    """

    pass


class VaultError(CardVaultError):
    """Base exception for secret vault failures."""

    pass


class VaultUnavailable(VaultError):
    """Raised on vault transport, authorization, timeout or payload errors."""

    pass


class SecretNotFound(VaultError):
    """Raised when no live secret exists under the requested name.

    Secrets scheduled for deletion are reported as not found.
    """

    pass


class CardStoreFailed(CardVaultError):
    """
    Raised when the vault write of a Store fails after metadata was written.

    The metadata rows are left Active with no retrievable payload; they show
    up in the orphan report.
    """

    pass


class CardFetchFailed(CardVaultError):
    """Raised when any payload of a FetchAll cannot be read."""

    pass


class UserNotFound(CardVaultError):
    """Raised when a user does not exist or is no longer active."""

    pass
