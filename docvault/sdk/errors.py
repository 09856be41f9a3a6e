"""Error kinds raised by the custody core.

Every error carries a stable ``code`` so callers can tell a tampered
document from a system failure without parsing messages.
"""

from __future__ import annotations


class DocVaultError(Exception):
    """Base class for all custody errors."""

    code = "error"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.code)
        self.message = message or self.code


class NotFoundError(DocVaultError):
    """Document, credential, issuer, subject or DID is absent."""

    code = "not_found"


class ForbiddenError(DocVaultError):
    """Wrong department, wrong issuer or inactive issuer."""

    code = "forbidden"


class AlreadyVerifiedError(DocVaultError):
    code = "already_verified"


class AlreadyRejectedError(DocVaultError):
    """Resubmission of a rejected document while the policy forbids it."""

    code = "already_rejected"


class AlreadyIssuedError(DocVaultError):
    """Owner already holds a DID."""

    code = "already_issued"


class InvalidTypeError(DocVaultError):
    code = "invalid_type"


class SigningFailure(DocVaultError):
    """Canonicalisation or signing failed; the enclosing step is aborted."""

    code = "signing_failure"


class ConflictError(DocVaultError):
    """A compare-and-swap lost against a concurrent writer."""

    code = "conflict"


class StoreError(DocVaultError):
    """Persistence backend unavailable or failing."""

    code = "store_error"


class ConfigError(DocVaultError):
    code = "config_error"
