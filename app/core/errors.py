"""Error taxonomy shared by the credential services.

Every error carries a stable ``kind`` (used as the machine-readable error
code at the HTTP boundary) and a human-readable ``reason``.
"""

from __future__ import annotations


class CredentialError(Exception):
    """Base class.  Anything not more specific is an internal failure."""

    kind = "internal"

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class NotFoundError(CredentialError):
    """A referenced principal, request or certificate does not exist."""

    kind = "not_found"


class ValidationError(CredentialError):
    """Malformed input: blank names, blank reasons, bad date ranges."""

    kind = "validation"


class BadRequestError(ValidationError):
    """Input that cannot be interpreted at all (identifier, hash format)."""

    kind = "bad_request"


class ConflictError(CredentialError):
    """The entity is not in a state that allows the operation."""

    kind = "conflict"


class AuthorizationError(CredentialError):
    """The acting principal may not perform the operation."""

    kind = "authorization"


class StoreIntegrityError(CredentialError):
    """An unexpected uniqueness violation in the store (e.g. hash collision).

    Fatal: never retried by the services.
    """

    kind = "internal"


class DuplicateSkillError(Exception):
    """Raised by skill repos when the normalized name already exists.

    Not a CredentialError: SkillCatalog consumes it and re-reads the row.
    """

    def __init__(self, name: str) -> None:
        super().__init__(f"skill already exists: {name}")
        self.name = name
