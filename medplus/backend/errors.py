"""Backend error kinds.

Raw failures from the database and the identity provider are translated into a
:class:`BackendError` exactly once, inside the adapter that saw them. Callers
branch on ``error.kind`` and never inspect the message text.
"""

from enum import Enum


class BackendErrorKind(str, Enum):
    ALREADY_EXISTS = "already_exists"
    DUPLICATE = "duplicate"
    MISSING_RELATION = "missing_relation"
    NOT_FOUND = "not_found"
    PERMISSION_DENIED = "permission_denied"
    OTHER = "other"


class BackendError(Exception):
    """A failure reported by the backend, tagged with its kind."""

    def __init__(self, kind: BackendErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message

    def __repr__(self) -> str:
        return f"BackendError(kind={self.kind.value!r}, message={self.message!r})"


# Postgres SQLSTATE codes
_SQLSTATE_KINDS = {
    "23505": BackendErrorKind.DUPLICATE,  # unique_violation
    "42P01": BackendErrorKind.MISSING_RELATION,  # undefined_table
    "42501": BackendErrorKind.PERMISSION_DENIED,  # insufficient_privilege
}

# Identity provider error codes
_PROVIDER_CODE_KINDS = {
    "email_exists": BackendErrorKind.ALREADY_EXISTS,
    "user_already_exists": BackendErrorKind.ALREADY_EXISTS,
    "user_not_found": BackendErrorKind.NOT_FOUND,
    "not_admin": BackendErrorKind.PERMISSION_DENIED,
}


def kind_for_sqlstate(sqlstate: str | None) -> BackendErrorKind | None:
    """Map a Postgres SQLSTATE to a kind, or None when it carries no meaning here."""
    if not sqlstate:
        return None
    return _SQLSTATE_KINDS.get(sqlstate)


def kind_for_provider_code(code: str | None) -> BackendErrorKind | None:
    if not code:
        return None
    return _PROVIDER_CODE_KINDS.get(code)


def classify_message(message: str | None) -> BackendErrorKind:
    """Last-resort classification from message text when no code is available."""
    if not message:
        return BackendErrorKind.OTHER
    text = message.lower()
    if "already exists" in text or "already registered" in text or "already been registered" in text:
        return BackendErrorKind.ALREADY_EXISTS
    if "duplicate" in text:
        return BackendErrorKind.DUPLICATE
    if "relation" in text or "does not exist" in text:
        return BackendErrorKind.MISSING_RELATION
    if "permission denied" in text:
        return BackendErrorKind.PERMISSION_DENIED
    return BackendErrorKind.OTHER
