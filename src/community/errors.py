"""Domain error taxonomy.

Services raise these; the HTTP layer maps each class to a status code
(see ``community.middleware.error_handler``).
"""

from __future__ import annotations


class CommunityError(Exception):
    """Base class for all domain errors."""

    status_code = 400

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class NotFound(CommunityError):
    """A referenced entity does not exist."""

    status_code = 404


class Conflict(CommunityError):
    """A uniqueness rule was violated, or a concurrent update could not be applied."""

    status_code = 409


class UniqueConstraintViolation(Conflict):
    """The database rejected a row because of a unique constraint."""


class ForeignKeyViolation(CommunityError):
    """The database rejected a row because it references a missing parent."""

    status_code = 422


class InvalidTarget(CommunityError):
    """A vote references zero or two targets."""

    status_code = 400


class ValidationError(CommunityError):
    """Malformed or semantically invalid input."""

    status_code = 422


class PermissionDenied(CommunityError):
    """The actor may not perform this operation."""

    status_code = 403
