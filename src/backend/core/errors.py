"""
Domain error taxonomy.

Services raise these; the API layer renders them as JSON with the matching
HTTP status. Every message names the rule that was violated.
"""

from typing import Any, Optional


class DomainError(Exception):
    """Base class for errors surfaced to callers."""

    status_code: int = 400
    code: str = "domain_error"

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.field = field
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable payload."""
        payload: dict[str, Any] = {"detail": self.message, "code": self.code}
        if self.field:
            payload["field"] = self.field
        payload.update(self.details)
        return payload


class ValidationError(DomainError):
    """Malformed input: bad id, negative votes, unknown candidate, ..."""

    status_code = 400
    code = "validation_error"


class Forbidden(DomainError):
    """Caller does not own the resource being mutated."""

    status_code = 403
    code = "forbidden"


class NotFoundError(DomainError):
    """Referenced assignment, delegate, location or report does not exist."""

    status_code = 404
    code = "not_found"


class ConflictError(DomainError):
    """A requested table is already assigned to another delegate."""

    status_code = 409
    code = "conflict"


class TransientStoreError(DomainError):
    """Connection or transaction failure; the whole call may be retried."""

    status_code = 503
    code = "store_unavailable"


class SchemaUnavailable(Exception):
    """
    An optional table or column is missing from this deployment.

    Never surfaced to callers: the step that needed it is skipped.
    """

    def __init__(self, feature: str):
        super().__init__(f"{feature} is not available in this deployment")
        self.feature = feature
