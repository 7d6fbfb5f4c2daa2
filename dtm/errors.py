"""Error taxonomy for the governance core.

Every failure a caller can act on carries a stable machine-readable ``code``
and the HTTP status the web layer should answer with. Integrity findings from
the reference validator are *not* errors; they are returned as data.
"""

from __future__ import annotations

from typing import Any, Optional


class GovernanceError(Exception):
    """Base class for expected, structured failures."""

    status_code: int = 500
    default_code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        **context: Any,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.context = context

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.message, "code": self.code}
        if self.context:
            body["context"] = self.context
        return body


class RequestValidationFailed(GovernanceError):
    """Missing or malformed request fields. Rejected before any side effect."""

    status_code = 400
    default_code = "MISSING_FIELDS"


class PolicyDenied(GovernanceError):
    """The global guard refused the operation."""

    status_code = 403
    default_code = "GLOBAL_DELETE_PROTECTED"


class PathTraversalError(GovernanceError):
    """A target path resolved outside the project root."""

    status_code = 403
    default_code = "PATH_TRAVERSAL"


class ConflictError(GovernanceError):
    status_code = 409
    default_code = "PROJECT_EXISTS"


class NotFoundError(GovernanceError):
    status_code = 404
    default_code = "NOT_FOUND"
