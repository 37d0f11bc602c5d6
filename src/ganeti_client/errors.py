"""Exceptions raised by the Ganeti RAPI client.

Every failure surfaced by a client operation is one of the classes below.
None of them is recovered from or retried inside the library.
"""

import enum
from typing import Any


class ErrorClassification(enum.Enum):
    """Error classifications the RAPI attaches to failed prerequisite checks."""

    RESOLVER_ERROR = "resolver_error"
    INSUFFICIENT_RESOURCES = "insufficient_resources"
    WRONG_INPUT = "wrong_input"
    WRONG_STATE = "wrong_state"
    UNKNOWN_ENTITY = "unknown_entity"
    ALREADY_EXISTS = "already_exists"
    RESOURCE_NOT_UNIQUE = "resource_not_unique"
    INTERNAL_ERROR = "internal_error"
    ENVIRONMENT_ERROR = "environment_error"


class GanetiClientError(Exception):
    """Base class for all client errors."""


class ShapeError(GanetiClientError):
    """Raised when a JSON value does not have the shape an operation requires."""


class DecodeError(GanetiClientError):
    """Raised when a response body is neither strict nor bare-scalar JSON."""

    def __init__(self, msg: str, body: str):
        super().__init__(msg)
        self.body = body


class TransportError(GanetiClientError):
    """Raised when the HTTP exchange itself fails (refused, timed out, ...)."""


class HTTPError(GanetiClientError):
    """Raised when the RAPI answers with a non-success status.

    The decoded error body is kept as-is. RAPI error bodies usually look
    like ``{"code": 404, "message": "Not Found", "explain": "..."}``; the
    properties below read those keys when they are present.
    """

    def __init__(self, status_code: int, body: Any = None):
        self.status_code = status_code
        self.body = body
        msg = f"RAPI request failed with status {status_code}"
        if self.message:
            msg = f"{msg}: {self.message}"
        super().__init__(msg)

    def _body_field(self, key: str) -> str | None:
        if isinstance(self.body, dict) and self.body.get(key) is not None:
            return str(self.body[key])
        return None

    @property
    def message(self) -> str | None:
        """Short error message from the error body, if any."""
        return self._body_field("message")

    @property
    def explain(self) -> str | None:
        """Detailed explanation from the error body, if any."""
        return self._body_field("explain")

    @property
    def classification(self) -> ErrorClassification | None:
        """Error classification named in the explanation, if any."""
        explain = self.explain
        if explain is None:
            return None
        for classification in ErrorClassification:
            if classification.value in explain:
                return classification
        return None
