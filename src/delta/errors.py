"""Error taxonomy for delta.

Every error that can reach a user carries an HTTP-style ``status_code`` and
a short ``message`` suitable for display.
"""

from enum import Enum


class FetchErrorKind(str, Enum):
    """Closed set of ways a GitHub fetch can fail."""

    not_found = "not_found"
    forbidden = "forbidden"
    conflict = "conflict"
    unavailable = "unavailable"

    @property
    def status_code(self) -> int:
        return _FETCH_STATUS[self]

    @property
    def user_message(self) -> str:
        return _FETCH_MESSAGES[self]


_FETCH_STATUS = {
    FetchErrorKind.not_found: 404,
    FetchErrorKind.forbidden: 403,
    FetchErrorKind.conflict: 409,
    FetchErrorKind.unavailable: 503,
}

_FETCH_MESSAGES = {
    FetchErrorKind.not_found: "Repository not found on GitHub or access denied",
    FetchErrorKind.forbidden: "GitHub API access denied. Please check your permissions.",
    FetchErrorKind.conflict: "Repository is empty or has no commits",
    FetchErrorKind.unavailable: "Failed to fetch data from GitHub",
}


class DeltaError(Exception):
    """Base exception for delta."""

    status_code = 500

    def __init__(self, message: str = "Internal server error") -> None:
        super().__init__(message)
        self.message = message


class FetchError(DeltaError):
    """A GitHub request failed; ``kind`` says how."""

    def __init__(self, kind: FetchErrorKind, detail: str = "") -> None:
        super().__init__(kind.user_message)
        self.kind = kind
        self.detail = detail
        self.status_code = kind.status_code

    def __str__(self) -> str:
        if self.detail:
            return f"{self.message} ({self.detail})"
        return self.message


class EmptyCommitListError(DeltaError, ValueError):
    """A changelog was requested for zero commits."""

    status_code = 422

    def __init__(self, message: str = "Cannot compose a changelog from zero commits") -> None:
        super().__init__(message)


class RepositoryNotFoundError(DeltaError):
    """The repository is not connected."""

    status_code = 404

    def __init__(self, message: str = "Repository not found") -> None:
        super().__init__(message)


class AccessDeniedError(DeltaError):
    """The repository belongs to another user."""

    status_code = 403

    def __init__(self, message: str = "Access denied") -> None:
        super().__init__(message)


class GenerationError(DeltaError):
    """The text-generation service gave no usable content."""

    status_code = 502


class StoreError(DeltaError):
    """Persistence layer failure."""


class WebhookError(DeltaError):
    """A webhook delivery was rejected."""

    def __init__(self, message: str, status_code: int = 401) -> None:
        super().__init__(message)
        self.status_code = status_code


class ConfigurationError(DeltaError):
    """An environment setting could not be parsed."""
