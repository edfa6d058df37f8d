from __future__ import annotations

from typing import Iterable, List, Optional, Tuple

from pydantic import ValidationError

FieldErrors = List[Tuple[str, str]]


def field_errors(exc: ValidationError) -> FieldErrors:
    """Flatten a pydantic ValidationError into (dotted path, reason) pairs."""
    return [
        (".".join(str(part) for part in err.get("loc", ())), str(err.get("msg", "invalid")))
        for err in exc.errors()
    ]


def _format_field_errors(errors: Iterable[Tuple[str, str]]) -> str:
    return ", ".join(f"{path}: {reason}" if path else reason for path, reason in errors)


class GitLabMCPError(Exception):
    """Base error for the GitLab MCP server."""


class ConfigurationError(GitLabMCPError):
    """Raised when required process configuration is missing."""


class InvalidArguments(GitLabMCPError):
    """Raised when a tool is unknown or its arguments fail validation."""

    def __init__(self, message: str, *, errors: Optional[FieldErrors] = None) -> None:
        self.errors: FieldErrors = list(errors or [])
        if self.errors:
            message = f"{message}: {_format_field_errors(self.errors)}"
        super().__init__(message)


class ExternalServiceError(GitLabMCPError):
    """Raised when GitLab cannot be reached or the exchange fails."""


class RemoteApiError(ExternalServiceError):
    """Raised when GitLab answers with a non-success status."""

    def __init__(
        self,
        *,
        status_code: int,
        reason: str,
        body: str,
        context: Optional[str] = None,
    ) -> None:
        self.status_code = status_code
        self.reason = reason
        self.body = body
        prefix = f"{context}: " if context else ""
        super().__init__(f"{prefix}GitLab API error: {status_code} {reason} - {body}")


class PaginationLimitError(ExternalServiceError):
    """Raised when a paged listing never returns a short page."""


class ResponseShapeError(GitLabMCPError):
    """Raised when a successful GitLab response does not match its schema."""

    def __init__(self, errors: FieldErrors, *, context: Optional[str] = None) -> None:
        self.errors: FieldErrors = list(errors)
        self.path = self.errors[0][0] if self.errors else ""
        prefix = f"{context}: " if context else ""
        super().__init__(f"{prefix}Invalid response format: {_format_field_errors(self.errors)}")
