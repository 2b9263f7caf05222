"""Exception hierarchy for abac-console.

Error categories:
- PolicyValidationError: client-side validation; blocks submission, state kept
- APIError: network or HTTP failure talking to the platform API
- ExportError: CSV export failed; no partial file is left behind
- PolicyStoreError: local policy file missing, invalid, or conflicting
- PolicyEvaluationError: unexpected failure inside the evaluation engine

The CLI converts every ABACConsoleError into a click.ClickException.
"""

from __future__ import annotations

__all__ = [
    "ABACConsoleError",
    "APIError",
    "ExportError",
    "PolicyEvaluationError",
    "PolicyStoreError",
    "PolicyValidationError",
]


class ABACConsoleError(Exception):
    """Base class for all abac-console errors."""


class PolicyValidationError(ABACConsoleError):
    """Raised when an authored policy fails client-side validation.

    Attributes:
        errors: Mapping of field path (e.g. "subjectAttributes[0].value")
            to a human-readable message.
    """

    def __init__(self, errors: dict[str, str]) -> None:
        self.errors = dict(errors)
        details = "; ".join(f"{field}: {msg}" for field, msg in self.errors.items())
        super().__init__(f"Policy validation failed: {details}")


class APIError(ABACConsoleError):
    """Raised when an API request fails."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        if status_code:
            super().__init__(f"API error ({status_code}): {message}")
        else:
            super().__init__(f"API error: {message}")
        self.message = message
        self.status_code = status_code


class ExportError(ABACConsoleError):
    """Raised when exporting audit logs fails."""


class PolicyStoreError(ABACConsoleError):
    """Raised when the local policy store cannot be read or updated."""


class PolicyEvaluationError(ABACConsoleError):
    """Raised when policy evaluation fails unexpectedly.

    Decisions cannot be trusted if evaluation crashes, so this is never
    converted into an ALLOW or DENY.
    """
