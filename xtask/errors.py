"""
Error taxonomy for tool validation.

Every failure raised by the validation subsystem is a ``ValidationError``
so the command layer can abort a task with one ``except`` clause.
"""

from __future__ import annotations


class ValidationError(Exception):
    """
    Base exception for tool validation errors.

    Attributes:
        message: Human-readable error message
        tool: Logical tool name (or channel) the error refers to
        remediation: Suggested fix for the error, appended to ``str(error)``
    """
    def __init__(
        self,
        message: str,
        tool: str | None = None,
        remediation: str | None = None,
    ):
        self.message = message
        self.tool = tool
        self.remediation = remediation
        super().__init__(message)

    def __str__(self) -> str:
        if self.remediation:
            return f"{self.message}\n{self.remediation}"
        return self.message


class ToolNotFoundError(ValidationError):
    """Raised when a candidate binary is absent from the search path."""
    pass


class ProbeFailedError(ValidationError):
    """Raised when a binary ran but exited non-zero."""
    pass


class OutputUndecodableError(ValidationError):
    """Raised when probe output is not valid UTF-8."""
    pass


class VersionMismatchError(ValidationError):
    """Raised when the reported version does not start with the required prefix."""

    def __init__(self, tool: str, expected: str, actual: str):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"`{tool}` failed validation; expected version compatible with "
            f"`{expected}` but found `{actual}`",
            tool=tool,
        )


class UnrecognizedToolchainVendorError(ValidationError):
    """Raised when a version matcher is configured but finds nothing in the output."""
    pass


class UnrecognizedToolError(ValidationError):
    """Raised for identifiers with no known resolution strategy."""
    pass


class ToolchainChannelMissingError(ValidationError):
    """Raised when a compiler release channel is not installed."""
    pass


class InvalidMatcherError(ValidationError):
    """Raised when a configured version matcher is not a valid regular expression."""
    pass


class ToolValidationError(ValidationError):
    """Raised when every candidate in a fallback chain failed."""
    pass


class FetchError(ValidationError):
    """Raised when a helper script cannot be downloaded."""
    pass
