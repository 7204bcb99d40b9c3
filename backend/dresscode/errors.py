"""
Error taxonomy for compliance checks.

Two families live here:

- Backend errors raised by the reasoning client and the result validator.
  These never reach an HTTP caller directly; the orchestrator classifies them.
- OrchestrationError and its subclasses, which are the only errors that cross
  the orchestrator boundary. Each carries the HTTP status it maps to.
"""

from __future__ import annotations


# ── Backend errors ───────────────────────────────────────────────────────────

class ReasoningError(Exception):
    """Base class for failures of the external reasoning backend."""


class Unconfigured(ReasoningError):
    """No credential is configured for the reasoning backend."""


class Unavailable(ReasoningError):
    """Network failure, backend error response, or exhausted quota."""

    def __init__(self, message: str, *, quota: bool = False, status_code: int | None = None):
        super().__init__(message)
        self.quota = quota
        self.status_code = status_code


class ReasoningTimeout(ReasoningError):
    """The submitted job did not complete within the polling bound."""

    def __init__(self, message: str, *, attempts: int = 0):
        super().__init__(message)
        self.attempts = attempts


class MalformedReply(ReasoningError):
    """No JSON object could be located in the backend reply."""


class BackendPayloadTooLarge(ReasoningError):
    """The backend refused the request because the image payload is too large."""


class ShapeError(Exception):
    """A candidate result does not match the ComplianceResult shape."""

    def __init__(self, message: str, errors: list[str] | None = None):
        super().__init__(message)
        self.errors = errors or []


class UnknownIndustry(LookupError):
    """The rule catalog has no entry for the requested industry."""


# ── Orchestration errors (cross the HTTP boundary) ───────────────────────────

class OrchestrationError(Exception):
    status_code: int = 500
    default_message = "Error analyzing outfit compliance. Please try again or provide a text description instead."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidRequest(OrchestrationError):
    status_code = 400
    default_message = "Invalid request data. Please check your input and try again."


class PayloadTooLarge(OrchestrationError):
    status_code = 413
    default_message = (
        "The image file is too large. Please use an image that is less than 20MB "
        "or use a more compressed format."
    )


class ServiceUnavailable(OrchestrationError):
    status_code = 503
    default_message = (
        "The AI service is currently unavailable. Please try again later "
        "or use the text description option instead."
    )


class BackendContractViolation(OrchestrationError):
    status_code = 500
    default_message = "The compliance backend returned a result in an unexpected format."
