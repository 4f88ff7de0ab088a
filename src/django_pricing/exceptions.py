"""Exceptions for django-pricing."""

from django.core.exceptions import PermissionDenied


class PricingError(Exception):
    """Base exception for pricing errors."""

    pass


class ConfigurationError(PricingError):
    """Raised when a catalog version is invalid and must not be activated."""

    def __init__(self, message: str, errors: list[str] | None = None):
        super().__init__(message)
        self.errors = errors or []


class CycleDetectedError(ConfigurationError):
    """Raised when variable dependencies form a cycle."""

    def __init__(self, path: list[str]):
        self.path = list(path)
        message = f"Dependency cycle detected: {' -> '.join(self.path)}"
        super().__init__(message, errors=[message])


class UnknownVariableError(ConfigurationError):
    """Raised when a variable id is not valid for the requested operation."""

    def __init__(self, variable_id: str, reason: str = "unknown variable"):
        super().__init__(f"{reason}: {variable_id}")
        self.variable_id = variable_id


class ValidationError(PricingError):
    """Raised when session input is malformed or out of range.

    `errors` maps variable id to a human-readable message.
    """

    def __init__(self, errors: dict[str, str]):
        self.errors = dict(errors)
        detail = "; ".join(f"{key}: {msg}" for key, msg in sorted(self.errors.items()))
        super().__init__(f"Invalid pricing input ({detail})")


class StaleRevisionError(PricingError):
    """Raised when the caller's expected revision no longer matches."""

    def __init__(self, session_id, expected: int, actual: int | None = None):
        message = f"Session {session_id} is at revision {actual}, expected {expected}"
        super().__init__(message)
        self.session_id = session_id
        self.expected = expected
        self.actual = actual


class EvaluationError(PricingError):
    """Base class for evaluation failures. Identifies the offending variable."""

    code = "evaluation_error"

    def __init__(self, variable_id: str, message: str):
        super().__init__(message)
        self.variable_id = variable_id

    def as_dict(self) -> dict:
        return {
            "code": self.code,
            "variable_id": self.variable_id,
            "message": str(self),
        }


class MissingInputError(EvaluationError):
    """Raised when a required input variable has no value."""

    code = "missing_input"

    def __init__(self, variable_id: str):
        super().__init__(variable_id, f"Missing required input: {variable_id}")


class ComputationError(EvaluationError):
    """Raised when a computed variable's formula fails."""

    code = "computation_error"

    def __init__(self, variable_id: str, reason: str):
        super().__init__(variable_id, f"Could not compute {variable_id}: {reason}")
        self.reason = reason


class UnresolvableOverrideError(EvaluationError):
    """Raised when an overridable variable cannot be resolved.

    Resolution always falls back to the global default, so this
    indicates a defect (e.g. a stored override of the wrong type).
    """

    code = "unresolvable_override"

    def __init__(self, variable_id: str, reason: str):
        super().__init__(variable_id, f"Could not resolve {variable_id}: {reason}")
        self.reason = reason


class ForbiddenError(PricingError, PermissionDenied):
    """Raised when the caller is not allowed to perform an operation."""

    pass


class SessionNotFoundError(PricingError):
    """Raised when a pricing session does not exist."""

    def __init__(self, session_id):
        super().__init__(f"Pricing session not found: {session_id}")
        self.session_id = session_id


class SessionClosedError(PricingError):
    """Raised when mutating a session in a terminal state."""

    def __init__(self, session_id, status: str):
        super().__init__(f"Pricing session {session_id} is {status} and cannot be changed")
        self.session_id = session_id
        self.status = status


class SessionFinalizedError(SessionClosedError):
    """Raised when mutating a finalized session."""

    def __init__(self, session_id):
        super().__init__(session_id, "finalized")


class SessionAbandonedError(SessionClosedError):
    """Raised when mutating an abandoned session."""

    def __init__(self, session_id):
        super().__init__(session_id, "abandoned")


class NotComputedError(PricingError):
    """Raised when finalizing a session that has no current breakdown."""

    def __init__(self, session_id, status: str):
        super().__init__(
            f"Pricing session {session_id} must be computed before finalizing (status={status})"
        )
        self.session_id = session_id
        self.status = status
