"""
Encounter-facing domain errors.

Each carries a stable ``error_code`` (``INSUFFICIENT_TOKENS``,
``VALIDATION_MOUNT_NAME``, ...) and structured ``details``. The encounter
service turns them into response steps instead of letting them reach the
cog; ``severity`` decides the log level when it does.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorSeverity(Enum):
    DEBUG = "debug"
    INFO = "info"  # escapes, insufficient funds
    WARNING = "warning"  # lost version checks
    ERROR = "error"  # catalog or config defects
    CRITICAL = "critical"


class TameBotDomainException(Exception):
    """Root of every error a player action can legitimately produce."""

    DEFAULT_SEVERITY: ErrorSeverity = ErrorSeverity.ERROR
    DEFAULT_RETRYABLE: bool = False

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        severity: Optional[ErrorSeverity] = None,
        is_retryable: Optional[bool] = None,
        error_code: Optional[str] = None,
    ) -> None:
        self.message: str = message
        self.details: Dict[str, Any] = details or {}
        self.severity: ErrorSeverity = severity or self.DEFAULT_SEVERITY
        self.is_retryable: bool = (
            is_retryable if is_retryable is not None else self.DEFAULT_RETRYABLE
        )
        self.error_code: str = error_code or self.__class__.__name__
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "severity": self.severity.value,
            "is_retryable": self.is_retryable,
        }

    def __str__(self) -> str:
        if not self.details:
            return f"[{self.error_code}] {self.message}"
        return f"[{self.error_code}] {self.message} {self.details}"


class InsufficientResourcesError(TameBotDomainException):
    """
    Raised when a player lacks the tokens (or other resource) for an action.

    Retryable in the game sense: the player may earn more and try again,
    but repeating the call immediately fails the same way.
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO
    DEFAULT_RETRYABLE = False

    def __init__(self, resource: str, required: int, current: int) -> None:
        self.resource = resource
        self.required = required
        self.current = current
        message = f"Insufficient {resource}: need {required:,}, have {current:,}"
        super().__init__(
            message,
            details={
                "resource": resource,
                "required": required,
                "current": current,
                "deficit": required - current,
            },
            error_code=f"INSUFFICIENT_{resource.upper()}",
        )


class NotFoundError(TameBotDomainException):
    """Raised when an encounter, character or mount cannot be found."""

    DEFAULT_SEVERITY = ErrorSeverity.INFO
    DEFAULT_RETRYABLE = False

    def __init__(self, resource_type: str, identifier: Optional[Any] = None) -> None:
        self.resource_type = resource_type
        self.identifier = identifier
        if identifier is not None:
            message = f"{resource_type} not found: {identifier}"
        else:
            message = f"{resource_type} not found"
        super().__init__(
            message,
            details={"resource_type": resource_type, "identifier": identifier},
            error_code=f"{resource_type.upper().replace(' ', '_')}_NOT_FOUND",
        )


class ValidationError(TameBotDomainException):
    """Raised when user input fails validation (mount names, amounts)."""

    DEFAULT_SEVERITY = ErrorSeverity.INFO
    DEFAULT_RETRYABLE = False

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.validation_message = message
        super().__init__(
            f"Validation error for {field}: {message}",
            details={"field": field, "validation_message": message},
            error_code=f"VALIDATION_{field.upper()}",
        )


class InvalidOperationError(TameBotDomainException):
    """
    Raised when an action violates game rules.

    Example:
        >>> raise InvalidOperationError("glide", "Glide already used in this encounter")
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO
    DEFAULT_RETRYABLE = False

    def __init__(self, action: str, reason: str) -> None:
        self.action = action
        self.reason = reason
        super().__init__(
            f"Invalid operation '{action}': {reason}",
            details={"action": action, "reason": reason},
            error_code=f"INVALID_{action.upper()}",
        )


class UnauthorizedActionError(TameBotDomainException):
    """Raised when a user acts on an encounter tracked for someone else."""

    DEFAULT_SEVERITY = ErrorSeverity.INFO
    DEFAULT_RETRYABLE = False

    def __init__(self, action: str, user_id: Any, reason: str = "not the tracked participant") -> None:
        self.action = action
        self.user_id = user_id
        super().__init__(
            f"User {user_id} may not perform '{action}': {reason}",
            details={"action": action, "user_id": user_id, "reason": reason},
            error_code="UNAUTHORIZED_ACTION",
        )


class ResourceExhaustedError(TameBotDomainException):
    """
    Raised when an action needs stamina and the character has none left.

    Expected game flow: the creature escapes and the encounter is removed.
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO
    DEFAULT_RETRYABLE = False

    def __init__(self, resource: str, character_name: Optional[str] = None) -> None:
        self.resource = resource
        self.character_name = character_name
        who = f"{character_name} has" if character_name else "Character has"
        super().__init__(
            f"{who} no {resource} left",
            details={"resource": resource, "character_name": character_name},
            error_code=f"{resource.upper()}_EXHAUSTED",
        )


class UnsupportedConfigurationError(TameBotDomainException):
    """
    Raised when game data is missing for a subject (unknown mount species,
    missing required config key). A data defect, logged at ERROR.
    """

    DEFAULT_SEVERITY = ErrorSeverity.ERROR
    DEFAULT_RETRYABLE = False

    def __init__(self, subject: str, reason: str) -> None:
        self.subject = subject
        self.reason = reason
        super().__init__(
            f"Unsupported configuration for {subject}: {reason}",
            details={"subject": subject, "reason": reason},
            error_code="UNSUPPORTED_CONFIGURATION",
        )


class InvalidSelectionError(TameBotDomainException):
    """Raised for a malformed or out-of-turn selection (action id, trait option)."""

    DEFAULT_SEVERITY = ErrorSeverity.INFO
    DEFAULT_RETRYABLE = False

    def __init__(self, selection: Any, reason: str) -> None:
        self.selection = selection
        self.reason = reason
        super().__init__(
            f"Invalid selection {selection!r}: {reason}",
            details={"selection": selection, "reason": reason},
            error_code="INVALID_SELECTION",
        )


class InvalidStateTransitionError(TameBotDomainException):
    """Raised when an encounter is asked to move along an edge the state machine lacks."""

    DEFAULT_SEVERITY = ErrorSeverity.INFO
    DEFAULT_RETRYABLE = False

    def __init__(self, current: str, target: str) -> None:
        self.current = current
        self.target = target
        super().__init__(
            f"Cannot move encounter from {current} to {target}",
            details={"current": current, "target": target},
            error_code="INVALID_STATE_TRANSITION",
        )


class EncounterConflictError(TameBotDomainException):
    """Raised when an encounter write loses an optimistic version check."""

    DEFAULT_SEVERITY = ErrorSeverity.WARNING
    DEFAULT_RETRYABLE = True

    def __init__(self, encounter_id: str, expected_version: int, actual_version: Optional[int]) -> None:
        self.encounter_id = encounter_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Encounter {encounter_id} was modified concurrently",
            details={
                "encounter_id": encounter_id,
                "expected_version": expected_version,
                "actual_version": actual_version,
            },
            error_code="ENCOUNTER_CONFLICT",
        )


def is_transient_error(exc: Exception) -> bool:
    """True if repeating the operation may succeed."""
    if isinstance(exc, TameBotDomainException):
        return exc.is_retryable
    return False


def get_error_severity(exc: Exception) -> ErrorSeverity:
    if isinstance(exc, TameBotDomainException):
        return exc.severity
    return ErrorSeverity.ERROR


def should_alert(exc: Exception) -> bool:
    """True if severity is ERROR or CRITICAL."""
    return get_error_severity(exc) in (ErrorSeverity.ERROR, ErrorSeverity.CRITICAL)
