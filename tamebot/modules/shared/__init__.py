"""
Tamebot shared module: domain-level foundations for game modules.

- BaseService: logging, config and event helpers for services
- BaseRepository: type-safe database access
- Domain exceptions: player-facing errors and rule violations

Usage
-----
    from tamebot.modules.shared import BaseService, InsufficientResourcesError
"""

from __future__ import annotations

from .base_repository import BaseRepository
from .base_service import BaseService
from .exceptions import (
    EncounterConflictError,
    ErrorSeverity,
    InsufficientResourcesError,
    InvalidOperationError,
    InvalidSelectionError,
    InvalidStateTransitionError,
    NotFoundError,
    ResourceExhaustedError,
    TameBotDomainException,
    UnauthorizedActionError,
    UnsupportedConfigurationError,
    ValidationError,
    get_error_severity,
    is_transient_error,
    should_alert,
)

__all__ = [
    "BaseRepository",
    "BaseService",
    "EncounterConflictError",
    "ErrorSeverity",
    "InsufficientResourcesError",
    "InvalidOperationError",
    "InvalidSelectionError",
    "InvalidStateTransitionError",
    "NotFoundError",
    "ResourceExhaustedError",
    "TameBotDomainException",
    "UnauthorizedActionError",
    "UnsupportedConfigurationError",
    "ValidationError",
    "get_error_severity",
    "is_transient_error",
    "should_alert",
]
