"""
Common plumbing for domain services: config lookups, event emission,
operation logging and argument checks that raise ``ValidationError``.

Services own their transactions (``DatabaseService.get_transaction()``);
this base class never touches the database.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

from .exceptions import UnsupportedConfigurationError, ValidationError

if TYPE_CHECKING:
    from logging import Logger

    from tamebot.core.config.manager import ConfigManager
    from tamebot.core.event.bus import EventBus


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class BaseService:
    def __init__(
        self,
        config_manager: type[ConfigManager] | ConfigManager,
        event_bus: EventBus,
        logger: Logger,
    ) -> None:
        self._config = config_manager
        self._events = event_bus
        self.log = logger

    def get_config(self, key: str, default: Optional[Any] = None, required: bool = False) -> Any:
        """Read a balance value; ``required`` keys raise UnsupportedConfigurationError when absent."""
        value = self._config.get(key, default)
        if value is None and required:
            raise UnsupportedConfigurationError(key, "required configuration key is missing")
        return value

    async def emit_event(
        self,
        event_type: str,
        data: Dict[str, Any],
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Publish ``data`` merged with ``context``.

        The bus already isolates listener failures. If publishing itself
        fails, that is logged here and the caller's state change still stands.
        """
        payload = {**data, **(context or {})}
        try:
            await self._events.publish(event_type, payload)
        except Exception:
            self.log.error(
                "Could not publish event",
                extra={"event_type": event_type, "encounter_id": payload.get("encounter_id")},
                exc_info=True,
            )

    def log_operation(self, operation: str, **context: Any) -> None:
        self.log.info(operation, extra={"operation": operation, **context})

    def log_error(self, operation: str, error: Exception, **context: Any) -> None:
        self.log.error(
            f"{operation} failed: {error}",
            extra={"operation": operation, "error_type": type(error).__name__, **context},
            exc_info=error,
        )

    def validate_positive_int(self, value: Any, name: str) -> None:
        if not _is_int(value) or value <= 0:
            raise ValidationError(name, f"{name} must be a positive integer, got {value!r}")

    def validate_range(self, value: Any, name: str, min_val: int, max_val: int) -> None:
        if not _is_int(value) or not min_val <= value <= max_val:
            raise ValidationError(name, f"{name} must be between {min_val} and {max_val}, got {value!r}")
