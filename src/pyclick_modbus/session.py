"""Session state: configuration snapshot, link state and the last recorded error."""

import logging
from datetime import datetime, timezone
from typing import Callable

from .config import DriverConfiguration
from .errors import ClickErrorCode, describe
from .types import ErrorRecord, Severity

logger = logging.getLogger(__name__)


class SessionState:
    """
    Holds the driver's configuration, mirrors the transport's link state and keeps
    a single last-error slot (overwritten on every failure, never cleared on success).
    """

    def __init__(self, link_state: Callable[[], bool]) -> None:
        self._link_state = link_state
        self._configuration: DriverConfiguration | None = None
        self._last_error: ErrorRecord | None = None

    @property
    def configuration(self) -> DriverConfiguration | None:
        return self._configuration

    @property
    def last_error(self) -> ErrorRecord | None:
        return self._last_error

    def is_connected(self) -> bool:
        return bool(self._link_state())

    def set_configuration(self, configuration: DriverConfiguration, operation: str = "init") -> bool:
        """Replace the configuration with a deep copy; rejected while connected."""
        if self.is_connected():
            self.record_error(operation, ClickErrorCode.PROHIBITED_WHEN_CONNECTED)
            return False
        self._configuration = configuration.clone()
        return True

    def record_error(self, operation: str, code: ClickErrorCode, detail: str | None = None) -> None:
        """Overwrite the last-error slot. Never raises."""
        try:
            message = detail or describe(code)
            self._last_error = ErrorRecord(
                severity=Severity.ERROR,
                operation=operation,
                message=message,
                code=int(code),
                timestamp=datetime.now(timezone.utc),
            )
            logger.warning("%s failed [%s]: %s", operation, ClickErrorCode(code).name, message)
        except Exception as e:
            logger.debug("Failed to record error for %s: %s", operation, e)
