# SPDX-License-Identifier: MIT

from typing import Any, Optional


class ScheduleError(Exception):
    """Base class for every error raised by schedboard."""


class InvalidTimezoneError(ScheduleError, ValueError):
    """Raised when a timezone identifier cannot be resolved."""

    def __init__(self, timezone: str) -> None:
        super().__init__(f"Invalid timezone identifier: {timezone!r}")
        self.timezone = timezone


class RemoteError(ScheduleError):
    """Raised when the remote schedule service rejects a request."""

    def __init__(
        self, message: str, field_errors: Optional[dict[str, Any]] = None
    ) -> None:
        super().__init__(message)
        self.message = message
        self.field_errors = field_errors


class RemoteUnavailableError(RemoteError):
    """Raised when the remote schedule service cannot be reached."""


class ScheduleIdUnavailableError(ScheduleError):
    """Raised when an item has no server id and no create is in flight."""

    def __init__(self, client_id: str) -> None:
        super().__init__(f"Schedule id not available yet for {client_id}")
        self.client_id = client_id


class InteractionError(ScheduleError):
    """Raised on an invalid drag/resize state transition."""


class ScheduleRuleError(ScheduleError):
    """Raised when a board action breaks a scheduling rule."""
