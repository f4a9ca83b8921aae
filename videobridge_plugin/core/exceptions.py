"""Exception classes for the videobridge plugin.

Version: 1.0.0

Each exception carries a human-readable message plus a ``details`` dict so
that failures can be logged or rendered on the status surface with context.
None of these are allowed to escape the plugin's lifecycle callbacks; they
travel between the plugin's own layers only.
"""

from __future__ import annotations

from typing import Any, Optional


class PluginError(Exception):
    """Base exception for all videobridge plugin errors.

    Attributes:
        message: Human-readable error description
        details: Additional context (setting name, path, etc.)
    """

    def __init__(
        self,
        message: str,
        details: Optional[dict[str, Any]] = None
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (details: {self.details})"
        return self.message

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to a serializable dict."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


class BootstrapError(PluginError):
    """Error preparing the native resources next to the plugin binary.

    Raised when:
    - The native directory cannot be created
    - The platform archive is missing or unreadable
    """

    MKDIR_FAILED = "mkdir_failed"
    ARCHIVE_UNREADABLE = "archive_unreadable"

    def __init__(
        self,
        message: str,
        reason: str,
        path: Optional[str] = None,
        details: Optional[dict[str, Any]] = None
    ) -> None:
        super().__init__(message, details)
        self.reason = reason
        self.path = path
        self.details["reason"] = reason
        if path:
            self.details["path"] = path


class ValidationError(PluginError):
    """Error validating a configuration write.

    Attributes:
        setting: Name of the setting being written
        raw_value: The rejected input, as received
    """

    def __init__(
        self,
        message: str,
        setting: str,
        raw_value: Any = None,
        details: Optional[dict[str, Any]] = None
    ) -> None:
        super().__init__(message, details)
        self.setting = setting
        self.raw_value = raw_value
        self.details["setting"] = setting
        self.details["raw_value"] = raw_value


class InvalidFormatError(ValidationError):
    """The raw value could not be parsed as the setting's kind."""


class OutOfRangeError(ValidationError):
    """The parsed value lies outside the setting's valid range.

    The port store never raises this: out-of-range writes are dropped
    silently. It exists for callers that validate up front.
    """

    def __init__(
        self,
        setting: str,
        value: int,
        valid_range: tuple[int, int],
        details: Optional[dict[str, Any]] = None
    ) -> None:
        low, high = valid_range
        super().__init__(
            f"Value {value} for '{setting}' is outside {low}..{high}",
            setting,
            value,
            details,
        )
        self.valid_range = valid_range
        self.details["valid_range"] = [low, high]


class ComponentError(PluginError):
    """Raised by a host component manager that refuses an operation."""

    def __init__(
        self,
        message: str,
        subdomain: Optional[str] = None,
        details: Optional[dict[str, Any]] = None
    ) -> None:
        super().__init__(message, details)
        self.subdomain = subdomain
        if subdomain:
            self.details["subdomain"] = subdomain


class RegistrationError(PluginError):
    """Registering the videobridge component with the host failed.

    The lifecycle controller reverts to an inactive state when this happens.
    """

    def __init__(
        self,
        message: str,
        subdomain: str,
        details: Optional[dict[str, Any]] = None
    ) -> None:
        super().__init__(message, details)
        self.subdomain = subdomain
        self.details["subdomain"] = subdomain


class PluginNotRunningError(PluginError):
    """A query that requires an active plugin was made while it is not running."""

    def __init__(
        self,
        operation: str,
        state: str,
        details: Optional[dict[str, Any]] = None
    ) -> None:
        super().__init__(
            f"Cannot {operation}: plugin is not running (state: {state})",
            details,
        )
        self.operation = operation
        self.state = state
        self.details["operation"] = operation
        self.details["state"] = state
