"""Domain errors raised by the AEM clients and surfaced by the tools."""

from __future__ import annotations


class AEMError(Exception):
    """Base class for every error the tools convert into user-facing text."""

    error_type = "AEMError"

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.hint = hint

    def to_payload(self) -> dict[str, object]:
        payload: dict[str, object] = {"type": self.error_type, "message": self.message}
        if self.hint:
            payload["hint"] = self.hint
        return payload


class ConfigurationError(AEMError):
    """Missing credentials or required configuration. Never retried."""

    error_type = "ConfigurationError"


class InputValidationError(AEMError):
    error_type = "ValidationError"


class RemoteCallError(AEMError):
    """Transport-level or non-2xx failure of a single repository call."""

    error_type = "RemoteCallError"

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        body: str = "",
        hint: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.status_code = status_code
        self.body = body


class ProvisioningError(AEMError):
    error_type = "ProvisioningError"

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        body: str = "",
        hint: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.status_code = status_code
        self.body = body


class SiteConflictError(ProvisioningError):
    """The target repository path already exists."""

    error_type = "ProvisioningConflict"


class NotFoundError(AEMError):
    error_type = "NotFound"


class SearchError(AEMError):
    """QueryBuilder failure; ``auth_scheme`` names the credentials in use."""

    error_type = "SearchError"

    def __init__(
        self,
        message: str,
        *,
        auth_scheme: str | None = None,
        status_code: int | None = None,
        hint: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.auth_scheme = auth_scheme
        self.status_code = status_code


class ProtocolError(AEMError):
    """Malformed invocation body or an exchange that failed outright."""

    error_type = "ProtocolError"
