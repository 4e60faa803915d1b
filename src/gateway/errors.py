"""Gateway error taxonomy.

Every error carries the HTTP status it is reported with; the API layer
turns any of them into a ``{"error": message}`` body.
"""

from __future__ import annotations


class GatewayError(Exception):
    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(GatewayError):
    """Bad input shape; never forwarded upstream."""

    status_code = 400


class ConfigurationError(GatewayError):
    status_code = 500


class UpstreamError(GatewayError):
    """Provider failure. Carries the provider's status when it sent one."""

    status_code = 502

    def __init__(self, message: str, status_code: int | None = None, upstream_status: int | None = None) -> None:
        super().__init__(message, status_code)
        self.upstream_status = upstream_status


class PartialDataError(UpstreamError):
    """Provider answered, but without a field we cannot do without."""


class VehicleNotFoundError(GatewayError):
    status_code = 404
