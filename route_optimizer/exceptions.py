"""
Custom exception hierarchy for the address pipeline.

Each exception type maps to one category of failure so callers can tell
which branch fired, while the message stays safe to show to an end user.
Diagnostic payloads (raw AI output, row counts) live in ``details`` or on
dedicated attributes, never in the message.
"""

from __future__ import annotations


class RouteOptimizerError(Exception):
    """Base exception for all pipeline failures."""

    def __init__(self, code: str, message: str, details: dict | None = None):
        self.code = code
        self.details = details or {}
        super().__init__(message)


class InsufficientAddressesError(RouteOptimizerError):
    """A route needs at least two validated addresses."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("INSUFFICIENT_ADDRESSES", message, details)


class SpreadsheetError(RouteOptimizerError):
    """The uploaded workbook cannot produce any address rows."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("SPREADSHEET_INVALID", message, details)


class ServiceConfigurationError(RouteOptimizerError):
    """The AI service cannot be reached because it is not configured."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("SERVICE_NOT_CONFIGURED", message, details)


# ─── AI Service Failures ─────────────────────────────────────────────


class ServiceResponseError(RouteOptimizerError):
    """The AI service did not produce a usable response."""


class EmptyResponseError(ServiceResponseError):
    """The service returned nothing (content filter, quota, API hiccup)."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("EMPTY_RESPONSE", message, details)


class InvalidResponseError(ServiceResponseError):
    """The response text does not decode against the expected schema.

    The raw text is kept for logging only.
    """

    def __init__(
        self, message: str, raw_text: str = "", details: dict | None = None
    ):
        self.raw_text = raw_text
        super().__init__("INVALID_RESPONSE", message, details)


class ServiceTransportError(ServiceResponseError):
    """The service call itself raised (network, auth, rate limit)."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("TRANSPORT_FAILED", message, details)


class RouteOptimizationError(ServiceResponseError):
    """The route request or its decoding failed."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("ROUTE_OPTIMIZATION_FAILED", message, details)
