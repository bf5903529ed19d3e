"""
Exception hierarchy for the balloon/aircraft correlation pipeline.

Record-level problems (ValidationError) are always recovered by skipping
the record. Feed-level problems (NetworkError, ParseError) are caught by
the poll cycle and turned into a degraded or stale snapshot.
"""


class BalloonWatchError(Exception):
    """Base exception for all balloonwatch errors."""

    kind = "error"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (details: {self.details})"
        return self.message


class NetworkError(BalloonWatchError):
    """
    Raised when an upstream feed cannot be reached.

    Covers connection failures, timeouts and non-success HTTP status codes.
    """

    kind = "network"

    def __init__(self, message: str, url: str | None = None, status_code: int | None = None):
        super().__init__(message, {"url": url, "status_code": status_code})
        self.url = url
        self.status_code = status_code


class ParseError(BalloonWatchError):
    """Raised when a feed body is not JSON or has an unexpected top-level shape."""

    kind = "parse"

    def __init__(self, message: str, url: str | None = None):
        super().__init__(message, {"url": url})
        self.url = url


class ValidationError(BalloonWatchError):
    """
    Raised when a single raw record fails a type or range check.

    Never fatal: the normalizer converts it into a per-record skip.
    """

    kind = "validation"

    def __init__(self, message: str, field: str | None = None, value=None):
        display_value = repr(value)
        if len(display_value) > 100:
            display_value = display_value[:100] + "..."
        super().__init__(message, {"field": field, "value": display_value})
        self.field = field
        self.value = value


class EnvelopeUndefined(BalloonWatchError):
    """
    Raised when the balloon set yields no bounding box or altitude window.

    Signals that the cycle should skip aircraft correlation, not a failure
    to report.
    """

    kind = "envelope_undefined"

    def __init__(self, message: str = "No usable envelope for current balloon set", missing: str | None = None):
        super().__init__(message, {"missing": missing})
        self.missing = missing


class ConfigError(BalloonWatchError):
    """Raised for buffer, radius, padding or feed settings that cannot work."""

    kind = "config"

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message, {"field": field})
        self.field = field
