"""
Custom Exception Hierarchy for the location resolver

Only InvalidCoordinatesError is ever surfaced to callers, and only by the
strict API variants. Provider errors are raised inside a provider and
translated to a missing candidate plus a health penalty at its boundary.
"""


class LocationServiceError(Exception):
    """Base exception for all location resolver errors"""


class InvalidCoordinatesError(LocationServiceError):
    """Raised when latitude/longitude are non-finite or outside WGS84 range"""

    def __init__(self, latitude, longitude):
        super().__init__(f"Invalid coordinates: ({latitude}, {longitude})")
        self.latitude = latitude
        self.longitude = longitude


class ProviderError(LocationServiceError):
    """Base exception for reverse-geocoding provider errors"""

    def __init__(self, message: str, provider: str = None):
        super().__init__(message)
        self.message = message
        self.provider = provider


class ProviderTransientError(ProviderError):
    """Network error, non-2xx response or timeout. Safe to retry."""


class ProviderTimeoutError(ProviderTransientError):
    """Raised when a provider does not answer within its timeout"""

    def __init__(self, provider: str, timeout_seconds: float):
        super().__init__(f"{provider} timed out after {timeout_seconds}s", provider)
        self.timeout_seconds = timeout_seconds


class ProviderRateLimitError(ProviderTransientError):
    """Raised when the upstream service rejects us for exceeding its quota"""

    def __init__(self, provider: str, retry_after: int = None):
        message = f"{provider} rate limit exceeded"
        if retry_after:
            message += f" (retry after {retry_after}s)"
        super().__init__(message, provider)
        self.retry_after = retry_after


class ProviderResponseError(ProviderError):
    """Raised when a provider answers with a malformed or empty payload"""


class ProviderConfigurationError(ProviderError):
    """Raised when a provider lacks a required credential"""

    def __init__(self, provider: str, config_field: str):
        super().__init__(f"{provider} requires {config_field}", provider)
        self.config_field = config_field
