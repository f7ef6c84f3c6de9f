"""
LoadTap Errors

Error taxonomy for HAR to k6 conversion. Every error is fatal to the whole
conversion: callers receive a single exception and no partial script.
"""


class ConversionError(Exception):
    """Base class for everything that aborts a conversion."""


class ConfigurationError(ConversionError, ValueError):
    """Invalid option combination, detected before any entry is processed."""


class DecodeError(ConversionError, ValueError):
    """Malformed capture data: bad URL, bad timestamp, bad JSON body."""


class CorrelationConsistencyError(ConversionError):
    """Request and response trees disagree in shape during strict correlation."""

    def __init__(self, message: str, path: str = ""):
        super().__init__(message)
        self.path = path


class SequencingError(ConversionError):
    """
    A recorded redirect does not lead to the next sequential request.

    Usually means the capture holds concurrent or out-of-order requests that
    sequential replay cannot model.
    """

    def __init__(self, expected_url: str, actual_url: str):
        super().__init__(
            f"The capture contained a redirect to {expected_url} but the next "
            f"request went to {actual_url}. Possibly a misbehaving client or "
            f"concurrent requests?"
        )
        self.expected_url = expected_url
        self.actual_url = actual_url
