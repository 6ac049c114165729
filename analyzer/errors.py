"""
Error kinds raised by the CRO modeling core.

- ValidationError: a required input is missing, the request cannot proceed
- DecodeError: an external record has the wrong shape
- DegradedInputWarning: non-fatal, the pipeline falls back to defaults
"""

from typing import Optional


class AnalysisError(Exception):
    """Base class for all analyzer errors"""


class ValidationError(AnalysisError):
    """Missing required input (no primary CTA, no capture data, ...)"""


class DecodeError(AnalysisError):
    """Malformed element, context or factor record"""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field

    def __str__(self) -> str:
        message = super().__str__()
        if self.field:
            return f"{self.field}: {message}"
        return message


class DegradedInputWarning(UserWarning):
    """Input was missing or undetectable and a default was assumed."""

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message

    def __str__(self) -> str:
        return self.message
