"""Custom exceptions for the gear OCR overlay."""

class ApplicationError(Exception):
    """Base application error."""
    pass

class ConfigError(ApplicationError):
    """Configuration-related errors (bad values, no displays available)."""
    pass

class CaptureError(ApplicationError):
    """Screen capture errors: no capture source, grab failed."""
    pass

class OcrError(ApplicationError):
    """OCR engine errors. Recovered inside the OCR service, never surfaced to callers."""
    pass

class ValidationError(Exception):
    """Data validation errors."""
    pass
