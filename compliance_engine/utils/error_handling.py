"""
Compliance Engine - Error Handling

Centralized exception hierarchy for the compliance engine:
- Standardized error codes
- Configuration errors (unsupported categories, calculation types, rate tables)
- Unexpected errors from individual agency assessors
- Serialization helpers for batch error records

The engine never lets one calculation or one business crash a batch.
Configuration errors fail fast; everything else is recorded per unit.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, Optional


class ErrorCode(str, Enum):
    """Standardized error codes for the engine"""

    # Validation Errors
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_INTERVAL = "INVALID_INTERVAL"

    # Configuration Errors
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    UNSUPPORTED_CATEGORY = "UNSUPPORTED_CATEGORY"
    UNSUPPORTED_CALCULATION = "UNSUPPORTED_CALCULATION"
    UNSUPPORTED_CURRENCY = "UNSUPPORTED_CURRENCY"
    UNSUPPORTED_JOB_TYPE = "UNSUPPORTED_JOB_TYPE"
    RATE_TABLE_NOT_FOUND = "RATE_TABLE_NOT_FOUND"
    INVALID_WEIGHTS = "INVALID_WEIGHTS"
    AGENCY_NOT_REGISTERED = "AGENCY_NOT_REGISTERED"

    # Unexpected Errors
    UNEXPECTED_ERROR = "UNEXPECTED_ERROR"


class AppException(Exception):
    """Base exception for all engine exceptions"""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        field: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        self.code = code
        self.message = message
        self.details = details or {}
        self.field = field
        self.original_error = original_error
        self.timestamp = datetime.now(timezone.utc)
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for error records"""
        result = {
            "code": self.code.value,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.field:
            result["field"] = self.field
        if self.details:
            result["details"] = self.details
        return result


# ============================================================================
# Validation Exceptions
# ============================================================================

class ValidationException(AppException):
    """Base validation exception"""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        code: ErrorCode = ErrorCode.VALIDATION_ERROR,
    ):
        super().__init__(
            code=code,
            message=message,
            details=details,
            field=field,
        )


class InvalidIntervalException(ValidationException):
    """Recurrence interval must be a positive number of months"""

    def __init__(self, interval_months: Any):
        super().__init__(
            message=f"Invalid recurrence interval: {interval_months}. Interval must be a positive number of months.",
            field="interval_months",
            code=ErrorCode.INVALID_INTERVAL,
            details={"provided_interval": str(interval_months)},
        )


# ============================================================================
# Configuration Exceptions
# ============================================================================

class ConfigurationException(AppException):
    """Engine configuration is missing or inconsistent"""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.CONFIGURATION_ERROR,
        details: Optional[Dict[str, Any]] = None,
        field: Optional[str] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            details=details,
            field=field,
        )


class UnsupportedCategoryException(ConfigurationException):
    """A category key has no entry in the configured rate tables"""

    def __init__(self, category_type: str, value: Any, supported: Optional[Iterable[str]] = None):
        details: Dict[str, Any] = {"category_type": category_type, "provided": str(value)}
        if supported is not None:
            details["supported"] = sorted(str(s) for s in supported)
        super().__init__(
            message=f"Unsupported {category_type}: {value}",
            code=ErrorCode.UNSUPPORTED_CATEGORY,
            details=details,
            field=category_type,
        )


class UnsupportedCalculationException(ConfigurationException):
    """Unknown calculation type requested"""

    def __init__(self, calculation_type: Any, supported: Optional[Iterable[str]] = None):
        details: Dict[str, Any] = {"provided": str(calculation_type)}
        if supported is not None:
            details["supported"] = sorted(str(s) for s in supported)
        super().__init__(
            message=f"Unsupported calculation type: {calculation_type}",
            code=ErrorCode.UNSUPPORTED_CALCULATION,
            details=details,
        )


class UnsupportedCurrencyException(ConfigurationException):
    """Currency missing from the exchange rate table"""

    def __init__(self, currency: str, base_currency: str):
        super().__init__(
            message=f"No exchange rate configured for {currency} against base currency {base_currency}",
            code=ErrorCode.UNSUPPORTED_CURRENCY,
            details={"currency": currency, "base_currency": base_currency},
            field="currency",
        )


class UnsupportedJobTypeException(ConfigurationException):
    """Unknown compliance batch job type"""

    def __init__(self, job_type: Any):
        super().__init__(
            message=f"Unknown compliance job type: {job_type}",
            code=ErrorCode.UNSUPPORTED_JOB_TYPE,
            details={"provided": str(job_type)},
        )


class RateTableNotFoundException(ConfigurationException):
    """No rate table is in force for the requested date"""

    def __init__(self, as_of: Any):
        super().__init__(
            message=f"No rate table in force on {as_of}",
            code=ErrorCode.RATE_TABLE_NOT_FOUND,
            details={"as_of": str(as_of)},
        )


# ============================================================================
# Utility Functions
# ============================================================================

def error_to_dict(exc: BaseException) -> Dict[str, Any]:
    """Serialize any exception into the standard error record shape"""
    if isinstance(exc, AppException):
        return exc.to_dict()
    return {
        "code": ErrorCode.UNEXPECTED_ERROR.value,
        "message": str(exc) or exc.__class__.__name__,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "details": {"exception_type": exc.__class__.__name__},
    }


def error_code_of(exc: BaseException) -> ErrorCode:
    """Error code for an exception, UNEXPECTED_ERROR for foreign ones"""
    if isinstance(exc, AppException):
        return exc.code
    return ErrorCode.UNEXPECTED_ERROR


__all__ = [
    # Base
    "AppException",
    "ErrorCode",

    # Validation
    "ValidationException",
    "InvalidIntervalException",

    # Configuration
    "ConfigurationException",
    "UnsupportedCategoryException",
    "UnsupportedCalculationException",
    "UnsupportedCurrencyException",
    "UnsupportedJobTypeException",
    "RateTableNotFoundException",

    # Utilities
    "error_to_dict",
    "error_code_of",
]
