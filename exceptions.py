"""Custom exception hierarchy for the property calculator."""


class PropertyCalculatorError(Exception):
    """Base exception for all property calculator errors."""


class ConfigurationError(PropertyCalculatorError):
    """Raised when a calculator policy file is invalid or missing."""


class InvalidFieldError(PropertyCalculatorError, ValueError):
    """Raised when a property update names an unknown field or a wrongly typed value."""
