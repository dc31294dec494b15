"""Validation package."""

from tripshare.validation.validator import (
    SUPPORTED_CURRENCIES,
    CompanionValidationError,
    CompanionValidator,
    ExpenseValidationError,
    ExpenseValidator,
)

__all__ = [
    "SUPPORTED_CURRENCIES",
    "CompanionValidationError",
    "CompanionValidator",
    "ExpenseValidationError",
    "ExpenseValidator",
]
