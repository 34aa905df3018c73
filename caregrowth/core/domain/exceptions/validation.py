"""Validation exceptions."""

from .base import CareGrowthError


class ValidationError(CareGrowthError):
    """Input validation failed."""

    error_code = "CG_VAL_001"


class EmptyQueryError(ValidationError):
    """Query cannot be empty or whitespace only."""

    error_code = "CG_VAL_002"


class QueryTooLongError(ValidationError):
    """Query exceeds maximum allowed length."""

    error_code = "CG_VAL_003"


class MissingUserError(ValidationError):
    """A question was asked without the user whose documents it targets."""

    error_code = "CG_VAL_004"
