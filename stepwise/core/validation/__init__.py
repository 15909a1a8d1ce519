"""Field validation - ordered validators, first failure wins.

Usage:
    from stepwise.core.validation import ValidationEngine

    engine = ValidationEngine(fields)
    errors = engine.validate_fields(step_fields, values, context)
    if errors:
        # Re-render the step with errors
"""

from .validation_engine import (
    ValidationEngine, is_allowed_dependent, normalize_field, normalize_validator, validate
)
from .validation_models import FieldDefinition, NormalizedField, ValidationError, Validator
from .validators import VALIDATORS

__all__ = [
    "ValidationEngine",
    "is_allowed_dependent",
    "normalize_field",
    "normalize_validator",
    "validate",
    "FieldDefinition",
    "NormalizedField",
    "ValidationError",
    "Validator",
    "VALIDATORS",
]
