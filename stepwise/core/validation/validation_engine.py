"""
Validation Engine - applies ordered field validators and reports the first failure

Usage:
    engine = ValidationEngine(fields)
    error = engine.validate('age', '16', context)
    errors = engine.validate_fields(['name', 'age'], values, context)
"""

import inspect
from typing import Any, Dict, Iterable, Mapping, Optional
from loguru import logger

from ..exceptions import ConfigurationError
from .validation_models import (
    Dependent, FieldDefinition, NormalizedField, ValidationError, Validator, ValidatorFn
)
from .validators import VALIDATORS, strict_in


UNNAMED_FUNCTIONS = {'', 'fn', 'validate', '<lambda>'}


def _as_list(value: Any) -> list:
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _accepts_context(fn: ValidatorFn) -> bool:
    try:
        parameters = inspect.signature(fn).parameters.values()
    except (TypeError, ValueError):
        return False
    return any(
        p.kind is inspect.Parameter.VAR_KEYWORD
        or (p.name == 'context' and p.kind is not inspect.Parameter.POSITIONAL_ONLY)
        for p in parameters
    )


def normalize_validator(spec: Any, registry: Optional[Mapping[str, ValidatorFn]] = None) -> Validator:
    """
    Resolve one validator spec into a Validator.

    Args:
        spec: Validator name, named function, ``{type, fn, arguments}`` record
            or an already resolved Validator
        registry: Validator functions by type name (built-ins when omitted)

    Returns:
        Validator with ``arguments`` always a tuple

    Raises:
        ConfigurationError: Unnamed function or unknown validator type
    """
    if isinstance(spec, Validator):
        return spec
    registry = VALIDATORS if registry is None else registry

    if isinstance(spec, str):
        record: Dict[str, Any] = {'type': spec}
    elif callable(spec):
        record = {'fn': spec}
    elif isinstance(spec, Mapping):
        record = dict(spec)
    else:
        raise ConfigurationError(f"Invalid validator definition: {spec!r}")

    fn = record.pop('fn', None)
    validator_type = record.pop('type', None)

    if callable(fn):
        validator_type = validator_type or getattr(fn, '__name__', '')
        if validator_type in UNNAMED_FUNCTIONS:
            raise ConfigurationError("Custom validator needs to be a named function")
    else:
        fn = registry.get(validator_type) if isinstance(validator_type, str) else None
        if fn is None:
            raise ConfigurationError(f"Undefined validator: {validator_type}")

    arguments = record.pop('arguments', None)
    arguments = () if arguments is None else tuple(_as_list(arguments))
    record.pop('takes_context', None)

    return Validator(type=validator_type, fn=fn, arguments=arguments,
                     takes_context=_accepts_context(fn), **record)


def normalize_field(key: str, field: Any, registry: Optional[Mapping[str, ValidatorFn]] = None) -> NormalizedField:
    """
    Flatten a field's validators into an immutable NormalizedField.

    Falsy validator entries are dropped and, when the field lists options or
    items, a single ``equal`` validator over the option values is appended.
    The input definition is left untouched, so normalizing twice yields the
    same result.
    """
    definition = FieldDefinition.coerce(key, field)

    raw = definition.validators
    raw = [] if raw is None else _as_list(raw)
    validators = [normalize_validator(spec, registry) for spec in raw if spec]

    options = definition.options or definition.items
    if options:
        option_values = [o.get('value') if isinstance(o, Mapping) else o for o in options]
        validators.append(normalize_validator({'type': 'equal', 'arguments': option_values}, registry))

    return NormalizedField(
        key=definition.key or key,
        validators=tuple(validators),
        dependent=Dependent.coerce(definition.dependent),
        invalidates=tuple(definition.invalidates),
        error_group=definition.error_group
    )


def _dependent_allows(key: str, dependent: Optional[Dependent], fields: Mapping[str, Any],
                      values: Mapping[str, Any]) -> bool:
    if dependent is None or dependent.field not in fields:
        return True

    dependent_values = _as_list(dependent.value)
    field_values = _as_list(values.get(dependent.field))
    matches = [v for v in dependent_values if strict_in(v, field_values)]

    logger.debug(
        f"Checking dependent values for field {key}: matching field {dependent.field} "
        f"dependent values {dependent_values} to field values {field_values} = {matches}"
    )
    return bool(matches)


def _first_failure(field: NormalizedField, value: Any, context: Any) -> Optional[ValidationError]:
    for item in _as_list(value):
        for validator in field.validators:
            logger.debug(f'Applying {validator.type} validator with value "{item}" {list(validator.arguments)}')
            if not validator.apply(item, context):
                details = {
                    'key': field.key,
                    'type': validator.type,
                    'errorGroup': field.error_group,
                    'arguments': list(validator.arguments),
                    **(validator.model_extra or {})
                }
                return ValidationError(**details)
    return None


def is_allowed_dependent(fields: Mapping[str, Any], key: str, values: Mapping[str, Any]) -> bool:
    """
    Check whether a field is in play given the current values.

    A field with a ``dependent`` gate is only allowed when the referenced
    field's value(s) intersect the gate's value(s). Missing dependency targets
    count as allowed; an unknown ``key`` is not allowed.
    """
    logger.debug(f"Checking if field {key} is allowed")
    if key not in fields:
        return False
    definition = FieldDefinition.coerce(key, fields[key])
    return _dependent_allows(key, Dependent.coerce(definition.dependent), fields, values)


def validate(fields: Mapping[str, Any], key: str, value: Any, context: Any = None,
             registry: Optional[Mapping[str, ValidatorFn]] = None) -> Optional[ValidationError]:
    """
    Validate one value against a raw field registry.

    Normalizes the field on every call; use ValidationEngine to normalize once.

    Returns:
        ValidationError for the first failing (value, validator) pair, or None
        when valid or when ``key`` is not a known field
    """
    logger.debug(f'Validating field {key} with value "{value}"')
    if key not in fields:
        return None
    return _first_failure(normalize_field(key, fields[key], registry), value, context)


class ValidationEngine:
    """
    Validates submitted values against a field registry normalized up front.

    Every field is normalized at construction so a broken validator
    configuration fails before any request is served.
    """

    def __init__(self, fields: Mapping[str, Any], validators: Optional[Mapping[str, ValidatorFn]] = None):
        """
        Args:
            fields: Field definitions by key (dicts or FieldDefinition)
            validators: Extra or overriding validator functions by type name
        """
        self.fields = fields
        self.registry: Dict[str, ValidatorFn] = {**VALIDATORS, **(validators or {})}
        self.normalized: Dict[str, NormalizedField] = {
            key: normalize_field(key, field, self.registry) for key, field in fields.items()
        }
        logger.debug(f"Normalized {len(self.normalized)} field definitions")

    def validate(self, key: str, value: Any, context: Any = None) -> Optional[ValidationError]:
        """Return the first failure for ``value`` or None"""
        logger.debug(f'Validating field {key} with value "{value}"')
        field = self.normalized.get(key)
        if field is None:
            return None
        return _first_failure(field, value, context)

    def is_allowed_dependent(self, key: str, values: Mapping[str, Any]) -> bool:
        field = self.normalized.get(key)
        if field is None:
            return False
        return _dependent_allows(key, field.dependent, self.normalized, values)

    def validate_fields(self, keys: Iterable[str], values: Mapping[str, Any],
                        context: Any = None) -> Dict[str, ValidationError]:
        """
        Validate every field in play and collect errors by key.

        Fields gated out by their dependent are skipped.

        Returns:
            Mapping of field key to ValidationError (empty when all valid)
        """
        errors: Dict[str, ValidationError] = {}
        for key in keys:
            if not self.is_allowed_dependent(key, values):
                logger.debug(f"Skipping validation of field {key}: dependent not met")
                continue
            error = self.validate(key, values.get(key), context)
            if error:
                errors[key] = error
        return errors
