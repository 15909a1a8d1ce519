"""
Next-step conditions - parsing raw ``next`` configuration and first-match-wins resolution
"""

from typing import Any, Callable, Dict, Mapping, Optional
from loguru import logger

from ..exceptions import ConfigurationError
from ..validation.validators import comparison_date, parse_date, strict_equal, strict_in
from .journey_models import (
    Condition, Conditions, FallbackCondition, FieldCondition, FunctionCondition
)


ConditionFn = Callable[[Any], Any]


def _as_list(value: Any) -> list:
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _number(value: Any) -> Any:
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return value
    return value


def _ordered(name: str, compare: Callable[[Any, Any], bool]) -> Callable[[Any, Any], bool]:
    def comparator(field_value: Any, condition_value: Any) -> bool:
        try:
            return compare(_number(field_value), _number(condition_value))
        except TypeError:
            return False
    comparator.__name__ = name
    return comparator


def loose_equal(field_value: Any, condition_value: Any) -> bool:
    if strict_equal(field_value, condition_value):
        return True
    if field_value is None or condition_value is None:
        return False
    return str(field_value) == str(condition_value)


def not_strict_equal(field_value: Any, condition_value: Any) -> bool:
    return not strict_equal(field_value, condition_value)


def not_loose_equal(field_value: Any, condition_value: Any) -> bool:
    return not loose_equal(field_value, condition_value)


def one_of(field_value: Any, condition_value: Any) -> bool:
    return strict_in(field_value, _as_list(condition_value))


def some(field_value: Any, condition_value: Any) -> bool:
    options = _as_list(condition_value)
    return any(strict_in(v, options) for v in _as_list(field_value))


def every(field_value: Any, condition_value: Any) -> bool:
    options = _as_list(condition_value)
    values = _as_list(field_value)
    return bool(values) and all(strict_in(v, options) for v in values)


def _date_comparator(name: str, compare: Callable[[Any, Any], bool]) -> Callable[[Any, Any], bool]:
    def comparator(field_value: Any, condition_value: Any) -> bool:
        parsed = parse_date(field_value)
        if parsed is None:
            return False
        args = () if condition_value is None else tuple(_as_list(condition_value))
        return compare(parsed, comparison_date(args))
    comparator.__name__ = name
    return comparator


COMPARATORS: Dict[str, Callable[[Any, Any], bool]] = {
    '===': strict_equal,
    '==': loose_equal,
    '!==': not_strict_equal,
    '!=': not_loose_equal,
    '<': _ordered('lt', lambda a, b: a < b),
    '<=': _ordered('lte', lambda a, b: a <= b),
    '>': _ordered('gt', lambda a, b: a > b),
    '>=': _ordered('gte', lambda a, b: a >= b),
    'in': one_of,
    'some': some,
    'all': every,
    'before': _date_comparator('before', lambda a, b: a < b),
    'after': _date_comparator('after', lambda a, b: a > b),
}


def _parse_target(raw: Any, condition_functions: Mapping[str, ConditionFn]) -> Any:
    if isinstance(raw, (list, tuple)):
        return parse_conditions(raw, condition_functions)
    if isinstance(raw, str) or callable(raw):
        return raw
    raise ConfigurationError(f"Invalid next target: {raw!r}")


def parse_condition(raw: Any, condition_functions: Optional[Mapping[str, ConditionFn]] = None) -> Condition:
    """
    Parse one entry of a condition list.

    Raises:
        ConfigurationError: Entry has neither ``fn`` nor ``field``, names an
            unknown function or operator, or has no ``next``
    """
    condition_functions = condition_functions or {}
    if isinstance(raw, (FieldCondition, FunctionCondition, FallbackCondition)):
        return raw
    if isinstance(raw, str) or callable(raw):
        return FallbackCondition(next=raw)
    if not isinstance(raw, Mapping):
        raise ConfigurationError(f"Invalid condition: {raw!r}")
    if 'next' not in raw:
        raise ConfigurationError(f"Condition needs a next target: {dict(raw)}")

    target = _parse_target(raw['next'], condition_functions)

    fn = raw.get('fn')
    if fn is not None:
        if isinstance(fn, str):
            if fn not in condition_functions:
                raise ConfigurationError(f"Undefined condition function: {fn}")
            fn = condition_functions[fn]
        elif not callable(fn):
            raise ConfigurationError(f"Condition fn must be a function or a registered name: {fn!r}")
        return FunctionCondition(fn=fn, next=target)

    if raw.get('field'):
        op = raw.get('op', '===')
        if isinstance(op, str):
            if op not in COMPARATORS:
                raise ConfigurationError(f"Undefined condition operator: {op}")
        elif not callable(op):
            raise ConfigurationError(f"Condition op must be a function or an operator name: {op!r}")
        return FieldCondition(field=raw['field'], op=op, value=raw.get('value'), next=target)

    raise ConfigurationError(f"Condition needs a fn or a field: {dict(raw)}")


def parse_conditions(raw: Any, condition_functions: Optional[Mapping[str, ConditionFn]] = None) -> Conditions:
    """Parse a condition list, warning about entries shadowed by an unconditional fallback"""
    conditions = tuple(parse_condition(entry, condition_functions) for entry in _as_list(raw))

    for index, condition in enumerate(conditions[:-1]):
        if isinstance(condition, FallbackCondition):
            logger.warning(
                f"Unconditional next '{condition.next}' at position {index} makes "
                f"{len(conditions) - index - 1} later condition(s) unreachable"
            )
            break

    return conditions


def parse_next(raw: Any, condition_functions: Optional[Mapping[str, ConditionFn]] = None) -> Conditions:
    """
    Parse a step's ``next`` configuration into a condition tuple.

    A missing ``next`` gives an empty tuple (terminal step); a single step id,
    URL or callable becomes one fallback condition.
    """
    if raw is None or raw == '':
        return ()
    if isinstance(raw, (str, Mapping)) or callable(raw):
        return parse_conditions([raw], condition_functions)
    return parse_conditions(raw, condition_functions)


def context_values(context: Any) -> Mapping[str, Any]:
    if isinstance(context, Mapping):
        return context
    return getattr(context, 'values', None) or {}


def condition_matches(condition: Condition, context: Any) -> bool:
    if isinstance(condition, FunctionCondition):
        return bool(condition.fn(context))

    if isinstance(condition, FieldCondition):
        field_value = context_values(context).get(condition.field)
        if callable(condition.op):
            return bool(condition.op(field_value, context, condition))
        return bool(COMPARATORS[condition.op](field_value, condition.value))

    return True


def resolve_next(conditions: Conditions, context: Any) -> Optional[str]:
    """
    Pick the next step from a condition tuple.

    Conditions are tried in order and the first match wins. Only the matching
    branch's ``next`` is resolved, so callables on other branches never run.
    A matching nested list is resolved recursively and its result returned
    as-is.

    Returns:
        Step id or URL, or None when nothing matches
    """
    for condition in conditions:
        if not condition_matches(condition, context):
            continue

        logger.debug(f"Condition matched: {condition}")
        target = condition.next
        if isinstance(target, tuple):
            return resolve_next(target, context)
        if callable(target):
            return target(context)
        return target

    return None
