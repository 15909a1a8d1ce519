"""
Built-in field validators

Every validator is called as ``fn(value, *arguments, context=context)`` and
returns a truthy value when the value is acceptable. All validators apart from
``required`` accept an empty value, so optional fields only need ``required``
added to become mandatory.
"""

import re
from datetime import date, datetime
from typing import Any, Dict, Mapping, Optional

from .validation_models import ValidatorFn


EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@.]+(\.[^\s@.]+)+$")
PHONE_PATTERN = re.compile(r"^\(?\+?[\d()\-]{0,15}$")
UK_MOBILE_PATTERN = re.compile(r"^(07|\+447|00447)\d{9}$")
POSTCODE_PATTERN = re.compile(
    r"^(GIR ?0AA|"
    r"((([A-Z][0-9]{1,2})|([A-Z][A-HJ-Y][0-9]{1,2})|([A-Z][0-9][A-Z])|([A-Z][A-HJ-Y][0-9]?[A-Z])) ?[0-9][A-Z]{2}))$",
    re.IGNORECASE
)
ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

DATE_UNITS = ('days', 'weeks', 'months', 'years')


def strict_equal(a: Any, b: Any) -> bool:
    """Equality that does not treat True as 1 or False as 0"""
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a is b
    return a == b


def strict_in(value: Any, options) -> bool:
    return any(strict_equal(value, option) for option in options)


def _empty(value: Any) -> bool:
    return value is None or value == ''


def parse_date(value: Any) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not ISO_DATE_PATTERN.match(value):
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def _shift_date(base: date, amount: int, unit: str) -> date:
    """Move ``base`` back by ``amount`` units, clamping the day for short months"""
    if unit not in DATE_UNITS:
        raise ValueError(f"Unknown date unit: {unit}")
    if unit == 'days':
        return date.fromordinal(base.toordinal() - amount)
    if unit == 'weeks':
        return date.fromordinal(base.toordinal() - amount * 7)

    months = amount * 12 if unit == 'years' else amount
    month_index = base.year * 12 + (base.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = base.day
    while day > 28:
        try:
            return date(year, month, day)
        except ValueError:
            day -= 1
    return date(year, month, day)


def comparison_date(args: tuple) -> date:
    """Resolve ``()``, ``(iso_date,)`` or ``(amount, unit)`` into the date to compare against"""
    today = date.today()
    if not args:
        return today
    if len(args) == 1:
        parsed = parse_date(args[0])
        if parsed is None:
            raise ValueError(f"Invalid comparison date: {args[0]}")
        return parsed
    return _shift_date(today, int(args[0]), str(args[1]))


def required(value: Any, context=None) -> bool:
    return value is not None and value != '' and value is not False


def string(value: Any, context=None) -> bool:
    return _empty(value) or isinstance(value, str)


def regex(value: Any, pattern, context=None) -> bool:
    if _empty(value):
        return True
    if isinstance(pattern, str):
        pattern = re.compile(pattern)
    return bool(pattern.search(str(value)))


def regex_not_match(value: Any, pattern, context=None) -> bool:
    return _empty(value) or not regex(value, pattern)


def alpha(value: Any, context=None) -> bool:
    return regex(value, re.compile(r"^[a-zà-ÿ]*$", re.IGNORECASE))


def alphaex(value: Any, context=None) -> bool:
    return regex(value, re.compile(r"^[a-zà-ÿ\-\s']*$", re.IGNORECASE))


def alphaex1(value: Any, context=None) -> bool:
    return regex(value, re.compile(r"^[a-zà-ÿ][a-zà-ÿ\-\s']*$", re.IGNORECASE))


def alphanum(value: Any, context=None) -> bool:
    return regex(value, re.compile(r"^[a-z0-9]*$", re.IGNORECASE))


def alphanumex(value: Any, context=None) -> bool:
    return regex(value, re.compile(r"^[a-z0-9\-\s']*$", re.IGNORECASE))


def alphanumex1(value: Any, context=None) -> bool:
    return regex(value, re.compile(r"^[a-z0-9][a-z0-9\-\s']*$", re.IGNORECASE))


def numeric(value: Any, context=None) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return value >= 0
    return regex(value, r"^\d*$")


def email(value: Any, context=None) -> bool:
    if _empty(value):
        return True
    return isinstance(value, str) and len(value) <= 254 and bool(EMAIL_PATTERN.match(value))


def minlength(value: Any, length: int, context=None) -> bool:
    return _empty(value) or len(str(value)) >= int(length)


def maxlength(value: Any, length: int, context=None) -> bool:
    return _empty(value) or len(str(value)) <= int(length)


def exactlength(value: Any, length: int, context=None) -> bool:
    return _empty(value) or len(str(value)) == int(length)


def equal(value: Any, *options, context=None) -> bool:
    return _empty(value) or strict_in(value, options)


def phonenumber(value: Any, context=None) -> bool:
    if _empty(value):
        return True
    compact = re.sub(r"\s", "", str(value))
    return bool(PHONE_PATTERN.match(compact)) and any(c.isdigit() for c in compact)


def ukmobilephone(value: Any, context=None) -> bool:
    if _empty(value):
        return True
    return bool(UK_MOBILE_PATTERN.match(re.sub(r"[\s\-]", "", str(value))))


def postcode(value: Any, context=None) -> bool:
    return _empty(value) or bool(POSTCODE_PATTERN.match(str(value).strip()))


def date_(value: Any, context=None) -> bool:
    return _empty(value) or parse_date(value) is not None


def date_year(value: Any, context=None) -> bool:
    return regex(value, r"^\d{4}$")


def date_month(value: Any, context=None) -> bool:
    return _empty(value) or (regex(value, r"^\d{1,2}$") and 1 <= int(value) <= 12)


def date_day(value: Any, context=None) -> bool:
    return _empty(value) or (regex(value, r"^\d{1,2}$") and 1 <= int(value) <= 31)


def before(value: Any, *args, context=None) -> bool:
    """Date strictly before today, an ISO date, or ``amount`` ``unit`` ago"""
    if _empty(value):
        return True
    parsed = parse_date(value)
    return parsed is not None and parsed < comparison_date(args)


def after(value: Any, *args, context=None) -> bool:
    """Date strictly after today, an ISO date, or ``amount`` ``unit`` ago"""
    if _empty(value):
        return True
    parsed = parse_date(value)
    return parsed is not None and parsed > comparison_date(args)


def match(value: Any, other_field: str, context=None) -> bool:
    """Value equals another field's value in the request context (confirmation inputs)"""
    if _empty(value):
        return True
    values = context if isinstance(context, Mapping) else (getattr(context, 'values', None) or {})
    return strict_equal(value, values.get(other_field))


VALIDATORS: Dict[str, ValidatorFn] = {
    'required': required,
    'string': string,
    'regex': regex,
    'regex-not-match': regex_not_match,
    'alpha': alpha,
    'alphaex': alphaex,
    'alphaex1': alphaex1,
    'alphanum': alphanum,
    'alphanumex': alphanumex,
    'alphanumex1': alphanumex1,
    'numeric': numeric,
    'email': email,
    'minlength': minlength,
    'maxlength': maxlength,
    'exactlength': exactlength,
    'equal': equal,
    'phonenumber': phonenumber,
    'ukmobilephone': ukmobilephone,
    'postcode': postcode,
    'date': date_,
    'date-year': date_year,
    'date-month': date_month,
    'date-day': date_day,
    'before': before,
    'after': after,
    'match': match,
}
