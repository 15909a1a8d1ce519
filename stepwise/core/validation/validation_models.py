"""
Validation models - field definitions, resolved validators and field errors
"""

from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union
from pydantic import BaseModel, ConfigDict, Field

from ..exceptions import ConfigurationError


ValidatorFn = Callable[..., Any]


class FieldDefinition(BaseModel):
    """
    Declarative definition of one field, as written in a journey file.

    Attributes:
        key: Field identifier
        validators: Raw validator specs (``validate`` in config) - a name, a
            named function, a ``{type, fn, arguments}`` record or a list of those
        options: Allowed values, literals or ``{value, ...}`` records
        items: Alias of options used by checkbox and radio groups
        dependent: ``"other"`` or ``{field, value}`` - field only in play when
            the other field's value matches
        invalidates: Fields cleared when this field's value changes
        error_group: Group name copied onto errors for grouped inputs
    """
    model_config = ConfigDict(extra="allow", populate_by_name=True, arbitrary_types_allowed=True)

    key: Optional[str] = None
    validators: Any = Field(default=None, alias="validate")
    options: Optional[List[Any]] = None
    items: Optional[List[Any]] = None
    dependent: Optional[Union[str, Dict[str, Any]]] = None
    invalidates: List[str] = Field(default_factory=list)
    error_group: Optional[str] = Field(default=None, alias="errorGroup")
    default: Any = None

    @classmethod
    def coerce(cls, key: str, field: Any) -> "FieldDefinition":
        """Build a definition from a dict or copy an existing one, never mutating the input"""
        if isinstance(field, cls):
            return field if field.key else field.model_copy(update={"key": key})
        if field is None:
            return cls(key=key)
        if isinstance(field, Mapping):
            return cls.model_validate({"key": key, **field})
        raise ConfigurationError(f"Field '{key}' must be a mapping, got {type(field).__name__}")


class Dependent(BaseModel):
    """Normalized dependent gate: the field is in play when ``field`` has one of ``value``"""
    model_config = ConfigDict(frozen=True)

    field: str
    value: Any = True

    @classmethod
    def coerce(cls, dependent: Union[str, Mapping[str, Any], None]) -> Optional["Dependent"]:
        if not dependent:
            return None
        if isinstance(dependent, str):
            return cls(field=dependent, value=True)
        if "field" not in dependent:
            raise ConfigurationError(f"Dependent definition needs a field: {dict(dependent)}")
        return cls(field=dependent["field"], value=dependent.get("value", True))


class Validator(BaseModel):
    """
    A resolved validator: ``fn(value, *arguments, context=context)`` returns truthy when valid.

    ``context`` is only passed when ``takes_context`` is set, so plain
    ``fn(value, *arguments)`` functions work too.
    """
    model_config = ConfigDict(frozen=True, extra="allow", arbitrary_types_allowed=True)

    type: str
    fn: ValidatorFn
    arguments: Tuple[Any, ...] = ()
    takes_context: bool = True

    def apply(self, value: Any, context: Any = None) -> Any:
        if self.takes_context:
            return self.fn(value, *self.arguments, context=context)
        return self.fn(value, *self.arguments)


class NormalizedField(BaseModel):
    """Immutable, validated form of a FieldDefinition built once per engine"""
    model_config = ConfigDict(frozen=True)

    key: str
    validators: Tuple[Validator, ...] = ()
    dependent: Optional[Dependent] = None
    invalidates: Tuple[str, ...] = ()
    error_group: Optional[str] = None


class ValidationError(BaseModel):
    """
    First failing validator for a field.

    Returned as data so the caller can re-render the step; never raised.
    Extra keys from the validator record (for example a custom message) are
    carried through.
    """
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    key: str
    type: str
    error_group: Optional[str] = Field(default=None, alias="errorGroup")
    arguments: List[Any] = Field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for service layer communication"""
        return self.model_dump(by_alias=True)
