"""
Journey models and types - Core layer
Step definitions, next-step conditions and journey history
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union
from pydantic import BaseModel, ConfigDict, Field

from ..exceptions import ConfigurationError
from ..validation.validation_models import FieldDefinition, ValidationError


class StepDefinition(BaseModel):
    """
    Declarative definition of one step, keyed by its route.

    ``next`` is a step id, an external URL, a callable taking the request
    context, or a list of conditions (see ``conditions.parse_next``).
    """
    model_config = ConfigDict(extra="allow", populate_by_name=True, arbitrary_types_allowed=True)

    key: Optional[str] = None
    next: Any = None
    fields: List[str] = Field(default_factory=list)
    entry_point: bool = Field(default=False, alias="entryPoint")
    check_journey: bool = Field(default=True, alias="checkJourney")
    prereq: Optional[Union[str, List[str]]] = None
    reset: bool = False
    reset_journey: bool = Field(default=False, alias="resetJourney")
    skip: bool = False
    no_post: bool = Field(default=False, alias="noPost")
    editable: bool = False
    template: Optional[str] = None

    @property
    def prereqs(self) -> List[str]:
        if not self.prereq:
            return []
        return [self.prereq] if isinstance(self.prereq, str) else list(self.prereq)

    @property
    def link_only(self) -> bool:
        """Steps without a form are complete as soon as they are entered"""
        return self.skip or self.no_post

    @classmethod
    def coerce(cls, key: str, step: Any) -> "StepDefinition":
        if isinstance(step, cls):
            return step if step.key else step.model_copy(update={"key": key})
        if step is None:
            return cls(key=key)
        if isinstance(step, Mapping):
            return cls.model_validate({"key": key, **step})
        raise ConfigurationError(f"Step '{key}' must be a mapping, got {type(step).__name__}")


@dataclass(frozen=True)
class FieldCondition:
    """Matches when ``op(values[field], value)`` holds; ``op`` defaults to strict equality"""
    field: str
    next: Any
    op: Union[str, Callable[..., Any]] = '==='
    value: Any = None


@dataclass(frozen=True)
class FunctionCondition:
    """Matches when ``fn(context)`` returns a truthy value"""
    fn: Callable[[Any], Any]
    next: Any


@dataclass(frozen=True)
class FallbackCondition:
    """Always matches - a bare step id, URL or callable in a condition list"""
    next: Any


Condition = Union[FieldCondition, FunctionCondition, FallbackCondition]
Conditions = Tuple[Condition, ...]


@dataclass
class RequestContext:
    """
    Per-request evaluation context handed to validators, conditions and next callables.

    Attributes:
        values: Stored values overlaid with the values submitted in this request
        step: Step being processed
        extra: Free-form per-request data for custom functions
    """
    values: Dict[str, Any] = field(default_factory=dict)
    step: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)


class HistoryEntry(BaseModel):
    """One completed step in the journey history"""
    step: str
    next: Optional[str] = None
    wizard: Optional[str] = None
    fields: Dict[str, Any] = Field(default_factory=dict)
    skip: bool = False


JourneyHistory = List[HistoryEntry]


class JourneyConfig(BaseModel):
    """Journey definition model loaded from YAML"""
    name: str
    fields: Dict[str, FieldDefinition] = Field(default_factory=dict)
    steps: Dict[str, StepDefinition]


class StepResult(BaseModel):
    """Outcome of submitting one step"""
    step: str
    success: bool
    errors: Dict[str, ValidationError] = Field(default_factory=dict)
    next: Optional[str] = None
    external: bool = False
    invalidated: List[str] = Field(default_factory=list)


class WalkResult(BaseModel):
    """Outcome of walking a journey with scripted answers"""
    success: bool
    path: List[str] = Field(default_factory=list)
    exit: Optional[str] = None
    step: Optional[str] = None
    errors: Dict[str, ValidationError] = Field(default_factory=dict)
    error: Optional[str] = None
    values: Dict[str, Any] = Field(default_factory=dict)
    history: List[HistoryEntry] = Field(default_factory=list)
