"""Journey resolution - step reachability, conditional next steps and history."""

from .conditions import COMPARATORS, parse_conditions, parse_next, resolve_next
from .journey_models import (
    FallbackCondition, FieldCondition, FunctionCondition, HistoryEntry, JourneyConfig,
    JourneyHistory, RequestContext, StepDefinition, StepResult, WalkResult
)
from .resolver import JourneyResolver, is_external_url

__all__ = [
    "COMPARATORS",
    "parse_conditions",
    "parse_next",
    "resolve_next",
    "FallbackCondition",
    "FieldCondition",
    "FunctionCondition",
    "HistoryEntry",
    "JourneyConfig",
    "JourneyHistory",
    "RequestContext",
    "StepDefinition",
    "StepResult",
    "WalkResult",
    "JourneyResolver",
    "is_external_url",
]
