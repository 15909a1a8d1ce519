"""
Journey resolver - step reachability, next-step resolution and history bookkeeping

History and stored values belong to the caller's session layer. They are
passed in by reference on every call, mutated in place and never kept here.
Requests for the same journey must be serialised by the caller; two requests
racing on one history will both see and write a stale copy.
"""

from typing import Any, Dict, List, Mapping, Optional
from loguru import logger

from ..exceptions import ConfigurationError, JourneyError
from ..validation.validation_models import FieldDefinition
from .conditions import ConditionFn, context_values, parse_next, resolve_next
from .journey_models import Conditions, HistoryEntry, JourneyHistory, StepDefinition


EXTERNAL_URL_PREFIXES = ('http://', 'https://', '//')


def is_external_url(target: Optional[str]) -> bool:
    return isinstance(target, str) and target.startswith(EXTERNAL_URL_PREFIXES)


class JourneyResolver:
    """
    State machine over a step graph.

    Steps are states, resolved ``next`` targets are transitions and entry
    points (or steps reachable from history) are initial states.
    """

    def __init__(self, steps: Mapping[str, Any], condition_functions: Optional[Mapping[str, ConditionFn]] = None):
        """
        Args:
            steps: Step definitions by route (dicts or StepDefinition)
            condition_functions: Named functions that YAML conditions may refer to

        Raises:
            ConfigurationError: A step's next configuration is malformed
        """
        self.logger = logger
        self.steps: Dict[str, StepDefinition] = {
            key: StepDefinition.coerce(key, step) for key, step in steps.items()
        }
        self.next_conditions: Dict[str, Conditions] = {
            key: parse_next(step.next, condition_functions) for key, step in self.steps.items()
        }

    def get_step(self, step: str) -> StepDefinition:
        definition = self.steps.get(step)
        if definition is None:
            raise ConfigurationError(f"Unknown step: {step}")
        return definition

    def is_step_allowed(self, step: str, history: JourneyHistory) -> bool:
        """
        Check whether ``step`` may be entered given the journey history.

        Allowed when the step is an entry point, does not check the journey,
        has a prerequisite step in history, or is the recorded next step of
        any history entry. A ``resetJourney`` step is also allowed on an
        empty history.
        """
        definition = self.get_step(step)
        if definition.entry_point or not definition.check_journey:
            return True
        if definition.reset_journey and not history:
            return True

        visited = {entry.step for entry in history}
        if any(prereq in visited for prereq in definition.prereqs):
            self.logger.debug(f"Step {step} allowed by prerequisite in history")
            return True

        return any(entry.next == step for entry in history)

    def check_step(self, step: str, history: JourneyHistory) -> None:
        """
        Raise unless ``step`` is reachable.

        Raises:
            JourneyError: ``MISSING_PREREQ`` when history is empty, otherwise
                ``STEP_NOT_ALLOWED`` with the latest history step as fallback
        """
        if self.is_step_allowed(step, history):
            return

        if not history:
            self.logger.warning(f"Attempt to access {step} without prerequisite")
            raise JourneyError(
                f"Attempt to access protected page {step} without prerequisite",
                step=step,
                code=JourneyError.MISSING_PREREQ
            )

        fallback = history[-1].step
        self.logger.info(f"Step {step} not allowed, falling back to {fallback}")
        raise JourneyError(
            f"Step {step} is not reachable from the journey history",
            step=step,
            fallback=fallback,
            code=JourneyError.STEP_NOT_ALLOWED
        )

    def next_step(self, step: str, context: Any) -> Optional[str]:
        """
        Resolve the step after ``step`` for the given context.

        Returns:
            Step id or external URL, or None for a step without ``next``

        Raises:
            ConfigurationError: ``next`` is configured but no branch matches
        """
        conditions = self.next_conditions.get(step)
        if conditions is None:
            raise ConfigurationError(f"Unknown step: {step}")
        if not conditions:
            return None

        target = resolve_next(conditions, context)
        if target is None:
            raise ConfigurationError(f"No next step matched for {step}; add an unconditional fallback")
        self.logger.debug(f"Resolved next step for {step}: {target}")
        return target

    def invalidate(self, step: str, submitted: Mapping[str, Any], stored_values: Dict[str, Any],
                   history: JourneyHistory, fields: Mapping[str, Any]) -> List[str]:
        """
        Clear data that depends on changed answers.

        For each field of ``step`` whose submitted value differs from the
        stored one, every field it ``invalidates`` is removed from
        ``stored_values``. History is truncated after the entry for ``step``
        or, when ``step`` is not in history yet, from the first entry that
        recorded an invalidated field. Invalidated fields' own ``invalidates``
        lists are not followed.

        Returns:
            Field keys removed from stored values
        """
        definition = self.get_step(step)
        invalidated: List[str] = []

        for key in definition.fields:
            if key not in submitted or key not in fields:
                continue
            if submitted[key] == stored_values.get(key):
                continue
            for target in FieldDefinition.coerce(key, fields[key]).invalidates:
                if target not in invalidated:
                    invalidated.append(target)

        if not invalidated:
            return []

        for target in invalidated:
            stored_values.pop(target, None)
        self.logger.debug(f"Step {step} invalidated fields {invalidated}")

        position = next((i for i, entry in enumerate(history) if entry.step == step), None)
        if position is not None:
            cut = position + 1
        else:
            cut = next(
                (i for i, entry in enumerate(history) if any(target in entry.fields for target in invalidated)),
                len(history)
            )

        if cut < len(history):
            removed = [entry.step for entry in history[cut:]]
            del history[cut:]
            self.logger.debug(f"Truncated journey history after {step}: removed {removed}")

        return invalidated

    def complete_step(self, step: str, context: Any, history: JourneyHistory,
                      wizard: Optional[str] = None) -> HistoryEntry:
        """
        Record ``step`` as complete.

        Resolves the next step and records the step's values. An earlier entry
        for the same step is replaced in place so downstream entries keep their
        order; otherwise the entry is appended.
        """
        definition = self.get_step(step)
        target = self.next_step(step, context)

        values = context_values(context)
        entry = HistoryEntry(
            step=step,
            next=target,
            wizard=wizard,
            fields={key: values.get(key) for key in definition.fields},
            skip=definition.link_only
        )

        position = next((i for i, existing in enumerate(history) if existing.step == step), None)
        if position is None:
            history.append(entry)
        else:
            history[position] = entry
        self.logger.debug(f"Completed step {step}, next {target}")
        return entry
