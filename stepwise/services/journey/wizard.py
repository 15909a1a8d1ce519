"""
Wizard - one request's worth of journey handling over caller-owned session data

A wizard groups steps that share a field registry. Several wizards can share
one journey history list. The wizard never stores history or values itself;
the session layer passes them in for each request and persists them after.
"""

from typing import Any, Dict, List, Mapping, Optional
from loguru import logger

from ...core.exceptions import ConfigurationError
from ...core.journey.conditions import ConditionFn
from ...core.journey.journey_models import HistoryEntry, JourneyHistory, RequestContext, StepResult
from ...core.journey.resolver import JourneyResolver, is_external_url
from ...core.validation.validation_engine import ValidationEngine
from ...core.validation.validation_models import ValidatorFn


class Wizard:
    """Combines field validation and step resolution for GET (enter) and POST (submit) requests"""

    def __init__(self, steps: Mapping[str, Any], fields: Mapping[str, Any], name: Optional[str] = None,
                 validators: Optional[Mapping[str, ValidatorFn]] = None,
                 condition_functions: Optional[Mapping[str, ConditionFn]] = None):
        """
        Raises:
            ConfigurationError: Broken validator or condition configuration, or
                a step that uses an undefined field
        """
        self.name = name
        self.fields = fields
        self.logger = logger
        self.engine = ValidationEngine(fields, validators)
        self.resolver = JourneyResolver(steps, condition_functions)

        for key, step in self.resolver.steps.items():
            missing = [field for field in step.fields if field not in self.engine.normalized]
            if missing:
                raise ConfigurationError(f"Step {key} uses undefined fields: {missing}")

    @property
    def entry_points(self) -> List[str]:
        return [key for key, step in self.resolver.steps.items() if step.entry_point]

    def enter(self, step: str, history: JourneyHistory, values: Dict[str, Any],
              extra: Optional[Dict[str, Any]] = None) -> Optional[HistoryEntry]:
        """
        Handle a request to display ``step``.

        Checks reachability, applies ``resetJourney``/``reset`` and completes
        link-only steps straight away.

        Returns:
            The new history entry for a link-only step, otherwise None

        Raises:
            JourneyError: Step is not reachable from the history
        """
        self.resolver.check_step(step, history)
        definition = self.resolver.get_step(step)

        if definition.reset_journey:
            self.logger.info(f"Resetting journey history at {step}")
            history.clear()
        if definition.reset:
            self.logger.info(f"Resetting {self.name or 'wizard'} values at {step}")
            for key in self.fields:
                values.pop(key, None)

        if definition.link_only:
            context = RequestContext(values=dict(values), step=step, extra=extra or {})
            return self.resolver.complete_step(step, context, history, wizard=self.name)
        return None

    def submit(self, step: str, submitted: Mapping[str, Any], history: JourneyHistory,
               values: Dict[str, Any], extra: Optional[Dict[str, Any]] = None) -> StepResult:
        """
        Handle a form submission for ``step``.

        Validates the step's fields, and on success applies the invalidation
        cascade, stores the values and records the step in history. Values of
        dependent fields that are not in play are stored as None.

        Raises:
            JourneyError: Step is not reachable from the history
        """
        self.resolver.check_step(step, history)
        definition = self.resolver.get_step(step)

        form = {key: submitted.get(key, '') for key in definition.fields}
        merged = {**values, **form}
        for key in definition.fields:
            if not self.engine.is_allowed_dependent(key, merged):
                form[key] = None
        context = RequestContext(values={**values, **form}, step=step, extra=extra or {})

        errors = self.engine.validate_fields(definition.fields, context.values, context)
        if errors:
            self.logger.info(f"Step {step} failed validation: {sorted(errors)}")
            return StepResult(step=step, success=False, errors=errors)

        invalidated = self.resolver.invalidate(step, form, values, history, self.fields)
        values.update(form)
        context.values = dict(values)

        entry = self.resolver.complete_step(step, context, history, wizard=self.name)
        self.logger.info(f"Step {step} complete, next {entry.next}")
        return StepResult(
            step=step,
            success=True,
            next=entry.next,
            external=is_external_url(entry.next),
            invalidated=invalidated
        )
