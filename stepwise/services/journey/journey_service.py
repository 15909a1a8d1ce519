"""
Journey Service - Internal API for journey definition files
Loads YAML journey definitions, builds wizards and walks journeys with scripted answers
"""

from pathlib import Path
from typing import Any, Dict, Mapping, Optional
from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from ...core.config import ConfigLoader
from ...core.exceptions import ConfigError, JourneyError
from ...core.journey.conditions import ConditionFn
from ...core.journey.journey_models import JourneyConfig, JourneyHistory, WalkResult
from ...core.journey.resolver import is_external_url
from ...core.validation.validation_models import ValidatorFn
from .wizard import Wizard


class JourneyService:
    """Journey service for loading and exercising journey definitions"""

    def __init__(self, validators: Optional[Mapping[str, ValidatorFn]] = None,
                 condition_functions: Optional[Mapping[str, ConditionFn]] = None):
        """
        Args:
            validators: Custom validator functions YAML fields may name
            condition_functions: Custom condition functions YAML conditions may name
        """
        self.config_loader = ConfigLoader()
        self.validators = validators
        self.condition_functions = condition_functions
        self.logger = logger

    async def load_config(self, config_path: Path) -> JourneyConfig:
        """Load and validate a journey definition"""
        config_data = await self.config_loader.load_yaml(config_path)
        await self.config_loader.validate_config_keys(config_data, ['name', 'steps'])

        try:
            journey_config = JourneyConfig(**config_data)
        except PydanticValidationError as e:
            raise ConfigError(f"Failed to load journey config: {e}")

        self.logger.debug(f"Loaded journey config: {journey_config.name}")
        return journey_config

    async def load_answers(self, answers_path: Path) -> Dict[str, Dict[str, Any]]:
        """Load scripted answers: a mapping of step to submitted field values"""
        answers = await self.config_loader.load_yaml(answers_path)
        for step, submitted in answers.items():
            if submitted is not None and not isinstance(submitted, dict):
                raise ConfigError(f"Answers for step {step} must be a mapping of field values")
        return {step: submitted or {} for step, submitted in answers.items()}

    def build_wizard(self, config: JourneyConfig) -> Wizard:
        """
        Build a wizard from a loaded definition.

        Raises:
            ConfigurationError: Validators, conditions or step fields are invalid
        """
        wizard = Wizard(
            config.steps,
            config.fields,
            name=config.name,
            validators=self.validators,
            condition_functions=self.condition_functions
        )
        self.logger.info(f"Built wizard {config.name}: {len(config.steps)} steps, {len(config.fields)} fields")
        return wizard

    def walk(self, wizard: Wizard, answers: Mapping[str, Mapping[str, Any]],
             start: Optional[str] = None, max_steps: int = 100) -> WalkResult:
        """
        Walk a journey from its entry point, submitting each step's answers.

        Stops at a step without ``next``, at an external URL, or at the first
        step whose answers fail validation.
        """
        history: JourneyHistory = []
        values: Dict[str, Any] = {}
        path = []

        step = start
        if step is None:
            if not wizard.entry_points:
                raise ConfigError(f"Journey {wizard.name} has no entry point")
            step = wizard.entry_points[0]

        try:
            while len(path) < max_steps:
                self.logger.info(f"Processing step: {step}")
                path.append(step)

                entry = wizard.enter(step, history, values)
                if entry is not None:
                    target = entry.next
                else:
                    result = wizard.submit(step, answers.get(step, {}), history, values)
                    if not result.success:
                        return WalkResult(success=False, path=path, step=step, errors=result.errors,
                                          error=f"Validation failed at {step}", values=values, history=history)
                    target = result.next

                if target is None or is_external_url(target):
                    self.logger.info(f"Journey finished at {step}")
                    return WalkResult(success=True, path=path, exit=target, values=values, history=history)
                step = target

        except JourneyError as e:
            self.logger.error(f"Journey failed: {e}")
            return WalkResult(success=False, path=path, step=e.step, error=str(e), values=values, history=history)

        return WalkResult(success=False, path=path, step=step, values=values, history=history,
                          error=f"Journey did not finish within {max_steps} steps")
