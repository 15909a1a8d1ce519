"""
Core exceptions for stepwise
"""

from typing import Optional


class StepwiseError(Exception):
    """Base exception for stepwise"""
    pass

class ConfigError(StepwiseError):
    """Configuration related errors"""
    pass

class ConfigurationError(ConfigError):
    """Invalid field or step definition - a developer error, never retried"""
    pass

class ServiceError(StepwiseError):
    """Service layer errors"""
    pass


class JourneyError(ServiceError):
    """Step requested out of journey order

    Carries the attempted step and, when the journey has history, the step the
    caller should redirect back to.
    """

    MISSING_PREREQ = "MISSING_PREREQ"
    STEP_NOT_ALLOWED = "STEP_NOT_ALLOWED"

    def __init__(self, message: str, step: str, fallback: Optional[str] = None, code: Optional[str] = None):
        super().__init__(message)
        self.step = step
        self.fallback = fallback
        self.code = code or (self.STEP_NOT_ALLOWED if fallback else self.MISSING_PREREQ)
