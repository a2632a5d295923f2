"""RuleForge - declarative attribute validation for Python models."""

from ruleforge.model import Model, ModelRegistry, model
from ruleforge.validation import (
    MODEL_LEVEL,
    ConfigurationError,
    ValidationEngine,
    register_builtin_validators,
    register_canned_validators,
    rule,
)

__version__ = "0.1.0"

__all__ = [
    "MODEL_LEVEL",
    "ConfigurationError",
    "Model",
    "ModelRegistry",
    "ValidationEngine",
    "model",
    "register_builtin_validators",
    "register_canned_validators",
    "rule",
]
