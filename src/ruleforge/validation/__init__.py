"""RuleForge validation system.

This module provides the declarative attribute-validation engine:
- Rules: ordered RuleSpecs materialized into validators per pass
- Scenarios: which attributes are active and safe in a given context
- Validators: builtin, canned (store-backed, cross-attribute) and inline
- Errors: ordered attribute-keyed message collection

Usage:
    from ruleforge.validation import (
        register_builtin_validators,
        register_canned_validators,
        ValidationEngine,
    )

    # At application startup
    register_builtin_validators()
    register_canned_validators()
"""

from ruleforge.validation.errors import WIRE_MODEL_KEY, ErrorCollector
from ruleforge.validation.messages import MessageInterpolator
from ruleforge.validation.registry import (
    BaseValidator,
    InlineValidator,
    ValidatorRegistry,
    is_empty,
)
from ruleforge.validation.rules import RuleSet, merge_rules
from ruleforge.validation.scenarios import UNSAFE_PREFIX, ScenarioResolver, derive_scenarios
from ruleforge.validation.services import (
    ValidationEngine,
    ValidationResult,
    validate_multiple,
)
from ruleforge.validation.types import (
    MODEL_LEVEL,
    SCENARIO_DEFAULT,
    ClientFragment,
    ConfigurationError,
    ErrorKey,
    QueryService,
    RuleForgeError,
    RuleSpec,
    UnknownModelError,
    ValidationContext,
    rule,
)
from ruleforge.validation.validators import (
    register_builtin_validators,
    register_canned_validators,
)

__all__ = [
    # Types
    "ClientFragment",
    "ErrorKey",
    "MODEL_LEVEL",
    "QueryService",
    "RuleSpec",
    "SCENARIO_DEFAULT",
    "UNSAFE_PREFIX",
    "ValidationContext",
    "WIRE_MODEL_KEY",
    "rule",
    # Exceptions
    "ConfigurationError",
    "RuleForgeError",
    "UnknownModelError",
    # Registry
    "BaseValidator",
    "InlineValidator",
    "ValidatorRegistry",
    "is_empty",
    # Rules & scenarios
    "RuleSet",
    "ScenarioResolver",
    "derive_scenarios",
    "merge_rules",
    # Services
    "ErrorCollector",
    "MessageInterpolator",
    "ValidationEngine",
    "ValidationResult",
    "validate_multiple",
    # Validators
    "register_builtin_validators",
    "register_canned_validators",
]
