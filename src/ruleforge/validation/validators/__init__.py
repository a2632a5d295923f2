"""Builtin and canned validators for RuleForge.

This module provides ready-to-use validators that can be referenced
from rule specifications by alias.
"""

from ruleforge.validation.validators.builtin import (
    BooleanValidator,
    CompareValidator,
    DefaultValueValidator,
    EachValidator,
    EmailValidator,
    FilterValidator,
    IntegerValidator,
    NumberValidator,
    RangeValidator,
    RegularExpressionValidator,
    RequiredValidator,
    SafeValidator,
    StringValidator,
    TrimValidator,
    UrlValidator,
    compare_values,
    register_builtin_validators,
)
from ruleforge.validation.validators.canned import (
    DateRangeValidator,
    ExistValidator,
    UniqueValidator,
    register_canned_validators,
)

__all__ = [
    "BooleanValidator",
    "CompareValidator",
    "DateRangeValidator",
    "DefaultValueValidator",
    "EachValidator",
    "EmailValidator",
    "ExistValidator",
    "FilterValidator",
    "IntegerValidator",
    "NumberValidator",
    "RangeValidator",
    "RegularExpressionValidator",
    "RequiredValidator",
    "SafeValidator",
    "StringValidator",
    "TrimValidator",
    "UniqueValidator",
    "UrlValidator",
    "compare_values",
    "register_builtin_validators",
    "register_canned_validators",
]
