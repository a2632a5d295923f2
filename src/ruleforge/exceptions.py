"""Exceptions raised by RuleForge.

Validation failures are never exceptions; they are recorded as error
messages on the model. These classes cover developer faults only.
"""


class RuleForgeError(Exception):
    """Base class for RuleForge faults."""
    pass


class ConfigurationError(RuleForgeError):
    """Developer error in rules, scenarios, hooks or validator setup.

    Never converted into a validation message; always propagates.
    """
    pass


class UnknownModelError(RuleForgeError):
    """A model/form name was requested that is not registered."""
    pass
