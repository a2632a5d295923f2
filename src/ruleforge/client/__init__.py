"""Client-side validation: descriptors and a reference runtime."""

from ruleforge.client.bridge import (
    FRAGMENT_BINDINGS,
    AttributeClientSpec,
    ClientFormSpec,
    ClientValidationBridge,
)
from ruleforge.client.runtime import (
    ClientResult,
    ClientSubmission,
    ClientValidationSession,
    SubmissionCancelled,
)

__all__ = [
    "AttributeClientSpec",
    "ClientFormSpec",
    "ClientResult",
    "ClientSubmission",
    "ClientValidationBridge",
    "ClientValidationSession",
    "FRAGMENT_BINDINGS",
    "SubmissionCancelled",
]
