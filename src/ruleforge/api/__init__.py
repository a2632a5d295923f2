"""HTTP surface of RuleForge."""

from ruleforge.api.ajax import (
    AjaxValidationProtocol,
    AjaxValidationRequest,
    AjaxValidationResponse,
)

__all__ = [
    "AjaxValidationProtocol",
    "AjaxValidationRequest",
    "AjaxValidationResponse",
]
