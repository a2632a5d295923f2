"""AJAX re-validation protocol.

A client sends the scenario and the raw submitted values; the server
builds a fresh model, loads the values exactly as a normal submission
would, validates, and answers with the errors keyed by attribute.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable, Sequence

from pydantic import BaseModel, Field, RootModel

from ruleforge.validation.services import ValidationEngine
from ruleforge.validation.types import SCENARIO_DEFAULT

if TYPE_CHECKING:
    from ruleforge.model import Model

logger = logging.getLogger(__name__)


class AjaxValidationRequest(BaseModel):
    """Request body: ``{scenario, attributes, only?}``."""

    scenario: str = SCENARIO_DEFAULT
    attributes: dict[str, Any] = Field(default_factory=dict)
    only: list[str] | None = None


class AjaxValidationResponse(RootModel[dict[str, list[str]]]):
    """Response body: ``{attribute: [messages]}``; empty means valid."""
    pass


class AjaxValidationProtocol:
    """Server side of the AJAX validation round trip.

    The result is identical to loading the same values into a model in
    process and running the engine on it.

    Args:
        model_factory: Builds a fresh model for every request
        engine: Engine used for the pass
    """

    def __init__(
        self,
        model_factory: Callable[[], Model],
        engine: ValidationEngine | None = None,
    ):
        self.model_factory = model_factory
        self.engine = engine or ValidationEngine()

    async def validate(
        self,
        scenario: str,
        values: dict[str, Any],
        only: Sequence[str] | None = None,
    ) -> dict[str, list[str]]:
        model = self.model_factory()
        model.scenario = scenario
        model.load(values)

        result = await self.engine.run(model, scenario, attribute_names=only)
        errors = result.errors.to_dict()
        logger.debug(
            "AJAX validation of %s (scenario=%s, only=%s): %d attribute(s) with errors",
            type(model).__name__,
            scenario,
            only,
            len(errors),
        )
        return errors

    async def handle(self, request: AjaxValidationRequest) -> AjaxValidationResponse:
        errors = await self.validate(request.scenario, request.attributes, request.only)
        return AjaxValidationResponse(errors)

    async def __call__(self, payload: dict[str, Any]) -> dict[str, list[str]]:
        """Accept a raw wire payload; lets the protocol act as a client remote."""
        request = AjaxValidationRequest.model_validate(payload)
        return (await self.handle(request)).root
