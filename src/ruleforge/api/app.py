"""FastAPI application exposing AJAX validation for registered forms."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import APIRouter, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from ruleforge.api.ajax import (
    AjaxValidationProtocol,
    AjaxValidationRequest,
    AjaxValidationResponse,
)
from ruleforge.client.bridge import ClientValidationBridge
from ruleforge.config import Settings
from ruleforge.exceptions import ConfigurationError, UnknownModelError
from ruleforge.metadata.loader import FormLoader, register_forms
from ruleforge.metadata.validator import validate_forms_dir
from ruleforge.model import Model, ModelRegistry
from ruleforge.validation import (
    SCENARIO_DEFAULT,
    QueryService,
    ValidationEngine,
    register_builtin_validators,
    register_canned_validators,
)

logger = logging.getLogger(__name__)


def _model_class(registry: type[ModelRegistry], form: str) -> type[Model]:
    try:
        return registry.get(form)
    except UnknownModelError as e:
        raise HTTPException(404, str(e)) from e


def create_validation_router(
    registry: type[ModelRegistry] = ModelRegistry,
    engine: ValidationEngine | None = None,
    bridge: ClientValidationBridge | None = None,
) -> APIRouter:
    """Create the validation router with injected dependencies."""
    router = APIRouter(prefix="/api", tags=["validation"])
    engine = engine or ValidationEngine()
    bridge = bridge or ClientValidationBridge()

    @router.get("/forms")
    async def list_forms() -> dict[str, Any]:
        """List registered forms."""
        return {"data": registry.list_registered()}

    @router.post("/validate/{form}")
    async def validate_form(form: str, request: AjaxValidationRequest) -> AjaxValidationResponse:
        """Validate submitted values; an empty object means the values are valid."""
        model_class = _model_class(registry, form)
        protocol = AjaxValidationProtocol(model_class, engine=engine)
        try:
            return await protocol.handle(request)
        except ConfigurationError as e:
            logger.warning("Configuration error validating form '%s': %s", form, e)
            raise HTTPException(400, str(e)) from e

    @router.get("/forms/{form}/client")
    async def get_client_spec(form: str, scenario: str = SCENARIO_DEFAULT) -> dict[str, Any]:
        """Return the client-side validation descriptor of a form."""
        model_class = _model_class(registry, form)
        try:
            spec = bridge.build(model_class(scenario=scenario))
        except ConfigurationError as e:
            logger.warning("Configuration error building client spec for '%s': %s", form, e)
            raise HTTPException(400, str(e)) from e
        return {"data": spec.to_dict()}

    return router


def create_app(
    settings: Settings | None = None,
    query_service: QueryService | None = None,
) -> FastAPI:
    """Build the FastAPI app. Forms are loaded from ``settings.forms_path`` on startup."""
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Register validators and load forms on startup."""
        register_builtin_validators()
        register_canned_validators()

        forms_path = settings.forms_path
        if forms_path.is_dir():
            # Validate form YAML against the JSON Schema (warn on errors, don't block startup)
            schema_issues = validate_forms_dir(forms_path)
            error_count = sum(1 for i in schema_issues if i.severity == "error")
            warn_count = sum(1 for i in schema_issues if i.severity == "warning")
            for issue in schema_issues:
                if issue.severity == "error":
                    logger.error("Form schema error: %s", issue)
                else:
                    logger.warning("Form schema warning: %s", issue)
            if schema_issues:
                logger.warning(
                    "Form validation: %d error(s), %d warning(s). "
                    "Run 'ruleforge forms validate' for details.",
                    error_count,
                    warn_count,
                )

        loader = FormLoader(forms_path)
        loader.load_all()
        register_forms(loader, scenario_fallback=settings.scenario_fallback)
        app.state.form_loader = loader
        app.state.settings = settings

        yield

    app = FastAPI(title="RuleForge API", lifespan=lifespan)

    if settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.include_router(
        create_validation_router(
            ModelRegistry,
            engine=ValidationEngine(query_service=query_service),
        )
    )
    return app
