"""Runtime configuration for RuleForge."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

TRUE_VALUES = ("1", "true", "yes")


@dataclass
class Settings:
    """Settings for the HTTP app and the CLI.

    Attributes:
        forms_path: Directory holding form YAML files
        scenario_fallback: Validate all attributes for undeclared scenarios
            instead of raising ConfigurationError
        log_level: Root logging level name
        host: Bind host for ``ruleforge serve``
        port: Bind port for ``ruleforge serve``
        cors_origins: Origins allowed to call the validation API
    """

    forms_path: Path = Path("forms")
    scenario_fallback: bool = False
    log_level: str = "INFO"
    host: str = "127.0.0.1"
    port: int = 8000
    cors_origins: list[str] = field(default_factory=lambda: ["http://localhost:5173"])

    @classmethod
    def from_env(cls, base_path: Path | None = None) -> Settings:
        """Create settings from environment variables.

        Variables:
        - RULEFORGE_FORMS_PATH (default: {base_path}/forms)
        - RULEFORGE_SCENARIO_FALLBACK (1/true/yes to enable)
        - RULEFORGE_LOG_LEVEL (default: INFO)
        - RULEFORGE_HOST / RULEFORGE_PORT
        - RULEFORGE_CORS_ORIGINS (comma separated)
        """
        forms_path = os.environ.get("RULEFORGE_FORMS_PATH")
        if forms_path:
            path = Path(forms_path)
        else:
            path = (base_path or Path.cwd()) / "forms"

        origins = os.environ.get("RULEFORGE_CORS_ORIGINS")

        return cls(
            forms_path=path,
            scenario_fallback=os.environ.get("RULEFORGE_SCENARIO_FALLBACK", "").lower() in TRUE_VALUES,
            log_level=os.environ.get("RULEFORGE_LOG_LEVEL", "INFO").upper(),
            host=os.environ.get("RULEFORGE_HOST", "127.0.0.1"),
            port=int(os.environ.get("RULEFORGE_PORT", "8000")),
            cors_origins=(
                [o.strip() for o in origins.split(",") if o.strip()]
                if origins is not None
                else ["http://localhost:5173"]
            ),
        )
