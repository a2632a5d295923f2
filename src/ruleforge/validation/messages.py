"""Message interpolation for validator error templates."""

import re
from datetime import date, datetime
from decimal import Decimal
from typing import Any


class MessageInterpolator:
    """Interpolates labels, parameters and values into error messages.

    Supports:
    - {attribute} - Label of the attribute under validation
    - {value} - Current value of the attribute under validation
    - {param} - Any validator parameter passed to ``interpolate``
    - {fieldName} or {fieldName:value} - Formatted value of another attribute
    - {fieldName:raw} - Raw value of another attribute
    - {fieldName:label} - Label of another attribute

    Unknown placeholders are left untouched so the client can fill
    ``{value}`` in pre-rendered messages.
    """

    # Pattern: {name[:modifier]}
    PATTERN = re.compile(r"\{(?P<field>\w+)(?::(?P<modifier>value|raw|label))?\}")

    def __init__(
        self,
        labels: dict[str, str] | None = None,
        record: dict[str, Any] | None = None,
    ):
        """Initialize the interpolator.

        Args:
            labels: Dict of attribute name -> display label
            record: Current attribute values, for cross-attribute placeholders
        """
        self.labels = labels or {}
        self.record = record or {}

    def interpolate(
        self,
        template: str,
        params: dict[str, Any] | None = None,
        keep: tuple[str, ...] = (),
    ) -> str:
        """Interpolate parameters and attribute values into a template.

        Args:
            template: Message template with {name} placeholders
            params: Placeholder values that take precedence over attributes
            keep: Placeholder names to leave as-is

        Returns:
            Message with placeholders replaced
        """
        params = params or {}

        def replace(match: re.Match) -> str:
            name = match.group("field")
            modifier = match.group("modifier")

            if name in keep:
                return match.group(0)

            if modifier is None and name in params:
                return self.format_value(params[name])

            if modifier == "label":
                return self.label_for(name)

            if name not in self.record:
                return match.group(0)

            value = self.record[name]
            if modifier == "raw":
                return str(value) if value is not None else ""
            return self.format_value(value)

        return self.PATTERN.sub(replace, template)

    def label_for(self, name: str) -> str:
        if name in self.labels:
            return self.labels[name]
        return to_title_case(name)

    def format_value(self, value: Any) -> str:
        """Format a value for display."""
        if value is None:
            return ""
        if isinstance(value, bool):
            return "Yes" if value else "No"
        if isinstance(value, datetime):
            return value.strftime("%B %d, %Y %I:%M %p")
        if isinstance(value, date):
            return value.strftime("%B %d, %Y")
        if isinstance(value, Decimal):
            return f"{value:,.2f}"
        if isinstance(value, (list, tuple, set)):
            return ", ".join(self.format_value(v) for v in value)
        return str(value)


def to_title_case(name: str) -> str:
    """Convert camelCase or snake_case to Title Case."""
    result = re.sub(r"([A-Z])", r" \1", name.replace("_", " "))
    return " ".join(result.split()).title()
