"""
Query Validation
================

Converts untyped query-string parameters into a TimerConfigUpdate.
Invalid fields are dropped one by one instead of failing the request.
"""

from typing import Any, Dict, Mapping

from pydantic import ValidationError

from countdown_png.config.logging import get_logger
from countdown_png.models.schemas import TimerConfigUpdate

logger = get_logger(__name__)

# Query parameter name -> TimerConfig field
QUERY_FIELDS: Dict[str, str] = {
    "date": "target_date",
    "buttonColor": "button_color",
    "color": "text_color",
    "preferredSize": "preferred_size",
    "align": "align",
    "padding": "padding",
    "margin": "margin",
    "gap": "gap",
    "backgroundColor": "background_color",
}


class ConfigValidationError(ValueError):
    """Exception raised when a single query field is malformed."""

    def __init__(self, param: str, value: str, reason: str):
        self.param = param
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid value for {param!r}: {reason}")


def validate_field(param: str, value: str) -> Dict[str, Any]:
    """
    Validate one query parameter.

    Returns:
        Mapping of the TimerConfig field name to its typed value

    Raises:
        ConfigValidationError: If the value is not acceptable for the field
    """
    field = QUERY_FIELDS[param]
    try:
        update = TimerConfigUpdate.model_validate({field: value.strip()})
    except ValidationError as e:
        raise ConfigValidationError(param, value, e.errors()[0]["msg"]) from e
    return update.model_dump(exclude_none=True)


def parse_timer_query(params: Mapping[str, str]) -> TimerConfigUpdate:
    """Build an update from every recognised and valid query parameter."""
    fields: Dict[str, Any] = {}
    for param in QUERY_FIELDS:
        value = params.get(param)
        if value is None:
            continue
        try:
            fields.update(validate_field(param, value))
        except ConfigValidationError as e:
            logger.warning(
                "Ignoring invalid timer parameter", param=e.param, value=e.value, reason=e.reason
            )
    return TimerConfigUpdate(**fields)
