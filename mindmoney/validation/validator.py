"""
Request Validation

DESIGN DECISION: Request data is validated at the router boundary,
before any handler runs. Handlers only ever receive typed request
models, never raw JSON.

Two kinds of input are checked:
- JSON bodies, against the route's pydantic request model
- query parameters with a fixed format (dates)

IMPORTANT: Validation NEVER silently fixes issues.
An invalid request is rejected with a 400 naming the offending
fields; pydantic's full report goes to the log only.
"""

import json
from datetime import date
from typing import Any, Mapping, Optional, Type, TypeVar

import structlog
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from mindmoney.errors import ValidationError


logger = structlog.get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def _field_names(error: PydanticValidationError) -> list[str]:
    names = []
    for issue in error.errors():
        name = ".".join(str(part) for part in issue.get("loc", ())) or "body"
        if name not in names:
            names.append(name)
    return names


def parse_body(model: Type[ModelT], body: Any) -> ModelT:
    """
    Parse a request body into a request model.

    Args:
        model: The pydantic request model of the route
        body: Raw body - a JSON string, bytes, an already-decoded dict, or None

    Raises:
        ValidationError: Missing body, undecodable bytes, malformed JSON
            or invalid fields
    """
    if isinstance(body, (bytes, bytearray)):
        try:
            body = body.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ValidationError("Request body is not valid UTF-8") from e

    if body is None or (isinstance(body, str) and not body.strip()):
        raise ValidationError("Request body is required")

    if isinstance(body, str):
        try:
            body = json.loads(body)
        except json.JSONDecodeError as e:
            raise ValidationError("Request body is not valid JSON") from e

    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")

    try:
        return model.model_validate(body)
    except PydanticValidationError as e:
        fields = _field_names(e)
        logger.info(
            "request_body_rejected",
            model=model.__name__,
            errors=e.errors(include_url=False, include_context=False, include_input=False),
        )
        raise ValidationError(f"Invalid fields: {', '.join(fields)}") from e


def parse_date_param(
    query: Optional[Mapping[str, str]],
    name: str = "date",
) -> Optional[date]:
    """
    Read an optional YYYY-MM-DD query parameter.

    Returns:
        The date, or None when the parameter is absent or empty

    Raises:
        ValidationError: If the value is not a calendar date
    """
    raw = (query or {}).get(name)
    if raw is None or not str(raw).strip():
        return None
    try:
        return date.fromisoformat(str(raw).strip())
    except ValueError as e:
        raise ValidationError(f"Invalid {name}: expected YYYY-MM-DD") from e
