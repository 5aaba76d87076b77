"""Validation gate for event drafts.

Checks required fields and value ranges before anything is sent to the event
store. Every failing field is reported at once; a draft is either accepted
(normalized EventCreate) or rejected (field errors), never both.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, ValidationError

from config import settings
from errors import DraftValidationError
from schemas import EventCreate, EventUpdate

FieldErrors = Dict[str, List[str]]

_DATE_MESSAGE = "Must be a valid date and time"


class ValidationResult:
    """Outcome of the gate: `value` on success, `errors` on failure."""

    def __init__(self, value: Optional[BaseModel] = None, errors: Optional[FieldErrors] = None):
        if (value is None) == (not errors):
            raise ValueError("ValidationResult needs exactly one of value or errors")
        self.value = value
        self.errors: FieldErrors = errors or {}

    @property
    def ok(self) -> bool:
        return self.value is not None

    def unwrap(self) -> BaseModel:
        """Return the accepted value or raise DraftValidationError."""
        if self.value is None:
            raise DraftValidationError(self.errors)
        return self.value

    def __repr__(self):
        if self.ok:
            return f"<ValidationResult ok value={self.value!r}>"
        return f"<ValidationResult errors={self.errors!r}>"


def _message(error: Dict[str, Any]) -> str:
    error_type = error.get("type", "")
    if error_type in ("missing", "required"):
        return "Field is required"
    if error_type.startswith("datetime") or error_type.startswith("date_from"):
        return _DATE_MESSAGE
    return error.get("msg", "Invalid value")


def collect_field_errors(exc: ValidationError) -> FieldErrors:
    """Group pydantic errors by field name (nested fields joined with '.')."""
    errors: FieldErrors = {}
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ())) or "draft"
        messages = errors.setdefault(field, [])
        message = _message(error)
        if message not in messages:
            messages.append(message)
    return errors


def _as_mapping(data: Any) -> Optional[Dict[str, Any]]:
    if isinstance(data, BaseModel):
        return data.model_dump(exclude_unset=True)
    if isinstance(data, Mapping):
        return dict(data)
    return None


def validate_draft(
    draft: Union[Mapping[str, Any], BaseModel],
    now: Optional[datetime] = None,
    allow_past_dates: Optional[bool] = None
) -> ValidationResult:
    """Validate and normalize a new event draft.

    Args:
        draft: Raw form data (dict) or an EventCreate
        now: Reference time for the past-date rule (current UTC time if omitted)
        allow_past_dates: Accept dates before `now`. Defaults to
            settings.ALLOW_PAST_EVENT_DATES.

    Returns:
        ValidationResult with a normalized EventCreate or the field errors
    """
    data = _as_mapping(draft)
    if data is None:
        return ValidationResult(errors={"draft": ["Draft must be an object"]})

    if allow_past_dates is None:
        allow_past_dates = settings.ALLOW_PAST_EVENT_DATES
    if now is None:
        now = datetime.now(timezone.utc)

    try:
        value = EventCreate.model_validate(
            data,
            context={"now": now, "allow_past_dates": allow_past_dates}
        )
    except ValidationError as exc:
        return ValidationResult(errors=collect_field_errors(exc))
    return ValidationResult(value=value)


def validate_patch(patch: Union[Mapping[str, Any], BaseModel]) -> ValidationResult:
    """Validate a partial update. Only the provided fields are checked."""
    data = _as_mapping(patch)
    if data is None:
        return ValidationResult(errors={"patch": ["Patch must be an object"]})

    try:
        value = EventUpdate.model_validate(data)
    except ValidationError as exc:
        return ValidationResult(errors=collect_field_errors(exc))
    return ValidationResult(value=value)
