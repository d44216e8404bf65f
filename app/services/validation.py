# app/services/validation.py - Structural and business-rule validation of student records
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError

from app.core.errors import FieldError, ValidationError
from app.schemas.student import (
    StudentRecord,
    BIRTH_YEAR_POLICY_KEY,
    DEFAULT_BIRTH_YEAR_POLICY,
)
from app.services.dates import BirthYearPolicy

logger = logging.getLogger(__name__)

_MISSING_TYPES = {"missing"}


@dataclass
class ValidationResult:
    record: Optional[StudentRecord] = None
    errors: List[FieldError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.record is not None and not self.errors


def _field_name(loc) -> str:
    parts = [str(p) for p in loc if not isinstance(p, int)]
    return ".".join(parts) if parts else "__root__"


def _message(error: Dict[str, Any]) -> str:
    if error.get("type") in _MISSING_TYPES:
        return "This field is required"
    if error.get("type") == "value_error":
        # pydantic prefixes ValueError messages with "Value error, "
        ctx_error = (error.get("ctx") or {}).get("error")
        if ctx_error is not None:
            return str(ctx_error)
    return error.get("msg", "Invalid value")


def to_field_errors(exc: PydanticValidationError) -> List[FieldError]:
    """Flatten a pydantic error into {field, message} pairs keyed by JSON field name"""
    return [
        FieldError(field=_field_name(err.get("loc", ())), message=_message(err))
        for err in exc.errors()
    ]


def validate_student(
    data: Any,
    policy: Optional[BirthYearPolicy] = DEFAULT_BIRTH_YEAR_POLICY,
) -> ValidationResult:
    """
    Validate a raw student payload.

    ``data`` may be a mapping in the authoring shape (camelCase keys, date of
    birth as a date value or as ``{day, month, year}``) or an existing
    ``StudentRecord``. Passing ``policy=None`` skips the birth-year rule.
    Never raises for bad input.
    """
    if isinstance(data, StudentRecord):
        data = data.model_dump(by_alias=True)
    if not isinstance(data, Mapping):
        return ValidationResult(errors=[FieldError("__root__", "Student data must be a JSON object")])

    try:
        record = StudentRecord.model_validate(dict(data), context={BIRTH_YEAR_POLICY_KEY: policy})
    except PydanticValidationError as exc:
        errors = to_field_errors(exc)
        logger.debug(f"Student validation failed on {[e.field for e in errors]}")
        return ValidationResult(errors=errors)
    return ValidationResult(record=record)


def validate_student_or_raise(
    data: Any,
    policy: Optional[BirthYearPolicy] = DEFAULT_BIRTH_YEAR_POLICY,
) -> StudentRecord:
    result = validate_student(data, policy)
    if not result.ok:
        raise ValidationError(result.errors)
    return result.record


__all__ = ["ValidationResult", "validate_student", "validate_student_or_raise", "to_field_errors"]
