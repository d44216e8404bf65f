# app/schemas/student.py - Student record schemas (authoring input and API output)
import re
from datetime import date, datetime
from typing import Optional, List, Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, ValidationInfo

from app.core.constants import (
    FORM_CLASSES,
    FORM_SECTIONS,
    BLOOD_GROUPS,
    NAME_MAX_LENGTH,
    ADMISSION_NO_MAX_LENGTH,
    ADDRESS_MIN_LENGTH,
    ADDRESS_MAX_LENGTH,
    CONTACT_MIN_LENGTH,
    CONTACT_MAX_LENGTH,
    CONTACT_NUMBER_PATTERN,
    PHOTO_URL_MAX_LENGTH,
)
from app.services.dates import BirthYearPolicy, DateParts, components_to_date
from app.services.photo_storage import is_managed_photo_url
from app.services.sanitize import (
    sanitize_name,
    sanitize_address,
    sanitize_contact_number,
    sanitize_admission_number,
)

NAME_RE = re.compile(r"^[A-Za-z .'-]+$")
ADMISSION_NO_RE = re.compile(r"^[A-Za-z0-9/-]+$")
CONTACT_RE = re.compile(CONTACT_NUMBER_PATTERN)

# Key used in the pydantic validation context to pass the birth-year rule
BIRTH_YEAR_POLICY_KEY = "birth_year_policy"
DEFAULT_BIRTH_YEAR_POLICY = BirthYearPolicy()


class DateOfBirthParts(BaseModel):
    """Structured date of birth as entered in the form and shown by the API"""
    day: str = ""
    month: str = ""
    year: str = ""

    @classmethod
    def from_parts(cls, parts: DateParts) -> "DateOfBirthParts":
        return cls(day=parts.day, month=parts.month, year=parts.year)


def _coerce_date_of_birth(value: Any) -> date:
    """Accept a date, an ISO string, or a {day, month, year} structure."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    if isinstance(value, (DateParts, DateOfBirthParts)):
        value = {"day": value.day, "month": value.month, "year": value.year}

    if isinstance(value, dict):
        missing = [part for part in ("day", "month", "year") if not str(value.get(part) or "").strip()]
        if missing:
            raise ValueError(f"{missing[0].capitalize()} is required")
        resolved = components_to_date(value.get("day"), value.get("month"), value.get("year"))
        if resolved is None:
            raise ValueError("Date of birth is not a valid calendar date")
        return resolved

    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            raise ValueError("Date of birth must be a YYYY-MM-DD date or a {day, month, year} object")

    raise ValueError("Date of birth is required")


class StudentRecord(BaseModel):
    """
    Validated, normalized student record.

    JSON uses the form's camelCase keys (``class``, ``dateOfBirth``,
    ``admissionNo`` ...). ``date_of_birth`` is always a single ``date`` here;
    the ``{day, month, year}`` form is only an input/output adapter.
    """
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[UUID] = None
    name: str = Field(..., min_length=1, max_length=NAME_MAX_LENGTH)
    class_name: str = Field(..., alias="class")
    section: str
    date_of_birth: date = Field(..., alias="dateOfBirth")
    admission_no: str = Field(..., alias="admissionNo", min_length=1, max_length=ADMISSION_NO_MAX_LENGTH)
    blood_group: Optional[str] = Field(None, alias="bloodGroup")
    contact_no: str = Field(..., alias="contactNo", min_length=CONTACT_MIN_LENGTH, max_length=CONTACT_MAX_LENGTH)
    address: str = Field(..., min_length=ADDRESS_MIN_LENGTH, max_length=ADDRESS_MAX_LENGTH)
    photo_url: Optional[str] = Field(None, alias="photoUrl", max_length=PHOTO_URL_MAX_LENGTH)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not NAME_RE.match(v):
            raise ValueError("Name can only contain letters, spaces, apostrophes, hyphens and periods")
        cleaned = sanitize_name(v)
        if not cleaned:
            raise ValueError("Name is required")
        return cleaned

    @field_validator("class_name")
    @classmethod
    def validate_class(cls, v: str) -> str:
        if v not in FORM_CLASSES:
            raise ValueError(f"Class must be one of: {', '.join(FORM_CLASSES)}")
        return v

    @field_validator("section")
    @classmethod
    def validate_section(cls, v: str) -> str:
        if v not in FORM_SECTIONS:
            raise ValueError(f"Section must be one of: {', '.join(FORM_SECTIONS)}")
        return v

    @field_validator("date_of_birth", mode="before")
    @classmethod
    def parse_date_of_birth(cls, v: Any) -> date:
        return _coerce_date_of_birth(v)

    @field_validator("date_of_birth")
    @classmethod
    def check_birth_year(cls, v: date, info: ValidationInfo) -> date:
        context = info.context or {}
        policy = context.get(BIRTH_YEAR_POLICY_KEY, DEFAULT_BIRTH_YEAR_POLICY)
        if policy is not None and not policy.allows(v):
            raise ValueError(policy.describe())
        return v

    @field_validator("admission_no")
    @classmethod
    def validate_admission_no(cls, v: str) -> str:
        if not ADMISSION_NO_RE.match(v):
            raise ValueError("Admission number can only contain letters, digits, hyphens and slashes")
        return sanitize_admission_number(v)

    @field_validator("blood_group", mode="before")
    @classmethod
    def validate_blood_group(cls, v: Any) -> Optional[str]:
        if v is None or v == "":
            return None
        if v not in BLOOD_GROUPS:
            raise ValueError(f"Blood group must be one of: {', '.join(BLOOD_GROUPS)}")
        return v

    @field_validator("contact_no")
    @classmethod
    def validate_contact_no(cls, v: str) -> str:
        if not CONTACT_RE.match(v):
            raise ValueError("Please enter a valid 10-digit mobile number")
        return sanitize_contact_number(v)

    @field_validator("address")
    @classmethod
    def validate_address(cls, v: str) -> str:
        cleaned = sanitize_address(v)
        if len(cleaned) < ADDRESS_MIN_LENGTH:
            raise ValueError(f"Address must contain at least {ADDRESS_MIN_LENGTH} valid characters")
        return cleaned

    @field_validator("photo_url", mode="before")
    @classmethod
    def validate_photo_url(cls, v: Any) -> Optional[str]:
        if v is None or v == "":
            return None
        if not isinstance(v, str):
            raise ValueError("Photo must be referenced by its URL")
        if len(v) > PHOTO_URL_MAX_LENGTH:
            raise ValueError(f"Photo URL must be at most {PHOTO_URL_MAX_LENGTH} characters")
        if not is_managed_photo_url(v):
            raise ValueError("Photo must be an uploaded student photo")
        return v


class StudentOut(BaseModel):
    """Student as returned by the API; dates are shown as {day, month, year}"""
    model_config = ConfigDict(populate_by_name=True)

    id: UUID
    name: str
    class_name: str = Field(..., alias="class")
    section: str
    date_of_birth: DateOfBirthParts = Field(..., alias="dateOfBirth")
    admission_no: str = Field(..., alias="admissionNo")
    blood_group: Optional[str] = Field(None, alias="bloodGroup")
    contact_no: str = Field(..., alias="contactNo")
    address: str
    photo_url: Optional[str] = Field(None, alias="photoUrl")
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")


class StudentEnvelope(BaseModel):
    data: StudentOut


class StudentList(BaseModel):
    data: List[StudentOut]
    total: int


class PhotoOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    photo_url: str = Field(..., alias="photoUrl")
    width: int
    height: int
