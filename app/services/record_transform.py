# app/services/record_transform.py - Mapping between the form record and the students table row
from typing import Any, Dict, Mapping

from app.schemas.student import StudentRecord
from app.services.dates import date_to_components

# camelCase form key -> snake_case column
FIELD_TO_COLUMN = {
    "name": "name",
    "class": "class",
    "section": "section",
    "admissionNo": "admission_no",
    "bloodGroup": "blood_group",
    "contactNo": "contact_no",
    "address": "address",
    "photoUrl": "photo_url",
}

DATE_COLUMNS = ("date_of_birth_day", "date_of_birth_month", "date_of_birth_year")


def _read(row: Any, column: str) -> Any:
    """Read a column from a mapping or an ORM row."""
    if isinstance(row, Mapping):
        return row.get(column)
    # ORM attribute for the `class` column is class_name
    attr = "class_name" if column == "class" else column
    return getattr(row, attr, None)


def to_persisted(record: StudentRecord) -> Dict[str, Any]:
    """
    Flatten a record into the students table shape.

    The date of birth becomes three zero-padded string columns. ``id`` and
    timestamps are owned by the persistence layer and are not emitted.
    """
    form = record.model_dump(by_alias=True, exclude={"id"})
    row = {column: form.get(key) for key, column in FIELD_TO_COLUMN.items()}

    parts = date_to_components(record.date_of_birth)
    row["date_of_birth_day"] = parts.day
    row["date_of_birth_month"] = parts.month
    row["date_of_birth_year"] = parts.year
    return row


def from_persisted(row: Any) -> Dict[str, Any]:
    """
    Inverse of ``to_persisted``.

    Produces the form shape with ``dateOfBirth`` as a ``{day, month, year}``
    structure; turning it back into a date is left to validation.
    """
    form = {key: _read(row, column) for key, column in FIELD_TO_COLUMN.items()}
    form["dateOfBirth"] = {
        "day": _read(row, "date_of_birth_day") or "",
        "month": _read(row, "date_of_birth_month") or "",
        "year": _read(row, "date_of_birth_year") or "",
    }
    return form


__all__ = ["to_persisted", "from_persisted", "FIELD_TO_COLUMN", "DATE_COLUMNS"]
