# app/core/errors.py - Error taxonomy shared by services and the HTTP layer
from dataclasses import dataclass, asdict
from typing import List, Dict


@dataclass(frozen=True)
class FieldError:
    """A single field-level validation problem"""
    field: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


class AppError(Exception):
    """Base class for errors the API converts into a response"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(AppError):
    """Input failed validation; recoverable by correcting the listed fields"""

    def __init__(self, errors: List[FieldError], message: str = "Validation failed"):
        super().__init__(message)
        self.errors = list(errors)


class AuthorizationError(AppError):
    """Caller is not authenticated or not permitted"""

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class NotFoundOrForbidden(AppError):
    """Row does not exist or belongs to someone else; the two are indistinguishable"""

    def __init__(self, message: str = "Student not found or access denied"):
        super().__init__(message)


class TransientIOError(AppError):
    """Network or storage failure; the caller may retry"""


class CropFailure(AppError):
    """No crop selection was made, or the output surface is unavailable"""


__all__ = [
    "FieldError",
    "AppError",
    "ValidationError",
    "AuthorizationError",
    "NotFoundOrForbidden",
    "TransientIOError",
    "CropFailure",
]
