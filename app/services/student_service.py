# app/services/student_service.py - Persistence façade for student records
import logging
import re
from typing import List, Optional, Union
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.constants import ALLOWED_SORT_FIELDS
from app.core.db import set_rls_context
from app.core.errors import AuthorizationError, NotFoundOrForbidden, TransientIOError, ValidationError, FieldError
from app.core.security import ROLE_ADMIN, Identity
from app.models.base import utcnow
from app.models.student import Student
from app.schemas.student import StudentRecord
from app.services.photo_storage import public_id_from_url
from app.services.record_transform import to_persisted

logger = logging.getLogger(__name__)

_LEADING_NUMBER = re.compile(r"^\d+")


def _class_rank(class_name: str) -> int:
    """'10th' -> 10; unparseable labels sort last"""
    match = _LEADING_NUMBER.match(class_name or "")
    return int(match.group()) if match else 10_000


_SORT_KEYS = {
    "name": lambda s: (s.name or "").lower(),
    "admissionNo": lambda s: (s.admission_no or "").lower(),
    "class": lambda s: _class_rank(s.class_name),
    "section": lambda s: (s.section or "").lower(),
    "contactNo": lambda s: s.contact_no or "",
}


class StudentService:
    """
    Create/read/update/delete for student rows, scoped to one caller.

    Callers only ever see their own rows unless they are admins. A row that
    exists but belongs to someone else is reported exactly like a missing row
    (``NotFoundOrForbidden``).
    """

    def __init__(self, db: Session, identity: Optional[Identity]):
        if identity is None:
            raise AuthorizationError("Unauthorized")
        self.db = db
        self.identity = identity

    def _scope(self):
        set_rls_context(self.db, user_id=str(self.identity.id), role=self.identity.role)

    def _owned(self, query):
        if self.identity.is_admin:
            return query
        return query.where(Student.user_id == self.identity.id)

    def _parse_id(self, student_id: Union[str, UUID]) -> UUID:
        if isinstance(student_id, UUID):
            return student_id
        try:
            return UUID(str(student_id))
        except ValueError:
            # Malformed ids cannot match any row
            raise NotFoundOrForbidden()

    def _commit(self, action: str):
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Database error while trying to {action} student: {e}")
            raise TransientIOError(f"Failed to {action} student")

    def list(
        self,
        search: Optional[str] = None,
        sort: Optional[str] = None,
        order: str = "asc",
    ) -> List[Student]:
        """
        Fetch the caller's students, newest first by default.

        ``search`` matches name, admission number, class and section
        case-insensitively. ``sort`` is one of the form field names; class
        labels sort by their number.
        """
        if sort is not None and sort not in ALLOWED_SORT_FIELDS:
            raise ValidationError([FieldError("sort", f"Sort must be one of: {', '.join(ALLOWED_SORT_FIELDS)}")])
        if order not in ("asc", "desc"):
            raise ValidationError([FieldError("order", "Order must be 'asc' or 'desc'")])

        self._scope()
        query = self._owned(select(Student)).order_by(Student.created_at.desc())
        try:
            students = list(self.db.execute(query).scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"Database error: {e}")
            raise TransientIOError("Failed to fetch students")

        if search:
            needle = search.strip().lower()
            students = [
                s for s in students
                if needle in (s.name or "").lower()
                or needle in (s.admission_no or "").lower()
                or needle in (s.class_name or "").lower()
                or needle in (s.section or "").lower()
            ]

        if sort:
            students.sort(key=_SORT_KEYS[sort], reverse=(order == "desc"))
        return students

    def get(self, student_id: Union[str, UUID]) -> Student:
        student_uuid = self._parse_id(student_id)
        self._scope()
        student = self.db.execute(
            self._owned(select(Student).where(Student.id == student_uuid))
        ).scalar_one_or_none()
        if student is None:
            raise NotFoundOrForbidden()
        return student

    def create(self, record: StudentRecord) -> Student:
        if record.photo_url:
            self.check_photo_release(record.photo_url)
        self._scope()
        student = Student(**self._columns(record), user_id=self.identity.id)
        self.db.add(student)
        self._commit("create")
        self._scope()
        self.db.refresh(student)
        logger.info(f"Student created: {student.admission_no} by {self.identity.email or self.identity.id}")
        return student

    def update(self, student_id: Union[str, UUID], record: StudentRecord) -> Student:
        student = self.get(student_id)
        if record.photo_url:
            self.check_photo_release(record.photo_url)
        for attr, value in self._columns(record).items():
            setattr(student, attr, value)
        student.updated_at = utcnow()
        self._commit("update")
        self._scope()
        self.db.refresh(student)
        logger.info(f"Student updated: {student.admission_no} by {self.identity.email or self.identity.id}")
        return student

    def delete(self, student_id: Union[str, UUID]) -> Optional[str]:
        """Remove the row; returns its photo URL so the caller can release the asset"""
        student = self.get(student_id)
        admission_no, photo_url = student.admission_no, student.photo_url
        self.db.delete(student)
        self._commit("delete")
        logger.info(f"Student deleted: {admission_no} by {self.identity.email or self.identity.id}")
        return photo_url

    def _photo_owners(self, photo_url: str) -> List[UUID]:
        """Owners of every row showing the same stored photo, across all users"""
        public_id = public_id_from_url(photo_url)
        if public_id:
            # Storage addresses photos by public id, so URL spellings of one asset must match
            query = select(Student.user_id, Student.photo_url).where(
                Student.photo_url.contains(public_id, autoescape=True)
            )
        else:
            query = select(Student.user_id, Student.photo_url).where(Student.photo_url == photo_url)

        # Row-level policies would hide other users' rows from this lookup
        set_rls_context(self.db, user_id=str(self.identity.id), role=ROLE_ADMIN)
        try:
            rows = self.db.execute(query).all()
        finally:
            self._scope()
        return [
            owner for owner, url in rows
            if url == photo_url or (public_id and public_id_from_url(url) == public_id)
        ]

    def check_photo_release(self, photo_url: str) -> None:
        """Refuse to touch a photo that another user's student still shows"""
        if self.identity.is_admin:
            return
        if any(owner != self.identity.id for owner in self._photo_owners(photo_url)):
            raise NotFoundOrForbidden("Photo not found or access denied")

    def photo_in_use(self, photo_url: str) -> bool:
        return bool(self._photo_owners(photo_url))

    @staticmethod
    def _columns(record: StudentRecord) -> dict:
        row = to_persisted(record)
        # The `class` column is mapped to the class_name attribute
        row["class_name"] = row.pop("class")
        return row


__all__ = ["StudentService"]
