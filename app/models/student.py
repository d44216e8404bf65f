# app/models/student.py - Flat student row with the date of birth split into three columns
from __future__ import annotations
import uuid
from datetime import datetime
from sqlalchemy import String, DateTime, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from app.core.constants import PHOTO_URL_MAX_LENGTH
from app.models.base import Base, utcnow


class Student(Base):
    __tablename__ = "students"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    # Owner of the row; row-level access is scoped on this column
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    class_name: Mapped[str] = mapped_column("class", String(8), nullable=False)
    section: Mapped[str] = mapped_column(String(2), nullable=False)
    date_of_birth_day: Mapped[str] = mapped_column(String(2), nullable=False)
    date_of_birth_month: Mapped[str] = mapped_column(String(2), nullable=False)
    date_of_birth_year: Mapped[str] = mapped_column(String(4), nullable=False)
    admission_no: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    blood_group: Mapped[str | None] = mapped_column(String(4))
    contact_no: Mapped[str] = mapped_column(String(20), nullable=False)
    address: Mapped[str] = mapped_column(String(500), nullable=False)
    photo_url: Mapped[str | None] = mapped_column(String(PHOTO_URL_MAX_LENGTH))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<Student(id={self.id}, admission_no='{self.admission_no}', name='{self.name}')>"
