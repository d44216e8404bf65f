# app/api/routers/students.py - Student record CRUD and ID card rendering
from typing import Any, Optional
import logging

from fastapi import APIRouter, Body, Depends, Query, Response, status
from sqlalchemy.orm import Session

from app.api.deps.auth import get_current_identity
from app.core.config import settings
from app.core.db import get_db
from app.core.security import Identity
from app.models.student import Student
from app.schemas.student import StudentEnvelope, StudentList, StudentOut
from app.services.dates import BirthYearPolicy
from app.services.id_card import fetch_photo, render_id_card
from app.services.photo_service import PhotoService
from app.services.photo_storage import PhotoStorage, get_photo_storage
from app.services.record_transform import from_persisted
from app.services.sanitize import sanitize_input
from app.services.student_service import StudentService
from app.services.validation import validate_student_or_raise

logger = logging.getLogger(__name__)
router = APIRouter()


def birth_year_policy() -> BirthYearPolicy:
    return BirthYearPolicy(
        min_age=settings.STUDENT_MIN_AGE_YEARS,
        max_age=settings.STUDENT_MAX_AGE_YEARS,
    )


def get_student_service(
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> StudentService:
    return StudentService(db, identity)


def _to_out(student: Student) -> StudentOut:
    form = from_persisted(student)
    form.update(id=student.id, createdAt=student.created_at, updatedAt=student.updated_at)
    return StudentOut.model_validate(form)


def _release_unused_photo(service: StudentService, storage: PhotoStorage, photo_url: Optional[str]) -> None:
    if not photo_url:
        return
    if service.photo_in_use(photo_url):
        logger.info(f"Keeping photo still shown by another student: {photo_url}")
        return
    PhotoService(storage, service.identity).release(photo_url)


@router.get("/", response_model=StudentList)
async def list_students(
    search: Optional[str] = Query(None, max_length=100, description="Matches name, admission no, class or section"),
    sort: Optional[str] = Query(None, description="name, admissionNo, class, section or contactNo"),
    order: str = Query("asc", description="asc or desc"),
    service: StudentService = Depends(get_student_service),
):
    """List the caller's students, newest first unless a sort is given"""
    students = service.list(search=sanitize_input(search) if search else None, sort=sort, order=order)
    return StudentList(data=[_to_out(s) for s in students], total=len(students))


@router.post("/", response_model=StudentEnvelope, status_code=status.HTTP_201_CREATED)
async def create_student(
    payload: Any = Body(...),
    service: StudentService = Depends(get_student_service),
):
    record = validate_student_or_raise(payload, birth_year_policy())
    student = service.create(record)
    return StudentEnvelope(data=_to_out(student))


@router.get("/{student_id}", response_model=StudentEnvelope)
async def get_student(
    student_id: str,
    service: StudentService = Depends(get_student_service),
):
    return StudentEnvelope(data=_to_out(service.get(student_id)))


@router.put("/{student_id}", response_model=StudentEnvelope)
async def update_student(
    student_id: str,
    payload: Any = Body(...),
    service: StudentService = Depends(get_student_service),
    storage: PhotoStorage = Depends(get_photo_storage),
):
    """Replace a student's fields; a superseded photo no student shows any more is released"""
    record = validate_student_or_raise(payload, birth_year_policy())
    previous_photo = service.get(student_id).photo_url
    student = service.update(student_id, record)

    if previous_photo != student.photo_url:
        _release_unused_photo(service, storage, previous_photo)
    return StudentEnvelope(data=_to_out(student))


@router.delete("/{student_id}")
async def delete_student(
    student_id: str,
    service: StudentService = Depends(get_student_service),
    storage: PhotoStorage = Depends(get_photo_storage),
):
    _release_unused_photo(service, storage, service.delete(student_id))
    return {"success": True}


@router.get(
    "/{student_id}/card",
    response_class=Response,
    responses={200: {"content": {"image/png": {}}}},
)
def student_id_card(
    student_id: str,
    service: StudentService = Depends(get_student_service),
):
    """Render the printable ID card as a PNG"""
    student = _to_out(service.get(student_id))
    png = render_id_card(student, photo=fetch_photo(student.photo_url))
    logger.info(f"ID card rendered for {student.admission_no} ({len(png)} bytes)")
    filename = f"{student.name.replace(' ', '_')}_ID_Card.png"
    return Response(
        content=png,
        media_type="image/png",
        headers={"Content-Disposition": f'inline; filename="{filename}"'},
    )
