"""
Student ID Cards - Test Configuration and Fixtures
"""
import io
import os
import uuid
from datetime import date
from typing import AsyncGenerator, Generator, List

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.orm import Session
from faker import Faker
from PIL import Image

# Set testing environment before the app reads its settings
os.environ['ENV'] = 'test'
os.environ['DATABASE_URL'] = 'sqlite://'
os.environ['JWT_SECRET'] = 'test-jwt-secret-key-for-testing-only-0123456789'
os.environ['LOG_LEVEL'] = 'WARNING'

from app.main import app
from app.core.db import db_manager, get_db
from app.core.errors import TransientIOError
from app.core.security import create_access_token
from app.models import Base
from app.services.photo_storage import PhotoStorage, get_photo_storage

fake = Faker()

PHOTO_URL_PREFIX = "https://res.cloudinary.com/demo/image/upload/v1/student-photos/"


class FakePhotoStorage(PhotoStorage):
    """In-memory stand-in for the hosted asset store"""

    def __init__(self):
        self.objects = {}
        self.deleted: List[str] = []
        self.fail_uploads = False
        self.fail_deletes = False

    def upload(self, data: bytes, owner_key: str, extension: str = "jpg") -> str:
        if self.fail_uploads:
            raise TransientIOError("Failed to upload photo")
        url = f"{PHOTO_URL_PREFIX}{owner_key}-{len(self.objects) + 1}.{extension}"
        self.objects[url] = data
        return url

    def delete(self, url: str) -> None:
        if self.fail_deletes:
            raise TransientIOError("Failed to delete photo")
        self.objects.pop(url, None)
        self.deleted.append(url)


def make_image_bytes(size=(800, 600), color=(200, 120, 40), fmt="PNG", mode="RGB") -> bytes:
    """Encode a solid-colour test image"""
    buf = io.BytesIO()
    if mode == "RGBA":
        color = color + (128,)
    Image.new(mode, size, color).save(buf, format=fmt)
    return buf.getvalue()


def make_token(user_id: uuid.UUID, role: str = "teacher", email: str = None) -> str:
    return create_access_token({
        'sub': str(user_id),
        'email': email or fake.email(),
        'user_role': role,
    })


@pytest.fixture
def image_bytes():
    return make_image_bytes


@pytest.fixture(scope='function')
def db_session() -> Generator[Session, None, None]:
    """Create a fresh database for each test"""
    db_manager.initialize()
    Base.metadata.create_all(bind=db_manager.engine)

    session = db_manager.SessionLocal()
    yield session
    session.close()

    Base.metadata.drop_all(bind=db_manager.engine)


@pytest.fixture
def photo_storage() -> FakePhotoStorage:
    return FakePhotoStorage()


@pytest.fixture
async def client(db_session: Session, photo_storage: FakePhotoStorage) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with database and storage overrides"""
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_photo_storage] = lambda: photo_storage

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def user_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def auth_headers(user_id: uuid.UUID) -> dict:
    """Authentication headers for a teacher"""
    return {'Authorization': f'Bearer {make_token(user_id)}'}


@pytest.fixture
def other_auth_headers() -> dict:
    """Authentication headers for a second, unrelated teacher"""
    return {'Authorization': f'Bearer {make_token(uuid.uuid4())}'}


@pytest.fixture
def admin_auth_headers() -> dict:
    return {'Authorization': f'Bearer {make_token(uuid.uuid4(), role="admin")}'}


@pytest.fixture
def student_payload() -> dict:
    """A valid student in the form's camelCase shape"""
    birth_year = date.today().year - 10
    return {
        'name': f"{fake.first_name()} {fake.last_name()}",
        'class': '5th',
        'section': 'B',
        'dateOfBirth': {'day': '15', 'month': '08', 'year': str(birth_year)},
        'admissionNo': f"ADM-{fake.random_int(1000, 9999)}",
        'bloodGroup': 'O+',
        'contactNo': '9876543210',
        'address': '221B Baker Street, Mumbai',
        'photoUrl': '',
    }
