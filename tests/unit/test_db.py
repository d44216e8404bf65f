import uuid
from datetime import timezone

import pytest
from sqlalchemy import select

from app.core.db import DatabaseManager
from app.models import Base, Student
from app.models.base import utcnow


@pytest.fixture
def manager():
    manager = DatabaseManager("sqlite://")
    manager.create_tables()
    yield manager
    manager.close()


@pytest.fixture
def session(manager):
    sessions = manager.get_session()
    yield next(sessions)
    sessions.close()


def make_row(**overrides) -> Student:
    row = dict(
        user_id=uuid.uuid4(),
        name="Ishaan Gupta",
        class_name="3rd",
        section="D",
        date_of_birth_day="01",
        date_of_birth_month="06",
        date_of_birth_year="2018",
        admission_no="ADM-9",
        contact_no="9876501234",
        address="44 Civil Lines, Jaipur",
    )
    row.update(overrides)
    return Student(**row)


class TestDatabaseManager:

    def test_health_check(self, manager):
        assert manager.health_check()["status"] == "healthy"

    def test_session_round_trip(self, manager, session):
        session.add(make_row())
        session.commit()

        rows = session.execute(select(Student)).scalars().all()
        assert [r.admission_no for r in rows] == ["ADM-9"]
        assert rows[0].created_at is not None
        assert rows[0].updated_at is not None

    def test_session_rollback_discards_rows(self, manager, session):
        session.add(make_row())
        session.flush()
        session.rollback()

        assert session.execute(select(Student)).scalars().all() == []

    def test_class_column_name(self, manager):
        assert "class" in Base.metadata.tables["students"].columns

    def test_timestamps_are_timezone_aware_columns(self):
        columns = Base.metadata.tables["students"].columns
        assert columns["created_at"].type.timezone is True
        assert columns["updated_at"].type.timezone is True

    def test_utcnow_is_aware(self):
        assert utcnow().tzinfo is timezone.utc

    def test_rls_context_is_a_no_op_on_sqlite(self, manager, session):
        manager.set_rls_context(session, user_id=str(uuid.uuid4()), role="teacher")
        session.add(make_row())
        session.commit()
        assert len(session.execute(select(Student)).scalars().all()) == 1
