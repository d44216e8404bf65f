import uuid
from datetime import date

from app.models.student import Student
from app.services.dates import BirthYearPolicy
from app.services.record_transform import from_persisted, to_persisted
from app.services.validation import validate_student_or_raise

POLICY = BirthYearPolicy(today=date(2026, 1, 1))


def make_record(**overrides):
    data = {
        "name": "Meera Iyer",
        "class": "10th",
        "section": "A",
        "dateOfBirth": date(2011, 3, 5),
        "admissionNo": "2024/077",
        "bloodGroup": "AB-",
        "contactNo": "+91 9123456780",
        "address": "7 Lake View Colony, Chennai",
        "photoUrl": "https://res.cloudinary.com/demo/image/upload/v1/student-photos/x-1.jpg",
    }
    data.update(overrides)
    return validate_student_or_raise(data, POLICY)


class TestToPersisted:

    def test_flat_snake_case_row(self):
        row = to_persisted(make_record())

        assert row == {
            "name": "Meera Iyer",
            "class": "10th",
            "section": "A",
            "admission_no": "2024/077",
            "blood_group": "AB-",
            "contact_no": "+91 9123456780",
            "address": "7 Lake View Colony, Chennai",
            "photo_url": "https://res.cloudinary.com/demo/image/upload/v1/student-photos/x-1.jpg",
            "date_of_birth_day": "05",
            "date_of_birth_month": "03",
            "date_of_birth_year": "2011",
        }

    def test_id_is_not_emitted(self):
        record = make_record()
        record.id = uuid.uuid4()
        assert "id" not in to_persisted(record)

    def test_optional_fields_are_null(self):
        row = to_persisted(make_record(bloodGroup="", photoUrl=None))
        assert row["blood_group"] is None
        assert row["photo_url"] is None


class TestFromPersisted:

    def test_round_trip_through_a_mapping(self):
        record = make_record()
        restored = validate_student_or_raise(from_persisted(to_persisted(record)), POLICY)
        assert restored == record

    def test_round_trip_through_an_orm_row(self):
        record = make_record()
        row = to_persisted(record)
        row["class_name"] = row.pop("class")
        student = Student(id=uuid.uuid4(), user_id=uuid.uuid4(), **row)

        form = from_persisted(student)

        assert form["class"] == "10th"
        assert form["dateOfBirth"] == {"day": "05", "month": "03", "year": "2011"}
        assert validate_student_or_raise(form, POLICY) == record

    def test_missing_date_columns_give_empty_parts(self):
        form = from_persisted({"name": "X"})
        assert form["dateOfBirth"] == {"day": "", "month": "", "year": ""}
