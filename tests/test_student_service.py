import io
import re

import pytest

from services import session_service, student_service
from services.grading import Status
from services.photo_storage import PhotoUpload
from utils.errors import ConflictError, NotFoundError, ValidationError

from conftest import PNG_BYTES

AMINA = {"full_name": "Amina K.", "email": "amina@example.com", "program": "CS"}


def _full_update(**overrides):
    fields = {
        "full_name": "Amina Kader",
        "email": "amina@example.com",
        "phone": "0600000000",
        "date_of_birth": None,
        "address": "12 rue des Lilas",
        "program": "Math",
        "status": "active",
    }
    fields.update(overrides)
    return fields


def test_register_then_add_grade_scenario(gateway):
    student_id = student_service.register(gateway, AMINA)
    assert re.fullmatch(r"STU-\d{6}", student_id)

    status = student_service.add_grade(gateway, student_id, None, 9)
    assert status is Status.RATT

    student = student_service.get_student(gateway, student_id)
    assert student["full_name"] == "Amina K."
    assert student["status"] == "active"
    assert len(student["grades"]) == 1
    assert student["grades"][0]["subject"] == "General"
    assert student["grades"][0]["status"] == "Ratt"


def test_student_ids_are_sequential(gateway):
    first = student_service.register(gateway, AMINA)
    second = student_service.register(gateway, {**AMINA, "email": "b@example.com"})
    assert first == "STU-100000"
    assert second == "STU-100001"


def test_register_requires_fields(gateway, count_rows):
    with pytest.raises(ValidationError):
        student_service.register(gateway, {**AMINA, "program": "   "})
    assert count_rows("students") == 0


def test_register_duplicate_email_writes_nothing(gateway, count_rows):
    student_service.register(gateway, AMINA)
    with pytest.raises(ConflictError):
        student_service.register(gateway, {**AMINA, "full_name": "Someone Else"})
    assert count_rows("students") == 1


def test_register_with_photo_and_delete_cascades(gateway, photo_store, count_rows):
    photo = PhotoUpload("amina.png", "image/png", io.BytesIO(PNG_BYTES))
    student_id = student_service.register(gateway, AMINA, photo=photo, photo_store=photo_store)
    student_service.add_grade(gateway, student_id, "Math", 15)
    student_service.add_grade(gateway, student_id, "Physics", 6)

    photo_url = student_service.get_student(gateway, student_id)["photo_url"]
    assert photo_url.startswith("/uploads/photos/photo-")
    photo_path = photo_store.path_for(photo_url)
    assert photo_path.exists()

    student_service.delete(gateway, student_id, photo_store)

    assert not photo_path.exists()
    assert count_rows("students") == 0
    assert count_rows("grades") == 0


def test_delete_tolerates_missing_photo(gateway, photo_store, count_rows):
    photo = PhotoUpload("amina.jpg", "image/jpeg", io.BytesIO(PNG_BYTES))
    student_id = student_service.register(gateway, AMINA, photo=photo, photo_store=photo_store)
    photo_store.path_for(student_service.get_student(gateway, student_id)["photo_url"]).unlink()

    student_service.delete(gateway, student_id, photo_store)
    assert count_rows("students") == 0


def test_delete_skips_photo_outside_upload_dir(gateway, photo_store, tmp_path, count_rows):
    outside = tmp_path / "outside.png"
    outside.write_bytes(PNG_BYTES)
    student_id = student_service.register(gateway, AMINA)
    gateway.run("UPDATE students SET photo_url = :url WHERE student_id = :id",
                {"url": "/uploads/../outside.png", "id": student_id})

    student_service.delete(gateway, student_id, photo_store)

    assert count_rows("students") == 0
    assert outside.exists()


def _race_after_allocation(monkeypatch, gateway, competing_fields):
    # 번호를 발급받은 직후, 커밋 전에 다른 등록 요청이 먼저 끝나는 상황
    real_allocate = student_service.allocate_student_id
    allocated = []

    def allocate(db):
        student_id = real_allocate(db)
        if not allocated:
            allocated.append(student_id)
            competing = student_service.register(gateway, competing_fields)
            assert competing == student_id
        return student_id

    monkeypatch.setattr(student_service, "allocate_student_id", allocate)
    return allocated


def test_register_reallocates_after_concurrent_id_collision(gateway, monkeypatch, count_rows):
    allocated = _race_after_allocation(monkeypatch, gateway, {**AMINA, "email": "first@example.com"})

    student_id = student_service.register(gateway, AMINA)

    assert allocated == ["STU-100000"]
    assert student_id == "STU-100001"
    assert count_rows("students") == 2


def test_register_concurrent_duplicate_email_conflicts(gateway, photo_store, monkeypatch, count_rows):
    _race_after_allocation(monkeypatch, gateway, {**AMINA, "full_name": "Faster Amina"})
    photo = PhotoUpload("amina.png", "image/png", io.BytesIO(PNG_BYTES))

    with pytest.raises(ConflictError):
        student_service.register(gateway, AMINA, photo=photo, photo_store=photo_store)

    assert count_rows("students") == 1
    assert student_service.list_students(gateway)[0]["full_name"] == "Faster Amina"
    assert not list((photo_store.root / "photos").iterdir())


def test_delete_unknown_student(gateway, photo_store):
    with pytest.raises(NotFoundError):
        student_service.delete(gateway, "STU-999999", photo_store)


def test_update_overwrites_all_fields(gateway):
    student_id = student_service.register(gateway, AMINA)
    student_service.update(gateway, student_id, _full_update(status="inactive"))

    student = student_service.get_student(gateway, student_id)
    assert student["full_name"] == "Amina Kader"
    assert student["program"] == "Math"
    assert student["status"] == "inactive"


def test_update_rejects_partial_fields(gateway):
    student_id = student_service.register(gateway, AMINA)
    with pytest.raises(ValidationError):
        student_service.update(gateway, student_id, {"full_name": "Only Name"})


def test_update_unknown_student(gateway):
    with pytest.raises(NotFoundError):
        student_service.update(gateway, "STU-999999", _full_update())


def test_update_to_taken_email_conflicts(gateway):
    student_service.register(gateway, AMINA)
    other = student_service.register(gateway, {**AMINA, "email": "other@example.com"})
    with pytest.raises(ConflictError):
        student_service.update(gateway, other, _full_update())


@pytest.mark.parametrize("grade", [-1, 20.5, None])
def test_add_grade_rejects_out_of_range(gateway, count_rows, grade):
    student_id = student_service.register(gateway, AMINA)
    with pytest.raises(ValidationError):
        student_service.add_grade(gateway, student_id, "Math", grade)
    assert count_rows("grades") == 0


def test_add_grade_accepts_zero(gateway):
    student_id = student_service.register(gateway, AMINA)
    assert student_service.add_grade(gateway, student_id, "Math", 0) is Status.NV


def test_add_grade_unknown_student(gateway):
    with pytest.raises(NotFoundError):
        student_service.add_grade(gateway, "STU-999999", "Math", 12)


def test_list_students_search(gateway):
    student_service.register(gateway, AMINA)
    student_service.register(gateway, {"full_name": "Bruno L.", "email": "bruno@example.com",
                                       "program": "Bio"})

    assert len(student_service.list_students(gateway)) == 2
    found = student_service.list_students(gateway, search="bruno")
    assert [s["full_name"] for s in found] == ["Bruno L."]
    assert student_service.list_students(gateway, search="STU-100000")[0]["email"] == "amina@example.com"


def test_student_statistics(gateway):
    student_id = student_service.register(gateway, AMINA)
    for grade in (15, 9, 4, 12):
        student_service.add_grade(gateway, student_id, "Math", grade)

    stats = student_service.student_statistics(gateway, student_id)
    assert stats["total_grades"] == 4
    assert stats["average_grade"] == 10.0
    assert (stats["valide_count"], stats["ratt_count"], stats["nv_count"]) == (2, 1, 1)
    assert stats["highest_grade"] == 15


def test_student_statistics_without_grades(gateway):
    student_id = student_service.register(gateway, AMINA)
    stats = student_service.student_statistics(gateway, student_id)
    assert stats["total_grades"] == 0
    assert stats["average_grade"] is None
    with pytest.raises(NotFoundError):
        student_service.student_statistics(gateway, "STU-999999")


def test_overall_statistics(gateway):
    student_id = student_service.register(gateway, AMINA)
    student_service.add_grade(gateway, student_id, "Math", 16)
    student_service.add_grade(gateway, student_id, "Math", 7)
    session_service.save_session(gateway, "S1", [{"id": student_id, "average": 11.5}])

    stats = student_service.overall_statistics(gateway)
    assert stats["total_students"] == 1
    assert stats["total_sessions"] == 1
    assert stats["grades"]["total_grades"] == 2
    assert stats["grades"]["average_grade"] == 11.5
    assert stats["grades"]["valide_count"] == 1
    assert stats["grades"]["nv_count"] == 1
