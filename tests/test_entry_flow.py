import itertools
import json
from datetime import datetime

import pytest

from services import entry_flow
from utils.errors import ValidationError

NOW = datetime(2026, 1, 15, 9, 30)


def sequential_ids(start=100001):
    counter = itertools.count(start)
    return lambda: f"STU-{next(counter)}"


@pytest.fixture
def ids():
    return sequential_ids()


@pytest.mark.parametrize("total", [0, 101, "abc", None])
def test_start_rejects_out_of_range_totals(total):
    with pytest.raises(ValidationError):
        entry_flow.start(total)


def test_full_flow_with_skip(ids):
    state = entry_flow.start(3, id_source=ids)
    assert state.candidate_id == "STU-100001"

    state = entry_flow.add_student(state, "Amina", "15", now=NOW, id_source=ids)
    state = entry_flow.skip_student(state, id_source=ids)
    assert not state.complete
    state = entry_flow.add_student(state, "Bruno", 8.456, subject="Math", now=NOW, id_source=ids)

    assert state.complete
    assert state.candidate_id is None
    assert state.count == 3
    assert [s.id for s in state.students] == ["STU-100001", "STU-100003"]
    assert state.students[1].avg == 8.456
    assert state.students[1].status == "Ratt"
    assert state.students[0].subject == "General"
    assert state.distribution() == {"Validé": 1, "Ratt": 1, "NV": 0}
    assert state.summary().success_rate == 50.0


def test_transitions_do_not_mutate_previous_state(ids):
    first = entry_flow.start(2, id_source=ids)
    second = entry_flow.add_student(first, "Amina", 12, id_source=ids)
    assert first.students == ()
    assert first.count == 0
    assert len(second.students) == 1


@pytest.mark.parametrize("name, avg", [("", 12), ("   ", 12), ("Amina", 25), ("Amina", "x")])
def test_add_student_validates_input(ids, name, avg):
    state = entry_flow.start(2, id_source=ids)
    with pytest.raises(ValidationError):
        entry_flow.add_student(state, name, avg, id_source=ids)


def test_no_slots_after_completion(ids):
    state = entry_flow.skip_student(entry_flow.start(1, id_source=ids))
    with pytest.raises(ValidationError):
        entry_flow.add_student(state, "Late", 12)
    with pytest.raises(ValidationError):
        entry_flow.skip_student(entry_flow.reset())


def test_candidate_ids_unique_within_flow():
    repeating = iter(["STU-111111", "STU-111111", "STU-222222"])
    draw = lambda: next(repeating)
    state = entry_flow.start(2, id_source=draw)
    state = entry_flow.add_student(state, "Amina", 12, id_source=draw)
    assert state.candidate_id == "STU-222222"


def test_edit_recomputes_status(ids):
    state = entry_flow.start(1, id_source=ids)
    state = entry_flow.add_student(state, "Amina", 12, id_source=ids)

    edited = entry_flow.edit_student(state, "STU-100001", avg=7.5)
    assert edited.students[0].status == "NV"
    assert edited.students[0].name == "Amina"

    renamed = entry_flow.edit_student(edited, "STU-100001", name=" Amina K. ")
    assert renamed.students[0].name == "Amina K."

    with pytest.raises(ValidationError):
        entry_flow.edit_student(state, "STU-100001", avg=-3)
    with pytest.raises(ValidationError):
        entry_flow.edit_student(state, "STU-000000", name="Ghost")


def test_status_uses_unrounded_average(ids):
    state = entry_flow.start(2, id_source=ids)
    state = entry_flow.add_student(state, "Amina", 7.996, id_source=ids)
    assert state.students[0].avg == 7.996
    assert state.students[0].status == "NV"

    edited = entry_flow.edit_student(state, "STU-100001", avg=9.999)
    assert edited.students[0].status == "Ratt"

    # 화면/CSV 에서만 소수 2자리
    assert "7.996" not in entry_flow.to_csv(state)
    assert "8.00,NV" in entry_flow.to_csv(state)
    payload = entry_flow.to_session_payload(state)
    assert payload["students_data"][0]["average"] == 7.996


def test_delete_decrements_total(ids):
    state = entry_flow.start(3, id_source=ids)
    state = entry_flow.add_student(state, "Amina", 12, id_source=ids)
    state = entry_flow.add_student(state, "Bruno", 9, id_source=ids)

    state = entry_flow.delete_student(state, "STU-100001")
    assert state.total == 2
    assert [s.name for s in state.students] == ["Bruno"]
    assert state.complete


def test_sort_and_filter(ids):
    state = entry_flow.start(3, id_source=ids)
    for name, avg in (("charlie", 11), ("Amina", 16), ("Bruno", 4)):
        state = entry_flow.add_student(state, name, avg, id_source=ids)

    assert [s.name for s in entry_flow.sort_students(state, "name").students] == ["Amina", "Bruno", "charlie"]
    assert [s.avg for s in entry_flow.sort_students(state, "avg").students] == [16, 11, 4]
    assert [s.name for s in entry_flow.filter_students(state, "nv")] == ["Bruno"]
    assert len(entry_flow.filter_students(state, "")) == 3
    with pytest.raises(ValidationError):
        entry_flow.sort_students(state, "email")


def test_exports_and_payload(ids):
    state = entry_flow.start(2, id_source=ids)
    state = entry_flow.add_student(state, "Amina, K.", 12, now=NOW, id_source=ids)
    state = entry_flow.add_student(state, "Bruno", 7, now=NOW, id_source=ids)

    csv_text = entry_flow.to_csv(state)
    assert csv_text.splitlines()[1] == 'STU-100001,"Amina, K.",12.00,Validé,General,2026-01-15T09:30:00'

    data = json.loads(entry_flow.to_json(state, "Morning", now=NOW))
    assert data["session_name"] == "Morning"
    assert data["total_students"] == 2
    assert data["statistics"] == {"valide": 1, "ratt": 0, "nv": 1}

    payload = entry_flow.to_session_payload(state, "Morning")
    assert payload["students_data"][1] == {"id": "STU-100002", "name": "Bruno", "average": 7.0, "status": "NV"}


def test_exports_require_rows():
    with pytest.raises(ValidationError):
        entry_flow.to_csv(entry_flow.reset())
    with pytest.raises(ValidationError):
        entry_flow.to_session_payload(entry_flow.reset())
