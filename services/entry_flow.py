"""
services/entry_flow.py

교사용 순차 입력 흐름 (학생 수 지정 → 한 명씩 입력/건너뛰기 → 완료 후 통계/차트)
- 상태는 불변 객체(EntryState), 모든 동작은 새 상태를 돌려주는 함수
- 서버에는 저장하지 않음. 저장은 to_session_payload() 결과로 save-session 호출
- 임시 학생 ID 는 한 번의 입력 흐름 안에서만 중복되지 않음 (등록부 ID 와는 무관)
"""

import random
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Callable, Dict, Optional, Tuple

from services.export_service import export_csv, export_json
from services.grading import SessionSummary, Status, aggregate, check_grade, classify
from utils.errors import ValidationError

MIN_TOTAL = 1
MAX_TOTAL = 100
DEFAULT_SUBJECT = "General"

IdSource = Callable[[], str]


def random_candidate_id(rng: Optional[random.Random] = None) -> str:
    rng = rng or random
    return f"STU-{rng.randint(100000, 999999)}"


@dataclass(frozen=True)
class EnteredStudent:
    id: str
    name: str
    avg: float          # 입력값 그대로 (표시할 때만 소수 2자리)
    subject: str
    status: str
    timestamp: str

    def as_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "avg": self.avg,
            "subject": self.subject,
            "status": self.status,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class EntryState:
    total: int = 0                                  # 입력할 학생 수 (삭제 시 감소)
    count: int = 0                                  # 사용한 칸 수 (추가 + 건너뛰기)
    students: Tuple[EnteredStudent, ...] = field(default_factory=tuple)
    candidate_id: Optional[str] = None              # 현재 입력 폼의 임시 ID

    @property
    def started(self) -> bool:
        return self.total > 0

    @property
    def complete(self) -> bool:
        return self.started and self.count >= self.total

    @property
    def remaining(self) -> int:
        return max(0, self.total - self.count)

    @property
    def progress(self) -> float:
        if not self.total:
            return 0
        return min(100.0, self.count / self.total * 100)

    def find(self, student_id: str) -> Optional[EnteredStudent]:
        return next((s for s in self.students if s.id == student_id), None)

    def summary(self) -> SessionSummary:
        return aggregate(self.students)

    def distribution(self) -> Dict[str, int]:
        """상태 분포 차트용 (라벨 순서 고정)"""
        summary = self.summary()
        return {
            Status.VALIDE.value: summary.valide,
            Status.RATT.value: summary.ratt,
            Status.NV.value: summary.nv,
        }

    def rows(self):
        return [s.as_dict() for s in self.students]


# ==========================================================
# [내부] 임시 ID / 입력값 검증
# ==========================================================
def _next_candidate(students: Tuple[EnteredStudent, ...], id_source: Optional[IdSource]) -> str:
    taken = {s.id for s in students}
    draw = id_source or random_candidate_id
    candidate = draw()
    while candidate in taken:   # 목록 크기 ≤ MAX_TOTAL
        candidate = draw()
    return candidate


def _check_name(name: Optional[str]) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Please enter student name")
    return name


def _check_avg(avg: Any) -> float:
    try:
        return check_grade(avg)
    except ValidationError:
        raise ValidationError("Please enter a valid average between 0 and 20")


def _require_open(state: EntryState):
    if not state.started:
        raise ValidationError("Entry flow has not been started")
    if state.complete:
        raise ValidationError("All students have already been entered")


# ==========================================================
# [1단계] 시작 / 추가 / 건너뛰기
# ==========================================================
def start(total: Any, id_source: Optional[IdSource] = None) -> EntryState:
    try:
        total = int(total)
    except (TypeError, ValueError):
        raise ValidationError("Please enter a number between 1 and 100")
    if not MIN_TOTAL <= total <= MAX_TOTAL:
        raise ValidationError("Please enter a number between 1 and 100")
    return EntryState(total=total, candidate_id=_next_candidate((), id_source))


def add_student(state: EntryState, name: Optional[str], avg: Any,
                subject: Optional[str] = None, now: Optional[datetime] = None,
                id_source: Optional[IdSource] = None) -> EntryState:
    _require_open(state)
    name = _check_name(name)
    value = _check_avg(avg)

    student = EnteredStudent(
        id=state.candidate_id or _next_candidate(state.students, id_source),
        name=name,
        avg=value,
        subject=(subject or "").strip() or DEFAULT_SUBJECT,
        status=classify(value).value,
        timestamp=(now or datetime.now()).isoformat(),
    )
    students = state.students + (student,)
    return _advance(replace(state, students=students), id_source)


def skip_student(state: EntryState, id_source: Optional[IdSource] = None) -> EntryState:
    _require_open(state)
    return _advance(state, id_source)


def _advance(state: EntryState, id_source: Optional[IdSource]) -> EntryState:
    count = state.count + 1
    candidate = None if count >= state.total else _next_candidate(state.students, id_source)
    return replace(state, count=count, candidate_id=candidate)


# ==========================================================
# [2단계] 수정 / 삭제 / 초기화
# ==========================================================
def edit_student(state: EntryState, student_id: str,
                 name: Optional[str] = None, avg: Any = None) -> EntryState:
    current = state.find(student_id)
    if current is None:
        raise ValidationError(f"Student {student_id} is not in the list")

    new_name = current.name if name is None else _check_name(name)
    new_avg = current.avg if avg is None else _check_avg(avg)
    updated = replace(current, name=new_name, avg=new_avg, status=classify(new_avg).value)
    students = tuple(updated if s.id == student_id else s for s in state.students)
    return replace(state, students=students)


def delete_student(state: EntryState, student_id: str) -> EntryState:
    if state.find(student_id) is None:
        raise ValidationError(f"Student {student_id} is not in the list")
    students = tuple(s for s in state.students if s.id != student_id)
    # 삭제한 만큼 목표 인원도 줄임
    return replace(state, students=students, total=max(0, state.total - 1))


def reset() -> EntryState:
    return EntryState()


# ==========================================================
# [3단계] 정렬 / 검색 / 내보내기
# ==========================================================
def sort_students(state: EntryState, key: str) -> EntryState:
    if key == "name":
        students = tuple(sorted(state.students, key=lambda s: s.name.casefold()))
    elif key == "avg":
        students = tuple(sorted(state.students, key=lambda s: s.avg, reverse=True))
    else:
        raise ValidationError(f"Unknown sort key: {key}")
    return replace(state, students=students)


def filter_students(state: EntryState, term: str) -> Tuple[EnteredStudent, ...]:
    term = (term or "").strip().lower()
    if not term:
        return state.students
    return tuple(
        s for s in state.students
        if term in f"{s.id} {s.name} {s.avg:.2f} {s.status}".lower()
    )


def _require_rows(state: EntryState):
    if not state.students:
        raise ValidationError("No data to export!")


def to_csv(state: EntryState) -> str:
    _require_rows(state)
    return export_csv(state.rows())


def to_json(state: EntryState, session_name: Optional[str] = None,
            now: Optional[datetime] = None) -> str:
    _require_rows(state)
    return export_json(session_name, state.rows(), date=now)


def to_session_payload(state: EntryState, session_name: Optional[str] = None) -> Dict[str, Any]:
    """POST /api/validation/save-session 요청 본문"""
    if not state.students:
        raise ValidationError("No students to save!")
    return {
        "session_name": session_name or None,
        "students_data": [
            {"id": s.id, "name": s.name, "average": s.avg, "status": s.status}
            for s in state.students
        ],
    }
