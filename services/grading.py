"""
services/grading.py

- 점수(0~20) → 판정 상태(Validé / Ratt / NV) 분류
- 판정 목록 → 상태별 집계 + 합격률(success rate)
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable

from utils.errors import ValidationError

MIN_GRADE = 0
MAX_GRADE = 20
PASS_THRESHOLD = 10     # 이상이면 Validé
RETAKE_THRESHOLD = 8    # 이상이면 Ratt (재시험 대상)


class Status(str, Enum):
    VALIDE = "Validé"
    RATT = "Ratt"
    NV = "NV"


def classify(grade: float) -> Status:
    """반올림 없이 원래 값 그대로 비교"""
    if grade >= PASS_THRESHOLD:
        return Status.VALIDE
    if grade >= RETAKE_THRESHOLD:
        return Status.RATT
    return Status.NV


def check_grade(grade: Any) -> float:
    """
    호출자 쪽 범위 검증. 숫자가 아니거나 [0, 20] 밖이면 ValidationError.
    bool 은 숫자로 취급하지 않음.
    """
    if grade is None or isinstance(grade, bool):
        raise ValidationError("Grade is required")
    try:
        value = float(grade)
    except (TypeError, ValueError):
        raise ValidationError("Grade must be a number")
    if value != value or not MIN_GRADE <= value <= MAX_GRADE:
        raise ValidationError(f"Grade must be between {MIN_GRADE} and {MAX_GRADE}")
    return value


def parse_status(value: Any) -> Status:
    try:
        return Status(value)
    except ValueError:
        raise ValidationError(f"Unknown status: {value!r}")


@dataclass(frozen=True)
class SessionSummary:
    total: int
    valide: int
    ratt: int
    nv: int
    success_rate: float

    def as_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "valide": self.valide,
            "ratt": self.ratt,
            "nv": self.nv,
            "success_rate": self.success_rate,
        }


def _status_of(record) -> Any:
    if isinstance(record, dict):
        return record.get("status")
    return getattr(record, "status", None)


def success_rate(valide: int, total: int) -> float:
    if total <= 0:
        return 0
    return round(valide / total * 100, 1)


def aggregate(records: Iterable) -> SessionSummary:
    counts = {Status.VALIDE: 0, Status.RATT: 0, Status.NV: 0}
    for record in records:
        counts[parse_status(_status_of(record))] += 1

    total = sum(counts.values())
    valide = counts[Status.VALIDE]
    return SessionSummary(
        total=total,
        valide=valide,
        ratt=counts[Status.RATT],
        nv=counts[Status.NV],
        success_rate=success_rate(valide, total),
    )
