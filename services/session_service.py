"""
services/session_service.py

검증 세션(Validation Session) 워크플로
- save_session   : 판정 목록 검증 → 집계 → 세션 1건 + 상세 N건을 하나의 트랜잭션으로 저장
- get_session    : 세션 + 상세 (학생 정보는 LEFT JOIN, 삭제된 학생이면 이름/이메일 None)
- list_sessions / delete_session / export_session
"""

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from sqlalchemy import delete as sql_delete, select
from sqlalchemy.orm import Session

from config.settings import settings
from database.gateway import Gateway
from models.students import Student
from models.validation_sessions import SessionDetail, ValidationSession
from services.export_service import EXPORT_FORMATS, export_csv, export_json
from services.grading import aggregate, check_grade, classify, parse_status, success_rate
from utils.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def default_session_name(now: Optional[datetime] = None) -> str:
    return f"Session {(now or datetime.now()):%Y-%m-%d %H:%M:%S}"


def _pick(entry: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = entry.get(key)
        if value is not None and value != "":
            return value
    return None


def normalize_entry(entry: Mapping[str, Any], position: int = 1) -> Dict[str, Any]:
    """
    {id|student_id, average|avg, status?} → {student_id, average, status}
    - status 가 없으면 점수로 판정
    - status 가 있으면 세 가지 값 중 하나여야 하고 점수 판정과 일치해야 함
    """
    student_id = _pick(entry, "student_id", "id")
    if student_id is None or not str(student_id).strip():
        raise ValidationError(f"Entry {position}: student id is required")

    try:
        average = check_grade(_pick(entry, "average", "avg", "average_grade"))
    except ValidationError as e:
        raise ValidationError(f"Entry {position}: {e.message}")

    expected = classify(average)
    given = entry.get("status")
    if given is not None:
        status = parse_status(given)
        if status is not expected:
            raise ValidationError(
                f"Entry {position}: status {status.value} does not match average {average}"
            )

    return {"student_id": str(student_id).strip(), "average": average, "status": expected.value}


# ==========================================================
# [1단계] 저장
# ==========================================================
def save_session(gateway: Gateway, session_name: Optional[str],
                 entries: Iterable[Mapping[str, Any]]) -> int:
    entries = list(entries or [])
    if not entries:
        raise ValidationError("Invalid students data")

    rows = [normalize_entry(entry, i) for i, entry in enumerate(entries, start=1)]
    summary = aggregate(rows)
    name = (session_name or "").strip() or default_session_name()

    def _insert(db: Session) -> int:
        session = ValidationSession(
            session_name=name,
            total_students=summary.total,
            valide_count=summary.valide,
            ratt_count=summary.ratt,
            nv_count=summary.nv,
        )
        db.add(session)
        db.flush()  # session.id 확보

        for row in rows:
            db.add(SessionDetail(
                session_id=session.id,
                student_id=row["student_id"],
                average_grade=row["average"],
                status=row["status"],
            ))
            db.flush()
        return session.id

    session_id = gateway.with_transaction(_insert)
    logger.info(f"session saved: id={session_id} name={name!r} total={summary.total}")
    return session_id


# ==========================================================
# [2단계] 조회
# ==========================================================
def _with_rate(session: Dict[str, Any]) -> Dict[str, Any]:
    session["success_rate"] = success_rate(session["valide_count"], session["total_students"])
    return session


def list_sessions(gateway: Gateway, limit: Optional[int] = None) -> List[Dict[str, Any]]:
    if not limit or limit <= 0:
        limit = settings.SESSIONS_DEFAULT_LIMIT
    sessions = gateway.run(
        select(ValidationSession.__table__)
        .order_by(ValidationSession.created_at.desc(), ValidationSession.id.desc())
        .limit(limit)
    )
    return [_with_rate(s) for s in sessions]


def get_session(gateway: Gateway, session_id: int) -> Dict[str, Any]:
    session = gateway.run_one(
        select(ValidationSession.__table__).where(ValidationSession.id == session_id)
    )
    if session is None:
        raise NotFoundError("Session not found")

    details = gateway.run(
        select(SessionDetail.__table__, Student.full_name, Student.email)
        .outerjoin(Student, SessionDetail.student_id == Student.student_id)
        .where(SessionDetail.session_id == session_id)
        .order_by(SessionDetail.id)
    )
    return {**_with_rate(session), "details": details}


# ==========================================================
# [3단계] 삭제 / 내보내기
# ==========================================================
def delete_session(gateway: Gateway, session_id: int) -> None:
    exists = gateway.run_one(
        select(ValidationSession.id).where(ValidationSession.id == session_id)
    )
    if exists is None:
        raise NotFoundError("Session not found")

    # session_details 는 ON DELETE CASCADE
    with gateway.transaction() as db:
        db.execute(sql_delete(ValidationSession).where(ValidationSession.id == session_id))
    logger.info(f"session deleted: id={session_id}")


def export_session(gateway: Gateway, session_id: int, fmt: str = "csv") -> Tuple[str, str, str]:
    """(본문, media type, 파일명)"""
    if fmt not in EXPORT_FORMATS:
        raise ValidationError(f"Unsupported export format: {fmt}")

    session = get_session(gateway, session_id)
    created_at = session.get("created_at")
    timestamp = created_at.isoformat() if isinstance(created_at, datetime) else created_at
    rows = [
        {
            "id": d["student_id"],
            "name": d["full_name"],
            "avg": d["average_grade"],
            "status": d["status"],
            "subject": None,
            "timestamp": timestamp,
        }
        for d in session["details"]
    ]

    media_type, filename = EXPORT_FORMATS[fmt]
    if fmt == "csv":
        body = export_csv(rows)
    else:
        date = created_at if isinstance(created_at, datetime) else None
        body = export_json(session["session_name"], rows, date=date)
    return body, media_type, filename
