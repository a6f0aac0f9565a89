"""
services/student_service.py

학생 등록부(Student Registry) 워크플로
- register / update / delete : 학생 기본 정보 CRUD (+ 사진)
- add_grade                  : 성적 추가 (상태 자동 판정)
- get_student / list_students / student_statistics / overall_statistics : 조회
"""

import logging
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import case, delete as sql_delete, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from database.gateway import Gateway
from models.grades import Grade
from models.students import Student
from models.validation_sessions import ValidationSession
from services.grading import Status, check_grade, classify
from services.photo_storage import PhotoStore
from utils.errors import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

ID_PREFIX = "STU-"
FIRST_ID_NUMBER = 100000
LAST_ID_NUMBER = 999999
ID_ATTEMPTS = 5            # 동시 등록으로 번호가 겹칠 때 재발급 횟수

REQUIRED_FIELDS = ("full_name", "email", "program")
MUTABLE_FIELDS = ("full_name", "email", "phone", "date_of_birth", "address", "program", "status")
STUDENT_STATUSES = ("active", "inactive")


# ==========================================================
# [공통] 입력 정리 / 학생 ID 발급
# ==========================================================
def _clean(fields: Mapping[str, Any]) -> Dict[str, Any]:
    # 문자열 앞뒤 공백 제거, 빈 문자열은 None
    cleaned = {}
    for key, value in fields.items():
        if isinstance(value, str):
            value = value.strip() or None
        cleaned[key] = value
    return cleaned


def _require(data: Mapping[str, Any]):
    if any(not data.get(key) for key in REQUIRED_FIELDS):
        raise ValidationError("Full name, email, and program are required")


def format_student_id(number: int) -> str:
    return f"{ID_PREFIX}{number:06d}"


def allocate_student_id(db: Session) -> str:
    """
    현재 가장 큰 STU 번호 + 1 (트랜잭션 안에서 호출).
    고정 6자리라 문자열 MAX 가 곧 숫자 MAX.
    동시 등록으로 같은 번호가 나오면 PK 제약이 막고, register 가 다시 발급함.
    """
    current = db.execute(
        select(func.max(Student.student_id)).where(Student.student_id.like(f"{ID_PREFIX}%"))
    ).scalar()
    number = int(current[len(ID_PREFIX):]) + 1 if current else FIRST_ID_NUMBER
    if number > LAST_ID_NUMBER:
        raise ConflictError("Student ID space exhausted")
    return format_student_id(number)


def _email_taken(gateway: Gateway, email: str, exclude_id: Optional[str] = None) -> bool:
    stmt = select(Student.student_id).where(Student.email == email)
    if exclude_id is not None:
        stmt = stmt.where(Student.student_id != exclude_id)
    return gateway.run_one(stmt) is not None


# ==========================================================
# [1단계] 등록 / 수정 / 삭제
# ==========================================================
def _insert_student(gateway: Gateway, data: Mapping[str, Any], photo_url: Optional[str]) -> str:
    """
    번호 발급 + INSERT. 제약 위반 시
    - 그사이 같은 이메일이 등록됐으면 ConflictError
    - 아니면 번호 충돌로 보고 ID_ATTEMPTS 번까지 새 번호로 다시 시도
    """
    for attempt in range(1, ID_ATTEMPTS + 1):
        try:
            with gateway.transaction() as db:
                student_id = allocate_student_id(db)
                db.add(Student(
                    student_id=student_id,
                    full_name=data["full_name"],
                    email=data["email"],
                    phone=data.get("phone"),
                    date_of_birth=data.get("date_of_birth"),
                    address=data.get("address"),
                    program=data["program"],
                    photo_url=photo_url,
                    status="active",
                ))
            return student_id
        except IntegrityError:
            if _email_taken(gateway, data["email"]):
                raise ConflictError("Email already exists")
            if attempt == ID_ATTEMPTS:
                raise
            logger.warning(f"student id collision on {student_id}, retrying ({attempt}/{ID_ATTEMPTS})")


def register(gateway: Gateway, fields: Mapping[str, Any],
             photo=None, photo_store: Optional[PhotoStore] = None) -> str:
    data = _clean(fields)
    _require(data)

    if _email_taken(gateway, data["email"]):
        raise ConflictError("Email already exists")

    photo_url = None
    if photo is not None and photo.filename:
        if photo_store is None:
            raise ValidationError("Photo uploads are not configured")
        photo_url = photo_store.save(photo.filename, photo.content_type, photo.file)

    try:
        student_id = _insert_student(gateway, data, photo_url)
    except Exception:
        # 등록 실패 시 먼저 저장한 사진 정리
        if photo_url:
            photo_store.remove(photo_url)
        raise

    logger.info(f"student registered: {student_id}")
    return student_id


def update(gateway: Gateway, student_id: str, fields: Mapping[str, Any]) -> None:
    """부분 수정 미지원: MUTABLE_FIELDS 전부를 받아 덮어씀"""
    missing = [key for key in MUTABLE_FIELDS if key not in fields]
    if missing:
        raise ValidationError(f"Missing fields: {', '.join(missing)}")

    data = _clean(fields)
    _require(data)
    if data["status"] not in STUDENT_STATUSES:
        raise ValidationError("Status must be 'active' or 'inactive'")

    with gateway.transaction() as db:
        student = db.get(Student, student_id)
        if student is None:
            raise NotFoundError("Student not found")

        duplicate = db.execute(
            select(Student.student_id)
            .where(Student.email == data["email"], Student.student_id != student_id)
        ).first()
        if duplicate:
            raise ConflictError("Email already exists")

        for key in MUTABLE_FIELDS:
            setattr(student, key, data[key])

    logger.info(f"student updated: {student_id}")


def delete(gateway: Gateway, student_id: str, photo_store: PhotoStore) -> None:
    student = gateway.run_one(
        select(Student.student_id, Student.photo_url).where(Student.student_id == student_id)
    )
    if student is None:
        raise NotFoundError("Student not found")

    # 사진 먼저 삭제 (파일이 이미 없으면 그대로 진행)
    photo_store.remove(student["photo_url"])

    # grades 는 ON DELETE CASCADE
    with gateway.transaction() as db:
        db.execute(sql_delete(Student).where(Student.student_id == student_id))

    logger.info(f"student deleted: {student_id}")


# ==========================================================
# [2단계] 성적 추가
# ==========================================================
def add_grade(gateway: Gateway, student_id: str, subject: Optional[str], grade: Any,
              semester: Optional[str] = None, academic_year: Optional[str] = None) -> Status:
    if not student_id:
        raise ValidationError("Student ID and grade are required")
    value = check_grade(grade)
    status = classify(value)

    with gateway.transaction() as db:
        if db.get(Student, student_id) is None:
            raise NotFoundError("Student not found")
        db.add(Grade(
            student_id=student_id,
            subject=(subject or "").strip() or "General",
            grade=value,
            status=status.value,
            semester=semester or None,
            academic_year=academic_year or None,
        ))

    logger.info(f"grade added: {student_id} {value} → {status.value}")
    return status


# ==========================================================
# [3단계] 조회
# ==========================================================
def list_students(gateway: Gateway, search: Optional[str] = None) -> List[Dict[str, Any]]:
    stmt = select(Student.__table__)
    if search:
        term = f"%{search}%"
        stmt = stmt.where(or_(
            Student.full_name.like(term),
            Student.email.like(term),
            Student.student_id.like(term),
        )).order_by(Student.full_name)
    else:
        stmt = stmt.order_by(Student.created_at.desc(), Student.student_id.desc())
    return gateway.run(stmt)


def get_student(gateway: Gateway, student_id: str) -> Dict[str, Any]:
    student = gateway.run_one(select(Student.__table__).where(Student.student_id == student_id))
    if student is None:
        raise NotFoundError("Student not found")

    grades = gateway.run(
        select(Grade.__table__)
        .where(Grade.student_id == student_id)
        .order_by(Grade.created_at.desc(), Grade.id.desc())
    )
    return {**student, "grades": grades}


def _status_count(status: Status):
    return func.coalesce(func.sum(case((Grade.status == status.value, 1), else_=0)), 0)


def student_statistics(gateway: Gateway, student_id: str) -> Dict[str, Any]:
    """학생별 통계 (student_statistics 뷰와 같은 컬럼 구성)"""
    stats = gateway.run_one(
        select(
            Student.student_id,
            Student.full_name,
            Student.email,
            Student.program,
            Student.status,
            func.count(Grade.id).label("total_grades"),
            func.avg(Grade.grade).label("average_grade"),
            func.min(Grade.grade).label("lowest_grade"),
            func.max(Grade.grade).label("highest_grade"),
            _status_count(Status.VALIDE).label("valide_count"),
            _status_count(Status.RATT).label("ratt_count"),
            _status_count(Status.NV).label("nv_count"),
            func.max(Grade.created_at).label("last_grade_at"),
        )
        .select_from(Student)
        .outerjoin(Grade, Grade.student_id == Student.student_id)
        .where(Student.student_id == student_id)
        .group_by(Student.student_id, Student.full_name, Student.email,
                  Student.program, Student.status)
    )
    if stats is None:
        raise NotFoundError("Student not found")

    if stats["average_grade"] is not None:
        stats["average_grade"] = round(float(stats["average_grade"]), 2)
    return stats


def overall_statistics(gateway: Gateway) -> Dict[str, Any]:
    total_students = gateway.run_one(
        select(func.count().label("total")).select_from(Student).where(Student.status == "active")
    )["total"]
    total_sessions = gateway.run_one(
        select(func.count().label("total")).select_from(ValidationSession)
    )["total"]
    grades = gateway.run_one(
        select(
            func.count(Grade.id).label("total_grades"),
            func.avg(Grade.grade).label("average_grade"),
            _status_count(Status.VALIDE).label("valide_count"),
            _status_count(Status.RATT).label("ratt_count"),
            _status_count(Status.NV).label("nv_count"),
        )
    )
    if grades["average_grade"] is not None:
        grades["average_grade"] = round(float(grades["average_grade"]), 2)

    return {
        "total_students": total_students,
        "total_sessions": total_sessions,
        "grades": grades,
    }
