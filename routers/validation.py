from typing import Optional

from fastapi import APIRouter, Depends

from database.gateway import Gateway, get_gateway
from schemas.common import ERROR_RESPONSES
from schemas.grades import AddGradeRequest, CalculateRequest
from schemas.sessions import SaveSessionRequest
from services import session_service, student_service
from services.grading import check_grade, classify

router = APIRouter(prefix="/validation", tags=["성적 판정"], responses=ERROR_RESPONSES)


# ==========================================================
# [1단계] 판정 / 성적 추가
# ==========================================================

# ✅ [CALC] 점수 → 상태 계산 (DB 미사용)
@router.post("/calculate")
def calculate_status(body: CalculateRequest):
    grade = check_grade(body.grade)
    return {"success": True, "grade": grade, "status": classify(grade).value}


# ✅ [CREATE] 등록 학생에게 성적 추가
@router.post("/add-grade")
def add_grade(body: AddGradeRequest, gateway: Gateway = Depends(get_gateway)):
    status = student_service.add_grade(
        gateway,
        body.student_id,
        body.subject,
        body.grade,
        semester=body.semester,
        academic_year=body.academic_year,
    )
    return {"success": True, "message": "Grade added successfully", "status": status.value}


# ==========================================================
# [2단계] 세션 저장 / 조회
# ==========================================================

# ✅ [CREATE] 판정 세션 저장 (세션 + 상세를 한 트랜잭션으로)
@router.post("/save-session")
def save_session(body: SaveSessionRequest, gateway: Gateway = Depends(get_gateway)):
    entries = [entry.model_dump() for entry in body.students_data or []]
    session_id = session_service.save_session(gateway, body.session_name, entries)
    return {"success": True, "message": "Session saved successfully", "session_id": session_id}


# ✅ [READ] 세션 목록 (최신순)
@router.get("/sessions")
def read_sessions(limit: Optional[int] = None, gateway: Gateway = Depends(get_gateway)):
    sessions = session_service.list_sessions(gateway, limit=limit)
    return {"success": True, "count": len(sessions), "sessions": sessions}


# ✅ [READ] 세션 상세 (학생 정보 LEFT JOIN)
@router.get("/sessions/{session_id}")
def read_session(session_id: int, gateway: Gateway = Depends(get_gateway)):
    session = session_service.get_session(gateway, session_id)
    return {"success": True, "session": session}


# ==========================================================
# [3단계] 전체 통계
# ==========================================================

# ✅ [SUMMARY] 재학생 수 / 세션 수 / 성적 상태 분포
@router.get("/statistics")
def read_statistics(gateway: Gateway = Depends(get_gateway)):
    return {"success": True, "statistics": student_service.overall_statistics(gateway)}
