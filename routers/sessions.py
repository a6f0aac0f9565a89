from typing import Optional

from fastapi import APIRouter, Depends, Response

from database.gateway import Gateway, get_gateway
from schemas.common import ERROR_RESPONSES
from services import session_service

router = APIRouter(prefix="/sessions", tags=["세션 이력"], responses=ERROR_RESPONSES)


# ✅ [READ] 세션 이력 목록
@router.get("")
def read_sessions(limit: Optional[int] = None, gateway: Gateway = Depends(get_gateway)):
    sessions = session_service.list_sessions(gateway, limit=limit)
    return {"success": True, "count": len(sessions), "sessions": sessions}


# ✅ [EXPORT] 세션 내보내기 (csv / json 파일 다운로드)
@router.get("/{session_id}/export")
def export_session(session_id: int, format: str = "csv", gateway: Gateway = Depends(get_gateway)):
    body, media_type, filename = session_service.export_session(gateway, session_id, format.lower())
    return Response(
        content=body,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# ✅ [READ] 세션 단건 (상세는 students 키로)
@router.get("/{session_id}")
def read_session(session_id: int, gateway: Gateway = Depends(get_gateway)):
    session = session_service.get_session(gateway, session_id)
    session["students"] = session.pop("details")
    return {"success": True, "session": session}


# ✅ [DELETE] 세션 삭제 (상세 함께 삭제)
@router.delete("/{session_id}")
def delete_session(session_id: int, gateway: Gateway = Depends(get_gateway)):
    session_service.delete_session(gateway, session_id)
    return {"success": True, "message": "Session deleted successfully"}
