"""
schemas/common.py

- 프로젝트 전반에서 재사용할 공용 스키마 모음 (Pydantic v2)
- 모든 응답은 {"success": bool, ...} 형태
  실패 시 {"success": false, "error": "메시지"}
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class ErrorResponse(BaseModel):
    """전역 에러 핸들러에서 내려주는 표준 에러 응답"""
    success: bool = False
    error: str = Field(..., description="사람이 읽을 수 있는 에러 메시지")

    model_config = ConfigDict(extra="ignore")


# ✅ 라우터 responses= 에 그대로 넣어 Swagger 문서화
ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "입력값 오류"},
    404: {"model": ErrorResponse, "description": "대상 없음"},
    409: {"model": ErrorResponse, "description": "중복 (이메일)"},
    500: {"model": ErrorResponse, "description": "저장소/서버 오류"},
}


def blank_to_none(value: Any) -> Optional[Any]:
    # 폼/JSON 의 빈 문자열은 값 없음으로 취급
    if isinstance(value, str) and not value.strip():
        return None
    return value


def to_text(value: Any) -> Optional[str]:
    value = blank_to_none(value)
    return None if value is None else str(value)
