from datetime import date
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from schemas.common import blank_to_none

# ✅ 등록용 (POST, multipart 폼 → 라우터에서 생성), 길이 제한은 students 컬럼 크기와 동일
class StudentCreate(BaseModel):
    full_name: Optional[str] = Field(default=None, max_length=150)   # 학생 이름 (필수, 서비스에서 검증)
    email: Optional[str] = Field(default=None, max_length=150)       # 이메일 (필수, 중복 불가)
    phone: Optional[str] = Field(default=None, max_length=30)        # 연락처
    date_of_birth: Optional[date] = None                             # 생년월일 (YYYY-MM-DD)
    address: Optional[str] = Field(default=None, max_length=255)     # 주소
    program: Optional[str] = Field(default=None, max_length=100)     # 전공/과정 (필수)

    @field_validator("date_of_birth", mode="before")
    @classmethod
    def _blank_date(cls, v):
        return blank_to_none(v)


# ✅ 수정용 (PUT) - 부분 수정 미지원: 모든 필드를 보내야 함 (값은 null 가능)
class StudentUpdate(BaseModel):
    full_name: str = Field(max_length=150)
    email: str = Field(max_length=150)
    phone: Optional[str] = Field(max_length=30)
    date_of_birth: Optional[date]
    address: Optional[str] = Field(max_length=255)
    program: str = Field(max_length=100)
    status: Literal["active", "inactive"]

    @field_validator("date_of_birth", mode="before")
    @classmethod
    def _blank_date(cls, v):
        return blank_to_none(v)
