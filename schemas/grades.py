from typing import Optional

from pydantic import BaseModel, Field, field_validator

from schemas.common import to_text

# ✅ 성적 추가 요청 (POST /validation/add-grade)
class AddGradeRequest(BaseModel):
    student_id: Optional[str] = Field(default=None, max_length=20)      # 학생 ID (STU-xxxxxx)
    subject: Optional[str] = Field(default=None, max_length=100)        # 과목명 (없으면 General)
    grade: Optional[float] = None                                       # 점수 (0~20)
    semester: Optional[str] = Field(default=None, max_length=20)        # 학기
    academic_year: Optional[str] = Field(default=None, max_length=20)   # 학년도

    @field_validator("semester", "academic_year", mode="before")
    @classmethod
    def _as_text(cls, v):
        return to_text(v)


# ✅ 상태 계산 요청 (POST /validation/calculate)
class CalculateRequest(BaseModel):
    grade: Optional[float] = None
