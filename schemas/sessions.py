from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from schemas.common import to_text

# ✅ 세션 상세 한 줄 (입력 화면의 학생 객체: id / name / avg / status / subject / timestamp)
class SessionEntry(BaseModel):
    id: Optional[str] = Field(default=None, max_length=50, validation_alias=AliasChoices("student_id", "id"))
    average: Optional[float] = Field(default=None, validation_alias=AliasChoices("average", "avg", "average_grade"))
    status: Optional[str] = None
    name: Optional[str] = None

    model_config = ConfigDict(extra="ignore")   # subject, timestamp 등은 무시

    @field_validator("id", mode="before")
    @classmethod
    def _id_text(cls, v):
        return to_text(v)


# ✅ 세션 저장 요청 (POST /validation/save-session)
class SaveSessionRequest(BaseModel):
    session_name: Optional[str] = Field(default=None, max_length=150)
    students_data: Optional[List[SessionEntry]] = None
