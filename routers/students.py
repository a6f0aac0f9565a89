from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from pydantic import ValidationError as SchemaError

from database.gateway import Gateway, get_gateway
from schemas.common import ERROR_RESPONSES
from schemas.students import StudentCreate, StudentUpdate
from services import student_service
from services.photo_storage import PhotoStore, get_photo_store
from utils.errors import ValidationError

router = APIRouter(prefix="/students", tags=["학생 정보"], responses=ERROR_RESPONSES)


# ==========================================================
# [1단계] CRUD 기본 라우터
# ==========================================================

# ✅ [READ] 전체 학생 조회 (search: 이름/이메일/학생 ID 부분 검색)
@router.get("")
def read_students(search: Optional[str] = None, gateway: Gateway = Depends(get_gateway)):
    students = student_service.list_students(gateway, search=search)
    return {"success": True, "count": len(students), "students": students}


# ✅ [CREATE] 학생 등록 (multipart 폼 + 사진 선택)
@router.post("", status_code=201)
def create_student(
    full_name: str = Form(""),
    email: str = Form(""),
    phone: Optional[str] = Form(None),
    date_of_birth: Optional[str] = Form(None),
    address: Optional[str] = Form(None),
    program: str = Form(""),
    photo: Optional[UploadFile] = File(None),
    gateway: Gateway = Depends(get_gateway),
    photo_store: PhotoStore = Depends(get_photo_store),
):
    try:
        fields = StudentCreate(
            full_name=full_name,
            email=email,
            phone=phone,
            date_of_birth=date_of_birth,
            address=address,
            program=program,
        )
    except SchemaError as e:
        first = e.errors()[0]
        raise ValidationError(f"{first['loc'][0]}: {first['msg']}")
    student_id = student_service.register(
        gateway, fields.model_dump(), photo=photo, photo_store=photo_store
    )
    return {
        "success": True,
        "message": "Student registered successfully",
        "student_id": student_id,
    }


# ==========================================================
# [2단계] 학생별 통계
# ==========================================================

# ✅ [SUMMARY] 특정 학생 성적 통계
@router.get("/{student_id}/statistics")
def get_student_statistics(student_id: str, gateway: Gateway = Depends(get_gateway)):
    stats = student_service.student_statistics(gateway, student_id)
    return {"success": True, "statistics": stats}


# ==========================================================
# [3단계] 완전 동적 라우터 (개별 조회/수정/삭제)
# ==========================================================

# ✅ [READ] 특정 학생 상세 조회 (성적 이력 포함)
@router.get("/{student_id}")
def read_student(student_id: str, gateway: Gateway = Depends(get_gateway)):
    student = student_service.get_student(gateway, student_id)
    return {"success": True, "student": student}


# ✅ [UPDATE] 특정 학생 정보 수정 (전체 필드 필수)
@router.put("/{student_id}")
def update_student(student_id: str, updated: StudentUpdate, gateway: Gateway = Depends(get_gateway)):
    student_service.update(gateway, student_id, updated.model_dump())
    return {"success": True, "message": "Student updated successfully"}


# ✅ [DELETE] 특정 학생 삭제 (사진 파일 + 성적 함께 삭제)
@router.delete("/{student_id}")
def delete_student(
    student_id: str,
    gateway: Gateway = Depends(get_gateway),
    photo_store: PhotoStore = Depends(get_photo_store),
):
    student_service.delete(gateway, student_id, photo_store)
    return {"success": True, "message": "Student deleted successfully"}
