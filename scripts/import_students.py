import csv
import logging
import sys
from pathlib import Path

from pydantic import ValidationError as SchemaError

from database.gateway import gateway
from schemas.students import StudentCreate
from services import student_service
from services.photo_storage import PhotoUpload, default_photo_store
from utils.errors import AppError

logger = logging.getLogger(__name__)

CSV_PATH = "data/students.csv"  # ✅ 기본 파일 경로
# 컬럼: full_name, email, phone, date_of_birth, address, program, photo(선택, 로컬 이미지 경로)

CONTENT_TYPES = {".jpg": "image/jpeg", ".jpeg": "image/jpeg", ".png": "image/png"}


def _register_row(row, photo_store):
    fields = StudentCreate(**{k: row.get(k) for k in StudentCreate.model_fields})
    photo_path = (row.get("photo") or "").strip()
    if not photo_path:
        return student_service.register(gateway, fields.model_dump())

    path = Path(photo_path)
    with open(path, "rb") as f:
        photo = PhotoUpload(path.name, CONTENT_TYPES.get(path.suffix.lower()), f)
        return student_service.register(gateway, fields.model_dump(),
                                        photo=photo, photo_store=photo_store)


def migrate_students(csv_path: str = CSV_PATH):
    photo_store = default_photo_store()
    created, skipped = 0, 0

    with open(csv_path, newline="", encoding="utf-8-sig") as csvfile:
        reader = csv.DictReader(csvfile)
        for line, row in enumerate(reader, start=2):
            try:
                student_id = _register_row(row, photo_store)
            except (AppError, SchemaError, OSError) as e:
                # 중복 이메일/필수값 누락 등은 건너뛰고 계속 진행
                skipped += 1
                logger.warning(f"line {line} skipped: {e}")
                continue
            created += 1
            logger.info(f"line {line} → {student_id}")

    print(f"✅ 학생 CSV → DB 등록 완료: {created}명 등록, {skipped}건 건너뜀")
    return created, skipped


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    migrate_students(sys.argv[1] if len(sys.argv) > 1 else CSV_PATH)
