"""
services/photo_storage.py

- 학생 사진 업로드 저장/삭제
- 허용 형식: jpeg / jpg / png (확장자 + content-type 모두 확인), 최대 MAX_UPLOAD_MB
- 저장 위치: {UPLOAD_DIR}/photos/photo-<timestamp>-<random>.<ext>
- DB 에는 "/uploads/photos/<파일명>" 형태의 URL 만 기록
"""

import logging
import os
import time
import uuid
from pathlib import Path
from typing import BinaryIO, Iterable, NamedTuple, Optional

from config.settings import settings
from utils.errors import StorageError, ValidationError

logger = logging.getLogger(__name__)

URL_PREFIX = "/uploads"
PHOTO_SUBDIR = "photos"


class PhotoUpload(NamedTuple):
    """UploadFile 과 같은 모양 (filename / content_type / file) - 스크립트에서 사용"""
    filename: str
    content_type: Optional[str]
    file: BinaryIO


class PhotoStore:
    def __init__(self, root: Path, max_bytes: int, allowed_types: Iterable[str]):
        self.root = Path(root)
        self.max_bytes = max_bytes
        self.allowed_types = tuple(t.lower() for t in allowed_types)

    # ==========================================================
    # 검증
    # ==========================================================
    def check(self, filename: str, content_type: Optional[str]) -> str:
        """허용된 확장자를 돌려줌. 형식이 맞지 않으면 ValidationError"""
        ext = os.path.splitext(filename or "")[1].lower().lstrip(".")
        mime = (content_type or "").lower()
        mime_ok = any(t in mime for t in self.allowed_types)
        if ext not in self.allowed_types or not mime_ok:
            raise ValidationError("Only JPG, JPEG, and PNG images are allowed")
        return ext

    # ==========================================================
    # 저장
    # ==========================================================
    def save(self, filename: str, content_type: Optional[str], stream: BinaryIO) -> str:
        ext = self.check(filename, content_type)

        data = stream.read(self.max_bytes + 1)
        if len(data) > self.max_bytes:
            raise ValidationError(
                f"Photo exceeds the {self.max_bytes // (1024 * 1024)}MB limit"
            )

        name = f"photo-{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}.{ext}"
        target_dir = self.root / PHOTO_SUBDIR
        try:
            target_dir.mkdir(parents=True, exist_ok=True)
            with open(target_dir / name, "wb") as buffer:
                buffer.write(data)
        except OSError as e:
            raise StorageError(f"Failed to store photo: {e}") from e

        logger.info(f"photo stored: {name}")
        return f"{URL_PREFIX}/{PHOTO_SUBDIR}/{name}"

    # ==========================================================
    # 삭제
    # ==========================================================
    def path_for(self, photo_url: str) -> Path:
        relative = photo_url
        if relative.startswith(URL_PREFIX + "/"):
            relative = relative[len(URL_PREFIX) + 1:]
        path = (self.root / relative).resolve()
        # 업로드 디렉터리 밖을 가리키는 경로는 거부
        if self.root.resolve() not in path.parents:
            raise ValidationError(f"Invalid photo path: {photo_url}")
        return path

    def remove(self, photo_url: Optional[str]) -> bool:
        """파일이 이미 없거나 업로드 디렉터리 밖이면 False (삭제 흐름은 계속 진행)"""
        if not photo_url:
            return False
        try:
            path = self.path_for(photo_url)
        except ValidationError:
            # 업로드 디렉터리 밖 경로는 건드리지 않고 삭제 흐름만 계속
            logger.warning(f"photo outside upload dir, left in place: {photo_url}")
            return False
        try:
            path.unlink()
        except FileNotFoundError:
            logger.warning(f"photo already missing: {photo_url}")
            return False
        except OSError as e:
            raise StorageError(f"Failed to remove photo: {e}") from e
        logger.info(f"photo removed: {photo_url}")
        return True


def default_photo_store() -> PhotoStore:
    return PhotoStore(
        root=settings.UPLOAD_DIR,
        max_bytes=settings.MAX_UPLOAD_MB * 1024 * 1024,
        allowed_types=settings.ALLOWED_PHOTO_TYPES,
    )


def get_photo_store() -> PhotoStore:
    return default_photo_store()
