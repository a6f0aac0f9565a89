"""
utils/errors.py

- 서비스 계층에서 던지고 middlewares/error_handler.py 에서 JSON 응답으로 바꾸는 예외 모음
- status_code 는 HTTP 응답 코드와 그대로 대응
"""


class AppError(Exception):
    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(AppError):
    """입력값 누락/범위 오류 (쓰기 전에 검출)"""
    status_code = 400
    code = "VALIDATION_ERROR"


class NotFoundError(AppError):
    status_code = 404
    code = "NOT_FOUND"


class ConflictError(AppError):
    """이메일 중복 등 유일성 위반"""
    status_code = 409
    code = "CONFLICT"


class StorageError(AppError):
    """DB/파일 저장소 오류"""
    status_code = 500
    code = "STORAGE_ERROR"
