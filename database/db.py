import sqlite3

from sqlalchemy import create_engine, event         # SQLAlchemy 엔진 생성 도구
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base         # 모델의 Base 클래스
from sqlalchemy.orm import sessionmaker            # 세션 팩토리 함수

from config.settings import settings               # ✅ 환경변수 설정 파일 불러오기


def _engine_options(url: str) -> dict:
    # SQLite는 풀 크기 옵션을 받지 않음 (로컬/테스트용)
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": 0,          # 풀 상한 고정 (요청당 커넥션 1개)
        "pool_pre_ping": True,
    }


# ✅ SQLite 연결 시 외래키 제약(ON DELETE CASCADE) 활성화
@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def make_engine(url: str, **kwargs):
    options = _engine_options(url)
    options.update(kwargs)
    return create_engine(url, **options)


# ✅ 환경변수에서 DB 연결 URL을 불러와 엔진 생성
engine = make_engine(settings.DATABASE_URL)

# ✅ 세션 팩토리: expire_on_commit=False → 커밋 이후에도 값 유지
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine,
                            expire_on_commit=False)

# ✅ 모델 정의 시 상속할 Base 클래스 (Declarative 방식 사용)
Base = declarative_base()


def init_db(bind=None):
    """Create all tables if they don't exist yet."""
    from models import students, grades, validation_sessions  # noqa: F401  (모델 등록)
    Base.metadata.create_all(bind=bind or engine)
