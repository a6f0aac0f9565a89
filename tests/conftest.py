import os
import tempfile

# ✅ 앱 임포트 전에 테스트용 환경변수 지정 (MySQL 불필요)
os.environ.setdefault("SQLALCHEMY_URL", "sqlite://")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="uploads-"))
os.environ.setdefault("ENV", "dev")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database.db import init_db, make_engine
from database.gateway import Gateway, get_gateway
from services.photo_storage import PhotoStore, get_photo_store

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


@pytest.fixture
def engine():
    # 메모리 SQLite 를 모든 스레드가 같은 커넥션으로 공유
    engine = make_engine("sqlite://", poolclass=StaticPool)
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def gateway(engine):
    return Gateway(sessionmaker(bind=engine, autoflush=False, expire_on_commit=False))


@pytest.fixture
def photo_store(tmp_path):
    return PhotoStore(tmp_path / "uploads", max_bytes=2 * 1024 * 1024,
                      allowed_types=["jpeg", "jpg", "png"])


@pytest.fixture
def client(gateway, photo_store):
    from main import app

    app.dependency_overrides[get_gateway] = lambda: gateway
    app.dependency_overrides[get_photo_store] = lambda: photo_store
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def count_rows(gateway):
    def _count(table):
        return gateway.run_one(f"SELECT COUNT(*) AS n FROM {table}")["n"]
    return _count
