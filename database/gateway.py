"""
database/gateway.py

- 파라미터 바인딩 SQL 실행과 트랜잭션 범위를 한곳에서 관리하는 Persistence Gateway
- run / run_one : 단건 문장 실행 (조회는 dict 리스트, 변경 문장은 커밋 후 []), 세션은 반드시 닫음
- transaction   : commit-or-rollback 보장, 예외는 롤백 후 그대로 다시 던짐 (재시도 없음)
"""

import logging
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, TypeVar

from sqlalchemy import text
from sqlalchemy.orm import Session, sessionmaker

from database.db import SessionLocal

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _as_statement(query):
    # 문자열 SQL은 text()로 감싸 :name 파라미터 바인딩 사용
    if isinstance(query, str):
        return text(query)
    return query


class Gateway:
    def __init__(self, session_factory: sessionmaker = SessionLocal):
        self._session_factory = session_factory

    def run(self, query, params: Optional[Mapping[str, Any]] = None) -> List[Dict[str, Any]]:
        db: Session = self._session_factory()
        try:
            result = db.execute(_as_statement(query), dict(params or {}))
            if not result.returns_rows:
                # INSERT / UPDATE / DELETE: 단건 문장 바로 커밋
                db.commit()
                return []
            return [dict(row) for row in result.mappings().all()]
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def run_one(self, query, params: Optional[Mapping[str, Any]] = None) -> Optional[Dict[str, Any]]:
        rows = self.run(query, params)
        return rows[0] if rows else None

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        db: Session = self._session_factory()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            logger.debug("transaction rolled back")
            raise
        finally:
            db.close()

    def with_transaction(self, fn: Callable[[Session], T]) -> T:
        with self.transaction() as db:
            return fn(db)


# ✅ 애플리케이션 기본 게이트웨이 (테스트에서는 의존성 오버라이드로 교체)
gateway = Gateway()


def get_gateway() -> Gateway:
    return gateway
