from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String, func
from sqlalchemy.orm import relationship
from database.db import Base

class ValidationSession(Base):
    __tablename__ = "validation_sessions"  # 검증 세션 (한 번의 일괄 판정 결과)

    id = Column(Integer, primary_key=True, index=True)
    session_name = Column(String(150), nullable=False)
    total_students = Column(Integer, nullable=False, default=0)
    valide_count = Column(Integer, nullable=False, default=0)
    ratt_count = Column(Integer, nullable=False, default=0)
    nv_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, server_default=func.now())

    details = relationship("SessionDetail", back_populates="session",
                           cascade="all, delete-orphan", passive_deletes=True)


class SessionDetail(Base):
    __tablename__ = "session_details"  # 세션별 학생 판정 내역

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(Integer,
                        ForeignKey("validation_sessions.id", ondelete="CASCADE"),
                        nullable=False, index=True)
    student_id = Column(String(50), nullable=False)   # 등록 학생 ID 또는 입력 화면에서 만든 임시 ID (FK 아님)
    average_grade = Column(Float, nullable=False)
    status = Column(String(10), nullable=False)

    session = relationship("ValidationSession", back_populates="details")
