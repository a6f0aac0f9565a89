from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String, func
from database.db import Base

class Grade(Base):
    __tablename__ = "grades"  # 학생별 성적 이력 테이블 (생성 후 수정 불가)

    id = Column(Integer, primary_key=True, index=True)               # 성적 고유 ID (Primary Key)
    student_id = Column(String(20),
                        ForeignKey("students.student_id", ondelete="CASCADE"),
                        nullable=False, index=True)                  # 학생 ID (학생 삭제 시 함께 삭제)
    subject = Column(String(100), nullable=False, default="General") # 과목명
    grade = Column(Float, nullable=False)                            # 점수 (0~20)
    status = Column(String(10), nullable=False)                      # Validé / Ratt / NV
    semester = Column(String(20))                                    # 학기
    academic_year = Column(String(20))                               # 학년도 (예: 2025-2026)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
