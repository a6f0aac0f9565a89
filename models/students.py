from sqlalchemy import Column, Date, DateTime, String, func
from database.db import Base

class Student(Base):
    __tablename__ = "students"  # 학생 기본 정보 테이블

    student_id = Column(String(20), primary_key=True)                # 학생 고유 ID (예: STU-100000)
    full_name = Column(String(150), nullable=False)                  # 학생 이름
    email = Column(String(150), nullable=False, unique=True)         # 이메일 (중복 불가)
    phone = Column(String(30))                                       # 연락처
    date_of_birth = Column(Date)                                     # 생년월일
    address = Column(String(255))                                    # 주소
    program = Column(String(100), nullable=False)                    # 전공/과정
    photo_url = Column(String(255))                                  # 사진 경로 (/uploads/photos/...)
    status = Column(String(10), nullable=False, default="active")    # active / inactive
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
