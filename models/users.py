from sqlalchemy import Column, Integer, String, Boolean, DateTime, func
from database.db import Base

# 시스템 사용 역할
ROLES = ("admin", "teacher", "student", "department_head", "dean")


class User(Base):
    __tablename__ = "users"  # 로그인 계정 테이블

    id = Column(Integer, primary_key=True, index=True)               # 사용자 고유 ID (Primary Key)
    username = Column(String(50), unique=True, nullable=False)       # 로그인 아이디
    email = Column(String(120), unique=True, nullable=False)         # 이메일
    password_hash = Column(String(255), nullable=False)              # bcrypt 해시
    full_name = Column(String(100))                                  # 이름
    role = Column(String(20), nullable=False, default="student")     # 역할 (ROLES 중 하나)
    is_active = Column(Boolean, nullable=False, default=True)        # 활성 여부
    last_login = Column(DateTime)                                    # 마지막 로그인 시각
    created_at = Column(DateTime, server_default=func.now())         # 생성 시각
