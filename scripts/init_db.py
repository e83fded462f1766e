"""
테이블 생성 + 기본 관리자 계정 + 기본 성적 기준표 등록

사용법:
    python -m scripts.init_db
    (ADMIN_PASSWORD 환경변수로 초기 비밀번호 지정, 기본값 admin1234)
"""

import os

from sqlalchemy.orm import Session

from database.db import SessionLocal, create_tables
from models.results import GradePoint as GradePointModel, GradeScale as GradeScaleModel
from models.users import User as UserModel
from utils.security import hash_password

# 기본 성적 기준표 (등급, 평점, 최소 %, 최대 %)
DEFAULT_GRADE_POINTS = [
    ("A+", 4.00, 80.00, 100.00),
    ("A", 3.75, 75.00, 79.99),
    ("A-", 3.50, 70.00, 74.99),
    ("B+", 3.25, 65.00, 69.99),
    ("B", 3.00, 60.00, 64.99),
    ("B-", 2.75, 55.00, 59.99),
    ("C+", 2.50, 50.00, 54.99),
    ("C", 2.25, 45.00, 49.99),
    ("D", 2.00, 40.00, 44.99),
    ("F", 0.00, 0.00, 39.99),
]


def seed_admin(db: Session):
    if db.query(UserModel).filter(UserModel.username == "admin").first():
        print("ℹ️ admin 계정이 이미 존재합니다")
        return
    db.add(UserModel(
        username="admin",
        email=os.getenv("ADMIN_EMAIL", "admin@obe.local"),
        password_hash=hash_password(os.getenv("ADMIN_PASSWORD", "admin1234")),
        full_name="System Administrator",
        role="admin",
        is_active=True,
    ))
    print("✅ admin 계정 생성")


def seed_grade_scale(db: Session):
    if db.query(GradeScaleModel).first():
        print("ℹ️ 성적 기준표가 이미 존재합니다")
        return
    scale = GradeScaleModel(name="Default 4.0 Scale", is_active=True)
    db.add(scale)
    db.flush()
    for letter, point, low, high in DEFAULT_GRADE_POINTS:
        db.add(GradePointModel(
            grade_scale_id=scale.id,
            letter_grade=letter,
            grade_point=point,
            min_percentage=low,
            max_percentage=high,
        ))
    print("✅ 기본 성적 기준표 등록")


def init_db():
    create_tables()
    db: Session = SessionLocal()
    try:
        seed_admin(db)
        seed_grade_scale(db)
        db.commit()
    finally:
        db.close()
    print("✅ DB 초기화 완료")


if __name__ == "__main__":
    init_db()
