from sqlalchemy import Column, Integer, Float, String, Boolean, DateTime, ForeignKey, UniqueConstraint, func
from database.db import Base


class GradeScale(Base):
    __tablename__ = "grade_scales"  # 성적 환산 기준표

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), nullable=False)
    is_active = Column(Boolean, default=False)  # 활성 기준표는 하나만


class GradePoint(Base):
    __tablename__ = "grade_points"  # 기준표 구간 (백분율 → 등급/평점)

    id = Column(Integer, primary_key=True, index=True)
    grade_scale_id = Column(Integer, ForeignKey("grade_scales.id", ondelete="CASCADE"), nullable=False)
    letter_grade = Column(String(5), nullable=False)   # 예: A, B+
    grade_point = Column(Float, nullable=False)        # 예: 4.0
    min_percentage = Column(Float, nullable=False)
    max_percentage = Column(Float, nullable=False)


class CourseResult(Base):
    __tablename__ = "course_results"  # 개설 강좌별 최종 성적
    __table_args__ = (UniqueConstraint("student_id", "course_offering_id"),)

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("students.id"), nullable=False)
    course_offering_id = Column(Integer, ForeignKey("course_offerings.id"), nullable=False)
    total_marks = Column(Float, default=0)           # 가중 합산 점수
    percentage = Column(Float, default=0)            # 백분율
    letter_grade = Column(String(5))
    grade_point = Column(Float)
    credit_earned = Column(Float, default=0)         # 취득 학점
    status = Column(String(20), default="Incomplete")  # Pass / Fail / Incomplete
    is_finalized = Column(Boolean, default=False)    # 확정 여부 (SGPA 계산 대상)
    finalized_at = Column(DateTime)


class SemesterResult(Base):
    __tablename__ = "semester_results"  # 학생별 학기 성적 (SGPA/CGPA)
    __table_args__ = (UniqueConstraint("student_id", "semester_id"),)

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("students.id"), nullable=False)
    semester_id = Column(Integer, ForeignKey("semesters.id"), nullable=False)
    sgpa = Column(Float, default=0)
    cgpa = Column(Float, default=0)
    total_credit_hours = Column(Float, default=0)        # 해당 학기 이수 학점
    earned_credit_hours = Column(Float, default=0)       # 해당 학기 취득 학점
    cumulative_credit_hours = Column(Float, default=0)   # 누적 이수 학점
    total_quality_points = Column(Float, default=0)
    is_published = Column(Boolean, default=False)
    published_at = Column(DateTime)
    calculated_at = Column(DateTime, server_default=func.now())
