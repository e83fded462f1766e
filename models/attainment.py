from sqlalchemy import Column, Integer, Float, String, Boolean, DateTime, ForeignKey, UniqueConstraint, func
from database.db import Base

# 성취 수준 기준표 적용 대상
THRESHOLD_TYPES = ("CLO", "PLO", "PEO")


class StudentCLOAttainment(Base):
    __tablename__ = "student_clo_attainment"  # 학생별 CLO 성취도 (계산 결과 캐시)
    __table_args__ = (UniqueConstraint("student_id", "course_offering_id", "clo_id"),)

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("students.id"), nullable=False)
    course_offering_id = Column(Integer, ForeignKey("course_offerings.id"), nullable=False)
    clo_id = Column(Integer, ForeignKey("course_learning_outcomes.id", ondelete="CASCADE"), nullable=False)
    attainment_percentage = Column(Float, default=0)
    attainment_status = Column(String(20))           # Achieved / Not Achieved
    total_marks_obtained = Column(Float, default=0)
    total_possible_marks = Column(Float, default=0)
    calculated_at = Column(DateTime, server_default=func.now())


class CourseCLOAttainmentSummary(Base):
    __tablename__ = "course_clo_attainment_summary"  # 개설 강좌 CLO별 집계
    __table_args__ = (UniqueConstraint("course_offering_id", "clo_id"),)

    id = Column(Integer, primary_key=True, index=True)
    course_offering_id = Column(Integer, ForeignKey("course_offerings.id"), nullable=False)
    clo_id = Column(Integer, ForeignKey("course_learning_outcomes.id", ondelete="CASCADE"), nullable=False)
    total_students = Column(Integer, default=0)
    students_achieved = Column(Integer, default=0)
    students_not_achieved = Column(Integer, default=0)
    average_attainment = Column(Float, default=0)
    min_attainment = Column(Float, default=0)
    max_attainment = Column(Float, default=0)
    std_deviation = Column(Float, default=0)
    achievement_rate = Column(Float, default=0)      # 달성 학생 비율 (%)
    overall_status = Column(String(20))              # Target Met / Near Target / Below Target
    calculated_at = Column(DateTime, server_default=func.now())


class StudentPLOAttainment(Base):
    __tablename__ = "student_plo_attainment"  # 학생별 PLO 성취도
    __table_args__ = (UniqueConstraint("student_id", "degree_id", "plo_id"),)

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("students.id"), nullable=False)
    degree_id = Column(Integer, ForeignKey("degrees.id"), nullable=False)
    plo_id = Column(Integer, ForeignKey("program_learning_outcomes.id", ondelete="CASCADE"), nullable=False)
    total_clos_mapped = Column(Integer, default=0)
    clos_achieved = Column(Integer, default=0)
    attainment_percentage = Column(Float, default=0)
    attainment_status = Column(String(20))
    calculated_at = Column(DateTime, server_default=func.now())


class AttainmentThreshold(Base):
    __tablename__ = "attainment_thresholds"  # 프로그램별 성취 수준 구간 (예: Exceeded 80~100)
    __table_args__ = (UniqueConstraint("degree_id", "threshold_type", "level_name"),)

    id = Column(Integer, primary_key=True, index=True)
    degree_id = Column(Integer, ForeignKey("degrees.id"), nullable=False)
    threshold_type = Column(String(10), nullable=False)           # THRESHOLD_TYPES 중 하나
    level_name = Column(String(50), nullable=False)               # 수준 이름
    min_percentage = Column(Float, nullable=False)                # 하한 (%, 포함)
    max_percentage = Column(Float, nullable=False)                # 상한 (%, 포함)
    is_attained = Column(Boolean, nullable=False, default=True)   # 달성으로 인정되는 구간인지
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
