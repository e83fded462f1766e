from sqlalchemy import (
    Column, Integer, String, Float, Text, Boolean, DateTime, ForeignKey, UniqueConstraint,
)
from database.db import Base


class AssessmentType(Base):
    __tablename__ = "assessment_types"  # 평가 유형 (Quiz, Midterm, ...)

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), unique=True, nullable=False)
    category = Column(String(20), nullable=False)  # Continuous / Terminal
    description = Column(Text)


class AssessmentComponent(Base):
    __tablename__ = "assessment_components"  # 개설 강좌별 평가 항목 (예: Quiz 1)

    id = Column(Integer, primary_key=True, index=True)
    course_offering_id = Column(Integer, ForeignKey("course_offerings.id"), nullable=False)
    assessment_type_id = Column(Integer, ForeignKey("assessment_types.id"), nullable=False)
    name = Column(String(100), nullable=False)
    total_marks = Column(Float, nullable=False, default=0)          # 만점
    weight_percentage = Column(Float, nullable=False, default=0)    # 최종 성적 반영 비율 (%)
    scheduled_date = Column(DateTime)
    duration_minutes = Column(Integer)
    instructions = Column(Text)
    is_published = Column(Boolean, default=False)
    sequence_number = Column(Integer, default=0)                    # 표시 순서


class AssessmentCloMapping(Base):
    __tablename__ = "assessment_clo_mapping"  # 평가 항목 ↔ CLO 배점
    __table_args__ = (UniqueConstraint("assessment_component_id", "course_learning_outcome_id"),)

    id = Column(Integer, primary_key=True, index=True)
    assessment_component_id = Column(Integer, ForeignKey("assessment_components.id", ondelete="CASCADE"), nullable=False)
    course_learning_outcome_id = Column(Integer, ForeignKey("course_learning_outcomes.id", ondelete="CASCADE"), nullable=False)
    marks_allocated = Column(Float, nullable=False, default=0)
    weight_percentage = Column(Float, nullable=False, default=0)


class Question(Base):
    __tablename__ = "questions"  # 평가 항목 내 문항 (CLO 성취도 계산 단위)

    id = Column(Integer, primary_key=True, index=True)
    assessment_component_id = Column(Integer, ForeignKey("assessment_components.id", ondelete="CASCADE"), nullable=False)
    clo_id = Column(Integer, ForeignKey("course_learning_outcomes.id"))  # 측정 대상 CLO
    question_number = Column(Integer, nullable=False)
    question_text = Column(Text)
    marks = Column(Float, nullable=False)                                # 문항 배점
