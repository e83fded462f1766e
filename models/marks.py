from sqlalchemy import Column, Integer, Float, String, Text, Boolean, DateTime, ForeignKey, UniqueConstraint, func
from database.db import Base


class StudentAssessmentMark(Base):
    __tablename__ = "student_assessment_marks"  # 학생별 평가 항목 점수
    __table_args__ = (UniqueConstraint("student_id", "assessment_component_id"),)

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("students.id"), nullable=False)
    assessment_component_id = Column(Integer, ForeignKey("assessment_components.id", ondelete="CASCADE"), nullable=False)
    marks_obtained = Column(Float)                       # 획득 점수 (결시/면제 시 NULL 가능)
    is_absent = Column(Boolean, default=False)           # 결시
    is_exempted = Column(Boolean, default=False)         # 면제
    remarks = Column(String(255))
    evaluated_by = Column(Integer, ForeignKey("users.id"))
    evaluated_at = Column(DateTime, server_default=func.now())


class StudentQuestionMark(Base):
    __tablename__ = "student_question_marks"  # 학생별 문항 점수
    __table_args__ = (UniqueConstraint("student_id", "question_id"),)

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("students.id"), nullable=False)
    question_id = Column(Integer, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False)
    marks_obtained = Column(Float, nullable=False)
    feedback = Column(Text)
    evaluated_by = Column(Integer, ForeignKey("users.id"))
