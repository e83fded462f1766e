from sqlalchemy import Column, Integer, String, Float, Text, DateTime, ForeignKey, UniqueConstraint, func
from database.db import Base


class CourseLearningOutcome(Base):
    __tablename__ = "course_learning_outcomes"  # CLO 테이블
    __table_args__ = (UniqueConstraint("course_id", "CLO_ID"),)

    id = Column(Integer, primary_key=True, index=True)
    course_id = Column(Integer, ForeignKey("courses.id"), nullable=False)  # 과목
    CLO_ID = Column(String(20), nullable=False)                            # 과목 내 CLO 번호 (예: CLO-1)
    CLO_Description = Column(Text, nullable=False)                         # 설명
    bloom_taxonomy_level = Column(String(30))                              # Bloom 수준 (예: Apply)
    weight_percentage = Column(Float, nullable=False, default=0)           # 과목 내 비중 (%)
    target_attainment = Column(Float, nullable=False, default=60)          # 목표 성취도 (%)
    created_at = Column(DateTime, server_default=func.now())


class ProgramLearningOutcome(Base):
    __tablename__ = "program_learning_outcomes"  # PLO 테이블
    __table_args__ = (UniqueConstraint("degree_id", "PLO_No"),)

    id = Column(Integer, primary_key=True, index=True)
    degree_id = Column(Integer, ForeignKey("degrees.id"), nullable=False)  # 프로그램
    programName = Column(String(150))                                      # 프로그램명 (표시용)
    PLO_No = Column(Integer, nullable=False)                               # PLO 번호
    PLO_Description = Column(Text, nullable=False)                         # 설명
    bloom_taxonomy_level = Column(String(30))
    target_attainment = Column(Float, nullable=False, default=60)          # 목표 성취도 (%)


class ProgramEducationalObjective(Base):
    __tablename__ = "program_educational_objectives"  # PEO 테이블
    __table_args__ = (UniqueConstraint("degree_id", "PEO_No"),)

    id = Column(Integer, primary_key=True, index=True)
    degree_id = Column(Integer, ForeignKey("degrees.id"), nullable=False)
    PEO_No = Column(Integer, nullable=False)
    PEO_Description = Column(Text, nullable=False)


class CloPloMapping(Base):
    __tablename__ = "course_learning_outcome_program_learning_outcome"  # CLO ↔ PLO 매핑
    __table_args__ = (UniqueConstraint("clo_id", "plo_id"),)

    id = Column(Integer, primary_key=True, index=True)
    clo_id = Column(Integer, ForeignKey("course_learning_outcomes.id", ondelete="CASCADE"), nullable=False)
    plo_id = Column(Integer, ForeignKey("program_learning_outcomes.id", ondelete="CASCADE"), nullable=False)
    mapping_level = Column(Integer, nullable=False, default=1)  # 1(약) ~ 3(강)


class PeoPloMapping(Base):
    __tablename__ = "peo_plo_mapping"  # PEO ↔ PLO 매핑
    __table_args__ = (UniqueConstraint("peo_id", "plo_id"),)

    id = Column(Integer, primary_key=True, index=True)
    peo_id = Column(Integer, ForeignKey("program_educational_objectives.id", ondelete="CASCADE"), nullable=False)
    plo_id = Column(Integer, ForeignKey("program_learning_outcomes.id", ondelete="CASCADE"), nullable=False)
    correlation_level = Column(String(10), nullable=False, default="Medium")  # High / Medium / Low
