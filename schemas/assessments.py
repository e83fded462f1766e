from pydantic import AliasChoices, BaseModel, Field
from typing import Literal, Optional
from datetime import datetime


# ✅ 평가 유형
class AssessmentTypeCreate(BaseModel):
    name: str
    category: Literal["Continuous", "Terminal"]
    description: Optional[str] = None


class AssessmentTypeUpdate(BaseModel):
    name: Optional[str] = None
    category: Optional[Literal["Continuous", "Terminal"]] = None
    description: Optional[str] = None


class AssessmentType(AssessmentTypeCreate):
    id: int

    class Config:
        from_attributes = True


# ✅ 평가 항목
class ComponentCreate(BaseModel):
    course_offering_id: int
    assessment_type_id: int
    name: str
    total_marks: float = Field(0, ge=0)                   # 만점
    weight_percentage: float = Field(0, ge=0, le=100)     # 반영 비율 (%)
    scheduled_date: Optional[datetime] = None
    duration_minutes: Optional[int] = Field(None, ge=0)
    instructions: Optional[str] = None
    is_published: bool = False
    sequence_number: int = 0


class ComponentUpdate(BaseModel):
    assessment_type_id: Optional[int] = None
    name: Optional[str] = None
    total_marks: Optional[float] = Field(None, ge=0)
    weight_percentage: Optional[float] = Field(None, ge=0, le=100)
    scheduled_date: Optional[datetime] = None
    duration_minutes: Optional[int] = Field(None, ge=0)
    instructions: Optional[str] = None
    is_published: Optional[bool] = None
    sequence_number: Optional[int] = None


class Component(ComponentCreate):
    id: int

    class Config:
        from_attributes = True


# ✅ 평가 항목 ↔ CLO 배점
class CloMappingCreate(BaseModel):
    course_learning_outcome_id: int = Field(
        ..., validation_alias=AliasChoices("course_learning_outcome_id", "clo_id")
    )
    marks_allocated: float = Field(0, ge=0)
    weight_percentage: float = Field(0, ge=0, le=100)


class CloMappingUpdate(BaseModel):
    marks_allocated: Optional[float] = Field(None, ge=0)
    weight_percentage: Optional[float] = Field(None, ge=0, le=100)


# ✅ 문항
class QuestionCreate(BaseModel):
    assessment_component_id: int
    question_number: int = Field(..., ge=1)
    marks: float = Field(..., gt=0)                      # 배점
    clo_id: Optional[int] = None                         # 측정 CLO
    question_text: Optional[str] = None


class QuestionUpdate(BaseModel):
    question_number: Optional[int] = Field(None, ge=1)
    marks: Optional[float] = Field(None, gt=0)
    clo_id: Optional[int] = None
    question_text: Optional[str] = None


class Question(QuestionCreate):
    id: int

    class Config:
        from_attributes = True
