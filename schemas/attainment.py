from pydantic import BaseModel, Field
from typing import List, Optional


class StudentCLOCalculateRequest(BaseModel):
    student_id: int
    course_offering_id: int
    clo_id: Optional[int] = None


class CourseCLOCalculateRequest(BaseModel):
    course_offering_id: int


class CompareRequest(BaseModel):
    course_offering_ids: List[int] = Field(default_factory=list)


class RecalculateSessionRequest(BaseModel):
    semester_id: int


class StudentPLOCalculateRequest(BaseModel):
    student_id: int
    degree_id: int
    plo_id: Optional[int] = None


class ProgramPLOCalculateRequest(BaseModel):
    degree_id: int


# ✅ 성취 수준 기준표
class ThresholdCreate(BaseModel):
    degree_id: int
    threshold_type: str                         # CLO / PLO / PEO
    level_name: str
    min_percentage: float = Field(..., ge=0, le=100)
    max_percentage: float = Field(..., ge=0, le=100)
    is_attained: bool = True


class ThresholdUpdate(BaseModel):
    degree_id: Optional[int] = None
    threshold_type: Optional[str] = None
    level_name: Optional[str] = None
    min_percentage: Optional[float] = Field(None, ge=0, le=100)
    max_percentage: Optional[float] = Field(None, ge=0, le=100)
    is_attained: Optional[bool] = None


class Threshold(ThresholdCreate):
    id: int

    class Config:
        from_attributes = True


class ThresholdEvaluateRequest(BaseModel):
    degree_id: int
    threshold_type: str
    percentage: float = Field(..., ge=0, le=100)
