from pydantic import BaseModel, Field
from typing import List, Optional


# ✅ 성적 기준표
class GradeScaleCreate(BaseModel):
    name: str
    is_active: bool = False


class GradePointCreate(BaseModel):
    letter_grade: str
    grade_point: float = Field(..., ge=0)
    min_percentage: float
    max_percentage: float


# ✅ 과목 성적 / 학기 성적 계산 요청
class CourseResultCalculateRequest(BaseModel):
    student_id: int
    course_offering_id: int


class OfferingRequest(BaseModel):
    course_offering_id: int


class SemesterCalculateRequest(BaseModel):
    student_id: int
    semester_id: int


class SemesterRequest(BaseModel):
    semester_id: int


class PublishRequest(BaseModel):
    student_ids: Optional[List[int]] = None
