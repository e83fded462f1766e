from pydantic import BaseModel
from typing import List, Optional


# ✅ 점수 입력 (검증 메시지는 services/marks_service 에서 생성하므로 전부 Optional)
class MarkCreate(BaseModel):
    student_id: Optional[int] = None
    assessment_id: Optional[int] = None             # 평가 항목 ID
    assessment_component_id: Optional[int] = None   # assessment_id 별칭
    marks_obtained: Optional[float] = None
    total_marks: Optional[float] = None             # 생략 시 평가 항목 만점
    is_absent: bool = False
    is_exempted: bool = False
    remarks: Optional[str] = None


class MarkUpdate(BaseModel):
    marks_obtained: Optional[float] = None
    total_marks: Optional[float] = None
    is_absent: Optional[bool] = None
    is_exempted: Optional[bool] = None
    remarks: Optional[str] = None


class BulkMarksRequest(BaseModel):
    marks: List[MarkCreate] = []


# ✅ 문항 점수
class QuestionMarkEntry(BaseModel):
    student_id: Optional[int] = None
    question_id: Optional[int] = None
    marks_obtained: Optional[float] = None
    feedback: Optional[str] = None


class BulkQuestionMarksRequest(BaseModel):
    marks: List[QuestionMarkEntry] = []
