"""
services/calculations.py

- DB와 무관한 순수 계산 함수 모음 (SGPA/CGPA, CLO/PLO 성취도, 통계)
- 모든 함수는 빈 입력에서 0 기반 결과를 반환 (0으로 나누기 없음)
"""

from math import sqrt
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

ACHIEVED = "Achieved"
NOT_ACHIEVED = "Not Achieved"


def round2(value: Optional[float]) -> float:
    return round(float(value or 0), 2)


def compute_gpa(courses: Iterable[Tuple[float, float]]) -> Dict[str, float]:
    """
    (credit_hours, grade_point) 목록 → GPA
    - GPA = Σ(학점 × 평점) / Σ(학점)
    - 평점 > 0 인 과목만 취득 학점으로 인정
    """
    total_quality_points = 0.0
    total_credit_hours = 0.0
    earned_credit_hours = 0.0
    for credit_hours, grade_point in courses:
        credit_hours = float(credit_hours or 0)
        grade_point = float(grade_point or 0)
        total_credit_hours += credit_hours
        total_quality_points += credit_hours * grade_point
        if grade_point > 0:
            earned_credit_hours += credit_hours
    gpa = total_quality_points / total_credit_hours if total_credit_hours > 0 else 0.0
    return {
        "gpa": round2(gpa),
        "total_quality_points": round2(total_quality_points),
        "total_credit_hours": total_credit_hours,
        "earned_credit_hours": earned_credit_hours,
    }


def attainment_percentage(obtained: float, possible: float) -> float:
    if not possible or possible <= 0:
        return 0.0
    return float(obtained or 0) / float(possible) * 100


def attainment_status(percentage: float, target: float, possible: float = 1) -> str:
    # 배점이 없는 CLO는 달성으로 보지 않음
    if not possible or possible <= 0:
        return NOT_ACHIEVED
    return ACHIEVED if percentage >= target else NOT_ACHIEVED


def aggregate_status(average: Optional[float], target: float) -> str:
    """CLO 단위 전체 학생 평균 판정 (ACHIEVED / PARTIALLY_ACHIEVED / NOT_ACHIEVED / NO_DATA)"""
    if average is None:
        return "NO_DATA"
    if average >= target:
        return "ACHIEVED"
    if average >= target * 0.8:
        return "PARTIALLY_ACHIEVED"
    return "NOT_ACHIEVED"


def summary_status(average: float, target: float) -> str:
    """개설 강좌 CLO 요약 판정"""
    if average >= target:
        return "Target Met"
    if average >= target * 0.8:
        return "Near Target"
    return "Below Target"


def course_status(met: int, total: int) -> str:
    """목표 달성 CLO 비율로 과목 전체 등급 판정"""
    if total == 0:
        return "No Data"
    rate = met / total * 100
    if rate >= 80:
        return "Excellent"
    if rate >= 60:
        return "Good"
    if rate >= 40:
        return "Satisfactory"
    return "Needs Improvement"


def describe(values: Sequence[float]) -> Dict[str, float]:
    """개수/평균/최소/최대/모표준편차"""
    values = [float(v) for v in values if v is not None]
    if not values:
        return {"count": 0, "average": 0.0, "min": 0.0, "max": 0.0, "std_deviation": 0.0}
    n = len(values)
    mean = sum(values) / n
    variance = sum((v - mean) ** 2 for v in values) / n
    return {
        "count": n,
        "average": round2(mean),
        "min": round2(min(values)),
        "max": round2(max(values)),
        "std_deviation": round2(sqrt(variance)),
    }


def rate(part: int, total: int) -> float:
    return round2(part / total * 100) if total else 0.0


def weighted_percentage(components: List[Dict]) -> Dict[str, float]:
    """
    평가 항목별 점수 → 가중 백분율
    components: [{"marks_obtained", "total_marks", "weight", "is_absent", "is_exempted"}]
    - 면제 항목은 제외, 결시/미입력은 incomplete 로 표시하고 제외
    """
    total_weighted = 0.0
    total_weight = 0.0
    incomplete = False
    for c in components:
        if c.get("is_exempted"):
            continue
        if c.get("is_absent") or c.get("marks_obtained") is None:
            incomplete = True
            continue
        if not c.get("total_marks"):
            continue
        weighted = float(c["marks_obtained"]) / float(c["total_marks"]) * float(c["weight"] or 0)
        total_weighted += weighted
        total_weight += float(c["weight"] or 0)
    percentage = total_weighted / total_weight * 100 if total_weight > 0 else 0.0
    return {
        "total_weighted_marks": round2(total_weighted),
        "total_weight": round2(total_weight),
        "percentage": round2(percentage),
        "incomplete": incomplete,
    }
