"""
services/marks_service.py

- 평가 항목 점수(student_assessment_marks) 검증/생성/수정/일괄 입력
- 문항 점수(student_question_marks) upsert
- 점수 통계 (평가 항목별, 문항별, 학생 합계, CLO별 분해)
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, func
from sqlalchemy.orm import Session

from models.academics import Student
from models.assessments import AssessmentComponent, Question
from models.marks import StudentAssessmentMark, StudentQuestionMark
from models.outcomes import CourseLearningOutcome
from services import calculations as calc
from utils.exceptions import AppError, Conflict, NotFound, ValidationFailed


def mark_to_dict(mark: StudentAssessmentMark, component: Optional[AssessmentComponent] = None) -> Dict[str, Any]:
    return {
        "id": mark.id,
        "student_id": mark.student_id,
        "assessment_id": mark.assessment_component_id,
        "assessment_component_id": mark.assessment_component_id,
        "marks_obtained": mark.marks_obtained,
        "total_marks": component.total_marks if component else None,
        "is_absent": bool(mark.is_absent),
        "is_exempted": bool(mark.is_exempted),
        "remarks": mark.remarks,
        "evaluated_by": mark.evaluated_by,
        "evaluated_at": mark.evaluated_at.isoformat() if mark.evaluated_at else None,
    }


def question_mark_to_dict(mark: StudentQuestionMark, question: Optional[Question] = None) -> Dict[str, Any]:
    return {
        "id": mark.id,
        "student_id": mark.student_id,
        "question_id": mark.question_id,
        "question_number": question.question_number if question else None,
        "max_marks": question.marks if question else None,
        "marks_obtained": mark.marks_obtained,
        "feedback": mark.feedback,
        "evaluated_by": mark.evaluated_by,
    }


def _component_id(data: Dict[str, Any]) -> Optional[int]:
    return data.get("assessment_id") or data.get("assessment_component_id")


def _check_bounds(marks_obtained: Optional[float], total_marks: Optional[float]):
    if marks_obtained is None:
        return
    if marks_obtained < 0:
        raise ValidationFailed("marks_obtained cannot be negative")
    if total_marks is not None and marks_obtained > total_marks:
        raise ValidationFailed("marks_obtained cannot exceed total marks")


def validate_mark(db: Session, data: Dict[str, Any]):
    """필수값 → 음수 → 만점 초과 → 학생/평가 항목 존재 순으로 검증"""
    missing = [
        name for name, value in (
            ("student_id", data.get("student_id")),
            ("assessment_id", _component_id(data)),
            ("marks_obtained", data.get("marks_obtained")),
        )
        if value is None
    ]
    if missing:
        verb = "is" if len(missing) == 1 else "are"
        raise ValidationFailed(f"{', '.join(missing)} {verb} required")

    _check_bounds(data["marks_obtained"], data.get("total_marks"))

    student = db.query(Student).filter(Student.id == data["student_id"]).first()
    if student is None:
        raise NotFound(f"Student {data['student_id']} not found")
    component = db.query(AssessmentComponent).filter(AssessmentComponent.id == _component_id(data)).first()
    if component is None:
        raise NotFound(f"Assessment {_component_id(data)} not found")

    _check_bounds(data["marks_obtained"], component.total_marks)
    return student, component


def create_mark(db: Session, data: Dict[str, Any], evaluated_by: Optional[int] = None) -> Dict[str, Any]:
    student, component = validate_mark(db, data)
    exists = (
        db.query(StudentAssessmentMark)
        .filter(
            StudentAssessmentMark.student_id == student.id,
            StudentAssessmentMark.assessment_component_id == component.id,
        )
        .first()
    )
    if exists is not None:
        raise Conflict(f"Marks already exist for student {student.id} in assessment {component.id}")

    mark = StudentAssessmentMark(
        student_id=student.id,
        assessment_component_id=component.id,
        marks_obtained=data["marks_obtained"],
        is_absent=bool(data.get("is_absent")),
        is_exempted=bool(data.get("is_exempted")),
        remarks=data.get("remarks"),
        evaluated_by=evaluated_by,
        evaluated_at=datetime.now(),
    )
    db.add(mark)
    db.flush()
    return mark_to_dict(mark, component)


def bulk_create(db: Session, items: List[Dict[str, Any]], evaluated_by: Optional[int] = None) -> Dict[str, Any]:
    if not items:
        raise ValidationFailed("Please provide at least one mark record")
    result = {"created": 0, "failed": 0, "records": [], "errors": []}
    for index, item in enumerate(items):
        try:
            result["records"].append(create_mark(db, item, evaluated_by))
            result["created"] += 1
        except AppError as exc:
            result["failed"] += 1
            result["errors"].append({
                "index": index,
                "student_id": item.get("student_id"),
                "assessment_id": _component_id(item),
                "error": exc.message,
            })
    return result


def update_mark(db: Session, mark: StudentAssessmentMark, data: Dict[str, Any]) -> Dict[str, Any]:
    component = db.query(AssessmentComponent).filter(AssessmentComponent.id == mark.assessment_component_id).first()
    if "marks_obtained" in data:
        _check_bounds(data["marks_obtained"], data.get("total_marks"))
        _check_bounds(data["marks_obtained"], component.total_marks if component else None)
    for key in ("marks_obtained", "is_absent", "is_exempted", "remarks"):
        if key in data:
            setattr(mark, key, data[key])
    mark.evaluated_at = datetime.now()
    db.flush()
    return mark_to_dict(mark, component)


def upsert_assessment_mark(db: Session, data: Dict[str, Any], evaluated_by: Optional[int]) -> Dict[str, Any]:
    """결시/면제면 점수 없이 저장 가능"""
    if data.get("student_id") is None or _component_id(data) is None:
        raise ValidationFailed("student_id and assessment_component_id are required")
    absent_or_exempt = bool(data.get("is_absent") or data.get("is_exempted"))
    if data.get("marks_obtained") is None and not absent_or_exempt:
        raise ValidationFailed("marks_obtained is required")

    component = db.query(AssessmentComponent).filter(AssessmentComponent.id == _component_id(data)).first()
    if component is None:
        raise NotFound("Assessment component not found")
    if db.query(Student).filter(Student.id == data["student_id"]).first() is None:
        raise NotFound(f"Student {data['student_id']} not found")
    _check_bounds(data.get("marks_obtained"), component.total_marks)

    mark = (
        db.query(StudentAssessmentMark)
        .filter(
            StudentAssessmentMark.student_id == data["student_id"],
            StudentAssessmentMark.assessment_component_id == component.id,
        )
        .first()
    )
    if mark is None:
        mark = StudentAssessmentMark(student_id=data["student_id"], assessment_component_id=component.id)
        db.add(mark)
    mark.marks_obtained = data.get("marks_obtained")
    mark.is_absent = bool(data.get("is_absent"))
    mark.is_exempted = bool(data.get("is_exempted"))
    mark.remarks = data.get("remarks")
    mark.evaluated_by = evaluated_by
    mark.evaluated_at = datetime.now()
    db.flush()
    return mark_to_dict(mark, component)


def upsert_question_mark(db: Session, data: Dict[str, Any], evaluated_by: Optional[int]) -> Dict[str, Any]:
    if data.get("student_id") is None or data.get("question_id") is None:
        raise ValidationFailed("student_id and question_id are required")
    if data.get("marks_obtained") is None:
        raise ValidationFailed("marks_obtained is required")

    question = db.query(Question).filter(Question.id == data["question_id"]).first()
    if question is None:
        raise NotFound(f"Question {data['question_id']} not found")
    if db.query(Student).filter(Student.id == data["student_id"]).first() is None:
        raise NotFound(f"Student {data['student_id']} not found")
    _check_bounds(data["marks_obtained"], question.marks)

    mark = (
        db.query(StudentQuestionMark)
        .filter(StudentQuestionMark.student_id == data["student_id"], StudentQuestionMark.question_id == question.id)
        .first()
    )
    if mark is None:
        mark = StudentQuestionMark(student_id=data["student_id"], question_id=question.id)
        db.add(mark)
    mark.marks_obtained = data["marks_obtained"]
    mark.feedback = data.get("feedback")
    mark.evaluated_by = evaluated_by
    db.flush()
    return question_mark_to_dict(mark, question)


def bulk_question_marks(db: Session, items: List[Dict[str, Any]], evaluated_by: Optional[int]) -> Dict[str, Any]:
    if not items:
        raise ValidationFailed("Please provide at least one mark record")
    result = {"success": 0, "failed": 0, "errors": []}
    for item in items:
        try:
            upsert_question_mark(db, item, evaluated_by)
            result["success"] += 1
        except AppError as exc:
            result["failed"] += 1
            result["errors"].append({
                "student_id": item.get("student_id"),
                "question_id": item.get("question_id"),
                "error": exc.message,
            })
    return result


# ==========================================================
# 통계 / 합계
# ==========================================================

def assessment_statistics(db: Session, component: AssessmentComponent) -> Dict[str, Any]:
    marks = db.query(StudentAssessmentMark).filter(StudentAssessmentMark.assessment_component_id == component.id).all()
    scored = [m.marks_obtained for m in marks if m.marks_obtained is not None and not m.is_absent and not m.is_exempted]
    stats = calc.describe(scored)
    return {
        "assessment_component_id": component.id,
        "total_marks": component.total_marks,
        "total_entries": len(marks),
        "evaluated": stats["count"],
        "absent": sum(1 for m in marks if m.is_absent),
        "exempted": sum(1 for m in marks if m.is_exempted),
        "average_marks": stats["average"],
        "highest_marks": stats["max"],
        "lowest_marks": stats["min"],
        "std_deviation": stats["std_deviation"],
        "average_percentage": calc.round2(calc.attainment_percentage(stats["average"], component.total_marks)),
    }


def question_statistics(db: Session, question: Question) -> Dict[str, Any]:
    marks = [m.marks_obtained for m in db.query(StudentQuestionMark).filter(StudentQuestionMark.question_id == question.id).all()]
    stats = calc.describe(marks)
    return {
        "question_id": question.id,
        "question_number": question.question_number,
        "max_marks": question.marks,
        "total_attempts": stats["count"],
        "average_marks": stats["average"],
        "highest_marks": stats["max"],
        "lowest_marks": stats["min"],
        "full_marks_count": sum(1 for m in marks if m == question.marks),
    }


def component_question_statistics(db: Session, component_id: int) -> List[Dict[str, Any]]:
    questions = (
        db.query(Question)
        .filter(Question.assessment_component_id == component_id)
        .order_by(Question.question_number)
        .all()
    )
    return [question_statistics(db, q) for q in questions]


def student_assessment_total(db: Session, student_id: int, component_id: int) -> Dict[str, Any]:
    """문항 점수 합계로 평가 항목 총점 계산"""
    obtained, max_marks, answered = (
        db.query(func.sum(StudentQuestionMark.marks_obtained), func.sum(Question.marks), func.count(Question.id))
        .join(Question, StudentQuestionMark.question_id == Question.id)
        .filter(StudentQuestionMark.student_id == student_id, Question.assessment_component_id == component_id)
        .one()
    )
    total_questions = db.query(func.count(Question.id)).filter(Question.assessment_component_id == component_id).scalar()
    return {
        "student_id": student_id,
        "assessment_component_id": component_id,
        "total_obtained": float(obtained or 0),
        "total_max_marks": float(max_marks or 0),
        "questions_answered": int(answered or 0),
        "total_questions": int(total_questions or 0),
        "percentage": calc.round2(calc.attainment_percentage(obtained, max_marks)),
    }


def student_clo_breakdown(db: Session, student_id: int, component_id: int) -> List[Dict[str, Any]]:
    rows = (
        db.query(
            CourseLearningOutcome.id,
            CourseLearningOutcome.CLO_ID,
            CourseLearningOutcome.CLO_Description,
            func.sum(func.coalesce(StudentQuestionMark.marks_obtained, 0)),
            func.sum(Question.marks),
        )
        .join(Question, Question.clo_id == CourseLearningOutcome.id)
        .outerjoin(
            StudentQuestionMark,
            and_(StudentQuestionMark.question_id == Question.id, StudentQuestionMark.student_id == student_id),
        )
        .filter(Question.assessment_component_id == component_id)
        .group_by(CourseLearningOutcome.id, CourseLearningOutcome.CLO_ID, CourseLearningOutcome.CLO_Description)
        .order_by(CourseLearningOutcome.CLO_ID)
        .all()
    )
    return [
        {
            "clo_id": cid,
            "CLO_ID": code,
            "CLO_Description": description,
            "marks_obtained": float(obtained or 0),
            "total_marks": float(total or 0),
            "percentage": calc.round2(calc.attainment_percentage(obtained, total)),
        }
        for cid, code, description, obtained, total in rows
    ]


def student_course_total(db: Session, student_id: int, offering_id: int) -> Dict[str, Any]:
    rows = (
        db.query(AssessmentComponent, StudentAssessmentMark)
        .outerjoin(
            StudentAssessmentMark,
            and_(
                StudentAssessmentMark.assessment_component_id == AssessmentComponent.id,
                StudentAssessmentMark.student_id == student_id,
            ),
        )
        .filter(AssessmentComponent.course_offering_id == offering_id)
        .order_by(AssessmentComponent.sequence_number, AssessmentComponent.id)
        .all()
    )
    components = [
        {
            "assessment_component_id": c.id,
            "name": c.name,
            "total_marks": c.total_marks,
            "weight": c.weight_percentage,
            "marks_obtained": m.marks_obtained if m else None,
            "is_absent": bool(m and m.is_absent),
            "is_exempted": bool(m and m.is_exempted),
        }
        for c, m in rows
    ]
    weighted = calc.weighted_percentage(components)
    return {
        "student_id": student_id,
        "course_offering_id": offering_id,
        "components": components,
        **weighted,
    }
