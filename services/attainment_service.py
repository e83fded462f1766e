"""
services/attainment_service.py

CLO / PLO 성취도 계산과 조회.

- 학생 CLO 성취도 = Σ(문항 획득 점수) / Σ(문항 배점) × 100
  (해당 개설 강좌 평가 항목의 문항 중 CLO에 매핑된 것, 미입력 문항은 0점)
- 강좌 CLO 요약 = 학생 성취도 분포(평균/최소/최대/표준편차/달성률)
- PLO 성취도 = 매핑된 CLO 성취도 평균
계산 결과는 student_clo_attainment / course_clo_attainment_summary / student_plo_attainment 에 upsert.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, distinct, func
from sqlalchemy.orm import Session

from models.academics import CourseEnrollment, CourseOffering, Degree, Semester, Student
from models.assessments import AssessmentComponent, Question
from models.attainment import CourseCLOAttainmentSummary, StudentCLOAttainment, StudentPLOAttainment
from models.marks import StudentQuestionMark
from models.outcomes import CloPloMapping, CourseLearningOutcome, ProgramLearningOutcome
from services import calculations as calc
from utils.exceptions import AppError, NotFound

logger = logging.getLogger(__name__)


def _upsert(db: Session, model, keys: Dict[str, Any], values: Dict[str, Any]):
    row = db.query(model).filter_by(**keys).first()
    if row is None:
        row = model(**keys)
        db.add(row)
    for key, value in values.items():
        setattr(row, key, value)
    return row


def _get_offering(db: Session, offering_id: int) -> CourseOffering:
    offering = db.query(CourseOffering).filter(CourseOffering.id == offering_id).first()
    if offering is None:
        raise NotFound("Course offering not found")
    return offering


def _get_student(db: Session, student_id: int) -> Student:
    student = db.query(Student).filter(Student.id == student_id).first()
    if student is None:
        raise NotFound(f"Student {student_id} not found")
    return student


def enrolled_student_ids(db: Session, offering_id: int) -> List[int]:
    rows = (
        db.query(CourseEnrollment.student_id)
        .filter(CourseEnrollment.course_offering_id == offering_id, CourseEnrollment.status == "enrolled")
        .order_by(CourseEnrollment.student_id)
        .all()
    )
    return [r[0] for r in rows]


# ==========================================================
# [1] 학생 CLO 성취도
# ==========================================================

def calculate_student_clo_attainment(db: Session, student_id: int, offering_id: int,
                                     clo_id: Optional[int] = None) -> List[Dict[str, Any]]:
    _get_student(db, student_id)
    _get_offering(db, offering_id)

    query = (
        db.query(
            CourseLearningOutcome.id,
            CourseLearningOutcome.CLO_ID,
            CourseLearningOutcome.CLO_Description,
            CourseLearningOutcome.target_attainment,
            CourseLearningOutcome.weight_percentage,
            func.count(distinct(Question.id)),
            func.sum(Question.marks),
            func.sum(func.coalesce(StudentQuestionMark.marks_obtained, 0)),
        )
        .join(Question, Question.clo_id == CourseLearningOutcome.id)
        .join(AssessmentComponent, Question.assessment_component_id == AssessmentComponent.id)
        .outerjoin(
            StudentQuestionMark,
            and_(StudentQuestionMark.question_id == Question.id, StudentQuestionMark.student_id == student_id),
        )
        .filter(AssessmentComponent.course_offering_id == offering_id)
    )
    if clo_id:
        query = query.filter(CourseLearningOutcome.id == clo_id)
    rows = (
        query.group_by(
            CourseLearningOutcome.id,
            CourseLearningOutcome.CLO_ID,
            CourseLearningOutcome.CLO_Description,
            CourseLearningOutcome.target_attainment,
            CourseLearningOutcome.weight_percentage,
        )
        .order_by(CourseLearningOutcome.CLO_ID)
        .all()
    )

    now = datetime.now()
    results = []
    for cid, code, description, target, weight, question_count, possible, obtained in rows:
        possible = float(possible or 0)
        obtained = float(obtained or 0)
        # 저장 값(소수 둘째 자리)과 같은 값으로 달성 여부 판정
        percentage = calc.round2(calc.attainment_percentage(obtained, possible))
        status = calc.attainment_status(percentage, target, possible)
        _upsert(
            db,
            StudentCLOAttainment,
            {"student_id": student_id, "course_offering_id": offering_id, "clo_id": cid},
            {
                "attainment_percentage": percentage,
                "attainment_status": status,
                "total_marks_obtained": obtained,
                "total_possible_marks": possible,
                "calculated_at": now,
            },
        )
        results.append({
            "student_id": student_id,
            "course_offering_id": offering_id,
            "clo_id": cid,
            "CLO_ID": code,
            "CLO_Description": description,
            "target_attainment": target,
            "weight_percentage": weight,
            "total_questions": question_count,
            "total_possible_marks": possible,
            "total_marks_obtained": obtained,
            "attainment_percentage": calc.round2(percentage),
            "attainment_status": status,
        })
    db.flush()
    return results


def calculate_all_students(db: Session, offering_id: int) -> Dict[str, Any]:
    """수강생 전원 계산. 학생별 실패는 errors 에 모으고 계속 진행."""
    _get_offering(db, offering_id)
    tally = {"total_students": 0, "success": 0, "failed": 0, "errors": []}
    for student_id in enrolled_student_ids(db, offering_id):
        tally["total_students"] += 1
        try:
            calculate_student_clo_attainment(db, student_id, offering_id)
            tally["success"] += 1
        except AppError as exc:
            tally["failed"] += 1
            tally["errors"].append({"student_id": student_id, "error": exc.message})
    return tally


def _attainment_row(row: StudentCLOAttainment, clo: CourseLearningOutcome) -> Dict[str, Any]:
    return {
        "id": row.id,
        "student_id": row.student_id,
        "course_offering_id": row.course_offering_id,
        "clo_id": row.clo_id,
        "CLO_ID": clo.CLO_ID,
        "CLO_Description": clo.CLO_Description,
        "target_attainment": clo.target_attainment,
        "attainment_percentage": row.attainment_percentage,
        "attainment_status": row.attainment_status,
        "total_marks_obtained": row.total_marks_obtained,
        "total_possible_marks": row.total_possible_marks,
        "calculated_at": row.calculated_at.isoformat() if row.calculated_at else None,
    }


def get_student_records(db: Session, student_id: int, offering_id: Optional[int] = None) -> List[Dict[str, Any]]:
    query = (
        db.query(StudentCLOAttainment, CourseLearningOutcome)
        .join(CourseLearningOutcome, StudentCLOAttainment.clo_id == CourseLearningOutcome.id)
        .filter(StudentCLOAttainment.student_id == student_id)
    )
    if offering_id:
        query = query.filter(StudentCLOAttainment.course_offering_id == offering_id)
    rows = query.order_by(StudentCLOAttainment.course_offering_id, CourseLearningOutcome.CLO_ID).all()
    return [_attainment_row(r, c) for r, c in rows]


def get_offering_records(db: Session, offering_id: int, clo_id: Optional[int] = None,
                         status: Optional[str] = None) -> List[Dict[str, Any]]:
    query = (
        db.query(StudentCLOAttainment, CourseLearningOutcome)
        .join(CourseLearningOutcome, StudentCLOAttainment.clo_id == CourseLearningOutcome.id)
        .filter(StudentCLOAttainment.course_offering_id == offering_id)
    )
    if clo_id:
        query = query.filter(StudentCLOAttainment.clo_id == clo_id)
    if status:
        query = query.filter(StudentCLOAttainment.attainment_status == status)
    rows = query.order_by(StudentCLOAttainment.student_id, CourseLearningOutcome.CLO_ID).all()
    return [_attainment_row(r, c) for r, c in rows]


def student_summary(records: List[Dict[str, Any]]) -> Dict[str, Any]:
    stats = calc.describe([r["attainment_percentage"] for r in records])
    achieved = sum(1 for r in records if r["attainment_status"] == calc.ACHIEVED)
    return {
        "total_clos": len(records),
        "clos_achieved": achieved,
        "clos_not_achieved": len(records) - achieved,
        "average_attainment": stats["average"],
        "min_attainment": stats["min"],
        "max_attainment": stats["max"],
        "achievement_rate": calc.rate(achieved, len(records)),
    }


# ==========================================================
# [2] 개설 강좌 CLO 요약
# ==========================================================

def calculate_course_summary(db: Session, offering_id: int, clo_id: Optional[int] = None) -> List[Dict[str, Any]]:
    _get_offering(db, offering_id)
    query = (
        db.query(StudentCLOAttainment, CourseLearningOutcome)
        .join(CourseLearningOutcome, StudentCLOAttainment.clo_id == CourseLearningOutcome.id)
        .filter(StudentCLOAttainment.course_offering_id == offering_id)
    )
    if clo_id:
        query = query.filter(StudentCLOAttainment.clo_id == clo_id)

    grouped: Dict[int, Dict[str, Any]] = {}
    for row, clo in query.all():
        entry = grouped.setdefault(clo.id, {"clo": clo, "values": [], "achieved": 0})
        entry["values"].append(row.attainment_percentage or 0)
        if row.attainment_status == calc.ACHIEVED:
            entry["achieved"] += 1

    now = datetime.now()
    summaries = []
    for cid in sorted(grouped, key=lambda k: grouped[k]["clo"].CLO_ID):
        entry = grouped[cid]
        clo = entry["clo"]
        stats = calc.describe(entry["values"])
        total = stats["count"]
        values = {
            "total_students": total,
            "students_achieved": entry["achieved"],
            "students_not_achieved": total - entry["achieved"],
            "average_attainment": stats["average"],
            "min_attainment": stats["min"],
            "max_attainment": stats["max"],
            "std_deviation": stats["std_deviation"],
            "achievement_rate": calc.rate(entry["achieved"], total),
            "overall_status": calc.summary_status(stats["average"], clo.target_attainment),
            "calculated_at": now,
        }
        _upsert(db, CourseCLOAttainmentSummary, {"course_offering_id": offering_id, "clo_id": cid}, values)
        values.pop("calculated_at")
        summaries.append({
            "course_offering_id": offering_id,
            "clo_id": cid,
            "CLO_ID": clo.CLO_ID,
            "CLO_Description": clo.CLO_Description,
            "target_attainment": clo.target_attainment,
            **values,
        })
    db.flush()
    return summaries


def get_course_summaries(db: Session, offering_id: int) -> List[Dict[str, Any]]:
    rows = (
        db.query(CourseCLOAttainmentSummary, CourseLearningOutcome)
        .join(CourseLearningOutcome, CourseCLOAttainmentSummary.clo_id == CourseLearningOutcome.id)
        .filter(CourseCLOAttainmentSummary.course_offering_id == offering_id)
        .order_by(CourseLearningOutcome.CLO_ID)
        .all()
    )
    return [
        {
            "id": s.id,
            "course_offering_id": s.course_offering_id,
            "clo_id": s.clo_id,
            "CLO_ID": clo.CLO_ID,
            "CLO_Description": clo.CLO_Description,
            "target_attainment": clo.target_attainment,
            "total_students": s.total_students,
            "students_achieved": s.students_achieved,
            "students_not_achieved": s.students_not_achieved,
            "average_attainment": s.average_attainment,
            "min_attainment": s.min_attainment,
            "max_attainment": s.max_attainment,
            "std_deviation": s.std_deviation,
            "achievement_rate": s.achievement_rate,
            "overall_status": s.overall_status,
            "calculated_at": s.calculated_at.isoformat() if s.calculated_at else None,
        }
        for s, clo in rows
    ]


def course_overall_summary(summaries: List[Dict[str, Any]]) -> Dict[str, Any]:
    met = sum(1 for s in summaries if s["overall_status"] == "Target Met")
    near = sum(1 for s in summaries if s["overall_status"] == "Near Target")
    total = len(summaries)
    return {
        "total_clos": total,
        "clos_target_met": met,
        "clos_near_target": near,
        "clos_below_target": total - met - near,
        "average_attainment": calc.describe([s["average_attainment"] for s in summaries])["average"],
        "average_achievement_rate": calc.describe([s["achievement_rate"] for s in summaries])["average"],
        "course_status": calc.course_status(met, total),
    }


def get_clo_trends(db: Session, course_id: int, limit: int = 5) -> List[Dict[str, Any]]:
    """최근 개설 강좌 순으로 CLO 요약 추이"""
    offerings = (
        db.query(CourseOffering, Semester)
        .join(Semester, CourseOffering.semester_id == Semester.id)
        .filter(CourseOffering.course_id == course_id)
        .order_by(Semester.academic_session_id.desc(), Semester.semester_number.desc(), CourseOffering.id.desc())
        .limit(limit)
        .all()
    )
    trends = []
    for offering, semester in offerings:
        summaries = get_course_summaries(db, offering.id)
        trends.append({
            "course_offering_id": offering.id,
            "semester_id": semester.id,
            "semester_name": semester.name,
            "section": offering.section,
            "clo_summaries": summaries,
            "overall_summary": course_overall_summary(summaries),
        })
    return trends


def compare_offerings(db: Session, offering_ids: List[int]) -> List[Dict[str, Any]]:
    comparison = []
    for offering_id in offering_ids:
        offering = _get_offering(db, offering_id)
        summaries = get_course_summaries(db, offering_id)
        comparison.append({
            "course_offering_id": offering.id,
            "course_id": offering.course_id,
            "semester_id": offering.semester_id,
            "section": offering.section,
            "clo_summaries": summaries,
            "overall_summary": course_overall_summary(summaries),
        })
    return comparison


def recalculate_semester(db: Session, semester_id: int) -> Dict[str, Any]:
    offerings = db.query(CourseOffering).filter(CourseOffering.semester_id == semester_id).all()
    if not offerings:
        raise NotFound("No course offerings found for this semester")
    tally = {"total_offerings": len(offerings), "success": 0, "failed": 0, "errors": []}
    for offering in offerings:
        try:
            calculate_all_students(db, offering.id)
            calculate_course_summary(db, offering.id)
            tally["success"] += 1
        except AppError as exc:
            tally["failed"] += 1
            tally["errors"].append({"course_offering_id": offering.id, "error": exc.message})
    return tally


# ==========================================================
# [3] CLO / PLO 전체 집계 (학생 전체 기준)
# ==========================================================

def clo_attainment(db: Session, clo: CourseLearningOutcome) -> Dict[str, Any]:
    rows = db.query(StudentCLOAttainment).filter(StudentCLOAttainment.clo_id == clo.id).all()
    stats = calc.describe([r.attainment_percentage for r in rows])
    achieved = sum(1 for r in rows if r.attainment_status == calc.ACHIEVED)
    average = stats["average"] if rows else None
    return {
        "clo_id": clo.id,
        "CLO_ID": clo.CLO_ID,
        "target_attainment": clo.target_attainment,
        "total_students": stats["count"],
        "students_achieved": achieved,
        "average_attainment": average,
        "min_attainment": stats["min"] if rows else None,
        "max_attainment": stats["max"] if rows else None,
        "status": calc.aggregate_status(average, clo.target_attainment),
    }


def course_clo_attainment(db: Session, course_id: int) -> List[Dict[str, Any]]:
    clos = (
        db.query(CourseLearningOutcome)
        .filter(CourseLearningOutcome.course_id == course_id)
        .order_by(CourseLearningOutcome.CLO_ID)
        .all()
    )
    return [clo_attainment(db, clo) for clo in clos]


def plo_attainment(db: Session, plo: ProgramLearningOutcome) -> Dict[str, Any]:
    clo_ids = [m.clo_id for m in db.query(CloPloMapping).filter(CloPloMapping.plo_id == plo.id).all()]
    clo_averages = []
    for clo_id in clo_ids:
        avg = (
            db.query(func.avg(StudentCLOAttainment.attainment_percentage))
            .filter(StudentCLOAttainment.clo_id == clo_id)
            .scalar()
        )
        if avg is not None:
            clo_averages.append(float(avg))

    average = calc.round2(sum(clo_averages) / len(clo_averages)) if clo_averages else None
    return {
        "plo_id": plo.id,
        "PLO_No": plo.PLO_No,
        "target_attainment": plo.target_attainment,
        "mapped_clos": len(clo_ids),
        "clos_with_data": len(clo_averages),
        "attainment_percentage": average,
        "meets_target": average is not None and average >= plo.target_attainment,
        "status": calc.aggregate_status(average, plo.target_attainment),
    }


def degree_plo_summary(db: Session, degree_id: int) -> List[Dict[str, Any]]:
    plos = (
        db.query(ProgramLearningOutcome)
        .filter(ProgramLearningOutcome.degree_id == degree_id)
        .order_by(ProgramLearningOutcome.PLO_No)
        .all()
    )
    return [plo_attainment(db, plo) for plo in plos]


# ==========================================================
# [4] 학생 PLO 성취도
# ==========================================================

def calculate_student_plo_attainment(db: Session, student_id: int, degree_id: int,
                                     plo_id: Optional[int] = None) -> List[Dict[str, Any]]:
    _get_student(db, student_id)
    if db.query(Degree).filter(Degree.id == degree_id).first() is None:
        raise NotFound("Degree not found")

    query = db.query(ProgramLearningOutcome).filter(ProgramLearningOutcome.degree_id == degree_id)
    if plo_id:
        query = query.filter(ProgramLearningOutcome.id == plo_id)

    now = datetime.now()
    results = []
    for plo in query.order_by(ProgramLearningOutcome.PLO_No).all():
        rows = (
            db.query(StudentCLOAttainment)
            .join(CloPloMapping, CloPloMapping.clo_id == StudentCLOAttainment.clo_id)
            .filter(CloPloMapping.plo_id == plo.id, StudentCLOAttainment.student_id == student_id)
            .all()
        )
        # 같은 CLO가 여러 개설 강좌에 있으면 CLO별 평균을 먼저 구함
        by_clo: Dict[int, List[float]] = {}
        for r in rows:
            by_clo.setdefault(r.clo_id, []).append(r.attainment_percentage)
        clo_ids = set(by_clo)
        achieved = {r.clo_id for r in rows if r.attainment_status == calc.ACHIEVED}
        percentage = calc.describe([sum(v) / len(v) for v in by_clo.values()])["average"]
        status = calc.ACHIEVED if rows and percentage >= plo.target_attainment else calc.NOT_ACHIEVED
        values = {
            "total_clos_mapped": len(clo_ids),
            "clos_achieved": len(achieved),
            "attainment_percentage": percentage,
            "attainment_status": status,
            "calculated_at": now,
        }
        _upsert(db, StudentPLOAttainment, {"student_id": student_id, "degree_id": degree_id, "plo_id": plo.id}, values)
        values.pop("calculated_at")
        results.append({
            "student_id": student_id,
            "degree_id": degree_id,
            "plo_id": plo.id,
            "PLO_No": plo.PLO_No,
            "PLO_Description": plo.PLO_Description,
            "target_attainment": plo.target_attainment,
            **values,
        })
    db.flush()
    return results


def get_student_plo_records(db: Session, student_id: int, degree_id: int) -> List[Dict[str, Any]]:
    rows = (
        db.query(StudentPLOAttainment, ProgramLearningOutcome)
        .join(ProgramLearningOutcome, StudentPLOAttainment.plo_id == ProgramLearningOutcome.id)
        .filter(StudentPLOAttainment.student_id == student_id, StudentPLOAttainment.degree_id == degree_id)
        .order_by(ProgramLearningOutcome.PLO_No)
        .all()
    )
    return [
        {
            "id": r.id,
            "plo_id": r.plo_id,
            "PLO_No": plo.PLO_No,
            "PLO_Description": plo.PLO_Description,
            "target_attainment": plo.target_attainment,
            "total_clos_mapped": r.total_clos_mapped,
            "clos_achieved": r.clos_achieved,
            "attainment_percentage": r.attainment_percentage,
            "attainment_status": r.attainment_status,
        }
        for r, plo in rows
    ]


def student_plo_summary(records: List[Dict[str, Any]]) -> Dict[str, Any]:
    achieved = sum(1 for r in records if r["attainment_status"] == calc.ACHIEVED)
    return {
        "total_plos": len(records),
        "plos_achieved": achieved,
        "plos_not_achieved": len(records) - achieved,
        "average_attainment": calc.describe([r["attainment_percentage"] for r in records])["average"],
        "achievement_rate": calc.rate(achieved, len(records)),
    }


def program_plo_summary(db: Session, degree_id: int) -> List[Dict[str, Any]]:
    plos = (
        db.query(ProgramLearningOutcome)
        .filter(ProgramLearningOutcome.degree_id == degree_id)
        .order_by(ProgramLearningOutcome.PLO_No)
        .all()
    )
    summary = []
    for plo in plos:
        rows = db.query(StudentPLOAttainment).filter(
            StudentPLOAttainment.plo_id == plo.id, StudentPLOAttainment.degree_id == degree_id
        ).all()
        achieved = sum(1 for r in rows if r.attainment_status == calc.ACHIEVED)
        average = calc.describe([r.attainment_percentage for r in rows])["average"]
        summary.append({
            "plo_id": plo.id,
            "PLO_No": plo.PLO_No,
            "PLO_Description": plo.PLO_Description,
            "target_attainment": plo.target_attainment,
            "total_students": len(rows),
            "students_achieved": achieved,
            "average_attainment": average,
            "achievement_rate": calc.rate(achieved, len(rows)),
            "meets_target": bool(rows) and average >= plo.target_attainment,
        })
    return summary


def calculate_program_attainment(db: Session, degree_id: int) -> Dict[str, Any]:
    if db.query(Degree).filter(Degree.id == degree_id).first() is None:
        raise NotFound("Degree not found")
    student_ids = [s.id for s in db.query(Student).filter(Student.degree_id == degree_id).order_by(Student.id).all()]
    tally = {"total_students": len(student_ids), "success": 0, "failed": 0, "errors": []}
    for student_id in student_ids:
        try:
            calculate_student_plo_attainment(db, student_id, degree_id)
            tally["success"] += 1
        except AppError as exc:
            tally["failed"] += 1
            tally["errors"].append({"student_id": student_id, "error": exc.message})
    return {"student_results": tally, "program_summary": program_plo_summary(db, degree_id)}
