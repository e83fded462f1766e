"""
services/grade_service.py

- 성적 환산: 활성 기준표에서 백분율 → 등급/평점
- 개설 강좌 최종 성적(course_results) 계산
- SGPA / CGPA 계산과 semester_results 저장
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import or_, and_
from sqlalchemy.orm import Session

from models.academics import Course, CourseEnrollment, CourseOffering, Semester, Student
from models.assessments import AssessmentComponent
from models.marks import StudentAssessmentMark
from models.results import CourseResult, GradePoint, GradeScale, SemesterResult
from services import calculations as calc
from services.attainment_service import enrolled_student_ids
from utils.exceptions import AppError, NotFound, ValidationFailed

logger = logging.getLogger(__name__)


# ==========================================================
# [1] 성적 환산
# ==========================================================

def find_grade(db: Session, percentage: float) -> Optional[GradePoint]:
    if percentage < 0 or percentage > 100:
        raise ValidationFailed("Percentage must be between 0 and 100")
    return (
        db.query(GradePoint)
        .join(GradeScale, GradePoint.grade_scale_id == GradeScale.id)
        .filter(
            GradeScale.is_active.is_(True),
            GradePoint.min_percentage <= percentage,
            GradePoint.max_percentage >= percentage,
        )
        .order_by(GradePoint.grade_point.desc())
        .first()
    )


def add_grade_point(db: Session, scale_id: int, letter_grade: str, grade_point: float,
                    min_percentage: float, max_percentage: float) -> GradePoint:
    if db.query(GradeScale).filter(GradeScale.id == scale_id).first() is None:
        raise NotFound("Grade scale not found")
    if not (0 <= min_percentage <= max_percentage <= 100):
        raise ValidationFailed("Percentages must satisfy 0 <= min_percentage <= max_percentage <= 100")
    if grade_point < 0:
        raise ValidationFailed("grade_point cannot be negative")

    overlap = (
        db.query(GradePoint)
        .filter(
            GradePoint.grade_scale_id == scale_id,
            GradePoint.min_percentage <= max_percentage,
            GradePoint.max_percentage >= min_percentage,
        )
        .first()
    )
    if overlap is not None:
        raise ValidationFailed(f"Range overlaps with existing grade {overlap.letter_grade}")

    point = GradePoint(
        grade_scale_id=scale_id,
        letter_grade=letter_grade,
        grade_point=grade_point,
        min_percentage=min_percentage,
        max_percentage=max_percentage,
    )
    db.add(point)
    db.flush()
    return point


# ==========================================================
# [2] 개설 강좌 최종 성적
# ==========================================================

def course_result_to_dict(r: CourseResult) -> Dict[str, Any]:
    return {
        "id": r.id,
        "student_id": r.student_id,
        "course_offering_id": r.course_offering_id,
        "total_marks": r.total_marks,
        "percentage": r.percentage,
        "letter_grade": r.letter_grade,
        "grade_point": r.grade_point,
        "credit_earned": r.credit_earned,
        "status": r.status,
        "is_finalized": bool(r.is_finalized),
        "finalized_at": r.finalized_at.isoformat() if r.finalized_at else None,
    }


def calculate_course_result(db: Session, student_id: int, offering_id: int) -> CourseResult:
    offering = db.query(CourseOffering).filter(CourseOffering.id == offering_id).first()
    if offering is None:
        raise NotFound("Course offering not found")
    if db.query(Student).filter(Student.id == student_id).first() is None:
        raise NotFound(f"Student {student_id} not found")

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
    if not rows:
        raise ValidationFailed("No assessment components found for this course offering")

    weighted = calc.weighted_percentage([
        {
            "marks_obtained": mark.marks_obtained if mark else None,
            "total_marks": component.total_marks,
            "weight": component.weight_percentage,
            "is_absent": bool(mark and mark.is_absent),
            "is_exempted": bool(mark and mark.is_exempted),
        }
        for component, mark in rows
    ])

    course = db.query(Course).filter(Course.id == offering.course_id).first()
    grade = find_grade(db, min(max(weighted["percentage"], 0), 100))

    values = {
        "total_marks": weighted["total_weighted_marks"],
        "percentage": weighted["percentage"],
        "letter_grade": None,
        "grade_point": None,
        "credit_earned": 0,
        "status": "Incomplete" if weighted["incomplete"] else "Complete",
    }
    if grade is not None:
        values["letter_grade"] = grade.letter_grade
        values["grade_point"] = grade.grade_point
        if grade.grade_point > 0:
            values["status"] = "Pass"
            values["credit_earned"] = course.credit_hours if course else 0
        else:
            values["status"] = "Fail"

    result = (
        db.query(CourseResult)
        .filter(CourseResult.student_id == student_id, CourseResult.course_offering_id == offering_id)
        .first()
    )
    if result is None:
        result = CourseResult(student_id=student_id, course_offering_id=offering_id)
        db.add(result)
    elif result.is_finalized:
        raise ValidationFailed("Result is already finalized")
    for key, value in values.items():
        setattr(result, key, value)
    db.flush()
    return result


def calculate_offering_results(db: Session, offering_id: int) -> Dict[str, Any]:
    tally = {"total_students": 0, "success": 0, "failed": 0, "errors": []}
    for student_id in enrolled_student_ids(db, offering_id):
        tally["total_students"] += 1
        try:
            calculate_course_result(db, student_id, offering_id)
            tally["success"] += 1
        except AppError as exc:
            tally["failed"] += 1
            tally["errors"].append({"student_id": student_id, "error": exc.message})
    return tally


def offering_statistics(db: Session, offering_id: int) -> Dict[str, Any]:
    results = db.query(CourseResult).filter(CourseResult.course_offering_id == offering_id).all()
    stats = calc.describe([r.percentage for r in results])
    distribution: Dict[str, int] = {}
    for r in results:
        key = r.letter_grade or "N/A"
        distribution[key] = distribution.get(key, 0) + 1
    passed = sum(1 for r in results if r.status == "Pass")
    return {
        "total_students": len(results),
        "passed": passed,
        "failed": sum(1 for r in results if r.status == "Fail"),
        "incomplete": sum(1 for r in results if r.status == "Incomplete"),
        "ungraded": sum(1 for r in results if r.letter_grade is None),
        "pass_rate": calc.rate(passed, len(results)),
        "average_percentage": stats["average"],
        "highest_percentage": stats["max"],
        "lowest_percentage": stats["min"],
        "grade_distribution": distribution,
    }


# ==========================================================
# [3] SGPA / CGPA
# ==========================================================

def _finalized_results(db: Session, student_id: int, semester_ids: List[int]):
    return (
        db.query(CourseResult, Course, CourseOffering)
        .join(CourseOffering, CourseResult.course_offering_id == CourseOffering.id)
        .join(Course, CourseOffering.course_id == Course.id)
        .filter(
            CourseResult.student_id == student_id,
            CourseOffering.semester_id.in_(semester_ids),
            CourseResult.is_finalized.is_(True),
        )
        .order_by(Course.course_code)
        .all()
    )


def calculate_sgpa(db: Session, student_id: int, semester_id: int) -> Dict[str, Any]:
    rows = _finalized_results(db, student_id, [semester_id])
    if not rows:
        return {
            "sgpa": 0,
            "totalCreditHours": 0,
            "earnedCreditHours": 0,
            "totalQualityPoints": 0,
            "courses": [],
            "coursesCount": 0,
            "message": "No finalized course results found for this semester",
        }

    gpa = calc.compute_gpa((course.credit_hours, result.grade_point) for result, course, _ in rows)
    courses = [
        {
            "courseCode": course.course_code,
            "courseTitle": course.course_title,
            "creditHours": course.credit_hours,
            "gradePoint": result.grade_point or 0,
            "letterGrade": result.letter_grade,
            "qualityPoints": calc.round2((course.credit_hours or 0) * (result.grade_point or 0)),
        }
        for result, course, _ in rows
    ]
    return {
        "sgpa": gpa["gpa"],
        "totalCreditHours": gpa["total_credit_hours"],
        "earnedCreditHours": gpa["earned_credit_hours"],
        "totalQualityPoints": gpa["total_quality_points"],
        "courses": courses,
        "coursesCount": len(rows),
    }


def semesters_up_to(db: Session, semester_id: int) -> List[Semester]:
    target = db.query(Semester).filter(Semester.id == semester_id).first()
    if target is None:
        raise NotFound("Semester not found")
    return (
        db.query(Semester)
        .filter(or_(
            Semester.academic_session_id < target.academic_session_id,
            and_(
                Semester.academic_session_id == target.academic_session_id,
                Semester.semester_number <= target.semester_number,
            ),
        ))
        .order_by(Semester.academic_session_id, Semester.semester_number)
        .all()
    )


def calculate_cgpa(db: Session, student_id: int, semester_id: int) -> Dict[str, Any]:
    semesters = semesters_up_to(db, semester_id)
    rows = _finalized_results(db, student_id, [s.id for s in semesters])

    by_semester: Dict[int, List] = {}
    for result, course, offering in rows:
        by_semester.setdefault(offering.semester_id, []).append((course.credit_hours, result.grade_point))

    semester_breakdown = []
    for semester in semesters:
        entries = by_semester.get(semester.id)
        if not entries:
            continue
        gpa = calc.compute_gpa(entries)
        semester_breakdown.append({
            "semesterId": semester.id,
            "semesterName": semester.name,
            "semesterNumber": semester.semester_number,
            "sgpa": gpa["gpa"],
            "creditHours": gpa["total_credit_hours"],
            "earnedCreditHours": gpa["earned_credit_hours"],
            "qualityPoints": gpa["total_quality_points"],
        })

    overall = calc.compute_gpa((course.credit_hours, result.grade_point) for result, course, _ in rows)
    return {
        "cgpa": overall["gpa"],
        "totalCreditHours": overall["total_credit_hours"],
        "earnedCreditHours": overall["earned_credit_hours"],
        "totalQualityPoints": overall["total_quality_points"],
        "semesters": semester_breakdown,
    }


def semester_result_to_dict(r: SemesterResult) -> Dict[str, Any]:
    return {
        "id": r.id,
        "student_id": r.student_id,
        "semester_id": r.semester_id,
        "sgpa": r.sgpa,
        "cgpa": r.cgpa,
        "total_credit_hours": r.total_credit_hours,
        "earned_credit_hours": r.earned_credit_hours,
        "cumulative_credit_hours": r.cumulative_credit_hours,
        "total_quality_points": r.total_quality_points,
        "is_published": bool(r.is_published),
        "published_at": r.published_at.isoformat() if r.published_at else None,
        "calculated_at": r.calculated_at.isoformat() if r.calculated_at else None,
    }


def save_semester_result(db: Session, student_id: int, semester_id: int) -> SemesterResult:
    """SGPA/CGPA 계산 후 upsert (항상 미공개 상태로 저장)"""
    if db.query(Student).filter(Student.id == student_id).first() is None:
        raise NotFound(f"Student {student_id} not found")
    cgpa = calculate_cgpa(db, student_id, semester_id)
    sgpa = calculate_sgpa(db, student_id, semester_id)

    result = (
        db.query(SemesterResult)
        .filter(SemesterResult.student_id == student_id, SemesterResult.semester_id == semester_id)
        .first()
    )
    if result is None:
        result = SemesterResult(student_id=student_id, semester_id=semester_id)
        db.add(result)
    result.sgpa = sgpa["sgpa"]
    result.cgpa = cgpa["cgpa"]
    result.total_credit_hours = sgpa["totalCreditHours"]
    result.earned_credit_hours = sgpa["earnedCreditHours"]
    result.cumulative_credit_hours = cgpa["totalCreditHours"]
    result.total_quality_points = sgpa["totalQualityPoints"]
    result.is_published = False
    result.published_at = None
    result.calculated_at = datetime.now()
    db.flush()
    return result


def semester_student_ids(db: Session, semester_id: int) -> List[int]:
    rows = (
        db.query(CourseEnrollment.student_id)
        .join(CourseOffering, CourseEnrollment.course_offering_id == CourseOffering.id)
        .filter(CourseOffering.semester_id == semester_id, CourseEnrollment.status == "enrolled")
        .distinct()
        .order_by(CourseEnrollment.student_id)
        .all()
    )
    return [r[0] for r in rows]


def calculate_semester_all(db: Session, semester_id: int) -> Dict[str, Any]:
    semesters_up_to(db, semester_id)
    student_ids = semester_student_ids(db, semester_id)
    if not student_ids:
        raise NotFound("No enrolled students found for this semester")
    tally = {"total_students": len(student_ids), "success": 0, "failed": 0, "errors": []}
    for student_id in student_ids:
        try:
            save_semester_result(db, student_id, semester_id)
            tally["success"] += 1
        except AppError as exc:
            tally["failed"] += 1
            tally["errors"].append({"student_id": student_id, "error": exc.message})
    return tally


def set_published(db: Session, semester_id: int, published: bool,
                  student_ids: Optional[List[int]] = None) -> int:
    query = db.query(SemesterResult).filter(SemesterResult.semester_id == semester_id)
    if student_ids:
        query = query.filter(SemesterResult.student_id.in_(student_ids))
    rows = query.all()
    now = datetime.now()
    for r in rows:
        r.is_published = published
        r.published_at = now if published else None
    db.flush()
    return len(rows)


def semester_summary(db: Session, semester_id: int) -> Dict[str, Any]:
    rows = db.query(SemesterResult).filter(SemesterResult.semester_id == semester_id).all()
    sgpa = calc.describe([r.sgpa for r in rows])
    cgpa = calc.describe([r.cgpa for r in rows])
    return {
        "semester_id": semester_id,
        "total_students": len(rows),
        "published_count": sum(1 for r in rows if r.is_published),
        "average_sgpa": sgpa["average"],
        "highest_sgpa": sgpa["max"],
        "lowest_sgpa": sgpa["min"],
        "average_cgpa": cgpa["average"],
    }
