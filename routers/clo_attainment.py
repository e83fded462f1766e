from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from database.db import get_db
from dependencies.security import authenticate, authorize
from models.academics import Course as CourseModel, CourseOffering as OfferingModel, Student as StudentModel
from models.outcomes import CourseLearningOutcome as CLOModel
from schemas.attainment import (
    CompareRequest, CourseCLOCalculateRequest, RecalculateSessionRequest, StudentCLOCalculateRequest,
)
from services import attainment_service
from utils.exceptions import ValidationFailed
from utils.queries import get_or_404

router = APIRouter(prefix="/clo-attainment", tags=["CLO Attainment"], dependencies=[Depends(authenticate)])


# ==========================================================
# [1단계] 계산
# ==========================================================

# ✅ [CALC] 학생 1명 CLO 성취도 (clo_id 지정 시 해당 CLO만)
@router.post("/student/calculate")
def calculate_student(body: StudentCLOCalculateRequest, db: Session = Depends(get_db),
                      _=Depends(authorize("admin", "teacher"))):
    results = attainment_service.calculate_student_clo_attainment(
        db, body.student_id, body.course_offering_id, body.clo_id
    )
    db.commit()
    return {"success": True, "data": results, "count": len(results),
            "message": "Student CLO attainment calculated successfully"}


# ✅ [CALC] 개설 강좌 전체 (수강생 전원 + CLO 요약)
@router.post("/course/calculate")
def calculate_course(body: CourseCLOCalculateRequest, db: Session = Depends(get_db),
                     _=Depends(authorize("admin", "teacher"))):
    tally = attainment_service.calculate_all_students(db, body.course_offering_id)
    summary = attainment_service.calculate_course_summary(db, body.course_offering_id)
    db.commit()
    return {
        "success": True,
        "data": {"student_results": tally, "course_summary": summary},
        "message": "Course CLO attainment calculated successfully",
    }


@router.post("/compare")
def compare(body: CompareRequest, db: Session = Depends(get_db)):
    if len(body.course_offering_ids) < 2:
        raise ValidationFailed("Please provide at least 2 course offering IDs to compare")
    data = attainment_service.compare_offerings(db, body.course_offering_ids)
    return {"success": True, "data": data, "message": "Course offerings compared successfully"}


@router.post("/recalculate-session")
def recalculate_session(body: RecalculateSessionRequest, db: Session = Depends(get_db),
                        _=Depends(authorize("admin"))):
    tally = attainment_service.recalculate_semester(db, body.semester_id)
    db.commit()
    return {"success": True, "data": tally, "message": "Semester CLO attainment recalculated"}


# ==========================================================
# [2단계] 조회
# ==========================================================

@router.get("/student/{student_id}/course-offering/{offering_id}")
def read_student_offering(student_id: int, offering_id: int, db: Session = Depends(get_db)):
    get_or_404(db, StudentModel, student_id, "Student")
    get_or_404(db, OfferingModel, offering_id, "Course offering")
    records = attainment_service.get_student_records(db, student_id, offering_id)
    return {
        "success": True,
        "data": {"attainment": records, "summary": attainment_service.student_summary(records)},
        "message": "Student CLO attainment retrieved successfully",
    }


@router.get("/student/{student_id}")
def read_student(student_id: int, db: Session = Depends(get_db)):
    get_or_404(db, StudentModel, student_id, "Student")
    records = attainment_service.get_student_records(db, student_id)
    return {"success": True, "data": records, "count": len(records),
            "message": "Student CLO attainment retrieved successfully"}


@router.get("/course/{course_id}/trends")
def read_trends(course_id: int, limit: int = Query(5, ge=1, le=50), db: Session = Depends(get_db)):
    get_or_404(db, CourseModel, course_id, "Course")
    trends = attainment_service.get_clo_trends(db, course_id, limit)
    return {"success": True, "data": trends, "count": len(trends), "message": "CLO attainment trends retrieved"}


@router.get("/course/{offering_id}/clo/{clo_id}/details")
def read_clo_details(offering_id: int, clo_id: int, db: Session = Depends(get_db)):
    get_or_404(db, OfferingModel, offering_id, "Course offering")
    get_or_404(db, CLOModel, clo_id, "CLO")
    summary = next(
        (s for s in attainment_service.get_course_summaries(db, offering_id) if s["clo_id"] == clo_id), None
    )
    students = attainment_service.get_offering_records(db, offering_id, clo_id=clo_id)
    return {
        "success": True,
        "data": {"summary": summary, "students": students},
        "message": "CLO attainment details retrieved",
    }


@router.get("/course/{offering_id}")
def read_course(offering_id: int, cloId: int = None, status: str = None, db: Session = Depends(get_db)):
    get_or_404(db, OfferingModel, offering_id, "Course offering")
    summaries = attainment_service.get_course_summaries(db, offering_id)
    if cloId:
        summaries = [s for s in summaries if s["clo_id"] == cloId]
    return {
        "success": True,
        "data": {
            "student_attainment": attainment_service.get_offering_records(db, offering_id, cloId, status),
            "clo_summaries": summaries,
            "overall_summary": attainment_service.course_overall_summary(summaries),
        },
        "message": "Course CLO attainment retrieved successfully",
    }
