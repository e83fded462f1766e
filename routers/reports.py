import logging

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from sqlalchemy import func
from sqlalchemy.orm import Session

from database.db import get_db
from dependencies.security import authenticate, authorize
from models.academics import (
    Course as CourseModel,
    CourseOffering as OfferingModel,
    Degree as DegreeModel,
    Semester as SemesterModel,
    Student as StudentModel,
)
from models.assessments import AssessmentComponent as ComponentModel
from models.attainment import CourseCLOAttainmentSummary as CloSummaryModel
from models.results import SemesterResult as SemesterResultModel
from models.users import User as UserModel
from services import attainment_service, grade_service
from services.pdf_service import PDFService
from utils.exceptions import Forbidden
from utils.queries import get_or_404

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reports", tags=["PDF Report"], dependencies=[Depends(authenticate)])

pdf_service = PDFService()


def _pdf_response(content: bytes, filename: str) -> Response:
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


# ✅ [READ] 대시보드 요약 통계
@router.get("/dashboard-stats")
def dashboard_stats(db: Session = Depends(get_db)):
    average = db.query(func.avg(CloSummaryModel.average_attainment)).scalar()
    stats = {
        "totalCourses": db.query(CourseModel).count(),
        "totalStudents": db.query(StudentModel).count(),
        "averageAttainment": round(average) if average is not None else 0,
        "pendingAssessments": db.query(ComponentModel).filter(ComponentModel.is_published.is_(False)).count(),
    }
    return {"success": True, "data": stats, "message": "Dashboard statistics retrieved successfully"}


# ✅ [PDF] 개설 강좌 CLO 성취도 보고서
@router.get("/course-offering/{offering_id}/clo-attainment.pdf")
def clo_attainment_report(offering_id: int, db: Session = Depends(get_db),
                          _=Depends(authorize("admin", "teacher"))):
    offering = get_or_404(db, OfferingModel, offering_id, "Course offering")
    course = db.query(CourseModel).filter(CourseModel.id == offering.course_id).first()
    semester = db.query(SemesterModel).filter(SemesterModel.id == offering.semester_id).first()
    summaries = attainment_service.get_course_summaries(db, offering_id)

    pdf_content = pdf_service.generate_clo_attainment_pdf({
        "offering": offering,
        "course": course,
        "semester": semester,
        "summaries": summaries,
        "overall": attainment_service.course_overall_summary(summaries),
    })
    logger.info("CLO attainment PDF generated (offering=%s, %d bytes)", offering_id, len(pdf_content))
    return _pdf_response(pdf_content, f"clo_attainment_{course.course_code}_{offering_id}.pdf")


# ✅ [PDF] 학생 성적표 (공개된 학기 성적만, 학생은 본인만)
@router.get("/student/{student_id}/transcript.pdf")
def transcript_report(student_id: int, db: Session = Depends(get_db), user: UserModel = Depends(authenticate)):
    student = get_or_404(db, StudentModel, student_id, "Student")
    if user.role == "student" and student.user_id != user.id:
        raise Forbidden("Access denied. You can only view your own transcript.")

    degree = db.query(DegreeModel).filter(DegreeModel.id == student.degree_id).first() if student.degree_id else None
    rows = (
        db.query(SemesterResultModel, SemesterModel)
        .join(SemesterModel, SemesterResultModel.semester_id == SemesterModel.id)
        .filter(SemesterResultModel.student_id == student_id, SemesterResultModel.is_published.is_(True))
        .order_by(SemesterModel.academic_session_id, SemesterModel.semester_number)
        .all()
    )
    semesters = [
        {
            "semester_name": semester.name,
            "sgpa": result.sgpa,
            "cgpa": result.cgpa,
            "earned_credit_hours": result.earned_credit_hours,
            "courses": grade_service.calculate_sgpa(db, student_id, semester.id)["courses"],
        }
        for result, semester in rows
    ]

    pdf_content = pdf_service.generate_transcript_pdf({"student": student, "degree": degree, "semesters": semesters})
    logger.info("Transcript PDF generated (student=%s, %d bytes)", student_id, len(pdf_content))
    return _pdf_response(pdf_content, f"transcript_{student.roll_number}.pdf")


# ✅ [PDF] 프로그램 PLO 성취도 보고서 (계산된 학생별 PLO 성취도 집계)
@router.get("/degree/{degree_id}/plo-attainment.pdf")
def plo_attainment_report(degree_id: int, db: Session = Depends(get_db),
                          _=Depends(authorize("admin", "teacher", "department_head", "dean"))):
    degree = get_or_404(db, DegreeModel, degree_id, "Degree")
    summary = attainment_service.program_plo_summary(db, degree_id)

    pdf_content = pdf_service.generate_plo_attainment_pdf({
        "degree": degree,
        "summary": summary,
        "plos_target_met": sum(1 for s in summary if s["meets_target"]),
    })
    logger.info("PLO attainment PDF generated (degree=%s, %d bytes)", degree_id, len(pdf_content))
    return _pdf_response(pdf_content, f"plo_attainment_{degree.code}.pdf")
