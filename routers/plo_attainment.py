from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database.db import get_db
from dependencies.security import authenticate, require_permission
from models.academics import Degree as DegreeModel, Student as StudentModel
from schemas.attainment import ProgramPLOCalculateRequest, StudentPLOCalculateRequest
from services import attainment_service
from utils.queries import get_or_404

router = APIRouter(prefix="/plo-attainment", tags=["PLO Attainment"], dependencies=[Depends(authenticate)])


@router.post("/student/calculate")
def calculate_student(body: StudentPLOCalculateRequest, db: Session = Depends(get_db),
                      _=Depends(require_permission("calculate_attainment"))):
    results = attainment_service.calculate_student_plo_attainment(db, body.student_id, body.degree_id, body.plo_id)
    db.commit()
    return {"success": True, "data": results, "count": len(results),
            "message": "Student PLO attainment calculated successfully"}


# ✅ [CALC] 프로그램 전체 학생 → PLO별 요약
@router.post("/program/calculate")
def calculate_program(body: ProgramPLOCalculateRequest, db: Session = Depends(get_db),
                      _=Depends(require_permission("calculate_attainment"))):
    data = attainment_service.calculate_program_attainment(db, body.degree_id)
    db.commit()
    return {"success": True, "data": data, "message": "Program PLO attainment calculated successfully"}


@router.get("/student/{student_id}/degree/{degree_id}")
def read_student(student_id: int, degree_id: int, db: Session = Depends(get_db)):
    get_or_404(db, StudentModel, student_id, "Student")
    get_or_404(db, DegreeModel, degree_id, "Degree")
    records = attainment_service.get_student_plo_records(db, student_id, degree_id)
    return {
        "success": True,
        "data": {"attainment": records, "summary": attainment_service.student_plo_summary(records)},
        "message": "Student PLO attainment retrieved successfully",
    }


@router.get("/program/{degree_id}")
def read_program(degree_id: int, db: Session = Depends(get_db)):
    get_or_404(db, DegreeModel, degree_id, "Degree")
    summary = attainment_service.program_plo_summary(db, degree_id)
    return {"success": True, "data": summary, "count": len(summary),
            "message": "Program PLO attainment retrieved successfully"}
