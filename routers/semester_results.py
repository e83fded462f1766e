from typing import Optional

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from database.db import get_db
from dependencies.security import authenticate, authorize
from models.academics import Semester as SemesterModel, Student as StudentModel
from models.results import SemesterResult as SemesterResultModel
from models.users import User as UserModel
from schemas.results import PublishRequest, SemesterCalculateRequest, SemesterRequest
from services import grade_service
from utils.exceptions import Forbidden, NotFound
from utils.queries import get_or_404

router = APIRouter(prefix="/semester-results", tags=["Semester Result"], dependencies=[Depends(authenticate)])


def _ensure_own_record(db: Session, user: UserModel, student_id: int):
    """학생 계정은 본인 학생 레코드만 조회 가능"""
    if user.role != "student":
        return
    student = db.query(StudentModel).filter(StudentModel.user_id == user.id).first()
    if student is None or student.id != student_id:
        raise Forbidden("Access denied. You can only view your own results.")


# ==========================================================
# [1단계] 계산
# ==========================================================

@router.post("/calculate-sgpa")
def calculate_sgpa(body: SemesterCalculateRequest, db: Session = Depends(get_db),
                   _=Depends(authorize("admin", "teacher"))):
    get_or_404(db, StudentModel, body.student_id, "Student")
    get_or_404(db, SemesterModel, body.semester_id, "Semester")
    return {"success": True, "data": grade_service.calculate_sgpa(db, body.student_id, body.semester_id),
            "message": "SGPA calculated successfully"}


@router.post("/calculate-cgpa")
def calculate_cgpa(body: SemesterCalculateRequest, db: Session = Depends(get_db),
                   _=Depends(authorize("admin", "teacher"))):
    get_or_404(db, StudentModel, body.student_id, "Student")
    return {"success": True, "data": grade_service.calculate_cgpa(db, body.student_id, body.semester_id),
            "message": "CGPA calculated successfully"}


@router.post("/calculate")
def calculate(body: SemesterCalculateRequest, db: Session = Depends(get_db),
              _=Depends(authorize("admin", "teacher"))):
    result = grade_service.save_semester_result(db, body.student_id, body.semester_id)
    db.commit()
    return {"success": True, "data": grade_service.semester_result_to_dict(result),
            "message": "Semester result calculated successfully"}


@router.post("/calculate-all")
def calculate_all(body: SemesterRequest, db: Session = Depends(get_db), _=Depends(authorize("admin"))):
    tally = grade_service.calculate_semester_all(db, body.semester_id)
    db.commit()
    return {"success": True, "data": tally, "message": "Semester results calculated successfully"}


# ==========================================================
# [2단계] 공개 / 비공개
# ==========================================================

@router.patch("/publish/{semester_id}")
def publish(semester_id: int, body: Optional[PublishRequest] = Body(None), db: Session = Depends(get_db),
            _=Depends(authorize("admin"))):
    get_or_404(db, SemesterModel, semester_id, "Semester")
    updated = grade_service.set_published(db, semester_id, True, body.student_ids if body else None)
    db.commit()
    return {"success": True, "data": {"semester_id": semester_id, "updated": updated},
            "message": f"{updated} semester results published"}


@router.patch("/unpublish/{semester_id}")
def unpublish(semester_id: int, body: Optional[PublishRequest] = Body(None), db: Session = Depends(get_db),
              _=Depends(authorize("admin"))):
    get_or_404(db, SemesterModel, semester_id, "Semester")
    updated = grade_service.set_published(db, semester_id, False, body.student_ids if body else None)
    db.commit()
    return {"success": True, "data": {"semester_id": semester_id, "updated": updated},
            "message": f"{updated} semester results unpublished"}


# ==========================================================
# [3단계] 조회
# ==========================================================

@router.get("/semester/{semester_id}/summary")
def summary(semester_id: int, db: Session = Depends(get_db), _=Depends(authorize("admin", "teacher"))):
    get_or_404(db, SemesterModel, semester_id, "Semester")
    return {"success": True, "data": grade_service.semester_summary(db, semester_id),
            "message": "Semester summary retrieved successfully"}


@router.get("/student/{student_id}/semester/{semester_id}")
def read_student_semester(student_id: int, semester_id: int, db: Session = Depends(get_db),
                          user: UserModel = Depends(authenticate)):
    _ensure_own_record(db, user, student_id)
    query = db.query(SemesterResultModel).filter(
        SemesterResultModel.student_id == student_id, SemesterResultModel.semester_id == semester_id
    )
    if user.role == "student":
        query = query.filter(SemesterResultModel.is_published.is_(True))
    result = query.first()
    if result is None:
        raise NotFound("Semester result not found")
    return {"success": True, "data": grade_service.semester_result_to_dict(result),
            "message": "Semester result retrieved successfully"}


@router.get("/student/{student_id}")
def read_student(student_id: int, includeUnpublished: bool = False, db: Session = Depends(get_db),
                 user: UserModel = Depends(authenticate)):
    _ensure_own_record(db, user, student_id)
    query = db.query(SemesterResultModel).filter(SemesterResultModel.student_id == student_id)
    # 학생은 공개된 성적만
    if user.role == "student" or not includeUnpublished:
        query = query.filter(SemesterResultModel.is_published.is_(True))
    results = query.order_by(SemesterResultModel.semester_id).all()
    return {"success": True, "data": [grade_service.semester_result_to_dict(r) for r in results],
            "count": len(results), "message": "Student semester results retrieved successfully"}


@router.get("")
def read_results(semester_id: int = None, is_published: bool = None, db: Session = Depends(get_db),
                 _=Depends(authorize("admin", "teacher", "department_head", "dean"))):
    query = db.query(SemesterResultModel)
    if semester_id:
        query = query.filter(SemesterResultModel.semester_id == semester_id)
    if is_published is not None:
        query = query.filter(SemesterResultModel.is_published.is_(is_published))
    results = query.order_by(SemesterResultModel.semester_id, SemesterResultModel.student_id).all()
    return {"success": True, "data": [grade_service.semester_result_to_dict(r) for r in results],
            "count": len(results), "message": "Semester results retrieved successfully"}


@router.get("/{result_id}")
def read_result(result_id: int, db: Session = Depends(get_db), user: UserModel = Depends(authenticate)):
    result = get_or_404(db, SemesterResultModel, result_id, "Semester result")
    _ensure_own_record(db, user, result.student_id)
    if user.role == "student" and not result.is_published:
        raise NotFound("Semester result not found")
    return {"success": True, "data": grade_service.semester_result_to_dict(result),
            "message": "Semester result retrieved successfully"}


@router.delete("/{result_id}")
def delete_result(result_id: int, db: Session = Depends(get_db), _=Depends(authorize("admin"))):
    result = get_or_404(db, SemesterResultModel, result_id, "Semester result")
    db.delete(result)
    db.commit()
    return {"success": True, "data": {"id": result_id}, "message": "Semester result deleted successfully"}
