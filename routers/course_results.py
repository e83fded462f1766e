from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database.db import get_db
from dependencies.security import authenticate, authorize
from models.academics import CourseOffering as OfferingModel
from models.results import CourseResult as CourseResultModel
from schemas.results import CourseResultCalculateRequest, OfferingRequest
from services import grade_service
from utils.exceptions import NotFound
from utils.queries import get_or_404

router = APIRouter(prefix="/course-results", tags=["Course Result"], dependencies=[Depends(authenticate)])


@router.post("/calculate")
def calculate(body: CourseResultCalculateRequest, db: Session = Depends(get_db),
              _=Depends(authorize("admin", "teacher"))):
    result = grade_service.calculate_course_result(db, body.student_id, body.course_offering_id)
    db.commit()
    return {"success": True, "data": grade_service.course_result_to_dict(result),
            "message": "Course result calculated successfully"}


@router.post("/calculate-all")
def calculate_all(body: OfferingRequest, db: Session = Depends(get_db),
                  _=Depends(authorize("admin", "teacher"))):
    get_or_404(db, OfferingModel, body.course_offering_id, "Course offering")
    tally = grade_service.calculate_offering_results(db, body.course_offering_id)
    db.commit()
    return {"success": True, "data": tally, "message": "Course results calculated successfully"}


# ✅ [UPDATE] 확정된 성적만 SGPA/CGPA 계산에 반영
@router.patch("/finalize/{offering_id}")
def finalize(offering_id: int, db: Session = Depends(get_db), _=Depends(authorize("admin", "teacher"))):
    get_or_404(db, OfferingModel, offering_id, "Course offering")
    results = db.query(CourseResultModel).filter(CourseResultModel.course_offering_id == offering_id).all()
    if not results:
        raise NotFound("No course results found for this course offering")
    now = datetime.now()
    for r in results:
        r.is_finalized = True
        r.finalized_at = now
    db.commit()
    return {"success": True, "data": {"course_offering_id": offering_id, "finalized": len(results)},
            "message": "Course results finalized successfully"}


@router.get("/offering/{offering_id}/statistics")
def statistics(offering_id: int, db: Session = Depends(get_db)):
    get_or_404(db, OfferingModel, offering_id, "Course offering")
    return {"success": True, "data": grade_service.offering_statistics(db, offering_id),
            "message": "Course result statistics retrieved successfully"}


@router.get("")
def read_results(course_offering_id: int = None, student_id: int = None, db: Session = Depends(get_db)):
    query = db.query(CourseResultModel)
    if course_offering_id:
        query = query.filter(CourseResultModel.course_offering_id == course_offering_id)
    if student_id:
        query = query.filter(CourseResultModel.student_id == student_id)
    results = query.order_by(CourseResultModel.course_offering_id, CourseResultModel.student_id).all()
    return {"success": True, "data": [grade_service.course_result_to_dict(r) for r in results],
            "count": len(results), "message": "Course results retrieved successfully"}


@router.get("/{result_id}")
def read_result(result_id: int, db: Session = Depends(get_db)):
    result = get_or_404(db, CourseResultModel, result_id, "Course result")
    return {"success": True, "data": grade_service.course_result_to_dict(result),
            "message": "Course result retrieved successfully"}
