from typing import Literal

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from database.db import get_db
from dependencies.security import authenticate, authorize
from models.academics import CourseOffering as OfferingModel, Student as StudentModel
from models.assessments import AssessmentComponent as ComponentModel, Question as QuestionModel
from models.marks import StudentAssessmentMark as MarkModel, StudentQuestionMark as QuestionMarkModel
from models.users import User as UserModel
from schemas.marks import BulkMarksRequest, BulkQuestionMarksRequest, MarkCreate, MarkUpdate, QuestionMarkEntry
from services import marks_service
from utils.queries import get_or_404

router = APIRouter(prefix="/marks", tags=["Marks"], dependencies=[Depends(authenticate)])


def _with_components(db: Session, marks):
    ids = {m.assessment_component_id for m in marks}
    components = {c.id: c for c in db.query(ComponentModel).filter(ComponentModel.id.in_(ids)).all()} if ids else {}
    return [marks_service.mark_to_dict(m, components.get(m.assessment_component_id)) for m in marks]


def _bulk_response(result: dict, total: int, created_key: str) -> JSONResponse:
    """전체 성공 201 / 부분 성공 207 / 전체 실패 400"""
    created = result[created_key]
    if result["failed"] == 0:
        status_code, success, message = 201, True, f"{created} mark records created successfully"
    elif created > 0:
        status_code, success, message = 207, True, f"{created} of {total} mark records processed, {result['failed']} failed"
    else:
        status_code, success, message = 400, False, "All mark records failed validation"
    return JSONResponse(status_code=status_code, content={"success": success, "data": result, "message": message})


# ==========================================================
# [1단계] 목록 / 생성
# ==========================================================

@router.get("")
def read_marks(studentId: int = None, assessmentId: int = None, db: Session = Depends(get_db)):
    query = db.query(MarkModel)
    if studentId:
        query = query.filter(MarkModel.student_id == studentId)
    if assessmentId:
        query = query.filter(MarkModel.assessment_component_id == assessmentId)
    marks = query.order_by(MarkModel.assessment_component_id, MarkModel.student_id).all()
    return {"success": True, "data": _with_components(db, marks), "count": len(marks),
            "message": "Marks retrieved successfully"}


# ✅ [CREATE] 단건 입력 (검증 실패 400 / 미존재 404 / 중복 409)
@router.post("", status_code=201)
def create_mark(body: MarkCreate, db: Session = Depends(get_db),
                user: UserModel = Depends(authorize("admin", "teacher"))):
    data = marks_service.create_mark(db, body.model_dump(), evaluated_by=user.id)
    db.commit()
    return {"success": True, "data": data, "message": "Marks created successfully"}


# ✅ [BULK] 일괄 입력: 항목별로 독립 검증
@router.post("/bulk")
def bulk_create_marks(body: BulkMarksRequest, db: Session = Depends(get_db),
                      user: UserModel = Depends(authorize("admin", "teacher"))):
    items = [m.model_dump() for m in body.marks]
    result = marks_service.bulk_create(db, items, evaluated_by=user.id)
    db.commit()
    if result["failed"] == 0:
        result.pop("errors")
    return _bulk_response(result, len(items), "created")


# ==========================================================
# [2단계] 평가 항목 / 문항 점수 upsert
# ==========================================================

@router.post("/assessment")
def upsert_assessment_mark(body: MarkCreate, db: Session = Depends(get_db),
                           user: UserModel = Depends(authorize("admin", "teacher"))):
    data = marks_service.upsert_assessment_mark(db, body.model_dump(), evaluated_by=user.id)
    db.commit()
    return {"success": True, "data": data, "message": "Assessment marks saved successfully"}


@router.post("/question")
def upsert_question_mark(body: QuestionMarkEntry, db: Session = Depends(get_db),
                         user: UserModel = Depends(authorize("admin", "teacher"))):
    data = marks_service.upsert_question_mark(db, body.model_dump(), evaluated_by=user.id)
    db.commit()
    return {"success": True, "data": data, "message": "Question marks saved successfully"}


@router.post("/question/bulk")
def bulk_question_marks(body: BulkQuestionMarksRequest, db: Session = Depends(get_db),
                        user: UserModel = Depends(authorize("admin", "teacher"))):
    items = [m.model_dump() for m in body.marks]
    result = marks_service.bulk_question_marks(db, items, evaluated_by=user.id)
    db.commit()
    return _bulk_response(result, len(items), "success")


# ==========================================================
# [3단계] 조회 (학생 / 평가 항목 / 문항)
# ==========================================================

@router.get("/student/{student_id}")
def read_student_marks(student_id: int, db: Session = Depends(get_db)):
    marks = (
        db.query(MarkModel)
        .filter(MarkModel.student_id == student_id)
        .order_by(MarkModel.assessment_component_id)
        .all()
    )
    return {"success": True, "data": _with_components(db, marks), "count": len(marks),
            "message": "Student marks retrieved successfully"}


@router.get("/student/{student_id}/assessment/{component_id}/calculate")
def calculate_student_assessment(student_id: int, component_id: int, db: Session = Depends(get_db)):
    get_or_404(db, StudentModel, student_id, "Student")
    get_or_404(db, ComponentModel, component_id, "Assessment component")
    return {"success": True, "data": marks_service.student_assessment_total(db, student_id, component_id),
            "message": "Assessment total calculated successfully"}


@router.get("/student/{student_id}/assessment/{component_id}/clo")
def student_clo_breakdown(student_id: int, component_id: int, db: Session = Depends(get_db)):
    get_or_404(db, StudentModel, student_id, "Student")
    get_or_404(db, ComponentModel, component_id, "Assessment component")
    data = marks_service.student_clo_breakdown(db, student_id, component_id)
    return {"success": True, "data": data, "count": len(data), "message": "CLO-wise marks retrieved successfully"}


@router.get("/student/{student_id}/course/{offering_id}/total")
def student_course_total(student_id: int, offering_id: int, db: Session = Depends(get_db)):
    get_or_404(db, StudentModel, student_id, "Student")
    get_or_404(db, OfferingModel, offering_id, "Course offering")
    return {"success": True, "data": marks_service.student_course_total(db, student_id, offering_id),
            "message": "Course total calculated successfully"}


@router.get("/assessment/{component_id}")
def read_component_marks(component_id: int, type: Literal["assessment", "question"] = "assessment",
                         includeStatistics: bool = False, db: Session = Depends(get_db)):
    component = get_or_404(db, ComponentModel, component_id, "Assessment component")
    if type == "question":
        rows = (
            db.query(QuestionMarkModel, QuestionModel)
            .join(QuestionModel, QuestionMarkModel.question_id == QuestionModel.id)
            .filter(QuestionModel.assessment_component_id == component_id)
            .order_by(QuestionMarkModel.student_id, QuestionModel.question_number)
            .all()
        )
        data = {"marks": [marks_service.question_mark_to_dict(m, q) for m, q in rows]}
        if includeStatistics:
            data["statistics"] = marks_service.component_question_statistics(db, component_id)
    else:
        marks = (
            db.query(MarkModel)
            .filter(MarkModel.assessment_component_id == component_id)
            .order_by(MarkModel.student_id)
            .all()
        )
        data = {"marks": [marks_service.mark_to_dict(m, component) for m in marks]}
        if includeStatistics:
            data["statistics"] = marks_service.assessment_statistics(db, component)
    return {"success": True, "data": data, "count": len(data["marks"]), "message": "Marks retrieved successfully"}


@router.get("/question/{question_id}")
def read_question_marks(question_id: int, db: Session = Depends(get_db)):
    question = get_or_404(db, QuestionModel, question_id, "Question")
    marks = (
        db.query(QuestionMarkModel)
        .filter(QuestionMarkModel.question_id == question_id)
        .order_by(QuestionMarkModel.student_id)
        .all()
    )
    data = [marks_service.question_mark_to_dict(m, question) for m in marks]
    return {"success": True, "data": data, "count": len(data), "message": "Question marks retrieved successfully"}


@router.get("/statistics/assessment/{component_id}")
def assessment_statistics(component_id: int, db: Session = Depends(get_db)):
    component = get_or_404(db, ComponentModel, component_id, "Assessment component")
    return {"success": True, "data": marks_service.assessment_statistics(db, component),
            "message": "Assessment statistics retrieved successfully"}


@router.get("/statistics/questions/{component_id}")
def question_statistics(component_id: int, db: Session = Depends(get_db)):
    get_or_404(db, ComponentModel, component_id, "Assessment component")
    data = marks_service.component_question_statistics(db, component_id)
    return {"success": True, "data": data, "count": len(data), "message": "Question statistics retrieved successfully"}


# ==========================================================
# [4단계] 단건 조회 / 수정 / 삭제
# ==========================================================

@router.get("/{mark_id}")
def read_mark(mark_id: int, db: Session = Depends(get_db)):
    mark = get_or_404(db, MarkModel, mark_id, "Mark record")
    component = db.query(ComponentModel).filter(ComponentModel.id == mark.assessment_component_id).first()
    return {"success": True, "data": marks_service.mark_to_dict(mark, component), "message": "Mark retrieved successfully"}


@router.put("/{mark_id}")
def update_mark(mark_id: int, body: MarkUpdate, db: Session = Depends(get_db),
                _=Depends(authorize("admin", "teacher"))):
    mark = get_or_404(db, MarkModel, mark_id, "Mark record")
    data = marks_service.update_mark(db, mark, body.model_dump(exclude_unset=True))
    db.commit()
    return {"success": True, "data": data, "message": "Marks updated successfully"}


@router.delete("/{mark_id}")
def delete_mark(mark_id: int, db: Session = Depends(get_db), _=Depends(authorize("admin", "teacher"))):
    mark = get_or_404(db, MarkModel, mark_id, "Mark record")
    db.delete(mark)
    db.commit()
    return {"success": True, "data": {"id": mark_id}, "message": "Marks deleted successfully"}
