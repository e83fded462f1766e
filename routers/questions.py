from fastapi import APIRouter, Depends
from sqlalchemy import func
from sqlalchemy.orm import Session

from database.db import get_db
from dependencies.security import authenticate, authorize
from models.academics import CourseOffering as OfferingModel
from models.assessments import AssessmentComponent as ComponentModel, Question as QuestionModel
from models.marks import StudentQuestionMark
from models.outcomes import CourseLearningOutcome as CLOModel
from schemas.assessments import Question, QuestionCreate, QuestionUpdate
from services import marks_service
from utils.exceptions import ValidationFailed
from utils.queries import apply_updates, dump, get_or_404

router = APIRouter(prefix="/questions", tags=["Question"], dependencies=[Depends(authenticate)])


def _check_total(db: Session, component: ComponentModel, marks: float, exclude_id: int = None):
    """문항 배점 합계가 평가 항목 만점을 넘지 않도록"""
    query = db.query(func.coalesce(func.sum(QuestionModel.marks), 0)).filter(
        QuestionModel.assessment_component_id == component.id
    )
    if exclude_id is not None:
        query = query.filter(QuestionModel.id != exclude_id)
    allocated = float(query.scalar() or 0)
    if allocated + marks > component.total_marks:
        raise ValidationFailed(
            "Total question marks cannot exceed assessment total marks",
            error={
                "total_marks": component.total_marks,
                "allocated": allocated,
                "remaining": max(component.total_marks - allocated, 0),
            },
        )


def _check_clo(db: Session, component: ComponentModel, clo_id: int):
    clo = get_or_404(db, CLOModel, clo_id, "CLO")
    offering = db.query(OfferingModel).filter(OfferingModel.id == component.course_offering_id).first()
    if offering is not None and clo.course_id != offering.course_id:
        raise ValidationFailed("CLO does not belong to this course")


@router.get("")
def read_questions(assessmentComponentId: int = None, db: Session = Depends(get_db)):
    query = db.query(QuestionModel)
    if assessmentComponentId:
        query = query.filter(QuestionModel.assessment_component_id == assessmentComponentId)
    records = query.order_by(QuestionModel.assessment_component_id, QuestionModel.question_number).all()
    return {"success": True, "data": [dump(Question, r) for r in records], "count": len(records),
            "message": "Questions retrieved successfully"}


@router.post("", status_code=201)
def create_question(body: QuestionCreate, db: Session = Depends(get_db),
                    _=Depends(authorize("admin", "teacher"))):
    component = get_or_404(db, ComponentModel, body.assessment_component_id, "Assessment component")
    _check_total(db, component, body.marks)
    if body.clo_id is not None:
        _check_clo(db, component, body.clo_id)
    row = QuestionModel(**body.model_dump())
    db.add(row)
    db.commit()
    db.refresh(row)
    return {"success": True, "data": dump(Question, row), "message": "Question created successfully"}


@router.get("/{question_id}")
def read_question(question_id: int, db: Session = Depends(get_db)):
    row = get_or_404(db, QuestionModel, question_id, "Question")
    return {"success": True, "data": dump(Question, row), "message": "Question retrieved successfully"}


@router.put("/{question_id}")
def update_question(question_id: int, body: QuestionUpdate, db: Session = Depends(get_db),
                    _=Depends(authorize("admin", "teacher"))):
    row = get_or_404(db, QuestionModel, question_id, "Question")
    component = get_or_404(db, ComponentModel, row.assessment_component_id, "Assessment component")
    if body.marks is not None:
        _check_total(db, component, body.marks, exclude_id=row.id)
    if body.clo_id is not None:
        _check_clo(db, component, body.clo_id)
    apply_updates(row, body)
    db.commit()
    db.refresh(row)
    return {"success": True, "data": dump(Question, row), "message": "Question updated successfully"}


@router.delete("/{question_id}")
def delete_question(question_id: int, db: Session = Depends(get_db),
                    _=Depends(authorize("admin", "teacher"))):
    row = get_or_404(db, QuestionModel, question_id, "Question")
    db.query(StudentQuestionMark).filter(StudentQuestionMark.question_id == question_id).delete()
    db.delete(row)
    db.commit()
    return {"success": True, "data": {"id": question_id}, "message": "Question deleted successfully"}


@router.get("/{question_id}/statistics")
def read_question_statistics(question_id: int, db: Session = Depends(get_db)):
    row = get_or_404(db, QuestionModel, question_id, "Question")
    return {"success": True, "data": marks_service.question_statistics(db, row),
            "message": "Question statistics retrieved successfully"}
