from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database.db import get_db
from dependencies.security import authenticate, authorize
from models.academics import CourseOffering as OfferingModel
from models.assessments import (
    AssessmentCloMapping as MappingModel,
    AssessmentComponent as ComponentModel,
    AssessmentType as TypeModel,
    Question as QuestionModel,
)
from models.marks import StudentAssessmentMark, StudentQuestionMark
from models.outcomes import CourseLearningOutcome as CLOModel
from schemas.assessments import (
    AssessmentType, AssessmentTypeCreate, AssessmentTypeUpdate,
    CloMappingCreate, CloMappingUpdate,
    Component, ComponentCreate, ComponentUpdate,
)
from utils.exceptions import Conflict, NotFound, ValidationFailed
from utils.queries import apply_updates, dump, get_or_404

router = APIRouter(prefix="/assessments", tags=["Assessment"], dependencies=[Depends(authenticate)])


def _mapping_dict(mapping: MappingModel, clo: CLOModel = None):
    return {
        "id": mapping.id,
        "assessment_component_id": mapping.assessment_component_id,
        "course_learning_outcome_id": mapping.course_learning_outcome_id,
        "CLO_ID": clo.CLO_ID if clo else None,
        "CLO_Description": clo.CLO_Description if clo else None,
        "marks_allocated": mapping.marks_allocated,
        "weight_percentage": mapping.weight_percentage,
    }


def _component_mappings(db: Session, component_id: int):
    rows = (
        db.query(MappingModel, CLOModel)
        .join(CLOModel, MappingModel.course_learning_outcome_id == CLOModel.id)
        .filter(MappingModel.assessment_component_id == component_id)
        .order_by(CLOModel.CLO_ID)
        .all()
    )
    return [_mapping_dict(m, clo) for m, clo in rows]


def _check_type_name(db: Session, name: str, exclude_id: int = None):
    query = db.query(TypeModel).filter(TypeModel.name == name)
    if exclude_id is not None:
        query = query.filter(TypeModel.id != exclude_id)
    if query.first() is not None:
        raise Conflict(f"Assessment type '{name}' already exists")


# ==========================================================
# [1단계] 평가 유형 (types)
# ==========================================================

@router.get("/types")
def read_types(db: Session = Depends(get_db)):
    records = db.query(TypeModel).order_by(TypeModel.category, TypeModel.name).all()
    return {"success": True, "data": [dump(AssessmentType, r) for r in records], "count": len(records),
            "message": "Assessment types retrieved successfully"}


@router.post("/types", status_code=201)
def create_type(body: AssessmentTypeCreate, db: Session = Depends(get_db), _=Depends(authorize("admin"))):
    _check_type_name(db, body.name)
    row = TypeModel(**body.model_dump())
    db.add(row)
    db.commit()
    db.refresh(row)
    return {"success": True, "data": dump(AssessmentType, row), "message": "Assessment type created successfully"}


@router.get("/types/{type_id}")
def read_type(type_id: int, db: Session = Depends(get_db)):
    row = get_or_404(db, TypeModel, type_id, "Assessment type")
    return {"success": True, "data": dump(AssessmentType, row), "message": "Assessment type retrieved successfully"}


@router.put("/types/{type_id}")
def update_type(type_id: int, body: AssessmentTypeUpdate, db: Session = Depends(get_db),
                _=Depends(authorize("admin"))):
    row = get_or_404(db, TypeModel, type_id, "Assessment type")
    if body.name is not None:
        _check_type_name(db, body.name, exclude_id=row.id)
    apply_updates(row, body)
    db.commit()
    db.refresh(row)
    return {"success": True, "data": dump(AssessmentType, row), "message": "Assessment type updated successfully"}


# ✅ [DELETE] 사용 중인 유형은 삭제 불가
@router.delete("/types/{type_id}")
def delete_type(type_id: int, db: Session = Depends(get_db), _=Depends(authorize("admin"))):
    row = get_or_404(db, TypeModel, type_id, "Assessment type")
    in_use = db.query(ComponentModel).filter(ComponentModel.assessment_type_id == type_id).count()
    if in_use:
        raise ValidationFailed(
            "Cannot delete assessment type that is in use",
            error={"components": in_use},
        )
    db.delete(row)
    db.commit()
    return {"success": True, "data": {"id": type_id}, "message": "Assessment type deleted successfully"}


# ==========================================================
# [2단계] 평가 항목 (components)
# ==========================================================

@router.get("/components")
def read_components(courseOfferingId: int = None, db: Session = Depends(get_db)):
    query = db.query(ComponentModel)
    if courseOfferingId:
        query = query.filter(ComponentModel.course_offering_id == courseOfferingId)
    records = query.order_by(ComponentModel.course_offering_id, ComponentModel.sequence_number, ComponentModel.id).all()
    return {"success": True, "data": [dump(Component, r) for r in records], "count": len(records),
            "message": "Assessment components retrieved successfully"}


@router.post("/components", status_code=201)
def create_component(body: ComponentCreate, db: Session = Depends(get_db),
                     _=Depends(authorize("admin", "teacher"))):
    get_or_404(db, OfferingModel, body.course_offering_id, "Course offering")
    get_or_404(db, TypeModel, body.assessment_type_id, "Assessment type")
    row = ComponentModel(**body.model_dump())
    db.add(row)
    db.commit()
    db.refresh(row)
    return {"success": True, "data": dump(Component, row), "message": "Assessment component created successfully"}


@router.get("/components/{component_id}")
def read_component(component_id: int, db: Session = Depends(get_db)):
    row = get_or_404(db, ComponentModel, component_id, "Assessment component")
    data = dump(Component, row)
    assessment_type = db.query(TypeModel).filter(TypeModel.id == row.assessment_type_id).first()
    data["assessment_type"] = dump(AssessmentType, assessment_type) if assessment_type else None
    data["clo_mappings"] = _component_mappings(db, component_id)
    return {"success": True, "data": data, "message": "Assessment component retrieved successfully"}


@router.put("/components/{component_id}")
def update_component(component_id: int, body: ComponentUpdate, db: Session = Depends(get_db),
                     _=Depends(authorize("admin", "teacher"))):
    row = get_or_404(db, ComponentModel, component_id, "Assessment component")
    if body.assessment_type_id is not None:
        get_or_404(db, TypeModel, body.assessment_type_id, "Assessment type")
    apply_updates(row, body)
    db.commit()
    db.refresh(row)
    return {"success": True, "data": dump(Component, row), "message": "Assessment component updated successfully"}


# ✅ [DELETE] 매핑 → 문항 점수 → 문항 → 평가 점수 → 평가 항목 순으로 삭제
@router.delete("/components/{component_id}")
def delete_component(component_id: int, db: Session = Depends(get_db),
                     _=Depends(authorize("admin", "teacher"))):
    row = get_or_404(db, ComponentModel, component_id, "Assessment component")
    question_ids = [
        q.id for q in db.query(QuestionModel.id).filter(QuestionModel.assessment_component_id == component_id).all()
    ]
    db.query(MappingModel).filter(MappingModel.assessment_component_id == component_id).delete()
    if question_ids:
        db.query(StudentQuestionMark).filter(StudentQuestionMark.question_id.in_(question_ids)).delete(
            synchronize_session=False
        )
    db.query(QuestionModel).filter(QuestionModel.assessment_component_id == component_id).delete()
    db.query(StudentAssessmentMark).filter(StudentAssessmentMark.assessment_component_id == component_id).delete()
    db.delete(row)
    db.commit()
    return {"success": True, "data": {"id": component_id}, "message": "Assessment component deleted successfully"}


# ==========================================================
# [3단계] 평가 항목 ↔ CLO 배점
# ==========================================================

@router.get("/components/{component_id}/clo-mappings")
def read_clo_mappings(component_id: int, db: Session = Depends(get_db)):
    get_or_404(db, ComponentModel, component_id, "Assessment component")
    data = _component_mappings(db, component_id)
    return {"success": True, "data": data, "count": len(data), "message": "CLO mappings retrieved successfully"}


@router.post("/components/{component_id}/clo-mappings", status_code=201)
def create_clo_mapping(component_id: int, body: CloMappingCreate, db: Session = Depends(get_db),
                       _=Depends(authorize("admin", "teacher"))):
    get_or_404(db, ComponentModel, component_id, "Assessment component")
    clo = get_or_404(db, CLOModel, body.course_learning_outcome_id, "CLO")
    exists = (
        db.query(MappingModel)
        .filter(
            MappingModel.assessment_component_id == component_id,
            MappingModel.course_learning_outcome_id == clo.id,
        )
        .first()
    )
    if exists is not None:
        raise Conflict("CLO is already mapped to this assessment component")

    mapping = MappingModel(assessment_component_id=component_id, **body.model_dump())
    db.add(mapping)
    db.commit()
    db.refresh(mapping)
    return {"success": True, "data": _mapping_dict(mapping, clo), "message": "CLO mapped to assessment successfully"}


@router.put("/components/{component_id}/clo-mappings/{mapping_id}")
def update_clo_mapping(component_id: int, mapping_id: int, body: CloMappingUpdate, db: Session = Depends(get_db),
                       _=Depends(authorize("admin", "teacher"))):
    mapping = (
        db.query(MappingModel)
        .filter(MappingModel.id == mapping_id, MappingModel.assessment_component_id == component_id)
        .first()
    )
    if mapping is None:
        raise NotFound("CLO mapping not found")
    apply_updates(mapping, body)
    db.commit()
    db.refresh(mapping)
    return {"success": True, "data": _mapping_dict(mapping), "message": "CLO mapping updated successfully"}


@router.delete("/components/{component_id}/clo-mappings/{clo_id}")
def delete_clo_mapping(component_id: int, clo_id: int, db: Session = Depends(get_db),
                       _=Depends(authorize("admin", "teacher"))):
    deleted = (
        db.query(MappingModel)
        .filter(MappingModel.assessment_component_id == component_id, MappingModel.course_learning_outcome_id == clo_id)
        .delete()
    )
    if not deleted:
        raise NotFound("CLO mapping not found")
    db.commit()
    return {"success": True, "data": {"assessment_component_id": component_id, "clo_id": clo_id},
            "message": "CLO mapping removed successfully"}
