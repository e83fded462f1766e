from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from database.db import get_db
from dependencies.security import authenticate, authorize
from models.results import GradePoint as GradePointModel, GradeScale as GradeScaleModel
from schemas.results import GradePointCreate, GradeScaleCreate
from services import grade_service
from utils.exceptions import NotFound
from utils.queries import get_or_404

router = APIRouter(prefix="/grades", tags=["Grade"], dependencies=[Depends(authenticate)])


def _point_dict(p: GradePointModel):
    return {
        "id": p.id,
        "grade_scale_id": p.grade_scale_id,
        "letter_grade": p.letter_grade,
        "grade_point": p.grade_point,
        "min_percentage": p.min_percentage,
        "max_percentage": p.max_percentage,
    }


def _scale_dict(db: Session, scale: GradeScaleModel):
    points = (
        db.query(GradePointModel)
        .filter(GradePointModel.grade_scale_id == scale.id)
        .order_by(GradePointModel.min_percentage.desc())
        .all()
    )
    return {"id": scale.id, "name": scale.name, "is_active": bool(scale.is_active),
            "points": [_point_dict(p) for p in points]}


def _activate(db: Session, scale: GradeScaleModel):
    db.query(GradeScaleModel).filter(GradeScaleModel.id != scale.id).update({"is_active": False})
    scale.is_active = True


@router.get("/scales")
def read_scales(db: Session = Depends(get_db)):
    scales = db.query(GradeScaleModel).order_by(GradeScaleModel.id).all()
    return {"success": True, "data": [_scale_dict(db, s) for s in scales], "count": len(scales),
            "message": "Grade scales retrieved successfully"}


@router.post("/scales", status_code=201)
def create_scale(body: GradeScaleCreate, db: Session = Depends(get_db), _=Depends(authorize("admin"))):
    scale = GradeScaleModel(name=body.name, is_active=False)
    db.add(scale)
    db.flush()
    if body.is_active:
        _activate(db, scale)
    db.commit()
    db.refresh(scale)
    return {"success": True, "data": _scale_dict(db, scale), "message": "Grade scale created successfully"}


@router.get("/scales/{scale_id}")
def read_scale(scale_id: int, db: Session = Depends(get_db)):
    scale = get_or_404(db, GradeScaleModel, scale_id, "Grade scale")
    return {"success": True, "data": _scale_dict(db, scale), "message": "Grade scale retrieved successfully"}


@router.post("/scales/{scale_id}/points", status_code=201)
def add_point(scale_id: int, body: GradePointCreate, db: Session = Depends(get_db), _=Depends(authorize("admin"))):
    point = grade_service.add_grade_point(db, scale_id, **body.model_dump())
    db.commit()
    return {"success": True, "data": _point_dict(point), "message": "Grade point added successfully"}


# ✅ [UPDATE] 하나의 기준표만 활성화
@router.patch("/scales/{scale_id}/activate")
def activate_scale(scale_id: int, db: Session = Depends(get_db), _=Depends(authorize("admin"))):
    scale = get_or_404(db, GradeScaleModel, scale_id, "Grade scale")
    _activate(db, scale)
    db.commit()
    db.refresh(scale)
    return {"success": True, "data": _scale_dict(db, scale), "message": "Grade scale activated successfully"}


@router.get("/calculate")
def calculate_grade(percentage: float = Query(...), db: Session = Depends(get_db)):
    grade = grade_service.find_grade(db, percentage)
    if grade is None:
        raise NotFound("No grade found for this percentage on the active grade scale")
    return {
        "success": True,
        "data": {"percentage": percentage, "letter_grade": grade.letter_grade, "grade_point": grade.grade_point},
        "message": "Grade calculated successfully",
    }
