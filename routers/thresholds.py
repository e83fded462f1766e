from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import or_
from sqlalchemy.orm import Session

from database.db import get_db
from dependencies.security import authenticate, authorize
from models.academics import Degree as DegreeModel
from models.attainment import AttainmentThreshold as ThresholdModel, THRESHOLD_TYPES
from schemas.attainment import Threshold, ThresholdCreate, ThresholdEvaluateRequest, ThresholdUpdate
from schemas.common import make_pagination
from utils.exceptions import Conflict, NotFound, ValidationFailed
from utils.queries import apply_updates, dump, get_or_404

router = APIRouter(prefix="/attainment-thresholds", tags=["성취 수준 기준"], dependencies=[Depends(authenticate)])


def _check_type(threshold_type: str):
    if threshold_type not in THRESHOLD_TYPES:
        raise ValidationFailed(f"Invalid threshold_type. Must be one of: {', '.join(THRESHOLD_TYPES)}")


def _check_range(min_percentage: float, max_percentage: float):
    if min_percentage > max_percentage:
        raise ValidationFailed("Invalid percentage range. min_percentage must be <= max_percentage")


# ✅ 같은 프로그램·유형 안에서 구간이 겹치면 409 (양 끝 포함)
def _check_overlap(db: Session, degree_id: int, threshold_type: str, min_percentage: float,
                   max_percentage: float, exclude_id: int = None):
    query = db.query(ThresholdModel).filter(
        ThresholdModel.degree_id == degree_id,
        ThresholdModel.threshold_type == threshold_type,
        ThresholdModel.min_percentage <= max_percentage,
        ThresholdModel.max_percentage >= min_percentage,
    )
    if exclude_id is not None:
        query = query.filter(ThresholdModel.id != exclude_id)
    if query.first() is not None:
        raise Conflict("Percentage range overlaps with an existing threshold for this degree and type")


def _threshold_dict(row: ThresholdModel, degree_name: str = None) -> dict:
    data = dump(Threshold, row)
    data["degree_name"] = degree_name
    return data


# ✅ [READ] 기준표 목록 (프로그램/유형/검색어 필터 + 페이징)
@router.get("")
def read_thresholds(
    degreeId: Optional[int] = None,
    thresholdType: Optional[str] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=500),
    db: Session = Depends(get_db),
):
    query = db.query(ThresholdModel, DegreeModel.name).join(DegreeModel, ThresholdModel.degree_id == DegreeModel.id)
    if degreeId:
        query = query.filter(ThresholdModel.degree_id == degreeId)
    if thresholdType:
        query = query.filter(ThresholdModel.threshold_type == thresholdType)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(
            ThresholdModel.level_name.ilike(pattern),
            ThresholdModel.threshold_type.ilike(pattern),
            DegreeModel.name.ilike(pattern),
        ))
    total = query.count()
    rows = (
        query.order_by(DegreeModel.name, ThresholdModel.threshold_type, ThresholdModel.min_percentage.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {"success": True, "data": [_threshold_dict(r, name) for r, name in rows],
            "pagination": make_pagination(total, page, limit),
            "message": "Attainment thresholds retrieved successfully"}


@router.get("/degree/{degree_id}")
def read_degree_thresholds(degree_id: int, thresholdType: Optional[str] = None, db: Session = Depends(get_db)):
    degree = get_or_404(db, DegreeModel, degree_id, "Degree")
    query = db.query(ThresholdModel).filter(ThresholdModel.degree_id == degree_id)
    if thresholdType:
        query = query.filter(ThresholdModel.threshold_type == thresholdType)
    rows = query.order_by(ThresholdModel.threshold_type, ThresholdModel.min_percentage.desc()).all()
    return {"success": True, "data": [_threshold_dict(r, degree.name) for r in rows], "count": len(rows),
            "message": "Attainment thresholds retrieved successfully"}


@router.get("/type/{threshold_type}")
def read_type_thresholds(threshold_type: str, db: Session = Depends(get_db)):
    _check_type(threshold_type)
    rows = (
        db.query(ThresholdModel, DegreeModel.name)
        .join(DegreeModel, ThresholdModel.degree_id == DegreeModel.id)
        .filter(ThresholdModel.threshold_type == threshold_type)
        .order_by(DegreeModel.name, ThresholdModel.min_percentage.desc())
        .all()
    )
    return {"success": True, "data": [_threshold_dict(r, name) for r, name in rows], "count": len(rows),
            "message": "Attainment thresholds retrieved successfully"}


# ✅ [EVALUATE] 백분율이 속하는 성취 수준 조회
@router.post("/evaluate")
def evaluate(body: ThresholdEvaluateRequest, db: Session = Depends(get_db)):
    _check_type(body.threshold_type)
    level = (
        db.query(ThresholdModel)
        .filter(
            ThresholdModel.degree_id == body.degree_id,
            ThresholdModel.threshold_type == body.threshold_type,
            ThresholdModel.min_percentage <= body.percentage,
            ThresholdModel.max_percentage >= body.percentage,
        )
        .first()
    )
    result = body.model_dump()
    if level is None:
        raise NotFound("No matching attainment level found for the given percentage", error={**result, "level": None})
    return {"success": True, "data": {**result, "level": dump(Threshold, level)},
            "message": "Attainment level evaluated successfully"}


@router.get("/{threshold_id}")
def read_threshold(threshold_id: int, db: Session = Depends(get_db)):
    row = get_or_404(db, ThresholdModel, threshold_id, "Attainment threshold")
    return {"success": True, "data": dump(Threshold, row), "message": "Attainment threshold retrieved successfully"}


@router.post("", status_code=201)
def create_threshold(body: ThresholdCreate, db: Session = Depends(get_db), _=Depends(authorize("admin", "teacher"))):
    _check_type(body.threshold_type)
    _check_range(body.min_percentage, body.max_percentage)
    get_or_404(db, DegreeModel, body.degree_id, "Degree")
    exists = db.query(ThresholdModel).filter(
        ThresholdModel.degree_id == body.degree_id,
        ThresholdModel.threshold_type == body.threshold_type,
        ThresholdModel.level_name == body.level_name,
    ).first()
    if exists is not None:
        raise Conflict("Attainment threshold with this degree, type, and level already exists")
    _check_overlap(db, body.degree_id, body.threshold_type, body.min_percentage, body.max_percentage)

    row = ThresholdModel(**body.model_dump())
    db.add(row)
    db.commit()
    db.refresh(row)
    return {"success": True, "data": dump(Threshold, row), "message": "Attainment threshold created successfully"}


# ✅ [UPDATE] 바뀐 값과 기존 값을 합쳐 구간 재검증 (자기 자신 제외)
@router.put("/{threshold_id}")
def update_threshold(threshold_id: int, body: ThresholdUpdate, db: Session = Depends(get_db),
                     _=Depends(authorize("admin", "teacher"))):
    row = get_or_404(db, ThresholdModel, threshold_id, "Attainment threshold")
    if body.threshold_type is not None:
        _check_type(body.threshold_type)
    if body.degree_id is not None:
        get_or_404(db, DegreeModel, body.degree_id, "Degree")
    new_min = body.min_percentage if body.min_percentage is not None else row.min_percentage
    new_max = body.max_percentage if body.max_percentage is not None else row.max_percentage
    _check_range(new_min, new_max)
    _check_overlap(db, body.degree_id or row.degree_id, body.threshold_type or row.threshold_type,
                   new_min, new_max, exclude_id=row.id)

    apply_updates(row, body)
    db.commit()
    db.refresh(row)
    return {"success": True, "data": dump(Threshold, row), "message": "Attainment threshold updated successfully"}


@router.delete("/degree/{degree_id}")
def delete_degree_thresholds(degree_id: int, db: Session = Depends(get_db), _=Depends(authorize("admin"))):
    deleted = db.query(ThresholdModel).filter(ThresholdModel.degree_id == degree_id).delete()
    db.commit()
    return {"success": True, "data": {"degree_id": degree_id, "deleted_count": deleted},
            "message": f"Successfully deleted {deleted} threshold(s) for degree"}


@router.delete("/{threshold_id}")
def delete_threshold(threshold_id: int, db: Session = Depends(get_db), _=Depends(authorize("admin"))):
    row = get_or_404(db, ThresholdModel, threshold_id, "Attainment threshold")
    db.delete(row)
    db.commit()
    return {"success": True, "data": {"id": threshold_id}, "message": "Attainment threshold deleted successfully"}
