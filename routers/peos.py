from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database.db import get_db
from dependencies.security import authenticate, authorize
from models.academics import Degree as DegreeModel
from models.outcomes import (
    PeoPloMapping as PeoPloMappingModel,
    ProgramEducationalObjective as PEOModel,
    ProgramLearningOutcome as PLOModel,
)
from schemas.outcomes import PEO, PEOCreate, PEOUpdate, PLO
from utils.exceptions import Conflict
from utils.queries import apply_updates, dump, get_or_404

router = APIRouter(prefix="/peos", tags=["PEO"], dependencies=[Depends(authenticate)])


def _check_unique(db: Session, degree_id: int, peo_no: int, exclude_id: int = None):
    query = db.query(PEOModel).filter(PEOModel.degree_id == degree_id, PEOModel.PEO_No == peo_no)
    if exclude_id is not None:
        query = query.filter(PEOModel.id != exclude_id)
    if query.first() is not None:
        raise Conflict(f"PEO {peo_no} already exists for this degree")


@router.get("")
def read_peos(degreeId: int = None, db: Session = Depends(get_db)):
    query = db.query(PEOModel)
    if degreeId:
        query = query.filter(PEOModel.degree_id == degreeId)
    records = query.order_by(PEOModel.degree_id, PEOModel.PEO_No).all()
    return {"success": True, "data": [dump(PEO, r) for r in records], "count": len(records),
            "message": "PEOs retrieved successfully"}


@router.post("", status_code=201)
def create_peo(body: PEOCreate, db: Session = Depends(get_db), _=Depends(authorize("admin"))):
    get_or_404(db, DegreeModel, body.degree_id, "Degree")
    _check_unique(db, body.degree_id, body.PEO_No)
    peo = PEOModel(**body.model_dump())
    db.add(peo)
    db.commit()
    db.refresh(peo)
    return {"success": True, "data": dump(PEO, peo), "message": "PEO created successfully"}


@router.get("/{peo_id}")
def read_peo(peo_id: int, db: Session = Depends(get_db)):
    peo = get_or_404(db, PEOModel, peo_id, "PEO")
    return {"success": True, "data": dump(PEO, peo), "message": "PEO retrieved successfully"}


@router.put("/{peo_id}")
def update_peo(peo_id: int, body: PEOUpdate, db: Session = Depends(get_db), _=Depends(authorize("admin"))):
    peo = get_or_404(db, PEOModel, peo_id, "PEO")
    if body.PEO_No is not None:
        _check_unique(db, peo.degree_id, body.PEO_No, exclude_id=peo.id)
    apply_updates(peo, body)
    db.commit()
    db.refresh(peo)
    return {"success": True, "data": dump(PEO, peo), "message": "PEO updated successfully"}


@router.delete("/{peo_id}")
def delete_peo(peo_id: int, db: Session = Depends(get_db), _=Depends(authorize("admin"))):
    peo = get_or_404(db, PEOModel, peo_id, "PEO")
    db.query(PeoPloMappingModel).filter(PeoPloMappingModel.peo_id == peo_id).delete()
    db.delete(peo)
    db.commit()
    return {"success": True, "data": {"id": peo_id}, "message": "PEO deleted successfully"}


# ✅ [READ] PEO에 매핑된 PLO 목록
@router.get("/{peo_id}/plos")
def read_peo_plos(peo_id: int, db: Session = Depends(get_db)):
    get_or_404(db, PEOModel, peo_id, "PEO")
    rows = (
        db.query(PLOModel, PeoPloMappingModel)
        .join(PeoPloMappingModel, PeoPloMappingModel.plo_id == PLOModel.id)
        .filter(PeoPloMappingModel.peo_id == peo_id)
        .order_by(PLOModel.PLO_No)
        .all()
    )
    data = [{**dump(PLO, plo), "correlation_level": m.correlation_level} for plo, m in rows]
    return {"success": True, "data": data, "count": len(data), "message": "Mapped PLOs retrieved"}
