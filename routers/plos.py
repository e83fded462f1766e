from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from database.db import get_db
from dependencies.security import authenticate, authorize
from models.academics import Degree as DegreeModel
from models.attainment import StudentPLOAttainment
from models.outcomes import (
    CloPloMapping as CloPloMappingModel,
    CourseLearningOutcome as CLOModel,
    PeoPloMapping as PeoPloMappingModel,
    ProgramEducationalObjective as PEOModel,
    ProgramLearningOutcome as PLOModel,
)
from schemas.outcomes import CLO, MapPEORequest, PEO, PLO, PLOCreate, PLOUpdate
from services import attainment_service
from utils.exceptions import Conflict, NotFound
from utils.queries import apply_updates, dump, get_or_404

router = APIRouter(prefix="/plos", tags=["PLO"], dependencies=[Depends(authenticate)])


def mapped_clos(db: Session, plo_id: int):
    rows = (
        db.query(CLOModel, CloPloMappingModel)
        .join(CloPloMappingModel, CloPloMappingModel.clo_id == CLOModel.id)
        .filter(CloPloMappingModel.plo_id == plo_id)
        .order_by(CLOModel.course_id, CLOModel.CLO_ID)
        .all()
    )
    return [{**dump(CLO, clo), "mapping_level": m.mapping_level} for clo, m in rows]


def mapped_peos(db: Session, plo_id: int):
    rows = (
        db.query(PEOModel, PeoPloMappingModel)
        .join(PeoPloMappingModel, PeoPloMappingModel.peo_id == PEOModel.id)
        .filter(PeoPloMappingModel.plo_id == plo_id)
        .order_by(PEOModel.PEO_No)
        .all()
    )
    return [{**dump(PEO, peo), "correlation_level": m.correlation_level} for peo, m in rows]


def _check_unique(db: Session, degree_id: int, plo_no: int, exclude_id: int = None):
    query = db.query(PLOModel).filter(PLOModel.degree_id == degree_id, PLOModel.PLO_No == plo_no)
    if exclude_id is not None:
        query = query.filter(PLOModel.id != exclude_id)
    if query.first() is not None:
        raise Conflict(f"PLO {plo_no} already exists for this degree")


# ==========================================================
# [1단계] 프로그램 단위 집계
# ==========================================================

# ✅ [SUMMARY] 프로그램 PLO별 성취도
@router.get("/degree/{degree_id}/attainment-summary")
def degree_attainment_summary(degree_id: int, db: Session = Depends(get_db)):
    get_or_404(db, DegreeModel, degree_id, "Degree")
    summary = attainment_service.degree_plo_summary(db, degree_id)
    with_data = [s for s in summary if s["attainment_percentage"] is not None]
    return {
        "success": True,
        "data": {
            "degree_id": degree_id,
            "plos": summary,
            "total_plos": len(summary),
            "plos_meeting_target": sum(1 for s in summary if s["meets_target"]),
            "plos_with_data": len(with_data),
        },
        "message": "Degree PLO attainment summary retrieved",
    }


# ==========================================================
# [2단계] CRUD
# ==========================================================

@router.get("")
def read_plos(degreeId: int = None, db: Session = Depends(get_db)):
    query = db.query(PLOModel)
    if degreeId:
        query = query.filter(PLOModel.degree_id == degreeId)
    records = query.order_by(PLOModel.degree_id, PLOModel.PLO_No).all()
    return {"success": True, "data": [dump(PLO, r) for r in records], "count": len(records),
            "message": "PLOs retrieved successfully"}


@router.post("", status_code=201)
def create_plo(body: PLOCreate, db: Session = Depends(get_db), _=Depends(authorize("admin"))):
    degree = get_or_404(db, DegreeModel, body.degree_id, "Degree")
    _check_unique(db, body.degree_id, body.PLO_No)
    plo = PLOModel(**body.model_dump())
    if not plo.programName:
        plo.programName = degree.name
    db.add(plo)
    db.commit()
    db.refresh(plo)
    return {"success": True, "data": dump(PLO, plo), "message": "PLO created successfully"}


@router.get("/{plo_id}")
def read_plo(plo_id: int, includeCLOs: bool = False, includePEOs: bool = False,
             includeAttainment: bool = False, db: Session = Depends(get_db)):
    plo = get_or_404(db, PLOModel, plo_id, "PLO")
    data = dump(PLO, plo)
    if includeCLOs:
        data["clos"] = mapped_clos(db, plo_id)
    if includePEOs:
        data["peos"] = mapped_peos(db, plo_id)
    if includeAttainment:
        data["attainment"] = attainment_service.plo_attainment(db, plo)
    return {"success": True, "data": data, "message": "PLO retrieved successfully"}


@router.put("/{plo_id}")
def update_plo(plo_id: int, body: PLOUpdate, db: Session = Depends(get_db), _=Depends(authorize("admin"))):
    plo = get_or_404(db, PLOModel, plo_id, "PLO")
    if body.PLO_No is not None:
        _check_unique(db, plo.degree_id, body.PLO_No, exclude_id=plo.id)
    apply_updates(plo, body)
    db.commit()
    db.refresh(plo)
    return {"success": True, "data": dump(PLO, plo), "message": "PLO updated successfully"}


@router.delete("/{plo_id}")
def delete_plo(plo_id: int, db: Session = Depends(get_db), _=Depends(authorize("admin"))):
    plo = get_or_404(db, PLOModel, plo_id, "PLO")
    db.query(CloPloMappingModel).filter(CloPloMappingModel.plo_id == plo_id).delete()
    db.query(PeoPloMappingModel).filter(PeoPloMappingModel.plo_id == plo_id).delete()
    db.query(StudentPLOAttainment).filter(StudentPLOAttainment.plo_id == plo_id).delete()
    db.delete(plo)
    db.commit()
    return {"success": True, "data": {"id": plo_id}, "message": "PLO deleted successfully"}


# ==========================================================
# [3단계] 매핑 / 성취도
# ==========================================================

@router.get("/{plo_id}/clos")
def read_plo_clos(plo_id: int, db: Session = Depends(get_db)):
    get_or_404(db, PLOModel, plo_id, "PLO")
    clos = mapped_clos(db, plo_id)
    return {"success": True, "data": clos, "count": len(clos), "message": "Mapped CLOs retrieved"}


@router.get("/{plo_id}/peos")
def read_plo_peos(plo_id: int, db: Session = Depends(get_db)):
    get_or_404(db, PLOModel, plo_id, "PLO")
    peos = mapped_peos(db, plo_id)
    return {"success": True, "data": peos, "count": len(peos), "message": "Mapped PEOs retrieved"}


# ✅ [UPSERT] PLO → PEO 매핑 (신규 201 / 상관 수준 변경 200)
@router.post("/{plo_id}/map-peo")
def map_peo(plo_id: int, body: MapPEORequest, response: Response, db: Session = Depends(get_db),
            _=Depends(authorize("admin"))):
    get_or_404(db, PLOModel, plo_id, "PLO")
    get_or_404(db, PEOModel, body.peo_id, "PEO")

    mapping = (
        db.query(PeoPloMappingModel)
        .filter(PeoPloMappingModel.plo_id == plo_id, PeoPloMappingModel.peo_id == body.peo_id)
        .first()
    )
    if mapping is not None:
        mapping.correlation_level = body.correlation_level
        message = "PLO-PEO mapping updated successfully"
        response.status_code = 200
    else:
        mapping = PeoPloMappingModel(plo_id=plo_id, peo_id=body.peo_id, correlation_level=body.correlation_level)
        db.add(mapping)
        message = "PLO mapped to PEO successfully"
        response.status_code = 201
    db.commit()
    db.refresh(mapping)
    return {
        "success": True,
        "data": {"id": mapping.id, "plo_id": plo_id, "peo_id": body.peo_id,
                 "correlation_level": mapping.correlation_level},
        "message": message,
    }


@router.delete("/{plo_id}/unmap-peo/{peo_id}")
def unmap_peo(plo_id: int, peo_id: int, db: Session = Depends(get_db), _=Depends(authorize("admin"))):
    deleted = (
        db.query(PeoPloMappingModel)
        .filter(PeoPloMappingModel.plo_id == plo_id, PeoPloMappingModel.peo_id == peo_id)
        .delete()
    )
    if not deleted:
        raise NotFound("PLO-PEO mapping not found")
    db.commit()
    return {"success": True, "data": {"plo_id": plo_id, "peo_id": peo_id}, "message": "PLO unmapped from PEO successfully"}


@router.get("/{plo_id}/attainment")
def read_plo_attainment(plo_id: int, db: Session = Depends(get_db)):
    plo = get_or_404(db, PLOModel, plo_id, "PLO")
    return {"success": True, "data": attainment_service.plo_attainment(db, plo), "message": "PLO attainment retrieved"}
