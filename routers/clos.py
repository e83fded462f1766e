from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from database.db import get_db
from dependencies.security import authenticate, authorize
from models.academics import Course as CourseModel
from models.assessments import AssessmentCloMapping, Question as QuestionModel
from models.attainment import CourseCLOAttainmentSummary, StudentCLOAttainment
from models.outcomes import (
    CloPloMapping as CloPloMappingModel,
    CourseLearningOutcome as CLOModel,
    ProgramLearningOutcome as PLOModel,
)
from schemas.outcomes import CLO, CLOCreate, CLOUpdate, MapPLORequest, PLO
from services import attainment_service
from utils.exceptions import Conflict, NotFound
from utils.queries import apply_updates, dump, get_or_404

router = APIRouter(prefix="/clos", tags=["CLO"], dependencies=[Depends(authenticate)])


def _mapped_plos(db: Session, clo_id: int):
    rows = (
        db.query(PLOModel, CloPloMappingModel)
        .join(CloPloMappingModel, CloPloMappingModel.plo_id == PLOModel.id)
        .filter(CloPloMappingModel.clo_id == clo_id)
        .order_by(PLOModel.PLO_No)
        .all()
    )
    return [{**dump(PLO, plo), "mapping_id": m.id, "mapping_level": m.mapping_level} for plo, m in rows]


def _check_unique(db: Session, course_id: int, code: str, exclude_id: int = None):
    query = db.query(CLOModel).filter(CLOModel.course_id == course_id, CLOModel.CLO_ID == code)
    if exclude_id is not None:
        query = query.filter(CLOModel.id != exclude_id)
    if query.first() is not None:
        raise Conflict(f"CLO {code} already exists for this course")


# ==========================================================
# [1단계] 정적 라우터 (과목 단위 집계)
# ==========================================================

# ✅ [SUMMARY] 과목 CLO별 성취도 요약
@router.get("/course/{course_id}/attainment-summary")
def course_attainment_summary(course_id: int, db: Session = Depends(get_db)):
    get_or_404(db, CourseModel, course_id, "Course")
    summary = attainment_service.course_clo_attainment(db, course_id)
    return {"success": True, "data": summary, "count": len(summary),
            "message": "Course CLO attainment summary retrieved"}


# ==========================================================
# [2단계] CRUD 기본 라우터
# ==========================================================

# ✅ [READ] CLO 목록 (courseId 필터)
@router.get("")
def read_clos(courseId: int = None, db: Session = Depends(get_db)):
    query = db.query(CLOModel)
    if courseId:
        query = query.filter(CLOModel.course_id == courseId)
    records = query.order_by(CLOModel.course_id, CLOModel.CLO_ID).all()
    return {
        "success": True,
        "data": [dump(CLO, r) for r in records],
        "count": len(records),
        "message": "CLOs retrieved successfully",
    }


# ✅ [CREATE] CLO 추가
@router.post("", status_code=201)
def create_clo(body: CLOCreate, db: Session = Depends(get_db), _=Depends(authorize("admin", "teacher"))):
    get_or_404(db, CourseModel, body.course_id, "Course")
    _check_unique(db, body.course_id, body.CLO_ID)
    clo = CLOModel(**body.model_dump())
    db.add(clo)
    db.commit()
    db.refresh(clo)
    return {"success": True, "data": dump(CLO, clo), "message": "CLO created successfully"}


# ✅ [READ] CLO 상세 (PLO 매핑/성취도 선택 포함)
@router.get("/{clo_id}")
def read_clo(clo_id: int, includePLOMappings: bool = False, includeAttainment: bool = False,
             db: Session = Depends(get_db)):
    clo = get_or_404(db, CLOModel, clo_id, "CLO")
    data = dump(CLO, clo)
    if includePLOMappings:
        data["plo_mappings"] = _mapped_plos(db, clo_id)
    if includeAttainment:
        data["attainment"] = attainment_service.clo_attainment(db, clo)
    return {"success": True, "data": data, "message": "CLO retrieved successfully"}


# ✅ [UPDATE] CLO 수정
@router.put("/{clo_id}")
def update_clo(clo_id: int, body: CLOUpdate, db: Session = Depends(get_db),
               _=Depends(authorize("admin", "teacher"))):
    clo = get_or_404(db, CLOModel, clo_id, "CLO")
    if body.CLO_ID is not None:
        _check_unique(db, clo.course_id, body.CLO_ID, exclude_id=clo.id)
    apply_updates(clo, body)
    db.commit()
    db.refresh(clo)
    return {"success": True, "data": dump(CLO, clo), "message": "CLO updated successfully"}


# ✅ [DELETE] CLO 삭제 (매핑/성취도 캐시 함께 정리, 문항은 CLO 연결만 해제)
@router.delete("/{clo_id}")
def delete_clo(clo_id: int, db: Session = Depends(get_db), _=Depends(authorize("admin"))):
    clo = get_or_404(db, CLOModel, clo_id, "CLO")
    db.query(CloPloMappingModel).filter(CloPloMappingModel.clo_id == clo_id).delete()
    db.query(AssessmentCloMapping).filter(AssessmentCloMapping.course_learning_outcome_id == clo_id).delete()
    db.query(StudentCLOAttainment).filter(StudentCLOAttainment.clo_id == clo_id).delete()
    db.query(CourseCLOAttainmentSummary).filter(CourseCLOAttainmentSummary.clo_id == clo_id).delete()
    db.query(QuestionModel).filter(QuestionModel.clo_id == clo_id).update({"clo_id": None})
    db.delete(clo)
    db.commit()
    return {"success": True, "data": {"id": clo_id}, "message": "CLO deleted successfully"}


# ==========================================================
# [3단계] PLO 매핑 / 성취도
# ==========================================================

# ✅ [READ] 매핑된 PLO 목록
@router.get("/{clo_id}/plos")
def read_clo_plos(clo_id: int, db: Session = Depends(get_db)):
    get_or_404(db, CLOModel, clo_id, "CLO")
    plos = _mapped_plos(db, clo_id)
    return {"success": True, "data": plos, "count": len(plos), "message": "Mapped PLOs retrieved"}


# ✅ [UPSERT] CLO → PLO 매핑 (신규 201 / 수준 변경 200)
@router.post("/{clo_id}/map-plo")
def map_plo(clo_id: int, body: MapPLORequest, response: Response, db: Session = Depends(get_db),
            _=Depends(authorize("admin", "teacher"))):
    get_or_404(db, CLOModel, clo_id, "CLO")
    get_or_404(db, PLOModel, body.plo_id, "PLO")

    mapping = (
        db.query(CloPloMappingModel)
        .filter(CloPloMappingModel.clo_id == clo_id, CloPloMappingModel.plo_id == body.plo_id)
        .first()
    )
    if mapping is not None:
        mapping.mapping_level = body.mapping_level
        message = "CLO-PLO mapping updated successfully"
        response.status_code = 200
    else:
        mapping = CloPloMappingModel(clo_id=clo_id, plo_id=body.plo_id, mapping_level=body.mapping_level)
        db.add(mapping)
        message = "CLO mapped to PLO successfully"
        response.status_code = 201
    db.commit()
    db.refresh(mapping)
    return {
        "success": True,
        "data": {"id": mapping.id, "clo_id": clo_id, "plo_id": body.plo_id, "mapping_level": mapping.mapping_level},
        "message": message,
    }


# ✅ [DELETE] CLO ↔ PLO 매핑 해제
@router.delete("/{clo_id}/unmap-plo/{plo_id}")
def unmap_plo(clo_id: int, plo_id: int, db: Session = Depends(get_db),
              _=Depends(authorize("admin", "teacher"))):
    deleted = (
        db.query(CloPloMappingModel)
        .filter(CloPloMappingModel.clo_id == clo_id, CloPloMappingModel.plo_id == plo_id)
        .delete()
    )
    if not deleted:
        raise NotFound("CLO-PLO mapping not found")
    db.commit()
    return {"success": True, "data": {"clo_id": clo_id, "plo_id": plo_id}, "message": "CLO unmapped from PLO successfully"}


# ✅ [SUMMARY] CLO 전체 학생 성취도
@router.get("/{clo_id}/attainment")
def read_clo_attainment(clo_id: int, db: Session = Depends(get_db)):
    clo = get_or_404(db, CLOModel, clo_id, "CLO")
    return {"success": True, "data": attainment_service.clo_attainment(db, clo), "message": "CLO attainment retrieved"}
