from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from database.db import get_db
from dependencies.security import authenticate, authorize
from models.audit_logs import AuditLog as AuditLogModel
from models.users import User as UserModel
from services import audit_service
from utils.exceptions import Forbidden
from utils.queries import get_or_404

router = APIRouter(prefix="/audit-logs", tags=["Audit Log"], dependencies=[Depends(authenticate)])


@router.get("")
def read_logs(
    action: Optional[str] = None,
    table_name: Optional[str] = None,
    user_id: Optional[int] = None,
    startDate: Optional[datetime] = None,
    endDate: Optional[datetime] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    orderBy: str = "created_at",
    order: Literal["ASC", "DESC", "asc", "desc"] = "DESC",
    db: Session = Depends(get_db),
    _=Depends(authorize("admin")),
):
    result = audit_service.query_logs(
        db, page=page, limit=limit, order_by=orderBy, order=order,
        action=action, table_name=table_name, user_id=user_id,
        start_date=startDate, end_date=endDate, search=search,
    )
    return {"success": True, **result, "message": "Audit logs retrieved successfully"}


@router.get("/statistics")
def read_statistics(startDate: Optional[datetime] = None, endDate: Optional[datetime] = None,
                    db: Session = Depends(get_db), _=Depends(authorize("admin"))):
    data = audit_service.get_statistics(db, start_date=startDate, end_date=endDate)
    return {"success": True, "data": data, "message": "Audit log statistics retrieved successfully"}


@router.get("/recent")
def read_recent(limit: int = Query(20, ge=1, le=500), db: Session = Depends(get_db), _=Depends(authorize("admin"))):
    result = audit_service.query_logs(db, page=1, limit=limit)
    return {"success": True, "data": result["data"], "count": len(result["data"]),
            "message": "Recent audit logs retrieved successfully"}


# ✅ [READ] 관리자가 아니면 본인 로그만
@router.get("/user/{user_id}")
def read_user_logs(user_id: int, page: int = Query(1, ge=1), limit: int = Query(50, ge=1, le=500),
                   db: Session = Depends(get_db), user: UserModel = Depends(authenticate)):
    if user.role != "admin" and user.id != user_id:
        raise Forbidden("Access denied. You can only view your own audit logs.")
    result = audit_service.query_logs(db, page=page, limit=limit, user_id=user_id)
    return {"success": True, **result, "message": "User audit logs retrieved successfully"}


@router.get("/table/{table_name}")
def read_table_logs(table_name: str, page: int = Query(1, ge=1), limit: int = Query(50, ge=1, le=500),
                    db: Session = Depends(get_db), _=Depends(authorize("admin"))):
    result = audit_service.query_logs(db, page=page, limit=limit, table_name=table_name)
    return {"success": True, **result, "message": "Table audit logs retrieved successfully"}


@router.get("/record/{table_name}/{record_id}")
def read_record_logs(table_name: str, record_id: int, db: Session = Depends(get_db),
                     _=Depends(authorize("admin", "teacher"))):
    result = audit_service.query_logs(db, page=1, limit=500, order="ASC", table_name=table_name, record_id=record_id)
    return {"success": True, "data": result["data"], "count": len(result["data"]),
            "message": "Record history retrieved successfully"}


@router.get("/{log_id}")
def read_log(log_id: int, db: Session = Depends(get_db), _=Depends(authorize("admin"))):
    log = get_or_404(db, AuditLogModel, log_id, "Audit log")
    owner = db.query(UserModel).filter(UserModel.id == log.user_id).first() if log.user_id else None
    return {"success": True, "data": audit_service.to_dict(log, owner), "message": "Audit log retrieved successfully"}
