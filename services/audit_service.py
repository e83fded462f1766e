"""
services/audit_service.py

- 감사 로그 기록 (log_event: 호출 측 세션에 추가 / write_log: 독립 세션으로 즉시 커밋)
- 감사 로그 조회 (필터 + 페이지네이션, 통계)
"""

import json
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import func, case, or_
from sqlalchemy.orm import Session

from database.db import SessionLocal
from models.audit_logs import AuditLog as AuditLogModel, AUDIT_ACTIONS
from models.users import User as UserModel
from schemas.common import make_pagination
from utils.exceptions import ValidationFailed

logger = logging.getLogger(__name__)

ORDERABLE_COLUMNS = ("created_at", "id", "action", "table_name", "user_id", "record_id")


def get_ip_address(request) -> Optional[str]:
    # 프록시 뒤에서는 X-Forwarded-For 첫 번째 값이 실제 클라이언트
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


def _dump(values: Optional[Any]) -> Optional[str]:
    if values is None:
        return None
    return json.dumps(values, default=str, ensure_ascii=False)


def log_event(
    db: Session,
    *,
    action: str,
    table_name: str,
    user_id: Optional[int] = None,
    record_id: Optional[int] = None,
    old_values: Optional[Any] = None,
    new_values: Optional[Any] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> AuditLogModel:
    """감사 로그 한 건을 세션에 추가 (커밋은 호출 측 책임)"""
    if not action:
        raise ValidationFailed("action is required")
    if not table_name:
        raise ValidationFailed("table_name is required")
    action = action.upper()
    if action not in AUDIT_ACTIONS:
        raise ValidationFailed(f"Invalid action. Must be one of: {', '.join(AUDIT_ACTIONS)}")

    entry = AuditLogModel(
        user_id=user_id,
        action=action,
        table_name=table_name,
        record_id=record_id,
        old_values=_dump(old_values),
        new_values=_dump(new_values),
        ip_address=ip_address,
        user_agent=(user_agent or "")[:255] or None,
    )
    db.add(entry)
    return entry


def write_log(**kwargs) -> None:
    """독립 세션으로 감사 로그 저장. 실패해도 요청 흐름에는 영향 없음 (로그만 남김)."""
    db = SessionLocal()
    try:
        log_event(db, **kwargs)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("Failed to write audit log (%s %s)", kwargs.get("action"), kwargs.get("table_name"))
    finally:
        db.close()


def to_dict(log: AuditLogModel, user: Optional[UserModel] = None) -> Dict[str, Any]:
    return {
        "id": log.id,
        "user_id": log.user_id,
        "username": user.username if user else None,
        "email": user.email if user else None,
        "full_name": user.full_name if user else None,
        "action": log.action,
        "table_name": log.table_name,
        "record_id": log.record_id,
        "old_values": json.loads(log.old_values) if log.old_values else None,
        "new_values": json.loads(log.new_values) if log.new_values else None,
        "ip_address": log.ip_address,
        "user_agent": log.user_agent,
        "created_at": log.created_at.isoformat() if log.created_at else None,
    }


def _apply_filters(query, *, action=None, table_name=None, user_id=None, record_id=None,
                   start_date: Optional[datetime] = None, end_date: Optional[datetime] = None,
                   search: Optional[str] = None):
    if action:
        query = query.filter(AuditLogModel.action == action.upper())
    if table_name:
        query = query.filter(AuditLogModel.table_name == table_name)
    if user_id is not None:
        query = query.filter(AuditLogModel.user_id == user_id)
    if record_id is not None:
        query = query.filter(AuditLogModel.record_id == record_id)
    if start_date:
        query = query.filter(AuditLogModel.created_at >= start_date)
    if end_date:
        query = query.filter(AuditLogModel.created_at <= end_date)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(
            UserModel.username.like(pattern),
            UserModel.email.like(pattern),
            UserModel.full_name.like(pattern),
            AuditLogModel.table_name.like(pattern),
        ))
    return query


def query_logs(db: Session, *, page: int = 1, limit: int = 50, order_by: str = "created_at",
               order: str = "DESC", **filters) -> Dict[str, Any]:
    """필터 + 정렬 + 페이지네이션 조회. {"data": [...], "pagination": {...}} 반환"""
    if order_by not in ORDERABLE_COLUMNS:
        raise ValidationFailed(f"Invalid orderBy. Must be one of: {', '.join(ORDERABLE_COLUMNS)}")
    page = max(1, page)
    limit = max(1, min(limit, 500))

    query = db.query(AuditLogModel, UserModel).outerjoin(UserModel, AuditLogModel.user_id == UserModel.id)
    query = _apply_filters(query, **filters)
    total = query.count()

    column = getattr(AuditLogModel, order_by)
    column = column.asc() if order.upper() == "ASC" else column.desc()
    rows = query.order_by(column, AuditLogModel.id.desc()).offset((page - 1) * limit).limit(limit).all()

    return {
        "data": [to_dict(log, user) for log, user in rows],
        "pagination": make_pagination(total, page, limit),
    }


def get_statistics(db: Session, **filters) -> Dict[str, Any]:
    def count_action(name):
        return func.sum(case((AuditLogModel.action == name, 1), else_=0))

    query = db.query(
        func.count(AuditLogModel.id),
        func.count(func.distinct(AuditLogModel.user_id)),
        func.count(func.distinct(AuditLogModel.table_name)),
        count_action("CREATE"),
        count_action("UPDATE"),
        count_action("DELETE"),
        count_action("LOGIN"),
        count_action("LOGOUT"),
    ).select_from(AuditLogModel).outerjoin(UserModel, AuditLogModel.user_id == UserModel.id)
    row = _apply_filters(query, **filters).one()

    keys = ("total_logs", "unique_users", "affected_tables", "creates", "updates", "deletes", "logins", "logouts")
    return {k: int(v or 0) for k, v in zip(keys, row)}
