"""
utils/queries.py

- 라우터 공통 조회 헬퍼 (단건 조회 404 처리, 부분 수정 적용, ORM → dict)
"""

from typing import Any, Dict, Type

from pydantic import BaseModel
from sqlalchemy.orm import Session

from utils.exceptions import NotFound, ValidationFailed


def get_or_404(db: Session, model, record_id: int, label: str):
    row = db.query(model).filter(model.id == record_id).first()
    if row is None:
        raise NotFound(f"{label} not found")
    return row


def apply_updates(row, updated: BaseModel) -> Dict[str, Any]:
    """요청에 실제로 포함된 필드만 반영. 아무 것도 없으면 400."""
    changes = updated.model_dump(exclude_unset=True)
    if not changes:
        raise ValidationFailed("No changes made")
    for key, value in changes.items():
        setattr(row, key, value)
    return changes


def dump(schema: Type[BaseModel], row) -> Dict[str, Any]:
    return schema.model_validate(row).model_dump(mode="json")
