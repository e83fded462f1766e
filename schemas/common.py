"""
schemas/common.py

- 목록 조회 공용 페이지네이션 메타: PaginationMeta, make_pagination()
"""

from math import ceil

from pydantic import BaseModel, Field


class PaginationMeta(BaseModel):
    total: int = Field(..., ge=0)
    page: int = Field(..., ge=1)
    limit: int = Field(..., ge=1)
    totalPages: int = Field(..., ge=0)


def make_pagination(total: int, page: int, limit: int) -> dict:
    """
    페이징 메타 계산
    - total 이 0이면 totalPages도 0
    """
    pages = ceil(total / max(1, limit)) if total else 0
    return PaginationMeta(total=total, page=page, limit=limit, totalPages=pages).model_dump()
