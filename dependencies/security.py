"""
dependencies/security.py

- authenticate: Authorization: Bearer <JWT> 검증 후 User 반환
- authorize(*roles): 역할 기반 접근 제어 (Depends 팩토리)
- has_permission / require_permission: 역할 → 권한 정적 매핑 조회
"""

from typing import Annotated, Optional

import jwt
from fastapi import Depends, Header
from sqlalchemy.orm import Session

from database.db import get_db
from models.users import User as UserModel
from utils.exceptions import Forbidden, Unauthorized
from utils.security import decode_token

AuthHeader = Annotated[Optional[str], Header(alias="Authorization")]

# 역할별 권한 목록
ROLE_PERMISSIONS = {
    "admin": ["*"],
    "teacher": [
        "view_courses", "manage_clos", "manage_assessments", "enter_marks",
        "view_attainment", "calculate_attainment", "view_results",
    ],
    "student": ["view_own_marks", "view_own_results", "view_own_attainment"],
    "department_head": [
        "view_courses", "manage_plos", "view_attainment", "calculate_attainment",
        "view_results", "view_reports",
    ],
    "dean": ["view_courses", "view_attainment", "view_results", "view_reports", "view_audit_logs"],
}


def _extract_bearer(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    # "Bearer <token>" 파싱
    parts = authorization.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1].strip():
        return None
    return parts[1].strip()


def user_id_from_header(authorization: Optional[str]) -> Optional[int]:
    """DB 조회 없이 access 토큰의 sub만 꺼냄 (감사 로그용)"""
    token = _extract_bearer(authorization)
    if token is None:
        return None
    try:
        payload = decode_token(token)
    except jwt.InvalidTokenError:
        return None
    if payload.get("type") != "access":
        return None
    return int(payload["sub"])


def authenticate(authorization: AuthHeader = None, db: Session = Depends(get_db)) -> UserModel:
    token = _extract_bearer(authorization)
    if token is None:
        raise Unauthorized("Access denied. No token provided.")

    try:
        payload = decode_token(token)
    except jwt.ExpiredSignatureError:
        raise Unauthorized("Token has expired.", error={"code": "TOKEN_EXPIRED"})
    except jwt.InvalidTokenError:
        raise Unauthorized("Invalid token.", error={"code": "INVALID_TOKEN"})

    if payload.get("type") != "access":
        raise Unauthorized("Invalid token.", error={"code": "INVALID_TOKEN"})

    user = db.query(UserModel).filter(UserModel.id == int(payload["sub"])).first()
    if user is None:
        raise Unauthorized("User not found.")
    if not user.is_active:
        raise Forbidden("Account is inactive.")
    return user


def authorize(*roles: str):
    """지정한 역할 중 하나여야 통과. roles가 비어 있으면 로그인만 확인."""
    def checker(user: UserModel = Depends(authenticate)) -> UserModel:
        if roles and user.role not in roles:
            raise Forbidden(
                "Access denied. You do not have permission to access this resource.",
                error={"requiredRoles": list(roles), "userRole": user.role},
            )
        return user
    return checker


def has_permission(role: str, permission: str) -> bool:
    granted = ROLE_PERMISSIONS.get(role, [])
    return "*" in granted or permission in granted


def require_permission(permission: str):
    def checker(user: UserModel = Depends(authenticate)) -> UserModel:
        if not has_permission(user.role, permission):
            raise Forbidden(
                "Access denied. Missing required permission.",
                error={"requiredPermission": permission, "userRole": user.role},
            )
        return user
    return checker
