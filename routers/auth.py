from datetime import datetime

import jwt
from fastapi import APIRouter, Depends, Request
from sqlalchemy import or_
from sqlalchemy.orm import Session

from database.db import get_db
from dependencies.security import authenticate, authorize
from models.users import User as UserModel, ROLES
from schemas.auth import LoginRequest, RefreshRequest, RegisterRequest, UserOut
from services.audit_service import get_ip_address, log_event
from utils.exceptions import Conflict, Forbidden, Unauthorized, ValidationFailed
from utils.security import (
    create_access_token, create_refresh_token, decode_token, hash_password, verify_password,
)

router = APIRouter(prefix="/auth", tags=["인증"])


def _user_dict(user: UserModel) -> dict:
    return UserOut.model_validate(user).model_dump(mode="json")


# ✅ [LOGIN] 로그인 → access/refresh 토큰 발급
@router.post("/login")
def login(body: LoginRequest, request: Request, db: Session = Depends(get_db)):
    if not (body.username or body.email):
        raise ValidationFailed("username or email is required")

    user = (
        db.query(UserModel)
        .filter(or_(UserModel.username == body.username, UserModel.email == body.email))
        .first()
    )
    if user is None or not verify_password(body.password, user.password_hash):
        raise Unauthorized("Invalid credentials")
    if not user.is_active:
        raise Forbidden("Account is inactive.")

    user.last_login = datetime.now()
    log_event(
        db,
        action="LOGIN",
        table_name="users",
        user_id=user.id,
        record_id=user.id,
        ip_address=get_ip_address(request),
        user_agent=request.headers.get("user-agent"),
    )
    db.commit()
    db.refresh(user)
    return {
        "success": True,
        "data": {
            "user": _user_dict(user),
            "accessToken": create_access_token(user.id, user.role),
            "refreshToken": create_refresh_token(user.id, user.role),
        },
        "message": "Login successful",
    }


# ✅ [REFRESH] refresh 토큰으로 access 토큰 재발급
@router.post("/refresh")
def refresh(body: RefreshRequest, db: Session = Depends(get_db)):
    try:
        payload = decode_token(body.refreshToken)
    except jwt.ExpiredSignatureError:
        raise Unauthorized("Refresh token has expired.", error={"code": "TOKEN_EXPIRED"})
    except jwt.InvalidTokenError:
        raise Unauthorized("Invalid refresh token.", error={"code": "INVALID_TOKEN"})
    if payload.get("type") != "refresh":
        raise Unauthorized("Invalid refresh token.", error={"code": "INVALID_TOKEN"})

    user = db.query(UserModel).filter(UserModel.id == int(payload["sub"])).first()
    if user is None or not user.is_active:
        raise Unauthorized("User not found or inactive.")
    return {
        "success": True,
        "data": {"accessToken": create_access_token(user.id, user.role)},
        "message": "Token refreshed",
    }


# ✅ [READ] 현재 로그인 사용자
@router.get("/me")
def me(user: UserModel = Depends(authenticate)):
    return {"success": True, "data": _user_dict(user), "message": "Current user retrieved"}


# ✅ [LOGOUT] 토큰은 클라이언트에서 폐기, 서버는 감사 로그만 기록
@router.post("/logout")
def logout(request: Request, user: UserModel = Depends(authenticate), db: Session = Depends(get_db)):
    log_event(
        db,
        action="LOGOUT",
        table_name="users",
        user_id=user.id,
        record_id=user.id,
        ip_address=get_ip_address(request),
        user_agent=request.headers.get("user-agent"),
    )
    db.commit()
    return {"success": True, "message": "Logout successful"}


# ✅ [CREATE] 사용자 등록 (관리자 전용)
@router.post("/register", status_code=201)
def register(body: RegisterRequest, db: Session = Depends(get_db), _admin=Depends(authorize("admin"))):
    if body.role not in ROLES:
        raise ValidationFailed(f"Invalid role. Must be one of: {', '.join(ROLES)}")
    if len(body.password) < 6:
        raise ValidationFailed("password must be at least 6 characters")
    duplicate = (
        db.query(UserModel)
        .filter(or_(UserModel.username == body.username, UserModel.email == body.email))
        .first()
    )
    if duplicate is not None:
        raise Conflict("Username or email already exists")

    user = UserModel(
        username=body.username,
        email=body.email,
        password_hash=hash_password(body.password),
        full_name=body.full_name,
        role=body.role,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return {"success": True, "data": _user_dict(user), "message": "User registered successfully"}
