from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import or_
from sqlalchemy.orm import Session

from database.db import get_db
from dependencies.security import authenticate, authorize
from models.academics import CourseOffering as OfferingModel, Student as StudentModel
from models.users import User as UserModel, ROLES
from schemas.auth import ProfileUpdate, UserOut, UserUpdate
from schemas.common import make_pagination
from utils.exceptions import Forbidden, ValidationFailed
from utils.queries import dump, get_or_404
from utils.security import hash_password, verify_password

router = APIRouter(prefix="/users", tags=["사용자 관리"], dependencies=[Depends(authenticate)])

MIN_PASSWORD_LENGTH = 8


# ✅ 다른 계정이 이미 쓰고 있는 username/email 이면 400
def _check_taken(db: Session, user: UserModel, username: str = None, email: str = None):
    if email is not None and email != user.email:
        if db.query(UserModel).filter(UserModel.email == email, UserModel.id != user.id).first():
            raise ValidationFailed("Email already exists")
    if username is not None and username != user.username:
        if db.query(UserModel).filter(UserModel.username == username, UserModel.id != user.id).first():
            raise ValidationFailed("Username already exists")


def _check_password(password: str, label: str = "Password"):
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationFailed(f"{label} must be at least {MIN_PASSWORD_LENGTH} characters long")


# ✅ [READ] 사용자 목록 (역할/검색어 필터 + 페이징, 관리자 전용)
@router.get("")
def read_users(
    role: Optional[str] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=500),
    db: Session = Depends(get_db),
    _=Depends(authorize("admin")),
):
    query = db.query(UserModel)
    if role:
        query = query.filter(UserModel.role == role)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(
            UserModel.full_name.ilike(pattern),
            UserModel.email.ilike(pattern),
            UserModel.username.ilike(pattern),
        ))
    total = query.count()
    users = query.order_by(UserModel.id).offset((page - 1) * limit).limit(limit).all()
    return {"success": True, "data": [dump(UserOut, u) for u in users],
            "pagination": make_pagination(total, page, limit), "message": "Users retrieved successfully"}


# ✅ [UPDATE] 본인 프로필 수정 (/{user_id} 보다 먼저 등록)
@router.put("/profile")
def update_profile(body: ProfileUpdate, db: Session = Depends(get_db), user: UserModel = Depends(authenticate)):
    changes = {}
    if body.full_name is not None:
        changes["full_name"] = body.full_name
    if body.email is not None:
        _check_taken(db, user, email=body.email)
        changes["email"] = body.email
    if body.new_password:
        if not body.current_password:
            raise ValidationFailed("Current password is required to set a new password")
        if not verify_password(body.current_password, user.password_hash):
            raise ValidationFailed("Current password is incorrect")
        _check_password(body.new_password, "New password")
        changes["password_hash"] = hash_password(body.new_password)
    if not changes:
        raise ValidationFailed("No data provided for update")

    for key, value in changes.items():
        setattr(user, key, value)
    db.commit()
    db.refresh(user)
    return {"success": True, "data": dump(UserOut, user), "message": "Profile updated successfully"}


# ✅ [READ] 사용자 상세 (관리자 또는 본인)
@router.get("/{user_id}")
def read_user(user_id: int, db: Session = Depends(get_db), current: UserModel = Depends(authenticate)):
    user = get_or_404(db, UserModel, user_id, "User")
    if current.role != "admin" and current.id != user.id:
        raise Forbidden("Access denied. You can only view your own account.")
    return {"success": True, "data": dump(UserOut, user), "message": "User retrieved successfully"}


@router.put("/{user_id}")
def update_user(user_id: int, body: UserUpdate, db: Session = Depends(get_db), _=Depends(authorize("admin"))):
    user = get_or_404(db, UserModel, user_id, "User")
    _check_taken(db, user, username=body.username, email=body.email)
    if body.role is not None and body.role not in ROLES:
        raise ValidationFailed(f"Invalid role. Must be one of: {', '.join(ROLES)}")

    changes = body.model_dump(exclude_unset=True, exclude={"password"})
    if body.password:
        _check_password(body.password)
        changes["password_hash"] = hash_password(body.password)
    if not changes:
        raise ValidationFailed("No data provided for update")

    for key, value in changes.items():
        setattr(user, key, value)
    db.commit()
    db.refresh(user)
    return {"success": True, "data": dump(UserOut, user), "message": "User updated successfully"}


# ✅ [DELETE] 마지막 관리자, 강좌/학생에 연결된 계정은 삭제 불가
@router.delete("/{user_id}")
def delete_user(user_id: int, db: Session = Depends(get_db), _=Depends(authorize("admin"))):
    user = get_or_404(db, UserModel, user_id, "User")
    if user.role == "admin" and db.query(UserModel).filter(UserModel.role == "admin").count() <= 1:
        raise ValidationFailed("Cannot delete the last admin user")
    in_use = {
        "course_offerings": db.query(OfferingModel).filter(OfferingModel.teacher_id == user_id).count(),
        "students": db.query(StudentModel).filter(StudentModel.user_id == user_id).count(),
    }
    in_use = {k: v for k, v in in_use.items() if v}
    if in_use:
        raise ValidationFailed("Cannot delete user that is in use", error=in_use)

    db.delete(user)
    db.commit()
    return {"success": True, "data": {"id": user_id}, "message": "User deleted successfully"}
