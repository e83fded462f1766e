from pydantic import BaseModel
from typing import Optional
from datetime import datetime


# ✅ 로그인 요청 (username 또는 email 중 하나)
class LoginRequest(BaseModel):
    username: Optional[str] = None
    email: Optional[str] = None
    password: str


class RefreshRequest(BaseModel):
    refreshToken: str


# ✅ 사용자 생성 (관리자 전용)
class RegisterRequest(BaseModel):
    username: str
    email: str
    password: str
    full_name: Optional[str] = None
    role: str = "student"


# ✅ 출력용 (password_hash 제외)
class UserOut(BaseModel):
    id: int
    username: str
    email: str
    full_name: Optional[str] = None
    role: str
    is_active: bool
    last_login: Optional[datetime] = None

    class Config:
        from_attributes = True


# ✅ 사용자 수정 (관리자 전용, 보낸 필드만 반영)
class UserUpdate(BaseModel):
    username: Optional[str] = None
    email: Optional[str] = None
    full_name: Optional[str] = None
    role: Optional[str] = None
    is_active: Optional[bool] = None
    password: Optional[str] = None


# ✅ 본인 프로필 수정 (비밀번호 변경 시 현재 비밀번호 필요)
class ProfileUpdate(BaseModel):
    full_name: Optional[str] = None
    email: Optional[str] = None
    current_password: Optional[str] = None
    new_password: Optional[str] = None
