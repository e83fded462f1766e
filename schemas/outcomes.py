from pydantic import BaseModel, Field
from typing import Literal, Optional

from config.settings import settings


# ✅ CLO 입력용
class CLOCreate(BaseModel):
    course_id: int                                          # 과목 ID
    CLO_ID: str                                             # 과목 내 CLO 번호
    CLO_Description: str                                    # 설명
    bloom_taxonomy_level: Optional[str] = None              # Bloom 수준
    weight_percentage: float = Field(0, ge=0, le=100)       # 비중 (%)
    target_attainment: float = Field(default_factory=lambda: settings.DEFAULT_CLO_TARGET, ge=0, le=100)  # 목표 성취도 (%)


class CLOUpdate(BaseModel):
    CLO_ID: Optional[str] = None
    CLO_Description: Optional[str] = None
    bloom_taxonomy_level: Optional[str] = None
    weight_percentage: Optional[float] = Field(None, ge=0, le=100)
    target_attainment: Optional[float] = Field(None, ge=0, le=100)


# ✅ CLO 출력용
class CLO(CLOCreate):
    id: int

    class Config:
        from_attributes = True


class MapPLORequest(BaseModel):
    plo_id: int
    mapping_level: int = Field(1, ge=1, le=3)   # 1(약) ~ 3(강)


# ✅ PLO
class PLOCreate(BaseModel):
    degree_id: int
    PLO_No: int = Field(..., ge=1)
    PLO_Description: str
    programName: Optional[str] = None
    bloom_taxonomy_level: Optional[str] = None
    target_attainment: float = Field(default_factory=lambda: settings.DEFAULT_PLO_TARGET, ge=0, le=100)


class PLOUpdate(BaseModel):
    PLO_No: Optional[int] = Field(None, ge=1)
    PLO_Description: Optional[str] = None
    programName: Optional[str] = None
    bloom_taxonomy_level: Optional[str] = None
    target_attainment: Optional[float] = Field(None, ge=0, le=100)


class PLO(PLOCreate):
    id: int

    class Config:
        from_attributes = True


class MapPEORequest(BaseModel):
    peo_id: int
    correlation_level: Literal["High", "Medium", "Low"] = "Medium"


# ✅ PEO
class PEOCreate(BaseModel):
    degree_id: int
    PEO_No: int = Field(..., ge=1)
    PEO_Description: str


class PEOUpdate(BaseModel):
    PEO_No: Optional[int] = Field(None, ge=1)
    PEO_Description: Optional[str] = None


class PEO(PEOCreate):
    id: int

    class Config:
        from_attributes = True
