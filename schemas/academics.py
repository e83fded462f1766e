from pydantic import BaseModel, Field
from typing import Optional
from datetime import date


# ✅ 학위 프로그램
class DegreeCreate(BaseModel):
    name: str                                  # 프로그램명
    code: str                                  # 프로그램 코드
    department: Optional[str] = None           # 학과
    duration_years: int = Field(4, ge=1)       # 수업 연한


class DegreeUpdate(BaseModel):
    name: Optional[str] = None
    code: Optional[str] = None
    department: Optional[str] = None
    duration_years: Optional[int] = Field(None, ge=1)


class Degree(DegreeCreate):
    id: int

    class Config:
        from_attributes = True


# ✅ 교과목
class CourseCreate(BaseModel):
    course_code: str
    course_title: str
    credit_hours: float = Field(3, gt=0)
    degree_id: Optional[int] = None


class CourseUpdate(BaseModel):
    course_code: Optional[str] = None
    course_title: Optional[str] = None
    credit_hours: Optional[float] = Field(None, gt=0)
    degree_id: Optional[int] = None


class Course(CourseCreate):
    id: int

    class Config:
        from_attributes = True


# ✅ 학년도 / 학기
class AcademicSessionCreate(BaseModel):
    name: str
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_active: bool = False


class AcademicSessionUpdate(BaseModel):
    name: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_active: Optional[bool] = None


class AcademicSession(AcademicSessionCreate):
    id: int

    class Config:
        from_attributes = True


class SemesterCreate(BaseModel):
    academic_session_id: int
    name: str
    semester_number: int = Field(..., ge=1)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_active: bool = False


class SemesterUpdate(BaseModel):
    academic_session_id: Optional[int] = None
    name: Optional[str] = None
    semester_number: Optional[int] = Field(None, ge=1)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_active: Optional[bool] = None


class Semester(SemesterCreate):
    id: int

    class Config:
        from_attributes = True


# ✅ 학생
class StudentCreate(BaseModel):
    roll_number: str                           # 학번
    full_name: str                             # 이름
    degree_id: Optional[int] = None            # 소속 프로그램
    batch_year: Optional[int] = None           # 입학 연도
    user_id: Optional[int] = None              # 로그인 계정


class Student(StudentCreate):
    id: int

    class Config:
        from_attributes = True


# ✅ 개설 강좌 / 수강 신청
class CourseOfferingCreate(BaseModel):
    course_id: int
    semester_id: int
    teacher_id: Optional[int] = None
    section: str = "A"
    is_active: bool = True


class CourseOfferingUpdate(BaseModel):
    teacher_id: Optional[int] = None
    section: Optional[str] = None
    is_active: Optional[bool] = None


class CourseOffering(CourseOfferingCreate):
    id: int

    class Config:
        from_attributes = True


class EnrollmentCreate(BaseModel):
    student_id: int
    course_offering_id: int


class Enrollment(EnrollmentCreate):
    id: int
    status: str

    class Config:
        from_attributes = True
