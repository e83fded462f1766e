from sqlalchemy import (
    Column, Integer, String, Float, Boolean, Date, DateTime, ForeignKey, UniqueConstraint, func,
)
from database.db import Base


class Degree(Base):
    __tablename__ = "degrees"  # 학위 프로그램 테이블

    id = Column(Integer, primary_key=True, index=True)               # 프로그램 ID
    name = Column(String(150), nullable=False)                       # 프로그램명 (예: BS Computer Science)
    code = Column(String(20), unique=True, nullable=False)           # 프로그램 코드
    department = Column(String(100))                                 # 소속 학과
    duration_years = Column(Integer, default=4)                      # 수업 연한


class Course(Base):
    __tablename__ = "courses"  # 교과목 테이블

    id = Column(Integer, primary_key=True, index=True)               # 과목 ID
    course_code = Column(String(20), unique=True, nullable=False)    # 과목 코드 (예: CS-101)
    course_title = Column(String(150), nullable=False)               # 과목명
    credit_hours = Column(Float, nullable=False, default=3)          # 학점
    degree_id = Column(Integer, ForeignKey("degrees.id"))            # 소속 프로그램


class AcademicSession(Base):
    __tablename__ = "academic_sessions"  # 학년도 테이블

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), nullable=False)                        # 예: 2024-2025
    start_date = Column(Date)
    end_date = Column(Date)
    is_active = Column(Boolean, default=False)


class Semester(Base):
    __tablename__ = "semesters"  # 학기 테이블

    id = Column(Integer, primary_key=True, index=True)
    academic_session_id = Column(Integer, ForeignKey("academic_sessions.id"), nullable=False)  # 학년도
    name = Column(String(50), nullable=False)                        # 예: Fall 2024
    semester_number = Column(Integer, nullable=False)                # 학년도 내 순번 (CGPA 정렬 기준)
    start_date = Column(Date)
    end_date = Column(Date)
    is_active = Column(Boolean, default=False)


class Student(Base):
    __tablename__ = "students"  # 학생 기본 정보 테이블

    id = Column(Integer, primary_key=True, index=True)               # 학생 ID
    user_id = Column(Integer, ForeignKey("users.id"))                # 로그인 계정 (선택)
    roll_number = Column(String(30), unique=True, nullable=False)    # 학번
    full_name = Column(String(100), nullable=False)                  # 이름
    degree_id = Column(Integer, ForeignKey("degrees.id"))            # 소속 프로그램
    batch_year = Column(Integer)                                     # 입학 연도


class CourseOffering(Base):
    __tablename__ = "course_offerings"  # 학기별 개설 강좌 테이블

    id = Column(Integer, primary_key=True, index=True)
    course_id = Column(Integer, ForeignKey("courses.id"), nullable=False)      # 과목
    semester_id = Column(Integer, ForeignKey("semesters.id"), nullable=False)  # 개설 학기
    teacher_id = Column(Integer, ForeignKey("users.id"))                       # 담당 교수 (users.id)
    section = Column(String(10), default="A")                                  # 분반
    is_active = Column(Boolean, default=True)


class CourseEnrollment(Base):
    __tablename__ = "course_enrollments"  # 수강 신청 테이블
    __table_args__ = (UniqueConstraint("student_id", "course_offering_id"),)

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("students.id"), nullable=False)
    course_offering_id = Column(Integer, ForeignKey("course_offerings.id"), nullable=False)
    status = Column(String(20), nullable=False, default="enrolled")  # enrolled / dropped
    enrolled_at = Column(DateTime, server_default=func.now())
