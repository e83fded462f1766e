"""
OBE backend - 테스트 공용 설정과 fixture

- 앱 import 전에 환경변수로 in-memory sqlite / 테스트용 JWT 키를 지정
- 테스트마다 테이블 생성 → 삭제
"""
import os

os.environ["ENV"] = "test"
os.environ["DATABASE_URL_OVERRIDE"] = "sqlite://"
os.environ["JWT_SECRET_KEY"] = "test-jwt-secret-key-for-testing"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
from fastapi.testclient import TestClient

from database.db import Base, SessionLocal, create_tables, engine
from main import app
from models.academics import (
    AcademicSession, Course, CourseEnrollment, CourseOffering, Degree, Semester, Student,
)
from models.assessments import AssessmentComponent, AssessmentType, Question
from models.outcomes import CloPloMapping, CourseLearningOutcome, ProgramLearningOutcome
from models.results import GradePoint, GradeScale
from models.users import User
from scripts.init_db import DEFAULT_GRADE_POINTS
from utils.security import create_access_token, hash_password


@pytest.fixture(autouse=True)
def tables():
    create_tables()
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def make_user(db):
    """역할별 사용자 생성 → (user, Authorization 헤더)"""
    def _make(role: str = "student", username: str = None, password: str = "password123", is_active: bool = True):
        username = username or f"{role}_user"
        user = User(
            username=username,
            email=f"{username}@obe.test",
            password_hash=hash_password(password),
            full_name=username.replace("_", " ").title(),
            role=role,
            is_active=is_active,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user, {"Authorization": f"Bearer {create_access_token(user.id, user.role)}"}
    return _make


@pytest.fixture
def admin(make_user):
    return make_user("admin")


@pytest.fixture
def admin_headers(admin):
    return admin[1]


@pytest.fixture
def teacher_headers(make_user):
    return make_user("teacher")[1]


@pytest.fixture
def student_headers(make_user):
    return make_user("student")[1]


@pytest.fixture
def grade_scale(db):
    scale = GradeScale(name="Default 4.0 Scale", is_active=True)
    db.add(scale)
    db.flush()
    for letter, point, low, high in DEFAULT_GRADE_POINTS:
        db.add(GradePoint(grade_scale_id=scale.id, letter_grade=letter, grade_point=point,
                          min_percentage=low, max_percentage=high))
    db.commit()
    return scale.id


@pytest.fixture
def academic(db):
    """
    학위 1 / 과목 1 (3학점) / 학기 1 / 개설 강좌 1 / 수강생 2
    CLO1, CLO2 → PLO1 매핑
    Midterm (50점, 40%): Q1 20점 CLO1, Q2 30점 CLO2
    Final  (100점, 60%): Q1 60점 CLO1, Q2 40점 CLO2
    """
    degree = Degree(name="BS Computer Science", code="BSCS")
    db.add(degree)
    db.flush()
    course = Course(course_code="CS-101", course_title="Programming Fundamentals", credit_hours=3, degree_id=degree.id)
    session = AcademicSession(name="2024-2025", is_active=True)
    db.add_all([course, session])
    db.flush()
    semester = Semester(academic_session_id=session.id, name="Fall 2024", semester_number=1)
    db.add(semester)
    db.flush()
    offering = CourseOffering(course_id=course.id, semester_id=semester.id, section="A")
    students = [
        Student(roll_number="BSCS-001", full_name="Ali Khan", degree_id=degree.id),
        Student(roll_number="BSCS-002", full_name="Sara Ahmed", degree_id=degree.id),
    ]
    db.add(offering)
    db.add_all(students)
    db.flush()
    for s in students:
        db.add(CourseEnrollment(student_id=s.id, course_offering_id=offering.id))

    clo1 = CourseLearningOutcome(course_id=course.id, CLO_ID="CLO1", CLO_Description="Write programs", target_attainment=60)
    clo2 = CourseLearningOutcome(course_id=course.id, CLO_ID="CLO2", CLO_Description="Debug programs", target_attainment=60)
    plo = ProgramLearningOutcome(degree_id=degree.id, programName=degree.name, PLO_No=1,
                                 PLO_Description="Engineering knowledge", target_attainment=60)
    db.add_all([clo1, clo2, plo])
    db.flush()
    db.add_all([
        CloPloMapping(clo_id=clo1.id, plo_id=plo.id, mapping_level=3),
        CloPloMapping(clo_id=clo2.id, plo_id=plo.id, mapping_level=2),
    ])

    exam_type = AssessmentType(name="Exam", category="Terminal")
    db.add(exam_type)
    db.flush()
    midterm = AssessmentComponent(course_offering_id=offering.id, assessment_type_id=exam_type.id,
                                  name="Midterm", total_marks=50, weight_percentage=40, sequence_number=1)
    final = AssessmentComponent(course_offering_id=offering.id, assessment_type_id=exam_type.id,
                                name="Final", total_marks=100, weight_percentage=60, sequence_number=2)
    db.add_all([midterm, final])
    db.flush()
    questions = {
        "mid_q1": Question(assessment_component_id=midterm.id, clo_id=clo1.id, question_number=1, marks=20),
        "mid_q2": Question(assessment_component_id=midterm.id, clo_id=clo2.id, question_number=2, marks=30),
        "final_q1": Question(assessment_component_id=final.id, clo_id=clo1.id, question_number=1, marks=60),
        "final_q2": Question(assessment_component_id=final.id, clo_id=clo2.id, question_number=2, marks=40),
    }
    db.add_all(questions.values())
    db.commit()

    return {
        "degree_id": degree.id,
        "course_id": course.id,
        "session_id": session.id,
        "semester_id": semester.id,
        "offering_id": offering.id,
        "student_ids": [s.id for s in students],
        "clo_ids": [clo1.id, clo2.id],
        "plo_id": plo.id,
        "type_id": exam_type.id,
        "midterm_id": midterm.id,
        "final_id": final.id,
        "question_ids": {k: q.id for k, q in questions.items()},
    }


@pytest.fixture
def question_marks(client, academic, teacher_headers):
    """첫 번째 학생 문항 점수 입력 (CLO1 = 61/80, CLO2 = 35/70)"""
    q = academic["question_ids"]
    student_id = academic["student_ids"][0]
    entries = [(q["mid_q1"], 16), (q["mid_q2"], 15), (q["final_q1"], 45), (q["final_q2"], 20)]
    res = client.post(
        "/api/marks/question/bulk",
        json={"marks": [{"student_id": student_id, "question_id": qid, "marks_obtained": m} for qid, m in entries]},
        headers=teacher_headers,
    )
    assert res.status_code == 201
    return academic
