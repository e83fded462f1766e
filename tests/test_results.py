import pytest

from models.academics import Course, CourseEnrollment, CourseOffering, Semester
from models.results import CourseResult


@pytest.fixture
def assessment_marks(client, academic, grade_scale, teacher_headers):
    """학생1: Midterm 40/50, Final 75/100 → 77% (A, 3.75) / 학생2: Midterm만 입력"""
    s1, s2 = academic["student_ids"]
    res = client.post("/api/marks/bulk", json={"marks": [
        {"student_id": s1, "assessment_id": academic["midterm_id"], "marks_obtained": 40},
        {"student_id": s1, "assessment_id": academic["final_id"], "marks_obtained": 75},
        {"student_id": s2, "assessment_id": academic["midterm_id"], "marks_obtained": 10},
    ]}, headers=teacher_headers)
    assert res.status_code == 201
    return academic


def test_grade_lookup(client, grade_scale, student_headers):
    res = client.get("/api/grades/calculate?percentage=77", headers=student_headers)
    assert res.status_code == 200
    assert res.json()["data"] == {"percentage": 77.0, "letter_grade": "A", "grade_point": 3.75}
    assert client.get("/api/grades/calculate?percentage=101", headers=student_headers).status_code == 400


def test_grade_points_cannot_overlap(client, admin_headers):
    scale = client.post("/api/grades/scales", json={"name": "Pass/Fail"}, headers=admin_headers).json()["data"]
    url = f"/api/grades/scales/{scale['id']}/points"
    assert client.post(url, json={"letter_grade": "P", "grade_point": 1, "min_percentage": 50, "max_percentage": 100},
                       headers=admin_headers).status_code == 201
    overlap = client.post(url, json={"letter_grade": "F", "grade_point": 0, "min_percentage": 0, "max_percentage": 60},
                          headers=admin_headers)
    assert overlap.status_code == 400
    inverted = client.post(url, json={"letter_grade": "F", "grade_point": 0, "min_percentage": 40, "max_percentage": 10},
                           headers=admin_headers)
    assert inverted.status_code == 400


def test_activate_scale_is_exclusive(client, grade_scale, admin_headers):
    other = client.post("/api/grades/scales", json={"name": "Alt"}, headers=admin_headers).json()["data"]
    client.patch(f"/api/grades/scales/{other['id']}/activate", headers=admin_headers)
    scales = client.get("/api/grades/scales", headers=admin_headers).json()["data"]
    assert [s["id"] for s in scales if s["is_active"]] == [other["id"]]


def test_course_result_calculation(client, assessment_marks, teacher_headers):
    s1, s2 = assessment_marks["student_ids"]
    res = client.post("/api/course-results/calculate",
                      json={"student_id": s1, "course_offering_id": assessment_marks["offering_id"]},
                      headers=teacher_headers)
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["percentage"] == 77.0
    assert data["letter_grade"] == "A"
    assert data["grade_point"] == 3.75
    assert data["status"] == "Pass"
    assert data["credit_earned"] == 3

    tally = client.post("/api/course-results/calculate-all",
                        json={"course_offering_id": assessment_marks["offering_id"]}, headers=teacher_headers)
    assert tally.json()["data"]["success"] == 2

    # 학생2: Midterm 10/50 → 20% (F), Final 미입력
    second = client.get(f"/api/course-results?student_id={s2}", headers=teacher_headers).json()["data"][0]
    assert second["percentage"] == 20.0
    assert second["status"] == "Fail"
    assert second["credit_earned"] == 0

    stats = client.get(f"/api/course-results/offering/{assessment_marks['offering_id']}/statistics",
                       headers=teacher_headers).json()["data"]
    assert stats["passed"] == 1
    assert stats["grade_distribution"] == {"A": 1, "F": 1}


def test_course_result_without_components(client, academic, grade_scale, teacher_headers, db):
    offering = CourseOffering(course_id=academic["course_id"], semester_id=academic["semester_id"], section="B")
    db.add(offering)
    db.commit()
    res = client.post("/api/course-results/calculate",
                      json={"student_id": academic["student_ids"][0], "course_offering_id": offering.id},
                      headers=teacher_headers)
    assert res.status_code == 400


def test_finalized_result_is_locked(client, assessment_marks, teacher_headers):
    body = {"student_id": assessment_marks["student_ids"][0], "course_offering_id": assessment_marks["offering_id"]}
    client.post("/api/course-results/calculate", json=body, headers=teacher_headers)
    fin = client.patch(f"/api/course-results/finalize/{assessment_marks['offering_id']}", headers=teacher_headers)
    assert fin.json()["data"]["finalized"] == 1
    assert client.post("/api/course-results/calculate", json=body, headers=teacher_headers).status_code == 400


def _finalized_results(client, academic, headers):
    client.post("/api/course-results/calculate-all", json={"course_offering_id": academic["offering_id"]},
                headers=headers)
    client.patch(f"/api/course-results/finalize/{academic['offering_id']}", headers=headers)


def test_sgpa_uses_only_finalized_results(client, assessment_marks, teacher_headers, db):
    s1 = assessment_marks["student_ids"][0]
    body = {"student_id": s1, "semester_id": assessment_marks["semester_id"]}

    empty = client.post("/api/semester-results/calculate-sgpa", json=body, headers=teacher_headers).json()["data"]
    assert empty["sgpa"] == 0
    assert "message" in empty

    _finalized_results(client, assessment_marks, teacher_headers)

    # 2학점 과목 추가 (평점 2.0, 확정)
    course = Course(course_code="CS-102", course_title="Discrete Structures", credit_hours=2)
    db.add(course)
    db.flush()
    offering = CourseOffering(course_id=course.id, semester_id=assessment_marks["semester_id"])
    db.add(offering)
    db.flush()
    db.add(CourseResult(student_id=s1, course_offering_id=offering.id, percentage=40, letter_grade="D",
                        grade_point=2.0, credit_earned=2, status="Pass", is_finalized=True))
    db.commit()

    data = client.post("/api/semester-results/calculate-sgpa", json=body, headers=teacher_headers).json()["data"]
    assert data["sgpa"] == 3.05
    assert data["totalCreditHours"] == 5
    assert data["earnedCreditHours"] == 5
    assert data["totalQualityPoints"] == 15.25
    assert data["coursesCount"] == 2


def test_cgpa_across_semesters(client, assessment_marks, teacher_headers, db):
    s1 = assessment_marks["student_ids"][0]
    _finalized_results(client, assessment_marks, teacher_headers)

    spring = Semester(academic_session_id=assessment_marks["session_id"], name="Spring 2025", semester_number=2)
    db.add(spring)
    db.flush()
    offering = CourseOffering(course_id=assessment_marks["course_id"], semester_id=spring.id, section="R")
    db.add(offering)
    db.flush()
    db.add(CourseResult(student_id=s1, course_offering_id=offering.id, percentage=20, letter_grade="F",
                        grade_point=0, credit_earned=0, status="Fail", is_finalized=True))
    db.commit()

    data = client.post("/api/semester-results/calculate-cgpa", json={"student_id": s1, "semester_id": spring.id},
                       headers=teacher_headers).json()["data"]
    assert data["cgpa"] == 1.88
    assert data["totalCreditHours"] == 6
    assert data["earnedCreditHours"] == 3
    assert [s["sgpa"] for s in data["semesters"]] == [3.75, 0]

    missing = client.post("/api/semester-results/calculate-cgpa", json={"student_id": s1, "semester_id": 999},
                          headers=teacher_headers)
    assert missing.status_code == 404


def test_semester_results_publish_flow(client, assessment_marks, admin_headers, make_user, db):
    from models.academics import Student

    semester_id = assessment_marks["semester_id"]
    s1 = assessment_marks["student_ids"][0]
    _finalized_results(client, assessment_marks, admin_headers)

    tally = client.post("/api/semester-results/calculate-all", json={"semester_id": semester_id},
                        headers=admin_headers).json()["data"]
    assert tally["total_students"] == 2
    assert tally["success"] == 2

    # 학생 계정 연결
    user, student_headers = make_user("student", username="ali")
    student = db.query(Student).filter(Student.id == s1).first()
    student.user_id = user.id
    db.commit()

    assert client.get(f"/api/semester-results/student/{s1}", headers=student_headers).json()["data"] == []
    assert client.get(f"/api/semester-results/student/{s1}/semester/{semester_id}",
                      headers=student_headers).status_code == 404

    published = client.patch(f"/api/semester-results/publish/{semester_id}", json={"student_ids": [s1]},
                             headers=admin_headers)
    assert published.json()["data"]["updated"] == 1

    own = client.get(f"/api/semester-results/student/{s1}", headers=student_headers).json()["data"]
    assert len(own) == 1
    assert own[0]["sgpa"] == 3.75

    other = assessment_marks["student_ids"][1]
    assert client.get(f"/api/semester-results/student/{other}", headers=student_headers).status_code == 403

    summary = client.get(f"/api/semester-results/semester/{semester_id}/summary", headers=admin_headers).json()["data"]
    assert summary["total_students"] == 2
    assert summary["published_count"] == 1
    assert summary["highest_sgpa"] == 3.75

    unpublished = client.patch(f"/api/semester-results/unpublish/{semester_id}", headers=admin_headers)
    assert unpublished.json()["data"]["updated"] == 2
    listed = client.get(f"/api/semester-results?semester_id={semester_id}&is_published=false",
                        headers=admin_headers).json()
    assert listed["count"] == 2


def test_calculate_all_without_enrollments(client, academic, admin_headers, db):
    db.query(CourseEnrollment).delete()
    db.commit()
    res = client.post("/api/semester-results/calculate-all", json={"semester_id": academic["semester_id"]},
                      headers=admin_headers)
    assert res.status_code == 404


def test_gpa_calculation_is_staff_only(client, assessment_marks, student_headers):
    other = assessment_marks["student_ids"][1]
    body = {"student_id": other, "semester_id": assessment_marks["semester_id"]}
    assert client.post("/api/semester-results/calculate-sgpa", json=body, headers=student_headers).status_code == 403
    assert client.post("/api/semester-results/calculate-cgpa", json=body, headers=student_headers).status_code == 403
    summary = client.get(f"/api/semester-results/semester/{assessment_marks['semester_id']}/summary",
                         headers=student_headers)
    assert summary.status_code == 403
