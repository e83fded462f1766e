def test_health_needs_no_token(client):
    res = client.get("/api/meta/health")
    assert res.status_code == 200
    assert res.json()["data"]["database"] == "ok"


def test_academic_routes_require_token(client):
    assert client.get("/api/degrees").status_code == 401


def test_degree_and_course_codes_are_unique(client, admin_headers):
    degree = client.post("/api/degrees", json={"name": "BS Software Engineering", "code": "BSSE"},
                         headers=admin_headers)
    assert degree.status_code == 201
    assert client.post("/api/degrees", json={"name": "Other", "code": "BSSE"},
                       headers=admin_headers).status_code == 409

    body = {"course_code": "SE-201", "course_title": "Software Design", "degree_id": degree.json()["data"]["id"]}
    course = client.post("/api/courses", json=body, headers=admin_headers)
    assert course.status_code == 201
    assert course.json()["data"]["credit_hours"] == 3
    assert client.post("/api/courses", json=body, headers=admin_headers).status_code == 409


def test_only_admin_creates_courses(client, teacher_headers):
    res = client.post("/api/courses", json={"course_code": "X-1", "course_title": "X"}, headers=teacher_headers)
    assert res.status_code == 403


def test_enrollment_is_unique(client, academic, teacher_headers):
    body = {"student_id": academic["student_ids"][0], "course_offering_id": academic["offering_id"]}
    dup = client.post("/api/enrollments", json=body, headers=teacher_headers)
    assert dup.status_code == 409

    students = client.get(f"/api/course-offerings/{academic['offering_id']}/students", headers=teacher_headers)
    assert students.json()["count"] == 2
    assert [s["roll_number"] for s in students.json()["data"]] == ["BSCS-001", "BSCS-002"]

    enrollments = client.get(f"/api/enrollments?student_id={body['student_id']}", headers=teacher_headers).json()
    enrollment_id = enrollments["data"][0]["id"]
    assert client.delete(f"/api/enrollments/{enrollment_id}", headers=teacher_headers).status_code == 200
    assert client.post("/api/enrollments", json=body, headers=teacher_headers).status_code == 201


def test_request_headers_from_timing_middleware(client):
    res = client.get("/api/meta/health", headers={"X-Request-Id": "req-123"})
    assert res.headers["X-Request-Id"] == "req-123"
    assert int(res.headers["X-Latency-Ms"]) >= 0


def test_referenced_rows_cannot_be_deleted(client, academic, admin_headers):
    res = client.delete(f"/api/degrees/{academic['degree_id']}", headers=admin_headers)
    assert res.status_code == 400
    assert res.json()["error"] == {"courses": 1, "students": 2, "plos": 1}

    res = client.delete(f"/api/course-offerings/{academic['offering_id']}", headers=admin_headers)
    assert res.status_code == 400
    assert res.json()["error"]["enrollments"] == 2
    assert res.json()["error"]["components"] == 2

    assert client.delete(f"/api/courses/{academic['course_id']}", headers=admin_headers).status_code == 400
    assert client.delete(f"/api/semesters/{academic['semester_id']}", headers=admin_headers).status_code == 400
    res = client.delete(f"/api/academic-sessions/{academic['session_id']}", headers=admin_headers)
    assert res.status_code == 400
    assert res.json()["message"] == "Cannot delete academic session that is in use"


def test_unreferenced_academic_rows_are_deleted(client, admin_headers):
    session = client.post("/api/academic-sessions", json={"name": "2025-2026"}, headers=admin_headers).json()["data"]
    semester = client.post("/api/semesters", json={"academic_session_id": session["id"], "name": "Spring 2026",
                                                   "semester_number": 2}, headers=admin_headers).json()["data"]
    degree = client.post("/api/degrees", json={"name": "BS Data Science", "code": "BSDS"},
                         headers=admin_headers).json()["data"]
    course = client.post("/api/courses", json={"course_code": "DS-101", "course_title": "Statistics",
                                               "degree_id": degree["id"]}, headers=admin_headers).json()["data"]
    offering = client.post("/api/course-offerings", json={"course_id": course["id"], "semester_id": semester["id"]},
                           headers=admin_headers).json()["data"]

    assert client.delete(f"/api/course-offerings/{offering['id']}", headers=admin_headers).status_code == 200
    assert client.delete(f"/api/semesters/{semester['id']}", headers=admin_headers).status_code == 200
    assert client.delete(f"/api/academic-sessions/{session['id']}", headers=admin_headers).status_code == 200
    assert client.delete(f"/api/courses/{course['id']}", headers=admin_headers).status_code == 200
    res = client.delete(f"/api/degrees/{degree['id']}", headers=admin_headers)
    assert res.status_code == 200
    assert res.json()["data"] == {"id": degree["id"]}
    assert client.get(f"/api/degrees/{degree['id']}", headers=admin_headers).status_code == 404


def test_update_session_and_semester(client, academic, admin_headers, teacher_headers):
    url = f"/api/academic-sessions/{academic['session_id']}"
    assert client.get(url, headers=teacher_headers).json()["data"]["name"] == "2024-2025"
    assert client.put(url, json={"is_active": False}, headers=teacher_headers).status_code == 403
    res = client.put(url, json={"is_active": False}, headers=admin_headers)
    assert res.status_code == 200
    assert res.json()["data"]["is_active"] is False
    assert client.put(url, json={}, headers=admin_headers).status_code == 400
    assert client.get("/api/academic-sessions/999", headers=admin_headers).status_code == 404

    url = f"/api/semesters/{academic['semester_id']}"
    res = client.put(url, json={"name": "Fall 2024 (Regular)"}, headers=admin_headers)
    assert res.json()["data"]["name"] == "Fall 2024 (Regular)"
    assert client.put(url, json={"academic_session_id": 999}, headers=admin_headers).status_code == 404
    assert client.put(url, json={"semester_number": 0}, headers=admin_headers).status_code == 400


def test_only_admin_deletes_academic_rows(client, academic, teacher_headers):
    assert client.delete(f"/api/degrees/{academic['degree_id']}", headers=teacher_headers).status_code == 403
