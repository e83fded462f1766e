import pytest

from models.academics import Student
from routers import reports


@pytest.fixture(autouse=True)
def fake_pdf(monkeypatch):
    # WeasyPrint 렌더링 대신 HTML 문자열을 그대로 돌려받아 검증
    monkeypatch.setattr(reports.pdf_service, "_html_to_pdf", lambda html: b"%PDF-test" + html.encode("utf-8"))


def test_clo_attainment_report(client, academic, question_marks, teacher_headers):
    client.post("/api/clo-attainment/course/calculate", json={"course_offering_id": academic["offering_id"]},
                headers=teacher_headers)
    res = client.get(f"/api/reports/course-offering/{academic['offering_id']}/clo-attainment.pdf",
                     headers=teacher_headers)
    assert res.status_code == 200
    assert res.headers["content-type"] == "application/pdf"
    assert res.content.startswith(b"%PDF-test")
    assert b"CS-101" in res.content
    assert b"CLO1" in res.content


def test_clo_attainment_report_requires_staff(client, academic, student_headers):
    res = client.get(f"/api/reports/course-offering/{academic['offering_id']}/clo-attainment.pdf",
                     headers=student_headers)
    assert res.status_code == 403


def test_transcript_only_for_own_record(client, academic, make_user, db):
    s1, s2 = academic["student_ids"]
    user, headers = make_user("student", username="ali")
    db.query(Student).filter(Student.id == s1).update({"user_id": user.id})
    db.commit()

    own = client.get(f"/api/reports/student/{s1}/transcript.pdf", headers=headers)
    assert own.status_code == 200
    assert b"Ali Khan" in own.content

    assert client.get(f"/api/reports/student/{s2}/transcript.pdf", headers=headers).status_code == 403
    assert client.get("/api/reports/student/999/transcript.pdf", headers=headers).status_code == 404


def test_plo_attainment_report(client, question_marks, admin_headers):
    client.post("/api/clo-attainment/course/calculate", json={"course_offering_id": question_marks["offering_id"]},
                headers=admin_headers)
    client.post("/api/plo-attainment/program/calculate", json={"degree_id": question_marks["degree_id"]},
                headers=admin_headers)
    res = client.get(f"/api/reports/degree/{question_marks['degree_id']}/plo-attainment.pdf", headers=admin_headers)
    assert res.status_code == 200
    assert res.headers["content-disposition"] == "attachment; filename=plo_attainment_BSCS.pdf"
    assert b"BS Computer Science" in res.content
    assert b"PLO1" in res.content
    assert b"1 (50.00%)" in res.content


def test_plo_attainment_report_access(client, academic, student_headers, admin_headers):
    res = client.get(f"/api/reports/degree/{academic['degree_id']}/plo-attainment.pdf", headers=student_headers)
    assert res.status_code == 403
    assert client.get("/api/reports/degree/999/plo-attainment.pdf", headers=admin_headers).status_code == 404


def test_dashboard_stats(client, academic, teacher_headers):
    res = client.get("/api/reports/dashboard-stats", headers=teacher_headers)
    assert res.status_code == 200
    assert res.json()["data"] == {
        "totalCourses": 1,
        "totalStudents": 2,
        "averageAttainment": 0,
        "pendingAssessments": 2,
    }
