import pytest


def test_student_clo_attainment(client, question_marks, teacher_headers):
    sid = question_marks["student_ids"][0]
    res = client.post("/api/clo-attainment/student/calculate",
                      json={"student_id": sid, "course_offering_id": question_marks["offering_id"]},
                      headers=teacher_headers)
    assert res.status_code == 200
    rows = {r["CLO_ID"]: r for r in res.json()["data"]}
    assert rows["CLO1"]["attainment_percentage"] == 76.25
    assert rows["CLO1"]["attainment_status"] == "Achieved"
    assert rows["CLO2"]["attainment_percentage"] == 50.0
    assert rows["CLO2"]["attainment_status"] == "Not Achieved"

    stored = client.get(f"/api/clo-attainment/student/{sid}/course-offering/{question_marks['offering_id']}",
                        headers=teacher_headers).json()["data"]
    assert stored["summary"]["total_clos"] == 2
    assert stored["summary"]["clos_achieved"] == 1
    assert stored["summary"]["achievement_rate"] == 50.0


def test_student_clo_attainment_missing_field(client, academic, teacher_headers):
    res = client.post("/api/clo-attainment/student/calculate", json={"student_id": academic["student_ids"][0]},
                      headers=teacher_headers)
    assert res.status_code == 400
    assert res.json()["message"] == "course_offering_id is required"


def test_recalculating_single_clo_upserts(client, question_marks, teacher_headers, db):
    from models.attainment import StudentCLOAttainment

    body = {"student_id": question_marks["student_ids"][0], "course_offering_id": question_marks["offering_id"],
            "clo_id": question_marks["clo_ids"][0]}
    client.post("/api/clo-attainment/student/calculate", json=body, headers=teacher_headers)
    client.post("/api/clo-attainment/student/calculate", json=body, headers=teacher_headers)
    assert db.query(StudentCLOAttainment).count() == 1


def test_course_clo_attainment(client, question_marks, teacher_headers):
    offering_id = question_marks["offering_id"]
    res = client.post("/api/clo-attainment/course/calculate", json={"course_offering_id": offering_id},
                      headers=teacher_headers)
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["student_results"]["success"] == 2
    clo1 = next(s for s in data["course_summary"] if s["CLO_ID"] == "CLO1")
    assert clo1["total_students"] == 2
    assert clo1["students_achieved"] == 1
    assert clo1["max_attainment"] == 76.25
    assert clo1["min_attainment"] == 0
    assert clo1["achievement_rate"] == 50.0
    assert clo1["std_deviation"] == pytest.approx(38.13, abs=0.01)
    assert clo1["overall_status"] == "Below Target"

    overview = client.get(f"/api/clo-attainment/course/{offering_id}", headers=teacher_headers).json()["data"]
    assert len(overview["student_attainment"]) == 4
    assert overview["overall_summary"]["course_status"] == "Needs Improvement"

    only_achieved = client.get(f"/api/clo-attainment/course/{offering_id}?status=Achieved",
                               headers=teacher_headers).json()["data"]
    assert len(only_achieved["student_attainment"]) == 1

    details = client.get(f"/api/clo-attainment/course/{offering_id}/clo/{question_marks['clo_ids'][0]}/details",
                         headers=teacher_headers).json()["data"]
    assert details["summary"]["CLO_ID"] == "CLO1"
    assert len(details["students"]) == 2


def test_compare_requires_two_offerings(client, academic, teacher_headers):
    res = client.post("/api/clo-attainment/compare", json={"course_offering_ids": [academic["offering_id"]]},
                      headers=teacher_headers)
    assert res.status_code == 400


def test_recalculate_session_without_offerings(client, academic, admin_headers, db):
    from models.academics import Semester

    empty = Semester(academic_session_id=academic["session_id"], name="Spring 2025", semester_number=2)
    db.add(empty)
    db.commit()
    res = client.post("/api/clo-attainment/recalculate-session", json={"semester_id": empty.id},
                      headers=admin_headers)
    assert res.status_code == 404

    ok = client.post("/api/clo-attainment/recalculate-session", json={"semester_id": academic["semester_id"]},
                     headers=admin_headers)
    assert ok.json()["data"] == {"total_offerings": 1, "success": 1, "failed": 0, "errors": []}


def test_clo_trends(client, question_marks, teacher_headers):
    client.post("/api/clo-attainment/course/calculate", json={"course_offering_id": question_marks["offering_id"]},
                headers=teacher_headers)
    res = client.get(f"/api/clo-attainment/course/{question_marks['course_id']}/trends", headers=teacher_headers)
    assert res.status_code == 200
    assert res.json()["data"][0]["semester_name"] == "Fall 2024"
    assert len(res.json()["data"][0]["clo_summaries"]) == 2


def test_student_plo_attainment(client, question_marks, teacher_headers):
    sid = question_marks["student_ids"][0]
    client.post("/api/clo-attainment/student/calculate",
                json={"student_id": sid, "course_offering_id": question_marks["offering_id"]}, headers=teacher_headers)

    res = client.post("/api/plo-attainment/student/calculate",
                      json={"student_id": sid, "degree_id": question_marks["degree_id"]}, headers=teacher_headers)
    assert res.status_code == 200
    plo = res.json()["data"][0]
    # (76.25 + 50) / 2
    assert plo["attainment_percentage"] == 63.12
    assert plo["total_clos_mapped"] == 2
    assert plo["clos_achieved"] == 1
    assert plo["attainment_status"] == "Achieved"

    stored = client.get(f"/api/plo-attainment/student/{sid}/degree/{question_marks['degree_id']}",
                        headers=teacher_headers).json()["data"]
    assert stored["summary"]["plos_achieved"] == 1


def test_program_plo_attainment(client, question_marks, admin_headers):
    offering_id = question_marks["offering_id"]
    client.post("/api/clo-attainment/course/calculate", json={"course_offering_id": offering_id},
                headers=admin_headers)
    res = client.post("/api/plo-attainment/program/calculate", json={"degree_id": question_marks["degree_id"]},
                      headers=admin_headers)
    assert res.status_code == 200
    summary = res.json()["data"]["program_summary"][0]
    assert summary["total_students"] == 2
    assert summary["students_achieved"] == 1
    assert summary["meets_target"] is False

    plo = client.get(f"/api/plos/{question_marks['plo_id']}/attainment", headers=admin_headers).json()["data"]
    assert plo["mapped_clos"] == 2
    assert plo["status"] == "NOT_ACHIEVED"


def test_student_cannot_trigger_calculation(client, academic, student_headers):
    res = client.post("/api/plo-attainment/program/calculate", json={"degree_id": academic["degree_id"]},
                      headers=student_headers)
    assert res.status_code == 403


def test_status_matches_stored_rounded_percentage(academic, db):
    from models.assessments import AssessmentComponent, Question
    from models.marks import StudentQuestionMark
    from models.outcomes import CourseLearningOutcome
    from services import attainment_service

    clo = CourseLearningOutcome(course_id=academic["course_id"], CLO_ID="CLO3", CLO_Description="Lab work",
                                target_attainment=60)
    project = AssessmentComponent(course_offering_id=academic["offering_id"], assessment_type_id=academic["type_id"],
                                  name="Project", total_marks=2500, weight_percentage=0)
    db.add_all([clo, project])
    db.flush()
    question = Question(assessment_component_id=project.id, clo_id=clo.id, question_number=1, marks=2500)
    db.add(question)
    db.flush()
    sid = academic["student_ids"][0]
    # 1499.9 / 2500 = 59.996% → 저장 값 60.0
    db.add(StudentQuestionMark(student_id=sid, question_id=question.id, marks_obtained=1499.9))
    db.commit()

    result = attainment_service.calculate_student_clo_attainment(db, sid, academic["offering_id"], clo_id=clo.id)
    assert result[0]["attainment_percentage"] == 60.0
    assert result[0]["attainment_status"] == "Achieved"


def test_plo_average_counts_each_clo_once(client, question_marks, teacher_headers, db):
    from models.academics import CourseOffering
    from models.attainment import StudentCLOAttainment

    sid = question_marks["student_ids"][0]
    clo1, _ = question_marks["clo_ids"]
    client.post("/api/clo-attainment/student/calculate",
                json={"student_id": sid, "course_offering_id": question_marks["offering_id"]}, headers=teacher_headers)

    # 같은 과목 재수강 분반에서 CLO1 100%
    retake = CourseOffering(course_id=question_marks["course_id"], semester_id=question_marks["semester_id"],
                            section="R")
    db.add(retake)
    db.flush()
    db.add(StudentCLOAttainment(student_id=sid, course_offering_id=retake.id, clo_id=clo1,
                                attainment_percentage=100, attainment_status="Achieved"))
    db.commit()

    res = client.post("/api/plo-attainment/student/calculate",
                      json={"student_id": sid, "degree_id": question_marks["degree_id"]}, headers=teacher_headers)
    plo = res.json()["data"][0]
    # CLO1 = (76.25 + 100) / 2 = 88.125, CLO2 = 50 → (88.125 + 50) / 2
    assert plo["attainment_percentage"] == 69.06
    assert plo["total_clos_mapped"] == 2
