import pytest


@pytest.fixture
def mark_payload(academic):
    return {"student_id": academic["student_ids"][0], "assessment_id": academic["midterm_id"], "marks_obtained": 40}


def test_create_mark(client, mark_payload, teacher_headers):
    res = client.post("/api/marks", json=mark_payload, headers=teacher_headers)
    assert res.status_code == 201
    data = res.json()["data"]
    assert data["marks_obtained"] == 40
    assert data["total_marks"] == 50
    assert data["evaluated_by"] is not None


def test_create_mark_accepts_component_alias(client, academic, teacher_headers):
    res = client.post("/api/marks", json={
        "student_id": academic["student_ids"][0], "assessment_component_id": academic["final_id"], "marks_obtained": 70,
    }, headers=teacher_headers)
    assert res.status_code == 201
    assert res.json()["data"]["assessment_id"] == academic["final_id"]


@pytest.mark.parametrize("drop,message", [
    (("student_id",), "student_id is required"),
    (("marks_obtained",), "marks_obtained is required"),
    (("student_id", "assessment_id"), "student_id, assessment_id are required"),
])
def test_create_mark_missing_fields(client, mark_payload, teacher_headers, drop, message):
    payload = {k: v for k, v in mark_payload.items() if k not in drop}
    res = client.post("/api/marks", json=payload, headers=teacher_headers)
    assert res.status_code == 400
    assert res.json()["message"] == message


def test_create_mark_bounds(client, mark_payload, teacher_headers):
    negative = client.post("/api/marks", json={**mark_payload, "marks_obtained": -1}, headers=teacher_headers)
    assert negative.status_code == 400
    assert negative.json()["message"] == "marks_obtained cannot be negative"

    over = client.post("/api/marks", json={**mark_payload, "marks_obtained": 51}, headers=teacher_headers)
    assert over.status_code == 400
    assert over.json()["message"] == "marks_obtained cannot exceed total marks"

    over_given_total = client.post("/api/marks", json={**mark_payload, "marks_obtained": 30, "total_marks": 25},
                                   headers=teacher_headers)
    assert over_given_total.status_code == 400


def test_create_mark_unknown_references_and_duplicate(client, mark_payload, teacher_headers):
    assert client.post("/api/marks", json={**mark_payload, "student_id": 999},
                       headers=teacher_headers).status_code == 404
    assert client.post("/api/marks", json={**mark_payload, "assessment_id": 999},
                       headers=teacher_headers).status_code == 404

    assert client.post("/api/marks", json=mark_payload, headers=teacher_headers).status_code == 201
    assert client.post("/api/marks", json=mark_payload, headers=teacher_headers).status_code == 409


def test_student_cannot_enter_marks(client, mark_payload, student_headers):
    assert client.post("/api/marks", json=mark_payload, headers=student_headers).status_code == 403


def test_bulk_marks_status_codes(client, academic, teacher_headers):
    s1, s2 = academic["student_ids"]
    mid = academic["midterm_id"]

    empty = client.post("/api/marks/bulk", json={"marks": []}, headers=teacher_headers)
    assert empty.status_code == 400
    assert empty.json()["message"] == "Please provide at least one mark record"

    ok = client.post("/api/marks/bulk", json={"marks": [
        {"student_id": s1, "assessment_id": mid, "marks_obtained": 40},
    ]}, headers=teacher_headers)
    assert ok.status_code == 201
    assert ok.json()["data"]["created"] == 1
    assert ok.json()["data"]["failed"] == 0

    partial = client.post("/api/marks/bulk", json={"marks": [
        {"student_id": s2, "assessment_id": mid, "marks_obtained": 30},
        {"student_id": s1, "assessment_id": mid, "marks_obtained": 45},
        {"student_id": s2, "assessment_id": academic["final_id"], "marks_obtained": -5},
    ]}, headers=teacher_headers)
    assert partial.status_code == 207
    data = partial.json()["data"]
    assert (data["created"], data["failed"]) == (1, 2)
    assert [e["index"] for e in data["errors"]] == [1, 2]

    failed = client.post("/api/marks/bulk", json={"marks": [
        {"student_id": 999, "assessment_id": mid, "marks_obtained": 10},
    ]}, headers=teacher_headers)
    assert failed.status_code == 400
    assert failed.json()["success"] is False
    assert failed.json()["data"]["failed"] == 1


def test_update_and_delete_mark(client, mark_payload, teacher_headers):
    mark_id = client.post("/api/marks", json=mark_payload, headers=teacher_headers).json()["data"]["id"]

    assert client.put(f"/api/marks/{mark_id}", json={"marks_obtained": 60}, headers=teacher_headers).status_code == 400
    updated = client.put(f"/api/marks/{mark_id}", json={"marks_obtained": 45, "remarks": "rechecked"},
                         headers=teacher_headers)
    assert updated.status_code == 200
    assert updated.json()["data"]["remarks"] == "rechecked"

    assert client.delete(f"/api/marks/{mark_id}", headers=teacher_headers).status_code == 200
    assert client.get(f"/api/marks/{mark_id}", headers=teacher_headers).status_code == 404
    assert client.put(f"/api/marks/{mark_id}", json={"marks_obtained": 1}, headers=teacher_headers).status_code == 404
    assert client.delete(f"/api/marks/{mark_id}", headers=teacher_headers).status_code == 404


def test_student_marks_list_may_be_empty(client, academic, teacher_headers):
    res = client.get(f"/api/marks/student/{academic['student_ids'][1]}", headers=teacher_headers)
    assert res.status_code == 200
    assert res.json()["data"] == []


def test_upsert_assessment_mark_allows_absent(client, academic, teacher_headers):
    payload = {"student_id": academic["student_ids"][1], "assessment_component_id": academic["final_id"],
               "is_absent": True, "remarks": "medical"}
    res = client.post("/api/marks/assessment", json=payload, headers=teacher_headers)
    assert res.status_code == 200
    assert res.json()["data"]["is_absent"] is True
    assert res.json()["data"]["marks_obtained"] is None

    res = client.post("/api/marks/assessment", json={**payload, "is_absent": False}, headers=teacher_headers)
    assert res.status_code == 400
    assert res.json()["message"] == "marks_obtained is required"


def test_question_mark_bounds(client, academic, teacher_headers):
    qid = academic["question_ids"]["mid_q1"]
    student_id = academic["student_ids"][0]
    over = client.post("/api/marks/question", json={"student_id": student_id, "question_id": qid, "marks_obtained": 21},
                       headers=teacher_headers)
    assert over.status_code == 400

    ok = client.post("/api/marks/question",
                     json={"student_id": student_id, "question_id": qid, "marks_obtained": 20, "feedback": "full"},
                     headers=teacher_headers)
    assert ok.status_code == 200
    assert ok.json()["data"]["feedback"] == "full"


def test_bulk_question_marks_partial(client, academic, teacher_headers):
    q = academic["question_ids"]
    student_id = academic["student_ids"][0]
    res = client.post("/api/marks/question/bulk", json={"marks": [
        {"student_id": student_id, "question_id": q["mid_q1"], "marks_obtained": 10},
        {"student_id": student_id, "question_id": q["mid_q2"], "marks_obtained": 99},
    ]}, headers=teacher_headers)
    assert res.status_code == 207
    assert res.json()["data"]["success"] == 1
    assert res.json()["data"]["errors"][0]["question_id"] == q["mid_q2"]


def test_student_assessment_calculations(client, question_marks, teacher_headers):
    sid = question_marks["student_ids"][0]
    mid = question_marks["midterm_id"]

    total = client.get(f"/api/marks/student/{sid}/assessment/{mid}/calculate", headers=teacher_headers).json()["data"]
    assert total["total_obtained"] == 31
    assert total["total_max_marks"] == 50
    assert total["questions_answered"] == 2
    assert total["percentage"] == 62.0

    clos = client.get(f"/api/marks/student/{sid}/assessment/{mid}/clo", headers=teacher_headers).json()["data"]
    assert [(c["CLO_ID"], c["percentage"]) for c in clos] == [("CLO1", 80.0), ("CLO2", 50.0)]


def test_assessment_statistics_and_course_total(client, academic, teacher_headers):
    s1, s2 = academic["student_ids"]
    client.post("/api/marks/bulk", json={"marks": [
        {"student_id": s1, "assessment_id": academic["midterm_id"], "marks_obtained": 40},
        {"student_id": s2, "assessment_id": academic["midterm_id"], "marks_obtained": 30},
        {"student_id": s1, "assessment_id": academic["final_id"], "marks_obtained": 75},
    ]}, headers=teacher_headers)

    stats = client.get(f"/api/marks/statistics/assessment/{academic['midterm_id']}", headers=teacher_headers).json()
    assert stats["data"]["evaluated"] == 2
    assert stats["data"]["average_marks"] == 35
    assert stats["data"]["highest_marks"] == 40

    listing = client.get(f"/api/marks/assessment/{academic['midterm_id']}?includeStatistics=true",
                         headers=teacher_headers).json()
    assert listing["count"] == 2
    assert listing["data"]["statistics"]["lowest_marks"] == 30

    total = client.get(f"/api/marks/student/{s1}/course/{academic['offering_id']}/total",
                       headers=teacher_headers).json()["data"]
    assert total["percentage"] == 77.0
