import pytest


@pytest.fixture
def levels(client, academic, admin_headers):
    """PLO 기준표: Exceeded 80~100 / Met 60~79.99 / Not Met 0~59.99"""
    rows = [("Exceeded", 80, 100, True), ("Met", 60, 79.99, True), ("Not Met", 0, 59.99, False)]
    ids = {}
    for name, low, high, attained in rows:
        res = client.post("/api/attainment-thresholds", json={
            "degree_id": academic["degree_id"], "threshold_type": "PLO", "level_name": name,
            "min_percentage": low, "max_percentage": high, "is_attained": attained,
        }, headers=admin_headers)
        assert res.status_code == 201
        ids[name] = res.json()["data"]["id"]
    return ids


def test_duplicate_level_and_overlap_are_rejected(client, academic, levels, teacher_headers):
    body = {"degree_id": academic["degree_id"], "threshold_type": "PLO", "level_name": "Met",
            "min_percentage": 10, "max_percentage": 20}
    assert client.post("/api/attainment-thresholds", json=body, headers=teacher_headers).status_code == 409

    body["level_name"] = "Partially Met"
    res = client.post("/api/attainment-thresholds", json=body, headers=teacher_headers)
    assert res.status_code == 409
    assert res.json()["message"] == "Percentage range overlaps with an existing threshold for this degree and type"

    # 다른 유형이면 같은 구간 허용
    body["threshold_type"] = "CLO"
    assert client.post("/api/attainment-thresholds", json=body, headers=teacher_headers).status_code == 201


def test_invalid_type_and_range(client, academic, admin_headers):
    body = {"degree_id": academic["degree_id"], "threshold_type": "XYZ", "level_name": "Met",
            "min_percentage": 60, "max_percentage": 100}
    assert client.post("/api/attainment-thresholds", json=body, headers=admin_headers).status_code == 400
    body.update(threshold_type="CLO", min_percentage=90, max_percentage=50)
    assert client.post("/api/attainment-thresholds", json=body, headers=admin_headers).status_code == 400
    assert client.get("/api/attainment-thresholds/type/XYZ", headers=admin_headers).status_code == 400


def test_evaluate_percentage(client, academic, levels, student_headers):
    body = {"degree_id": academic["degree_id"], "threshold_type": "PLO", "percentage": 63.12}
    res = client.post("/api/attainment-thresholds/evaluate", json=body, headers=student_headers)
    assert res.status_code == 200
    assert res.json()["data"]["level"]["level_name"] == "Met"

    body["percentage"] = 79.995
    res = client.post("/api/attainment-thresholds/evaluate", json=body, headers=student_headers)
    assert res.status_code == 404
    assert res.json()["error"]["level"] is None


def test_update_checks_overlap_excluding_itself(client, levels, admin_headers):
    url = f"/api/attainment-thresholds/{levels['Met']}"
    res = client.put(url, json={"min_percentage": 55, "max_percentage": 79.99}, headers=admin_headers)
    assert res.status_code == 409
    res = client.put(url, json={"min_percentage": 65}, headers=admin_headers)
    assert res.status_code == 200
    assert res.json()["data"]["min_percentage"] == 65
    assert client.put(url, json={"min_percentage": 85}, headers=admin_headers).status_code == 400


def test_list_filters_and_degree_routes(client, academic, levels, admin_headers, teacher_headers):
    res = client.get(f"/api/attainment-thresholds?degreeId={academic['degree_id']}&search=met&limit=1",
                     headers=teacher_headers)
    body = res.json()
    assert body["pagination"] == {"total": 2, "page": 1, "limit": 1, "totalPages": 2}
    assert [r["level_name"] for r in body["data"]] == ["Met"]
    assert body["data"][0]["degree_name"] == "BS Computer Science"

    by_degree = client.get(f"/api/attainment-thresholds/degree/{academic['degree_id']}", headers=teacher_headers)
    assert by_degree.json()["count"] == 3

    # 기준표가 있으면 프로그램 삭제 불가
    res = client.delete(f"/api/degrees/{academic['degree_id']}", headers=admin_headers)
    assert res.json()["error"]["thresholds"] == 3

    assert client.delete(f"/api/attainment-thresholds/degree/{academic['degree_id']}",
                         headers=teacher_headers).status_code == 403
    res = client.delete(f"/api/attainment-thresholds/degree/{academic['degree_id']}", headers=admin_headers)
    assert res.json()["data"]["deleted_count"] == 3
    assert client.get(f"/api/attainment-thresholds/{levels['Met']}", headers=admin_headers).status_code == 404
