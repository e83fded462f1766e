def test_create_clo_and_duplicate(client, academic, teacher_headers):
    payload = {"course_id": academic["course_id"], "CLO_ID": "CLO3", "CLO_Description": "Design algorithms"}
    res = client.post("/api/clos", json=payload, headers=teacher_headers)
    assert res.status_code == 201
    assert res.json()["data"]["target_attainment"] == 60

    dup = client.post("/api/clos", json=payload, headers=teacher_headers)
    assert dup.status_code == 409


def test_create_clo_validates_target_range(client, academic, teacher_headers):
    res = client.post("/api/clos", json={
        "course_id": academic["course_id"], "CLO_ID": "CLO9", "CLO_Description": "x", "target_attainment": 120,
    }, headers=teacher_headers)
    assert res.status_code == 400


def test_create_clo_unknown_course(client, academic, teacher_headers):
    res = client.post("/api/clos", json={"course_id": 999, "CLO_ID": "CLO1", "CLO_Description": "x"},
                      headers=teacher_headers)
    assert res.status_code == 404


def test_student_cannot_create_clo(client, academic, student_headers):
    res = client.post("/api/clos", json={"course_id": academic["course_id"], "CLO_ID": "CLO5", "CLO_Description": "x"},
                      headers=student_headers)
    assert res.status_code == 403


def test_list_clos_by_course(client, academic, student_headers):
    res = client.get(f"/api/clos?courseId={academic['course_id']}", headers=student_headers)
    assert res.status_code == 200
    assert res.json()["count"] == 2
    assert [c["CLO_ID"] for c in res.json()["data"]] == ["CLO1", "CLO2"]


def test_update_clo_without_changes(client, academic, teacher_headers):
    res = client.put(f"/api/clos/{academic['clo_ids'][0]}", json={}, headers=teacher_headers)
    assert res.status_code == 400
    assert res.json()["message"] == "No changes made"


def test_map_plo_upsert_status_codes(client, academic, admin_headers):
    clo_id = academic["clo_ids"][0]
    new_plo = client.post("/api/plos", json={
        "degree_id": academic["degree_id"], "PLO_No": 2, "PLO_Description": "Problem analysis",
    }, headers=admin_headers).json()["data"]

    first = client.post(f"/api/clos/{clo_id}/map-plo", json={"plo_id": new_plo["id"], "mapping_level": 2},
                        headers=admin_headers)
    assert first.status_code == 201
    second = client.post(f"/api/clos/{clo_id}/map-plo", json={"plo_id": new_plo["id"], "mapping_level": 3},
                         headers=admin_headers)
    assert second.status_code == 200
    assert second.json()["data"]["mapping_level"] == 3

    detail = client.get(f"/api/clos/{clo_id}?includePLOMappings=true", headers=admin_headers).json()["data"]
    assert {p["PLO_No"] for p in detail["plo_mappings"]} == {1, 2}


def test_unmap_plo_missing_mapping(client, academic, admin_headers):
    res = client.delete(f"/api/clos/{academic['clo_ids'][0]}/unmap-plo/999", headers=admin_headers)
    assert res.status_code == 404


def test_delete_clo_removes_mappings(client, academic, admin_headers):
    clo_id = academic["clo_ids"][1]
    assert client.delete(f"/api/clos/{clo_id}", headers=admin_headers).status_code == 200
    res = client.get(f"/api/plos/{academic['plo_id']}/clos", headers=admin_headers)
    assert [c["CLO_ID"] for c in res.json()["data"]] == ["CLO1"]


def test_plo_crud_requires_admin_and_unique_number(client, academic, admin_headers, teacher_headers):
    payload = {"degree_id": academic["degree_id"], "PLO_No": 1, "PLO_Description": "Duplicate"}
    assert client.post("/api/plos", json=payload, headers=teacher_headers).status_code == 403
    assert client.post("/api/plos", json=payload, headers=admin_headers).status_code == 409

    payload["PLO_No"] = 5
    created = client.post("/api/plos", json=payload, headers=admin_headers)
    assert created.status_code == 201
    # programName 미지정 시 학위명 사용
    assert created.json()["data"]["programName"] == "BS Computer Science"


def test_peo_mapping_from_plo(client, academic, admin_headers):
    peo = client.post("/api/peos", json={
        "degree_id": academic["degree_id"], "PEO_No": 1, "PEO_Description": "Graduates will lead teams",
    }, headers=admin_headers)
    assert peo.status_code == 201
    peo_id = peo.json()["data"]["id"]

    plo_id = academic["plo_id"]
    mapped = client.post(f"/api/plos/{plo_id}/map-peo", json={"peo_id": peo_id}, headers=admin_headers)
    assert mapped.status_code == 201
    assert mapped.json()["data"]["correlation_level"] == "Medium"
    remapped = client.post(f"/api/plos/{plo_id}/map-peo", json={"peo_id": peo_id, "correlation_level": "High"},
                           headers=admin_headers)
    assert remapped.status_code == 200

    plos = client.get(f"/api/peos/{peo_id}/plos", headers=admin_headers).json()["data"]
    assert plos[0]["correlation_level"] == "High"

    assert client.delete(f"/api/plos/{plo_id}/unmap-peo/{peo_id}", headers=admin_headers).status_code == 200
    assert client.delete(f"/api/plos/{plo_id}/unmap-peo/{peo_id}", headers=admin_headers).status_code == 404


def test_invalid_correlation_level(client, academic, admin_headers):
    res = client.post(f"/api/plos/{academic['plo_id']}/map-peo", json={"peo_id": 1, "correlation_level": "Huge"},
                      headers=admin_headers)
    assert res.status_code == 400


def test_duplicate_peo_number(client, academic, admin_headers):
    payload = {"degree_id": academic["degree_id"], "PEO_No": 1, "PEO_Description": "x"}
    assert client.post("/api/peos", json=payload, headers=admin_headers).status_code == 201
    assert client.post("/api/peos", json=payload, headers=admin_headers).status_code == 409


def test_default_targets_follow_settings(client, academic, teacher_headers, admin_headers, monkeypatch):
    from config.settings import settings

    monkeypatch.setattr(settings, "DEFAULT_CLO_TARGET", 75.0)
    monkeypatch.setattr(settings, "DEFAULT_PLO_TARGET", 70.0)

    clo = client.post("/api/clos", json={
        "course_id": academic["course_id"], "CLO_ID": "CLO5", "CLO_Description": "Test software",
    }, headers=teacher_headers)
    assert clo.json()["data"]["target_attainment"] == 75.0

    plo = client.post("/api/plos", json={
        "degree_id": academic["degree_id"], "PLO_No": 9, "PLO_Description": "Ethics",
    }, headers=admin_headers)
    assert plo.json()["data"]["target_attainment"] == 70.0
