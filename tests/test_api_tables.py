"""API tests for training table CRUD, import/export, and analysis."""

import json

from fastapi.testclient import TestClient

from backend.services.table_service import DEFAULT_ENCODING


def test_root(client: TestClient):
    r = client.get("/")
    assert r.status_code == 200
    data = r.json()
    assert data["service"] == "DXTREE"
    assert "api" in data


def test_list_tables_empty(client: TestClient):
    r = client.get("/api/tables/")
    assert r.status_code == 200
    assert r.json() == []


def test_create_and_get_table(client: TestClient, sample_table_data):
    r = client.post("/api/tables/", json=sample_table_data)
    assert r.status_code == 201
    assert r.json()["id"] == "sample-respiratory"

    r2 = client.get("/api/tables/sample-respiratory")
    assert r2.status_code == 200
    assert r2.json()["columns"] == sample_table_data["columns"]

    listed = client.get("/api/tables/").json()
    assert listed[0]["rows"] == len(sample_table_data["rows"])


def test_create_assigns_id(client: TestClient, sample_table_data):
    sample_table_data.pop("id")
    r = client.post("/api/tables/", json=sample_table_data)
    assert r.status_code == 201
    assert r.json()["id"].startswith("tbl-")


def test_create_invalid_table(client: TestClient):
    body = {"columns": ["Fever"], "rows": [{"disease": "Flu", "values": ["strong", "medium"]}]}
    r = client.post("/api/tables/", json=body)
    assert r.status_code == 400
    codes = [e["code"] for e in r.json()["detail"]["errors"]]
    assert codes == ["column_count_mismatch"]


def test_validate_endpoint(client: TestClient, sample_table_data):
    r = client.post("/api/tables/validate", json=sample_table_data)
    assert r.status_code == 200
    assert r.json() == {"errors": [], "valid": True}


def test_update_table(client: TestClient, sample_table_data):
    client.post("/api/tables/", json=sample_table_data)
    sample_table_data["name"] = "Renamed"
    r = client.put("/api/tables/sample-respiratory", json=sample_table_data)
    assert r.status_code == 200
    assert client.get("/api/tables/sample-respiratory").json()["name"] == "Renamed"

    r2 = client.put("/api/tables/other-id", json=sample_table_data)
    assert r2.status_code == 400


def test_delete_table(client: TestClient, sample_table_data):
    client.post("/api/tables/", json=sample_table_data)
    r = client.delete("/api/tables/sample-respiratory")
    assert r.status_code == 204
    assert client.get("/api/tables/sample-respiratory").status_code == 404
    assert client.delete("/api/tables/sample-respiratory").status_code == 404


def test_import_and_export(client: TestClient, sample_table_data):
    raw = json.dumps(sample_table_data).encode("utf-8")
    r = client.post("/api/tables/import", files={"file": ("tableData.json", raw, "application/json")})
    assert r.status_code == 201

    exported = client.get("/api/tables/sample-respiratory/export")
    assert exported.status_code == 200
    assert "attachment" in exported.headers["content-disposition"]
    assert exported.json()["rows"] == sample_table_data["rows"]


def test_import_rejects_bad_files(client: TestClient):
    r = client.post("/api/tables/import", files={"file": ("x.json", b"{not json", "application/json")})
    assert r.status_code == 400
    r2 = client.post("/api/tables/import", files={"file": ("x.json", b'{"columns": "Fever"}', "application/json")})
    assert r2.status_code == 400


def test_tree_endpoint(client: TestClient, sample_table_data):
    client.post("/api/tables/", json=sample_table_data)
    r = client.get("/api/tables/sample-respiratory/tree", params={"encoding": "binary"})
    assert r.status_code == 200
    data = r.json()
    assert data["summary"]["encoding"] == "binary"
    assert data["tree"]["kind"] == "binary"
    assert set(data["summary"]["categories"]) == {row["disease"] for row in sample_table_data["rows"]}


def test_predict_for_table(client: TestClient, sample_table_data, questionnaire_cases):
    client.post("/api/tables/", json=sample_table_data)
    case = next(c for c in questionnaire_cases if c["expected"] == "Flu")
    r = client.post("/api/tables/sample-respiratory/predict", json={"answers": case["answers"]})
    assert r.status_code == 200
    data = r.json()
    assert data["category"] == "Flu"
    assert data["encoding"] == "multiway"
    assert "Viral infection" in data["description"]

    entries = [{"attribute": k, "value": v} for k, v in case["answers"].items()]
    r2 = client.post(
        "/api/tables/sample-respiratory/predict",
        json={"answers": entries, "options": {"encoding": "binary"}},
    )
    assert r2.status_code == 200
    assert r2.json()["category"] == "Flu"

    metrics = client.get("/api/metrics").json()
    assert metrics["tables_total"] == 1
    assert metrics["predictions_total"] == 2
    assert metrics["top_categories"][0] == {"category": "Flu", "count": 2}


def test_predict_with_missing_answers_uses_fallback(client: TestClient, sample_table_data):
    client.post("/api/tables/", json=sample_table_data)
    r = client.post("/api/tables/sample-respiratory/predict", json={"answers": {}})
    assert r.status_code == 200
    data = r.json()
    assert data["category"] in {row["disease"] for row in sample_table_data["rows"]}
    assert all(step["fallback"] for step in data["path"])


def test_predict_empty_table(client: TestClient):
    client.post("/api/tables/", json={"id": "empty", "columns": ["Fever"], "rows": []})
    r = client.post("/api/tables/empty/predict", json={"answers": {"Fever": "strong"}})
    assert r.status_code == 422
    r2 = client.post(
        "/api/tables/empty/predict",
        json={"answers": {"Fever": "strong"}, "options": {"unknown_on_empty": True}},
    )
    assert r2.status_code == 200
    assert r2.json()["category"] == "unknown"


def test_predict_unknown_table(client: TestClient):
    r = client.post("/api/tables/nope/predict", json={"answers": {}})
    assert r.status_code == 404


def test_evaluate_table(client: TestClient, sample_table_data):
    client.post("/api/tables/", json=sample_table_data)
    r = client.post("/api/tables/sample-respiratory/evaluate", json={"encoding": "binary"})
    assert r.status_code == 200
    data = r.json()
    assert data["encoding"] == "binary"
    assert data["passed"] == data["total"] == len(sample_table_data["rows"])


def test_inline_predict(client: TestClient, sample_table_data, questionnaire_cases):
    case = next(c for c in questionnaire_cases if c["expected"] == "Migraine")
    r = client.post("/api/predict/", json={"table": sample_table_data, "answers": case["answers"]})
    assert r.status_code == 200
    assert r.json()["category"] == "Migraine"
    assert client.get("/api/tables/").json() == []


def test_health(client: TestClient):
    r = client.get("/api/health")
    assert r.status_code == 200
    assert r.json()["checks"]["database"]["status"] == "up"


def test_import_editor_file_without_levels(client: TestClient):
    editor_file = {
        "columns": ["Febre", "Tosse"],
        "rows": [
            {"disease": "Gripe", "values": ["Forte", "Médio"]},
            {"disease": "Resfriado", "values": ["Irrelevante", "Forte"]},
        ],
    }
    raw = json.dumps(editor_file, ensure_ascii=False).encode("utf-8")
    r = client.post("/api/tables/import", files={"file": ("tableData.json", raw, "application/json")})
    assert r.status_code == 201
    data = r.json()
    assert data["levels"] == ["Forte", "Médio", "Irrelevante"]
    assert data["not_applicable"] == "Irrelevante"

    r2 = client.post(f"/api/tables/{data['id']}/predict", json={"answers": {"Febre": "Forte", "Tosse": "Médio"}})
    assert r2.status_code == 200
    assert r2.json()["category"] == "Gripe"


def test_tree_endpoint_uses_default_encoding(client: TestClient, sample_table_data):
    client.post("/api/tables/", json=sample_table_data)
    r = client.get("/api/tables/sample-respiratory/tree")
    assert r.status_code == 200
    assert r.json()["summary"]["encoding"] == DEFAULT_ENCODING
