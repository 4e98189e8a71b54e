"""HTTP boundary tests: JSON in, JSON out, typed error codes."""
from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from turbopivot.app import app
from turbopivot.config import reset_settings, update_settings


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def data_dir(tmp_path):
    (tmp_path / "sales.csv").write_text(
        "region,quarter,amount\n"
        "east,Q1,10\n"
        "east,Q2,20\n"
        "west,Q1,30\n"
        "west,Q1,40\n"
    )
    update_settings({"data_root": str(tmp_path)})
    yield tmp_path
    reset_settings()


def test_health(client):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_columns(client, data_dir):
    resp = client.get("/api/columns", params={"path": str(data_dir / "sales.csv")})
    assert resp.status_code == 200
    assert resp.json() == {"columns": ["region", "quarter", "amount"]}


def test_columns_missing_file(client, data_dir):
    resp = client.get("/api/columns", params={"path": "nope.csv"})
    assert resp.status_code == 404
    assert resp.json()["detail"]["code"] == "NotFound"


def test_pivot_relative_path(client, data_dir):
    resp = client.post("/api/pivot", json={
        "data_path": "sales.csv",
        "rows": ["region"],
        "columns": ["quarter"],
        "values": [{"field": "amount", "aggregation": "Sum"}],
        "filters": None,
    })
    assert resp.status_code == 200
    body = resp.json()
    assert body["row_headers"] == ["region"]
    assert body["column_headers"] == [["Q1"], ["Q2"]]
    assert body["data"] == [
        {"region": "east", "Q1_amount_Sum": 10, "Q2_amount_Sum": 20},
        {"region": "west", "Q1_amount_Sum": 70, "Q2_amount_Sum": None},
    ]


def test_pivot_with_filter(client, data_dir):
    resp = client.post("/api/pivot", json={
        "data_path": "sales.csv",
        "rows": ["region"],
        "columns": [],
        "values": [{"field": "amount", "aggregation": "Mean"}],
        "filters": [{"column": "amount", "operator": "GreaterThan", "value": 15}],
    })
    assert resp.status_code == 200
    assert resp.json()["data"] == [
        {"region": "east", "amount_Mean": 20.0},
        {"region": "west", "amount_Mean": 35.0},
    ]


def test_pivot_unknown_column(client, data_dir):
    resp = client.post("/api/pivot", json={
        "data_path": "sales.csv",
        "rows": ["country"],
        "values": [{"field": "amount", "aggregation": "Sum"}],
    })
    assert resp.status_code == 400
    assert resp.json()["detail"]["code"] == "UnknownColumn"


def test_pivot_aggregation_not_applicable(client, data_dir):
    resp = client.post("/api/pivot", json={
        "data_path": "sales.csv",
        "values": [{"field": "region", "aggregation": "Median"}],
    })
    assert resp.status_code == 400
    assert resp.json()["detail"]["code"] == "AggregationNotApplicable"


def test_pivot_empty_values(client, data_dir):
    resp = client.post("/api/pivot", json={"data_path": "sales.csv", "rows": ["region"], "values": []})
    assert resp.status_code == 400
    assert resp.json()["detail"]["code"] == "EmptyValueFields"


def test_pivot_unknown_aggregation_literal(client, data_dir):
    resp = client.post("/api/pivot", json={
        "data_path": "sales.csv",
        "values": [{"field": "amount", "aggregation": "sum"}],
    })
    assert resp.status_code == 422


def test_pivot_unsupported_format(client, data_dir):
    resp = client.post("/api/pivot", json={
        "data_path": "sales.json",
        "values": [{"field": "amount", "aggregation": "Sum"}],
    })
    assert resp.status_code == 400
    assert resp.json()["detail"]["code"] == "UnsupportedFormat"


def test_pivot_label_collision(client, tmp_path):
    (tmp_path / "codes.csv").write_text("a,b,amount\nx_y,z,1\nx,y_z,2\n")
    resp = client.post("/api/pivot", json={
        "data_path": str(tmp_path / "codes.csv"),
        "columns": ["a", "b"],
        "values": [{"field": "amount", "aggregation": "Sum"}],
    })
    assert resp.status_code == 400
    assert resp.json()["detail"]["code"] == "LabelCollision"
