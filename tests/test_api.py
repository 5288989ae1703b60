"""
Expat RRS - API Tests
=====================
HTTP contract tests using FastAPI's TestClient.
"""

import os
import sys

import pytest
from fastapi.testclient import TestClient

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'backend'))

import main
from main import app


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def payload():
    return {
        "age": 35,
        "currentSalary": 60000,
        "currentSavings": 50000,
        "monthlySavings": 500,
        "riskTolerance": "medium",
        "retirementAge": 67,
    }


class TestCalculateEndpoint:
    """POST /api/calculate and its /calculate alias."""

    def test_success(self, client, payload):
        response = client.post("/api/calculate", json=payload)
        assert response.status_code == 200

        body = response.json()
        assert body["success"] is True
        assert body["data"]["results"]["score"] == 79
        assert body["data"]["score"]["overall"] == 79
        assert body["data"]["score"]["category"] == "Good"
        assert len(body["data"]["score"]["breakdown"]) == 10

    def test_catalogue_in_results(self, client, payload):
        results = client.post("/api/calculate", json=payload).json()["data"]["results"]
        assert results["investment_ideas"][0]["id"] == "global_etf_portfolio"
        assert "company_pension" in [plan["id"] for plan in results["pension_plans"]]
        assert "ruerup_deduction" not in [benefit["id"] for benefit in results["tax_benefits"]]

    def test_amount_above_limit(self, client, payload):
        payload["currentSavings"] = 1e308
        response = client.post("/api/calculate", json=payload)

        assert response.status_code == 400
        assert response.json()["code"] == "out_of_range"
        assert response.json()["field"] == "currentSavings"

    def test_alias_route(self, client, payload):
        primary = client.post("/api/calculate", json=payload).json()
        alias = client.post("/calculate", json=payload).json()
        assert primary == alias

    def test_recommendation_shape(self, client, payload):
        recs = client.post("/api/calculate", json=payload).json()["data"]["score"]["recommendations"]
        assert recs[-1]["impact"] == "Low"
        for rec in recs:
            assert set(rec) == {"title", "description", "impact", "priority"}
            assert rec["priority"] == rec["impact"]

    def test_missing_field(self, client, payload):
        del payload["riskTolerance"]
        response = client.post("/api/calculate", json=payload)

        assert response.status_code == 400
        body = response.json()
        assert "riskTolerance" in body["error"]
        assert body["field"] == "riskTolerance"
        assert body["code"] == "missing_field"

    def test_invalid_ordering(self, client, payload):
        payload["age"] = 40
        payload["retirementAge"] = 35
        response = client.post("/api/calculate", json=payload)

        assert response.status_code == 400
        assert response.json()["code"] == "invalid_ordering"

    def test_invalid_json(self, client):
        response = client.post(
            "/api/calculate",
            content="not json",
            headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 400
        assert response.json()["field"] == "body"

    def test_non_object_body(self, client):
        response = client.post("/api/calculate", json=[1, 2, 3])
        assert response.status_code == 400

    def test_unexpected_failure(self, payload, monkeypatch):
        def boom(profile):
            raise RuntimeError("boom")

        monkeypatch.setattr(main.calculator, "calculate", boom)
        client = TestClient(app, raise_server_exceptions=False)
        response = client.post("/api/calculate", json=payload)

        assert response.status_code == 500
        assert response.json()["error"] == "Internal server error"


class TestOtherEndpoints:
    """Validation, simulation, timeline and reference data."""

    def test_validate(self, client, payload):
        response = client.post("/api/validate", json=payload)
        assert response.status_code == 200

        data = response.json()["data"]
        assert data["gross_monthly_income"] == 5000
        assert data["employment_type"] == "employed"
        assert data["years_to_retirement"] == 32

    def test_simulate(self, client, payload):
        response = client.post("/api/simulate", json={
            "profile": payload,
            "changes": {"extra_monthly_savings": 300},
            "scenario_name": "Save More"
        })
        assert response.status_code == 200

        data = response.json()["data"]
        assert data["scenario_name"] == "Save More"
        assert data["projected_savings_difference"] > 0

    def test_simulate_action_plan(self, client, payload):
        response = client.post("/api/simulate", json={"profile": payload, "use_action_plan": True})
        assert response.status_code == 200
        assert response.json()["data"]["scenario_name"] == "Follow Action Plan"

    def test_simulate_invalid_profile(self, client, payload):
        payload["age"] = 10
        response = client.post("/api/simulate", json={"profile": payload, "changes": {}})
        assert response.status_code == 400
        assert response.json()["field"] == "age"

    def test_simulate_missing_profile(self, client):
        response = client.post("/api/simulate", json={"changes": {}})
        assert response.status_code == 400
        assert response.json()["field"] == "profile"

    def test_timeline(self, client, payload):
        response = client.post("/api/timeline", json=payload)
        assert response.status_code == 200

        data = response.json()["data"]
        assert data["years_to_retirement"] == 32
        assert len(data["timeline"]) == 33
        assert data["timeline"][0] == {
            "year": 0,
            "age": 35,
            "contributions": 50000.0,
            "balance": 50000.0,
            "growth": 0.0,
        }

    def test_reference_brackets(self, client):
        body = client.get("/api/reference/brackets").json()
        assert body["tax_year"] == 2024
        assert len(body["brackets"]) == 5
        assert body["brackets"][-1]["to"] == "unlimited"

    def test_reference_assumptions(self, client):
        body = client.get("/api/reference/assumptions").json()
        assert body["investment_returns"] == {"low": 0.04, "medium": 0.06, "high": 0.08}
        assert body["safe_withdrawal_rate"] == 0.04

    def test_health(self, client):
        assert client.get("/").json()["status"] == "healthy"
        assert client.get("/api/health").status_code == 200
