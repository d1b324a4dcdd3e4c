"""Integration tests for API endpoints"""

import logging

import pytest
from fastapi.testclient import TestClient


@pytest.fixture
def shortfall_payload(forecast_payload):
    """$500 balance, a $1,000 bill on Jan 3 and no income"""
    return {
        **forecast_payload,
        "accounts": [{**forecast_payload["accounts"][0], "current_balance": 500}],
        "income_streams": [],
        "recurring_payments": [
            {
                **forecast_payload["recurring_payments"][0],
                "merchant": "Energy Co",
                "category": "Utilities",
                "expected_amount": 1_000,
                "last_occurrence": "2024-12-03",
                "next_expected": "2025-01-03",
            }
        ],
        "config": {"forecast_days": 30},
    }


def test_health_endpoint(client: TestClient):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_metrics_endpoint(client: TestClient):
    """Test Prometheus metrics endpoint"""
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "cashflow_forecast_total" in response.text


def test_forecast_endpoint(client: TestClient, forecast_payload: dict):
    """Test POST /v1/forecast for the baseline snapshot"""
    response = client.post("/v1/forecast", json=forecast_payload)

    assert response.status_code == 200
    data = response.json()
    assert data["user_id"] == "user_api"
    assert data["generated_on"] == "2025-01-01"
    assert len(data["global_forecast"]) == 90
    assert data["global_forecast"][-1]["predicted_balance"] == pytest.approx(11_500.0)
    assert data["shortfall_analysis"]["has_shortfall"] is False
    assert data["account_forecasts"][0]["account_type"] == "TRANSACTIONAL"
    assert data["summary"]["net_cashflow_30"] == pytest.approx(500.0)


def test_forecast_endpoint_shortfall(client: TestClient, shortfall_payload: dict):
    response = client.post("/v1/forecast", json=shortfall_payload)

    assert response.status_code == 200
    shortfalls = response.json()["shortfall_analysis"]
    assert shortfalls["has_shortfall"] is True
    assert shortfalls["first_shortfall_date"] == "2025-01-03"
    assert shortfalls["max_shortfall_amount"] == pytest.approx(500.0)


def test_forecast_default_horizon(client: TestClient, forecast_payload: dict):
    payload = {key: value for key, value in forecast_payload.items() if key != "config"}

    response = client.post("/v1/forecast", json=payload)

    assert response.status_code == 200
    assert response.json()["metadata"]["forecast_days"] == 90


def test_forecast_rejects_horizon_over_maximum(client: TestClient, forecast_payload: dict):
    response = client.post("/v1/forecast", json={**forecast_payload, "config": {"forecast_days": 5000}})

    assert response.status_code == 422
    assert "exceeds maximum" in response.json()["detail"]


def test_forecast_rejects_duplicate_accounts(client: TestClient, forecast_payload: dict):
    payload = {**forecast_payload, "accounts": forecast_payload["accounts"] * 2}

    response = client.post("/v1/forecast", json=payload)

    assert response.status_code == 422
    assert "Duplicate" in response.json()["detail"]


def test_forecast_invalid_request(client: TestClient):
    """Schema validation rejects a bad horizon and missing user"""
    response = client.post("/v1/forecast", json={"user_id": "u", "config": {"forecast_days": 0}})
    assert response.status_code == 422

    response = client.post("/v1/forecast", json={"accounts": []})
    assert response.status_code == 422


def test_optimisation_endpoint(client: TestClient, forecast_payload: dict):
    """Interest-only loan the surplus can afford to switch to P&I"""
    payload = {
        **forecast_payload,
        "loan_schedules": [
            {
                "loan_id": "loan_io",
                "loan_name": "Investment Loan",
                "principal": 50_000,
                "interest_rate": 0.05,
                "monthly_repayment": 208.33,
                "repayment_day": 15,
                "is_interest_only": True,
            }
        ],
    }

    response = client.post("/v1/optimisations", json=payload)

    assert response.status_code == 200
    data = response.json()
    assert data["break_even_day"] == 1
    (repayment,) = data["repayment_optimisations"]
    assert repayment["recommended_strategy"] == "Principal & Interest"
    assert repayment["interest_savings"] == pytest.approx(3_750.0)
    assert data["strategies"][0]["type"] == "REPAYMENT_OPTIMISE"
    assert data["strategies"][0]["status"] == "PENDING"
    assert data["summary"]["strategy_count"] == len(data["strategies"])


def test_optimisation_endpoint_custom_benchmarks(client: TestClient, forecast_payload: dict):
    payload = {
        **forecast_payload,
        "transactions": [
            {
                "id": f"txn_{month}",
                "account_id": "acc_everyday",
                "date": f"2024-{month:02d}-10",
                "amount": 900,
                "direction": "OUT",
                "category_level1": "Groceries",
            }
            for month in (10, 11, 12)
        ],
        "benchmarks": {"Groceries": 300},
    }

    response = client.post("/v1/optimisations", json=payload)

    assert response.status_code == 200
    (inefficiency,) = response.json()["inefficiencies"]
    assert inefficiency["merchant_or_category"] == "Groceries"
    assert inefficiency["potential_savings"] == pytest.approx(600.0)


def test_list_scenarios(client: TestClient):
    response = client.get("/v1/stress-tests/scenarios")

    assert response.status_code == 200
    scenarios = response.json()["scenarios"]
    assert len(scenarios) == 9
    assert scenarios[0]["id"] == "income-drop-50"
    assert scenarios[0]["parameters"]["income_drop_percent"] == 50


def test_stress_test_endpoint(client: TestClient, forecast_payload: dict):
    payload = {
        **forecast_payload,
        "scenario_ids": ["income-loss-100"],
        "custom_scenarios": [
            {
                "name": "Car dies",
                "description": "Replace the car",
                "parameters": {"expense_shock_amount": 2_000},
            }
        ],
    }

    response = client.post("/v1/stress-tests", json=payload)

    assert response.status_code == 200
    data = response.json()
    results = data["scenario_results"]
    assert [r["scenario_id"] for r in results] == ["income-loss-100", "custom-car-dies"]
    assert results[0]["survival_time"] == pytest.approx(2.1)
    assert results[1]["survival_time"] == pytest.approx(3.0)
    # (70 + 100) / 2
    assert data["resilience_score"] == 85
    assert data["baseline_result"]["scenario_id"] == "baseline"


def test_stress_test_all_scenarios_by_default(client: TestClient, forecast_payload: dict):
    response = client.post("/v1/stress-tests", json=forecast_payload)

    assert response.status_code == 200
    assert len(response.json()["scenario_results"]) == 9


def test_stress_test_unknown_scenario(client: TestClient, forecast_payload: dict):
    response = client.post("/v1/stress-tests", json={**forecast_payload, "scenario_ids": ["meteor-strike"]})

    assert response.status_code == 422
    assert "meteor-strike" in response.json()["detail"]


def test_stress_test_invalid_parameters(client: TestClient, forecast_payload: dict):
    payload = {
        **forecast_payload,
        "scenario_ids": [],
        "custom_scenarios": [{"name": "Bad", "parameters": {"income_drop_percent": 150}}],
    }

    response = client.post("/v1/stress-tests", json=payload)

    assert response.status_code == 422


def test_insights_endpoint(client: TestClient, shortfall_payload: dict):
    response = client.post("/v1/insights", json=shortfall_payload)

    assert response.status_code == 200
    data = response.json()
    assert data["user_id"] == "user_api"
    assert data["insights"][0]["severity"] == "CRITICAL"
    assert data["insights"][0]["title"] == "Cash Shortfall Imminent"
    assert data["high_priority_count"] >= 1
    assert data["total_savings_potential"] >= 0


def test_insights_endpoint_with_stress(client: TestClient, forecast_payload: dict):
    response = client.post(
        "/v1/insights",
        json={**forecast_payload, "include_optimisation": False, "include_stress": True},
    )

    assert response.status_code == 200
    ids = [insight["id"] for insight in response.json()["insights"]]
    assert any(insight_id.startswith("insight-vulnerable-scenario") for insight_id in ids)


def test_insights_endpoint_logs_outcome(client: TestClient, shortfall_payload: dict, caplog):
    caplog.set_level(logging.INFO)

    response = client.post("/v1/insights", json=shortfall_payload, headers={"X-Request-ID": "req-insights"})

    assert response.status_code == 200
    (record,) = [r for r in caplog.records if r.getMessage() == "Insights generated"]
    assert record.request_id == "req-insights"
    assert record.step == "insights_complete"
    assert record.insight_count == len(response.json()["insights"])
    assert record.high_priority_count == response.json()["high_priority_count"]


def test_request_id_header(client: TestClient):
    """Caller's X-Request-ID is echoed back; otherwise one is generated"""
    response = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"

    response = client.get("/health")
    assert response.headers["X-Request-ID"]
