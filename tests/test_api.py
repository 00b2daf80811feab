"""
PlanBench - API Tests
=====================
Endpoint tests against the bundled fallback CSV.
"""

import inspect

import pytest
from fastapi.testclient import TestClient

import main
from dataset_loader import DEFAULT_CSV_PATH, BenchmarkDataLoader, DomoClient


PLAN = {
    "assets_under_management": 4_000_000,
    "participant_count": 50,
    "fees": {
        "advisor": {"type": "basisPoints", "basis_points": 60},
        "record_keeper": {"type": "flatFee", "flat_fee": 6000},
        "tpa": {"type": "flatPlusPerHead", "flat_fee": 2000, "per_head_fee": 40},
        "investment_menu": {"type": "basisPoints", "basis_points": 10},
    },
    "services": {
        "advisor": {"investment_menu_selection": True, "fiduciary_support_321": True},
    },
}


def _loader(csv_path, monkeypatch) -> BenchmarkDataLoader:
    monkeypatch.delenv("DOMO_CLIENT_ID", raising=False)
    monkeypatch.delenv("DOMO_CLIENT_SECRET", raising=False)
    return BenchmarkDataLoader(domo_client=DomoClient(), csv_path=csv_path)


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr(main, "benchmark_loader", _loader(DEFAULT_CSV_PATH, monkeypatch))
    return TestClient(main.app)


@pytest.fixture
def broken_client(monkeypatch, tmp_path):
    """Client whose benchmark data cannot be loaded."""
    monkeypatch.setattr(main, "benchmark_loader", _loader(tmp_path / "missing.csv", monkeypatch))
    return TestClient(main.app)


# =============================================================================
# STATUS ENDPOINTS
# =============================================================================

class TestStatusEndpoints:

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["service"] == "PlanBench"

    def test_health_before_and_after_load(self, client):
        assert client.get("/api/health").json()["components"]["benchmark_data"] == "not_loaded"

        client.get("/api/benchmark")
        health = client.get("/api/health").json()
        assert health["components"]["benchmark_data"] == "loaded"
        assert health["data_source"] == "csv"


# =============================================================================
# BENCHMARK ENDPOINTS
# =============================================================================

class TestBenchmarkEndpoints:

    def test_benchmark_rows(self, client):
        body = client.get("/api/benchmark").json()

        assert body["success"] is True
        assert body["count"] == len(body["data"])
        assert body["data_source"] == "csv"

    def test_benchmark_rows_runs_in_threadpool(self):
        """The loader makes blocking HTTP calls, so the endpoint must be sync."""
        assert not inspect.iscoroutinefunction(main.get_benchmark_data)

    def test_benchmark_rows_load_failure(self, broken_client):
        response = broken_client.get("/api/benchmark")

        assert response.status_code == 500
        assert response.json()["success"] is False
        assert "error" in response.json()

    def test_buckets(self, client):
        body = client.get("/api/benchmark/buckets").json()
        assert "$3-5m" in body["aum_buckets"]
        assert body["source"] == "FDI 2024"

    def test_comparison(self, client):
        """Record keeper falls back to the $50-75k row when no "All" row exists."""
        response = client.post("/api/benchmark/comparison", json={"aum_bucket": "$3-5m"})
        body = response.json()

        assert response.status_code == 200
        assert body["advisor"]["p50"] == pytest.approx(0.005)
        assert body["record_keeper"] == {"p25": 0.0012, "p50": 0.0018, "p75": 0.0026}
        assert body["missing_categories"] == []

    def test_comparison_invalid_bucket(self, client):
        response = client.post("/api/benchmark/comparison", json={"aum_bucket": "$2-4m"})
        assert response.status_code == 422

    def test_comparison_without_data(self, broken_client):
        response = broken_client.post("/api/benchmark/comparison", json={"aum_bucket": "$3-5m"})
        assert response.status_code == 503


# =============================================================================
# CALCULATION ENDPOINTS
# =============================================================================

class TestCalculationEndpoints:

    def test_calculate_fees(self, client):
        body = client.post("/api/fees/calculate", json=PLAN).json()

        assert body["advisor"]["dollar_amount"] == pytest.approx(24_000)
        assert body["total"]["dollar_amount"] == pytest.approx(38_000)

    def test_calculate_fees_without_data(self, broken_client):
        """Fee math does not depend on benchmark data."""
        response = broken_client.post("/api/fees/calculate", json=PLAN)
        assert response.status_code == 200

    def test_negative_aum_rejected(self, client):
        response = client.post("/api/fees/calculate", json={"assets_under_management": -5})
        assert response.status_code == 422

    def test_service_score(self, client):
        response = client.post("/api/services/score", json={
            "services": PLAN["services"],
            "assets_under_management": 4_000_000,
        })
        body = response.json()

        assert response.status_code == 200
        assert body["score"]["breakdown"]["advisor"] == 33
        assert body["coverage"]["advisor"]["essential"]["provided"] == 2
        assert body["missing_essential_services"]["advisor"] == ["Compliance Assistance"]
        assert "essential 3x" in body["weighting"]

    def test_analysis(self, client):
        existing = PLAN
        proposed = {**PLAN, "fees": {**PLAN["fees"], "advisor": {"type": "basisPoints", "basis_points": 40}}}

        response = client.post("/api/analysis", json={"existing": existing, "proposed": proposed})
        body = response.json()

        assert response.status_code == 200
        assert body["aum_bucket"] == "$3-5m"
        assert body["existing"]["categories"]["advisor"]["position"] == "50th_to_75th"
        assert body["savings"]["total"]["dollar_savings"] == pytest.approx(8_000)
        assert body["savings"]["is_beneficial"] is True

    def test_analysis_without_data(self, broken_client):
        response = broken_client.post("/api/analysis", json={"existing": PLAN})
        assert response.status_code == 503


# =============================================================================
# SAMPLE & REFERENCE ENDPOINTS
# =============================================================================

class TestSampleAndReference:

    def test_sample_is_seeded(self, client):
        first = client.get("/api/sample", params={"seed": 7}).json()
        second = client.get("/api/sample", params={"seed": 7}).json()

        assert first == second
        assert set(first) == {"existing", "proposed"}

    def test_baselines(self, client):
        body = client.get("/api/reference/baselines").json()

        assert set(body["providers"]) == {"advisor", "record_keeper", "tpa", "audit"}
        assert body["tier_weights"] == {"essential": 3, "standard": 2, "premium": 1}
        assert body["plan_sizes"]["under5M"]["min_services"]["advisor"] == 3


if __name__ == "__main__":
    pytest.main([__file__, "-v", "--tb=short"])
