"""
PlanBench - Dataset Loader Tests
================================
CSV parsing, the Domo client (through httpx.MockTransport) and the
Domo -> CSV fallback.
"""

import httpx
import pytest

from models import DataSource
from dataset_loader import (
    DATASET_COLUMNS,
    DEFAULT_CSV_PATH,
    BenchmarkDataError,
    BenchmarkDataLoader,
    DomoClient,
    load_from_csv,
    parse_benchmark_csv,
)


HEADER = ",".join(DATASET_COLUMNS)

CSV_WITH_HEADERS = "\n".join([
    HEADER,
    ",,,,,,,FDI 2024,Advisor Fee,$3-5m,All,0.0035,0.0050,0.0075,,,,,,,,,,,,",
    ",,,,,,,FDI 2024,TPA Fee,$3-5m,,0.0008,0.0012,n/a,,,,,,,,,,,,",
])

CSV_WITHOUT_HEADERS = "\n".join([
    "C1,SF1,D1,R1,2024-05-01,Acme Corp,1234,FDI 2024,Advisor Fee,$1-3m,All,0.0045,0.0065,0.0090,"
    "2500000,62000,,,,,,,,,,",
])


# Data row with more fields than the header
MALFORMED_CSV = CSV_WITH_HEADERS + "\n" + ",".join(["x"] * 40)


class FakeDomo:
    """Request handler standing in for the Domo API."""

    def __init__(
        self,
        csv_text=CSV_WITH_HEADERS,
        data_status=200,
        token_status=200,
        token_body=None
    ):
        self.csv_text = csv_text
        self.data_status = data_status
        self.token_status = token_status
        self.token_body = token_body
        self.token_requests = 0
        self.data_requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == "/oauth/token":
            self.token_requests += 1
            if self.token_status != 200:
                return httpx.Response(self.token_status, json={"error": "invalid_client"})
            if self.token_body is not None:
                return httpx.Response(200, text=self.token_body)
            return httpx.Response(200, json={"access_token": "token-123", "expires_in": 3600})

        self.data_requests.append(request)
        if self.data_status != 200:
            return httpx.Response(self.data_status, text="error")
        return httpx.Response(200, text=self.csv_text)


def make_client(handler) -> DomoClient:
    return DomoClient(
        client_id="client",
        client_secret="secret",
        api_base="https://domo.test",
        transport=httpx.MockTransport(handler),
    )


@pytest.fixture
def unconfigured_domo(monkeypatch):
    monkeypatch.delenv("DOMO_CLIENT_ID", raising=False)
    monkeypatch.delenv("DOMO_CLIENT_SECRET", raising=False)
    return DomoClient()


# =============================================================================
# CSV PARSING TESTS
# =============================================================================

class TestCsvParsing:
    """Test mapping dataset columns to rows."""

    def test_parse_with_headers(self):
        rows = parse_benchmark_csv(CSV_WITH_HEADERS)

        assert len(rows) == 2
        assert rows[0].source == "FDI 2024"
        assert rows[0].fee_type_label == "Advisor Fee"
        assert rows[0].aum_bucket == "$3-5m"
        assert rows[0].p50 == pytest.approx(0.005)

    def test_blank_balance_and_bad_numbers(self):
        """Blank BMAvgBalance becomes "All"; unparseable numbers become 0."""
        tpa = parse_benchmark_csv(CSV_WITH_HEADERS)[1]
        assert tpa.balance_bucket == "All"
        assert tpa.p75 == 0

    def test_parse_without_headers(self):
        rows = parse_benchmark_csv(CSV_WITHOUT_HEADERS)

        assert len(rows) == 1
        assert rows[0].client_id == "C1"
        assert rows[0].client_name == "Acme Corp"
        assert rows[0].aum_bucket == "$1-3m"
        assert rows[0].avg_balance == 62000

    def test_byte_order_mark_stripped(self):
        rows = parse_benchmark_csv("\ufeff" + CSV_WITH_HEADERS)
        assert rows[0].fee_type_label == "Advisor Fee"

    def test_load_from_csv(self, tmp_path):
        path = tmp_path / "benchmarks.csv"
        path.write_text(CSV_WITH_HEADERS, encoding="utf-8")
        assert len(load_from_csv(path)) == 2

    def test_load_from_missing_csv(self, tmp_path):
        with pytest.raises(BenchmarkDataError):
            load_from_csv(tmp_path / "missing.csv")

    def test_bundled_fallback_file(self):
        """The shipped fallback file parses and carries the current vintage."""
        rows = load_from_csv(DEFAULT_CSV_PATH)
        assert len(rows) > 0
        assert any(row.source == "FDI 2024" for row in rows)


# =============================================================================
# DOMO CLIENT TESTS
# =============================================================================

class TestDomoClient:
    """Test authentication, export and error mapping."""

    def test_fetch_rows(self):
        domo = FakeDomo()
        rows = make_client(domo).fetch_benchmark_rows("dataset-1")

        assert len(rows) == 2
        request = domo.data_requests[0]
        assert request.url.path == "/v1/datasets/dataset-1/data"
        assert request.headers["Accept"] == "text/csv"
        assert request.headers["Authorization"] == "Bearer token-123"

    def test_token_is_cached(self):
        domo = FakeDomo()
        client = make_client(domo)

        client.fetch_dataset_csv("dataset-1")
        client.fetch_dataset_csv("dataset-1")

        assert domo.token_requests == 1
        assert len(domo.data_requests) == 2

    def test_unauthorized_clears_token(self):
        domo = FakeDomo(data_status=401)
        client = make_client(domo)

        with pytest.raises(BenchmarkDataError, match="expired"):
            client.fetch_dataset_csv("dataset-1")
        assert client._token is None

    def test_auth_failure(self):
        client = make_client(FakeDomo(token_status=401))
        with pytest.raises(BenchmarkDataError, match="authentication failed"):
            client.fetch_dataset_csv("dataset-1")

    def test_server_error(self):
        client = make_client(FakeDomo(data_status=500))
        with pytest.raises(BenchmarkDataError):
            client.fetch_dataset_csv("dataset-1")

    def test_token_response_without_token(self):
        client = make_client(FakeDomo(token_body='{"error": "nope"}'))
        with pytest.raises(BenchmarkDataError, match="token response"):
            client.fetch_dataset_csv("dataset-1")

    def test_token_response_not_json(self):
        client = make_client(FakeDomo(token_body="<html>gateway timeout</html>"))
        with pytest.raises(BenchmarkDataError, match="token response"):
            client.fetch_dataset_csv("dataset-1")

    def test_empty_export(self):
        client = make_client(FakeDomo(csv_text=""))
        with pytest.raises(BenchmarkDataError):
            client.fetch_benchmark_rows("dataset-1")

    def test_malformed_export(self):
        client = make_client(FakeDomo(csv_text=MALFORMED_CSV))
        with pytest.raises(BenchmarkDataError, match="could not be parsed"):
            client.fetch_benchmark_rows("dataset-1")

    def test_unconfigured_client(self, unconfigured_domo):
        assert not unconfigured_domo.is_configured


# =============================================================================
# LOADER TESTS
# =============================================================================

class TestBenchmarkDataLoader:
    """Test source order, fallback and caching."""

    @pytest.fixture
    def csv_path(self, tmp_path):
        path = tmp_path / "fallback.csv"
        path.write_text(CSV_WITH_HEADERS, encoding="utf-8")
        return path

    def test_domo_first(self, csv_path):
        loader = BenchmarkDataLoader(
            domo_client=make_client(FakeDomo(csv_text=CSV_WITHOUT_HEADERS)),
            csv_path=csv_path
        )
        dataset = loader.load()

        assert dataset.data_source == DataSource.DOMO
        assert len(dataset) == 1

    def test_falls_back_to_csv(self, csv_path, caplog):
        loader = BenchmarkDataLoader(
            domo_client=make_client(FakeDomo(data_status=500)),
            csv_path=csv_path
        )
        dataset = loader.load()

        assert dataset.data_source == DataSource.CSV
        assert len(dataset) == 2
        assert "falling back" in caplog.text

    @pytest.mark.parametrize("domo", [
        FakeDomo(token_body='{"error": "nope"}'),
        FakeDomo(token_body="not json"),
        FakeDomo(csv_text=""),
        FakeDomo(csv_text=MALFORMED_CSV),
    ])
    def test_malformed_domo_response_falls_back_to_csv(self, csv_path, domo):
        """Unusable Domo responses fall back to the CSV file instead of failing."""
        loader = BenchmarkDataLoader(domo_client=make_client(domo), csv_path=csv_path)
        dataset = loader.load()

        assert dataset.data_source == DataSource.CSV
        assert len(dataset) == 2

    def test_csv_when_domo_not_configured(self, csv_path, unconfigured_domo):
        loader = BenchmarkDataLoader(domo_client=unconfigured_domo, csv_path=csv_path)
        assert loader.load().data_source == DataSource.CSV

    def test_both_sources_fail(self, tmp_path):
        loader = BenchmarkDataLoader(
            domo_client=make_client(FakeDomo(data_status=500)),
            csv_path=tmp_path / "missing.csv"
        )
        with pytest.raises(BenchmarkDataError):
            loader.load()
        assert loader.dataset is None

    def test_dataset_is_cached(self, csv_path, unconfigured_domo):
        loader = BenchmarkDataLoader(domo_client=unconfigured_domo, csv_path=csv_path)
        first = loader.load()

        csv_path.unlink()
        assert loader.load() is first

        with pytest.raises(BenchmarkDataError):
            loader.load(force_reload=True)

    def test_dataset_source_vintage(self, csv_path, unconfigured_domo):
        loader = BenchmarkDataLoader(
            domo_client=unconfigured_domo,
            csv_path=csv_path,
            source="FDI 2023"
        )
        assert loader.load().source == "FDI 2023"


if __name__ == "__main__":
    pytest.main([__file__, "-v", "--tb=short"])
