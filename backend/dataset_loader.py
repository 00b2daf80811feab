"""
PlanBench - Benchmark Dataset Loader
====================================
Loads the retirement fee benchmark dataset into an immutable
BenchmarkDataset.

Sources, in order:
1. Domo dataset API (when DOMO_CLIENT_ID / DOMO_CLIENT_SECRET are set)
2. Local CSV file with the same column layout

There is no retry policy: a failed primary source falls straight
through to the CSV file.
"""

import io
import logging
import os
import time
from pathlib import Path
from typing import List, Optional

import httpx
import pandas as pd

from fee_constants import MOST_RECENT_BENCHMARK_SOURCE
from models import BenchmarkDataset, BenchmarkRow, DataSource

logger = logging.getLogger(__name__)


# =============================================================================
# CONFIGURATION
# =============================================================================

DOMO_API_BASE = os.getenv("DOMO_API_BASE", "https://api.domo.com")
DOMO_DATASET_ID = os.getenv("DOMO_DATASET_ID", "38b1bcb9-55cf-4dc7-8978-867a9fc7021c")
DOMO_TIMEOUT_SECONDS = 10.0

# Refresh the token this long before it actually expires
TOKEN_EXPIRY_MARGIN_SECONDS = 300

DEFAULT_CSV_PATH = Path(__file__).resolve().parent / "data" / "benchmark_fallback.csv"
BENCHMARK_CSV_PATH = Path(os.getenv("BENCHMARK_CSV_PATH", str(DEFAULT_CSV_PATH)))
BENCHMARK_SOURCE = os.getenv("BENCHMARK_SOURCE", MOST_RECENT_BENCHMARK_SOURCE)

# Column order of a header-less Domo export
DATASET_COLUMNS = [
    "ClientID",
    "SalesforceAccountID",
    "D365AccountID",
    "ReportID",
    "CreationDate",
    "ClientName",
    "SIC",
    "BenchmarkSource",
    "Type",
    "BMAssets",
    "BMAvgBalance",
    "RetirementFee25th",
    "RetirementFee50th",
    "RetirementFee75th",
    "Assets",
    "AvgBalance",
    "RecordKeeperFeePrcnt",
    "AdvisorFeePrcnt",
    "InvestmentManagerFeePrcnt",
    "TPAFeePrcnt",
    "TotalPlanFeePrcnt",
    "RecordKeeperFeeDollars",
    "AdvisorFeeDollars",
    "InvestmentManagerFeeDollars",
    "TPAFeeDollars",
    "TotalPlanFeeDollars",
]


class BenchmarkDataError(RuntimeError):
    """The benchmark dataset could not be loaded from any source."""


# =============================================================================
# PARSING
# =============================================================================

def _text(value) -> str:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return ""
    return str(value).strip()


def _number(value) -> float:
    """Parse a numeric cell; blanks and junk become 0."""
    text = _text(value)
    if not text:
        return 0.0
    try:
        return float(text)
    except ValueError:
        return 0.0


def parse_benchmark_frame(frame: pd.DataFrame) -> List[BenchmarkRow]:
    """
    Map dataset columns to BenchmarkRow records, keeping row order.

    Missing columns are treated as blank. A blank BMAvgBalance means "All".
    """
    frame = frame.rename(columns=lambda c: str(c).lstrip("\ufeff").strip())

    rows = []
    for record in frame.to_dict(orient="records"):
        rows.append(BenchmarkRow(
            source=_text(record.get("BenchmarkSource")),
            fee_type_label=_text(record.get("Type")),
            aum_bucket=_text(record.get("BMAssets")),
            balance_bucket=_text(record.get("BMAvgBalance")),
            p25=_number(record.get("RetirementFee25th")),
            p50=_number(record.get("RetirementFee50th")),
            p75=_number(record.get("RetirementFee75th")),
            client_id=_text(record.get("ClientID")) or None,
            report_id=_text(record.get("ReportID")) or None,
            creation_date=_text(record.get("CreationDate")) or None,
            client_name=_text(record.get("ClientName")) or None,
            sic=_text(record.get("SIC")) or None,
            assets=_number(record.get("Assets")),
            avg_balance=_number(record.get("AvgBalance")),
        ))
    return rows


def parse_benchmark_csv(csv_text: str) -> List[BenchmarkRow]:
    """
    Parse CSV text in the dataset layout.

    Exports whose first line contains "ClientID" carry a header row;
    otherwise the fixed DATASET_COLUMNS order is assumed.
    """
    first_line = csv_text.split("\n", 1)[0]
    has_headers = "ClientID" in first_line

    frame = pd.read_csv(
        io.StringIO(csv_text),
        header=0 if has_headers else None,
        names=None if has_headers else DATASET_COLUMNS,
        dtype=str,
        keep_default_na=False,
        skip_blank_lines=True,
    )
    return parse_benchmark_frame(frame)


def load_from_csv(path: Optional[Path] = None) -> List[BenchmarkRow]:
    """Load benchmark rows from the local CSV file."""
    path = Path(path or BENCHMARK_CSV_PATH)
    logger.info(f"Loading benchmark data from local CSV file {path}...")

    try:
        csv_text = path.read_text(encoding="utf-8-sig")
    except OSError as e:
        raise BenchmarkDataError(f"Cannot read benchmark CSV {path}: {e}") from e

    try:
        rows = parse_benchmark_csv(csv_text)
    except (ValueError, pd.errors.ParserError) as e:
        raise BenchmarkDataError(f"Cannot parse benchmark CSV {path}: {e}") from e
    logger.info(f"Loaded {len(rows)} rows from CSV file")
    return rows


# =============================================================================
# DOMO API CLIENT
# =============================================================================

class DomoClient:
    """
    Minimal Domo API client (OAuth 2.0 client credentials).

    The access token is cached on the instance until shortly before
    it expires.
    """

    def __init__(
        self,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        api_base: str = DOMO_API_BASE,
        timeout: float = DOMO_TIMEOUT_SECONDS,
        transport: Optional[httpx.BaseTransport] = None
    ):
        self.client_id = client_id or os.getenv("DOMO_CLIENT_ID")
        self.client_secret = client_secret or os.getenv("DOMO_CLIENT_SECRET")
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self.transport = transport
        self._token: Optional[str] = None
        self._token_expires_at = 0.0

    @property
    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def _get_access_token(self, client: httpx.Client) -> str:
        if self._token and time.time() < self._token_expires_at:
            return self._token

        if not self.is_configured:
            raise BenchmarkDataError(
                "DOMO_CLIENT_ID and DOMO_CLIENT_SECRET must be set in environment variables"
            )

        try:
            response = client.post(
                f"{self.api_base}/oauth/token",
                data={"grant_type": "client_credentials", "scope": "data"},
                auth=(self.client_id, self.client_secret),
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise BenchmarkDataError(f"Domo authentication failed: {e}") from e

        try:
            payload = response.json()
            self._token = payload["access_token"]
            expires_in = float(payload.get("expires_in", 0))
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            self.clear_token()
            raise BenchmarkDataError(
                f"Domo authentication returned an unusable token response: {e!r}"
            ) from e

        self._token_expires_at = time.time() + expires_in - TOKEN_EXPIRY_MARGIN_SECONDS
        return self._token

    def clear_token(self):
        self._token = None
        self._token_expires_at = 0.0

    def fetch_dataset_csv(
        self,
        dataset_id: str,
        limit: Optional[int] = None,
        offset: int = 0
    ) -> str:
        """Export a Domo dataset as CSV text."""
        params = {}
        if limit:
            params["limit"] = str(limit)
        if offset:
            params["offset"] = str(offset)

        with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
            token = self._get_access_token(client)
            try:
                response = client.get(
                    f"{self.api_base}/v1/datasets/{dataset_id}/data",
                    headers={"Authorization": f"Bearer {token}", "Accept": "text/csv"},
                    params=params,
                )
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                if e.response.status_code == 401:
                    self.clear_token()
                    raise BenchmarkDataError("Domo authentication expired. Please try again.") from e
                raise BenchmarkDataError(f"Failed to fetch Domo dataset: {e}") from e
            except httpx.HTTPError as e:
                raise BenchmarkDataError(f"Failed to fetch Domo dataset: {e}") from e

        return response.text

    def fetch_benchmark_rows(self, dataset_id: str = DOMO_DATASET_ID) -> List[BenchmarkRow]:
        logger.info("Attempting to load benchmark data from Domo API...")
        csv_text = self.fetch_dataset_csv(dataset_id)
        try:
            rows = parse_benchmark_csv(csv_text)
        except (ValueError, pd.errors.ParserError) as e:
            raise BenchmarkDataError(f"Domo export could not be parsed: {e}") from e
        if not rows:
            raise BenchmarkDataError("Domo export contained no rows")
        logger.info(f"Loaded {len(rows)} rows from Domo API")
        return rows


# =============================================================================
# LOADER
# =============================================================================

class BenchmarkDataLoader:
    """
    Load the benchmark dataset once, Domo first with CSV fallback.

    Example:
        loader = BenchmarkDataLoader()
        dataset = loader.load()
    """

    def __init__(
        self,
        domo_client: Optional[DomoClient] = None,
        csv_path: Optional[Path] = None,
        dataset_id: str = DOMO_DATASET_ID,
        source: str = BENCHMARK_SOURCE
    ):
        self.domo_client = domo_client if domo_client is not None else DomoClient()
        self.csv_path = Path(csv_path or BENCHMARK_CSV_PATH)
        self.dataset_id = dataset_id
        self.source = source
        self._dataset: Optional[BenchmarkDataset] = None

    @property
    def dataset(self) -> Optional[BenchmarkDataset]:
        """The cached dataset, or None before the first successful load."""
        return self._dataset

    def load(self, force_reload: bool = False) -> BenchmarkDataset:
        if self._dataset is not None and not force_reload:
            return self._dataset

        rows = None
        data_source = None

        if self.domo_client.is_configured:
            try:
                rows = self.domo_client.fetch_benchmark_rows(self.dataset_id)
                data_source = DataSource.DOMO
            except BenchmarkDataError as e:
                logger.warning(f"Domo API failed, falling back to local CSV file: {e}")
        else:
            logger.info("Domo credentials not configured; using local CSV file")

        if rows is None:
            try:
                rows = load_from_csv(self.csv_path)
                data_source = DataSource.CSV
            except BenchmarkDataError as e:
                logger.error(f"Both Domo API and CSV fallback failed: {e}")
                raise BenchmarkDataError(
                    "Unable to load benchmark data from either Domo API or local CSV file"
                ) from e

        self._dataset = BenchmarkDataset(
            rows=tuple(rows),
            source=self.source,
            data_source=data_source
        )
        return self._dataset
