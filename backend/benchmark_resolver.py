"""
PlanBench - Benchmark Resolver
==============================
Looks up 25th/50th/75th percentile fee benchmarks in a loaded dataset.

The dataset is denormalized and unevenly populated: some fee types only
exist with an "All" balance bucket, others only with specific balance
buckets. Lookups therefore follow a fixed fallback order:

1. Exact match on source vintage + fee type + AUM bucket + balance bucket
2. If the requested balance bucket is "All" and no such row exists:
   any balance bucket for the same source + fee type + AUM bucket,
   preferring the middle bucket ($50-75k), then the bucket nearest to it
3. Otherwise: not found (None)
"""

import logging
from typing import List, Optional

from fee_constants import (
    ALL_BUCKET,
    AUM_ONLY_CATEGORIES,
    BALANCE_BUCKET_ORDER,
    BENCHMARK_CATEGORIES,
    BENCHMARK_FEE_TYPE_LABELS,
    MIDDLE_BALANCE_BUCKET,
    TOTAL_PLAN_FEE_LABELS,
    PlanFeeType,
    bucket_label,
)
from models import (
    BenchmarkComparison,
    BenchmarkDataset,
    BenchmarkPercentiles,
    BenchmarkRow,
)

logger = logging.getLogger(__name__)


def _to_percentiles(row: BenchmarkRow) -> BenchmarkPercentiles:
    return BenchmarkPercentiles(
        p25=row.p25 or 0.0,
        p50=row.p50 or 0.0,
        p75=row.p75 or 0.0
    )


def _distance_from_middle(balance_bucket: str) -> float:
    """Ordinal distance from the middle bucket; unknown labels sort last."""
    if balance_bucket not in BALANCE_BUCKET_ORDER:
        return float('inf')
    middle = BALANCE_BUCKET_ORDER.index(MIDDLE_BALANCE_BUCKET)
    return abs(BALANCE_BUCKET_ORDER.index(balance_bucket) - middle)


def _pick_fallback_row(candidates: List[BenchmarkRow]) -> BenchmarkRow:
    """
    Choose one row among balance-bucket candidates.

    The middle bucket wins outright. Otherwise the nearest bucket in
    canonical order wins, lower buckets before higher ones on a tie, and
    labels outside the canonical order keep their dataset order.
    """
    for row in candidates:
        if row.balance_bucket == MIDDLE_BALANCE_BUCKET:
            return row

    def sort_key(indexed):
        position, row = indexed
        distance = _distance_from_middle(row.balance_bucket)
        if row.balance_bucket in BALANCE_BUCKET_ORDER:
            ordinal = BALANCE_BUCKET_ORDER.index(row.balance_bucket)
        else:
            ordinal = len(BALANCE_BUCKET_ORDER)
        return (distance, ordinal, position)

    return min(enumerate(candidates), key=sort_key)[1]


def find_benchmark_percentiles(
    dataset: BenchmarkDataset,
    fee_type_label: str,
    aum_bucket: str,
    balance_bucket: str = ALL_BUCKET
) -> Optional[BenchmarkPercentiles]:
    """
    Find benchmark percentiles for one fee type.

    Args:
        dataset: Loaded benchmark dataset
        fee_type_label: Dataset fee type, e.g. "Advisor Fee"
        aum_bucket: AUM bucket label, e.g. "$3-5m"
        balance_bucket: Balance bucket label or "All"

    Returns:
        Percentiles, or None when no row matches
    """
    aum_bucket = bucket_label(aum_bucket)
    balance_bucket = bucket_label(balance_bucket)

    candidates = [
        row for row in dataset.rows
        if row.source == dataset.source
        and row.fee_type_label == fee_type_label
        and row.aum_bucket == aum_bucket
    ]

    for row in candidates:
        if row.balance_bucket == balance_bucket:
            return _to_percentiles(row)

    if balance_bucket == ALL_BUCKET and candidates:
        row = _pick_fallback_row(candidates)
        logger.debug(
            f"No 'All' row for {fee_type_label} / {aum_bucket}; "
            f"using balance bucket {row.balance_bucket}"
        )
        return _to_percentiles(row)

    return None


def get_benchmark_comparison(
    dataset: BenchmarkDataset,
    aum_bucket: str,
    balance_bucket: str = ALL_BUCKET,
    fee_type: PlanFeeType = PlanFeeType.UNBUNDLED
) -> BenchmarkComparison:
    """
    Resolve benchmarks for all five categories.

    Each category has its own bucketing rule:
    - Advisor & Investment Manager: AUM only (balance always "All")
    - Record Keeper (unbundled) & TPA: AUM + caller's balance bucket
    - Total Plan Fee: AUM + balance, bundled or unbundled label by fee type

    Categories without a matching row get the zero sentinel and are
    listed in `missing_categories`.
    """
    aum_bucket = bucket_label(aum_bucket)
    balance_bucket = bucket_label(balance_bucket)
    fee_type = PlanFeeType(fee_type)

    logger.info(
        f"Resolving benchmarks for AUM {aum_bucket}, balance {balance_bucket}, "
        f"{fee_type.value} ({len(dataset)} rows)"
    )

    labels = dict(BENCHMARK_FEE_TYPE_LABELS)
    labels["total"] = TOTAL_PLAN_FEE_LABELS[fee_type]

    results = {}
    missing = []
    for category in BENCHMARK_CATEGORIES:
        category_balance = ALL_BUCKET if category in AUM_ONLY_CATEGORIES else balance_bucket
        found = find_benchmark_percentiles(dataset, labels[category], aum_bucket, category_balance)
        if found is None:
            missing.append(category)
            found = BenchmarkPercentiles.zero()
        results[category] = found

    if missing:
        logger.warning(f"No benchmark found for: {', '.join(missing)}")

    return BenchmarkComparison(
        **results,
        missing_categories=missing,
        data_source=dataset.data_source
    )
