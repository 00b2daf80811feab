"""
PlanBench - Benchmark Analyzer
==============================
Orchestrates the fee calculator, benchmark resolver and service scorer
into a complete benchmarking report for an existing plan and, optionally,
a proposed replacement.

Everything here is pure computation over an already-loaded dataset.
"""

import logging
from typing import Optional, Tuple

from fee_constants import (
    ALL_BUCKET,
    BENCHMARK_CATEGORIES,
    BASIS_POINTS_PER_UNIT,
    FEE_CATEGORIES,
    PlanFeeType,
    bucket_label,
    convert_dollars_to_basis_points,
    format_currency,
    get_aum_bucket,
    get_disclaimer_text,
)
from models import (
    AISummaryRequest,
    BenchmarkComparison,
    BenchmarkDataset,
    BenchmarkPercentiles,
    BenchmarkReport,
    CalculatedFee,
    FeeCategoryAnalysis,
    FeeDifference,
    FeeSavings,
    PercentilePosition,
    PlanAnalysis,
    PlanData,
)
from fee_calculator import calculate_all_fees
from benchmark_resolver import get_benchmark_comparison
from service_scorer import (
    calculate_provider_coverage,
    calculate_service_value_score,
    get_all_missing_essential_services,
)

logger = logging.getLogger(__name__)


def get_percentile_position(
    fee_percentage: float,
    percentiles: BenchmarkPercentiles
) -> PercentilePosition:
    """
    Place a fee percentage (0.5 = 0.5%) within benchmark percentiles.

    Benchmarks are decimals (0.005 = 0.5%) and are converted to percent
    before comparing. Callers decide whether the benchmark was found;
    a missing benchmark is UNKNOWN without calling this.
    """
    if fee_percentage <= percentiles.p25 * 100:
        return PercentilePosition.BELOW_25TH
    if fee_percentage <= percentiles.p50 * 100:
        return PercentilePosition.BETWEEN_25TH_50TH
    if fee_percentage <= percentiles.p75 * 100:
        return PercentilePosition.BETWEEN_50TH_75TH
    return PercentilePosition.ABOVE_75TH


# =============================================================================
# ANALYZER
# =============================================================================

class BenchmarkAnalyzer:
    """
    Benchmark plans against a loaded dataset.

    Example:
        analyzer = BenchmarkAnalyzer(dataset)
        report = analyzer.analyze(existing_plan, proposed_plan)
    """

    def __init__(self, dataset: BenchmarkDataset):
        self.dataset = dataset

    def resolve_buckets(self, plan: PlanData) -> Tuple[str, str, PlanFeeType]:
        """
        Benchmark selection for a plan.

        The AUM bucket falls back to the bucket derived from the plan's
        assets; the balance bucket falls back to "All".
        """
        if plan.benchmark_category is not None:
            aum_bucket = bucket_label(plan.benchmark_category)
        else:
            aum_bucket = get_aum_bucket(plan.assets_under_management)

        if plan.balance_benchmark_category is not None:
            balance_bucket = bucket_label(plan.balance_benchmark_category)
        else:
            balance_bucket = ALL_BUCKET

        return aum_bucket, balance_bucket, plan.fee_type or PlanFeeType.UNBUNDLED

    def get_benchmarks(self, plan: PlanData) -> BenchmarkComparison:
        aum_bucket, balance_bucket, fee_type = self.resolve_buckets(plan)
        return get_benchmark_comparison(self.dataset, aum_bucket, balance_bucket, fee_type)

    def _analyze_category(
        self,
        category: str,
        fee: CalculatedFee,
        aum: float,
        benchmarks: BenchmarkComparison
    ) -> FeeCategoryAnalysis:
        benchmark = benchmarks.get(category)
        found = benchmarks.is_found(category)

        position = PercentilePosition.UNKNOWN
        difference = None
        median_dollars = None
        if found:
            position = get_percentile_position(fee.percentage, benchmark)
            difference = fee.percentage - benchmark.p50 * 100
            median_dollars = aum * benchmark.p50

        return FeeCategoryAnalysis(
            category=category,
            fee_type=fee.fee_type,
            dollar_amount=fee.dollar_amount,
            percentage=fee.percentage,
            basis_points=convert_dollars_to_basis_points(fee.dollar_amount, aum),
            benchmark=benchmark,
            benchmark_found=found,
            position=position,
            difference_from_median=difference,
            median_dollar_amount=median_dollars,
        )

    def analyze_plan(
        self,
        plan: PlanData,
        benchmarks: Optional[BenchmarkComparison] = None
    ) -> PlanAnalysis:
        """
        Fees, benchmark positions and service adequacy for one plan.

        Args:
            plan: The plan to analyze
            benchmarks: Benchmarks to compare against (resolved from the
                        plan's own buckets when omitted)
        """
        if benchmarks is None:
            benchmarks = self.get_benchmarks(plan)

        aum = plan.assets_under_management
        fees = calculate_all_fees(plan)

        categories = {
            category: self._analyze_category(category, getattr(fees, category), aum, benchmarks)
            for category in BENCHMARK_CATEGORIES
        }

        return PlanAnalysis(
            fees=fees,
            categories=categories,
            service_score=calculate_service_value_score(plan.services, aum),
            service_coverage=calculate_provider_coverage(plan.services),
            missing_essential_services=get_all_missing_essential_services(plan.services),
        )

    def compare_fees(self, existing: PlanData, proposed: PlanData) -> FeeSavings:
        """
        Existing vs. proposed fees per category.

        Savings are positive when the proposed plan is cheaper.
        """
        existing_fees = calculate_all_fees(existing)
        proposed_fees = calculate_all_fees(proposed)

        def difference(category: str) -> FeeDifference:
            old = getattr(existing_fees, category)
            new = getattr(proposed_fees, category)
            return FeeDifference(
                category=category,
                existing_amount=old.dollar_amount,
                proposed_amount=new.dollar_amount,
                dollar_savings=round(old.dollar_amount - new.dollar_amount, 2),
                percentage_savings=round(old.percentage - new.percentage, 4),
            )

        categories = {category: difference(category) for category in FEE_CATEGORIES}
        total = difference("total")

        is_beneficial = total.dollar_savings > 0
        if is_beneficial:
            savings_bps = total.percentage_savings * BASIS_POINTS_PER_UNIT / 100
            summary = (
                f"The proposed plan would save {format_currency(total.dollar_savings)} "
                f"per year ({savings_bps:.1f} bps)."
            )
        elif total.dollar_savings < 0:
            summary = (
                f"The proposed plan would cost {format_currency(abs(total.dollar_savings))} "
                "more per year."
            )
        else:
            summary = "The proposed plan has the same total cost as the existing plan."

        return FeeSavings(
            categories=categories,
            total=total,
            is_beneficial=is_beneficial,
            summary=summary
        )

    def analyze(
        self,
        existing: PlanData,
        proposed: Optional[PlanData] = None
    ) -> BenchmarkReport:
        """
        Full benchmarking report.

        Both plans are compared against the benchmarks selected by the
        existing plan so the two analyses share one reference point.
        """
        aum_bucket, balance_bucket, fee_type = self.resolve_buckets(existing)
        benchmarks = get_benchmark_comparison(self.dataset, aum_bucket, balance_bucket, fee_type)

        logger.info(
            f"Analyzing plan with ${existing.assets_under_management:,.0f} AUM "
            f"({aum_bucket}, {balance_bucket})"
            + (" against a proposal" if proposed else "")
        )

        existing_analysis = self.analyze_plan(existing, benchmarks)
        proposed_analysis = None
        savings = None
        if proposed is not None:
            proposed_analysis = self.analyze_plan(proposed, benchmarks)
            savings = self.compare_fees(existing, proposed)

        return BenchmarkReport(
            aum_bucket=aum_bucket,
            balance_bucket=balance_bucket,
            fee_type=fee_type,
            benchmarks=benchmarks,
            existing=existing_analysis,
            proposed=proposed_analysis,
            savings=savings,
            disclaimer=get_disclaimer_text(aum_bucket, balance_bucket),
        )

    def build_summary_request(
        self,
        plan: PlanData,
        proposed: Optional[PlanData] = None
    ) -> AISummaryRequest:
        """Collect the inputs an executive-summary writer needs."""
        aum_bucket, balance_bucket, fee_type = self.resolve_buckets(plan)
        benchmarks = get_benchmark_comparison(self.dataset, aum_bucket, balance_bucket, fee_type)

        return AISummaryRequest(
            plan_data=plan,
            calculated_fees=calculate_all_fees(plan),
            benchmarks=benchmarks,
            proposed_plan_data=proposed,
            proposed_calculated_fees=calculate_all_fees(proposed) if proposed else None,
            aum_bucket=aum_bucket,
        )
