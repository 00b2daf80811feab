"""
PlanBench - Data Models
=======================
Pydantic models for plan fee structures, benchmark data and results.

These models serve as the contract between:
- The input layer (API requests, sample data)
- The benchmark dataset loader
- The fee / benchmark / service engines
- Presentation and export collaborators (charts, slides, AI summary)
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Tuple, Union
from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator
import uuid

from fee_constants import (
    ALL_BUCKET,
    AUM_BUCKET_ORDER,
    BALANCE_BUCKET_ORDER,
    MOST_RECENT_BENCHMARK_SOURCE,
    AUMBenchmarkCategory,
    BalanceBenchmarkCategory,
    FeeStructureType,
    PlanFeeType,
    PlanSizeCategory,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS
# =============================================================================

class PercentilePosition(str, Enum):
    BELOW_25TH = "below_25th"
    BETWEEN_25TH_50TH = "25th_to_50th"
    BETWEEN_50TH_75TH = "50th_to_75th"
    ABOVE_75TH = "above_75th"
    UNKNOWN = "unknown"  # No benchmark row was found


class DataSource(str, Enum):
    DOMO = "domo"
    CSV = "csv"
    FIXTURE = "fixture"


# =============================================================================
# FEE INPUT MODELS
# =============================================================================

class FeeStructure(BaseModel):
    """
    A single provider fee, tagged by `type`.

    Only the fields relevant to the active tag are read:
    - basisPoints:     basis_points (50 = 0.50% of assets)
    - flatFee:         flat_fee
    - flatPlusPerHead: flat_fee + per_head_fee
    - perParticipant:  per_head_fee

    Unrecognized tags are kept as raw strings so the calculator can
    report them instead of failing validation.
    """
    type: Union[FeeStructureType, str] = Field(
        default=FeeStructureType.BASIS_POINTS,
        union_mode="left_to_right"
    )
    basis_points: Optional[float] = Field(default=None, ge=0)
    flat_fee: Optional[float] = Field(default=None, ge=0)
    per_head_fee: Optional[float] = Field(default=None, ge=0)


class FeeInput(BaseModel):
    """The four fee categories of a plan."""
    advisor: FeeStructure = Field(default_factory=FeeStructure)
    record_keeper: FeeStructure = Field(default_factory=FeeStructure)
    tpa: FeeStructure = Field(default_factory=FeeStructure)
    investment_menu: FeeStructure = Field(default_factory=FeeStructure)


# =============================================================================
# SERVICE OPTION MODELS
# =============================================================================

class AdvisorServices(BaseModel):
    plan_design_consulting: bool = False
    investment_menu_selection: bool = False
    participant_education: bool = False
    fiduciary_support_321: bool = False
    fiduciary_support_338: bool = False
    compliance_assistance: bool = False
    quarterly_reviews: bool = False
    custom_reporting: bool = False


class RecordKeeperServices(BaseModel):
    participant_website: bool = False
    mobile_app: bool = False
    call_center_support: bool = False
    online_enrollment: bool = False
    loan_administration: bool = False
    distribution_processing: bool = False
    payroll_integration: bool = False
    daily_valuation: bool = False
    auto_enrollment: bool = False
    participant_statements: bool = False


class TPAServices(BaseModel):
    form_5500_preparation: bool = False
    discrimination_testing: bool = False
    plan_document_updates: bool = False
    amendment_services: bool = False
    notice_preparation: bool = False
    compliance_testing: bool = False
    government_filings: bool = False
    participant_notices: bool = False


class AuditServices(BaseModel):
    full_scope_audit: bool = False
    limited_scope_audit: bool = False
    annual_audit: bool = False
    biannual_audit: bool = False
    triannual_audit: bool = False


class ServiceOptions(BaseModel):
    """Service flags per provider. Missing providers count as all-false."""
    advisor: Optional[AdvisorServices] = None
    record_keeper: Optional[RecordKeeperServices] = None
    tpa: Optional[TPAServices] = None
    audit: Optional[AuditServices] = None


# =============================================================================
# PLAN DATA - CORE MODEL
# =============================================================================

class PlanData(BaseModel):
    """
    A retirement plan's size, benchmark selection, fees and services.
    This is the primary input to every engine; engines never mutate it.
    """

    assets_under_management: float = Field(default=0.0, ge=0)
    participant_count: Optional[int] = Field(default=None, ge=0)

    # Benchmark selection (labels must match the dataset)
    benchmark_category: Optional[AUMBenchmarkCategory] = None
    balance_benchmark_category: Optional[BalanceBenchmarkCategory] = None
    fee_type: PlanFeeType = PlanFeeType.UNBUNDLED

    fees: FeeInput = Field(default_factory=FeeInput)
    services: Optional[ServiceOptions] = None

    @computed_field
    @property
    def average_balance(self) -> float:
        """Average account balance per participant."""
        if self.participant_count:
            return self.assets_under_management / self.participant_count
        return 0.0


# =============================================================================
# BENCHMARK DATASET MODELS
# =============================================================================

class BenchmarkRow(BaseModel):
    """
    One denormalized record of the benchmark dataset.

    Percentiles are decimal ratios (0.005 = 0.5% of assets).
    p25 <= p50 <= p75 is assumed, not enforced.
    """
    model_config = ConfigDict(frozen=True)

    source: str = ""
    fee_type_label: str = ""
    aum_bucket: str = ""
    balance_bucket: str = ALL_BUCKET
    p25: float = 0.0
    p50: float = 0.0
    p75: float = 0.0

    # Descriptive columns carried through from the dataset
    client_id: Optional[str] = None
    report_id: Optional[str] = None
    creation_date: Optional[str] = None
    client_name: Optional[str] = None
    sic: Optional[str] = None
    assets: float = 0.0
    avg_balance: float = 0.0

    @field_validator('balance_bucket', mode='before')
    @classmethod
    def default_balance_bucket(cls, v):
        if v is None or str(v).strip() == "":
            return ALL_BUCKET
        return v


def _canonical_sort(labels, order: List[str]) -> List[str]:
    known = [label for label in order if label in labels]
    unknown = sorted(label for label in labels if label not in order)
    return known + unknown


class BenchmarkDataset(BaseModel):
    """
    Immutable, already-loaded benchmark dataset.

    Passed explicitly into the resolver so callers (and tests) control
    which data a lookup sees.
    """
    model_config = ConfigDict(frozen=True)

    rows: Tuple[BenchmarkRow, ...] = ()
    source: str = MOST_RECENT_BENCHMARK_SOURCE
    data_source: DataSource = DataSource.FIXTURE
    loaded_at: datetime = Field(default_factory=_utcnow)

    def __len__(self) -> int:
        return len(self.rows)

    def available_aum_buckets(self) -> List[str]:
        buckets = {row.aum_bucket for row in self.rows}
        buckets = {b for b in buckets if b and b != ALL_BUCKET}
        return _canonical_sort(buckets, AUM_BUCKET_ORDER)

    def available_balance_buckets(self) -> List[str]:
        buckets = {row.balance_bucket for row in self.rows if row.balance_bucket}
        return _canonical_sort(buckets, BALANCE_BUCKET_ORDER + [ALL_BUCKET])


# =============================================================================
# FEE CALCULATION RESULTS
# =============================================================================

class CalculatedFee(BaseModel):
    fee_type: str
    dollar_amount: float
    percentage: float = Field(description="Percent of assets, 0.5 = 0.5%")


class CalculatedFees(BaseModel):
    """Per-category fees; total is the sum of the four categories."""
    advisor: CalculatedFee
    record_keeper: CalculatedFee
    tpa: CalculatedFee
    investment_menu: CalculatedFee
    total: CalculatedFee


# =============================================================================
# BENCHMARK RESULTS
# =============================================================================

class BenchmarkPercentiles(BaseModel):
    """25th / 50th / 75th percentile fee ratios (decimals)."""
    p25: float = 0.0
    p50: float = 0.0
    p75: float = 0.0

    @classmethod
    def zero(cls) -> "BenchmarkPercentiles":
        """Sentinel for "no benchmark found". Not a real zero benchmark."""
        return cls(p25=0.0, p50=0.0, p75=0.0)

    @property
    def is_zero(self) -> bool:
        return self.p25 == 0 and self.p50 == 0 and self.p75 == 0


class BenchmarkComparison(BaseModel):
    """
    Benchmarks for all five categories.

    Categories listed in `missing_categories` hold the zero sentinel and
    must be read as "benchmark unknown", not "benchmark is zero".
    """
    advisor: BenchmarkPercentiles
    record_keeper: BenchmarkPercentiles
    tpa: BenchmarkPercentiles
    investment_menu: BenchmarkPercentiles
    total: BenchmarkPercentiles
    missing_categories: List[str] = Field(default_factory=list)
    data_source: Optional[DataSource] = None

    def get(self, category: str) -> BenchmarkPercentiles:
        return getattr(self, category)

    def is_found(self, category: str) -> bool:
        return category not in self.missing_categories


# =============================================================================
# SERVICE SCORING RESULTS
# =============================================================================

class TierCoverage(BaseModel):
    provided: int = 0
    total: int = 0
    percentage: float = 0.0


class ServiceCoverage(BaseModel):
    essential: TierCoverage
    standard: TierCoverage
    premium: TierCoverage
    overall: TierCoverage


class ServiceScoreBreakdown(BaseModel):
    advisor: int = Field(ge=0, le=100)
    record_keeper: int = Field(ge=0, le=100)
    tpa: int = Field(ge=0, le=100)
    audit: int = Field(ge=0, le=100)


class ServiceValueScore(BaseModel):
    """Overall 0-100 service value score with per-provider breakdown."""
    score: int = Field(ge=0, le=100)
    breakdown: ServiceScoreBreakdown
    insights: List[str] = Field(default_factory=list)
    plan_size: PlanSizeCategory


# =============================================================================
# ANALYSIS MODELS
# =============================================================================

class FeeCategoryAnalysis(BaseModel):
    """A plan's fee in one category, placed against its benchmark."""
    category: str
    fee_type: str
    dollar_amount: float
    percentage: float
    basis_points: float
    benchmark: BenchmarkPercentiles
    benchmark_found: bool
    position: PercentilePosition
    # Percentage points above (+) / below (-) the median; None without a benchmark
    difference_from_median: Optional[float] = None
    median_dollar_amount: Optional[float] = None


class PlanAnalysis(BaseModel):
    """Fees, benchmark positions and service adequacy for one plan."""
    fees: CalculatedFees
    categories: Dict[str, FeeCategoryAnalysis]
    service_score: ServiceValueScore
    service_coverage: Dict[str, ServiceCoverage]
    missing_essential_services: Dict[str, List[str]] = Field(default_factory=dict)


class FeeDifference(BaseModel):
    category: str
    existing_amount: float
    proposed_amount: float
    dollar_savings: float = Field(description="Positive = proposed is cheaper")
    percentage_savings: float = Field(description="Percentage points of assets")


class FeeSavings(BaseModel):
    """Existing vs. proposed fees."""
    categories: Dict[str, FeeDifference]
    total: FeeDifference
    is_beneficial: bool
    summary: str


class BenchmarkReport(BaseModel):
    """Complete benchmarking report for an existing (and proposed) plan."""

    report_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    generated_at: datetime = Field(default_factory=_utcnow)

    aum_bucket: str
    balance_bucket: str
    fee_type: PlanFeeType

    benchmarks: BenchmarkComparison
    existing: PlanAnalysis
    proposed: Optional[PlanAnalysis] = None
    savings: Optional[FeeSavings] = None

    disclaimer: str


class AISummaryRequest(BaseModel):
    """Payload handed to the executive-summary writer."""
    plan_data: PlanData
    calculated_fees: CalculatedFees
    benchmarks: BenchmarkComparison
    proposed_plan_data: Optional[PlanData] = None
    proposed_calculated_fees: Optional[CalculatedFees] = None
    aum_bucket: str


# =============================================================================
# API REQUEST/RESPONSE MODELS
# =============================================================================

class BenchmarkComparisonRequest(BaseModel):
    """Request for benchmark percentiles."""
    aum_bucket: AUMBenchmarkCategory
    balance_bucket: BalanceBenchmarkCategory = BalanceBenchmarkCategory.ALL
    fee_type: PlanFeeType = PlanFeeType.UNBUNDLED


class ServiceScoreRequest(BaseModel):
    """Request for a service value score."""
    services: Optional[ServiceOptions] = None
    assets_under_management: float = Field(default=0.0, ge=0)


class ServiceScoreResponse(BaseModel):
    score: ServiceValueScore
    coverage: Dict[str, ServiceCoverage]
    missing_essential_services: Dict[str, List[str]]
    weighting: str


class AnalysisRequest(BaseModel):
    """Request to benchmark an existing plan, optionally against a proposal."""
    existing: PlanData
    proposed: Optional[PlanData] = None


class SamplePlanResponse(BaseModel):
    existing: PlanData
    proposed: PlanData
