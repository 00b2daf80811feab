"""
PlanBench - Fee & Service Constants
===================================
Hardcoded benchmark labels, service baselines and scoring weights.

CRITICAL: These are the ONLY source of truth for benchmark lookups and
service scoring. Labels must match the benchmark dataset values exactly
(including spacing and capitalization), or lookups silently miss.

Benchmark vintage: FDI 2024 (Fiduciary Decisions Inc.)
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

# =============================================================================
# FEE STRUCTURE ENUMS
# =============================================================================

class FeeStructureType(str, Enum):
    BASIS_POINTS = "basisPoints"
    FLAT_FEE = "flatFee"
    FLAT_PLUS_PER_HEAD = "flatPlusPerHead"
    PER_PARTICIPANT = "perParticipant"


class PlanFeeType(str, Enum):
    BUNDLED = "bundled"
    UNBUNDLED = "unbundled"


# =============================================================================
# BENCHMARK BUCKETS
# Values must match the BMAssets / BMAvgBalance columns of the dataset
# =============================================================================

ALL_BUCKET = "All"


class AUMBenchmarkCategory(str, Enum):
    AUM_0_250K = "$0-250k"
    AUM_250_500K = "$250-500k"
    AUM_500K_1M = "$500k-1m"
    AUM_1_3M = "$1-3m"
    AUM_3_5M = "$3-5m"
    AUM_5_10M = "$5-10m"
    AUM_10_20M = "$10-20m"
    AUM_20_30M = "$20-30m"
    AUM_30_50M = "$30-50m"
    AUM_50_100M = "$50-100m"
    AUM_100_250M = "$100-250m"
    AUM_OVER_250M = "> $250m"  # Dataset uses a space after '>'
    ALL = "All"


class BalanceBenchmarkCategory(str, Enum):
    BALANCE_0_25K = "$0-25k"
    BALANCE_25_50K = "$25-50k"
    BALANCE_50_75K = "$50-75k"
    BALANCE_75_100K = "$75-100k"
    BALANCE_OVER_100K = "> $100k"
    ALL = "All"


# Upper bound (exclusive) -> bucket label, ascending
AUM_BUCKET_THRESHOLDS: List[Tuple[float, str]] = [
    (250_000, "$0-250k"),
    (500_000, "$250-500k"),
    (1_000_000, "$500k-1m"),
    (3_000_000, "$1-3m"),
    (5_000_000, "$3-5m"),
    (10_000_000, "$5-10m"),
    (20_000_000, "$10-20m"),
    (30_000_000, "$20-30m"),
    (50_000_000, "$30-50m"),
    (100_000_000, "$50-100m"),
    (250_000_000, "$100-250m"),
    (float('inf'), "> $250m"),
]

BALANCE_BUCKET_THRESHOLDS: List[Tuple[float, str]] = [
    (25_000, "$0-25k"),
    (50_000, "$25-50k"),
    (75_000, "$50-75k"),
    (100_000, "$75-100k"),
    (float('inf'), "> $100k"),
]

AUM_BUCKET_ORDER: List[str] = [label for _, label in AUM_BUCKET_THRESHOLDS]
BALANCE_BUCKET_ORDER: List[str] = [label for _, label in BALANCE_BUCKET_THRESHOLDS]


# =============================================================================
# BENCHMARK DATASET CONSTANTS
# =============================================================================

# Only rows from the most recent vintage are queried
MOST_RECENT_BENCHMARK_SOURCE = "FDI 2024"

# Preferred balance bucket when an "All" row is missing for a fee type
MIDDLE_BALANCE_BUCKET = "$50-75k"

# Fee category -> dataset "Type" label
BENCHMARK_FEE_TYPE_LABELS: Dict[str, str] = {
    "advisor": "Advisor Fee",
    "record_keeper": "Record Keeper Fee - Unbundled",
    "tpa": "TPA Fee",
    "investment_menu": "Investment Manager fee",  # lowercase 'fee' in the dataset
}

TOTAL_PLAN_FEE_LABELS: Dict[PlanFeeType, str] = {
    PlanFeeType.BUNDLED: "Total Plan Fee - Bundled",
    PlanFeeType.UNBUNDLED: "Total Plan Fee - Unbundled",
}

# Categories whose benchmark ignores the balance bucket (always "All")
AUM_ONLY_CATEGORIES = ("advisor", "investment_menu")

FEE_CATEGORIES = ("advisor", "record_keeper", "tpa", "investment_menu")
BENCHMARK_CATEGORIES = FEE_CATEGORIES + ("total",)

FEE_CATEGORY_DISPLAY_NAMES: Dict[str, str] = {
    "advisor": "Advisor",
    "record_keeper": "Record Keeper",
    "tpa": "TPA",
    "investment_menu": "Investment Menu",
    "total": "Total Plan Fees",
}

BASIS_POINTS_PER_UNIT = 10_000  # 1 bp = 0.01% = 0.0001


# =============================================================================
# SERVICE BASELINES
# Based on DOL ERISA 408(b)(2) disclosure requirements and NAPA/PLANSPONSOR
# industry research.
#   essential: required for basic plan operation and fiduciary compliance
#   standard:  expected for most plans in the market segment
#   premium:   enhanced services that provide additional value
# =============================================================================

class ServiceTier(str, Enum):
    ESSENTIAL = "essential"
    STANDARD = "standard"
    PREMIUM = "premium"


@dataclass(frozen=True)
class ServiceBaseline:
    """Fixed partition of one provider's service flags into tiers."""
    essential: Tuple[str, ...]
    standard: Tuple[str, ...]
    premium: Tuple[str, ...]

    def tier_members(self, tier: ServiceTier) -> Tuple[str, ...]:
        return getattr(self, tier.value)

    @property
    def all_services(self) -> Tuple[str, ...]:
        return self.essential + self.standard + self.premium


ADVISOR_SERVICE_BASELINE = ServiceBaseline(
    essential=(
        "investment_menu_selection",
        "fiduciary_support_321",
        "compliance_assistance",
    ),
    standard=(
        "plan_design_consulting",
        "participant_education",
        "quarterly_reviews",
    ),
    premium=(
        "fiduciary_support_338",
        "custom_reporting",
    ),
)

RECORD_KEEPER_SERVICE_BASELINE = ServiceBaseline(
    essential=(
        "participant_website",
        "call_center_support",
        "online_enrollment",
    ),
    standard=(
        "mobile_app",
        "loan_administration",
        "daily_valuation",
        "participant_statements",
    ),
    premium=(
        "payroll_integration",
        "auto_enrollment",
        "distribution_processing",
    ),
)

TPA_SERVICE_BASELINE = ServiceBaseline(
    essential=(
        "form_5500_preparation",
        "discrimination_testing",
        "compliance_testing",
    ),
    standard=(
        "plan_document_updates",
        "government_filings",
        "participant_notices",
    ),
    premium=(
        "amendment_services",
        "notice_preparation",
    ),
)

# Audits are required for plans with 100+ participants
AUDIT_SERVICE_BASELINE = ServiceBaseline(
    essential=(
        "annual_audit",
    ),
    standard=(
        "full_scope_audit",
        "limited_scope_audit",
    ),
    premium=(
        "biannual_audit",
        "triannual_audit",
    ),
)

SERVICE_BASELINES: Dict[str, ServiceBaseline] = {
    "advisor": ADVISOR_SERVICE_BASELINE,
    "record_keeper": RECORD_KEEPER_SERVICE_BASELINE,
    "tpa": TPA_SERVICE_BASELINE,
    "audit": AUDIT_SERVICE_BASELINE,
}


# =============================================================================
# SERVICE LABELS (display text)
# =============================================================================

ADVISOR_SERVICE_LABELS: Dict[str, str] = {
    "plan_design_consulting": "Plan Design Consulting",
    "investment_menu_selection": "Investment Menu Selection",
    "participant_education": "Participant Education & Meetings",
    "fiduciary_support_321": "3(21) Fiduciary Support",
    "fiduciary_support_338": "3(38) Fiduciary Support",
    "compliance_assistance": "Compliance Assistance",
    "quarterly_reviews": "Quarterly Performance Reviews",
    "custom_reporting": "Custom Reporting",
}

RECORD_KEEPER_SERVICE_LABELS: Dict[str, str] = {
    "participant_website": "Participant Website/Portal",
    "mobile_app": "Mobile App",
    "call_center_support": "Call Center Support",
    "online_enrollment": "Online Enrollment",
    "loan_administration": "Loan Administration",
    "distribution_processing": "Distribution Processing",
    "payroll_integration": "Payroll Integration",
    "daily_valuation": "Daily Valuation",
    "auto_enrollment": "Auto-Enrollment Support",
    "participant_statements": "Participant Statements",
}

TPA_SERVICE_LABELS: Dict[str, str] = {
    "form_5500_preparation": "Form 5500 Preparation",
    "discrimination_testing": "Discrimination Testing",
    "plan_document_updates": "Plan Document Updates",
    "amendment_services": "Amendment Services",
    "notice_preparation": "Notice Preparation",
    "compliance_testing": "Compliance Testing",
    "government_filings": "Government Filings",
    "participant_notices": "Participant Notices",
}

AUDIT_SERVICE_LABELS: Dict[str, str] = {
    "full_scope_audit": "Full Scope Audit",
    "limited_scope_audit": "Limited Scope Audit",
    "annual_audit": "Annual Audit",
    "biannual_audit": "Biannual Audit",
    "triannual_audit": "Triannual Audit",
}

SERVICE_LABELS: Dict[str, Dict[str, str]] = {
    "advisor": ADVISOR_SERVICE_LABELS,
    "record_keeper": RECORD_KEEPER_SERVICE_LABELS,
    "tpa": TPA_SERVICE_LABELS,
    "audit": AUDIT_SERVICE_LABELS,
}

SERVICE_TIER_LABELS: Dict[ServiceTier, str] = {
    ServiceTier.ESSENTIAL: "Essential",
    ServiceTier.STANDARD: "Standard",
    ServiceTier.PREMIUM: "Premium",
}

SERVICE_TIER_DESCRIPTIONS: Dict[ServiceTier, str] = {
    ServiceTier.ESSENTIAL: "Core services required for basic plan operation and fiduciary compliance",
    ServiceTier.STANDARD: "Services expected by most plans in your market segment",
    ServiceTier.PREMIUM: "Enhanced services that provide additional value and capabilities",
}


# =============================================================================
# SERVICE SCORING WEIGHTS
# =============================================================================

# Tier multipliers applied to every plan size
SERVICE_TIER_WEIGHTS: Dict[ServiceTier, int] = {
    ServiceTier.ESSENTIAL: 3,
    ServiceTier.STANDARD: 2,
    ServiceTier.PREMIUM: 1,
}

# Provider weights for the overall score; must sum to 1.0
PROVIDER_SCORE_WEIGHTS: Dict[str, float] = {
    "advisor": 0.35,
    "record_keeper": 0.35,
    "tpa": 0.25,
    "audit": 0.05,
}

# Provider name as it appears in insight text
PROVIDER_INSIGHT_NAMES: Dict[str, str] = {
    "advisor": "advisor",
    "record_keeper": "recordkeeper",
    "tpa": "TPA",
    "audit": "audit",
}


# =============================================================================
# PLAN SIZE SERVICE EXPECTATIONS
# =============================================================================

class PlanSizeCategory(str, Enum):
    SMALL = "under5M"
    MID = "5M-50M"
    LARGE = "over50M"


SMALL_PLAN_AUM_LIMIT = 5_000_000
MID_PLAN_AUM_LIMIT = 50_000_000

PLAN_SIZE_EXPECTATIONS: Dict[PlanSizeCategory, Dict] = {
    PlanSizeCategory.SMALL: {
        "min_services": {"advisor": 3, "record_keeper": 4, "tpa": 3},
        "recommended_tiers": [ServiceTier.ESSENTIAL],
        "notes": "Small plans should prioritize essential services with focus on automation and cost efficiency",
    },
    PlanSizeCategory.MID: {
        "min_services": {"advisor": 5, "record_keeper": 6, "tpa": 5},
        "recommended_tiers": [ServiceTier.ESSENTIAL, ServiceTier.STANDARD],
        "notes": "Mid-market plans should include all essential services plus most standard services",
    },
    PlanSizeCategory.LARGE: {
        "min_services": {"advisor": 6, "record_keeper": 8, "tpa": 6},
        "recommended_tiers": [ServiceTier.ESSENTIAL, ServiceTier.STANDARD, ServiceTier.PREMIUM],
        "notes": "Large plans should include comprehensive service packages with premium features",
    },
}

PLAN_SIZE_LABELS: Dict[PlanSizeCategory, str] = {
    PlanSizeCategory.SMALL: "Small Plan (< $5M AUM)",
    PlanSizeCategory.MID: "Mid-Market Plan ($5M-$50M AUM)",
    PlanSizeCategory.LARGE: "Large Plan (> $50M AUM)",
}


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def _bucket_for(value: float, thresholds: List[Tuple[float, str]]) -> str:
    for limit, label in thresholds:
        if value < limit:
            return label
    return thresholds[-1][1]


def get_aum_bucket(aum: float) -> str:
    """Map plan assets to the AUM benchmark bucket label."""
    return _bucket_for(aum, AUM_BUCKET_THRESHOLDS)


def get_balance_bucket(average_balance: float) -> str:
    """Map average participant balance to the balance benchmark bucket label."""
    return _bucket_for(average_balance, BALANCE_BUCKET_THRESHOLDS)


def get_plan_size_category(aum: float) -> PlanSizeCategory:
    """Classify a plan for service expectations (small / mid / large)."""
    if aum < SMALL_PLAN_AUM_LIMIT:
        return PlanSizeCategory.SMALL
    if aum < MID_PLAN_AUM_LIMIT:
        return PlanSizeCategory.MID
    return PlanSizeCategory.LARGE


def bucket_label(bucket) -> str:
    """Plain string label for a bucket given as an enum member or a string."""
    if isinstance(bucket, Enum):
        return bucket.value
    return bucket


def convert_dollars_to_basis_points(fee_amount: float, aum: float) -> float:
    """(fee / assets) * 10000; 0 for a zero-asset plan."""
    if aum == 0:
        return 0.0
    return (fee_amount / aum) * BASIS_POINTS_PER_UNIT


def convert_basis_points_to_decimal(basis_points: float) -> float:
    """50 bps -> 0.005"""
    return basis_points / BASIS_POINTS_PER_UNIT


def format_currency(amount: float) -> str:
    return f"${amount:,.0f}"


def format_percentage(percentage: float, decimals: int = 2) -> str:
    return f"{percentage:.{decimals}f}%"


def format_basis_points(basis_points: float) -> str:
    return f"{basis_points:g} bps"


def get_disclaimer_text(
    aum_bucket: Optional[str] = None,
    balance_bucket: Optional[str] = None
) -> str:
    """Data-source disclaimer shown alongside benchmark results."""
    aum_text = bucket_label(aum_bucket) if aum_bucket else "[AUM Bucket]"
    balance_text = bucket_label(balance_bucket) if balance_bucket else "[Average Balance Bucket]"
    return (
        "Data Source: Showing benchmark data from Fiduciary Decisions Inc. "
        f"for plans with {aum_text} AUM and {balance_text} average account balance."
    )
