"""
PlanBench - Sample Plan Data
============================
Generates a realistic existing / proposed plan pair for demos and
manual testing of the API.
"""

import random
from typing import Optional, Tuple

from fee_constants import (
    FeeStructureType,
    PlanFeeType,
    get_aum_bucket,
    get_balance_bucket,
)
from models import (
    AdvisorServices,
    AuditServices,
    FeeInput,
    FeeStructure,
    PlanData,
    RecordKeeperServices,
    ServiceOptions,
    TPAServices,
)


def _advisor_basis_points(rng: random.Random, aum: float) -> int:
    """Advisor fees shrink as plans grow."""
    if aum < 5_000_000:
        return rng.randint(40, 74)
    if aum < 20_000_000:
        return rng.randint(25, 39)
    if aum < 50_000_000:
        return rng.randint(14, 26)
    return rng.randint(5, 9)


def _existing_services(participants: int) -> ServiceOptions:
    audit_required = participants >= 100
    return ServiceOptions(
        advisor=AdvisorServices(
            plan_design_consulting=True,
            investment_menu_selection=True,
            participant_education=True,
            fiduciary_support_321=True,
            fiduciary_support_338=False,
            compliance_assistance=True,
            quarterly_reviews=True,
            custom_reporting=False,
        ),
        record_keeper=RecordKeeperServices(
            participant_website=True,
            mobile_app=True,
            call_center_support=True,
            online_enrollment=True,
            loan_administration=True,
            distribution_processing=True,
            payroll_integration=False,
            daily_valuation=True,
            auto_enrollment=True,
            participant_statements=True,
        ),
        tpa=TPAServices(
            form_5500_preparation=True,
            discrimination_testing=True,
            plan_document_updates=True,
            amendment_services=False,
            notice_preparation=False,
            compliance_testing=True,
            government_filings=True,
            participant_notices=True,
        ),
        audit=AuditServices(
            annual_audit=audit_required,
            full_scope_audit=audit_required,
        ),
    )


def _proposed_services(participants: int) -> ServiceOptions:
    """Every advisor, record keeper and TPA service; limited-scope audit."""
    audit_required = participants >= 100
    return ServiceOptions(
        advisor=AdvisorServices(**{name: True for name in AdvisorServices.model_fields}),
        record_keeper=RecordKeeperServices(
            **{name: True for name in RecordKeeperServices.model_fields}
        ),
        tpa=TPAServices(**{name: True for name in TPAServices.model_fields}),
        audit=AuditServices(
            annual_audit=audit_required,
            limited_scope_audit=audit_required,
        ),
    )


def generate_sample_plan_data(seed: Optional[int] = None) -> Tuple[PlanData, PlanData]:
    """
    Generate an (existing, proposed) plan pair.

    AUM is $1M-$50M with an average balance of $50k-$150k. The proposed
    plan keeps the same size and benchmark buckets, upgrades services
    and reduces every fee.

    Args:
        seed: Seed for reproducible output

    Returns:
        Tuple of (existing plan, proposed plan)
    """
    rng = random.Random(seed)

    aum = float(rng.randint(1_000_000, 49_999_999))
    avg_balance = rng.randint(50_000, 149_999)
    participants = int(aum // avg_balance)

    aum_bucket = get_aum_bucket(aum)
    balance_bucket = get_balance_bucket(aum / participants if participants else 0)

    advisor_bps = _advisor_basis_points(rng, aum)
    rk_is_asset_based = aum > 10_000_000
    rk_bps = rng.randint(15, 29)
    rk_flat = rng.randint(8_000, 17_999)
    tpa_flat = rng.randint(2_000, 3_999)
    tpa_per_head = rng.randint(30, 49)
    investment_bps = rng.randint(15, 29)

    if rk_is_asset_based:
        existing_rk = FeeStructure(type=FeeStructureType.BASIS_POINTS, basis_points=rk_bps)
        proposed_rk = FeeStructure(type=FeeStructureType.BASIS_POINTS, basis_points=max(rk_bps - 5, 1))
    else:
        existing_rk = FeeStructure(type=FeeStructureType.FLAT_FEE, flat_fee=rk_flat)
        proposed_rk = FeeStructure(type=FeeStructureType.FLAT_FEE, flat_fee=round(rk_flat * 0.8))

    existing = PlanData(
        assets_under_management=aum,
        participant_count=participants,
        benchmark_category=aum_bucket,
        balance_benchmark_category=balance_bucket,
        fee_type=PlanFeeType.UNBUNDLED,
        fees=FeeInput(
            advisor=FeeStructure(type=FeeStructureType.BASIS_POINTS, basis_points=advisor_bps),
            record_keeper=existing_rk,
            tpa=FeeStructure(
                type=FeeStructureType.FLAT_PLUS_PER_HEAD,
                flat_fee=tpa_flat,
                per_head_fee=tpa_per_head,
            ),
            investment_menu=FeeStructure(
                type=FeeStructureType.BASIS_POINTS,
                basis_points=investment_bps,
            ),
        ),
        services=_existing_services(participants),
    )

    proposed = existing.model_copy(update={
        "fees": FeeInput(
            advisor=FeeStructure(
                type=FeeStructureType.BASIS_POINTS,
                basis_points=max(advisor_bps - 5, 1),
            ),
            record_keeper=proposed_rk,
            tpa=FeeStructure(
                type=FeeStructureType.FLAT_PLUS_PER_HEAD,
                flat_fee=round(tpa_flat * 0.9),
                per_head_fee=max(tpa_per_head - 5, 0),
            ),
            investment_menu=FeeStructure(
                type=FeeStructureType.BASIS_POINTS,
                basis_points=max(investment_bps - 5, 1),
            ),
        ),
        "services": _proposed_services(participants),
    })

    return existing, proposed
