"""
PlanBench - Fee Calculator
==========================
Converts plan fee structures into dollar amounts and percent of assets.

All fee math happens here with plain arithmetic. Nothing in this module
raises for degenerate input: unknown fee tags and missing optional
amounts resolve to 0 (validation belongs to the input layer).
"""

import logging
from typing import Optional

from fee_constants import (
    BASIS_POINTS_PER_UNIT,
    FEE_CATEGORY_DISPLAY_NAMES,
    FeeStructureType,
)
from models import CalculatedFee, CalculatedFees, FeeStructure, PlanData

logger = logging.getLogger(__name__)


def calculate_fee_amount(
    fee_structure: FeeStructure,
    aum: float,
    participant_count: Optional[int] = None
) -> float:
    """
    Calculate the annual dollar amount of a single fee.

    Args:
        fee_structure: Tagged fee structure
        aum: Plan assets under management
        participant_count: Number of participants (None counts as 0)

    Returns:
        Dollar amount; 0 for an unrecognized fee type
    """
    participants = participant_count or 0
    fee_type = fee_structure.type

    if fee_type == FeeStructureType.BASIS_POINTS:
        # User enters basis points (e.g., 50), 1 bp = 0.01%
        return aum * (fee_structure.basis_points or 0) / BASIS_POINTS_PER_UNIT

    if fee_type == FeeStructureType.FLAT_FEE:
        return fee_structure.flat_fee or 0

    if fee_type == FeeStructureType.FLAT_PLUS_PER_HEAD:
        flat = fee_structure.flat_fee or 0
        per_head = (fee_structure.per_head_fee or 0) * participants
        return flat + per_head

    if fee_type == FeeStructureType.PER_PARTICIPANT:
        return (fee_structure.per_head_fee or 0) * participants

    logger.warning(f"Unknown fee structure type {fee_type!r}; treating fee as $0")
    return 0.0


def calculate_fee_percentage(fee_amount: float, aum: float) -> float:
    """Fee as a percent of assets (0.5 = 0.5%). Zero-asset plans return 0."""
    if aum == 0:
        return 0.0
    return (fee_amount / aum) * 100


def calculate_all_fees(plan_data: PlanData) -> CalculatedFees:
    """
    Calculate every fee category for a plan plus the total.

    The total's dollar amount is the sum of the four categories and its
    percentage is computed from that sum.
    """
    aum = plan_data.assets_under_management or 0
    participants = plan_data.participant_count
    fees = plan_data.fees

    amounts = {
        "advisor": calculate_fee_amount(fees.advisor, aum, participants),
        "record_keeper": calculate_fee_amount(fees.record_keeper, aum, participants),
        "tpa": calculate_fee_amount(fees.tpa, aum, participants),
        "investment_menu": calculate_fee_amount(fees.investment_menu, aum, participants),
    }
    amounts["total"] = (
        amounts["advisor"] +
        amounts["record_keeper"] +
        amounts["tpa"] +
        amounts["investment_menu"]
    )

    return CalculatedFees(**{
        category: CalculatedFee(
            fee_type=FEE_CATEGORY_DISPLAY_NAMES[category],
            dollar_amount=amount,
            percentage=calculate_fee_percentage(amount, aum),
        )
        for category, amount in amounts.items()
    })
