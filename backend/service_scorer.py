"""
PlanBench - Service Scorer
==========================
Scores how well a plan's bundled services cover the industry baseline.

Each provider's services are split into essential / standard / premium
tiers (see fee_constants). Coverage per tier feeds a weighted provider
score, and provider scores combine into one 0-100 service value score.
"""

import math
from typing import Dict, List, Mapping, Optional, Union

from pydantic import BaseModel

from fee_constants import (
    PLAN_SIZE_EXPECTATIONS,
    PLAN_SIZE_LABELS,
    PROVIDER_INSIGHT_NAMES,
    PROVIDER_SCORE_WEIGHTS,
    SERVICE_BASELINES,
    SERVICE_LABELS,
    SERVICE_TIER_WEIGHTS,
    PlanSizeCategory,
    ServiceBaseline,
    ServiceTier,
    get_plan_size_category,
)
from models import (
    ServiceCoverage,
    ServiceOptions,
    ServiceScoreBreakdown,
    ServiceValueScore,
    TierCoverage,
)


SelectedServices = Optional[Union[BaseModel, Mapping[str, bool]]]

# Providers checked for gaps in the insight list (audit is scored only)
INSIGHT_PROVIDERS = ("advisor", "record_keeper", "tpa")


def _selected_flags(selected: SelectedServices) -> Dict[str, bool]:
    """Normalize a service model / mapping / None into a flag dict."""
    if selected is None:
        return {}
    if isinstance(selected, BaseModel):
        return selected.model_dump()
    return dict(selected)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def get_service_tier(service: str, baseline: ServiceBaseline) -> Optional[ServiceTier]:
    """Tier of a service flag, or None if the baseline does not list it."""
    for tier in ServiceTier:
        if service in baseline.tier_members(tier):
            return tier
    return None


def count_services_by_tier(
    selected: SelectedServices,
    baseline: ServiceBaseline
) -> Dict[ServiceTier, int]:
    """Count selected (True) services per tier; unknown flags are ignored."""
    counts = {tier: 0 for tier in ServiceTier}

    for service, value in _selected_flags(selected).items():
        if value is True:
            tier = get_service_tier(service, baseline)
            if tier:
                counts[tier] += 1

    return counts


def _coverage(provided: int, total: int) -> TierCoverage:
    percentage = (provided / total) * 100 if total > 0 else 0.0
    return TierCoverage(provided=provided, total=total, percentage=percentage)


def calculate_service_coverage(
    selected: SelectedServices,
    baseline: ServiceBaseline
) -> ServiceCoverage:
    """
    Coverage of a provider's baseline, per tier and overall.

    Args:
        selected: Service flags (model, mapping, or None for none selected)
        baseline: The provider's tier partition

    Returns:
        ServiceCoverage with provided / total / percentage per tier
    """
    counts = count_services_by_tier(selected, baseline)

    essential_total = len(baseline.essential)
    standard_total = len(baseline.standard)
    premium_total = len(baseline.premium)

    return ServiceCoverage(
        essential=_coverage(counts[ServiceTier.ESSENTIAL], essential_total),
        standard=_coverage(counts[ServiceTier.STANDARD], standard_total),
        premium=_coverage(counts[ServiceTier.PREMIUM], premium_total),
        overall=_coverage(
            sum(counts.values()),
            essential_total + standard_total + premium_total
        ),
    )


def calculate_weighted_score(
    coverage: ServiceCoverage,
    weights: Optional[Dict[ServiceTier, int]] = None
) -> float:
    """
    Weighted provider score (0-100, unrounded).

    (essential% * 3 + standard% * 2 + premium% * 1) / (300 + 200 + 100) * 100
    """
    weights = weights or SERVICE_TIER_WEIGHTS

    weighted = (
        coverage.essential.percentage * weights[ServiceTier.ESSENTIAL] +
        coverage.standard.percentage * weights[ServiceTier.STANDARD] +
        coverage.premium.percentage * weights[ServiceTier.PREMIUM]
    )
    max_score = 100 * sum(weights.values())
    return (weighted / max_score) * 100


def _provider_services(service_options: Optional[ServiceOptions], provider: str):
    if service_options is None:
        return None
    return getattr(service_options, provider)


def calculate_provider_coverage(
    service_options: Optional[ServiceOptions]
) -> Dict[str, ServiceCoverage]:
    """Coverage for every provider type."""
    return {
        provider: calculate_service_coverage(
            _provider_services(service_options, provider),
            baseline
        )
        for provider, baseline in SERVICE_BASELINES.items()
    }


def calculate_service_value_score(
    service_options: Optional[ServiceOptions],
    aum: float
) -> ServiceValueScore:
    """
    Calculate the overall service value score (0-100).

    Tier weights are fixed at 3/2/1 for every plan size. Plan size only
    selects the minimum-service thresholds used for insights.
    Provider weights: advisor 35%, record keeper 35%, TPA 25%, audit 5%.
    """
    plan_size = get_plan_size_category(aum)
    minimums = PLAN_SIZE_EXPECTATIONS[plan_size]["min_services"]

    coverage = calculate_provider_coverage(service_options)
    provider_scores = {
        provider: calculate_weighted_score(provider_coverage)
        for provider, provider_coverage in coverage.items()
    }

    insights: List[str] = []

    # Missing essential services
    for provider in INSIGHT_PROVIDERS:
        essential = coverage[provider].essential
        if essential.provided < essential.total:
            insights.append(
                f"Missing {essential.total - essential.provided} essential "
                f"{PROVIDER_INSIGHT_NAMES[provider]} service(s)"
            )

    # Plan size appropriateness
    for provider in INSIGHT_PROVIDERS:
        provided = coverage[provider].overall.provided
        minimum = minimums[provider]
        if provided < minimum:
            name = PROVIDER_INSIGHT_NAMES[provider]
            insights.append(
                f"{name[0].upper()}{name[1:]} services ({provided}) below recommended "
                f"minimum ({minimum}) for plan size"
            )

    overall = sum(
        provider_scores[provider] * weight
        for provider, weight in PROVIDER_SCORE_WEIGHTS.items()
    )

    return ServiceValueScore(
        score=_round_half_up(overall),
        breakdown=ServiceScoreBreakdown(**{
            provider: _round_half_up(score)
            for provider, score in provider_scores.items()
        }),
        insights=insights,
        plan_size=plan_size,
    )


def get_missing_essential_services(
    selected: SelectedServices,
    baseline: ServiceBaseline,
    service_labels: Mapping[str, str]
) -> List[str]:
    """Labels of essential services not selected, in baseline order."""
    flags = _selected_flags(selected)
    return [
        service_labels.get(service, service)
        for service in baseline.essential
        if not flags.get(service)
    ]


def get_all_missing_essential_services(
    service_options: Optional[ServiceOptions]
) -> Dict[str, List[str]]:
    """Missing essential service labels for every provider."""
    return {
        provider: get_missing_essential_services(
            _provider_services(service_options, provider),
            baseline,
            SERVICE_LABELS[provider]
        )
        for provider, baseline in SERVICE_BASELINES.items()
    }


def describe_tier_weighting(plan_size: PlanSizeCategory) -> str:
    """
    Explanatory text for the tier weighting the score applies.

    Generated from SERVICE_TIER_WEIGHTS so the description always matches
    the scoring function.
    """
    weights = SERVICE_TIER_WEIGHTS
    return (
        "Service Scores (0-100): Measures coverage of essential, standard, and "
        f"premium services. Scoring for a {PLAN_SIZE_LABELS[plan_size]} weights "
        f"essential {weights[ServiceTier.ESSENTIAL]}x, "
        f"standard {weights[ServiceTier.STANDARD]}x, "
        f"premium {weights[ServiceTier.PREMIUM]}x; the same weights apply to every plan size."
    )
