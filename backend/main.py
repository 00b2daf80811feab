"""
PlanBench - FastAPI Backend
===========================
API server for retirement plan fee and service benchmarking.

Architecture:
1. The benchmark dataset is loaded lazily (Domo first, CSV fallback) and
   cached for the life of the process
2. Fee math, benchmark lookups and service scoring are pure functions
   over that dataset
3. Presentation (charts, slides, summaries) is left to API clients
"""

import os
import logging
from datetime import datetime, timezone
from typing import Optional
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Depends
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Local imports
from fee_constants import (
    PLAN_SIZE_EXPECTATIONS,
    PLAN_SIZE_LABELS,
    PROVIDER_SCORE_WEIGHTS,
    SERVICE_BASELINES,
    SERVICE_LABELS,
    SERVICE_TIER_DESCRIPTIONS,
    SERVICE_TIER_WEIGHTS,
    get_plan_size_category,
)
from models import (
    AnalysisRequest,
    BenchmarkComparison,
    BenchmarkComparisonRequest,
    BenchmarkDataset,
    BenchmarkReport,
    CalculatedFees,
    PlanData,
    SamplePlanResponse,
    ServiceScoreRequest,
    ServiceScoreResponse,
)
from dataset_loader import BenchmarkDataError, BenchmarkDataLoader
from fee_calculator import calculate_all_fees
from benchmark_resolver import get_benchmark_comparison
from benchmark_analyzer import BenchmarkAnalyzer
from service_scorer import (
    calculate_provider_coverage,
    calculate_service_value_score,
    describe_tier_weighting,
    get_all_missing_essential_services,
)
from sample_data import generate_sample_plan_data

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


# =============================================================================
# APPLICATION SETUP
# =============================================================================

# One loader per process; the dataset is fetched on first use
benchmark_loader = BenchmarkDataLoader()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("PlanBench starting up...")
    yield
    logger.info("PlanBench shutting down...")


app = FastAPI(
    title="PlanBench",
    description="Retirement plan fee and service benchmarking API",
    version="1.0.0",
    lifespan=lifespan
)

cors_origins = os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173")

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in cors_origins.split(",") if origin.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def get_dataset() -> BenchmarkDataset:
    """Loaded benchmark dataset or raise 503."""
    try:
        return benchmark_loader.load()
    except BenchmarkDataError as e:
        logger.error(f"Benchmark data unavailable: {e}")
        raise HTTPException(status_code=503, detail=str(e))


# =============================================================================
# API ENDPOINTS
# =============================================================================

@app.get("/")
async def root():
    """API health check."""
    return {
        "service": "PlanBench",
        "version": "1.0.0",
        "status": "healthy"
    }


@app.get("/api/health")
async def health_check():
    """Detailed health check."""
    dataset = benchmark_loader.dataset
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "components": {
            "fee_calculator": "ready",
            "service_scorer": "ready",
            "benchmark_data": "loaded" if dataset is not None else "not_loaded",
            "domo_api": "configured" if benchmark_loader.domo_client.is_configured else "not_configured",
        },
        "data_source": dataset.data_source.value if dataset is not None else None,
        "row_count": len(dataset) if dataset is not None else 0,
    }


# --- BENCHMARK DATA ---

@app.get("/api/benchmark")
def get_benchmark_data():
    """
    Raw benchmark rows.

    Load failures are reported in the body rather than raised so clients
    can show the error next to the empty table.
    """
    try:
        dataset = benchmark_loader.load()
    except BenchmarkDataError as e:
        logger.error(f"Error fetching benchmark data: {e}")
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": str(e)}
        )

    return {
        "success": True,
        "data": [row.model_dump() for row in dataset.rows],
        "count": len(dataset),
        "data_source": dataset.data_source.value,
    }


@app.get("/api/benchmark/buckets")
async def get_benchmark_buckets(dataset: BenchmarkDataset = Depends(get_dataset)):
    """AUM and balance buckets present in the loaded dataset."""
    return {
        "source": dataset.source,
        "aum_buckets": dataset.available_aum_buckets(),
        "balance_buckets": dataset.available_balance_buckets(),
    }


@app.post("/api/benchmark/comparison", response_model=BenchmarkComparison)
async def benchmark_comparison(
    request: BenchmarkComparisonRequest,
    dataset: BenchmarkDataset = Depends(get_dataset)
):
    """25th/50th/75th percentile benchmarks for every fee category."""
    return get_benchmark_comparison(
        dataset,
        request.aum_bucket,
        request.balance_bucket,
        request.fee_type
    )


# --- FEES & SERVICES ---

@app.post("/api/fees/calculate", response_model=CalculatedFees)
async def calculate_fees(plan: PlanData):
    """
    Calculate dollar and percent-of-assets fees for a plan.

    No benchmark data is needed for this endpoint.
    """
    return calculate_all_fees(plan)


@app.post("/api/services/score", response_model=ServiceScoreResponse)
async def score_services(request: ServiceScoreRequest):
    """Service value score with per-provider coverage."""
    aum = request.assets_under_management
    return ServiceScoreResponse(
        score=calculate_service_value_score(request.services, aum),
        coverage=calculate_provider_coverage(request.services),
        missing_essential_services=get_all_missing_essential_services(request.services),
        weighting=describe_tier_weighting(get_plan_size_category(aum)),
    )


# --- ANALYSIS ---

@app.post("/api/analysis", response_model=BenchmarkReport)
async def run_analysis(
    request: AnalysisRequest,
    dataset: BenchmarkDataset = Depends(get_dataset)
):
    """Benchmark an existing plan, optionally against a proposed plan."""
    analyzer = BenchmarkAnalyzer(dataset)
    return analyzer.analyze(request.existing, request.proposed)


@app.get("/api/sample", response_model=SamplePlanResponse)
async def get_sample_plan(seed: Optional[int] = None):
    """Generated existing / proposed plan pair for demos."""
    existing, proposed = generate_sample_plan_data(seed)
    return SamplePlanResponse(existing=existing, proposed=proposed)


# --- REFERENCE DATA ---

@app.get("/api/reference/baselines")
async def get_service_baselines():
    """Service baselines, labels and scoring weights."""
    return {
        "providers": {
            provider: {
                "essential": list(baseline.essential),
                "standard": list(baseline.standard),
                "premium": list(baseline.premium),
                "labels": SERVICE_LABELS[provider],
            }
            for provider, baseline in SERVICE_BASELINES.items()
        },
        "tier_weights": {tier.value: weight for tier, weight in SERVICE_TIER_WEIGHTS.items()},
        "tier_descriptions": {tier.value: text for tier, text in SERVICE_TIER_DESCRIPTIONS.items()},
        "provider_weights": PROVIDER_SCORE_WEIGHTS,
        "plan_sizes": {
            size.value: {
                "label": PLAN_SIZE_LABELS[size],
                "min_services": expectations["min_services"],
                "recommended_tiers": [tier.value for tier in expectations["recommended_tiers"]],
                "notes": expectations["notes"],
            }
            for size, expectations in PLAN_SIZE_EXPECTATIONS.items()
        },
    }


# --- ERROR HANDLERS ---

@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    logger.error(f"Unhandled exception: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "detail": str(exc) if os.getenv("DEBUG") else "An error occurred"
        }
    )


# =============================================================================
# MAIN ENTRY POINT
# =============================================================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
