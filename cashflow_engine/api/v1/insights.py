"""POST /v1/insights - Cashflow insight feed endpoint"""

import logging
import time
from dataclasses import asdict
from typing import Dict

from fastapi import APIRouter, Depends, HTTPException

from cashflow_engine.api.dependencies import get_benchmarks, get_request_id
from cashflow_engine.api.v1.schemas import InsightsRequest, InsightsResponse
from cashflow_engine.domain.exceptions import DomainException
from cashflow_engine.domain.forecasting import generate_forecast
from cashflow_engine.domain.insights import (
    generate_cashflow_insights,
    get_high_priority_insights,
    get_total_savings_potential,
)
from cashflow_engine.domain.optimisation import build_optimisation_input, generate_optimisations
from cashflow_engine.domain.patterns import build_spending_profile
from cashflow_engine.domain.stress_testing import run_stress_tests
from cashflow_engine.infrastructure.observability.logging import log_insights
from cashflow_engine.infrastructure.observability.metrics import record_insights

router = APIRouter()


@router.post("/insights", response_model=InsightsResponse)
def create_insights(
    request_body: InsightsRequest,
    request_id: str = Depends(get_request_id),
    benchmarks: Dict[str, float] = Depends(get_benchmarks),
):
    """
    Run the engines selected by the request and summarise them as insights.

    The forecast always runs; optimisation and stress testing are opt-in.
    """
    start_time = time.time()

    try:
        forecast_input = request_body.to_domain()
        forecast = generate_forecast(forecast_input)

        optimisation = None
        if request_body.include_optimisation:
            optimisation = generate_optimisations(
                build_optimisation_input(
                    forecast_input,
                    forecast,
                    build_spending_profile(forecast_input.transactions),
                ),
                benchmarks=request_body.benchmarks if request_body.benchmarks is not None else benchmarks,
            )

        stress = run_stress_tests(forecast_input) if request_body.include_stress else None

        insights = generate_cashflow_insights(forecast_input.user_id, forecast, optimisation, stress)

    except DomainException as e:
        logging.warning(f"Invalid insights request: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))

    except Exception as e:
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    high_priority_count = len(get_high_priority_insights(insights))

    duration = time.time() - start_time
    record_insights(duration)
    log_insights(
        request_id=request_id,
        user_id=forecast_input.user_id,
        insight_count=len(insights),
        high_priority_count=high_priority_count,
        duration_ms=duration * 1000,
    )

    return InsightsResponse.model_validate(
        {
            "user_id": forecast_input.user_id,
            "insights": [asdict(insight) for insight in insights],
            "high_priority_count": high_priority_count,
            "total_savings_potential": get_total_savings_potential(insights),
        }
    )
