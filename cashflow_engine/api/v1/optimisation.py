"""POST /v1/optimisations - Ranked cashflow strategies endpoint"""

import logging
import time
from dataclasses import asdict
from typing import Dict

from fastapi import APIRouter, Depends, HTTPException

from cashflow_engine.api.dependencies import get_benchmarks, get_request_id
from cashflow_engine.api.v1.schemas import OptimisationRequest, OptimisationResponse
from cashflow_engine.domain.exceptions import DomainException
from cashflow_engine.domain.forecasting import generate_forecast
from cashflow_engine.domain.optimisation import build_optimisation_input, generate_optimisations
from cashflow_engine.domain.patterns import build_spending_profile
from cashflow_engine.infrastructure.observability.logging import log_optimisation
from cashflow_engine.infrastructure.observability.metrics import record_strategies

router = APIRouter()


@router.post("/optimisations", response_model=OptimisationResponse)
def create_optimisations(
    request_body: OptimisationRequest,
    request_id: str = Depends(get_request_id),
    benchmarks: Dict[str, float] = Depends(get_benchmarks),
):
    """
    Forecast the snapshot, then detect inefficiencies and rank strategies.

    Request benchmarks override the configured category table.
    """
    start_time = time.time()

    try:
        forecast_input = request_body.to_domain()
        forecast = generate_forecast(forecast_input)
        optimisation_input = build_optimisation_input(
            forecast_input,
            forecast,
            build_spending_profile(forecast_input.transactions),
        )
        optimisation = generate_optimisations(
            optimisation_input,
            benchmarks=request_body.benchmarks if request_body.benchmarks is not None else benchmarks,
        )

    except DomainException as e:
        logging.warning(f"Invalid optimisation input: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))

    except Exception as e:
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    duration = time.time() - start_time
    record_strategies(optimisation.strategies, duration)
    log_optimisation(
        request_id,
        optimisation.user_id,
        optimisation.summary.strategy_count,
        optimisation.summary.total_potential_savings,
        duration * 1000,
    )

    return OptimisationResponse.model_validate(asdict(optimisation))
