"""POST /v1/forecast - Day-by-day cashflow forecast endpoint"""

import logging
import time
from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException

from cashflow_engine.api.dependencies import get_request_id
from cashflow_engine.api.v1.schemas import ForecastRequest, ForecastResponse
from cashflow_engine.domain.exceptions import DomainException
from cashflow_engine.domain.forecasting import generate_forecast
from cashflow_engine.infrastructure.observability.logging import log_forecast
from cashflow_engine.infrastructure.observability.metrics import record_forecast

router = APIRouter()


@router.post("/forecast", response_model=ForecastResponse)
def create_forecast(request_body: ForecastRequest, request_id: str = Depends(get_request_id)):
    """
    Simulate account balances over the forecast horizon.

    Flow:
    1. Convert the request snapshot to domain input
    2. Run the forecast simulator
    3. Record metrics and logs
    """
    start_time = time.time()

    try:
        forecast = generate_forecast(request_body.to_domain())

    except DomainException as e:
        logging.warning(f"Invalid forecast input: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))

    except Exception as e:
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    duration = time.time() - start_time
    shortfalls = forecast.shortfall_analysis
    record_forecast(shortfalls.has_shortfall, duration)
    log_forecast(
        request_id,
        forecast.user_id,
        forecast.metadata.forecast_days,
        shortfalls.has_shortfall,
        len(shortfalls.accounts_at_risk),
        duration * 1000,
    )

    return ForecastResponse.model_validate(asdict(forecast))
