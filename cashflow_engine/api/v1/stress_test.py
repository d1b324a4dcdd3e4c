"""Stress testing endpoints - predefined and custom what-if scenarios"""

import logging
import time
from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException

from cashflow_engine.api.dependencies import get_request_id
from cashflow_engine.api.v1.schemas import ScenarioListResponse, StressTestRequest, StressTestResponse
from cashflow_engine.domain.exceptions import DomainException, InvalidStressParametersError
from cashflow_engine.domain.stress_testing import (
    create_custom_scenario,
    get_available_scenarios,
    run_stress_tests,
)
from cashflow_engine.infrastructure.observability.logging import log_stress_test
from cashflow_engine.infrastructure.observability.metrics import record_stress_test

router = APIRouter()


@router.get("/stress-tests/scenarios", response_model=ScenarioListResponse)
def list_scenarios():
    """Predefined scenario library"""
    return ScenarioListResponse.model_validate(
        {"scenarios": [asdict(scenario) for scenario in get_available_scenarios()]}
    )


@router.post("/stress-tests", response_model=StressTestResponse)
def create_stress_test(request_body: StressTestRequest, request_id: str = Depends(get_request_id)):
    """
    Run the selected scenarios against the snapshot.

    Runs every predefined scenario unless scenario_ids narrows the set;
    custom scenarios are appended in request order.
    """
    start_time = time.time()

    try:
        available = {scenario.id: scenario for scenario in get_available_scenarios()}
        if request_body.scenario_ids is None:
            scenarios = list(available.values())
        else:
            unknown = [sid for sid in request_body.scenario_ids if sid not in available]
            if unknown:
                raise InvalidStressParametersError(f"Unknown scenario ids: {', '.join(unknown)}")
            scenarios = [available[sid] for sid in request_body.scenario_ids]

        scenarios += [
            create_custom_scenario(custom.name, custom.description, custom.parameters.to_domain())
            for custom in request_body.custom_scenarios
        ]

        output = run_stress_tests(request_body.to_domain(), scenarios)

    except DomainException as e:
        logging.warning(f"Invalid stress test request: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))

    except Exception as e:
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    duration = time.time() - start_time
    record_stress_test(len(output.scenario_results), output.resilience_score, duration)
    log_stress_test(
        request_id,
        output.user_id,
        len(output.scenario_results),
        output.resilience_score,
        duration * 1000,
    )

    return StressTestResponse.model_validate(asdict(output))
