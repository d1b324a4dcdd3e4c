"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict

from pythonjsonlogger.json import JsonFormatter

from cashflow_engine.config import settings


class CustomJsonFormatter(JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_forecast(
    request_id: str,
    user_id: str,
    forecast_days: int,
    has_shortfall: bool,
    accounts_at_risk: int,
    duration_ms: float,
) -> None:
    """Log structured forecast outcome"""
    logging.info(
        "Forecast completed",
        extra={
            "request_id": request_id,
            "user_id": user_id,
            "step": "forecast_complete",
            "forecast_days": forecast_days,
            "outcome": "shortfall" if has_shortfall else "clear",
            "accounts_at_risk": accounts_at_risk,
            "duration_ms": duration_ms,
        },
    )


def log_optimisation(
    request_id: str,
    user_id: str,
    strategy_count: int,
    total_potential_savings: float,
    duration_ms: float,
) -> None:
    logging.info(
        "Optimisation completed",
        extra={
            "request_id": request_id,
            "user_id": user_id,
            "step": "optimisation_complete",
            "strategy_count": strategy_count,
            "total_potential_savings": round(total_potential_savings, 2),
            "duration_ms": duration_ms,
        },
    )


def log_stress_test(
    request_id: str,
    user_id: str,
    scenario_count: int,
    resilience_score: int,
    duration_ms: float,
) -> None:
    logging.info(
        "Stress test completed",
        extra={
            "request_id": request_id,
            "user_id": user_id,
            "step": "stress_test_complete",
            "scenario_count": scenario_count,
            "resilience_score": resilience_score,
            "duration_ms": duration_ms,
        },
    )


def log_insights(
    request_id: str,
    user_id: str,
    insight_count: int,
    high_priority_count: int,
    duration_ms: float,
) -> None:
    logging.info(
        "Insights generated",
        extra={
            "request_id": request_id,
            "user_id": user_id,
            "step": "insights_complete",
            "insight_count": insight_count,
            "high_priority_count": high_priority_count,
            "duration_ms": duration_ms,
        },
    )
