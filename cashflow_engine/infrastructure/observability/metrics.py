"""Prometheus metrics for monitoring forecasts, strategies and stress test resilience"""

from typing import Iterable

from prometheus_client import Counter, Histogram

from cashflow_engine.domain.models import CashflowStrategy

# Forecast metrics
forecast_counter = Counter(
    "cashflow_forecast_total",
    "Total forecasts generated",
    ["outcome"],  # shortfall | clear
)

# Optimisation metrics
strategy_counter = Counter(
    "cashflow_strategy_total",
    "Strategies recommended by type",
    ["type"],
)

# Stress test metrics
stress_scenario_counter = Counter(
    "cashflow_stress_scenarios_total",
    "Stress scenarios simulated",
)

resilience_score_histogram = Histogram(
    "cashflow_resilience_score",
    "Resilience scores from stress test runs",
    buckets=[10, 25, 50, 75, 90, 100],
)

engine_duration_histogram = Histogram(
    "cashflow_engine_duration_seconds",
    "Engine computation time",
    ["operation"],  # forecast | optimisation | stress_test | insights
    buckets=[0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_forecast(has_shortfall: bool, duration_seconds: float) -> None:
    forecast_counter.labels(outcome="shortfall" if has_shortfall else "clear").inc()
    engine_duration_histogram.labels(operation="forecast").observe(duration_seconds)


def record_strategies(strategies: Iterable[CashflowStrategy], duration_seconds: float) -> None:
    """Count recommended strategies by type"""
    for strategy in strategies:
        strategy_counter.labels(type=strategy.type.value).inc()
    engine_duration_histogram.labels(operation="optimisation").observe(duration_seconds)


def record_stress_test(scenario_count: int, resilience_score: int, duration_seconds: float) -> None:
    stress_scenario_counter.inc(scenario_count)
    resilience_score_histogram.observe(resilience_score)
    engine_duration_histogram.labels(operation="stress_test").observe(duration_seconds)


def record_insights(duration_seconds: float) -> None:
    engine_duration_histogram.labels(operation="insights").observe(duration_seconds)
