"""Unit tests for strategy ranking and status transitions"""

from dataclasses import replace
from datetime import date

import pytest

from cashflow_engine.domain.exceptions import InvalidStrategyTransitionError
from cashflow_engine.domain.models import (
    CashflowStrategy,
    InsightSeverity,
    StrategyStatus,
    StrategyType,
    Urgency,
)
from cashflow_engine.domain.strategies import (
    expire_strategies,
    rank_strategies,
    severity_to_priority,
    transition_strategy,
    urgency_to_priority,
    value_to_severity,
)


def strategy(strategy_id: str, priority: int, **overrides) -> CashflowStrategy:
    base = CashflowStrategy(
        id=strategy_id,
        type=StrategyType.OPTIMISE,
        priority=priority,
        title=strategy_id,
        summary="",
        confidence=0.8,
        projected_benefit=0.0,
    )
    return replace(base, **overrides)


@pytest.mark.parametrize(
    "value,severity",
    [
        (1_000.0, InsightSeverity.CRITICAL),
        (999.99, InsightSeverity.HIGH),
        (500.0, InsightSeverity.HIGH),
        (100.0, InsightSeverity.MEDIUM),
        (99.0, InsightSeverity.LOW),
        (0.0, InsightSeverity.LOW),
    ],
)
def test_value_to_severity_bands(value, severity):
    assert value_to_severity(value) == severity


def test_priority_mappings():
    assert [severity_to_priority(s) for s in InsightSeverity] == [25, 50, 75, 100]
    assert [urgency_to_priority(u) for u in Urgency] == [30, 60, 90]


def test_rank_is_descending_and_stable():
    ranked = rank_strategies([strategy("a", 50), strategy("b", 90), strategy("c", 50), strategy("d", 100)])

    assert [s.id for s in ranked] == ["d", "b", "a", "c"]


def test_transition_from_pending():
    accepted = transition_strategy(strategy("a", 50), StrategyStatus.ACCEPTED)

    assert accepted.status == StrategyStatus.ACCEPTED


@pytest.mark.parametrize(
    "current,target",
    [
        (StrategyStatus.ACCEPTED, StrategyStatus.DISMISSED),
        (StrategyStatus.EXPIRED, StrategyStatus.ACCEPTED),
        (StrategyStatus.PENDING, StrategyStatus.PENDING),
    ],
)
def test_invalid_transitions_rejected(current, target):
    with pytest.raises(InvalidStrategyTransitionError):
        transition_strategy(strategy("a", 50, status=current), target)


def test_expire_strategies():
    today = date(2025, 3, 1)
    strategies = [
        strategy("stale", 50, expires_on=date(2025, 2, 1)),
        strategy("fresh", 50, expires_on=date(2025, 4, 1)),
        strategy("open", 50),
        strategy("done", 50, status=StrategyStatus.ACCEPTED, expires_on=date(2025, 2, 1)),
    ]

    expired = expire_strategies(strategies, today)

    assert [s.status for s in expired] == [
        StrategyStatus.EXPIRED,
        StrategyStatus.PENDING,
        StrategyStatus.PENDING,
        StrategyStatus.ACCEPTED,
    ]
