"""Strategy ranking and lifecycle"""

from dataclasses import replace
from datetime import date
from typing import Iterable, List

from cashflow_engine.domain.exceptions import InvalidStrategyTransitionError
from cashflow_engine.domain.models import (
    CashflowStrategy,
    InsightSeverity,
    StrategyStatus,
    Urgency,
)

SEVERITY_PRIORITY = {
    InsightSeverity.CRITICAL: 100,
    InsightSeverity.HIGH: 75,
    InsightSeverity.MEDIUM: 50,
    InsightSeverity.LOW: 25,
}

URGENCY_PRIORITY = {
    Urgency.HIGH: 90,
    Urgency.MEDIUM: 60,
    Urgency.LOW: 30,
}

SEVERITY_ORDER = {
    InsightSeverity.CRITICAL: 0,
    InsightSeverity.HIGH: 1,
    InsightSeverity.MEDIUM: 2,
    InsightSeverity.LOW: 3,
}

TERMINAL_STATUSES = {StrategyStatus.ACCEPTED, StrategyStatus.DISMISSED, StrategyStatus.EXPIRED}


def severity_to_priority(severity: InsightSeverity) -> int:
    return SEVERITY_PRIORITY[severity]


def urgency_to_priority(urgency: Urgency) -> int:
    return URGENCY_PRIORITY[urgency]


def value_to_severity(value: float) -> InsightSeverity:
    """
    Map a dollar value to a severity band.

    - $1000+: CRITICAL
    - $500+:  HIGH
    - $100+:  MEDIUM
    - below:  LOW
    """
    if value >= 1000:
        return InsightSeverity.CRITICAL
    if value >= 500:
        return InsightSeverity.HIGH
    if value >= 100:
        return InsightSeverity.MEDIUM
    return InsightSeverity.LOW


def rank_strategies(strategies: Iterable[CashflowStrategy]) -> List[CashflowStrategy]:
    """Highest priority first; ties keep generation order"""
    return sorted(strategies, key=lambda s: -s.priority)


def transition_strategy(strategy: CashflowStrategy, status: StrategyStatus) -> CashflowStrategy:
    """
    Move a PENDING strategy to ACCEPTED, DISMISSED or EXPIRED.

    Raises:
        InvalidStrategyTransitionError: strategy is not PENDING or target is PENDING
    """
    if strategy.status != StrategyStatus.PENDING or status not in TERMINAL_STATUSES:
        raise InvalidStrategyTransitionError(
            f"Cannot move strategy {strategy.id} from {strategy.status.value} to {status.value}"
        )
    return replace(strategy, status=status)


def expire_strategies(strategies: Iterable[CashflowStrategy], today: date) -> List[CashflowStrategy]:
    """Mark pending strategies past their expiry date as EXPIRED"""
    return [
        replace(s, status=StrategyStatus.EXPIRED)
        if s.status == StrategyStatus.PENDING and s.expires_on is not None and s.expires_on < today
        else s
        for s in strategies
    ]
