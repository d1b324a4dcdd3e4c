"""Insight generator - severity-tagged findings from forecast, optimisation and stress outputs"""

from collections import defaultdict
from dataclasses import replace
from datetime import date
from typing import Dict, List, Optional

from cashflow_engine.domain.models import (
    CashflowInsight,
    ForecastOutput,
    InsightCategory,
    InsightSeverity,
    LinkedEntities,
    OptimisationOutput,
    StressTestOutput,
    Urgency,
)
from cashflow_engine.domain.strategies import SEVERITY_ORDER, value_to_severity

SHORTFALL_CRITICAL_DAYS = 14
SHORTFALL_WARNING_DAYS = 30
VOLATILITY_MEDIUM = 50
VOLATILITY_HIGH = 70
NEGATIVE_CASHFLOW_HIGH = -1000
LOW_BUFFER_MONTHS = 2
HIGH_BURN_RATE_THRESHOLD = 0.9  # share of income
INEFFICIENCY_INSIGHT_MIN = 100
FUND_MOVEMENT_INSIGHT_MIN = 100
REPAYMENT_INSIGHT_MIN = 500
LATE_BREAK_EVEN_DAY = 20
PRICE_INCREASE_HIGH_PERCENT = 20
SUBSCRIPTION_COUNT_MEDIUM = 10
SUBSCRIPTION_COUNT_HIGH = 15
RESILIENCE_HIGH = 50
RESILIENCE_CRITICAL = 25


def generate_cashflow_insights(
    user_id: str,
    forecast: Optional[ForecastOutput] = None,
    optimisation: Optional[OptimisationOutput] = None,
    stress: Optional[StressTestOutput] = None,
) -> List[CashflowInsight]:
    """
    Translate engine outputs into insights; no new computation.

    Ordered CRITICAL -> LOW, then by descending value estimate.
    """
    insights: List[CashflowInsight] = []

    if forecast is not None:
        insights.extend(generate_forecast_insights(user_id, forecast))
        insights.extend(generate_liquidity_insights(user_id, forecast))
    if optimisation is not None:
        insights.extend(generate_optimisation_insights(user_id, optimisation))
        insights.extend(generate_subscription_insights(user_id, optimisation))
    if stress is not None:
        insights.extend(generate_resilience_insights(user_id, stress))

    return sorted(insights, key=lambda i: (SEVERITY_ORDER[i.severity], -(i.value_estimate or 0.0)))


def _insight_id(kind: str, created_on: date, index: Optional[int] = None) -> str:
    suffix = f"-{index}" if index is not None else ""
    return f"insight-{kind}{suffix}-{created_on.isoformat()}"


def generate_forecast_insights(user_id: str, forecast: ForecastOutput) -> List[CashflowInsight]:
    insights = []
    today = forecast.generated_on
    shortfalls = forecast.shortfall_analysis
    summary = forecast.summary

    if shortfalls.has_shortfall and shortfalls.first_shortfall_date is not None:
        days_until = (shortfalls.first_shortfall_date - today).days
        amount = shortfalls.max_shortfall_amount
        if days_until <= SHORTFALL_CRITICAL_DAYS:
            insights.append(
                CashflowInsight(
                    id=_insight_id("shortfall-imminent", today),
                    user_id=user_id,
                    severity=InsightSeverity.CRITICAL,
                    category=InsightCategory.LIQUIDITY_RISK,
                    title="Cash Shortfall Imminent",
                    description=(
                        f"You are predicted to have a cash shortfall of ${round(amount)} "
                        f"in {days_until} days. Immediate action required."
                    ),
                    recommended_action=(
                        "Transfer funds from savings or reduce upcoming expenses to avoid overdraft."
                    ),
                    confidence_score=0.9,
                    created_on=today,
                    impacted_account_ids=list(shortfalls.accounts_at_risk),
                    value_estimate=amount,
                    savings_potential=amount * 0.1,  # overdraft fees
                    linked_entities=LinkedEntities(accounts=list(shortfalls.accounts_at_risk)),
                )
            )
        elif days_until <= SHORTFALL_WARNING_DAYS:
            insights.append(
                CashflowInsight(
                    id=_insight_id("shortfall-warning", today),
                    user_id=user_id,
                    severity=InsightSeverity.HIGH,
                    category=InsightCategory.LIQUIDITY_RISK,
                    title="Cash Shortfall Predicted",
                    description=(
                        f"Based on current patterns, you may experience a shortfall of "
                        f"${round(amount)} in approximately {days_until} days."
                    ),
                    recommended_action=(
                        "Review upcoming expenses and consider adjusting payment schedules or building buffer."
                    ),
                    confidence_score=0.8,
                    created_on=today,
                    impacted_account_ids=list(shortfalls.accounts_at_risk),
                    value_estimate=amount,
                )
            )

    if forecast.volatility_index > VOLATILITY_MEDIUM:
        insights.append(
            CashflowInsight(
                id=_insight_id("volatility", today),
                user_id=user_id,
                severity=InsightSeverity.HIGH if forecast.volatility_index > VOLATILITY_HIGH else InsightSeverity.MEDIUM,
                category=InsightCategory.ANOMALY,
                title="High Cashflow Volatility",
                description=(
                    f"Your cashflow volatility index is {round(forecast.volatility_index)}/100. "
                    "This indicates unpredictable spending patterns."
                ),
                recommended_action=(
                    "Consider creating a budget and tracking expenses more closely to reduce variability."
                ),
                confidence_score=0.85,
                created_on=today,
                value_estimate=summary.monthly_burn_rate * 0.1,
            )
        )

    if summary.net_cashflow_30 < 0:
        deficit = abs(summary.net_cashflow_30)
        insights.append(
            CashflowInsight(
                id=_insight_id("negative-cashflow", today),
                user_id=user_id,
                severity=(
                    InsightSeverity.HIGH if summary.net_cashflow_30 < NEGATIVE_CASHFLOW_HIGH else InsightSeverity.MEDIUM
                ),
                category=InsightCategory.LIQUIDITY_RISK,
                title="Negative Net Cashflow",
                description=f"You are spending ${round(deficit)} more than you earn over the next 30 days.",
                recommended_action=(
                    "Review expenses and identify areas to cut back, or explore ways to increase income."
                ),
                confidence_score=0.9,
                created_on=today,
                value_estimate=deficit,
                savings_potential=deficit * 0.2,
            )
        )

    return insights


def generate_liquidity_insights(user_id: str, forecast: ForecastOutput) -> List[CashflowInsight]:
    insights = []
    today = forecast.generated_on
    summary = forecast.summary

    if summary.monthly_burn_rate > 0:
        months_of_buffer = summary.withdrawable_cash / summary.monthly_burn_rate
        if months_of_buffer < LOW_BUFFER_MONTHS:
            insights.append(
                CashflowInsight(
                    id=_insight_id("low-buffer", today),
                    user_id=user_id,
                    severity=InsightSeverity.HIGH if months_of_buffer < 1 else InsightSeverity.MEDIUM,
                    category=InsightCategory.LIQUIDITY_RISK,
                    title="Low Emergency Buffer",
                    description=(
                        f"You only have {months_of_buffer:.1f} months of expenses in reserve. "
                        "Recommended: 3-6 months."
                    ),
                    recommended_action="Prioritise building an emergency fund of at least 3 months expenses.",
                    confidence_score=0.95,
                    created_on=today,
                    value_estimate=summary.monthly_burn_rate * (3 - months_of_buffer),
                )
            )

    burn_rate_ratio = summary.monthly_burn_rate / (summary.total_income_30 or 1)
    if burn_rate_ratio > HIGH_BURN_RATE_THRESHOLD:
        insights.append(
            CashflowInsight(
                id=_insight_id("high-burn-rate", today),
                user_id=user_id,
                severity=InsightSeverity.HIGH if burn_rate_ratio > 1 else InsightSeverity.MEDIUM,
                category=InsightCategory.INEFFICIENCY,
                title="High Burn Rate",
                description=(
                    f"You're spending {round(burn_rate_ratio * 100)}% of your income. "
                    "This leaves little room for savings."
                ),
                recommended_action="Aim to reduce spending to 70-80% of income.",
                confidence_score=0.9,
                created_on=today,
                value_estimate=summary.monthly_burn_rate * 0.1,
                savings_potential=summary.monthly_burn_rate * 0.1,
            )
        )

    return insights


def generate_optimisation_insights(user_id: str, optimisation: OptimisationOutput) -> List[CashflowInsight]:
    insights = []
    today = optimisation.generated_on

    flagged = [i for i in optimisation.inefficiencies if i.potential_savings > INEFFICIENCY_INSIGHT_MIN]
    for index, inefficiency in enumerate(flagged[:5]):
        insights.append(
            CashflowInsight(
                id=_insight_id("ineff", today, index),
                user_id=user_id,
                severity=value_to_severity(inefficiency.potential_savings),
                category=inefficiency.category,
                title=f"Savings Opportunity: {inefficiency.merchant_or_category}",
                description=inefficiency.description,
                recommended_action=(
                    f"Review spending in {inefficiency.merchant_or_category}. "
                    f"Potential monthly savings: ${round(inefficiency.potential_savings)}"
                ),
                confidence_score=inefficiency.confidence_score,
                created_on=today,
                impacted_categories=[inefficiency.merchant_or_category],
                value_estimate=inefficiency.potential_savings,
                savings_potential=inefficiency.potential_savings,
                linked_entities=(
                    LinkedEntities(recurring=[inefficiency.recurring_id]) if inefficiency.recurring_id else None
                ),
            )
        )

    movements = [m for m in optimisation.fund_movements if m.projected_benefit > FUND_MOVEMENT_INSIGHT_MIN]
    for index, movement in enumerate(movements):
        accounts = [movement.from_account_id, movement.to_account_id]
        insights.append(
            CashflowInsight(
                id=_insight_id("fund-move", today, index),
                user_id=user_id,
                severity=InsightSeverity.HIGH if movement.urgency == Urgency.HIGH else InsightSeverity.MEDIUM,
                category=(
                    InsightCategory.LIQUIDITY_RISK if movement.prevents_shortfall
                    else InsightCategory.SAVINGS_OPPORTUNITY
                ),
                title="Optimise Fund Allocation",
                description=movement.reason,
                recommended_action=(
                    f"Transfer ${round(movement.amount)} from {movement.from_account_name} "
                    f"to {movement.to_account_name}"
                ),
                confidence_score=0.9,
                created_on=today,
                impacted_account_ids=accounts,
                value_estimate=movement.projected_benefit,
                savings_potential=movement.projected_benefit,
                linked_entities=LinkedEntities(accounts=list(accounts)),
            )
        )

    repayments = [r for r in optimisation.repayment_optimisations if r.interest_savings > REPAYMENT_INSIGHT_MIN]
    for index, repayment in enumerate(repayments):
        insights.append(
            CashflowInsight(
                id=_insight_id("repayment", today, index),
                user_id=user_id,
                severity=InsightSeverity.HIGH if repayment.interest_savings > 5000 else InsightSeverity.MEDIUM,
                category=InsightCategory.SAVINGS_OPPORTUNITY,
                title=f"Loan Optimisation: {repayment.loan_name}",
                description=repayment.rationale,
                recommended_action=repayment.recommended_strategy,
                confidence_score=0.85,
                created_on=today,
                value_estimate=repayment.interest_savings,
                savings_potential=repayment.interest_savings,
                linked_entities=LinkedEntities(loans=[repayment.loan_id]),
            )
        )

    break_even = optimisation.break_even_day
    if break_even == -1 or break_even > LATE_BREAK_EVEN_DAY:
        never = break_even == -1
        insights.append(
            CashflowInsight(
                id=_insight_id("breakeven", today),
                user_id=user_id,
                severity=InsightSeverity.HIGH if never else InsightSeverity.MEDIUM,
                category=InsightCategory.LIQUIDITY_RISK,
                title="Expenses Exceed Income" if never else "Late Break-Even Day",
                description=(
                    "Your monthly expenses exceed your monthly income."
                    if never
                    else f"You don't break even until day {break_even} of each month, causing cashflow pressure."
                ),
                recommended_action="Consider moving payment dates closer to income dates.",
                confidence_score=0.8,
                created_on=today,
                value_estimate=optimisation.summary.total_potential_savings * 0.05,
            )
        )

    return insights


def generate_subscription_insights(user_id: str, optimisation: OptimisationOutput) -> List[CashflowInsight]:
    insights = []
    today = optimisation.generated_on

    for index, subscription in enumerate(optimisation.subscriptions_with_price_increase):
        percent = subscription.price_change_percent or 0.0
        insights.append(
            CashflowInsight(
                id=_insight_id("price-increase", today, index),
                user_id=user_id,
                severity=InsightSeverity.HIGH if percent > PRICE_INCREASE_HIGH_PERCENT else InsightSeverity.MEDIUM,
                category=InsightCategory.SUBSCRIPTION,
                title=f"Price Increase: {subscription.merchant}",
                description=(
                    f"{subscription.merchant} has increased from ${subscription.previous_amount or 0.0:.2f} "
                    f"to ${subscription.current_amount:.2f} ({percent:.1f}% increase)."
                ),
                recommended_action="Review if this subscription is still providing value at the new price.",
                confidence_score=0.95,
                created_on=today,
                impacted_categories=list(dict.fromkeys(["Subscriptions", subscription.category])),
                value_estimate=subscription.yearly_impact,
                savings_potential=subscription.yearly_impact,
                linked_entities=LinkedEntities(recurring=[subscription.recurring_id]),
            )
        )

    count = len(optimisation.subscriptions)
    if count > SUBSCRIPTION_COUNT_MEDIUM:
        total_monthly = sum(s.monthly_impact for s in optimisation.subscriptions)
        insights.append(
            CashflowInsight(
                id=_insight_id("subscription-count", today),
                user_id=user_id,
                severity=InsightSeverity.HIGH if count > SUBSCRIPTION_COUNT_HIGH else InsightSeverity.MEDIUM,
                category=InsightCategory.SUBSCRIPTION,
                title="Multiple Active Subscriptions",
                description=(
                    f"You have {count} active subscriptions costing ${round(total_monthly)}/month "
                    f"(${round(total_monthly * 12)}/year)."
                ),
                recommended_action="Review all subscriptions and cancel any that are not regularly used.",
                confidence_score=0.9,
                created_on=today,
                impacted_categories=["Subscriptions"],
                value_estimate=total_monthly * 12,
                savings_potential=total_monthly * 12 * 0.2,  # assume 20% could be cut
            )
        )

    return insights


def generate_resilience_insights(user_id: str, stress: StressTestOutput) -> List[CashflowInsight]:
    insights = []
    today = stress.generated_on
    summary = stress.summary

    if stress.resilience_score < RESILIENCE_HIGH:
        insights.append(
            CashflowInsight(
                id=_insight_id("resilience", today),
                user_id=user_id,
                severity=(
                    InsightSeverity.CRITICAL if stress.resilience_score < RESILIENCE_CRITICAL else InsightSeverity.HIGH
                ),
                category=InsightCategory.LIQUIDITY_RISK,
                title="Low Financial Resilience",
                description=(
                    f"Your resilience score is {stress.resilience_score}/100. "
                    "You may struggle to handle unexpected financial stress."
                ),
                recommended_action=(
                    f"Build emergency fund of ${round(summary.recommended_emergency_fund)} and reduce fixed costs."
                ),
                confidence_score=0.85,
                created_on=today,
                value_estimate=summary.recommended_emergency_fund,
            )
        )

    for index, risk in enumerate(summary.critical_risks):
        insights.append(
            CashflowInsight(
                id=_insight_id("critical-risk", today, index),
                user_id=user_id,
                severity=InsightSeverity.HIGH,
                category=InsightCategory.LIQUIDITY_RISK,
                title=f"Risk Alert: {risk}",
                description=f'Stress testing identified "{risk}" as a critical vulnerability in your financial position.',
                recommended_action="Review mitigation strategies in the Stress Test results.",
                confidence_score=0.8,
                created_on=today,
            )
        )

    worst = next(
        (r for r in stress.scenario_results if r.scenario_name == summary.most_vulnerable_scenario),
        None,
    )
    if worst is not None and worst.survival_time < 3:
        insights.append(
            CashflowInsight(
                id=_insight_id("vulnerable-scenario", today),
                user_id=user_id,
                severity=InsightSeverity.CRITICAL if worst.survival_time < 1 else InsightSeverity.HIGH,
                category=InsightCategory.LIQUIDITY_RISK,
                title=f"Vulnerable to: {worst.scenario_name}",
                description=(
                    f'Under the "{worst.scenario_name}" scenario, you would only survive '
                    f"{worst.survival_time:.1f} months before running out of funds."
                ),
                recommended_action=(
                    f"Build buffer of ${round(worst.required_savings)} or increase income by "
                    f"${round(worst.required_income_increase)}/month."
                ),
                confidence_score=0.75,
                created_on=today,
                value_estimate=worst.required_savings,
            )
        )

    return insights


def get_high_priority_insights(insights: List[CashflowInsight]) -> List[CashflowInsight]:
    return [i for i in insights if i.severity in (InsightSeverity.CRITICAL, InsightSeverity.HIGH)]


def get_unread_insights(insights: List[CashflowInsight]) -> List[CashflowInsight]:
    return [i for i in insights if not i.is_read and not i.is_dismissed]


def get_total_savings_potential(insights: List[CashflowInsight]) -> float:
    return sum(i.savings_potential or 0.0 for i in insights)


def group_insights_by_category(insights: List[CashflowInsight]) -> Dict[InsightCategory, List[CashflowInsight]]:
    grouped: Dict[InsightCategory, List[CashflowInsight]] = defaultdict(list)
    for insight in insights:
        grouped[insight.category].append(insight)
    return dict(grouped)


def mark_insight(
    insight: CashflowInsight,
    read: Optional[bool] = None,
    dismissed: Optional[bool] = None,
    actioned: Optional[bool] = None,
) -> CashflowInsight:
    """Return a copy with the given flags updated; None leaves a flag unchanged"""
    changes = {}
    if read is not None:
        changes["is_read"] = read
    if dismissed is not None:
        changes["is_dismissed"] = dismissed
    if actioned is not None:
        changes["is_actioned"] = actioned
    return replace(insight, **changes)
