"""Cashflow optimisation engine - inefficiencies, fund movements, schedules and repayments"""

import logging
import re
from collections import Counter
from datetime import date
from typing import List, Mapping, Optional, Tuple

from cashflow_engine.config import settings
from cashflow_engine.domain.models import (
    AccountType,
    CashflowStrategy,
    ForecastInput,
    ForecastOutput,
    FundMovementRecommendation,
    InefficiencyEvidence,
    InsightCategory,
    LoanData,
    OffsetAccountData,
    OptimisationInput,
    OptimisationOutput,
    OptimisationSummary,
    PaymentScheduleOptimisation,
    RecurrencePattern,
    RecurringPaymentData,
    RepaymentOptimisation,
    ScheduleEntry,
    SpendingInefficiency,
    SpendingProfile,
    StrategyStep,
    StrategyType,
    SubscriptionAnalysis,
    TrendDirection,
    Urgency,
)
from cashflow_engine.domain.strategies import (
    rank_strategies,
    severity_to_priority,
    urgency_to_priority,
    value_to_severity,
)
from cashflow_engine.utils.date_utils import add_months, with_day

logger = logging.getLogger(__name__)

INEFFICIENCY_THRESHOLD = 1.5  # 150% of benchmark
MIN_SAVINGS_TO_REPORT = 20.0
SUBSCRIPTION_REVIEW_AMOUNT = 50.0
SUBSCRIPTION_PRICE_INCREASE_THRESHOLD = 0.05
STREAMING_SERVICES_TO_KEEP = 2

OFFSET_BUFFER = 5000.0
OFFSET_BENEFIT_THRESHOLD = 100.0  # per year
OFFSET_HIGH_URGENCY_BENEFIT = 500.0
SHORTFALL_DONOR_MULTIPLIER = 1.5
SHORTFALL_TRANSFER_BUFFER = 1.2

MID_MONTH = 15
MIN_EARLY_PAYMENTS = 3
DAYS_AFTER_INCOME = 3
SCHEDULE_BENEFIT_RATE = 0.02  # proxy for avoided overdraft cost

AMORTISATION_YEARS = 30
OFFSET_TARGET_RATIO = 0.1
EXTRA_REPAYMENT_SURPLUS = 500.0
EXTRA_REPAYMENT_CAP = 500.0
BREAK_EVEN_WINDOW = 30

ENTERTAINMENT_PATTERN = re.compile(r"\b(netflix|spotify|disney|stan|youtube)\b")
HEALTH_PATTERN = re.compile(r"\b(gym|fitness|anytime)\b")
STREAMING_PATTERN = re.compile(r"\b(netflix|disney|stan|binge|paramount|prime video)\b")


def generate_optimisations(
    optimisation_input: OptimisationInput,
    benchmarks: Optional[Mapping[str, float]] = None,
) -> OptimisationOutput:
    """
    Main entry point: detect optimisation opportunities and rank them as strategies.

    Args:
        optimisation_input: completed forecast plus spending, loan and offset state
        benchmarks: monthly spend per category; defaults to settings.category_benchmarks
    """
    forecast = optimisation_input.forecast
    benchmark_table = benchmarks if benchmarks is not None else settings.category_benchmarks

    inefficiencies = detect_inefficiencies(
        optimisation_input.spending_profile,
        optimisation_input.recurring_payments,
        benchmark_table,
    )
    subscriptions, price_increases = analyse_subscriptions(optimisation_input.recurring_payments)
    fund_movements = generate_fund_movements(
        forecast, optimisation_input.offset_accounts, optimisation_input.loans
    )
    schedule_optimisations = optimise_payment_schedules(optimisation_input.recurring_payments, forecast)
    repayment_optimisations = optimise_loan_repayments(
        optimisation_input.loans, optimisation_input.offset_accounts, forecast
    )

    strategies = generate_strategies(
        inefficiencies,
        price_increases,
        fund_movements,
        schedule_optimisations,
        repayment_optimisations,
    )

    total_potential_savings = (
        sum(i.potential_savings for i in inefficiencies)
        + sum(f.projected_benefit for f in fund_movements)
        + sum(s.projected_benefit for s in schedule_optimisations)
        + sum(r.interest_savings for r in repayment_optimisations)
    )

    logger.debug(
        "Optimisations generated",
        extra={"user_id": optimisation_input.user_id, "strategies": len(strategies)},
    )

    return OptimisationOutput(
        user_id=optimisation_input.user_id,
        generated_on=forecast.generated_on,
        inefficiencies=inefficiencies,
        subscriptions=subscriptions,
        subscriptions_with_price_increase=price_increases,
        fund_movements=fund_movements,
        schedule_optimisations=schedule_optimisations,
        repayment_optimisations=repayment_optimisations,
        break_even_day=calculate_break_even_day(forecast),
        strategies=strategies,
        summary=OptimisationSummary(
            total_potential_savings=total_potential_savings,
            inefficiency_count=len(inefficiencies),
            subscription_count=len(subscriptions),
            price_increase_count=len(price_increases),
            strategy_count=len(strategies),
            high_priority_actions=sum(1 for s in strategies if s.priority >= 70),
        ),
    )


def build_optimisation_input(
    forecast_input: ForecastInput,
    forecast: ForecastOutput,
    spending_profile: SpendingProfile,
) -> OptimisationInput:
    """Derive loan and offset state from the same snapshot the forecast ran on"""
    loans = [
        LoanData(
            id=schedule.loan_id,
            name=schedule.loan_name,
            principal=schedule.principal,
            interest_rate=schedule.interest_rate,
            monthly_repayment=schedule.monthly_repayment,
            is_interest_only=schedule.is_interest_only,
            offset_account_id=schedule.offset_account_id,
        )
        for schedule in forecast_input.loan_schedules
    ]
    rates = {loan.id: loan.interest_rate for loan in loans}

    offset_accounts = [
        OffsetAccountData(
            id=account.account_id,
            name=account.account_name,
            balance=account.current_balance,
            linked_loan_id=account.linked_loan_id,
            effective_savings_rate=rates.get(account.linked_loan_id, 0.0),
        )
        for account in forecast_input.accounts
        if account.account_type == AccountType.OFFSET and account.linked_loan_id
    ]

    return OptimisationInput(
        user_id=forecast_input.user_id,
        forecast=forecast,
        spending_profile=spending_profile,
        recurring_payments=list(forecast_input.recurring_payments),
        loans=loans,
        offset_accounts=offset_accounts,
    )


# ---------------------------------------------------------------------------
# Inefficiencies
# ---------------------------------------------------------------------------


def detect_subscription_category(merchant: str) -> str:
    lowered = merchant.lower()
    if ENTERTAINMENT_PATTERN.search(lowered):
        return "Entertainment"
    if HEALTH_PATTERN.search(lowered):
        return "Health"
    return "Subscriptions"


def _slug(value: str) -> str:
    return re.sub(r"\s+", "-", value.strip().lower())


def detect_inefficiencies(
    spending_profile: SpendingProfile,
    recurring_payments: List[RecurringPaymentData],
    benchmarks: Mapping[str, float],
) -> List[SpendingInefficiency]:
    """
    Flag categories and recurring payments that look wasteful.

    All savings figures are monthly.
    """
    inefficiencies = []

    for category, average in spending_profile.category_averages.items():
        benchmark = benchmarks.get(category)
        if not benchmark or average.avg_monthly <= benchmark * INEFFICIENCY_THRESHOLD:
            continue
        potential_savings = average.avg_monthly - benchmark
        if potential_savings < MIN_SAVINGS_TO_REPORT:
            continue
        above_percent = round(average.avg_monthly / benchmark * 100 - 100)
        inefficiencies.append(
            SpendingInefficiency(
                id=f"ineff-{_slug(category)}",
                category=InsightCategory.INEFFICIENCY,
                merchant_or_category=category,
                description=f"Spending in {category} is {above_percent}% above average",
                current_spend=average.avg_monthly,
                benchmark_spend=benchmark,
                potential_savings=potential_savings,
                confidence_score=0.8,
                evidence=InefficiencyEvidence(
                    average_monthly_spend=average.avg_monthly,
                    trend_direction=average.trend,
                    comparable_benchmark=benchmark,
                ),
            )
        )

    active = [rp for rp in recurring_payments if rp.is_active]

    # No usage data, so expensive entertainment/subscription services are review candidates only
    for payment in active:
        if payment.pattern != RecurrencePattern.MONTHLY or payment.expected_amount <= SUBSCRIPTION_REVIEW_AMOUNT:
            continue
        category = payment.category or detect_subscription_category(payment.merchant)
        if category not in ("Entertainment", "Subscriptions"):
            continue
        inefficiencies.append(
            SpendingInefficiency(
                id=f"ineff-{payment.id}",
                category=InsightCategory.SUBSCRIPTION,
                merchant_or_category=payment.merchant,
                description=(
                    f"{payment.merchant} costs ${payment.expected_amount:.2f}/month - "
                    "consider if still providing value"
                ),
                current_spend=payment.expected_amount,
                potential_savings=payment.expected_amount,
                confidence_score=0.5,
                evidence=InefficiencyEvidence(
                    average_monthly_spend=payment.expected_amount,
                    trend_direction=TrendDirection.STABLE,
                ),
                recurring_id=payment.id,
            )
        )

    overlap = detect_streaming_overlap(active)
    if overlap is not None:
        inefficiencies.append(overlap)

    return sorted(inefficiencies, key=lambda i: -i.potential_savings)


def detect_streaming_overlap(recurring_payments: List[RecurringPaymentData]) -> Optional[SpendingInefficiency]:
    """Three or more streaming services: savings from dropping the cheapest down to two"""
    streaming = [rp for rp in recurring_payments if STREAMING_PATTERN.search(rp.merchant.lower())]
    if len(streaming) <= STREAMING_SERVICES_TO_KEEP:
        return None

    monthly_total = sum(rp.expected_amount for rp in streaming)
    cheapest = sorted(rp.expected_amount for rp in streaming)[: len(streaming) - STREAMING_SERVICES_TO_KEEP]

    return SpendingInefficiency(
        id="ineff-streaming-overlap",
        category=InsightCategory.INEFFICIENCY,
        merchant_or_category="Streaming Services",
        description=f"You have {len(streaming)} streaming services. Consider consolidating.",
        current_spend=monthly_total,
        potential_savings=sum(cheapest),
        confidence_score=0.7,
        evidence=InefficiencyEvidence(
            average_monthly_spend=monthly_total,
            trend_direction=TrendDirection.STABLE,
        ),
    )


# ---------------------------------------------------------------------------
# Subscriptions
# ---------------------------------------------------------------------------


def analyse_subscription(payment: RecurringPaymentData) -> SubscriptionAnalysis:
    """Month-over-month price change for one monthly recurring payment"""
    previous_amount = None
    change_percent = None
    has_increase = False

    change = payment.last_price_change
    if change:
        previous_amount = payment.expected_amount - change
        if previous_amount > 0:
            change_percent = change / previous_amount * 100
            has_increase = change / previous_amount > SUBSCRIPTION_PRICE_INCREASE_THRESHOLD

    return SubscriptionAnalysis(
        recurring_id=payment.id,
        merchant=payment.merchant,
        current_amount=payment.expected_amount,
        previous_amount=previous_amount,
        price_change_percent=change_percent,
        has_price_increase=has_increase,
        first_seen=payment.last_occurrence,
        monthly_impact=payment.expected_amount,
        yearly_impact=payment.expected_amount * 12,
        category=detect_subscription_category(payment.merchant),
    )


def analyse_subscriptions(
    recurring_payments: List[RecurringPaymentData],
) -> Tuple[List[SubscriptionAnalysis], List[SubscriptionAnalysis]]:
    """
    Returns: (subscriptions by yearly impact, those with a price increase)
    """
    subscriptions = [
        analyse_subscription(rp)
        for rp in recurring_payments
        if rp.is_active and rp.pattern == RecurrencePattern.MONTHLY
    ]
    subscriptions.sort(key=lambda s: -s.yearly_impact)
    return subscriptions, [s for s in subscriptions if s.has_price_increase]


# ---------------------------------------------------------------------------
# Fund movements
# ---------------------------------------------------------------------------


def generate_fund_movements(
    forecast: ForecastOutput,
    offset_accounts: List[OffsetAccountData],
    loans: List[LoanData],
) -> List[FundMovementRecommendation]:
    """Offset top-ups from idle balances, and transfers that cover a predicted shortfall"""
    recommendations = []
    loans_by_id = {loan.id: loan for loan in loans}

    for offset in offset_accounts:
        linked_loan = loans_by_id.get(offset.linked_loan_id)
        if linked_loan is None:
            continue

        for account in forecast.account_forecasts:
            if account.account_id == offset.id:
                continue
            excess = account.average_balance - OFFSET_BUFFER
            if excess <= 0:
                continue
            annual_benefit = excess * linked_loan.interest_rate
            if annual_benefit < OFFSET_BENEFIT_THRESHOLD:
                continue
            recommendations.append(
                FundMovementRecommendation(
                    from_account_id=account.account_id,
                    from_account_name=account.account_name,
                    to_account_id=offset.id,
                    to_account_name=offset.name,
                    amount=excess,
                    reason=f"Moving funds to offset account saves ${round(annual_benefit)}/year in interest",
                    projected_benefit=annual_benefit,
                    urgency=Urgency.HIGH if annual_benefit > OFFSET_HIGH_URGENCY_BENEFIT else Urgency.MEDIUM,
                )
            )

    shortfalls = forecast.shortfall_analysis
    if shortfalls.has_shortfall:
        shortfall_amount = shortfalls.max_shortfall_amount
        at_risk = [af for af in forecast.account_forecasts if af.account_id in shortfalls.accounts_at_risk]
        donors = [
            af
            for af in forecast.account_forecasts
            if af.account_id not in shortfalls.accounts_at_risk
            and af.average_balance >= shortfall_amount * SHORTFALL_DONOR_MULTIPLIER
        ]
        if at_risk and donors:
            donor, target = donors[0], at_risk[0]
            recommendations.append(
                FundMovementRecommendation(
                    from_account_id=donor.account_id,
                    from_account_name=donor.account_name,
                    to_account_id=target.account_id,
                    to_account_name=target.account_name,
                    amount=shortfall_amount * SHORTFALL_TRANSFER_BUFFER,
                    reason=f"Prevent predicted shortfall of ${round(shortfall_amount)} in {target.account_name}",
                    projected_benefit=shortfall_amount,
                    urgency=Urgency.HIGH,
                    prevents_shortfall=True,
                )
            )

    return sorted(recommendations, key=lambda r: -r.projected_benefit)


# ---------------------------------------------------------------------------
# Payment schedules
# ---------------------------------------------------------------------------


def primary_income_day(forecast: ForecastOutput) -> int:
    """Most common day of month with income; earliest day wins ties, 15 if no income"""
    income_days = Counter(p.date.day for p in forecast.global_forecast if p.predicted_income > 0)
    if not income_days:
        return MID_MONTH
    return min(income_days, key=lambda day: (-income_days[day], day))


def _payment_anchor(payment: RecurringPaymentData) -> date:
    return payment.next_expected or payment.last_occurrence


def optimise_payment_schedules(
    recurring_payments: List[RecurringPaymentData],
    forecast: ForecastOutput,
) -> List[PaymentScheduleOptimisation]:
    """Late-month income with a cluster of early-month bills: suggest moving the bills"""
    income_day = primary_income_day(forecast)
    early = [
        rp for rp in recurring_payments if rp.is_active and _payment_anchor(rp).day <= MID_MONTH
    ]

    if income_day <= MID_MONTH or len(early) <= MIN_EARLY_PAYMENTS:
        return []

    today = forecast.generated_on
    target_day = income_day + DAYS_AFTER_INCOME
    new_date = with_day(today.year, today.month, target_day)
    if new_date < today:
        new_date = add_months(today.replace(day=1), 1, day=target_day)

    total = sum(rp.expected_amount for rp in early)
    return [
        PaymentScheduleOptimisation(
            description="Align payment dates with income",
            current_schedule=[
                ScheduleEntry(
                    date=_payment_anchor(rp),
                    description=rp.merchant,
                    amount=rp.expected_amount,
                    account_id=rp.account_id,
                    recurring_id=rp.id,
                )
                for rp in early
            ],
            optimised_schedule=[
                ScheduleEntry(
                    date=new_date,
                    description=rp.merchant,
                    amount=rp.expected_amount,
                    account_id=rp.account_id,
                    recurring_id=rp.id,
                )
                for rp in early
            ],
            benefit_description=(
                f"Moving {len(early)} payments to after your income date reduces cashflow stress"
            ),
            projected_benefit=total * SCHEDULE_BENEFIT_RATE,
        )
    ]


# ---------------------------------------------------------------------------
# Loan repayments
# ---------------------------------------------------------------------------


def calculate_amortised_payment(principal: float, annual_rate: float, years: int = AMORTISATION_YEARS) -> float:
    """Standard principal-and-interest monthly payment"""
    payments = years * 12
    if payments <= 0:
        return principal
    monthly_rate = annual_rate / 12
    if monthly_rate == 0:
        return principal / payments
    growth = (1 + monthly_rate) ** payments
    return principal * monthly_rate * growth / (growth - 1)


def estimate_interest_only_savings(loan: LoanData, years: int = 5) -> float:
    """
    Interest avoided over `years` by switching to P&I.

    Approximation: P&I interest is taken as a flat 70% of interest-only
    interest, not an amortisation schedule.
    """
    interest_only = loan.principal * loan.interest_rate * years
    return interest_only - interest_only * 0.7


def optimise_loan_repayments(
    loans: List[LoanData],
    offset_accounts: List[OffsetAccountData],
    forecast: ForecastOutput,
) -> List[RepaymentOptimisation]:
    """Interest-only switches, offset under-use and extra repayments, by interest saved"""
    optimisations = []
    monthly_surplus = forecast.summary.net_cashflow_30

    for loan in loans:
        if loan.is_interest_only:
            pi_payment = calculate_amortised_payment(loan.principal, loan.interest_rate)
            monthly_increase = pi_payment - loan.monthly_repayment
            if monthly_surplus > 0 and monthly_increase <= monthly_surplus:
                optimisations.append(
                    RepaymentOptimisation(
                        loan_id=loan.id,
                        loan_name=loan.name,
                        current_strategy="Interest Only",
                        recommended_strategy="Principal & Interest",
                        current_monthly_payment=loan.monthly_repayment,
                        recommended_monthly_payment=pi_payment,
                        interest_savings=estimate_interest_only_savings(loan),
                        term_reduction=60,
                        rationale="Your cashflow can support P&I payments, saving significant interest long-term",
                    )
                )

        offset_target = loan.principal * OFFSET_TARGET_RATIO
        linked_offset = next((o for o in offset_accounts if o.linked_loan_id == loan.id), None)
        if linked_offset is not None and linked_offset.balance < offset_target:
            yearly_saving = offset_target * loan.interest_rate
            optimisations.append(
                RepaymentOptimisation(
                    loan_id=loan.id,
                    loan_name=loan.name,
                    current_strategy="Underutilised offset",
                    recommended_strategy="Maximise offset balance",
                    current_monthly_payment=loan.monthly_repayment,
                    recommended_monthly_payment=loan.monthly_repayment,
                    interest_savings=yearly_saving,
                    term_reduction=12,
                    rationale=(
                        f"Building offset balance to 10% of loan (${round(offset_target)}) "
                        f"saves ${round(yearly_saving)}/year"
                    ),
                )
            )

        if not loan.is_interest_only and monthly_surplus > EXTRA_REPAYMENT_SURPLUS:
            extra = min(EXTRA_REPAYMENT_CAP, monthly_surplus * 0.5)
            annual_extra = extra * 12
            # rough 10-year impact, not an amortisation schedule
            interest_saved = annual_extra * loan.interest_rate * 10
            term_reduction = round(annual_extra * 10 / loan.monthly_repayment) if loan.monthly_repayment > 0 else 0
            optimisations.append(
                RepaymentOptimisation(
                    loan_id=loan.id,
                    loan_name=loan.name,
                    current_strategy="Minimum repayments",
                    recommended_strategy=f"Extra ${round(extra)}/month repayments",
                    current_monthly_payment=loan.monthly_repayment,
                    recommended_monthly_payment=loan.monthly_repayment + extra,
                    interest_savings=interest_saved,
                    term_reduction=term_reduction,
                    rationale="Extra repayments reduce principal faster, saving interest",
                )
            )

    return sorted(optimisations, key=lambda o: -o.interest_savings)


# ---------------------------------------------------------------------------
# Break-even
# ---------------------------------------------------------------------------


def calculate_break_even_day(forecast: ForecastOutput) -> int:
    """Day of month on which cumulative income first covers cumulative expenses; -1 if never"""
    cumulative_income = 0.0
    cumulative_expenses = 0.0
    for point in forecast.global_forecast[:BREAK_EVEN_WINDOW]:
        cumulative_income += point.predicted_income
        cumulative_expenses += point.predicted_expenses
        if cumulative_income >= cumulative_expenses:
            return point.date.day
    return -1


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------


def inefficiency_steps(inefficiency: SpendingInefficiency) -> List[StrategyStep]:
    if inefficiency.category == InsightCategory.SUBSCRIPTION:
        return [
            StrategyStep(1, "REVIEW", f"Review usage of {inefficiency.merchant_or_category}"),
            StrategyStep(2, "EVALUATE", "Determine if subscription is still providing value"),
            StrategyStep(3, "CANCEL_OR_DOWNGRADE", "Cancel or downgrade if not needed"),
        ]
    budget = inefficiency.benchmark_spend or inefficiency.current_spend * 0.7
    return [
        StrategyStep(1, "ANALYSE", f"Review {inefficiency.merchant_or_category} transactions"),
        StrategyStep(2, "SET_BUDGET", f"Set budget of ${round(budget)}/month"),
        StrategyStep(3, "TRACK", "Track spending against budget for 30 days", optional=True),
    ]


def generate_strategies(
    inefficiencies: List[SpendingInefficiency],
    price_increases: List[SubscriptionAnalysis],
    fund_movements: List[FundMovementRecommendation],
    schedule_optimisations: List[PaymentScheduleOptimisation],
    repayment_optimisations: List[RepaymentOptimisation],
) -> List[CashflowStrategy]:
    """
    Convert findings into strategies, highest priority first.

    Priority mapping:
    - inefficiencies (top 5): severity of the monthly saving (25/50/75/100)
    - fund movements: urgency HIGH 90, MEDIUM 60, LOW 30
    - repayments (top 3): savings > $5000 85, > $1000 65, else 45
    - schedule changes: 50
    - price increases: severity of the yearly increase
    """
    strategies: List[CashflowStrategy] = []

    for index, inefficiency in enumerate(inefficiencies[:5]):
        strategies.append(
            CashflowStrategy(
                id=f"strategy-ineff-{index}",
                type=StrategyType.REDUCE_WASTE,
                priority=severity_to_priority(value_to_severity(inefficiency.potential_savings)),
                title=f"Reduce {inefficiency.merchant_or_category} spending",
                summary=inefficiency.description,
                detail=(
                    f"Current spend: ${round(inefficiency.current_spend)}/month. "
                    f"Potential savings: ${round(inefficiency.potential_savings)}/month."
                ),
                confidence=inefficiency.confidence_score,
                projected_benefit=inefficiency.potential_savings,
                recommended_steps=inefficiency_steps(inefficiency),
                affected_recurring_ids=[inefficiency.recurring_id] if inefficiency.recurring_id else [],
            )
        )

    for index, movement in enumerate(fund_movements):
        strategies.append(
            CashflowStrategy(
                id=f"strategy-fund-{index}",
                type=StrategyType.PREVENT_SHORTFALL if movement.prevents_shortfall else StrategyType.MAXIMISE_OFFSET,
                priority=urgency_to_priority(movement.urgency),
                title=f"Transfer funds to {movement.to_account_name}",
                summary=movement.reason,
                confidence=0.9,
                projected_benefit=movement.projected_benefit,
                recommended_steps=[
                    StrategyStep(
                        1,
                        "TRANSFER",
                        f"Transfer ${round(movement.amount)} from {movement.from_account_name} "
                        f"to {movement.to_account_name}",
                    ),
                    StrategyStep(2, "MONITOR", "Monitor account balances for 30 days", optional=True),
                ],
                affected_account_ids=[movement.from_account_id, movement.to_account_id],
            )
        )

    for index, repayment in enumerate(repayment_optimisations[:3]):
        if repayment.interest_savings > 5000:
            priority = 85
        elif repayment.interest_savings > 1000:
            priority = 65
        else:
            priority = 45
        strategies.append(
            CashflowStrategy(
                id=f"strategy-repay-{index}",
                type=StrategyType.REPAYMENT_OPTIMISE,
                priority=priority,
                title=repayment.recommended_strategy,
                summary=repayment.rationale,
                detail=(
                    f"Save ${round(repayment.interest_savings)} in interest. "
                    f"Pay off {repayment.term_reduction} months earlier."
                ),
                confidence=0.85,
                projected_benefit=repayment.interest_savings,
                recommended_steps=[
                    StrategyStep(1, "CONTACT_LENDER", "Contact lender to change repayment strategy"),
                    StrategyStep(
                        2,
                        "ADJUST_PAYMENT",
                        f"Adjust payment from ${round(repayment.current_monthly_payment)} "
                        f"to ${round(repayment.recommended_monthly_payment)}/month",
                    ),
                ],
                affected_loan_ids=[repayment.loan_id],
            )
        )

    for index, schedule in enumerate(schedule_optimisations):
        strategies.append(
            CashflowStrategy(
                id=f"strategy-schedule-{index}",
                type=StrategyType.SCHEDULE_OPTIMISE,
                priority=50,
                title="Optimise payment schedule",
                summary=schedule.benefit_description,
                confidence=0.7,
                projected_benefit=schedule.projected_benefit,
                recommended_steps=[
                    StrategyStep(1, "REVIEW", "Review which payments can have their dates changed"),
                    StrategyStep(2, "RESCHEDULE", "Contact service providers to reschedule payment dates"),
                ],
                affected_account_ids=sorted({e.account_id for e in schedule.current_schedule}),
                affected_recurring_ids=[e.recurring_id for e in schedule.current_schedule if e.recurring_id],
            )
        )

    for index, subscription in enumerate(price_increases):
        yearly_increase = (subscription.current_amount - (subscription.previous_amount or 0.0)) * 12
        strategies.append(
            CashflowStrategy(
                id=f"strategy-price-{index}",
                type=StrategyType.REDUCE_WASTE,
                priority=severity_to_priority(value_to_severity(yearly_increase)),
                title=f"Review {subscription.merchant} price increase",
                summary=(
                    f"{subscription.merchant} went up {subscription.price_change_percent:.1f}% "
                    f"to ${subscription.current_amount:.2f}/month"
                ),
                confidence=0.95,
                projected_benefit=yearly_increase,
                recommended_steps=[
                    StrategyStep(1, "REVIEW", f"Check whether {subscription.merchant} is still worth the new price"),
                    StrategyStep(2, "NEGOTIATE", "Ask for a loyalty discount or cheaper plan", optional=True),
                    StrategyStep(3, "CANCEL_OR_DOWNGRADE", "Cancel or downgrade if not needed"),
                ],
                affected_recurring_ids=[subscription.recurring_id],
            )
        )

    return rank_strategies(strategies)
