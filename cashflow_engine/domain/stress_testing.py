"""Stress testing engine - what-if scenarios re-simulated against the baseline forecast"""

import logging
import math
import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from datetime import timedelta
from typing import List, Optional

from cashflow_engine.config import settings
from cashflow_engine.domain.exceptions import InvalidStressParametersError
from cashflow_engine.domain.forecasting import generate_forecast
from cashflow_engine.domain.models import (
    CashflowStrategy,
    ForecastInput,
    ForecastOutput,
    LoanSchedule,
    PlannedExpense,
    StrategyStep,
    StrategyType,
    StressParameters,
    StressScenario,
    StressScenarioType,
    StressTestOutput,
    StressTestResult,
    StressTestSummary,
)

logger = logging.getLogger(__name__)

EXPENSE_SHOCK_LEAD_DAYS = 7
AMORTISATION_PAYMENTS = 30 * 12
EMERGENCY_FUND_MULTIPLIER = 1.5
FULL_SURVIVAL_MONTHS = 3
DISCRETIONARY_IMPACT_THRESHOLD = 1000.0

PREDEFINED_SCENARIOS: List[StressScenario] = [
    StressScenario(
        id="income-drop-50",
        name="Income Drop 50%",
        type=StressScenarioType.INCOME_DROP,
        description="Simulates a 50% reduction in income for 3 months",
        parameters=StressParameters(income_drop_percent=50, income_drop_duration=3),
    ),
    StressScenario(
        id="income-loss-100",
        name="Complete Income Loss",
        type=StressScenarioType.INCOME_DROP,
        description="Simulates complete loss of income for 6 months",
        parameters=StressParameters(income_drop_percent=100, income_drop_duration=6),
    ),
    StressScenario(
        id="expense-shock-5k",
        name="Unexpected $5,000 Expense",
        type=StressScenarioType.EXPENSE_SHOCK,
        description="Simulates an unexpected $5,000 expense (e.g., car repair, medical)",
        parameters=StressParameters(expense_shock_amount=5000),
    ),
    StressScenario(
        id="expense-shock-15k",
        name="Major Expense $15,000",
        type=StressScenarioType.EXPENSE_SHOCK,
        description="Simulates a major expense of $15,000 (e.g., roof replacement)",
        parameters=StressParameters(expense_shock_amount=15000),
    ),
    StressScenario(
        id="rate-rise-100bp",
        name="Interest Rate +1%",
        type=StressScenarioType.INTEREST_RATE_RISE,
        description="Simulates a 1% (100 basis points) interest rate increase",
        parameters=StressParameters(interest_rate_increase=100),
    ),
    StressScenario(
        id="rate-rise-200bp",
        name="Interest Rate +2%",
        type=StressScenarioType.INTEREST_RATE_RISE,
        description="Simulates a 2% (200 basis points) interest rate increase",
        parameters=StressParameters(interest_rate_increase=200),
    ),
    StressScenario(
        id="inflation-high",
        name="High Inflation (8%)",
        type=StressScenarioType.INFLATION,
        description="Simulates 8% annual inflation affecting expenses",
        parameters=StressParameters(expense_inflation_percent=8),
    ),
    StressScenario(
        id="combined-mild",
        name="Mild Combined Stress",
        type=StressScenarioType.CUSTOM,
        description="25% income drop + 3% inflation + 0.5% rate rise",
        parameters=StressParameters(
            income_drop_percent=25,
            income_drop_duration=6,
            expense_inflation_percent=3,
            interest_rate_increase=50,
        ),
    ),
    StressScenario(
        id="combined-severe",
        name="Severe Combined Stress",
        type=StressScenarioType.CUSTOM,
        description="50% income drop + 5% inflation + 1.5% rate rise + $10k expense",
        parameters=StressParameters(
            income_drop_percent=50,
            income_drop_duration=3,
            expense_inflation_percent=5,
            interest_rate_increase=150,
            expense_shock_amount=10000,
        ),
    ),
]


def validate_stress_parameters(params: StressParameters) -> None:
    """
    Raises:
        InvalidStressParametersError: non-finite values, income drop outside
            0-100, negative shock or duration, inflation at or below -100%
    """
    numeric = {
        "income_drop_percent": params.income_drop_percent,
        "income_drop_duration": params.income_drop_duration,
        "expense_shock_amount": params.expense_shock_amount,
        "expense_inflation_percent": params.expense_inflation_percent,
        "interest_rate_increase": params.interest_rate_increase,
    }
    for name, value in numeric.items():
        if value is not None and not math.isfinite(value):
            raise InvalidStressParametersError(f"{name} must be a finite number")

    if params.income_drop_percent is not None and not 0 <= params.income_drop_percent <= 100:
        raise InvalidStressParametersError(
            f"income_drop_percent must be within 0-100, got {params.income_drop_percent}"
        )
    if params.income_drop_duration is not None and params.income_drop_duration < 0:
        raise InvalidStressParametersError("income_drop_duration cannot be negative")
    if params.expense_shock_amount is not None and params.expense_shock_amount < 0:
        raise InvalidStressParametersError("expense_shock_amount cannot be negative")
    if params.expense_inflation_percent is not None and params.expense_inflation_percent <= -100:
        raise InvalidStressParametersError("expense_inflation_percent must be greater than -100")


def calculate_new_repayment(loan: LoanSchedule, new_rate: float) -> float:
    """Interest-only: principal x rate / 12. Otherwise amortised over 30 years."""
    if loan.is_interest_only:
        return loan.principal * new_rate / 12

    monthly_rate = new_rate / 12
    if monthly_rate == 0:
        return loan.principal / AMORTISATION_PAYMENTS
    growth = (1 + monthly_rate) ** AMORTISATION_PAYMENTS
    return loan.principal * monthly_rate * growth / (growth - 1)


def apply_stress(forecast_input: ForecastInput, params: StressParameters) -> ForecastInput:
    """
    Build a stressed copy of the input; only the perturbed collections are replaced.

    - income drop: income streams x (1 - pct/100)
    - expense inflation: recurring payments x (1 + pct/100)
    - rate rise: loan rates + bp/10000, repayments recomputed
    - expense shock: one-off planned expense, default today + 7 days
    """
    validate_stress_parameters(params)
    changes = {}

    if params.income_drop_percent is not None:
        factor = 1 - params.income_drop_percent / 100
        changes["income_streams"] = [
            replace(stream, monthly_amount=stream.monthly_amount * factor)
            for stream in forecast_input.income_streams
        ]

    if params.expense_inflation_percent is not None:
        factor = 1 + params.expense_inflation_percent / 100
        changes["recurring_payments"] = [
            replace(payment, expected_amount=payment.expected_amount * factor)
            for payment in forecast_input.recurring_payments
        ]

    if params.interest_rate_increase is not None:
        rate_increase = params.interest_rate_increase / 10000
        loans = []
        for loan in forecast_input.loan_schedules:
            new_rate = loan.interest_rate + rate_increase
            loans.append(
                replace(
                    loan,
                    interest_rate=new_rate,
                    monthly_repayment=calculate_new_repayment(loan, new_rate),
                )
            )
        changes["loan_schedules"] = loans

    if params.expense_shock_amount is not None:
        shock_date = params.expense_shock_date or forecast_input.today + timedelta(days=EXPENSE_SHOCK_LEAD_DAYS)
        changes["planned_expenses"] = [
            *forecast_input.planned_expenses,
            PlannedExpense(
                id="expense-shock",
                description="Unexpected expense (stress test)",
                amount=params.expense_shock_amount,
                date=shock_date,
            ),
        ]

    return replace(forecast_input, **changes)


def run_stress_tests(
    forecast_input: ForecastInput,
    scenarios: Optional[List[StressScenario]] = None,
) -> StressTestOutput:
    """
    Re-simulate the input under each scenario and compare with the baseline.

    Scenarios are independent; with settings.stress_test_workers > 1 they run
    on a thread pool. Results keep scenario order either way.
    """
    scenarios_to_run = PREDEFINED_SCENARIOS if scenarios is None else scenarios
    for scenario in scenarios_to_run:
        validate_stress_parameters(scenario.parameters)

    baseline = generate_forecast(forecast_input)

    def run_scenario(scenario: StressScenario) -> StressTestResult:
        stressed = generate_forecast(apply_stress(forecast_input, scenario.parameters))
        return analyse_stress_result(scenario, baseline, stressed)

    workers = settings.stress_test_workers
    if workers > 1 and len(scenarios_to_run) > 1:
        with ThreadPoolExecutor(max_workers=workers) as executor:
            scenario_results = list(executor.map(run_scenario, scenarios_to_run))
    else:
        scenario_results = [run_scenario(scenario) for scenario in scenarios_to_run]

    logger.debug(
        "Stress scenarios simulated",
        extra={"user_id": forecast_input.user_id, "scenarios": len(scenario_results)},
    )

    return StressTestOutput(
        user_id=forecast_input.user_id,
        generated_on=forecast_input.today,
        baseline_result=create_baseline_result(baseline),
        scenario_results=scenario_results,
        resilience_score=calculate_resilience_score(scenario_results),
        summary=generate_stress_summary(scenario_results, baseline),
    )


def run_custom_stress_test(forecast_input: ForecastInput, params: StressParameters) -> StressTestResult:
    """Single ad-hoc scenario against the baseline"""
    stressed_input = apply_stress(forecast_input, params)
    scenario = StressScenario(
        id="custom",
        name="Custom Scenario",
        type=StressScenarioType.CUSTOM,
        description=describe_parameters(params),
        parameters=params,
    )
    return analyse_stress_result(
        scenario,
        generate_forecast(forecast_input),
        generate_forecast(stressed_input),
    )


def create_baseline_result(forecast: ForecastOutput) -> StressTestResult:
    return StressTestResult(
        scenario_id="baseline",
        scenario_name="Baseline (No Stress)",
        scenario_type=StressScenarioType.CUSTOM,
        original_forecast=forecast.global_forecast,
        stressed_forecast=forecast.global_forecast,
        survival_time=calculate_survival_time(forecast),
        max_shortfall_amount=forecast.shortfall_analysis.max_shortfall_amount,
        balance_impact=0.0,
        shortfall_days_added=0,
        mitigation_strategies=[],
        required_savings=0.0,
        required_income_increase=0.0,
    )


def _end_balance(forecast: ForecastOutput) -> float:
    return forecast.global_forecast[-1].predicted_balance if forecast.global_forecast else 0.0


def analyse_stress_result(
    scenario: StressScenario,
    baseline: ForecastOutput,
    stressed: ForecastOutput,
) -> StressTestResult:
    balance_impact = _end_balance(stressed) - _end_balance(baseline)
    shortfall_days_added = (
        stressed.shortfall_analysis.total_shortfall_days - baseline.shortfall_analysis.total_shortfall_days
    )
    required_savings, required_income_increase = calculate_requirements(stressed)

    return StressTestResult(
        scenario_id=scenario.id,
        scenario_name=scenario.name,
        scenario_type=scenario.type,
        original_forecast=baseline.global_forecast,
        stressed_forecast=stressed.global_forecast,
        survival_time=calculate_survival_time(stressed),
        max_shortfall_amount=stressed.shortfall_analysis.max_shortfall_amount,
        balance_impact=balance_impact,
        shortfall_days_added=shortfall_days_added,
        mitigation_strategies=generate_mitigation_strategies(scenario, stressed, balance_impact),
        required_savings=required_savings,
        required_income_increase=required_income_increase,
    )


def calculate_survival_time(forecast: ForecastOutput) -> float:
    """Months (30-day) until the first shortfall; the full horizon if there is none"""
    first_shortfall = forecast.shortfall_analysis.first_shortfall_date
    if not forecast.shortfall_analysis.has_shortfall or first_shortfall is None:
        return forecast.metadata.forecast_days / 30
    days_to_shortfall = (first_shortfall - forecast.generated_on).days
    return max(0.0, days_to_shortfall / 30)


def calculate_requirements(stressed: ForecastOutput):
    """
    Returns: (required_savings, required_income_increase)

    Savings cover the worst shortfall plus a 50% buffer; the income increase
    spreads the shortfall over the months survived (at least one).
    """
    if not stressed.shortfall_analysis.has_shortfall:
        return 0.0, 0.0
    shortfall = stressed.shortfall_analysis.max_shortfall_amount
    survival_months = calculate_survival_time(stressed)
    return shortfall * EMERGENCY_FUND_MULTIPLIER, shortfall / max(1.0, survival_months)


def emergency_fund_steps(target_amount: float) -> List[StrategyStep]:
    return [
        StrategyStep(1, "OPEN_ACCOUNT", "Open a dedicated high-interest savings account"),
        StrategyStep(2, "AUTOMATE", f"Set up automatic transfer of ${round(target_amount / 12)}/month"),
        StrategyStep(3, "REVIEW", "Review progress quarterly and adjust as needed", optional=True),
    ]


def generate_mitigation_strategies(
    scenario: StressScenario,
    stressed: ForecastOutput,
    balance_impact: float,
) -> List[CashflowStrategy]:
    strategies = []

    if stressed.shortfall_analysis.has_shortfall:
        shortfall = stressed.shortfall_analysis.max_shortfall_amount
        target = shortfall * EMERGENCY_FUND_MULTIPLIER
        strategies.append(
            CashflowStrategy(
                id=f"mitigate-{scenario.id}-emergency",
                type=StrategyType.PREVENT_SHORTFALL,
                priority=95,
                title="Build Emergency Fund",
                summary=f"Build an emergency fund of ${round(target)} to survive this scenario",
                confidence=0.9,
                projected_benefit=shortfall,
                recommended_steps=emergency_fund_steps(target),
            )
        )

        if abs(balance_impact) > DISCRETIONARY_IMPACT_THRESHOLD:
            strategies.append(
                CashflowStrategy(
                    id=f"mitigate-{scenario.id}-reduce",
                    type=StrategyType.REDUCE_WASTE,
                    priority=85,
                    title="Reduce Discretionary Spending",
                    summary="Cut non-essential expenses to improve cashflow resilience",
                    confidence=0.8,
                    projected_benefit=abs(balance_impact) * 0.3,
                    recommended_steps=[
                        StrategyStep(1, "REVIEW", "Review all subscription services"),
                        StrategyStep(2, "CANCEL", "Cancel or pause non-essential subscriptions"),
                        StrategyStep(3, "BUDGET", "Set strict budgets for entertainment and dining"),
                    ],
                )
            )

    if scenario.type == StressScenarioType.INCOME_DROP:
        strategies.append(
            CashflowStrategy(
                id=f"mitigate-{scenario.id}-income",
                type=StrategyType.OPTIMISE,
                priority=80,
                title="Diversify Income Sources",
                summary="Consider additional income streams to reduce single-source dependency",
                confidence=0.7,
                projected_benefit=0.0,
                recommended_steps=[
                    StrategyStep(1, "ASSESS", "Identify skills that could generate additional income"),
                    StrategyStep(2, "EXPLORE", "Research side income opportunities"),
                ],
            )
        )

    if scenario.type == StressScenarioType.INTEREST_RATE_RISE:
        strategies.append(
            CashflowStrategy(
                id=f"mitigate-{scenario.id}-lock",
                type=StrategyType.REPAYMENT_OPTIMISE,
                priority=75,
                title="Consider Fixed Rate Option",
                summary="Lock in current rates with a fixed-rate period to protect against future rises",
                confidence=0.75,
                projected_benefit=abs(balance_impact) * 0.5,
                recommended_steps=[
                    StrategyStep(1, "RESEARCH", "Compare fixed-rate options from your lender"),
                    StrategyStep(2, "CALCULATE", "Calculate break-even point for fixing"),
                    StrategyStep(3, "DECIDE", "Consider splitting loan between fixed and variable", optional=True),
                ],
            )
        )

    return strategies


def scenario_resilience(result: StressTestResult) -> float:
    """Survival of 3+ months scores 100"""
    return min(100.0, result.survival_time / FULL_SURVIVAL_MONTHS * 100)


def calculate_resilience_score(results: List[StressTestResult]) -> int:
    """Mean per-scenario score, 0-100; 0 when no scenarios ran"""
    if not results:
        return 0
    return round(sum(scenario_resilience(r) for r in results) / len(results))


def generate_stress_summary(results: List[StressTestResult], baseline: ForecastOutput) -> StressTestSummary:
    recommended_fund_floor = baseline.summary.monthly_burn_rate * FULL_SURVIVAL_MONTHS
    if not results:
        return StressTestSummary(
            most_vulnerable_scenario="None",
            shortest_survival_time=calculate_survival_time(baseline),
            average_survival_time=calculate_survival_time(baseline),
            recommended_emergency_fund=recommended_fund_floor,
            critical_risks=[],
        )

    most_vulnerable = min(results, key=lambda r: r.survival_time)
    survival_times = [r.survival_time for r in results]
    shortest = min(survival_times)
    average = sum(survival_times) / len(survival_times)
    worst_shortfall = max(r.max_shortfall_amount for r in results)

    critical_risks = []
    if shortest < 1:
        critical_risks.append("Insufficient emergency buffer")
    if average < 2:
        critical_risks.append("Low cashflow resilience")
    for result in results:
        if result.survival_time >= 1:
            continue
        if result.scenario_type == StressScenarioType.INTEREST_RATE_RISE:
            critical_risks.append("High interest rate sensitivity")
        if result.scenario_type == StressScenarioType.INCOME_DROP:
            critical_risks.append("High income dependency")

    return StressTestSummary(
        most_vulnerable_scenario=most_vulnerable.scenario_name,
        shortest_survival_time=shortest,
        average_survival_time=average,
        recommended_emergency_fund=max(worst_shortfall * EMERGENCY_FUND_MULTIPLIER, recommended_fund_floor),
        critical_risks=list(dict.fromkeys(critical_risks)),
    )


def describe_parameters(params: StressParameters) -> str:
    parts = []
    if params.income_drop_percent is not None:
        duration = params.income_drop_duration if params.income_drop_duration is not None else "indefinite"
        parts.append(f"{params.income_drop_percent:g}% income drop for {duration} months")
    if params.expense_shock_amount is not None:
        parts.append(f"${params.expense_shock_amount:g} unexpected expense")
    if params.interest_rate_increase is not None:
        parts.append(f"+{params.interest_rate_increase / 100:g}% interest rate")
    if params.expense_inflation_percent is not None:
        parts.append(f"{params.expense_inflation_percent:g}% expense inflation")
    return ", ".join(parts) or "Custom scenario"


def get_available_scenarios() -> List[StressScenario]:
    return list(PREDEFINED_SCENARIOS)


def create_custom_scenario(name: str, description: str, parameters: StressParameters) -> StressScenario:
    validate_stress_parameters(parameters)
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-") or "scenario"
    return StressScenario(
        id=f"custom-{slug}",
        name=name,
        type=StressScenarioType.CUSTOM,
        description=description,
        parameters=parameters,
    )
