"""Domain models - pure Python dataclasses representing cashflow entities"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Dict, List, Optional


class Direction(str, Enum):
    IN = "IN"
    OUT = "OUT"


class AccountType(str, Enum):
    OFFSET = "OFFSET"
    SAVINGS = "SAVINGS"
    TRANSACTIONAL = "TRANSACTIONAL"
    CREDIT_CARD = "CREDIT_CARD"


class RecurrencePattern(str, Enum):
    WEEKLY = "WEEKLY"
    FORTNIGHTLY = "FORTNIGHTLY"
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    ANNUALLY = "ANNUALLY"


class IncomeType(str, Enum):
    SALARY = "SALARY"
    RENT = "RENT"
    RENTAL = "RENTAL"
    INVESTMENT = "INVESTMENT"
    OTHER = "OTHER"


class IncomeFrequency(str, Enum):
    WEEKLY = "WEEKLY"
    FORTNIGHTLY = "FORTNIGHTLY"
    MONTHLY = "MONTHLY"
    ANNUAL = "ANNUAL"


class TrendDirection(str, Enum):
    INCREASING = "INCREASING"
    STABLE = "STABLE"
    DECREASING = "DECREASING"


class ExpenseAllocation(str, Enum):
    """How loan repayments and the weekday spend estimate are assigned to accounts"""

    SCOPED = "SCOPED"  # owning account only
    UNIFORM = "UNIFORM"  # every account


class InsightSeverity(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class InsightCategory(str, Enum):
    RECURRING = "RECURRING"
    ANOMALY = "ANOMALY"
    INEFFICIENCY = "INEFFICIENCY"
    LIQUIDITY_RISK = "LIQUIDITY_RISK"
    SUBSCRIPTION = "SUBSCRIPTION"
    SAVINGS_OPPORTUNITY = "SAVINGS_OPPORTUNITY"


class StrategyType(str, Enum):
    OPTIMISE = "OPTIMISE"
    PREVENT_SHORTFALL = "PREVENT_SHORTFALL"
    MAXIMISE_OFFSET = "MAXIMISE_OFFSET"
    REDUCE_WASTE = "REDUCE_WASTE"
    REBALANCE = "REBALANCE"
    REPAYMENT_OPTIMISE = "REPAYMENT_OPTIMISE"
    SCHEDULE_OPTIMISE = "SCHEDULE_OPTIMISE"


class StrategyStatus(str, Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    DISMISSED = "DISMISSED"
    EXPIRED = "EXPIRED"


class Urgency(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class StressScenarioType(str, Enum):
    INCOME_DROP = "INCOME_DROP"
    EXPENSE_SHOCK = "EXPENSE_SHOCK"
    INTEREST_RATE_RISE = "INTEREST_RATE_RISE"
    INFLATION = "INFLATION"
    CUSTOM = "CUSTOM"


# ---------------------------------------------------------------------------
# Forecast inputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TransactionRecord:
    """Categorised historical transaction"""

    id: str
    account_id: str
    date: date
    amount: float
    direction: Direction
    category_level1: Optional[str] = None
    category_level2: Optional[str] = None
    merchant: Optional[str] = None
    is_recurring: bool = False


@dataclass(frozen=True)
class RecurringPaymentData:
    """Detected recurring payment with optional price tracking"""

    id: str
    merchant: str
    account_id: str
    pattern: RecurrencePattern
    expected_amount: float
    last_occurrence: date
    next_expected: Optional[date] = None
    is_active: bool = True
    category: Optional[str] = None
    price_increase_alert: bool = False
    last_price_change: Optional[float] = None
    last_price_change_date: Optional[date] = None


@dataclass(frozen=True)
class IncomeStream:
    """Expected income source; monthly_amount must be net for SALARY streams"""

    id: str
    name: str
    type: IncomeType
    monthly_amount: float
    frequency: IncomeFrequency
    next_expected: Optional[date] = None
    volatility: float = 0.0
    account_id: Optional[str] = None


@dataclass(frozen=True)
class LoanSchedule:
    """Loan repayment configuration"""

    loan_id: str
    loan_name: str
    principal: float
    interest_rate: float  # annual, as a fraction
    monthly_repayment: float
    repayment_day: int  # day of month
    is_interest_only: bool = False
    offset_account_id: Optional[str] = None
    repayment_account_id: Optional[str] = None


@dataclass(frozen=True)
class AccountBalance:
    """Account snapshot at forecast start"""

    account_id: str
    account_name: str
    account_type: AccountType
    current_balance: float
    linked_loan_id: Optional[str] = None


@dataclass(frozen=True)
class PlannedExpense:
    """One-off future expense declared by the user"""

    id: str
    description: str
    amount: float
    date: date
    account_id: Optional[str] = None
    category: Optional[str] = None


@dataclass(frozen=True)
class ForecastConfig:
    forecast_days: int = 90
    include_confidence_bands: bool = True
    allocation: ExpenseAllocation = ExpenseAllocation.SCOPED


@dataclass(frozen=True)
class ForecastInput:
    """Complete snapshot consumed by the forecast simulator"""

    user_id: str
    today: date
    accounts: List[AccountBalance] = field(default_factory=list)
    transactions: List[TransactionRecord] = field(default_factory=list)
    recurring_payments: List[RecurringPaymentData] = field(default_factory=list)
    income_streams: List[IncomeStream] = field(default_factory=list)
    loan_schedules: List[LoanSchedule] = field(default_factory=list)
    planned_expenses: List[PlannedExpense] = field(default_factory=list)
    config: ForecastConfig = field(default_factory=ForecastConfig)


# ---------------------------------------------------------------------------
# Pattern analysis
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SpendingPatterns:
    """Historical spending statistics derived from OUT transactions"""

    daily_average: float
    weekday_averages: List[float]  # index 0 = Sunday
    category_averages: Dict[str, float]
    volatility: float
    trend: TrendDirection


@dataclass(frozen=True)
class CategoryAverage:
    avg_monthly: float
    trend: TrendDirection = TrendDirection.STABLE
    volatility: float = 0.0


@dataclass(frozen=True)
class SpendingProfile:
    """Category-level spending summary used by the optimisation engine"""

    category_averages: Dict[str, CategoryAverage] = field(default_factory=dict)
    overall_volatility: float = 0.0
    predicted_monthly_spend: Optional[float] = None


# ---------------------------------------------------------------------------
# Timelines
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RecurringTimelineEntry:
    date: date
    recurring_id: str
    merchant: str
    expected_amount: float
    account_id: str
    category: Optional[str] = None


@dataclass(frozen=True)
class IncomeTimelineEntry:
    date: date
    amount: float
    name: str
    account_id: Optional[str] = None


@dataclass(frozen=True)
class LoanTimelineEntry:
    date: date
    amount: float
    loan_id: str
    loan_name: str
    account_id: Optional[str] = None


# ---------------------------------------------------------------------------
# Forecast outputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ForecastPoint:
    """One simulated day"""

    date: date
    predicted_balance: float
    predicted_income: float
    predicted_expenses: float
    predicted_recurring: float
    predicted_non_recurring: float
    confidence_score: float
    volatility_factor: float
    shortfall_risk: bool
    shortfall_amount: Optional[float] = None
    upper_bound: Optional[float] = None
    lower_bound: Optional[float] = None


@dataclass(frozen=True)
class AccountForecast:
    account_id: str
    account_name: str
    account_type: AccountType
    forecasts: List[ForecastPoint]
    average_balance: float
    min_balance: float
    max_balance: float
    shortfall_days: List[date]


@dataclass(frozen=True)
class ShortfallAnalysis:
    has_shortfall: bool
    shortfall_dates: List[date]
    max_shortfall_amount: float
    total_shortfall_days: int
    first_shortfall_date: Optional[date]
    accounts_at_risk: List[str]


@dataclass(frozen=True)
class ForecastSummary:
    """30/90-day rollups, burn rate and withdrawable cash"""

    avg_daily_balance_30: float
    total_income_30: float
    total_expenses_30: float
    net_cashflow_30: float
    avg_daily_balance_90: float
    total_income_90: float
    total_expenses_90: float
    net_cashflow_90: float
    monthly_burn_rate: float
    three_month_burn_rate: float
    withdrawable_cash: float


@dataclass(frozen=True)
class ForecastMetadata:
    input_transaction_count: int
    recurring_payment_count: int
    forecast_days: int


@dataclass(frozen=True)
class ForecastOutput:
    """Complete forecast for one user"""

    user_id: str
    generated_on: date
    global_forecast: List[ForecastPoint]
    account_forecasts: List[AccountForecast]
    shortfall_analysis: ShortfallAnalysis
    recurring_timeline: List[RecurringTimelineEntry]
    volatility_index: float
    summary: ForecastSummary
    metadata: ForecastMetadata


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StrategyStep:
    order: int
    action: str
    description: str
    optional: bool = False


@dataclass(frozen=True)
class CashflowStrategy:
    """Ranked, actionable recommendation"""

    id: str
    type: StrategyType
    priority: int  # 1-100
    title: str
    summary: str
    confidence: float
    projected_benefit: float
    recommended_steps: List[StrategyStep] = field(default_factory=list)
    detail: Optional[str] = None
    affected_account_ids: List[str] = field(default_factory=list)
    affected_loan_ids: List[str] = field(default_factory=list)
    affected_recurring_ids: List[str] = field(default_factory=list)
    status: StrategyStatus = StrategyStatus.PENDING
    expires_on: Optional[date] = None


# ---------------------------------------------------------------------------
# Optimisation
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LoanData:
    id: str
    name: str
    principal: float
    interest_rate: float
    monthly_repayment: float
    is_interest_only: bool = False
    offset_account_id: Optional[str] = None


@dataclass(frozen=True)
class OffsetAccountData:
    id: str
    name: str
    balance: float
    linked_loan_id: str
    effective_savings_rate: float = 0.0


@dataclass(frozen=True)
class OptimisationInput:
    user_id: str
    forecast: ForecastOutput
    spending_profile: SpendingProfile
    recurring_payments: List[RecurringPaymentData] = field(default_factory=list)
    loans: List[LoanData] = field(default_factory=list)
    offset_accounts: List[OffsetAccountData] = field(default_factory=list)


@dataclass(frozen=True)
class InefficiencyEvidence:
    average_monthly_spend: float
    trend_direction: TrendDirection
    comparable_benchmark: Optional[float] = None
    price_change_percent: Optional[float] = None


@dataclass(frozen=True)
class SpendingInefficiency:
    id: str
    category: InsightCategory
    merchant_or_category: str
    description: str
    current_spend: float
    potential_savings: float
    confidence_score: float
    evidence: InefficiencyEvidence
    benchmark_spend: Optional[float] = None
    recurring_id: Optional[str] = None


@dataclass(frozen=True)
class SubscriptionAnalysis:
    recurring_id: str
    merchant: str
    current_amount: float
    has_price_increase: bool
    first_seen: date
    monthly_impact: float
    yearly_impact: float
    category: str
    previous_amount: Optional[float] = None
    price_change_percent: Optional[float] = None


@dataclass(frozen=True)
class FundMovementRecommendation:
    from_account_id: str
    from_account_name: str
    to_account_id: str
    to_account_name: str
    amount: float
    reason: str
    projected_benefit: float
    urgency: Urgency
    prevents_shortfall: bool = False


@dataclass(frozen=True)
class ScheduleEntry:
    date: date
    description: str
    amount: float
    account_id: str
    recurring_id: Optional[str] = None


@dataclass(frozen=True)
class PaymentScheduleOptimisation:
    description: str
    current_schedule: List[ScheduleEntry]
    optimised_schedule: List[ScheduleEntry]
    benefit_description: str
    projected_benefit: float


@dataclass(frozen=True)
class RepaymentOptimisation:
    loan_id: str
    loan_name: str
    current_strategy: str
    recommended_strategy: str
    current_monthly_payment: float
    recommended_monthly_payment: float
    interest_savings: float
    term_reduction: int  # months
    rationale: str


@dataclass(frozen=True)
class OptimisationSummary:
    total_potential_savings: float
    inefficiency_count: int
    subscription_count: int
    price_increase_count: int
    strategy_count: int
    high_priority_actions: int


@dataclass(frozen=True)
class OptimisationOutput:
    user_id: str
    generated_on: date
    inefficiencies: List[SpendingInefficiency]
    subscriptions: List[SubscriptionAnalysis]
    subscriptions_with_price_increase: List[SubscriptionAnalysis]
    fund_movements: List[FundMovementRecommendation]
    schedule_optimisations: List[PaymentScheduleOptimisation]
    repayment_optimisations: List[RepaymentOptimisation]
    break_even_day: int
    strategies: List[CashflowStrategy]
    summary: OptimisationSummary


# ---------------------------------------------------------------------------
# Stress testing
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StressParameters:
    income_drop_percent: Optional[float] = None  # 0-100
    income_drop_duration: Optional[int] = None  # months, informational
    expense_shock_amount: Optional[float] = None
    expense_shock_date: Optional[date] = None
    expense_inflation_percent: Optional[float] = None
    interest_rate_increase: Optional[float] = None  # basis points


@dataclass(frozen=True)
class StressScenario:
    id: str
    name: str
    type: StressScenarioType
    description: str
    parameters: StressParameters


@dataclass(frozen=True)
class StressTestResult:
    scenario_id: str
    scenario_name: str
    scenario_type: StressScenarioType
    original_forecast: List[ForecastPoint]
    stressed_forecast: List[ForecastPoint]
    survival_time: float  # months before first shortfall
    max_shortfall_amount: float
    balance_impact: float
    shortfall_days_added: int
    mitigation_strategies: List[CashflowStrategy]
    required_savings: float
    required_income_increase: float


@dataclass(frozen=True)
class StressTestSummary:
    most_vulnerable_scenario: str
    shortest_survival_time: float
    average_survival_time: float
    recommended_emergency_fund: float
    critical_risks: List[str]


@dataclass(frozen=True)
class StressTestOutput:
    user_id: str
    generated_on: date
    baseline_result: StressTestResult
    scenario_results: List[StressTestResult]
    resilience_score: int  # 0-100
    summary: StressTestSummary


# ---------------------------------------------------------------------------
# Insights
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LinkedEntities:
    loans: List[str] = field(default_factory=list)
    accounts: List[str] = field(default_factory=list)
    recurring: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class CashflowInsight:
    """Presentational, severity-tagged summary of a finding"""

    id: str
    user_id: str
    severity: InsightSeverity
    category: InsightCategory
    title: str
    description: str
    recommended_action: str
    confidence_score: float
    created_on: date
    impacted_account_ids: List[str] = field(default_factory=list)
    impacted_categories: List[str] = field(default_factory=list)
    value_estimate: Optional[float] = None
    savings_potential: Optional[float] = None
    linked_entities: Optional[LinkedEntities] = None
    is_read: bool = False
    is_dismissed: bool = False
    is_actioned: bool = False
