"""Pydantic schemas for API request/response validation"""

from datetime import date
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from cashflow_engine.config import settings
from cashflow_engine.domain.models import (
    AccountBalance,
    AccountForecast,
    AccountType,
    CashflowInsight,
    CashflowStrategy,
    Direction,
    ExpenseAllocation,
    ForecastConfig,
    ForecastInput,
    ForecastMetadata,
    ForecastPoint,
    ForecastSummary,
    FundMovementRecommendation,
    IncomeFrequency,
    IncomeStream,
    IncomeType,
    LoanSchedule,
    OptimisationSummary,
    PaymentScheduleOptimisation,
    PlannedExpense,
    RecurrencePattern,
    RecurringPaymentData,
    RecurringTimelineEntry,
    RepaymentOptimisation,
    ShortfallAnalysis,
    SpendingInefficiency,
    StressParameters,
    StressScenario,
    StressTestResult,
    StressTestSummary,
    SubscriptionAnalysis,
    TransactionRecord,
)


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class AccountSchema(BaseModel):
    account_id: str = Field(..., min_length=1)
    account_name: str
    account_type: AccountType
    current_balance: float
    linked_loan_id: Optional[str] = None

    def to_domain(self) -> AccountBalance:
        return AccountBalance(**self.model_dump())


class TransactionSchema(BaseModel):
    id: str
    account_id: str
    date: date
    amount: float
    direction: Direction
    category_level1: Optional[str] = None
    category_level2: Optional[str] = None
    merchant: Optional[str] = None
    is_recurring: bool = False

    def to_domain(self) -> TransactionRecord:
        return TransactionRecord(**self.model_dump())


class RecurringPaymentSchema(BaseModel):
    id: str
    merchant: str
    account_id: str
    pattern: RecurrencePattern
    expected_amount: float = Field(..., ge=0)
    last_occurrence: date
    next_expected: Optional[date] = None
    is_active: bool = True
    category: Optional[str] = None
    price_increase_alert: bool = False
    last_price_change: Optional[float] = None
    last_price_change_date: Optional[date] = None

    def to_domain(self) -> RecurringPaymentData:
        return RecurringPaymentData(**self.model_dump())


class IncomeStreamSchema(BaseModel):
    id: str
    name: str
    type: IncomeType
    monthly_amount: float = Field(..., ge=0, description="Net amount per pay period")
    frequency: IncomeFrequency
    next_expected: Optional[date] = None
    volatility: float = Field(0.0, ge=0, le=1)
    account_id: Optional[str] = None

    def to_domain(self) -> IncomeStream:
        return IncomeStream(**self.model_dump())


class LoanScheduleSchema(BaseModel):
    loan_id: str
    loan_name: str
    principal: float = Field(..., ge=0)
    interest_rate: float = Field(..., ge=0, description="Annual rate as a fraction")
    monthly_repayment: float = Field(..., ge=0)
    repayment_day: int = Field(..., ge=1, le=31)
    is_interest_only: bool = False
    offset_account_id: Optional[str] = None
    repayment_account_id: Optional[str] = None

    def to_domain(self) -> LoanSchedule:
        return LoanSchedule(**self.model_dump())


class PlannedExpenseSchema(BaseModel):
    id: str
    description: str
    amount: float = Field(..., ge=0)
    date: date
    account_id: Optional[str] = None
    category: Optional[str] = None

    def to_domain(self) -> PlannedExpense:
        return PlannedExpense(**self.model_dump())


class ForecastConfigSchema(BaseModel):
    forecast_days: int = Field(default_factory=lambda: settings.default_forecast_days, gt=0)
    include_confidence_bands: bool = Field(default_factory=lambda: settings.include_confidence_bands)
    allocation: ExpenseAllocation = ExpenseAllocation.SCOPED

    def to_domain(self) -> ForecastConfig:
        return ForecastConfig(**self.model_dump())


class ForecastRequest(BaseModel):
    """Request body for POST /v1/forecast; also the base of the other engine requests"""

    user_id: str = Field(..., min_length=1, description="User identifier")
    today: Optional[date] = Field(None, description="Forecast anchor; defaults to the current date")
    accounts: List[AccountSchema] = Field(default_factory=list)
    transactions: List[TransactionSchema] = Field(default_factory=list)
    recurring_payments: List[RecurringPaymentSchema] = Field(default_factory=list)
    income_streams: List[IncomeStreamSchema] = Field(default_factory=list)
    loan_schedules: List[LoanScheduleSchema] = Field(default_factory=list)
    planned_expenses: List[PlannedExpenseSchema] = Field(default_factory=list)
    config: ForecastConfigSchema = Field(default_factory=ForecastConfigSchema)

    def to_domain(self) -> ForecastInput:
        return ForecastInput(
            user_id=self.user_id,
            today=self.today or date.today(),
            accounts=[a.to_domain() for a in self.accounts],
            transactions=[t.to_domain() for t in self.transactions],
            recurring_payments=[r.to_domain() for r in self.recurring_payments],
            income_streams=[i.to_domain() for i in self.income_streams],
            loan_schedules=[l.to_domain() for l in self.loan_schedules],
            planned_expenses=[p.to_domain() for p in self.planned_expenses],
            config=self.config.to_domain(),
        )


class OptimisationRequest(ForecastRequest):
    """Request body for POST /v1/optimisations"""

    benchmarks: Optional[Dict[str, float]] = Field(
        None, description="Monthly spend per category; defaults to the configured table"
    )


class StressParametersSchema(BaseModel):
    income_drop_percent: Optional[float] = Field(None, ge=0, le=100)
    income_drop_duration: Optional[int] = Field(None, ge=0)
    expense_shock_amount: Optional[float] = Field(None, ge=0)
    expense_shock_date: Optional[date] = None
    expense_inflation_percent: Optional[float] = Field(None, gt=-100)
    interest_rate_increase: Optional[float] = Field(None, description="Basis points")

    def to_domain(self) -> StressParameters:
        return StressParameters(**self.model_dump())


class CustomScenarioSchema(BaseModel):
    name: str = Field(..., min_length=1)
    description: str = ""
    parameters: StressParametersSchema


class StressTestRequest(ForecastRequest):
    """Request body for POST /v1/stress-tests"""

    scenario_ids: Optional[List[str]] = Field(None, description="Predefined scenario ids; all when omitted")
    custom_scenarios: List[CustomScenarioSchema] = Field(default_factory=list)


class InsightsRequest(ForecastRequest):
    """Request body for POST /v1/insights"""

    include_optimisation: bool = True
    include_stress: bool = False
    benchmarks: Optional[Dict[str, float]] = None


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class ForecastResponse(BaseModel):
    """Response for POST /v1/forecast"""

    user_id: str
    generated_on: date
    global_forecast: List[ForecastPoint]
    account_forecasts: List[AccountForecast]
    shortfall_analysis: ShortfallAnalysis
    recurring_timeline: List[RecurringTimelineEntry]
    volatility_index: float
    summary: ForecastSummary
    metadata: ForecastMetadata


class OptimisationResponse(BaseModel):
    """Response for POST /v1/optimisations"""

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


class StressTestResponse(BaseModel):
    """Response for POST /v1/stress-tests"""

    user_id: str
    generated_on: date
    baseline_result: StressTestResult
    scenario_results: List[StressTestResult]
    resilience_score: int
    summary: StressTestSummary


class ScenarioListResponse(BaseModel):
    """Response for GET /v1/stress-tests/scenarios"""

    scenarios: List[StressScenario]


class InsightsResponse(BaseModel):
    """Response for POST /v1/insights"""

    user_id: str
    insights: List[CashflowInsight]
    high_priority_count: int
    total_savings_potential: float
