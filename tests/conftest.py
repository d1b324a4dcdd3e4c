"""Pytest fixtures for testing"""

from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient

from cashflow_engine.api.main import create_app
from cashflow_engine.domain.models import (
    AccountBalance,
    AccountType,
    Direction,
    ForecastConfig,
    ForecastInput,
    IncomeFrequency,
    IncomeStream,
    IncomeType,
    RecurrencePattern,
    RecurringPaymentData,
    TransactionRecord,
)

# Fixed anchor so forecasts are deterministic; 2025-01-01 is a Wednesday
TODAY = date(2025, 1, 1)


@pytest.fixture
def client() -> TestClient:
    """Create FastAPI test client"""
    return TestClient(create_app())


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def everyday_account() -> AccountBalance:
    return AccountBalance(
        account_id="acc_everyday",
        account_name="Everyday",
        account_type=AccountType.TRANSACTIONAL,
        current_balance=10_000.0,
    )


@pytest.fixture
def salary() -> IncomeStream:
    """$5,000 net salary paid on the 1st"""
    return IncomeStream(
        id="inc_salary",
        name="Salary",
        type=IncomeType.SALARY,
        monthly_amount=5_000.0,
        frequency=IncomeFrequency.MONTHLY,
        next_expected=TODAY,
        account_id="acc_everyday",
    )


@pytest.fixture
def rent() -> RecurringPaymentData:
    """$4,500 of monthly outgoings on the 5th"""
    return RecurringPaymentData(
        id="rp_rent",
        merchant="Rent",
        account_id="acc_everyday",
        pattern=RecurrencePattern.MONTHLY,
        expected_amount=4_500.0,
        last_occurrence=date(2024, 12, 5),
        next_expected=date(2025, 1, 5),
        category="Housing",
    )


@pytest.fixture
def baseline_input(everyday_account, salary, rent) -> ForecastInput:
    """Balance $10,000, income $5,000 on day 1, expenses $4,500 on day 5, 90 days"""
    return ForecastInput(
        user_id="user_baseline",
        today=TODAY,
        accounts=[everyday_account],
        income_streams=[salary],
        recurring_payments=[rent],
        config=ForecastConfig(forecast_days=90),
    )


@pytest.fixture
def spending_history() -> list[TransactionRecord]:
    """Three months of weekly groceries, one dinner out and a salary credit"""
    start = TODAY - timedelta(days=91)
    transactions = [
        TransactionRecord(
            id=f"txn_groceries_{week}",
            account_id="acc_everyday",
            date=start + timedelta(days=week * 7),
            amount=150.0,
            direction=Direction.OUT,
            category_level1="Groceries",
            merchant="Supermarket",
        )
        for week in range(13)
    ]
    transactions += [
        TransactionRecord(
            id="txn_dinner_1",
            account_id="acc_everyday",
            date=start + timedelta(days=10),
            amount=120.0,
            direction=Direction.OUT,
            category_level1="Dining Out",
            merchant="Bistro",
        ),
        TransactionRecord(
            id="txn_salary",
            account_id="acc_everyday",
            date=start + timedelta(days=14),
            amount=5_000.0,
            direction=Direction.IN,
            category_level1="Income",
        ),
    ]
    return transactions


@pytest.fixture
def forecast_payload() -> dict:
    """Baseline snapshot as an API request body"""
    payload = {
        "user_id": "user_api",
        "today": TODAY.isoformat(),
        "accounts": [
            {
                "account_id": "acc_everyday",
                "account_name": "Everyday",
                "account_type": "TRANSACTIONAL",
                "current_balance": 10_000,
            }
        ],
        "income_streams": [
            {
                "id": "inc_salary",
                "name": "Salary",
                "type": "SALARY",
                "monthly_amount": 5_000,
                "frequency": "MONTHLY",
                "next_expected": TODAY.isoformat(),
            }
        ],
        "recurring_payments": [
            {
                "id": "rp_rent",
                "merchant": "Rent",
                "account_id": "acc_everyday",
                "pattern": "MONTHLY",
                "expected_amount": 4_500,
                "last_occurrence": "2024-12-05",
                "next_expected": "2025-01-05",
                "category": "Housing",
            }
        ],
        "config": {"forecast_days": 90},
    }
    return payload
