"""Income normalisation - converts gross salary streams to take-home amounts"""

from dataclasses import dataclass, replace
from typing import Callable, Iterable, List

from cashflow_engine.domain.models import IncomeFrequency, IncomeStream, IncomeType
from cashflow_engine.domain.timelines import MONTHLY_EQUIVALENT


@dataclass(frozen=True)
class TakeHomePay:
    """Result of the external tax calculator for one pay period"""

    gross_amount: float
    net_amount: float
    payg_withholding: float
    medicare_levy: float
    effective_tax_rate: float = 0.0  # percent


# (gross amount per period, pay frequency) -> TakeHomePay
TakeHomePayCalculator = Callable[[float, IncomeFrequency], TakeHomePay]


@dataclass(frozen=True)
class IncomeWithTax:
    stream: IncomeStream  # amount is net for SALARY streams
    gross_amount: float
    net_amount: float
    withholding: float
    is_after_tax: bool


@dataclass(frozen=True)
class NormalizedIncome:
    income_streams: List[IncomeWithTax]
    total_gross_monthly: float
    total_net_monthly: float
    total_monthly_withholding: float


def normalize_income_stream(stream: IncomeStream, take_home_pay: TakeHomePayCalculator) -> IncomeWithTax:
    """
    SALARY streams are replaced by their net amount.

    Rental, investment and other income is received gross and taxed at year
    end, so it passes through unchanged.
    """
    if stream.type != IncomeType.SALARY:
        return IncomeWithTax(
            stream=stream,
            gross_amount=stream.monthly_amount,
            net_amount=stream.monthly_amount,
            withholding=0.0,
            is_after_tax=False,
        )

    pay = take_home_pay(stream.monthly_amount, stream.frequency)
    return IncomeWithTax(
        stream=replace(stream, monthly_amount=pay.net_amount),
        gross_amount=pay.gross_amount,
        net_amount=pay.net_amount,
        withholding=pay.gross_amount - pay.net_amount,
        is_after_tax=True,
    )


def normalize_all_income(
    streams: Iterable[IncomeStream],
    take_home_pay: TakeHomePayCalculator,
) -> NormalizedIncome:
    """Normalise every stream; totals are monthly equivalents"""
    normalized = [normalize_income_stream(stream, take_home_pay) for stream in streams]

    def monthly(item: IncomeWithTax, amount: float) -> float:
        return MONTHLY_EQUIVALENT[item.stream.frequency](amount)

    return NormalizedIncome(
        income_streams=normalized,
        total_gross_monthly=sum(monthly(i, i.gross_amount) for i in normalized),
        total_net_monthly=sum(monthly(i, i.net_amount) for i in normalized),
        total_monthly_withholding=sum(monthly(i, i.withholding) for i in normalized),
    )


def net_income_streams(streams: Iterable[IncomeStream], take_home_pay: TakeHomePayCalculator) -> List[IncomeStream]:
    """Streams ready for the forecast simulator"""
    return [normalize_income_stream(stream, take_home_pay).stream for stream in streams]
